from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from config import settings
from tripdesk.auth import CurrentUser, verify_token
from tripdesk.http import get_http_client
from tripdesk.services.balance_service import BalanceService
from tripdesk.services.trip_api import TripApiClient
from tripdesk.services.trip_service import TripDeskService

security = HTTPBearer(auto_error=False)


async def get_current_user(request: Request, credentials: HTTPAuthorizationCredentials = Depends(security)) -> CurrentUser:
    # Try to get token from cookie first
    token = request.cookies.get("token") or request.cookies.get("access_token")

    if not token and credentials:
        token = credentials.credentials

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"}
        )

    return verify_token(token)


async def get_trip_service(current_user: CurrentUser = Depends(get_current_user)) -> TripDeskService:
    """Service bound to the caller's token and role."""
    client = await get_http_client()
    api = TripApiClient(client, token=current_user.token)
    return TripDeskService(
        api,
        BalanceService(api, settings.BALANCE_STYLE),
        role=current_user.role,
        bill_number_style=settings.BILL_NUMBER_STYLE,
    )
