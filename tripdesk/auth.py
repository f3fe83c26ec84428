from dataclasses import dataclass
from typing import Optional

import jwt
from jwt.exceptions import PyJWTError as JWTError
from fastapi import HTTPException, status

from config import settings
from tripdesk.enums import UserRole


@dataclass(frozen=True)
class CurrentUser:
    id: str
    role: str
    # raw bearer token, forwarded to the trip backend
    token: str


def verify_token(token: str) -> CurrentUser:
    """Decode a token issued by the trip backend."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials"
        )

    user_id: Optional[str] = payload.get("sub") or payload.get("id") or payload.get("userId")
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials"
        )
    role = payload.get("role") or UserRole.SUPERVISOR.value
    return CurrentUser(id=str(user_id), role=str(role), token=token)
