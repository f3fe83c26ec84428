"""
Trip backend client.

Every call returns Ok(value) or Err(ApiError); nothing here raises for a
failed request. A trip response counts as Ok only when the status is 2xx,
the body says success: true, and `data` parses as a Trip.
"""
from typing import Any, Callable, Dict, List, Optional

import httpx
from pydantic import ValidationError

from tripdesk.enums import TripStatus
from tripdesk.logger import logger
from tripdesk.models.results import ApiError, ApiResult, Err, Ok
from tripdesk.models.trip import Trip

GENERIC_ERROR = "Request to the trip service failed"
UNREACHABLE = "Trip service is unreachable"


class TripApiClient:
    def __init__(self, client: httpx.AsyncClient, token: Optional[str] = None):
        self.client = client
        self.token = token

    def _headers(self) -> Dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    async def _request(self, method: str, path: str, json: Any = None,
                       parse: Callable[[Any], Any] = None) -> ApiResult:
        try:
            response = await self.client.request(method, path, json=json, headers=self._headers())
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            return Err(ApiError(f"{UNREACHABLE}: {e}"))

        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            body = {}

        if not response.is_success or body.get("success") is not True:
            message = body.get("message") or body.get("error") or f"{GENERIC_ERROR} (HTTP {response.status_code})"
            logger.warning(f"{method} {path} -> {response.status_code}: {message}")
            return Err(ApiError(str(message), response.status_code))

        data = body.get("data")
        if parse is None:
            return Ok(data)
        try:
            return Ok(parse(data))
        except (ValidationError, TypeError, ValueError) as e:
            logger.error(f"{method} {path} returned an unreadable payload: {e}")
            return Err(ApiError("Trip service returned an unexpected response", response.status_code))

    async def _trip(self, method: str, path: str, json: Any = None) -> ApiResult[Trip]:
        return await self._request(method, path, json=json, parse=_parse_trip)

    # Trip

    async def get_trip(self, trip_id: str) -> ApiResult[Trip]:
        return await self._trip("GET", f"/trip/{trip_id}")

    async def add_purchase(self, trip_id: str, payload: Dict[str, Any]) -> ApiResult[Trip]:
        return await self._trip("POST", f"/trip/{trip_id}/purchase", payload)

    async def update_purchase(self, trip_id: str, index: int, payload: Dict[str, Any]) -> ApiResult[Trip]:
        return await self._trip("PUT", f"/trip/{trip_id}/purchase/{index}", payload)

    async def add_sale(self, trip_id: str, payload: Dict[str, Any]) -> ApiResult[Trip]:
        """Sales and receipts share this endpoint; receipts carry isReceipt."""
        return await self._trip("POST", f"/trip/{trip_id}/sale", payload)

    async def update_sale(self, trip_id: str, index: int, payload: Dict[str, Any]) -> ApiResult[Trip]:
        return await self._trip("PUT", f"/trip/{trip_id}/sale/{index}", payload)

    async def replace_expenses(self, trip_id: str, expenses: List[Dict[str, Any]]) -> ApiResult[Trip]:
        return await self._trip("PUT", f"/trip/{trip_id}/expenses", {"expenses": expenses})

    async def replace_diesel(self, trip_id: str, stations: List[Dict[str, Any]]) -> ApiResult[Trip]:
        return await self._trip("PUT", f"/trip/{trip_id}/diesel", {"stations": stations})

    async def update_diesel(self, trip_id: str, index: int, payload: Dict[str, Any]) -> ApiResult[Trip]:
        return await self._trip("PUT", f"/trip/{trip_id}/diesel/{index}", payload)

    async def add_stock(self, trip_id: str, payload: Dict[str, Any]) -> ApiResult[Trip]:
        return await self._trip("POST", f"/trip/{trip_id}/stock", payload)

    async def update_stock(self, trip_id: str, index: int, payload: Dict[str, Any]) -> ApiResult[Trip]:
        return await self._trip("PUT", f"/trip/{trip_id}/stock/{index}", payload)

    async def delete_stock(self, trip_id: str, index: int) -> ApiResult[Trip]:
        return await self._trip("DELETE", f"/trip/{trip_id}/stock/{index}")

    async def complete_trip(self, trip_id: str, payload: Dict[str, Any]) -> ApiResult[Trip]:
        return await self._trip("PUT", f"/trip/{trip_id}/complete", payload)

    async def update_status(self, trip_id: str, status: TripStatus) -> ApiResult[Trip]:
        return await self._trip("PUT", f"/trip/{trip_id}/status", {"status": TripStatus(status).value})

    async def update_trip_details(self, trip_id: str, payload: Dict[str, Any]) -> ApiResult[Trip]:
        return await self._trip("PUT", f"/trip/{trip_id}/complete-details", payload)

    async def transfer(self, trip_id: str, payload: Dict[str, Any]) -> ApiResult[Dict[str, Any]]:
        # the response shape (new trip and/or updated source trip) is passed through
        return await self._request("POST", f"/trip/{trip_id}/transfer", payload, parse=_as_dict)

    # Customer

    async def get_customer_profile(self, user_id: str) -> ApiResult[Dict[str, Any]]:
        return await self._request("GET", f"/customer/panel/{user_id}/profile", parse=_as_dict)

    async def get_customer(self, customer_id: str) -> ApiResult[Dict[str, Any]]:
        return await self._request("GET", f"/customer/admin/{customer_id}", parse=_as_dict)

    async def set_opening_balance(self, customer_id: str, balance: float) -> ApiResult[Any]:
        return await self._request("PUT", f"/customer/{customer_id}/opening-balance",
                                   {"newOpeningBalance": balance})

    async def set_outstanding_balance(self, customer_id: str, amount: float, balance_type: str) -> ApiResult[Any]:
        return await self._request("PUT", f"/customer/{customer_id}/outstanding-balance",
                                   {"newOutstandingBalance": amount, "outstandingBalanceType": balance_type})


def _parse_trip(data: Any) -> Trip:
    if not isinstance(data, dict):
        raise TypeError("trip payload is not an object")
    return Trip.model_validate(data)


def _as_dict(data: Any) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise TypeError("payload is not an object")
    return data
