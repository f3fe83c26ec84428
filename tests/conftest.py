# tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - Trips are built as the backend sends them (camelCase dicts) and parsed
#   with Trip.model_validate, so the wire model is exercised everywhere
# - The trip backend is a FakeBackend behind httpx.MockTransport; every
#   request is recorded so tests can assert what was (not) sent
# - Async tests use the anyio marker on the asyncio backend
# ---------------------------------------------------------------------

from __future__ import annotations

import copy
import json
from typing import Any, Callable, Dict, Optional, Tuple

import httpx
import pytest

from tripdesk.models.trip import Trip
from tripdesk.services.balance_service import BalanceService
from tripdesk.services.trip_api import TripApiClient
from tripdesk.services.trip_service import TripDeskService

BASE_URL = "http://trip.test/api"
TRIP_ID = "665f1c2ab7e4a1d2c3b4a5f6"
CLIENT_ID = "665f1c2ab7e4a1d2c3b4a001"
SUPPLIER_ID = "665f1c2ab7e4a1d2c3b4a101"


@pytest.fixture
def anyio_backend():
    return "asyncio"


# ---------- Trip builders ----------
def purchase(birds=500, weight=750.0, rate=80.0, dc="DC-001", supplier=SUPPLIER_ID) -> Dict[str, Any]:
    return {
        "supplier": supplier,
        "dcNumber": dc,
        "birds": birds,
        "weight": weight,
        "avgWeight": round(weight / birds, 2) if birds else 0,
        "rate": rate,
        "amount": round(weight * rate, 2),
    }


def sale(birds=200, weight=300.0, rate=95.0, bill="BILL0001", client=CLIENT_ID,
         cash=20000.0, online=5000.0, discount=0.0, balance=3500.0) -> Dict[str, Any]:
    return {
        "client": client,
        "billNumber": bill,
        "birds": birds,
        "weight": weight,
        "avgWeight": round(weight / birds, 2) if birds else 0,
        "rate": rate,
        "amount": round(weight * rate, 2),
        "cashPaid": cash,
        "onlinePaid": online,
        "discount": discount,
        "receivedAmount": cash + online,
        "balance": balance,
        "isReceipt": False,
    }


def stock(birds=300, weight=450.0, rate=80.0) -> Dict[str, Any]:
    return {"birds": birds, "weight": weight, "rate": rate, "value": round(weight * rate, 2)}


def make_trip(**overrides) -> Dict[str, Any]:
    """Raw backend trip document with sensible defaults."""
    data = {
        "_id": TRIP_ID,
        "tripId": "TRIP-0001",
        "status": "started",
        "type": "original",
        "date": "2026-10-01T06:00:00Z",
        "place": "Namakkal",
        "driver": "Ravi",
        "labour": "Kumar, Senthil",
        "route": {"from": "Namakkal", "to": "Salem", "distance": 0},
        "vehicle": {"_id": "665f1c2ab7e4a1d2c3b4a777", "vehicleNumber": "TN28AB1234"},
        "supervisor": {"_id": "665f1c2ab7e4a1d2c3b4a888", "name": "Mani"},
        "vehicleReadings": {"opening": 12000, "closing": None, "totalDistance": 0},
        "rentPerKm": 12,
        "purchases": [],
        "sales": [],
        "expenses": [],
        "diesel": {"stations": [], "totalVolume": 0, "totalAmount": 0},
        "stocks": [],
        "transferHistory": [],
        "summary": {"avgPurchaseRate": 80},
    }
    data.update(overrides)
    return data


def trip_of(**overrides) -> Trip:
    return Trip.model_validate(make_trip(**overrides))


@pytest.fixture
def empty_trip() -> Trip:
    return trip_of()


@pytest.fixture
def purchased_trip() -> Trip:
    """One purchase: 500 birds, 750 kg @ 80."""
    return trip_of(purchases=[purchase()])


@pytest.fixture
def sold_trip() -> Trip:
    """Purchase of 500/750 plus a sale of 200/300; 300 birds / 450 kg left."""
    return trip_of(status="ongoing", purchases=[purchase()], sales=[sale()])


# ---------- Fake trip backend ----------
class FakeBackend:
    """In-memory stand-in for the trip REST API.

    Appends posted records to the trip so responses look like the real
    service. `fail[(method, path)] = (status, body)` forces an error reply,
    `raise_on` makes the transport itself fail for a path.
    """

    def __init__(self, trip: Dict[str, Any], customer: Optional[Dict[str, Any]] = None):
        self.trip = copy.deepcopy(trip)
        self.customer = customer if customer is not None else {"_id": CLIENT_ID, "openingBalance": 0}
        self.requests = []
        self.fail: Dict[Tuple[str, str], Tuple[int, Any]] = {}
        self.raise_on = set()

    def calls(self, method: str = None, prefix: str = "") -> list:
        return [
            (r.method, self._path(r))
            for r in self.requests
            if (method is None or r.method == method) and self._path(r).startswith(prefix)
        ]

    def body_of(self, method: str, path: str) -> Any:
        for r in self.requests:
            if r.method == method and self._path(r) == path:
                return json.loads(r.content) if r.content else None
        raise AssertionError(f"No {method} {path} request")

    @staticmethod
    def _path(request: httpx.Request) -> str:
        return request.url.path[len("/api"):]

    def _ok(self, data=None):
        return httpx.Response(200, json={"success": True, "data": self.trip if data is None else data})

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = self._path(request)
        key = (request.method, path)
        if key in self.raise_on:
            raise httpx.ConnectError("connection refused", request=request)
        if key in self.fail:
            status, body = self.fail[key]
            return httpx.Response(status, json=body)

        body = json.loads(request.content) if request.content else None
        parts = path.strip("/").split("/")

        if parts[0] == "customer":
            if request.method == "GET":
                return self._ok(self.customer)
            return self._ok({"updated": True})

        # /trip/:id[/segment[/index]]
        segment = parts[2] if len(parts) > 2 else None
        index = int(parts[3]) if len(parts) > 3 else None
        arrays = {"purchase": "purchases", "sale": "sales", "stock": "stocks"}

        if request.method == "GET" and segment is None:
            return self._ok()
        if segment in arrays:
            items = self.trip[arrays[segment]]
            if request.method == "POST":
                items.append(body)
            elif request.method == "PUT":
                items[index] = body
            elif request.method == "DELETE":
                items.pop(index)
            return self._ok()
        if segment == "expenses":
            self.trip["expenses"] = body["expenses"]
            return self._ok()
        if segment == "diesel":
            stations = self.trip["diesel"]["stations"]
            if index is None:
                self.trip["diesel"]["stations"] = body["stations"]
            else:
                stations[index] = body
            return self._ok()
        if segment == "status":
            self.trip["status"] = body["status"]
            return self._ok()
        if segment == "complete":
            self.trip["status"] = "completed"
            self.trip["vehicleReadings"]["closing"] = body["closingOdometer"]
            self.trip["summary"]["mortality"] = body["mortality"]
            return self._ok()
        if segment == "complete-details":
            self.trip.update({k: v for k, v in body.items() if k != "vehicleReadings"})
            self.trip["vehicleReadings"]["opening"] = body["vehicleReadings"]["opening"]
            return self._ok()
        if segment == "transfer":
            return self._ok({"newTrip": {"_id": "665f1c2ab7e4a1d2c3b4a999", "type": "transferred"}})
        return httpx.Response(404, json={"success": False, "message": "Not found"})


def make_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=BASE_URL)


def make_service(backend: FakeBackend, role: str = "supervisor", token: str = "test-token") -> TripDeskService:
    api = TripApiClient(make_client(backend.handler), token=token)
    return TripDeskService(api, BalanceService(api), role=role)
