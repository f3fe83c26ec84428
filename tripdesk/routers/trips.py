from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic.alias_generators import to_camel

from tripdesk.models.forms import CompleteTripForm, TransferForm, TripDetailsForm
from tripdesk.models.trip import Trip
from tripdesk.dependencies import get_trip_service
from tripdesk.services import ledger_service, status_service
from tripdesk.services.trip_service import TripDeskService

router = APIRouter()


def trip_data(trip: Trip, role: Optional[str]) -> Dict[str, Any]:
    ledger = {to_camel(k): v for k, v in ledger_service.snapshot(trip).as_dict().items()}
    return {
        "trip": trip.model_dump(by_alias=True, mode="json"),
        "ledger": ledger,
        "permissions": status_service.permissions(trip, role),
    }


def trip_response(trip: Trip, role: Optional[str], message: str = None, **extra) -> JSONResponse:
    body = {"success": True, "data": trip_data(trip, role)}
    if message:
        body["message"] = message
    body.update(extra)
    return JSONResponse(body)


@router.get("/{trip_id}")
async def get_trip(trip_id: str, service: TripDeskService = Depends(get_trip_service)):
    trip = await service.load_trip(trip_id)
    return trip_response(trip, service.role)


@router.post("/{trip_id}/complete/preview")
async def preview_completion(trip_id: str, form: CompleteTripForm,
                             service: TripDeskService = Depends(get_trip_service)):
    trip = await service.load_trip(trip_id)
    return JSONResponse({"success": True, "data": service.preview_completion(trip, form.closing_odometer)})


@router.put("/{trip_id}/complete")
async def complete_trip(trip_id: str, form: CompleteTripForm,
                        service: TripDeskService = Depends(get_trip_service)):
    trip = await service.load_trip(trip_id)
    trip = await service.complete_trip(trip, form)
    return trip_response(trip, service.role, "Trip completed successfully!")


@router.put("/{trip_id}/details")
async def update_trip_details(trip_id: str, form: TripDetailsForm,
                              service: TripDeskService = Depends(get_trip_service)):
    trip = await service.load_trip(trip_id)
    trip = await service.update_trip_details(trip, form)
    return trip_response(trip, service.role, "Trip details updated successfully!")


@router.post("/{trip_id}/transfer")
async def transfer_trip(trip_id: str, form: TransferForm,
                        service: TripDeskService = Depends(get_trip_service)):
    trip = await service.load_trip(trip_id)
    data = await service.transfer(trip, form)
    return JSONResponse({"success": True, "data": data, "message": "Trip transferred successfully!"})
