from fastapi import APIRouter, Depends

from tripdesk.dependencies import get_trip_service
from tripdesk.models.forms import PurchaseForm
from tripdesk.routers.trips import trip_response
from tripdesk.services.trip_service import TripDeskService

router = APIRouter()


@router.post("/{trip_id}/purchases")
async def add_purchase(trip_id: str, form: PurchaseForm, service: TripDeskService = Depends(get_trip_service)):
    trip = await service.load_trip(trip_id)
    trip = await service.save_purchase(trip, form)
    return trip_response(trip, service.role, "Purchase added successfully!")


@router.put("/{trip_id}/purchases/{index}")
async def update_purchase(trip_id: str, index: int, form: PurchaseForm,
                          service: TripDeskService = Depends(get_trip_service)):
    trip = await service.load_trip(trip_id)
    trip = await service.save_purchase(trip, form, editing_index=index)
    return trip_response(trip, service.role, "Purchase updated successfully!")
