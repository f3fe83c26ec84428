from fastapi import APIRouter, Depends

from tripdesk.dependencies import get_trip_service
from tripdesk.models.forms import StockForm
from tripdesk.routers.trips import trip_response
from tripdesk.services.trip_service import TripDeskService

router = APIRouter()


@router.post("/{trip_id}/stocks")
async def add_stock(trip_id: str, form: StockForm, service: TripDeskService = Depends(get_trip_service)):
    trip = await service.load_trip(trip_id)
    trip = await service.save_stock(trip, form)
    return trip_response(trip, service.role, "Stock added successfully!")


@router.put("/{trip_id}/stocks/{index}")
async def update_stock(trip_id: str, index: int, form: StockForm,
                       service: TripDeskService = Depends(get_trip_service)):
    trip = await service.load_trip(trip_id)
    trip = await service.save_stock(trip, form, editing_index=index)
    return trip_response(trip, service.role, "Stock updated successfully!")


@router.delete("/{trip_id}/stocks/{index}")
async def delete_stock(trip_id: str, index: int, service: TripDeskService = Depends(get_trip_service)):
    trip = await service.load_trip(trip_id)
    trip = await service.delete_stock(trip, index)
    return trip_response(trip, service.role, "Stock entry deleted successfully!")
