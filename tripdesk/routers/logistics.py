from fastapi import APIRouter, Depends

from tripdesk.dependencies import get_trip_service
from tripdesk.models.forms import DieselForm, ExpenseForm
from tripdesk.routers.trips import trip_response
from tripdesk.services.trip_service import TripDeskService

router = APIRouter()


@router.post("/{trip_id}/expenses")
async def add_expense(trip_id: str, form: ExpenseForm, service: TripDeskService = Depends(get_trip_service)):
    trip = await service.load_trip(trip_id)
    trip = await service.save_expense(trip, form)
    return trip_response(trip, service.role, "Expense added successfully!")


@router.put("/{trip_id}/expenses/{index}")
async def update_expense(trip_id: str, index: int, form: ExpenseForm,
                         service: TripDeskService = Depends(get_trip_service)):
    trip = await service.load_trip(trip_id)
    trip = await service.save_expense(trip, form, editing_index=index)
    return trip_response(trip, service.role, "Expense updated successfully!")


@router.post("/{trip_id}/diesel")
async def add_diesel(trip_id: str, form: DieselForm, service: TripDeskService = Depends(get_trip_service)):
    trip = await service.load_trip(trip_id)
    trip = await service.save_diesel(trip, form)
    return trip_response(trip, service.role, "Diesel record added successfully!")


@router.put("/{trip_id}/diesel/{index}")
async def update_diesel(trip_id: str, index: int, form: DieselForm,
                        service: TripDeskService = Depends(get_trip_service)):
    trip = await service.load_trip(trip_id)
    trip = await service.save_diesel(trip, form, editing_index=index)
    return trip_response(trip, service.role, "Diesel record updated successfully!")
