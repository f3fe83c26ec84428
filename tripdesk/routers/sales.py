from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from tripdesk.dependencies import get_trip_service
from tripdesk.models.forms import ReceiptForm, SaleForm
from tripdesk.routers.trips import trip_response
from tripdesk.services.trip_service import SaleOutcome, TripDeskService

router = APIRouter()


def _sale_response(outcome: SaleOutcome, role: Optional[str], message: str) -> JSONResponse:
    return trip_response(
        outcome.trip, role, message,
        sale=outcome.sale.model_dump(by_alias=True, mode="json"),
        balanceSynced=outcome.balance_synced,
    )


@router.post("/{trip_id}/sales/preview")
async def preview_sale(trip_id: str, form: SaleForm, editing_index: Optional[int] = Query(None, alias="editingIndex"),
                       service: TripDeskService = Depends(get_trip_service)):
    """Derived fields and gate result for a sale or receipt; nothing is saved."""
    trip = await service.load_trip(trip_id)
    preview = await service.preview_sale(trip, form, editing_index)
    balance = preview.customer_balance
    return JSONResponse({
        "success": True,
        "data": {
            "sale": preview.sale.model_dump(by_alias=True, mode="json"),
            "customerBalance": balance.signed if balance else None,
            "remainingBirds": preview.remaining_birds,
            "remainingWeight": preview.remaining_weight,
            "overpayment": preview.overpayment.as_dict() if preview.overpayment else None,
            "errors": preview.errors,
        },
    })


@router.post("/{trip_id}/sales")
async def add_sale(trip_id: str, form: SaleForm, service: TripDeskService = Depends(get_trip_service)):
    trip = await service.load_trip(trip_id)
    outcome = await service.save_sale(trip, form.model_copy(update={"is_receipt": False}))
    return _sale_response(outcome, service.role, "Sale added successfully!")


@router.put("/{trip_id}/sales/{index}")
async def update_sale(trip_id: str, index: int, form: SaleForm,
                      service: TripDeskService = Depends(get_trip_service)):
    trip = await service.load_trip(trip_id)
    outcome = await service.save_sale(trip, form.model_copy(update={"is_receipt": False}), editing_index=index)
    return _sale_response(outcome, service.role, "Sale updated successfully!")


@router.post("/{trip_id}/receipts")
async def add_receipt(trip_id: str, form: ReceiptForm, service: TripDeskService = Depends(get_trip_service)):
    trip = await service.load_trip(trip_id)
    outcome = await service.save_receipt(trip, form.model_copy(update={"is_receipt": True}))
    return _sale_response(outcome, service.role, "Receipt added successfully!")


@router.put("/{trip_id}/receipts/{index}")
async def update_receipt(trip_id: str, index: int, form: ReceiptForm,
                         service: TripDeskService = Depends(get_trip_service)):
    trip = await service.load_trip(trip_id)
    outcome = await service.save_receipt(trip, form.model_copy(update={"is_receipt": True}), editing_index=index)
    return _sale_response(outcome, service.role, "Receipt updated successfully!")
