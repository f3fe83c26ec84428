"""
Submit orchestration for trip records.

Each operation runs the same sequence against the trip as last fetched:
permission check, derived-field recalculation, validation gate, one backend
write, then the secondary steps (customer balance sync for sales, one status
advance for new records). Secondary failures are logged and never undo the
primary write.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from tripdesk.enums import BalanceStyle, BillNumberStyle, TripEvent
from tripdesk.logger import logger
from tripdesk.models.customer import CustomerBalance
from tripdesk.models.forms import (
    CompleteTripForm, DieselForm, ExpenseForm, PurchaseForm, ReceiptForm, SaleForm,
    StockForm, TransferForm, TripDetailsForm,
)
from tripdesk.models.results import ApiError, ApiResult
from tripdesk.models.trip import Trip
from tripdesk.services import calculator_service as calc
from tripdesk.services import ledger_service, status_service, validation_service
from tripdesk.services.balance_service import BalanceService
from tripdesk.services.trip_api import TripApiClient
from tripdesk.services.validation_service import Overpayment, TripValidationError


class TripApiError(Exception):
    """The backend rejected or never answered a primary write."""

    def __init__(self, error: ApiError):
        self.message = error.message
        self.status_code = error.status_code
        super().__init__(error.message)


@dataclass
class SaleOutcome:
    trip: Trip
    sale: SaleForm
    # None when no sync was attempted
    balance_synced: Optional[bool] = None


@dataclass
class SalePreview:
    sale: SaleForm
    customer_balance: Optional[CustomerBalance]
    remaining_birds: int
    remaining_weight: float
    overpayment: Optional[Overpayment] = None
    errors: List[str] = field(default_factory=list)


def unwrap(result: ApiResult):
    if not result.ok:
        raise TripApiError(result.error)
    return result.value


class TripDeskService:
    def __init__(self, api: TripApiClient, balances: Optional[BalanceService] = None,
                 role: Optional[str] = None,
                 bill_number_style: BillNumberStyle = BillNumberStyle.TIMESTAMP):
        self.api = api
        self.balances = balances or BalanceService(api, BalanceStyle.OPENING)
        self.role = role
        self.bill_number_style = BillNumberStyle(bill_number_style)

    async def load_trip(self, trip_id: str) -> Trip:
        return unwrap(await self.api.get_trip(trip_id))

    async def _after_new_record(self, trip: Trip) -> Trip:
        """Advance the status once after a new record; failures only get logged."""
        try:
            status = status_service.advance_status(trip.status, TripEvent.MANAGEMENT_ACTION)
        except status_service.InvalidTransition as e:
            logger.warning(f"Trip {trip.key}: {e}")
            return trip
        if status == trip.status:
            return trip

        result = await self.api.update_status(trip.key, status)
        if not result.ok:
            logger.error(f"Trip {trip.key}: status update to {status.value} failed: {result.error.message}")
            return trip
        return result.value

    # Purchases

    async def save_purchase(self, trip: Trip, form: PurchaseForm, editing_index: Optional[int] = None) -> Trip:
        status_service.ensure_can_edit(trip, self.role)
        form = calc.recalculate_purchase(form)
        validation_service.validate_purchase(trip, form, editing_index)

        if editing_index is None:
            updated = unwrap(await self.api.add_purchase(trip.key, form.to_payload()))
            return await self._after_new_record(updated)
        return unwrap(await self.api.update_purchase(trip.key, editing_index, form.to_payload()))

    # Sales and receipts

    async def customer_balance(self, form: SaleForm) -> Optional[CustomerBalance]:
        if not form.client:
            return None
        return await self.balances.fetch(form.client, form.customer_user_id)

    async def preview_sale(self, trip: Trip, form: SaleForm, editing_index: Optional[int] = None) -> SalePreview:
        """Recalculate a sale/receipt and report what the gate would say, without writing."""
        balance = await self.customer_balance(form)
        form = calc.recalculate_sale(form, balance.signed if balance else None)
        left = ledger_service.remaining_for_sale(trip, editing_index)

        errors = []
        try:
            if form.is_receipt:
                validation_service.validate_receipt(trip, form, editing_index)
            else:
                validation_service.validate_sale(trip, form, editing_index)
        except TripValidationError as e:
            errors = e.errors

        return SalePreview(
            sale=form,
            customer_balance=balance,
            remaining_birds=left.birds,
            remaining_weight=left.weight,
            overpayment=validation_service.check_overpayment(form, balance.signed if balance else None),
            errors=errors,
        )

    def _bill_number_for(self, trip: Trip, editing_index: Optional[int]) -> str:
        """Stored bill number of the entry being edited, or a fresh one."""
        if editing_index is not None and 0 <= editing_index < len(trip.sales):
            stored = trip.sales[editing_index].bill_number
            if stored:
                return stored
        return calc.generate_bill_number(self.bill_number_style)

    async def save_sale(self, trip: Trip, form: SaleForm, editing_index: Optional[int] = None) -> SaleOutcome:
        status_service.ensure_can_edit(trip, self.role)
        if not form.bill_number:
            form = form.model_copy(update={"bill_number": self._bill_number_for(trip, editing_index)})

        balance = await self.customer_balance(form)
        signed = balance.signed if balance else None
        form = calc.recalculate_sale(form, signed)
        if form.is_receipt:
            validation_service.validate_receipt(trip, form, editing_index, signed)
        else:
            validation_service.validate_sale(trip, form, editing_index, signed)

        if editing_index is None:
            updated = unwrap(await self.api.add_sale(trip.key, form.to_payload()))
        else:
            updated = unwrap(await self.api.update_sale(trip.key, editing_index, form.to_payload()))

        synced = None
        # the balance is only meaningful when it was computed from a fetched one
        if form.client and signed is not None:
            synced = await self.balances.sync(form.client, form.balance)

        if editing_index is None:
            updated = await self._after_new_record(updated)
        return SaleOutcome(trip=updated, sale=form, balance_synced=synced)

    async def save_receipt(self, trip: Trip, form: ReceiptForm, editing_index: Optional[int] = None) -> SaleOutcome:
        return await self.save_sale(trip, form, editing_index)

    # Stock

    async def save_stock(self, trip: Trip, form: StockForm, editing_index: Optional[int] = None) -> Trip:
        status_service.ensure_can_edit(trip, self.role)
        form = calc.recalculate_stock(form)
        validation_service.validate_stock(trip, form, editing_index)

        if editing_index is None:
            updated = unwrap(await self.api.add_stock(trip.key, form.to_payload()))
            return await self._after_new_record(updated)
        return unwrap(await self.api.update_stock(trip.key, editing_index, form.to_payload()))

    async def delete_stock(self, trip: Trip, index: int) -> Trip:
        status_service.ensure_can_edit(trip, self.role)
        errors = validation_service.check_index(trip.stocks, index, "Stock entry")
        if errors:
            raise TripValidationError(errors)
        return unwrap(await self.api.delete_stock(trip.key, index))

    # Expenses and diesel

    async def save_expense(self, trip: Trip, form: ExpenseForm, editing_index: Optional[int] = None) -> Trip:
        status_service.ensure_can_edit(trip, self.role)
        validation_service.validate_expense(trip, form, editing_index)

        expenses: List[Dict[str, Any]] = [e.model_dump(by_alias=True, mode="json") for e in trip.expenses]
        if editing_index is None:
            expenses.append(form.to_payload())
            updated = unwrap(await self.api.replace_expenses(trip.key, expenses))
            return await self._after_new_record(updated)
        expenses[editing_index] = form.to_payload()
        return unwrap(await self.api.replace_expenses(trip.key, expenses))

    async def save_diesel(self, trip: Trip, form: DieselForm, editing_index: Optional[int] = None) -> Trip:
        status_service.ensure_can_edit(trip, self.role)
        form = calc.recalculate_diesel(form)
        validation_service.validate_diesel(trip, form, editing_index)

        if editing_index is None:
            stations = [s.model_dump(by_alias=True, mode="json") for s in trip.diesel.stations]
            stations.append(form.to_payload())
            updated = unwrap(await self.api.replace_diesel(trip.key, stations))
            return await self._after_new_record(updated)
        return unwrap(await self.api.update_diesel(trip.key, editing_index, form.to_payload()))

    # Completion, details and transfer

    def preview_completion(self, trip: Trip, closing_odometer: Optional[float] = None) -> Dict[str, Any]:
        opening = trip.vehicle_readings.opening
        suggested = ledger_service.suggest_mortality(trip)
        odometer_ok = validation_service.odometer_ok(opening, closing_odometer)
        return {
            "openingOdometer": opening,
            "closingOdometer": closing_odometer,
            "totalDistance": round(closing_odometer - opening, 2) if odometer_ok else None,
            "odometerOk": odometer_ok,
            "suggestedMortality": suggested,
            "canSubmit": odometer_ok and suggested >= 0 and status_service.can_complete(trip),
        }

    async def complete_trip(self, trip: Trip, form: CompleteTripForm) -> Trip:
        status_service.ensure_can_edit(trip, self.role)
        status_service.advance_status(trip.status, TripEvent.COMPLETE)
        mortality = validation_service.validate_completion(trip, form)
        payload = {
            "closingOdometer": form.closing_odometer,
            "finalRemarks": form.final_remarks or "",
            "mortality": mortality,
        }
        return unwrap(await self.api.complete_trip(trip.key, payload))

    async def update_trip_details(self, trip: Trip, form: TripDetailsForm) -> Trip:
        status_service.ensure_can_edit(trip, self.role)
        validation_service.validate_trip_details(form)
        return unwrap(await self.api.update_trip_details(trip.key, form.to_payload()))

    async def transfer(self, trip: Trip, form: TransferForm) -> Dict[str, Any]:
        status_service.ensure_can_edit(trip, self.role)
        birds = calc.recalculate_transfer(form.transfer_birds, trip.summary.avg_purchase_rate)
        form = form.model_copy(update={"transfer_birds": birds})
        validation_service.validate_transfer(trip, form)
        return unwrap(await self.api.transfer(trip.key, form.to_payload()))
