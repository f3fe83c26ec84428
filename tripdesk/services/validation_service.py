"""Checks run on every form before anything is sent to the trip backend.

All failures are raised before the first network call. Overpayment is the one
soft rule: it raises OverpaymentConfirmationRequired until the submission is
resent with confirmOverpayment set.
"""
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple, Type

from tripdesk.enums import TripType
from tripdesk.models.forms import (
    CompleteTripForm, DieselForm, ExpenseForm, FormModel, PurchaseForm, ReceiptForm,
    SaleForm, StockForm, TransferForm, TripDetailsForm,
)
from tripdesk.models.trip import Trip
from tripdesk.services import ledger_service
from tripdesk.services.calculator_service import raw_balance
from tripdesk.utils import fmt_qty, round2, to_number

OBJECT_ID = re.compile(r"^[a-fA-F0-9]{24}$")

# A legitimately-zero value (e.g. rate 0) is indistinguishable from "not entered"
MANDATORY_FIELDS: Dict[Type[FormModel], Tuple[str, ...]] = {
    PurchaseForm: ("supplier", "dc_number", "birds", "weight", "rate"),
    SaleForm: ("client", "birds", "weight", "rate"),
    ReceiptForm: ("client", "bill_number"),
    StockForm: ("birds", "weight", "rate"),
    ExpenseForm: ("category", "description", "amount"),
    DieselForm: ("station_name", "volume", "rate"),
}


class TripValidationError(Exception):
    def __init__(self, errors: Sequence[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


@dataclass(frozen=True)
class Overpayment:
    deficit: float
    customer_balance: float
    sale_amount: float
    total_paid: float
    discount: float

    def message(self, currency: str = "Rs.") -> str:
        return (
            f"This entry will result in an overpayment of {currency} {self.deficit:.2f}. "
            f"Customer's balance: {currency} {self.customer_balance:.2f}, "
            f"amount: {currency} {self.sale_amount:.2f}, "
            f"total payment: {currency} {self.total_paid:.2f}, "
            f"discount: {currency} {self.discount:.2f}. "
            f"The customer's balance will be set to {currency} 0.00."
        )

    def as_dict(self) -> Dict[str, float]:
        return {
            "deficit": self.deficit,
            "customerBalance": self.customer_balance,
            "saleAmount": self.sale_amount,
            "totalPaid": self.total_paid,
            "discount": self.discount,
        }


class OverpaymentConfirmationRequired(Exception):
    def __init__(self, overpayment: Overpayment):
        self.overpayment = overpayment
        super().__init__(overpayment.message())


def is_empty(value) -> bool:
    return value is None or value == "" or value == 0


def missing_mandatory(form: FormModel, fields: Optional[Sequence[str]] = None) -> List[str]:
    if fields is None:
        # a sale form flagged as a receipt is checked against the receipt list
        kind = ReceiptForm if getattr(form, "is_receipt", False) else type(form)
        fields = MANDATORY_FIELDS[kind]
    model_fields = type(form).model_fields
    errors = []
    for name in fields:
        if is_empty(getattr(form, name)):
            label = model_fields[name].alias or name
            errors.append(f"{label} cannot be zero or empty")
    return errors


def check_index(items: Sequence, index: Optional[int], label: str) -> List[str]:
    if index is None or 0 <= index < len(items):
        return []
    return [f"{label} #{index} does not exist"]


def check_sale_capacity(trip: Trip, form: SaleForm, editing_index: Optional[int] = None) -> List[str]:
    left = ledger_service.remaining_for_sale(trip, editing_index)
    birds, weight = to_number(form.birds), round2(form.weight)
    errors = []
    if birds > left.birds:
        errors.append(f"Cannot sell {fmt_qty(birds)} birds. Only {fmt_qty(left.birds)} birds are available for sale.")
    if weight > left.weight:
        errors.append(f"Cannot sell {fmt_qty(weight)} kg. Only {fmt_qty(left.weight)} kg are available for sale.")
    return errors


def check_stock_capacity(trip: Trip, form: StockForm, editing_index: Optional[int] = None) -> List[str]:
    free = ledger_service.available_stock_for_entry(trip, editing_index)
    birds, weight = to_number(form.birds), round2(form.weight)
    errors = []
    if birds > free.birds:
        errors.append(f"Cannot add {fmt_qty(birds)} birds to stock. Only {fmt_qty(free.birds)} birds are available for stock.")
    if weight > free.weight:
        errors.append(f"Cannot add {fmt_qty(weight)} kg to stock. Only {free.weight:.2f} kg are available for stock.")
    return errors


def check_overpayment(form: SaleForm, customer_balance: Optional[float]) -> Optional[Overpayment]:
    """Pre-clamp balance check; None when the customer still owes (or balance is unknown)."""
    if not form.client or customer_balance is None:
        return None
    balance = raw_balance(customer_balance, form.amount, form.cash_paid, form.online_paid, form.discount)
    if balance >= 0:
        return None
    return Overpayment(
        deficit=abs(balance),
        customer_balance=round2(customer_balance),
        sale_amount=round2(form.amount),
        total_paid=round2(to_number(form.cash_paid) + to_number(form.online_paid)),
        discount=round2(form.discount),
    )


def _duplicate(values: Sequence[Optional[str]], candidate: Optional[str], editing_index: Optional[int]) -> bool:
    if not candidate:
        return False
    return any(value == candidate for i, value in enumerate(values) if i != editing_index)


def _raise_if(errors: List[str]):
    if errors:
        raise TripValidationError(errors)


def _confirm_overpayment(form: SaleForm, customer_balance: Optional[float]):
    overpayment = check_overpayment(form, customer_balance)
    if overpayment and not form.confirm_overpayment:
        raise OverpaymentConfirmationRequired(overpayment)


def validate_purchase(trip: Trip, form: PurchaseForm, editing_index: Optional[int] = None):
    if editing_index is None and trip.type == TripType.TRANSFERRED:
        raise TripValidationError(["Transferred trips cannot record new purchases"])
    _raise_if(check_index(trip.purchases, editing_index, "Purchase"))
    _raise_if(missing_mandatory(form))
    if _duplicate([p.dc_number for p in trip.purchases], form.dc_number, editing_index):
        raise TripValidationError([f"DC number {form.dc_number} is already used on this trip"])


def validate_sale(trip: Trip, form: SaleForm, editing_index: Optional[int] = None,
                  customer_balance: Optional[float] = None):
    _raise_if(check_index(trip.sales, editing_index, "Sale"))
    _raise_if(missing_mandatory(form))
    if _duplicate([s.bill_number for s in trip.sales], form.bill_number, editing_index):
        raise TripValidationError([f"Bill number {form.bill_number} is already used on this trip"])
    _raise_if(check_sale_capacity(trip, form, editing_index))
    _confirm_overpayment(form, customer_balance)


def validate_receipt(trip: Trip, form: ReceiptForm, editing_index: Optional[int] = None,
                     customer_balance: Optional[float] = None):
    _raise_if(check_index(trip.sales, editing_index, "Receipt"))
    _raise_if(missing_mandatory(form))
    if to_number(form.cash_paid) + to_number(form.online_paid) <= 0:
        raise TripValidationError(["Please enter at least some payment amount (cash or online)"])
    if _duplicate([s.bill_number for s in trip.sales], form.bill_number, editing_index):
        raise TripValidationError([f"Bill number {form.bill_number} is already used on this trip"])
    _confirm_overpayment(form, customer_balance)


def validate_stock(trip: Trip, form: StockForm, editing_index: Optional[int] = None):
    _raise_if(check_index(trip.stocks, editing_index, "Stock entry"))
    _raise_if(missing_mandatory(form))
    _raise_if(check_stock_capacity(trip, form, editing_index))


def validate_expense(trip: Trip, form: ExpenseForm, editing_index: Optional[int] = None):
    _raise_if(check_index(trip.expenses, editing_index, "Expense"))
    _raise_if(missing_mandatory(form))


def validate_diesel(trip: Trip, form: DieselForm, editing_index: Optional[int] = None):
    _raise_if(check_index(trip.diesel.stations, editing_index, "Diesel record"))
    _raise_if(missing_mandatory(form))


def odometer_ok(opening: float, closing: Optional[float]) -> bool:
    """Closing reading must be entered and not below the opening one."""
    if closing is None:
        return False
    return closing >= to_number(opening)


def validate_completion(trip: Trip, form: CompleteTripForm) -> int:
    """Check the completion form; returns the mortality to record."""
    errors = []
    opening = trip.vehicle_readings.opening
    if form.closing_odometer is None:
        errors.append("Closing odometer reading is required")
    elif not odometer_ok(opening, form.closing_odometer):
        errors.append(f"Closing odometer ({fmt_qty(form.closing_odometer)}) cannot be less than opening odometer ({fmt_qty(opening)})")

    mortality = form.mortality if form.mortality is not None else ledger_service.suggest_mortality(trip)
    if mortality < 0:
        errors.append(f"Mortality cannot be negative: sales, stock and transfers exceed purchases by {-mortality} birds")
    else:
        gap = ledger_service.conservation_gap(trip, mortality)
        if gap > 0:
            errors.append(f"{gap} birds are unaccounted for; purchased birds must equal sold + stock + transferred + mortality")
        elif gap < 0:
            errors.append(f"Mortality exceeds unaccounted birds by {-gap}; purchased birds must equal sold + stock + transferred + mortality")
    _raise_if(errors)
    return mortality


def validate_transfer(trip: Trip, form: TransferForm):
    errors = []
    if not form.supervisor_id:
        errors.append("Supervisor is required")
    if not form.vehicle_id:
        errors.append("Vehicle is required")
    elif not OBJECT_ID.match(form.vehicle_id):
        errors.append("Invalid vehicle selection. Please select a valid vehicle.")
    if not form.driver:
        errors.append("Driver name is required")
    if not form.place:
        errors.append("Place is required")
    if not form.reason:
        errors.append("Transfer reason is required")
    if to_number(form.vehicle_readings.opening) <= 0:
        errors.append("Opening odometer reading is required")

    birds = to_number(form.transfer_birds.birds)
    available = ledger_service.available_for_transfer(trip)
    if birds <= 0:
        errors.append("Number of birds to transfer is required")
    elif birds > available:
        errors.append(f"Cannot transfer {fmt_qty(birds)} birds. Only {fmt_qty(available)} birds available")
    if to_number(form.transfer_birds.weight) <= 0:
        errors.append("Weight of birds to transfer is required")
    if to_number(form.transfer_birds.rate) <= 0:
        errors.append("Rate per kg is required")
    if not [labour for labour in form.labours if labour and labour.strip()]:
        errors.append("At least one labour worker is required")
    _raise_if(errors)


def validate_trip_details(form: TripDetailsForm):
    errors = []
    if not form.route.from_ or not form.route.to:
        errors.append("Start and End locations are required")
    if not form.driver:
        errors.append("Driver name is required")
    if to_number(form.vehicle_readings.opening) <= 0:
        errors.append("Valid opening odometer reading is required")
    _raise_if(errors)
