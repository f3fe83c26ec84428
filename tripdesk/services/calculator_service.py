"""Derived fields for purchase, sale/receipt, stock, diesel and transfer forms.

Each `recalculate_*` is a pure function returning a new form. Sale fields are
derived in a fixed order because later ones read earlier ones:

    1. avgWeight      = weight / birds
    2. amount         = weight * rate         (receipts keep the typed amount)
    3. receivedAmount = cashPaid + onlinePaid
    4. balance        = max(0, customerBalance + amount - onlinePaid - cashPaid - discount)
"""
import random
from datetime import datetime
from typing import Any, Optional, TypeVar

from tripdesk.enums import BillNumberStyle
from tripdesk.models.forms import (
    DieselForm, FormModel, PurchaseForm, SaleForm, StockForm, TransferBirds,
)
from tripdesk.utils import round2, to_number

F = TypeVar("F", bound=FormModel)


def avg_weight(birds, weight) -> float:
    birds, weight = to_number(birds), to_number(weight)
    if birds > 0 and weight > 0:
        return round2(weight / birds)
    return 0.0


def line_amount(weight, rate) -> float:
    return round2(to_number(weight) * to_number(rate))


def received_amount(cash_paid, online_paid) -> float:
    return round2(to_number(cash_paid) + to_number(online_paid))


def raw_balance(customer_balance: float, amount, cash_paid, online_paid, discount) -> float:
    """Balance before clamping; negative means the customer overpaid."""
    return round2(
        to_number(customer_balance)
        + to_number(amount)
        - to_number(online_paid)
        - to_number(cash_paid)
        - to_number(discount)
    )


def clamped_balance(customer_balance: float, amount, cash_paid, online_paid, discount) -> float:
    # overpayment is not carried forward as credit
    return max(0.0, raw_balance(customer_balance, amount, cash_paid, online_paid, discount))


def with_field(form: F, field: str, value: Any) -> F:
    """Copy of `form` with one input replaced, re-validated."""
    if field not in type(form).model_fields:
        raise KeyError(f"Unknown field: {field}")
    data = form.model_dump()
    data[field] = value
    return type(form).model_validate(data)


def recalculate_purchase(form: PurchaseForm) -> PurchaseForm:
    return form.model_copy(update={
        "avg_weight": avg_weight(form.birds, form.weight),
        "amount": line_amount(form.weight, form.rate),
    })


def recalculate_sale(form: SaleForm, customer_balance: Optional[float]) -> SaleForm:
    """Derive a sale or receipt.

    `customer_balance` is the signed balance before this transaction; when it
    is unknown (None) the balance is taken from this sale alone.
    """
    update = {}
    if form.is_receipt:
        update.update(birds=0, weight=0.0, rate=0.0, avg_weight=0.0, amount=round2(form.amount))
    else:
        update["avg_weight"] = avg_weight(form.birds, form.weight)
        update["amount"] = line_amount(form.weight, form.rate)
    update["received_amount"] = received_amount(form.cash_paid, form.online_paid)
    update["balance"] = clamped_balance(
        customer_balance or 0, update["amount"], form.cash_paid, form.online_paid, form.discount
    )
    return form.model_copy(update=update)


def recalculate_stock(form: StockForm) -> StockForm:
    return form.model_copy(update={
        "avg_weight": avg_weight(form.birds, form.weight),
        "value": line_amount(form.weight, form.rate),
    })


def recalculate_diesel(form: DieselForm) -> DieselForm:
    return form.model_copy(update={"amount": line_amount(form.volume, form.rate)})


def recalculate_transfer(form: TransferBirds, default_rate: float = 0.0) -> TransferBirds:
    """Transferred birds are valued at the trip's average purchase rate unless a rate is typed."""
    rate = form.rate if form.rate else (default_rate or None)
    return form.model_copy(update={
        "rate": rate,
        "avg_weight": avg_weight(form.birds, form.weight),
        "amount": line_amount(form.weight, rate),
    })


def apply_purchase_change(form: PurchaseForm, field: str, value: Any) -> PurchaseForm:
    return recalculate_purchase(with_field(form, field, value))


def apply_sale_change(form: SaleForm, field: str, value: Any, customer_balance: Optional[float]) -> SaleForm:
    """Reducer for one edit of a sale/receipt form."""
    return recalculate_sale(with_field(form, field, value), customer_balance)


def apply_stock_change(form: StockForm, field: str, value: Any) -> StockForm:
    return recalculate_stock(with_field(form, field, value))


def generate_bill_number(style: BillNumberStyle = BillNumberStyle.TIMESTAMP,
                         now: Optional[datetime] = None,
                         rng: Optional[random.Random] = None) -> str:
    if style == BillNumberStyle.RANDOM:
        rng = rng or random.Random()
        return f"BILL{rng.randint(100000, 999999)}"
    now = now or datetime.now()
    return "BILL" + now.strftime("%y%m%d%H%M%S")
