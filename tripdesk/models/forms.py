"""View-model forms: what the user has typed, plus the fields derived from it.

Unfilled inputs stay None (blank strings are read as None) so the validation
gate can tell "not entered" apart from an entered value.
"""
from pydantic import BeforeValidator, Field
from typing import Annotated, Any, ClassVar, Dict, List, Optional, Tuple

from tripdesk.enums import ExpenseCategory
from tripdesk.models.trip import ApiModel, Route


def _none_if_blank(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


Text = Annotated[Optional[str], BeforeValidator(_none_if_blank)]
Amount = Annotated[Optional[float], BeforeValidator(_none_if_blank)]
Birds = Annotated[Optional[int], BeforeValidator(_none_if_blank)]


class FormModel(ApiModel):
    # numeric inputs sent as 0 when left empty
    numeric_fields: ClassVar[Tuple[str, ...]] = ()
    # request-only flags, never forwarded to the backend
    local_fields: ClassVar[Tuple[str, ...]] = ()

    def to_payload(self) -> Dict[str, Any]:
        payload = {}
        for name, field in type(self).model_fields.items():
            if name in self.local_fields:
                continue
            value = getattr(self, name)
            if value is None and name in self.numeric_fields:
                value = 0
            if isinstance(value, ApiModel):
                value = value.model_dump(by_alias=True, mode="json")
            payload[field.alias or name] = value
        return payload


class PurchaseForm(FormModel):
    numeric_fields: ClassVar[Tuple[str, ...]] = ("birds", "weight", "rate")

    supplier: Text = None
    dc_number: Text = None
    birds: Birds = None
    weight: Amount = None
    avg_weight: float = 0.0
    rate: Amount = None
    amount: float = 0.0


class SaleForm(FormModel):
    numeric_fields: ClassVar[Tuple[str, ...]] = ("birds", "weight", "rate", "cash_paid", "online_paid", "discount")
    local_fields: ClassVar[Tuple[str, ...]] = ("confirm_overpayment", "customer_user_id")

    client: Text = None
    bill_number: Text = None
    birds: Birds = None
    weight: Amount = None
    avg_weight: float = 0.0
    rate: Amount = None
    amount: float = 0.0
    cash_paid: Amount = None
    online_paid: Amount = None
    discount: Amount = None
    received_amount: float = 0.0
    balance: float = 0.0
    is_receipt: bool = False

    confirm_overpayment: bool = False
    customer_user_id: Text = None


class ReceiptForm(SaleForm):
    """A payment against the customer's balance with no birds moving."""
    is_receipt: bool = True

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload["saleType"] = "receipt"
        return payload


class StockForm(FormModel):
    numeric_fields: ClassVar[Tuple[str, ...]] = ("birds", "weight", "rate")

    birds: Birds = None
    weight: Amount = None
    avg_weight: float = 0.0
    rate: Amount = None
    value: float = 0.0
    notes: Text = None

    def to_payload(self) -> Dict[str, Any]:
        # avg weight and value are recomputed by the backend
        payload = super().to_payload()
        return {key: payload[key] for key in ("birds", "weight", "rate", "notes")}


class ExpenseForm(FormModel):
    numeric_fields: ClassVar[Tuple[str, ...]] = ("amount",)

    category: Text = ExpenseCategory.MEALS.value
    description: Text = None
    amount: Amount = None


class DieselForm(FormModel):
    numeric_fields: ClassVar[Tuple[str, ...]] = ("volume", "rate")

    station_name: Text = None
    volume: Amount = None
    rate: Amount = None
    amount: float = 0.0


class CompleteTripForm(FormModel):
    numeric_fields: ClassVar[Tuple[str, ...]] = ("closing_odometer",)

    closing_odometer: Amount = None
    final_remarks: Text = None
    # None means "use the suggested residual"
    mortality: Birds = None


class OpeningReading(ApiModel):
    opening: Amount = None


class TransferBirds(FormModel):
    numeric_fields: ClassVar[Tuple[str, ...]] = ("birds", "weight", "rate")

    birds: Birds = None
    weight: Amount = None
    rate: Amount = None
    avg_weight: float = 0.0
    amount: float = 0.0


class TransferForm(FormModel):
    supervisor_id: Text = None
    vehicle_id: Text = None
    driver: Text = None
    labours: List[str] = []
    place: Text = None
    vehicle_readings: OpeningReading = Field(default_factory=OpeningReading)
    reason: Text = None
    notes: Text = None
    transfer_birds: TransferBirds = Field(default_factory=TransferBirds)

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload["labours"] = [labour.strip() for labour in self.labours if labour and labour.strip()]
        payload["vehicleReadings"] = {"opening": self.vehicle_readings.opening or 0}
        payload["transferBirds"] = self.transfer_birds.to_payload()
        return payload


class TripDetailsForm(FormModel):
    """Details a transferred trip is created without (driver, route, odometer)."""
    driver: Text = None
    labour: Text = None
    route: Route = Field(default_factory=Route)
    place: Text = None
    vehicle_readings: OpeningReading = Field(default_factory=OpeningReading)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "driver": self.driver,
            "labour": self.labour or "",
            "route": {"from": self.route.from_, "to": self.route.to},
            "place": self.place or "",
            "vehicleReadings": {"opening": float(self.vehicle_readings.opening or 0)},
        }
