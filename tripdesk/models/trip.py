from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, AliasChoices, field_validator, model_validator
from pydantic.alias_generators import to_camel
from typing import Annotated, List, Optional
from datetime import datetime

from tripdesk.enums import TripStatus, TripType


def _zero_if_none(value):
    return 0 if value is None or value == "" else value


def _empty_if_none(value):
    return [] if value is None else value


def _id_only(value):
    return {"id": value} if isinstance(value, str) else value


# backend sends null for untouched numbers and arrays
Number = Annotated[float, BeforeValidator(_zero_if_none)]
Count = Annotated[int, BeforeValidator(_zero_if_none)]


class ApiModel(BaseModel):
    """Base for records exchanged with the trip backend (camelCase on the wire)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class PartyRef(ApiModel):
    """Supplier, client or supervisor: an id string or a populated document."""
    id: Optional[str] = Field(default=None, validation_alias=AliasChoices("id", "_id"))
    name: Optional[str] = Field(default=None, validation_alias=AliasChoices("name", "shopName", "vendorName"))

    @model_validator(mode="before")
    @classmethod
    def _accept_id(cls, value):
        return _id_only(value)


class VehicleRef(ApiModel):
    id: Optional[str] = Field(default=None, validation_alias=AliasChoices("id", "_id"))
    vehicle_number: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _accept_id(cls, value):
        return _id_only(value)


class Route(ApiModel):
    from_: Optional[str] = Field(default=None, alias="from")
    to: Optional[str] = None
    distance: Number = 0.0


class VehicleReadings(ApiModel):
    opening: Number = 0.0
    closing: Optional[float] = None
    total_distance: Number = 0.0


class Purchase(ApiModel):
    supplier: Optional[PartyRef] = None
    dc_number: Optional[str] = None
    birds: Count = 0
    weight: Number = 0.0
    avg_weight: Number = 0.0
    rate: Number = 0.0
    amount: Number = 0.0


class Sale(ApiModel):
    """A sale, or a receipt when is_receipt is set (birds/weight/rate are 0)."""
    client: Optional[PartyRef] = None
    bill_number: Optional[str] = None
    birds: Count = Field(default=0, validation_alias=AliasChoices("birds", "birdsCount"))
    weight: Number = 0.0
    avg_weight: Number = 0.0
    rate: Number = Field(default=0.0, validation_alias=AliasChoices("rate", "ratePerKg"))
    amount: Number = Field(default=0.0, validation_alias=AliasChoices("amount", "totalAmount"))
    cash_paid: Number = 0.0
    online_paid: Number = 0.0
    discount: Number = 0.0
    received_amount: Number = 0.0
    balance: Number = 0.0
    is_receipt: bool = False
    profit_amount: Number = 0.0


class StockEntry(ApiModel):
    birds: Count = 0
    weight: Number = 0.0
    avg_weight: Number = 0.0
    rate: Number = 0.0
    value: Number = 0.0
    notes: Optional[str] = None
    added_at: Optional[datetime] = None


class Expense(ApiModel):
    category: Optional[str] = None
    description: Optional[str] = None
    amount: Number = 0.0


class DieselStation(ApiModel):
    station_name: Optional[str] = Field(default=None, validation_alias=AliasChoices("stationName", "station_name", "name"))
    volume: Number = 0.0
    rate: Number = 0.0
    amount: Number = 0.0


class Diesel(ApiModel):
    stations: Annotated[List[DieselStation], BeforeValidator(_empty_if_none)] = []
    total_volume: Number = 0.0
    total_amount: Number = 0.0


class TransferRecord(ApiModel):
    transferred_to: Optional[str] = None
    birds: Count = 0
    weight: Number = 0.0
    rate: Number = 0.0
    reason: Optional[str] = None
    transferred_at: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def _flatten(cls, value):
        if not isinstance(value, dict):
            return value
        value = dict(value)
        # backend nests the moved quantities under transferredStock
        moved = value.pop("transferredStock", None)
        if isinstance(moved, dict):
            value = {**moved, **value}
        target = value.get("transferredTo")
        if isinstance(target, dict):
            value["transferredTo"] = target.get("tripId") or target.get("_id") or target.get("id")
        return value


class TripSummary(ApiModel):
    """Server-computed totals; read-only on this side."""
    total_birds_purchased: Count = 0
    total_birds_sold: Count = 0
    total_weight_purchased: Number = 0.0
    total_weight_sold: Number = 0.0
    total_purchase_amount: Number = 0.0
    total_sales_amount: Number = 0.0
    mortality: Count = 0
    total_birds_lost: Count = 0
    total_weight_lost: Number = 0.0
    total_losses: Number = 0.0
    bird_weight_loss: Number = 0.0
    birds_remaining: Count = 0
    birds_transferred: Count = 0
    weight_transferred: Number = 0.0
    avg_purchase_rate: Number = 0.0
    total_expenses: Number = 0.0
    total_diesel_amount: Number = 0.0
    gross_rent: Number = 0.0
    birds_profit: Number = 0.0
    trip_profit: Number = 0.0
    total_profit_margin: Number = 0.0
    net_profit: Number = 0.0


class Trip(ApiModel):
    id: Optional[str] = Field(default=None, validation_alias=AliasChoices("id", "_id"))
    trip_id: Optional[str] = None
    status: TripStatus = TripStatus.STARTED
    type: TripType = TripType.ORIGINAL
    date: Optional[datetime] = None
    place: Optional[str] = None
    driver: Optional[str] = None
    labour: Optional[str] = None
    route: Route = Field(default_factory=Route)
    vehicle: Optional[VehicleRef] = None
    supervisor: Optional[PartyRef] = None
    vehicle_readings: VehicleReadings = Field(default_factory=VehicleReadings)
    rent_per_km: Number = 0.0
    purchases: Annotated[List[Purchase], BeforeValidator(_empty_if_none)] = []
    sales: Annotated[List[Sale], BeforeValidator(_empty_if_none)] = []
    expenses: Annotated[List[Expense], BeforeValidator(_empty_if_none)] = []
    diesel: Diesel = Field(default_factory=Diesel)
    stocks: Annotated[List[StockEntry], BeforeValidator(_empty_if_none)] = []
    transfer_history: Annotated[List[TransferRecord], BeforeValidator(_empty_if_none)] = []
    summary: TripSummary = Field(default_factory=TripSummary)

    @field_validator("labour", mode="before")
    @classmethod
    def _join_labours(cls, value):
        if isinstance(value, list):
            return ", ".join(str(v) for v in value if v)
        return value

    @field_validator("route", "vehicle_readings", "diesel", "summary", mode="before")
    @classmethod
    def _default_if_none(cls, value):
        return {} if value is None else value

    @property
    def key(self) -> str:
        """Identifier used in backend URLs."""
        return self.id or self.trip_id or ""
