"""Inventory ledger: birds and weight flowing through a trip.

Everything here is a pure read of the trip as last returned by the backend.
purchased -> sold | stocked | transferred | lost | remaining
"""
from dataclasses import dataclass, asdict
from typing import Dict, Optional

from tripdesk.models.trip import Trip
from tripdesk.utils import round2


@dataclass(frozen=True)
class Remaining:
    birds: int
    weight: float


@dataclass(frozen=True)
class LedgerSnapshot:
    total_purchased_birds: int
    total_purchased_weight: float
    total_sold_birds: int
    total_sold_weight: float
    total_stock_birds: int
    total_stock_weight: float
    transferred_birds: int
    transferred_weight: float
    remaining_birds: int
    remaining_weight: float
    available_for_stock_birds: int
    available_for_stock_weight: float
    available_for_transfer_birds: int
    suggested_mortality: int

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)


def purchased(trip: Trip) -> Remaining:
    return Remaining(
        birds=sum(p.birds for p in trip.purchases),
        weight=round2(sum(p.weight for p in trip.purchases)),
    )


def sold(trip: Trip) -> Remaining:
    # receipts carry zero birds/weight, so they fall out of the sums
    return Remaining(
        birds=sum(s.birds for s in trip.sales),
        weight=round2(sum(s.weight for s in trip.sales)),
    )


def stocked(trip: Trip) -> Remaining:
    return Remaining(
        birds=sum(s.birds for s in trip.stocks),
        weight=round2(sum(s.weight for s in trip.stocks)),
    )


def transferred(trip: Trip) -> Remaining:
    """Birds moved out to other trips.

    The transfer history is authoritative when present; older trips only
    carry the summary counters.
    """
    if trip.transfer_history:
        return Remaining(
            birds=sum(t.birds for t in trip.transfer_history),
            weight=round2(sum(t.weight for t in trip.transfer_history)),
        )
    return Remaining(birds=trip.summary.birds_transferred, weight=round2(trip.summary.weight_transferred))


def remaining(trip: Trip) -> Remaining:
    """Birds/weight not yet sold: purchases minus sales."""
    bought, out = purchased(trip), sold(trip)
    return Remaining(birds=bought.birds - out.birds, weight=round2(bought.weight - out.weight))


def available_for_stock(trip: Trip) -> Remaining:
    left, kept = remaining(trip), stocked(trip)
    return Remaining(birds=left.birds - kept.birds, weight=round2(left.weight - kept.weight))


def remaining_for_sale(trip: Trip, editing_index: Optional[int] = None) -> Remaining:
    """Remaining birds/weight a sale may take.

    When editing the sale at `editing_index` its own birds/weight are added
    back so the entry is not counted against itself.
    """
    left = remaining(trip)
    if editing_index is None or not 0 <= editing_index < len(trip.sales):
        return left
    own = trip.sales[editing_index]
    return Remaining(birds=left.birds + own.birds, weight=round2(left.weight + own.weight))


def available_stock_for_entry(trip: Trip, editing_index: Optional[int] = None) -> Remaining:
    """Same add-back rule as remaining_for_sale, against the stock allowance."""
    free = available_for_stock(trip)
    if editing_index is None or not 0 <= editing_index < len(trip.stocks):
        return free
    own = trip.stocks[editing_index]
    return Remaining(birds=free.birds + own.birds, weight=round2(free.weight + own.weight))


def unaccounted(trip: Trip) -> int:
    """Birds with no recorded destination: purchased - sold - stock - transferred."""
    return purchased(trip).birds - sold(trip).birds - stocked(trip).birds - transferred(trip).birds


def available_for_transfer(trip: Trip) -> int:
    """Birds that can still be moved to a new trip.

    Losses already on record (summary.totalBirdsLost) are dead birds and
    cannot be moved, so they come off the unaccounted count.
    """
    return unaccounted(trip) - trip.summary.total_birds_lost


def suggest_mortality(trip: Trip) -> int:
    """Residual birds at completion; anything unaccounted for is assumed dead.

    Completion records the trip's whole mortality and replaces any loss
    already on the summary, so recorded losses are not subtracted here.
    May come out negative when more birds were recorded out than in; the
    completion gate rejects that.
    """
    return unaccounted(trip)


def conservation_gap(trip: Trip, mortality: int) -> int:
    """purchased - (sold + stock + transferred + mortality); 0 when the books balance."""
    return suggest_mortality(trip) - mortality


def snapshot(trip: Trip) -> LedgerSnapshot:
    bought, out, kept, moved = purchased(trip), sold(trip), stocked(trip), transferred(trip)
    left = remaining(trip)
    free = available_for_stock(trip)
    return LedgerSnapshot(
        total_purchased_birds=bought.birds,
        total_purchased_weight=bought.weight,
        total_sold_birds=out.birds,
        total_sold_weight=out.weight,
        total_stock_birds=kept.birds,
        total_stock_weight=kept.weight,
        transferred_birds=moved.birds,
        transferred_weight=moved.weight,
        remaining_birds=left.birds,
        remaining_weight=left.weight,
        available_for_stock_birds=free.birds,
        available_for_stock_weight=free.weight,
        available_for_transfer_birds=available_for_transfer(trip),
        suggested_mortality=suggest_mortality(trip),
    )
