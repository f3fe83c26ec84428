"""Trip status transitions and who may still change a trip."""
from typing import Optional

from tripdesk.enums import TripEvent, TripStatus, TripType, UserRole
from tripdesk.models.trip import Trip

PRIVILEGED_ROLES = (UserRole.ADMIN, UserRole.SUPERADMIN)
PLACEHOLDER = "TBD"


class InvalidTransition(Exception):
    def __init__(self, status: TripStatus, event: TripEvent):
        self.status = status
        self.event = event
        super().__init__(f"Cannot apply '{event.value}' to a {status.value} trip")


class PermissionDenied(Exception):
    pass


_TRANSITIONS = {
    (TripStatus.STARTED, TripEvent.MANAGEMENT_ACTION): TripStatus.ONGOING,
    (TripStatus.ONGOING, TripEvent.MANAGEMENT_ACTION): TripStatus.ONGOING,
    (TripStatus.STARTED, TripEvent.COMPLETE): TripStatus.COMPLETED,
    (TripStatus.ONGOING, TripEvent.COMPLETE): TripStatus.COMPLETED,
}


def advance_status(status: TripStatus, event: TripEvent) -> TripStatus:
    """Next status for `event`; completed is terminal."""
    try:
        return _TRANSITIONS[(TripStatus(status), TripEvent(event))]
    except KeyError:
        raise InvalidTransition(TripStatus(status), TripEvent(event)) from None


def is_privileged(role: Optional[str]) -> bool:
    return role in {r.value for r in PRIVILEGED_ROLES}


def can_edit(trip: Trip, role: Optional[str]) -> bool:
    if trip.status == TripStatus.COMPLETED:
        return is_privileged(role)
    return True


def ensure_can_edit(trip: Trip, role: Optional[str]):
    if not can_edit(trip, role):
        raise PermissionDenied("This trip is completed. Only an admin can change it.")


def can_record_purchase(trip: Trip, role: Optional[str]) -> bool:
    return can_edit(trip, role) and trip.type != TripType.TRANSFERRED


def can_complete(trip: Trip) -> bool:
    return trip.status != TripStatus.COMPLETED


def needs_trip_details(trip: Trip) -> bool:
    """A transferred trip is created with placeholders until its details are filled in."""
    if trip.type != TripType.TRANSFERRED:
        return False
    return (
        trip.driver == PLACEHOLDER
        or trip.route.from_ == PLACEHOLDER
        or trip.route.to == PLACEHOLDER
        or not trip.vehicle_readings.opening
    )


def permissions(trip: Trip, role: Optional[str]) -> dict:
    return {
        "canEdit": can_edit(trip, role),
        "canRecordPurchase": can_record_purchase(trip, role),
        "canComplete": can_complete(trip) and can_edit(trip, role),
        "needsTripDetails": needs_trip_details(trip),
    }
