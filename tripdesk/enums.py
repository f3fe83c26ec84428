"""Enums for consistent string constants across the application."""
from enum import Enum


class TripStatus(str, Enum):
    STARTED = "started"
    ONGOING = "ongoing"
    COMPLETED = "completed"


class TripType(str, Enum):
    ORIGINAL = "original"
    TRANSFERRED = "transferred"


class TripEvent(str, Enum):
    MANAGEMENT_ACTION = "management_action"
    COMPLETE = "complete"


class UserRole(str, Enum):
    SUPERVISOR = "supervisor"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"
    CUSTOMER = "customer"


class BalanceType(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"


class BalanceStyle(str, Enum):
    OPENING = "opening"
    OUTSTANDING = "outstanding"


class BillNumberStyle(str, Enum):
    TIMESTAMP = "timestamp"
    RANDOM = "random"


class ExpenseCategory(str, Enum):
    MEALS = "meals"
    LUNCH = "lunch"
    TEA = "tea"
    TOLL = "toll"
    PARKING = "parking"
    LOADING = "loading/unloading"
    MAINTENANCE = "maintenance"
    OTHER = "other"
