"""Domain enumerations and state-transition rules."""

import enum


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    CUSTOMER = "customer"


class VehicleType(str, enum.Enum):
    CAR = "car"
    BIKE = "bike"
    VAN = "van"
    SUV = "SUV"


class AvailabilityStatus(str, enum.Enum):
    AVAILABLE = "available"
    BOOKED = "booked"


class BookingStatus(str, enum.Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"
    RETURNED = "returned"


class BookingAction(str, enum.Enum):
    CANCEL = "cancel"
    RETURN = "return"


# State machine: maps current status -> set of valid next statuses
BOOKING_TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.ACTIVE: {BookingStatus.CANCELLED, BookingStatus.RETURNED},
    BookingStatus.CANCELLED: set(),
    BookingStatus.RETURNED: set(),
}

# Status a booking ends up in for each action
ACTION_TARGETS: dict[BookingAction, BookingStatus] = {
    BookingAction.CANCEL: BookingStatus.CANCELLED,
    BookingAction.RETURN: BookingStatus.RETURNED,
}
