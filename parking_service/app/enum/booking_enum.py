from enum import Enum


class BookingStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    active = "active"
    overstay = "overstay"
    completed = "completed"
    cancelled = "cancelled"
    no_show = "no_show"


class PaymentStatus(str, Enum):
    pending = "pending"
    completed = "completed"
    failed = "failed"
    refunded = "refunded"


class ReconcileSource(str, Enum):
    reconcile = "reconcile"
    reconcile_all = "reconcile_all"
    sweep = "sweep"


# Statuses that hold a physical slot. Used by the allocator, the reconciler,
# the sweep, the status view and the partial unique index on bookings.
OCCUPYING_STATUSES = (
    BookingStatus.confirmed,
    BookingStatus.active,
    BookingStatus.overstay,
)
