import math
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from shared.core.config import settings
from ...models.parking.organizations import Organization

CENTS = Decimal("0.01")


def duration_hours(start: datetime, end: datetime) -> Decimal:
    hours = Decimal(str((end - start).total_seconds())) / Decimal(3600)
    return hours.quantize(CENTS, rounding=ROUND_HALF_UP)


def billable_hours(hours) -> int:
    return math.ceil(Decimal(hours))


def quote_amount(org: Organization, is_member: bool, hours) -> Decimal:
    # members park free at their own organization when it says so
    if is_member and org.member_parking_free:
        return Decimal("0.00")
    rate = Decimal(org.visitor_hourly_rate or 0)
    return (rate * billable_hours(hours)).quantize(CENTS)


def overstay_minutes(booking_end_time: datetime, now: datetime) -> int:
    seconds = (now - booking_end_time).total_seconds()
    return max(0, math.ceil(seconds / 60))


def overstay_penalty(org: Organization, minutes: int) -> Decimal:
    if minutes <= 0:
        return Decimal("0.00")
    rate = Decimal(org.visitor_hourly_rate or 0)
    hours = math.ceil(minutes / 60)
    return (rate * settings.OVERSTAY_PENALTY_MULTIPLIER * hours).quantize(CENTS)
