"""
Input validation for reservation requests.

All checks run before any side effect. Callers hand the engine only
values that passed through here.
"""
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal
from typing import Optional

from django.utils import timezone

from . import errors
from .catalog import SUPPORTED_DURATIONS, booking_setting

logger = logging.getLogger(__name__)

MIN_ADULTS, MAX_ADULTS = 1, 4
MAX_CHILDREN = 2
MAX_CHILD_AGE = 13
CHECK_IN_STEP_MINUTES = 5


@dataclass
class BookingRequest:
    room_type_slug: str
    check_in: object
    duration_hours: int
    adults: int = 1
    children: int = 0
    child_ages: list = field(default_factory=list)
    room_id: Optional[int] = None
    guest_id: Optional[int] = None
    client_total: Optional[Decimal] = None
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    lock_token: str = ""


def validate_duration(duration_hours):
    if duration_hours not in SUPPORTED_DURATIONS:
        raise errors.ValidationError("Invalid duration. Allowed values: 3h, 6h, 12h, 24h.")
    return duration_hours


def validate_alignment(check_in):
    local = timezone.localtime(check_in) if timezone.is_aware(check_in) else check_in
    if local.minute % CHECK_IN_STEP_MINUTES or local.second or local.microsecond:
        raise errors.ValidationError(
            "Check-in time must be in 5-minute increments (e.g. 14:00, 14:05, 14:10)."
        )
    return check_in


def validate_window(check_in, now=None):
    now = now or timezone.now()
    if check_in < now - timedelta(minutes=booking_setting("PAST_GRACE_MINUTES")):
        raise errors.ValidationError("Cannot book dates in the past.")
    if check_in > now + timedelta(days=booking_setting("MAX_ADVANCE_DAYS")):
        raise errors.ValidationError("Bookings are limited to 1 year in advance.")
    return check_in


def validate_party(adults, children, child_ages):
    """
    Check party size and return the child ages to price with.

    When children are declared but no ages were given, every child is
    treated as age 0 (free) instead of rejecting the booking.
    """
    if not MIN_ADULTS <= adults <= MAX_ADULTS:
        raise errors.ValidationError("Invalid number of adults (1-4 allowed).")
    if not 0 <= children <= MAX_CHILDREN:
        raise errors.ValidationError("Invalid number of children (max 2 allowed).")

    ages = list(child_ages or [])
    if children == 0:
        return []
    if not ages:
        logger.warning("No ages given for %d child(ren); defaulting every age to 0", children)
        ages = [0] * children
    if len(ages) != children:
        raise errors.ValidationError(
            f"Children count ({children}) does not match number of ages provided ({len(ages)})."
        )
    for age in ages:
        if not 0 <= age <= MAX_CHILD_AGE:
            raise errors.ValidationError(f"Child ages must be between 0 and 13 years (got {age}).")
    return ages


def validate_booking_request(request, now=None):
    validate_duration(request.duration_hours)
    validate_alignment(request.check_in)
    validate_window(request.check_in, now=now)
    request.child_ages = validate_party(request.adults, request.children, request.child_ages)
    return request
