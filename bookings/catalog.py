"""Room catalog lookups and engine-wide booking settings."""
from datetime import timedelta
from decimal import Decimal

from django.conf import settings

from . import errors
from .models import Room, RoomType

SUPPORTED_DURATIONS = (3, 6, 12, 24)

DEFAULTS = {
    "CLEANING_BUFFER_MINUTES": 30,
    "STALE_THRESHOLD_MINUTES": 5,
    "CHILD_SURCHARGE": "150.00",
    "CURRENCY": "PHP",
    "MAX_ADVANCE_DAYS": 365,
    "PAST_GRACE_MINUTES": 5,
    "LOCK_TIMEOUT_MS": 5000,
    "TRANSACTION_TIMEOUT_MS": 20000,
    "FRONTEND_URL": "http://localhost:5173",
    "WEBHOOK_SECRET": "",
    "ENABLE_PAYMENT_SIMULATOR": False,
    "MAX_HOLDS_PER_GUEST": 1,
}


def booking_setting(name):
    return getattr(settings, "BOOKINGS", {}).get(name, DEFAULTS.get(name))


def cleaning_buffer():
    return timedelta(minutes=booking_setting("CLEANING_BUFFER_MINUTES"))


def child_surcharge():
    return Decimal(str(booking_setting("CHILD_SURCHARGE")))


def slug_for(room_type_name):
    return f"{room_type_name.lower()}-room"


def resolve_room_type(slug_or_name):
    """
    Accept a generic slug ("standard-room"), a bare type name ("Standard")
    or the stored slug, and return the RoomType.
    """
    value = (slug_or_name or "").strip()
    if not value:
        raise errors.ValidationError("A room type is required.")

    room_type = RoomType.objects.filter(slug=value.lower()).first()
    if room_type is None:
        name = value.lower().removesuffix("-room").capitalize()
        room_type = RoomType.objects.filter(name=name).first()
    if room_type is None:
        raise errors.NotFoundError("Room type not found.")
    return room_type


def get_room(room_id):
    try:
        return Room.objects.select_related("room_type").get(pk=room_id)
    except (Room.DoesNotExist, ValueError, TypeError):
        raise errors.NotFoundError("Room not found.")


def bookable_room_types():
    """One entry per type that has at least one room in inventory."""
    return (
        RoomType.objects.filter(rooms__status__in=Room.BOOKABLE_STATUSES)
        .distinct()
        .order_by("name")
    )
