"""
Availability engine.

Read-only scans of the room inventory. Nothing here takes a lock: the
scan is advisory, and the reservation create path repeats
``has_conflict`` under a row lock before inserting.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta

from django.db import transaction
from django.db.models import Exists, OuterRef
from django.utils import timezone

from . import errors
from .catalog import booking_setting, cleaning_buffer
from .models import Reservation, Room

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AvailableRoom:
    room_id: int
    number: str
    name: str


def conflicting_reservations(check_in, check_out, room=None):
    """
    Active reservations whose window, extended by the cleaning buffer,
    overlaps [check_in, check_out).

    ``check_in < existing.check_out + buffer`` is rewritten as
    ``existing.check_out > check_in - buffer`` so it runs in the database.
    """
    qs = Reservation.objects.filter(
        status__in=Reservation.ACTIVE_STATUSES,
        check_in__lt=check_out,
        check_out__gt=check_in - cleaning_buffer(),
    )
    if room is not None:
        qs = qs.filter(room=room)
    return qs


def has_conflict(room, check_in, check_out, exclude_pk=None):
    qs = conflicting_reservations(check_in, check_out, room=room)
    if exclude_pk is not None:
        qs = qs.exclude(pk=exclude_pk)
    return qs.exists()


def candidate_rooms(room_type=None, room_id=None):
    qs = Room.objects.select_related("room_type").filter(status__in=Room.BOOKABLE_STATUSES)
    if room_id is not None:
        qs = qs.filter(pk=room_id)
    if room_type is not None:
        qs = qs.filter(room_type=room_type)
    return qs.order_by("number")


def find_available_rooms(check_in, duration_hours, room_type=None, room_id=None, now=None, lock_token=""):
    """
    Return every free room of ``room_type`` (or just ``room_id``) for the
    window starting at ``check_in``, in room-number order.

    Times must already be validated (aligned, supported duration).
    """
    if room_type is None and room_id is None:
        raise errors.ValidationError("Either a room type or a room is required.")

    now = now or timezone.now()
    check_out = check_in + timedelta(hours=duration_hours)
    overlap = Exists(conflicting_reservations(check_in, check_out).filter(room=OuterRef("pk")))
    rooms = candidate_rooms(room_type, room_id).annotate(has_overlap=overlap)

    available = []
    for room in rooms:
        if room.is_locked(now, lock_token):
            logger.debug("Room %s skipped: soft lock held until %s", room.number, room.lock_expires_at)
            continue
        if room.has_overlap:
            logger.debug("Room %s skipped: conflicting reservation", room.number)
            continue
        available.append(AvailableRoom(room_id=room.pk, number=room.number, name=room.name))

    logger.info(
        "Availability %s %s+%sh: %d room(s) free",
        room_type or f"room #{room_id}", check_in.isoformat(), duration_hours, len(available),
    )
    return available


def scoped_token(holder_id, token):
    """Prefix a client lock token with its holder so callers cannot touch each other's holds."""
    return f"{holder_id}:{token}" if token else ""


def hold_room(room_id, token, ttl=timedelta(minutes=5), now=None, holder_id=None):
    """
    Place a soft lock on a room so other availability scans skip it while
    a guest is filling in the booking form.

    With ``holder_id`` the token is scoped to that caller and the caller
    may hold at most ``MAX_HOLDS_PER_GUEST`` rooms at once.
    """
    if not token:
        raise errors.ValidationError("A lock token is required.")
    if holder_id is not None:
        token = scoped_token(holder_id, token)
    now = now or timezone.now()
    with transaction.atomic():
        room = Room.objects.select_for_update().filter(pk=room_id).first()
        if room is None:
            raise errors.NotFoundError("Room not found.")
        if room.is_locked(now, token):
            raise errors.ConflictError("Someone else is booking this room right now.")
        if holder_id is not None:
            held = (
                Room.objects.filter(lock_token__startswith=f"{holder_id}:", lock_expires_at__gt=now)
                .exclude(pk=room.pk)
                .count()
            )
            if held >= booking_setting("MAX_HOLDS_PER_GUEST"):
                logger.warning("Hold on room %s refused: user %s already holds %d room(s)",
                               room.number, holder_id, held)
                raise errors.ConflictError("You are already holding a room. Release it first.")
        room.lock_token = token
        room.lock_expires_at = now + ttl
        room.save(update_fields=["lock_token", "lock_expires_at"])
    return room


def release_room(room_id, token, holder_id=None):
    if not token:
        return False
    if holder_id is not None:
        token = scoped_token(holder_id, token)
    released = Room.objects.filter(pk=room_id, lock_token=token).update(lock_token="", lock_expires_at=None)
    return bool(released)
