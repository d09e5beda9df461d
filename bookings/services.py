"""
Reservation lifecycle.

Web reservations are created Pending_Payment under a row lock on the
room, then moved along by payment reconciliation, the front desk and the
stale sweeper. Walk-ins start Checked_In.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.db import IntegrityError, OperationalError, connection, transaction
from django.utils import timezone

from . import errors
from .availability import find_available_rooms, has_conflict
from .catalog import booking_setting, get_room, resolve_room_type
from .models import Reservation, Room
from .payments import LineItem, get_gateway
from .pricing import compute_price, reconcile_client_amount
from .references import WALK_IN_PREFIX, generate_unique_reference_code
from .sweeper import sweep_stale
from .validation import validate_duration, validate_party, validate_booking_request

logger = logging.getLogger(__name__)

Status = Reservation.Status

TRANSITIONS = {
    Status.PENDING_PAYMENT: {Status.CONFIRMED, Status.CANCELLED},
    Status.CONFIRMED: {Status.CHECKED_IN, Status.CANCELLED},
    Status.CHECKED_IN: {Status.COMPLETED},
    Status.COMPLETED: set(),
    Status.CANCELLED: set(),
}

# Confirmation only ever comes from the payment gateway.
FRONT_DESK_TARGETS = {Status.CHECKED_IN, Status.COMPLETED, Status.CANCELLED}


@dataclass
class CheckoutResult:
    reservation: Reservation
    checkout_url: str


def can_transition(current, target):
    return target in TRANSITIONS.get(current, set())


def resolve_guest_id(identity, requested_guest_id=None):
    """
    The guest is the authenticated caller. Staff may book on behalf of
    another guest; anyone else asking to is refused.
    """
    if not identity.is_authenticated:
        raise errors.SecurityError("Authentication is required to book.")
    if requested_guest_id in (None, "", "walk_in") or requested_guest_id == identity.user_id:
        return identity.user_id

    if not identity.is_elevated:
        logger.warning("[security] user %s attempted to book as guest %s; refused",
                       identity.user_id, requested_guest_id)
        raise errors.SecurityError("You may only book for yourself.")

    if not get_user_model().objects.filter(pk=requested_guest_id).exists():
        raise errors.NotFoundError("Guest not found.")
    logger.info("[override] %s %s booking for guest %s", identity.role, identity.user_id, requested_guest_id)
    return requested_guest_id


def select_room(room_type, booking, now):
    """Pick the room to lock: the caller's choice if still free, else the first free room."""
    check_in, duration = booking.check_in, booking.duration_hours

    if booking.room_id is not None:
        room = get_room(booking.room_id)
        if room.room_type_id != room_type.pk:
            raise errors.ValidationError("Selected room does not match the requested room type.")
        free = find_available_rooms(check_in, duration, room_id=room.pk, now=now, lock_token=booking.lock_token)
        if not free:
            raise errors.ConflictError(
                "The selected room is no longer available. Please select a different room or time slot."
            )
        return room

    free = find_available_rooms(check_in, duration, room_type=room_type, now=now, lock_token=booking.lock_token)
    if not free:
        raise errors.ConflictError(
            f"All {room_type.name} rooms are fully booked for the selected time. "
            "Rooms require a 30-minute cleaning period between bookings."
        )
    return get_room(free[0].room_id)


def bound_transaction():
    """Cap how long the create transaction may wait on or hold the room lock."""
    if connection.vendor != "postgresql":
        return
    lock_ms = int(booking_setting("LOCK_TIMEOUT_MS"))
    statement_ms = int(booking_setting("TRANSACTION_TIMEOUT_MS"))
    with connection.cursor() as cursor:
        cursor.execute(f"SET LOCAL lock_timeout = {lock_ms}")
        cursor.execute(f"SET LOCAL statement_timeout = {statement_ms}")


def checkout_urls(reference_code):
    frontend = booking_setting("FRONTEND_URL").rstrip("/")
    return (
        f"{frontend}/booking-success?reference={reference_code}",
        f"{frontend}/booking?cancelled=true",
    )


def create_web_reservation(booking, identity, gateway=None, now=None):
    """
    Reserve a room for an online booking and open a payment checkout session.

    The availability scan is only a hint. Correctness comes from the
    re-check made while the room row is locked. The gateway call sits
    inside the same transaction, so a failed call leaves no reservation
    behind.
    """
    now = now or timezone.now()
    validate_booking_request(booking, now=now)
    guest_id = resolve_guest_id(identity, booking.guest_id)
    sweep_stale(now=now)

    room_type = resolve_room_type(booking.room_type_slug)
    room = select_room(room_type, booking, now)

    reference_code = generate_unique_reference_code()
    total = compute_price(room, booking.duration_hours, booking.child_ages)
    reconcile_client_amount(booking.client_total, total, reference=reference_code)

    check_in = booking.check_in
    check_out = check_in + timedelta(hours=booking.duration_hours)
    gateway = gateway or get_gateway()
    success_url, cancel_url = checkout_urls(reference_code)
    local_check_in = timezone.localtime(check_in)

    try:
        with transaction.atomic():
            bound_transaction()
            locked = Room.objects.select_for_update(of=("self",)).select_related("room_type").get(pk=room.pk)
            if (
                locked.status not in Room.BOOKABLE_STATUSES
                or locked.is_locked(now, booking.lock_token)
                or has_conflict(locked, check_in, check_out)
            ):
                logger.info("Room %s taken while %s was being booked", locked.number, reference_code)
                raise errors.ConflictError(
                    "Room is no longer available (booked by another guest during your session)."
                )

            reservation = Reservation.objects.create(
                reference_code=reference_code,
                guest_id=guest_id,
                room=locked,
                check_in=check_in,
                check_out=check_out,
                duration_hours=booking.duration_hours,
                adults=booking.adults,
                children=booking.children,
                child_ages=booking.child_ages,
                source=Reservation.Source.WEB,
                status=Status.PENDING_PAYMENT,
                total_amount=total,
            )
            if booking.lock_token and locked.lock_token == booking.lock_token:
                locked.lock_token = ""
                locked.lock_expires_at = None
                locked.save(update_fields=["lock_token", "lock_expires_at"])

            session = gateway.create_checkout_session(
                line_items=[
                    LineItem(
                        name=f"{locked.name} - {booking.duration_hours}h",
                        amount=total,
                        currency=booking_setting("CURRENCY"),
                        description=f"Check-in: {local_check_in:%Y-%m-%d %H:%M}",
                    )
                ],
                success_url=success_url,
                cancel_url=cancel_url,
                metadata={
                    "reference_code": reference_code,
                    "room_id": str(locked.pk),
                    "room_number": locked.number,
                    "guest_id": str(guest_id),
                },
                description=f"Booking Reference: {reference_code}",
                billing=billing_details(booking),
            )
            reservation.checkout_session_id = session.session_id
            reservation.save(update_fields=["checkout_session_id", "updated_at"])
    except OperationalError as exc:
        logger.warning("Lock on room %s not acquired for %s: %s", room.number, reference_code, exc)
        raise errors.ConflictError("Someone else is booking this room right now. Please try again.") from exc
    except IntegrityError as exc:
        logger.error("Reference code %s rejected by the database: %s", reference_code, exc)
        raise errors.ConflictError("Could not allocate a booking reference. Please try again.") from exc

    logger.info("Reservation %s pending payment: room %s, %s, total %s",
                reference_code, room.number, check_in.isoformat(), total)
    return CheckoutResult(reservation=reservation, checkout_url=session.checkout_url)


def billing_details(booking):
    name = f"{booking.first_name} {booking.last_name}".strip()
    billing = {"name": name, "email": booking.email, "phone": booking.phone}
    billing = {k: v for k, v in billing.items() if v}
    return billing or None


def create_walk_in(room_id, duration_hours, identity, adults=1, children=0, child_ages=None,
                   guest_id=None, now=None):
    """Front-desk booking: the guest is at the counter, so the stay starts now."""
    if not identity.is_elevated:
        raise errors.SecurityError("Only front-desk staff can create walk-in bookings.")
    validate_duration(duration_hours)
    ages = validate_party(adults, children, child_ages)
    if guest_id is not None and not get_user_model().objects.filter(pk=guest_id).exists():
        raise errors.NotFoundError("Guest not found.")

    now = now or timezone.now()
    check_out = now + timedelta(hours=duration_hours)
    room = get_room(room_id)
    total = compute_price(room, duration_hours, ages)
    reference_code = generate_unique_reference_code(prefix=WALK_IN_PREFIX)

    try:
        with transaction.atomic():
            bound_transaction()
            locked = Room.objects.select_for_update(of=("self",)).select_related("room_type").get(pk=room.pk)
            if locked.status not in Room.BOOKABLE_STATUSES:
                raise errors.ConflictError(f"Room {locked.number} is {locked.status}.")
            if has_conflict(locked, now, check_out):
                raise errors.ConflictError(f"Room {locked.number} is not free for the next {duration_hours}h.")

            reservation = Reservation.objects.create(
                reference_code=reference_code,
                guest_id=guest_id,
                room=locked,
                check_in=now,
                check_out=check_out,
                duration_hours=duration_hours,
                adults=adults,
                children=children,
                child_ages=ages,
                source=Reservation.Source.WALK_IN,
                status=Status.CHECKED_IN,
                total_amount=total,
            )
            locked.status = Room.Status.OCCUPIED
            locked.save(update_fields=["status"])
    except OperationalError as exc:
        raise errors.ConflictError("Someone else is booking this room right now. Please try again.") from exc
    except IntegrityError as exc:
        raise errors.ConflictError("Could not allocate a booking reference. Please try again.") from exc

    logger.info("Walk-in %s checked in to room %s by %s %s", reference_code, locked.number,
                identity.role, identity.user_id)
    return reservation


def transition(reservation_id, target, now=None):
    """
    Move a reservation to ``target`` and apply the room side effects.
    Re-applying the current status is a no-op, so replayed requests are safe.
    """
    now = now or timezone.now()
    with transaction.atomic():
        try:
            reservation = Reservation.objects.select_for_update().get(pk=reservation_id)
        except (Reservation.DoesNotExist, ValueError, TypeError):
            raise errors.NotFoundError("Booking not found.")

        if reservation.status == target:
            return reservation
        if not can_transition(reservation.status, target):
            raise errors.ConflictError(f"Cannot move booking from {reservation.status} to {target}.")

        previous = reservation.status
        reservation.status = target
        room = reservation.room
        if target == Status.CHECKED_IN:
            reservation.schedule(now)
            room.status = Room.Status.OCCUPIED
            room.save(update_fields=["status"])
        elif target == Status.COMPLETED:
            reservation.check_out = now
            room.status = Room.Status.DIRTY
            room.save(update_fields=["status"])
        reservation.save()

    logger.info("Reservation %s: %s -> %s", reservation.reference_code, previous, target)
    return reservation


def change_status(reservation_id, target, identity, now=None):
    if not identity.is_elevated:
        raise errors.SecurityError("Only front-desk staff can change booking status.")
    if target not in FRONT_DESK_TARGETS:
        raise errors.ValidationError("Invalid status. Allowed: Checked_In, Completed, Cancelled.")
    return transition(reservation_id, target, now=now)


def cancel_reservation(reference_code, identity):
    """Guests may cancel their own bookings before check-in; staff may cancel any."""
    reservation = get_reservation(reference_code)
    if not (identity.is_elevated or (identity.is_authenticated and reservation.guest_id == identity.user_id)):
        # Same answer as an unknown code.
        raise errors.NotFoundError("Booking not found.")
    return transition(reservation.pk, Status.CANCELLED)


def settle_pending(reference_code, target):
    """
    Move a Pending_Payment reservation to Confirmed or Cancelled.

    Returns True when this call made the move. The status filter is the
    idempotency guard: a replay finds nothing left to update.
    """
    updated = Reservation.objects.filter(
        reference_code=reference_code,
        status=Status.PENDING_PAYMENT,
    ).update(status=target, updated_at=timezone.now())
    if updated:
        logger.info("Reservation %s: %s -> %s", reference_code, Status.PENDING_PAYMENT, target)
    return bool(updated)


def set_room_status(room_id, status, identity):
    """Housekeeping and admin status changes (e.g. Dirty -> Available)."""
    if not identity.is_staff:
        raise errors.SecurityError("Only staff can change room status.")
    if status not in Room.Status.values:
        raise errors.ValidationError("Invalid status.")
    room = get_room(room_id)
    room.status = status
    room.save(update_fields=["status"])
    logger.info("Room %s set to %s by %s %s", room.number, status, identity.role, identity.user_id)
    return room


def get_reservation(reference_code):
    reservation = (
        Reservation.objects.select_related("room", "room__room_type")
        .filter(reference_code=reference_code)
        .first()
    )
    if reservation is None:
        raise errors.NotFoundError("Booking not found.")
    return reservation


def reservations_for_guest(identity):
    if not identity.is_authenticated:
        raise errors.SecurityError("Authentication is required.")
    return (
        Reservation.objects.select_related("room", "room__room_type")
        .filter(guest_id=identity.user_id)
        .order_by("-check_in")
    )
