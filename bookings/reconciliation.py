"""
Payment reconciliation.

Gateway state reaches a reservation two ways: signed webhook pushes and
an on-demand poll of the checkout session. Both only ever move a
reservation out of Pending_Payment, which makes them safe to repeat.
"""
import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from typing import Optional

from . import errors
from .catalog import booking_setting
from .models import Reservation
from .payments import get_gateway
from .services import get_reservation, settle_pending

logger = logging.getLogger(__name__)

PAYMENT_PAID = "checkout_session.payment.paid"
SESSION_EXPIRED = "checkout_session.expired"

EVENT_TARGETS = {
    PAYMENT_PAID: Reservation.Status.CONFIRMED,
    SESSION_EXPIRED: Reservation.Status.CANCELLED,
}

PUBLIC_STATUS = {
    Reservation.Status.PENDING_PAYMENT: "pending",
    Reservation.Status.CONFIRMED: "confirmed",
    Reservation.Status.CHECKED_IN: "confirmed",
    Reservation.Status.COMPLETED: "confirmed",
    Reservation.Status.CANCELLED: "cancelled",
}


@dataclass(frozen=True)
class EventOutcome:
    event_type: str
    reference_code: Optional[str]
    applied: bool


def compute_signature(raw_body, secret):
    return hmac.new(secret.encode(), raw_body, hashlib.sha256).hexdigest()


def verify_signature(raw_body, signature, secret=None):
    secret = secret if secret is not None else booking_setting("WEBHOOK_SECRET")
    if not secret:
        logger.error("Webhook secret is not configured; rejecting webhook")
        raise errors.ConfigurationError("Server configuration error.")
    if not signature:
        logger.warning("[security] webhook rejected: missing signature header")
        raise errors.SecurityError("Missing signature.")
    if not hmac.compare_digest(compute_signature(raw_body, secret), signature.strip()):
        logger.warning("[security] webhook rejected: invalid signature")
        raise errors.SecurityError("Invalid signature.")


def parse_event(raw_body):
    try:
        payload = json.loads(raw_body)
    except (TypeError, ValueError) as exc:
        raise errors.ValidationError("Invalid JSON payload.") from exc
    if not isinstance(payload, dict):
        raise errors.ValidationError("Invalid event payload.")
    return payload


def event_details(payload):
    attributes = (payload.get("data") or {}).get("attributes") or {}
    event_type = attributes.get("type") or "unknown"
    resource = (attributes.get("data") or {}).get("attributes") or {}
    reference_code = (resource.get("metadata") or {}).get("reference_code")
    return event_type, reference_code


def handle_event(payload):
    event_type, reference_code = event_details(payload)
    target = EVENT_TARGETS.get(event_type)
    if target is None:
        logger.info("Unhandled webhook event type: %s", event_type)
        return EventOutcome(event_type, reference_code, applied=False)
    if not reference_code:
        logger.warning("Webhook %s carried no reference code", event_type)
        return EventOutcome(event_type, None, applied=False)

    applied = settle_pending(reference_code, target)
    if not applied:
        current = Reservation.objects.filter(reference_code=reference_code).values_list("status", flat=True).first()
        if current is None:
            logger.warning("Webhook %s for unknown booking %s", event_type, reference_code)
        else:
            logger.info("Webhook %s for %s ignored: booking is %s", event_type, reference_code, current)
    return EventOutcome(event_type, reference_code, applied=applied)


def verify_payment(reference_code, gateway=None):
    """
    Poll the gateway for a reservation still waiting on payment. Anything
    past Pending_Payment is returned as is, without contacting the gateway.
    """
    reservation = get_reservation(reference_code)
    if reservation.status != Reservation.Status.PENDING_PAYMENT:
        logger.debug("Booking %s already %s", reference_code, reservation.status)
        return reservation
    if not reservation.checkout_session_id:
        logger.warning("Booking %s has no checkout session id", reference_code)
        return reservation

    gateway = gateway or get_gateway()
    try:
        session = gateway.get_session(reservation.checkout_session_id)
    except errors.ExternalServiceError:
        logger.warning("Payment lookup for %s failed; status left %s", reference_code, reservation.status)
        return reservation

    if session.is_paid:
        settle_pending(reference_code, Reservation.Status.CONFIRMED)
    elif session.is_failed:
        settle_pending(reference_code, Reservation.Status.CANCELLED)
    else:
        logger.debug("No settled payment yet for %s (session %s)", reference_code, session.status)
        return reservation

    reservation.refresh_from_db()
    return reservation


def simulate_payment(reference_code, outcome):
    """Development stand-in for the gateway: settle a pending booking as paid or failed."""
    if not booking_setting("ENABLE_PAYMENT_SIMULATOR"):
        raise errors.NotFoundError()
    targets = {"paid": Reservation.Status.CONFIRMED, "failed": Reservation.Status.CANCELLED}
    if outcome not in targets:
        raise errors.ValidationError('Invalid status. Must be "paid" or "failed".')

    reservation = get_reservation(reference_code)
    if not settle_pending(reference_code, targets[outcome]):
        raise errors.ConflictError(f"Cannot simulate payment. Booking status is already: {reservation.status}")
    reservation.refresh_from_db()
    logger.info("Simulated %s payment for %s", outcome, reference_code)
    return reservation
