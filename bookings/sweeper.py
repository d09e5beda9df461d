import logging
from datetime import timedelta

from django.utils import timezone

from .catalog import booking_setting
from .models import Reservation

logger = logging.getLogger(__name__)


def stale_cutoff(now=None):
    now = now or timezone.now()
    return now - timedelta(minutes=booking_setting("STALE_THRESHOLD_MINUTES"))


def sweep_stale(now=None):
    """
    Cancel reservations still waiting for payment after the stale threshold.

    Cheap enough to call before every availability check. The update is
    conditional on the status, so a concurrent confirmation wins and a
    second sweep finds nothing.
    """
    cutoff = stale_cutoff(now)
    stale = Reservation.objects.filter(
        status=Reservation.Status.PENDING_PAYMENT,
        created_at__lt=cutoff,
    )
    references = list(stale.values_list("reference_code", flat=True))
    if not references:
        return 0

    cancelled = Reservation.objects.filter(
        reference_code__in=references,
        status=Reservation.Status.PENDING_PAYMENT,
    ).update(status=Reservation.Status.CANCELLED, updated_at=timezone.now())

    logger.info("Stale sweep cancelled %d abandoned reservation(s): %s", cancelled, ", ".join(references))
    return cancelled
