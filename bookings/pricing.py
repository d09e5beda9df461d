import logging
from decimal import Decimal, InvalidOperation

from . import errors
from .catalog import child_surcharge

logger = logging.getLogger(__name__)

CHARGEABLE_CHILD_AGES = range(7, 14)


def child_fee(age):
    return child_surcharge() if age in CHARGEABLE_CHILD_AGES else Decimal("0")


def compute_price(room, duration_hours, child_ages):
    """
    Authoritative total for a stay: the room's rate for the duration plus a
    flat surcharge per child aged 7-13. Ages 0-6 stay free.
    """
    try:
        base = room.rate_card[duration_hours]
    except KeyError:
        raise errors.ConfigurationError(f"No {duration_hours}h rate configured for {room}.")
    if base is None:
        raise errors.ConfigurationError(f"No {duration_hours}h rate configured for {room}.")

    surcharge = sum((child_fee(age) for age in child_ages), Decimal("0"))
    total = Decimal(base) + surcharge
    logger.debug("Price for %s %sh ages=%s: base=%s children=%s total=%s",
                 room, duration_hours, list(child_ages), base, surcharge, total)
    return total


def reconcile_client_amount(client_amount, computed, reference=""):
    """
    Log any client-supplied total that disagrees with ``computed``; the
    computed amount is always the one that is used.
    """
    if client_amount in (None, ""):
        return computed
    try:
        claimed = Decimal(str(client_amount))
    except (InvalidOperation, ValueError):
        logger.warning("Price discrepancy %s: unparseable client amount %r, using %s",
                       reference, client_amount, computed)
        return computed
    if claimed != computed:
        logger.warning("Price discrepancy %s: client sent %s, server computed %s",
                       reference, claimed, computed)
    return computed
