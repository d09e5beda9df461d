"""Human-readable reservation reference codes."""
import logging
import secrets
import string
import time

from .models import Reservation

logger = logging.getLogger(__name__)

ALPHABET = string.digits + string.ascii_uppercase
WEB_PREFIX = "BKG"
WALK_IN_PREFIX = "WLK"
MAX_ATTEMPTS = 10


def to_base36(number):
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(ALPHABET[rem])
    return "".join(reversed(digits))


def random_chars(length):
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


def generate_reference_code(prefix=WEB_PREFIX):
    """``BKG-<millis base36>-<8 random chars>``, e.g. ``BKG-MK2ZQ1A4-7Q0XK2LD``."""
    timestamp = to_base36(time.time_ns() // 1_000_000)
    return f"{prefix}-{timestamp}-{random_chars(8)}"


def reference_code_taken(code):
    return Reservation.objects.filter(reference_code=code).exists()


def generate_unique_reference_code(prefix=WEB_PREFIX, exists=reference_code_taken, generate=None):
    """
    Draw codes until one is unused. After MAX_ATTEMPTS collisions the last
    candidate gets four more random characters appended instead of looping
    again. The unique constraint on the column stays the final guard.
    """
    generate = generate or (lambda: generate_reference_code(prefix))
    for attempt in range(1, MAX_ATTEMPTS + 1):
        code = generate()
        if not exists(code):
            if attempt > 1:
                logger.info("Unique reference code %s after %d attempts", code, attempt)
            return code
        logger.warning("Reference code collision: %s (attempt %d)", code, attempt)

    code = f"{code}-{random_chars(4)}"
    logger.error("Reference code retries exhausted, falling back to %s", code)
    return code
