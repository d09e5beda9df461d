from dataclasses import dataclass
from typing import Optional

GUEST = "Guest"
ADMIN = "Admin"
FRONT_DESK = "FrontDesk"
MANAGER = "Manager"
HOUSEKEEPING = "Housekeeping"

# Roles allowed to act on behalf of a guest.
ELEVATED_ROLES = frozenset({ADMIN, FRONT_DESK, MANAGER})
STAFF_ROLES = ELEVATED_ROLES | {HOUSEKEEPING}

# Highest privilege first; a user in several groups gets the first match.
ROLE_PRIORITY = (ADMIN, MANAGER, FRONT_DESK, HOUSEKEEPING)


@dataclass(frozen=True)
class Identity:
    user_id: Optional[int]
    role: str = GUEST

    @property
    def is_authenticated(self):
        return self.user_id is not None

    @property
    def is_elevated(self):
        return self.is_authenticated and self.role in ELEVATED_ROLES

    @property
    def is_staff(self):
        return self.is_authenticated and self.role in STAFF_ROLES


ANONYMOUS = Identity(user_id=None)


def identity_from_user(user):
    """Build the caller identity from an authenticated Django user."""
    if user is None or not user.is_authenticated:
        return ANONYMOUS
    if user.is_superuser:
        return Identity(user_id=user.pk, role=ADMIN)
    groups = set(user.groups.filter(name__in=STAFF_ROLES).values_list("name", flat=True))
    role = next((r for r in ROLE_PRIORITY if r in groups), GUEST)
    return Identity(user_id=user.pk, role=role)
