import logging
from enum import Enum

from booklend.core.errors import Forbidden
from booklend.core.security import Identity
from booklend.models.models import Role

logger = logging.getLogger("booklend.permissions")


class Capability(str, Enum):
    BORROW = "borrow"
    RETURN_OWN = "return_own"
    VIEW_OWN_LOANS = "view_own_loans"
    VIEW_ALL_LOANS = "view_all_loans"
    VIEW_USERS = "view_users"
    MANAGE_BOOKS = "manage_books"


_USER_CAPABILITIES = frozenset({Capability.BORROW, Capability.RETURN_OWN, Capability.VIEW_OWN_LOANS})

CAPABILITIES = {
    Role.USER: _USER_CAPABILITIES,
    Role.ADMIN: _USER_CAPABILITIES | {Capability.VIEW_ALL_LOANS, Capability.VIEW_USERS, Capability.MANAGE_BOOKS},
}


def can(identity: Identity, capability: Capability) -> bool:
    return capability in CAPABILITIES.get(identity.role, frozenset())


def require(identity: Identity, capability: Capability) -> Identity:
    if not can(identity, capability):
        logger.warning(f"User {identity.user_id} ({identity.role.value}) denied {capability.value}")
        raise Forbidden("Access denied")
    return identity
