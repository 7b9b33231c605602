"""User roles and owner resolution for embedding and search operations.

Every operation works on exactly one owner's catalog. The authenticated
requester normally acts on its own catalog; privileged staff may act on
behalf of another owner.

Role Hierarchy (descending permissions):
- SUPER_ADMIN: Platform staff, may act for any owner
- ADMIN: Support staff, may act for any owner
- MERCHANT: Store owner, may only act on its own catalog

Token verification and role lookup happen upstream; this module only decides
which owner_id an already-authenticated request resolves to.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Optional
from uuid import UUID

logger = logging.getLogger(__name__)


class UserRole(str, Enum):
    """User roles.

    Values are stored as TEXT upstream and must match exactly.
    """
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    MERCHANT = "merchant"


# Roles allowed to act on behalf of another owner
DELEGATING_ROLES = frozenset({UserRole.SUPER_ADMIN, UserRole.ADMIN})


class OwnerAuthorizationError(Exception):
    """Requester may not act on the requested owner, or no owner could be resolved."""
    pass


@dataclass(frozen=True)
class Requester:
    """Authenticated caller of an operation.

    Attributes:
        user_id: Authenticated user id, None for anonymous/service calls
        roles: Roles granted to the user
    """
    user_id: Optional[UUID]
    roles: FrozenSet[UserRole] = field(default_factory=frozenset)

    def can_delegate(self) -> bool:
        return bool(self.roles & DELEGATING_ROLES)


def resolve_owner_id(requester: Requester, requested_owner_id: Optional[UUID] = None) -> UUID:
    """Resolve the owner an operation runs for.

    Args:
        requester: Authenticated caller
        requested_owner_id: Owner explicitly named in the request, if any

    Returns:
        UUID of the owner to operate on

    Raises:
        OwnerAuthorizationError: No owner resolvable, or a non-privileged
            requester asked for someone else's catalog

    Examples:
        >>> merchant = Requester(user_id=a)
        >>> resolve_owner_id(merchant)            # own catalog
        a
        >>> admin = Requester(user_id=b, roles=frozenset({UserRole.ADMIN}))
        >>> resolve_owner_id(admin, a)            # acting on behalf of a
        a
    """
    if requested_owner_id is None or requested_owner_id == requester.user_id:
        if requester.user_id is None:
            raise OwnerAuthorizationError("Unauthorized: no owner could be resolved")
        return requester.user_id

    if not requester.can_delegate():
        logger.warning(
            "Owner delegation denied",
            extra={"user_id": requester.user_id, "owner_id": requested_owner_id},
        )
        raise OwnerAuthorizationError(
            f"Unauthorized: requester may not act on behalf of owner {requested_owner_id}"
        )

    logger.info(
        "Acting on behalf of owner",
        extra={"user_id": requester.user_id, "owner_id": requested_owner_id},
    )
    return requested_owner_id
