"""Who is calling, and what they may see."""

import logging
from dataclasses import dataclass

from ticketing.collaborators.interfaces import IdentityProvider
from ticketing.domain import OrganizationId, Role
from ticketing.domain.errors import ForbiddenError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    user_id: int
    roles: frozenset[Role]
    organization_id: OrganizationId | None = None

    @classmethod
    def resolve(cls, identity: IdentityProvider, user_id: int) -> "Actor":
        return cls(
            user_id=user_id,
            roles=identity.resolve_roles(user_id),
            organization_id=identity.resolve_organization_id(user_id),
        )

    @property
    def is_admin(self) -> bool:
        return Role.ADMIN in self.roles

    @property
    def is_staff(self) -> bool:
        return Role.ORG_STAFF in self.roles and self.organization_id is not None

    def buyer_scope(self) -> int | None:
        """Buyer id a listing must be restricted to, if any."""
        if self.is_admin or self.is_staff:
            return None
        return self.user_id

    def organization_scope(self) -> OrganizationId | None:
        """Organization a listing must be restricted to, if any."""
        if self.is_admin:
            return None
        return self.organization_id if self.is_staff else None

    def own_scope(self) -> int | None:
        """Staff listings also include what the staff member bought elsewhere."""
        return self.user_id if self.organization_scope() is not None else None

    def can_see(self, owner_id: int, organization_id: OrganizationId) -> bool:
        if self.is_admin:
            return True
        if self.is_staff:
            return self.organization_id == organization_id or self.user_id == owner_id
        return self.user_id == owner_id

    def ensure_can_see(self, owner_id: int, organization_id: OrganizationId, resource: str) -> None:
        if not self.can_see(owner_id, organization_id):
            logger.warning("Access denied: user %s -> %s", self.user_id, resource)
            raise ForbiddenError()

    def ensure_staff_of(self, organization_id: OrganizationId, resource: str) -> None:
        if self.is_admin or (self.is_staff and self.organization_id == organization_id):
            return
        logger.warning("Access denied: user %s is not staff for %s", self.user_id, resource)
        raise ForbiddenError()

    def ensure_admin(self, resource: str) -> None:
        if not self.is_admin:
            logger.warning("Access denied: user %s is not an admin (%s)", self.user_id, resource)
            raise ForbiddenError()
