"""Identity lookups backed by Django auth and the membership table."""

from dataclasses import dataclass, field

from django.contrib.auth import get_user_model

from ticketing.collaborators.interfaces import IdentityProvider
from ticketing.domain import OrganizationId, Role
from ticketing.models import Membership


class DjangoIdentityProvider(IdentityProvider):
    def user_exists(self, user_id: int) -> bool:
        return get_user_model().objects.filter(pk=user_id, is_active=True).exists()

    def resolve_organization_id(self, user_id: int) -> OrganizationId | None:
        org_id = (
            Membership.objects.filter(user_id=user_id)
            .values_list("organization_id", flat=True)
            .first()
        )
        return OrganizationId(org_id) if org_id else None

    def resolve_roles(self, user_id: int) -> frozenset[Role]:
        user = get_user_model().objects.filter(pk=user_id).first()
        if user is None:
            return frozenset()
        roles = {Role.CUSTOMER}
        if user.is_superuser:
            roles.add(Role.ADMIN)
        role = Membership.objects.filter(user_id=user_id).values_list("role", flat=True).first()
        if role:
            roles.add(Role(role))
        return frozenset(roles)


@dataclass
class StaticIdentityProvider(IdentityProvider):
    """Fixed user table, for tests and scripts."""

    organizations: dict[int, OrganizationId] = field(default_factory=dict)
    roles: dict[int, frozenset[Role]] = field(default_factory=dict)
    users: set[int] = field(default_factory=set)

    def add_user(
        self,
        user_id: int,
        *roles: Role,
        organization_id: OrganizationId | None = None,
    ) -> int:
        self.users.add(user_id)
        self.roles[user_id] = frozenset(roles or (Role.CUSTOMER,))
        if organization_id is not None:
            self.organizations[user_id] = organization_id
        return user_id

    def user_exists(self, user_id: int) -> bool:
        return user_id in self.users

    def resolve_organization_id(self, user_id: int) -> OrganizationId | None:
        return self.organizations.get(user_id)

    def resolve_roles(self, user_id: int) -> frozenset[Role]:
        return self.roles.get(user_id, frozenset())
