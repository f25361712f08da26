"""Ports for services owned by other parts of the platform."""

from abc import ABC, abstractmethod
from typing import Any

from ticketing.domain import OrganizationId, Role


class IdentityProvider(ABC):
    """Answers who a user is and which organization they act for."""

    @abstractmethod
    def user_exists(self, user_id: int) -> bool:
        ...

    @abstractmethod
    def resolve_organization_id(self, user_id: int) -> OrganizationId | None:
        """Return the organization a staff user belongs to, or None."""
        ...

    @abstractmethod
    def resolve_roles(self, user_id: int) -> frozenset[Role]:
        ...


class Notifier(ABC):
    """Fire-and-forget outbound notifications."""

    @abstractmethod
    def notify(self, event: str, payload: dict[str, Any]) -> None:
        """Deliver `event`; implementations must not raise."""
        ...
