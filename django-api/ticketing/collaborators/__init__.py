from ticketing.collaborators.interfaces import IdentityProvider, Notifier

__all__ = ["IdentityProvider", "Notifier"]
