"""Helpers shared by the services."""

from collections.abc import Callable
from datetime import datetime
from typing import TypeVar

from django.utils import timezone

from ticketing.domain.errors import InvalidIdentifierError
from ticketing.domain.value_objects import Identifier

Clock = Callable[[], datetime]

IdT = TypeVar("IdT", bound=Identifier)


def default_clock() -> datetime:
    return timezone.now()


def parse_id(id_cls: type[IdT], raw: str | None, field: str = "id") -> IdT:
    """Parse a UUID string into a typed identifier.

    Raises:
        InvalidIdentifierError: If `raw` is not a valid UUID.
    """
    try:
        return id_cls.from_string(raw)
    except (TypeError, ValueError, AttributeError):
        raise InvalidIdentifierError(field) from None
