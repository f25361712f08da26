"""Domain primitives that enforce validity at creation time."""

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Self
from uuid import UUID, uuid4

CENT = Decimal("0.01")


@dataclass(frozen=True)
class Identifier:
    """Base for typed UUID identifiers."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(str(value)))

    @classmethod
    def new(cls) -> Self:
        return cls(value=uuid4())

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class OrganizationId(Identifier):
    """Unique identifier for an Organization."""


@dataclass(frozen=True)
class EventId(Identifier):
    """Unique identifier for an Event."""


@dataclass(frozen=True)
class TicketTypeId(Identifier):
    """Unique identifier for a TicketType."""


@dataclass(frozen=True)
class ProductId(Identifier):
    """Unique identifier for a Product."""


@dataclass(frozen=True)
class VariantId(Identifier):
    """Unique identifier for a product variant."""


@dataclass(frozen=True)
class ProductCategoryId(Identifier):
    """Unique identifier for a ProductCategory."""


@dataclass(frozen=True)
class DiscountId(Identifier):
    """Unique identifier for a Discount."""


@dataclass(frozen=True)
class PurchaseId(Identifier):
    """Unique identifier for a Purchase."""


@dataclass(frozen=True)
class TicketId(Identifier):
    """Unique identifier for a Ticket."""


@dataclass(frozen=True)
class Money:
    """Price representation with validation."""

    amount: Decimal

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, "amount", Decimal(str(self.amount)))
        if self.amount < 0:
            raise ValueError("Money amount cannot be negative")
        object.__setattr__(self, "amount", self.amount.quantize(CENT, rounding=ROUND_HALF_UP))

    @classmethod
    def zero(cls) -> Self:
        return cls(amount=Decimal("0"))

    def __add__(self, other: "Money") -> "Money":
        return Money(self.amount + other.amount)

    def __mul__(self, quantity: int) -> "Money":
        return Money(self.amount * quantity)

    def __lt__(self, other: "Money") -> bool:
        return self.amount < other.amount

    def __le__(self, other: "Money") -> bool:
        return self.amount <= other.amount

    def minus(self, other: "Money") -> "Money":
        """Subtract, flooring at zero."""
        return Money(max(Decimal("0"), self.amount - other.amount))

    def __str__(self) -> str:
        return f"{self.amount:.2f}"


@dataclass(frozen=True)
class Capacity:
    """Non-negative integer representing capacity."""

    value: int

    def __post_init__(self) -> None:
        if self.value < 0:
            raise ValueError("Capacity cannot be negative")


@dataclass(frozen=True)
class SalesWindow:
    """Half-open period during which something is on offer.

    Either bound may be missing, meaning the window is open on that side.
    """

    starts_at: datetime | None = None
    ends_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.starts_at and self.ends_at and self.ends_at < self.starts_at:
            raise ValueError("Window end precedes its start")

    def contains(self, moment: datetime) -> bool:
        if self.starts_at is not None and moment < self.starts_at:
            return False
        if self.ends_at is not None and moment > self.ends_at:
            return False
        return True
