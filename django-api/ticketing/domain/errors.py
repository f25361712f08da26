"""Domain error codes for the ticketing module."""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    INVALID_IDENTIFIER = "INVALID_IDENTIFIER"
    INVALID_CART = "INVALID_CART"
    INVALID_QUANTITY = "INVALID_QUANTITY"
    CURRENCY_MISMATCH = "CURRENCY_MISMATCH"
    NOT_ON_SALE = "NOT_ON_SALE"
    INVALID_DISCOUNT_CODE = "INVALID_DISCOUNT_CODE"
    INVALID_DISCOUNT = "INVALID_DISCOUNT"
    INVALID_REFUND = "INVALID_REFUND"
    INVALID_TRANSFER = "INVALID_TRANSFER"
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    TICKET_TYPE_NOT_FOUND = "TICKET_TYPE_NOT_FOUND"
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
    VARIANT_NOT_FOUND = "VARIANT_NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    PURCHASE_NOT_FOUND = "PURCHASE_NOT_FOUND"
    DISCOUNT_NOT_FOUND = "DISCOUNT_NOT_FOUND"
    TICKET_NOT_FOUND = "TICKET_NOT_FOUND"
    INVENTORY_UNIT_NOT_FOUND = "INVENTORY_UNIT_NOT_FOUND"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    UNIT_NOT_RESERVABLE = "UNIT_NOT_RESERVABLE"
    RELEASE_EXCEEDS_SOLD = "RELEASE_EXCEEDS_SOLD"
    DUPLICATE_DISCOUNT_CODE = "DUPLICATE_DISCOUNT_CODE"
    INVALID_PAYMENT_TRANSITION = "INVALID_PAYMENT_TRANSITION"
    REFUND_EXCEEDS_TOTAL = "REFUND_EXCEEDS_TOTAL"
    TICKET_ALREADY_USED = "TICKET_ALREADY_USED"
    TICKET_CANCELLED = "TICKET_CANCELLED"
    TICKET_REFUNDED = "TICKET_REFUNDED"
    TICKET_EXPIRED = "TICKET_EXPIRED"
    TICKET_NOT_VALID = "TICKET_NOT_VALID"
    FORBIDDEN = "FORBIDDEN"
    PURCHASE_NOT_COMPLETED = "PURCHASE_NOT_COMPLETED"
    RECONCILIATION_REQUIRED = "RECONCILIATION_REQUIRED"


@dataclass(frozen=True)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class ValidationError(DomainError):
    """Malformed or inconsistent input. Never retried."""


class NotFoundError(DomainError):
    """A referenced resource does not exist."""


class ConflictError(DomainError):
    """The request collides with current state."""


class AuthorizationError(DomainError):
    """Cross-tenant or cross-owner access."""


class CriticalReconciliationError(DomainError):
    """Payment was confirmed but side effects could not be applied."""

    def __init__(self, purchase_id: str, failures: list[str]) -> None:
        super().__init__(
            code=ErrorCode.RECONCILIATION_REQUIRED,
            message="Payment recorded but fulfilment needs operator reconciliation",
        )
        object.__setattr__(self, "purchase_id", purchase_id)
        object.__setattr__(self, "failures", failures)


class InvalidIdentifierError(ValidationError):
    """Raised when an identifier is not a valid UUID."""

    def __init__(self, field: str = "id") -> None:
        super().__init__(
            code=ErrorCode.INVALID_IDENTIFIER,
            message=f"Invalid {field} format",
        )
        object.__setattr__(self, "field", field)


class InvalidCartError(ValidationError):
    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.INVALID_CART, message=message)


class InvalidQuantityError(ValidationError):
    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.INVALID_QUANTITY, message=message)


class CurrencyMismatchError(ValidationError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.CURRENCY_MISMATCH,
            message="All items in a purchase must have the same currency",
        )


class NotOnSaleError(ValidationError):
    def __init__(self, name: str) -> None:
        super().__init__(code=ErrorCode.NOT_ON_SALE, message=f'"{name}" is not on sale')


class InvalidDiscountCodeError(ValidationError):
    """Deliberately vague: unknown, expired, exhausted and inactive look alike."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.INVALID_DISCOUNT_CODE,
            message="The provided discount code is invalid, expired, or has reached its usage limit",
        )


class InvalidDiscountError(ValidationError):
    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.INVALID_DISCOUNT, message=message)


class InvalidRefundError(ValidationError):
    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.INVALID_REFUND, message=message)


class InvalidTransferError(ValidationError):
    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.INVALID_TRANSFER, message=message)


class EventNotFoundError(NotFoundError):
    """Raised when an event is not found."""

    def __init__(self, event_id: str) -> None:
        super().__init__(code=ErrorCode.EVENT_NOT_FOUND, message="Event not found")
        object.__setattr__(self, "event_id", event_id)


class TicketTypeNotFoundError(NotFoundError):
    def __init__(self, ticket_type_id: str) -> None:
        super().__init__(code=ErrorCode.TICKET_TYPE_NOT_FOUND, message="Ticket type not found")
        object.__setattr__(self, "ticket_type_id", ticket_type_id)


class ProductNotFoundError(NotFoundError):
    def __init__(self, product_id: str) -> None:
        super().__init__(code=ErrorCode.PRODUCT_NOT_FOUND, message="Product not found")
        object.__setattr__(self, "product_id", product_id)


class VariantNotFoundError(NotFoundError):
    def __init__(self, variant_id: str) -> None:
        super().__init__(code=ErrorCode.VARIANT_NOT_FOUND, message="Product variation not found")
        object.__setattr__(self, "variant_id", variant_id)


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: int) -> None:
        super().__init__(code=ErrorCode.USER_NOT_FOUND, message="User not found")
        object.__setattr__(self, "user_id", user_id)


class PurchaseNotFoundError(NotFoundError):
    def __init__(self, purchase_id: str) -> None:
        super().__init__(code=ErrorCode.PURCHASE_NOT_FOUND, message="Purchase not found")
        object.__setattr__(self, "purchase_id", purchase_id)


class DiscountNotFoundError(NotFoundError):
    def __init__(self, discount_id: str) -> None:
        super().__init__(code=ErrorCode.DISCOUNT_NOT_FOUND, message="Discount not found")
        object.__setattr__(self, "discount_id", discount_id)


class TicketNotFoundError(NotFoundError):
    def __init__(self, reference: str) -> None:
        super().__init__(code=ErrorCode.TICKET_NOT_FOUND, message="Ticket not found")
        object.__setattr__(self, "reference", reference)


class InventoryUnitNotFoundError(NotFoundError):
    def __init__(self, unit: str) -> None:
        super().__init__(
            code=ErrorCode.INVENTORY_UNIT_NOT_FOUND,
            message="Inventory unit not found",
        )
        object.__setattr__(self, "unit", unit)


class InsufficientStockError(ConflictError):
    def __init__(self, name: str) -> None:
        super().__init__(
            code=ErrorCode.INSUFFICIENT_STOCK,
            message=f'Not enough stock for "{name}"',
        )
        object.__setattr__(self, "name", name)


class UnitNotReservableError(ConflictError):
    def __init__(self, unit: str) -> None:
        super().__init__(
            code=ErrorCode.UNIT_NOT_RESERVABLE,
            message="Item is no longer available",
        )
        object.__setattr__(self, "unit", unit)


class ReleaseExceedsSoldError(ConflictError):
    def __init__(self, unit: str) -> None:
        super().__init__(
            code=ErrorCode.RELEASE_EXCEEDS_SOLD,
            message="Cannot return more units than were sold",
        )
        object.__setattr__(self, "unit", unit)


class DuplicateDiscountCodeError(ConflictError):
    def __init__(self, code: str) -> None:
        super().__init__(
            code=ErrorCode.DUPLICATE_DISCOUNT_CODE,
            message=f'A discount with the code "{code}" already exists',
        )


class InvalidPaymentTransitionError(ConflictError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_PAYMENT_TRANSITION,
            message=f"Cannot move payment status from {current} to {target}",
        )
        object.__setattr__(self, "current", current)
        object.__setattr__(self, "target", target)


class PurchaseNotCompletedError(ConflictError):
    def __init__(self, status: str) -> None:
        super().__init__(
            code=ErrorCode.PURCHASE_NOT_COMPLETED,
            message=f"Purchase is {status}; only completed purchases can be reconciled",
        )


class RefundExceedsTotalError(ConflictError):
    def __init__(self, refundable: str) -> None:
        super().__init__(
            code=ErrorCode.REFUND_EXCEEDS_TOTAL,
            message=f"Refund amount exceeds total purchase amount. Max refundable: {refundable}",
        )


class TicketAlreadyUsedError(ConflictError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.TICKET_ALREADY_USED, message="Ticket has already been used")


class TicketCancelledError(ConflictError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.TICKET_CANCELLED, message="Ticket has been cancelled")


class TicketRefundedError(ConflictError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.TICKET_REFUNDED, message="Ticket has been refunded")


class TicketExpiredError(ConflictError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.TICKET_EXPIRED, message="Ticket has expired")


class TicketNotValidError(ConflictError):
    def __init__(self, status: str) -> None:
        super().__init__(
            code=ErrorCode.TICKET_NOT_VALID,
            message=f"Ticket cannot be used in {status} status",
        )


class ForbiddenError(AuthorizationError):
    def __init__(self, message: str = "You do not have permission to access this resource") -> None:
        super().__init__(code=ErrorCode.FORBIDDEN, message=message)
