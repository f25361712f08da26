"""Allowed status transitions for purchases and tickets.

No side effects live here; services consult these tables before writing.
"""

from ticketing.domain.errors import InvalidPaymentTransitionError
from ticketing.domain.models import PaymentStatus, TicketStatus

ALLOWED_PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset(
        {PaymentStatus.COMPLETED, PaymentStatus.FAILED, PaymentStatus.CANCELLED}
    ),
    PaymentStatus.COMPLETED: frozenset({PaymentStatus.REFUNDED}),
}

ALLOWED_TICKET_TRANSITIONS: dict[TicketStatus, frozenset[TicketStatus]] = {
    TicketStatus.VALID: frozenset(
        {
            TicketStatus.USED,
            TicketStatus.TRANSFERRED,
            TicketStatus.CANCELLED,
            TicketStatus.REFUNDED,
            TicketStatus.EXPIRED,
        }
    ),
    TicketStatus.USED: frozenset({TicketStatus.CANCELLED, TicketStatus.REFUNDED}),
}


def can_transition(current: PaymentStatus, target: PaymentStatus) -> bool:
    return target in ALLOWED_PAYMENT_TRANSITIONS.get(current, frozenset())


def validate_transition(current: PaymentStatus, target: PaymentStatus) -> None:
    if not can_transition(current, target):
        raise InvalidPaymentTransitionError(current.value, target.value)


def can_transition_ticket(current: TicketStatus, target: TicketStatus) -> bool:
    return target in ALLOWED_TICKET_TRANSITIONS.get(current, frozenset())
