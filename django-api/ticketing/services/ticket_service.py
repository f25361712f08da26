"""Ticket issuer: minting, invalidation, scanning and transfers."""

import logging
import secrets
import string

from django.core import signing

from ticketing.collaborators import IdentityProvider, Notifier
from ticketing.domain import (
    EventId,
    PaymentStatus,
    Purchase,
    PurchaseId,
    Ticket,
    TicketId,
    TicketStatus,
)
from ticketing.domain.errors import (
    ConflictError,
    ForbiddenError,
    InvalidTransferError,
    TicketAlreadyUsedError,
    TicketCancelledError,
    TicketExpiredError,
    TicketNotFoundError,
    TicketNotValidError,
    TicketRefundedError,
    UserNotFoundError,
)
from ticketing.domain.lifecycle import can_transition_ticket
from ticketing.services.access import Actor
from ticketing.services.common import Clock, default_clock
from ticketing.stores.interfaces import CatalogStore, TicketFilter, TicketStore

logger = logging.getLogger(__name__)

DEFAULT_CODE_LENGTH = 10
DEFAULT_CODE_ALPHABET = string.ascii_uppercase + string.digits
DEFAULT_PAYLOAD_SALT = "ticketing.ticket"


def status_error(status: TicketStatus) -> ConflictError:
    """The error shown to front-desk staff for a ticket that cannot be used."""
    if status is TicketStatus.USED:
        return TicketAlreadyUsedError()
    if status is TicketStatus.CANCELLED:
        return TicketCancelledError()
    if status is TicketStatus.REFUNDED:
        return TicketRefundedError()
    if status is TicketStatus.EXPIRED:
        return TicketExpiredError()
    return TicketNotValidError(status.value)


def _case_folder(alphabet: str):
    """Map a typed code onto the case the alphabet uses; mixed-case alphabets match exactly."""
    if alphabet == alphabet.upper():
        return str.upper
    if alphabet == alphabet.lower():
        return str.lower
    return str


class TicketService:
    def __init__(
        self,
        store: TicketStore,
        catalog: CatalogStore,
        identity: IdentityProvider,
        notifier: Notifier,
        clock: Clock = default_clock,
        code_length: int = DEFAULT_CODE_LENGTH,
        code_alphabet: str = DEFAULT_CODE_ALPHABET,
        payload_salt: str = DEFAULT_PAYLOAD_SALT,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._identity = identity
        self._notifier = notifier
        self._clock = clock
        self._code_length = code_length
        self._code_alphabet = code_alphabet
        self._fold_case = _case_folder(code_alphabet)
        self._payload_salt = payload_salt

    # -- issuance -------------------------------------------------------------

    def issue_for_purchase(self, purchase: Purchase) -> list[Ticket]:
        """Mint one VALID ticket per purchased ticket unit, exactly once.

        Returns the new tickets, or an empty list when the purchase already
        has its tickets or is not COMPLETED.
        """
        if purchase.tickets_issued:
            return []
        if purchase.payment_status is not PaymentStatus.COMPLETED:
            logger.warning(
                "Refusing to issue tickets for purchase %s in status %s",
                purchase.id,
                purchase.payment_status.value,
            )
            return []

        now = self._clock()
        taken: set[str] = set()
        tickets: list[Ticket] = []
        for item in purchase.ticket_items:
            ticket_type = self._catalog.get_ticket_type(item.ticket_type_id)
            event_id = purchase.event_id or (ticket_type.event_id if ticket_type else None)
            for _ in range(item.quantity):
                ticket_id = TicketId.new()
                code = self._unique_code(taken)
                tickets.append(
                    Ticket(
                        id=ticket_id,
                        ticket_type_id=item.ticket_type_id,
                        event_id=event_id,
                        organization_id=purchase.organization_id,
                        purchase_id=purchase.id,
                        owner_id=purchase.buyer_id,
                        code=code,
                        payload=self._sign(ticket_id, code, event_id),
                        price_at_purchase=item.unit_price,
                        currency=purchase.currency,
                        created_at=now,
                        is_transferable=bool(ticket_type and ticket_type.is_transferable),
                    )
                )

        if not self._store.issue_tickets(purchase.id, tickets):
            logger.info("Tickets for purchase %s were already issued", purchase.id)
            return []

        logger.info("Issued %d tickets for purchase %s", len(tickets), purchase.id)
        self._notifier.notify(
            "tickets.issued",
            {
                "purchaseId": str(purchase.id),
                "buyerId": purchase.buyer_id,
                "ticketIds": [str(t.id) for t in tickets],
            },
        )
        return tickets

    def invalidate_for_purchase(self, purchase_id: PurchaseId, status: TicketStatus) -> int:
        """Move every VALID ticket of the purchase to `status`.

        USED, CANCELLED and other non-VALID tickets are left as they are.
        """
        changed = self._store.invalidate_for_purchase(purchase_id, status)
        logger.info(
            "Invalidated %d tickets of purchase %s as %s", changed, purchase_id, status.value
        )
        return changed

    def _unique_code(self, taken: set[str]) -> str:
        while True:
            code = "".join(secrets.choice(self._code_alphabet) for _ in range(self._code_length))
            if code not in taken and not self._store.code_exists(code):
                taken.add(code)
                return code

    def _sign(self, ticket_id: TicketId, code: str, event_id: EventId | None) -> str:
        return signing.dumps(
            {"t": str(ticket_id), "c": code, "e": str(event_id) if event_id else None},
            salt=self._payload_salt,
        )

    def code_from_scan(self, scanned: str) -> str:
        """Accept either a bare redemption code or a signed payload."""
        scanned = (scanned or "").strip()
        if ":" not in scanned:
            return self._fold_case(scanned)
        try:
            return signing.loads(scanned, salt=self._payload_salt)["c"]
        except (signing.BadSignature, KeyError, TypeError):
            raise TicketNotFoundError(scanned) from None

    # -- lookups --------------------------------------------------------------

    def get_ticket(self, actor: Actor, ticket_id: TicketId) -> Ticket:
        ticket = self._store.get_ticket(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(str(ticket_id))
        actor.ensure_can_see(ticket.owner_id, ticket.organization_id, f"ticket {ticket_id}")
        return ticket

    def get_by_code(self, actor: Actor, code: str) -> Ticket:
        ticket = self._store.get_by_code(self.code_from_scan(code))
        if ticket is None:
            raise TicketNotFoundError(code)
        actor.ensure_staff_of(ticket.organization_id, f"ticket {ticket.id}")
        return ticket

    def list_tickets(
        self,
        actor: Actor,
        event_id: EventId | None = None,
        purchase_id: PurchaseId | None = None,
        status: TicketStatus | None = None,
    ) -> list[Ticket]:
        return self._store.list_tickets(
            TicketFilter(
                owner_id=actor.buyer_scope(),
                organization_id=actor.organization_scope(),
                or_owner_id=actor.own_scope(),
                event_id=event_id,
                purchase_id=purchase_id,
                status=status,
            )
        )

    # -- state changes --------------------------------------------------------

    def record_scan(self, actor: Actor, scanned: str, location: str | None = None) -> Ticket:
        """Check a ticket in: VALID -> USED.

        Raises:
            TicketNotFoundError: Unknown code or tampered payload.
            ForbiddenError: The scanner is not staff of the ticket's organization.
            TicketAlreadyUsedError, TicketCancelledError, TicketRefundedError,
            TicketExpiredError, TicketNotValidError: The ticket is not VALID.
        """
        code = self.code_from_scan(scanned)
        ticket = self._store.get_by_code(code)
        if ticket is None:
            raise TicketNotFoundError(code)
        actor.ensure_staff_of(ticket.organization_id, f"ticket {ticket.id}")
        if ticket.status is not TicketStatus.VALID:
            raise status_error(ticket.status)

        scanned_ticket = self._store.mark_used(ticket.id, actor.user_id, self._clock(), location)
        if scanned_ticket is None:
            raise status_error(self._current_status(ticket.id))

        logger.info("Ticket %s scanned by user %s", ticket.id, actor.user_id)
        self._notifier.notify(
            "ticket.scanned",
            {
                "ticketId": str(ticket.id),
                "scannedBy": actor.user_id,
                "checkInLocation": location,
            },
        )
        return scanned_ticket

    def transfer(self, actor: Actor, ticket_id: TicketId, new_owner_id: int) -> Ticket:
        """Hand a VALID, transferable ticket owned by `actor` to another user."""
        ticket = self._store.get_ticket(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(str(ticket_id))
        if ticket.owner_id != actor.user_id:
            logger.warning("Access denied: user %s does not own ticket %s", actor.user_id, ticket_id)
            raise ForbiddenError("Only the ticket owner can transfer it")
        if not ticket.is_transferable:
            raise InvalidTransferError("This ticket is not transferable")
        if ticket.status is not TicketStatus.VALID:
            raise status_error(ticket.status)
        if new_owner_id == ticket.owner_id:
            raise InvalidTransferError("Ticket already belongs to this user")
        if not self._identity.user_exists(new_owner_id):
            raise UserNotFoundError(new_owner_id)

        moved = self._store.transfer(ticket.id, ticket.owner_id, new_owner_id, self._clock())
        if moved is None:
            current = self._store.get_ticket(ticket.id)
            if current is not None and current.status is not TicketStatus.VALID:
                raise status_error(current.status)
            raise InvalidTransferError("Ticket changed hands while transferring; retry")

        logger.info("Ticket %s transferred from %s to %s", ticket.id, ticket.owner_id, new_owner_id)
        self._notifier.notify(
            "ticket.transferred",
            {
                "ticketId": str(ticket.id),
                "fromOwnerId": ticket.owner_id,
                "toOwnerId": new_owner_id,
            },
        )
        return moved

    def cancel_ticket(self, actor: Actor, ticket_id: TicketId) -> Ticket:
        ticket = self._store.get_ticket(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(str(ticket_id))
        actor.ensure_staff_of(ticket.organization_id, f"ticket {ticket_id}")
        if not can_transition_ticket(ticket.status, TicketStatus.CANCELLED):
            raise status_error(ticket.status)

        cancelled = self._store.set_status(ticket.id, ticket.status, TicketStatus.CANCELLED)
        if cancelled is None:
            raise status_error(self._current_status(ticket.id))
        logger.info("Ticket %s cancelled by user %s", ticket.id, actor.user_id)
        return cancelled

    def _current_status(self, ticket_id: TicketId) -> TicketStatus:
        current = self._store.get_ticket(ticket_id)
        if current is None:
            raise TicketNotFoundError(str(ticket_id))
        return current.status
