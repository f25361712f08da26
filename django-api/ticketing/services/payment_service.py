"""Payment state machine.

Status changes are written with a compare-and-swap first; side effects run only
for the caller whose swap applied, so duplicate payment callbacks cannot commit
stock or mint tickets twice.
"""

import logging
from decimal import Decimal, InvalidOperation

from ticketing.collaborators import Notifier
from ticketing.domain import (
    Money,
    PaymentDetails,
    PaymentStatus,
    Purchase,
    PurchaseId,
    RefundRecord,
    TicketStatus,
)
from ticketing.domain.errors import (
    CriticalReconciliationError,
    DomainError,
    InvalidPaymentTransitionError,
    InvalidRefundError,
    PurchaseNotCompletedError,
    PurchaseNotFoundError,
    RefundExceedsTotalError,
)
from ticketing.domain.lifecycle import validate_transition
from ticketing.services.common import Clock, default_clock
from ticketing.services.discount_service import DiscountService
from ticketing.services.inventory_service import InventoryService
from ticketing.services.ticket_service import TicketService
from ticketing.stores.interfaces import PurchaseStore

logger = logging.getLogger(__name__)
reconciliation_logger = logging.getLogger("ticketing.reconciliation")

STATUS_EVENTS = {
    PaymentStatus.COMPLETED: "purchase.completed",
    PaymentStatus.FAILED: "purchase.failed",
    PaymentStatus.CANCELLED: "purchase.cancelled",
}


class PaymentService:
    def __init__(
        self,
        purchases: PurchaseStore,
        inventory: InventoryService,
        discounts: DiscountService,
        tickets: TicketService,
        notifier: Notifier,
        clock: Clock = default_clock,
    ) -> None:
        self._purchases = purchases
        self._inventory = inventory
        self._discounts = discounts
        self._tickets = tickets
        self._notifier = notifier
        self._clock = clock

    def _load(self, purchase_id: PurchaseId) -> Purchase:
        purchase = self._purchases.get_purchase(purchase_id)
        if purchase is None:
            raise PurchaseNotFoundError(str(purchase_id))
        return purchase

    def update_payment_status(
        self,
        purchase_id: PurchaseId,
        target: PaymentStatus,
        payment_details: PaymentDetails | None = None,
        actor_id: int | None = None,
    ) -> Purchase:
        """Apply an external payment signal.

        COMPLETED on an already COMPLETED purchase is a no-op. REFUNDED is a
        full refund of whatever is still refundable.

        Raises:
            PurchaseNotFoundError: Unknown purchase.
            InvalidPaymentTransitionError: The transition is not allowed.
        """
        purchase = self._load(purchase_id)

        if target is PaymentStatus.REFUNDED:
            if purchase.payment_status is not PaymentStatus.COMPLETED:
                raise InvalidPaymentTransitionError(purchase.payment_status.value, target.value)
            # a zero-total purchase still moves to REFUNDED and gives its stock back
            return self._apply_refund(
                purchase_id, purchase.refundable_amount, "Refunded by payment provider", actor_id
            )

        if target is PaymentStatus.COMPLETED and purchase.payment_status is target:
            logger.info("Duplicate completion for purchase %s ignored", purchase_id)
            return purchase

        validate_transition(purchase.payment_status, target)
        updated = self._purchases.transition_status(
            purchase_id, purchase.payment_status, target, payment_details
        )
        if updated is None:
            # Lost the race; whoever won already ran the side effects.
            current = self._load(purchase_id)
            if target is PaymentStatus.COMPLETED and current.payment_status is target:
                return current
            raise InvalidPaymentTransitionError(current.payment_status.value, target.value)

        logger.info(
            "Purchase %s payment status %s -> %s",
            purchase_id,
            purchase.payment_status.value,
            target.value,
        )
        if target is PaymentStatus.COMPLETED:
            updated = self._fulfil(updated, count_discount=True)
        self._notifier.notify(
            STATUS_EVENTS[target],
            {
                "purchaseId": str(purchase_id),
                "buyerId": updated.buyer_id,
                "status": target.value,
                "totalAmount": str(updated.total_amount),
            },
        )
        return updated

    def _fulfil(self, purchase: Purchase, count_discount: bool) -> Purchase:
        """Commit stock, count the discount and mint tickets for a COMPLETED purchase.

        Lines already reserved are skipped, so this is safe to re-drive. Any
        reservation failure leaves the purchase COMPLETED, flagged for
        reconciliation and without tickets.
        """
        failures: list[str] = []
        for item in purchase.line_items:
            if item.reserved:
                continue
            try:
                self._inventory.reserve(item.unit, item.quantity)
            except DomainError as exc:
                failures.append(f"{item.unit}: {exc.code.value}")
                continue
            self._purchases.set_line_reserved(purchase.id, item.unit, True)

        if count_discount and purchase.applied_discount_id is not None:
            self._discounts.increment_usage_count(purchase.applied_discount_id)

        if failures:
            error = CriticalReconciliationError(str(purchase.id), failures)
            reconciliation_logger.critical(
                "Purchase %s paid but not fulfilled: %s", purchase.id, "; ".join(failures)
            )
            flagged = self._purchases.set_reconciliation(purchase.id, True, tuple(failures))
            self._notifier.notify(
                "purchase.reconciliation_required",
                {
                    "purchaseId": str(purchase.id),
                    "code": error.code.value,
                    "failures": failures,
                },
            )
            return flagged

        if purchase.reconciliation_required:
            self._purchases.set_reconciliation(purchase.id, False, ())
        self._tickets.issue_for_purchase(self._load(purchase.id))
        return self._load(purchase.id)

    def reconcile(self, purchase_id: PurchaseId) -> Purchase:
        """Re-drive outstanding reservations and ticket issuance for a COMPLETED purchase."""
        purchase = self._load(purchase_id)
        if purchase.payment_status is not PaymentStatus.COMPLETED:
            raise PurchaseNotCompletedError(purchase.payment_status.value)
        if purchase.all_lines_reserved and purchase.tickets_issued:
            return purchase
        logger.info("Reconciling purchase %s", purchase_id)
        return self._fulfil(purchase, count_discount=False)

    def refund(
        self,
        purchase_id: PurchaseId,
        amount,
        reason: str,
        actor_id: int | None = None,
    ) -> Purchase:
        """Refund a COMPLETED purchase, fully or partially.

        All reserved stock goes back and every VALID ticket becomes REFUNDED;
        USED tickets keep their scan history.

        Raises:
            InvalidRefundError: Non-positive or malformed amount.
            InvalidPaymentTransitionError: The purchase is not COMPLETED.
            RefundExceedsTotalError: The amount is more than is refundable.
        """
        refund_amount = _parse_amount(amount)
        return self._apply_refund(purchase_id, refund_amount, reason, actor_id)

    def _apply_refund(
        self,
        purchase_id: PurchaseId,
        refund_amount: Money,
        reason: str,
        actor_id: int | None,
    ) -> Purchase:
        purchase = self._load(purchase_id)
        if purchase.payment_status is not PaymentStatus.COMPLETED:
            raise InvalidPaymentTransitionError(
                purchase.payment_status.value, PaymentStatus.REFUNDED.value
            )
        if purchase.refundable_amount < refund_amount:
            raise RefundExceedsTotalError(str(purchase.refundable_amount))

        refunded = self._purchases.apply_refund(
            purchase_id,
            RefundRecord(
                amount=refund_amount,
                reason=reason or "",
                actor_id=actor_id,
                refunded_at=self._clock(),
            ),
        )
        if refunded is None:
            current = self._load(purchase_id)
            if current.payment_status is not PaymentStatus.COMPLETED:
                raise InvalidPaymentTransitionError(
                    current.payment_status.value, PaymentStatus.REFUNDED.value
                )
            raise RefundExceedsTotalError(str(current.refundable_amount))

        for item in refunded.line_items:
            if not item.reserved:
                continue
            try:
                self._inventory.release(item.unit, item.quantity)
            except DomainError as exc:
                reconciliation_logger.critical(
                    "Purchase %s refunded but %s could not be released: %s",
                    purchase_id,
                    item.unit,
                    exc,
                )
                continue
            self._purchases.set_line_reserved(purchase_id, item.unit, False)
        self._tickets.invalidate_for_purchase(purchase_id, TicketStatus.REFUNDED)

        logger.info("Purchase %s refunded %s %s", purchase_id, refund_amount, refunded.currency)
        self._notifier.notify(
            "purchase.refunded",
            {
                "purchaseId": str(purchase_id),
                "buyerId": refunded.buyer_id,
                "amount": str(refund_amount),
                "reason": reason,
            },
        )
        return self._load(purchase_id)


def _parse_amount(amount) -> Money:
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidRefundError("Refund amount must be a number") from None
    if not value.is_finite():
        raise InvalidRefundError("Refund amount must be a number")
    if value <= 0 or Money(value).amount <= 0:
        raise InvalidRefundError("Refund amount must be greater than zero")
    return Money(value)
