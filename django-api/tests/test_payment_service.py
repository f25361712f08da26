"""Tests for PaymentService: completion, reconciliation and refunds."""

import logging
import threading
from dataclasses import replace
from decimal import Decimal

import pytest
from conftest import BUYER_ID, STAFF_ID

from ticketing.domain import (
    Capacity,
    DiscountType,
    Money,
    PaymentDetails,
    PaymentStatus,
    TicketStatus,
)
from ticketing.domain.errors import (
    InvalidPaymentTransitionError,
    InvalidRefundError,
    PurchaseNotCompletedError,
    PurchaseNotFoundError,
    RefundExceedsTotalError,
)
from ticketing.domain.value_objects import PurchaseId
from ticketing.services import Cart, CartProductItem, CartTicketItem


@pytest.fixture
def event(catalog):
    return catalog.event()


@pytest.fixture
def place_order(services, event):
    def place(ticket_type, quantity=1, discount_code=None, buyer_id=BUYER_ID):
        cart = Cart(
            event_id=event.id,
            ticket_items=(CartTicketItem(ticket_type.id, quantity),),
            payment_method="card",
            discount_code=discount_code,
        )
        return services.purchases.create_purchase(cart, buyer_id)

    return place


def tickets_of(services, actors, purchase):
    return services.tickets.list_tickets(actors["admin"], purchase_id=purchase.id)


def complete(services, purchase):
    return services.payments.update_payment_status(purchase.id, PaymentStatus.COMPLETED)


class TestCompletion:
    def test_completion_reserves_stock_and_issues_tickets(
        self, services, actors, catalog, event, place_order, store
    ):
        ticket_type = catalog.ticket_type(event, quantity=5)
        purchase = place_order(ticket_type, 2)

        completed = complete(services, purchase)

        assert completed.payment_status is PaymentStatus.COMPLETED
        assert completed.tickets_issued
        assert completed.all_lines_reserved
        assert store.get_ticket_type(ticket_type.id).quantity.value == 3
        tickets = tickets_of(services, actors, purchase)
        assert len(tickets) == 2
        assert {t.status for t in tickets} == {TicketStatus.VALID}
        assert {t.owner_id for t in tickets} == {BUYER_ID}

    def test_payment_details_are_recorded(self, services, catalog, event, place_order):
        purchase = place_order(catalog.ticket_type(event))
        details = PaymentDetails(transaction_id="tx_123", payment_provider="stripe")

        completed = services.payments.update_payment_status(
            purchase.id, PaymentStatus.COMPLETED, details
        )

        assert completed.payment_details == details

    def test_duplicate_completion_is_a_no_op(
        self, services, actors, catalog, event, place_order, store
    ):
        """A repeated COMPLETED signal mints no extra tickets and takes no extra stock."""
        ticket_type = catalog.ticket_type(event, quantity=5)
        discount = catalog.discount()
        purchase = place_order(ticket_type, 2, discount_code=discount.code)

        complete(services, purchase)
        again = complete(services, purchase)

        assert again.payment_status is PaymentStatus.COMPLETED
        assert len(tickets_of(services, actors, purchase)) == 2
        assert store.get_ticket_type(ticket_type.id).quantity.value == 3
        assert store.get_discount(discount.id).usage_count == 1

    def test_concurrent_completion_fulfils_once(
        self, services, actors, catalog, event, place_order, store
    ):
        ticket_type = catalog.ticket_type(event, quantity=5)
        purchase = place_order(ticket_type, 3)
        barrier = threading.Barrier(6)
        errors: list[Exception] = []

        def signal():
            barrier.wait()
            try:
                complete(services, purchase)
            except Exception as exc:  # noqa: BLE001
                errors.append(exc)

        threads = [threading.Thread(target=signal) for _ in range(6)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len(tickets_of(services, actors, purchase)) == 3
        assert store.get_ticket_type(ticket_type.id).quantity.value == 2

    def test_completion_notifies(self, services, catalog, event, place_order, notifier):
        purchase = place_order(catalog.ticket_type(event))

        complete(services, purchase)

        events = notifier.events()
        assert events[0] == "purchase.created"
        assert "tickets.issued" in events
        assert events[-1] == "purchase.completed"

    def test_product_only_purchase_issues_no_tickets(self, services, actors, catalog, store):
        shirt = catalog.product(quantity=4)
        purchase = services.purchases.create_purchase(
            Cart(product_items=(CartProductItem(shirt.id, 2),), payment_method="card"), BUYER_ID
        )

        completed = complete(services, purchase)

        assert completed.all_lines_reserved
        assert tickets_of(services, actors, purchase) == []
        assert store.get_product(shirt.id).quantity.value == 2

    def test_unknown_purchase(self, services):
        with pytest.raises(PurchaseNotFoundError):
            services.payments.update_payment_status(PurchaseId.new(), PaymentStatus.COMPLETED)


class TestTransitions:
    @pytest.mark.parametrize("outcome", [PaymentStatus.FAILED, PaymentStatus.CANCELLED])
    def test_failed_or_cancelled_purchase_leaves_stock(
        self, services, actors, catalog, event, place_order, store, outcome
    ):
        ticket_type = catalog.ticket_type(event, quantity=5)
        purchase = place_order(ticket_type, 2)

        updated = services.payments.update_payment_status(purchase.id, outcome)

        assert updated.payment_status is outcome
        assert store.get_ticket_type(ticket_type.id).quantity.value == 5
        assert tickets_of(services, actors, purchase) == []

    @pytest.mark.parametrize("terminal", [PaymentStatus.FAILED, PaymentStatus.CANCELLED])
    def test_terminal_purchase_cannot_complete(self, services, catalog, event, place_order, terminal):
        purchase = place_order(catalog.ticket_type(event))
        services.payments.update_payment_status(purchase.id, terminal)

        with pytest.raises(InvalidPaymentTransitionError):
            complete(services, purchase)

    def test_pending_cannot_be_refunded_by_signal(self, services, catalog, event, place_order):
        purchase = place_order(catalog.ticket_type(event))

        with pytest.raises(InvalidPaymentTransitionError):
            services.payments.update_payment_status(purchase.id, PaymentStatus.REFUNDED)

    def test_completed_cannot_fail(self, services, catalog, event, place_order):
        purchase = place_order(catalog.ticket_type(event))
        complete(services, purchase)

        with pytest.raises(InvalidPaymentTransitionError):
            services.payments.update_payment_status(purchase.id, PaymentStatus.FAILED)

    def test_refunded_signal_refunds_in_full(self, services, actors, catalog, event, place_order):
        purchase = place_order(catalog.ticket_type(event, price="40"), 2)
        complete(services, purchase)

        refunded = services.payments.update_payment_status(purchase.id, PaymentStatus.REFUNDED)

        assert refunded.payment_status is PaymentStatus.REFUNDED
        assert refunded.refund_total == Money(Decimal("80"))
        assert refunded.refunds[0].reason == "Refunded by payment provider"
        assert {t.status for t in tickets_of(services, actors, purchase)} == {
            TicketStatus.REFUNDED
        }

    def test_refunded_signal_on_free_purchase(
        self, services, actors, catalog, event, place_order, store
    ):
        """Given a fully discounted purchase, a REFUNDED signal still returns its stock."""
        ticket_type = catalog.ticket_type(event, quantity=5)
        catalog.discount(code="FREE", discount_type=DiscountType.PERCENTAGE, value="100")
        purchase = complete(services, place_order(ticket_type, 2, discount_code="FREE"))
        assert purchase.total_amount == Money.zero()

        refunded = services.payments.update_payment_status(purchase.id, PaymentStatus.REFUNDED)

        assert refunded.payment_status is PaymentStatus.REFUNDED
        assert refunded.refund_total == Money.zero()
        assert store.get_ticket_type(ticket_type.id).quantity.value == 5
        assert {t.status for t in tickets_of(services, actors, purchase)} == {
            TicketStatus.REFUNDED
        }

class TestReservationFailure:
    def test_last_unit_sold_twice_flags_second_purchase(
        self, services, actors, catalog, event, place_order, notifier, caplog
    ):
        """Two pending purchases for the last unit: the second one to pay is flagged."""
        ticket_type = catalog.ticket_type(event, quantity=1)
        first = place_order(ticket_type)
        second = place_order(ticket_type)

        complete(services, first)
        with caplog.at_level(logging.CRITICAL, logger="ticketing.reconciliation"):
            flagged = complete(services, second)

        assert flagged.payment_status is PaymentStatus.COMPLETED
        assert flagged.reconciliation_required
        assert not flagged.tickets_issued
        assert not flagged.all_lines_reserved
        assert tickets_of(services, actors, second) == []
        assert any(
            r.name == "ticketing.reconciliation" and r.levelno == logging.CRITICAL
            for r in caplog.records
        )
        assert "purchase.reconciliation_required" in notifier.events()

    def test_reconcile_after_restock_issues_tickets(
        self, services, actors, catalog, event, place_order, store
    ):
        ticket_type = catalog.ticket_type(event, quantity=1)
        discount = catalog.discount()
        first = place_order(ticket_type)
        second = place_order(ticket_type, discount_code=discount.code)
        complete(services, first)
        complete(services, second)
        current = store.get_ticket_type(ticket_type.id)
        store.add_ticket_type(replace(current, quantity=Capacity(1)))

        reconciled = services.payments.reconcile(second.id)

        assert not reconciled.reconciliation_required
        assert reconciled.tickets_issued
        assert len(tickets_of(services, actors, second)) == 1
        assert store.get_discount(discount.id).usage_count == 1

    def test_reconcile_of_fulfilled_purchase_is_a_no_op(self, services, catalog, event, place_order):
        purchase = place_order(catalog.ticket_type(event))
        completed = complete(services, purchase)

        assert services.payments.reconcile(purchase.id) == completed

    def test_reconcile_requires_completed_purchase(self, services, catalog, event, place_order):
        purchase = place_order(catalog.ticket_type(event))

        with pytest.raises(PurchaseNotCompletedError):
            services.payments.reconcile(purchase.id)


class TestRefund:
    @pytest.fixture
    def completed(self, services, catalog, event, place_order):
        ticket_type = catalog.ticket_type(event, price="50", quantity=5)
        purchase = complete(services, place_order(ticket_type, 2))
        return purchase, ticket_type

    def test_refund_releases_stock_and_keeps_used_tickets(
        self, services, actors, store, completed, notifier
    ):
        purchase, ticket_type = completed
        used, _ = tickets_of(services, actors, purchase)
        services.tickets.record_scan(actors["staff"], used.code)

        refunded = services.payments.refund(purchase.id, "100", "Event postponed", STAFF_ID)

        assert refunded.payment_status is PaymentStatus.REFUNDED
        assert not any(item.reserved for item in refunded.line_items)
        assert store.get_ticket_type(ticket_type.id).quantity.value == 5
        statuses = {t.id: t.status for t in tickets_of(services, actors, purchase)}
        assert statuses.pop(used.id) is TicketStatus.USED
        assert set(statuses.values()) == {TicketStatus.REFUNDED}
        assert refunded.refunds[0].actor_id == STAFF_ID
        assert notifier.events()[-1] == "purchase.refunded"

    def test_partial_refund_is_recorded(self, services, completed):
        purchase, _ = completed

        refunded = services.payments.refund(purchase.id, Decimal("30"), "Goodwill")

        assert refunded.refund_total == Money(Decimal("30"))
        assert refunded.refundable_amount == Money(Decimal("70"))

    def test_refund_more_than_total(self, services, completed):
        purchase, _ = completed

        with pytest.raises(RefundExceedsTotalError):
            services.payments.refund(purchase.id, "100.01", "Too much")

    def test_second_refund_is_rejected(self, services, completed):
        purchase, _ = completed
        services.payments.refund(purchase.id, "10", "First")

        with pytest.raises(InvalidPaymentTransitionError):
            services.payments.refund(purchase.id, "10", "Second")

    @pytest.mark.parametrize("amount", ["0", "0.001", "-5", "abc", "NaN", None])
    def test_amount_must_be_positive_number(self, services, completed, amount):
        purchase, _ = completed

        with pytest.raises(InvalidRefundError):
            services.payments.refund(purchase.id, amount, "Bad amount")

    def test_pending_purchase_cannot_be_refunded(self, services, catalog, event, place_order):
        purchase = place_order(catalog.ticket_type(event))

        with pytest.raises(InvalidPaymentTransitionError):
            services.payments.refund(purchase.id, "1", "Not paid")
