"""Integration tests for the ticketing HTTP API.

Run with: pytest tests/test_api.py -v
"""

import uuid

import pytest
from rest_framework.test import APIClient

from ticketing import models as orm


@pytest.fixture
def as_user(api_client: APIClient):
    def login(user) -> APIClient:
        api_client.force_authenticate(user=user)
        return api_client

    return login


@pytest.fixture
def cart(event_row, ticket_type_row):
    return {
        "eventId": str(event_row.id),
        "ticketItems": [{"ticketTypeId": str(ticket_type_row.id), "quantity": 2}],
        "paymentMethod": "card",
    }


@pytest.fixture
def purchase_id(as_user, people, cart) -> str:
    response = as_user(people.buyer).post("/api/purchases", cart, format="json")
    assert response.status_code == 201
    return response.data["id"]


@pytest.fixture
def paid_purchase_id(as_user, people, purchase_id) -> str:
    response = as_user(people.gateway).patch(
        f"/api/purchases/{purchase_id}/payment-status",
        {"status": "completed", "paymentDetails": {"transactionId": "tx_1"}},
        format="json",
    )
    assert response.status_code == 200
    return purchase_id


def ticket_codes(purchase_id: str) -> list[str]:
    return list(orm.Ticket.objects.filter(purchase_id=purchase_id).values_list("code", flat=True))


@pytest.mark.django_db
class TestCreatePurchase:
    """Tests for POST /api/purchases"""

    def test_create_purchase_returns_pending_purchase(self, as_user, people, cart):
        """Given a valid cart, returns 201 with the priced purchase."""
        response = as_user(people.buyer).post("/api/purchases", cart, format="json")

        assert response.status_code == 201
        assert response.data["paymentStatus"] == "pending"
        assert response.data["totalAmount"] == "2000.00"
        assert response.data["buyerId"] == people.buyer.pk
        assert response.data["ticketsIssued"] is False

    def test_create_purchase_with_discount(self, as_user, people, cart, org_row):
        """Given a fixed discount code, line prices are reduced."""
        orm.Discount.objects.create(
            organization=org_row,
            code="SAVE200",
            scope="EVENT",
            discount_type="FIXED_AMOUNT",
            value=200,
        )

        response = as_user(people.buyer).post(
            "/api/purchases", {**cart, "discountCode": "save200"}, format="json"
        )

        assert response.status_code == 201
        assert response.data["totalAmount"] == "1600.00"
        assert response.data["discountAmountSaved"] == "400.00"

    def test_requires_authentication(self, api_client, cart):
        """Given no credentials, the request is refused."""
        response = api_client.post("/api/purchases", cart, format="json")

        assert response.status_code in (401, 403)

    def test_empty_cart(self, as_user, people):
        """Given no items, returns 400 INVALID_CART."""
        response = as_user(people.buyer).post(
            "/api/purchases", {"paymentMethod": "card"}, format="json"
        )

        assert response.status_code == 400
        assert response.data == {
            "code": "INVALID_CART",
            "message": "Purchase must include at least one ticket or product",
        }

    def test_invalid_identifier(self, as_user, people, cart):
        """Given a malformed ticket type id, returns 400."""
        cart["ticketItems"][0]["ticketTypeId"] = "not-a-uuid"

        response = as_user(people.buyer).post("/api/purchases", cart, format="json")

        assert response.status_code == 400
        assert response.data["code"] == "INVALID_IDENTIFIER"

    def test_unknown_event(self, as_user, people, cart):
        """Given an unknown event, returns 404."""
        cart["eventId"] = str(uuid.uuid4())

        response = as_user(people.buyer).post("/api/purchases", cart, format="json")

        assert response.status_code == 404
        assert response.data["code"] == "EVENT_NOT_FOUND"

    def test_insufficient_stock(self, as_user, people, cart):
        """Given more tickets than remain, returns 409."""
        cart["ticketItems"][0]["quantity"] = 6

        response = as_user(people.buyer).post("/api/purchases", cart, format="json")

        assert response.status_code == 409
        assert response.data["code"] == "INSUFFICIENT_STOCK"


@pytest.mark.django_db
class TestPurchaseRead:
    """Tests for GET /api/purchases and /api/purchases/{id}"""

    def test_buyer_reads_own_purchase(self, as_user, people, purchase_id):
        """Given the buyer's purchase, returns 200."""
        response = as_user(people.buyer).get(f"/api/purchases/{purchase_id}")

        assert response.status_code == 200
        assert response.data["id"] == purchase_id

    def test_other_buyer_is_forbidden(self, as_user, people, purchase_id):
        """Given someone else's purchase, returns 403."""
        response = as_user(people.other_buyer).get(f"/api/purchases/{purchase_id}")

        assert response.status_code == 403
        assert response.data["code"] == "FORBIDDEN"

    def test_listing_is_paginated_and_scoped(self, as_user, people, purchase_id):
        """Staff see the organization's purchases; other buyers see none."""
        staff_list = as_user(people.staff).get("/api/purchases", {"status": "PENDING"})
        other_list = as_user(people.other_buyer).get("/api/purchases")

        assert staff_list.data["count"] == 1
        assert staff_list.data["results"][0]["id"] == purchase_id
        assert other_list.data["count"] == 0

    def test_unknown_purchase(self, as_user, people):
        """Given an unknown id, returns 404."""
        response = as_user(people.admin).get(f"/api/purchases/{uuid.uuid4()}")

        assert response.status_code == 404


@pytest.mark.django_db
class TestPaymentStatus:
    """Tests for PATCH /api/purchases/{id}/payment-status"""

    def test_buyer_cannot_signal_payment(self, as_user, people, purchase_id):
        """Given a customer, returns 403."""
        response = as_user(people.buyer).patch(
            f"/api/purchases/{purchase_id}/payment-status", {"status": "completed"}, format="json"
        )

        assert response.status_code == 403

    def test_completion_issues_tickets_once(self, as_user, people, paid_purchase_id):
        """Given a repeated completion, tickets are issued only once."""
        response = as_user(people.gateway).patch(
            f"/api/purchases/{paid_purchase_id}/payment-status",
            {"status": "completed"},
            format="json",
        )

        assert response.status_code == 200
        assert response.data["ticketsIssued"] is True
        assert response.data["paymentDetails"]["transactionId"] == "tx_1"
        assert len(ticket_codes(paid_purchase_id)) == 2

    def test_invalid_transition(self, as_user, people, paid_purchase_id):
        """Given a completed purchase, FAILED returns 409."""
        response = as_user(people.gateway).patch(
            f"/api/purchases/{paid_purchase_id}/payment-status", {"status": "failed"}, format="json"
        )

        assert response.status_code == 409
        assert response.data["code"] == "INVALID_PAYMENT_TRANSITION"

    def test_unknown_status_value(self, as_user, people, purchase_id):
        """Given an unknown status, returns 400."""
        response = as_user(people.gateway).patch(
            f"/api/purchases/{purchase_id}/payment-status", {"status": "paid"}, format="json"
        )

        assert response.status_code == 400


@pytest.mark.django_db
class TestRefundAndAdmin:
    """Tests for refund, reconcile and purge endpoints."""

    def test_staff_refunds_purchase(self, as_user, people, paid_purchase_id, ticket_type_row):
        """Given a completed purchase, staff refund returns 200 and restores stock."""
        response = as_user(people.staff).post(
            f"/api/purchases/{paid_purchase_id}/refund",
            {"amount": "2000.00", "reason": "Show cancelled"},
            format="json",
        )

        ticket_type_row.refresh_from_db()
        assert response.status_code == 200
        assert response.data["paymentStatus"] == "refunded"
        assert response.data["refunds"][0]["actorId"] == people.staff.pk
        assert ticket_type_row.quantity == 5

    def test_buyer_cannot_refund(self, as_user, people, paid_purchase_id):
        """Given a customer, returns 403."""
        response = as_user(people.buyer).post(
            f"/api/purchases/{paid_purchase_id}/refund",
            {"amount": "10", "reason": "Changed my mind"},
            format="json",
        )

        assert response.status_code == 403

    def test_refund_exceeding_total(self, as_user, people, paid_purchase_id):
        """Given an amount above the total, returns 409."""
        response = as_user(people.staff).post(
            f"/api/purchases/{paid_purchase_id}/refund",
            {"amount": "2000.01", "reason": "Too much"},
            format="json",
        )

        assert response.status_code == 409
        assert response.data["code"] == "REFUND_EXCEEDS_TOTAL"

    def test_reconcile_requires_completed_purchase(self, as_user, people, purchase_id):
        """Given a pending purchase, reconcile returns 409."""
        response = as_user(people.admin).post(f"/api/purchases/{purchase_id}/reconcile")

        assert response.status_code == 409
        assert response.data["code"] == "PURCHASE_NOT_COMPLETED"

    def test_purge_is_admin_only(self, as_user, people, paid_purchase_id):
        """Staff get 403; an admin purge returns 204 and removes tickets."""
        assert as_user(people.staff).delete(f"/api/purchases/{paid_purchase_id}").status_code == 403

        response = as_user(people.admin).delete(f"/api/purchases/{paid_purchase_id}")

        assert response.status_code == 204
        assert ticket_codes(paid_purchase_id) == []


@pytest.mark.django_db
class TestTickets:
    """Tests for the ticket endpoints."""

    def test_scan_twice(self, as_user, people, paid_purchase_id):
        """The first scan admits; the second returns 409 TICKET_ALREADY_USED."""
        code = ticket_codes(paid_purchase_id)[0]
        client = as_user(people.staff)

        first = client.post(
            "/api/tickets/scan", {"ticketCode": code, "checkInLocation": "Door 2"}, format="json"
        )
        second = client.post("/api/tickets/scan", {"ticketCode": code}, format="json")

        assert first.status_code == 200
        assert first.data["status"] == "used"
        assert first.data["checkInLocation"] == "Door 2"
        assert second.status_code == 409
        assert second.data["code"] == "TICKET_ALREADY_USED"

    def test_buyer_lists_own_tickets(self, as_user, people, paid_purchase_id):
        """Given an issued purchase, the buyer sees both tickets with QR payloads."""
        response = as_user(people.buyer).get("/api/tickets", {"purchaseId": paid_purchase_id})

        assert response.status_code == 200
        assert response.data["count"] == 2
        assert all(t["qrPayload"] for t in response.data["results"])

    def test_lookup_by_code_is_staff_only(self, as_user, people, paid_purchase_id):
        code = ticket_codes(paid_purchase_id)[0]

        assert as_user(people.staff).get(f"/api/tickets/code/{code}").status_code == 200
        assert as_user(people.buyer).get(f"/api/tickets/code/{code}").status_code == 403

    def test_transfer(self, as_user, people, paid_purchase_id):
        """Given a transferable ticket, the owner can hand it over."""
        ticket = orm.Ticket.objects.filter(purchase_id=paid_purchase_id).first()

        response = as_user(people.buyer).post(
            f"/api/tickets/{ticket.id}/transfer",
            {"newOwnerId": people.other_buyer.pk},
            format="json",
        )

        assert response.status_code == 200
        assert response.data["ownerId"] == people.other_buyer.pk
        assert response.data["transferHistory"][0]["fromOwnerId"] == people.buyer.pk

    def test_cancel(self, as_user, people, paid_purchase_id):
        ticket = orm.Ticket.objects.filter(purchase_id=paid_purchase_id).first()

        response = as_user(people.staff).post(f"/api/tickets/{ticket.id}/cancel")

        assert response.status_code == 200
        assert response.data["status"] == "cancelled"


@pytest.mark.django_db
class TestDiscounts:
    """Tests for /api/discounts"""

    def test_staff_creates_discount(self, as_user, people):
        """Given a new code, returns 201 with the code upper-cased."""
        response = as_user(people.staff).post(
            "/api/discounts",
            {"code": "spring", "scope": "event", "discountType": "percentage", "value": "10"},
            format="json",
        )

        assert response.status_code == 201
        assert response.data["code"] == "SPRING"
        assert response.data["usageCount"] == 0

    def test_duplicate_code(self, as_user, people):
        """Given an existing code, returns 409."""
        body = {"code": "SPRING", "scope": "EVENT", "discountType": "PERCENTAGE", "value": "10"}
        client = as_user(people.staff)
        client.post("/api/discounts", body, format="json")

        response = client.post("/api/discounts", body, format="json")

        assert response.status_code == 409
        assert response.data["code"] == "DUPLICATE_DISCOUNT_CODE"

    def test_customers_cannot_list(self, as_user, people, org_row):
        response = as_user(people.buyer).get("/api/discounts", {"organizationId": str(org_row.id)})

        assert response.status_code == 403

    def test_delete_deactivates(self, as_user, people):
        client = as_user(people.staff)
        created = client.post(
            "/api/discounts",
            {"code": "GONE", "scope": "EVENT", "discountType": "FIXED_AMOUNT", "value": "5"},
            format="json",
        )

        response = client.delete(f"/api/discounts/{created.data['id']}")

        assert response.status_code == 200
        assert response.data["isActive"] is False
