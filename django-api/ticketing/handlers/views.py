"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call services for business logic
- Let domain errors propagate to the exception handler
- Never contain business logic
- Never expose internal error details
"""

from functools import lru_cache

from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from ticketing.domain import (
    DiscountId,
    EventId,
    OrganizationId,
    PaymentDetails,
    ProductCategoryId,
    ProductId,
    PurchaseId,
    TicketId,
    TicketTypeId,
    VariantId,
)
from ticketing.domain.errors import InvalidDiscountError
from ticketing.handlers.pagination import TicketingPagination
from ticketing.handlers.permissions import CanApplyPaymentSignal
from ticketing.handlers.serializers import (
    CreatePurchaseSerializer,
    DiscountInputSerializer,
    DiscountSerializer,
    PaymentStatusSerializer,
    PurchaseQuerySerializer,
    PurchaseSerializer,
    RefundSerializer,
    ScanSerializer,
    TicketQuerySerializer,
    TicketSerializer,
    TransferSerializer,
)
from ticketing.services import Actor, Cart, CartProductItem, CartTicketItem, DiscountDraft
from ticketing.services.common import parse_id
from ticketing.services.discount_service import window
from ticketing.wiring import Services, django_services


@lru_cache(maxsize=1)
def get_services() -> Services:
    return django_services()


class TicketingView(APIView):
    """Shared plumbing: service access, caller resolution, pagination."""

    @property
    def services(self) -> Services:
        return get_services()

    def actor(self, request: Request) -> Actor:
        return Actor.resolve(self.services.identity, request.user.pk)

    def paginate(self, request: Request, items: list, serializer_class) -> Response:
        paginator = TicketingPagination()
        page = paginator.paginate_queryset(items, request, view=self)
        return paginator.get_paginated_response(serializer_class(page, many=True).data)


def _optional_id(id_cls, raw, field):
    if raw in (None, ""):
        return None
    return parse_id(id_cls, raw, field)


# -- purchases ----------------------------------------------------------------


class PurchaseListView(TicketingView):
    """Handler for GET/POST /api/purchases"""

    def get(self, request: Request) -> Response:
        query = PurchaseQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data
        purchases = self.services.purchases.list_purchases(
            self.actor(request),
            status=params.get("status"),
            event_id=_optional_id(EventId, params.get("eventId"), "eventId"),
            buyer_id=params.get("buyerId"),
        )
        return self.paginate(request, purchases, PurchaseSerializer)

    def post(self, request: Request) -> Response:
        body = CreatePurchaseSerializer(data=request.data)
        body.is_valid(raise_exception=True)
        data = body.validated_data
        cart = Cart(
            event_id=_optional_id(EventId, data.get("eventId"), "eventId"),
            ticket_items=tuple(
                CartTicketItem(
                    ticket_type_id=parse_id(TicketTypeId, item["ticketTypeId"], "ticketTypeId"),
                    quantity=item["quantity"],
                )
                for item in data["ticketItems"]
            ),
            product_items=tuple(
                CartProductItem(
                    product_id=parse_id(ProductId, item["productId"], "productId"),
                    variant_id=_optional_id(VariantId, item.get("variationId"), "variationId"),
                    quantity=item["quantity"],
                )
                for item in data["productItems"]
            ),
            payment_method=data["paymentMethod"],
            discount_code=data.get("discountCode") or None,
        )
        purchase = self.services.purchases.create_purchase(cart, request.user.pk)
        return Response(PurchaseSerializer(purchase).data, status=status.HTTP_201_CREATED)


class PurchaseDetailView(TicketingView):
    """Handler for GET/DELETE /api/purchases/{purchase_id}"""

    def get(self, request: Request, purchase_id: str) -> Response:
        purchase = self.services.purchases.get_purchase(
            self.actor(request), parse_id(PurchaseId, purchase_id, "purchaseId")
        )
        return Response(PurchaseSerializer(purchase).data)

    def delete(self, request: Request, purchase_id: str) -> Response:
        self.services.purchases.purge_purchase(
            self.actor(request), parse_id(PurchaseId, purchase_id, "purchaseId")
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


class PaymentStatusView(TicketingView):
    """Handler for PATCH /api/purchases/{purchase_id}/payment-status"""

    permission_classes = [CanApplyPaymentSignal]

    def patch(self, request: Request, purchase_id: str) -> Response:
        body = PaymentStatusSerializer(data=request.data)
        body.is_valid(raise_exception=True)
        details = body.validated_data.get("paymentDetails")
        purchase = self.services.payments.update_payment_status(
            parse_id(PurchaseId, purchase_id, "purchaseId"),
            body.validated_data["status"],
            payment_details=_payment_details(details) if details else None,
            actor_id=request.user.pk,
        )
        return Response(PurchaseSerializer(purchase).data)


def _payment_details(data: dict) -> PaymentDetails:
    return PaymentDetails(
        transaction_id=data.get("transactionId"),
        payment_reference=data.get("paymentReference"),
        payment_provider=data.get("paymentProvider"),
        payment_channel=data.get("paymentChannel"),
        payment_date=data.get("paymentDate"),
        gateway_response=data.get("gatewayResponse"),
    )


class RefundView(TicketingView):
    """Handler for POST /api/purchases/{purchase_id}/refund"""

    def post(self, request: Request, purchase_id: str) -> Response:
        body = RefundSerializer(data=request.data)
        body.is_valid(raise_exception=True)
        purchase = self.services.purchases.get_managed_purchase(
            self.actor(request), parse_id(PurchaseId, purchase_id, "purchaseId")
        )
        refunded = self.services.payments.refund(
            purchase.id,
            body.validated_data["amount"],
            body.validated_data["reason"],
            actor_id=request.user.pk,
        )
        return Response(PurchaseSerializer(refunded).data)


class ReconcileView(TicketingView):
    """Handler for POST /api/purchases/{purchase_id}/reconcile"""

    def post(self, request: Request, purchase_id: str) -> Response:
        pid = parse_id(PurchaseId, purchase_id, "purchaseId")
        self.actor(request).ensure_admin(f"purchase {pid}")
        return Response(PurchaseSerializer(self.services.payments.reconcile(pid)).data)


# -- tickets ------------------------------------------------------------------


class TicketListView(TicketingView):
    """Handler for GET /api/tickets"""

    def get(self, request: Request) -> Response:
        query = TicketQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data
        tickets = self.services.tickets.list_tickets(
            self.actor(request),
            event_id=_optional_id(EventId, params.get("eventId"), "eventId"),
            purchase_id=_optional_id(PurchaseId, params.get("purchaseId"), "purchaseId"),
            status=params.get("status"),
        )
        return self.paginate(request, tickets, TicketSerializer)


class TicketDetailView(TicketingView):
    """Handler for GET /api/tickets/{ticket_id}"""

    def get(self, request: Request, ticket_id: str) -> Response:
        ticket = self.services.tickets.get_ticket(
            self.actor(request), parse_id(TicketId, ticket_id, "ticketId")
        )
        return Response(TicketSerializer(ticket).data)


class TicketByCodeView(TicketingView):
    """Handler for GET /api/tickets/code/{code}"""

    def get(self, request: Request, code: str) -> Response:
        ticket = self.services.tickets.get_by_code(self.actor(request), code)
        return Response(TicketSerializer(ticket).data)


class TicketScanView(TicketingView):
    """Handler for POST /api/tickets/scan"""

    def post(self, request: Request) -> Response:
        body = ScanSerializer(data=request.data)
        body.is_valid(raise_exception=True)
        ticket = self.services.tickets.record_scan(
            self.actor(request),
            body.validated_data["ticketCode"],
            body.validated_data.get("checkInLocation") or None,
        )
        return Response(TicketSerializer(ticket).data)


class TicketTransferView(TicketingView):
    """Handler for POST /api/tickets/{ticket_id}/transfer"""

    def post(self, request: Request, ticket_id: str) -> Response:
        body = TransferSerializer(data=request.data)
        body.is_valid(raise_exception=True)
        ticket = self.services.tickets.transfer(
            self.actor(request),
            parse_id(TicketId, ticket_id, "ticketId"),
            body.validated_data["newOwnerId"],
        )
        return Response(TicketSerializer(ticket).data)


class TicketCancelView(TicketingView):
    """Handler for POST /api/tickets/{ticket_id}/cancel"""

    def post(self, request: Request, ticket_id: str) -> Response:
        ticket = self.services.tickets.cancel_ticket(
            self.actor(request), parse_id(TicketId, ticket_id, "ticketId")
        )
        return Response(TicketSerializer(ticket).data)


# -- discounts ----------------------------------------------------------------


def _discount_draft(data: dict) -> DiscountDraft:
    return DiscountDraft(
        code=data["code"],
        scope=data.get("scope"),
        discount_type=data["discountType"],
        value=data["value"],
        usage_limit=data.get("usageLimit"),
        validity=window(data.get("startDate"), data.get("endDate")),
        is_active=data["isActive"],
        description=data["description"],
        ticket_type_ids=frozenset(
            parse_id(TicketTypeId, raw, "ticketTypeIds") for raw in data["ticketTypeIds"]
        ),
        product_ids=frozenset(parse_id(ProductId, raw, "productIds") for raw in data["productIds"]),
        product_category_ids=frozenset(
            parse_id(ProductCategoryId, raw, "productCategoryIds")
            for raw in data["productCategoryIds"]
        ),
    )


class DiscountListView(TicketingView):
    """Handler for GET/POST /api/discounts"""

    def _organization(self, request: Request, actor: Actor) -> OrganizationId:
        raw = request.query_params.get("organizationId")
        if raw:
            return parse_id(OrganizationId, raw, "organizationId")
        if actor.organization_id is None:
            raise InvalidDiscountError("organizationId is required")
        return actor.organization_id

    def get(self, request: Request) -> Response:
        actor = self.actor(request)
        discounts = self.services.discounts.list_discounts(actor, self._organization(request, actor))
        return self.paginate(request, discounts, DiscountSerializer)

    def post(self, request: Request) -> Response:
        body = DiscountInputSerializer(data=request.data)
        body.is_valid(raise_exception=True)
        actor = self.actor(request)
        discount = self.services.discounts.create_discount(
            actor, self._organization(request, actor), _discount_draft(body.validated_data)
        )
        return Response(DiscountSerializer(discount).data, status=status.HTTP_201_CREATED)


class DiscountDetailView(TicketingView):
    """Handler for GET/PUT/DELETE /api/discounts/{discount_id}

    DELETE deactivates the code; discounts referenced by purchases are kept.
    """

    def get(self, request: Request, discount_id: str) -> Response:
        discount = self.services.discounts.get_discount(
            self.actor(request), parse_id(DiscountId, discount_id, "discountId")
        )
        return Response(DiscountSerializer(discount).data)

    def put(self, request: Request, discount_id: str) -> Response:
        body = DiscountInputSerializer(data=request.data)
        body.is_valid(raise_exception=True)
        discount = self.services.discounts.update_discount(
            self.actor(request),
            parse_id(DiscountId, discount_id, "discountId"),
            _discount_draft(body.validated_data),
        )
        return Response(DiscountSerializer(discount).data)

    def delete(self, request: Request, discount_id: str) -> Response:
        discount = self.services.discounts.deactivate_discount(
            self.actor(request), parse_id(DiscountId, discount_id, "discountId")
        )
        return Response(DiscountSerializer(discount).data)
