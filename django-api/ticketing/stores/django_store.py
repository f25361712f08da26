"""Django ORM implementation of the ticketing stores.

Conditional writes are expressed as ``filter(<precondition>).update(...)`` with
``F()`` expressions, so the database applies check and write as one statement.
"""

import logging
from datetime import datetime

from django.db import IntegrityError, transaction
from django.db.models import F, Q
from django.utils import timezone

from ticketing import models as orm
from ticketing.domain import (
    Capacity,
    Discount,
    DiscountId,
    DiscountScope,
    DiscountType,
    Event,
    EventId,
    InventoryUnit,
    Money,
    OrganizationId,
    PaymentDetails,
    PaymentStatus,
    Product,
    ProductCategoryId,
    ProductId,
    ProductLineItem,
    ProductVariant,
    Purchase,
    PurchaseId,
    RefundRecord,
    SalesWindow,
    StockLevel,
    Ticket,
    TicketId,
    TicketLineItem,
    TicketStatus,
    TicketType,
    TicketTypeId,
    TransferRecord,
    UnitKind,
    UnitStatus,
    VariantId,
)
from ticketing.domain.errors import DuplicateDiscountCodeError
from ticketing.stores.interfaces import (
    CatalogStore,
    DiscountStore,
    InventoryStore,
    PurchaseFilter,
    PurchaseStore,
    TicketFilter,
    TicketStore,
)

logger = logging.getLogger(__name__)

_UNIT_MODELS = {
    UnitKind.TICKET_TYPE: orm.TicketType,
    UnitKind.PRODUCT: orm.Product,
    UnitKind.VARIANT: orm.ProductVariant,
}


def _money(value) -> Money | None:
    return None if value is None else Money(value)


def _to_event(row: orm.Event) -> Event:
    return Event(
        id=EventId(row.id),
        organization_id=OrganizationId(row.organization_id),
        name=row.name,
        currency=row.currency,
        status=UnitStatus(row.status),
    )


def _to_ticket_type(row: orm.TicketType) -> TicketType:
    return TicketType(
        id=TicketTypeId(row.id),
        event_id=EventId(row.event_id),
        organization_id=OrganizationId(row.organization_id),
        name=row.name,
        price=Money(row.price),
        currency=row.currency,
        quantity=Capacity(row.quantity),
        quantity_sold=Capacity(row.quantity_sold),
        sales_window=SalesWindow(row.sales_start, row.sales_end),
        status=UnitStatus(row.status),
        min_purchase_quantity=row.min_purchase_quantity,
        max_purchase_quantity=row.max_purchase_quantity,
        is_transferable=row.is_transferable,
    )


def _to_variant(row: orm.ProductVariant) -> ProductVariant:
    return ProductVariant(
        id=VariantId(row.id),
        product_id=ProductId(row.product_id),
        sku=row.sku,
        price=Money(row.price),
        quantity=Capacity(row.quantity),
        quantity_sold=Capacity(row.quantity_sold),
        sale_price=_money(row.sale_price),
        sale_window=SalesWindow(row.sale_start, row.sale_end),
        status=UnitStatus(row.status),
    )


def _to_product(row: orm.Product) -> Product:
    return Product(
        id=ProductId(row.id),
        organization_id=OrganizationId(row.organization_id),
        category_id=ProductCategoryId(row.category_id),
        name=row.name,
        currency=row.currency,
        price=_money(row.price),
        quantity=Capacity(row.quantity),
        quantity_sold=Capacity(row.quantity_sold),
        sale_price=_money(row.sale_price),
        sale_window=SalesWindow(row.sale_start, row.sale_end),
        status=UnitStatus(row.status),
        variants=tuple(_to_variant(v) for v in row.variants.all()),
    )


def _to_discount(row: orm.Discount) -> Discount:
    return Discount(
        id=DiscountId(row.id),
        organization_id=OrganizationId(row.organization_id),
        code=row.code,
        scope=DiscountScope(row.scope),
        discount_type=DiscountType(row.discount_type),
        value=row.value,
        usage_count=row.usage_count,
        usage_limit=row.usage_limit,
        validity=SalesWindow(row.start_date, row.end_date),
        is_active=row.is_active,
        description=row.description,
        ticket_type_ids=frozenset(TicketTypeId(t.id) for t in row.ticket_types.all()),
        product_ids=frozenset(ProductId(p.id) for p in row.products.all()),
        product_category_ids=frozenset(
            ProductCategoryId(c.id) for c in row.product_categories.all()
        ),
    )


def _to_purchase(row: orm.Purchase) -> Purchase:
    details = None
    if row.transaction_id or row.payment_reference or row.payment_provider or row.payment_date:
        details = PaymentDetails(
            transaction_id=row.transaction_id,
            payment_reference=row.payment_reference,
            payment_provider=row.payment_provider,
            payment_channel=row.payment_channel,
            payment_date=row.payment_date,
            gateway_response=row.gateway_response,
        )
    return Purchase(
        id=PurchaseId(row.id),
        buyer_id=row.buyer_id,
        organization_id=OrganizationId(row.organization_id),
        event_id=EventId(row.event_id) if row.event_id else None,
        currency=row.currency,
        total_amount=Money(row.total_amount),
        discount_amount_saved=Money(row.discount_amount_saved),
        created_at=row.created_at,
        ticket_items=tuple(
            TicketLineItem(
                ticket_type_id=TicketTypeId(item.ticket_type_id),
                quantity=item.quantity,
                unit_price=Money(item.unit_price),
                discount_amount=Money(item.discount_amount),
                reserved=item.reserved,
            )
            for item in row.ticket_items.order_by("id")
        ),
        product_items=tuple(
            ProductLineItem(
                product_id=ProductId(item.product_id),
                variant_id=VariantId(item.variant_id) if item.variant_id else None,
                quantity=item.quantity,
                unit_price=Money(item.unit_price),
                discount_amount=Money(item.discount_amount),
                reserved=item.reserved,
            )
            for item in row.product_items.order_by("id")
        ),
        payment_method=row.payment_method,
        payment_status=PaymentStatus(row.payment_status),
        payment_details=details,
        applied_discount_id=DiscountId(row.applied_discount_id) if row.applied_discount_id else None,
        tickets_issued=row.tickets_issued,
        refund_total=Money(row.refund_total),
        refunds=tuple(
            RefundRecord(
                amount=Money(refund.amount),
                reason=refund.reason,
                actor_id=refund.actor_id,
                refunded_at=refund.refunded_at,
            )
            for refund in row.refunds.all()
        ),
        reconciliation_required=row.reconciliation_required,
        reconciliation_notes=tuple(row.reconciliation_notes or ()),
    )


def _to_ticket(row: orm.Ticket) -> Ticket:
    return Ticket(
        id=TicketId(row.id),
        ticket_type_id=TicketTypeId(row.ticket_type_id),
        event_id=EventId(row.event_id),
        organization_id=OrganizationId(row.organization_id),
        purchase_id=PurchaseId(row.purchase_id),
        owner_id=row.owner_id,
        code=row.code,
        payload=row.payload,
        price_at_purchase=Money(row.price_at_purchase),
        currency=row.currency,
        created_at=row.created_at,
        status=TicketStatus(row.status),
        is_transferable=row.is_transferable,
        scanned_at=row.scanned_at,
        scanned_by=row.scanned_by_id,
        check_in_location=row.check_in_location,
        transfer_history=tuple(
            TransferRecord(t.from_owner_id, t.to_owner_id, t.transferred_at)
            for t in row.transfers.all()
        ),
    )


class DjangoCatalogStore(CatalogStore):
    """Catalog reads using Django ORM."""

    def get_event(self, event_id: EventId) -> Event | None:
        row = orm.Event.objects.filter(pk=event_id.value).first()
        return _to_event(row) if row else None

    def get_ticket_type(self, ticket_type_id: TicketTypeId) -> TicketType | None:
        row = orm.TicketType.objects.filter(pk=ticket_type_id.value).first()
        return _to_ticket_type(row) if row else None

    def get_product(self, product_id: ProductId) -> Product | None:
        row = orm.Product.objects.prefetch_related("variants").filter(pk=product_id.value).first()
        return _to_product(row) if row else None


class DjangoInventoryStore(InventoryStore):
    """Stock counters updated with single conditional UPDATE statements."""

    def reserve(self, unit: InventoryUnit, quantity: int) -> bool:
        reservable = [UnitStatus.ACTIVE.value, UnitStatus.HIDDEN.value]
        updated = (
            _UNIT_MODELS[unit.kind]
            .objects.filter(pk=unit.id.value, quantity__gte=quantity, status__in=reservable)
            .update(quantity=F("quantity") - quantity, quantity_sold=F("quantity_sold") + quantity)
        )
        return updated == 1

    def release(self, unit: InventoryUnit, quantity: int) -> bool:
        updated = (
            _UNIT_MODELS[unit.kind]
            .objects.filter(pk=unit.id.value, quantity_sold__gte=quantity)
            .update(quantity=F("quantity") + quantity, quantity_sold=F("quantity_sold") - quantity)
        )
        return updated == 1

    def get_stock(self, unit: InventoryUnit) -> StockLevel | None:
        row = (
            _UNIT_MODELS[unit.kind]
            .objects.filter(pk=unit.id.value)
            .values("quantity", "quantity_sold", "status")
            .first()
        )
        if row is None:
            return None
        return StockLevel(
            unit=unit,
            quantity=Capacity(row["quantity"]),
            quantity_sold=Capacity(row["quantity_sold"]),
            status=UnitStatus(row["status"]),
        )


class DjangoDiscountStore(DiscountStore):
    def get_discount(self, discount_id: DiscountId) -> Discount | None:
        row = orm.Discount.objects.filter(pk=discount_id.value).first()
        return _to_discount(row) if row else None

    def find_by_code(self, organization_id: OrganizationId, code: str) -> Discount | None:
        row = orm.Discount.objects.filter(
            organization_id=organization_id.value, code__iexact=code.strip()
        ).first()
        return _to_discount(row) if row else None

    def list_discounts(self, organization_id: OrganizationId) -> list[Discount]:
        rows = orm.Discount.objects.filter(organization_id=organization_id.value).prefetch_related(
            "ticket_types", "products", "product_categories"
        )
        return [_to_discount(row) for row in rows]

    def save_discount(self, discount: Discount) -> Discount:
        try:
            with transaction.atomic():
                row, _ = orm.Discount.objects.update_or_create(
                    pk=discount.id.value,
                    defaults={
                        "organization_id": discount.organization_id.value,
                        "code": discount.code,
                        "description": discount.description,
                        "scope": discount.scope.value,
                        "discount_type": discount.discount_type.value,
                        "value": discount.value,
                        "usage_limit": discount.usage_limit,
                        "start_date": discount.validity.starts_at,
                        "end_date": discount.validity.ends_at,
                        "is_active": discount.is_active,
                    },
                )
                row.ticket_types.set([i.value for i in discount.ticket_type_ids])
                row.products.set([i.value for i in discount.product_ids])
                row.product_categories.set([i.value for i in discount.product_category_ids])
        except IntegrityError as exc:
            raise DuplicateDiscountCodeError(discount.code) from exc
        return _to_discount(row)

    def increment_usage(self, discount_id: DiscountId) -> bool:
        updated = (
            orm.Discount.objects.filter(pk=discount_id.value)
            .filter(Q(usage_limit__isnull=True) | Q(usage_count__lt=F("usage_limit")))
            .update(usage_count=F("usage_count") + 1)
        )
        return updated == 1


class DjangoPurchaseStore(PurchaseStore):
    def _load(self, purchase_id: PurchaseId) -> Purchase | None:
        row = (
            orm.Purchase.objects.prefetch_related("ticket_items", "product_items", "refunds")
            .filter(pk=purchase_id.value)
            .first()
        )
        return _to_purchase(row) if row else None

    def create_purchase(self, purchase: Purchase) -> Purchase:
        with transaction.atomic():
            row = orm.Purchase.objects.create(
                id=purchase.id.value,
                buyer_id=purchase.buyer_id,
                organization_id=purchase.organization_id.value,
                event_id=purchase.event_id.value if purchase.event_id else None,
                currency=purchase.currency,
                total_amount=purchase.total_amount.amount,
                discount_amount_saved=purchase.discount_amount_saved.amount,
                applied_discount_id=(
                    purchase.applied_discount_id.value if purchase.applied_discount_id else None
                ),
                payment_method=purchase.payment_method,
                payment_status=purchase.payment_status.value,
                created_at=purchase.created_at,
            )
            orm.PurchaseTicketItem.objects.bulk_create(
                orm.PurchaseTicketItem(
                    purchase=row,
                    ticket_type_id=item.ticket_type_id.value,
                    quantity=item.quantity,
                    unit_price=item.unit_price.amount,
                    discount_amount=item.discount_amount.amount,
                )
                for item in purchase.ticket_items
            )
            orm.PurchaseProductItem.objects.bulk_create(
                orm.PurchaseProductItem(
                    purchase=row,
                    product_id=item.product_id.value,
                    variant_id=item.variant_id.value if item.variant_id else None,
                    quantity=item.quantity,
                    unit_price=item.unit_price.amount,
                    discount_amount=item.discount_amount.amount,
                )
                for item in purchase.product_items
            )
        return self._load(purchase.id)

    def get_purchase(self, purchase_id: PurchaseId) -> Purchase | None:
        return self._load(purchase_id)

    def list_purchases(self, filters: PurchaseFilter) -> list[Purchase]:
        qs = orm.Purchase.objects.prefetch_related("ticket_items", "product_items", "refunds")
        if filters.buyer_id is not None:
            qs = qs.filter(buyer_id=filters.buyer_id)
        if filters.organization_id is not None:
            scope = Q(organization_id=filters.organization_id.value)
            if filters.or_buyer_id is not None:
                scope |= Q(buyer_id=filters.or_buyer_id)
            qs = qs.filter(scope)
        if filters.event_id is not None:
            qs = qs.filter(event_id=filters.event_id.value)
        if filters.payment_status is not None:
            qs = qs.filter(payment_status=filters.payment_status.value)
        return [_to_purchase(row) for row in qs.order_by("-created_at")]

    def transition_status(
        self,
        purchase_id: PurchaseId,
        expected: PaymentStatus,
        target: PaymentStatus,
        payment_details: PaymentDetails | None = None,
    ) -> Purchase | None:
        changes = {"payment_status": target.value, "updated_at": timezone.now()}
        if payment_details is not None:
            changes.update(
                transaction_id=payment_details.transaction_id,
                payment_reference=payment_details.payment_reference,
                payment_provider=payment_details.payment_provider,
                payment_channel=payment_details.payment_channel,
                payment_date=payment_details.payment_date,
                gateway_response=payment_details.gateway_response,
            )
        updated = orm.Purchase.objects.filter(
            pk=purchase_id.value, payment_status=expected.value
        ).update(**changes)
        return self._load(purchase_id) if updated == 1 else None

    def apply_refund(self, purchase_id: PurchaseId, refund: RefundRecord) -> Purchase | None:
        with transaction.atomic():
            updated = (
                orm.Purchase.objects.filter(
                    pk=purchase_id.value,
                    payment_status=PaymentStatus.COMPLETED.value,
                    total_amount__gte=F("refund_total") + refund.amount.amount,
                )
                .update(
                    payment_status=PaymentStatus.REFUNDED.value,
                    refund_total=F("refund_total") + refund.amount.amount,
                    updated_at=timezone.now(),
                )
            )
            if updated != 1:
                return None
            orm.Refund.objects.create(
                purchase_id=purchase_id.value,
                amount=refund.amount.amount,
                reason=refund.reason,
                actor_id=refund.actor_id,
                refunded_at=refund.refunded_at,
            )
        return self._load(purchase_id)

    def set_line_reserved(
        self, purchase_id: PurchaseId, unit: InventoryUnit, reserved: bool
    ) -> None:
        if unit.kind is UnitKind.TICKET_TYPE:
            orm.PurchaseTicketItem.objects.filter(
                purchase_id=purchase_id.value, ticket_type_id=unit.id.value
            ).update(reserved=reserved)
        elif unit.kind is UnitKind.VARIANT:
            orm.PurchaseProductItem.objects.filter(
                purchase_id=purchase_id.value, variant_id=unit.id.value
            ).update(reserved=reserved)
        else:
            orm.PurchaseProductItem.objects.filter(
                purchase_id=purchase_id.value, product_id=unit.id.value, variant__isnull=True
            ).update(reserved=reserved)

    def set_reconciliation(
        self, purchase_id: PurchaseId, required: bool, notes: tuple[str, ...]
    ) -> Purchase:
        orm.Purchase.objects.filter(pk=purchase_id.value).update(
            reconciliation_required=required, reconciliation_notes=list(notes)
        )
        return self._load(purchase_id)

    def delete_purchase(self, purchase_id: PurchaseId) -> bool:
        deleted, _ = orm.Purchase.objects.filter(pk=purchase_id.value).delete()
        return deleted > 0


class DjangoTicketStore(TicketStore):
    def _load(self, ticket_id: TicketId) -> Ticket | None:
        row = orm.Ticket.objects.prefetch_related("transfers").filter(pk=ticket_id.value).first()
        return _to_ticket(row) if row else None

    def issue_tickets(self, purchase_id: PurchaseId, tickets: list[Ticket]) -> bool:
        with transaction.atomic():
            claimed = orm.Purchase.objects.filter(
                pk=purchase_id.value, tickets_issued=False
            ).update(tickets_issued=True)
            if claimed != 1:
                return False
            orm.Ticket.objects.bulk_create(
                orm.Ticket(
                    id=t.id.value,
                    ticket_type_id=t.ticket_type_id.value,
                    event_id=t.event_id.value,
                    organization_id=t.organization_id.value,
                    purchase_id=t.purchase_id.value,
                    owner_id=t.owner_id,
                    status=t.status.value,
                    code=t.code,
                    payload=t.payload,
                    price_at_purchase=t.price_at_purchase.amount,
                    currency=t.currency,
                    is_transferable=t.is_transferable,
                    created_at=t.created_at,
                )
                for t in tickets
            )
        logger.debug("Persisted %d tickets for purchase %s", len(tickets), purchase_id)
        return True

    def code_exists(self, code: str) -> bool:
        return orm.Ticket.objects.filter(code=code).exists()

    def get_ticket(self, ticket_id: TicketId) -> Ticket | None:
        return self._load(ticket_id)

    def get_by_code(self, code: str) -> Ticket | None:
        row = orm.Ticket.objects.prefetch_related("transfers").filter(code=code).first()
        return _to_ticket(row) if row else None

    def list_tickets(self, filters: TicketFilter) -> list[Ticket]:
        qs = orm.Ticket.objects.prefetch_related("transfers")
        if filters.owner_id is not None:
            qs = qs.filter(owner_id=filters.owner_id)
        if filters.organization_id is not None:
            scope = Q(organization_id=filters.organization_id.value)
            if filters.or_owner_id is not None:
                scope |= Q(owner_id=filters.or_owner_id)
            qs = qs.filter(scope)
        if filters.event_id is not None:
            qs = qs.filter(event_id=filters.event_id.value)
        if filters.purchase_id is not None:
            qs = qs.filter(purchase_id=filters.purchase_id.value)
        if filters.status is not None:
            qs = qs.filter(status=filters.status.value)
        return [_to_ticket(row) for row in qs.order_by("-created_at")]

    def mark_used(
        self,
        ticket_id: TicketId,
        scanned_by: int,
        scanned_at: datetime,
        location: str | None,
    ) -> Ticket | None:
        updated = orm.Ticket.objects.filter(
            pk=ticket_id.value, status=TicketStatus.VALID.value
        ).update(
            status=TicketStatus.USED.value,
            scanned_by_id=scanned_by,
            scanned_at=scanned_at,
            check_in_location=location,
        )
        return self._load(ticket_id) if updated == 1 else None

    def invalidate_for_purchase(self, purchase_id: PurchaseId, status: TicketStatus) -> int:
        return orm.Ticket.objects.filter(
            purchase_id=purchase_id.value, status=TicketStatus.VALID.value
        ).update(status=status.value)

    def transfer(
        self,
        ticket_id: TicketId,
        from_owner_id: int,
        to_owner_id: int,
        transferred_at: datetime,
    ) -> Ticket | None:
        with transaction.atomic():
            updated = orm.Ticket.objects.filter(
                pk=ticket_id.value,
                status=TicketStatus.VALID.value,
                owner_id=from_owner_id,
            ).update(owner_id=to_owner_id)
            if updated != 1:
                return None
            orm.TicketTransfer.objects.create(
                ticket_id=ticket_id.value,
                from_owner_id=from_owner_id,
                to_owner_id=to_owner_id,
                transferred_at=transferred_at,
            )
        return self._load(ticket_id)

    def set_status(
        self, ticket_id: TicketId, expected: TicketStatus, target: TicketStatus
    ) -> Ticket | None:
        updated = orm.Ticket.objects.filter(pk=ticket_id.value, status=expected.value).update(
            status=target.value
        )
        return self._load(ticket_id) if updated == 1 else None
