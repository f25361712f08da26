"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/models.py.
"""

import uuid

from django.conf import settings
from django.db import models

from ticketing.domain.models import (
    DiscountScope,
    DiscountType,
    PaymentStatus,
    Role,
    TicketStatus,
    UnitStatus,
)


def _choices(enum_cls) -> list[tuple[str, str]]:
    return [(member.value, member.name.replace("_", " ").title()) for member in enum_cls]


class Organization(models.Model):
    """Tenant owning events, products and discounts."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.name


class Membership(models.Model):
    """Links a user to their role and, for staff, their organization."""

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="membership"
    )
    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name="memberships",
        null=True,
        blank=True,
    )
    role = models.CharField(max_length=16, choices=_choices(Role), default=Role.CUSTOMER.value)

    def __str__(self) -> str:
        return f"{self.user} ({self.role})"


class Event(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name="events")
    name = models.CharField(max_length=255)
    currency = models.CharField(max_length=3)
    status = models.CharField(
        max_length=16, choices=_choices(UnitStatus), default=UnitStatus.ACTIVE.value
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["organization", "status"]),
        ]

    def __str__(self) -> str:
        return self.name


class TicketType(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="ticket_types")
    organization = models.ForeignKey(
        Organization, on_delete=models.CASCADE, related_name="ticket_types"
    )
    name = models.CharField(max_length=100)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3)
    quantity = models.PositiveIntegerField()
    quantity_sold = models.PositiveIntegerField(default=0)
    sales_start = models.DateTimeField(null=True, blank=True)
    sales_end = models.DateTimeField(null=True, blank=True)
    status = models.CharField(
        max_length=16, choices=_choices(UnitStatus), default=UnitStatus.ACTIVE.value
    )
    min_purchase_quantity = models.PositiveIntegerField(default=1)
    max_purchase_quantity = models.PositiveIntegerField(null=True, blank=True)
    is_transferable = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["event"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=0), name="ticket_type_quantity_non_negative"
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} - {self.price}"


class ProductCategory(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization = models.ForeignKey(
        Organization, on_delete=models.CASCADE, related_name="product_categories"
    )
    name = models.CharField(max_length=100)

    class Meta:
        verbose_name_plural = "product categories"

    def __str__(self) -> str:
        return self.name


class Product(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name="products")
    category = models.ForeignKey(
        ProductCategory, on_delete=models.PROTECT, related_name="products"
    )
    name = models.CharField(max_length=255)
    currency = models.CharField(max_length=3)
    price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    sale_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    sale_start = models.DateTimeField(null=True, blank=True)
    sale_end = models.DateTimeField(null=True, blank=True)
    quantity = models.PositiveIntegerField(default=0)
    quantity_sold = models.PositiveIntegerField(default=0)
    status = models.CharField(
        max_length=16, choices=_choices(UnitStatus), default=UnitStatus.ACTIVE.value
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["organization", "status"]),
        ]

    def __str__(self) -> str:
        return self.name


class ProductVariant(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name="variants")
    sku = models.CharField(max_length=64)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    sale_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    sale_start = models.DateTimeField(null=True, blank=True)
    sale_end = models.DateTimeField(null=True, blank=True)
    quantity = models.PositiveIntegerField(default=0)
    quantity_sold = models.PositiveIntegerField(default=0)
    status = models.CharField(
        max_length=16, choices=_choices(UnitStatus), default=UnitStatus.ACTIVE.value
    )

    def __str__(self) -> str:
        return self.sku


class Discount(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization = models.ForeignKey(
        Organization, on_delete=models.CASCADE, related_name="discounts"
    )
    code = models.CharField(max_length=64)
    description = models.CharField(max_length=255, blank=True, default="")
    scope = models.CharField(max_length=16, choices=_choices(DiscountScope))
    discount_type = models.CharField(max_length=16, choices=_choices(DiscountType))
    value = models.DecimalField(max_digits=10, decimal_places=2)
    usage_limit = models.PositiveIntegerField(null=True, blank=True)
    usage_count = models.PositiveIntegerField(default=0)
    start_date = models.DateTimeField(null=True, blank=True)
    end_date = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    ticket_types = models.ManyToManyField(TicketType, blank=True, related_name="discounts")
    products = models.ManyToManyField(Product, blank=True, related_name="discounts")
    product_categories = models.ManyToManyField(
        ProductCategory, blank=True, related_name="discounts"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["code"]
        constraints = [
            # codes are stored upper-case, so this is case-insensitive
            models.UniqueConstraint(
                fields=["organization", "code"], name="uniq_discount_code_per_org"
            ),
        ]

    def __str__(self) -> str:
        return self.code


class Purchase(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    buyer = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="purchases"
    )
    organization = models.ForeignKey(
        Organization, on_delete=models.PROTECT, related_name="purchases"
    )
    event = models.ForeignKey(
        Event, on_delete=models.PROTECT, related_name="purchases", null=True, blank=True
    )
    currency = models.CharField(max_length=3)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    discount_amount_saved = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    applied_discount = models.ForeignKey(
        Discount, on_delete=models.SET_NULL, related_name="purchases", null=True, blank=True
    )
    payment_method = models.CharField(max_length=64, blank=True, default="")
    payment_status = models.CharField(
        max_length=16,
        choices=_choices(PaymentStatus),
        default=PaymentStatus.PENDING.value,
        db_index=True,
    )
    transaction_id = models.CharField(max_length=255, blank=True, null=True)
    payment_reference = models.CharField(max_length=255, blank=True, null=True)
    payment_provider = models.CharField(max_length=64, blank=True, null=True)
    payment_channel = models.CharField(max_length=64, blank=True, null=True)
    payment_date = models.DateTimeField(null=True, blank=True)
    gateway_response = models.JSONField(null=True, blank=True)
    tickets_issued = models.BooleanField(default=False)
    refund_total = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    reconciliation_required = models.BooleanField(default=False, db_index=True)
    reconciliation_notes = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField()
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        permissions = [("apply_payment_signal", "Can apply payment status signals")]
        indexes = [
            models.Index(fields=["buyer", "payment_status"]),
            models.Index(fields=["organization", "payment_status"]),
        ]

    def __str__(self) -> str:
        return f"Purchase {self.id} ({self.get_payment_status_display()})"


class PurchaseTicketItem(models.Model):
    purchase = models.ForeignKey(Purchase, on_delete=models.CASCADE, related_name="ticket_items")
    ticket_type = models.ForeignKey(TicketType, on_delete=models.PROTECT, related_name="+")
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    reserved = models.BooleanField(default=False)


class PurchaseProductItem(models.Model):
    purchase = models.ForeignKey(Purchase, on_delete=models.CASCADE, related_name="product_items")
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name="+")
    variant = models.ForeignKey(
        ProductVariant, on_delete=models.PROTECT, related_name="+", null=True, blank=True
    )
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    reserved = models.BooleanField(default=False)


class Refund(models.Model):
    purchase = models.ForeignKey(Purchase, on_delete=models.CASCADE, related_name="refunds")
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    reason = models.CharField(max_length=255)
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="+",
        null=True,
        blank=True,
    )
    refunded_at = models.DateTimeField()

    class Meta:
        ordering = ["refunded_at"]


class Ticket(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    ticket_type = models.ForeignKey(TicketType, on_delete=models.PROTECT, related_name="tickets")
    event = models.ForeignKey(Event, on_delete=models.PROTECT, related_name="tickets")
    organization = models.ForeignKey(Organization, on_delete=models.PROTECT, related_name="tickets")
    purchase = models.ForeignKey(Purchase, on_delete=models.CASCADE, related_name="tickets")
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="tickets"
    )
    status = models.CharField(
        max_length=16,
        choices=_choices(TicketStatus),
        default=TicketStatus.VALID.value,
        db_index=True,
    )
    code = models.CharField(max_length=32, unique=True)
    payload = models.TextField()
    price_at_purchase = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3)
    is_transferable = models.BooleanField(default=False)
    scanned_at = models.DateTimeField(null=True, blank=True)
    scanned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="+",
        null=True,
        blank=True,
    )
    check_in_location = models.CharField(max_length=255, null=True, blank=True)
    created_at = models.DateTimeField()
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["purchase"]),
            models.Index(fields=["owner"]),
            models.Index(fields=["organization", "status"]),
        ]

    def __str__(self) -> str:
        return self.code


class TicketTransfer(models.Model):
    ticket = models.ForeignKey(Ticket, on_delete=models.CASCADE, related_name="transfers")
    from_owner = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="+"
    )
    to_owner = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="+"
    )
    transferred_at = models.DateTimeField()

    class Meta:
        ordering = ["transferred_at"]
