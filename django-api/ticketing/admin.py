from django.contrib import admin

from ticketing.models import (
    Discount,
    Event,
    Membership,
    Organization,
    Product,
    ProductCategory,
    ProductVariant,
    Purchase,
    PurchaseProductItem,
    PurchaseTicketItem,
    Refund,
    Ticket,
    TicketTransfer,
    TicketType,
)


class TicketTypeInline(admin.TabularInline):
    model = TicketType
    extra = 1


class ProductVariantInline(admin.TabularInline):
    model = ProductVariant
    extra = 1


class PurchaseTicketItemInline(admin.TabularInline):
    model = PurchaseTicketItem
    extra = 0
    readonly_fields = ["ticket_type", "quantity", "unit_price", "discount_amount", "reserved"]


class PurchaseProductItemInline(admin.TabularInline):
    model = PurchaseProductItem
    extra = 0
    readonly_fields = [
        "product",
        "variant",
        "quantity",
        "unit_price",
        "discount_amount",
        "reserved",
    ]


class RefundInline(admin.TabularInline):
    model = Refund
    extra = 0
    readonly_fields = ["amount", "reason", "actor", "refunded_at"]


class TicketTransferInline(admin.TabularInline):
    model = TicketTransfer
    extra = 0
    readonly_fields = ["from_owner", "to_owner", "transferred_at"]


@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ["name", "created_at"]
    search_fields = ["name"]


@admin.register(Membership)
class MembershipAdmin(admin.ModelAdmin):
    list_display = ["user", "organization", "role"]
    list_filter = ["role", "organization"]


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ["name", "organization", "currency", "status", "created_at"]
    list_filter = ["status", "organization"]
    search_fields = ["name"]
    inlines = [TicketTypeInline]


@admin.register(TicketType)
class TicketTypeAdmin(admin.ModelAdmin):
    list_display = ["name", "event", "price", "quantity", "quantity_sold", "status"]
    list_filter = ["event", "status"]


@admin.register(ProductCategory)
class ProductCategoryAdmin(admin.ModelAdmin):
    list_display = ["name", "organization"]


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ["name", "organization", "price", "quantity", "quantity_sold", "status"]
    list_filter = ["status", "category"]
    search_fields = ["name"]
    inlines = [ProductVariantInline]


@admin.register(Discount)
class DiscountAdmin(admin.ModelAdmin):
    list_display = ["code", "organization", "scope", "discount_type", "value", "usage_count", "is_active"]
    list_filter = ["scope", "discount_type", "is_active"]
    search_fields = ["code"]


@admin.register(Purchase)
class PurchaseAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "buyer",
        "organization",
        "total_amount",
        "currency",
        "payment_status",
        "tickets_issued",
        "reconciliation_required",
        "created_at",
    ]
    list_filter = ["payment_status", "reconciliation_required", "organization"]
    readonly_fields = ["tickets_issued", "refund_total", "reconciliation_notes"]
    inlines = [PurchaseTicketItemInline, PurchaseProductItemInline, RefundInline]


@admin.register(Ticket)
class TicketAdmin(admin.ModelAdmin):
    list_display = ["code", "ticket_type", "owner", "status", "scanned_at"]
    list_filter = ["status", "event"]
    search_fields = ["code"]
    readonly_fields = ["code", "payload", "purchase"]
    inlines = [TicketTransferInline]
