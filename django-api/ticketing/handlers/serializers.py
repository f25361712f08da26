"""Serializers for request bodies and for domain models in API responses.

Field names follow the public camelCase contract. Output serializers read
frozen domain dataclasses, never ORM rows.
"""

from rest_framework import serializers

from ticketing.domain import DiscountScope, DiscountType, PaymentStatus, TicketStatus


def _enum_choices(enum) -> list[str]:
    return [member.value for member in enum]


class EnumField(serializers.ChoiceField):
    """Case-insensitive enum input, returned as the enum member."""

    def __init__(self, enum, **kwargs):
        self.enum = enum
        super().__init__(choices=_enum_choices(enum), **kwargs)

    def to_internal_value(self, data):
        for member in self.enum:
            if str(data).lower() == member.value.lower():
                return member
        self.fail("invalid_choice", input=data)

    def to_representation(self, value):
        return value.value


# -- requests -----------------------------------------------------------------


class CartTicketItemSerializer(serializers.Serializer):
    ticketTypeId = serializers.CharField()
    quantity = serializers.IntegerField(min_value=1)


class CartProductItemSerializer(serializers.Serializer):
    productId = serializers.CharField()
    variationId = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    quantity = serializers.IntegerField(min_value=1)


class CreatePurchaseSerializer(serializers.Serializer):
    eventId = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    ticketItems = CartTicketItemSerializer(many=True, required=False, default=list)
    productItems = CartProductItemSerializer(many=True, required=False, default=list)
    paymentMethod = serializers.CharField(max_length=64)
    discountCode = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class PaymentDetailsInputSerializer(serializers.Serializer):
    transactionId = serializers.CharField(required=False, allow_null=True)
    paymentReference = serializers.CharField(required=False, allow_null=True)
    paymentProvider = serializers.CharField(required=False, allow_null=True)
    paymentChannel = serializers.CharField(required=False, allow_null=True)
    paymentDate = serializers.DateTimeField(required=False, allow_null=True)
    gatewayResponse = serializers.JSONField(required=False, allow_null=True)


class PaymentStatusSerializer(serializers.Serializer):
    status = EnumField(PaymentStatus)
    paymentDetails = PaymentDetailsInputSerializer(required=False, allow_null=True)


class RefundSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    reason = serializers.CharField(max_length=500)


class ScanSerializer(serializers.Serializer):
    ticketCode = serializers.CharField()
    checkInLocation = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class TransferSerializer(serializers.Serializer):
    newOwnerId = serializers.IntegerField(min_value=1)


class PurchaseQuerySerializer(serializers.Serializer):
    status = EnumField(PaymentStatus, required=False)
    eventId = serializers.CharField(required=False)
    buyerId = serializers.IntegerField(required=False, min_value=1)


class TicketQuerySerializer(serializers.Serializer):
    status = EnumField(TicketStatus, required=False)
    eventId = serializers.CharField(required=False)
    purchaseId = serializers.CharField(required=False)


class DiscountInputSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=64)
    scope = EnumField(DiscountScope, required=False)
    discountType = EnumField(DiscountType)
    value = serializers.DecimalField(max_digits=10, decimal_places=2)
    usageLimit = serializers.IntegerField(required=False, allow_null=True)
    startDate = serializers.DateTimeField(required=False, allow_null=True)
    endDate = serializers.DateTimeField(required=False, allow_null=True)
    isActive = serializers.BooleanField(required=False, default=True)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    ticketTypeIds = serializers.ListField(child=serializers.CharField(), required=False, default=list)
    productIds = serializers.ListField(child=serializers.CharField(), required=False, default=list)
    productCategoryIds = serializers.ListField(
        child=serializers.CharField(), required=False, default=list
    )


# -- responses ----------------------------------------------------------------


def _amount(source: str) -> serializers.DecimalField:
    return serializers.DecimalField(source=f"{source}.amount", max_digits=12, decimal_places=2)


class TicketLineItemSerializer(serializers.Serializer):
    ticketTypeId = serializers.CharField(source="ticket_type_id")
    quantity = serializers.IntegerField()
    unitPrice = _amount("unit_price")
    discountAmount = _amount("discount_amount")
    reserved = serializers.BooleanField()


class ProductLineItemSerializer(serializers.Serializer):
    productId = serializers.CharField(source="product_id")
    variationId = serializers.CharField(source="variant_id")
    quantity = serializers.IntegerField()
    unitPrice = _amount("unit_price")
    discountAmount = _amount("discount_amount")
    reserved = serializers.BooleanField()


class PaymentDetailsSerializer(serializers.Serializer):
    transactionId = serializers.CharField(source="transaction_id")
    paymentReference = serializers.CharField(source="payment_reference")
    paymentProvider = serializers.CharField(source="payment_provider")
    paymentChannel = serializers.CharField(source="payment_channel")
    paymentDate = serializers.DateTimeField(source="payment_date")


class RefundRecordSerializer(serializers.Serializer):
    amount = _amount("amount")
    reason = serializers.CharField()
    actorId = serializers.IntegerField(source="actor_id")
    refundedAt = serializers.DateTimeField(source="refunded_at")


class PurchaseSerializer(serializers.Serializer):
    """Serializer for Purchase domain model."""

    id = serializers.CharField()
    buyerId = serializers.IntegerField(source="buyer_id")
    organizationId = serializers.CharField(source="organization_id")
    eventId = serializers.CharField(source="event_id")
    ticketItems = TicketLineItemSerializer(source="ticket_items", many=True)
    productItems = ProductLineItemSerializer(source="product_items", many=True)
    totalAmount = _amount("total_amount")
    currency = serializers.CharField()
    appliedDiscountId = serializers.CharField(source="applied_discount_id")
    discountAmountSaved = _amount("discount_amount_saved")
    paymentMethod = serializers.CharField(source="payment_method")
    paymentStatus = serializers.CharField(source="payment_status.value")
    paymentDetails = PaymentDetailsSerializer(source="payment_details")
    ticketsIssued = serializers.BooleanField(source="tickets_issued")
    refundTotal = _amount("refund_total")
    refunds = RefundRecordSerializer(many=True)
    reconciliationRequired = serializers.BooleanField(source="reconciliation_required")
    reconciliationNotes = serializers.ListField(
        source="reconciliation_notes", child=serializers.CharField()
    )
    createdAt = serializers.DateTimeField(source="created_at")


class TransferRecordSerializer(serializers.Serializer):
    fromOwnerId = serializers.IntegerField(source="from_owner_id")
    toOwnerId = serializers.IntegerField(source="to_owner_id")
    transferredAt = serializers.DateTimeField(source="transferred_at")


class TicketSerializer(serializers.Serializer):
    """Serializer for Ticket domain model."""

    id = serializers.CharField()
    ticketTypeId = serializers.CharField(source="ticket_type_id")
    eventId = serializers.CharField(source="event_id")
    organizationId = serializers.CharField(source="organization_id")
    purchaseId = serializers.CharField(source="purchase_id")
    ownerId = serializers.IntegerField(source="owner_id")
    status = serializers.CharField(source="status.value")
    ticketCode = serializers.CharField(source="code")
    qrPayload = serializers.CharField(source="payload")
    priceAtPurchase = _amount("price_at_purchase")
    currency = serializers.CharField()
    isTransferable = serializers.BooleanField(source="is_transferable")
    scannedAt = serializers.DateTimeField(source="scanned_at")
    scannedBy = serializers.IntegerField(source="scanned_by")
    checkInLocation = serializers.CharField(source="check_in_location")
    transferHistory = TransferRecordSerializer(source="transfer_history", many=True)
    createdAt = serializers.DateTimeField(source="created_at")


class DiscountSerializer(serializers.Serializer):
    """Serializer for Discount domain model."""

    id = serializers.CharField()
    organizationId = serializers.CharField(source="organization_id")
    code = serializers.CharField()
    description = serializers.CharField()
    scope = serializers.CharField(source="scope.value")
    discountType = serializers.CharField(source="discount_type.value")
    value = serializers.DecimalField(max_digits=10, decimal_places=2)
    usageLimit = serializers.IntegerField(source="usage_limit")
    usageCount = serializers.IntegerField(source="usage_count")
    startDate = serializers.DateTimeField(source="validity.starts_at")
    endDate = serializers.DateTimeField(source="validity.ends_at")
    isActive = serializers.BooleanField(source="is_active")
    ticketTypeIds = serializers.SerializerMethodField()
    productIds = serializers.SerializerMethodField()
    productCategoryIds = serializers.SerializerMethodField()

    def get_ticketTypeIds(self, obj) -> list[str]:
        return sorted(str(i) for i in obj.ticket_type_ids)

    def get_productIds(self, obj) -> list[str]:
        return sorted(str(i) for i in obj.product_ids)

    def get_productCategoryIds(self, obj) -> list[str]:
        return sorted(str(i) for i in obj.product_category_ids)
