from ticketing.handlers.views import (
    DiscountDetailView,
    DiscountListView,
    PaymentStatusView,
    PurchaseDetailView,
    PurchaseListView,
    ReconcileView,
    RefundView,
    TicketByCodeView,
    TicketCancelView,
    TicketDetailView,
    TicketListView,
    TicketScanView,
    TicketTransferView,
)

__all__ = [
    "DiscountDetailView",
    "DiscountListView",
    "PaymentStatusView",
    "PurchaseDetailView",
    "PurchaseListView",
    "ReconcileView",
    "RefundView",
    "TicketByCodeView",
    "TicketCancelView",
    "TicketDetailView",
    "TicketListView",
    "TicketScanView",
    "TicketTransferView",
]
