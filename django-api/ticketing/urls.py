from django.urls import path

from ticketing.handlers import (
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

urlpatterns = [
    path("purchases", PurchaseListView.as_view(), name="purchase-list"),
    path("purchases/<str:purchase_id>", PurchaseDetailView.as_view(), name="purchase-detail"),
    path(
        "purchases/<str:purchase_id>/payment-status",
        PaymentStatusView.as_view(),
        name="purchase-payment-status",
    ),
    path("purchases/<str:purchase_id>/refund", RefundView.as_view(), name="purchase-refund"),
    path(
        "purchases/<str:purchase_id>/reconcile",
        ReconcileView.as_view(),
        name="purchase-reconcile",
    ),
    path("tickets", TicketListView.as_view(), name="ticket-list"),
    path("tickets/scan", TicketScanView.as_view(), name="ticket-scan"),
    path("tickets/code/<str:code>", TicketByCodeView.as_view(), name="ticket-by-code"),
    path("tickets/<str:ticket_id>", TicketDetailView.as_view(), name="ticket-detail"),
    path(
        "tickets/<str:ticket_id>/transfer",
        TicketTransferView.as_view(),
        name="ticket-transfer",
    ),
    path("tickets/<str:ticket_id>/cancel", TicketCancelView.as_view(), name="ticket-cancel"),
    path("discounts", DiscountListView.as_view(), name="discount-list"),
    path("discounts/<str:discount_id>", DiscountDetailView.as_view(), name="discount-detail"),
]
