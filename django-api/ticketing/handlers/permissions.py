from rest_framework.permissions import BasePermission


class CanApplyPaymentSignal(BasePermission):
    """Payment gateway proxies and admins may push payment status changes."""

    message = "Only payment gateway callers may update payment status"

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return user.is_superuser or user.has_perm("ticketing.apply_payment_signal")
