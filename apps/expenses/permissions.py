"""
Custom permissions for the Expenses app.
"""
from rest_framework.permissions import SAFE_METHODS, BasePermission


class IsExpensePayer(BasePermission):
    """
    Only the user who paid the expense can modify or cancel it.
    """
    message = 'Only the payer can modify this expense.'

    def has_object_permission(self, request, view, obj):
        if request.method in SAFE_METHODS:
            return True
        return obj.paid_by_id == request.user.id


class IsTransactionRecipient(BasePermission):
    """
    Only the recipient of a payment can confirm or reject it.
    """
    message = 'Only the recipient can confirm or reject this transaction.'

    def has_object_permission(self, request, view, obj):
        return obj.to_user_id == request.user.id
