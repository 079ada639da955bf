"""
Role-based permissions for the order fulfillment API.

Roles are Django auth groups (ADMIN, VENDOR, ACCOUNTS, OPS); superusers
always count as ADMIN.
"""

from rest_framework.permissions import BasePermission

from .context import ActorContext, Role


class HasRole(BasePermission):
    """
    Allows access to authenticated users holding any of ``roles``.

    Subclasses only set ``roles``.
    """

    roles = ()

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return ActorContext.for_user(user).has_role(*self.roles)


class IsAdminOrOps(HasRole):
    """Back-office staff who enter orders and receive goods."""
    roles = (Role.ADMIN, Role.OPS)


class IsAdminOpsOrAccounts(HasRole):
    roles = (Role.ADMIN, Role.OPS, Role.ACCOUNTS)


class IsVendor(HasRole):
    """
    Vendor users. The view still has to scope every query to the vendor
    linked to ``request.user``.
    """
    roles = (Role.VENDOR,)

    def has_permission(self, request, view):
        if not super().has_permission(request, view):
            return False
        return hasattr(request.user, 'vendor_profile')


class IsVendorOrBackOffice(HasRole):
    roles = (Role.VENDOR, Role.ADMIN, Role.OPS)
