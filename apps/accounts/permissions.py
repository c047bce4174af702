"""
Role based permission classes shared by the dealership apps.

Roles:
    viewer - read inventory
    editor - inventory mutations, expenses, financial reports
    admin  - everything an editor can do plus deleting vehicles

Usage:
    class VehicleViewSet(viewsets.ModelViewSet):
        permission_classes = [IsAuthenticated, CanManageInventoryOrReadOnly]
"""
from rest_framework.permissions import BasePermission, SAFE_METHODS

from .models import UserRole


class HasDealershipRole(BasePermission):
    """
    Permission: user must hold one of ``allowed_roles``.

    Subclasses set ``allowed_roles`` and ``message``.
    """

    allowed_roles = ()
    message = 'You do not have the required role for this action.'

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return user.has_role(*self.allowed_roles)


class CanViewInventory(HasDealershipRole):
    """Any staff role may read inventory."""

    allowed_roles = (UserRole.VIEWER, UserRole.EDITOR, UserRole.ADMIN)
    message = 'Only dealership staff can view inventory.'


class CanManageInventory(HasDealershipRole):
    """Editors and admins may change inventory and sales."""

    allowed_roles = (UserRole.EDITOR, UserRole.ADMIN)
    message = 'Only editors and admins can change inventory records.'


class CanManageInventoryOrReadOnly(BasePermission):
    """Staff may read; only editors and admins may write."""

    message = 'Only editors and admins can change inventory records.'

    def has_permission(self, request, view):
        if request.method in SAFE_METHODS:
            return CanViewInventory().has_permission(request, view)
        return CanManageInventory().has_permission(request, view)


class IsDealershipAdmin(HasDealershipRole):
    """Only admins (e.g. deleting vehicles)."""

    allowed_roles = (UserRole.ADMIN,)
    message = 'Only admins can perform this action.'


class CanViewFinancials(HasDealershipRole):
    """Profit reports, expenses and buyer data."""

    allowed_roles = (UserRole.EDITOR, UserRole.ADMIN)
    message = 'Only editors and admins can view financial data.'
