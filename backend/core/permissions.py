from rest_framework.permissions import BasePermission, SAFE_METHODS


class IsAdminRole(BasePermission):
    """Allows access only to users with the ADMIN role"""
    message = 'Admin access required.'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and getattr(user, 'is_admin_role', False))


def is_owner_or_admin(user, owner_id):
    """True when ``user`` owns the record or is an admin"""
    if not user or not user.is_authenticated:
        return False
    return user.is_admin_role or (owner_id is not None and owner_id == user.id)


class IsAdminRoleOrReadOnly(IsAdminRole):
    """Anyone may read; writes need the ADMIN role"""

    def has_permission(self, request, view):
        if request.method in SAFE_METHODS:
            return True
        return super().has_permission(request, view)
