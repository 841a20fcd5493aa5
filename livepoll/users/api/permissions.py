from rest_framework.permissions import BasePermission

from livepoll.users.models import User


def _role(request) -> str | None:
    u = getattr(request, "user", None)
    if not (u and getattr(u, "is_authenticated", False)):
        return None
    return getattr(u, "role", None)


class IsPresenterOrAdmin(BasePermission):
    """Allow access only to presenter and admin accounts."""

    def has_permission(self, request, view):
        return _role(request) in (User.Role.PRESENTER, User.Role.ADMIN)


class IsAdminRole(BasePermission):
    """Allow access only to admin accounts."""

    def has_permission(self, request, view):
        return _role(request) == User.Role.ADMIN


class IsOwnerOrAdmin(BasePermission):
    """Object-level check against ``obj.presenter_id``."""

    def has_object_permission(self, request, view, obj):
        if _role(request) == User.Role.ADMIN:
            return True
        return getattr(obj, "presenter_id", None) == getattr(request.user, "id", None)
