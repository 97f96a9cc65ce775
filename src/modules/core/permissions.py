from rest_framework.permissions import BasePermission

from modules.core.identity import Role


class IsOperator(BasePermission):
    """Back-office roles (ADMIN, STAFF) only."""

    allowed_roles = frozenset({Role.ADMIN, Role.STAFF})

    def has_permission(self, request, view) -> bool:
        return getattr(request.user, "role", None) in self.allowed_roles
