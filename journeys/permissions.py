"""
Role based permission classes.
"""
from rest_framework.permissions import BasePermission

STAFF_ROLES = {"doctor", "staff", "admin"}


def is_staff_user(user) -> bool:
    return bool(user and user.is_authenticated and getattr(user, "role", None) in STAFF_ROLES)


def is_admin_user(user) -> bool:
    return bool(user and user.is_authenticated and getattr(user, "role", None) == "admin")


class IsStaffRole(BasePermission):
    """Hospital personnel: doctors, staff and administrators."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return is_staff_user(getattr(request, "user", None))
