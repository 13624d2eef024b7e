# apps/accounts/permissions.py
from rest_framework import permissions

from .models import UserRole


class HasRole(permissions.BasePermission):
    role = None
    message = "You do not have access to this resource."

    def has_permission(self, request, view):
        return bool(
            request.user and
            request.user.is_authenticated and
            request.user.roles.filter(role=self.role).exists()
        )


class IsStore(HasRole):
    role = UserRole.STORE
    message = "Store account required."


class IsDriver(HasRole):
    role = UserRole.DRIVER
    message = "Driver account required."
