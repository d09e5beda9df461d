from rest_framework.permissions import BasePermission

from .identity import identity_from_user


class IsStaff(BasePermission):
    message = "Staff accounts only."

    def has_permission(self, request, view):
        return identity_from_user(request.user).is_staff


class IsFrontDesk(BasePermission):
    message = "Front-desk staff only."

    def has_permission(self, request, view):
        return identity_from_user(request.user).is_elevated
