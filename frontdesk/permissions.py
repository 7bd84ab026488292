import logging

from rest_framework import permissions

log = logging.getLogger("frontdesk.auth")


def user_role(user) -> str | None:
    """MANAGER / STAFF / CHEF; None for anonymous users or users without a profile.
    Superusers and Django staff act as MANAGER."""
    if not (user and user.is_authenticated):
        return None
    if user.is_superuser or user.is_staff:
        return "MANAGER"
    profile = getattr(user, "profile", None)
    return getattr(profile, "role", None)


class _RolePermission(permissions.BasePermission):
    roles: tuple = ()

    def has_permission(self, request, view):
        role = user_role(request.user)
        ok = role in self.roles
        if not ok and role is not None:
            log.warning("role %s denied on %s", role, request.path)
        return ok


class IsFrontDesk(_RolePermission):
    """
    Managers and front-desk staff.
    """
    roles = ("MANAGER", "STAFF")


class IsManager(_RolePermission):
    roles = ("MANAGER",)


class FrontDeskEditsManagerDeletes(permissions.BasePermission):
    """Front desk may list, create and edit; deletes and bulk actions are manager-only."""
    roles = ("MANAGER", "STAFF")

    def has_permission(self, request, view):
        role = user_role(request.user)
        if request.method == "DELETE" or getattr(view, "action", None) == "bulk_action":
            return role == "MANAGER"
        return role in self.roles


class KitchenAccess(FrontDeskEditsManagerDeletes):
    roles = ("MANAGER", "STAFF", "CHEF")
