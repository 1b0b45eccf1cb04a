from rest_framework.permissions import BasePermission


class HasRole(BasePermission):
    """
    Allows access only to authenticated users whose role is in ``roles``.
    Keeps role check logic centralized.
    """
    roles = ()

    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return False
        return getattr(user, "role", None) in self.roles


class IsClient(HasRole):
    roles = ("client",)


class IsDriver(HasRole):
    roles = ("driver",)


class IsAffiliate(HasRole):
    roles = ("affiliate",)


class IsAdminOrOwner(HasRole):
    roles = ("admin", "owner")


class IsOwner(HasRole):
    roles = ("owner",)


class IsClientOrDriver(HasRole):
    roles = ("client", "driver")
