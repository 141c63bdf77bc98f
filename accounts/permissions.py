from rest_framework import permissions

class IsAdminRole(permissions.BasePermission):
    """
    Allow access only to store admins (role ``admin`` or superusers).
    """
    message = 'Admin access required.'

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and getattr(request.user, 'is_admin', False))

class IsAdminOrReadOnly(permissions.BasePermission):
    """
    Public reads; writes only for store admins.
    """
    message = 'Admin access required.'

    def has_permission(self, request, view):
        if request.method in permissions.SAFE_METHODS:
            return True
        return bool(request.user and request.user.is_authenticated and getattr(request.user, 'is_admin', False))
