from rest_framework.permissions import BasePermission



class IsAnalyticsManager(BasePermission):
    """
    Allows access to staff users and to members of the 'admin' group.
    """

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return user.is_staff or user.groups.filter(name="admin").exists()
