from rest_framework import permissions
import logging

logger = logging.getLogger(__name__)


class IsConsoleAdmin(permissions.BasePermission):
    """
    Only allow visitors whose session token validated for an admin user.

    Applies to every console endpoint except login/registration.
    """
    def has_permission(self, request, view):
        user = request.user
        if not (user and user.is_authenticated):
            return False
        if user.role != 'admin':
            logger.warning(f'Non-admin user {user.email} attempted console access')
            return False
        return True


class IsAnonymousVisitor(permissions.BasePermission):
    """
    Login and registration are only offered to visitors without a valid session.
    """
    message = 'Already logged in.'

    def has_permission(self, request, view):
        return not (request.user and request.user.is_authenticated)
