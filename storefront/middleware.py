"""Middleware for the admin session."""
import logging

from django.utils.functional import SimpleLazyObject

from storefront.auth_state import SessionTokenStore
from storefront.notifications import Notifier
from storefront.services import AdminSession

logger = logging.getLogger(__name__)


def get_admin_session(request):
    if not hasattr(request, '_cached_admin_session'):
        request._cached_admin_session = AdminSession(
            SessionTokenStore(request.session),
            notifier=Notifier(request),
        )
    return request._cached_admin_session


class AdminSessionMiddleware:
    """Attach the visitor's AdminSession to the request (built on first use)."""
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if not hasattr(request, 'session'):
            raise RuntimeError(
                'AdminSessionMiddleware requires SessionMiddleware to be installed before it.'
            )
        request.admin_session = SimpleLazyObject(lambda: get_admin_session(request))
        return self.get_response(request)
