"""DRF authentication backed by the backend token kept in the Django session."""
import logging

from rest_framework import authentication, exceptions

logger = logging.getLogger(__name__)


class AdminSessionAuthentication(authentication.BaseAuthentication):
    """
    Authenticate console requests with the admin session.

    ``request.user`` becomes the AdminUser resolved by token validation and
    ``request.auth`` the backend token. Like DRF's SessionAuthentication, unsafe
    methods from an authenticated session must carry a CSRF token.
    """

    def authenticate(self, request):
        admin_session = getattr(request._request, 'admin_session', None)
        if admin_session is None:
            return None

        state = admin_session.validate_token()
        if not state.is_authenticated:
            return None

        self.enforce_csrf(request)
        return (state.user, admin_session.token_store.token)

    def enforce_csrf(self, request):
        def dummy_get_response(request):
            return None

        check = authentication.CSRFCheck(dummy_get_response)
        check.process_request(request)
        reason = check.process_view(request, None, (), {})
        if reason:
            raise exceptions.PermissionDenied(f'CSRF Failed: {reason}')

    def authenticate_header(self, request):
        return 'Session realm="console"'
