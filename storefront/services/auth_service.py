"""Auth service for admin login, registration, token validation and logout."""
import hashlib
import logging
from typing import Optional, Tuple

from storefront import auth_state
from storefront.api_client import ApiClient
from storefront.auth_state import AdminUser, AuthState, SessionTokenStore
from storefront.cache import RequestCache, auth_validation_policy
from storefront.exceptions import ApiError
from storefront.notifications import Notifier
from storefront.services.base import envelope_data

logger = logging.getLogger(__name__)

# Reads only a signed-in admin can make; the public catalogue stays cached across logouts
CONSOLE_NAMESPACES = ('order-inquiries', 'order-inquiry', 'order-inquiry-stats', 'product-stats')


class AuthService:
    """Calls to the backend /auth endpoints."""

    def __init__(self, client: ApiClient):
        self.client = client

    @staticmethod
    def _token_and_user(body) -> Tuple[str, AdminUser]:
        data = envelope_data(body)
        token = data.get('token')
        if not token:
            raise ApiError('Authentication response had no token', status=502, error_code='INVALID_RESPONSE')
        return token, AdminUser.from_api(data.get('user') or {})

    def login(self, email: str, password: str) -> Tuple[str, AdminUser]:
        body = self.client.post('/auth/login', {'email': email, 'password': password}, keep_backend_message=True)
        return self._token_and_user(body)

    def register(self, username: str, email: str, password: str) -> Tuple[str, AdminUser]:
        payload = {'username': username, 'email': email, 'password': password, 'role': 'admin'}
        body = self.client.post('/auth/register', payload, keep_backend_message=True)
        return self._token_and_user(body)

    def validate(self) -> bool:
        body = self.client.get('/auth/validate')
        return body.get('success', True) is not False

    def me(self) -> AdminUser:
        return AdminUser.from_api(envelope_data(self.client.get('/auth/me')).get('user') or {})

    def logout(self):
        self.client.post('/auth/logout')

    def refresh(self) -> str:
        token = envelope_data(self.client.post('/auth/refresh')).get('token')
        if not token:
            raise ApiError('Token refresh response had no token', status=502, error_code='INVALID_RESPONSE')
        return token


class AdminSession:
    """
    Authentication state of one console visitor.

    Holds the AuthState for the current request and keeps it in step with the
    token store: every failure path clears stored credentials and resets state.
    """

    def __init__(
        self,
        token_store: SessionTokenStore,
        client: Optional[ApiClient] = None,
        cache: Optional[RequestCache] = None,
        notifier: Optional[Notifier] = None,
    ):
        self.token_store = token_store
        self.client = client or ApiClient(token_store=token_store)
        self.auth = AuthService(self.client)
        self.cache = cache or RequestCache()
        self.notifier = notifier or Notifier()
        self.state = AuthState()

    def _validation_key(self, token: str):
        return ('auth-session', hashlib.sha256(token.encode()).hexdigest())

    def _invalidate_validation(self, token: Optional[str]):
        if token:
            self.cache.invalidate(*self._validation_key(token))

    def validate_token(self, force: bool = False) -> AuthState:
        """
        Confirm the stored token with the backend and resolve the admin user.

        A successful validation is trusted for TOKEN_REFRESH_MINUTES, so repeated
        calls within that window do not reach the backend.
        """
        token = self.token_store.token
        if not token:
            self.state = auth_state.reset(self.state)
            return self.state

        self.state = auth_state.begin(self.state)

        def fetch():
            if not self.auth.validate():
                raise ApiError('Token validation failed', status=401)
            user = self.token_store.user
            if user is None:
                user = self.auth.me()
            return user.to_dict()

        result = self.cache.query(self._validation_key(token), fetch, auth_validation_policy(), force=force)
        if result.is_error:
            logger.info(f'Stored admin token rejected: {result.error.message}')
            self.token_store.clear()
            self.state = auth_state.reset(self.state)
            return self.state

        user = AdminUser.from_api(result.data)
        if self.token_store.user is None:
            self.token_store.save_user(user)
        self.state = auth_state.succeed(self.state, user)
        return self.state

    def _sign_in(self, attempt, success_message: str) -> AuthState:
        self.state = auth_state.begin(self.state)
        try:
            token, user = attempt()
        except ApiError as e:
            self.token_store.clear()
            self.state = auth_state.fail(self.state, e.message)
            if not e.is_validation_error:
                self.notifier.error(e.message)
            logger.warning(f'Admin sign-in failed: {e.message}')
            return self.state
        self.token_store.save(token, user)
        self.state = auth_state.succeed(self.state, user)
        self.notifier.success(success_message)
        logger.info(f'Admin {user.email} signed in')
        return self.state

    def login(self, email: str, password: str) -> AuthState:
        return self._sign_in(lambda: self.auth.login(email, password), 'Login successful!')

    def register(self, username: str, email: str, password: str) -> AuthState:
        return self._sign_in(lambda: self.auth.register(username, email, password), 'Registration successful!')

    def logout(self) -> AuthState:
        """Always ends anonymous, even when the backend logout call fails."""
        token = self.token_store.token
        server_error = None
        if token:
            try:
                self.auth.logout()
            except ApiError as e:
                server_error = e
                logger.warning(f'Server logout failed, clearing client state anyway: {e.message}')

        self._invalidate_validation(token)
        self.token_store.clear()
        for namespace in CONSOLE_NAMESPACES:
            self.cache.invalidate(namespace)
        self.state = auth_state.reset(self.state)
        if server_error is not None:
            self.notifier.error(server_error.message or 'Logout failed')
        else:
            self.notifier.success('Logged out successfully')
        return self.state

    def refresh_token(self) -> AuthState:
        old_token = self.token_store.token
        if not old_token:
            self.state = auth_state.reset(self.state)
            return self.state
        try:
            token = self.auth.refresh()
        except ApiError as e:
            logger.warning(f'Token refresh failed: {e.message}')
            self._invalidate_validation(old_token)
            self.token_store.clear()
            self.state = auth_state.reset(self.state)
            return self.state
        self._invalidate_validation(old_token)
        self.token_store.set_token(token)
        return self.validate_token()
