"""
Admin authentication state.

AuthState is an immutable snapshot; the functions below are the only way to move
between states. SessionTokenStore persists the backend token and admin user in the
Django session under the keys the console has always used (authToken / adminUser).
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

TOKEN_SESSION_KEY = 'authToken'
USER_SESSION_KEY = 'adminUser'


class AuthStatus(str, Enum):
    ANONYMOUS = 'anonymous'
    AUTHENTICATING = 'authenticating'
    AUTHENTICATED = 'authenticated'
    AUTH_ERROR = 'auth-error'


@dataclass(frozen=True)
class AdminUser:
    id: str
    username: str
    email: str
    role: str = 'admin'

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'AdminUser':
        return cls(
            id=str(data.get('id') or data.get('_id') or ''),
            username=data.get('username') or '',
            email=data.get('email') or '',
            role=data.get('role') or 'admin',
        )

    @property
    def is_authenticated(self) -> bool:
        # Lets DRF permission checks treat the admin like a logged-in user
        return True

    def to_dict(self) -> Dict[str, str]:
        return {'id': self.id, 'username': self.username, 'email': self.email, 'role': self.role}


@dataclass(frozen=True)
class AuthState:
    status: AuthStatus = AuthStatus.ANONYMOUS
    user: Optional[AdminUser] = None
    error: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.status is AuthStatus.AUTHENTICATED

    @property
    def is_loading(self) -> bool:
        return self.status is AuthStatus.AUTHENTICATING

    def to_dict(self) -> Dict[str, Any]:
        return {
            'status': self.status.value,
            'isAuthenticated': self.is_authenticated,
            'isLoading': self.is_loading,
            'user': self.user.to_dict() if self.user else None,
            'error': self.error,
        }


def begin(state: AuthState) -> AuthState:
    return replace(state, status=AuthStatus.AUTHENTICATING, error=None)


def succeed(state: AuthState, user: AdminUser) -> AuthState:
    return AuthState(status=AuthStatus.AUTHENTICATED, user=user, error=None)


def fail(state: AuthState, message: str) -> AuthState:
    return AuthState(status=AuthStatus.AUTH_ERROR, user=None, error=message)


def reset(state: AuthState) -> AuthState:
    return AuthState()


class SessionTokenStore:
    """Token and admin user kept in the Django session."""

    def __init__(self, session):
        self.session = session

    @property
    def token(self) -> Optional[str]:
        return self.session.get(TOKEN_SESSION_KEY)

    @property
    def user(self) -> Optional[AdminUser]:
        raw = self.session.get(USER_SESSION_KEY)
        if not raw:
            return None
        try:
            return AdminUser.from_api(json.loads(raw))
        except (TypeError, ValueError):
            logger.warning('Discarding unreadable admin user stored in session')
            self.session.pop(USER_SESSION_KEY, None)
            return None

    def save(self, token: str, user: AdminUser):
        self.session[TOKEN_SESSION_KEY] = token
        self.save_user(user)

    def save_user(self, user: AdminUser):
        self.session[USER_SESSION_KEY] = json.dumps(user.to_dict())

    def set_token(self, token: str):
        self.session[TOKEN_SESSION_KEY] = token

    def clear(self):
        self.session.pop(TOKEN_SESSION_KEY, None)
        self.session.pop(USER_SESSION_KEY, None)
