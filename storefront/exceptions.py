"""Typed errors raised by the backend API client."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorKind(str, Enum):
    NETWORK = 'network'
    TIMEOUT = 'timeout'
    BAD_REQUEST = 'bad_request'
    UNAUTHORIZED = 'unauthorized'
    FORBIDDEN = 'forbidden'
    NOT_FOUND = 'not_found'
    CONFLICT = 'conflict'
    VALIDATION = 'validation'
    RATE_LIMITED = 'rate_limited'
    SERVER = 'server'
    UNKNOWN = 'unknown'


# Human-readable fallbacks keyed by HTTP status
DEFAULT_MESSAGES = {
    400: 'Bad Request - Please check your input',
    401: 'Unauthorized - Please log in again',
    403: 'Forbidden - You do not have permission to perform this action',
    404: 'Resource not found',
    409: 'Conflict - Resource already exists',
    422: 'Validation failed',
    429: 'Too many requests - Please try again later',
    500: 'Internal server error - Please try again later',
}
ERROR_CODES = {
    ErrorKind.NETWORK: 'NETWORK_ERROR',
    ErrorKind.TIMEOUT: 'TIMEOUT',
    ErrorKind.BAD_REQUEST: 'BAD_REQUEST',
    ErrorKind.UNAUTHORIZED: 'UNAUTHORIZED',
    ErrorKind.FORBIDDEN: 'FORBIDDEN',
    ErrorKind.NOT_FOUND: 'NOT_FOUND',
    ErrorKind.CONFLICT: 'CONFLICT',
    ErrorKind.VALIDATION: 'VALIDATION_ERROR',
    ErrorKind.RATE_LIMITED: 'RATE_LIMITED',
    ErrorKind.SERVER: 'SERVER_ERROR',
    ErrorKind.UNKNOWN: 'UNKNOWN_ERROR',
}
NETWORK_ERROR_MESSAGE = 'Network error - Please check your internet connection'
TIMEOUT_ERROR_MESSAGE = 'Request timeout - Please try again'

# Statuses where a message supplied by the backend wins over the default text
BACKEND_MESSAGE_STATUSES = {400, 404, 409, 422}


@dataclass(frozen=True)
class FieldError:
    """A field-level validation error reported by the backend."""
    field: str
    message: str
    value: Any = None
    location: str = 'body'

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'FieldError':
        return cls(
            field=str(data.get('field') or data.get('path') or data.get('param') or ''),
            message=str(data.get('message') or data.get('msg') or ''),
            value=data.get('value'),
            location=str(data.get('location') or 'body'),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {'field': self.field, 'message': self.message, 'location': self.location}
        if self.value is not None:
            data['value'] = self.value
        return data


def classify_status(status: int) -> ErrorKind:
    if status == 0:
        return ErrorKind.NETWORK
    if status == 408:
        return ErrorKind.TIMEOUT
    if status == 400:
        return ErrorKind.BAD_REQUEST
    if status == 401:
        return ErrorKind.UNAUTHORIZED
    if status == 403:
        return ErrorKind.FORBIDDEN
    if status == 404:
        return ErrorKind.NOT_FOUND
    if status == 409:
        return ErrorKind.CONFLICT
    if status == 422:
        return ErrorKind.VALIDATION
    if status == 429:
        return ErrorKind.RATE_LIMITED
    if 500 <= status < 600:
        return ErrorKind.SERVER
    return ErrorKind.UNKNOWN


class ApiError(Exception):
    """
    Error returned by (or on the way to) the backend API.

    ``status`` is the HTTP status code, 0 when no response was received and 408
    when the client-side deadline expired.
    """

    def __init__(
        self,
        message: str,
        status: int = 0,
        errors: Optional[List[FieldError]] = None,
        error_code: Optional[str] = None,
        kind: Optional[ErrorKind] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.errors = list(errors or [])
        self.kind = kind or classify_status(status)
        self.error_code = error_code or ERROR_CODES[self.kind]

    def __repr__(self):
        return f'ApiError(status={self.status}, kind={self.kind.value}, message={self.message!r})'

    @classmethod
    def network(cls) -> 'ApiError':
        return cls(NETWORK_ERROR_MESSAGE, status=0, error_code='NETWORK_ERROR', kind=ErrorKind.NETWORK)

    @classmethod
    def timeout(cls) -> 'ApiError':
        return cls(TIMEOUT_ERROR_MESSAGE, status=408, error_code='TIMEOUT', kind=ErrorKind.TIMEOUT)

    @classmethod
    def missing_argument(cls, message: str, error_code: str) -> 'ApiError':
        """Guard failure raised before any request is sent."""
        return cls(message, status=400, error_code=error_code, kind=ErrorKind.BAD_REQUEST)

    @classmethod
    def from_response(cls, status: int, body: Optional[Dict[str, Any]], keep_backend_message: bool = False) -> 'ApiError':
        """Build an error from a non-success response and its decoded envelope."""
        body = body if isinstance(body, dict) else {}
        backend_message = body.get('message') or body.get('error')
        errors = [FieldError.from_api(item) for item in body.get('errors') or [] if isinstance(item, dict)]

        if keep_backend_message and backend_message:
            message = backend_message
        elif status in BACKEND_MESSAGE_STATUSES and backend_message:
            message = backend_message
        elif status in DEFAULT_MESSAGES:
            message = DEFAULT_MESSAGES[status]
        elif status >= 500:
            message = DEFAULT_MESSAGES[500]
        else:
            message = backend_message or f'HTTP error! status: {status}'
        return cls(message, status=status, errors=errors)

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status < 500 and self.kind is not ErrorKind.TIMEOUT

    @property
    def is_validation_error(self) -> bool:
        return self.kind is ErrorKind.VALIDATION or bool(self.errors)

    @property
    def is_network_error(self) -> bool:
        return self.kind is ErrorKind.NETWORK

    @property
    def is_timeout(self) -> bool:
        return self.kind is ErrorKind.TIMEOUT

    @property
    def is_unauthorized(self) -> bool:
        return self.kind is ErrorKind.UNAUTHORIZED

    def field_errors(self) -> Dict[str, str]:
        """Map of field name to first message, for inline display."""
        result: Dict[str, str] = {}
        for error in self.errors:
            result.setdefault(error.field, error.message)
        return result

    def get_field_error(self, field: str) -> Optional[str]:
        return self.field_errors().get(field)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'message': self.message,
            'status': self.status,
            'kind': self.kind.value,
            'code': self.error_code,
            'errors': [error.to_dict() for error in self.errors],
        }
