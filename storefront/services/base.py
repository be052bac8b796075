"""Shared plumbing for the backend-facing services."""
import logging
from typing import Any, Callable, Iterable, Optional, Tuple

from storefront.api_client import ApiClient
from storefront.cache import RequestCache
from storefront.exceptions import ApiError
from storefront.notifications import Notifier

logger = logging.getLogger(__name__)


def envelope_data(body: dict) -> dict:
    """``data`` member of a backend envelope (some endpoints answer without one)."""
    data = body.get('data') if isinstance(body, dict) else None
    return data if isinstance(data, dict) else (body or {})


def require_id(value, label: str):
    if not value:
        raise ApiError.missing_argument(f'{label} ID is required', 'MISSING_ID')
    return value


def require_ids(values, label: str):
    if not values:
        raise ApiError.missing_argument(f'{label} IDs are required', 'MISSING_IDS')
    return list(values)


def require_data(value, label: str):
    if not value:
        raise ApiError.missing_argument(f'{label} data is required', 'MISSING_DATA')
    return value


class BackendService:
    def __init__(self, client: ApiClient, cache: Optional[RequestCache] = None, notifier: Optional[Notifier] = None):
        self.client = client
        self.cache = cache or RequestCache()
        self.notifier = notifier or Notifier()

    def mutate(
        self,
        call: Callable[[], Any],
        success_message: Callable[[Any], str],
        invalidates: Iterable[Tuple] = (),
    ) -> Any:
        """
        Run a write against the backend.

        On success the affected cache entries are invalidated before the success
        notification. On failure an error notification is shown unless the error
        carries field-level errors (those are rendered inline), then it is re-raised.
        """
        try:
            result = call()
        except ApiError as e:
            if e.is_validation_error:
                logger.info(f'Mutation rejected with field errors: {e.field_errors()}')
            else:
                self.notifier.error(e.message)
            raise
        for key in invalidates:
            self.cache.invalidate(*key)
        self.notifier.success(success_message(result))
        return result
