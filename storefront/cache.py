"""
Request cache for backend reads.

Entries live in Django's cache framework. A query key is a tuple whose first
segment names a namespace ('products', 'product', 'order-inquiries', ...); the rest
identifies the entry (an id or a filter dict). Invalidating a bare namespace bumps
its version so every entry under it goes stale at once; invalidating a full key
deletes that one entry.
"""
import hashlib
import json
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple

from django.core.cache import cache as default_cache
from django.db import connections

from storefront.api_client import api_setting
from storefront.exceptions import ApiError

logger = logging.getLogger(__name__)

KEY_PREFIX = 'storefront'
MAX_RETRY_DELAY = 30

# Freshness windows (in seconds)
PRODUCT_LIST_FRESH_FOR = 300  # 5 minutes
PRODUCT_STATS_FRESH_FOR = 600  # 10 minutes
INQUIRY_LIST_FRESH_FOR = 120  # 2 minutes
INQUIRY_STATS_FRESH_FOR = 300  # 5 minutes


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = json.dumps([args, kwargs], sort_keys=True, default=str)
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def never_retry_client_errors(error: ApiError) -> bool:
    return not error.is_client_error


@dataclass(frozen=True)
class CachePolicy:
    """Freshness window and retry rules for one kind of read."""
    name: str
    fresh_for: int
    retries: int = 2
    retry_on: Callable[[ApiError], bool] = field(default=never_retry_client_errors)

    def should_retry(self, error: ApiError, failure_count: int) -> bool:
        """``failure_count`` is the number of failed attempts so far."""
        if failure_count > self.retries:
            return False
        return self.retry_on(error)

    def retry_delay(self, failure_count: int) -> float:
        base = api_setting('RETRY_DELAY', 1.0)
        return min(base * (2 ** (failure_count - 1)), MAX_RETRY_DELAY)


PRODUCT_LIST = CachePolicy('products', PRODUCT_LIST_FRESH_FOR)
PRODUCT_DETAIL = CachePolicy('product', PRODUCT_LIST_FRESH_FOR)
PRODUCT_STATS = CachePolicy('product-stats', PRODUCT_STATS_FRESH_FOR)
INQUIRY_LIST = CachePolicy('order-inquiries', INQUIRY_LIST_FRESH_FOR)
INQUIRY_DETAIL = CachePolicy('order-inquiry', INQUIRY_LIST_FRESH_FOR)
INQUIRY_STATS = CachePolicy('order-inquiry-stats', INQUIRY_STATS_FRESH_FOR)


def auth_validation_policy() -> CachePolicy:
    minutes = api_setting('TOKEN_REFRESH_MINUTES', 30)
    return CachePolicy('auth-session', int(minutes * 60), retries=0)


@dataclass
class QueryResult:
    data: Any = None
    error: Optional[ApiError] = None
    refetch: Optional[Callable[[], 'QueryResult']] = None
    from_cache: bool = False

    @property
    def is_error(self) -> bool:
        return self.error is not None


class RequestCache:
    """Key-based cache of backend reads with retry and invalidation."""

    def __init__(self, backend=None):
        self.backend = backend or default_cache

    # -- keys ---------------------------------------------------------------

    def _version_key(self, namespace: str) -> str:
        return f'{KEY_PREFIX}:version:{namespace}'

    def _version(self, namespace: str) -> int:
        return self.backend.get(self._version_key(namespace)) or 1

    def _storage_key(self, key: Tuple) -> str:
        namespace, rest = key[0], key[1:]
        return make_cache_key(
            f'{KEY_PREFIX}:{namespace}:v{self._version(namespace)}',
            *rest,
        )

    # -- reads --------------------------------------------------------------

    def query(self, key: Tuple, fetch: Callable[[], Any], policy: CachePolicy, force: bool = False) -> QueryResult:
        """
        Return cached data for ``key`` while it is fresh, otherwise call ``fetch``.

        Failures are retried according to ``policy``; once retries are exhausted the
        error is returned on the result instead of being raised. Errors are never cached.
        """
        def refetch():
            return self.query(key, fetch, policy, force=True)

        storage_key = self._storage_key(key)
        if not force:
            cached = self.backend.get(storage_key)
            if cached is not None:
                logger.debug(f"Cache HIT for {policy.name}: {storage_key}")
                return QueryResult(data=cached['data'], refetch=refetch, from_cache=True)
        logger.debug(f"Cache MISS for {policy.name}: {storage_key}")

        failure_count = 0
        while True:
            try:
                data = fetch()
            except ApiError as error:
                failure_count += 1
                if not policy.should_retry(error, failure_count):
                    logger.warning(f"{policy.name} read failed after {failure_count} attempt(s): {error.message}")
                    return QueryResult(error=error, refetch=refetch)
                delay = policy.retry_delay(failure_count)
                logger.warning(f"{policy.name} read failed ({error.message}), retrying in {delay}s")
                time.sleep(delay)
                continue
            # Wrapped so that falsy payloads are cached too
            self.backend.set(storage_key, {'data': data}, policy.fresh_for)
            return QueryResult(data=data, refetch=refetch)

    # -- invalidation -------------------------------------------------------

    def invalidate(self, *key):
        """Drop every entry under a namespace, or the single entry for a full key."""
        if not key:
            return
        if len(key) == 1:
            version_key = self._version_key(key[0])
            self.backend.add(version_key, 1, None)
            try:
                self.backend.incr(version_key)
            except ValueError:
                # Evicted between add() and incr()
                self.backend.set(version_key, 2, None)
            logger.debug(f"Invalidated namespace {key[0]}")
        else:
            self.backend.delete(self._storage_key(tuple(key)))
            logger.debug(f"Invalidated entry {key}")


def _run_in_worker(query: Callable[[], Any]) -> Any:
    try:
        return query()
    finally:
        connections.close_all()


def gather(**queries: Callable[[], Any]) -> Dict[str, Any]:
    """Run independent queries concurrently; returns once the slowest has settled."""
    if not queries:
        return {}
    with ThreadPoolExecutor(max_workers=len(queries)) as executor:
        futures = {name: executor.submit(_run_in_worker, query) for name, query in queries.items()}
        return {name: future.result() for name, future in futures.items()}
