"""
HTTP client for the product/inquiry backend.

Every backend call made by the storefront goes through ApiClient: it attaches the
JSON headers and the bearer token, applies the request deadline and turns every
failure into an ApiError. Retries are decided by the request cache, not here.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests
from django.conf import settings
from requests.exceptions import ConnectionError, RequestException, Timeout

from storefront.exceptions import ApiError

logger = logging.getLogger(__name__)

INVALID_RESPONSE_BODY = {'success': False, 'message': 'Invalid server response'}


def api_setting(key: str, default: Any = None) -> Any:
    return getattr(settings, 'STOREFRONT_API', {}).get(key, default)


def _clean_params(params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Drop empty query parameters and render booleans the way the backend expects."""
    cleaned = {}
    for key, value in (params or {}).items():
        if value is None or value == '':
            continue
        if isinstance(value, bool):
            value = 'true' if value else 'false'
        cleaned[key] = value
    return cleaned


class ApiClient:
    """Thin wrapper over a requests session bound to one token store."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        token_store=None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or api_setting('BASE_URL', 'http://localhost:5001/api')).rstrip('/')
        self.token_store = token_store
        self.timeout = timeout if timeout is not None else api_setting('TIMEOUT', 10)
        self.session = session or requests.Session()

    def auth_headers(self, json_body: bool = True) -> Dict[str, str]:
        headers = {'Accept': 'application/json'}
        if json_body:
            # Multipart bodies get their boundary header from requests
            headers['Content-Type'] = 'application/json'
        token = self.token_store.token if self.token_store is not None else None
        if token:
            headers['Authorization'] = f'Bearer {token}'
        return headers

    def request(
        self,
        method: str,
        endpoint: str,
        data: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
        keep_backend_message: bool = False,
        files: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Send one request and return the decoded response envelope.

        Raises ApiError for transport failures (network/timeout) and for every
        non-2xx response. A 401 clears the stored credentials before raising.
        """
        url = f'{self.base_url}/{endpoint.lstrip("/")}'
        deadline = timeout if timeout is not None else self.timeout
        body = {'files': files, 'data': data} if files else {'json': data}

        try:
            response = self.session.request(
                method.upper(),
                url,
                params=_clean_params(params),
                headers=self.auth_headers(json_body=not files),
                timeout=deadline,
                **body,
            )
        except Timeout:
            logger.warning(f'{method.upper()} {url} timed out after {deadline}s')
            raise ApiError.timeout()
        except ConnectionError as e:
            logger.warning(f'{method.upper()} {url} failed: {str(e)}')
            raise ApiError.network()
        except RequestException as e:
            logger.error(f'Request exception for {url}: {str(e)}')
            raise ApiError.network()

        logger.debug(f'{method.upper()} {url} -> {response.status_code}')
        body = self._decode(response)

        if response.status_code == 401 and self.token_store is not None:
            logger.info('Backend answered 401, clearing stored credentials')
            self.token_store.clear()

        if not response.ok:
            error = ApiError.from_response(response.status_code, body, keep_backend_message=keep_backend_message)
            log = logger.error if response.status_code >= 500 else logger.warning
            log(f'{method.upper()} {url} failed with status {response.status_code}: {error.message}')
            raise error
        return body

    @staticmethod
    def _decode(response: requests.Response) -> Dict[str, Any]:
        if response.status_code == 204 or not response.content:
            return {}
        try:
            body = response.json()
        except ValueError:
            logger.warning(f'Could not parse response as JSON: {response.text[:200]}')
            return dict(INVALID_RESPONSE_BODY)
        return body if isinstance(body, dict) else {'data': body}

    def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None, **kwargs) -> Dict[str, Any]:
        return self.request('GET', endpoint, params=params, **kwargs)

    def post(self, endpoint: str, data: Optional[Any] = None, **kwargs) -> Dict[str, Any]:
        return self.request('POST', endpoint, data=data, **kwargs)

    def put(self, endpoint: str, data: Optional[Any] = None, **kwargs) -> Dict[str, Any]:
        return self.request('PUT', endpoint, data=data, **kwargs)

    def patch(self, endpoint: str, data: Optional[Any] = None, **kwargs) -> Dict[str, Any]:
        return self.request('PATCH', endpoint, data=data, **kwargs)

    def delete(self, endpoint: str, data: Optional[Any] = None, **kwargs) -> Dict[str, Any]:
        return self.request('DELETE', endpoint, data=data, **kwargs)

    def upload(self, endpoint: str, files: Dict[str, Any], **kwargs) -> Dict[str, Any]:
        """POST ``files`` as multipart/form-data."""
        kwargs.setdefault('timeout', api_setting('UPLOAD_TIMEOUT', 30))
        return self.request('POST', endpoint, files=files, **kwargs)
