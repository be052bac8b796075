"""Product service: catalogue reads and product writes against the backend."""
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

from storefront import cache as policies
from storefront.api_client import api_setting
from storefront.cache import QueryResult
from storefront.domain import normalize_pagination
from storefront.exceptions import ApiError, ErrorKind
from storefront.services.base import BackendService, envelope_data, require_data, require_id, require_ids

logger = logging.getLogger(__name__)

PRODUCT_FILTER_KEYS = ('page', 'limit', 'category', 'minPrice', 'maxPrice', 'onSale', 'hasOffers', 'q')

# Backend upload rejections, by status
UPLOAD_ERROR_MESSAGES = {
    400: 'Invalid file format or corrupted file. Please try another image.',
    401: 'Session expired. Please log in again.',
    413: 'File too large. Maximum size is 5MB.',
    415: 'Invalid file type. Please use JPEG, PNG, WEBP, or GIF.',
}


class ProductService(BackendService):

    # -- reads --------------------------------------------------------------

    def list_products(self, filters: Optional[Dict[str, Any]] = None, force: bool = False) -> QueryResult:
        params = {key: value for key, value in (filters or {}).items() if key in PRODUCT_FILTER_KEYS and value not in (None, '')}

        def fetch():
            data = envelope_data(self.client.get('/products', params=params))
            return {
                'products': data.get('products') or [],
                'pagination': normalize_pagination(data.get('pagination'), params),
            }

        return self.cache.query(('products', params), fetch, policies.PRODUCT_LIST, force=force)

    def get_product(self, product_id: str, force: bool = False) -> QueryResult:
        require_id(product_id, 'Product')

        def fetch():
            data = envelope_data(self.client.get(f'/products/{product_id}'))
            return data.get('product') or data

        return self.cache.query(('product', str(product_id)), fetch, policies.PRODUCT_DETAIL, force=force)

    def product_stats(self, force: bool = False) -> QueryResult:
        def fetch():
            return envelope_data(self.client.get('/products/stats/overview'))

        return self.cache.query(('product-stats',), fetch, policies.PRODUCT_STATS, force=force)

    # -- writes -------------------------------------------------------------

    def create_product(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        def call():
            require_data(payload, 'Product')
            body = self.client.post('/products', payload, timeout=api_setting('WRITE_TIMEOUT', 15))
            return envelope_data(body).get('product') or envelope_data(body)

        return self.mutate(
            call,
            lambda product: 'Product created successfully!',
            invalidates=[('products',), ('product-stats',)],
        )

    def update_product(self, product_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        def call():
            require_id(product_id, 'Product')
            require_data(payload, 'Product')
            body = self.client.put(f'/products/{product_id}', payload, timeout=api_setting('WRITE_TIMEOUT', 15))
            return envelope_data(body).get('product') or envelope_data(body)

        return self.mutate(
            call,
            lambda product: 'Product updated successfully!',
            invalidates=[('product', str(product_id)), ('products',), ('product-stats',)],
        )

    def delete_product(self, product_id: str) -> Dict[str, Any]:
        def call():
            require_id(product_id, 'Product')
            return envelope_data(self.client.delete(f'/products/{product_id}'))

        return self.mutate(
            call,
            lambda result: 'Product deleted successfully!',
            invalidates=[('products',), ('product', str(product_id)), ('product-stats',)],
        )

    def bulk_update(self, product_ids: List[str], update_data: Dict[str, Any]) -> Dict[str, Any]:
        def call():
            require_ids(product_ids, 'Product')
            require_data(update_data, 'Update')
            body = self.client.patch(
                '/products/bulk',
                {'productIds': list(product_ids), 'updateData': update_data},
                timeout=api_setting('BULK_TIMEOUT', 20),
            )
            return envelope_data(body)

        invalidates = [('products',), ('product-stats',)] + [('product', str(pid)) for pid in product_ids or []]
        return self.mutate(
            call,
            lambda result: f"{result.get('modifiedCount', 0)} products updated successfully!",
            invalidates=invalidates,
        )

    def upload_image(self, image) -> str:
        """
        Upload one image file and return its absolute URL.

        The backend answers with a path under its own host (``/uploads/...``), which
        is resolved against the backend URL so the product form accepts it.
        """
        def call():
            require_data(image, 'Image')
            files = {'image': (image.name, image, getattr(image, 'content_type', None) or 'application/octet-stream')}
            try:
                body = self.client.upload('/upload', files)
            except ApiError as e:
                if e.status in UPLOAD_ERROR_MESSAGES:
                    raise ApiError(UPLOAD_ERROR_MESSAGES[e.status], status=e.status, error_code=e.error_code) from e
                if e.is_timeout:
                    raise ApiError(
                        'Upload timed out. Please try a smaller file.', status=e.status, kind=ErrorKind.TIMEOUT,
                    ) from e
                raise
            image_url = envelope_data(body).get('imageUrl')
            if not image_url:
                raise ApiError('Upload response had no image URL', status=502, error_code='INVALID_RESPONSE')
            return urljoin(f'{self.client.base_url}/', image_url)

        return self.mutate(call, lambda url: 'Image uploaded successfully')
