"""Order inquiry service: lead capture from the storefront and inquiry management for the console."""
import json
import logging
from typing import Any, Dict, List, Optional

from storefront import cache as policies
from storefront.cache import QueryResult
from storefront.domain import CustomerData, INQUIRY_FILTER_KEYS, normalize_pagination
from storefront.services.base import BackendService, envelope_data, require_data, require_id, require_ids

logger = logging.getLogger(__name__)


def inquiry_notes(quantity: int, selected_variants: Optional[Dict[str, str]]) -> str:
    """Notes attached to storefront submissions so the order details survive in free text."""
    return f'Quantity: {quantity}\nVariants: {json.dumps(selected_variants or {})}'


class InquiryService(BackendService):

    # -- reads --------------------------------------------------------------

    def list_inquiries(self, filters: Optional[Dict[str, Any]] = None, force: bool = False) -> QueryResult:
        params = {key: value for key, value in (filters or {}).items() if key in INQUIRY_FILTER_KEYS and value not in (None, '')}

        def fetch():
            data = envelope_data(self.client.get('/order-inquiries', params=params))
            return {
                'inquiries': data.get('inquiries') or [],
                'pagination': normalize_pagination(data.get('pagination'), params),
            }

        return self.cache.query(('order-inquiries', params), fetch, policies.INQUIRY_LIST, force=force)

    def get_inquiry(self, inquiry_id: str, force: bool = False) -> QueryResult:
        require_id(inquiry_id, 'Inquiry')

        def fetch():
            data = envelope_data(self.client.get(f'/order-inquiries/{inquiry_id}'))
            return data.get('inquiry') or data

        return self.cache.query(('order-inquiry', str(inquiry_id)), fetch, policies.INQUIRY_DETAIL, force=force)

    def inquiry_stats(self, force: bool = False) -> QueryResult:
        def fetch():
            return envelope_data(self.client.get('/order-inquiries/stats'))

        return self.cache.query(('order-inquiry-stats',), fetch, policies.INQUIRY_STATS, force=force)

    def fetch_for_export(self, inquiry_ids: List[str]) -> List[Dict[str, Any]]:
        """Full detail for each id; inquiries that fail to load are left out."""
        inquiries = []
        for inquiry_id in inquiry_ids:
            result = self.get_inquiry(inquiry_id)
            if result.is_error or not result.data:
                logger.warning(f'Skipping inquiry {inquiry_id} in export: {result.error.message if result.error else "empty"}')
                continue
            inquiries.append(result.data)
        return inquiries

    # -- writes -------------------------------------------------------------

    def create_inquiry(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        def call():
            require_data(payload, 'Inquiry')
            return envelope_data(self.client.post('/order-inquiries/create', payload)).get('inquiry')

        return self.mutate(
            call,
            lambda inquiry: 'Inquiry submitted successfully! We will contact you soon.',
            invalidates=[('order-inquiries',), ('order-inquiry-stats',)],
        )

    def submit_product_inquiry(
        self,
        product_id: str,
        customer: CustomerData,
        quantity: int = 1,
        selected_variants: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """Storefront submission for one product."""
        require_id(product_id, 'Product')
        payload = {
            'productId': product_id,
            'customerData': customer.sanitized().to_api(),
            'quantity': quantity,
            'notes': inquiry_notes(quantity, selected_variants),
        }
        if selected_variants:
            payload['selectedVariants'] = selected_variants
        return self.create_inquiry(payload)

    def update_inquiry(self, inquiry_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        def call():
            require_id(inquiry_id, 'Inquiry')
            require_data(payload, 'Update')
            body = dict(payload)
            if 'customerData' in body:
                body['customerData'] = self._merged_customer_data(inquiry_id, body['customerData'])
            return envelope_data(self.client.put(f'/order-inquiries/{inquiry_id}', body)).get('inquiry')

        return self.mutate(
            call,
            lambda inquiry: 'Inquiry updated successfully!',
            invalidates=[('order-inquiries',), ('order-inquiry', str(inquiry_id)), ('order-inquiry-stats',)],
        )

    def _merged_customer_data(self, inquiry_id: str, changes: Dict[str, str]) -> Dict[str, str]:
        """The backend replaces customerData as a whole, so edits are laid over the stored record."""
        current = self.get_inquiry(inquiry_id, force=True)
        if current.is_error:
            raise current.error
        merged = CustomerData.from_api((current.data or {}).get('customerData')).to_api()
        merged.update(changes)
        return merged

    def update_status(self, inquiry_id: str, status: str, notes: Optional[str] = None) -> Dict[str, Any]:
        def call():
            require_id(inquiry_id, 'Inquiry')
            require_data(status, 'Status')
            body = {'status': status}
            if notes is not None:
                body['notes'] = notes
            return envelope_data(self.client.patch(f'/order-inquiries/{inquiry_id}/status', body)).get('inquiry')

        return self.mutate(
            call,
            lambda inquiry: 'Status updated successfully!',
            invalidates=[('order-inquiries',), ('order-inquiry', str(inquiry_id)), ('order-inquiry-stats',)],
        )

    def delete_inquiry(self, inquiry_id: str) -> Dict[str, Any]:
        def call():
            require_id(inquiry_id, 'Inquiry')
            return envelope_data(self.client.delete(f'/order-inquiries/{inquiry_id}'))

        return self.mutate(
            call,
            lambda result: 'Inquiry deleted successfully!',
            invalidates=[('order-inquiries',), ('order-inquiry', str(inquiry_id)), ('order-inquiry-stats',)],
        )

    def bulk_update_status(self, inquiry_ids: List[str], status: str) -> Dict[str, Any]:
        def call():
            require_ids(inquiry_ids, 'Inquiry')
            require_data(status, 'Status')
            body = {'ids': list(inquiry_ids), 'status': status}
            return envelope_data(self.client.patch('/order-inquiries/bulk/status', body))

        return self.mutate(
            call,
            lambda result: f"{result.get('updatedCount', 0)} inquiries updated successfully!",
            invalidates=self._bulk_keys(inquiry_ids),
        )

    def bulk_delete(self, inquiry_ids: List[str]) -> Dict[str, Any]:
        def call():
            require_ids(inquiry_ids, 'Inquiry')
            return envelope_data(self.client.delete('/order-inquiries/bulk/delete', {'ids': list(inquiry_ids)}))

        return self.mutate(
            call,
            lambda result: f"{result.get('deletedCount', 0)} inquiries deleted successfully!",
            invalidates=self._bulk_keys(inquiry_ids),
        )

    @staticmethod
    def _bulk_keys(inquiry_ids):
        return [('order-inquiries',), ('order-inquiry-stats',)] + [
            ('order-inquiry', str(inquiry_id)) for inquiry_id in inquiry_ids or []
        ]
