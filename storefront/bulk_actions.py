"""Bulk actions over a selection of order inquiries, and the stored selection itself."""
import logging
from dataclasses import dataclass
from typing import List, Optional

from storefront.domain import InquiryStatus
from storefront.export import inquiries_to_csv, export_filename
from storefront.services.inquiry_service import InquiryService

logger = logging.getLogger(__name__)

SELECTION_SESSION_KEY = 'inquirySelection'

EXPORT = 'export'
DELETE = 'delete'
BULK_ACTIONS = tuple(InquiryStatus.values) + (EXPORT, DELETE)


@dataclass
class BulkResult:
    action: str
    count: int
    csv: Optional[str] = None
    filename: Optional[str] = None


class InquiryBulkActions:
    def __init__(self, service: InquiryService):
        self.service = service

    def apply(self, inquiry_ids: List[str], action: str) -> BulkResult:
        """
        Apply ``action`` to every selected inquiry.

        Status changes and deletes go to the backend as a single call covering the
        whole selection. Export loads each inquiry and renders the survivors as CSV.
        Raises ValueError before any request when the selection or action is empty.
        """
        if not inquiry_ids:
            raise ValueError('Select at least one inquiry')
        if not action:
            raise ValueError('Choose an action')
        if action not in BULK_ACTIONS:
            raise ValueError(f'Unknown bulk action: {action}')

        ids = list(inquiry_ids)
        if action == EXPORT:
            inquiries = self.service.fetch_for_export(ids)
            logger.info(f'Exporting {len(inquiries)} of {len(ids)} selected inquiries')
            return BulkResult(action, len(inquiries), csv=inquiries_to_csv(inquiries), filename=export_filename())
        if action == DELETE:
            result = self.service.bulk_delete(ids)
            return BulkResult(action, result.get('deletedCount', 0))
        result = self.service.bulk_update_status(ids, action)
        return BulkResult(action, result.get('updatedCount', 0))


class SelectionStore:
    """Selected inquiry ids and the chosen bulk action, kept in the session."""

    def __init__(self, session):
        self.session = session

    def get(self):
        selection = self.session.get(SELECTION_SESSION_KEY) or {}
        return {'ids': list(selection.get('ids') or []), 'action': selection.get('action') or ''}

    def save(self, ids, action=''):
        self.session[SELECTION_SESSION_KEY] = {'ids': list(ids), 'action': action or ''}

    def clear(self):
        self.session.pop(SELECTION_SESSION_KEY, None)
