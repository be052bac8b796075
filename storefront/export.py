"""CSV export of order inquiries."""
import csv
import io
from typing import Any, Dict, Iterable

from django.http import HttpResponse
from django.utils import timezone

from storefront.domain import Inquiry

CSV_HEADERS = [
    'ID',
    'Product Name',
    'Customer Name',
    'Phone',
    'Reference',
    'Quantity',
    'Total Price',
    'Status',
    'Created At',
    'Notes',
]


def inquiry_row(data: Dict[str, Any]):
    inquiry = Inquiry.from_api(data)
    customer = inquiry.customer
    return [
        inquiry.id,
        inquiry.product_name,
        customer.name,
        customer.phone,
        customer.reference,
        inquiry.quantity or 1,
        inquiry.total_price if inquiry.total_price is not None else 0,
        inquiry.status,
        inquiry.created_at,
        inquiry.notes,
    ]


def write_inquiries_csv(handle, inquiries: Iterable[Dict[str, Any]]):
    """Every cell quoted, rows separated by a bare newline."""
    writer = csv.writer(handle, quoting=csv.QUOTE_ALL, lineterminator='\n')
    writer.writerow(CSV_HEADERS)
    for inquiry in inquiries:
        writer.writerow(inquiry_row(inquiry))


def inquiries_to_csv(inquiries: Iterable[Dict[str, Any]]) -> str:
    buffer = io.StringIO()
    write_inquiries_csv(buffer, inquiries)
    # No trailing newline after the last row
    return buffer.getvalue().rstrip('\n')


def export_filename(today=None) -> str:
    today = today or timezone.now().date()
    return f'order-inquiries-{today.isoformat()}.csv'


def csv_response(content: str, filename: str) -> HttpResponse:
    response = HttpResponse(content, content_type='text/csv; charset=utf-8')
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response


def csv_download(inquiries: Iterable[Dict[str, Any]], today=None) -> HttpResponse:
    return csv_response(inquiries_to_csv(inquiries), export_filename(today))
