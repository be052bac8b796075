"""
Client-side representations of backend entities and the pure logic around them
(pricing, offers, inquiry display helpers, filter presets).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Tuple

from django.db import models
from django.utils import timezone
from django.utils.dateparse import parse_datetime


class InquiryStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    CONTACTED = 'contacted', 'Contacted'
    CONVERTED = 'converted', 'Converted'
    CANCELLED = 'cancelled', 'Cancelled'


# Every status may currently move to every other status.
ALLOWED_TRANSITIONS = {
    status: frozenset(InquiryStatus.values) for status in InquiryStatus.values
}


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def transitions_restricted() -> bool:
    """True once some status may no longer move to every other status."""
    every = frozenset(InquiryStatus.values)
    return any(targets != every for targets in ALLOWED_TRANSITIONS.values())


# Option lists offered by the product editor's predefined-field tab
PREDEFINED_CATEGORIES = {
    'size': ['small', 'medium', 'large', 'x-large', 'xx-large'],
    'color': ['red', 'blue', 'green', 'black', 'white', 'yellow', 'purple', 'pink'],
    'material': ['cotton', 'polyester', 'silk', 'wool', 'leather', 'denim'],
    'style': ['casual', 'formal', 'sport', 'vintage', 'modern'],
}

CORE_CUSTOMER_FIELDS = ('name', 'phone', 'reference')


def _parse_when(value) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = parse_datetime(str(value).replace('Z', '+00:00'))
        if parsed is None:
            return None
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, dt_timezone.utc)
    return parsed


def _money(value) -> Optional[Decimal]:
    if value is None or value == '':
        return None
    return Decimal(str(value))


# ---------------------------------------------------------------------------
# Customer data
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CustomerData:
    """Required contact fields plus ordered extra (key, value) pairs."""
    name: str
    phone: str
    reference: str
    extra: Tuple[Tuple[str, str], ...] = ()

    @classmethod
    def from_api(cls, data: Optional[Dict[str, Any]]) -> 'CustomerData':
        data = data or {}
        extra = tuple(
            (str(key), '' if value is None else str(value))
            for key, value in data.items()
            if key not in CORE_CUSTOMER_FIELDS
        )
        return cls(
            name=data.get('name') or '',
            phone=data.get('phone') or '',
            reference=data.get('reference') or '',
            extra=extra,
        )

    def sanitized(self) -> 'CustomerData':
        return CustomerData(
            name=self.name.strip(),
            phone=self.phone.strip(),
            reference=self.reference.strip(),
            extra=tuple((key, value.strip()) for key, value in self.extra),
        )

    def to_api(self) -> Dict[str, str]:
        data = {'name': self.name, 'phone': self.phone, 'reference': self.reference}
        for key, value in self.extra:
            data.setdefault(key, value)
        return data


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Offer:
    title: str
    discount: Optional[Decimal] = None
    description: str = ''
    valid_until: Optional[datetime] = None
    is_active: bool = True

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'Offer':
        return cls(
            title=data.get('title') or '',
            discount=_money(data.get('discount')),
            description=data.get('description') or '',
            valid_until=_parse_when(data.get('validUntil')),
            is_active=data.get('isActive', True) is not False,
        )

    def is_live(self, now: Optional[datetime] = None) -> bool:
        """Active flag set and not yet expired."""
        if not self.is_active:
            return False
        if self.valid_until is None:
            return True
        return self.valid_until > (now or timezone.now())


@dataclass(frozen=True)
class ProductPricing:
    price: Decimal
    discount_price: Optional[Decimal]

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'ProductPricing':
        return cls(price=_money(data.get('price')) or Decimal('0'), discount_price=_money(data.get('discountPrice')))

    @property
    def has_discount(self) -> bool:
        """A discount is only shown when it actually undercuts the regular price."""
        return self.discount_price is not None and Decimal('0') <= self.discount_price < self.price

    @property
    def unit_price(self) -> Decimal:
        return self.discount_price if self.has_discount else self.price

    @property
    def discount_percent(self) -> int:
        if not self.has_discount or not self.price:
            return 0
        percent = (self.price - self.discount_price) / self.price * 100
        return int(percent.quantize(Decimal('1'), rounding=ROUND_HALF_UP))

    @property
    def savings(self) -> Decimal:
        return self.price - self.unit_price

    def total_for(self, quantity: int) -> Decimal:
        return self.unit_price * max(int(quantity or 1), 1)

    def to_display(self) -> Dict[str, Any]:
        return {
            'price': str(self.price),
            'displayPrice': str(self.unit_price),
            'originalPrice': str(self.price) if self.has_discount else None,
            'onSale': self.has_discount,
            'discountPercent': self.discount_percent,
            'savings': str(self.savings),
        }


def live_offers(product: Dict[str, Any], now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    return [offer for offer in product.get('offers') or [] if Offer.from_api(offer).is_live(now)]


def inquiry_form_fields(product: Dict[str, Any]) -> Dict[str, Any]:
    """Inputs a customer fills in when inquiring about ``product``."""
    return {
        'fields': [
            {'key': 'name', 'label': 'Name', 'required': True},
            {'key': 'phone', 'label': 'Phone', 'required': True},
            {'key': 'reference', 'label': 'Reference', 'required': True},
        ] + [
            {'key': item.get('key'), 'label': item.get('placeholder') or item.get('key'), 'required': False}
            for item in product.get('dynamicFields') or []
            if item.get('key') and item.get('key') not in CORE_CUSTOMER_FIELDS
        ],
        'variants': [
            {'category': item.get('category'), 'options': item.get('selectedOptions') or []}
            for item in product.get('predefinedFields') or []
            if item.get('isActive') and item.get('selectedOptions')
        ],
    }


def storefront_product(product: Dict[str, Any], detail: bool = False) -> Dict[str, Any]:
    """Public view of a backend product: hidden fields removed, display pricing added."""
    data = {key: value for key, value in product.items() if key != 'hiddenFields'}
    pricing = ProductPricing.from_api(product)
    data['pricing'] = pricing.to_display()
    if not pricing.has_discount:
        data.pop('discountPrice', None)
    data['offers'] = live_offers(product)
    if detail:
        data['inquiryForm'] = inquiry_form_fields(product)
    return data


# ---------------------------------------------------------------------------
# Inquiries
# ---------------------------------------------------------------------------

STATUS_BADGE_CLASSES = {
    InquiryStatus.PENDING: 'bg-yellow-100 text-yellow-800',
    InquiryStatus.CONTACTED: 'bg-blue-100 text-blue-800',
    InquiryStatus.CONVERTED: 'bg-green-100 text-green-800',
    InquiryStatus.CANCELLED: 'bg-red-100 text-red-800',
}


def status_badge(status: str) -> Dict[str, str]:
    return {
        'label': (status or '').capitalize(),
        'className': STATUS_BADGE_CLASSES.get(status, 'bg-gray-100 text-gray-800'),
    }


def format_price(value) -> str:
    amount = _money(value)
    if not amount:
        return 'N/A'
    return f'${amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)}'


def format_date(value) -> str:
    when = _parse_when(value)
    if when is None:
        return ''
    when = timezone.localtime(when)
    return f'{when:%b} {when.day}, {when:%Y, %I:%M %p}'


def time_ago(value, now: Optional[datetime] = None) -> str:
    when = _parse_when(value)
    if when is None:
        return ''
    seconds = int(((now or timezone.now()) - when).total_seconds())
    if seconds < 60:
        return 'Just now'
    if seconds < 3600:
        return f'{seconds // 60} minutes ago'
    if seconds < 86400:
        return f'{seconds // 3600} hours ago'
    if seconds < 604800:
        return f'{seconds // 86400} days ago'
    return format_date(when)


@dataclass(frozen=True)
class Inquiry:
    id: str
    product_id: str
    product_name: str
    customer: CustomerData
    status: str = InquiryStatus.PENDING
    quantity: Optional[int] = None
    selected_variants: Dict[str, str] = field(default_factory=dict)
    total_price: Optional[Decimal] = None
    notes: str = ''
    created_at: str = ''
    updated_at: str = ''

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'Inquiry':
        return cls(
            id=str(data.get('_id') or data.get('id') or ''),
            product_id=str(data.get('productId') or ''),
            product_name=data.get('productName') or '',
            customer=CustomerData.from_api(data.get('customerData')),
            status=data.get('status') or InquiryStatus.PENDING,
            quantity=data.get('quantity'),
            selected_variants=dict(data.get('selectedVariants') or {}),
            total_price=_money(data.get('totalPrice')),
            notes=data.get('notes') or '',
            created_at=data.get('createdAt') or '',
            updated_at=data.get('updatedAt') or '',
        )


def present_inquiry(data: Dict[str, Any]) -> Dict[str, Any]:
    """Backend inquiry plus the display fields the console shows next to it."""
    inquiry = Inquiry.from_api(data)
    presented = dict(data)
    presented['statusBadge'] = status_badge(inquiry.status)
    presented['formattedPrice'] = format_price(inquiry.total_price)
    presented['timeAgo'] = time_ago(inquiry.created_at)
    return presented


INQUIRY_FILTER_KEYS = ('page', 'limit', 'status', 'productId', 'phone', 'name', 'startDate', 'endDate')


def build_filters(form_data: Dict[str, Any]) -> Dict[str, Any]:
    """Keep only the inquiry filters that carry a value."""
    filters = {}
    for key in INQUIRY_FILTER_KEYS:
        value = form_data.get(key)
        if value in (None, ''):
            continue
        filters[key] = int(value) if key in ('page', 'limit') else value
    return filters


DATE_PRESETS = (
    ('today', 'Today'),
    ('yesterday', 'Yesterday'),
    ('last_7_days', 'Last 7 days'),
    ('last_30_days', 'Last 30 days'),
    ('last_3_months', 'Last 3 months'),
)


def date_range_presets(today=None) -> Dict[str, Dict[str, str]]:
    today = today or timezone.localdate()
    yesterday = today - timedelta(days=1)
    starts = {
        'today': (today, today),
        'yesterday': (yesterday, yesterday),
        'last_7_days': (today - timedelta(days=7), today),
        'last_30_days': (today - timedelta(days=30), today),
        'last_3_months': (today - timedelta(days=90), today),
    }
    return {
        key: {'label': label, 'startDate': starts[key][0].isoformat(), 'endDate': starts[key][1].isoformat()}
        for key, label in DATE_PRESETS
    }


def normalize_pagination(pagination: Optional[Dict[str, Any]], params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Standard pagination object ({currentPage, totalPages, totalItems, itemsPerPage,
    hasNextPage, hasPrevPage}) from either backend shape. Product lists answer with
    {page, limit, total, pages}.
    """
    pagination = pagination or {}
    params = params or {}
    current = int(pagination.get('currentPage') or pagination.get('page') or params.get('page') or 1)
    total_pages = int(pagination.get('totalPages') or pagination.get('pages') or 0)
    total_items = int(pagination.get('totalItems') or pagination.get('total') or 0)
    per_page = int(pagination.get('itemsPerPage') or pagination.get('limit') or params.get('limit') or 0)
    return {
        'currentPage': current,
        'totalPages': total_pages,
        'totalItems': total_items,
        'itemsPerPage': per_page,
        'hasNextPage': bool(pagination.get('hasNextPage', True)) and current < total_pages,
        'hasPrevPage': current > 1,
    }
