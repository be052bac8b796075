"""
In-progress product edits.

The draft lives in the session while the admin works through the editor tabs
(basic info, dynamic fields, predefined fields, offers, hidden fields, images).
Nothing reaches the backend until the draft is submitted.
"""
import copy
import logging
from typing import Any, Dict, Optional

from storefront.domain import PREDEFINED_CATEGORIES
from storefront.serializers import ProductSerializer, flatten_errors

logger = logging.getLogger(__name__)

DRAFT_SESSION_KEY = 'productDraft'

BASIC_FIELDS = ('name', 'price', 'discountPrice', 'description', 'references')

# Editor tab -> draft list it edits and the blank item it appends
SECTIONS = {
    'dynamic-fields': ('dynamicFields', {'key': '', 'placeholder': ''}),
    'offers': ('offers', {'title': '', 'description': '', 'discount': 0, 'validUntil': None, 'isActive': True}),
    'hidden-fields': ('hiddenFields', {'key': '', 'value': '', 'description': ''}),
    'images': ('images', ''),
    'predefined-fields': ('predefinedFields', None),
}
SECTION_PATTERN = '|'.join(SECTIONS)


def blank_product() -> Dict[str, Any]:
    return {
        'name': '',
        'price': 0,
        'description': '',
        'images': [],
        'dynamicFields': [],
        'predefinedFields': [
            {'category': category, 'options': list(options), 'selectedOptions': [], 'isActive': False}
            for category, options in PREDEFINED_CATEGORIES.items()
        ],
        'references': {},
        'offers': [],
        'hiddenFields': [],
    }


class DraftError(ValueError):
    pass


class ProductDraft:
    def __init__(self, data: Optional[Dict[str, Any]] = None, product_id: Optional[str] = None):
        self.data = data if data is not None else blank_product()
        self.product_id = product_id

    # -- construction -------------------------------------------------------

    @classmethod
    def from_product(cls, product: Dict[str, Any], clone: bool = False, reference: str = '') -> 'ProductDraft':
        """Draft pre-filled from an existing product; a clone is saved as a new product."""
        data = blank_product()
        for key in data:
            if key in product and product[key] is not None:
                data[key] = copy.deepcopy(product[key])
        if product.get('discountPrice') is not None:
            data['discountPrice'] = product['discountPrice']
        draft = cls(data, product_id=None if clone else str(product.get('_id') or product.get('id') or ''))
        draft._merge_predefined_categories()
        if clone:
            data['name'] = f"{data['name']} (Copy)" if data['name'] else ''
            if reference:
                draft.add('hidden-fields', {'key': 'clonedFrom', 'value': reference, 'description': 'Clone reference'})
        return draft

    def _merge_predefined_categories(self):
        present = {item.get('category') for item in self.data['predefinedFields']}
        for category, options in PREDEFINED_CATEGORIES.items():
            if category not in present:
                self.data['predefinedFields'].append(
                    {'category': category, 'options': list(options), 'selectedOptions': [], 'isActive': False}
                )

    # -- session persistence ------------------------------------------------

    @classmethod
    def load(cls, session) -> Optional['ProductDraft']:
        stored = session.get(DRAFT_SESSION_KEY)
        if not stored:
            return None
        return cls(stored['data'], product_id=stored.get('productId'))

    def save(self, session):
        session[DRAFT_SESSION_KEY] = {'data': self.data, 'productId': self.product_id}

    @staticmethod
    def discard(session):
        session.pop(DRAFT_SESSION_KEY, None)

    # -- basic info -----------------------------------------------------------

    def set_basic_info(self, values: Dict[str, Any]):
        for key, value in values.items():
            if key not in BASIC_FIELDS:
                raise DraftError(f'Unknown product field: {key}')
            if key == 'discountPrice' and value in ('', None):
                self.data.pop('discountPrice', None)
                continue
            self.data[key] = value

    # -- per-tab operations -------------------------------------------------

    def _items(self, section: str):
        if section not in SECTIONS:
            raise DraftError(f'Unknown editor section: {section}')
        return self.data.setdefault(SECTIONS[section][0], [])

    def _check_index(self, items, index: int):
        if index is None or not 0 <= index < len(items):
            raise DraftError(f'No item at position {index}')

    def add(self, section: str, values: Optional[Dict[str, Any]] = None):
        if section == 'predefined-fields':
            raise DraftError('Predefined categories are fixed; toggle or update them instead')
        items = self._items(section)
        blank = SECTIONS[section][1]
        if section == 'images':
            items.append((values or {}).get('url', ''))
            return
        item = dict(blank)
        item.update(values or {})
        items.append(item)

    def update(self, section: str, index: int, values: Dict[str, Any]):
        items = self._items(section)
        self._check_index(items, index)
        if section == 'images':
            items[index] = values.get('url', items[index])
            return
        if section == 'predefined-fields':
            self._update_predefined(items[index], values)
            return
        items[index] = {**items[index], **values}

    def remove(self, section: str, index: int):
        if section == 'predefined-fields':
            raise DraftError('Predefined categories cannot be removed; deactivate them instead')
        items = self._items(section)
        self._check_index(items, index)
        del items[index]

    def _update_predefined(self, item: Dict[str, Any], values: Dict[str, Any]):
        if 'isActive' in values:
            item['isActive'] = bool(values['isActive'])
        if 'selectedOptions' in values:
            item['selectedOptions'] = [option for option in values['selectedOptions'] if option in item['options']]
        if 'toggleOption' in values:
            option = values['toggleOption']
            if option not in item['options']:
                raise DraftError(f'Unknown option for {item["category"]}: {option}')
            selected = item['selectedOptions']
            if option in selected:
                selected.remove(option)
            else:
                selected.append(option)

    def toggle_category(self, category: str):
        for item in self.data['predefinedFields']:
            if item['category'] == category:
                item['isActive'] = not item['isActive']
                return
        raise DraftError(f'Unknown category: {category}')

    def apply(self, section: str, op: str, index: Optional[int] = None, values: Optional[Dict[str, Any]] = None):
        """Dispatch an add/update/remove coming from one of the editor tabs."""
        values = values or {}
        if op == 'add':
            self.add(section, values)
        elif op == 'update':
            self.update(section, index, values)
        elif op == 'remove':
            self.remove(section, index)
        elif op == 'toggle' and section == 'predefined-fields':
            self.toggle_category(values.get('category'))
        else:
            raise DraftError(f'Unknown operation: {op}')

    # -- validation -----------------------------------------------------------

    def _serializer(self):
        return ProductSerializer(data=self.data)

    def validate(self) -> Dict[str, str]:
        """Field errors keyed by dotted path; empty when the draft can be submitted."""
        serializer = self._serializer()
        if serializer.is_valid():
            return {}
        return flatten_errors(serializer.errors)

    def payload(self) -> Dict[str, Any]:
        serializer = self._serializer()
        if not serializer.is_valid():
            raise DraftError('Product draft has validation errors')
        return dict(serializer.data)

    def to_dict(self) -> Dict[str, Any]:
        return {'productId': self.product_id, 'isNew': not self.product_id, 'product': self.data, 'errors': self.validate()}
