"""Fake backend responses for tests; the real backend is never contacted."""
import json
from urllib.parse import urlsplit

import requests

from storefront.api_client import api_setting


def fake_response(status_code=200, body=None, content=None):
    """A requests.Response carrying ``body`` as JSON (or raw ``content``)."""
    response = requests.Response()
    response.status_code = status_code
    response.url = api_setting('BASE_URL', 'http://localhost:5001/api')
    response.encoding = 'utf-8'
    if content is not None:
        response._content = content.encode('utf-8')
    elif body is not None:
        response._content = json.dumps(body).encode('utf-8')
        response.headers['Content-Type'] = 'application/json'
    else:
        response._content = b''
    return response


def envelope(**data):
    return {'success': True, 'data': data}


class FakeBackend:
    """
    Stand-in for requests.Session.request.

    ``routes`` maps (METHOD, path) to a response, an exception to raise, or a list
    of those consumed in order. Unknown routes answer 404.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []

    def __call__(self, method, url, **kwargs):
        base_path = urlsplit(api_setting('BASE_URL', 'http://localhost:5001/api')).path.rstrip('/')
        path = urlsplit(url).path[len(base_path):]
        self.calls.append({'method': method, 'path': path, **kwargs})

        outcome = self.routes.get((method, path))
        if isinstance(outcome, list):
            outcome = outcome.pop(0) if len(outcome) > 1 else outcome[0]
        if outcome is None:
            return fake_response(404, {'success': False, 'message': f'Route {path} not found'})
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def calls_to(self, method, path):
        return [call for call in self.calls if call['method'] == method and call['path'] == path]


class DictTokenStore:
    """In-memory token store for client tests."""

    def __init__(self, token=None):
        self.token = token
        self.user = None
        self.cleared = False

    def clear(self):
        self.token = None
        self.user = None
        self.cleared = True


ADMIN_USER = {'id': 'u1', 'username': 'admin', 'email': 'admin@example.com', 'role': 'admin'}


def login_routes(token='token-123'):
    return {
        ('POST', '/auth/login'): fake_response(200, envelope(token=token, user=ADMIN_USER)),
        ('GET', '/auth/validate'): fake_response(200, {'success': True}),
    }


def make_product(**overrides):
    product = {
        '_id': 'p1',
        'name': 'Linen Shirt',
        'price': 50,
        'discountPrice': 40,
        'description': 'Breathable summer shirt',
        'images': ['https://cdn.example.com/shirt.jpg'],
        'dynamicFields': [{'key': 'city', 'placeholder': 'Delivery city'}],
        'predefinedFields': [
            {'category': 'size', 'options': ['small', 'medium', 'large', 'x-large', 'xx-large'],
             'selectedOptions': ['small', 'medium'], 'isActive': True},
            {'category': 'color', 'options': ['red', 'blue'], 'selectedOptions': ['red'], 'isActive': False},
        ],
        'offers': [],
        'hiddenFields': [{'key': 'campaign', 'value': 'summer', 'description': 'Ad campaign'}],
        'references': {},
    }
    product.update(overrides)
    return product


def make_inquiry(inquiry_id='i1', **overrides):
    inquiry = {
        '_id': inquiry_id,
        'productId': 'p1',
        'productName': 'Linen Shirt',
        'customerData': {'name': 'Jane Doe', 'phone': '+254700000000', 'reference': 'Instagram'},
        'quantity': 2,
        'totalPrice': 80,
        'status': 'pending',
        'notes': '',
        'createdAt': '2024-05-01T10:00:00.000Z',
    }
    inquiry.update(overrides)
    return inquiry
