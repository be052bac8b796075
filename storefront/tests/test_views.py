from unittest.mock import patch

import requests
from django.core.cache import cache
from django.core.files.uploadedfile import SimpleUploadedFile
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from storefront.auth_state import TOKEN_SESSION_KEY
from storefront.tests.utils import FakeBackend, envelope, fake_response, login_routes, make_inquiry, make_product


class BackendTestCase(APITestCase):
    """Views talk to a FakeBackend in place of the real product/inquiry API."""

    def setUp(self):
        cache.clear()
        self.backend = FakeBackend(login_routes())
        request_patcher = patch('storefront.api_client.requests.Session.request', side_effect=self.backend)
        request_patcher.start()
        self.addCleanup(request_patcher.stop)
        sleep_patcher = patch('storefront.cache.time.sleep')
        sleep_patcher.start()
        self.addCleanup(sleep_patcher.stop)

    def route(self, method, path, status_code=200, body=None):
        self.backend.routes[(method, path)] = fake_response(status_code, body)

    def login(self):
        response = self.client.post(
            reverse('console-login'),
            {'email': 'admin@example.com', 'password': 'secret1'},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        return response

    def notification_messages(self, response):
        return [item['message'] for item in response.data['notifications']]


class StorefrontViewTests(BackendTestCase):
    def setUp(self):
        super().setUp()
        self.route('GET', '/products/p1', body=envelope(product=make_product()))

    def test_catalogue_shows_display_pricing_without_hidden_fields(self):
        self.route('GET', '/products', body=envelope(
            products=[make_product()],
            pagination={'page': 1, 'limit': 12, 'total': 1, 'pages': 1},
        ))

        response = self.client.get(reverse('storefront-product-list'), {'category': 'shirts'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        product = response.data['products'][0]
        self.assertNotIn('hiddenFields', product)
        self.assertEqual(product['pricing']['displayPrice'], '40')
        self.assertFalse(response.data['pagination']['hasNextPage'])
        params = self.backend.calls_to('GET', '/products')[0]['params']
        self.assertEqual(params, {'category': 'shirts', 'page': 1, 'limit': 12})

    def test_product_detail_includes_inquiry_form(self):
        response = self.client.get(reverse('storefront-product-detail', args=['p1']))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['product']['inquiryForm']['variants'][0]['category'], 'size')

    def test_missing_product_answers_with_retry_link(self):
        response = self.client.get(reverse('storefront-product-detail', args=['nope']))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error']['kind'], 'not_found')
        self.assertIn('refresh=1', response.data['retry'])

    def test_unreachable_backend_is_a_bad_gateway(self):
        self.backend.routes[('GET', '/products')] = requests.ConnectionError('refused')

        response = self.client.get(reverse('storefront-product-list'))

        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertEqual(response.data['error']['kind'], 'network')
        self.assertEqual(len(self.backend.calls_to('GET', '/products')), 3)

    def test_submit_inquiry(self):
        self.route('POST', '/order-inquiries/create', status.HTTP_201_CREATED, envelope(inquiry=make_inquiry('new')))

        response = self.client.post(
            reverse('storefront-product-inquiry', args=['p1']),
            {
                'customerData': {
                    'name': ' Jane Doe ', 'phone': '+254700000000', 'reference': 'Instagram', 'city': 'Nairobi',
                },
                'quantity': 2,
                'selectedVariants': {'size': 'small'},
            },
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['estimatedTotal'], '80')
        self.assertIn('Inquiry submitted successfully! We will contact you soon.', self.notification_messages(response))
        sent = self.backend.calls_to('POST', '/order-inquiries/create')[0]['json']
        self.assertEqual(sent['customerData'], {
            'name': 'Jane Doe', 'phone': '+254700000000', 'reference': 'Instagram',
            'city': 'Nairobi', 'campaign': 'summer',
        })
        self.assertEqual(sent['selectedVariants'], {'size': 'small'})

    def test_invalid_phone_is_rejected_before_submission(self):
        response = self.client.post(
            reverse('storefront-product-inquiry', args=['p1']),
            {'customerData': {'name': 'Jane', 'phone': '07-abc', 'reference': 'Instagram'}},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['errors']['customerData.phone'], 'Please enter a valid phone number')
        self.assertEqual(self.backend.calls_to('POST', '/order-inquiries/create'), [])

    def test_variant_must_be_offered(self):
        response = self.client.post(
            reverse('storefront-product-inquiry', args=['p1']),
            {
                'customerData': {'name': 'Jane', 'phone': '+254700000000', 'reference': 'Instagram'},
                'selectedVariants': {'size': 'xx-large'},
            },
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('selectedVariants.size', response.data['errors'])

    def test_backend_field_errors_are_returned_inline(self):
        self.route('POST', '/order-inquiries/create', status.HTTP_400_BAD_REQUEST, {
            'success': False,
            'message': 'Validation failed',
            'errors': [{'field': 'customerData.reference', 'message': 'Reference is too long'}],
        })

        response = self.client.post(
            reverse('storefront-product-inquiry', args=['p1']),
            {'customerData': {'name': 'Jane', 'phone': '+254700000000', 'reference': 'Instagram'}},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['errors'], {'customerData.reference': 'Reference is too long'})
        self.assertEqual(response.data['notifications'], [])


class ConsoleAuthViewTests(BackendTestCase):
    def test_console_requires_login(self):
        response = self.client.get(reverse('console-inquiry-list'))

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_login(self):
        response = self.login()

        self.assertTrue(response.data['auth']['isAuthenticated'])
        self.assertEqual(response.data['auth']['user']['email'], 'admin@example.com')
        self.assertIn('Login successful!', self.notification_messages(response))
        self.assertEqual(self.client.session[TOKEN_SESSION_KEY], 'token-123')

    def test_failed_login(self):
        self.route('POST', '/auth/login', status.HTTP_401_UNAUTHORIZED, {'success': False, 'message': 'Invalid credentials'})

        response = self.client.post(
            reverse('console-login'),
            {'email': 'admin@example.com', 'password': 'wrong'},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['message'], 'Invalid credentials')
        self.assertEqual(response.data['auth']['status'], 'auth-error')
        self.assertNotIn(TOKEN_SESSION_KEY, self.client.session)

    def test_registration_rules(self):
        response = self.client.post(
            reverse('console-register'),
            {'username': 'ad', 'email': 'admin@example.com', 'password': 'secret1', 'confirmPassword': 'other'},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['errors']['username'], 'Username must be at least 3 characters')
        self.assertEqual(self.backend.calls, [])

    def test_session_is_validated_once_per_refresh_window(self):
        self.login()
        self.route('GET', '/order-inquiries/stats', body=envelope(total=4))

        self.client.get(reverse('console-inquiry-stats'))
        self.client.get(reverse('console-inquiry-stats'))
        response = self.client.get(reverse('console-session'))

        self.assertTrue(response.data['auth']['isAuthenticated'])
        self.assertEqual(len(self.backend.calls_to('GET', '/auth/validate')), 1)

    def test_logout_always_signs_out(self):
        self.login()
        self.route('POST', '/auth/logout', status.HTTP_500_INTERNAL_SERVER_ERROR, {'success': False})

        response = self.client.post(reverse('console-logout'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['auth']['status'], 'anonymous')
        self.assertEqual(response.data['notifications'][0]['level'], 'error')
        self.assertEqual(self.client.get(reverse('console-inquiry-list')).status_code, status.HTTP_401_UNAUTHORIZED)


class ConsoleInquiryViewTests(BackendTestCase):
    def setUp(self):
        super().setUp()
        self.login()
        self.route('GET', '/order-inquiries', body=envelope(
            inquiries=[make_inquiry('a'), make_inquiry('b', status='converted')],
            pagination={'currentPage': 1, 'totalPages': 1, 'totalItems': 2, 'itemsPerPage': 10},
        ))

    def test_list_adds_display_fields(self):
        response = self.client.get(reverse('console-inquiry-list'), {'status': 'pending'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['inquiries'][1]['statusBadge']['label'], 'Converted')
        self.assertEqual(response.data['inquiries'][0]['formattedPrice'], '$80.00')
        params = self.backend.calls_to('GET', '/order-inquiries')[0]['params']
        self.assertEqual(params, {'status': 'pending', 'page': 1, 'limit': 10})

    def test_date_preset_fills_in_the_range(self):
        self.client.get(reverse('console-inquiry-list'), {'preset': 'today'})

        today = timezone.localdate().isoformat()
        params = self.backend.calls_to('GET', '/order-inquiries')[0]['params']
        self.assertEqual(params['startDate'], today)
        self.assertEqual(params['endDate'], today)

    def test_end_date_before_start_date(self):
        response = self.client.get(
            reverse('console-inquiry-list'), {'startDate': '2024-05-10', 'endDate': '2024-05-01'},
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('endDate', response.data['errors'])

    def test_status_change(self):
        self.route('PATCH', '/order-inquiries/a/status', body=envelope(inquiry=make_inquiry('a', status='contacted')))

        response = self.client.patch(
            reverse('console-inquiry-status', args=['a']), {'status': 'contacted'}, format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['inquiry']['status'], 'contacted')
        self.assertIn('Status updated successfully!', self.notification_messages(response))
        self.assertEqual(self.backend.calls_to('GET', '/order-inquiries/a'), [])

    def test_refused_status_change_is_a_conflict(self):
        self.route('GET', '/order-inquiries/a', body=envelope(inquiry=make_inquiry('a', status='converted')))

        with patch.dict('storefront.domain.ALLOWED_TRANSITIONS', {'converted': frozenset({'converted'})}):
            response = self.client.patch(
                reverse('console-inquiry-status', args=['a']), {'status': 'pending'}, format='json',
            )

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(self.backend.calls_to('PATCH', '/order-inquiries/a/status'), [])

    def test_customer_data_edit_is_merged_into_the_stored_record(self):
        self.route('GET', '/order-inquiries/i1', body=envelope(inquiry=make_inquiry('i1')))
        self.route('PUT', '/order-inquiries/i1', body=envelope(inquiry=make_inquiry('i1')))

        response = self.client.put(
            reverse('console-inquiry-detail', args=['i1']),
            {'customerData': {'phone': '+254711111111'}},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        sent = self.backend.calls_to('PUT', '/order-inquiries/i1')[0]['json']
        self.assertEqual(sent['customerData'], {'name': 'Jane Doe', 'phone': '+254711111111', 'reference': 'Instagram'})

    def test_bulk_status_change_clears_selection(self):
        self.route('PATCH', '/order-inquiries/bulk/status', body=envelope(updatedCount=3))

        response = self.client.post(
            reverse('console-inquiry-bulk'), {'ids': ['a', 'b', 'c'], 'action': 'contacted'}, format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 3)
        calls = self.backend.calls_to('PATCH', '/order-inquiries/bulk/status')
        self.assertEqual(len(calls), 1)
        self.assertEqual(calls[0]['json'], {'ids': ['a', 'b', 'c'], 'status': 'contacted'})
        selection = self.client.get(reverse('console-inquiry-selection')).data['selection']
        self.assertEqual(selection, {'ids': [], 'action': ''})

    def test_failed_bulk_action_keeps_selection(self):
        self.route('DELETE', '/order-inquiries/bulk/delete', status.HTTP_500_INTERNAL_SERVER_ERROR, {'success': False})

        response = self.client.post(
            reverse('console-inquiry-bulk'), {'ids': ['a', 'b'], 'action': 'delete'}, format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data['notifications'][0]['level'], 'error')
        selection = self.client.get(reverse('console-inquiry-selection')).data['selection']
        self.assertEqual(selection, {'ids': ['a', 'b'], 'action': 'delete'})

    def test_unreachable_backend_during_bulk_action_keeps_selection(self):
        self.backend.routes[('DELETE', '/order-inquiries/bulk/delete')] = requests.ConnectionError('refused')

        response = self.client.post(
            reverse('console-inquiry-bulk'), {'ids': ['a', 'b'], 'action': 'delete'}, format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        selection = self.client.get(reverse('console-inquiry-selection')).data['selection']
        self.assertEqual(selection, {'ids': ['a', 'b'], 'action': 'delete'})

    def test_timed_out_bulk_action_keeps_selection(self):
        self.backend.routes[('PATCH', '/order-inquiries/bulk/status')] = requests.Timeout('slow')

        response = self.client.post(
            reverse('console-inquiry-bulk'), {'ids': ['c'], 'action': 'cancelled'}, format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_504_GATEWAY_TIMEOUT)
        self.assertEqual(response.data['selection'], {'ids': ['c'], 'action': 'cancelled'})
        selection = self.client.get(reverse('console-inquiry-selection')).data['selection']
        self.assertEqual(selection, {'ids': ['c'], 'action': 'cancelled'})

    def test_bulk_action_uses_stored_selection(self):
        self.route('DELETE', '/order-inquiries/bulk/delete', body=envelope(deletedCount=2))
        self.client.put(
            reverse('console-inquiry-selection'), {'ids': ['a', 'b'], 'action': 'delete'}, format='json',
        )

        response = self.client.post(reverse('console-inquiry-bulk'), {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self.backend.calls_to('DELETE', '/order-inquiries/bulk/delete')[0]['json'], {'ids': ['a', 'b']})

    def test_bulk_action_without_selection(self):
        response = self.client.post(reverse('console-inquiry-bulk'), {'action': 'contacted'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Select at least one inquiry')

    def test_export_downloads_csv(self):
        self.route('GET', '/order-inquiries/a', body=envelope(inquiry=make_inquiry('a')))

        response = self.client.post(reverse('console-inquiry-bulk'), {'ids': ['a'], 'action': 'export'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], 'text/csv; charset=utf-8')
        self.assertIn('attachment; filename="order-inquiries-', response['Content-Disposition'])
        self.assertTrue(response.content.decode('utf-8').startswith('"ID","Product Name"'))

    def test_dashboard_shows_partial_results(self):
        self.route('GET', '/products', body=envelope(products=[make_product()], pagination={'page': 1, 'pages': 1}))
        self.route('GET', '/products/stats/overview', body=envelope(totalProducts=1))
        self.route('GET', '/order-inquiries/stats', status.HTTP_500_INTERNAL_SERVER_ERROR, {'success': False})

        response = self.client.get(reverse('console-dashboard'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['productStats'], {'totalProducts': 1})
        self.assertEqual(len(response.data['recentInquiries']), 2)
        self.assertIsNone(response.data['inquiryStats'])
        self.assertEqual(response.data['errors']['inquiryStats']['kind'], 'server')


class ConsoleProductViewTests(BackendTestCase):
    def setUp(self):
        super().setUp()
        self.login()

    def test_invalid_draft_is_never_submitted(self):
        self.client.post(reverse('console-product-draft'), {}, format='json')
        self.client.patch(
            reverse('console-product-draft'),
            {'name': 'Linen Shirt', 'price': -5, 'description': 'Breathable'},
            format='json',
        )

        response = self.client.post(reverse('console-product-draft-submit'))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['errors'], {'price': 'Price cannot be negative'})
        self.assertEqual(self.backend.calls_to('POST', '/products'), [])

    def test_draft_submit_creates_product(self):
        self.route('POST', '/products', status.HTTP_201_CREATED, envelope(product=make_product(_id='p9')))
        self.client.post(reverse('console-product-draft'), {}, format='json')
        self.client.patch(
            reverse('console-product-draft'),
            {'name': 'Linen Shirt', 'price': 50, 'description': 'Breathable'},
            format='json',
        )
        section = self.client.post(
            reverse('console-product-draft-section', args=['offers']),
            {'op': 'add', 'data': {'title': ''}},
            format='json',
        )
        self.assertEqual(section.data['draft']['errors'], {'offers.0.title': 'Offer title is required'})
        self.client.post(
            reverse('console-product-draft-section', args=['offers']),
            {'op': 'update', 'index': 0, 'data': {'title': 'Launch week'}},
            format='json',
        )

        response = self.client.post(reverse('console-product-draft-submit'))

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['product']['_id'], 'p9')
        self.assertIn('Product created successfully!', self.notification_messages(response))
        sent = self.backend.calls_to('POST', '/products')[0]['json']
        self.assertEqual(sent['offers'][0]['title'], 'Launch week')
        self.assertEqual(self.client.get(reverse('console-product-draft')).status_code, status.HTTP_404_NOT_FOUND)

    def test_clone_draft(self):
        self.route('GET', '/products/p1', body=envelope(product=make_product()))

        response = self.client.post(
            reverse('console-product-draft'), {'productId': 'p1', 'clone': True, 'reference': 'SKU-1'}, format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['draft']['isNew'])
        self.assertEqual(response.data['draft']['product']['name'], 'Linen Shirt (Copy)')

    def test_bulk_product_update(self):
        self.route('PATCH', '/products/bulk', body=envelope(modifiedCount=2))

        response = self.client.patch(
            reverse('console-product-bulk'),
            {'productIds': ['p1', 'p2'], 'updateData': {'category': 'shirts'}},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('2 products updated successfully!', self.notification_messages(response))
        call = self.backend.calls_to('PATCH', '/products/bulk')[0]
        self.assertEqual(call['json'], {'productIds': ['p1', 'p2'], 'updateData': {'category': 'shirts'}})
        self.assertEqual(call['timeout'], 20)

    def test_offer_discount_over_100_is_an_inline_error(self):
        self.client.post(reverse('console-product-draft'), {}, format='json')

        response = self.client.post(
            reverse('console-product-draft-section', args=['offers']),
            {'op': 'add', 'data': {'title': 'Big sale', 'discount': 150}},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['draft']['errors']['offers.0.discount'], 'Discount cannot exceed 100%')
        draft = self.client.get(reverse('console-product-draft')).data['draft']
        self.assertEqual(draft['product']['offers'][0]['discount'], 150)


class ConsoleImageUploadViewTests(BackendTestCase):
    def setUp(self):
        super().setUp()
        self.login()
        self.client.post(reverse('console-product-draft'), {}, format='json')

    def upload(self, image, **extra):
        return self.client.post(
            reverse('console-product-draft-image-upload'), {'image': image, **extra}, format='multipart',
        )

    def test_uploaded_image_is_added_to_the_draft(self):
        self.route('POST', '/upload', body=envelope(imageUrl='/uploads/image-1.jpg'))

        response = self.upload(SimpleUploadedFile('shirt.jpg', b'\xff\xd8\xff', content_type='image/jpeg'))

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['imageUrl'], 'http://localhost:5001/uploads/image-1.jpg')
        self.assertEqual(response.data['draft']['product']['images'], ['http://localhost:5001/uploads/image-1.jpg'])
        call = self.backend.calls_to('POST', '/upload')[0]
        self.assertEqual(call['timeout'], 30)
        self.assertIn('image', call['files'])
        self.assertNotIn('Content-Type', call['headers'])

    def test_uploaded_image_can_replace_a_slot(self):
        self.route('POST', '/upload', body=envelope(imageUrl='https://cdn.example.com/new.png'))
        self.client.post(
            reverse('console-product-draft-section', args=['images']),
            {'op': 'add', 'data': {'url': 'https://cdn.example.com/old.png'}},
            format='json',
        )

        response = self.upload(SimpleUploadedFile('new.png', b'\x89PNG', content_type='image/png'), index=0)

        self.assertEqual(response.data['draft']['product']['images'], ['https://cdn.example.com/new.png'])

    def test_non_image_file_is_rejected_without_upload(self):
        response = self.upload(SimpleUploadedFile('notes.txt', b'hello', content_type='text/plain'))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(
            response.data['errors']['image'], 'Please select a valid image file (JPEG, PNG, WEBP, GIF, SVG)',
        )
        self.assertEqual(self.backend.calls_to('POST', '/upload'), [])

    def test_backend_rejection_uses_a_friendly_message(self):
        self.route('POST', '/upload', status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, {
            'success': False, 'message': 'File too large. Maximum size is 5MB.', 'errorCode': 'FILE_TOO_LARGE',
        })

        response = self.upload(SimpleUploadedFile('big.jpg', b'\xff\xd8\xff', content_type='image/jpeg'))

        self.assertEqual(response.status_code, status.HTTP_413_REQUEST_ENTITY_TOO_LARGE)
        self.assertEqual(response.data['error']['message'], 'File too large. Maximum size is 5MB.')
        self.assertIn('File too large. Maximum size is 5MB.', self.notification_messages(response))
        draft = self.client.get(reverse('console-product-draft')).data['draft']
        self.assertEqual(draft['product']['images'], [])
