"""Admin console API: authentication, dashboard, product management and order inquiries."""
import logging

from django.conf import settings
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema
from rest_framework import permissions, status
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.response import Response

from storefront.bulk_actions import InquiryBulkActions, SelectionStore
from storefront.cache import gather
from storefront.domain import (
    build_filters, can_transition, date_range_presets, present_inquiry, transitions_restricted,
)
from storefront.exceptions import ApiError
from storefront.export import csv_response
from storefront.permissions import IsAnonymousVisitor, IsConsoleAdmin
from storefront.product_editor import SECTION_PATTERN, DraftError, ProductDraft
from storefront.responses import StorefrontAPIView, StorefrontViewSet
from storefront.serializers import (
    BulkProductUpdateSerializer,
    DraftOperationSerializer,
    DraftStartSerializer,
    ImageUploadSerializer,
    InquiryFilterSerializer,
    InquiryUpdateSerializer,
    LoginSerializer,
    ProductFilterSerializer,
    ProductSerializer,
    RegisterSerializer,
    SelectionSerializer,
    StatusUpdateSerializer,
)

logger = logging.getLogger(__name__)

RECENT_ITEMS = 5


# --- AUTH ---

class SessionView(StorefrontAPIView):
    """GET: Validate the stored token and report the admin's auth state."""
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        state = self.admin_session.validate_token()
        return Response({'auth': state.to_dict()})


@extend_schema(request=LoginSerializer, responses=OpenApiTypes.OBJECT)
class LoginView(StorefrontAPIView):
    permission_classes = [IsAnonymousVisitor]

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        if not serializer.is_valid():
            return self.invalid_response(serializer.errors)

        state = self.admin_session.login(**serializer.validated_data)
        if not state.is_authenticated:
            return Response(
                {'auth': state.to_dict(), 'message': state.error},
                status=status.HTTP_401_UNAUTHORIZED,
            )
        request.session.cycle_key()
        return Response({'auth': state.to_dict()})


@extend_schema(request=RegisterSerializer, responses=OpenApiTypes.OBJECT)
class RegisterView(StorefrontAPIView):
    """
    POST: Register a new admin account and sign it in.

    The backend's own validation messages (e.g. an email already in use) come back
    under ``errors`` with a 400.
    """
    permission_classes = [IsAnonymousVisitor]

    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        if not serializer.is_valid():
            return self.invalid_response(serializer.errors)

        data = serializer.validated_data
        state = self.admin_session.register(data['username'], data['email'], data['password'])
        if not state.is_authenticated:
            return Response(
                {'auth': state.to_dict(), 'message': state.error},
                status=status.HTTP_400_BAD_REQUEST,
            )
        request.session.cycle_key()
        return Response({'auth': state.to_dict()}, status=status.HTTP_201_CREATED)


class LogoutView(StorefrontAPIView):
    """POST: Sign out. Local credentials, cached reads, the product draft and the selection are always dropped."""
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        state = self.admin_session.logout()
        ProductDraft.discard(request.session)
        SelectionStore(request.session).clear()
        return Response({'auth': state.to_dict()})


class RefreshView(StorefrontAPIView):
    permission_classes = [IsConsoleAdmin]

    def post(self, request):
        state = self.admin_session.refresh_token()
        if not state.is_authenticated:
            return Response({'auth': state.to_dict()}, status=status.HTTP_401_UNAUTHORIZED)
        return Response({'auth': state.to_dict()})


# --- DASHBOARD ---

class DashboardView(StorefrontAPIView):
    """
    GET: Product stats, inquiry stats, recent products and recent inquiries.

    The four reads run concurrently; a section that fails carries its own error
    while the others still render.
    """
    permission_classes = [IsConsoleAdmin]

    def get(self, request):
        force = self.wants_refresh()
        products = self.products
        inquiries = self.inquiries
        results = gather(
            productStats=lambda: products.product_stats(force=force),
            inquiryStats=lambda: inquiries.inquiry_stats(force=force),
            recentProducts=lambda: products.list_products({'limit': RECENT_ITEMS}, force=force),
            recentInquiries=lambda: inquiries.list_inquiries({'limit': RECENT_ITEMS}, force=force),
        )

        body = {'errors': {}}
        for name, result in results.items():
            if result.is_error:
                body[name] = None
                body['errors'][name] = result.error.to_dict()
            elif name == 'recentProducts':
                body[name] = result.data['products']
            elif name == 'recentInquiries':
                body[name] = [present_inquiry(inquiry) for inquiry in result.data['inquiries']]
            else:
                body[name] = result.data
        if body['errors']:
            body['retry'] = f'{request.path}?refresh=1'
        return Response(body)


# --- PRODUCTS ---

def _no_draft_response():
    return Response({'message': 'No product draft in progress'}, status=status.HTTP_404_NOT_FOUND)


class ProductViewSet(StorefrontViewSet):
    """
    Console product management.

    The CRUD methods map onto the backend's product endpoints. The ``draft``
    actions drive the product editor: the product being edited lives in the
    session until it is submitted.
    """
    permission_classes = [IsConsoleAdmin]

    def list(self, request):
        filters = ProductFilterSerializer(data=request.query_params)
        if not filters.is_valid():
            return self.invalid_response(filters.errors)
        params = dict(filters.validated_data)
        params.setdefault('limit', settings.STOREFRONT_PRODUCT_PAGE_SIZE)

        result = self.products.list_products(params, force=self.wants_refresh())
        if result.is_error:
            return self.query_error_response(result.error)
        return Response(result.data)

    @extend_schema(request=ProductSerializer, responses=OpenApiTypes.OBJECT)
    def create(self, request):
        serializer = ProductSerializer(data=request.data)
        if not serializer.is_valid():
            return self.invalid_response(serializer.errors)
        try:
            product = self.products.create_product(serializer.data)
        except ApiError as e:
            return self.mutation_error_response(e)
        return Response({'product': product}, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        result = self.products.get_product(pk, force=self.wants_refresh())
        if result.is_error:
            return self.query_error_response(result.error)
        return Response({'product': result.data})

    @extend_schema(request=ProductSerializer, responses=OpenApiTypes.OBJECT)
    def update(self, request, pk=None):
        serializer = ProductSerializer(data=request.data)
        if not serializer.is_valid():
            return self.invalid_response(serializer.errors)
        try:
            product = self.products.update_product(pk, serializer.data)
        except ApiError as e:
            return self.mutation_error_response(e)
        return Response({'product': product})

    def destroy(self, request, pk=None):
        try:
            self.products.delete_product(pk)
        except ApiError as e:
            return self.mutation_error_response(e)
        return Response({'success': True})

    @action(detail=False, methods=['get'])
    def stats(self, request):
        result = self.products.product_stats(force=self.wants_refresh())
        if result.is_error:
            return self.query_error_response(result.error)
        return Response({'stats': result.data})

    @extend_schema(request=BulkProductUpdateSerializer, responses=OpenApiTypes.OBJECT)
    @action(detail=False, methods=['patch'])
    def bulk(self, request):
        """Apply the same field changes to several products in one backend call."""
        serializer = BulkProductUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return self.invalid_response(serializer.errors)
        data = serializer.validated_data
        try:
            result = self.products.bulk_update(data['productIds'], data['updateData'])
        except ApiError as e:
            return self.mutation_error_response(e)
        return Response({'result': result})

    # -- product editor -------------------------------------------------------

    @action(detail=False, methods=['get'])
    def draft(self, request):
        """The draft with its current validation errors."""
        draft = ProductDraft.load(request.session)
        if draft is None:
            return _no_draft_response()
        return Response({'draft': draft.to_dict()})

    @extend_schema(request=DraftStartSerializer, responses=OpenApiTypes.OBJECT)
    @draft.mapping.post
    def start_draft(self, request):
        """Start a draft: blank, from an existing product, or as a clone of one."""
        serializer = DraftStartSerializer(data=request.data)
        if not serializer.is_valid():
            return self.invalid_response(serializer.errors)
        data = serializer.validated_data

        product_id = data.get('productId')
        if product_id:
            result = self.products.get_product(product_id)
            if result.is_error:
                return self.query_error_response(result.error)
            draft = ProductDraft.from_product(result.data, clone=data['clone'], reference=data.get('reference', ''))
        else:
            draft = ProductDraft()
        draft.save(request.session)
        return Response({'draft': draft.to_dict()}, status=status.HTTP_201_CREATED)

    @draft.mapping.patch
    def edit_draft(self, request):
        draft = ProductDraft.load(request.session)
        if draft is None:
            return _no_draft_response()
        try:
            draft.set_basic_info(request.data)
        except DraftError as e:
            return Response({'message': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        draft.save(request.session)
        return Response({'draft': draft.to_dict()})

    @draft.mapping.delete
    def discard_draft(self, request):
        ProductDraft.discard(request.session)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(request=DraftOperationSerializer, responses=OpenApiTypes.OBJECT)
    @action(
        detail=False,
        methods=['post'],
        url_path=f'draft/(?P<section>{SECTION_PATTERN})',
        url_name='draft-section',
    )
    def draft_section(self, request, section=None):
        """Add, update, remove (or, for predefined fields, toggle) an item in one editor tab."""
        draft = ProductDraft.load(request.session)
        if draft is None:
            return _no_draft_response()
        serializer = DraftOperationSerializer(data=request.data)
        if not serializer.is_valid():
            return self.invalid_response(serializer.errors)
        data = serializer.validated_data
        try:
            draft.apply(section, data['op'], data.get('index'), data['data'])
        except DraftError as e:
            return Response({'message': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        draft.save(request.session)
        return Response({'draft': draft.to_dict()})

    @extend_schema(request=ImageUploadSerializer, responses=OpenApiTypes.OBJECT)
    @action(
        detail=False,
        methods=['post'],
        url_path='draft/images/upload',
        url_name='draft-image-upload',
        parser_classes=[MultiPartParser, FormParser],
    )
    def upload_draft_image(self, request):
        """
        Upload an image file to the backend and put its URL in the draft's images tab.

        Appends by default; with ``index`` the URL replaces the image in that slot.
        """
        draft = ProductDraft.load(request.session)
        if draft is None:
            return _no_draft_response()
        serializer = ImageUploadSerializer(data=request.data)
        if not serializer.is_valid():
            return self.invalid_response(serializer.errors)
        data = serializer.validated_data

        try:
            image_url = self.products.upload_image(data['image'])
        except ApiError as e:
            return self.mutation_error_response(e)

        try:
            if data.get('index') is None:
                draft.add('images', {'url': image_url})
            else:
                draft.update('images', data['index'], {'url': image_url})
        except DraftError as e:
            return Response({'message': str(e), 'imageUrl': image_url}, status=status.HTTP_400_BAD_REQUEST)
        draft.save(request.session)
        logger.info(f'Uploaded draft image {image_url}')
        return Response({'imageUrl': image_url, 'draft': draft.to_dict()}, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['post'], url_path='draft/submit', url_name='draft-submit')
    def submit_draft(self, request):
        """
        Save the draft to the backend.

        Nothing is sent while the draft has validation errors. A draft that edits an
        existing product updates it; anything else (including clones) is created.
        """
        draft = ProductDraft.load(request.session)
        if draft is None:
            return _no_draft_response()

        errors = draft.validate()
        if errors:
            return Response({'message': 'Validation failed', 'errors': errors}, status=status.HTTP_400_BAD_REQUEST)

        try:
            if draft.product_id:
                product = self.products.update_product(draft.product_id, draft.payload())
                response_status = status.HTTP_200_OK
            else:
                product = self.products.create_product(draft.payload())
                response_status = status.HTTP_201_CREATED
        except ApiError as e:
            return self.mutation_error_response(e)

        ProductDraft.discard(request.session)
        return Response({'product': product}, status=response_status)


# --- ORDER INQUIRIES ---

class InquiryViewSet(StorefrontViewSet):
    """
    Console order inquiries: the paginated list, single inquiries, status changes,
    and bulk actions over a selection kept in the session.
    """
    permission_classes = [IsConsoleAdmin]

    def list(self, request):
        """
        Filters: status, productId, phone, name, startDate, endDate, page, limit.
        ``preset`` (today, yesterday, last_7_days, last_30_days, last_3_months) fills in
        the date range when no explicit dates are given.
        """
        serializer = InquiryFilterSerializer(data=request.query_params)
        if not serializer.is_valid():
            return self.invalid_response(serializer.errors)
        form_data = dict(serializer.validated_data)

        presets = date_range_presets()
        preset = form_data.pop('preset', '')
        if preset and not (form_data.get('startDate') or form_data.get('endDate')):
            form_data['startDate'] = presets[preset]['startDate']
            form_data['endDate'] = presets[preset]['endDate']
        for key in ('startDate', 'endDate'):
            if hasattr(form_data.get(key), 'isoformat'):
                form_data[key] = form_data[key].isoformat()

        filters = build_filters(form_data)
        filters.setdefault('page', 1)
        filters.setdefault('limit', settings.STOREFRONT_INQUIRY_PAGE_SIZE)

        result = self.inquiries.list_inquiries(filters, force=self.wants_refresh())
        if result.is_error:
            return self.query_error_response(result.error)
        return Response({
            'inquiries': [present_inquiry(inquiry) for inquiry in result.data['inquiries']],
            'pagination': result.data['pagination'],
            'filters': filters,
            'presets': presets,
        })

    def retrieve(self, request, pk=None):
        result = self.inquiries.get_inquiry(pk, force=self.wants_refresh())
        if result.is_error:
            return self.query_error_response(result.error)
        return Response({'inquiry': present_inquiry(result.data)})

    @extend_schema(request=InquiryUpdateSerializer, responses=OpenApiTypes.OBJECT)
    def update(self, request, pk=None):
        """Edit notes, status or customer data; customer data edits keep the fields not sent."""
        serializer = InquiryUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return self.invalid_response(serializer.errors)
        try:
            inquiry = self.inquiries.update_inquiry(pk, serializer.validated_data)
        except ApiError as e:
            return self.mutation_error_response(e)
        return Response({'inquiry': inquiry})

    def destroy(self, request, pk=None):
        try:
            self.inquiries.delete_inquiry(pk)
        except ApiError as e:
            return self.mutation_error_response(e)
        return Response({'success': True})

    @action(detail=False, methods=['get'])
    def stats(self, request):
        result = self.inquiries.inquiry_stats(force=self.wants_refresh())
        if result.is_error:
            return self.query_error_response(result.error)
        return Response({'stats': result.data})

    @extend_schema(request=StatusUpdateSerializer, responses=OpenApiTypes.OBJECT)
    @action(detail=True, methods=['patch'], url_path='status', url_name='status')
    def set_status(self, request, pk=None):
        serializer = StatusUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return self.invalid_response(serializer.errors)
        data = serializer.validated_data

        inquiries = self.inquiries
        if transitions_restricted():
            current = inquiries.get_inquiry(pk)
            current_status = current.data.get('status') if not current.is_error and current.data else None
            if current_status and not can_transition(current_status, data['status']):
                return Response(
                    {'message': f'Cannot move an inquiry from {current_status} to {data["status"]}'},
                    status=status.HTTP_409_CONFLICT,
                )

        try:
            inquiry = inquiries.update_status(pk, data['status'], data.get('notes'))
        except ApiError as e:
            return self.mutation_error_response(e)
        return Response({'inquiry': inquiry})

    @action(detail=False, methods=['get'])
    def selection(self, request):
        """The inquiry ids picked for a bulk action and the chosen action."""
        return Response({'selection': SelectionStore(request.session).get()})

    @extend_schema(request=SelectionSerializer, responses=OpenApiTypes.OBJECT)
    @selection.mapping.put
    def save_selection(self, request):
        serializer = SelectionSerializer(data=request.data)
        if not serializer.is_valid():
            return self.invalid_response(serializer.errors)
        store = SelectionStore(request.session)
        store.save(serializer.validated_data['ids'], serializer.validated_data['action'])
        return Response({'selection': store.get()})

    @extend_schema(request=SelectionSerializer, responses=OpenApiTypes.OBJECT)
    @action(detail=False, methods=['post'])
    def bulk(self, request):
        """
        Run the chosen bulk action over the selected inquiries.

        ``ids`` and ``action`` in the body replace the stored selection first. On
        success the selection is cleared; on failure it is kept so the admin can retry.
        Export answers with the CSV file itself.
        """
        serializer = SelectionSerializer(data=request.data)
        if not serializer.is_valid():
            return self.invalid_response(serializer.errors)
        store = SelectionStore(request.session)
        selection = store.get()
        if 'ids' in request.data:
            selection['ids'] = serializer.validated_data['ids']
        if serializer.validated_data['action']:
            selection['action'] = serializer.validated_data['action']
        store.save(selection['ids'], selection['action'])

        try:
            result = InquiryBulkActions(self.inquiries).apply(selection['ids'], selection['action'])
        except ValueError as e:
            return Response({'message': str(e), 'selection': selection}, status=status.HTTP_400_BAD_REQUEST)
        except ApiError as e:
            response = self.mutation_error_response(e)
            response.data['selection'] = selection
            return self.keep_session(response)

        store.clear()
        if result.csv is not None:
            logger.info(f'Exported {result.count} inquiries to {result.filename}')
            return csv_response(result.csv, result.filename)
        return Response({'action': result.action, 'count': result.count})
