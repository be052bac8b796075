"""Public storefront API: catalogue, product detail and inquiry submission."""
import logging

from django.conf import settings
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import permissions, status
from rest_framework.response import Response

from storefront.domain import CustomerData, ProductPricing, inquiry_form_fields, storefront_product
from storefront.exceptions import ApiError
from storefront.responses import StorefrontAPIView
from storefront.serializers import InquirySubmitSerializer, ProductFilterSerializer
from storefront.theme import LIGHT_THEME

logger = logging.getLogger(__name__)


class ThemeView(StorefrontAPIView):
    """Design tokens for the presentation layer."""
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        return Response({'theme': LIGHT_THEME})


@extend_schema(
    parameters=[
        OpenApiParameter('q', OpenApiTypes.STR, OpenApiParameter.QUERY),
        OpenApiParameter('category', OpenApiTypes.STR, OpenApiParameter.QUERY),
        OpenApiParameter('minPrice', OpenApiTypes.NUMBER, OpenApiParameter.QUERY),
        OpenApiParameter('maxPrice', OpenApiTypes.NUMBER, OpenApiParameter.QUERY),
        OpenApiParameter('onSale', OpenApiTypes.BOOL, OpenApiParameter.QUERY),
        OpenApiParameter('hasOffers', OpenApiTypes.BOOL, OpenApiParameter.QUERY),
        OpenApiParameter('page', OpenApiTypes.INT, OpenApiParameter.QUERY),
        OpenApiParameter('limit', OpenApiTypes.INT, OpenApiParameter.QUERY),
    ],
    responses=OpenApiTypes.OBJECT,
)
class CatalogueView(StorefrontAPIView):
    """
    GET: Product catalogue for customers, with display pricing on every product.
    """
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        filters = ProductFilterSerializer(data=request.query_params)
        if not filters.is_valid():
            return self.invalid_response(filters.errors)
        params = dict(filters.validated_data)
        params.setdefault('limit', settings.STOREFRONT_PRODUCT_PAGE_SIZE)

        result = self.products.list_products(params, force=self.wants_refresh())
        if result.is_error:
            return self.query_error_response(result.error)
        return Response({
            'products': [storefront_product(product) for product in result.data['products']],
            'pagination': result.data['pagination'],
        })


@extend_schema(responses=OpenApiTypes.OBJECT)
class ProductPageView(StorefrontAPIView):
    """GET: One product with live offers and the inquiry form it asks customers to fill in."""
    permission_classes = [permissions.AllowAny]

    def get(self, request, product_id):
        result = self.products.get_product(product_id, force=self.wants_refresh())
        if result.is_error:
            return self.query_error_response(result.error)
        return Response({'product': storefront_product(result.data, detail=True)})


@extend_schema(request=InquirySubmitSerializer, responses=OpenApiTypes.OBJECT)
class ProductInquiryView(StorefrontAPIView):
    """
    POST: Submit an order inquiry for a product.

    The customer's contact details, the product's dynamic-field answers and the
    chosen variants are sent together; hidden product fields ride along in the
    customer data for tracking.
    """
    permission_classes = [permissions.AllowAny]

    def post(self, request, product_id):
        product_result = self.products.get_product(product_id)
        if product_result.is_error:
            return self.query_error_response(product_result.error)
        product = product_result.data

        serializer = InquirySubmitSerializer(data=request.data)
        if not serializer.is_valid():
            return self.invalid_response(serializer.errors)
        data = serializer.validated_data

        variant_errors = self._check_variants(product, data['selectedVariants'])
        if variant_errors:
            return Response(
                {'message': 'Validation failed', 'errors': variant_errors},
                status=status.HTTP_400_BAD_REQUEST,
            )

        customer_data = data['customerData']
        extras = list(customer_data['extra'].items())
        for hidden in product.get('hiddenFields') or []:
            if hidden.get('key') and hidden['key'] not in customer_data['extra']:
                extras.append((hidden['key'], str(hidden.get('value') or '')))
        customer = CustomerData(
            name=customer_data['name'],
            phone=customer_data['phone'],
            reference=customer_data['reference'],
            extra=tuple(extras),
        )

        try:
            inquiry = self.inquiries.submit_product_inquiry(
                product_id,
                customer,
                quantity=data['quantity'],
                selected_variants=data['selectedVariants'],
            )
        except ApiError as e:
            return self.mutation_error_response(e)

        pricing = ProductPricing.from_api(product)
        return Response(
            {'inquiry': inquiry, 'estimatedTotal': str(pricing.total_for(data['quantity']))},
            status=status.HTTP_201_CREATED,
        )

    @staticmethod
    def _check_variants(product, selected):
        offered = {variant['category']: variant['options'] for variant in inquiry_form_fields(product)['variants']}
        errors = {}
        for category, option in selected.items():
            if category not in offered:
                errors[f'selectedVariants.{category}'] = 'This product has no such option'
            elif option not in offered[category]:
                errors[f'selectedVariants.{category}'] = f'Choose one of: {", ".join(offered[category])}'
        return errors
