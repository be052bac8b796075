"""Response helpers shared by the storefront and console views."""
import logging

from rest_framework import status, viewsets
from rest_framework.response import Response
from rest_framework.views import APIView

from storefront.cache import RequestCache
from storefront.exceptions import ApiError
from storefront.notifications import Notifier, drain
from storefront.serializers import flatten_errors
from storefront.services import InquiryService, ProductService

logger = logging.getLogger(__name__)


def error_status(error: ApiError) -> int:
    """HTTP status the BFF answers with for a backend failure."""
    if error.is_network_error:
        return status.HTTP_502_BAD_GATEWAY
    if error.is_timeout:
        return status.HTTP_504_GATEWAY_TIMEOUT
    if 400 <= error.status < 600:
        return error.status
    return status.HTTP_502_BAD_GATEWAY


def retry_url(request) -> str:
    params = request.GET.copy()
    params['refresh'] = '1'
    return f'{request.path}?{params.urlencode()}'


class StorefrontViewMixin:
    """
    Builds the backend services for the request and appends pending
    notifications to every JSON body.
    """

    def finalize_response(self, request, response, *args, **kwargs):
        response = super().finalize_response(request, response, *args, **kwargs)
        if isinstance(response, Response) and isinstance(response.data, dict):
            response.data['notifications'] = drain(request)
        return response

    @property
    def admin_session(self):
        return self.request._request.admin_session

    def _service(self, service_class):
        return service_class(self.admin_session.client, RequestCache(), Notifier(self.request))

    @property
    def products(self) -> ProductService:
        return self._service(ProductService)

    @property
    def inquiries(self) -> InquiryService:
        return self._service(InquiryService)

    def wants_refresh(self) -> bool:
        return self.request.query_params.get('refresh') in ('1', 'true')

    def query_error_response(self, error: ApiError) -> Response:
        """Inline error panel for a failed primary read."""
        return Response(
            {'error': error.to_dict(), 'retry': retry_url(self.request)},
            status=error_status(error),
        )

    def invalid_response(self, serializer_errors) -> Response:
        return Response(
            {'message': 'Validation failed', 'errors': flatten_errors(serializer_errors)},
            status=status.HTTP_400_BAD_REQUEST,
        )

    def mutation_error_response(self, error: ApiError) -> Response:
        body = {'error': error.to_dict()}
        if error.is_validation_error:
            body['errors'] = error.field_errors()
        return Response(body, status=error_status(error))

    def keep_session(self, response: Response) -> Response:
        """Persist session changes even though the error status stops SessionMiddleware saving them."""
        if response.status_code >= 500 and self.request.session.modified:
            self.request.session.save()
        return response


class StorefrontAPIView(StorefrontViewMixin, APIView):
    pass


class StorefrontViewSet(StorefrontViewMixin, viewsets.ViewSet):
    pass
