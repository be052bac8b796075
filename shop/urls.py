from django.urls import path, include
from django.http import JsonResponse
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView, SpectacularRedocView


def api_root(request):
    """Root endpoint providing API information."""
    return JsonResponse({
        'name': 'Storefront API',
        'version': '1.0.0',
        'description': 'Public storefront and admin inquiry desk',
        'endpoints': {
            'storefront': '/api/storefront/',
            'console': '/api/console/',
            'console_auth': '/api/console/auth/',
        },
        'documentation': {
            'swagger_ui': '/api/schema/swagger-ui/',
            'redoc': '/api/schema/redoc/',
            'openapi_schema': '/api/schema/',
        }
    })


urlpatterns = [
    # 0. Root endpoint
    path('', api_root, name='api-root'),

    # 1. Public storefront (catalogue, product detail, inquiry submission)
    path('api/storefront/', include('storefront.urls_public')),

    # 2. Admin console (auth, dashboard, products, inquiries)
    path('api/console/', include('storefront.urls')),

    # 3. API Documentation (drf-spectacular generated)
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/schema/swagger-ui/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('api/schema/redoc/', SpectacularRedocView.as_view(url_name='schema'), name='redoc'),
]
