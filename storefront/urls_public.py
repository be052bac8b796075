"""Public API URLs for the storefront."""
from django.urls import path
from . import views_public

urlpatterns = [
    path('theme/', views_public.ThemeView.as_view(), name='storefront-theme'),
    path('products/', views_public.CatalogueView.as_view(), name='storefront-product-list'),
    path('products/<str:product_id>/', views_public.ProductPageView.as_view(), name='storefront-product-detail'),
    path(
        'products/<str:product_id>/inquiries/',
        views_public.ProductInquiryView.as_view(),
        name='storefront-product-inquiry',
    ),
]
