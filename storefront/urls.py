"""Admin console URLs."""
from django.urls import include, path
from rest_framework.routers import DefaultRouter
from . import views

# Products and inquiries are ViewSets; stats, bulk, draft and status are @actions on them
router = DefaultRouter()
router.root_view_name = 'console-root'
router.register(r'products', views.ProductViewSet, basename='console-product')
router.register(r'inquiries', views.InquiryViewSet, basename='console-inquiry')

auth_urlpatterns = [
    path('auth/session/', views.SessionView.as_view(), name='console-session'),
    path('auth/login/', views.LoginView.as_view(), name='console-login'),
    path('auth/register/', views.RegisterView.as_view(), name='console-register'),
    path('auth/logout/', views.LogoutView.as_view(), name='console-logout'),
    path('auth/refresh/', views.RefreshView.as_view(), name='console-refresh'),
]

urlpatterns = [
    path('dashboard/', views.DashboardView.as_view(), name='console-dashboard'),
] + auth_urlpatterns + [
    path('', include(router.urls)),
]
