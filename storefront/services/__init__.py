# Services package
from .auth_service import AuthService, AdminSession
from .product_service import ProductService
from .inquiry_service import InquiryService

__all__ = ['AuthService', 'AdminSession', 'ProductService', 'InquiryService']
