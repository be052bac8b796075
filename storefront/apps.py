from django.apps import AppConfig


class StorefrontConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'storefront'

    def ready(self):
        """Check the backend URL is configured when the app is ready."""
        self._warn_missing_backend_url()

    @staticmethod
    def _warn_missing_backend_url():
        import logging
        from django.conf import settings
        if not getattr(settings, 'STOREFRONT_API', {}).get('BASE_URL'):
            logging.getLogger(__name__).warning('STOREFRONT_API["BASE_URL"] is not set; backend calls will fail')
