"""
Django settings for the shop project.

Base (development) configuration. Production overrides live in settings_production.py.
All values can be overridden with environment variables.
"""
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get('SECRET_KEY', 'django-insecure-storefront-dev-key')
DEBUG = os.environ.get('DEBUG', 'True').lower() == 'true'
ALLOWED_HOSTS = [host.strip() for host in os.environ.get('ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',') if host.strip()]

INSTALLED_APPS = [
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'corsheaders',
    'rest_framework',
    'drf_spectacular',
    'storefront',
]

MIDDLEWARE = [
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'storefront.middleware.AdminSessionMiddleware',
]

ROOT_URLCONF = 'shop.urls'
WSGI_APPLICATION = 'shop.wsgi.application'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'db.sqlite3',
    }
}

# Sessions hold the backend token (authToken), the admin user (adminUser),
# the product draft and the inquiry bulk selection.
SESSION_ENGINE = 'django.contrib.sessions.backends.db'
SESSION_COOKIE_AGE = 60 * 60 * 24 * 7

# Notifications are drained into every JSON response, so keep them server-side.
MESSAGE_STORAGE = 'django.contrib.messages.storage.session.SessionStorage'

# Request cache for backend reads
CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'storefront',
        'TIMEOUT': 300,
    }
}

LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.environ.get('TIME_ZONE', 'UTC')
USE_I18N = True
USE_TZ = True

STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# Django REST Framework
# Console visitors are authenticated by the backend token kept in the session, not by Django users.
REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'storefront.authentication.AdminSessionAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.AllowAny',
    ],
    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
    ],
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',
    'UNAUTHENTICATED_USER': None,
}

SPECTACULAR_SETTINGS = {
    'TITLE': 'Storefront API',
    'DESCRIPTION': 'Storefront and inquiry desk backed by the product/inquiry REST backend',
    'VERSION': '1.0.0',
    'SERVE_INCLUDE_SCHEMA': False,
}

# CORS (the presentation layer may be served from another origin)
CORS_ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.environ.get('CORS_ALLOWED_ORIGINS', 'http://localhost:3000,http://localhost:5173').split(',')
    if origin.strip()
]
CORS_ALLOW_CREDENTIALS = True

# Backend REST API consumed by the storefront and console
STOREFRONT_API = {
    'BASE_URL': os.environ.get('STOREFRONT_API_URL', 'http://localhost:5001/api'),
    'TIMEOUT': float(os.environ.get('STOREFRONT_API_TIMEOUT', '10')),
    # Product create/update carry large payloads
    'WRITE_TIMEOUT': float(os.environ.get('STOREFRONT_API_WRITE_TIMEOUT', '15')),
    'BULK_TIMEOUT': float(os.environ.get('STOREFRONT_API_BULK_TIMEOUT', '20')),
    'UPLOAD_TIMEOUT': float(os.environ.get('STOREFRONT_API_UPLOAD_TIMEOUT', '30')),
    # Base delay (seconds) for exponential back-off between read retries
    'RETRY_DELAY': float(os.environ.get('STOREFRONT_API_RETRY_DELAY', '1.0')),
    # How long a validated session is trusted before the token is re-validated
    'TOKEN_REFRESH_MINUTES': int(os.environ.get('STOREFRONT_TOKEN_REFRESH_MINUTES', '30')),
}

STOREFRONT_INQUIRY_PAGE_SIZE = int(os.environ.get('STOREFRONT_INQUIRY_PAGE_SIZE', '10'))
STOREFRONT_PRODUCT_PAGE_SIZE = int(os.environ.get('STOREFRONT_PRODUCT_PAGE_SIZE', '12'))

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {module} {process:d} {thread:d} {message}',
            'style': '{',
        },
        'simple': {
            'format': '{levelname} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'level': 'DEBUG',
            'class': 'logging.StreamHandler',
            'formatter': 'simple',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': 'INFO',
            'propagate': False,
        },
        'storefront': {
            'handlers': ['console'],
            'level': os.environ.get('STOREFRONT_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
    },
}
