"""
Django settings for hotel_booking_backend.

Every deployment-specific value is read from the environment so the same
module serves local development, the test suite and production.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'dev-only-insecure-key-change-me')

DEBUG = env_bool('DJANGO_DEBUG', True)

ALLOWED_HOSTS = [h for h in os.environ.get('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',') if h]

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'bookings',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'hotel_booking_backend.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'hotel_booking_backend.wsgi.application'

# SQLite opens every transaction IMMEDIATE so concurrent reservation
# attempts queue on the write lock instead of failing mid-transaction.
if os.environ.get('DB_ENGINE', 'sqlite') == 'postgresql':
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.postgresql',
            'NAME': os.environ.get('DB_NAME', 'hotel_booking'),
            'USER': os.environ.get('DB_USER', 'postgres'),
            'PASSWORD': os.environ.get('DB_PASSWORD', ''),
            'HOST': os.environ.get('DB_HOST', 'localhost'),
            'PORT': os.environ.get('DB_PORT', '5432'),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / 'db.sqlite3',
            'OPTIONS': {
                'transaction_mode': 'IMMEDIATE',
                'timeout': 20,
            },
            'TEST': {
                'NAME': BASE_DIR / 'test_db.sqlite3',
            },
        }
    }

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]

LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.environ.get('TIME_ZONE', 'Asia/Manila')
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'rest_framework.authentication.SessionAuthentication',
        'rest_framework.authentication.BasicAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.AllowAny',
    ],
    'EXCEPTION_HANDLER': 'bookings.errors.exception_handler',
}

BOOKINGS = {
    'CLEANING_BUFFER_MINUTES': 30,
    'STALE_THRESHOLD_MINUTES': 5,
    'CHILD_SURCHARGE': '150.00',
    'CURRENCY': 'PHP',
    'MAX_ADVANCE_DAYS': 365,
    'PAST_GRACE_MINUTES': 5,
    'LOCK_TIMEOUT_MS': int(os.environ.get('BOOKING_LOCK_TIMEOUT_MS', 5000)),
    'TRANSACTION_TIMEOUT_MS': int(os.environ.get('BOOKING_TRANSACTION_TIMEOUT_MS', 20000)),
    'FRONTEND_URL': os.environ.get('FRONTEND_URL', 'http://localhost:5173'),
    'WEBHOOK_SECRET': os.environ.get('PAYMONGO_WEBHOOK_SECRET', ''),
    'ENABLE_PAYMENT_SIMULATOR': env_bool('ENABLE_PAYMENT_SIMULATOR', DEBUG),
    'MAX_HOLDS_PER_GUEST': int(os.environ.get('BOOKING_MAX_HOLDS_PER_GUEST', 1)),
    'PAYMENT_GATEWAY': {
        'BACKEND': os.environ.get('PAYMENT_GATEWAY_BACKEND', 'bookings.payments.PayMongoGateway'),
        'OPTIONS': {
            'secret_key': (
                os.environ.get('PAYMONGO_SECRET_KEY_LIVE', '')
                if env_bool('PAYMONGO_IS_LIVE')
                else os.environ.get('PAYMONGO_TEST_SECRET_KEY', '')
            ),
            'base_url': os.environ.get('PAYMONGO_API_URL', 'https://api.paymongo.com/v1'),
            'timeout': float(os.environ.get('PAYMONGO_TIMEOUT_SECONDS', 10)),
        },
    },
}

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'bookings': {
            'handlers': ['console'],
            'level': os.environ.get('BOOKINGS_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
    },
}
