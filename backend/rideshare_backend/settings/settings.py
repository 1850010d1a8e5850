"""
Base settings for the rideshare backend.

Values come from the environment; a ``.env`` file next to the repository root
is loaded first when present.
"""

import os
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent.parent
load_dotenv(os.path.join(BASE_DIR, '..', '.env'))


SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "django-insecure-change-me")
DEBUG = os.getenv("DJANGO_DEBUG", "True").lower() in ("1", "true", "yes")
ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "*").split(',')


INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'django.contrib.auth',
    'corsheaders',
    'rest_framework',
    'accounts',
    'rides',
    'analytics',
]

MIDDLEWARE = [
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.security.SecurityMiddleware',
    'django.middleware.common.CommonMiddleware',
]

ROOT_URLCONF = 'rideshare_backend.urls'
WSGI_APPLICATION = 'rideshare_backend.wsgi.application'
ASGI_APPLICATION = 'rideshare_backend.asgi.application'

# Rides and users live in the document store (RIDE_STORE below). The SQL
# database only backs Django's contrib apps.
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'db.sqlite3',
    }
}

LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.getenv("TIME_ZONE", "UTC")
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

CORS_ALLOW_ALL_ORIGINS = True


# ---------- Document store ----------
RIDE_STORE = {
    "BACKEND": os.getenv("RIDE_STORE_BACKEND", "mongo"),  # mongo | memory
    "MONGODB_URI": os.getenv("MONGODB_URI", "mongodb://localhost:27017"),
    "DATABASE": os.getenv("MONGODB_DATABASE", "rideshare"),
    "SERVER_SELECTION_TIMEOUT_MS": int(os.getenv("MONGODB_TIMEOUT_MS", 5000)),
    "LOG_CONNECTION_ON_STARTUP": os.getenv("LOG_STORE_CONNECTION", "True").lower() in ("1", "true", "yes"),
}

# ---------- Fare estimate ----------
RIDE_FARE = {
    "BASE": float(os.getenv("RIDE_BASE_FARE", 2.5)),
    "PER_KM": float(os.getenv("RIDE_FARE_PER_KM", 1.2)),
}


# ---------- REST framework ----------
REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': (
        'accounts.authentication.StoreJWTAuthentication',
    ),
    'DEFAULT_PERMISSION_CLASSES': (
        'rest_framework.permissions.IsAuthenticated',
    ),
    'DEFAULT_RENDERER_CLASSES': (
        'rest_framework.renderers.JSONRenderer',
    ),
    'EXCEPTION_HANDLER': 'common.exception_handler.ride_exception_handler',
}

SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(minutes=int(os.getenv("JWT_ACCESS_MINUTES", 60))),
    'REFRESH_TOKEN_LIFETIME': timedelta(days=int(os.getenv("JWT_REFRESH_DAYS", 7))),
    'AUTH_HEADER_TYPES': ('Bearer',),
    # Users are identified by username; see accounts.authentication
    'USER_ID_FIELD': 'username',
    'USER_ID_CLAIM': 'sub',
    'SIGNING_KEY': SECRET_KEY,
}


# ---------- Logging ----------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name}: {message}',
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
        'level': LOG_LEVEL,
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': os.getenv("DJANGO_LOG_LEVEL", "WARNING"),
            'propagate': False,
        },
        'pymongo': {
            'level': 'WARNING',
        },
    },
}
