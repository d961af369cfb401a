"""
Base Django settings for the delivery dispatch backend.

Values are read from the environment (optionally through a `.env` file).
Production overrides live in `prod.py`.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent.parent
load_dotenv(BASE_DIR / ".env")

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "django-insecure-dispatch-dev-key")
DEBUG = os.getenv("DJANGO_DEBUG", "true").lower() == "true"
ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "*").split(",")


INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    # Third party
    "rest_framework",
    "corsheaders",
    "channels",
    # Local apps
    "couriers",
    "orders",
    "deliveries",
]

MIDDLEWARE = [
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "dispatch_backend.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "dispatch_backend.wsgi.application"
ASGI_APPLICATION = "dispatch_backend.asgi.application"


# Database: SQLite for local work, PostgreSQL when POSTGRES_DB is configured
if os.getenv("POSTGRES_DB"):
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.getenv("POSTGRES_DB"),
            "USER": os.getenv("POSTGRES_USER", "postgres"),
            "PASSWORD": os.getenv("POSTGRES_PASSWORD", ""),
            "HOST": os.getenv("POSTGRES_HOST", "localhost"),
            "PORT": os.getenv("POSTGRES_PORT", "5432"),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"


# Django REST framework. Caller identity is established upstream; endpoints
# receive the courier id explicitly.
REST_FRAMEWORK = {
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.AllowAny",
    ],
    "DEFAULT_RENDERER_CLASSES": [
        "rest_framework.renderers.JSONRenderer",
    ],
}

CORS_ALLOW_ALL_ORIGINS = DEBUG


# Channels (notification fan-out). In-memory for development and tests.
CHANNEL_LAYERS = {
    "default": {
        "BACKEND": "channels.layers.InMemoryChannelLayer",
    }
}


# Redis (Celery broker, production channel layer)
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

# Celery
CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", REDIS_URL)
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", CELERY_BROKER_URL)
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_TIMEZONE = TIME_ZONE


# Dispatch engine policy
DELIVERY_INITIAL_RADIUS_KM = int(os.getenv("DELIVERY_INITIAL_RADIUS_KM", 5))
DELIVERY_RADIUS_STEP_KM = int(os.getenv("DELIVERY_RADIUS_STEP_KM", 5))
DELIVERY_MAX_RADIUS_KM = int(os.getenv("DELIVERY_MAX_RADIUS_KM", 20))
DELIVERY_MAX_ATTEMPTS = int(os.getenv("DELIVERY_MAX_ATTEMPTS", 4))
DELIVERY_OFFER_TTL_SECONDS = int(os.getenv("DELIVERY_OFFER_TTL_SECONDS", 60))
DELIVERY_RETRY_BATCH_SIZE = int(os.getenv("DELIVERY_RETRY_BATCH_SIZE", 10))
DELIVERY_RETRY_INTERVAL_SECONDS = int(os.getenv("DELIVERY_RETRY_INTERVAL_SECONDS", 30))

# Pricing policy (currency units, kept as strings for Decimal)
DELIVERY_FEE_PER_KM = os.getenv("DELIVERY_FEE_PER_KM", "1.50")
DELIVERY_MINIMUM_FEE = os.getenv("DELIVERY_MINIMUM_FEE", "5.00")
DELIVERY_PARTNER_SHARE = os.getenv("DELIVERY_PARTNER_SHARE", "0.80")
DELIVERY_PICKUP_MINUTES_PER_KM = int(os.getenv("DELIVERY_PICKUP_MINUTES_PER_KM", 3))

# Settlement SLA
DELIVERY_DEFAULT_PICKUP_ETA_MINUTES = int(os.getenv("DELIVERY_DEFAULT_PICKUP_ETA_MINUTES", 15))
DELIVERY_DEFAULT_DELIVERY_ETA_MINUTES = int(os.getenv("DELIVERY_DEFAULT_DELIVERY_ETA_MINUTES", 15))
DELIVERY_ON_TIME_TOLERANCE = os.getenv("DELIVERY_ON_TIME_TOLERANCE", "1.2")

CELERY_BEAT_SCHEDULE = {
    "retry-delivery-offers": {
        "task": "deliveries.tasks.retry_delivery_offers_task",
        "schedule": float(DELIVERY_RETRY_INTERVAL_SECONDS),
    },
}


LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": os.getenv("DJANGO_LOG_LEVEL", "INFO"),
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": "WARNING",
            "propagate": False,
        },
    },
}
