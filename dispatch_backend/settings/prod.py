"""Production overrides: Redis-backed channel layer and Celery, locked-down hosts and CORS."""

from .settings import *  # noqa: F401,F403
import os
from dotenv import load_dotenv
load_dotenv(BASE_DIR / ".env.production", override=True)

DEBUG = False
SECRET_KEY = os.environ["DJANGO_SECRET_KEY"]
ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1").split(',')
CORS_ALLOW_ALL_ORIGINS = False
CORS_ALLOWED_ORIGINS = os.getenv("CORS_ALLOWED_ORIGINS", "http://localhost:3000").split(',')

SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

# Order workflow and dispatch workers share one Redis
CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", REDIS_URL)
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", CELERY_BROKER_URL)
CELERY_TASK_ACKS_LATE = True

CHANNEL_LAYERS = {
    "default": {
        "BACKEND": "channels_redis.core.RedisChannelLayer",
        "CONFIG": {
            "hosts": [REDIS_URL],
        },
    }
}

LOGGING["root"]["level"] = os.getenv("DJANGO_LOG_LEVEL", "WARNING")
