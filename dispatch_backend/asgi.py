"""ASGI entry point. HTTP only; the channel layer is used for server-side fan-out."""

import os

from channels.routing import ProtocolTypeRouter
from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "dispatch_backend.settings")

application = ProtocolTypeRouter({
    "http": get_asgi_application(),
})
