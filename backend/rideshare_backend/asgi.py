"""ASGI config for the rideshare backend."""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'rideshare_backend.settings.settings')

application = get_asgi_application()
