"""
ASGI config for the CarePath project.

Journey views are plain request/response endpoints polled by clients, so
the ASGI entry point only serves HTTP.
"""
import os

from django.core.asgi import get_asgi_application  # type: ignore

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "carepath.settings")

application = get_asgi_application()
