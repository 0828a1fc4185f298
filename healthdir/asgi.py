"""
ASGI config for the healthdir project.

Only plain HTTP is served; the directory has no WebSocket routes.
"""
import os

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "healthdir.settings")

from django.core.asgi import get_asgi_application  # noqa: E402

application = get_asgi_application()
