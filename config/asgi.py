"""
ASGI entrypoint for the Storefront Platform API.

The API views are synchronous; Django runs them in a thread pool under ASGI.
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.prod")

application = get_asgi_application()
