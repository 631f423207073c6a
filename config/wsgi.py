"""
WSGI entrypoint for the Storefront Platform API.

Serves the orders, promotions and loyalty endpoints; the outbox is drained
by the django-q2 cluster (``manage.py qcluster``), not by this process.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.prod")

application = get_wsgi_application()
