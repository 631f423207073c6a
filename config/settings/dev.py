"""
Development settings for the Storefront Platform
Fast iteration on SQLite with tasks executed inline.
"""

import os

from .base import *  # noqa: F403

# ===============================================================================
# DEVELOPMENT FLAGS
# ===============================================================================

DEBUG = True
ALLOWED_HOSTS = ["localhost", "127.0.0.1", "[::1]"]

# ===============================================================================
# DATABASE FOR DEVELOPMENT (SQLite for speed)
# ===============================================================================

if os.environ.get("USE_POSTGRES") != "true":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": str(BASE_DIR / "db.sqlite3"),  # noqa: F405
        }
    }

# ===============================================================================
# CACHE (In-memory unless Redis is requested)
# ===============================================================================

if os.environ.get("USE_REDIS") != "true":
    CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
            "LOCATION": "storefront-cache",
        }
    }

# ===============================================================================
# DJANGO-Q2 (Run tasks inline unless a cluster is running)
# ===============================================================================

Q_CLUSTER = {
    **Q_CLUSTER_BASE,  # noqa: F405
    "workers": 1,
    "sync": os.environ.get("Q_CLUSTER_SYNC", "true") == "true",
}

# ===============================================================================
# LOGGING CONFIGURATION
# ===============================================================================

LOGGING["loggers"]["apps"]["level"] = "DEBUG"  # noqa: F405
