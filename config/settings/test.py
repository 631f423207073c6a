"""
Test settings for the Storefront Platform
In-memory SQLite, no migrations, inline django-q2 tasks.
"""

from .base import *  # noqa: F403

# ===============================================================================
# TEST FLAGS
# ===============================================================================

DEBUG = False

# ===============================================================================
# DATABASE
# ===============================================================================

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
        "OPTIONS": {
            "timeout": 20,
        },
    }
}

# ===============================================================================
# TEST CACHE
# ===============================================================================

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "test-cache",
    }
}

# ===============================================================================
# MIGRATIONS (models are created directly from current state)
# ===============================================================================


class DisableMigrations:
    def __contains__(self, item: str) -> bool:
        return True

    def __getitem__(self, item: str) -> None:
        return None


MIGRATION_MODULES = DisableMigrations()

# ===============================================================================
# PASSWORD HASHER
# ===============================================================================

PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.MD5PasswordHasher",  # Fast but insecure (test only)
]

# ===============================================================================
# DJANGO-Q2 (outbox handlers run inline on enqueue)
# ===============================================================================

Q_CLUSTER = {
    **Q_CLUSTER_BASE,  # noqa: F405
    "sync": True,
}

# ===============================================================================
# THROTTLING (checkout and redeem scopes effectively unlimited)
# ===============================================================================

REST_FRAMEWORK = {
    **REST_FRAMEWORK,  # noqa: F405
    "DEFAULT_THROTTLE_RATES": {
        scope: "10000/min"
        for scope in REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"]  # noqa: F405
    },
}

# ===============================================================================
# LOGGING (Minimal for tests)
# ===============================================================================

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {
        "null": {
            "class": "logging.NullHandler",
        },
    },
    "root": {
        "handlers": ["null"],
        "level": "CRITICAL",
    },
}
