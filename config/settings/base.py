"""
Django settings for the Storefront Platform - Base Configuration
Order settlement, promotions and loyalty accrual.
"""

import os
from pathlib import Path
from typing import Any

# ===============================================================================
# CORE DJANGO SETTINGS
# ===============================================================================

BASE_DIR = Path(__file__).resolve().parent.parent.parent

DJANGO_APPS: list[str] = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
]

THIRD_PARTY_APPS: list[str] = [
    "rest_framework",
    "django_q",
]

LOCAL_APPS: list[str] = [
    "apps.common",
    "apps.users",
    "apps.products",
    "apps.cart",
    "apps.promotions",  # 🎟️ Coupons & campaigns
    "apps.loyalty",  # 🏆 Points ledger, tiers & rewards
    "apps.orders",  # 🧾 Checkout & settlement
]

INSTALLED_APPS: list[str] = DJANGO_APPS + THIRD_PARTY_APPS + LOCAL_APPS

MIDDLEWARE: list[str] = [
    "apps.common.middleware.RequestIDMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "config.urls"

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

WSGI_APPLICATION = "config.wsgi.application"
ASGI_APPLICATION = "config.asgi.application"

# ===============================================================================
# DATABASE CONFIGURATION
# ===============================================================================

DATABASES: dict[str, dict[str, Any]] = {
    "default": {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": os.environ.get("DB_NAME", "storefront"),
        "USER": os.environ.get("DB_USER", "storefront"),
        "PASSWORD": os.environ.get("DB_PASSWORD", "development_password"),
        "HOST": os.environ.get("DB_HOST", "localhost"),
        "PORT": os.environ.get("DB_PORT", "5432"),
        "CONN_MAX_AGE": 60,
        "OPTIONS": {
            "application_name": "storefront",
        },
    }
}

# ===============================================================================
# AUTHENTICATION & AUTHORIZATION
# ===============================================================================

AUTH_USER_MODEL = "users.User"

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {
        "NAME": "django.contrib.auth.password_validation.MinimumLengthValidator",
        "OPTIONS": {"min_length": 10},
    },
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]

# ===============================================================================
# INTERNATIONALIZATION
# ===============================================================================

LANGUAGE_CODE = "en"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# ===============================================================================
# STATIC FILES
# ===============================================================================

STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

# ===============================================================================
# CACHE CONFIGURATION (Redis) 🔄
# ===============================================================================

REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379/0")

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.redis.RedisCache",
        "LOCATION": REDIS_URL,
        "KEY_PREFIX": "storefront",
    }
}

SESSION_COOKIE_AGE = 86400  # 24 hours
SESSION_COOKIE_HTTPONLY = True
CSRF_COOKIE_HTTPONLY = True

# ===============================================================================
# DJANGO REST FRAMEWORK
# ===============================================================================

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework.authentication.SessionAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "DEFAULT_THROTTLE_RATES": {
        # 🔒 Checkout is expensive and mutates stock
        "order_create": "10/min",
        "order_quote": "60/min",
        "order_list": "100/min",
        "coupon_validate": "30/min",
        "reward_redeem": "20/min",
    },
}

# ===============================================================================
# DJANGO-Q2 ASYNC TASK PROCESSING 🚀
# ===============================================================================

Q_CLUSTER_BASE = {
    "name": "storefront-cluster",
    "timeout": 120,
    "retry": 300,
    "save_limit": 1000,
    "catch_up": False,
    "orm": "default",
    "bulk": 10,
    "queue_limit": 100,
}

Q_CLUSTER = {
    **Q_CLUSTER_BASE,
    "workers": 2,
    "recycle": 500,
    "sync": False,
}

# ===============================================================================
# STOREFRONT BUSINESS CONFIGURATION 🛒
# ===============================================================================

# Money values are strings so they load straight into Decimal
STOREFRONT_PRICING = {
    "FREE_SHIPPING_THRESHOLD": os.environ.get("STOREFRONT_FREE_SHIPPING_THRESHOLD", "50.00"),
    "SHIPPING_FEE": os.environ.get("STOREFRONT_SHIPPING_FEE", "5.99"),
    "TAX_RATE": os.environ.get("STOREFRONT_TAX_RATE", "0.08"),
}

STOREFRONT_LOYALTY = {
    "POINTS_PER_UNIT": 10,
    "MIN_PURCHASE_FOR_POINTS": "5.00",
    "FIRST_PURCHASE_BONUS": 100,
    "REFERRAL_BONUS": 200,
    "TIER_THRESHOLDS": {"BRONZE": "0", "SILVER": "100", "GOLD": "500", "PLATINUM": "1000"},
    "TIER_BONUSES": {"SILVER": 50, "GOLD": 100, "PLATINUM": 200},
}

STOREFRONT_OUTBOX = {
    "MAX_ATTEMPTS": int(os.environ.get("STOREFRONT_OUTBOX_MAX_ATTEMPTS", "5")),
    "BACKOFF_BASE_SECONDS": int(os.environ.get("STOREFRONT_OUTBOX_BACKOFF_SECONDS", "30")),
    "BATCH_SIZE": int(os.environ.get("STOREFRONT_OUTBOX_BATCH_SIZE", "50")),
    "SWEEP_INTERVAL_MINUTES": 5,
}

# ===============================================================================
# LOGGING CONFIGURATION
# ===============================================================================

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{levelname} {asctime} [{request_id}] {name} {message}",
            "style": "{",
        },
    },
    "filters": {
        "add_request_id": {
            "()": "apps.common.logging.RequestIDFilter",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
            "filters": ["add_request_id"],
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "INFO",
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
        "apps": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
    },
}

# ===============================================================================
# DEFAULT AUTO FIELD
# ===============================================================================

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ===============================================================================
# SECURITY SETTINGS (Base - override in prod.py)
# ===============================================================================

SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY")
if not SECRET_KEY:
    # Development fallback - never use this in production
    import warnings

    warnings.warn(
        "🚨 SECURITY WARNING: Using default SECRET_KEY. "
        "Set DJANGO_SECRET_KEY environment variable for production!",
        UserWarning,
        stacklevel=2,
    )
    SECRET_KEY = "django-insecure-dev-key-only-change-in-production-or-tests"  # noqa: S105


def validate_production_secret_key() -> None:
    """Validate SECRET_KEY meets production security requirements"""
    if SECRET_KEY and SECRET_KEY.startswith("django-insecure-"):
        raise ValueError("🔥 CRITICAL SECURITY ERROR: Cannot use insecure SECRET_KEY in production!")
