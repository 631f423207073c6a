"""
Common app configuration for the Storefront Platform.
"""

from django.apps import AppConfig


class CommonConfig(AppConfig):
    """Shared infrastructure: result types, logging, request tracing, queueing."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.common"
    verbose_name = "Common"
