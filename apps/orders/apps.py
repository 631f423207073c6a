"""
Orders app configuration for the Storefront Platform.
"""

from django.apps import AppConfig


class OrdersConfig(AppConfig):
    """Checkout, settlement and the post-commit outbox."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.orders"
    verbose_name = "Orders"
