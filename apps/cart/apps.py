"""
Cart app configuration for the Storefront Platform.
"""

from django.apps import AppConfig


class CartConfig(AppConfig):
    """Per-customer shopping carts consumed by settlement."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.cart"
    verbose_name = "Shopping Cart"
