"""
Products app configuration for the Storefront Platform.
"""

from django.apps import AppConfig


class ProductsConfig(AppConfig):
    """Catalog items priced and stock-checked at checkout."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.products"
    verbose_name = "Catalog"
