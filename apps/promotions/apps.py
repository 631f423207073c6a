"""
Promotions app configuration for the Storefront Platform.
"""

from django.apps import AppConfig


class PromotionsConfig(AppConfig):
    """Coupons and store-wide campaigns."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.promotions"
    verbose_name = "Promotions"
