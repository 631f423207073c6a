"""
Loyalty app configuration for the Storefront Platform.
"""

from django.apps import AppConfig


class LoyaltyConfig(AppConfig):
    """Points ledger, tiers and the rewards store."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.loyalty"
    verbose_name = "Loyalty & Rewards"
