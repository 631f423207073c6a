"""
Users app configuration for the Storefront Platform.
"""

from django.apps import AppConfig


class UsersConfig(AppConfig):
    """Customer accounts with loyalty balances and referral codes."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.users"
    verbose_name = "Customers"
