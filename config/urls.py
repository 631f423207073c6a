"""
URL configuration for the Storefront Platform
"""

from django.urls import include, path

# ===============================================================================
# MAIN URL PATTERNS
# ===============================================================================

urlpatterns = [
    path("api/orders/", include("apps.orders.urls")),
    path("api/promotions/", include("apps.promotions.urls")),
    path("api/loyalty/", include("apps.loyalty.urls")),
]
