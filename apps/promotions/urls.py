"""
Promotion API URLs for the Storefront Platform
"""

from django.urls import path

from . import views

app_name = "promotions"

urlpatterns = [
    path("coupons/validate/", views.validate_coupon, name="validate_coupon"),
    path("campaigns/match/", views.match_campaigns, name="match_campaigns"),
]
