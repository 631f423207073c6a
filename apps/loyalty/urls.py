"""
Loyalty API URLs for the Storefront Platform
"""

from django.urls import path

from . import views

app_name = "loyalty"

urlpatterns = [
    path("", views.loyalty_summary, name="summary"),
    path("rewards/", views.reward_list, name="reward_list"),
    path("rewards/preview/", views.reward_preview, name="reward_preview"),
    path("rewards/<uuid:reward_id>/redeem/", views.reward_redeem, name="reward_redeem"),
    path("redemptions/<uuid:redeemed_id>/review/", views.redemption_review, name="redemption_review"),
]
