"""
Order API URLs for the Storefront Platform
"""

from django.urls import path

from . import views

app_name = "orders"

urlpatterns = [
    path("", views.orders, name="orders"),
    path("quote/", views.order_quote, name="order_quote"),
    path("<uuid:order_id>/", views.order_detail, name="order_detail"),
]
