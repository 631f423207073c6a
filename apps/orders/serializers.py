"""
Order API serializers for the Storefront Platform.
"""

from __future__ import annotations

from dataclasses import asdict
from decimal import Decimal
from typing import Any

from rest_framework import serializers

from .models import Order, OrderItem
from .services import CheckoutRequest


def snapshot_to_data(entries: list[Any]) -> list[dict[str, Any]]:
    """Typed snapshot entries as JSON-ready dicts (Decimals as strings)."""
    data = []
    for entry in entries:
        fields = asdict(entry)
        data.append({key: str(value) if isinstance(value, Decimal) else value for key, value in fields.items()})
    return data


class OrderItemSerializer(serializers.ModelSerializer):
    """Order line with its price snapshot"""

    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = OrderItem
        fields = ["id", "product", "product_name", "quantity", "price", "line_total"]


class OrderListSerializer(serializers.ModelSerializer):
    """Slim order info for order history"""

    status_display = serializers.CharField(source="get_status_display", read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "status",
            "status_display",
            "subtotal",
            "discount_amount",
            "total_amount",
            "created_at",
        ]


class OrderDetailSerializer(serializers.ModelSerializer):
    """Full order with items and parsed discount snapshots"""

    items = OrderItemSerializer(many=True, read_only=True)
    status_display = serializers.CharField(source="get_status_display", read_only=True)
    rewards_applied = serializers.SerializerMethodField()
    coupons_applied = serializers.SerializerMethodField()
    campaigns_applied = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "status",
            "status_display",
            "subtotal",
            "discount_amount",
            "shipping",
            "tax",
            "total_amount",
            "points_multiplier",
            "shipping_address",
            "payment_method",
            "rewards_applied",
            "coupons_applied",
            "campaigns_applied",
            "items",
            "created_at",
        ]

    def get_rewards_applied(self, obj: Order) -> list[dict[str, Any]]:
        return snapshot_to_data(obj.get_rewards_applied())

    def get_coupons_applied(self, obj: Order) -> list[dict[str, Any]]:
        return snapshot_to_data(obj.get_coupons_applied())

    def get_campaigns_applied(self, obj: Order) -> list[dict[str, Any]]:
        return snapshot_to_data(obj.get_campaigns_applied())


class CheckoutInputSerializer(serializers.Serializer):
    """Checkout selections; amounts are always computed server-side"""

    shipping_address = serializers.CharField(allow_blank=True, trim_whitespace=True, default="")
    payment_method = serializers.CharField(allow_blank=True, max_length=50, default="")
    reward_ids = serializers.ListField(child=serializers.UUIDField(), required=False, allow_empty=True)
    coupon_code = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=50)
    apply_campaigns = serializers.BooleanField(required=False, default=True)

    def to_checkout_request(self) -> CheckoutRequest:
        data = self.validated_data
        reward_ids = data.get("reward_ids")
        return CheckoutRequest(
            shipping_address=data.get("shipping_address", ""),
            payment_method=data.get("payment_method", ""),
            reward_ids=tuple(str(reward_id) for reward_id in reward_ids) if reward_ids else None,
            coupon_code=data.get("coupon_code") or None,
            apply_campaigns=data.get("apply_campaigns", True),
        )


class QuoteOutputSerializer(serializers.Serializer):
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2)
    discount_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    reward_discount = serializers.DecimalField(max_digits=12, decimal_places=2)
    coupon_discount = serializers.DecimalField(max_digits=12, decimal_places=2)
    campaign_discount = serializers.DecimalField(max_digits=12, decimal_places=2)
    free_shipping = serializers.BooleanField()
    shipping = serializers.DecimalField(max_digits=12, decimal_places=2)
    tax = serializers.DecimalField(max_digits=12, decimal_places=2)
    total = serializers.DecimalField(max_digits=12, decimal_places=2)
    points_multiplier = serializers.DecimalField(max_digits=5, decimal_places=2)
