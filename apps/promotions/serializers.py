"""
Promotion API serializers for the Storefront Platform.
"""

from rest_framework import serializers


class CouponValidateInputSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=50, trim_whitespace=True)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)


class CouponProposalSerializer(serializers.Serializer):
    coupon_id = serializers.CharField()
    code = serializers.CharField()
    discount_type = serializers.CharField()
    discount_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    free_shipping = serializers.BooleanField()
    description = serializers.CharField(allow_blank=True)


class CampaignMatchInputSerializer(serializers.Serializer):
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)


class AppliedCampaignSerializer(serializers.Serializer):
    campaign_id = serializers.CharField()
    title = serializers.CharField()
    type = serializers.CharField()
    discount_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    free_shipping = serializers.BooleanField()
    points_multiplier = serializers.DecimalField(max_digits=5, decimal_places=2)


class CampaignProposalSerializer(serializers.Serializer):
    campaigns = AppliedCampaignSerializer(many=True)
    total_discount = serializers.DecimalField(max_digits=12, decimal_places=2)
    free_shipping = serializers.BooleanField()
    points_multiplier = serializers.DecimalField(max_digits=5, decimal_places=2)
