"""
Loyalty API serializers for the Storefront Platform.
"""

from rest_framework import serializers

from .models import PointsTransaction, RedeemedReward, Reward


class RewardSerializer(serializers.ModelSerializer):
    type_display = serializers.CharField(source="get_type_display", read_only=True)

    class Meta:
        model = Reward
        fields = ["id", "name", "description", "type", "type_display", "value", "points_cost"]


class RedeemedRewardSerializer(serializers.ModelSerializer):
    reward = RewardSerializer(read_only=True)

    class Meta:
        model = RedeemedReward
        fields = ["id", "reward", "status", "redeemed_at", "reviewed_at", "used_at", "used_on_order"]


class PointsTransactionSerializer(serializers.ModelSerializer):
    class Meta:
        model = PointsTransaction
        fields = ["id", "amount", "type", "description", "reference_id", "balance_after", "created_at"]


class LoyaltySummarySerializer(serializers.Serializer):
    loyalty_points = serializers.IntegerField()
    loyalty_tier = serializers.CharField()
    total_spent = serializers.DecimalField(max_digits=12, decimal_places=2)
    referral_code = serializers.CharField()
    next_tier = serializers.CharField(allow_null=True)
    amount_to_next_tier = serializers.DecimalField(max_digits=12, decimal_places=2)
    tier_progress = serializers.IntegerField()
    recent_transactions = PointsTransactionSerializer(many=True)
    redeemed_rewards = RedeemedRewardSerializer(many=True)


class RewardPreviewInputSerializer(serializers.Serializer):
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)


class AppliedRewardSerializer(serializers.Serializer):
    redeemed_reward_id = serializers.CharField()
    reward_id = serializers.CharField()
    name = serializers.CharField()
    type = serializers.CharField()
    value = serializers.DecimalField(max_digits=12, decimal_places=2)
    points_cost = serializers.IntegerField()
    is_bonus = serializers.BooleanField()


class RewardProposalSerializer(serializers.Serializer):
    reward_ids = serializers.ListField(child=serializers.CharField())
    discount_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    free_delivery = serializers.BooleanField()
    applied_rewards = AppliedRewardSerializer(many=True)


class RedemptionReviewInputSerializer(serializers.Serializer):
    approve = serializers.BooleanField()
