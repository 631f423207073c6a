"""
Loyalty API views for the Storefront Platform.
Points summary, the rewards store and redemption requests.
"""

from __future__ import annotations

import logging
import uuid

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import IsAdminUser
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import UserRateThrottle

from apps.common.logging import bind_user

from .exceptions import RedemptionNotFoundError
from .models import Reward
from .serializers import (
    LoyaltySummarySerializer,
    RedeemedRewardSerializer,
    RedemptionReviewInputSerializer,
    RewardPreviewInputSerializer,
    RewardProposalSerializer,
    RewardSerializer,
)
from .services import LoyaltyService, RewardRedemptionService, RewardSelector

logger = logging.getLogger(__name__)


class RewardRedeemThrottle(UserRateThrottle):
    scope = "reward_redeem"


@api_view(["GET"])
def loyalty_summary(request: Request) -> Response:
    bind_user(request.user)
    summary = LoyaltyService.get_summary(request.user)
    return Response(LoyaltySummarySerializer(summary).data)


@api_view(["GET"])
def reward_list(request: Request) -> Response:
    rewards = Reward.objects.filter(is_active=True)
    return Response({"results": RewardSerializer(rewards, many=True).data})


@api_view(["POST"])
def reward_preview(request: Request) -> Response:
    """Rewards that checkout would apply automatically for this subtotal."""
    bind_user(request.user)

    serializer = RewardPreviewInputSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({"error": "Invalid input", "details": serializer.errors}, status=status.HTTP_400_BAD_REQUEST)

    proposal = RewardSelector.preview(request.user, serializer.validated_data["subtotal"])
    return Response(RewardProposalSerializer(proposal).data)


@api_view(["POST"])
@throttle_classes([RewardRedeemThrottle])
def reward_redeem(request: Request, reward_id: uuid.UUID) -> Response:
    """Request a redemption; it stays PENDING until staff review it."""
    bind_user(request.user)

    try:
        reward = Reward.objects.get(pk=reward_id)
    except Reward.DoesNotExist:
        return Response({"error": "Reward not found"}, status=status.HTTP_404_NOT_FOUND)

    result = RewardRedemptionService.request_redemption(request.user, reward)
    if result.is_err():
        error = result.unwrap_err()
        return Response({"error": error.message, "code": error.code}, status=status.HTTP_400_BAD_REQUEST)

    return Response(RedeemedRewardSerializer(result.unwrap()).data, status=status.HTTP_201_CREATED)


@api_view(["POST"])
@permission_classes([IsAdminUser])
def redemption_review(request: Request, redeemed_id: uuid.UUID) -> Response:
    """Staff approval or rejection of a PENDING redemption."""
    bind_user(request.user)

    serializer = RedemptionReviewInputSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({"error": "Invalid input", "details": serializer.errors}, status=status.HTTP_400_BAD_REQUEST)

    result = RewardRedemptionService.review_redemption(
        redeemed_id, approve=serializer.validated_data["approve"], reviewer=request.user
    )
    if result.is_err():
        error = result.unwrap_err()
        if isinstance(error, RedemptionNotFoundError):
            return Response({"error": error.message, "code": error.code}, status=status.HTTP_404_NOT_FOUND)
        return Response({"error": error.message, "code": error.code}, status=status.HTTP_409_CONFLICT)

    return Response(RedeemedRewardSerializer(result.unwrap()).data)
