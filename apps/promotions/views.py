"""
Promotion API views for the Storefront Platform.
Coupon and campaign previews; nothing here records usage.
"""

from __future__ import annotations

import logging

from rest_framework import status
from rest_framework.decorators import api_view, throttle_classes
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import UserRateThrottle

from apps.common.logging import bind_user

from .serializers import (
    CampaignMatchInputSerializer,
    CampaignProposalSerializer,
    CouponProposalSerializer,
    CouponValidateInputSerializer,
)
from .services import CampaignService, CouponService, CouponValidationError

logger = logging.getLogger(__name__)


class CouponValidateThrottle(UserRateThrottle):
    """Throttling for coupon lookups to slow down code guessing"""

    scope = "coupon_validate"


@api_view(["POST"])
@throttle_classes([CouponValidateThrottle])
def validate_coupon(request: Request) -> Response:
    bind_user(request.user)

    serializer = CouponValidateInputSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({"error": "Invalid input", "details": serializer.errors}, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    result = CouponService.validate(data["code"], request.user, data["subtotal"])
    if result.is_err():
        error = result.unwrap_err()
        response_status = (
            status.HTTP_404_NOT_FOUND if error.kind == CouponValidationError.NOT_FOUND else status.HTTP_400_BAD_REQUEST
        )
        logger.info(f"🎟️ [Coupons] Rejected {data['code']!r} for user {request.user.pk}: {error.kind}")
        return Response({"valid": False, "kind": error.kind, "error": error.message}, status=response_status)

    return Response({"valid": True, "coupon": CouponProposalSerializer(result.unwrap()).data})


@api_view(["POST"])
def match_campaigns(request: Request) -> Response:
    serializer = CampaignMatchInputSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({"error": "Invalid input", "details": serializer.errors}, status=status.HTTP_400_BAD_REQUEST)

    proposal = CampaignService.match(serializer.validated_data["subtotal"])
    return Response(CampaignProposalSerializer(proposal).data)
