"""
Order API views for the Storefront Platform.
Checkout, quotes and order history for the authenticated buyer.
"""

from __future__ import annotations

import logging
import uuid

from rest_framework import status
from rest_framework.decorators import api_view, throttle_classes
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import UserRateThrottle

from apps.common.logging import bind_user

from .exceptions import CheckoutError
from .pricing import quantize_money
from .serializers import CheckoutInputSerializer, OrderDetailSerializer, OrderListSerializer, QuoteOutputSerializer
from .services import OrderQueryService, OrderSettlementService

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    "validation_error": status.HTTP_400_BAD_REQUEST,
    "empty_cart": status.HTTP_400_BAD_REQUEST,
    "coupon_rejected": status.HTTP_400_BAD_REQUEST,
    "insufficient_stock": status.HTTP_409_CONFLICT,
    "settlement_failed": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class OrderCreateThrottle(UserRateThrottle):
    """Throttling for checkout; listing uses its own budget"""

    scope = "order_create"

    def allow_request(self, request, view):
        if request.method != "POST":
            return True
        return super().allow_request(request, view)


class OrderListThrottle(UserRateThrottle):
    scope = "order_list"

    def allow_request(self, request, view):
        if request.method != "GET":
            return True
        return super().allow_request(request, view)


class OrderQuoteThrottle(UserRateThrottle):
    scope = "order_quote"


def error_response(error: CheckoutError) -> Response:
    return Response(
        {"error": error.message, **error.to_dict()},
        status=ERROR_STATUS.get(error.code, status.HTTP_400_BAD_REQUEST),
    )


@api_view(["GET", "POST"])
@throttle_classes([OrderCreateThrottle, OrderListThrottle])
def orders(request: Request) -> Response:
    """
    GET: the buyer's order history.
    POST: check out the current cart.
    """
    bind_user(request.user)

    if request.method == "GET":
        serializer = OrderListSerializer(OrderQueryService.list_for_user(request.user), many=True)
        return Response({"results": serializer.data, "count": len(serializer.data)})

    input_serializer = CheckoutInputSerializer(data=request.data)
    if not input_serializer.is_valid():
        return Response(
            {"error": "Invalid input", "code": "validation_error", "details": input_serializer.errors},
            status=status.HTTP_400_BAD_REQUEST,
        )

    result = OrderSettlementService.checkout(request.user, input_serializer.to_checkout_request())
    if result.is_err():
        return error_response(result.unwrap_err())

    order = result.unwrap()
    logger.info(f"🧾 [Orders API] Order {order.order_number} created for user {request.user.pk}")
    return Response(OrderDetailSerializer(order).data, status=status.HTTP_201_CREATED)


@api_view(["POST"])
@throttle_classes([OrderQuoteThrottle])
def order_quote(request: Request) -> Response:
    """Price the current cart with the given selections, without settling."""
    bind_user(request.user)

    input_serializer = CheckoutInputSerializer(data=request.data)
    if not input_serializer.is_valid():
        return Response(
            {"error": "Invalid input", "code": "validation_error", "details": input_serializer.errors},
            status=status.HTTP_400_BAD_REQUEST,
        )

    try:
        quote = OrderSettlementService.quote(request.user, input_serializer.to_checkout_request())
    except CheckoutError as e:
        return error_response(e)

    pricing = quote.pricing.quantized()
    discounts = quote.discounts
    output = QuoteOutputSerializer(
        {
            "subtotal": pricing.subtotal,
            "discount_amount": pricing.discount_amount,
            "reward_discount": quantize_money(discounts.reward_discount),
            "coupon_discount": quantize_money(discounts.coupon_discount),
            "campaign_discount": quantize_money(discounts.campaign_discount),
            "free_shipping": discounts.free_shipping,
            "shipping": pricing.shipping,
            "tax": pricing.tax,
            "total": pricing.total,
            "points_multiplier": discounts.points_multiplier,
        }
    )
    return Response(output.data)


@api_view(["GET"])
@throttle_classes([OrderListThrottle])
def order_detail(request: Request, order_id: uuid.UUID) -> Response:
    bind_user(request.user)

    result = OrderQueryService.get_for_user(request.user, order_id)
    if result.is_err():
        return Response({"error": result.unwrap_err()}, status=status.HTTP_404_NOT_FOUND)
    return Response(OrderDetailSerializer(result.unwrap()).data)
