"""
Order settlement services for the Storefront Platform.

Checkout turns a user's cart into a committed order:

    cart snapshot -> reward / coupon / campaign proposals -> composed discount
    -> pricing -> one atomic settlement -> post-commit outbox tasks

Every mutation of shared state (stock, cart, redemptions, coupon usage, the
points ledger, the outbox) happens inside the settlement transaction.
Campaign usage and loyalty accrual run afterwards from PostCommitTask rows.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from django.db import DatabaseError, transaction
from django.db.models import F

from apps.cart.services import CartService, CartSnapshot, CartSnapshotReader
from apps.common.constants import CENT, get_outbox_config
from apps.common.queue import queue_by_name
from apps.common.types import Err, Ok, Result
from apps.common.validators import log_security_event
from apps.loyalty.services import RewardRedemptionService, RewardSelector
from apps.products.models import Product
from apps.promotions.services import CampaignService, CouponService

from .discounts import ComposedDiscount, DiscountComposer
from .exceptions import (
    CheckoutError,
    CheckoutValidationError,
    CouponRejectedError,
    EmptyCartError,
    InsufficientStockError,
    SettlementFailedError,
)
from .models import Order, OrderItem, PostCommitTask
from .pricing import PriceBreakdown, PricingCalculator

if TYPE_CHECKING:
    from decimal import Decimal

    from apps.users.models import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckoutRequest:
    """Buyer selections submitted at checkout"""

    shipping_address: str
    payment_method: str
    reward_ids: tuple[str, ...] | None = None
    coupon_code: str | None = None
    apply_campaigns: bool = True


@dataclass(frozen=True)
class CheckoutQuote:
    """Priced cart before settlement"""

    cart: CartSnapshot
    discounts: ComposedDiscount
    pricing: PriceBreakdown


class OrderSettlementService:
    """
    Checkout orchestration and the atomic settlement unit.
    """

    @staticmethod
    def _validate_request(request: CheckoutRequest) -> None:
        if not (request.shipping_address or "").strip():
            raise CheckoutValidationError("Shipping address is required", field="shipping_address")
        if not (request.payment_method or "").strip():
            raise CheckoutValidationError("Payment method is required", field="payment_method")

    @staticmethod
    def compose_discounts(user: User, subtotal: Decimal, request: CheckoutRequest) -> ComposedDiscount:
        """
        Build proposals server-side from the buyer's selections.

        Raises:
            CouponRejectedError: when the selected coupon fails validation.
        """
        rewards = RewardSelector.select(user, request.reward_ids) if request.reward_ids else None

        coupon = None
        if request.coupon_code:
            validation = CouponService.validate(request.coupon_code, user, subtotal)
            if validation.is_err():
                error = validation.unwrap_err()
                raise CouponRejectedError(error.kind, error.message)
            coupon = validation.unwrap()

        campaigns = CampaignService.match(subtotal) if request.apply_campaigns else None
        return DiscountComposer.compose(subtotal, rewards=rewards, coupon=coupon, campaigns=campaigns)

    @classmethod
    def quote(cls, user: User, request: CheckoutRequest) -> CheckoutQuote:
        """
        Price the current cart without mutating anything.

        Raises:
            EmptyCartError, InsufficientStockError, CouponRejectedError
        """
        cart = CartSnapshotReader.read(user)
        if cart.is_empty:
            raise EmptyCartError()
        for line in cart.lines:
            if not line.has_sufficient_stock:
                raise InsufficientStockError(line.product_id, line.product_name, line.quantity, line.stock)

        discounts = cls.compose_discounts(user, cart.subtotal, request)
        pricing = PricingCalculator().calculate(cart.subtotal, discounts.discount_amount, discounts.free_shipping)
        return CheckoutQuote(cart=cart, discounts=discounts, pricing=pricing)

    @classmethod
    def checkout(cls, user: User, request: CheckoutRequest) -> Result[Order, CheckoutError]:
        """
        Settle the user's cart into an order.

        Either the order and every side effect commit together, or nothing
        changes and one typed CheckoutError is returned.
        """
        logger.info(f"🧾 [Checkout] Starting checkout for user {user.pk}")
        try:
            cls._validate_request(request)
            quote = cls.quote(user, request)
            order = cls._settle(user, request, quote)
        except CheckoutError as e:
            logger.warning(f"⚠️ [Checkout] Rejected for user {user.pk}: {e.code} - {e.message}")
            return Err(e)
        except DatabaseError as e:
            logger.exception(f"🔥 [Checkout] Settlement failed for user {user.pk}: {e}")
            return Err(SettlementFailedError())

        log_security_event(
            "order_settled",
            {
                "order_id": str(order.pk),
                "order_number": order.order_number,
                "user_id": str(user.pk),
                "total_amount": str(order.total_amount),
                "discount_amount": str(order.discount_amount),
            },
        )
        return Ok(order)

    @classmethod
    @transaction.atomic
    def _settle(cls, user: User, request: CheckoutRequest, quote: CheckoutQuote) -> Order:
        cart, discounts, pricing = quote.cart, quote.discounts, quote.pricing

        # Lock stock rows in pk order before anything else is written
        locked = {
            product.pk: product
            for product in Product.objects.select_for_update()
            .filter(pk__in=[line.product_id for line in cart.lines])
            .order_by("pk")
        }
        for line in cart.lines:
            product = locked.get(line.product_id)
            available = product.stock if product else 0
            if available < line.quantity:
                raise InsufficientStockError(line.product_id, line.product_name, line.quantity, available)

        if discounts.rewards.reward_ids:
            discounts, pricing = cls._refresh_rewards(user, cart, discounts, pricing)
        pricing = pricing.quantized()

        order = Order.objects.create(
            user=user,
            subtotal=pricing.subtotal,
            discount_amount=pricing.discount_amount,
            shipping=pricing.shipping,
            tax=pricing.tax,
            total_amount=pricing.total,
            shipping_address=request.shipping_address.strip(),
            payment_method=request.payment_method.strip(),
            points_multiplier=discounts.points_multiplier.quantize(CENT),
            rewards_applied=discounts.rewards_snapshot(),
            coupons_applied=discounts.coupons_snapshot(),
            campaigns_applied=discounts.campaigns_snapshot(),
        )

        OrderItem.objects.bulk_create(
            [
                OrderItem(
                    order=order,
                    product_id=line.product_id,
                    product_name=line.product_name,
                    quantity=line.quantity,
                    price=line.unit_price,
                )
                for line in cart.lines
            ]
        )

        for line in cart.lines:
            Product.objects.filter(pk=line.product_id).update(stock=F("stock") - line.quantity)

        CartService.remove_purchased(user, cart)

        if discounts.rewards.reward_ids:
            RewardRedemptionService.consume(user, discounts.rewards.reward_ids, order)

        if discounts.coupon is not None:
            redemption = CouponService.redeem(discounts.coupon, user, order, cart.subtotal)
            if redemption.is_err():
                error = redemption.unwrap_err()
                raise CouponRejectedError(error.kind, error.message)

        task_ids = cls._write_outbox(order, discounts)
        transaction.on_commit(lambda: enqueue_post_commit_tasks(task_ids))

        logger.info(
            f"✅ [Checkout] Order {order.order_number} settled: {len(cart.lines)} line(s), "
            f"subtotal={order.subtotal} discount={order.discount_amount} total={order.total_amount}"
        )
        return order

    @staticmethod
    def _refresh_rewards(
        user: User, cart: CartSnapshot, discounts: ComposedDiscount, pricing: PriceBreakdown
    ) -> tuple[ComposedDiscount, PriceBreakdown]:
        """Re-price from the redemptions still APPROVED under lock; the quote may predate another checkout."""
        live = RewardRedemptionService.lock_approved(user, discounts.rewards.reward_ids)
        if len(live) == len(discounts.rewards.reward_ids):
            return discounts, pricing

        stale = sorted(set(discounts.rewards.reward_ids) - {str(r.pk) for r in live})
        logger.warning(f"🎁 [Checkout] Rewards used since the quote for user {user.pk}, re-pricing without {stale}")
        discounts = DiscountComposer.compose(
            cart.subtotal,
            rewards=RewardSelector.from_redemptions(live),
            coupon=discounts.coupon,
            campaigns=discounts.campaigns,
        )
        pricing = PricingCalculator().calculate(cart.subtotal, discounts.discount_amount, discounts.free_shipping)
        return discounts, pricing

    @staticmethod
    def _write_outbox(order: Order, discounts: ComposedDiscount) -> list[str]:
        max_attempts = get_outbox_config()["max_attempts"]
        tasks = []
        if discounts.campaigns.campaign_ids:
            tasks.append(
                PostCommitTask.objects.create(
                    task_type=PostCommitTask.CAMPAIGN_USAGE,
                    order=order,
                    payload={"campaign_ids": discounts.campaigns.campaign_ids},
                    max_attempts=max_attempts,
                )
            )
        tasks.append(
            PostCommitTask.objects.create(
                task_type=PostCommitTask.LOYALTY_ACCRUAL,
                order=order,
                payload={"points_multiplier": str(discounts.points_multiplier)},
                max_attempts=max_attempts,
            )
        )
        return [str(task.pk) for task in tasks]


def enqueue_post_commit_tasks(task_ids: Iterable[str]) -> None:
    """Hand committed outbox rows to the worker; the periodic sweep covers any that fail to enqueue."""
    for task_id in task_ids:
        try:
            queue_by_name("apps.orders.tasks.process_post_commit_task", task_id)
        except Exception as e:  # noqa: BLE001
            logger.warning(f"⚠️ [Outbox] Could not enqueue task {task_id}, leaving it for the sweep: {e}")


class OrderQueryService:
    """Read-side access to a user's orders"""

    @staticmethod
    def list_for_user(user: User) -> Any:
        return Order.objects.filter(user=user).prefetch_related("items").order_by("-created_at")

    @staticmethod
    def get_for_user(user: User, order_id: Any) -> Result[Order, str]:
        try:
            return Ok(Order.objects.prefetch_related("items").get(pk=order_id, user=user))
        except Order.DoesNotExist:
            return Err("Order not found")
