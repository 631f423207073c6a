"""
Promotion services for the Storefront Platform.
Coupon validation and redemption, campaign matching and usage tracking.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, ClassVar

from django.db import IntegrityError, transaction
from django.db.models import F

from apps.common.constants import ZERO
from apps.common.types import Err, Ok, Result
from apps.orders.discounts import AppliedCampaign, CampaignProposal, CouponProposal
from apps.orders.pricing import quantize_money

from .models import Campaign, CampaignUsage, Coupon, CouponUsage

if TYPE_CHECKING:
    from apps.orders.models import Order
    from apps.users.models import User

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")
BOGO_RATE = Decimal("0.5")


# ===============================================================================
# Coupon Service
# ===============================================================================


@dataclass(frozen=True)
class CouponValidationError:
    """
    Why a coupon cannot be applied.

    Kinds: NOT_FOUND, INACTIVE, NOT_STARTED, EXPIRED, USAGE_LIMIT_EXCEEDED,
    BELOW_MINIMUM_PURCHASE, PER_USER_LIMIT_EXCEEDED
    """

    NOT_FOUND: ClassVar[str] = "NOT_FOUND"
    INACTIVE: ClassVar[str] = "INACTIVE"
    NOT_STARTED: ClassVar[str] = "NOT_STARTED"
    EXPIRED: ClassVar[str] = "EXPIRED"
    USAGE_LIMIT_EXCEEDED: ClassVar[str] = "USAGE_LIMIT_EXCEEDED"
    BELOW_MINIMUM_PURCHASE: ClassVar[str] = "BELOW_MINIMUM_PURCHASE"
    PER_USER_LIMIT_EXCEEDED: ClassVar[str] = "PER_USER_LIMIT_EXCEEDED"

    kind: str
    message: str

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"


class CouponService:
    """
    Service for coupon validation and redemption.
    """

    @staticmethod
    def normalize_code(code: str) -> str:
        """Normalize coupon code to uppercase and trimmed."""
        return (code or "").upper().strip()

    @classmethod
    def validate(cls, code: str, user: User, subtotal: Decimal) -> Result[CouponProposal, CouponValidationError]:
        """Check a coupon code against a cart subtotal and compute its discount."""
        coupon = Coupon.objects.filter(code=cls.normalize_code(code)).first()
        if coupon is None:
            return Err(CouponValidationError(CouponValidationError.NOT_FOUND, "Invalid coupon code"))
        return cls._validate_coupon_instance(coupon, user, subtotal)

    @classmethod
    def _validate_coupon_instance(  # noqa: PLR0911
        cls, coupon: Coupon, user: User, subtotal: Decimal
    ) -> Result[CouponProposal, CouponValidationError]:
        if not coupon.is_active:
            return Err(CouponValidationError(CouponValidationError.INACTIVE, "This coupon is no longer active"))
        if coupon.is_not_yet_valid:
            return Err(CouponValidationError(CouponValidationError.NOT_STARTED, "This coupon is not yet valid"))
        if coupon.is_expired:
            return Err(CouponValidationError(CouponValidationError.EXPIRED, "This coupon has expired"))
        if coupon.is_depleted:
            return Err(
                CouponValidationError(
                    CouponValidationError.USAGE_LIMIT_EXCEEDED, "This coupon has reached its usage limit"
                )
            )
        if coupon.min_purchase is not None and subtotal < coupon.min_purchase:
            return Err(
                CouponValidationError(
                    CouponValidationError.BELOW_MINIMUM_PURCHASE,
                    f"Minimum purchase of {coupon.min_purchase} required",
                )
            )
        if coupon.usage_limit_per_user is not None:
            user_uses = CouponUsage.objects.filter(coupon=coupon, user=user).count()
            if user_uses >= coupon.usage_limit_per_user:
                return Err(
                    CouponValidationError(
                        CouponValidationError.PER_USER_LIMIT_EXCEEDED,
                        f"You have already used this coupon the maximum number of times ({coupon.usage_limit_per_user})",
                    )
                )

        return Ok(cls.calculate_discount(coupon, subtotal))

    @staticmethod
    def calculate_discount(coupon: Coupon, subtotal: Decimal) -> CouponProposal:
        """Compute the discount a valid coupon grants on a subtotal."""
        discount_amount = ZERO
        free_shipping = False

        if coupon.discount_type == Coupon.FREE_SHIPPING:
            free_shipping = True
        elif coupon.discount_type == Coupon.PERCENTAGE:
            discount_amount = subtotal * coupon.discount_value / HUNDRED
            if coupon.max_discount is not None and discount_amount > coupon.max_discount:
                discount_amount = coupon.max_discount
        elif coupon.discount_type == Coupon.FIXED:
            discount_amount = coupon.discount_value

        return CouponProposal(
            coupon_id=str(coupon.pk),
            code=coupon.code,
            discount_type=coupon.discount_type,
            discount_amount=discount_amount,
            free_shipping=free_shipping,
            description=coupon.description,
        )

    @classmethod
    def redeem(
        cls, proposal: CouponProposal, user: User, order: Order, subtotal: Decimal
    ) -> Result[CouponUsage, CouponValidationError]:
        """
        Record one application of a coupon to an order.

        Must run inside the settlement transaction. The coupon row is locked and
        re-validated so concurrent checkouts cannot push usage past its limits.
        """
        try:
            coupon = Coupon.objects.select_for_update().get(pk=proposal.coupon_id)
        except Coupon.DoesNotExist:
            return Err(CouponValidationError(CouponValidationError.NOT_FOUND, "Coupon not found"))

        validation = cls._validate_coupon_instance(coupon, user, subtotal)
        if validation.is_err():
            logger.warning(
                "Coupon validation failed after lock: %s for order %s - %s",
                coupon.code,
                order.order_number,
                validation.unwrap_err(),
                extra={"coupon_code": coupon.code, "order_id": str(order.id)},
            )
            return validation

        usage = CouponUsage.objects.create(
            coupon=coupon,
            user=user,
            order=order,
            discount_amount=quantize_money(proposal.discount_amount),
        )
        Coupon.objects.filter(pk=coupon.pk).update(usage_count=F("usage_count") + 1)

        logger.info(
            "Coupon redeemed: %s on order %s for %s",
            coupon.code,
            order.order_number,
            usage.discount_amount,
            extra={"coupon_code": coupon.code, "order_id": str(order.id), "usage_id": str(usage.id)},
        )
        return Ok(usage)


# ===============================================================================
# Campaign Service
# ===============================================================================


class CampaignService:
    """
    Store-wide campaign matching and post-commit usage tracking.
    """

    @staticmethod
    def get_active_campaigns() -> list[Campaign]:
        """Active campaigns inside their date window and under their usage limit."""
        return [campaign for campaign in Campaign.objects.filter(is_active=True) if campaign.can_apply()]

    @classmethod
    def match(cls, subtotal: Decimal) -> CampaignProposal:
        """Evaluate every active campaign against a cart subtotal."""
        base = max(ZERO, subtotal)
        applied: list[AppliedCampaign] = []
        total_discount = ZERO
        free_shipping = False
        points_multiplier = Decimal("1")

        for campaign in cls.get_active_campaigns():
            if campaign.min_purchase is not None and subtotal < campaign.min_purchase:
                continue

            discount = ZERO
            campaign_free_shipping = False
            multiplier = Decimal("1")

            if campaign.type == Campaign.TYPE_DISCOUNT and campaign.discount_value:
                if campaign.discount_type == Campaign.PERCENTAGE:
                    discount = base * campaign.discount_value / HUNDRED
                elif campaign.discount_type == Campaign.FIXED:
                    discount = min(campaign.discount_value, base)
            elif campaign.type == Campaign.TYPE_BOGO:
                # Approximated as half off until item-level pairing exists
                discount = base * BOGO_RATE
            elif campaign.type == Campaign.TYPE_FREE_SHIPPING:
                campaign_free_shipping = True
            elif campaign.type == Campaign.TYPE_POINTS_MULTIPLIER:
                multiplier = campaign.points_multiplier

            if discount > ZERO or campaign_free_shipping or multiplier > 1:
                applied.append(
                    AppliedCampaign(
                        campaign_id=str(campaign.pk),
                        title=campaign.title,
                        type=campaign.type,
                        discount_amount=discount,
                        free_shipping=campaign_free_shipping,
                        points_multiplier=multiplier,
                    )
                )
                total_discount += discount
                free_shipping = free_shipping or campaign_free_shipping
                points_multiplier = max(points_multiplier, multiplier)

        return CampaignProposal(
            campaigns=tuple(applied),
            total_discount=total_discount,
            free_shipping=free_shipping,
            points_multiplier=points_multiplier,
        )

    @staticmethod
    def record_usage(order: Order, campaign_ids: Iterable[str]) -> int:
        """
        Count an order once against each campaign it used.

        Idempotent per (campaign, order): a replay finds the CampaignUsage row
        and leaves usage_count alone. Returns the number of counters incremented.
        """
        recorded = 0
        for campaign_id in campaign_ids:
            try:
                with transaction.atomic():
                    _usage, created = CampaignUsage.objects.get_or_create(campaign_id=campaign_id, order=order)
                    if created:
                        Campaign.objects.filter(pk=campaign_id).update(usage_count=F("usage_count") + 1)
                        recorded += 1
            except IntegrityError:
                # Concurrent worker inserted the same (campaign, order) row
                logger.info(f"📣 [Campaigns] Usage of {campaign_id} for order {order.pk} already recorded")
        if recorded:
            logger.info(f"📣 [Campaigns] Recorded usage of {recorded} campaign(s) for order {order.order_number}")
        return recorded
