"""
Promotions models for the Storefront Platform.

Supports:
- Coupon codes (percentage, fixed amount, free shipping) with global and per-user limits
- Promotional campaigns applied globally to every cart (discount, BOGO, free shipping, points multiplier)
- Usage rows that keep usage_count counters reconcilable
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Any, ClassVar

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

MAX_DISCOUNT_PERCENT = Decimal("100.00")


# ===============================================================================
# Coupon Model
# ===============================================================================


class Coupon(models.Model):
    """
    Coupon code that provides a discount on a single order.

    usage_count only moves together with a CouponUsage insert, so
    usage_count == redemptions.count() at all times.
    """

    PERCENTAGE = "PERCENTAGE"
    FIXED = "FIXED"
    FREE_SHIPPING = "FREE_SHIPPING"

    DISCOUNT_TYPES: ClassVar[tuple[tuple[str, Any], ...]] = (
        (PERCENTAGE, _("Percentage Discount")),
        (FIXED, _("Fixed Amount Discount")),
        (FREE_SHIPPING, _("Free Shipping")),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    code = models.CharField(
        max_length=50,
        unique=True,
        help_text=_("Unique coupon code, stored upper-case"),
    )
    description = models.TextField(blank=True, help_text=_("Description shown to customers"))

    discount_type = models.CharField(max_length=20, choices=DISCOUNT_TYPES, default=PERCENTAGE)
    discount_value = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text=_("Percent (0-100) or fixed amount, depending on discount_type"),
    )
    max_discount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        help_text=_("Caps percentage discounts"),
    )
    min_purchase = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        help_text=_("Minimum cart subtotal required"),
    )

    usage_limit = models.PositiveIntegerField(null=True, blank=True, help_text=_("Total uses allowed"))
    usage_limit_per_user = models.PositiveIntegerField(null=True, blank=True, help_text=_("Uses allowed per user"))
    usage_count = models.PositiveIntegerField(default=0, help_text=_("Number of orders that applied this coupon"))

    is_active = models.BooleanField(default=True)
    start_date = models.DateTimeField(null=True, blank=True)
    end_date = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "promotion_coupons"
        verbose_name = _("Coupon")
        verbose_name_plural = _("Coupons")
        ordering: ClassVar[tuple[str, ...]] = ("-created_at",)
        indexes: ClassVar[tuple[models.Index, ...]] = (
            models.Index(fields=["is_active", "start_date", "end_date"], name="idx_coupon_validity"),
        )

    def __str__(self) -> str:
        return self.code

    def save(self, *args: Any, **kwargs: Any) -> None:
        """Normalize code to uppercase before saving."""
        if self.code:
            self.code = self.code.upper().strip()
        super().save(*args, **kwargs)

    def clean(self) -> None:
        super().clean()
        if self.discount_type == self.PERCENTAGE and self.discount_value > MAX_DISCOUNT_PERCENT:
            raise ValidationError("Percentage must be between 0 and 100")
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError("end_date must be after start_date")

    @property
    def is_expired(self) -> bool:
        return self.end_date is not None and timezone.now() > self.end_date

    @property
    def is_not_yet_valid(self) -> bool:
        return self.start_date is not None and timezone.now() < self.start_date

    @property
    def is_depleted(self) -> bool:
        return self.usage_limit is not None and self.usage_count >= self.usage_limit


class CouponUsage(models.Model):
    """One application of a coupon to an order."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    coupon = models.ForeignKey(Coupon, on_delete=models.PROTECT, related_name="usages")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="coupon_usages")
    order = models.ForeignKey("orders.Order", on_delete=models.CASCADE, related_name="coupon_usages")
    discount_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text=_("Discount granted by the coupon on this order"),
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "promotion_coupon_usages"
        verbose_name = _("Coupon Usage")
        verbose_name_plural = _("Coupon Usages")
        indexes: ClassVar[tuple[models.Index, ...]] = (
            models.Index(fields=["coupon", "user"], name="idx_coupon_usage_user"),
        )
        constraints: ClassVar[tuple[models.UniqueConstraint, ...]] = (
            # Prevent same coupon being applied to same order twice
            models.UniqueConstraint(fields=["coupon", "order"], name="unique_coupon_per_order"),
        )

    def __str__(self) -> str:
        return f"{self.coupon_id} on {self.order_id}"


# ===============================================================================
# Campaign Model
# ===============================================================================


class Campaign(models.Model):
    """
    Store-wide promotion matched against every cart.
    Multiple campaigns stack; usage_count moves only via CampaignUsage rows.
    """

    TYPE_DISCOUNT = "DISCOUNT"
    TYPE_BOGO = "BOGO"
    TYPE_FREE_SHIPPING = "FREE_SHIPPING"
    TYPE_POINTS_MULTIPLIER = "POINTS_MULTIPLIER"

    CAMPAIGN_TYPES: ClassVar[tuple[tuple[str, Any], ...]] = (
        (TYPE_DISCOUNT, _("Discount")),
        (TYPE_BOGO, _("Buy One Get One")),
        (TYPE_FREE_SHIPPING, _("Free Shipping")),
        (TYPE_POINTS_MULTIPLIER, _("Points Multiplier")),
    )

    PERCENTAGE = "PERCENTAGE"
    FIXED = "FIXED"

    DISCOUNT_TYPES: ClassVar[tuple[tuple[str, Any], ...]] = (
        (PERCENTAGE, _("Percentage")),
        (FIXED, _("Fixed Amount")),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)

    type = models.CharField(max_length=20, choices=CAMPAIGN_TYPES, default=TYPE_DISCOUNT)
    discount_type = models.CharField(max_length=20, choices=DISCOUNT_TYPES, blank=True, default="")
    discount_value = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    min_purchase = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    points_multiplier = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("1.00"),
        help_text=_("Loyalty points multiplier for POINTS_MULTIPLIER campaigns"),
    )

    is_active = models.BooleanField(default=True)
    start_date = models.DateTimeField(null=True, blank=True)
    end_date = models.DateTimeField(null=True, blank=True)
    usage_limit = models.PositiveIntegerField(null=True, blank=True)
    usage_count = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "promotion_campaigns"
        verbose_name = _("Campaign")
        verbose_name_plural = _("Campaigns")
        ordering: ClassVar[tuple[str, ...]] = ("created_at",)
        indexes: ClassVar[tuple[models.Index, ...]] = (
            models.Index(fields=["is_active", "start_date", "end_date"], name="idx_campaign_validity"),
        )

    def __str__(self) -> str:
        return self.title

    def is_within_dates(self) -> bool:
        now = timezone.now()
        if self.start_date and now < self.start_date:
            return False
        return not (self.end_date and now > self.end_date)

    def is_within_usage_limit(self) -> bool:
        return self.usage_limit is None or self.usage_count < self.usage_limit

    def can_apply(self) -> bool:
        return self.is_active and self.is_within_dates() and self.is_within_usage_limit()


class CampaignUsage(models.Model):
    """Marks that a campaign counted once against an order."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    campaign = models.ForeignKey(Campaign, on_delete=models.PROTECT, related_name="usages")
    order = models.ForeignKey("orders.Order", on_delete=models.CASCADE, related_name="campaign_usages")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "promotion_campaign_usages"
        verbose_name = _("Campaign Usage")
        verbose_name_plural = _("Campaign Usages")
        constraints: ClassVar[tuple[models.UniqueConstraint, ...]] = (
            models.UniqueConstraint(fields=["campaign", "order"], name="unique_campaign_per_order"),
        )

    def __str__(self) -> str:
        return f"{self.campaign_id} on {self.order_id}"
