"""
Loyalty models for the Storefront Platform.

- Reward: catalog entry in the points store
- RedeemedReward: a user's claim on a reward, PENDING until reviewed
- PointsTransaction: append-only ledger behind User.loyalty_points
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Any, ClassVar

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _


class Reward(models.Model):
    """
    Item in the points store.

    DISCOUNT and FREE_DELIVERY reduce what the buyer pays. CASHBACK credits
    ``value`` points back when used; FREE_PRODUCT is fulfilled manually.
    """

    TYPE_DISCOUNT = "DISCOUNT"
    TYPE_FREE_DELIVERY = "FREE_DELIVERY"
    TYPE_CASHBACK = "CASHBACK"
    TYPE_FREE_PRODUCT = "FREE_PRODUCT"

    REWARD_TYPES: ClassVar[tuple[tuple[str, Any], ...]] = (
        (TYPE_DISCOUNT, _("Discount")),
        (TYPE_FREE_DELIVERY, _("Free Delivery")),
        (TYPE_CASHBACK, _("Cashback")),
        (TYPE_FREE_PRODUCT, _("Free Product")),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    type = models.CharField(max_length=20, choices=REWARD_TYPES)
    value = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text=_("Discount amount, or points credited for CASHBACK"),
    )
    points_cost = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "loyalty_rewards"
        verbose_name = _("Reward")
        verbose_name_plural = _("Rewards")
        ordering: ClassVar[tuple[str, ...]] = ("points_cost",)

    def __str__(self) -> str:
        return f"{self.name} ({self.points_cost} pts)"


class RedeemedReward(models.Model):
    """
    A user's redemption of a reward.

    PENDING -> APPROVED | REJECTED by staff review; APPROVED -> USED exactly
    once, by the order that consumed it.
    """

    STATUS_PENDING = "PENDING"
    STATUS_APPROVED = "APPROVED"
    STATUS_USED = "USED"
    STATUS_REJECTED = "REJECTED"

    STATUS_CHOICES: ClassVar[tuple[tuple[str, Any], ...]] = (
        (STATUS_PENDING, _("Pending Review")),
        (STATUS_APPROVED, _("Approved")),
        (STATUS_USED, _("Used")),
        (STATUS_REJECTED, _("Rejected")),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="redeemed_rewards")
    reward = models.ForeignKey(Reward, on_delete=models.PROTECT, related_name="redemptions")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)

    redeemed_at = models.DateTimeField(auto_now_add=True)
    reviewed_at = models.DateTimeField(null=True, blank=True)
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reviewed_redemptions",
    )
    used_at = models.DateTimeField(null=True, blank=True)
    used_on_order = models.ForeignKey(
        "orders.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="used_rewards",
    )

    class Meta:
        db_table = "loyalty_redeemed_rewards"
        verbose_name = _("Redeemed Reward")
        verbose_name_plural = _("Redeemed Rewards")
        ordering: ClassVar[tuple[str, ...]] = ("redeemed_at",)
        indexes: ClassVar[tuple[models.Index, ...]] = (
            models.Index(fields=["user", "status"], name="idx_redeemed_user_status"),
        )

    def __str__(self) -> str:
        return f"{self.reward_id} for {self.user_id} ({self.status})"


class PointsTransaction(models.Model):
    """
    Ledger row. Never updated or deleted; User.loyalty_points is the running
    projection and balance_after records it at the time of this entry.
    """

    TYPE_PURCHASE = "PURCHASE"
    TYPE_REDEMPTION = "REDEMPTION"
    TYPE_REWARD_CREDIT = "REWARD_CREDIT"
    TYPE_REFERRAL_BONUS = "REFERRAL_BONUS"
    TYPE_PROMOTION_BONUS = "PROMOTION_BONUS"

    TRANSACTION_TYPES: ClassVar[tuple[tuple[str, Any], ...]] = (
        (TYPE_PURCHASE, _("Purchase")),
        (TYPE_REDEMPTION, _("Redemption")),
        (TYPE_REWARD_CREDIT, _("Reward Credit")),
        (TYPE_REFERRAL_BONUS, _("Referral Bonus")),
        (TYPE_PROMOTION_BONUS, _("Promotion Bonus")),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="points_transactions")
    amount = models.IntegerField(help_text=_("Signed points delta"))
    type = models.CharField(max_length=20, choices=TRANSACTION_TYPES)
    description = models.CharField(max_length=255, blank=True)
    reference_id = models.CharField(max_length=64, blank=True, help_text=_("Order, redemption or user id"))
    balance_after = models.IntegerField()
    idempotency_key = models.CharField(max_length=160, unique=True, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "loyalty_points_transactions"
        verbose_name = _("Points Transaction")
        verbose_name_plural = _("Points Transactions")
        ordering: ClassVar[tuple[str, ...]] = ("-created_at",)
        indexes: ClassVar[tuple[models.Index, ...]] = (
            models.Index(fields=["user", "-created_at"], name="idx_points_tx_user_created"),
            models.Index(fields=["user", "type", "reference_id"], name="idx_points_tx_reference"),
        )

    def __str__(self) -> str:
        return f"{self.type} {self.amount:+d} for {self.user_id}"
