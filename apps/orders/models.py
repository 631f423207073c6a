"""
Order models for the Storefront Platform
Settled orders, their price-snapshot items and the post-commit outbox.
"""

from __future__ import annotations

import uuid
from datetime import timedelta
from decimal import Decimal
from typing import Any, ClassVar

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from .discounts import load_snapshot

# ===============================================================================
# ORDER MODELS
# ===============================================================================


class Order(models.Model):
    """
    A settled order.

    Amounts and discount snapshots are written once at settlement and never
    recomputed from live product, reward, coupon or campaign records.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order_number = models.CharField(max_length=50, unique=True, help_text=_("Human-readable order number"))
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="orders")

    STATUS_CHOICES: ClassVar[tuple[tuple[str, str], ...]] = (
        ("pending", _("Pending")),
        ("confirmed", _("Confirmed")),  # Settled at checkout
        ("shipped", _("Shipped")),
        ("delivered", _("Delivered")),
        ("cancelled", _("Cancelled")),
    )
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="confirmed")

    # Amounts (cent-rounded at settlement)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal("0"))])
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    shipping = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    tax = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal("0"))])

    shipping_address = models.TextField()
    payment_method = models.CharField(max_length=50)

    points_multiplier = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("1.00"),
        help_text=_("Loyalty multiplier granted by campaigns at checkout"),
    )

    # Versioned discount snapshots, see apps.orders.discounts
    rewards_applied = models.JSONField(default=list, blank=True)
    coupons_applied = models.JSONField(default=list, blank=True)
    campaigns_applied = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "orders"
        verbose_name = _("Order")
        verbose_name_plural = _("Orders")
        ordering: ClassVar[tuple[str, ...]] = ("-created_at",)
        indexes: ClassVar[tuple[models.Index, ...]] = (
            models.Index(fields=["user", "created_at"], name="idx_order_user_created"),
            models.Index(fields=["status"], name="idx_order_status"),
        )

    def __str__(self) -> str:
        return f"Order {self.order_number}"

    def save(self, *args: Any, **kwargs: Any) -> None:
        """Auto-generate order number before saving"""
        if not self.order_number:
            self.order_number = self.generate_order_number()
        super().save(*args, **kwargs)

    @staticmethod
    def generate_order_number() -> str:
        # Format: ORD-YYYYMMDD-XXXXXXXX
        date_part = timezone.now().strftime("%Y%m%d")
        return f"ORD-{date_part}-{uuid.uuid4().hex[:8].upper()}"

    def get_rewards_applied(self) -> list[Any]:
        return load_snapshot(self.rewards_applied)

    def get_coupons_applied(self) -> list[Any]:
        return load_snapshot(self.coupons_applied)

    def get_campaigns_applied(self) -> list[Any]:
        return load_snapshot(self.campaigns_applied)

    def is_first_purchase(self) -> bool:
        """True when the user has no order created before this one."""
        return not Order.objects.filter(user_id=self.user_id, created_at__lt=self.created_at).exists()


class OrderItem(models.Model):
    """A purchased line; price is the unit price at settlement time."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey("products.Product", on_delete=models.PROTECT, related_name="order_items")
    product_name = models.CharField(max_length=200, help_text=_("Product name at time of order"))
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    price = models.DecimalField(max_digits=12, decimal_places=2, help_text=_("Unit price at time of order"))

    class Meta:
        db_table = "order_items"
        verbose_name = _("Order Item")
        verbose_name_plural = _("Order Items")
        indexes: ClassVar[tuple[models.Index, ...]] = (
            models.Index(fields=["order"], name="idx_order_item_order"),
        )

    def __str__(self) -> str:
        return f"{self.product_name} x{self.quantity} ({self.order_id})"

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


# ===============================================================================
# POST-COMMIT OUTBOX
# ===============================================================================


class PostCommitTask(models.Model):
    """
    Durable record of work that must follow a committed order.

    Written inside the settlement transaction, so it exists if and only if
    the order does. Workers retry it with exponential backoff.
    """

    CAMPAIGN_USAGE = "campaign_usage"
    LOYALTY_ACCRUAL = "loyalty_accrual"

    TASK_TYPES: ClassVar[tuple[tuple[str, str], ...]] = (
        (CAMPAIGN_USAGE, _("Campaign Usage")),
        (LOYALTY_ACCRUAL, _("Loyalty Accrual")),
    )

    STATUS_PENDING = "pending"
    STATUS_COMPLETED = "completed"
    STATUS_FAILED = "failed"

    STATUS_CHOICES: ClassVar[tuple[tuple[str, str], ...]] = (
        (STATUS_PENDING, _("Pending")),
        (STATUS_COMPLETED, _("Completed")),
        (STATUS_FAILED, _("Failed")),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    task_type = models.CharField(max_length=30, choices=TASK_TYPES)
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="post_commit_tasks")
    payload = models.JSONField(default=dict, blank=True)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    attempts = models.PositiveIntegerField(default=0)
    max_attempts = models.PositiveIntegerField(default=5)
    next_attempt_at = models.DateTimeField(default=timezone.now)
    last_error = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "order_post_commit_tasks"
        verbose_name = _("Post-commit Task")
        verbose_name_plural = _("Post-commit Tasks")
        ordering: ClassVar[tuple[str, ...]] = ("created_at",)
        indexes: ClassVar[tuple[models.Index, ...]] = (
            models.Index(fields=["status", "next_attempt_at"], name="idx_outbox_due"),
        )
        constraints: ClassVar[tuple[models.UniqueConstraint, ...]] = (
            models.UniqueConstraint(fields=["order", "task_type"], name="unique_outbox_task_per_order"),
        )

    def __str__(self) -> str:
        return f"{self.task_type} for {self.order_id} ({self.status})"

    @property
    def is_terminal(self) -> bool:
        return self.status in (self.STATUS_COMPLETED, self.STATUS_FAILED)

    def backoff_delay(self, base_seconds: int, max_seconds: int) -> timedelta:
        """Delay before the next attempt: base * 2^(attempts-1), capped."""
        exponent = max(self.attempts - 1, 0)
        return timedelta(seconds=min(base_seconds * (2**exponent), max_seconds))
