"""
User models for the Storefront Platform
Email-based authentication with the loyalty projection and referral links.
"""

from __future__ import annotations

import secrets
import string
from decimal import Decimal
from typing import Any, ClassVar

from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models
from django.utils.translation import gettext_lazy as _

REFERRAL_CODE_LENGTH = 8
REFERRAL_CODE_CHARS = string.ascii_uppercase + string.digits


class UserManager(BaseUserManager):
    """Custom user manager for email-based authentication"""

    def create_user(self, email: str, password: str | None = None, **extra_fields: Any) -> User:
        """Create and return a regular user with email and password"""
        if not email:
            raise ValueError("The Email field must be set")
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email: str, password: str | None = None, **extra_fields: Any) -> User:
        """Create and return a superuser with email and password"""
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)

        if extra_fields.get("is_staff") is not True:
            raise ValueError("Superuser must have is_staff=True.")
        if extra_fields.get("is_superuser") is not True:
            raise ValueError("Superuser must have is_superuser=True.")

        return self.create_user(email, password, **extra_fields)


class User(AbstractUser):
    """
    Storefront customer account.

    loyalty_points, total_spent and loyalty_tier form a projection of the
    PointsTransaction ledger. They are only written by the loyalty services,
    under a row lock, in the same transaction as the ledger row.
    """

    TIER_BRONZE = "BRONZE"
    TIER_SILVER = "SILVER"
    TIER_GOLD = "GOLD"
    TIER_PLATINUM = "PLATINUM"

    LOYALTY_TIER_CHOICES: ClassVar[tuple[tuple[str, str], ...]] = (
        (TIER_BRONZE, _("Bronze")),
        (TIER_SILVER, _("Silver")),
        (TIER_GOLD, _("Gold")),
        (TIER_PLATINUM, _("Platinum")),
    )

    username = None  # Remove username field, using email instead
    email = models.EmailField(_("email address"), unique=True)

    # Loyalty projection
    loyalty_points = models.PositiveIntegerField(default=0, help_text=_("Current spendable points balance"))
    total_spent = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text=_("Cumulative amount spent on accrued orders"),
    )
    loyalty_tier = models.CharField(
        max_length=10,
        choices=LOYALTY_TIER_CHOICES,
        default=TIER_BRONZE,
        help_text=_("Tier derived from total_spent; never downgraded"),
    )

    # Referrals
    referral_code = models.CharField(max_length=16, unique=True, blank=True)
    referred_by = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="referrals",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS: ClassVar[list[str]] = []

    class Meta:
        db_table = "users"
        verbose_name = _("User")
        verbose_name_plural = _("Users")
        indexes: ClassVar[tuple[models.Index, ...]] = (
            models.Index(fields=["loyalty_tier"], name="idx_user_tier"),
            models.Index(fields=["referred_by"], name="idx_user_referred_by"),
        )

    def __str__(self) -> str:
        return self.email

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.referral_code:
            self.referral_code = self.generate_referral_code()
        super().save(*args, **kwargs)

    @classmethod
    def generate_referral_code(cls, max_attempts: int = 100) -> str:
        """Generate a unique referral code.

        Raises:
            RuntimeError: If unable to generate a unique code within max_attempts.
        """
        for _attempt in range(max_attempts):
            code = "".join(secrets.choice(REFERRAL_CODE_CHARS) for _ in range(REFERRAL_CODE_LENGTH))
            if not cls.objects.filter(referral_code=code).exists():
                return code

        raise RuntimeError(f"Unable to generate unique referral code after {max_attempts} attempts.")
