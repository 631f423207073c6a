"""
User registration services for the Storefront Platform
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction

from apps.common.types import Err, Ok, Result

if TYPE_CHECKING:
    from .models import User
else:
    User = get_user_model()

logger = logging.getLogger(__name__)


class UserRegistrationService:
    """Account creation with optional referral attribution"""

    @staticmethod
    @transaction.atomic
    def register(
        email: str,
        password: str,
        *,
        first_name: str = "",
        last_name: str = "",
        referral_code: str | None = None,
    ) -> Result[User, str]:
        """
        Create an account, linking referred_by when the referral code resolves.

        An unknown referral code does not block registration. The referrer's
        bonus is credited on the new user's first accrued purchase.
        """
        email = User.objects.normalize_email(email or "").strip()
        if not email or not password:
            return Err("Missing required fields")

        if User.objects.filter(email__iexact=email).exists():
            return Err("User already exists")

        referrer = None
        if referral_code:
            referrer = User.objects.filter(referral_code=referral_code.strip().upper()).first()
            if referrer is None:
                logger.info(f"👤 [Registration] Ignoring unknown referral code {referral_code!r}")

        try:
            user = User.objects.create_user(
                email=email,
                password=password,
                first_name=first_name,
                last_name=last_name,
                referred_by=referrer,
            )
        except IntegrityError:
            return Err("User already exists")

        logger.info(f"👤 [Registration] Created user {user.pk} (referred_by={getattr(referrer, 'pk', None)})")
        return Ok(user)
