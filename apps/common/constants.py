"""
Storefront Platform Constants

Single source of truth for pricing, loyalty and outbox business rules.
Module-level values are the defaults; deployments override them through the
STOREFRONT_PRICING, STOREFRONT_LOYALTY and STOREFRONT_OUTBOX settings, read
through the helpers at the bottom of this file.
"""

from decimal import Decimal
from typing import Any, Final

from django.conf import settings

# ===============================================================================
# MONEY 💶
# ===============================================================================

CENT: Final[Decimal] = Decimal("0.01")
ZERO: Final[Decimal] = Decimal("0")

# ===============================================================================
# PRICING 🧮
# ===============================================================================

FREE_SHIPPING_THRESHOLD: Final[Decimal] = Decimal("50.00")  # Compared against the ORIGINAL subtotal
SHIPPING_FEE: Final[Decimal] = Decimal("5.99")
TAX_RATE: Final[Decimal] = Decimal("0.08")  # Applied after discounts

# ===============================================================================
# LOYALTY 🏆
# ===============================================================================

POINTS_PER_UNIT: Final[int] = 10  # Points per currency unit spent
MIN_PURCHASE_FOR_POINTS: Final[Decimal] = Decimal("5.00")
FIRST_PURCHASE_BONUS: Final[int] = 100
REFERRAL_BONUS: Final[int] = 200

TIER_THRESHOLDS: Final[dict[str, Decimal]] = {
    "BRONZE": Decimal("0"),
    "SILVER": Decimal("100"),
    "GOLD": Decimal("500"),
    "PLATINUM": Decimal("1000"),
}

TIER_BONUSES: Final[dict[str, int]] = {
    "SILVER": 50,
    "GOLD": 100,
    "PLATINUM": 200,
}

RECENT_TRANSACTIONS_LIMIT: Final[int] = 20

# ===============================================================================
# POST-COMMIT OUTBOX 📬
# ===============================================================================

OUTBOX_MAX_ATTEMPTS: Final[int] = 5
OUTBOX_BACKOFF_BASE_SECONDS: Final[int] = 30
OUTBOX_BACKOFF_MAX_SECONDS: Final[int] = 3600
OUTBOX_BATCH_SIZE: Final[int] = 50
OUTBOX_SWEEP_INTERVAL_MINUTES: Final[int] = 5
OUTBOX_SWEEP_LOCK_SECONDS: Final[int] = 240

# ===============================================================================
# SNAPSHOTS 📸
# ===============================================================================

SNAPSHOT_SCHEMA_VERSION: Final[int] = 1

# ===============================================================================
# SETTINGS ACCESSORS
# ===============================================================================


def _section(name: str) -> dict[str, Any]:
    return getattr(settings, name, None) or {}


def get_pricing_config() -> dict[str, Decimal]:
    """Return pricing knobs as Decimals, falling back to module defaults."""
    section = _section("STOREFRONT_PRICING")
    return {
        "free_shipping_threshold": Decimal(str(section.get("FREE_SHIPPING_THRESHOLD", FREE_SHIPPING_THRESHOLD))),
        "shipping_fee": Decimal(str(section.get("SHIPPING_FEE", SHIPPING_FEE))),
        "tax_rate": Decimal(str(section.get("TAX_RATE", TAX_RATE))),
    }


def get_loyalty_config() -> dict[str, Any]:
    """Return loyalty knobs, falling back to module defaults."""
    section = _section("STOREFRONT_LOYALTY")
    thresholds = section.get("TIER_THRESHOLDS", TIER_THRESHOLDS)
    return {
        "points_per_unit": int(section.get("POINTS_PER_UNIT", POINTS_PER_UNIT)),
        "min_purchase": Decimal(str(section.get("MIN_PURCHASE_FOR_POINTS", MIN_PURCHASE_FOR_POINTS))),
        "first_purchase_bonus": int(section.get("FIRST_PURCHASE_BONUS", FIRST_PURCHASE_BONUS)),
        "referral_bonus": int(section.get("REFERRAL_BONUS", REFERRAL_BONUS)),
        "tier_thresholds": {tier: Decimal(str(value)) for tier, value in thresholds.items()},
        "tier_bonuses": dict(section.get("TIER_BONUSES", TIER_BONUSES)),
    }


def get_outbox_config() -> dict[str, int]:
    """Return outbox retry knobs, falling back to module defaults."""
    section = _section("STOREFRONT_OUTBOX")
    return {
        "max_attempts": int(section.get("MAX_ATTEMPTS", OUTBOX_MAX_ATTEMPTS)),
        "backoff_base_seconds": int(section.get("BACKOFF_BASE_SECONDS", OUTBOX_BACKOFF_BASE_SECONDS)),
        "backoff_max_seconds": int(section.get("BACKOFF_MAX_SECONDS", OUTBOX_BACKOFF_MAX_SECONDS)),
        "batch_size": int(section.get("BATCH_SIZE", OUTBOX_BATCH_SIZE)),
        "sweep_interval_minutes": int(section.get("SWEEP_INTERVAL_MINUTES", OUTBOX_SWEEP_INTERVAL_MINUTES)),
    }
