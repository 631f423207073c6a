"""
Loyalty tier rules: thresholds on cumulative spend, one-directional upgrades.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from apps.common.constants import ZERO, get_loyalty_config

TIER_ORDER: tuple[str, ...] = ("BRONZE", "SILVER", "GOLD", "PLATINUM")


def tier_rank(tier: str) -> int:
    return TIER_ORDER.index(tier)


def tier_for_spent(total_spent: Decimal) -> str:
    """Highest tier whose threshold total_spent has reached."""
    thresholds = get_loyalty_config()["tier_thresholds"]
    current = TIER_ORDER[0]
    for tier in TIER_ORDER:
        if total_spent >= thresholds[tier]:
            current = tier
    return current


def resolve_upgrade(current_tier: str, total_spent: Decimal) -> str | None:
    """New tier if total_spent earns one above current_tier, else None. Never downgrades."""
    derived = tier_for_spent(total_spent)
    if tier_rank(derived) > tier_rank(current_tier):
        return derived
    return None


@dataclass(frozen=True)
class NextTierInfo:
    next_tier: str | None
    amount_to_next: Decimal
    progress: int


def get_next_tier_info(current_tier: str, total_spent: Decimal) -> NextTierInfo:
    thresholds = get_loyalty_config()["tier_thresholds"]
    rank = tier_rank(current_tier)
    if rank == len(TIER_ORDER) - 1:
        return NextTierInfo(next_tier=None, amount_to_next=ZERO, progress=100)

    next_tier = TIER_ORDER[rank + 1]
    floor, ceiling = thresholds[current_tier], thresholds[next_tier]
    progress = min(Decimal("100"), (total_spent - floor) / (ceiling - floor) * 100)
    return NextTierInfo(
        next_tier=next_tier,
        amount_to_next=max(ZERO, ceiling - total_spent),
        progress=max(0, int(progress.quantize(Decimal("1"), rounding=ROUND_HALF_UP))),
    )
