"""
Discount composition for checkout.

Three independent sources propose discounts against the cart subtotal:
loyalty rewards, a coupon code and store-wide campaigns. The composer
merges them additively; it never caps the total against the subtotal
(the pricing calculator floors the payable amount at zero).

The composed result is frozen onto the order as versioned snapshots:
each entry is a tagged variant {"schema": 1, "kind": "reward"|"coupon"|"campaign", ...}.
load_snapshot() reads historical rows back into typed dataclasses.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from apps.common.constants import SNAPSHOT_SCHEMA_VERSION, ZERO

# Reward types credited after the order rather than reducing the payable total
BONUS_REWARD_TYPES = frozenset({"CASHBACK", "FREE_PRODUCT"})


class SnapshotSchemaError(ValueError):
    """A stored discount snapshot has an unknown schema version or kind."""


# ===============================================================================
# PROPOSALS
# ===============================================================================


@dataclass(frozen=True)
class AppliedReward:
    redeemed_reward_id: str
    reward_id: str
    name: str
    type: str
    value: Decimal
    points_cost: int

    @property
    def is_bonus(self) -> bool:
        return self.type in BONUS_REWARD_TYPES


@dataclass(frozen=True)
class RewardProposal:
    """Approved loyalty rewards selected for an order"""

    reward_ids: tuple[str, ...] = ()
    discount_amount: Decimal = ZERO
    free_delivery: bool = False
    applied_rewards: tuple[AppliedReward, ...] = ()

    @property
    def bonus_rewards(self) -> tuple[AppliedReward, ...]:
        return tuple(reward for reward in self.applied_rewards if reward.is_bonus)


@dataclass(frozen=True)
class CouponProposal:
    """A validated coupon; at most one per order"""

    coupon_id: str
    code: str
    discount_type: str
    discount_amount: Decimal = ZERO
    free_shipping: bool = False
    description: str = ""


@dataclass(frozen=True)
class AppliedCampaign:
    campaign_id: str
    title: str
    type: str
    discount_amount: Decimal = ZERO
    free_shipping: bool = False
    points_multiplier: Decimal = Decimal("1")


@dataclass(frozen=True)
class CampaignProposal:
    """All store-wide campaigns contributing to an order"""

    campaigns: tuple[AppliedCampaign, ...] = ()
    total_discount: Decimal = ZERO
    free_shipping: bool = False
    points_multiplier: Decimal = Decimal("1")

    @property
    def campaign_ids(self) -> list[str]:
        return [campaign.campaign_id for campaign in self.campaigns]


EMPTY_REWARDS = RewardProposal()
EMPTY_CAMPAIGNS = CampaignProposal()


# ===============================================================================
# COMPOSITION
# ===============================================================================


@dataclass(frozen=True)
class ComposedDiscount:
    subtotal: Decimal
    discount_amount: Decimal
    free_shipping: bool
    points_multiplier: Decimal
    rewards: RewardProposal = field(default=EMPTY_REWARDS)
    coupon: CouponProposal | None = None
    campaigns: CampaignProposal = field(default=EMPTY_CAMPAIGNS)

    @property
    def reward_discount(self) -> Decimal:
        return self.rewards.discount_amount

    @property
    def coupon_discount(self) -> Decimal:
        return self.coupon.discount_amount if self.coupon else ZERO

    @property
    def campaign_discount(self) -> Decimal:
        return self.campaigns.total_discount

    def rewards_snapshot(self) -> list[dict[str, Any]]:
        return [_reward_entry(reward) for reward in self.rewards.applied_rewards]

    def coupons_snapshot(self) -> list[dict[str, Any]]:
        return [_coupon_entry(self.coupon)] if self.coupon else []

    def campaigns_snapshot(self) -> list[dict[str, Any]]:
        return [_campaign_entry(campaign) for campaign in self.campaigns.campaigns]


class DiscountComposer:
    """Merges reward, coupon and campaign proposals into one result"""

    @staticmethod
    def compose(
        subtotal: Decimal,
        rewards: RewardProposal | None = None,
        coupon: CouponProposal | None = None,
        campaigns: CampaignProposal | None = None,
    ) -> ComposedDiscount:
        rewards = rewards or EMPTY_REWARDS
        campaigns = campaigns or EMPTY_CAMPAIGNS
        coupon_discount = coupon.discount_amount if coupon else ZERO

        # Purely additive; no source reduces another
        discount_amount = campaigns.total_discount + rewards.discount_amount + coupon_discount
        free_shipping = campaigns.free_shipping or rewards.free_delivery or bool(coupon and coupon.free_shipping)

        return ComposedDiscount(
            subtotal=subtotal,
            discount_amount=discount_amount,
            free_shipping=free_shipping,
            points_multiplier=campaigns.points_multiplier,
            rewards=rewards,
            coupon=coupon,
            campaigns=campaigns,
        )


# ===============================================================================
# SNAPSHOTS
# ===============================================================================


def _envelope(kind: str, **fields: Any) -> dict[str, Any]:
    return {"schema": SNAPSHOT_SCHEMA_VERSION, "kind": kind, **fields}


def _reward_entry(reward: AppliedReward) -> dict[str, Any]:
    return _envelope(
        "reward",
        redeemed_reward_id=reward.redeemed_reward_id,
        reward_id=reward.reward_id,
        name=reward.name,
        type=reward.type,
        value=str(reward.value),
        points_cost=reward.points_cost,
    )


def _coupon_entry(coupon: CouponProposal) -> dict[str, Any]:
    return _envelope(
        "coupon",
        coupon_id=coupon.coupon_id,
        code=coupon.code,
        discount_type=coupon.discount_type,
        discount_amount=str(coupon.discount_amount),
        free_shipping=coupon.free_shipping,
        description=coupon.description,
    )


def _campaign_entry(campaign: AppliedCampaign) -> dict[str, Any]:
    return _envelope(
        "campaign",
        campaign_id=campaign.campaign_id,
        title=campaign.title,
        type=campaign.type,
        discount_amount=str(campaign.discount_amount),
        free_shipping=campaign.free_shipping,
        points_multiplier=str(campaign.points_multiplier),
    )


def _load_reward(entry: dict[str, Any]) -> AppliedReward:
    return AppliedReward(
        redeemed_reward_id=entry["redeemed_reward_id"],
        reward_id=entry["reward_id"],
        name=entry["name"],
        type=entry["type"],
        value=Decimal(entry["value"]),
        points_cost=int(entry["points_cost"]),
    )


def _load_coupon(entry: dict[str, Any]) -> CouponProposal:
    return CouponProposal(
        coupon_id=entry["coupon_id"],
        code=entry["code"],
        discount_type=entry["discount_type"],
        discount_amount=Decimal(entry["discount_amount"]),
        free_shipping=bool(entry["free_shipping"]),
        description=entry.get("description", ""),
    )


def _load_campaign(entry: dict[str, Any]) -> AppliedCampaign:
    return AppliedCampaign(
        campaign_id=entry["campaign_id"],
        title=entry["title"],
        type=entry["type"],
        discount_amount=Decimal(entry["discount_amount"]),
        free_shipping=bool(entry["free_shipping"]),
        points_multiplier=Decimal(entry["points_multiplier"]),
    )


_LOADERS = {
    "reward": _load_reward,
    "coupon": _load_coupon,
    "campaign": _load_campaign,
}

SnapshotEntry = AppliedReward | CouponProposal | AppliedCampaign


def load_snapshot(entries: Iterable[dict[str, Any]] | None) -> list[SnapshotEntry]:
    """
    Parse a stored snapshot list into typed entries.

    Raises:
        SnapshotSchemaError: on an unknown schema version, unknown kind or missing field.
    """
    parsed: list[SnapshotEntry] = []
    for entry in entries or ():
        if not isinstance(entry, dict):
            raise SnapshotSchemaError(f"Snapshot entry must be an object, got {type(entry).__name__}")
        schema = entry.get("schema")
        if schema != SNAPSHOT_SCHEMA_VERSION:
            raise SnapshotSchemaError(f"Unsupported snapshot schema version: {schema!r}")
        loader = _LOADERS.get(entry.get("kind", ""))
        if loader is None:
            raise SnapshotSchemaError(f"Unknown snapshot kind: {entry.get('kind')!r}")
        try:
            parsed.append(loader(entry))
        except (KeyError, ArithmeticError, ValueError) as e:
            raise SnapshotSchemaError(f"Malformed {entry['kind']} snapshot: {e}") from e
    return parsed
