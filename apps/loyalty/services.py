"""
Loyalty services for the Storefront Platform.

Ledger writes go through PointsLedger.append(): one PointsTransaction row and
the matching User.loyalty_points update in the same transaction, deduplicated
by idempotency key. Callers lock the user row first.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal
from typing import TYPE_CHECKING, Any

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from apps.common.constants import RECENT_TRANSACTIONS_LIMIT, ZERO, get_loyalty_config, get_pricing_config
from apps.common.types import Err, Ok, Result
from apps.common.validators import log_security_event
from apps.orders.discounts import AppliedReward, RewardProposal
from apps.orders.models import Order

from .exceptions import (
    InsufficientPointsError,
    LoyaltyError,
    RedemptionNotFoundError,
    RedemptionStateError,
    RewardUnavailableError,
)
from .models import PointsTransaction, RedeemedReward, Reward
from .tiers import NextTierInfo, get_next_tier_info, resolve_upgrade

if TYPE_CHECKING:
    from apps.users.models import User
else:
    User = get_user_model()

logger = logging.getLogger(__name__)


def _floor_points(value: Decimal) -> int:
    return int(value.to_integral_value(rounding=ROUND_FLOOR))


# ===============================================================================
# LEDGER
# ===============================================================================


class PointsLedger:
    """Append-only points ledger with a maintained balance projection"""

    @staticmethod
    def lock_user(user_id: Any) -> User:
        return User.objects.select_for_update().get(pk=user_id)

    @staticmethod
    def append(  # noqa: PLR0913
        user: User,
        amount: int,
        transaction_type: str,
        description: str,
        *,
        reference_id: str = "",
        idempotency_key: str | None = None,
    ) -> PointsTransaction | None:
        """
        Record a signed points movement for a locked user.

        Returns None when idempotency_key was already used. Raises
        InsufficientPointsError when a debit would take the balance below zero.
        """
        if idempotency_key and PointsTransaction.objects.filter(idempotency_key=idempotency_key).exists():
            logger.info(f"🏆 [Ledger] Skipping duplicate entry {idempotency_key}")
            return None

        balance_after = user.loyalty_points + amount
        if balance_after < 0:
            raise InsufficientPointsError(required=-amount, available=user.loyalty_points)

        try:
            with transaction.atomic():
                entry = PointsTransaction.objects.create(
                    user=user,
                    amount=amount,
                    type=transaction_type,
                    description=description[:255],
                    reference_id=reference_id,
                    balance_after=balance_after,
                    idempotency_key=idempotency_key,
                )
                User.objects.filter(pk=user.pk).update(loyalty_points=F("loyalty_points") + amount)
        except IntegrityError:
            # Concurrent writer claimed the same idempotency key
            logger.info(f"🏆 [Ledger] Entry {idempotency_key} already recorded concurrently")
            return None

        user.loyalty_points = balance_after
        return entry


# ===============================================================================
# ACCRUAL
# ===============================================================================


@dataclass(frozen=True)
class AccrualResult:
    order_id: str
    points_earned: int = 0
    base_points: int = 0
    first_purchase: bool = False
    new_tier: str | None = None
    tier_bonus: int = 0
    referral_credited: bool = False
    already_processed: bool = False


class LoyaltyService:
    """Points accrual, tiers and referral bonuses"""

    @staticmethod
    def calculate_base_points(total_amount: Decimal, is_first_purchase: bool) -> int:
        """floor(total * points_per_unit) plus the first-purchase bonus; 0 below the minimum."""
        config = get_loyalty_config()
        if total_amount < config["min_purchase"]:
            return 0
        points = _floor_points(total_amount * config["points_per_unit"])
        if is_first_purchase:
            points += config["first_purchase_bonus"]
        return points

    @classmethod
    @transaction.atomic
    def accrue_order_points(cls, order_id: Any, points_multiplier: Decimal | None = None) -> Result[AccrualResult, str]:
        """
        Credit purchase points for a committed order and re-derive the tier.

        Safe to replay: the PURCHASE entry is keyed by order, the tier bonus by
        (user, tier) and the referral bonus by (referrer, referred).
        """
        try:
            order = Order.objects.get(pk=order_id)
        except Order.DoesNotExist:
            return Err(f"Order {order_id} not found")

        user = PointsLedger.lock_user(order.user_id)
        purchase_key = f"purchase:{order.pk}"
        if PointsTransaction.objects.filter(idempotency_key=purchase_key).exists():
            return Ok(AccrualResult(order_id=str(order.pk), already_processed=True))

        multiplier = Decimal(str(points_multiplier)) if points_multiplier is not None else order.points_multiplier
        first_purchase = order.is_first_purchase()
        base_points = cls.calculate_base_points(order.total_amount, first_purchase)
        points_earned = _floor_points(Decimal(base_points) * multiplier)

        new_tier = None
        tier_bonus = 0
        if points_earned > 0:
            description = f"Points earned from order #{order.order_number}"
            if multiplier > 1:
                description += f" ({multiplier.normalize()}x campaign multiplier)"
            PointsLedger.append(
                user,
                points_earned,
                PointsTransaction.TYPE_PURCHASE,
                description,
                reference_id=str(order.pk),
                idempotency_key=purchase_key,
            )
            User.objects.filter(pk=user.pk).update(total_spent=F("total_spent") + order.total_amount)
            user.refresh_from_db(fields=["total_spent", "loyalty_points"])

            new_tier, tier_bonus = cls._apply_tier_upgrade(user)

        referral_credited = False
        if first_purchase and user.referred_by_id:
            referral_credited = cls.process_referral_bonus(user.referred_by_id, user.pk)

        logger.info(
            f"🏆 [Loyalty] Order {order.order_number}: +{points_earned} pts "
            f"(base={base_points}, x{multiplier}, first={first_purchase}) for user {user.pk}"
        )
        return Ok(
            AccrualResult(
                order_id=str(order.pk),
                points_earned=points_earned,
                base_points=base_points,
                first_purchase=first_purchase,
                new_tier=new_tier,
                tier_bonus=tier_bonus,
                referral_credited=referral_credited,
            )
        )

    @staticmethod
    def _apply_tier_upgrade(user: User) -> tuple[str | None, int]:
        """Persist a tier upgrade for a locked user and award its one-time bonus."""
        upgrade = resolve_upgrade(user.loyalty_tier, user.total_spent)
        if upgrade is None:
            return None, 0

        user.loyalty_tier = upgrade
        user.save(update_fields=["loyalty_tier", "updated_at"])

        bonus = get_loyalty_config()["tier_bonuses"].get(upgrade, 0)
        credited = 0
        if bonus > 0:
            entry = PointsLedger.append(
                user,
                bonus,
                PointsTransaction.TYPE_PROMOTION_BONUS,
                f"{upgrade.title()} tier upgrade bonus",
                idempotency_key=f"tier-bonus:{user.pk}:{upgrade}",
            )
            credited = bonus if entry else 0

        logger.info(
            f"User {user.pk} upgraded to {upgrade}",
            extra={"user_id": str(user.pk), "new_tier": upgrade},
        )
        return upgrade, credited

    @staticmethod
    @transaction.atomic
    def process_referral_bonus(referrer_id: Any, referred_user_id: Any) -> bool:
        """
        Credit the referral bonus to a referrer once per referred user.
        Returns True when points were credited by this call.
        """
        referrer = PointsLedger.lock_user(referrer_id)
        already_credited = PointsTransaction.objects.filter(
            user=referrer,
            type=PointsTransaction.TYPE_REFERRAL_BONUS,
            reference_id=str(referred_user_id),
        ).exists()
        if already_credited:
            return False

        entry = PointsLedger.append(
            referrer,
            get_loyalty_config()["referral_bonus"],
            PointsTransaction.TYPE_REFERRAL_BONUS,
            f"Referral bonus for user {referred_user_id}",
            reference_id=str(referred_user_id),
            idempotency_key=f"referral:{referrer.pk}:{referred_user_id}",
        )
        if entry is None:
            return False

        log_security_event(
            "referral_bonus_credited",
            {"referrer_id": str(referrer.pk), "referred_user_id": str(referred_user_id), "points": entry.amount},
        )
        return True

    @staticmethod
    def get_next_tier_info(tier: str, total_spent: Decimal) -> NextTierInfo:
        return get_next_tier_info(tier, total_spent)

    @classmethod
    def get_summary(cls, user: User) -> dict[str, Any]:
        """Points, tier progress, recent ledger entries and redeemed rewards for a user."""
        user.refresh_from_db(fields=["loyalty_points", "total_spent", "loyalty_tier"])
        next_tier = cls.get_next_tier_info(user.loyalty_tier, user.total_spent)
        transactions = PointsTransaction.objects.filter(user=user).order_by("-created_at")[:RECENT_TRANSACTIONS_LIMIT]
        redeemed = RedeemedReward.objects.filter(user=user).select_related("reward").order_by("-redeemed_at")
        return {
            "loyalty_points": user.loyalty_points,
            "loyalty_tier": user.loyalty_tier,
            "total_spent": user.total_spent,
            "referral_code": user.referral_code,
            "next_tier": next_tier.next_tier,
            "amount_to_next_tier": next_tier.amount_to_next,
            "tier_progress": next_tier.progress,
            "recent_transactions": list(transactions),
            "redeemed_rewards": list(redeemed),
        }


# ===============================================================================
# REWARD SELECTION
# ===============================================================================


def _applied(redeemed: RedeemedReward) -> AppliedReward:
    return AppliedReward(
        redeemed_reward_id=str(redeemed.pk),
        reward_id=str(redeemed.reward_id),
        name=redeemed.reward.name,
        type=redeemed.reward.type,
        value=redeemed.reward.value,
        points_cost=redeemed.reward.points_cost,
    )


class RewardSelector:
    """Builds reward proposals from a user's APPROVED redemptions"""

    @staticmethod
    def approved_rewards(user: User) -> list[RedeemedReward]:
        return list(
            RedeemedReward.objects.filter(user=user, status=RedeemedReward.STATUS_APPROVED)
            .select_related("reward")
            .order_by("redeemed_at", "pk")
        )

    @classmethod
    def preview(cls, user: User, subtotal: Decimal) -> RewardProposal:
        """
        Pick what would be applied automatically:
        the single highest-value DISCOUNT, one FREE_DELIVERY when shipping
        would be charged, and every CASHBACK / FREE_PRODUCT bonus reward.
        """
        approved = cls.approved_rewards(user)
        chosen: list[RedeemedReward] = []
        discount = ZERO
        free_delivery = False

        discounts = [r for r in approved if r.reward.type == Reward.TYPE_DISCOUNT]
        if discounts:
            best = discounts[0]
            for candidate in discounts[1:]:
                if candidate.reward.value > best.reward.value:
                    best = candidate
            chosen.append(best)
            discount = best.reward.value

        deliveries = [r for r in approved if r.reward.type == Reward.TYPE_FREE_DELIVERY]
        if deliveries and subtotal < get_pricing_config()["free_shipping_threshold"]:
            chosen.append(deliveries[0])
            free_delivery = True

        chosen.extend(r for r in approved if r.reward.type in (Reward.TYPE_CASHBACK, Reward.TYPE_FREE_PRODUCT))

        return RewardProposal(
            reward_ids=tuple(str(r.pk) for r in chosen),
            discount_amount=discount,
            free_delivery=free_delivery,
            applied_rewards=tuple(_applied(r) for r in chosen),
        )

    @classmethod
    def select(cls, user: User, reward_ids: Iterable[Any]) -> RewardProposal:
        """Proposal for explicitly chosen redemptions; ids not APPROVED for this user are dropped."""
        wanted = {str(reward_id) for reward_id in reward_ids}
        chosen = [r for r in cls.approved_rewards(user) if str(r.pk) in wanted]
        dropped = wanted - {str(r.pk) for r in chosen}
        if dropped:
            logger.info(f"🎁 [Rewards] Ignoring non-approved reward ids for user {user.pk}: {sorted(dropped)}")

        return cls.from_redemptions(chosen)

    @staticmethod
    def from_redemptions(chosen: Iterable[RedeemedReward]) -> RewardProposal:
        """Proposal for exactly these redemption rows; DISCOUNT values add up."""
        chosen = list(chosen)
        discount = sum((r.reward.value for r in chosen if r.reward.type == Reward.TYPE_DISCOUNT), ZERO)
        free_delivery = any(r.reward.type == Reward.TYPE_FREE_DELIVERY for r in chosen)
        return RewardProposal(
            reward_ids=tuple(str(r.pk) for r in chosen),
            discount_amount=discount,
            free_delivery=free_delivery,
            applied_rewards=tuple(_applied(r) for r in chosen),
        )


# ===============================================================================
# REDEMPTION LIFECYCLE
# ===============================================================================


class RewardRedemptionService:
    """Request, review and consume reward redemptions"""

    @staticmethod
    @transaction.atomic
    def request_redemption(user: User, reward: Reward) -> Result[RedeemedReward, LoyaltyError]:
        """Create a PENDING redemption; points move only when it is approved."""
        if not reward.is_active:
            return Err(RewardUnavailableError("Reward is not available"))

        locked = PointsLedger.lock_user(user.pk)
        if locked.loyalty_points < reward.points_cost:
            return Err(InsufficientPointsError(required=reward.points_cost, available=locked.loyalty_points))

        redeemed = RedeemedReward.objects.create(user=locked, reward=reward)
        logger.info(f"🎁 [Rewards] User {user.pk} requested {reward.name} ({reward.points_cost} pts)")
        return Ok(redeemed)

    @staticmethod
    @transaction.atomic
    def review_redemption(
        redeemed_id: Any, approve: bool, reviewer: User | None = None
    ) -> Result[RedeemedReward, LoyaltyError]:
        """
        Approve or reject a PENDING redemption.
        Approval debits points_cost from the user through a REDEMPTION entry.
        """
        try:
            redeemed = RedeemedReward.objects.select_for_update().select_related("reward").get(pk=redeemed_id)
        except RedeemedReward.DoesNotExist:
            return Err(RedemptionNotFoundError("Redemption not found"))

        if redeemed.status != RedeemedReward.STATUS_PENDING:
            return Err(RedemptionStateError(f"Redemption is {redeemed.status}, not PENDING"))

        if approve:
            user = PointsLedger.lock_user(redeemed.user_id)
            try:
                PointsLedger.append(
                    user,
                    -redeemed.reward.points_cost,
                    PointsTransaction.TYPE_REDEMPTION,
                    f"Approved redemption: {redeemed.reward.name}",
                    reference_id=str(redeemed.pk),
                    idempotency_key=f"redemption:{redeemed.pk}",
                )
            except InsufficientPointsError as e:
                return Err(e)
            redeemed.status = RedeemedReward.STATUS_APPROVED
        else:
            redeemed.status = RedeemedReward.STATUS_REJECTED

        redeemed.reviewed_at = timezone.now()
        redeemed.reviewed_by = reviewer
        redeemed.save(update_fields=["status", "reviewed_at", "reviewed_by"])

        log_security_event(
            "reward_redemption_reviewed",
            {
                "redemption_id": str(redeemed.pk),
                "user_id": str(redeemed.user_id),
                "status": redeemed.status,
                "reviewer_id": str(reviewer.pk) if reviewer else None,
            },
        )
        return Ok(redeemed)

    @staticmethod
    def lock_approved(user: User, reward_ids: Iterable[str]) -> list[RedeemedReward]:
        """
        Row-lock the requested redemptions that are still APPROVED for the user.

        Must run inside the settlement transaction, before the order is priced
        for the last time: rows missing from the result were used or changed
        since the quote and must not contribute a discount.
        """
        wanted = [str(reward_id) for reward_id in reward_ids]
        if not wanted:
            return []
        return list(
            RedeemedReward.objects.select_for_update()
            .select_related("reward")
            .filter(pk__in=wanted, user=user, status=RedeemedReward.STATUS_APPROVED)
            .order_by("pk")
        )

    @classmethod
    def consume(cls, user: User, reward_ids: Iterable[str], order: Order) -> list[RedeemedReward]:
        """
        Mark APPROVED redemptions USED by an order and credit CASHBACK rewards.

        Must run inside the settlement transaction. Each row moves with a
        conditional UPDATE on status=APPROVED, so a redemption is consumed by at
        most one order; ids that are no longer APPROVED are skipped.
        """
        wanted = [str(reward_id) for reward_id in reward_ids]
        candidates = cls.lock_approved(user, wanted)

        now = timezone.now()
        consumed: list[RedeemedReward] = []
        for redeemed in candidates:
            updated = RedeemedReward.objects.filter(pk=redeemed.pk, status=RedeemedReward.STATUS_APPROVED).update(
                status=RedeemedReward.STATUS_USED, used_at=now, used_on_order=order
            )
            if updated == 1:
                redeemed.status = RedeemedReward.STATUS_USED
                redeemed.used_at = now
                redeemed.used_on_order = order
                consumed.append(redeemed)

        skipped = set(wanted) - {str(r.pk) for r in consumed}
        if skipped:
            logger.warning(
                f"🎁 [Rewards] Order {order.order_number}: rewards no longer APPROVED were skipped: {sorted(skipped)}"
            )

        cashback = [r for r in consumed if r.reward.type == Reward.TYPE_CASHBACK]
        if cashback:
            locked = PointsLedger.lock_user(user.pk)
            for redeemed in cashback:
                PointsLedger.append(
                    locked,
                    _floor_points(redeemed.reward.value),
                    PointsTransaction.TYPE_REWARD_CREDIT,
                    f"Cashback reward: {redeemed.reward.name}",
                    reference_id=str(redeemed.pk),
                    idempotency_key=f"cashback:{redeemed.pk}",
                )
        return consumed
