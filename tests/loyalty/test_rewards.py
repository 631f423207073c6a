"""
Tests for tier progress, reward selection and the redemption lifecycle
"""

from decimal import Decimal

from django.test import SimpleTestCase, TestCase
from rest_framework.test import APIClient

from apps.loyalty.exceptions import (
    InsufficientPointsError,
    RedemptionNotFoundError,
    RedemptionStateError,
    RewardUnavailableError,
)
from apps.loyalty.models import PointsTransaction, RedeemedReward, Reward
from apps.loyalty.services import LoyaltyService, RewardRedemptionService, RewardSelector
from apps.loyalty.tiers import get_next_tier_info, resolve_upgrade, tier_for_spent
from tests.factories.storefront import create_redemption, create_reward, create_user


class TierRulesTestCase(SimpleTestCase):
    def test_thresholds(self):
        self.assertEqual(tier_for_spent(Decimal("0")), "BRONZE")
        self.assertEqual(tier_for_spent(Decimal("99.99")), "BRONZE")
        self.assertEqual(tier_for_spent(Decimal("100")), "SILVER")
        self.assertEqual(tier_for_spent(Decimal("500")), "GOLD")
        self.assertEqual(tier_for_spent(Decimal("1000")), "PLATINUM")

    def test_upgrade_only(self):
        self.assertEqual(resolve_upgrade("BRONZE", Decimal("150")), "SILVER")
        self.assertIsNone(resolve_upgrade("SILVER", Decimal("150")))
        self.assertIsNone(resolve_upgrade("PLATINUM", Decimal("10")))

    def test_next_tier_progress(self):
        info = get_next_tier_info("SILVER", Decimal("300"))

        self.assertEqual(info.next_tier, "GOLD")
        self.assertEqual(info.amount_to_next, Decimal("200"))
        self.assertEqual(info.progress, 50)

    def test_progress_is_clamped(self):
        info = get_next_tier_info("BRONZE", Decimal("250"))

        self.assertEqual(info.amount_to_next, Decimal("0"))
        self.assertEqual(info.progress, 100)

    def test_platinum_has_no_next_tier(self):
        info = get_next_tier_info("PLATINUM", Decimal("5000"))

        self.assertIsNone(info.next_tier)
        self.assertEqual(info.progress, 100)


class RewardSelectorTestCase(TestCase):
    def setUp(self):
        self.user = create_user()
        self.small = create_redemption(self.user, create_reward("$5 Off", Reward.TYPE_DISCOUNT, "5.00"))
        self.large = create_redemption(self.user, create_reward("$15 Off", Reward.TYPE_DISCOUNT, "15.00"))
        self.delivery = create_redemption(self.user, create_reward("Free Delivery", Reward.TYPE_FREE_DELIVERY, "0"))
        self.cashback = create_redemption(self.user, create_reward("Cashback", Reward.TYPE_CASHBACK, "25"))
        create_redemption(
            self.user, create_reward("$50 Off", Reward.TYPE_DISCOUNT, "50.00"), status=RedeemedReward.STATUS_PENDING
        )

    def test_preview_picks_best_discount_delivery_and_bonuses(self):
        proposal = RewardSelector.preview(self.user, Decimal("30"))

        self.assertEqual(proposal.discount_amount, Decimal("15.00"))
        self.assertTrue(proposal.free_delivery)
        self.assertEqual(
            set(proposal.reward_ids), {str(self.large.pk), str(self.delivery.pk), str(self.cashback.pk)}
        )
        self.assertEqual([r.name for r in proposal.bonus_rewards], ["Cashback"])

    def test_preview_skips_delivery_above_threshold(self):
        proposal = RewardSelector.preview(self.user, Decimal("80"))

        self.assertFalse(proposal.free_delivery)
        self.assertNotIn(str(self.delivery.pk), proposal.reward_ids)

    def test_select_sums_chosen_discounts(self):
        proposal = RewardSelector.select(self.user, [self.small.pk, self.large.pk, self.delivery.pk])

        self.assertEqual(proposal.discount_amount, Decimal("20.00"))
        self.assertTrue(proposal.free_delivery)
        self.assertEqual(len(proposal.applied_rewards), 3)

    def test_select_drops_unknown_ids(self):
        proposal = RewardSelector.select(self.user, ["00000000-0000-0000-0000-000000000000"])

        self.assertEqual(proposal.reward_ids, ())
        self.assertEqual(proposal.discount_amount, Decimal("0"))


class RedemptionLifecycleTestCase(TestCase):
    def setUp(self):
        self.user = create_user(loyalty_points=600)
        self.staff = create_user(is_staff=True)
        self.reward = create_reward("$5 Off", Reward.TYPE_DISCOUNT, "5.00", points_cost=500)

    def test_request_creates_pending_without_moving_points(self):
        redeemed = RewardRedemptionService.request_redemption(self.user, self.reward).unwrap()

        self.assertEqual(redeemed.status, RedeemedReward.STATUS_PENDING)
        self.user.refresh_from_db()
        self.assertEqual(self.user.loyalty_points, 600)

    def test_request_needs_enough_points(self):
        expensive = create_reward("TV", Reward.TYPE_FREE_PRODUCT, "0", points_cost=5000)

        error = RewardRedemptionService.request_redemption(self.user, expensive).unwrap_err()

        self.assertIsInstance(error, InsufficientPointsError)
        self.assertEqual(error.required, 5000)
        self.assertEqual(error.available, 600)
        self.assertFalse(RedeemedReward.objects.exists())

    def test_inactive_reward_cannot_be_requested(self):
        self.reward.is_active = False
        self.reward.save()

        error = RewardRedemptionService.request_redemption(self.user, self.reward).unwrap_err()

        self.assertIsInstance(error, RewardUnavailableError)

    def test_approval_debits_points(self):
        redeemed = RewardRedemptionService.request_redemption(self.user, self.reward).unwrap()

        approved = RewardRedemptionService.review_redemption(redeemed.pk, approve=True, reviewer=self.staff).unwrap()

        self.assertEqual(approved.status, RedeemedReward.STATUS_APPROVED)
        self.assertEqual(approved.reviewed_by, self.staff)
        self.assertIsNotNone(approved.reviewed_at)
        debit = PointsTransaction.objects.get(user=self.user, type=PointsTransaction.TYPE_REDEMPTION)
        self.assertEqual(debit.amount, -500)
        self.assertEqual(debit.balance_after, 100)
        self.assertEqual(debit.idempotency_key, f"redemption:{redeemed.pk}")
        self.user.refresh_from_db()
        self.assertEqual(self.user.loyalty_points, 100)

    def test_rejection_moves_no_points(self):
        redeemed = RewardRedemptionService.request_redemption(self.user, self.reward).unwrap()

        rejected = RewardRedemptionService.review_redemption(redeemed.pk, approve=False, reviewer=self.staff).unwrap()

        self.assertEqual(rejected.status, RedeemedReward.STATUS_REJECTED)
        self.user.refresh_from_db()
        self.assertEqual(self.user.loyalty_points, 600)

    def test_only_pending_can_be_reviewed(self):
        redeemed = RewardRedemptionService.request_redemption(self.user, self.reward).unwrap()
        RewardRedemptionService.review_redemption(redeemed.pk, approve=True)

        error = RewardRedemptionService.review_redemption(redeemed.pk, approve=True).unwrap_err()

        self.assertIsInstance(error, RedemptionStateError)
        self.user.refresh_from_db()
        self.assertEqual(self.user.loyalty_points, 100)

    def test_unknown_redemption_is_not_found(self):
        error = RewardRedemptionService.review_redemption(
            "00000000-0000-0000-0000-000000000000", approve=True, reviewer=self.staff
        ).unwrap_err()

        self.assertIsInstance(error, RedemptionNotFoundError)

    def test_approval_fails_when_points_were_spent_meanwhile(self):
        first = RewardRedemptionService.request_redemption(self.user, self.reward).unwrap()
        second = RewardRedemptionService.request_redemption(self.user, self.reward).unwrap()
        RewardRedemptionService.review_redemption(first.pk, approve=True)

        error = RewardRedemptionService.review_redemption(second.pk, approve=True).unwrap_err()

        self.assertIsInstance(error, InsufficientPointsError)
        second.refresh_from_db()
        self.assertEqual(second.status, RedeemedReward.STATUS_PENDING)


class LoyaltySummaryTestCase(TestCase):
    def test_summary(self):
        user = create_user(loyalty_points=40, total_spent=Decimal("300.00"), loyalty_tier="SILVER")
        create_redemption(user, create_reward())

        summary = LoyaltyService.get_summary(user)

        self.assertEqual(summary["loyalty_points"], 40)
        self.assertEqual(summary["next_tier"], "GOLD")
        self.assertEqual(summary["tier_progress"], 50)
        self.assertEqual(len(summary["redeemed_rewards"]), 1)


class LoyaltyAPITestCase(TestCase):
    def setUp(self):
        self.user = create_user(loyalty_points=800)
        self.client = APIClient()
        self.client.force_authenticate(self.user)

    def test_summary_endpoint(self):
        response = self.client.get("/api/loyalty/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["loyalty_points"], 800)
        self.assertEqual(response.data["loyalty_tier"], "BRONZE")
        self.assertEqual(response.data["next_tier"], "SILVER")

    def test_redeem_endpoint(self):
        reward = create_reward(points_cost=500)

        response = self.client.post(f"/api/loyalty/rewards/{reward.pk}/redeem/")

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["status"], RedeemedReward.STATUS_PENDING)

    def test_redeem_without_points_is_400(self):
        reward = create_reward(points_cost=5000)

        response = self.client.post(f"/api/loyalty/rewards/{reward.pk}/redeem/")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "insufficient_points")

    def test_preview_endpoint(self):
        create_redemption(self.user, create_reward("$5 Off", Reward.TYPE_DISCOUNT, "5.00"))

        response = self.client.post("/api/loyalty/rewards/preview/", {"subtotal": "20.00"}, format="json")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["discount_amount"], "5.00")

    def test_review_requires_staff(self):
        redeemed = create_redemption(self.user, create_reward(), status=RedeemedReward.STATUS_PENDING)

        response = self.client.post(
            f"/api/loyalty/redemptions/{redeemed.pk}/review/", {"approve": True}, format="json"
        )

        self.assertEqual(response.status_code, 403)

    def test_staff_approves_redemption(self):
        redeemed = create_redemption(self.user, create_reward(points_cost=500), status=RedeemedReward.STATUS_PENDING)
        staff_client = APIClient()
        staff_client.force_authenticate(create_user(is_staff=True))

        response = staff_client.post(
            f"/api/loyalty/redemptions/{redeemed.pk}/review/", {"approve": True}, format="json"
        )
        repeat = staff_client.post(
            f"/api/loyalty/redemptions/{redeemed.pk}/review/", {"approve": True}, format="json"
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["status"], RedeemedReward.STATUS_APPROVED)
        self.assertEqual(repeat.status_code, 409)
        self.user.refresh_from_db()
        self.assertEqual(self.user.loyalty_points, 300)

    def test_review_of_unknown_redemption_is_404(self):
        staff_client = APIClient()
        staff_client.force_authenticate(create_user(is_staff=True))

        response = staff_client.post(
            "/api/loyalty/redemptions/00000000-0000-0000-0000-000000000000/review/", {"approve": True}, format="json"
        )

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["code"], "redemption_not_found")
