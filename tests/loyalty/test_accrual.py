"""
Tests for loyalty points accrual, tier upgrades and referral bonuses
"""

from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from apps.loyalty.exceptions import InsufficientPointsError
from apps.loyalty.models import PointsTransaction
from apps.loyalty.services import LoyaltyService, PointsLedger
from tests.factories.storefront import create_order, create_user


class AccrualTestCase(TestCase):
    def setUp(self):
        self.user = create_user()

    def test_first_purchase_with_tier_upgrade(self):
        order = create_order(self.user, total="120.00")

        accrual = LoyaltyService.accrue_order_points(order.pk, Decimal("1")).unwrap()

        self.assertTrue(accrual.first_purchase)
        self.assertEqual(accrual.base_points, 1300)
        self.assertEqual(accrual.points_earned, 1300)
        self.assertEqual(accrual.new_tier, "SILVER")
        self.assertEqual(accrual.tier_bonus, 50)

        self.user.refresh_from_db()
        self.assertEqual(self.user.loyalty_points, 1350)
        self.assertEqual(self.user.loyalty_tier, "SILVER")
        self.assertEqual(self.user.total_spent, Decimal("120.00"))

        entries = list(PointsTransaction.objects.filter(user=self.user).order_by("balance_after"))
        self.assertEqual([(e.type, e.amount, e.balance_after) for e in entries], [
            (PointsTransaction.TYPE_PURCHASE, 1300, 1300),
            (PointsTransaction.TYPE_PROMOTION_BONUS, 50, 1350),
        ])
        self.assertEqual(entries[0].idempotency_key, f"purchase:{order.pk}")
        self.assertEqual(entries[1].idempotency_key, f"tier-bonus:{self.user.pk}:SILVER")

    def test_small_purchase_earns_nothing(self):
        order = create_order(self.user, total="3.00")

        accrual = LoyaltyService.accrue_order_points(order.pk, Decimal("5")).unwrap()

        self.assertEqual(accrual.points_earned, 0)
        self.user.refresh_from_db()
        self.assertEqual(self.user.loyalty_points, 0)
        self.assertEqual(self.user.total_spent, Decimal("0"))
        self.assertFalse(PointsTransaction.objects.exists())

    def test_repeat_purchase_has_no_first_purchase_bonus(self):
        create_order(self.user, total="20.00", created_at=timezone.now() - timedelta(days=1))
        order = create_order(self.user, total="20.00")

        accrual = LoyaltyService.accrue_order_points(order.pk, Decimal("1")).unwrap()

        self.assertFalse(accrual.first_purchase)
        self.assertEqual(accrual.points_earned, 200)

    def test_multiplier_is_floored(self):
        create_order(self.user, total="1.00", created_at=timezone.now() - timedelta(days=1))
        order = create_order(self.user, total="12.34")

        accrual = LoyaltyService.accrue_order_points(order.pk, Decimal("1.5")).unwrap()

        # floor(12.34 * 10) = 123, floor(123 * 1.5) = 184
        self.assertEqual(accrual.points_earned, 184)

    def test_multiplier_defaults_to_order_snapshot(self):
        order = create_order(self.user, total="10.00", points_multiplier=Decimal("2.00"))

        accrual = LoyaltyService.accrue_order_points(order.pk).unwrap()

        self.assertEqual(accrual.points_earned, 400)

    def test_replay_is_idempotent(self):
        order = create_order(self.user, total="120.00")
        LoyaltyService.accrue_order_points(order.pk, Decimal("1"))

        replay = LoyaltyService.accrue_order_points(order.pk, Decimal("1")).unwrap()

        self.assertTrue(replay.already_processed)
        self.user.refresh_from_db()
        self.assertEqual(self.user.loyalty_points, 1350)
        self.assertEqual(self.user.total_spent, Decimal("120.00"))

    def test_tier_never_downgrades(self):
        self.user.loyalty_tier = "GOLD"
        self.user.save()
        order = create_order(self.user, total="150.00")

        accrual = LoyaltyService.accrue_order_points(order.pk, Decimal("1")).unwrap()

        self.assertIsNone(accrual.new_tier)
        self.user.refresh_from_db()
        self.assertEqual(self.user.loyalty_tier, "GOLD")

    def test_jump_across_tiers_awards_final_tier_bonus(self):
        order = create_order(self.user, total="1200.00")

        accrual = LoyaltyService.accrue_order_points(order.pk, Decimal("1")).unwrap()

        self.assertEqual(accrual.new_tier, "PLATINUM")
        self.assertEqual(accrual.tier_bonus, 200)
        self.user.refresh_from_db()
        self.assertEqual(self.user.loyalty_points, 12000 + 100 + 200)

    def test_unknown_order(self):
        result = LoyaltyService.accrue_order_points("00000000-0000-0000-0000-000000000000")
        self.assertTrue(result.is_err())


class ReferralBonusTestCase(TestCase):
    def setUp(self):
        self.referrer = create_user()
        self.referred = create_user()

    def test_credited_once_per_referred_user(self):
        self.assertTrue(LoyaltyService.process_referral_bonus(self.referrer.pk, self.referred.pk))
        self.assertFalse(LoyaltyService.process_referral_bonus(self.referrer.pk, self.referred.pk))

        bonuses = PointsTransaction.objects.filter(user=self.referrer, type=PointsTransaction.TYPE_REFERRAL_BONUS)
        self.assertEqual(bonuses.count(), 1)
        self.assertEqual(bonuses.get().reference_id, str(self.referred.pk))
        self.referrer.refresh_from_db()
        self.assertEqual(self.referrer.loyalty_points, 200)

    def test_each_referred_user_counts(self):
        another = create_user()
        LoyaltyService.process_referral_bonus(self.referrer.pk, self.referred.pk)
        LoyaltyService.process_referral_bonus(self.referrer.pk, another.pk)

        self.referrer.refresh_from_db()
        self.assertEqual(self.referrer.loyalty_points, 400)

    def test_first_purchase_triggers_referral_bonus(self):
        self.referred.referred_by = self.referrer
        self.referred.save()
        order = create_order(self.referred, total="20.00")

        accrual = LoyaltyService.accrue_order_points(order.pk, Decimal("1")).unwrap()

        self.assertTrue(accrual.referral_credited)
        self.referrer.refresh_from_db()
        self.assertEqual(self.referrer.loyalty_points, 200)

        later = create_order(self.referred, total="20.00", created_at=timezone.now() + timedelta(minutes=1))
        self.assertFalse(LoyaltyService.accrue_order_points(later.pk, Decimal("1")).unwrap().referral_credited)
        self.referrer.refresh_from_db()
        self.assertEqual(self.referrer.loyalty_points, 200)


class PointsLedgerTestCase(TestCase):
    def test_duplicate_key_is_skipped(self):
        user = create_user()
        first = PointsLedger.append(user, 10, PointsTransaction.TYPE_PROMOTION_BONUS, "Promo", idempotency_key="promo:1")
        second = PointsLedger.append(user, 10, PointsTransaction.TYPE_PROMOTION_BONUS, "Promo", idempotency_key="promo:1")

        self.assertIsNotNone(first)
        self.assertIsNone(second)
        user.refresh_from_db()
        self.assertEqual(user.loyalty_points, 10)

    def test_debit_cannot_go_negative(self):
        user = create_user()
        with self.assertRaises(InsufficientPointsError):
            PointsLedger.append(user, -5, PointsTransaction.TYPE_REDEMPTION, "Too much")
        self.assertFalse(PointsTransaction.objects.exists())
