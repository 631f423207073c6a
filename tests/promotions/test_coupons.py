"""
Tests for coupon validation, discount calculation and redemption
"""

from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APIClient

from apps.promotions.models import Coupon, CouponUsage
from apps.promotions.services import CouponService, CouponValidationError
from tests.factories.storefront import create_coupon, create_order, create_user


class CouponValidationTestCase(TestCase):
    def setUp(self):
        self.user = create_user()

    def assert_rejected(self, code, subtotal, kind):
        result = CouponService.validate(code, self.user, Decimal(subtotal))
        self.assertTrue(result.is_err())
        self.assertEqual(result.unwrap_err().kind, kind)

    def test_unknown_code(self):
        self.assert_rejected("NOPE", "20", CouponValidationError.NOT_FOUND)

    def test_inactive(self):
        create_coupon("OFF", is_active=False)
        self.assert_rejected("OFF", "20", CouponValidationError.INACTIVE)

    def test_not_started(self):
        create_coupon("SOON", start_date=timezone.now() + timedelta(days=1))
        self.assert_rejected("SOON", "20", CouponValidationError.NOT_STARTED)

    def test_expired(self):
        create_coupon("OLD", end_date=timezone.now() - timedelta(days=1))
        self.assert_rejected("OLD", "20", CouponValidationError.EXPIRED)

    def test_usage_limit(self):
        create_coupon("GONE", usage_limit=3, usage_count=3)
        self.assert_rejected("GONE", "20", CouponValidationError.USAGE_LIMIT_EXCEEDED)

    def test_below_minimum(self):
        create_coupon("BIG", min_purchase=Decimal("50"))
        self.assert_rejected("BIG", "49.99", CouponValidationError.BELOW_MINIMUM_PURCHASE)

    def test_per_user_limit(self):
        coupon = create_coupon("ONCE", usage_limit_per_user=1)
        CouponUsage.objects.create(
            coupon=coupon, user=self.user, order=create_order(self.user), discount_amount=Decimal("1.00")
        )

        self.assert_rejected("ONCE", "20", CouponValidationError.PER_USER_LIMIT_EXCEEDED)
        # Other users are unaffected
        self.assertTrue(CouponService.validate("ONCE", create_user(), Decimal("20")).is_ok())

    def test_code_is_normalized(self):
        create_coupon("save10")

        proposal = CouponService.validate("  Save10 ", self.user, Decimal("20")).unwrap()

        self.assertEqual(proposal.code, "SAVE10")


class CouponDiscountTestCase(TestCase):
    def setUp(self):
        self.user = create_user()

    def test_percentage(self):
        create_coupon("TEN", Coupon.PERCENTAGE, "10")
        proposal = CouponService.validate("TEN", self.user, Decimal("45.00")).unwrap()
        self.assertEqual(proposal.discount_amount, Decimal("4.50"))
        self.assertFalse(proposal.free_shipping)

    def test_percentage_respects_cap(self):
        create_coupon("HALF", Coupon.PERCENTAGE, "50", max_discount=Decimal("20"))
        proposal = CouponService.validate("HALF", self.user, Decimal("100")).unwrap()
        self.assertEqual(proposal.discount_amount, Decimal("20"))

    def test_fixed_is_not_capped_by_subtotal(self):
        create_coupon("FIVE", Coupon.FIXED, "5")
        proposal = CouponService.validate("FIVE", self.user, Decimal("3")).unwrap()
        self.assertEqual(proposal.discount_amount, Decimal("5"))

    def test_free_shipping(self):
        create_coupon("SHIP", Coupon.FREE_SHIPPING, "0")
        proposal = CouponService.validate("SHIP", self.user, Decimal("20")).unwrap()
        self.assertTrue(proposal.free_shipping)
        self.assertEqual(proposal.discount_amount, Decimal("0"))


class CouponRedemptionTestCase(TestCase):
    def setUp(self):
        self.user = create_user()
        self.order = create_order(self.user, total="40.00")

    def test_redeem_records_usage_and_counts(self):
        coupon = create_coupon("TEN", Coupon.PERCENTAGE, "10")
        proposal = CouponService.validate("TEN", self.user, Decimal("33.33")).unwrap()

        usage = CouponService.redeem(proposal, self.user, self.order, Decimal("33.33")).unwrap()

        self.assertEqual(usage.discount_amount, Decimal("3.33"))
        coupon.refresh_from_db()
        self.assertEqual(coupon.usage_count, 1)

    def test_redeem_revalidates_against_current_limits(self):
        coupon = create_coupon("LAST", usage_limit=1)
        proposal = CouponService.validate("LAST", self.user, Decimal("20")).unwrap()
        Coupon.objects.filter(pk=coupon.pk).update(usage_count=1)

        result = CouponService.redeem(proposal, self.user, self.order, Decimal("20"))

        self.assertEqual(result.unwrap_err().kind, CouponValidationError.USAGE_LIMIT_EXCEEDED)
        self.assertFalse(CouponUsage.objects.exists())


class CouponAPITestCase(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(create_user())

    def test_valid_coupon(self):
        create_coupon("TEN", Coupon.PERCENTAGE, "10")

        response = self.client.post(
            reverse("promotions:validate_coupon"), {"code": "ten", "subtotal": "25.00"}, format="json"
        )

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data["valid"])
        self.assertEqual(response.data["coupon"]["discount_amount"], "2.50")

    def test_unknown_coupon_is_404(self):
        response = self.client.post(
            reverse("promotions:validate_coupon"), {"code": "NOPE", "subtotal": "25.00"}, format="json"
        )

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["kind"], CouponValidationError.NOT_FOUND)

    def test_rejected_coupon_is_400(self):
        create_coupon("BIG", min_purchase=Decimal("100"))

        response = self.client.post(
            reverse("promotions:validate_coupon"), {"code": "BIG", "subtotal": "25.00"}, format="json"
        )

        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.data["valid"])
        self.assertEqual(response.data["kind"], CouponValidationError.BELOW_MINIMUM_PURCHASE)
