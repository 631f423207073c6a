"""
Tests for discount composition and the versioned order snapshots
"""

from decimal import Decimal

from django.test import SimpleTestCase

from apps.orders.discounts import (
    AppliedCampaign,
    AppliedReward,
    CampaignProposal,
    CouponProposal,
    DiscountComposer,
    RewardProposal,
    SnapshotSchemaError,
    load_snapshot,
)


def reward_proposal(discount="5.00", free_delivery=False):
    applied = AppliedReward(
        redeemed_reward_id="r-1",
        reward_id="rw-1",
        name="$5 Off",
        type="DISCOUNT",
        value=Decimal(discount),
        points_cost=500,
    )
    return RewardProposal(
        reward_ids=("r-1",),
        discount_amount=Decimal(discount),
        free_delivery=free_delivery,
        applied_rewards=(applied,),
    )


def campaign_proposal(discount="4.00", free_shipping=False, multiplier="1"):
    campaign = AppliedCampaign(
        campaign_id="c-1",
        title="Spring Sale",
        type="DISCOUNT",
        discount_amount=Decimal(discount),
        free_shipping=free_shipping,
        points_multiplier=Decimal(multiplier),
    )
    return CampaignProposal(
        campaigns=(campaign,),
        total_discount=Decimal(discount),
        free_shipping=free_shipping,
        points_multiplier=Decimal(multiplier),
    )


COUPON = CouponProposal(coupon_id="cp-1", code="SAVE3", discount_type="FIXED", discount_amount=Decimal("3.00"))


class DiscountComposerTestCase(SimpleTestCase):
    def test_sources_add_up(self):
        composed = DiscountComposer.compose(
            Decimal("40"), rewards=reward_proposal(), coupon=COUPON, campaigns=campaign_proposal()
        )

        self.assertEqual(composed.discount_amount, Decimal("12.00"))
        self.assertEqual(composed.reward_discount, Decimal("5.00"))
        self.assertEqual(composed.coupon_discount, Decimal("3.00"))
        self.assertEqual(composed.campaign_discount, Decimal("4.00"))

    def test_no_sources(self):
        composed = DiscountComposer.compose(Decimal("40"))

        self.assertEqual(composed.discount_amount, Decimal("0"))
        self.assertFalse(composed.free_shipping)
        self.assertEqual(composed.points_multiplier, Decimal("1"))
        self.assertEqual(composed.rewards_snapshot(), [])
        self.assertEqual(composed.coupons_snapshot(), [])
        self.assertEqual(composed.campaigns_snapshot(), [])

    def test_stacking_is_not_capped_by_subtotal(self):
        composed = DiscountComposer.compose(
            Decimal("10"), rewards=reward_proposal("8.00"), campaigns=campaign_proposal("9.00")
        )
        self.assertEqual(composed.discount_amount, Decimal("17.00"))

    def test_free_shipping_from_any_source(self):
        self.assertTrue(DiscountComposer.compose(Decimal("10"), rewards=reward_proposal(free_delivery=True)).free_shipping)
        self.assertTrue(
            DiscountComposer.compose(
                Decimal("10"),
                coupon=CouponProposal(coupon_id="x", code="SHIP", discount_type="FREE_SHIPPING", free_shipping=True),
            ).free_shipping
        )
        self.assertTrue(DiscountComposer.compose(Decimal("10"), campaigns=campaign_proposal(free_shipping=True)).free_shipping)

    def test_multiplier_comes_from_campaigns(self):
        composed = DiscountComposer.compose(Decimal("10"), campaigns=campaign_proposal("0", multiplier="2"))
        self.assertEqual(composed.points_multiplier, Decimal("2"))


class SnapshotTestCase(SimpleTestCase):
    def test_snapshot_entries_are_tagged_and_load_back(self):
        composed = DiscountComposer.compose(
            Decimal("40"), rewards=reward_proposal(), coupon=COUPON, campaigns=campaign_proposal(multiplier="1.5")
        )

        rewards = composed.rewards_snapshot()
        self.assertEqual(rewards[0]["schema"], 1)
        self.assertEqual(rewards[0]["kind"], "reward")
        self.assertEqual(rewards[0]["value"], "5.00")

        self.assertEqual(load_snapshot(rewards), list(composed.rewards.applied_rewards))
        self.assertEqual(load_snapshot(composed.coupons_snapshot()), [COUPON])
        loaded_campaign = load_snapshot(composed.campaigns_snapshot())[0]
        self.assertEqual(loaded_campaign.points_multiplier, Decimal("1.5"))

    def test_empty_or_missing_snapshot(self):
        self.assertEqual(load_snapshot(None), [])
        self.assertEqual(load_snapshot([]), [])

    def test_unknown_schema_version_is_rejected(self):
        with self.assertRaises(SnapshotSchemaError):
            load_snapshot([{"schema": 2, "kind": "coupon"}])

    def test_unknown_kind_is_rejected(self):
        with self.assertRaises(SnapshotSchemaError):
            load_snapshot([{"schema": 1, "kind": "voucher"}])

    def test_malformed_entry_is_rejected(self):
        with self.assertRaises(SnapshotSchemaError):
            load_snapshot([{"schema": 1, "kind": "coupon", "code": "X"}])
        with self.assertRaises(SnapshotSchemaError):
            load_snapshot(["not-a-dict"])
