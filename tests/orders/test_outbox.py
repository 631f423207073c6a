"""
Tests for the post-commit outbox worker and sweep
"""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from django_q.models import Schedule

from apps.common.types import Err
from apps.loyalty.models import PointsTransaction
from apps.orders.models import PostCommitTask
from apps.orders.tasks import (
    SWEEP_LOCK_KEY,
    SWEEP_SCHEDULE_NAME,
    dispatch_due_post_commit_tasks,
    process_post_commit_task,
    retry_failed_post_commit_task,
    setup_outbox_schedule,
)
from apps.promotions.models import Campaign, CampaignUsage
from tests.factories.storefront import create_campaign, create_order, create_user


class OutboxTestBase(TestCase):
    def setUp(self):
        self.user = create_user()
        self.order = create_order(self.user, total="120.00")

    def loyalty_task(self, **extra):
        return PostCommitTask.objects.create(
            task_type=PostCommitTask.LOYALTY_ACCRUAL,
            order=self.order,
            payload={"points_multiplier": "1"},
            **extra,
        )


class LoyaltyAccrualTaskTestCase(OutboxTestBase):
    def test_completes_and_credits_points(self):
        task = self.loyalty_task()

        outcome = process_post_commit_task(str(task.pk))

        self.assertTrue(outcome["success"])
        self.assertEqual(outcome["points_earned"], 1300)
        task.refresh_from_db()
        self.assertEqual(task.status, PostCommitTask.STATUS_COMPLETED)
        self.assertEqual(task.attempts, 1)
        self.assertIsNotNone(task.completed_at)
        self.user.refresh_from_db()
        self.assertEqual(self.user.loyalty_points, 1350)

    def test_processing_twice_credits_once(self):
        task = self.loyalty_task()
        process_post_commit_task(str(task.pk))

        second = process_post_commit_task(str(task.pk))
        self.assertTrue(second["skipped"])

        # Even a replay of a completed row must not double-credit
        PostCommitTask.objects.filter(pk=task.pk).update(status=PostCommitTask.STATUS_PENDING)
        replay = process_post_commit_task(str(task.pk))

        self.assertTrue(replay["already_processed"])
        self.user.refresh_from_db()
        self.assertEqual(self.user.loyalty_points, 1350)
        self.assertEqual(
            PointsTransaction.objects.filter(user=self.user, type=PointsTransaction.TYPE_PURCHASE).count(), 1
        )

    def test_failure_is_rescheduled_with_backoff(self):
        task = self.loyalty_task()
        before = timezone.now()

        with patch("apps.orders.tasks.LoyaltyService.accrue_order_points", side_effect=RuntimeError("db away")):
            outcome = process_post_commit_task(str(task.pk))

        self.assertFalse(outcome["success"])
        task.refresh_from_db()
        self.assertEqual(task.status, PostCommitTask.STATUS_PENDING)
        self.assertEqual(task.attempts, 1)
        self.assertIn("db away", task.last_error)
        self.assertGreaterEqual(task.next_attempt_at, before + timedelta(seconds=30))
        self.user.refresh_from_db()
        self.assertEqual(self.user.loyalty_points, 0)

    def test_backoff_doubles_per_attempt(self):
        task = self.loyalty_task(attempts=3)
        self.assertEqual(task.backoff_delay(30, 3600), timedelta(seconds=120))
        task.attempts = 10
        self.assertEqual(task.backoff_delay(30, 3600), timedelta(seconds=3600))

    def test_not_due_task_is_skipped(self):
        task = self.loyalty_task(next_attempt_at=timezone.now() + timedelta(minutes=5))

        outcome = process_post_commit_task(str(task.pk))

        self.assertEqual(outcome.get("reason"), "not_due")
        task.refresh_from_db()
        self.assertEqual(task.attempts, 0)

    def test_marked_failed_after_max_attempts(self):
        task = self.loyalty_task(attempts=4, max_attempts=5)

        with patch(
            "apps.orders.tasks.LoyaltyService.accrue_order_points", return_value=Err("Order vanished")
        ):
            process_post_commit_task(str(task.pk))

        task.refresh_from_db()
        self.assertEqual(task.status, PostCommitTask.STATUS_FAILED)
        self.assertEqual(task.attempts, 5)
        self.assertIn("Order vanished", task.last_error)

        # Failed rows are terminal until an operator resets them
        self.assertTrue(process_post_commit_task(str(task.pk))["skipped"])
        self.assertTrue(retry_failed_post_commit_task(str(task.pk)))
        process_post_commit_task(str(task.pk))
        task.refresh_from_db()
        self.assertEqual(task.status, PostCommitTask.STATUS_COMPLETED)

    def test_retry_ignores_tasks_that_are_not_failed(self):
        task = self.loyalty_task()
        self.assertFalse(retry_failed_post_commit_task(str(task.pk)))

    def test_missing_task(self):
        outcome = process_post_commit_task("00000000-0000-0000-0000-000000000000")
        self.assertFalse(outcome["success"])


class CampaignUsageTaskTestCase(OutboxTestBase):
    def test_usage_recorded_once_per_order(self):
        sale = create_campaign("Sale", Campaign.TYPE_DISCOUNT, discount_type=Campaign.FIXED, discount_value=Decimal("5"))
        task = PostCommitTask.objects.create(
            task_type=PostCommitTask.CAMPAIGN_USAGE, order=self.order, payload={"campaign_ids": [str(sale.pk)]}
        )

        process_post_commit_task(str(task.pk))
        PostCommitTask.objects.filter(pk=task.pk).update(status=PostCommitTask.STATUS_PENDING)
        outcome = process_post_commit_task(str(task.pk))

        self.assertEqual(outcome["campaigns_recorded"], 0)
        sale.refresh_from_db()
        self.assertEqual(sale.usage_count, 1)
        self.assertEqual(CampaignUsage.objects.filter(campaign=sale, order=self.order).count(), 1)


class OutboxSweepTestCase(OutboxTestBase):
    def setUp(self):
        super().setUp()
        cache.delete(SWEEP_LOCK_KEY)

    @patch("apps.orders.tasks.queue_by_name")
    def test_dispatches_only_due_pending_tasks(self, mock_queue):
        due = self.loyalty_task()
        other_order = create_order(self.user, total="10.00")
        PostCommitTask.objects.create(
            task_type=PostCommitTask.LOYALTY_ACCRUAL,
            order=other_order,
            next_attempt_at=timezone.now() + timedelta(hours=1),
        )
        PostCommitTask.objects.create(
            task_type=PostCommitTask.CAMPAIGN_USAGE, order=self.order, status=PostCommitTask.STATUS_FAILED
        )

        outcome = dispatch_due_post_commit_tasks()

        self.assertEqual(outcome["dispatched"], 1)
        mock_queue.assert_called_once_with("apps.orders.tasks.process_post_commit_task", str(due.pk))
        self.assertIsNone(cache.get(SWEEP_LOCK_KEY))

    @patch("apps.orders.tasks.queue_by_name")
    def test_overlapping_sweep_is_skipped(self, mock_queue):
        self.loyalty_task()
        cache.set(SWEEP_LOCK_KEY, True, 60)

        outcome = dispatch_due_post_commit_tasks()

        self.assertEqual(outcome["dispatched"], 0)
        mock_queue.assert_not_called()
        cache.delete(SWEEP_LOCK_KEY)

    def test_schedule_registered_once(self):
        self.assertEqual(setup_outbox_schedule(), {"outbox_sweep": "created"})
        self.assertEqual(setup_outbox_schedule(), {"outbox_sweep": "already_exists"})
        self.assertEqual(Schedule.objects.filter(name=SWEEP_SCHEDULE_NAME).count(), 1)
