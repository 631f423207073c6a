"""
Post-commit outbox tasks.

Settlement writes one PostCommitTask per follow-up (campaign usage, loyalty
accrual) and enqueues it on commit. Each task runs its handler and marks
itself completed in a single transaction; failures are rescheduled with
exponential backoff until max_attempts, then left as failed for manual
reconciliation. A periodic sweep re-dispatches anything that is due.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from django.core.cache import cache
from django.db import transaction
from django.utils import timezone
from django_q.models import Schedule
from django_q.tasks import schedule

from apps.common.constants import OUTBOX_SWEEP_LOCK_SECONDS, get_outbox_config
from apps.common.logging import get_logger
from apps.common.queue import queue_by_name
from apps.loyalty.services import LoyaltyService
from apps.promotions.services import CampaignService

from .models import PostCommitTask

logger = logging.getLogger(__name__)
failure_log = get_logger(__name__, component="outbox")

SWEEP_SCHEDULE_NAME = "orders-outbox-sweep"
SWEEP_LOCK_KEY = "orders_outbox_sweep_lock"
MAX_ERROR_LENGTH = 2000


class PostCommitTaskError(Exception):
    """A post-commit handler reported a failure it could not recover from."""


def _run_campaign_usage(task: PostCommitTask) -> dict[str, Any]:
    campaign_ids = task.payload.get("campaign_ids") or []
    recorded = CampaignService.record_usage(task.order, campaign_ids)
    return {"campaigns_recorded": recorded}


def _run_loyalty_accrual(task: PostCommitTask) -> dict[str, Any]:
    multiplier = Decimal(str(task.payload.get("points_multiplier", "1")))
    result = LoyaltyService.accrue_order_points(task.order_id, multiplier)
    if result.is_err():
        raise PostCommitTaskError(result.unwrap_err())
    accrual = result.unwrap()
    return {
        "points_earned": accrual.points_earned,
        "new_tier": accrual.new_tier,
        "already_processed": accrual.already_processed,
    }


HANDLERS = {
    PostCommitTask.CAMPAIGN_USAGE: _run_campaign_usage,
    PostCommitTask.LOYALTY_ACCRUAL: _run_loyalty_accrual,
}


def process_post_commit_task(task_id: str) -> dict[str, Any]:
    """
    Run one outbox task.

    Args:
        task_id: PostCommitTask UUID

    Returns:
        Dictionary with the task outcome
    """
    with transaction.atomic():
        try:
            task = PostCommitTask.objects.select_for_update().select_related("order").get(pk=task_id)
        except PostCommitTask.DoesNotExist:
            logger.warning(f"⚠️ [Outbox] Task {task_id} not found")
            return {"success": False, "error": "Task not found"}

        if task.is_terminal:
            return {"success": True, "skipped": True, "status": task.status}
        if task.next_attempt_at > timezone.now():
            return {"success": True, "skipped": True, "status": task.status, "reason": "not_due"}

        task.attempts += 1
        handler = HANDLERS.get(task.task_type)
        try:
            if handler is None:
                raise PostCommitTaskError(f"Unknown task type {task.task_type}")
            with transaction.atomic():
                outcome = handler(task)
        except Exception as e:  # noqa: BLE001
            return _record_failure(task, e)

        task.status = PostCommitTask.STATUS_COMPLETED
        task.completed_at = timezone.now()
        task.last_error = ""
        task.save(update_fields=["status", "attempts", "completed_at", "last_error"])

    logger.info(
        f"✅ [Outbox] {task.task_type} for order {task.order.order_number} completed on attempt {task.attempts}"
    )
    return {"success": True, "task_id": str(task.pk), "attempts": task.attempts, **outcome}


def _record_failure(task: PostCommitTask, error: Exception) -> dict[str, Any]:
    config = get_outbox_config()
    task.last_error = f"{type(error).__name__}: {error}"[:MAX_ERROR_LENGTH]

    if task.attempts >= task.max_attempts:
        task.status = PostCommitTask.STATUS_FAILED
        failure_log.error(
            f"🔥 [Outbox] {task.task_type} for order {task.order_id} failed permanently "
            f"after {task.attempts} attempts: {task.last_error}",
            task_id=str(task.pk),
            order_id=str(task.order_id),
            task_type=task.task_type,
        )
    else:
        delay = task.backoff_delay(config["backoff_base_seconds"], config["backoff_max_seconds"])
        task.next_attempt_at = timezone.now() + delay
        logger.warning(
            f"⚠️ [Outbox] {task.task_type} for order {task.order_id} failed "
            f"(attempt {task.attempts}/{task.max_attempts}), retrying in {int(delay.total_seconds())}s: {error}"
        )

    task.save(update_fields=["status", "attempts", "next_attempt_at", "last_error"])
    return {"success": False, "task_id": str(task.pk), "attempts": task.attempts, "status": task.status}


def dispatch_due_post_commit_tasks() -> dict[str, Any]:
    """
    Enqueue pending outbox tasks whose next attempt is due.

    Runs on a schedule; a cache lock keeps overlapping sweeps from double-dispatching.
    """
    if not cache.add(SWEEP_LOCK_KEY, True, OUTBOX_SWEEP_LOCK_SECONDS):
        logger.info("⏭️ [Outbox] Sweep already running, skipping")
        return {"success": True, "message": "Already running", "dispatched": 0}

    try:
        due = list(
            PostCommitTask.objects.filter(
                status=PostCommitTask.STATUS_PENDING, next_attempt_at__lte=timezone.now()
            )
            .order_by("next_attempt_at")
            .values_list("pk", flat=True)[: get_outbox_config()["batch_size"]]
        )
        for task_id in due:
            queue_by_name("apps.orders.tasks.process_post_commit_task", str(task_id))

        if due:
            logger.info(f"📬 [Outbox] Dispatched {len(due)} due task(s)")
        return {"success": True, "dispatched": len(due)}
    finally:
        cache.delete(SWEEP_LOCK_KEY)


def retry_failed_post_commit_task(task_id: str) -> bool:
    """Put a failed task back in the queue with a fresh attempt budget."""
    updated = PostCommitTask.objects.filter(pk=task_id, status=PostCommitTask.STATUS_FAILED).update(
        status=PostCommitTask.STATUS_PENDING,
        attempts=0,
        next_attempt_at=timezone.now(),
    )
    if updated:
        logger.info(f"🔄 [Outbox] Task {task_id} reset for retry")
    return bool(updated)


# ===============================================================================
# SCHEDULED TASKS SETUP
# ===============================================================================


def setup_outbox_schedule() -> dict[str, str]:
    """Register the periodic outbox sweep with django-q2."""
    if Schedule.objects.filter(name=SWEEP_SCHEDULE_NAME).exists():
        return {"outbox_sweep": "already_exists"}

    schedule(
        "apps.orders.tasks.dispatch_due_post_commit_tasks",
        schedule_type=Schedule.MINUTES,
        minutes=get_outbox_config()["sweep_interval_minutes"],
        name=SWEEP_SCHEDULE_NAME,
    )
    logger.info(f"✅ [OrderTasks] Scheduled {SWEEP_SCHEDULE_NAME}")
    return {"outbox_sweep": "created"}
