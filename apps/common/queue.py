"""
Task enqueueing for the Storefront Platform.

Outbox handlers live in app modules that import each other's services, so
callers hand django-q2 a dotted path instead of a function object.
"""

from __future__ import annotations

from typing import Any

from django_q.tasks import async_task


def queue_by_name(func_path: str, *args: Any, **kwargs: Any) -> str:
    """Enqueue ``func_path`` on the cluster and return the django-q2 task id."""
    return async_task(func_path, *args, **kwargs)
