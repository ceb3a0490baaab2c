"""Celery tasks for the approval gate."""

import logging

from celery import shared_task

from apps.decisions.approvals import ApprovalGate

logger = logging.getLogger(__name__)


@shared_task(name="apps.decisions.tasks.expire_approvals_task")
def expire_approvals_task() -> dict:
    """Expire decisions left pending past APPROVAL_TIMEOUT_HOURS."""
    expired = ApprovalGate().expire_stale()
    return {"expired": len(expired), "decision_ids": [d.pk for d in expired]}
