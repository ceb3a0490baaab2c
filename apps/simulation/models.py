"""
Simulation run tracking.

Every synthetic RawEvent references the SimulationRun that produced it, so a
run can be inspected, counted and cleaned up on its own.
"""

import secrets
import string
import time

from django.db import models
from django.utils import timezone

_BASE36 = string.digits + string.ascii_lowercase


def _base36(number: int) -> str:
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits)) or "0"


def generate_run_id() -> str:
    """``sim_<base36 millis>_<6 random chars>``."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"sim_{_base36(int(time.time() * 1000))}_{suffix}"


class SimulationRunStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    RUNNING = "running", "Running"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"
    CLEANED = "cleaned", "Cleaned up"


class SimulationRun(models.Model):
    """One capped batch of synthetic events."""

    run_id = models.CharField(max_length=64, unique=True, default=generate_run_id)
    config = models.JSONField(
        default=dict,
        help_text="Effective (clamped) configuration used for generation.",
    )
    status = models.CharField(
        max_length=20,
        choices=SimulationRunStatus.choices,
        default=SimulationRunStatus.PENDING,
        db_index=True,
    )
    events_injected = models.PositiveIntegerField(default=0)
    merchants_affected = models.PositiveIntegerField(default=0)
    error_message = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.run_id} [{self.status}]"

    def mark_running(self):
        self.status = SimulationRunStatus.RUNNING
        self.started_at = timezone.now()
        self.save(update_fields=["status", "started_at"])

    def mark_completed(self, events_injected: int, merchants_affected: int):
        self.status = SimulationRunStatus.COMPLETED
        self.events_injected = events_injected
        self.merchants_affected = merchants_affected
        self.completed_at = timezone.now()
        self.save(
            update_fields=["status", "events_injected", "merchants_affected", "completed_at"]
        )

    def mark_failed(self, error_message: str):
        self.status = SimulationRunStatus.FAILED
        self.error_message = error_message
        self.completed_at = timezone.now()
        self.save(update_fields=["status", "error_message", "completed_at"])

    def mark_cleaned(self):
        self.status = SimulationRunStatus.CLEANED
        self.save(update_fields=["status"])
