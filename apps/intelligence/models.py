"""
Intelligence models.

Hypotheses are candidate root causes for an Observation. AnalysisRun tracks
every call to the reasoning capability for audit and debugging.
"""

from django.db import models
from django.utils import timezone


class HypothesisCategory(models.TextChoices):
    PLATFORM_DEFECT = "platform_defect", "Platform defect"
    DOCUMENTATION_GAP = "documentation_gap", "Documentation gap"
    MERCHANT_MISCONFIGURATION = "merchant_misconfiguration", "Merchant misconfiguration"
    UNKNOWN = "unknown", "Unknown"


class AnalysisRunStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    RUNNING = "running", "Running"
    SUCCEEDED = "succeeded", "Succeeded"
    FAILED = "failed", "Failed"


class AnalysisRun(models.Model):
    """
    One invocation of the reasoning capability for one observation.
    """

    observation = models.ForeignKey(
        "events.Observation",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="analysis_runs",
    )
    pipeline_run_id = models.CharField(
        max_length=64,
        blank=True,
        default="",
        db_index=True,
        help_text="Pipeline tick this analysis belongs to.",
    )

    provider = models.CharField(max_length=50, db_index=True)
    provider_config = models.JSONField(
        default=dict,
        blank=True,
        help_text="Provider configuration with secrets redacted.",
    )
    model_name = models.CharField(max_length=100, blank=True, default="")

    status = models.CharField(
        max_length=20,
        choices=AnalysisRunStatus.choices,
        default=AnalysisRunStatus.PENDING,
        db_index=True,
    )
    input_summary = models.TextField(
        blank=True,
        default="",
        help_text="Prompt excerpt sent to the provider.",
    )

    hypotheses_count = models.PositiveIntegerField(default=0)
    dropped_count = models.PositiveIntegerField(
        default=0,
        help_text="Entries discarded for missing cause or out-of-range confidence.",
    )
    explanation = models.TextField(blank=True, default="")
    error_message = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    duration_ms = models.FloatField(default=0.0)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["provider", "status"]),
            models.Index(fields=["observation", "created_at"]),
        ]

    def __str__(self):
        return f"AnalysisRun {self.pk} {self.provider} [{self.status}]"

    def mark_started(self):
        self.status = AnalysisRunStatus.RUNNING
        self.started_at = timezone.now()
        self.save(update_fields=["status", "started_at"])

    def mark_succeeded(self, hypotheses_count: int, dropped_count: int = 0, explanation: str = ""):
        self.status = AnalysisRunStatus.SUCCEEDED
        self.hypotheses_count = hypotheses_count
        self.dropped_count = dropped_count
        self.explanation = explanation
        self._finish()
        self.save()

    def mark_failed(self, error_message: str):
        self.status = AnalysisRunStatus.FAILED
        self.error_message = error_message
        self._finish()
        self.save()

    def _finish(self):
        self.completed_at = timezone.now()
        if self.started_at:
            delta = self.completed_at - self.started_at
            self.duration_ms = delta.total_seconds() * 1000


class Hypothesis(models.Model):
    """A candidate root cause. Immutable once created."""

    observation = models.ForeignKey(
        "events.Observation",
        on_delete=models.PROTECT,
        related_name="hypotheses",
    )
    analysis_run = models.ForeignKey(
        AnalysisRun,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="hypotheses",
    )
    cause = models.TextField()
    confidence = models.FloatField()
    assumptions = models.JSONField(default=list, blank=True)
    category = models.CharField(
        max_length=30,
        choices=HypothesisCategory.choices,
        default=HypothesisCategory.UNKNOWN,
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-confidence", "id"]
        verbose_name_plural = "hypotheses"

    def __str__(self):
        return f"{self.cause[:60]} ({self.confidence:.2f})"

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise ValueError("Hypotheses are immutable once created")
        super().save(*args, **kwargs)
