"""
Models for pipeline orchestration.

Provides persistent state tracking for pipeline ticks, the per-observation
stage executions inside them, and the learnings each processed observation
leaves behind.
"""

import uuid

from django.db import models
from django.utils import timezone


def generate_tick_id() -> str:
    return f"tick_{uuid.uuid4().hex[:16]}"


class PipelineStage(models.TextChoices):
    """Pipeline stages in execution order."""

    CLAIM = "claim", "Claim"
    FOLD = "fold", "Fold"
    HYPOTHESIZE = "hypothesize", "Hypothesize"
    ASSESS = "assess", "Assess"
    DECIDE = "decide", "Decide"
    ACT = "act", "Act"
    LEARN = "learn", "Learn"


class PipelineStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    RUNNING = "running", "Running"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"


class PipelineTrigger(models.TextChoices):
    MANUAL = "manual", "Manual"
    SCHEDULED = "scheduled", "Scheduled"
    API = "api", "API"
    SIMULATION = "simulation", "Simulation"


class StageStatus(models.TextChoices):
    """Status for individual stage executions."""

    PENDING = "pending", "Pending"
    RUNNING = "running", "Running"
    SUCCEEDED = "succeeded", "Succeeded"
    FAILED = "failed", "Failed"
    SKIPPED = "skipped", "Skipped"


class PipelineRun(models.Model):
    """
    One pipeline tick.

    A tick claims pending raw events, folds them into observations and walks
    every touched observation through hypothesize, assess, decide and act.
    Counters are written once, when the tick finishes.
    """

    run_id = models.CharField(
        max_length=64,
        unique=True,
        default=generate_tick_id,
        help_text="Unique ID for this tick.",
    )
    trace_id = models.CharField(
        max_length=64,
        db_index=True,
        blank=True,
        default="",
        help_text="Correlation ID for logs and signals.",
    )
    trigger = models.CharField(
        max_length=20,
        choices=PipelineTrigger.choices,
        default=PipelineTrigger.MANUAL,
        db_index=True,
    )
    status = models.CharField(
        max_length=20,
        choices=PipelineStatus.choices,
        default=PipelineStatus.PENDING,
        db_index=True,
    )
    current_stage = models.CharField(
        max_length=20,
        choices=PipelineStage.choices,
        blank=True,
        default="",
        help_text="Current/last stage being executed.",
    )
    simulation_run = models.ForeignKey(
        "simulation.SimulationRun",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="pipeline_runs",
        help_text="Simulation that triggered this tick, if any.",
    )

    # Counters
    events_claimed = models.PositiveIntegerField(default=0)
    events_reclaimed = models.PositiveIntegerField(default=0)
    events_folded = models.PositiveIntegerField(default=0)
    observations_processed = models.PositiveIntegerField(default=0)
    observations_failed = models.PositiveIntegerField(default=0)
    decisions_created = models.PositiveIntegerField(default=0)
    actions_dispatched = models.PositiveIntegerField(default=0)
    approvals_requested = models.PositiveIntegerField(default=0)

    # Error tracking
    last_error_type = models.CharField(max_length=255, blank=True, default="")
    last_error_message = models.TextField(blank=True, default="")

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    total_duration_ms = models.FloatField(default=0.0)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "created_at"]),
        ]

    def __str__(self):
        return f"Tick {self.run_id} [{self.status}]"

    def mark_started(self):
        self.status = PipelineStatus.RUNNING
        self.started_at = timezone.now()
        self.save(update_fields=["status", "started_at", "updated_at"])

    def advance_to(self, stage: str):
        self.current_stage = stage
        self.save(update_fields=["current_stage", "updated_at"])

    def _finish(self, status: str):
        self.status = status
        self.completed_at = timezone.now()
        if self.started_at:
            delta = self.completed_at - self.started_at
            self.total_duration_ms = delta.total_seconds() * 1000

    def mark_completed(self, **counters):
        """Mark the tick completed and store its counters."""
        for name, value in counters.items():
            setattr(self, name, value)
        self._finish(PipelineStatus.COMPLETED)
        self.save()

    def mark_failed(self, error_type: str, message: str, **counters):
        for name, value in counters.items():
            setattr(self, name, value)
        self.last_error_type = error_type
        self.last_error_message = message
        self._finish(PipelineStatus.FAILED)
        self.save()


class StageExecution(models.Model):
    """
    One stage of one tick, usually for one observation.

    Claim and fold stages run once per tick and carry no observation.
    """

    pipeline_run = models.ForeignKey(
        PipelineRun,
        on_delete=models.CASCADE,
        related_name="stage_executions",
    )
    stage = models.CharField(max_length=20, choices=PipelineStage.choices, db_index=True)
    status = models.CharField(
        max_length=20,
        choices=StageStatus.choices,
        default=StageStatus.PENDING,
        db_index=True,
    )
    observation = models.ForeignKey(
        "events.Observation",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stage_executions",
    )
    idempotency_key = models.CharField(
        max_length=255,
        blank=True,
        default="",
        db_index=True,
        help_text="<run_id>:<stage>[:<observation_id>]",
    )
    output_snapshot = models.JSONField(
        default=dict,
        blank=True,
        help_text="Small summary of the stage output.",
    )

    # Error tracking
    error_type = models.CharField(max_length=255, blank=True, default="")
    error_message = models.TextField(blank=True, default="")
    error_stack = models.TextField(blank=True, default="")

    # Timestamps
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    duration_ms = models.FloatField(default=0.0)

    class Meta:
        ordering = ["pipeline_run", "started_at", "id"]
        indexes = [
            models.Index(fields=["pipeline_run", "stage"]),
            models.Index(fields=["stage", "status"]),
        ]

    def __str__(self):
        target = f" obs {self.observation_id}" if self.observation_id else ""
        return f"{self.pipeline_run.run_id} / {self.stage}{target} [{self.status}]"

    def mark_started(self):
        self.status = StageStatus.RUNNING
        self.started_at = timezone.now()
        self.save(update_fields=["status", "started_at"])

    def _finish(self, status: str):
        self.status = status
        self.completed_at = timezone.now()
        if self.started_at:
            delta = self.completed_at - self.started_at
            self.duration_ms = delta.total_seconds() * 1000

    def mark_succeeded(self, output_snapshot: dict | None = None):
        self._finish(StageStatus.SUCCEEDED)
        if output_snapshot:
            self.output_snapshot = output_snapshot
        self.save(update_fields=["status", "completed_at", "duration_ms", "output_snapshot"])

    def mark_failed(self, error_type: str, error_message: str, error_stack: str = ""):
        self._finish(StageStatus.FAILED)
        self.error_type = error_type
        self.error_message = error_message
        self.error_stack = error_stack
        self.save(
            update_fields=[
                "status",
                "completed_at",
                "duration_ms",
                "error_type",
                "error_message",
                "error_stack",
            ]
        )

    def mark_skipped(self, reason: str = ""):
        self._finish(StageStatus.SKIPPED)
        if reason:
            self.error_message = f"Skipped: {reason}"
        self.save(update_fields=["status", "completed_at", "duration_ms", "error_message"])


class LearningType(models.TextChoices):
    PATTERN_DETECTED = "pattern_detected", "Pattern detected"
    CLASSIFICATION_MADE = "classification_made", "Classification made"
    TREND_IDENTIFIED = "trend_identified", "Trend identified"
    KNOWLEDGE_ENTRY = "knowledge_entry", "Knowledge entry"


class Learning(models.Model):
    """What a tick concluded about one observation."""

    pipeline_run = models.ForeignKey(
        PipelineRun,
        on_delete=models.CASCADE,
        related_name="learnings",
    )
    observation = models.ForeignKey(
        "events.Observation",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="learnings",
    )
    simulation_run = models.ForeignKey(
        "simulation.SimulationRun",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="learnings",
    )
    learning_type = models.CharField(
        max_length=30, choices=LearningType.choices, default=LearningType.KNOWLEDGE_ENTRY
    )
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    confidence = models.FloatField(default=0.0)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return self.title
