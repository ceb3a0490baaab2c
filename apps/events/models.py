"""
Models for raw event storage and deduplicated observations.
"""

from django.db import models


class EventSource(models.TextChoices):
    TICKET = "ticket", "Support ticket"
    LOG = "log", "Log line"
    WEBHOOK = "webhook", "Webhook"
    MIGRATION_STATE = "migration_state", "Migration state"
    SIMULATION = "simulation", "Simulation"


# Sources accepted by the public ingest contract. Simulation events enter
# through the same ingestor but only when tagged with a simulation run.
PUBLIC_SOURCES = (
    EventSource.TICKET,
    EventSource.LOG,
    EventSource.WEBHOOK,
    EventSource.MIGRATION_STATE,
)


class RawEvent(models.Model):
    """
    An operational event exactly as it was received.

    ``processed`` flips false -> true once, when a pipeline tick claims the
    event. The fingerprint and observation link are filled in when the claimed
    event is folded into an Observation.
    """

    source = models.CharField(max_length=20, choices=EventSource.choices, db_index=True)
    payload = models.JSONField(default=dict)
    fingerprint = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        db_index=True,
        help_text="Dedup key; null until the event is folded into an observation.",
    )
    merchant_id = models.CharField(max_length=255, blank=True, default="", db_index=True)
    processed = models.BooleanField(default=False, db_index=True)
    claimed_at = models.DateTimeField(null=True, blank=True)
    observation = models.ForeignKey(
        "events.Observation",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="events",
    )
    simulation_run = models.ForeignKey(
        "simulation.SimulationRun",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="events",
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["processed", "created_at"]),
        ]

    def __str__(self):
        return f"RawEvent {self.pk} [{self.source}]"


class Observation(models.Model):
    """
    Deduplicated aggregate of raw events sharing one fingerprint.

    Exactly one row exists per fingerprint; the unique constraint is what
    concurrent builders race against.
    """

    fingerprint = models.CharField(max_length=64, unique=True)
    summary = models.TextField(blank=True, default="")
    error_code = models.CharField(max_length=255, blank=True, default="")
    endpoint = models.CharField(max_length=255, blank=True, default="")
    merchant_tier = models.CharField(max_length=50, blank=True, default="")
    event_count = models.PositiveIntegerField(default=1)
    first_seen_at = models.DateTimeField()
    last_seen_at = models.DateTimeField(db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-last_seen_at"]

    def __str__(self):
        return f"{self.fingerprint} x{self.event_count}"

    @property
    def event_ids(self) -> list[int]:
        return list(self.events.order_by("id").values_list("id", flat=True))

    def affected_merchants(self) -> list[str]:
        merchants = (
            self.events.exclude(merchant_id="")
            .values_list("merchant_id", flat=True)
            .distinct()
        )
        return sorted(set(merchants))

    def has_source(self, source: str) -> bool:
        return self.events.filter(source=source).exists()
