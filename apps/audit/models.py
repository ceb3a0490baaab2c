"""
Append-only audit trail.

Every state transition in the pipeline (event claim, observation fold,
hypothesis generation, risk assessment, decision, approval, dispatch) writes
one AuditLogEntry. Rows are never updated or deleted.
"""

from django.db import models


class AuditActor(models.TextChoices):
    SYSTEM = "system", "System"
    HUMAN = "human", "Human"
    TOOL = "tool", "Tool"


class AuditLogImmutableError(Exception):
    """Raised when code tries to modify or delete an audit entry."""


class AuditLogQuerySet(models.QuerySet):
    def update(self, **kwargs):
        raise AuditLogImmutableError("Audit log entries cannot be updated.")

    def delete(self):
        raise AuditLogImmutableError("Audit log entries cannot be deleted.")

    def for_entity(self, entity_type: str, entity_id) -> "AuditLogQuerySet":
        return self.filter(entity_type=entity_type, entity_id=str(entity_id))


class AuditLogEntry(models.Model):
    """A single immutable state-transition record."""

    entity_type = models.CharField(max_length=50, db_index=True)
    entity_id = models.CharField(max_length=64, db_index=True)
    transition = models.CharField(max_length=100, db_index=True)
    actor = models.CharField(
        max_length=10,
        choices=AuditActor.choices,
        default=AuditActor.SYSTEM,
    )
    actor_name = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Operator username or tool/driver name.",
    )
    timestamp = models.DateTimeField(auto_now_add=True, db_index=True)
    detail = models.JSONField(default=dict, blank=True)

    objects = AuditLogQuerySet.as_manager()

    class Meta:
        ordering = ["timestamp", "id"]
        verbose_name_plural = "audit log entries"
        indexes = [
            models.Index(fields=["entity_type", "entity_id"]),
        ]

    def __str__(self):
        return f"{self.entity_type}:{self.entity_id} {self.transition} ({self.actor})"

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise AuditLogImmutableError("Audit log entries cannot be updated.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise AuditLogImmutableError("Audit log entries cannot be deleted.")
