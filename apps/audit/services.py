"""Audit logging service shared by every pipeline stage."""

import logging
from typing import Any

from django.db import models

from apps.audit.models import AuditActor, AuditLogEntry

logger = logging.getLogger(__name__)


class AuditLogger:
    """Writes immutable audit records for entity state transitions."""

    @staticmethod
    def record(
        entity: models.Model | None = None,
        transition: str = "",
        *,
        entity_type: str | None = None,
        entity_id: Any = None,
        actor: str = AuditActor.SYSTEM,
        actor_name: str = "",
        detail: dict[str, Any] | None = None,
    ) -> AuditLogEntry:
        """
        Append an audit entry.

        Either pass a model instance as ``entity`` or give ``entity_type`` and
        ``entity_id`` explicitly. The entity type defaults to the model's lower-case name
        (e.g. ``rawevent``, ``decision``).
        """
        if entity is not None:
            entity_type = entity_type or entity._meta.model_name
            entity_id = entity.pk if entity_id is None else entity_id
        if not entity_type or entity_id is None:
            raise ValueError("Audit entries need an entity type and id")

        entry = AuditLogEntry.objects.create(
            entity_type=entity_type,
            entity_id=str(entity_id),
            transition=transition,
            actor=actor,
            actor_name=actor_name,
            detail=detail or {},
        )
        logger.debug(f"Audit {entity_type}:{entity_id} {transition} by {actor}")
        return entry

    @staticmethod
    def trail(entity_type: str, entity_id: Any) -> list[AuditLogEntry]:
        """Return the full ordered trail for one entity."""
        return list(AuditLogEntry.objects.for_entity(entity_type, entity_id))
