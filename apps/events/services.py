"""
Event ingestion and deduplication services.

EventIngestor is the single entry point for new raw events (HTTP ingest and
the simulation harness both call it). ObservationBuilder claims unprocessed
events and folds them into one Observation per fingerprint.
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import DateTimeField, F, Value
from django.db.models.functions import Greatest
from django.utils import timezone

from apps.audit.services import AuditLogger
from apps.events.drivers import ParsedEvent, get_driver
from apps.events.models import EventSource, Observation, RawEvent

logger = logging.getLogger(__name__)


class IngestValidationError(ValueError):
    """Raised when an ingest request is malformed. Nothing is persisted."""


class EventAlreadyFolded(Exception):
    """Raised when a raw event is already linked to an observation."""

    def __init__(self, raw_event_id: int, observation: Observation | None = None):
        super().__init__(f"Raw event {raw_event_id} is already folded")
        self.raw_event_id = raw_event_id
        self.observation = observation


@dataclass
class FoldResult:
    """Result of folding a batch of claimed events into observations."""

    events_folded: int = 0
    observations_created: int = 0
    observations_merged: int = 0
    observations: list[Observation] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0


class EventIngestor:
    """Validates and persists raw events."""

    def ingest(self, source: Any, payload: Any, simulation_run=None) -> RawEvent:
        """
        Persist one raw event with ``processed=False``.

        Raises:
            IngestValidationError: unknown source, missing or non-object payload,
                or a simulation event without a simulation run.
        """
        if not source:
            raise IngestValidationError("Missing required field: source")
        if source not in EventSource.values:
            raise IngestValidationError(
                f"Unknown source: {source}. Expected one of: "
                f"{', '.join(s for s in EventSource.values if s != EventSource.SIMULATION)}"
            )
        if source == EventSource.SIMULATION and simulation_run is None:
            raise IngestValidationError("Simulation events must be tagged with a simulation run")
        if payload is None:
            raise IngestValidationError("Missing required field: payload")

        driver = get_driver(source)
        if not driver.validate(payload):
            raise IngestValidationError("Field 'payload' must be a JSON object")

        parsed = driver.parse(payload)
        raw_event = RawEvent.objects.create(
            source=source,
            payload=payload,
            merchant_id=parsed.merchant_id,
            simulation_run=simulation_run,
        )
        AuditLogger.record(
            raw_event,
            "ingested",
            detail={
                "source": source,
                "simulation_run_id": getattr(simulation_run, "run_id", None),
            },
        )
        logger.info(f"Ingested raw event {raw_event.pk} from {source}")
        return raw_event


class ObservationBuilder:
    """
    Claims raw events and folds them into observations.

    The claim is a conditional update (``processed=False -> True``) per row,
    so concurrent ticks partition the backlog without locks. The observation
    upsert relies on the unique fingerprint: the loser of a creation race hits
    IntegrityError and merges instead.
    """

    def __init__(self, batch_size: int | None = None, stale_seconds: int | None = None):
        self.batch_size = batch_size or getattr(settings, "PIPELINE_CLAIM_BATCH_SIZE", 50)
        self.stale_seconds = (
            stale_seconds
            if stale_seconds is not None
            else getattr(settings, "PIPELINE_CLAIM_STALE_SECONDS", 600)
        )

    def claim_pending(self, limit: int | None = None) -> list[RawEvent]:
        """Atomically claim up to ``limit`` unprocessed events, oldest first."""
        limit = limit or self.batch_size
        candidate_ids = list(
            RawEvent.objects.filter(processed=False)
            .order_by("created_at", "id")
            .values_list("id", flat=True)[:limit]
        )

        claimed_ids = []
        for event_id in candidate_ids:
            now = timezone.now()
            updated = RawEvent.objects.filter(pk=event_id, processed=False).update(
                processed=True, claimed_at=now
            )
            if updated == 1:
                claimed_ids.append(event_id)
                AuditLogger.record(entity_type="rawevent", entity_id=event_id, transition="claimed")

        if len(claimed_ids) < len(candidate_ids):
            logger.info(
                f"Claimed {len(claimed_ids)}/{len(candidate_ids)} events "
                "(others taken by a concurrent tick)"
            )
        return list(RawEvent.objects.filter(pk__in=claimed_ids).order_by("created_at", "id"))

    def reclaim_stale(self, limit: int | None = None) -> list[RawEvent]:
        """
        Re-claim events that were claimed but never folded.

        A tick that died between claim and fold leaves ``processed=True`` with
        no observation. After ``stale_seconds`` another tick takes them over by
        compare-and-set on ``claimed_at``.
        """
        limit = limit or self.batch_size
        cutoff = timezone.now() - timedelta(seconds=self.stale_seconds)
        stale = list(
            RawEvent.objects.filter(
                processed=True, observation__isnull=True, claimed_at__lt=cutoff
            ).order_by("claimed_at", "id")[:limit]
        )

        reclaimed = []
        for event in stale:
            now = timezone.now()
            updated = RawEvent.objects.filter(
                pk=event.pk, observation__isnull=True, claimed_at=event.claimed_at
            ).update(claimed_at=now)
            if updated == 1:
                event.claimed_at = now
                reclaimed.append(event)
                AuditLogger.record(event, "reclaimed", detail={"stale_after_s": self.stale_seconds})

        if reclaimed:
            logger.warning(f"Reclaimed {len(reclaimed)} stale claimed events")
        return reclaimed

    def build_observation(self, raw_event: RawEvent) -> Observation:
        """
        Fold one claimed raw event into the observation for its fingerprint.

        Already-folded events return their observation unchanged.
        """
        try:
            return self._fold_event(raw_event)[0]
        except EventAlreadyFolded as e:
            return e.observation

    def _fold_event(self, raw_event: RawEvent) -> tuple[Observation, bool]:
        if raw_event.observation_id is not None:
            raise EventAlreadyFolded(raw_event.pk, raw_event.observation)

        parsed = get_driver(raw_event.source).parse(raw_event.payload or {})
        fp = parsed.fingerprint
        seen_at = raw_event.created_at or timezone.now()

        try:
            with transaction.atomic():
                observation, created = self._upsert(fp, parsed, seen_at)
                # The link is the fold marker. Another claimant may have folded
                # this row since it was loaded; undo the merge if so.
                linked = RawEvent.objects.filter(pk=raw_event.pk, observation__isnull=True).update(
                    fingerprint=fp, observation=observation
                )
                if linked == 0:
                    raise EventAlreadyFolded(raw_event.pk)
        except EventAlreadyFolded as e:
            current = RawEvent.objects.select_related("observation").get(pk=raw_event.pk)
            raw_event.fingerprint = current.fingerprint
            raw_event.observation = current.observation
            logger.info(f"Raw event {raw_event.pk} already folded elsewhere, skipping")
            raise EventAlreadyFolded(e.raw_event_id, current.observation) from None

        raw_event.fingerprint = fp
        raw_event.observation = observation

        AuditLogger.record(
            observation,
            "observation_created" if created else "observation_merged",
            detail={"raw_event_id": raw_event.pk, "event_count": observation.event_count},
        )
        return observation, created

    def _upsert(self, fp: str, parsed: ParsedEvent, seen_at) -> tuple[Observation, bool]:
        if self._find_existing(fp) is None:
            try:
                with transaction.atomic():
                    observation = Observation.objects.create(
                        fingerprint=fp,
                        summary=parsed.summary(),
                        error_code=parsed.error_code,
                        endpoint=parsed.endpoint,
                        merchant_tier=parsed.merchant_tier,
                        event_count=1,
                        first_seen_at=seen_at,
                        last_seen_at=seen_at,
                    )
                return observation, True
            except IntegrityError:
                logger.info(f"Observation {fp} created concurrently, merging instead")
        return self._merge(fp, parsed, seen_at), False

    def fold(self, events: list[RawEvent]) -> FoldResult:
        """Fold claimed events; one failing event does not stop the batch."""
        result = FoldResult()
        seen: dict[int, Observation] = {}

        for event in events:
            try:
                observation, created = self._fold_event(event)
            except EventAlreadyFolded:
                continue
            except Exception as e:
                logger.exception(f"Failed to fold raw event {event.pk}")
                result.errors.append(f"rawevent {event.pk}: {e}")
                AuditLogger.record(event, "fold_failed", detail={"error": str(e)})
                continue

            result.events_folded += 1
            if created:
                result.observations_created += 1
            else:
                result.observations_merged += 1
            seen[observation.pk] = observation

        # Re-read so callers see counts including merges from this batch.
        result.observations = list(Observation.objects.filter(pk__in=seen).order_by("id"))
        return result

    def _find_existing(self, fp: str) -> Observation | None:
        return Observation.objects.filter(fingerprint=fp).first()

    def _merge(self, fp: str, parsed: ParsedEvent, seen_at) -> Observation:
        Observation.objects.filter(fingerprint=fp).update(
            event_count=F("event_count") + 1,
            last_seen_at=Greatest(F("last_seen_at"), Value(seen_at, output_field=DateTimeField())),
            summary=parsed.summary(),
            updated_at=timezone.now(),
        )
        return Observation.objects.get(fingerprint=fp)
