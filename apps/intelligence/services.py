"""
Hypothesis generation service.

Reasoning is a soft dependency: ``HypothesisGenerator.generate`` returns None
on any failure (disabled, missing credential, timeout, malformed response)
and the pipeline carries on with deterministic risk signals only.
"""

import concurrent.futures
import logging
from typing import Callable

from django.conf import settings
from django.db import transaction

from apps.audit.services import AuditLogger
from apps.events.models import Observation
from apps.intelligence.models import AnalysisRun, Hypothesis
from apps.intelligence.providers import (
    BaseReasoningProvider,
    ObservationSnapshot,
    ReasoningError,
    ReasoningResult,
    get_configured_provider,
)

logger = logging.getLogger(__name__)


def call_with_timeout(func: Callable, timeout: float, *args, **kwargs):
    """Run ``func`` in a worker thread; raise TimeoutError when it overruns."""
    ex = concurrent.futures.ThreadPoolExecutor(max_workers=1)
    fut = ex.submit(func, *args, **kwargs)
    try:
        return fut.result(timeout=timeout)
    except concurrent.futures.TimeoutError:
        fut.cancel()
        raise TimeoutError(f"call exceeded {timeout}s") from None
    finally:
        # Do not block the tick on a hung provider call.
        ex.shutdown(wait=False)


class HypothesisGenerator:
    """Invokes the reasoning capability for one observation at a time."""

    def __init__(
        self,
        provider: BaseReasoningProvider | None = None,
        timeout_s: float | None = None,
    ):
        self.config_error = ""
        if provider is None:
            try:
                provider = get_configured_provider()
            except KeyError as e:
                # Unknown REASONING_PROVIDER: reasoning is unavailable, not fatal.
                self.config_error = str(e.args[0]) if e.args else str(e)
                logger.warning(f"Reasoning provider misconfigured: {self.config_error}")
        self.provider = provider
        self.timeout_s = timeout_s or getattr(settings, "REASONING_TIMEOUT_SECONDS", 30)

    def generate(self, observation: Observation, pipeline_run_id: str = "") -> list[Hypothesis] | None:
        """
        Generate and persist hypotheses for ``observation``.

        Returns the created Hypothesis rows (possibly empty when every entry
        was dropped), or None when the capability is unavailable or failed.
        """
        if self.provider is None:
            self._unavailable(observation, self.config_error or "reasoning provider disabled")
            return None
        if not self.provider.is_configured():
            self._unavailable(observation, f"{self.provider.name}: missing credentials")
            return None

        snapshot = ObservationSnapshot.from_observation(observation)
        analysis_run = self._create_analysis_run(observation, snapshot, pipeline_run_id)

        try:
            result: ReasoningResult = call_with_timeout(
                self.provider.reason, self.timeout_s, snapshot
            )
        except (ReasoningError, TimeoutError) as e:
            self._fail(observation, analysis_run, str(e))
            return None
        except Exception as e:
            logger.exception(f"Unexpected reasoning failure for observation {observation.pk}")
            self._fail(observation, analysis_run, f"{type(e).__name__}: {e}")
            return None

        hypotheses = [
            Hypothesis.objects.create(
                observation=observation,
                analysis_run=analysis_run,
                cause=candidate.cause,
                confidence=candidate.confidence,
                assumptions=candidate.assumptions,
                category=candidate.category,
            )
            for candidate in result.hypotheses
        ]

        if analysis_run is not None:
            try:
                with transaction.atomic():
                    analysis_run.mark_succeeded(
                        hypotheses_count=len(hypotheses),
                        dropped_count=result.dropped,
                        explanation=result.explanation,
                    )
            except Exception:
                logger.warning(
                    "Failed to mark AnalysisRun as succeeded for provider=%s",
                    self.provider.name,
                    exc_info=True,
                )

        AuditLogger.record(
            observation,
            "hypotheses_generated",
            detail={
                "provider": self.provider.name,
                "count": len(hypotheses),
                "dropped": result.dropped,
                "hypothesis_ids": [h.pk for h in hypotheses],
            },
        )
        logger.info(
            f"Generated {len(hypotheses)} hypotheses for observation {observation.pk} "
            f"via {self.provider.name} ({result.dropped} dropped)"
        )
        return hypotheses

    def _create_analysis_run(
        self, observation: Observation, snapshot: ObservationSnapshot, pipeline_run_id: str
    ) -> AnalysisRun | None:
        """Create the AnalysisRun record. Returns None on DB failure."""
        provider = self.provider
        try:
            with transaction.atomic():
                run = AnalysisRun.objects.create(
                    observation=observation,
                    pipeline_run_id=pipeline_run_id,
                    provider=provider.name,
                    provider_config=provider._redact_config(provider.get_config()),
                    model_name=getattr(provider, "model", "") or "",
                    input_summary=provider.describe_input(snapshot)[:2000],
                )
                run.mark_started()
            return run
        except Exception:
            logger.warning(
                "Failed to create AnalysisRun for provider=%s", provider.name, exc_info=True
            )
            return None

    def _fail(self, observation: Observation, analysis_run: AnalysisRun | None, message: str):
        logger.warning(
            f"Reasoning failed for observation {observation.pk} "
            f"(provider={self.provider.name}): {message}"
        )
        if analysis_run is not None:
            try:
                with transaction.atomic():
                    analysis_run.mark_failed(message)
            except Exception:
                logger.warning("Failed to mark AnalysisRun as failed", exc_info=True)
        AuditLogger.record(
            observation,
            "hypotheses_unavailable",
            detail={"provider": self.provider.name, "error": message},
        )

    def _unavailable(self, observation: Observation, reason: str):
        logger.warning(f"Reasoning unavailable for observation {observation.pk}: {reason}")
        AuditLogger.record(observation, "hypotheses_unavailable", detail={"error": reason})
