"""
Management command to run one pipeline tick.

Usage:
    python manage.py run_tick
    python manage.py run_tick --json
"""

import json

from django.core.management.base import BaseCommand

from apps.orchestration.models import PipelineTrigger
from apps.orchestration.orchestrator import PipelineOrchestrator


class Command(BaseCommand):
    help = "Claim pending raw events and walk their observations through the pipeline"

    def add_arguments(self, parser):
        parser.add_argument("--json", action="store_true", help="Output as JSON")

    def handle(self, *args, **options):
        result = PipelineOrchestrator().run_tick(trigger=PipelineTrigger.MANUAL)

        if options.get("json"):
            self.stdout.write(json.dumps(result.to_dict(), indent=2, default=str))
            return

        self.stdout.write(f"Tick {result.run_id} [{result.status}]")
        self.stdout.write(
            f"  Events claimed: {result.events_claimed} "
            f"(reclaimed {result.events_reclaimed}, folded {result.events_folded})"
        )
        self.stdout.write(f"  Observations processed: {result.observations_processed}")
        self.stdout.write(f"  Decisions created: {result.decisions_created}")
        self.stdout.write(f"  Actions dispatched: {result.actions_dispatched}")
        self.stdout.write(f"  Approvals requested: {result.approvals_requested}")

        for outcome in result.observations:
            if outcome.error:
                continue
            line = f"    - {outcome.fingerprint}: {outcome.severity} ({outcome.score})"
            if outcome.deferred:
                line += " deferred"
            elif outcome.action_kind:
                line += f" -> {outcome.action_kind}"
                if outcome.action_result:
                    ref = outcome.action_result.get("reference_id") or outcome.action_result.get("error")
                    line += f" [{ref}]"
                elif outcome.requires_approval:
                    line += " (awaiting approval)"
            self.stdout.write(line)

        if result.has_errors:
            self.stdout.write(self.style.ERROR(f"  Errors ({len(result.errors)}):"))
            for error in result.errors:
                target = f" observation {error.observation_id}" if error.observation_id else ""
                self.stdout.write(f"    - {error.stage}{target}: {error.error_type}: {error.message}")
        else:
            self.stdout.write(self.style.SUCCESS("  No errors"))
