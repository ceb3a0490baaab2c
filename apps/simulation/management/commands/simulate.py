"""
Management command to run a simulation batch.

Usage:
    python manage.py simulate
    python manage.py simulate --error-type checkout_failure --error-type webhook_failure \
        --risk-profile high --events 40 --merchants 8
    python manage.py simulate --seed 42 --no-tick --json
"""

import json

from django.core.management.base import BaseCommand, CommandError
from django.db import DatabaseError

from apps.simulation.generator import (
    DEFAULT_EVENT_COUNT,
    DEFAULT_MERCHANT_COUNT,
    ERROR_TYPES,
    RISK_PROFILES,
)
from apps.simulation.services import SimulationConfigError, SimulationRequest, SimulationRunner


class Command(BaseCommand):
    help = "Generate synthetic events through the ingest path and optionally run a tick"

    def add_arguments(self, parser):
        parser.add_argument(
            "--error-type",
            action="append",
            choices=ERROR_TYPES,
            dest="error_types",
            help="Error type to simulate (repeatable, default: checkout_failure)",
        )
        parser.add_argument(
            "--risk-profile",
            action="append",
            choices=RISK_PROFILES,
            dest="risk_profiles",
            help="Risk profile (repeatable, default: medium)",
        )
        parser.add_argument("--events", type=int, default=DEFAULT_EVENT_COUNT)
        parser.add_argument("--merchants", type=int, default=DEFAULT_MERCHANT_COUNT)
        parser.add_argument("--seed", type=int, help="Seed for reproducible batches")
        parser.add_argument(
            "--no-tick",
            action="store_true",
            help="Do not run a pipeline tick after ingesting",
        )
        parser.add_argument("--json", action="store_true", help="Output result as JSON")

    def handle(self, *args, **options):
        try:
            request = SimulationRequest.from_dict(
                {
                    "errorTypes": options["error_types"],
                    "riskProfiles": options["risk_profiles"],
                    "eventCount": options["events"],
                    "merchantCount": options["merchants"],
                    "autoTriggerAgent": not options["no_tick"],
                    "seed": options["seed"],
                }
            )
            result = SimulationRunner().run(request)
        except SimulationConfigError as e:
            raise CommandError(str(e))
        except DatabaseError as e:
            raise CommandError(f"Simulation failed: {e}")

        if options["json"]:
            self.stdout.write(json.dumps(result.to_dict(), indent=2, default=str))
            return

        self.stdout.write(self.style.SUCCESS(f"Simulation {result.run_id} complete"))
        self.stdout.write(f"  Events generated:   {result.events_generated}")
        self.stdout.write(f"  Merchants affected: {result.merchants_affected}")
        self.stdout.write(f"  Error types:        {', '.join(result.error_types)}")
        self.stdout.write(f"  Risk profiles:      {', '.join(result.risk_profiles)}")
        loop = result.agent_loop
        if loop.get("triggered"):
            self.stdout.write(f"  Tick {loop['run_id']}: {loop['processed']} observation(s) processed")
        elif "error" in loop:
            self.stdout.write(self.style.WARNING(f"  Tick failed: {loop['error']}"))
