"""
Management command to delete the raw events of simulation runs.

Usage:
    python manage.py cleanup_simulation sim_lq3k2x_a8f3d1
    python manage.py cleanup_simulation --all
"""

from django.core.management.base import BaseCommand, CommandError

from apps.simulation.models import SimulationRun, SimulationRunStatus
from apps.simulation.services import SimulationRunner


class Command(BaseCommand):
    help = "Delete the raw events produced by simulation runs"

    def add_arguments(self, parser):
        parser.add_argument("run_ids", nargs="*", help="Simulation run ids to clean up")
        parser.add_argument(
            "--all",
            action="store_true",
            help="Clean up every run that still has events",
        )

    def handle(self, *args, **options):
        run_ids = options["run_ids"]
        if options["all"]:
            run_ids = list(
                SimulationRun.objects.exclude(status=SimulationRunStatus.CLEANED).values_list(
                    "run_id", flat=True
                )
            )
        if not run_ids:
            raise CommandError("Pass one or more run ids, or --all")

        runner = SimulationRunner()
        total = 0
        for run_id in run_ids:
            try:
                deleted = runner.cleanup(run_id)
            except SimulationRun.DoesNotExist:
                self.stderr.write(self.style.ERROR(f"Unknown simulation run: {run_id}"))
                continue
            total += deleted
            self.stdout.write(f"  {run_id}: {deleted} event(s) deleted")

        self.stdout.write(self.style.SUCCESS(f"Deleted {total} event(s)"))
