"""
Expire decisions that waited too long for approval.

Usage:
    python manage.py expire_approvals
    python manage.py expire_approvals --hours 4
    python manage.py expire_approvals --json
"""

import json

from django.core.management.base import BaseCommand

from apps.decisions.approvals import ApprovalGate


class Command(BaseCommand):
    help = "Expire decisions pending approval past the configured timeout"

    def add_arguments(self, parser):
        parser.add_argument(
            "--hours",
            type=float,
            help="Override APPROVAL_TIMEOUT_HOURS for this sweep",
        )
        parser.add_argument("--json", action="store_true", help="Output as JSON")

    def handle(self, *args, **options):
        gate = ApprovalGate(timeout_hours=options.get("hours"))
        expired = gate.expire_stale()

        if options.get("json"):
            self.stdout.write(
                json.dumps(
                    {
                        "expired": len(expired),
                        "timeout_hours": gate.timeout_hours,
                        "decisions": [
                            {"id": d.pk, "action_kind": d.action_kind} for d in expired
                        ],
                    },
                    indent=2,
                )
            )
            return

        if not expired:
            self.stdout.write("No decisions past the approval timeout.")
            return

        self.stdout.write(
            self.style.WARNING(
                f"Expired {len(expired)} decision(s) older than {gate.timeout_hours}h; "
                "review them manually:"
            )
        )
        for decision in expired:
            self.stdout.write(f"  - Decision {decision.pk}: {decision.action_kind}")
