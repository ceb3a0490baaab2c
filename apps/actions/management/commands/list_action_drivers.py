"""
Management command to list action drivers and the channels routing to them.

Usage:
    python manage.py list_action_drivers
    python manage.py list_action_drivers --verbose
    python manage.py list_action_drivers --json
"""

import json

from django.core.management.base import BaseCommand

from apps.actions.drivers import DRIVER_REGISTRY
from apps.actions.models import ActionChannel

DRIVER_INFO = {
    "pagerduty": {
        "description": "Trigger incidents through the PagerDuty Events API v2",
        "required_config": ["integration_key"],
        "optional_config": ["client", "client_url", "source", "events_url", "timeout"],
    },
    "ticket": {
        "description": "File tickets through a tracker HTTP endpoint",
        "required_config": ["endpoint"],
        "optional_config": ["headers", "project", "labels", "method", "timeout"],
    },
    "email": {
        "description": "Send the rendered action over SMTP",
        "required_config": ["smtp_host", "from_address"],
        "optional_config": ["smtp_port", "use_tls", "use_ssl", "username", "password", "to_addresses"],
    },
    "local": {
        "description": "Record the action locally and issue a reference id",
        "required_config": [],
        "optional_config": [],
    },
}


class Command(BaseCommand):
    help = "List available action drivers, the kinds they handle and configured channels"

    def add_arguments(self, parser):
        parser.add_argument(
            "--verbose",
            action="store_true",
            help="Show detailed configuration requirements",
        )
        parser.add_argument("--json", action="store_true", help="Output as JSON")

    def handle(self, *args, **options):
        verbose = options.get("verbose", False)
        channels = list(ActionChannel.objects.filter(is_active=True).order_by("priority", "name"))

        drivers = []
        for name, driver_class in DRIVER_REGISTRY.items():
            info = DRIVER_INFO.get(name, {})
            drivers.append(
                {
                    "name": name,
                    "description": info.get("description", ""),
                    "kinds": list(driver_class.supported_kinds),
                    "required_config": info.get("required_config", []),
                    "optional_config": info.get("optional_config", []),
                    "channels": [c.name for c in channels if c.driver == name],
                }
            )

        if options.get("json"):
            self.stdout.write(json.dumps(drivers, indent=2))
            return

        self.stdout.write(self.style.SUCCESS("Available Action Drivers"))
        self.stdout.write("-" * 60)

        for driver in drivers:
            self.stdout.write(f"\n{self.style.WARNING(driver['name'])}")
            self.stdout.write(f"  {driver['description']}")
            self.stdout.write(f"  Kinds: {', '.join(driver['kinds'])}")
            self.stdout.write(f"  Active channels: {', '.join(driver['channels']) or 'none'}")

            if verbose:
                if driver["required_config"]:
                    self.stdout.write("  Required config:")
                    for key in driver["required_config"]:
                        self.stdout.write(f"    - {key}")
                else:
                    self.stdout.write("  Required config: none")

                if driver["optional_config"]:
                    self.stdout.write("  Optional config:")
                    for key in driver["optional_config"]:
                        self.stdout.write(f"    - {key}")

        self.stdout.write("\n" + "-" * 60)
