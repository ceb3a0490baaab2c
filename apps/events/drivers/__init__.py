"""
Event source drivers.
"""

from apps.events.drivers.base import BaseEventDriver, ParsedEvent
from apps.events.drivers.log import LogDriver
from apps.events.drivers.migration import MigrationStateDriver
from apps.events.drivers.simulation import SimulationDriver
from apps.events.drivers.ticket import TicketDriver
from apps.events.drivers.webhook import WebhookDriver

__all__ = [
    "BaseEventDriver",
    "ParsedEvent",
    "LogDriver",
    "MigrationStateDriver",
    "SimulationDriver",
    "TicketDriver",
    "WebhookDriver",
    "DRIVER_REGISTRY",
    "get_driver",
]

DRIVER_REGISTRY: dict[str, type[BaseEventDriver]] = {
    "ticket": TicketDriver,
    "log": LogDriver,
    "webhook": WebhookDriver,
    "migration_state": MigrationStateDriver,
    "simulation": SimulationDriver,
}


def get_driver(source: str) -> BaseEventDriver:
    """
    Get a driver instance for an event source.

    Raises:
        ValueError: If the source is not known.
    """
    if source not in DRIVER_REGISTRY:
        raise ValueError(
            f"Unknown event source: {source}. Available: {', '.join(DRIVER_REGISTRY.keys())}"
        )
    return DRIVER_REGISTRY[source]()
