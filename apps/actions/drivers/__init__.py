"""
Action drivers for executing decisions against downstream tools.
"""

from apps.actions.drivers.base import (
    ActionDriverError,
    ActionRequest,
    ActionResult,
    BaseActionDriver,
)
from apps.actions.drivers.email import EmailActionDriver
from apps.actions.drivers.local import LocalActionDriver
from apps.actions.drivers.pagerduty import PagerDutyActionDriver
from apps.actions.drivers.ticket import TicketActionDriver

__all__ = [
    "ActionDriverError",
    "ActionRequest",
    "ActionResult",
    "BaseActionDriver",
    "DRIVER_REGISTRY",
    "get_driver",
]

# Registry of available action drivers
DRIVER_REGISTRY: dict[str, type[BaseActionDriver]] = {
    "pagerduty": PagerDutyActionDriver,
    "ticket": TicketActionDriver,
    "email": EmailActionDriver,
    "local": LocalActionDriver,
}


def get_driver(name: str) -> BaseActionDriver:
    """
    Instantiate a driver by name.

    Raises:
        KeyError: If the driver name is not registered.
    """
    if name not in DRIVER_REGISTRY:
        raise KeyError(f"Unknown action driver: {name}. Available: {list(DRIVER_REGISTRY)}")
    return DRIVER_REGISTRY[name]()
