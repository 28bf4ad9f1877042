"""
Notice delivery drivers.

Drivers are looked up by name from notify targets; ``NOTIFY_SKIP_ALL`` and
``NOTIFY_SKIP`` switch them off without touching target configuration.
"""

from django.conf import settings

from apps.notify.drivers.base import BaseNotifyDriver, DeliveryResult, SiteNotice
from apps.notify.drivers.email import EmailNotifyDriver
from apps.notify.drivers.webhook import WebhookNotifyDriver

__all__ = [
    "SiteNotice",
    "DeliveryResult",
    "BaseNotifyDriver",
    "EmailNotifyDriver",
    "WebhookNotifyDriver",
    "DRIVER_REGISTRY",
    "driver_enabled",
    "get_driver",
]

DRIVER_REGISTRY: dict[str, type[BaseNotifyDriver]] = {
    EmailNotifyDriver.name: EmailNotifyDriver,
    WebhookNotifyDriver.name: WebhookNotifyDriver,
}


def driver_enabled(name: str) -> bool:
    if getattr(settings, "NOTIFY_SKIP_ALL", False):
        return False
    return name not in getattr(settings, "NOTIFY_SKIP", [])


def get_driver(name: str) -> BaseNotifyDriver | None:
    """Driver instance for ``name``, or None when unknown."""
    driver_class = DRIVER_REGISTRY.get(name)
    return driver_class() if driver_class else None
