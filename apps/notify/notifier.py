"""Best-effort delivery of "site ready" notices.

``Notifier.notify(target, payload)`` never raises: every failure is logged
and reported as ``False`` so one target cannot affect another.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from django.conf import settings

from apps.notify.drivers import SiteNotice, driver_enabled, get_driver

logger = logging.getLogger(__name__)

# Payload keys that only the customer may receive.
CUSTOMER_ONLY_FIELDS = ("password",)

# Payload keys for internal review; kept out of customer notices.
TEAM_ONLY_FIELDS = ("warnings",)


@dataclass
class NotifyTarget:
    name: str
    driver: str
    audience: str = "customer"
    config: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NotifyTarget":
        return cls(
            name=data.get("name") or data.get("driver", "unnamed"),
            driver=data.get("driver", ""),
            audience=data.get("audience", "customer"),
            config=dict(data.get("config") or {}),
        )

    @classmethod
    def from_channel(cls, channel) -> "NotifyTarget":
        return cls(
            name=channel.name,
            driver=channel.driver,
            audience=channel.audience,
            config=dict(channel.config or {}),
        )


def get_notify_targets() -> list[NotifyTarget]:
    """Targets from GENERATION_NOTIFY_TARGETS followed by active NotificationChannel rows."""
    from apps.notify.models import NotificationChannel

    configured = getattr(settings, "GENERATION_NOTIFY_TARGETS", [])
    targets = [NotifyTarget.from_dict(t) for t in configured]
    targets.extend(
        NotifyTarget.from_channel(channel)
        for channel in NotificationChannel.objects.filter(is_active=True).order_by("name")
    )
    return targets


class Notifier:
    """Turns a generation payload into one notice per target."""

    def build_notice(self, target: NotifyTarget, payload: dict[str, Any]) -> SiteNotice:
        business_name = payload.get("business_name") or "your business"
        record_id = str(payload.get("record_id", ""))
        warnings = payload.get("warnings") or []

        if target.audience == "team":
            return SiteNotice(
                subject=f"New site generated: {business_name}",
                summary=f"A site for {business_name} is ready for review.",
                audience="team",
                record_id=record_id,
                has_warnings=bool(warnings),
                fields={k: v for k, v in payload.items() if k not in CUSTOMER_ONLY_FIELDS},
            )

        return SiteNotice(
            subject=f"Your website for {business_name} is ready",
            summary="Your new website has been generated. Sign in to review it.",
            audience="customer",
            recipient=payload.get("contact_email") or "",
            record_id=record_id,
            fields={k: v for k, v in payload.items() if k not in TEAM_ONLY_FIELDS},
        )

    def notify(self, target: NotifyTarget | dict[str, Any], payload: dict[str, Any]) -> bool:
        """
        Deliver one notice.

        Returns:
            True when the driver reports success, False otherwise (never raises).
        """
        record_id = payload.get("record_id")
        try:
            if isinstance(target, dict):
                target = NotifyTarget.from_dict(target)

            if not driver_enabled(target.driver):
                logger.info(f"Notify driver {target.driver} is disabled, skipping {target.name}")
                return False

            driver = get_driver(target.driver)
            if driver is None:
                logger.warning(f"Unknown notify driver {target.driver!r} for target {target.name}")
                return False

            if target.audience == "customer" and not payload.get("contact_email"):
                logger.warning(f"No contact address for customer target {target.name}")
                return False

            if not driver.validate_config(target.config):
                logger.warning(f"Invalid configuration for notify target {target.name}")
                return False

            result = driver.deliver(self.build_notice(target, payload), target.config)
        except Exception:
            logger.exception(
                f"Notification to {getattr(target, 'name', target)} raised",
                extra={"record_id": record_id},
            )
            return False

        if result.success:
            logger.info(
                f"Notified {target.name} ({target.audience})", extra={"record_id": record_id}
            )
        else:
            logger.warning(
                f"Notification to {target.name} failed: {result.error}",
                extra={"record_id": record_id},
            )
        return result.success
