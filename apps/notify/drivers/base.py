"""Driver contract for site notices.

A driver turns a ``SiteNotice`` into one delivery on its platform and reports
the outcome as a ``DeliveryResult``. Drivers never raise for delivery
problems; they return a failed result instead.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from typing import Any

from apps.notify.templating import NoticeTemplates, RenderedNotice

logger = logging.getLogger(__name__)

AUDIENCES = ("customer", "team")


@dataclass
class SiteNotice:
    """
    A "site ready" notice for one audience.

    ``fields`` holds the payload this audience may see; the customer notice
    carries the login credential, the team notice never does.
    """

    subject: str
    summary: str
    audience: str = "customer"
    recipient: str = ""
    record_id: str = ""
    has_warnings: bool = False
    fields: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.audience not in AUDIENCES:
            raise ValueError(f"unknown audience: {self.audience!r}")


@dataclass
class DeliveryResult:
    success: bool
    reference: str = ""
    error: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class BaseNotifyDriver(ABC):
    """Abstract base class for notice delivery drivers."""

    name: str = "base"
    description: str = ""
    required_config: tuple[str, ...] = ()
    optional_config: tuple[str, ...] = ()

    templates = NoticeTemplates()

    def validate_config(self, config: dict[str, Any]) -> bool:
        """Every required key is present and non-empty."""
        return all(config.get(key) for key in self.required_config)

    @abstractmethod
    def deliver(self, notice: SiteNotice, config: dict[str, Any]) -> DeliveryResult:
        """Deliver one notice; failures come back as ``success=False``."""

    def render(self, notice: SiteNotice, config: dict[str, Any]) -> RenderedNotice:
        return self.templates.render(self.name, notice, config or {})

    def _failed(self, action: str, error: Exception) -> DeliveryResult:
        logger.exception(f"{self.name}: could not {action}: {error}")
        return DeliveryResult(success=False, error=f"could not {action}: {error}")
