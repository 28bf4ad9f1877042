"""
Base interface for content synthesizers.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

logger = logging.getLogger(__name__)

SENSITIVE_PATTERNS = {"key", "secret", "token", "password"}
MAX_SERVICES = 8
MAX_TESTIMONIALS = 6


class SynthesisError(Exception):
    """Raised when site content cannot be produced."""


def _text(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def _pick(section: dict[str, Any], *keys: str) -> str:
    for key in keys:
        value = _text(section.get(key))
        if value:
            return value
    return ""


def services_from_payload(payload: dict[str, Any]) -> list[str]:
    raw = payload.get("services") or []
    if isinstance(raw, str):
        raw = raw.split(",")
    return [_text(s) for s in raw if _text(s)][:MAX_SERVICES]


def testimonials_from_payload(payload: dict[str, Any]) -> list[dict[str, str]]:
    """Testimonials supplied at intake; synthesizers never invent them."""
    result = []
    for item in payload.get("testimonials") or []:
        if not isinstance(item, dict) or not _text(item.get("quote")):
            continue
        result.append(
            {
                "quote": _text(item.get("quote")),
                "author": _text(item.get("author")),
                "role": _text(item.get("role")),
            }
        )
    return result[:MAX_TESTIMONIALS]


class BaseSynthesizer(ABC):
    """
    Abstract base class for content synthesizers.

    ``synthesize`` returns a content dict with the keys ``hero``, ``about``,
    ``services``, ``testimonials`` and ``cta``, or raises SynthesisError.
    """

    name: str = "base"
    description: str = "Base content synthesizer"

    @abstractmethod
    def synthesize(self, business_payload: dict[str, Any]) -> dict[str, Any]: ...

    def normalize(self, data: dict[str, Any], payload: dict[str, Any]) -> dict[str, Any]:
        """Fill missing fields from the business payload, field by field."""
        name = _text(payload.get("business_name"))
        tagline = _text(payload.get("tagline"))
        about_text = _text(payload.get("about"))
        hero = data.get("hero") if isinstance(data.get("hero"), dict) else {}
        about = data.get("about") if isinstance(data.get("about"), dict) else {}
        cta = data.get("cta") if isinstance(data.get("cta"), dict) else {}

        paragraphs = about.get("paragraphs")
        if not isinstance(paragraphs, list):
            paragraphs = []
        paragraphs = [_text(p) for p in paragraphs if _text(p)] or ([about_text] if about_text else [])

        services = []
        for item in data.get("services") or []:
            if isinstance(item, dict) and _text(item.get("title")):
                services.append(
                    {"title": _text(item["title"]), "description": _text(item.get("description"))}
                )
        if not services:
            services = [
                {
                    "title": service,
                    "description": f"Professional {service.lower()} services tailored to your needs.",
                }
                for service in services_from_payload(payload)
            ]

        return {
            "hero": {
                "headline": _pick(hero, "headline")
                or (f"{name} - {tagline}" if tagline else name),
                "subheadline": _pick(hero, "subheadline") or about_text[:100],
                "cta_primary": _pick(hero, "cta_primary", "ctaPrimary") or "Get Started",
                "cta_secondary": _pick(hero, "cta_secondary", "ctaSecondary") or "Learn More",
            },
            "about": {
                "headline": _pick(about, "headline") or f"About {name}",
                "paragraphs": paragraphs,
            },
            "services": services[:MAX_SERVICES],
            "testimonials": testimonials_from_payload(payload),
            "cta": {
                "headline": _pick(cta, "headline") or f"Ready to work with {name}?",
                "subheadline": _pick(cta, "subheadline") or "Get in touch today to get started.",
                "button_text": _pick(cta, "button_text", "buttonText") or "Contact Us",
            },
        }

    @staticmethod
    def _redact_config(config: dict[str, Any]) -> dict[str, Any]:
        """Replace values of secret-looking keys with '***'."""
        redacted = {}
        for key, value in config.items():
            if any(pattern in key.lower() for pattern in SENSITIVE_PATTERNS):
                redacted[key] = "***"
            else:
                redacted[key] = value
        return redacted

    def describe(self) -> dict[str, Any]:
        return {"name": self.name, "description": self.description}
