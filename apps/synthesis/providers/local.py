"""
Template-based synthesizer used when no AI backend is configured.
"""

from __future__ import annotations

from typing import Any

from apps.synthesis.providers.base import (
    BaseSynthesizer,
    SynthesisError,
    services_from_payload,
)


class LocalContentSynthesizer(BaseSynthesizer):
    """Builds site copy directly from the business payload."""

    name = "local"
    description = "Template content from intake fields (no external calls)"

    def __init__(self, **kwargs: Any) -> None:
        pass

    def synthesize(self, business_payload: dict[str, Any]) -> dict[str, Any]:
        payload = business_payload or {}
        name = str(payload.get("business_name", "")).strip()
        if not name:
            raise SynthesisError("business_name is required")

        tagline = str(payload.get("tagline") or "Quality Service You Can Trust").strip()
        about = str(payload.get("about") or "").strip()

        draft = {
            "hero": {
                "headline": f"{name} - {tagline}",
                "subheadline": about[:120],
                "cta_primary": "Get Started",
                "cta_secondary": "Learn More",
            },
            "about": {
                "headline": f"Why Choose {name}?",
                "paragraphs": [
                    p
                    for p in (
                        about,
                        "We're committed to delivering exceptional results "
                        "and outstanding customer service.",
                    )
                    if p
                ],
            },
            "services": [
                {
                    "title": service,
                    "description": (
                        f"Professional {service.lower()} services designed "
                        "to meet your specific needs."
                    ),
                }
                for service in services_from_payload(payload)
            ],
            "cta": {
                "headline": f"Ready to Experience {name}?",
                "subheadline": "Contact us today to learn how we can help you achieve your goals.",
                "button_text": "Get In Touch",
            },
        }
        return self.normalize(draft, payload)
