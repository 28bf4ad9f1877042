"""
OpenAI-powered content synthesizer.

Generates marketing copy with a GPT chat model in JSON mode. Any API or
parse failure raises SynthesisError; there is no silent fallback once an
API key is configured.
"""

import json
import logging
import os
from typing import Any

from apps.synthesis.providers.base import (
    BaseSynthesizer,
    SynthesisError,
    services_from_payload,
)

logger = logging.getLogger(__name__)

# Keys shorter than this are treated as placeholders.
MIN_API_KEY_LENGTH = 21


def has_usable_api_key(api_key: str | None) -> bool:
    return bool(api_key) and len(api_key.strip()) >= MIN_API_KEY_LENGTH


class OpenAIContentSynthesizer(BaseSynthesizer):
    """
    Content synthesizer backed by the OpenAI chat completions API.

    The client is created lazily so the synthesizer can be constructed
    (and inspected in the admin) without network access.
    """

    name = "openai"
    description = "OpenAI-generated website copy"

    TEMPERATURE = 0.8
    DEFAULT_MAX_TOKENS = 2000

    RESPONSE_SHAPE = """{
  "hero": {"headline": "...", "subheadline": "...", "cta_primary": "...", "cta_secondary": "..."},
  "about": {"headline": "...", "paragraphs": ["...", "..."]},
  "services": [{"title": "...", "description": "..."}],
  "cta": {"headline": "...", "subheadline": "...", "button_text": "..."}
}"""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
    ) -> None:
        """
        Args:
            api_key: OpenAI API key. Defaults to OPENAI_API_KEY env var.
            model: Model to use. Defaults to OPENAI_MODEL env var or "gpt-4o-mini".
            max_tokens: Maximum tokens for the response.
        """
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        self.model = model or os.environ.get("OPENAI_MODEL", "gpt-4o-mini")
        self.max_tokens = max_tokens or self.DEFAULT_MAX_TOKENS
        self._client = None

    @property
    def client(self):
        if self._client is None:
            from openai import OpenAI

            self._client = OpenAI(api_key=self.api_key)
        return self._client

    def describe(self) -> dict[str, Any]:
        config = {"api_key": self.api_key, "model": self.model, "max_tokens": self.max_tokens}
        return {**super().describe(), "config": self._redact_config(config)}

    def synthesize(self, business_payload: dict[str, Any]) -> dict[str, Any]:
        payload = business_payload or {}
        if not str(payload.get("business_name", "")).strip():
            raise SynthesisError("business_name is required")
        if not has_usable_api_key(self.api_key):
            raise SynthesisError("OpenAI API key is not configured")

        try:
            raw = self._call_api(
                self._build_system_prompt(payload), self._build_user_prompt(payload)
            )
        except Exception as e:
            logger.error(f"OpenAI API error: {e}")
            raise SynthesisError(f"OpenAI request failed: {e}") from e

        data = self._parse_response(raw)
        return self.normalize(data, payload)

    def _build_system_prompt(self, payload: dict[str, Any]) -> str:
        industry = str(payload.get("industry") or "small business").strip()
        prompt = (
            f"You are an expert copywriter for {industry} businesses. "
            "Write clear, persuasive website copy that builds trust and drives "
            "visitors to get in touch. Keep the tone professional and specific "
            "to the business; avoid generic filler."
        )
        audience = str(payload.get("target_audience") or "").strip()
        if audience:
            prompt += f" The target audience is: {audience}."
        return prompt

    def _build_user_prompt(self, payload: dict[str, Any]) -> str:
        parts = [f"Business name: {payload.get('business_name')}"]
        if payload.get("tagline"):
            parts.append(f"Tagline: {payload['tagline']}")
        if payload.get("about"):
            parts.append(f"About: {payload['about']}")
        services = services_from_payload(payload)
        if services:
            parts.append(f"Services: {', '.join(services)}")
        usps = payload.get("unique_selling_points") or []
        if isinstance(usps, list) and usps:
            parts.append(f"Unique selling points: {', '.join(str(u) for u in usps)}")

        parts.append(
            "\nRespond ONLY with a JSON object with exactly this structure "
            "(one service entry per listed service, do not invent testimonials):\n"
            + self.RESPONSE_SHAPE
        )
        return "\n".join(parts)

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            max_tokens=self.max_tokens,
            temperature=self.TEMPERATURE,
            response_format={"type": "json_object"},
        )
        return response.choices[0].message.content or ""

    def _parse_response(self, response: str) -> dict[str, Any]:
        text = (response or "").strip()
        if text.startswith("```"):
            lines = text.split("\n")
            lines = lines[1:]
            if lines and lines[-1].strip().startswith("```"):
                lines = lines[:-1]
            text = "\n".join(lines)
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise SynthesisError(f"OpenAI returned invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise SynthesisError("OpenAI response is not a JSON object")
        return data
