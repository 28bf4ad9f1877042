"""Jinja2 rendering of site notices.

A template reference is one of:

- ``None`` or empty: nothing to render
- ``"file:<name>"``: a packaged template under ``apps/notify/templates``
- ``{"type": "inline" | "file", "template": "..."}``
- any other string: a packaged template when one has that name, inline otherwise

Packaged templates are looked up per driver and audience:
``<driver>_<audience>.j2`` first, then ``<driver>.j2``. A target can override
the body with ``template`` and add an HTML part with ``html_template``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import jinja2

if TYPE_CHECKING:
    from apps.notify.drivers.base import SiteNotice

TEMPLATES_DIR = Path(__file__).parent / "templates"

logger = logging.getLogger(__name__)

_env = jinja2.Environment(
    loader=jinja2.FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=False,
    keep_trailing_newline=True,
    trim_blocks=True,
    lstrip_blocks=True,
)


def packaged_template(name: str) -> str | None:
    """Loadable name of a packaged template (``.j2`` optional), or None."""
    for candidate in (name, f"{name}.j2"):
        if (TEMPLATES_DIR / candidate).is_file():
            return candidate
    return None


def render_template(ref: Any, context: dict[str, Any]) -> str | None:
    """
    Render a template reference.

    Raises:
        ValueError: For unsupported references, missing files and Jinja2 errors.
    """
    if not ref:
        return None

    if isinstance(ref, dict):
        kind, source = ref.get("type", "inline"), ref.get("template")
    elif isinstance(ref, str):
        if ref.startswith("file:"):
            kind, source = "file", ref.split(":", 1)[1]
        elif packaged_template(ref):
            kind, source = "file", ref
        else:
            kind, source = "inline", ref
    else:
        raise ValueError(f"unsupported template reference: {type(ref).__name__}")

    if not source:
        return None

    try:
        if kind == "file":
            name = packaged_template(source)
            if name is None:
                raise ValueError(f"template file not found: {source}")
            template = _env.get_template(name)
        else:
            template = _env.from_string(source)
        return template.render(**(context or {}))
    except jinja2.TemplateError as e:
        raise ValueError(f"template error: {e}") from e


@dataclass
class RenderedNotice:
    text: str
    html: str | None = None
    document: dict[str, Any] | None = None


class NoticeTemplates:
    """Renders the text, optional HTML and optional JSON document of a notice."""

    def context_for(self, notice: SiteNotice) -> dict[str, Any]:
        site = dict(notice.fields)
        return {
            "subject": notice.subject,
            "summary": notice.summary,
            "audience": notice.audience,
            "record_id": notice.record_id,
            "site": site,
            "business_name": site.get("business_name"),
            "preview_url": site.get("preview_url"),
            "login_url": site.get("login_url"),
        }

    def render(
        self, driver_name: str, notice: SiteNotice, config: dict[str, Any]
    ) -> RenderedNotice:
        """
        Raises:
            ValueError: When neither a configured nor a packaged template renders.
        """
        context = self.context_for(notice)

        configured = config.get("template")
        if configured:
            text = render_template(configured, context)
            source = "config"
        else:
            candidates = [f"{driver_name}_{notice.audience}", driver_name]
            source = next((c for c in candidates if packaged_template(c)), None)
            if source is None:
                raise ValueError(
                    f"no template for driver {driver_name!r} and audience {notice.audience!r}"
                )
            text = render_template(f"file:{source}", context)

        if not text:
            raise ValueError(f"template {source} rendered empty")

        html = None
        html_ref = config.get("html_template") or packaged_template(
            f"{driver_name}_{notice.audience}_html"
        )
        if html_ref:
            html = render_template(html_ref, context) or None

        logger.debug(f"Rendered {driver_name}/{notice.audience} notice from {source}")
        return RenderedNotice(text=text, html=html, document=_as_document(text))


def _as_document(text: str) -> dict[str, Any] | None:
    stripped = text.strip()
    if not stripped.startswith("{"):
        return None
    try:
        parsed = json.loads(stripped)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None
