"""
Static site rendering.

``render_site`` is a pure function of its input: it loads packaged Jinja2
templates and nothing else, emits no timestamps, and iterates only over
ordered data, so identical input yields byte-identical output.
"""

from __future__ import annotations

import logging
from pathlib import Path

import jinja2

from apps.renderer.content import SiteContentModel

TEMPLATES_DIR = Path(__file__).parent / "templates"
THEMES = ("dark", "light")
SITE_FILES = ("index.html", "styles.css", "script.js")

logger = logging.getLogger(__name__)

_JINJA_ENV = jinja2.Environment(
    loader=jinja2.FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=jinja2.select_autoescape(enabled_extensions=("html.j2",), default=False),
    keep_trailing_newline=True,
    trim_blocks=True,
    lstrip_blocks=True,
    undefined=jinja2.StrictUndefined,
)


class RenderError(Exception):
    """Raised when the site cannot be rendered."""


def _hex_to_rgb(value: str) -> str:
    value = value.lstrip("#")
    return ", ".join(str(int(value[i : i + 2], 16)) for i in (0, 2, 4))


_JINJA_ENV.filters["rgb"] = _hex_to_rgb


def render_site(model: SiteContentModel, theme: str) -> dict[str, str]:
    """
    Render the site file set.

    Args:
        model: Fully resolved site content.
        theme: One of THEMES.

    Returns:
        Mapping of file name to content for exactly SITE_FILES.

    Raises:
        RenderError: On unknown theme or template failure.
    """
    if theme not in THEMES:
        raise RenderError(f"Unknown theme: {theme!r} (expected one of {', '.join(THEMES)})")
    if not model.business_name:
        raise RenderError("business_name is required to render a site")

    context = {"site": model, "theme": theme}
    files: dict[str, str] = {}
    for name in SITE_FILES:
        template_name = f"{theme}/{name}.j2" if name != "script.js" else "shared/script.js.j2"
        try:
            files[name] = _JINJA_ENV.get_template(template_name).render(**context)
        except (jinja2.TemplateError, ValueError, TypeError) as e:
            raise RenderError(f"{template_name}: {e}") from e

    logger.debug(f"Rendered {model.business_name!r} with theme {theme}")
    return files
