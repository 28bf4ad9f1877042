"""Environment variable loading helpers.

Local configuration lives in dotenv-style files next to ``manage.py``.

Load order (first found wins; existing process env vars are never overridden):
- .env
- .env.dev (only when SITEGEN_ENV=dev)

In production, prefer real environment variables instead of dotenv files.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

_TRUTHY = {"1", "true", "yes", "on"}


def _should_load_dev_env() -> bool:
    return os.environ.get("SITEGEN_ENV", "").lower() in {"dev", "development", "local"}


def load_env(base_dir: Path | None = None) -> None:
    """Load .env files into process environment.

    Safe to call multiple times.

    Args:
        base_dir: Project root directory. Defaults to the parent of ``config/``.
    """

    if base_dir is None:
        base_dir = Path(__file__).resolve().parent.parent

    load_dotenv(base_dir / ".env", override=False)

    if _should_load_dev_env():
        load_dotenv(base_dir / ".env.dev", override=False)


def env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


def env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    return int(value)


def env_list(name: str, default: list[str] | None = None) -> list[str]:
    """Read a comma separated list, dropping empty entries."""
    value = os.environ.get(name)
    if value is None:
        return list(default or [])
    return [item.strip() for item in value.split(",") if item.strip()]
