"""
Filesystem store for rendered sites.

Layout: ``<GENERATED_SITES_ROOT>/<record_id>/{index.html,styles.css,script.js}``.
Each file is written to a temporary sibling and renamed into place, so a
reader never sees a partially written file.
"""

from __future__ import annotations

import hashlib
import logging
import os
import tempfile
from pathlib import Path

from django.conf import settings
from django.urls import reverse

from apps.renderer.renderer import SITE_FILES

logger = logging.getLogger(__name__)


def preview_url_for(record_id: str) -> str:
    """Absolute preview URL of a record's rendered index page."""
    path = reverse("generation:record-preview", args=[record_id])
    return getattr(settings, "SITE_BASE_URL", "").rstrip("/") + path


class ArtifactStoreError(Exception):
    """Raised when rendered files cannot be written or read."""


class ArtifactStore:
    def __init__(self, root: str | Path | None = None):
        self.root = Path(root if root is not None else settings.GENERATED_SITES_ROOT)

    def path_for(self, record_id: str) -> Path:
        return self.root / str(record_id)

    @staticmethod
    def digest(files: dict[str, str]) -> str:
        """sha256 over the file set, independent of dict ordering."""
        h = hashlib.sha256()
        for name in sorted(files):
            h.update(name.encode("utf-8"))
            h.update(b"\0")
            h.update(files[name].encode("utf-8"))
            h.update(b"\0")
        return h.hexdigest()

    def write(self, record_id: str, files: dict[str, str]) -> Path:
        """
        Write a rendered file set, replacing any previous version.

        Returns:
            The record's directory.

        Raises:
            ArtifactStoreError: On unknown file names or any I/O failure.
        """
        unknown = sorted(set(files) - set(SITE_FILES))
        if unknown:
            raise ArtifactStoreError(f"unexpected artifact files: {unknown}")
        if not files:
            raise ArtifactStoreError("empty artifact file set")

        target_dir = self.path_for(record_id)
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            for name, body in files.items():
                self._atomic_write(target_dir / name, body)
        except OSError as e:
            raise ArtifactStoreError(f"could not write artifact for {record_id}: {e}") from e

        logger.info(
            f"Artifact written to {target_dir} ({len(files)} files)",
            extra={"record_id": str(record_id)},
        )
        return target_dir

    def _atomic_write(self, path: Path, body: str) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(body)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise

    def exists(self, record_id: str, name: str = "index.html") -> bool:
        if name not in SITE_FILES:
            return False
        return (self.path_for(record_id) / name).is_file()

    def read(self, record_id: str, name: str) -> str:
        """
        Read one file of a stored artifact.

        Raises:
            ArtifactStoreError: If the name is not part of a site or the file is missing.
        """
        if name not in SITE_FILES:
            raise ArtifactStoreError(f"unknown artifact file: {name!r}")
        path = self.path_for(record_id) / name
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise ArtifactStoreError(f"could not read {path}: {e}") from e
