"""
Intake record creation.

The HTTP intake surface lives elsewhere; it calls ``create_intake_record`` once
the request has been validated. Creation schedules exactly one inline
generation attempt, after the surrounding transaction commits.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

from django.core.exceptions import ValidationError
from django.core.validators import validate_email
from django.db import transaction

from apps.intake.models import AssetPurpose, IntakeAsset, IntakeRecord, SiteTheme

logger = logging.getLogger(__name__)

HEX_COLOR_RE = re.compile(r"^#?[0-9a-fA-F]{6}$")
PALETTE_SLOTS = ("primary", "secondary", "accent")


class IntakeValidationError(ValueError):
    """Raised when an intake submission cannot be stored."""


@dataclass
class StagedAsset:
    """An uploaded image as received by the intake surface."""

    purpose: str
    content: bytes
    filename: str = ""


def _validate_palette(palette: dict[str, Any] | None) -> dict[str, str] | None:
    if not palette:
        return None
    cleaned = {}
    for slot in PALETTE_SLOTS:
        value = palette.get(slot)
        if not value or not HEX_COLOR_RE.match(str(value)):
            raise IntakeValidationError(f"brand palette '{slot}' must be a #RRGGBB color")
        value = str(value)
        cleaned[slot] = value if value.startswith("#") else f"#{value}"
    return cleaned


def create_intake_record(
    contact_email: str,
    business_payload: dict[str, Any],
    *,
    brand_palette: dict[str, Any] | None = None,
    theme: str = SiteTheme.DARK,
    assets: list[StagedAsset] | None = None,
    schedule: bool = True,
) -> IntakeRecord:
    """
    Store a new intake request in ``pending`` state.

    Args:
        contact_email: Submitter contact address.
        business_payload: Business details; ``business_name`` is required.
        brand_palette: Optional explicit {primary, secondary, accent} palette.
        theme: One of the site themes.
        assets: Uploaded images to stage for optimization.
        schedule: Queue the inline generation attempt on commit.

    Returns:
        The created IntakeRecord.

    Raises:
        IntakeValidationError: If the submission is incomplete.
    """
    try:
        validate_email(contact_email)
    except ValidationError as e:
        raise IntakeValidationError(f"invalid contact email: {contact_email!r}") from e

    if not isinstance(business_payload, dict) or not str(
        business_payload.get("business_name", "")
    ).strip():
        raise IntakeValidationError("business_payload.business_name is required")

    if theme not in SiteTheme.values:
        raise IntakeValidationError(f"unknown theme: {theme!r}")

    palette = _validate_palette(brand_palette)

    positions: dict[str, int] = {}
    for asset in assets or []:
        if asset.purpose not in AssetPurpose.values:
            raise IntakeValidationError(f"unknown asset purpose: {asset.purpose!r}")
        if not asset.content:
            raise IntakeValidationError(f"empty upload for {asset.purpose}")

    with transaction.atomic():
        record = IntakeRecord.objects.create(
            contact_email=contact_email.strip().lower(),
            business_payload=business_payload,
            brand_palette=palette,
            theme=theme,
        )
        for asset in assets or []:
            position = positions.get(asset.purpose, 0)
            positions[asset.purpose] = position + 1
            IntakeAsset.objects.create(
                record=record,
                purpose=asset.purpose,
                position=position,
                filename=asset.filename,
                raw_bytes=asset.content,
            )

        if schedule:
            record_id = str(record.id)
            transaction.on_commit(lambda: _schedule_generation(record_id))

    logger.info(
        f"Intake record created: {record.id} ({len(assets or [])} assets)",
        extra={"record_id": str(record.id)},
    )
    return record


def _schedule_generation(record_id: str) -> None:
    from apps.generation.tasks import process_record_task

    try:
        process_record_task.delay(record_id, trigger="inline")
    except Exception:
        # The sweep picks the record up when the broker is unreachable.
        logger.exception(
            f"Could not queue inline generation for {record_id}",
            extra={"record_id": record_id},
        )
