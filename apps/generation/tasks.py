"""Celery tasks for site generation.

``process_record_task`` is the inline trigger queued after an intake record is
created; ``sweep_generation_queue`` runs on the beat schedule and guarantees
every record is eventually processed.
"""

from __future__ import annotations

import logging
from typing import Any

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(bind=True)
def process_record_task(self, record_id: str, trigger: str = "inline") -> dict[str, Any]:
    """
    Run one generation pass over a record.

    Args:
        record_id: IntakeRecord primary key.
        trigger: ``inline``, ``sweep`` or ``manual``.

    Returns:
        GenerationResult as dict.
    """
    from apps.generation.orchestrator import GenerationOrchestrator

    result = GenerationOrchestrator().process(record_id, trigger=trigger)
    return result.to_dict()


@shared_task(bind=True)
def sweep_generation_queue(self) -> dict[str, Any]:
    """
    One sweep tick.

    Reclaims stale leases first, then processes at most one eligible record,
    oldest first.

    Returns:
        Summary with the reclaimed count and the pass result, if any.
    """
    from apps.generation.guard import next_eligible_record_id, reclaim_expired_leases
    from apps.generation.orchestrator import GenerationOrchestrator

    reclaimed = reclaim_expired_leases()
    record_id = next_eligible_record_id()
    if record_id is None:
        return {"reclaimed": reclaimed, "record_id": None, "result": None}

    logger.info(f"Sweep picked record {record_id}", extra={"record_id": record_id})
    result = GenerationOrchestrator().process(record_id, trigger="sweep")
    return {"reclaimed": reclaimed, "record_id": record_id, "result": result.to_dict()}
