"""
Mutual exclusion for generation passes.

Two layers:

- ``ClaimGuard``: in-process test-and-set over record ids, so the inline task
  and the sweep running in the same worker never overlap on a record.
- ``claim_record``: the cross-process lease, a conditional UPDATE that moves
  a record to ``generating`` only if it is still eligible.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import timedelta

from django.conf import settings
from django.db.models import F, Q
from django.utils import timezone

logger = logging.getLogger(__name__)


def liveness_seconds() -> int:
    return int(getattr(settings, "GENERATION_LIVENESS_SECONDS", 15 * 60))


def max_attempts() -> int:
    return int(getattr(settings, "GENERATION_MAX_ATTEMPTS", 5))


class ClaimGuard:
    """Lock-protected set of record ids currently being processed."""

    def __init__(self):
        self._lock = threading.Lock()
        self._claimed: set[str] = set()

    def try_acquire(self, record_id: str) -> bool:
        record_id = str(record_id)
        with self._lock:
            if record_id in self._claimed:
                return False
            self._claimed.add(record_id)
            return True

    def release(self, record_id: str) -> None:
        with self._lock:
            self._claimed.discard(str(record_id))

    def is_claimed(self, record_id: str) -> bool:
        with self._lock:
            return str(record_id) in self._claimed

    @contextmanager
    def claim(self, record_id: str):
        """Yield whether the claim was acquired; release it on exit if so."""
        acquired = self.try_acquire(record_id)
        try:
            yield acquired
        finally:
            if acquired:
                self.release(record_id)


default_guard = ClaimGuard()


def _eligible_filter(now, liveness: int) -> Q:
    from apps.intake.models import RecordStatus

    expired_before = now - timedelta(seconds=liveness)
    return Q(status=RecordStatus.PENDING) | Q(
        Q(status=RecordStatus.GENERATING)
        & (Q(claimed_at__isnull=True) | Q(claimed_at__lt=expired_before))
    )


def claim_record(record_id: str, worker: str, liveness: int | None = None) -> bool:
    """
    Take the generation lease on a record.

    Succeeds for ``pending`` records and for ``generating`` records whose
    lease has expired. Returns False when another worker holds it.
    """
    from apps.intake.models import IntakeRecord, RecordStatus

    now = timezone.now()
    liveness = liveness_seconds() if liveness is None else liveness
    updated = (
        IntakeRecord.objects.filter(pk=record_id)
        .filter(_eligible_filter(now, liveness))
        .update(
            status=RecordStatus.GENERATING,
            claimed_by=worker,
            claimed_at=now,
            updated_at=now,
        )
    )
    return updated == 1


def reclaim_expired_leases(liveness: int | None = None, all_generating: bool = False) -> int:
    """
    Return stuck ``generating`` records to ``pending``.

    A stuck record counts as a failed attempt.

    Args:
        liveness: Lease age in seconds after which a claim is stale.
        all_generating: Reset every generating record regardless of age.

    Returns:
        Number of records reset.
    """
    from apps.intake.models import IntakeRecord, RecordStatus

    now = timezone.now()
    qs = IntakeRecord.objects.filter(status=RecordStatus.GENERATING)
    if not all_generating:
        liveness = liveness_seconds() if liveness is None else liveness
        expired_before = now - timedelta(seconds=liveness)
        qs = qs.filter(Q(claimed_at__isnull=True) | Q(claimed_at__lt=expired_before))

    count = qs.update(
        status=RecordStatus.PENDING,
        attempts=F("attempts") + 1,
        last_error_stage="lease",
        last_error_message="generation lease expired",
        claimed_by="",
        claimed_at=None,
        updated_at=now,
    )
    if count:
        logger.warning(f"Reclaimed {count} stuck generating record(s)")
    return count


def next_eligible_record_id(attempt_cap: int | None = None) -> str | None:
    """Oldest pending record that has not exhausted its attempts."""
    from apps.intake.models import IntakeRecord, RecordStatus

    attempt_cap = max_attempts() if attempt_cap is None else attempt_cap
    pk = (
        IntakeRecord.objects.filter(status=RecordStatus.PENDING, attempts__lt=attempt_cap)
        .order_by("created_at")
        .values_list("pk", flat=True)
        .first()
    )
    return str(pk) if pk else None
