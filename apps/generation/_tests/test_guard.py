"""Tests for the in-process guard and the record-level lease."""

import threading
from datetime import timedelta

from django.test import SimpleTestCase, TestCase, override_settings
from django.utils import timezone

from apps.generation._tests.utils import make_record
from apps.generation.guard import (
    ClaimGuard,
    claim_record,
    next_eligible_record_id,
    reclaim_expired_leases,
)
from apps.intake.models import IntakeRecord, RecordStatus


class ClaimGuardTests(SimpleTestCase):
    def test_second_acquire_fails_until_release(self):
        guard = ClaimGuard()
        assert guard.try_acquire("rec-1") is True
        assert guard.try_acquire("rec-1") is False
        guard.release("rec-1")
        assert guard.try_acquire("rec-1") is True

    def test_distinct_records_do_not_block(self):
        guard = ClaimGuard()
        assert guard.try_acquire("rec-1") is True
        assert guard.try_acquire("rec-2") is True

    def test_claim_releases_on_exception(self):
        guard = ClaimGuard()
        with self.assertRaises(RuntimeError):
            with guard.claim("rec-1") as acquired:
                assert acquired is True
                raise RuntimeError("boom")
        assert guard.is_claimed("rec-1") is False

    def test_nested_claim_is_refused_and_does_not_release_outer(self):
        guard = ClaimGuard()
        with guard.claim("rec-1") as outer:
            with guard.claim("rec-1") as inner:
                assert outer is True
                assert inner is False
            assert guard.is_claimed("rec-1") is True
        assert guard.is_claimed("rec-1") is False

    def test_concurrent_acquire_has_single_winner(self):
        guard = ClaimGuard()
        workers = 16
        barrier = threading.Barrier(workers)
        results = []
        results_lock = threading.Lock()

        def attempt():
            barrier.wait()
            won = guard.try_acquire("rec-1")
            with results_lock:
                results.append(won)

        threads = [threading.Thread(target=attempt) for _ in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert results.count(True) == 1
        assert len(results) == workers


class ClaimRecordTests(TestCase):
    def test_pending_record_is_claimed(self):
        record = make_record()

        assert claim_record(str(record.pk), "worker-a") is True

        record.refresh_from_db()
        assert record.status == RecordStatus.GENERATING
        assert record.claimed_by == "worker-a"
        assert record.claimed_at is not None

    def test_fresh_lease_blocks_second_claimant(self):
        record = make_record()
        assert claim_record(str(record.pk), "worker-a") is True

        assert claim_record(str(record.pk), "worker-b") is False
        record.refresh_from_db()
        assert record.claimed_by == "worker-a"

    def test_expired_lease_can_be_taken_over(self):
        record = make_record()
        IntakeRecord.objects.filter(pk=record.pk).update(
            status=RecordStatus.GENERATING,
            claimed_by="worker-a",
            claimed_at=timezone.now() - timedelta(seconds=120),
        )

        assert claim_record(str(record.pk), "worker-b", liveness=60) is True
        record.refresh_from_db()
        assert record.claimed_by == "worker-b"

    def test_generated_record_is_never_claimed(self):
        record = make_record(status=RecordStatus.GENERATED)
        assert claim_record(str(record.pk), "worker-a") is False


class ReclaimTests(TestCase):
    def _stuck(self, age_seconds):
        record = make_record()
        IntakeRecord.objects.filter(pk=record.pk).update(
            status=RecordStatus.GENERATING,
            claimed_by="crashed-worker",
            claimed_at=timezone.now() - timedelta(seconds=age_seconds),
        )
        return record

    def test_only_stale_leases_are_reclaimed(self):
        stale = self._stuck(600)
        fresh = self._stuck(5)

        assert reclaim_expired_leases(liveness=300) == 1

        stale.refresh_from_db()
        fresh.refresh_from_db()
        assert stale.status == RecordStatus.PENDING
        assert stale.attempts == 1
        assert stale.last_error_stage == "lease"
        assert stale.claimed_by == ""
        assert stale.claimed_at is None
        assert fresh.status == RecordStatus.GENERATING

    def test_reclaim_all_ignores_lease_age(self):
        self._stuck(600)
        self._stuck(5)

        assert reclaim_expired_leases(all_generating=True) == 2
        assert not IntakeRecord.objects.filter(status=RecordStatus.GENERATING).exists()


class NextEligibleTests(TestCase):
    def test_oldest_pending_first(self):
        older = make_record(email="a@harbor.test")
        newer = make_record(email="b@harbor.test")
        IntakeRecord.objects.filter(pk=older.pk).update(
            created_at=timezone.now() - timedelta(minutes=10)
        )

        assert next_eligible_record_id() == str(older.pk)
        IntakeRecord.objects.filter(pk=older.pk).update(status=RecordStatus.GENERATED)
        assert next_eligible_record_id() == str(newer.pk)

    @override_settings(GENERATION_MAX_ATTEMPTS=3)
    def test_exhausted_records_are_not_picked(self):
        make_record(attempts=3)
        assert next_eligible_record_id() is None

    def test_non_pending_records_are_not_picked(self):
        make_record(status=RecordStatus.GENERATED)
        make_record(status=RecordStatus.GENERATING)
        assert next_eligible_record_id() is None
