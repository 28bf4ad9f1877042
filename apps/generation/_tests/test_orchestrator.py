"""Tests for GenerationOrchestrator."""

import threading
from datetime import timedelta
from unittest.mock import MagicMock, patch

from django.db import connection
from django.test import TestCase, TransactionTestCase, override_settings
from django.utils import timezone

from apps.accounts.models import Principal
from apps.accounts.services import IdentityProvisioningError
from apps.generation._tests.utils import (
    FakeNotifier,
    FakeSynthesizer,
    image_bytes,
    make_record,
)
from apps.generation.artifacts import ArtifactStore, ArtifactStoreError
from apps.generation.executors import (
    NotifyExecutor,
    OptimizeAssetsExecutor,
    PersistArtifactExecutor,
    ProvisionIdentityExecutor,
    SynthesizeContentExecutor,
)
from apps.generation.guard import ClaimGuard
from apps.generation.models import (
    GenerationRun,
    GenerationStage,
    PaletteSource,
    RunStatus,
    SiteArtifact,
    StageExecution,
    StageStatus,
)
from apps.generation.orchestrator import STAGE_ORDER, GenerationOrchestrator
from apps.imaging.optimizer import ImageOptimizer
from apps.intake.models import AssetStatus, IntakeRecord, RecordStatus
from apps.synthesis.providers.base import SynthesisError

TARGETS = [
    {"name": "customer", "driver": "email", "audience": "customer"},
    {"name": "sales", "driver": "email", "audience": "team"},
]


@override_settings(GENERATION_NOTIFY_TARGETS=TARGETS)
class OrchestratorTestCase(TestCase):
    def setUp(self):
        self.synthesizer = FakeSynthesizer()
        self.notifier = FakeNotifier()
        self.guard = ClaimGuard()

    def orchestrator(self, **executors):
        executors.setdefault(
            "synthesize_content", SynthesizeContentExecutor(synthesizer=self.synthesizer)
        )
        executors.setdefault("notify", NotifyExecutor(notifier=self.notifier))
        return GenerationOrchestrator(guard=self.guard, executors=executors)


class HappyPathTests(OrchestratorTestCase):
    def test_record_without_assets_is_generated(self):
        record = make_record()

        result = self.orchestrator().process(record.pk, trigger="inline")

        assert result.status == "generated"
        assert result.stages_completed == STAGE_ORDER
        record.refresh_from_db()
        assert record.status == RecordStatus.GENERATED
        assert record.attempts == 0
        assert record.claimed_by == ""
        assert record.generated_content is not None

        artifact = SiteArtifact.objects.get(record=record)
        assert artifact.file_names == ["index.html", "script.js", "styles.css"]
        assert artifact.palette_source == PaletteSource.DEFAULT
        assert artifact.primary_color == "#6366f1"
        assert artifact.files_persisted is True
        assert ArtifactStore().exists(str(record.pk))

        principal = Principal.objects.get(contact_address=record.contact_email)
        assert artifact.principal_id == principal.pk

    def test_run_and_stage_audit_rows(self):
        record = make_record()

        result = self.orchestrator().process(record.pk, trigger="manual")

        run = GenerationRun.objects.get(run_id=result.run_id)
        assert run.status == RunStatus.SUCCEEDED
        assert run.trigger == "manual"
        assert run.completed_at is not None
        stages = list(run.stage_executions.values_list("stage", "status"))
        assert [s for s, _ in stages] == STAGE_ORDER
        assert all(status == StageStatus.SUCCEEDED for _, status in stages)

    def test_credential_never_persisted_in_snapshots(self):
        record = make_record()

        self.orchestrator().process(record.pk)

        password = self.notifier.sent[0][2]["password"]
        assert password
        for snapshot in StageExecution.objects.values_list("output_snapshot", flat=True):
            assert password not in str(snapshot)

    def test_customer_and_team_notified_once(self):
        record = make_record()

        self.orchestrator().process(record.pk)

        assert [(name, audience) for name, audience, _ in self.notifier.sent] == [
            ("customer", "customer"),
            ("sales", "team"),
        ]

    def test_explicit_palette_is_used(self):
        record = make_record(
            brand_palette={"primary": "#112233", "secondary": "#445566", "accent": "#778899"}
        )

        self.orchestrator().process(record.pk)

        artifact = SiteArtifact.objects.get(record=record)
        assert artifact.palette_source == PaletteSource.EXPLICIT
        assert artifact.primary_color == "#112233"

    def test_notification_failure_does_not_change_outcome(self):
        self.notifier = FakeNotifier(failing={"customer", "sales"})
        record = make_record()

        result = self.orchestrator().process(record.pk)

        assert result.status == "generated"
        assert "notification to customer failed" in result.warnings


class FailureTests(OrchestratorTestCase):
    def test_synthesis_failure_returns_record_to_pending(self):
        self.synthesizer = FakeSynthesizer(error=SynthesisError("model unavailable"))
        record = make_record()

        result = self.orchestrator().process(record.pk)

        assert result.status == "failed"
        assert result.failed_stage == GenerationStage.SYNTHESIZE_CONTENT
        record.refresh_from_db()
        assert record.status == RecordStatus.PENDING
        assert record.attempts == 1
        assert record.last_error_stage == "synthesize_content"
        assert "model unavailable" in record.last_error_message
        assert record.claimed_by == ""
        assert not SiteArtifact.objects.filter(record=record).exists()
        assert not Principal.objects.exists()
        assert self.notifier.sent == []

        run = GenerationRun.objects.get(run_id=result.run_id)
        assert run.status == RunStatus.FAILED
        assert run.failed_stage == "synthesize_content"
        assert not run.stage_executions.filter(stage="render_artifact").exists()

    def test_attempts_accumulate_across_failures(self):
        self.synthesizer = FakeSynthesizer(error=SynthesisError("down"))
        record = make_record()

        self.orchestrator().process(record.pk)
        self.orchestrator().process(record.pk)

        record.refresh_from_db()
        assert record.attempts == 2

    def test_unexpected_exception_is_contained(self):
        record = make_record()
        broken = MagicMock()
        broken.execute.side_effect = RuntimeError("kaboom")

        result = self.orchestrator(render_artifact=broken).process(record.pk)

        assert result.status == "failed"
        assert result.failed_stage == "render_artifact"
        assert "kaboom" in result.error
        record.refresh_from_db()
        assert record.status == RecordStatus.PENDING
        assert record.attempts == 1
        execution = StageExecution.objects.get(stage="render_artifact")
        assert execution.status == StageStatus.FAILED
        assert execution.error_type == "RuntimeError"

    def test_one_failing_asset_keeps_the_others(self):
        record = make_record(
            assets=[
                ("logo", image_bytes()),
                ("gallery", image_bytes(color=(0, 0, 200))),
                ("gallery", b"corrupt upload"),
            ]
        )

        result = self.orchestrator().process(record.pk)

        assert result.status == "generated"
        assert any("gallery#1" in w for w in result.warnings)
        assets = {(a.purpose, a.position): a for a in record.assets.all()}
        assert assets[("logo", 0)].status == AssetStatus.OPTIMIZED
        assert assets[("gallery", 0)].status == AssetStatus.OPTIMIZED
        assert assets[("gallery", 1)].status == AssetStatus.FAILED
        assert SiteArtifact.objects.get(record=record).palette_source == PaletteSource.EXTRACTED

    def test_artifact_write_failure_is_not_fatal(self):
        store = MagicMock()
        store.write.side_effect = ArtifactStoreError("read-only filesystem")
        record = make_record()

        result = self.orchestrator(persist_artifact=PersistArtifactExecutor(store=store)).process(
            record.pk
        )

        assert result.status == "generated"
        assert SiteArtifact.objects.get(record=record).files_persisted is False
        assert Principal.objects.filter(contact_address=record.contact_email).exists()
        assert len(self.notifier.sent) == 2

    def test_retry_skips_checkpointed_assets(self):
        self.synthesizer = FakeSynthesizer(error=SynthesisError("down"))
        record = make_record(assets=[("logo", image_bytes())])
        self.orchestrator().process(record.pk)

        self.synthesizer = FakeSynthesizer()
        optimizer = MagicMock(wraps=ImageOptimizer())
        result = self.orchestrator(
            optimize_assets=OptimizeAssetsExecutor(optimizer=optimizer)
        ).process(record.pk)

        assert result.status == "generated"
        optimizer.optimize.assert_not_called()

    def test_identity_failure_returns_record_to_pending_without_notifying(self):
        provisioner = MagicMock()
        provisioner.provision.side_effect = IdentityProvisioningError("directory unavailable")
        record = make_record()

        result = self.orchestrator(
            provision_identity=ProvisionIdentityExecutor(provisioner=provisioner)
        ).process(record.pk)

        assert result.status == "failed"
        assert result.failed_stage == "provision_identity"
        record.refresh_from_db()
        assert record.status == RecordStatus.PENDING
        assert record.attempts == 1
        assert record.last_error_stage == "provision_identity"
        assert "directory unavailable" in record.last_error_message
        assert record.claimed_by == ""
        assert self.notifier.sent == []
        assert not StageExecution.objects.filter(stage="promote_status").exists()

    def test_non_fatal_stage_exception_becomes_a_warning(self):
        broken = MagicMock()
        broken.execute.side_effect = RuntimeError("smtp exploded")
        record = make_record()

        with self.assertLogs("apps.generation.orchestrator", level="ERROR"):
            result = self.orchestrator(notify=broken).process(record.pk)

        assert result.status == "generated"
        assert "notify: RuntimeError: smtp exploded" in result.warnings
        assert "notify" not in result.stages_completed
        record.refresh_from_db()
        assert record.status == RecordStatus.GENERATED
        assert record.attempts == 0
        execution = StageExecution.objects.get(stage="notify")
        assert execution.status == StageStatus.FAILED
        assert execution.error_type == "RuntimeError"
        assert execution.fatal is False
        assert GenerationRun.objects.get(run_id=result.run_id).status == RunStatus.SUCCEEDED

    def test_malformed_brand_palette_is_a_warning(self):
        record = make_record(brand_palette=["#112233", "#445566", "#778899"])

        result = self.orchestrator().process(record.pk)

        assert result.status == "generated"
        assert any("brand palette" in w for w in result.warnings)
        artifact = SiteArtifact.objects.get(record=record)
        assert artifact.palette_source == PaletteSource.DEFAULT
        assert artifact.primary_color == "#6366f1"
        assert StageExecution.objects.get(stage="resolve_palette").status == StageStatus.SUCCEEDED


class ExclusionTests(OrchestratorTestCase):
    def test_held_guard_skips_without_running_stages(self):
        record = make_record()
        self.guard.try_acquire(str(record.pk))

        result = self.orchestrator().process(record.pk, trigger="sweep")

        assert result.status == "skipped"
        assert self.synthesizer.calls == 0
        record.refresh_from_db()
        assert record.status == RecordStatus.PENDING
        assert GenerationRun.objects.get(record=record).status == RunStatus.SKIPPED

    def test_fresh_lease_elsewhere_skips(self):
        record = make_record()
        IntakeRecord.objects.filter(pk=record.pk).update(
            status=RecordStatus.GENERATING,
            claimed_by="other-host:1:abcd",
            claimed_at=timezone.now(),
        )

        result = self.orchestrator().process(record.pk, trigger="sweep")

        assert result.status == "skipped"
        assert self.synthesizer.calls == 0
        record.refresh_from_db()
        assert record.claimed_by == "other-host:1:abcd"

    @override_settings(GENERATION_LIVENESS_SECONDS=60)
    def test_expired_lease_is_taken_over(self):
        record = make_record()
        IntakeRecord.objects.filter(pk=record.pk).update(
            status=RecordStatus.GENERATING,
            claimed_by="crashed-host:1:abcd",
            claimed_at=timezone.now() - timedelta(minutes=5),
        )

        result = self.orchestrator().process(record.pk, trigger="sweep")

        assert result.status == "generated"

    def test_two_triggers_run_stages_exactly_once(self):
        record = make_record()
        orchestrator = self.orchestrator()

        first = orchestrator.process(record.pk, trigger="inline")
        second = orchestrator.process(record.pk, trigger="sweep")

        assert first.status == "generated"
        assert second.status == "skipped"
        assert self.synthesizer.calls == 1
        assert len(self.notifier.sent) == 2
        assert Principal.objects.count() == 1

    def test_trigger_during_a_pass_is_skipped(self):
        record = make_record()
        nested = {}

        class ReentrantSynthesizer(FakeSynthesizer):
            def synthesize(synth, payload):
                nested["result"] = orchestrator.process(record.pk, trigger="sweep")
                return super().synthesize(payload)

        self.synthesizer = ReentrantSynthesizer()
        orchestrator = self.orchestrator()

        result = orchestrator.process(record.pk, trigger="inline")

        assert result.status == "generated"
        assert nested["result"].status == "skipped"
        assert self.synthesizer.calls == 1

    def test_invalid_and_missing_ids_are_skipped(self):
        orchestrator = self.orchestrator()

        assert orchestrator.process("not-a-uuid").status == "skipped"
        assert orchestrator.process("6f1c1c3e-34a4-4b1e-9c55-7d0f3c1e8a11").status == "skipped"
        assert not GenerationRun.objects.exists()

class RacingGuard(ClaimGuard):
    """Holds both callers at the claim; the winner waits for the loser to finish."""

    def __init__(self):
        super().__init__()
        self.barrier = threading.Barrier(2)
        self.loser_done = threading.Event()

    def try_acquire(self, record_id):
        acquired = super().try_acquire(record_id)
        self.barrier.wait(timeout=10)
        if acquired:
            self.loser_done.wait(timeout=10)
        return acquired


@override_settings(GENERATION_NOTIFY_TARGETS=TARGETS)
class ConcurrentTriggerTests(TransactionTestCase):
    def test_simultaneous_triggers_generate_once(self):
        record = make_record()
        synthesizer = FakeSynthesizer()
        notifier = FakeNotifier()
        guard = RacingGuard()
        orchestrator = GenerationOrchestrator(
            guard=guard,
            executors={
                "synthesize_content": SynthesizeContentExecutor(synthesizer=synthesizer),
                "notify": NotifyExecutor(notifier=notifier),
            },
        )
        results = []
        results_lock = threading.Lock()

        def trigger(name):
            try:
                result = orchestrator.process(record.pk, trigger=name)
                with results_lock:
                    results.append(result.status)
            finally:
                guard.loser_done.set()
                connection.close()

        threads = [threading.Thread(target=trigger, args=(name,)) for name in ("inline", "sweep")]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(results) == ["generated", "skipped"]
        assert synthesizer.calls == 1
        assert len(notifier.sent) == 2
        record.refresh_from_db()
        assert record.status == RecordStatus.GENERATED
        assert Principal.objects.count() == 1
        assert GenerationRun.objects.filter(status=RunStatus.SKIPPED).count() == 1



class SignalTests(OrchestratorTestCase):
    @patch("apps.generation.orchestrator.emit_pass_completed")
    @patch("apps.generation.orchestrator.emit_stage_succeeded")
    @patch("apps.generation.orchestrator.emit_stage_started")
    def test_stage_boundaries_emit_signals(self, started, succeeded, completed):
        record = make_record()

        self.orchestrator().process(record.pk)

        assert started.call_count == len(STAGE_ORDER)
        assert succeeded.call_count == len(STAGE_ORDER)
        completed.assert_called_once()
        assert completed.call_args[0][2] == "generated"

    @patch("apps.generation.orchestrator.emit_stage_failed")
    def test_fatal_failure_emits_failed_signal(self, failed):
        self.synthesizer = FakeSynthesizer(error=SynthesisError("down"))
        record = make_record()

        self.orchestrator().process(record.pk)

        failed.assert_called_once()
        assert failed.call_args.kwargs["fatal"] is True
