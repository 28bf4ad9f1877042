"""
Generation orchestrator.

Drives one intake record through the pipeline:

    optimize_assets → synthesize_content → resolve_palette → render_artifact
    → persist_artifact → provision_identity → promote_status → notify

Key responsibilities:
1. Mutual exclusion: in-process ClaimGuard plus the record-level lease.
2. Failure policy: errors in a fatal stage abort the pass and return the
   record to ``pending`` with the attempt counted; other stages only warn.
3. Audit trail: a GenerationRun per pass and a StageExecution per stage.
4. Observability: signals at every stage boundary.
"""

from __future__ import annotations

import logging
import os
import socket
import time
import uuid

from django.db.models import F
from django.utils import timezone

from apps.generation.dtos import GenerationContext, GenerationResult, StageResult
from apps.generation.executors import (
    BaseExecutor,
    NotifyExecutor,
    OptimizeAssetsExecutor,
    PersistArtifactExecutor,
    PromoteStatusExecutor,
    ProvisionIdentityExecutor,
    RenderArtifactExecutor,
    ResolvePaletteExecutor,
    SynthesizeContentExecutor,
)
from apps.generation.guard import ClaimGuard, claim_record, default_guard
from apps.generation.models import (
    GenerationRun,
    GenerationStage,
    RunStatus,
    RunTrigger,
    StageExecution,
)
from apps.generation.signals import (
    SignalTags,
    emit_pass_completed,
    emit_pass_started,
    emit_stage_failed,
    emit_stage_started,
    emit_stage_succeeded,
)

logger = logging.getLogger(__name__)


# Stage order for a pass; keys are plain stage names.
STAGE_ORDER = [stage.value for stage in GenerationStage]

FATAL_STAGES = frozenset(
    {
        GenerationStage.SYNTHESIZE_CONTENT.value,
        GenerationStage.RENDER_ARTIFACT.value,
        GenerationStage.PROVISION_IDENTITY.value,
        GenerationStage.PROMOTE_STATUS.value,
    }
)

MAX_ERROR_LENGTH = 2000


class StageExecutionError(Exception):
    """Raised when a fatal stage reports errors."""

    def __init__(self, stage: str, errors: list[str]):
        self.stage = stage
        self.errors = errors
        super().__init__(f"Stage {stage} failed: {'; '.join(errors)}")


def worker_identity() -> str:
    """Unique lease holder name for one pass."""
    return f"{socket.gethostname()}:{os.getpid()}:{uuid.uuid4().hex[:8]}"


class GenerationOrchestrator:
    """
    Runs generation passes.

    Usage:
        orchestrator = GenerationOrchestrator()
        result = orchestrator.process(record_id, trigger="sweep")
    """

    executors: dict[str, BaseExecutor]

    def __init__(
        self,
        guard: ClaimGuard | None = None,
        executors: dict[str, BaseExecutor] | None = None,
    ):
        """
        Args:
            guard: In-process claim guard (the module-wide one by default).
            executors: Per-stage executor overrides, keyed by stage name.
        """
        self.guard = guard or default_guard
        defaults: list[BaseExecutor] = [
            OptimizeAssetsExecutor(),
            SynthesizeContentExecutor(),
            ResolvePaletteExecutor(),
            RenderArtifactExecutor(),
            PersistArtifactExecutor(),
            ProvisionIdentityExecutor(),
            PromoteStatusExecutor(),
            NotifyExecutor(),
        ]
        self.executors = {str(executor.stage): executor for executor in defaults}
        for stage, executor in (executors or {}).items():
            self.executors[str(stage)] = executor

    def process(self, record_id, trigger: str = RunTrigger.MANUAL) -> GenerationResult:
        """
        Run one pass over a record if it is eligible.

        Never raises for pipeline failures; the outcome is in the result.

        Args:
            record_id: IntakeRecord primary key (UUID or its string form).
            trigger: ``inline``, ``sweep`` or ``manual``.

        Returns:
            GenerationResult with status ``generated``, ``failed`` or ``skipped``.
        """
        from apps.intake.models import IntakeRecord, RecordStatus

        record_id = str(record_id)
        result = GenerationResult(record_id=record_id, trigger=str(trigger))

        try:
            uuid.UUID(record_id)
        except ValueError:
            result.error = "invalid record id"
            logger.warning(f"Ignoring invalid record id {record_id!r}")
            return result

        with self.guard.claim(record_id) as acquired:
            record = IntakeRecord.objects.filter(pk=record_id).first()
            if record is None:
                result.error = "record not found"
                logger.warning(f"Record not found: {record_id}", extra={"record_id": record_id})
                return result

            if record.status == RecordStatus.GENERATED:
                result.error = "record already generated"
                return result

            if not acquired:
                result.error = "record is being processed by this worker"
                self._record_skip(record, trigger, result.error)
                return result

            worker = worker_identity()
            if not claim_record(record_id, worker):
                result.error = "record is claimed by another worker"
                self._record_skip(record, trigger, result.error)
                return result

            record.refresh_from_db()
            return self._run_pass(record, trigger, worker, result)

    def _record_skip(self, record, trigger: str, reason: str) -> None:
        now = timezone.now()
        GenerationRun.objects.create(
            record=record,
            trigger=trigger,
            status=RunStatus.SKIPPED,
            error_message=reason,
            started_at=now,
            completed_at=now,
        )
        logger.info(f"Generation skipped: {reason}", extra={"record_id": str(record.pk)})

    def _run_pass(self, record, trigger: str, worker: str, result: GenerationResult):
        start_time = time.perf_counter()

        run = GenerationRun.objects.create(
            record=record,
            trigger=trigger,
            worker=worker,
            status=RunStatus.RUNNING,
            started_at=timezone.now(),
        )
        result.run_id = run.run_id

        ctx = GenerationContext(record=record, run_id=run.run_id, trigger=trigger, worker=worker)
        base_tags = SignalTags(
            record_id=ctx.record_id,
            run_id=run.run_id,
            stage="pass",
            trigger=str(trigger),
            worker=worker,
        )
        emit_pass_started(base_tags)
        logger.info(
            f"Generation pass started: run_id={run.run_id} trigger={trigger}",
            extra={"record_id": ctx.record_id, "stage": "pass"},
        )

        current_stage = ""
        try:
            for stage in STAGE_ORDER:
                current_stage = stage
                stage_result = self._execute_stage(run, ctx, stage)
                if stage_result.has_errors:
                    if stage in FATAL_STAGES:
                        raise StageExecutionError(stage=stage, errors=stage_result.errors)
                    ctx.warnings.extend(f"{stage}: {error}" for error in stage_result.errors)
                else:
                    result.stages_completed.append(str(stage))

            result.status = "generated"
            run.mark_succeeded(ctx.warnings)
            logger.info(
                f"Record generated: run_id={run.run_id}",
                extra={"record_id": ctx.record_id, "stage": "pass"},
            )

        except StageExecutionError as e:
            message = "; ".join(e.errors)
            result.status = "failed"
            result.failed_stage = str(e.stage)
            result.error = message
            self._release_failed(ctx, e.stage, message)
            run.mark_failed(e.stage, message, ctx.warnings)
            logger.error(
                f"Generation failed at {e.stage}: {message}",
                extra={"record_id": ctx.record_id, "stage": str(e.stage)},
            )

        except Exception as e:
            message = f"{type(e).__name__}: {e}"
            result.status = "failed"
            result.failed_stage = str(current_stage)
            result.error = message
            self._release_failed(ctx, current_stage, message)
            run.mark_failed(current_stage, message, ctx.warnings)
            logger.exception(
                f"Generation pass failed unexpectedly: {e}",
                extra={"record_id": ctx.record_id, "stage": str(current_stage)},
            )

        finally:
            ctx.credential = None

        result.warnings = list(ctx.warnings)
        result.duration_ms = (time.perf_counter() - start_time) * 1000
        emit_pass_completed(base_tags, result.duration_ms, result.status)
        return result

    def _execute_stage(self, run: GenerationRun, ctx: GenerationContext, stage: str) -> StageResult:
        fatal = stage in FATAL_STAGES
        execution = StageExecution.objects.create(run=run, stage=stage, fatal=fatal)
        tags = SignalTags(
            record_id=ctx.record_id,
            run_id=run.run_id,
            stage=str(stage),
            trigger=str(ctx.trigger),
            worker=ctx.worker,
        )

        execution.mark_started()
        emit_stage_started(tags)

        try:
            stage_result = self.executors[stage].execute(ctx)
        except Exception as e:
            execution.mark_failed(error_type=type(e).__name__, error_message=str(e))
            emit_stage_failed(
                tags,
                error_type=type(e).__name__,
                error_message=str(e),
                fatal=fatal,
                duration_ms=execution.duration_ms,
            )
            if fatal:
                raise
            logger.exception(
                f"Non-fatal stage {stage} raised, continuing",
                extra={"record_id": ctx.record_id, "stage": str(stage)},
            )
            return StageResult(errors=[f"{type(e).__name__}: {e}"])

        ctx.warnings.extend(stage_result.warnings)
        ctx.results[str(stage)] = stage_result.snapshot()

        if stage_result.has_errors:
            message = "; ".join(stage_result.errors)
            execution.mark_failed(
                error_type="StageExecutionError" if fatal else "StageWarning",
                error_message=message,
                output_snapshot=stage_result.snapshot(),
            )
            emit_stage_failed(
                tags,
                error_type="StageExecutionError",
                error_message=message,
                fatal=fatal,
                duration_ms=stage_result.duration_ms,
            )
        else:
            execution.mark_succeeded(output_snapshot=stage_result.snapshot())
            emit_stage_succeeded(tags, stage_result.duration_ms, len(stage_result.warnings))

        return stage_result

    def _release_failed(self, ctx: GenerationContext, stage: str, message: str) -> None:
        """Return the record to pending, counting the attempt, if we still hold the lease."""
        from apps.intake.models import IntakeRecord, RecordStatus

        now = timezone.now()
        IntakeRecord.objects.filter(
            pk=ctx.record.pk,
            status=RecordStatus.GENERATING,
            claimed_by=ctx.worker,
        ).update(
            status=RecordStatus.PENDING,
            attempts=F("attempts") + 1,
            last_error_stage=str(stage),
            last_error_message=message[:MAX_ERROR_LENGTH],
            claimed_by="",
            claimed_at=None,
            updated_at=now,
        )
