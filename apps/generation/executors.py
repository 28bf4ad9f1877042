"""
Stage executors for the generation pipeline.

Each executor wraps one collaborator and returns a result DTO. Executors do
not call each other; the orchestrator runs them in order and decides, from
``FATAL_STAGES``, whether errors abort the pass.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod

from django.conf import settings
from django.utils import timezone

from apps.generation.dtos import (
    AssetOptimizationResult,
    GenerationContext,
    NotifyResult,
    PaletteResult,
    PersistResult,
    ProvisionResult,
    RenderResult,
    StageResult,
    SynthesisResult,
)
from apps.generation.models import GenerationStage, PaletteSource

logger = logging.getLogger(__name__)

PALETTE_SLOTS = ("primary", "secondary", "accent")


def _elapsed_ms(start_time: float) -> float:
    return (time.perf_counter() - start_time) * 1000


class BaseExecutor(ABC):
    """Base class for stage executors."""

    stage: str = ""

    @abstractmethod
    def execute(self, ctx: GenerationContext) -> StageResult:
        """Execute the stage and return a result DTO."""
        raise NotImplementedError

    def _log_extra(self, ctx: GenerationContext) -> dict[str, str]:
        return {"record_id": ctx.record_id, "stage": self.stage}


class OptimizeAssetsExecutor(BaseExecutor):
    """
    Optimize staged uploads one at a time.

    Assets already optimized by an earlier pass are skipped. A failing asset
    is marked failed and reported as a warning; the others are unaffected.
    """

    stage = GenerationStage.OPTIMIZE_ASSETS

    def __init__(self, optimizer=None):
        self.optimizer = optimizer

    def execute(self, ctx: GenerationContext) -> AssetOptimizationResult:
        start_time = time.perf_counter()
        result = AssetOptimizationResult()

        try:
            from apps.imaging.optimizer import ImageOptimizer, ImageProcessingError
            from apps.intake.models import AssetStatus

            optimizer = self.optimizer or ImageOptimizer()

            for asset in ctx.record.assets.order_by("purpose", "position"):
                label = f"{asset.purpose}#{asset.position}"
                if asset.status == AssetStatus.OPTIMIZED:
                    result.skipped += 1
                    continue
                if not asset.raw_bytes:
                    result.skipped += 1
                    result.warnings.append(f"{label}: no staged upload to optimize")
                    continue

                try:
                    optimized = optimizer.optimize(
                        bytes(asset.raw_bytes),
                        asset.purpose,
                        record_id=ctx.record_id,
                        position=asset.position,
                        filename=asset.filename,
                    )
                    asset.mark_optimized(
                        optimized.ref,
                        optimized.webp_ref,
                        optimized.thumbnail_ref,
                        optimized.width,
                        optimized.height,
                        optimized.size,
                    )
                except ImageProcessingError as e:
                    logger.warning(f"Asset {label} failed: {e}", extra=self._log_extra(ctx))
                    self._fail_asset(asset, label, str(e), result)
                    continue
                except Exception as e:
                    logger.exception(f"Asset {label} raised", extra=self._log_extra(ctx))
                    self._fail_asset(asset, label, f"{type(e).__name__}: {e}", result)
                    continue

                result.optimized += 1

            ctx.assets = ctx.record.derived_assets
            result.assets = list(ctx.assets)

        except Exception as e:
            logger.exception("Error in OptimizeAssetsExecutor", extra=self._log_extra(ctx))
            result.errors.append(f"Asset optimization error: {str(e)}")

        result.duration_ms = _elapsed_ms(start_time)
        return result

    def _fail_asset(self, asset, label: str, message: str, result: AssetOptimizationResult):
        # Only this asset fails; the loop moves on to the next one.
        asset.mark_failed(message)
        result.failed += 1
        result.warnings.append(f"{label}: {message}")


class SynthesizeContentExecutor(BaseExecutor):
    """Generate site copy and checkpoint it on the record. Always re-runs."""

    stage = GenerationStage.SYNTHESIZE_CONTENT

    def __init__(self, synthesizer=None):
        self.synthesizer = synthesizer

    def execute(self, ctx: GenerationContext) -> SynthesisResult:
        start_time = time.perf_counter()
        result = SynthesisResult()

        try:
            from apps.intake.models import IntakeRecord
            from apps.synthesis.providers import get_active_synthesizer

            synthesizer = self.synthesizer or get_active_synthesizer()
            result.provider = synthesizer.name

            content = synthesizer.synthesize(ctx.record.business_payload or {})
            IntakeRecord.objects.filter(pk=ctx.record.pk).update(
                generated_content=content,
                updated_at=timezone.now(),
            )
            ctx.record.generated_content = content
            ctx.content = content
            result.content = content

        except Exception as e:
            logger.exception("Error in SynthesizeContentExecutor", extra=self._log_extra(ctx))
            result.errors.append(f"Content synthesis error: {str(e)}")

        result.duration_ms = _elapsed_ms(start_time)
        return result


class ResolvePaletteExecutor(BaseExecutor):
    """
    Pick the site palette.

    An explicit brand palette wins. Otherwise the optimized logo is sampled;
    without a logo, or when sampling fails, the default palette is used.
    """

    stage = GenerationStage.RESOLVE_PALETTE

    def __init__(self, extractor=None):
        self.extractor = extractor

    def execute(self, ctx: GenerationContext) -> PaletteResult:
        from apps.imaging.palette import DEFAULT_PALETTE

        start_time = time.perf_counter()
        result = PaletteResult()

        palette, source = None, PaletteSource.DEFAULT
        try:
            palette = self._explicit_palette(ctx, result)
            source = PaletteSource.EXPLICIT
            if palette is None:
                palette, source = self._logo_palette(ctx, result)
        except Exception as e:
            logger.exception("Error in ResolvePaletteExecutor", extra=self._log_extra(ctx))
            result.warnings.append(f"palette resolution error: {e}")
            result.fallback_used = True
            palette = None
        if palette is None:
            palette, source = DEFAULT_PALETTE, PaletteSource.DEFAULT

        ctx.palette = palette
        ctx.palette_source = source
        result.palette = palette.to_dict()
        result.source = source
        result.duration_ms = _elapsed_ms(start_time)
        return result

    def _explicit_palette(self, ctx: GenerationContext, result: PaletteResult):
        from apps.imaging.palette import Palette, normalize_hex

        explicit = ctx.record.brand_palette
        if not explicit:
            return None
        if not isinstance(explicit, dict):
            result.warnings.append("brand palette is not a slot mapping, ignoring it")
            result.fallback_used = True
            return None
        values = {slot: normalize_hex(explicit.get(slot)) for slot in PALETTE_SLOTS}
        if not all(values.values()):
            result.warnings.append("brand palette incomplete, ignoring it")
            result.fallback_used = True
            return None
        return Palette(**values)

    def _logo_palette(self, ctx: GenerationContext, result: PaletteResult):
        from apps.imaging.palette import PaletteExtractionError, PaletteExtractor

        logo = next((a for a in ctx.assets if a.get("purpose") == "logo" and a.get("ref")), None)
        if logo is None:
            return None, PaletteSource.DEFAULT

        try:
            extractor = self.extractor or PaletteExtractor()
            return extractor.extract(logo["ref"]), PaletteSource.EXTRACTED
        except PaletteExtractionError as e:
            logger.warning(
                f"Palette extraction failed, using default: {e}",
                extra=self._log_extra(ctx),
            )
            result.warnings.append(f"palette extraction failed: {e}")
        except Exception as e:
            logger.exception("Error in ResolvePaletteExecutor", extra=self._log_extra(ctx))
            result.warnings.append(f"palette extraction error: {e}")
        result.fallback_used = True
        return None, PaletteSource.DEFAULT


class RenderArtifactExecutor(BaseExecutor):
    """Render the static site from the content model."""

    stage = GenerationStage.RENDER_ARTIFACT

    def execute(self, ctx: GenerationContext) -> RenderResult:
        start_time = time.perf_counter()
        result = RenderResult(theme=ctx.record.theme)

        try:
            from apps.generation.artifacts import ArtifactStore
            from apps.renderer.content import build_content_model
            from apps.renderer.renderer import render_site

            model = build_content_model(
                ctx.record.business_payload or {},
                ctx.content,
                contact_email=ctx.record.contact_email,
                palette=ctx.palette,
                assets=ctx.assets,
            )
            files = render_site(model, ctx.record.theme)

            ctx.files = files
            ctx.content_digest = ArtifactStore.digest(files)
            result.files = files
            result.file_names = sorted(files)
            result.content_digest = ctx.content_digest

        except Exception as e:
            logger.exception("Error in RenderArtifactExecutor", extra=self._log_extra(ctx))
            result.errors.append(f"Render error: {str(e)}")

        result.duration_ms = _elapsed_ms(start_time)
        return result


class PersistArtifactExecutor(BaseExecutor):
    """
    Write rendered files and upsert the SiteArtifact row.

    A failed file write is logged and reported as a warning; the row is still
    upserted with ``files_persisted=False`` so the pass can complete.
    """

    stage = GenerationStage.PERSIST_ARTIFACT

    def __init__(self, store=None):
        self.store = store

    def execute(self, ctx: GenerationContext) -> PersistResult:
        start_time = time.perf_counter()
        result = PersistResult()

        try:
            from apps.generation.artifacts import ArtifactStore, ArtifactStoreError, preview_url_for
            from apps.generation.models import SiteArtifact

            store = self.store or ArtifactStore()
            try:
                result.files_path = str(store.write(ctx.record_id, ctx.files))
                result.persisted = True
            except ArtifactStoreError as e:
                logger.error(f"Artifact write failed: {e}", extra=self._log_extra(ctx))
                result.warnings.append(f"artifact files not persisted: {e}")
                result.fallback_used = True

            palette = ctx.palette.to_dict()
            result.preview_url = preview_url_for(ctx.record_id)
            artifact, _ = SiteArtifact.objects.update_or_create(
                record=ctx.record,
                defaults={
                    "files_path": result.files_path,
                    "file_names": sorted(ctx.files),
                    "content_digest": ctx.content_digest,
                    "theme": ctx.record.theme,
                    "primary_color": palette["primary"],
                    "secondary_color": palette["secondary"],
                    "accent_color": palette["accent"],
                    "palette_source": ctx.palette_source,
                    "preview_url": result.preview_url,
                    "files_persisted": result.persisted,
                    "rendered_at": timezone.now(),
                },
            )
            ctx.artifact_id = artifact.pk
            result.artifact_id = artifact.pk

        except Exception as e:
            logger.exception("Error in PersistArtifactExecutor", extra=self._log_extra(ctx))
            result.errors.append(f"Persist error: {str(e)}")

        result.duration_ms = _elapsed_ms(start_time)
        return result


class ProvisionIdentityExecutor(BaseExecutor):
    """Create or rotate the login principal for the contact address."""

    stage = GenerationStage.PROVISION_IDENTITY

    def __init__(self, provisioner=None):
        self.provisioner = provisioner

    def execute(self, ctx: GenerationContext) -> ProvisionResult:
        start_time = time.perf_counter()
        result = ProvisionResult()

        try:
            from apps.accounts.services import IdentityProvisioner, generate_credential
            from apps.generation.models import SiteArtifact

            provisioner = self.provisioner or IdentityProvisioner()
            credential = generate_credential(ctx.record.business_name or ctx.record.contact_email)
            principal_id = provisioner.provision(ctx.record.contact_email, credential)

            SiteArtifact.objects.filter(record_id=ctx.record.pk).update(principal_id=principal_id)

            ctx.credential = credential
            ctx.principal_id = principal_id
            result.principal_id = principal_id
            result.username = credential.username

        except Exception as e:
            logger.exception("Error in ProvisionIdentityExecutor", extra=self._log_extra(ctx))
            result.errors.append(f"Identity provisioning error: {str(e)}")

        result.duration_ms = _elapsed_ms(start_time)
        return result


class PromoteStatusExecutor(BaseExecutor):
    """
    Move the record to ``generated``.

    The update only applies while this pass still holds the lease; a record
    without a SiteArtifact is never promoted.
    """

    stage = GenerationStage.PROMOTE_STATUS

    def execute(self, ctx: GenerationContext) -> StageResult:
        start_time = time.perf_counter()
        result = StageResult()

        try:
            from apps.generation.models import SiteArtifact
            from apps.intake.models import IntakeAsset, IntakeRecord, RecordStatus

            if not SiteArtifact.objects.filter(record_id=ctx.record.pk).exists():
                result.errors.append("no site artifact for record")
            else:
                now = timezone.now()
                updated = IntakeRecord.objects.filter(
                    pk=ctx.record.pk,
                    status=RecordStatus.GENERATING,
                    claimed_by=ctx.worker,
                ).update(
                    status=RecordStatus.GENERATED,
                    generated_at=now,
                    claimed_by="",
                    claimed_at=None,
                    last_error_stage="",
                    last_error_message="",
                    updated_at=now,
                )
                if updated != 1:
                    result.errors.append("generation lease lost before promotion")
                else:
                    IntakeAsset.objects.filter(
                        record_id=ctx.record.pk, raw_bytes__isnull=False
                    ).update(raw_bytes=None)

        except Exception as e:
            logger.exception("Error in PromoteStatusExecutor", extra=self._log_extra(ctx))
            result.errors.append(f"Promotion error: {str(e)}")

        result.duration_ms = _elapsed_ms(start_time)
        return result


class NotifyExecutor(BaseExecutor):
    """Send the customer and team notifications; each target is independent."""

    stage = GenerationStage.NOTIFY

    def __init__(self, notifier=None):
        self.notifier = notifier

    def build_payload(self, ctx: GenerationContext) -> dict:
        from apps.generation.artifacts import preview_url_for

        base_url = getattr(settings, "SITE_BASE_URL", "").rstrip("/")
        login_path = getattr(settings, "SITE_LOGIN_PATH", "/login/")
        credential = ctx.credential
        return {
            "record_id": ctx.record_id,
            "business_name": ctx.record.business_name,
            "contact_email": ctx.record.contact_email,
            "username": credential.username if credential else "",
            "password": credential.password if credential else "",
            "preview_url": preview_url_for(ctx.record_id),
            "login_url": f"{base_url}{login_path}",
            "theme": ctx.record.theme,
            "palette_source": ctx.palette_source,
            "warnings": list(ctx.warnings),
        }

    def execute(self, ctx: GenerationContext) -> NotifyResult:
        start_time = time.perf_counter()
        result = NotifyResult()

        try:
            from apps.notify.notifier import Notifier, get_notify_targets

            notifier = self.notifier or Notifier()
            payload = self.build_payload(ctx)

            for target in get_notify_targets():
                success = notifier.notify(target, payload)
                result.attempted += 1
                if success:
                    result.succeeded += 1
                else:
                    result.failed += 1
                    result.warnings.append(f"notification to {target.name} failed")
                result.deliveries.append(
                    {
                        "target": target.name,
                        "driver": target.driver,
                        "audience": target.audience,
                        "success": success,
                    }
                )

        except Exception as e:
            logger.exception("Error in NotifyExecutor", extra=self._log_extra(ctx))
            result.errors.append(f"Notify error: {str(e)}")

        result.duration_ms = _elapsed_ms(start_time)
        return result
