"""Tests for generation stage executors."""

from unittest.mock import MagicMock, patch

from django.test import TestCase, override_settings

from apps.accounts.models import Principal
from apps.generation._tests.utils import (
    FakeNotifier,
    FakeSynthesizer,
    image_bytes,
    make_record,
)
from apps.generation.artifacts import ArtifactStoreError
from apps.generation.dtos import GenerationContext
from apps.generation.executors import (
    NotifyExecutor,
    OptimizeAssetsExecutor,
    PersistArtifactExecutor,
    PromoteStatusExecutor,
    ProvisionIdentityExecutor,
    RenderArtifactExecutor,
    ResolvePaletteExecutor,
    SynthesizeContentExecutor,
)
from apps.generation.models import PaletteSource, SiteArtifact
from apps.imaging.optimizer import ImageOptimizer
from apps.imaging.palette import DEFAULT_PALETTE, Palette, PaletteExtractionError
from apps.intake.models import AssetStatus, IntakeRecord, RecordStatus
from apps.synthesis.providers.base import SynthesisError


def _ctx(record, **kwargs):
    return GenerationContext(record=record, run_id="run-1", worker="worker-a", **kwargs)


def _rendered_ctx(record):
    ctx = _ctx(record)
    ctx.content = FakeSynthesizer().synthesize(record.business_payload)
    ResolvePaletteExecutor().execute(ctx)
    RenderArtifactExecutor().execute(ctx)
    return ctx


def _first_call_raises(error, then):
    calls = []

    def optimize(*args, **kwargs):
        calls.append(args)
        if len(calls) == 1:
            raise error
        return then(*args, **kwargs)

    return optimize


class OptimizeAssetsExecutorTests(TestCase):
    def test_one_bad_asset_does_not_affect_the_others(self):
        record = make_record(
            assets=[
                ("logo", image_bytes()),
                ("gallery", b"definitely not an image"),
                ("gallery", image_bytes(color=(10, 120, 10))),
            ]
        )
        ctx = _ctx(record)

        result = OptimizeAssetsExecutor().execute(ctx)

        assert result.has_errors is False
        assert result.optimized == 2
        assert result.failed == 1
        assert len(result.warnings) == 1
        assert "gallery#0" in result.warnings[0]
        statuses = dict(
            ((a.purpose, a.position), a.status) for a in record.assets.all()
        )
        assert statuses[("logo", 0)] == AssetStatus.OPTIMIZED
        assert statuses[("gallery", 0)] == AssetStatus.FAILED
        assert statuses[("gallery", 1)] == AssetStatus.OPTIMIZED
        assert [a["purpose"] for a in ctx.assets] == ["gallery", "logo"]

    def test_optimized_assets_are_not_processed_again(self):
        record = make_record(assets=[("logo", image_bytes())])
        OptimizeAssetsExecutor().execute(_ctx(record))

        optimizer = MagicMock()
        result = OptimizeAssetsExecutor(optimizer=optimizer).execute(_ctx(record))

        optimizer.optimize.assert_not_called()
        assert result.skipped == 1
        assert len(result.assets) == 1

    def test_success_clears_staged_bytes(self):
        record = make_record(assets=[("hero", image_bytes(size=(300, 200), fmt="JPEG"))])
        OptimizeAssetsExecutor().execute(_ctx(record))

        asset = record.assets.get()
        assert asset.status == AssetStatus.OPTIMIZED
        assert asset.raw_bytes is None
        assert asset.webp_ref.endswith(".webp")

    def test_unexpected_optimizer_error_only_fails_that_asset(self):
        record = make_record(
            assets=[
                ("gallery", image_bytes()),
                ("gallery", image_bytes(color=(10, 120, 10))),
                ("logo", image_bytes()),
            ]
        )
        real = ImageOptimizer()
        optimizer = MagicMock()
        optimizer.optimize.side_effect = _first_call_raises(RuntimeError("disk full"), real.optimize)

        with self.assertLogs("apps.generation.executors", level="ERROR"):
            result = OptimizeAssetsExecutor(optimizer=optimizer).execute(_ctx(record))

        assert result.has_errors is False
        assert result.optimized == 2
        assert result.failed == 1
        assert "RuntimeError: disk full" in result.warnings[0]
        statuses = dict(
            ((a.purpose, a.position), a.status) for a in record.assets.all()
        )
        assert statuses[("gallery", 0)] == AssetStatus.FAILED
        assert statuses[("gallery", 1)] == AssetStatus.OPTIMIZED
        assert statuses[("logo", 0)] == AssetStatus.OPTIMIZED



class SynthesizeContentExecutorTests(TestCase):
    def test_content_is_checkpointed(self):
        record = make_record()
        ctx = _ctx(record)

        result = SynthesizeContentExecutor(synthesizer=FakeSynthesizer()).execute(ctx)

        assert result.has_errors is False
        assert result.provider == "fake"
        assert ctx.content["hero"]["headline"].startswith("Harbor Bakery")
        record.refresh_from_db()
        assert record.generated_content == ctx.content

    def test_failure_is_reported_as_error(self):
        record = make_record()
        synthesizer = FakeSynthesizer(error=SynthesisError("model unavailable"))

        result = SynthesizeContentExecutor(synthesizer=synthesizer).execute(_ctx(record))

        assert result.has_errors is True
        assert "model unavailable" in result.errors[0]
        record.refresh_from_db()
        assert record.generated_content is None


class ResolvePaletteExecutorTests(TestCase):
    LOGO = {"purpose": "logo", "position": 0, "ref": "sites/x/logo-0.png"}

    def test_explicit_palette_wins_over_logo(self):
        record = make_record(
            brand_palette={"primary": "#112233", "secondary": "#445566", "accent": "#778899"}
        )
        extractor = MagicMock()
        ctx = _ctx(record, assets=[self.LOGO])

        result = ResolvePaletteExecutor(extractor=extractor).execute(ctx)

        extractor.extract.assert_not_called()
        assert result.source == PaletteSource.EXPLICIT
        assert ctx.palette.primary == "#112233"
        assert result.fallback_used is False

    def test_logo_palette_is_extracted(self):
        record = make_record()
        extractor = MagicMock()
        extractor.extract.return_value = Palette("#AA0000", "#00AA00", "#0000AA")
        ctx = _ctx(record, assets=[self.LOGO])

        result = ResolvePaletteExecutor(extractor=extractor).execute(ctx)

        extractor.extract.assert_called_once_with("sites/x/logo-0.png")
        assert result.source == PaletteSource.EXTRACTED
        assert ctx.palette_source == PaletteSource.EXTRACTED

    def test_extraction_failure_falls_back_to_default(self):
        record = make_record()
        extractor = MagicMock()
        extractor.extract.side_effect = PaletteExtractionError("unreadable")
        ctx = _ctx(record, assets=[self.LOGO])

        result = ResolvePaletteExecutor(extractor=extractor).execute(ctx)

        assert result.has_errors is False
        assert result.fallback_used is True
        assert result.source == PaletteSource.DEFAULT
        assert ctx.palette == DEFAULT_PALETTE
        assert "unreadable" in result.warnings[0]

    def test_no_logo_uses_default_without_fallback_flag(self):
        record = make_record()
        ctx = _ctx(record)

        result = ResolvePaletteExecutor().execute(ctx)

        assert result.source == PaletteSource.DEFAULT
        assert result.fallback_used is False
        assert result.palette == {"primary": "#6366f1", "secondary": "#8b5cf6", "accent": "#06b6d4"}

    def test_malformed_explicit_palette_falls_back(self):
        record = make_record(brand_palette=["#112233", "#445566", "#778899"])
        ctx = _ctx(record)

        result = ResolvePaletteExecutor().execute(ctx)

        assert result.has_errors is False
        assert result.fallback_used is True
        assert result.source == PaletteSource.DEFAULT
        assert ctx.palette == DEFAULT_PALETTE
        assert "brand palette" in result.warnings[0]

    def test_unexpected_error_uses_default_palette(self):
        record = make_record()
        extractor = MagicMock()
        ctx = _ctx(record, assets=[self.LOGO])

        with patch.object(
            ResolvePaletteExecutor, "_explicit_palette", side_effect=TypeError("bad slot")
        ), self.assertLogs("apps.generation.executors", level="ERROR"):
            result = ResolvePaletteExecutor(extractor=extractor).execute(ctx)

        assert result.has_errors is False
        assert result.fallback_used is True
        assert ctx.palette == DEFAULT_PALETTE
        assert ctx.palette_source == PaletteSource.DEFAULT
        assert "bad slot" in result.warnings[0]


class RenderAndPersistExecutorTests(TestCase):
    def test_render_produces_site_files_and_digest(self):
        record = make_record()
        ctx = _rendered_ctx(record)

        assert sorted(ctx.files) == ["index.html", "script.js", "styles.css"]
        assert len(ctx.content_digest) == 64

    def test_render_snapshot_omits_file_bodies(self):
        record = make_record()
        ctx = _ctx(record)
        ctx.content = FakeSynthesizer().synthesize(record.business_payload)
        ResolvePaletteExecutor().execute(ctx)

        result = RenderArtifactExecutor().execute(ctx)

        assert "files" not in result.snapshot()
        assert result.snapshot()["file_names"] == ["index.html", "script.js", "styles.css"]

    def test_persist_writes_files_and_upserts_artifact(self):
        record = make_record()
        ctx = _rendered_ctx(record)

        result = PersistArtifactExecutor().execute(ctx)
        PersistArtifactExecutor().execute(ctx)

        assert result.persisted is True
        assert SiteArtifact.objects.filter(record=record).count() == 1
        artifact = SiteArtifact.objects.get(record=record)
        assert artifact.files_persisted is True
        assert artifact.file_names == ["index.html", "script.js", "styles.css"]
        assert artifact.content_digest == ctx.content_digest
        assert artifact.palette_source == PaletteSource.DEFAULT
        assert artifact.preview_url.endswith(f"/generation/records/{record.pk}/preview/")

    def test_persist_write_failure_is_not_an_error(self):
        record = make_record()
        ctx = _rendered_ctx(record)
        store = MagicMock()
        store.write.side_effect = ArtifactStoreError("disk full")

        result = PersistArtifactExecutor(store=store).execute(ctx)

        assert result.has_errors is False
        assert result.fallback_used is True
        assert result.persisted is False
        assert "disk full" in result.warnings[0]
        assert SiteArtifact.objects.get(record=record).files_persisted is False


class ProvisionIdentityExecutorTests(TestCase):
    def test_principal_created_and_linked_to_artifact(self):
        record = make_record()
        ctx = _rendered_ctx(record)
        PersistArtifactExecutor().execute(ctx)

        result = ProvisionIdentityExecutor().execute(ctx)

        assert result.has_errors is False
        principal = Principal.objects.get(contact_address=record.contact_email)
        assert result.principal_id == principal.pk
        assert result.username.startswith("harbor-bakery-")
        assert SiteArtifact.objects.get(record=record).principal_id == principal.pk
        assert ctx.credential.password
        assert ctx.credential.password not in str(result.snapshot())

    def test_provisioner_failure_is_reported(self):
        record = make_record()
        provisioner = MagicMock()
        provisioner.provision.side_effect = RuntimeError("db down")

        result = ProvisionIdentityExecutor(provisioner=provisioner).execute(_ctx(record))

        assert result.has_errors is True
        assert "db down" in result.errors[0]


class PromoteStatusExecutorTests(TestCase):
    def _claimed(self, worker="worker-a"):
        record = make_record(assets=[("logo", b"raw-bytes")])
        IntakeRecord.objects.filter(pk=record.pk).update(
            status=RecordStatus.GENERATING, claimed_by=worker
        )
        ctx = _rendered_ctx(record)
        PersistArtifactExecutor().execute(ctx)
        return record, ctx

    def test_promotes_record_and_clears_lease(self):
        record, ctx = self._claimed()

        result = PromoteStatusExecutor().execute(ctx)

        assert result.has_errors is False
        record.refresh_from_db()
        assert record.status == RecordStatus.GENERATED
        assert record.generated_at is not None
        assert record.claimed_by == ""
        assert record.assets.get().raw_bytes is None

    def test_lost_lease_is_an_error(self):
        record, ctx = self._claimed(worker="someone-else")

        result = PromoteStatusExecutor().execute(ctx)

        assert result.has_errors is True
        record.refresh_from_db()
        assert record.status == RecordStatus.GENERATING

    def test_missing_artifact_is_an_error(self):
        record = make_record()
        IntakeRecord.objects.filter(pk=record.pk).update(
            status=RecordStatus.GENERATING, claimed_by="worker-a"
        )

        result = PromoteStatusExecutor().execute(_ctx(record))

        assert result.has_errors is True
        assert "no site artifact" in result.errors[0]


@override_settings(
    SITE_BASE_URL="https://sites.test",
    SITE_LOGIN_PATH="/login/",
    GENERATION_NOTIFY_TARGETS=[
        {"name": "customer", "driver": "email", "audience": "customer"},
        {"name": "sales", "driver": "email", "audience": "team"},
    ],
)
class NotifyExecutorTests(TestCase):
    def _ctx(self):
        record = make_record()
        ctx = _ctx(record)
        ctx.credential = MagicMock(username="harbor-1a2b", password="Secret123456")
        return ctx

    def test_each_target_is_attempted(self):
        notifier = FakeNotifier(failing={"customer"})

        result = NotifyExecutor(notifier=notifier).execute(self._ctx())

        assert result.has_errors is False
        assert result.attempted == 2
        assert result.succeeded == 1
        assert result.failed == 1
        assert [name for name, _, _ in notifier.sent] == ["customer", "sales"]
        assert result.warnings == ["notification to customer failed"]

    def test_payload_carries_credential_and_links(self):
        notifier = FakeNotifier()
        ctx = self._ctx()

        NotifyExecutor(notifier=notifier).execute(ctx)

        payload = notifier.sent[0][2]
        assert payload["username"] == "harbor-1a2b"
        assert payload["password"] == "Secret123456"
        assert payload["login_url"] == "https://sites.test/login/"
        assert payload["preview_url"] == (
            f"https://sites.test/generation/records/{ctx.record.pk}/preview/"
        )
        assert payload["business_name"] == "Harbor Bakery"
