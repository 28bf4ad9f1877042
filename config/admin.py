"""Custom admin site for the site generation ops console."""

from datetime import timedelta

from django.conf import settings
from django.contrib.admin import AdminSite
from django.db.models import Count, Q
from django.utils import timezone


class SitegenAdminSite(AdminSite):
    site_header = "Site Generation"
    site_title = "Site Generation"
    index_title = "Dashboard"
    index_template = "admin/dashboard.html"

    def index(self, request, extra_context=None):
        extra_context = extra_context or {}
        extra_context.update(self._get_dashboard_context())
        return super().index(request, extra_context=extra_context)

    def _get_dashboard_context(self):
        from apps.generation.models import GenerationRun, RunStatus, SiteArtifact
        from apps.intake.models import IntakeRecord, RecordStatus

        now = timezone.now()
        last_24h = now - timedelta(hours=24)
        last_7d = now - timedelta(days=7)
        liveness = getattr(settings, "GENERATION_LIVENESS_SECONDS", 900)
        max_attempts = getattr(settings, "GENERATION_MAX_ATTEMPTS", 5)

        # --- Records by status ---
        record_counts = IntakeRecord.objects.aggregate(
            total=Count("id"),
            pending=Count("id", filter=Q(status=RecordStatus.PENDING)),
            generating=Count("id", filter=Q(status=RecordStatus.GENERATING)),
            generated=Count("id", filter=Q(status=RecordStatus.GENERATED)),
            exhausted=Count(
                "id",
                filter=Q(status=RecordStatus.PENDING, attempts__gte=max_attempts),
            ),
        )

        # --- Stale leases ---
        stale_records = list(
            IntakeRecord.objects.filter(
                status=RecordStatus.GENERATING,
                claimed_at__lt=now - timedelta(seconds=liveness),
            )
            .order_by("claimed_at")
            .only("id", "contact_email", "claimed_by", "claimed_at")[:10]
        )

        # --- Pass health (24h) ---
        status_counts = dict(
            GenerationRun.objects.filter(created_at__gte=last_24h)
            .values_list("status")
            .annotate(count=Count("id"))
            .values_list("status", "count")
        )
        total_runs = sum(status_counts.values())
        succeeded = status_counts.get(RunStatus.SUCCEEDED, 0)
        run_health = {
            "total": total_runs,
            "succeeded": succeeded,
            "failed": status_counts.get(RunStatus.FAILED, 0),
            "skipped": status_counts.get(RunStatus.SKIPPED, 0),
            "success_rate": round(succeeded / total_runs * 100, 1) if total_runs else 0,
        }

        failed_runs = list(
            GenerationRun.objects.filter(status=RunStatus.FAILED)
            .order_by("-created_at")
            .only("id", "record_id", "failed_stage", "error_message", "created_at")[:5]
        )

        top_failed_stages = list(
            GenerationRun.objects.filter(status=RunStatus.FAILED, created_at__gte=last_7d)
            .values("failed_stage")
            .annotate(count=Count("id"))
            .order_by("-count")[:5]
        )

        recent_artifacts = list(
            SiteArtifact.objects.order_by("-rendered_at").only(
                "record_id", "theme", "palette_source", "preview_url", "rendered_at"
            )[:10]
        )

        return {
            "record_counts": record_counts,
            "stale_records": stale_records,
            "run_health": run_health,
            "failed_runs": failed_runs,
            "top_failed_stages": top_failed_stages,
            "recent_artifacts": recent_artifacts,
        }
