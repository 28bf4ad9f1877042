"""
Read-only endpoints for generated sites.

Only a coarse status is exposed; run history and error details stay internal.
"""

import logging
from typing import Any

from django.http import HttpResponse, JsonResponse
from django.urls import reverse
from django.views import View

from apps.generation.artifacts import ArtifactStore, ArtifactStoreError, preview_url_for
from apps.generation.guard import max_attempts
from apps.renderer.renderer import SITE_FILES

logger = logging.getLogger(__name__)

CONTENT_TYPES = {
    "index.html": "text/html; charset=utf-8",
    "styles.css": "text/css; charset=utf-8",
    "script.js": "application/javascript; charset=utf-8",
}


class JSONResponseMixin:
    """Mixin for JSON responses."""

    def json_response(self, data: Any, status: int = 200) -> JsonResponse:
        return JsonResponse(data, status=status)

    def error_response(self, message: str, status: int = 400) -> JsonResponse:
        return JsonResponse({"error": message}, status=status)


def coarse_status(record) -> str:
    """Map a record onto pending | in_progress | ready | failed."""
    from apps.intake.models import RecordStatus

    if record.status == RecordStatus.GENERATED:
        return "ready"
    if record.status == RecordStatus.GENERATING:
        return "in_progress"
    if record.attempts >= max_attempts():
        return "failed"
    return "pending"


class RecordStatusView(JSONResponseMixin, View):
    """
    GET /generation/records/<uuid>/status/

    Response:
    {
        "record_id": "...",
        "status": "ready",
        "preview_url": "https://..."  // only when ready
    }
    """

    def get(self, request, record_id):
        from apps.intake.models import IntakeRecord

        record = IntakeRecord.objects.filter(pk=record_id).first()
        if record is None:
            return self.error_response("Record not found", status=404)

        status = coarse_status(record)
        data = {"record_id": str(record.pk), "status": status}
        if status == "ready":
            artifact = getattr(record, "artifact", None)
            preview_url = artifact.preview_url if artifact else ""
            data["preview_url"] = preview_url or preview_url_for(record.pk)
        return self.json_response(data)


class RecordPreviewView(JSONResponseMixin, View):
    """
    GET /generation/records/<uuid>/preview/?file=<name>

    Serves one file of the stored site. ``index.html`` is returned with its
    stylesheet and script references pointed back at this endpoint.
    """

    store_class = ArtifactStore

    def get(self, request, record_id):
        name = request.GET.get("file") or "index.html"
        if name not in SITE_FILES:
            return self.error_response("File not found", status=404)

        store = self.store_class()
        try:
            body = store.read(str(record_id), name)
        except ArtifactStoreError:
            return self.error_response("File not found", status=404)

        if name == "index.html":
            body = self.rewrite_links(body, record_id)
        return HttpResponse(body, content_type=CONTENT_TYPES[name])

    @staticmethod
    def rewrite_links(html: str, record_id) -> str:
        base = reverse("generation:record-preview", args=[record_id])
        return html.replace('href="styles.css"', f'href="{base}?file=styles.css"').replace(
            'src="script.js"', f'src="{base}?file=script.js"'
        )
