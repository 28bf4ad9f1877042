"""URL configuration for the generation app."""

from django.urls import path

from apps.generation.views import RecordPreviewView, RecordStatusView

app_name = "generation"

urlpatterns = [
    path("records/<uuid:record_id>/status/", RecordStatusView.as_view(), name="record-status"),
    path("records/<uuid:record_id>/preview/", RecordPreviewView.as_view(), name="record-preview"),
]
