import pytest


@pytest.fixture(autouse=True)
def _isolated_storage(settings, tmp_path):
    """Keep optimized images and rendered sites out of the working tree."""
    settings.MEDIA_ROOT = tmp_path / "media"
    settings.GENERATED_SITES_ROOT = tmp_path / "generated-sites"
    settings.NOTIFY_SKIP_ALL = False
    settings.CELERY_TASK_ALWAYS_EAGER = False
