"""Django app configuration for the generation app."""

from django.apps import AppConfig


class GenerationConfig(AppConfig):
    """Configuration for the Site Generation app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.generation"
    verbose_name = "Site Generation"
