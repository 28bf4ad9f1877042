from django.apps import AppConfig


class RendererConfig(AppConfig):
    name = "apps.renderer"
    verbose_name = "Site Renderer"
