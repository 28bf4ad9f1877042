from django.apps import AppConfig


class ImagingConfig(AppConfig):
    name = "apps.imaging"
    verbose_name = "Imaging"
