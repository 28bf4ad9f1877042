from django.apps import AppConfig


class NotifyConfig(AppConfig):
    name = "apps.notify"
    verbose_name = "Notifications"
