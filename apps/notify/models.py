"""
Notify channels managed from the admin.

Channels are notified alongside the targets declared in
GENERATION_NOTIFY_TARGETS. Delivery outcomes live on the generation pass,
in the notify stage's StageExecution snapshot.
"""

from django.core.exceptions import ValidationError
from django.db import models


class NotificationAudience(models.TextChoices):
    CUSTOMER = "customer", "Customer"
    TEAM = "team", "Team"


class NotificationChannel(models.Model):
    """A delivery destination such as a sales mailbox or a CRM webhook."""

    name = models.CharField(
        max_length=100,
        unique=True,
        help_text="Unique name, e.g. 'sales-email' or 'crm-webhook'.",
    )
    driver = models.CharField(
        max_length=50,
        db_index=True,
        help_text="Driver name: 'email' or 'webhook'.",
    )
    audience = models.CharField(
        max_length=20,
        choices=NotificationAudience.choices,
        default=NotificationAudience.TEAM,
        help_text="Customer channels deliver to the record's contact address.",
    )
    config = models.JSONField(
        default=dict,
        blank=True,
        help_text="Driver settings, e.g. smtp_host and from_address, or url.",
    )
    is_active = models.BooleanField(default=True, db_index=True)
    description = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        state = "" if self.is_active else " [inactive]"
        return f"{self.name} ({self.driver} -> {self.audience}){state}"

    def clean(self):
        from apps.notify.drivers import get_driver

        driver = get_driver(self.driver)
        if driver is None:
            raise ValidationError({"driver": f"Unknown driver {self.driver!r}."})
        if not driver.validate_config(self.config or {}):
            keys = ", ".join(driver.required_config)
            raise ValidationError({"config": f"The {self.driver} driver needs: {keys}."})
