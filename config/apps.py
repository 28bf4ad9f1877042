"""Custom Django admin app configuration."""

from django.contrib.admin.apps import AdminConfig


class SitegenAdminConfig(AdminConfig):
    default_site = "config.admin.SitegenAdminSite"
