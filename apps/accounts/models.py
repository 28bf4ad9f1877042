"""Login principals for generated sites."""

from django.db import models


class Principal(models.Model):
    """
    Login identity keyed by contact address.

    Only the password hash is stored; the plaintext credential is handed to
    the notifier in memory and never persisted.
    """

    contact_address = models.EmailField(unique=True)
    username = models.CharField(max_length=64, db_index=True)
    password_hash = models.CharField(max_length=255)
    credential_rotated_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.username} <{self.contact_address}>"
