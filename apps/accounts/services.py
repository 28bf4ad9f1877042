"""
Identity provisioning for generated sites.

The provisioner upserts one Principal per contact address. A retried
generation pass issues a fresh credential and overwrites the stored hash, so
only the most recently issued credential is active.
"""

from __future__ import annotations

import logging
import re
import secrets
import string
from dataclasses import dataclass

from django.contrib.auth.hashers import make_password
from django.db import DatabaseError, transaction
from django.utils import timezone

from apps.accounts.models import Principal

logger = logging.getLogger(__name__)

USERNAME_SLUG_MAX = 25
PASSWORD_LENGTH = 12
PASSWORD_ALPHABET = string.ascii_letters + string.digits


class IdentityProvisioningError(Exception):
    """Raised when a principal cannot be created or updated."""


@dataclass(frozen=True)
class Credential:
    """Plaintext login credential. Lives in memory only."""

    username: str
    password: str

    def __repr__(self) -> str:
        return f"Credential(username={self.username!r}, password='***')"

    __str__ = __repr__


def slugify_business_name(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", (name or "").lower()).strip("-")
    return slug[:USERNAME_SLUG_MAX].rstrip("-") or "site"


def generate_credential(business_name: str) -> Credential:
    """Username from the business name plus a random suffix; random password."""
    username = f"{slugify_business_name(business_name)}-{secrets.token_hex(2)}"
    password = "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(PASSWORD_LENGTH))
    return Credential(username=username, password=password)


class IdentityProvisioner:
    """Upserts login principals keyed by contact address."""

    def provision(self, contact_address: str, credential: Credential) -> int:
        """
        Ensure exactly one principal exists for ``contact_address``.

        Returns:
            The principal's primary key.

        Raises:
            IdentityProvisioningError: On invalid input or storage failure.
        """
        address = (contact_address or "").strip().lower()
        if not address:
            raise IdentityProvisioningError("contact address is required")
        if not credential.username or not credential.password:
            raise IdentityProvisioningError("credential must carry a username and password")

        try:
            with transaction.atomic():
                principal, created = Principal.objects.update_or_create(
                    contact_address=address,
                    defaults={
                        "username": credential.username,
                        "password_hash": make_password(credential.password),
                        "credential_rotated_at": timezone.now(),
                    },
                )
        except DatabaseError as e:
            raise IdentityProvisioningError(f"could not store principal: {e}") from e

        logger.info(
            f"Principal {'created' if created else 'updated'}: {principal.username}",
            extra={"principal_id": principal.pk},
        )
        return principal.pk
