"""Shared helpers for generation tests."""

import io

from PIL import Image

from apps.intake.models import IntakeAsset, IntakeRecord
from apps.synthesis.providers.local import LocalContentSynthesizer

BUSINESS = {
    "business_name": "Harbor Bakery",
    "tagline": "Fresh bread daily",
    "about": "Family bakery since 2009.",
    "services": ["Sourdough", "Cakes"],
    "phone": "+1 555 0100",
}


def image_bytes(size=(120, 90), color=(200, 40, 40), fmt="PNG"):
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


def make_record(email="owner@harbor.test", assets=(), **fields):
    """Create an intake record without scheduling generation.

    ``assets`` is a sequence of (purpose, raw_bytes) tuples.
    """
    fields.setdefault("business_payload", dict(BUSINESS))
    record = IntakeRecord.objects.create(contact_email=email, **fields)
    positions = {}
    for purpose, raw in assets:
        position = positions.get(purpose, 0)
        positions[purpose] = position + 1
        IntakeAsset.objects.create(
            record=record,
            purpose=purpose,
            position=position,
            filename=f"{purpose}-{position}.png",
            raw_bytes=raw,
        )
    return record


class FakeSynthesizer:
    """Counts calls; raises ``error`` when given one."""

    name = "fake"

    def __init__(self, error=None):
        self.error = error
        self.calls = 0

    def synthesize(self, business_payload):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return LocalContentSynthesizer().synthesize(business_payload)


class FakeNotifier:
    """Records deliveries; ``failing`` target names report False."""

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.sent = []

    def notify(self, target, payload):
        self.sent.append((target.name, target.audience, dict(payload)))
        return target.name not in self.failing
