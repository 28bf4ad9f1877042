"""Tests for the driver contract."""

from django.test import SimpleTestCase

from apps.notify.drivers import DRIVER_REGISTRY, get_driver
from apps.notify.drivers.base import BaseNotifyDriver, DeliveryResult, SiteNotice


class DummyDriver(BaseNotifyDriver):
    name = "dummy"
    required_config = ("url",)

    def deliver(self, notice, config):
        return DeliveryResult(success=True, reference="d-1")


class SiteNoticeTests(SimpleTestCase):
    def test_defaults(self):
        notice = SiteNotice(subject="S", summary="M")
        assert notice.audience == "customer"
        assert notice.fields == {}
        assert not notice.has_warnings

    def test_unknown_audience_rejected(self):
        with self.assertRaises(ValueError):
            SiteNotice(subject="S", summary="M", audience="everyone")


class BaseDriverTests(SimpleTestCase):
    def test_validate_config_requires_non_empty_keys(self):
        driver = DummyDriver()
        assert driver.validate_config({"url": "https://x"})
        assert not driver.validate_config({"url": ""})
        assert not driver.validate_config({})

    def test_failed_result_logs(self):
        with self.assertLogs("apps.notify.drivers.base", level="ERROR"):
            result = DummyDriver()._failed("send", RuntimeError("boom"))

        assert result == DeliveryResult(success=False, error="could not send: boom")

    def test_result_to_dict(self):
        assert DeliveryResult(success=True, reference="r").to_dict() == {
            "success": True,
            "reference": "r",
            "error": "",
            "metadata": {},
        }


class RegistryTests(SimpleTestCase):
    def test_registry_names(self):
        assert sorted(DRIVER_REGISTRY) == ["email", "webhook"]

    def test_get_driver(self):
        assert get_driver("email").name == "email"
        assert get_driver("fax") is None
