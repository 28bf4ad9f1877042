"""JSON webhook driver for CRMs and chat bridges."""

import json
import logging
import urllib.error
import urllib.request
from typing import Any

from apps.notify.drivers.base import BaseNotifyDriver, DeliveryResult, SiteNotice

logger = logging.getLogger(__name__)

USER_AGENT = "sitegen-notify/0.1"


class WebhookNotifyDriver(BaseNotifyDriver):
    """
    Posts the notice as JSON to a configured URL.

    The body is the rendered ``webhook_<audience>.j2`` / ``webhook.j2``
    document when it parses as a JSON object, else a small envelope around
    the rendered text.
    """

    name = "webhook"
    description = "POST site notices as JSON to an HTTP endpoint"
    required_config = ("url",)
    optional_config = ("method", "headers", "timeout")

    def validate_config(self, config: dict[str, Any]) -> bool:
        url = str(config.get("url") or "")
        return url.startswith(("http://", "https://"))

    def body(self, notice: SiteNotice, config: dict[str, Any]) -> dict[str, Any]:
        rendered = self.render(notice, config)
        if rendered.document is not None:
            return rendered.document
        if rendered.text:
            return {"subject": notice.subject, "record_id": notice.record_id, "text": rendered.text}
        raise ValueError("webhook body rendered empty")

    def deliver(self, notice: SiteNotice, config: dict[str, Any]) -> DeliveryResult:
        if not self.validate_config(config):
            return DeliveryResult(success=False, error="an http(s) url is required")

        url = config["url"]
        method = str(config.get("method", "POST")).upper()
        headers = {
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
            **(config.get("headers") or {}),
        }

        try:
            data = json.dumps(self.body(notice, config)).encode("utf-8")
        except ValueError as e:
            return self._failed("build webhook body", e)

        request = urllib.request.Request(url, data=data, headers=headers, method=method)
        try:
            with urllib.request.urlopen(request, timeout=config.get("timeout", 30)) as response:
                status_code = response.getcode()
                reply = response.read().decode("utf-8", errors="replace")
        except urllib.error.HTTPError as e:
            detail = e.read().decode("utf-8", errors="replace") if e.fp else e.reason
            logger.error(f"Webhook {url} answered {e.code}: {detail}")
            return DeliveryResult(success=False, error=f"HTTP {e.code}: {detail}")
        except urllib.error.URLError as e:
            logger.error(f"Webhook {url} unreachable: {e.reason}")
            return DeliveryResult(success=False, error=f"could not reach {url}: {e.reason}")
        except OSError as e:
            return self._failed(f"post to {url}", e)

        logger.info(f"Webhook notice posted to {url}: {status_code}")
        return DeliveryResult(
            success=True,
            reference=str(status_code),
            metadata={"url": url, "method": method, "status_code": status_code, "reply": reply},
        )
