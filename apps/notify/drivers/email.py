"""SMTP email driver."""

import logging
import smtplib
from contextlib import contextmanager, suppress
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Any

from apps.notify.drivers.base import BaseNotifyDriver, DeliveryResult, SiteNotice

logger = logging.getLogger(__name__)


class EmailNotifyDriver(BaseNotifyDriver):
    """
    Sends notices as multipart email.

    Customer notices go to the record's contact address. Team notices go to
    ``to_addresses``, or back to the sender when none are configured.
    """

    name = "email"
    description = "Send site notices over SMTP"
    required_config = ("smtp_host", "from_address")
    optional_config = (
        "smtp_port",
        "use_tls",
        "use_ssl",
        "username",
        "password",
        "to_addresses",
        "timeout",
    )

    def recipients(self, notice: SiteNotice, config: dict[str, Any]) -> list[str]:
        if notice.audience == "customer":
            return [notice.recipient] if notice.recipient else []
        return list(config.get("to_addresses") or [config["from_address"]])

    def subject(self, notice: SiteNotice) -> str:
        if notice.audience == "team":
            tag = "needs review" if notice.has_warnings else "site ready"
            return f"[{tag}] {notice.subject}"
        return notice.subject

    def compose(
        self, notice: SiteNotice, config: dict[str, Any], recipients: list[str]
    ) -> EmailMessage:
        rendered = self.render(notice, config)
        if not rendered.text:
            raise ValueError("email body rendered empty")

        email = EmailMessage()
        email["Subject"] = self.subject(notice)
        email["From"] = config["from_address"]
        email["To"] = ", ".join(recipients)
        email["Message-ID"] = make_msgid(domain=config["smtp_host"])
        if notice.record_id:
            email["X-Sitegen-Record"] = notice.record_id
        email.set_content(rendered.text)
        if rendered.html:
            email.add_alternative(rendered.html, subtype="html")
        return email

    @contextmanager
    def _connection(self, config: dict[str, Any]):
        host = config["smtp_host"]
        port = config.get("smtp_port", 587)
        timeout = config.get("timeout", 30)
        use_ssl = config.get("use_ssl", False)

        server: smtplib.SMTP
        if use_ssl:
            server = smtplib.SMTP_SSL(host, port, timeout=timeout)
        else:
            server = smtplib.SMTP(host, port, timeout=timeout)
        try:
            if config.get("use_tls", True) and not use_ssl:
                server.starttls()
            if config.get("username") and config.get("password"):
                server.login(config["username"], config["password"])
            yield server
        finally:
            with suppress(smtplib.SMTPException):
                server.quit()

    def deliver(self, notice: SiteNotice, config: dict[str, Any]) -> DeliveryResult:
        if not self.validate_config(config):
            return DeliveryResult(
                success=False, error="smtp_host and from_address are required"
            )

        recipients = self.recipients(notice, config)
        if not recipients:
            return DeliveryResult(success=False, error="no recipient address")

        try:
            email = self.compose(notice, config, recipients)
        except ValueError as e:
            return self._failed("compose email", e)

        try:
            with self._connection(config) as server:
                server.send_message(email, to_addrs=recipients)
        except smtplib.SMTPAuthenticationError as e:
            return self._failed("authenticate with SMTP server", e)
        except (smtplib.SMTPException, OSError) as e:
            return self._failed("send email", e)

        logger.info(f"Email notice sent to {len(recipients)} recipient(s): {email['Message-ID']}")
        return DeliveryResult(
            success=True,
            reference=email["Message-ID"],
            metadata={"to": recipients, "subject": email["Subject"]},
        )
