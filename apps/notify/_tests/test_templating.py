"""Tests for notice templating."""

from django.test import SimpleTestCase

from apps.notify.drivers.base import SiteNotice
from apps.notify.templating import NoticeTemplates, packaged_template, render_template

FIELDS = {
    "record_id": "rec-1",
    "business_name": "Acme",
    "contact_email": "owner@acme.test",
    "preview_url": "http://sites.test/preview",
    "login_url": "http://sites.test/login/",
    "username": "acme-1a2b",
    "password": "s3cretPassw0",
    "theme": "dark",
    "palette_source": "default",
    "warnings": [],
}


def _notice(audience="customer", **fields):
    return SiteNotice(
        subject="Your website for Acme is ready",
        summary="Ready",
        audience=audience,
        record_id="rec-1",
        fields={**FIELDS, **fields},
    )


class RenderTemplateTests(SimpleTestCase):
    def test_inline(self):
        assert render_template("Hello {{ name }}", {"name": "World"}) == "Hello World"

    def test_empty_reference(self):
        assert render_template(None, {}) is None
        assert render_template("", {}) is None
        assert render_template({"type": "inline", "template": ""}, {}) is None

    def test_dict_reference(self):
        assert render_template({"type": "inline", "template": "{{ a }}"}, {"a": "x"}) == "x"

    def test_missing_file(self):
        with self.assertRaises(ValueError):
            render_template("file:nope.j2", {})

    def test_unsupported_reference(self):
        with self.assertRaises(ValueError):
            render_template(42, {})

    def test_syntax_error(self):
        with self.assertRaises(ValueError):
            render_template("{% if %}", {})

    def test_packaged_lookup(self):
        assert packaged_template("email_team") == "email_team.j2"
        assert packaged_template("email_team.j2") == "email_team.j2"
        assert packaged_template("sms_team") is None


class NoticeTemplatesTests(SimpleTestCase):
    def setUp(self):
        self.templates = NoticeTemplates()

    def test_context_aliases(self):
        context = self.templates.context_for(_notice())
        assert context["business_name"] == "Acme"
        assert context["login_url"] == "http://sites.test/login/"
        assert context["site"]["theme"] == "dark"

    def test_customer_email_includes_credentials(self):
        rendered = self.templates.render("email", _notice(), {})

        assert "acme-1a2b" in rendered.text
        assert "s3cretPassw0" in rendered.text
        assert "http://sites.test/preview" in rendered.text
        assert rendered.html is None
        assert rendered.document is None

    def test_team_email_lists_warnings(self):
        notice = _notice(audience="team", warnings=["logo could not be read"])
        rendered = self.templates.render("email", notice, {})

        assert "New site generated" in rendered.text
        assert "logo could not be read" in rendered.text

    def test_configured_template_wins(self):
        config = {"template": "Site for {{ business_name }}"}
        rendered = self.templates.render("email", _notice(), config)
        assert rendered.text == "Site for Acme"

    def test_configured_html_template(self):
        rendered = self.templates.render(
            "email", _notice(), {"html_template": "<b>{{ business_name }}</b>"}
        )
        assert rendered.html == "<b>Acme</b>"

    def test_webhook_document(self):
        rendered = self.templates.render("webhook", _notice(audience="team"), {})
        assert rendered.document["event"] == "site.generated"

    def test_unknown_driver(self):
        with self.assertRaises(ValueError):
            self.templates.render("carrier-pigeon", _notice(), {})
