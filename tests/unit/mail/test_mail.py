"""Tests for mail templates and message building."""

import pytest

from keyward.core.modules.mail.mailer import NullMailer, SmtpMailer, create_mailer
from keyward.core.modules.mail.models import ContentType
from keyward.core.modules.mail.service import render_template
from keyward.errors import NotificationError

TEMPLATES = [
    "email_change.html",
    "email_changed.html",
    "password_change.html",
    "password_changed.html",
    "new_connection_detected.html",
]


class TestRenderTemplate:
    """Tests for placeholder substitution."""

    def test_placeholders_substituted(self):
        """Test that every occurrence of a placeholder is replaced."""
        assert render_template("Hi ${{USER_NAME}}, ${{USER_NAME}}!", {"USER_NAME": "al"}) == "Hi al, al!"

    def test_unknown_placeholders_left_alone(self):
        """Test that placeholders without a value stay in the text."""
        assert render_template("${{OTHER}}", {"USER_NAME": "al"}) == "${{OTHER}}"


class TestMailService:
    """Tests for template loading and delivery."""

    @pytest.mark.parametrize("name", TEMPLATES)
    async def test_bundled_templates_load(self, core, name):
        """Test that each bundled template loads."""
        assert "${{USER_NAME}}" in await core.services.mail.load_template(name)

    async def test_template_name_cannot_escape_directory(self, core):
        """Test that template names cannot reach outside the templates directory."""
        with pytest.raises(NotificationError):
            await core.services.mail.load_template("../config.py")

    async def test_missing_template(self, core):
        """Test that an absent template is reported."""
        with pytest.raises(NotificationError, match="missing.html"):
            await core.services.mail.load_template("missing.html")

    async def test_templates_path_override(self, core, config, tmp_path):
        """Test that a configured templates directory takes precedence."""
        (tmp_path / "email_change.html").write_text("custom ${{CHANGE_URL}}")
        config.templates_path = str(tmp_path)
        assert await core.services.mail.load_template("email_change.html") == "custom ${{CHANGE_URL}}"

    def test_build_message_uses_configured_sender(self, core):
        """Test that messages are sent from the configured address as HTML."""
        message = core.services.mail.build_message("bob@example.com", "Hello", "<p>hi</p>")
        assert message.sender == "no-reply@keyward.local"
        assert message.content_type == ContentType.TEXT_HTML

    def test_build_message_rejects_bad_recipient(self, core):
        """Test that a malformed recipient is rejected."""
        with pytest.raises(NotificationError, match="bob is not a recipient"):
            core.services.mail.build_message("bob", "Hello", "hi", ContentType.TEXT_PLAIN)

    async def test_send_template_delivers(self, core, mailer):
        """Test that a rendered template reaches the mailer."""
        await core.services.mail.send_template(
            "bob@example.com", "Subject", "password_changed.html", {"USER_NAME": "bob", "RESET_URL": "https://x/y"}
        )
        assert mailer.sent[-1].subject == "Subject"
        assert 'href="https://x/y"' in mailer.sent[-1].body


class TestCreateMailer:
    """Tests for choosing the mail transport."""

    def test_without_smtp_host_mail_is_dropped(self, config):
        """Test that mail is dropped when no SMTP host is configured."""
        assert isinstance(create_mailer(config), NullMailer)

    def test_with_smtp_host(self, config):
        """Test that an SMTP host selects the SMTP transport."""
        config.smtp_host = "smtp.example.com"
        assert isinstance(create_mailer(config), SmtpMailer)
