"""
Tests for the notification script generator.

Pure unit tests: NotificationConfig in → Groovy text out.
"""

import pytest

from cicdgen.core.errors import MalformedWebhookError
from cicdgen.core.models.config import NotificationConfig
from cicdgen.core.services.generators.notifications import (
    configured_channels,
    generate_notification_script,
    generate_post_notifications,
    groovy_string,
    parse_telegram_webhook,
)

SLACK = "https://hooks.slack.com/services/T000/B000/XXXX"
DISCORD = "https://discord.com/api/webhooks/1/abc"
TEAMS = "https://acme.webhook.office.com/webhookb2/xyz"
TELEGRAM = "https://api.telegram.org/bot123:ABC/9876"


def _config(*platforms, webhook_urls=None) -> NotificationConfig:
    return NotificationConfig.model_validate({
        "email": "ops@example.com",
        "platforms": list(platforms),
        "webhook_urls": webhook_urls or {},
    })


class TestTelegramWebhook:
    def test_token_and_chat_id(self):
        assert parse_telegram_webhook(TELEGRAM) == ("123:ABC", "9876")

    def test_token_without_bot_prefix(self):
        assert parse_telegram_webhook("https://example.com/hook/555:XYZ/-100200") == ("555:XYZ", "-100200")

    def test_trailing_slash_ignored(self):
        assert parse_telegram_webhook("https://api.telegram.org/bot1:A/42/") == ("1:A", "42")

    def test_too_few_segments(self):
        with pytest.raises(MalformedWebhookError, match="telegram"):
            parse_telegram_webhook("https://api.telegram.org/bot123:ABC")

    def test_empty_token(self):
        with pytest.raises(MalformedWebhookError, match="empty"):
            parse_telegram_webhook("https://api.telegram.org/bot/9876")

    def test_generator_fails_fast(self):
        config = _config({"type": "telegram", "webhook": "https://api.telegram.org/"})
        with pytest.raises(MalformedWebhookError):
            generate_notification_script(config)


class TestChannels:
    def test_fallback_to_webhook_urls(self):
        config = _config({"type": "slack"}, webhook_urls={"slack": SLACK})
        assert configured_channels(config) == [("slack", SLACK)]

    def test_empty_webhook_skipped(self):
        config = _config({"type": "discord", "webhook": "  "})
        assert configured_channels(config) == []

    def test_duplicate_channel_keeps_first(self):
        config = _config(
            {"type": "slack", "webhook": SLACK},
            {"type": "slack", "webhook": "https://hooks.slack.com/other"},
        )
        assert configured_channels(config) == [("slack", SLACK)]


class TestScript:
    def test_email_only(self):
        script = generate_notification_script(_config())
        assert script.startswith("// ── Notifications ──\n")
        assert "def sendEmailNotification(status, stageName = '')" in script
        assert "to: 'ops@example.com'" in script
        assert "attachLog: status != 'SUCCESS'" in script
        assert "def postJson" not in script
        assert "sendSlackNotification" not in script

    def test_one_routine_per_channel(self):
        script = generate_notification_script(_config(
            {"type": "slack", "webhook": SLACK},
            {"type": "discord", "webhook": DISCORD},
            {"type": "teams", "webhook": TEAMS},
            {"type": "telegram", "webhook": TELEGRAM},
        ))
        for routine in (
            "sendSlackNotification", "sendDiscordNotification",
            "sendTeamsNotification", "sendTelegramNotification",
        ):
            assert script.count(f"def {routine}(") == 1
        assert f"postJson('slack', '{SLACK}', payload)" in script
        assert "color: status == 'SUCCESS' ? 3066993 : 15158332" in script
        assert "type: 'AdaptiveCard'" in script

    def test_telegram_routine(self):
        script = generate_notification_script(_config({"type": "telegram", "webhook": TELEGRAM}))
        assert "chat_id: '9876'" in script
        assert "postJson('telegram', 'https://api.telegram.org/bot123:ABC/sendMessage', payload)" in script
        assert "parse_mode: 'Markdown'" in script

    def test_notify_all_isolates_each_channel(self):
        script = generate_notification_script(_config({"type": "discord", "webhook": DISCORD}))
        wrapper = script[script.index("def notifyAll(status, stageName = '') {"):]
        assert wrapper.count("try {") == 2
        assert wrapper.count("} catch (err) {") == 2
        assert 'echo "Email notification failed: ${err}"' in wrapper
        assert 'echo "Discord notification failed: ${err}"' in wrapper
        assert "sendDiscordNotification(status, stageName)" in wrapper

    def test_quotes_escaped(self):
        assert groovy_string("it's") == "'it\\'s'"
        assert groovy_string("a\\b") == "'a\\\\b'"


class TestPostBlock:
    def test_conditions(self):
        post = generate_post_notifications()
        assert post.startswith("post {\n")
        for condition, status in (("success", "SUCCESS"), ("failure", "FAILURE"), ("unstable", "UNSTABLE")):
            assert f"    {condition} {{" in post
            assert f"notifyAll('{status}')" in post
        assert post.count("{") == post.count("}")
