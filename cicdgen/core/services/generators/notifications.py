"""
Notification script generator — Groovy routines for pipeline post hooks.

Emits ``sendEmailNotification`` (always), one ``send<Channel>Notification``
per configured chat channel, and the ``notifyAll`` wrapper that calls
them each inside its own try/catch so one broken channel never hides
the others.  ``generate_post_notifications`` emits the ``post { }``
block that invokes the wrapper.
"""

from __future__ import annotations

import logging
from urllib.parse import urlparse

from cicdgen.core.errors import MalformedWebhookError
from cicdgen.core.models.config import NotificationConfig

logger = logging.getLogger(__name__)

TELEGRAM_API = "https://api.telegram.org"

# Pipeline outcomes that trigger notifications, in post-block order
POST_CONDITIONS = (("success", "SUCCESS"), ("failure", "FAILURE"), ("unstable", "UNSTABLE"))

_ROUTINE_NAMES = {
    "slack": "sendSlackNotification",
    "discord": "sendDiscordNotification",
    "teams": "sendTeamsNotification",
    "telegram": "sendTelegramNotification",
}


def groovy_string(value: str) -> str:
    """Single-quoted Groovy literal (no interpolation)."""
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def parse_telegram_webhook(webhook: str) -> tuple[str, str]:
    """Split a Telegram webhook into ``(bot_token, chat_id)``.

    The last two non-empty path segments are the bot token and the chat
    id; a leading ``bot`` on the token segment is dropped, so
    ``https://host/bot123:ABC/9876`` → ``("123:ABC", "9876")``.

    Raises:
        MalformedWebhookError: Fewer than two path segments, or an empty token.
    """
    segments = [s for s in urlparse(webhook).path.split("/") if s]
    if len(segments) < 2:
        raise MalformedWebhookError(
            "telegram", webhook, "expected .../<bot token>/<chat id> in the path",
        )
    token, chat_id = segments[-2], segments[-1]
    if token.startswith("bot"):
        token = token[3:]
    if not token:
        raise MalformedWebhookError("telegram", webhook, "bot token is empty")
    return token, chat_id


def configured_channels(config: NotificationConfig) -> list[tuple[str, str]]:
    """``(channel, webhook)`` for every channel with a usable webhook.

    A channel listed twice keeps its first webhook.
    """
    channels: dict[str, str] = {}
    for platform in config.platforms:
        webhook = config.webhook_for(platform)
        if not webhook:
            logger.info("Skipping %s notifications: no webhook configured", platform.type)
            continue
        if platform.type in channels:
            logger.warning("Duplicate %s notification channel ignored", platform.type)
            continue
        channels[platform.type] = webhook
    return list(channels.items())


# ── Routines ────────────────────────────────────────────────────


def _email_routine(email: str) -> str:
    return f'''\
def sendEmailNotification(status, stageName = '') {{
    def color = status == 'SUCCESS' ? '#2e7d32' : (status == 'UNSTABLE' ? '#f9a825' : '#c62828')
    def stageLine = stageName ? "<p><b>Stage:</b> ${{stageName}}</p>" : ''
    emailext(
        to: {groovy_string(email)},
        subject: "[${{status}}] ${{env.JOB_NAME}} #${{env.BUILD_NUMBER}}",
        mimeType: 'text/html',
        body: """
            <h2 style="color: ${{color}}">${{env.JOB_NAME}} #${{env.BUILD_NUMBER}}: ${{status}}</h2>
            ${{stageLine}}
            <p><b>Branch:</b> ${{env.GIT_BRANCH ?: 'n/a'}}</p>
            <p><b>Duration:</b> ${{currentBuild.durationString}}</p>
            <p><a href="${{env.BUILD_URL}}">Open build</a></p>
        """,
        attachLog: status != 'SUCCESS'
    )
}}
'''


_SHARED_HELPERS = '''\
def notificationMessage(status, stageName = '') {
    def stage = stageName ? " (stage: ${stageName})" : ''
    return "${env.JOB_NAME} #${env.BUILD_NUMBER} ${status}${stage}\\n${env.BUILD_URL}"
}

def postJson(channel, url, payload) {
    def payloadFile = "${channel}-notification.json"
    writeFile file: payloadFile, text: groovy.json.JsonOutput.toJson(payload)
    sh "curl -fsS -X POST -H 'Content-Type: application/json' --data @${payloadFile} '${url}'"
}
'''


def _slack_routine(webhook: str) -> str:
    return f'''\
def sendSlackNotification(status, stageName = '') {{
    def payload = [
        attachments: [[
            color: status == 'SUCCESS' ? 'good' : 'danger',
            title: "${{env.JOB_NAME}} #${{env.BUILD_NUMBER}}: ${{status}}",
            title_link: env.BUILD_URL,
            text: notificationMessage(status, stageName),
        ]]
    ]
    postJson('slack', {groovy_string(webhook)}, payload)
}}
'''


def _discord_routine(webhook: str) -> str:
    return f'''\
def sendDiscordNotification(status, stageName = '') {{
    def payload = [
        username: 'Jenkins',
        embeds: [[
            title: "${{env.JOB_NAME}} #${{env.BUILD_NUMBER}}: ${{status}}",
            url: env.BUILD_URL,
            description: notificationMessage(status, stageName),
            color: status == 'SUCCESS' ? 3066993 : 15158332,
        ]]
    ]
    postJson('discord', {groovy_string(webhook)}, payload)
}}
'''


def _teams_routine(webhook: str) -> str:
    return f'''\
def sendTeamsNotification(status, stageName = '') {{
    def color
    switch (status) {{
        case 'SUCCESS':
            color = 'Good'
            break
        case 'UNSTABLE':
            color = 'Warning'
            break
        default:
            color = 'Attention'
    }}
    def payload = [
        type: 'message',
        attachments: [[
            contentType: 'application/vnd.microsoft.card.adaptive',
            content: [
                '$schema': 'http://adaptivecards.io/schemas/adaptive-card.json',
                type: 'AdaptiveCard',
                version: '1.4',
                body: [
                    [type: 'TextBlock', size: 'Large', weight: 'Bolder', color: color,
                     text: "${{env.JOB_NAME}} #${{env.BUILD_NUMBER}}: ${{status}}"],
                    [type: 'TextBlock', wrap: true, text: notificationMessage(status, stageName)],
                ],
                actions: [[type: 'Action.OpenUrl', title: 'Open build', url: env.BUILD_URL]],
            ],
        ]]
    ]
    postJson('teams', {groovy_string(webhook)}, payload)
}}
'''


def _telegram_routine(webhook: str) -> str:
    token, chat_id = parse_telegram_webhook(webhook)
    api_url = f"{TELEGRAM_API}/bot{token}/sendMessage"
    return f'''\
def sendTelegramNotification(status, stageName = '') {{
    def payload = [
        chat_id: {groovy_string(chat_id)},
        text: "*${{env.JOB_NAME}}* #${{env.BUILD_NUMBER}}: ${{status}}\\n" + notificationMessage(status, stageName),
        parse_mode: 'Markdown',
        disable_web_page_preview: true,
    ]
    postJson('telegram', {groovy_string(api_url)}, payload)
}}
'''


_ROUTINES = {
    "slack": _slack_routine,
    "discord": _discord_routine,
    "teams": _teams_routine,
    "telegram": _telegram_routine,
}


def _notify_all(channels: list[str]) -> str:
    calls = [("Email", "sendEmailNotification")]
    calls += [(channel.capitalize(), _ROUTINE_NAMES[channel]) for channel in channels]
    blocks = []
    for label, routine in calls:
        blocks.append(
            f"""\
    try {{
        {routine}(status, stageName)
    }} catch (err) {{
        echo "{label} notification failed: ${{err}}"
    }}"""
        )
    body = "\n".join(blocks)
    return f"def notifyAll(status, stageName = '') {{\n{body}\n}}\n"


def generate_notification_script(config: NotificationConfig) -> str:
    """Render the Groovy notification routines.

    Raises:
        MalformedWebhookError: A Telegram webhook cannot be decoded.
    """
    channels = configured_channels(config)
    parts = ["// ── Notifications ──", _email_routine(config.email)]
    if channels:
        parts.append(_SHARED_HELPERS)
    for channel, webhook in channels:
        parts.append(_ROUTINES[channel](webhook))
    parts.append(_notify_all([channel for channel, _ in channels]))
    logger.debug("Notification routines: email + %s", [c for c, _ in channels] or "none")
    return "\n".join(part.rstrip("\n") + "\n" for part in parts)


def generate_post_notifications() -> str:
    """Render the ``post { }`` block calling ``notifyAll`` for each outcome."""
    blocks = []
    for condition, status in POST_CONDITIONS:
        blocks.append(
            f"""\
    {condition} {{
        script {{
            notifyAll('{status}')
        }}
    }}"""
        )
    return "post {\n" + "\n".join(blocks) + "\n}\n"
