"""
Config validation — checks that need more than the model's own rules.

The pydantic models reject structurally invalid configs.  This module
covers what they cannot see: the filesystem (Dockerfile), well-known
URL shapes and the per-provider instance-type catalogue.

``validate_config`` aggregates everything into the
``{"ok": ..., "errors": [...], "warnings": [...]}`` shape used before
any generation step.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from cicdgen.core.errors import MalformedWebhookError
from cicdgen.core.models.config import CICDConfig
from cicdgen.core.services.generators.notifications import (
    configured_channels,
    parse_telegram_webhook,
)
from cicdgen.core.services.generators.sizing import known_instance_types

logger = logging.getLogger(__name__)


class ValidationError(Exception):
    """Raised when a single input check fails."""


# ── Patterns ────────────────────────────────────────────────────

_GIT_GENERIC_RE = re.compile(r"^(https?://|git@)?([\w.-]+)([:/])([\w.-]+)/([\w.-]+?)(\.git)?$")
_GIT_HOST_RES = {
    "github": re.compile(r"^https?://github\.com/[\w-]+/[\w.-]+?(\.git)?$"),
    "gitlab": re.compile(r"^https?://gitlab\.com/[\w-]+/[\w.-]+?(\.git)?$"),
    "bitbucket": re.compile(r"^https?://bitbucket\.org/[\w-]+/[\w.-]+?(\.git)?$"),
}
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_FROM_RE = re.compile(r"^\s*FROM\s+\S+", re.IGNORECASE | re.MULTILINE)


# ── Single checks ───────────────────────────────────────────────


def validate_dockerfile(path: Path) -> None:
    """Require an existing Dockerfile with at least one ``FROM``.

    Raises:
        ValidationError: File missing, unreadable, or without ``FROM``.
    """
    if not path.is_file():
        raise ValidationError(f"Dockerfile not found: {path}")
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ValidationError(f"Cannot read {path}: {e}") from e
    if not _FROM_RE.search(content):
        raise ValidationError(f"Dockerfile has no FROM instruction: {path}")


def git_host(url: str) -> str | None:
    """Recognised hosting service for a repository URL, if any."""
    for host, pattern in _GIT_HOST_RES.items():
        if pattern.match(url):
            return host
    return None


def validate_git_repository(url: str) -> bool:
    """True when ``url`` looks like a clonable git remote."""
    url = url.strip()
    if not url:
        return False
    return git_host(url) is not None or bool(_GIT_GENERIC_RE.match(url))


def validate_port(port: int) -> bool:
    return isinstance(port, int) and not isinstance(port, bool) and 1 <= port <= 65535


def validate_instance_type(provider: str, instance_type: str) -> bool:
    """True when ``instance_type`` has an explicit sizing entry for the provider."""
    return instance_type in known_instance_types().get(provider, [])


def validate_email(address: str) -> bool:
    return bool(_EMAIL_RE.match(address.strip()))


# ── Aggregate ───────────────────────────────────────────────────


def validate_config(config: CICDConfig, *, project_root: Path | None = None) -> dict:
    """Validate a loaded config before generation.

    Returns:
        {"ok": True, "warnings": [...]} on success.
        {"ok": False, "errors": [...], "warnings": [...]} on failure.
    """
    errors: list[str] = []
    warnings: list[str] = []
    project = config.project
    cloud = config.cloud

    # ── Source ──────────────────────────────────────────────────
    if not validate_git_repository(project.repository):
        errors.append(
            f"Invalid git repository URL: {project.repository!r}. "
            "Expected https://host/owner/repo(.git) or git@host:owner/repo.git."
        )

    if project.has_dockerfile and project_root is not None:
        try:
            validate_dockerfile(project_root / project.dockerfile_path)
        except ValidationError as e:
            errors.append(str(e))

    # ── Cloud ───────────────────────────────────────────────────
    if not validate_instance_type(cloud.provider, cloud.instance_type):
        warnings.append(
            f"Unknown {cloud.provider} instance type {cloud.instance_type!r}; "
            f"the smallest container size will be used. "
            f"Known: {', '.join(known_instance_types()[cloud.provider])}"
        )

    dc = cloud.deployment_config
    if not validate_port(dc.port):
        errors.append(f"Invalid port: {dc.port}. Must be between 1 and 65535.")

    if dc.deployment_strategy == "canary" and not dc.use_load_balancer:
        warnings.append(
            "Canary deployments add one instance but split no traffic without a load balancer."
        )

    # ── Notifications ───────────────────────────────────────────
    notifications = config.notifications
    if not validate_email(notifications.email):
        errors.append(f"Invalid notification email: {notifications.email!r}")

    configured = {channel for channel, _ in configured_channels(notifications)}
    for platform in notifications.platforms:
        if platform.type not in configured:
            warnings.append(f"{platform.type} notifications have no webhook and will be skipped.")

    for channel, webhook in configured_channels(notifications):
        if not webhook.startswith(("http://", "https://")):
            errors.append(f"{channel} webhook must be an http(s) URL: {webhook!r}")
            continue
        if channel == "telegram":
            try:
                parse_telegram_webhook(webhook)
            except MalformedWebhookError as e:
                errors.append(str(e))

    logger.debug("validate_config: %d errors, %d warnings", len(errors), len(warnings))
    if errors:
        return {"ok": False, "errors": errors, "warnings": warnings}
    return {"ok": True, "warnings": warnings}
