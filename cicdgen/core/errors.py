"""
Error taxonomy for artifact generation.

Generators raise these and never catch them; the service layer turns
them into ``{"error": ...}`` results before anything touches disk.
"""

from __future__ import annotations


class GenerationError(Exception):
    """Base class for failures while synthesising an artifact."""


class UnsupportedProviderError(GenerationError):
    """The cloud provider tag has no generator."""

    def __init__(self, provider: str, artifact: str = "") -> None:
        self.provider = provider
        self.artifact = artifact
        where = f" for {artifact}" if artifact else ""
        super().__init__(f"Unsupported cloud provider{where}: {provider!r}")


class MalformedWebhookError(GenerationError):
    """A notification webhook URL cannot be decoded."""

    def __init__(self, channel: str, webhook: str, detail: str) -> None:
        self.channel = channel
        self.webhook = webhook
        super().__init__(f"Malformed {channel} webhook: {detail}")
