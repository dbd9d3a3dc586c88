"""
Shared naming rules.

Every artifact derives resource, container and credential names through
these helpers so that the same service is spelled the same way in the
Jenkinsfile, the deploy script, main.tf and docker-compose.yml.
"""

from __future__ import annotations

from cicdgen.core.models.config import service_name

__all__ = ["credential_id", "service_name"]


def credential_id(env_key: str) -> str:
    """Jenkins credential id for an env variable: ``DB_PASSWORD`` → ``db-password``."""
    return env_key.strip().lower().replace("_", "-")
