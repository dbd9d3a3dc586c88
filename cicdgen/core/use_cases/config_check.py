"""
Config check use case — load cicd-config.yml and report issues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from cicdgen.core.config.loader import ConfigError, find_config_file, load_config
from cicdgen.core.models.config import CICDConfig
from cicdgen.core.services.validation import validate_config


@dataclass
class ConfigCheckResult:
    """Result of configuration validation."""

    valid: bool = False
    config: CICDConfig | None = None
    config_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        cloud = self.config.cloud if self.config else None
        return {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "errors": self.errors,
            "warnings": self.warnings,
            "project_name": self.config.project.project_name if self.config else None,
            "provider": cloud.provider if cloud else None,
            "region": cloud.region if cloud else None,
            "strategy": cloud.deployment_config.deployment_strategy if cloud else None,
            "external_service_count": (
                len(self.config.project.external_services) if self.config else 0
            ),
        }


def check_config(config_path: Path | None = None) -> ConfigCheckResult:
    """Validate the deployment configuration and report issues.

    Args:
        config_path: Optional explicit config path.

    Returns:
        ConfigCheckResult with validation status and any issues.
    """
    result = ConfigCheckResult()

    if config_path is None:
        config_path = find_config_file()

    if config_path is None:
        result.errors.append("No cicd-config.yml found.")
        return result

    result.config_path = config_path

    try:
        config = load_config(config_path)
        result.config = config
    except ConfigError as e:
        result.errors.append(str(e))
        return result

    # Semantic checks
    report = validate_config(config, project_root=config_path.parent)
    result.errors.extend(report.get("errors", []))
    result.warnings.extend(report.get("warnings", []))

    if not config.project.external_services:
        result.warnings.append("No external services declared; .env.template will not be generated.")

    if not config.notifications.platforms:
        result.warnings.append("No chat channels configured; only email notifications will be sent.")

    result.valid = len(result.errors) == 0
    return result
