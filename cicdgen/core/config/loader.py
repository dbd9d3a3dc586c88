"""
Configuration loader — reads cicd-config.yml into a ``CICDConfig``.

Accepts YAML or JSON, including presets saved by the jenkins-generator
wizard (camelCase keys, ``jenkins-generator-config.json``).  When a
preset omits the consolidated environment maps they are rebuilt from
the external services before validation.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from cicdgen.core.models.config import (
    SUPPORTED_PROVIDERS,
    CICDConfig,
    ProjectConfig,
    consolidate_environment_variables,
)

logger = logging.getLogger(__name__)

# Searched in order in each directory
CONFIG_FILES = (
    "cicd-config.yml",
    "cicd-config.yaml",
    "cicd-config.json",
    "jenkins-generator-config.json",
)


class ConfigError(Exception):
    """Raised when the deployment configuration is invalid or missing."""


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for a config file starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to the first config file found, or None.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        for name in CONFIG_FILES:
            candidate = current / name
            if candidate.is_file():
                return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def _pick(mapping: dict, *keys: str):
    """Return (key, value) for the first present key, else (keys[0], None)."""
    for key in keys:
        if key in mapping:
            return key, mapping[key]
    return keys[0], None


def _fill_environment_maps(data: dict) -> dict:
    """Fill empty deployment / Jenkins env maps from the external services."""
    _, raw_project = _pick(data, "project")
    if not isinstance(raw_project, dict):
        return data
    try:
        project = ProjectConfig.model_validate(raw_project)
    except ValidationError:
        return data  # reported by the full validation below
    env = consolidate_environment_variables(project.external_services)
    if not env:
        return data

    cloud = data.get("cloud")
    if isinstance(cloud, dict):
        key, deploy = _pick(cloud, "deploymentConfig", "deployment_config")
        deploy = dict(deploy or {})
        env_key, current = _pick(deploy, "environmentVariables", "environment_variables")
        if not current:
            deploy[env_key] = dict(env)
        cloud[key] = deploy

    key, jenkins = _pick(data, "jenkinsConfig", "jenkins_config")
    jenkins = dict(jenkins or {})
    env_key, current = _pick(jenkins, "environmentVariables", "environment_variables")
    if not current:
        jenkins[env_key] = dict(env)
    data[key] = jenkins
    return data


def parse_config(data: dict, source: str = "<config>") -> CICDConfig:
    """Validate an already-parsed config mapping.

    Raises:
        ConfigError: Unsupported provider or any model validation failure.
    """
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping in {source}, got {type(data).__name__}")

    data = dict(data)
    cloud = data.get("cloud")
    if isinstance(cloud, dict):
        data["cloud"] = cloud = dict(cloud)
        provider = cloud.get("provider")
        if provider is not None and provider not in SUPPORTED_PROVIDERS:
            raise ConfigError(
                f"Unsupported cloud provider {provider!r} in {source}. "
                f"Supported: {', '.join(SUPPORTED_PROVIDERS)}"
            )

    data = _fill_environment_maps(data)

    try:
        return CICDConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {source}: {e}") from e


def resolve_config_path(path: Path | None = None) -> Path:
    """Return ``path``, or the config file found upward from cwd.

    Raises:
        ConfigError: No path given and no config file found.
    """
    if path is None:
        path = find_config_file()
    if path is None:
        raise ConfigError(
            f"No config file found ({', '.join(CONFIG_FILES)}). "
            "Create cicd-config.yml, or specify --config."
        )
    return path


def load_config(path: Path | None = None) -> CICDConfig:
    """Load and validate the deployment configuration.

    Args:
        path: Explicit config path. If None, searches upward from cwd.

    Returns:
        Validated ``CICDConfig``.

    Raises:
        ConfigError: If the file is missing, unparsable or invalid.
    """
    path = resolve_config_path(path)
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    if path.suffix == ".json":
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {path}: {e}") from e
    else:
        try:
            data = yaml.safe_load(raw)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    config = parse_config(data, source=str(path))
    logger.info(
        "Loaded config '%s' → %s (%s)",
        config.project.project_name, config.cloud.provider, config.cloud.region,
    )
    return config


def project_root(config_path: Path) -> Path:
    """Get the project root directory from a config file path."""
    return config_path.parent.resolve()
