"""
Shared test fixtures and configuration.

``make_config`` returns a builder for complete, valid ``CICDConfig``
objects so each test only spells out what it varies.
"""

from pathlib import Path

import pytest

from cicdgen.core.models.config import (
    CICDConfig,
    CloudConfig,
    JenkinsConfig,
    NotificationConfig,
    ProjectConfig,
    assemble_config,
)

OIDC_ROLE_ARN = "arn:aws:iam::123456789012:role/jenkins-deployer"

_PROVIDER_DEFAULTS = {
    "aws": ("us-east-1", "t3.small"),
    "azure": ("eastus", "Standard_B1s"),
    "gcp": ("us-central1", "e2-small"),
    "digitalocean": ("nyc3", "s-1vcpu-1gb"),
}

DEFAULT_SERVICES = [
    {
        "type": "database",
        "name": "Main DB",
        "service": "postgresql",
        "requires_infrastructure": True,
        "env_variables": [
            {"key": "DATABASE_URL", "is_secret": True, "description": "Postgres connection string"},
            {"key": "DB_POOL_SIZE", "value": "10", "description": "Connection pool size"},
        ],
    },
    {
        "type": "cache",
        "name": "Session Cache",
        "service": "redis",
        "requires_infrastructure": True,
        "env_variables": [
            {"key": "REDIS_URL", "is_secret": True, "description": "Redis URL"},
        ],
    },
]


def credentials_for(provider: str, region: str, use_oidc: bool = False) -> dict:
    if provider == "aws":
        creds = {
            "access_key_id": "AKIAEXAMPLE",
            "secret_access_key": "secret",
            "region": region,
            "use_oidc": use_oidc,
        }
        if use_oidc:
            creds["oidc_role_arn"] = OIDC_ROLE_ARN
        return creds
    if provider == "azure":
        return {
            "subscription_id": "sub-1",
            "client_id": "client-1",
            "client_secret": "secret",
            "tenant_id": "tenant-1",
            "region": region,
            "use_oidc": use_oidc,
        }
    if provider == "gcp":
        return {"project_id": "my-project", "key_file": "key.json", "region": region, "use_oidc": use_oidc}
    return {"api_token": "do-token", "region": region}


def build_cloud(
    provider: str = "aws",
    *,
    use_oidc: bool = False,
    strategy: str = "rolling",
    auto_scaling: bool = False,
    min_instances: int = 1,
    max_instances: int = 1,
    load_balancer_url: str | None = None,
    port: int = 3000,
    health_check_path: str = "/health",
    instance_type: str | None = None,
    environment_variables: dict | None = None,
) -> CloudConfig:
    region, default_instance = _PROVIDER_DEFAULTS[provider]
    return CloudConfig.model_validate({
        "provider": provider,
        "credentials": credentials_for(provider, region, use_oidc),
        "instance_type": instance_type or default_instance,
        "deployment_config": {
            "auto_scaling": auto_scaling,
            "min_instances": min_instances,
            "max_instances": max_instances,
            "health_check_path": health_check_path,
            "port": port,
            "use_load_balancer": load_balancer_url is not None,
            "load_balancer_url": load_balancer_url,
            "deployment_strategy": strategy,
            "environment_variables": environment_variables or {},
        },
    })


def build_config(
    provider: str = "aws",
    *,
    services: list[dict] | None = None,
    platforms: list[dict] | None = None,
    project: dict | None = None,
    retry_count: int = 2,
    **cloud_options,
) -> CICDConfig:
    project_data = {
        "project_name": "My App",
        "project_type": "backend",
        "repository": "https://github.com/acme/my-app.git",
        "external_services": DEFAULT_SERVICES if services is None else services,
    }
    project_data.update(project or {})
    return assemble_config(
        ProjectConfig.model_validate(project_data),
        build_cloud(provider, **cloud_options),
        NotificationConfig.model_validate({
            "email": "ops@example.com",
            "platforms": platforms or [],
        }),
        JenkinsConfig(retry_count=retry_count),
    )


@pytest.fixture
def make_config():
    """Builder for complete configs: ``make_config("gcp", strategy="canary")``."""
    return build_config


@pytest.fixture
def make_cloud():
    return build_cloud


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """A valid cicd-config.yml plus Dockerfile in a temporary project."""
    (tmp_path / "Dockerfile").write_text("FROM node:20-alpine\nCMD [\"node\", \"index.js\"]\n")
    path = tmp_path / "cicd-config.yml"
    path.write_text(
        """\
project:
  project_name: My App
  project_type: backend
  repository: https://github.com/acme/my-app.git
  external_services:
    - type: database
      name: Main DB
      service: postgresql
      requires_infrastructure: true
      env_variables:
        - key: DATABASE_URL
          is_secret: true
          description: Postgres connection string
cloud:
  provider: gcp
  instance_type: e2-small
  credentials:
    project_id: my-project
    key_file: key.json
    region: us-central1
  deployment_config:
    port: 8080
    health_check_path: /healthz
notifications:
  email: ops@example.com
  platforms:
    - type: slack
      webhook: https://hooks.slack.com/services/T000/B000/XXXX
"""
    )
    return path
