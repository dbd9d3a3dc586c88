"""
Deployment configuration model — the single input of every generator.

Loaded from cicd-config.yml (or a preset saved by the old JSON wizard),
this aggregate is the canonical truth about what gets built, where it
is deployed and who hears about it.  Instances are frozen: generators
read them and never mutate them.

Field names are snake_case; camelCase aliases keep JSON presets loading
unchanged.
"""

from __future__ import annotations

import re
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

Provider = Literal["aws", "azure", "gcp", "digitalocean"]
DeploymentStrategy = Literal["rolling", "blue-green", "canary"]
NotificationChannel = Literal["slack", "discord", "teams", "telegram"]

SUPPORTED_PROVIDERS: tuple[str, ...] = ("aws", "azure", "gcp", "digitalocean")

_WHITESPACE_RE = re.compile(r"\s+")


def service_name(display_name: str) -> str:
    """Derive a service / artifact name: lowercase, whitespace runs → ``-``."""
    return _WHITESPACE_RE.sub("-", display_name.strip().lower())


class _Model(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


# ── Project ─────────────────────────────────────────────────────


class EnvVariable(_Model):
    """One environment variable a service needs at runtime."""

    key: str
    value: str | None = None
    is_secret: bool = False
    description: str = ""


class ExternalService(_Model):
    """A backing service the application talks to (database, cache, ...)."""

    type: Literal["database", "cache", "queue", "storage", "email", "monitoring", "custom"]
    name: str
    service: str
    env_variables: list[EnvVariable] = Field(default_factory=list)
    connection_string: str | None = None
    requires_infrastructure: bool = False

    @field_validator("env_variables")
    @classmethod
    def _unique_keys(cls, value: list[EnvVariable]) -> list[EnvVariable]:
        keys = [v.key for v in value]
        dupes = sorted({k for k in keys if keys.count(k) > 1})
        if dupes:
            raise ValueError(f"Duplicate environment variable keys: {', '.join(dupes)}")
        return value


class ProjectConfig(_Model):
    """What is being built and where its source lives."""

    project_name: str
    project_type: Literal["frontend", "backend", "fullstack"]
    language: Literal["javascript", "typescript"] = "javascript"
    repository: str
    branch: str = "main"
    has_dockerfile: bool = True
    dockerfile_path: str = "Dockerfile"
    run_tests: bool = True
    test_command: str | None = None
    build_command: str | None = None
    requires_env_file: bool = False
    env_file_path: str = ".env"
    external_services: list[ExternalService] = Field(default_factory=list)

    @field_validator("project_name")
    @classmethod
    def _non_blank_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("project_name must not be blank")
        return value

    @property
    def artifact_name(self) -> str:
        """Name used for every deployed resource, container and compose service."""
        return service_name(self.project_name)

    def env_variables(self) -> list[EnvVariable]:
        """All service env variables, first declaration of a key wins."""
        seen: dict[str, EnvVariable] = {}
        for svc in self.external_services:
            for var in svc.env_variables:
                seen.setdefault(var.key, var)
        return list(seen.values())

    def env_keys(self) -> list[str]:
        return [v.key for v in self.env_variables()]


# ── Cloud credentials (tagged union on ``provider``) ────────────


class AWSCredentials(_Model):
    provider: Literal["aws"] = "aws"
    access_key_id: str = ""
    secret_access_key: str = ""
    region: str
    use_oidc: bool = Field(default=False, alias="useOIDC")
    oidc_role_arn: str | None = None

    @model_validator(mode="after")
    def _oidc_needs_role(self) -> AWSCredentials:
        if self.use_oidc and not self.oidc_role_arn:
            raise ValueError("AWS OIDC authentication requires oidc_role_arn")
        return self


class AzureCredentials(_Model):
    provider: Literal["azure"] = "azure"
    subscription_id: str = ""
    client_id: str = ""
    client_secret: str = ""
    tenant_id: str = ""
    region: str
    use_oidc: bool = Field(default=False, alias="useOIDC")


class GCPCredentials(_Model):
    provider: Literal["gcp"] = "gcp"
    project_id: str = ""
    key_file: str = ""
    region: str
    use_oidc: bool = Field(default=False, alias="useOIDC")


class DOCredentials(_Model):
    """DigitalOcean only supports API-token authentication."""

    provider: Literal["digitalocean"] = "digitalocean"
    api_token: str = ""
    region: str

    @property
    def use_oidc(self) -> bool:
        return False


Credentials = Annotated[
    Union[AWSCredentials, AzureCredentials, GCPCredentials, DOCredentials],
    Field(discriminator="provider"),
]


# ── Cloud deployment ────────────────────────────────────────────


class ManagedService(_Model):
    """A provider-managed backing service (RDS, Cloud SQL, ...)."""

    type: str
    service: str
    tier: str = "basic"
    auto_provision: bool = False
    existing_resource_id: str | None = None


class DeploymentConfig(_Model):
    """How the application runs once deployed."""

    tier: str = "basic"
    auto_scaling: bool = False
    min_instances: int = 1
    max_instances: int = 1
    health_check_path: str = "/health"
    port: int = Field(default=3000, ge=1, le=65535)
    use_load_balancer: bool = False
    load_balancer_url: str | None = None
    deployment_strategy: DeploymentStrategy = "rolling"
    environment_variables: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _fixed_capacity_without_scaling(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        auto = data.get("auto_scaling", data.get("autoScaling", False))
        if auto:
            return data
        data = {
            k: v for k, v in data.items()
            if k not in ("min_instances", "minInstances", "max_instances", "maxInstances")
        }
        data["min_instances"] = 1
        data["max_instances"] = 1
        return data

    @field_validator("health_check_path")
    @classmethod
    def _absolute_path(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError(f"health_check_path must start with '/': {value!r}")
        return value

    @model_validator(mode="after")
    def _check_bounds(self) -> DeploymentConfig:
        if self.min_instances < 1:
            raise ValueError("min_instances must be at least 1")
        if self.min_instances > self.max_instances:
            raise ValueError(
                f"min_instances ({self.min_instances}) exceeds max_instances ({self.max_instances})"
            )
        if self.use_load_balancer and not (self.load_balancer_url or "").strip():
            raise ValueError("use_load_balancer requires load_balancer_url")
        return self


class CloudConfig(_Model):
    """Target provider, credentials and runtime shape."""

    provider: Provider
    credentials: Credentials
    region: str
    instance_type: str
    deployment_config: DeploymentConfig = Field(default_factory=DeploymentConfig)
    managed_services: list[ManagedService] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _seed_from_credentials(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        creds = data.get("credentials")
        if isinstance(creds, dict):
            creds = dict(creds)
            if data.get("provider") and "provider" not in creds:
                creds["provider"] = data["provider"]
            if not data.get("provider") and creds.get("provider"):
                data["provider"] = creds["provider"]
            if not data.get("region") and creds.get("region"):
                data["region"] = creds["region"]
            data["credentials"] = creds
        elif isinstance(creds, BaseModel):
            data.setdefault("provider", getattr(creds, "provider", None))
            if not data.get("region"):
                data["region"] = getattr(creds, "region", None)
        return data

    @model_validator(mode="after")
    def _credentials_agree(self) -> CloudConfig:
        if self.credentials.provider != self.provider:
            raise ValueError(
                f"Credentials are for '{self.credentials.provider}' "
                f"but provider is '{self.provider}'"
            )
        if self.credentials.region != self.region:
            raise ValueError(
                f"Region mismatch: cloud '{self.region}' vs credentials "
                f"'{self.credentials.region}'"
            )
        return self


# ── Notifications ───────────────────────────────────────────────


class NotificationPlatform(_Model):
    type: NotificationChannel
    webhook: str | None = None
    api_key: str | None = None


class NotificationConfig(_Model):
    """Operator email plus optional chat channels."""

    email: str
    platforms: list[NotificationPlatform] = Field(default_factory=list)
    webhook_urls: dict[str, str] = Field(default_factory=dict)

    def webhook_for(self, platform: NotificationPlatform) -> str:
        """Platform webhook, falling back to ``webhook_urls[type]``."""
        return (platform.webhook or self.webhook_urls.get(platform.type) or "").strip()


# ── Jenkins ─────────────────────────────────────────────────────


class JenkinsConfig(_Model):
    agent_label: str = "docker"
    timeout: int = Field(default=60, ge=1)
    retry_count: int = Field(default=2, ge=0)
    environment_variables: dict[str, str] = Field(default_factory=dict)


# ── Aggregate ───────────────────────────────────────────────────


class CICDConfig(_Model):
    """Root aggregate handed to every generator."""

    project: ProjectConfig
    cloud: CloudConfig
    notifications: NotificationConfig
    jenkins_config: JenkinsConfig = Field(default_factory=JenkinsConfig)

    @model_validator(mode="after")
    def _environment_maps_agree(self) -> CICDConfig:
        deploy_keys = set(self.cloud.deployment_config.environment_variables)
        jenkins_keys = set(self.jenkins_config.environment_variables)
        if deploy_keys != jenkins_keys:
            drift = ", ".join(sorted(deploy_keys ^ jenkins_keys))
            raise ValueError(f"Deployment and Jenkins environment variables differ: {drift}")
        missing = [k for k in self.project.env_keys() if k not in deploy_keys]
        if missing:
            raise ValueError(
                f"Service environment variables missing from the deployment map: "
                f"{', '.join(missing)}"
            )
        return self

    @property
    def artifact_name(self) -> str:
        return self.project.artifact_name


def consolidate_environment_variables(services: list[ExternalService]) -> dict[str, str]:
    """Flatten every service's env variables into ``key → description``.

    A key declared by several services keeps the last description seen.
    """
    env: dict[str, str] = {}
    for svc in services:
        for var in svc.env_variables:
            env[var.key] = var.description or f"{svc.name} {var.key}"
    return env


def assemble_config(
    project: ProjectConfig,
    cloud: CloudConfig,
    notifications: NotificationConfig,
    jenkins_config: JenkinsConfig | None = None,
) -> CICDConfig:
    """Build a ``CICDConfig`` with both environment maps consolidated.

    Existing entries in either map are kept; every service key is added.
    """
    jenkins_config = jenkins_config or JenkinsConfig()
    env = consolidate_environment_variables(project.external_services)

    deploy = cloud.deployment_config
    deploy_env = {**env, **deploy.environment_variables}
    jenkins_env = {**env, **jenkins_config.environment_variables}
    for key in set(deploy_env) - set(jenkins_env):
        jenkins_env[key] = deploy_env[key]
    for key in set(jenkins_env) - set(deploy_env):
        deploy_env[key] = jenkins_env[key]

    cloud = cloud.model_copy(
        update={"deployment_config": deploy.model_copy(update={"environment_variables": deploy_env})}
    )
    jenkins_config = jenkins_config.model_copy(update={"environment_variables": jenkins_env})
    return CICDConfig(
        project=project,
        cloud=cloud,
        notifications=notifications,
        jenkins_config=jenkins_config,
    )
