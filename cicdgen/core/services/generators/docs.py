"""
Docs generator — .cicd/CREDENTIALS_SETUP.md and .cicd/README.md.

Both documents are derived from the same bindings the Jenkinsfile uses,
so the credential ids listed here are exactly the ones the pipeline
asks Jenkins for.
"""

from __future__ import annotations

from cicdgen.core.models.config import CICDConfig
from cicdgen.core.services.generators.deployment import credential_bindings
from cicdgen.core.services.generators.jenkinsfile import (
    ENV_FILE_CREDENTIALS_ID,
    REGISTRY_CREDENTIALS_ID,
    credential_env_keys,
)
from cicdgen.core.services.generators.naming import credential_id

_PROVIDER_NAMES = {
    "aws": "Amazon Web Services",
    "azure": "Microsoft Azure",
    "gcp": "Google Cloud Platform",
    "digitalocean": "DigitalOcean",
}


def generate_credentials_guide(config: CICDConfig) -> str:
    """Render CREDENTIALS_SETUP.md."""
    cloud = config.cloud
    project = config.project
    auth = "OIDC" if cloud.credentials.use_oidc else "static credentials"
    lines = [
        f"# Jenkins credentials for {project.project_name}",
        "",
        "Create these under *Manage Jenkins → Credentials* before the first run.",
        "",
        f"## {_PROVIDER_NAMES[cloud.provider]} ({auth})",
        "",
        "| Credential id | Bound to | Kind |",
        "|---|---|---|",
    ]
    for var, cred_id in credential_bindings(cloud):
        kind = "Secret file" if var == "GCP_KEY_FILE" else "Secret text"
        lines.append(f"| `{cred_id}` | `{var}` | {kind} |")

    lines += ["", "## Pipeline", ""]
    if project.has_dockerfile:
        lines.append(
            f"* `{REGISTRY_CREDENTIALS_ID}`: username/password for the image registry."
        )
    if project.requires_env_file:
        lines.append(
            f"* `{ENV_FILE_CREDENTIALS_ID}`: secret file copied to `{project.env_file_path}` before install."
        )

    declared = {var.key: var for var in project.env_variables()}
    credential_keys = credential_env_keys(config)
    if credential_keys:
        lines += [
            "",
            "## Application variables",
            "",
            "| Credential id | Variable | Secret | Description |",
            "|---|---|---|---|",
        ]
        for key in credential_keys:
            var = declared.get(key)
            secret = "yes" if var is not None and var.is_secret else "no"
            description = var.description if var is not None else config.jenkins_config.environment_variables[key]
            lines.append(f"| `{credential_id(key)}` | `{key}` | {secret} | {description} |")

    if cloud.provider == "aws":
        lines += [
            "",
            "Apply `.cicd/terraform/main.tf` once before the first deploy: the",
            f"script looks up the `{config.artifact_name}-task-exec-role` role and the",
            f"`{config.artifact_name}-sg` security group it creates.",
        ]
    return "\n".join(lines) + "\n"


def generate_readme(config: CICDConfig, artifact_paths: list[str]) -> str:
    """Render the .cicd/README.md overview."""
    cloud = config.cloud
    dc = cloud.deployment_config
    lines = [
        f"# CI/CD for {config.project.project_name}",
        "",
        "Generated by cicdgen. Re-run `cicdgen generate all --force` after",
        "changing `cicd-config.yml` instead of editing these files by hand.",
        "",
        "## Deployment",
        "",
        f"* Provider: {_PROVIDER_NAMES[cloud.provider]}",
        f"* Region: `{cloud.region}`",
        f"* Instance type: `{cloud.instance_type}`",
        f"* Service name: `{config.artifact_name}`",
        f"* Strategy: {dc.deployment_strategy}",
        f"* Port: {dc.port}",
        f"* Health check: `{dc.health_check_path}`",
    ]
    if dc.auto_scaling:
        lines.append(f"* Auto-scaling: {dc.min_instances}–{dc.max_instances} instances")
    else:
        lines.append("* Auto-scaling: off (1 instance)")
    if dc.use_load_balancer:
        lines.append(f"* Load balancer: {dc.load_balancer_url}")

    lines += ["", "## Files", ""]
    lines += [f"* `{path}`" for path in artifact_paths]
    return "\n".join(lines) + "\n"
