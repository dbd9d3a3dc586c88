"""
Deployment script generator — the shell fragment run by the Deploy stage.

One script per provider, built from four sections:

    1. authentication  (static credentials or OIDC, never both)
    2. provisioning    (idempotent cluster / group creation, resource spec)
    3. deploy          (existence check → create, or the strategy's update)
    4. URL export      (load balancer literal or runtime lookup,
                        appended to deployment.env as DEPLOYED_URL=...)

Only the selected deployment strategy is emitted.  Values that exist
only at build time (image tag, secrets) are referenced as ``${VAR}`` and
bound by the pipeline's environment blocks.

JSON and YAML specs are written through unquoted heredocs so those
references expand on the agent; every other character is escaped and
lands in the file as rendered.  Expanded values are inserted verbatim,
so a secret holding a double quote or a newline breaks the document.
"""

from __future__ import annotations

import json
import logging
import re
import textwrap
from collections.abc import Callable

from cicdgen.core.errors import UnsupportedProviderError
from cicdgen.core.models.config import CloudConfig
from cicdgen.core.services.generators.document import render_document
from cicdgen.core.services.generators.sizing import (
    HEALTH_CHECK_INTERVAL,
    HEALTH_CHECK_RETRIES,
    HEALTH_CHECK_TIMEOUT,
    aws_task_size,
    azure_container_size,
    do_instance_slug,
    gcp_run_size,
)

logger = logging.getLogger(__name__)

# ${NAME} references stay live inside an unquoted heredoc
_REFERENCE_RE = re.compile(r"(\$\{[A-Za-z_][A-Za-z0-9_]*\})")


def heredoc_body(text: str) -> str:
    """Escape ``text`` for an unquoted heredoc.

    Backslashes, backquotes and ``$`` are escaped so the shell copies them
    through; ``${NAME}`` references are left for the shell to expand.
    """
    parts = _REFERENCE_RE.split(text)
    for i in range(0, len(parts), 2):
        parts[i] = re.sub(r"([\\\$`])", r"\\\1", parts[i])
    return "".join(parts)


def write_file(filename: str, content: str) -> str:
    """Shell lines that write ``content`` to ``filename`` via a heredoc."""
    body = heredoc_body(content)
    if not body.endswith("\n"):
        body += "\n"
    return f"cat > {filename} << EOF\n{body}EOF"


_PROVIDER_LABELS = {
    "aws": "AWS ECS (Fargate)",
    "azure": "Azure Container Instances",
    "gcp": "Google Cloud Run",
    "digitalocean": "DigitalOcean App Platform",
}

DEPLOYMENT_ENV_FILE = "deployment.env"


def _block(text: str, indent: int = 4) -> str:
    return textwrap.indent(text.rstrip("\n"), " " * indent)


def _env_keys(cloud: CloudConfig) -> list[str]:
    return list(cloud.deployment_config.environment_variables)


def _canary_instances(cloud: CloudConfig) -> tuple[int, int]:
    """Canary capacity: one instance above the minimum."""
    dc = cloud.deployment_config
    canary_min = dc.min_instances + 1
    return canary_min, max(dc.max_instances, canary_min)


# ═══════════════════════════════════════════════════════════════════
#  AWS — ECS on Fargate
# ═══════════════════════════════════════════════════════════════════


def _aws_auth(cloud: CloudConfig) -> str:
    creds = cloud.credentials
    if creds.use_oidc:
        return f"""\
# ── Authenticate (OIDC web identity) ──
echo "Assuming {creds.oidc_role_arn} via OIDC..."
ROLE_CREDS=$(aws sts assume-role-with-web-identity \\
    --role-arn {creds.oidc_role_arn} \\
    --role-session-name JenkinsSession \\
    --web-identity-token "${{AWS_WEB_IDENTITY_TOKEN}}" \\
    --query 'Credentials.[AccessKeyId,SecretAccessKey,SessionToken]' \\
    --output text)
export AWS_ACCESS_KEY_ID=$(echo "$ROLE_CREDS" | cut -f1)
export AWS_SECRET_ACCESS_KEY=$(echo "$ROLE_CREDS" | cut -f2)
export AWS_SESSION_TOKEN=$(echo "$ROLE_CREDS" | cut -f3)
export AWS_DEFAULT_REGION={cloud.region}
"""
    return f"""\
# ── Authenticate (access keys) ──
aws configure set aws_access_key_id "${{AWS_ACCESS_KEY_ID}}"
aws configure set aws_secret_access_key "${{AWS_SECRET_ACCESS_KEY}}"
aws configure set region {cloud.region}
"""


def _aws_task_definition(cloud: CloudConfig, name: str) -> str:
    dc = cloud.deployment_config
    cpu, memory = aws_task_size(cloud.instance_type)
    container = {
        "name": name,
        "image": "${DOCKER_IMAGE}",
        "essential": True,
        "portMappings": [{"containerPort": dc.port, "protocol": "tcp"}],
        "environment": [{"name": key, "value": f"${{{key}}}"} for key in _env_keys(cloud)],
        "healthCheck": {
            "command": [
                "CMD-SHELL",
                f"curl -f http://localhost:{dc.port}{dc.health_check_path} || exit 1",
            ],
            "interval": HEALTH_CHECK_INTERVAL,
            "timeout": HEALTH_CHECK_TIMEOUT,
            "retries": HEALTH_CHECK_RETRIES,
        },
        "logConfiguration": {
            "logDriver": "awslogs",
            "options": {
                "awslogs-group": f"/ecs/{name}",
                "awslogs-region": cloud.region,
                "awslogs-stream-prefix": "ecs",
            },
        },
    }
    task = {
        "family": name,
        "networkMode": "awsvpc",
        "requiresCompatibilities": ["FARGATE"],
        "cpu": str(cpu),
        "memory": str(memory),
        "executionRoleArn": "${EXECUTION_ROLE_ARN}",
        "containerDefinitions": [container],
    }
    return json.dumps(task, indent=4)


def _aws_provision(cloud: CloudConfig, name: str) -> str:
    task_definition = _aws_task_definition(cloud, name)
    return f"""\
# ── Provision ──
CLUSTER_STATUS=$(aws ecs describe-clusters --clusters {name}-cluster \\
    --query 'clusters[0].status' --output text 2>/dev/null || echo "MISSING")
if [ "$CLUSTER_STATUS" != "ACTIVE" ]; then
    echo "Creating ECS cluster {name}-cluster..."
    aws ecs create-cluster --cluster-name {name}-cluster
fi
aws logs create-log-group --log-group-name /ecs/{name} 2>/dev/null || true

EXECUTION_ROLE_ARN=$(aws iam get-role --role-name {name}-task-exec-role \\
    --query 'Role.Arn' --output text)
SECURITY_GROUP_IDS=$(aws ec2 describe-security-groups \\
    --filters Name=group-name,Values={name}-sg \\
    --query 'SecurityGroups[0].GroupId' --output text)

{write_file("task-definition.json", task_definition)}
aws ecs register-task-definition --cli-input-json file://task-definition.json
"""


def _aws_update(cloud: CloudConfig, name: str) -> str:
    strategy = cloud.deployment_config.deployment_strategy
    service = f"--cluster {name}-cluster --service {name}-service"
    if strategy == "blue-green":
        return f"""\
echo "Blue-green deployment of {name}-service..."
# A full replacement set starts before any running task is drained
aws ecs update-service {service} --task-definition {name} \\
    --deployment-configuration "maximumPercent=200,minimumHealthyPercent=100" \\
    --force-new-deployment
"""
    if strategy == "canary":
        canary_min, _ = _canary_instances(cloud)
        return f"""\
echo "Canary deployment of {name}-service..."
# One extra task runs the new revision; traffic weighting is left to the load balancer
aws ecs update-service {service} --task-definition {name} --desired-count {canary_min}
"""
    return f"""\
echo "Rolling update of {name}-service..."
aws ecs update-service {service} --task-definition {name} --force-new-deployment
"""


def _aws_deploy(cloud: CloudConfig, name: str) -> str:
    dc = cloud.deployment_config
    return f"""\
# ── Deploy ──
SERVICE_STATUS=$(aws ecs describe-services --cluster {name}-cluster --services {name}-service \\
    --query 'services[0].status' --output text 2>/dev/null || echo "MISSING")
if [ "$SERVICE_STATUS" != "ACTIVE" ]; then
    echo "Creating ECS service {name}-service..."
    aws ecs create-service \\
        --cluster {name}-cluster \\
        --service-name {name}-service \\
        --task-definition {name} \\
        --desired-count {dc.min_instances} \\
        --launch-type FARGATE \\
        --network-configuration "awsvpcConfiguration={{subnets=[${{SUBNET_IDS}}],securityGroups=[${{SECURITY_GROUP_IDS}}],assignPublicIp=ENABLED}}"
else
{_block(_aws_update(cloud, name))}
fi
aws ecs wait services-stable --cluster {name}-cluster --services {name}-service
"""


def _aws_runtime_url(cloud: CloudConfig, name: str) -> str:
    port = cloud.deployment_config.port
    return f"""\
TASK_ARN=$(aws ecs list-tasks --cluster {name}-cluster --service-name {name}-service \\
    --query 'taskArns[0]' --output text)
ENI_ID=$(aws ecs describe-tasks --cluster {name}-cluster --tasks "$TASK_ARN" \\
    --query "tasks[0].attachments[0].details[?name=='networkInterfaceId'].value" --output text)
PUBLIC_IP=$(aws ec2 describe-network-interfaces --network-interface-ids "$ENI_ID" \\
    --query 'NetworkInterfaces[0].Association.PublicIp' --output text)
export DEPLOYED_URL="http://${{PUBLIC_IP}}:{port}"
"""


# ═══════════════════════════════════════════════════════════════════
#  Azure — Container Instances
# ═══════════════════════════════════════════════════════════════════


def _azure_auth(cloud: CloudConfig) -> str:
    if cloud.credentials.use_oidc:
        login = """\
az login --service-principal \\
    --username "${AZURE_CLIENT_ID}" \\
    --tenant "${AZURE_TENANT_ID}" \\
    --federated-token "${AZURE_FEDERATED_TOKEN}"
"""
        title = "federated token"
    else:
        login = """\
az login --service-principal \\
    --username "${AZURE_CLIENT_ID}" \\
    --password "${AZURE_CLIENT_SECRET}" \\
    --tenant "${AZURE_TENANT_ID}"
"""
        title = "service principal secret"
    return f"""\
# ── Authenticate ({title}) ──
{login}az account set --subscription "${{AZURE_SUBSCRIPTION_ID}}"
"""


def container_group_document(cloud: CloudConfig, group_name: str) -> dict:
    """ACI container group definition (``az container create --file``)."""
    dc = cloud.deployment_config
    cpu, memory = azure_container_size(cloud.instance_type)
    return {
        "apiVersion": "2021-10-01",
        "location": cloud.region,
        "name": group_name,
        "type": "Microsoft.ContainerInstance/containerGroups",
        "properties": {
            "osType": "Linux",
            "restartPolicy": "Always",
            "containers": [
                {
                    "name": group_name,
                    "properties": {
                        "image": "${DOCKER_IMAGE}",
                        "ports": [{"port": dc.port}],
                        "resources": {"requests": {"cpu": cpu, "memoryInGB": memory}},
                        "environmentVariables": [
                            {"name": key, "secureValue": f"${{{key}}}"}
                            for key in _env_keys(cloud)
                        ],
                        "livenessProbe": {
                            "httpGet": {"path": dc.health_check_path, "port": dc.port},
                            "periodSeconds": HEALTH_CHECK_INTERVAL,
                            "timeoutSeconds": HEALTH_CHECK_TIMEOUT,
                            "failureThreshold": HEALTH_CHECK_RETRIES,
                        },
                    },
                },
            ],
            "imageRegistryCredentials": [
                {
                    "server": "${ACR_LOGIN_SERVER}",
                    "username": "${ACR_USERNAME}",
                    "password": "${ACR_PASSWORD}",
                },
            ],
            "ipAddress": {
                "type": "Public",
                "dnsNameLabel": group_name,
                "ports": [{"protocol": "tcp", "port": dc.port}],
            },
        },
    }


def _azure_provision(cloud: CloudConfig, name: str) -> str:
    group = container_group_document(cloud, name)
    text = f"""\
# ── Provision ──
RESOURCE_GROUP="${{RESOURCE_GROUP:-{name}-rg}}"
if [ "$(az group exists --name "$RESOURCE_GROUP")" != "true" ]; then
    echo "Creating resource group $RESOURCE_GROUP..."
    az group create --name "$RESOURCE_GROUP" --location {cloud.region}
fi

{write_file("container-group.yaml", render_document(group))}
"""
    if cloud.deployment_config.deployment_strategy == "canary":
        canary = container_group_document(cloud, f"{name}-canary")
        text += f"""
{write_file("container-group-canary.yaml", render_document(canary))}
"""
    return text


def _azure_update(cloud: CloudConfig, name: str) -> str:
    strategy = cloud.deployment_config.deployment_strategy
    if strategy == "blue-green":
        return f"""\
echo "Replacing container group {name}..."
az container delete --resource-group "$RESOURCE_GROUP" --name {name} --yes
az container create --resource-group "$RESOURCE_GROUP" --file container-group.yaml
"""
    if strategy == "canary":
        return f"""\
echo "Starting canary container group {name}-canary..."
# The canary group runs beside {name}; traffic weighting is left to the load balancer
az container create --resource-group "$RESOURCE_GROUP" --file container-group-canary.yaml
"""
    return f"""\
echo "Rolling update of container group {name}..."
az container create --resource-group "$RESOURCE_GROUP" --file container-group.yaml
az container restart --resource-group "$RESOURCE_GROUP" --name {name}
"""


def _azure_deploy(cloud: CloudConfig, name: str) -> str:
    return f"""\
# ── Deploy ──
if ! az container show --resource-group "$RESOURCE_GROUP" --name {name} --output none 2>/dev/null; then
    echo "Creating container group {name}..."
    az container create --resource-group "$RESOURCE_GROUP" --file container-group.yaml
else
{_block(_azure_update(cloud, name))}
fi
"""


def _azure_runtime_url(cloud: CloudConfig, name: str) -> str:
    port = cloud.deployment_config.port
    return f"""\
FQDN=$(az container show --resource-group "$RESOURCE_GROUP" --name {name} \\
    --query ipAddress.fqdn --output tsv)
export DEPLOYED_URL="http://${{FQDN}}:{port}"
"""


# ═══════════════════════════════════════════════════════════════════
#  GCP — Cloud Run
# ═══════════════════════════════════════════════════════════════════


def _gcp_auth(cloud: CloudConfig) -> str:
    if cloud.credentials.use_oidc:
        login = """\
# ── Authenticate (workload identity federation) ──
echo "${GCP_OIDC_TOKEN}" > gcp-oidc-credentials.json
gcloud auth login --cred-file=gcp-oidc-credentials.json
"""
    else:
        login = """\
# ── Authenticate (service account key) ──
gcloud auth activate-service-account --key-file="${GCP_KEY_FILE}"
"""
    return f"""\
{login}gcloud config set project "${{GCP_PROJECT_ID}}"
gcloud config set run/region {cloud.region}
"""


def cloud_run_document(cloud: CloudConfig, name: str) -> dict:
    """Knative service definition (``gcloud run services replace``)."""
    dc = cloud.deployment_config
    cpu, memory = gcp_run_size(cloud.instance_type)
    return {
        "apiVersion": "serving.knative.dev/v1",
        "kind": "Service",
        "metadata": {"name": name},
        "spec": {
            "template": {
                "metadata": {
                    "annotations": {
                        "autoscaling.knative.dev/minScale": str(dc.min_instances),
                        "autoscaling.knative.dev/maxScale": str(dc.max_instances),
                    },
                },
                "spec": {
                    "containers": [
                        {
                            "image": "${DOCKER_IMAGE}",
                            "ports": [{"containerPort": dc.port}],
                            "resources": {"limits": {"cpu": cpu, "memory": memory}},
                            "env": [
                                {"name": key, "value": f"${{{key}}}"}
                                for key in _env_keys(cloud)
                            ],
                            "livenessProbe": {
                                "httpGet": {"path": dc.health_check_path},
                                "periodSeconds": HEALTH_CHECK_INTERVAL,
                                "timeoutSeconds": HEALTH_CHECK_TIMEOUT,
                                "failureThreshold": HEALTH_CHECK_RETRIES,
                            },
                        },
                    ],
                },
            },
        },
    }


def _gcp_provision(cloud: CloudConfig, name: str) -> str:
    service = cloud_run_document(cloud, name)
    return f"""\
# ── Provision ──
gcloud services enable run.googleapis.com

{write_file("service.yaml", render_document(service))}
"""


def _gcp_update(cloud: CloudConfig, name: str) -> str:
    strategy = cloud.deployment_config.deployment_strategy
    region = cloud.region
    if strategy == "blue-green":
        return f"""\
echo "Blue-green deployment of {name}..."
gcloud run deploy {name} --image "${{DOCKER_IMAGE}}" --region {region} --no-traffic
gcloud run services update-traffic {name} --to-latest --region {region}
"""
    if strategy == "canary":
        canary_min, canary_max = _canary_instances(cloud)
        return f"""\
echo "Canary deployment of {name}..."
# One extra warm instance; traffic weighting between revisions is left to the operator
gcloud run services update {name} --region {region} \\
    --min-instances {canary_min} --max-instances {canary_max} \\
    --image "${{DOCKER_IMAGE}}"
"""
    return f"""\
echo "Rolling update of {name}..."
gcloud run services update {name} --image "${{DOCKER_IMAGE}}" --region {region}
"""


def _gcp_deploy(cloud: CloudConfig, name: str) -> str:
    region = cloud.region
    return f"""\
# ── Deploy ──
if ! gcloud run services describe {name} --region {region} >/dev/null 2>&1; then
    echo "Creating Cloud Run service {name}..."
    gcloud run services replace service.yaml --region {region}
    gcloud run services add-iam-policy-binding {name} --region {region} \\
        --member=allUsers --role=roles/run.invoker
else
{_block(_gcp_update(cloud, name))}
fi
"""


def _gcp_runtime_url(cloud: CloudConfig, name: str) -> str:
    return f"""\
export DEPLOYED_URL=$(gcloud run services describe {name} --region {cloud.region} \\
    --format='value(status.url)')
"""


# ═══════════════════════════════════════════════════════════════════
#  DigitalOcean — App Platform
# ═══════════════════════════════════════════════════════════════════


def _do_auth(cloud: CloudConfig) -> str:
    return """\
# ── Authenticate (API token) ──
doctl auth init --access-token "${DO_API_TOKEN}"
"""


def app_spec_document(cloud: CloudConfig, name: str, *, canary: bool = False) -> dict:
    """App Platform spec (``doctl apps create --spec``)."""
    dc = cloud.deployment_config
    service: dict = {
        "name": name,
        "image": {
            "registry_type": "DOCKER_HUB",
            "repository": "${IMAGE_REPOSITORY}",
            "tag": "${IMAGE_TAG}",
        },
        "http_port": dc.port,
        "instance_size_slug": do_instance_slug(cloud.instance_type),
    }
    min_instances, max_instances = (
        _canary_instances(cloud) if canary else (dc.min_instances, dc.max_instances)
    )
    if dc.auto_scaling:
        service["autoscaling"] = {
            "min_instance_count": min_instances,
            "max_instance_count": max_instances,
            "metrics": {"cpu": {"percent": 80}},
        }
    else:
        service["instance_count"] = min_instances
    service["health_check"] = {
        "http_path": dc.health_check_path,
        "period_seconds": HEALTH_CHECK_INTERVAL,
        "timeout_seconds": HEALTH_CHECK_TIMEOUT,
        "failure_threshold": HEALTH_CHECK_RETRIES,
    }
    service["envs"] = [
        {"key": key, "value": f"${{{key}}}", "scope": "RUN_TIME", "type": "SECRET"}
        for key in _env_keys(cloud)
    ]
    service["routes"] = [{"path": "/"}]
    return {"name": name, "region": cloud.region, "services": [service]}


def _do_provision(cloud: CloudConfig, name: str) -> str:
    spec = app_spec_document(cloud, name)
    text = f"""\
# ── Provision ──
IMAGE_REPOSITORY="${{DOCKER_IMAGE%:*}}"
IMAGE_TAG="${{DOCKER_IMAGE##*:}}"

{write_file("app-spec.yaml", render_document(spec))}
"""
    if cloud.deployment_config.deployment_strategy == "canary":
        canary = app_spec_document(cloud, name, canary=True)
        text += f"""
{write_file("app-spec-canary.yaml", render_document(canary))}
"""
    return text


def _do_update(cloud: CloudConfig, name: str) -> str:
    strategy = cloud.deployment_config.deployment_strategy
    if strategy == "blue-green":
        return f"""\
echo "Blue-green deployment of {name}..."
doctl apps update "$APP_ID" --spec app-spec.yaml
doctl apps create-deployment "$APP_ID" --force-rebuild --wait
"""
    if strategy == "canary":
        return f"""\
echo "Canary deployment of {name}..."
# One extra instance; traffic weighting is left to the load balancer
doctl apps update "$APP_ID" --spec app-spec-canary.yaml --wait
"""
    return f"""\
echo "Rolling update of {name}..."
doctl apps update "$APP_ID" --spec app-spec.yaml --wait
"""


def _do_deploy(cloud: CloudConfig, name: str) -> str:
    return f"""\
# ── Deploy ──
APP_ID=$(doctl apps list --format ID,Spec.Name --no-header | awk '$2 == "{name}" {{print $1}}')
if [ -z "$APP_ID" ]; then
    echo "Creating App Platform app {name}..."
    APP_ID=$(doctl apps create --spec app-spec.yaml --format ID --no-header --wait)
else
{_block(_do_update(cloud, name))}
fi
"""


def _do_runtime_url(cloud: CloudConfig, name: str) -> str:
    return """\
export DEPLOYED_URL=$(doctl apps get "$APP_ID" --format DefaultIngress --no-header)
"""


# ═══════════════════════════════════════════════════════════════════
#  Assembly
# ═══════════════════════════════════════════════════════════════════

_Section = Callable[[CloudConfig, str], str]

_PROVIDERS: dict[str, tuple[Callable[[CloudConfig], str], _Section, _Section, _Section]] = {
    "aws": (_aws_auth, _aws_provision, _aws_deploy, _aws_runtime_url),
    "azure": (_azure_auth, _azure_provision, _azure_deploy, _azure_runtime_url),
    "gcp": (_gcp_auth, _gcp_provision, _gcp_deploy, _gcp_runtime_url),
    "digitalocean": (_do_auth, _do_provision, _do_deploy, _do_runtime_url),
}


def _url_export(cloud: CloudConfig, name: str, runtime_url: _Section) -> str:
    dc = cloud.deployment_config
    if dc.use_load_balancer:
        resolve = f'export DEPLOYED_URL="{dc.load_balancer_url}"\n'
    else:
        resolve = runtime_url(cloud, name)
    return f"""\
# ── Publish URL ──
{resolve}echo "DEPLOYED_URL=${{DEPLOYED_URL}}" >> {DEPLOYMENT_ENV_FILE}
echo "Deployed {name}: ${{DEPLOYED_URL}}"
"""


def generate_deployment_script(cloud: CloudConfig, artifact_name: str) -> str:
    """Render the deployment script for ``cloud.provider``.

    Args:
        cloud: Cloud section of the config.
        artifact_name: Name of every deployed resource (see ``service_name``).

    Returns:
        A bash script.

    Raises:
        UnsupportedProviderError: No generator exists for the provider tag.
    """
    sections = _PROVIDERS.get(cloud.provider)
    if sections is None:
        raise UnsupportedProviderError(cloud.provider, "deployment script")
    auth, provision, deploy, runtime_url = sections
    dc = cloud.deployment_config

    logger.debug(
        "Deployment script: %s/%s strategy=%s oidc=%s",
        cloud.provider, artifact_name, dc.deployment_strategy, cloud.credentials.use_oidc,
    )

    header = f"""\
#!/usr/bin/env bash
# Deploy {artifact_name} to {_PROVIDER_LABELS[cloud.provider]} ({cloud.region})
# Strategy: {dc.deployment_strategy}
# Generated by cicdgen
set -euo pipefail
"""
    parts = [
        header,
        auth(cloud),
        provision(cloud, artifact_name),
        deploy(cloud, artifact_name),
        _url_export(cloud, artifact_name, runtime_url),
    ]
    return "\n".join(part.rstrip("\n") + "\n" for part in parts)


# ═══════════════════════════════════════════════════════════════════
#  Jenkins credential bindings
# ═══════════════════════════════════════════════════════════════════


def credential_bindings(cloud: CloudConfig) -> list[tuple[str, str]]:
    """``(ENV_VAR, jenkins-credential-id)`` pairs the deploy script reads.

    Static and OIDC modes bind disjoint sets, following the same branch
    as the script's authentication block.
    """
    creds = cloud.credentials
    if cloud.provider == "aws":
        if creds.use_oidc:
            bindings = [("AWS_WEB_IDENTITY_TOKEN", "aws-oidc-token")]
        else:
            bindings = [
                ("AWS_ACCESS_KEY_ID", "aws-access-key-id"),
                ("AWS_SECRET_ACCESS_KEY", "aws-secret-access-key"),
            ]
        return bindings + [("SUBNET_IDS", "aws-subnet-ids")]
    if cloud.provider == "azure":
        secret = (
            ("AZURE_FEDERATED_TOKEN", "azure-federated-token")
            if creds.use_oidc
            else ("AZURE_CLIENT_SECRET", "azure-client-secret")
        )
        return [
            ("AZURE_SUBSCRIPTION_ID", "azure-subscription-id"),
            ("AZURE_TENANT_ID", "azure-tenant-id"),
            ("AZURE_CLIENT_ID", "azure-client-id"),
            secret,
            ("ACR_LOGIN_SERVER", "acr-login-server"),
            ("ACR_USERNAME", "acr-username"),
            ("ACR_PASSWORD", "acr-password"),
        ]
    if cloud.provider == "gcp":
        secret = (
            ("GCP_OIDC_TOKEN", "gcp-oidc-token")
            if creds.use_oidc
            else ("GCP_KEY_FILE", "gcp-key-file")
        )
        return [("GCP_PROJECT_ID", "gcp-project-id"), secret]
    if cloud.provider == "digitalocean":
        return [("DO_API_TOKEN", "do-api-token")]
    raise UnsupportedProviderError(cloud.provider, "credential bindings")


def generate_credentials_environment(cloud: CloudConfig) -> str:
    """Jenkins ``environment { }`` block for the Deploy stage."""
    lines = [
        f"{var} = credentials('{cred_id}')"
        for var, cred_id in credential_bindings(cloud)
    ]
    if cloud.provider == "aws":
        lines.append(f"AWS_REGION = '{cloud.region}'")
    body = "\n".join(f"    {line}" for line in lines)
    return f"environment {{\n{body}\n}}\n"
