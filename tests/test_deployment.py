"""
Tests for the provider deployment script generator.

Pure unit tests: CloudConfig in → bash text out.  Markers are matched
as plain substrings; no shell is executed.
"""

import json
import re

import pytest
import yaml

from cicdgen.core.errors import UnsupportedProviderError
from cicdgen.core.models.config import CloudConfig
from cicdgen.core.services.generators.deployment import (
    app_spec_document,
    cloud_run_document,
    container_group_document,
    credential_bindings,
    generate_credentials_environment,
    generate_deployment_script,
    heredoc_body,
)

NAME = "my-app"

# (static marker, oidc marker) per provider
AUTH_MARKERS = {
    "aws": ("aws configure set aws_access_key_id", "assume-role-with-web-identity"),
    "azure": ('--password "${AZURE_CLIENT_SECRET}"', '--federated-token "${AZURE_FEDERATED_TOKEN}"'),
    "gcp": ("gcloud auth activate-service-account", "gcloud auth login --cred-file="),
}

STRATEGY_MARKERS = {
    "aws": {
        "rolling": f"--task-definition {NAME} --force-new-deployment",
        "blue-green": "minimumHealthyPercent=100",
        "canary": "--desired-count 2",
    },
    "azure": {
        "rolling": "az container restart",
        "blue-green": "az container delete",
        "canary": "--file container-group-canary.yaml",
    },
    "gcp": {
        "rolling": f"gcloud run services update {NAME} --image",
        "blue-green": "--no-traffic",
        "canary": "--min-instances 2",
    },
    "digitalocean": {
        "rolling": 'doctl apps update "$APP_ID" --spec app-spec.yaml --wait',
        "blue-green": "--force-rebuild",
        "canary": "--spec app-spec-canary.yaml",
    },
}


def _script(make_cloud, provider, **options) -> str:
    return generate_deployment_script(make_cloud(provider, **options), NAME)


def _heredoc(script: str, filename: str) -> str:
    """Body of ``cat > filename << EOF ... EOF``."""
    start = script.index(f"cat > {filename} << EOF\n") + len(f"cat > {filename} << EOF\n")
    end = script.index("\nEOF\n", start)
    return script[start:end]


def _as_written(body: str) -> str:
    """Heredoc body as the shell writes it, ${NAME} references left as-is."""
    return re.sub(r"\\([\\$`])", r"\1", body)


class TestHeader:
    def test_shebang_and_strict_mode(self, make_cloud):
        script = _script(make_cloud, "aws")
        assert script.startswith("#!/usr/bin/env bash\n")
        assert "set -euo pipefail" in script
        assert "# Strategy: rolling" in script

    def test_idempotent(self, make_cloud):
        cloud = make_cloud("azure", strategy="canary")
        assert generate_deployment_script(cloud, NAME) == generate_deployment_script(cloud, NAME)


class TestAuthExclusivity:
    @pytest.mark.parametrize("provider", ["aws", "azure", "gcp"])
    def test_static_mode(self, make_cloud, provider):
        static, oidc = AUTH_MARKERS[provider]
        script = _script(make_cloud, provider, use_oidc=False)
        assert static in script
        assert oidc not in script

    @pytest.mark.parametrize("provider", ["aws", "azure", "gcp"])
    def test_oidc_mode(self, make_cloud, provider):
        static, oidc = AUTH_MARKERS[provider]
        script = _script(make_cloud, provider, use_oidc=True)
        assert oidc in script
        assert static not in script

    def test_aws_oidc_uses_role_arn(self, make_cloud):
        cloud = make_cloud("aws", use_oidc=True)
        script = generate_deployment_script(cloud, NAME)
        assert f"--role-arn {cloud.credentials.oidc_role_arn}" in script
        assert "--role-session-name JenkinsSession" in script
        assert '--web-identity-token "${AWS_WEB_IDENTITY_TOKEN}"' in script

    def test_gcp_oidc_writes_token_file(self, make_cloud):
        script = _script(make_cloud, "gcp", use_oidc=True)
        assert 'echo "${GCP_OIDC_TOKEN}" > gcp-oidc-credentials.json' in script
        assert "GCP_KEY_FILE" not in script

    def test_digitalocean_token(self, make_cloud):
        script = _script(make_cloud, "digitalocean")
        assert 'doctl auth init --access-token "${DO_API_TOKEN}"' in script


class TestStrategies:
    @pytest.mark.parametrize("provider", sorted(STRATEGY_MARKERS))
    @pytest.mark.parametrize("strategy", ["rolling", "blue-green", "canary"])
    def test_only_selected_strategy_emitted(self, make_cloud, provider, strategy):
        script = _script(make_cloud, provider, strategy=strategy)
        for other, marker in STRATEGY_MARKERS[provider].items():
            expected = 1 if other == strategy else 0
            assert script.count(marker) == expected, (other, marker)

    def test_canary_is_min_plus_one(self, make_cloud):
        script = _script(
            make_cloud, "aws", strategy="canary", auto_scaling=True, min_instances=3, max_instances=6,
        )
        assert "--desired-count 4" in script
        assert "--desired-count 3" in script  # create path keeps the minimum

    def test_gcp_canary_max_never_below_min(self, make_cloud):
        script = _script(
            make_cloud, "gcp", strategy="canary", auto_scaling=True, min_instances=2, max_instances=2,
        )
        assert "--min-instances 3 --max-instances 3" in script


class TestProvisioning:
    def test_aws_task_definition(self, make_cloud):
        cloud = make_cloud("aws", port=8080, health_check_path="/ready",
                           environment_variables={"API_KEY": "x", "DB_URL": "y"})
        script = generate_deployment_script(cloud, NAME)
        assert f"aws ecs create-cluster --cluster-name {NAME}-cluster" in script
        body = _heredoc(script, "task-definition.json")
        container = yaml.safe_load(body)["containerDefinitions"][0]
        assert container["image"] == "${DOCKER_IMAGE}"
        assert container["portMappings"][0]["containerPort"] == 8080
        assert [e["name"] for e in container["environment"]] == ["API_KEY", "DB_URL"]
        assert "http://localhost:8080/ready" in container["healthCheck"]["command"][1]

    def test_aws_sizing_from_instance_type(self, make_cloud):
        body = _heredoc(_script(make_cloud, "aws", instance_type="t3.medium"), "task-definition.json")
        task = yaml.safe_load(body)
        assert (task["cpu"], task["memory"]) == ("1024", "2048")

    def test_azure_container_group(self, make_cloud):
        cloud = make_cloud("azure", port=8080, environment_variables={"SECRET": "s"})
        doc = container_group_document(cloud, NAME)
        container = doc["properties"]["containers"][0]["properties"]
        assert container["environmentVariables"] == [{"name": "SECRET", "secureValue": "${SECRET}"}]
        assert container["livenessProbe"]["httpGet"] == {"path": "/health", "port": 8080}
        assert doc["properties"]["ipAddress"]["dnsNameLabel"] == NAME
        script = generate_deployment_script(cloud, NAME)
        assert yaml.safe_load(_heredoc(script, "container-group.yaml")) == doc

    def test_azure_canary_group(self, make_cloud):
        script = _script(make_cloud, "azure", strategy="canary")
        canary = yaml.safe_load(_heredoc(script, "container-group-canary.yaml"))
        assert canary["name"] == f"{NAME}-canary"

    def test_gcp_scale_annotations_are_strings(self, make_cloud):
        cloud = make_cloud("gcp", auto_scaling=True, min_instances=2, max_instances=4)
        annotations = cloud_run_document(cloud, NAME)["spec"]["template"]["metadata"]["annotations"]
        assert annotations["autoscaling.knative.dev/minScale"] == "2"
        assert annotations["autoscaling.knative.dev/maxScale"] == "4"

    def test_do_instance_count_without_scaling(self, make_cloud):
        service = app_spec_document(make_cloud("digitalocean"), NAME)["services"][0]
        assert service["instance_count"] == 1
        assert "autoscaling" not in service
        assert service["health_check"]["http_path"] == "/health"

    def test_do_autoscaling_and_canary(self, make_cloud):
        cloud = make_cloud("digitalocean", auto_scaling=True, min_instances=2, max_instances=3)
        service = app_spec_document(cloud, NAME, canary=True)["services"][0]
        assert service["autoscaling"]["min_instance_count"] == 3
        assert service["autoscaling"]["max_instance_count"] == 3


class TestHeredocs:
    def test_references_stay_live(self):
        assert heredoc_body('image: "${DOCKER_IMAGE}"') == 'image: "${DOCKER_IMAGE}"'

    def test_literal_text_escaped(self):
        assert heredoc_body(r'a\b $HOME `id` ${X}') == r'a\\b \$HOME \`id\` ${X}'

    def test_aws_task_definition_survives_the_shell(self, make_cloud):
        script = _script(make_cloud, "aws", health_check_path=r"/ready\now$PATH")
        task = json.loads(_as_written(_heredoc(script, "task-definition.json")))
        command = task["containerDefinitions"][0]["healthCheck"]["command"][1]
        assert r"http://localhost:3000/ready\now$PATH" in command
        assert task["containerDefinitions"][0]["image"] == "${DOCKER_IMAGE}"

    def test_azure_group_survives_the_shell(self, make_cloud):
        cloud = make_cloud("azure", health_check_path=r"/a\\b`c`")
        script = generate_deployment_script(cloud, NAME)
        written = yaml.safe_load(_as_written(_heredoc(script, "container-group.yaml")))
        assert written == container_group_document(cloud, NAME)


class TestDeployedUrl:
    @pytest.mark.parametrize("provider", ["aws", "azure", "gcp", "digitalocean"])
    def test_load_balancer_takes_precedence(self, make_cloud, provider):
        script = _script(make_cloud, provider, load_balancer_url="https://app.example.com")
        assert 'export DEPLOYED_URL="https://app.example.com"' in script
        for lookup in ("list-tasks", "ipAddress.fqdn", "status.url", "DefaultIngress"):
            assert lookup not in script

    @pytest.mark.parametrize("provider,lookup", [
        ("aws", "aws ecs list-tasks"),
        ("azure", "ipAddress.fqdn"),
        ("gcp", "status.url"),
        ("digitalocean", "DefaultIngress"),
    ])
    def test_runtime_lookup(self, make_cloud, provider, lookup):
        script = _script(make_cloud, provider)
        assert lookup in script

    def test_persisted_to_env_file(self, make_cloud):
        script = _script(make_cloud, "gcp")
        assert 'echo "DEPLOYED_URL=${DEPLOYED_URL}" >> deployment.env' in script


class TestUnsupportedProvider:
    def test_raises(self, make_cloud):
        cloud = make_cloud("aws")
        bogus = CloudConfig.model_construct(**{**dict(cloud), "provider": "linode"})
        with pytest.raises(UnsupportedProviderError, match="linode"):
            generate_deployment_script(bogus, NAME)
        with pytest.raises(UnsupportedProviderError):
            credential_bindings(bogus)


class TestCredentialBindings:
    def test_aws_static(self, make_cloud):
        variables = [var for var, _ in credential_bindings(make_cloud("aws"))]
        assert variables == ["AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY", "SUBNET_IDS"]

    def test_aws_oidc(self, make_cloud):
        bindings = credential_bindings(make_cloud("aws", use_oidc=True))
        assert ("AWS_WEB_IDENTITY_TOKEN", "aws-oidc-token") in bindings
        assert all(var != "AWS_ACCESS_KEY_ID" for var, _ in bindings)

    def test_bindings_match_script_variables(self, make_cloud):
        for provider in ("aws", "azure", "gcp", "digitalocean"):
            for oidc in (False, True):
                cloud = make_cloud(provider, use_oidc=oidc)
                script = generate_deployment_script(cloud, NAME)
                for var, _ in credential_bindings(cloud):
                    assert f"${{{var}}}" in script, (provider, oidc, var)

    def test_environment_block(self, make_cloud):
        block = generate_credentials_environment(make_cloud("aws"))
        assert block.startswith("environment {\n")
        assert "    AWS_ACCESS_KEY_ID = credentials('aws-access-key-id')" in block
        assert "    AWS_REGION = 'us-east-1'" in block
        assert block.endswith("}\n")
