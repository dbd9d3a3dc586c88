"""
Tests for the Terraform manifest generator.

Pure unit tests: CloudConfig in → main.tf text out.
"""

import re

import pytest

from cicdgen.core.errors import UnsupportedProviderError
from cicdgen.core.models.config import CloudConfig
from cicdgen.core.services.generators.terraform import generate_terraform

NAME = "my-app"


class TestCommonLayout:
    @pytest.mark.parametrize("provider,tf_provider,source", [
        ("aws", "aws", "hashicorp/aws"),
        ("azure", "azurerm", "hashicorp/azurerm"),
        ("gcp", "google", "hashicorp/google"),
        ("digitalocean", "digitalocean", "digitalocean/digitalocean"),
    ])
    def test_provider_block(self, make_cloud, provider, tf_provider, source):
        tf = generate_terraform(make_cloud(provider), NAME)
        assert "required_providers {" in tf
        assert f'source  = "{source}"' in tf
        assert f'provider "{tf_provider}" {{' in tf

    def test_locals(self, make_cloud):
        cloud = make_cloud("gcp", port=8080, health_check_path="/ready",
                           auto_scaling=True, min_instances=2, max_instances=5)
        tf = generate_terraform(cloud, NAME)
        assert f'app_name          = "{NAME}"' in tf
        assert "port              = 8080" in tf
        assert 'health_check_path = "/ready"' in tf
        assert "min_instances     = 2" in tf
        assert "max_instances     = 5" in tf

    def test_input_variables(self, make_cloud):
        tf = generate_terraform(make_cloud("aws", environment_variables={"DB_URL": "db"}), NAME)
        assert 'variable "docker_image" {' in tf
        assert 'variable "app_env" {' in tf
        assert "sensitive   = true" in tf
        assert "Application environment: DB_URL" in tf

    def test_balanced_braces(self, make_cloud):
        for provider in ("aws", "azure", "gcp", "digitalocean"):
            tf = generate_terraform(make_cloud(provider, auto_scaling=True, max_instances=3), NAME)
            assert tf.count("{") == tf.count("}"), provider

    def test_deterministic(self, make_cloud):
        cloud = make_cloud("azure")
        assert generate_terraform(cloud, NAME) == generate_terraform(cloud, NAME)


class TestAWS:
    def test_resource_tree(self, make_cloud):
        tf = generate_terraform(make_cloud("aws"), NAME)
        for resource in (
            'resource "aws_ecs_cluster" "main"',
            'resource "aws_iam_role" "task_execution"',
            'resource "aws_iam_role_policy_attachment" "task_execution"',
            'resource "aws_cloudwatch_log_group" "app"',
            'resource "aws_security_group" "app"',
            'resource "aws_ecs_task_definition" "app"',
            'resource "aws_ecs_service" "app"',
        ):
            assert resource in tf

    def test_names_match_deploy_script(self, make_cloud):
        tf = generate_terraform(make_cloud("aws"), NAME)
        assert 'name = "${local.app_name}-task-exec-role"' in tf
        assert 'name   = "${local.app_name}-sg"' in tf
        assert 'name              = "/ecs/${local.app_name}"' in tf

    def test_autoscaling_only_when_enabled(self, make_cloud):
        fixed = generate_terraform(make_cloud("aws"), NAME)
        scaled = generate_terraform(make_cloud("aws", auto_scaling=True, max_instances=4), NAME)
        assert "aws_appautoscaling_target" not in fixed
        assert 'resource "aws_appautoscaling_target" "app"' in scaled

    def test_sizing(self, make_cloud):
        tf = generate_terraform(make_cloud("aws", instance_type="m5.large"), NAME)
        assert 'cpu                      = "2048"' in tf
        assert 'memory                   = "4096"' in tf


class TestAzure:
    def test_container_group(self, make_cloud):
        tf = generate_terraform(make_cloud("azure"), NAME)
        assert 'resource "azurerm_resource_group" "main"' in tf
        assert 'resource "azurerm_container_group" "main"' in tf
        assert "liveness_probe {" in tf
        assert f'default     = "{NAME}-rg"' in tf
        assert "features {}" in tf


class TestGCP:
    def test_cloud_run(self, make_cloud):
        tf = generate_terraform(make_cloud("gcp"), NAME)
        assert 'resource "google_cloud_run_service" "main"' in tf
        assert '"autoscaling.knative.dev/minScale" = tostring(local.min_instances)' in tf
        assert 'member   = "allUsers"' in tf
        assert 'role     = "roles/run.invoker"' in tf


class TestDigitalOcean:
    def test_instance_count_without_scaling(self, make_cloud):
        tf = generate_terraform(make_cloud("digitalocean"), NAME)
        assert "instance_count = local.min_instances" in tf
        assert "autoscaling {" not in tf

    def test_autoscaling_block(self, make_cloud):
        tf = generate_terraform(
            make_cloud("digitalocean", auto_scaling=True, min_instances=2, max_instances=4), NAME,
        )
        assert "autoscaling {" in tf
        assert "min_instance_count = local.min_instances" in tf
        assert not re.search(r"^\s*instance_count\s*=", tf, re.MULTILINE)
        assert "http_path         = local.health_check_path" in tf


class TestUnsupportedProvider:
    def test_raises_instead_of_empty(self, make_cloud):
        cloud = make_cloud("aws")
        bogus = CloudConfig.model_construct(**{**dict(cloud), "provider": "vultr"})
        with pytest.raises(UnsupportedProviderError, match="vultr"):
            generate_terraform(bogus, NAME)
