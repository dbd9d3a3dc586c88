"""
Infrastructure manifest generator — .cicd/terraform/main.tf.

Declares the same runtime the deploy script creates imperatively: same
resource names, port, health-check path and sizing.  Values only known
at apply time (image, app environment, account ids) are input
variables.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from cicdgen.core.errors import UnsupportedProviderError
from cicdgen.core.models.config import CloudConfig
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

# Terraform provider name and registry source per cloud provider
_PROVIDER_BLOCKS = {
    "aws": {
        "name": "aws",
        "source": "hashicorp/aws",
        "version": "~> 5.0",
    },
    "azure": {
        "name": "azurerm",
        "source": "hashicorp/azurerm",
        "version": "~> 3.0",
    },
    "gcp": {
        "name": "google",
        "source": "hashicorp/google",
        "version": "~> 5.0",
    },
    "digitalocean": {
        "name": "digitalocean",
        "source": "digitalocean/digitalocean",
        "version": "~> 2.0",
    },
}

_MAIN_TF_TEMPLATE = '''# ── Main Terraform Configuration ─────────────────────────────────
# {app_name} on {provider}
# Generated by cicdgen

terraform {{
  required_version = ">= 1.5.0"

  required_providers {{
    {tf_provider} = {{
      source  = "{source}"
      version = "{version}"
    }}
  }}
}}

provider "{tf_provider}" {{
{provider_config}
}}

# ── Variables ────────────────────────────────────────────────────

variable "docker_image" {{
  description = "Container image to run (registry/name:tag)"
  type        = string
}}

variable "app_env" {{
  description = "Application environment: {env_summary}"
  type        = map(string)
  sensitive   = true
  default     = {{}}
}}
{extra_variables}
# ── Locals ───────────────────────────────────────────────────────

locals {{
  app_name          = "{app_name}"
  port              = {port}
  health_check_path = "{health_check_path}"
  min_instances     = {min_instances}
  max_instances     = {max_instances}
}}

# ── Resources ────────────────────────────────────────────────────
{resources}'''


def _variable(name: str, description: str, *, type_: str = "string",
              default: str | None = None, sensitive: bool = False) -> str:
    lines = [
        f'variable "{name}" {{',
        f'  description = "{description}"',
        f"  type        = {type_}",
    ]
    if sensitive:
        lines.append("  sensitive   = true")
    if default is not None:
        lines.append(f"  default     = {default}")
    lines.append("}")
    return "\n".join(lines) + "\n"


# ── AWS ─────────────────────────────────────────────────────────


def _aws(cloud: CloudConfig, name: str) -> tuple[str, str, str]:
    dc = cloud.deployment_config
    cpu, memory = aws_task_size(cloud.instance_type)
    provider_config = f'  region = "{cloud.region}"'
    variables = (
        _variable("vpc_id", "VPC the service runs in")
        + "\n"
        + _variable("subnet_ids", "Subnets for the Fargate tasks", type_="list(string)")
    )
    resources = f'''
resource "aws_ecs_cluster" "main" {{
  name = "${{local.app_name}}-cluster"
}}

resource "aws_iam_role" "task_execution" {{
  name = "${{local.app_name}}-task-exec-role"

  assume_role_policy = jsonencode({{
    Version = "2012-10-17"
    Statement = [{{
      Action    = "sts:AssumeRole"
      Effect    = "Allow"
      Principal = {{ Service = "ecs-tasks.amazonaws.com" }}
    }}]
  }})
}}

resource "aws_iam_role_policy_attachment" "task_execution" {{
  role       = aws_iam_role.task_execution.name
  policy_arn = "arn:aws:iam::aws:policy/service-role/AmazonECSTaskExecutionRolePolicy"
}}

resource "aws_cloudwatch_log_group" "app" {{
  name              = "/ecs/${{local.app_name}}"
  retention_in_days = 14
}}

resource "aws_security_group" "app" {{
  name   = "${{local.app_name}}-sg"
  vpc_id = var.vpc_id

  ingress {{
    from_port   = local.port
    to_port     = local.port
    protocol    = "tcp"
    cidr_blocks = ["0.0.0.0/0"]
  }}

  egress {{
    from_port   = 0
    to_port     = 0
    protocol    = "-1"
    cidr_blocks = ["0.0.0.0/0"]
  }}
}}

resource "aws_ecs_task_definition" "app" {{
  family                   = local.app_name
  network_mode             = "awsvpc"
  requires_compatibilities = ["FARGATE"]
  cpu                      = "{cpu}"
  memory                   = "{memory}"
  execution_role_arn       = aws_iam_role.task_execution.arn

  container_definitions = jsonencode([{{
    name         = local.app_name
    image        = var.docker_image
    essential    = true
    portMappings = [{{ containerPort = local.port, protocol = "tcp" }}]
    environment  = [for key, value in var.app_env : {{ name = key, value = value }}]
    healthCheck = {{
      command  = ["CMD-SHELL", "curl -f http://localhost:${{local.port}}${{local.health_check_path}} || exit 1"]
      interval = {HEALTH_CHECK_INTERVAL}
      timeout  = {HEALTH_CHECK_TIMEOUT}
      retries  = {HEALTH_CHECK_RETRIES}
    }}
    logConfiguration = {{
      logDriver = "awslogs"
      options = {{
        awslogs-group         = aws_cloudwatch_log_group.app.name
        awslogs-region        = "{cloud.region}"
        awslogs-stream-prefix = "ecs"
      }}
    }}
  }}])
}}

resource "aws_ecs_service" "app" {{
  name            = "${{local.app_name}}-service"
  cluster         = aws_ecs_cluster.main.id
  task_definition = aws_ecs_task_definition.app.arn
  desired_count   = local.min_instances
  launch_type     = "FARGATE"

  network_configuration {{
    subnets          = var.subnet_ids
    security_groups  = [aws_security_group.app.id]
    assign_public_ip = true
  }}

  # The pipeline registers new revisions and adjusts capacity
  lifecycle {{
    ignore_changes = [task_definition, desired_count]
  }}
}}
'''
    if dc.auto_scaling:
        resources += '''
resource "aws_appautoscaling_target" "app" {
  service_namespace  = "ecs"
  resource_id        = "service/${aws_ecs_cluster.main.name}/${aws_ecs_service.app.name}"
  scalable_dimension = "ecs:service:DesiredCount"
  min_capacity       = local.min_instances
  max_capacity       = local.max_instances
}

resource "aws_appautoscaling_policy" "cpu" {
  name               = "${local.app_name}-cpu"
  policy_type        = "TargetTrackingScaling"
  service_namespace  = aws_appautoscaling_target.app.service_namespace
  resource_id        = aws_appautoscaling_target.app.resource_id
  scalable_dimension = aws_appautoscaling_target.app.scalable_dimension

  target_tracking_scaling_policy_configuration {
    target_value = 70

    predefined_metric_specification {
      predefined_metric_type = "ECSServiceAverageCPUUtilization"
    }
  }
}
'''
    resources += '''
output "cluster_name" {
  value = aws_ecs_cluster.main.name
}
'''
    return provider_config, variables, resources


# ── Azure ───────────────────────────────────────────────────────


def _azure(cloud: CloudConfig, name: str) -> tuple[str, str, str]:
    cpu, memory = azure_container_size(cloud.instance_type)
    provider_config = "  features {}"
    variables = (
        _variable("resource_group_name", "Resource group holding the container group",
                  default=f'"{name}-rg"')
        + "\n"
        + _variable("acr_login_server", "Container registry login server")
        + "\n"
        + _variable("acr_username", "Container registry username")
        + "\n"
        + _variable("acr_password", "Container registry password", sensitive=True)
    )
    resources = f'''
resource "azurerm_resource_group" "main" {{
  name     = var.resource_group_name
  location = "{cloud.region}"
}}

resource "azurerm_container_group" "main" {{
  name                = local.app_name
  location            = azurerm_resource_group.main.location
  resource_group_name = azurerm_resource_group.main.name
  ip_address_type     = "Public"
  dns_name_label      = local.app_name
  os_type             = "Linux"
  restart_policy      = "Always"

  image_registry_credential {{
    server   = var.acr_login_server
    username = var.acr_username
    password = var.acr_password
  }}

  container {{
    name   = local.app_name
    image  = var.docker_image
    cpu    = "{cpu}"
    memory = "{memory}"

    secure_environment_variables = var.app_env

    ports {{
      port     = local.port
      protocol = "TCP"
    }}

    liveness_probe {{
      http_get {{
        path   = local.health_check_path
        port   = local.port
        scheme = "Http"
      }}
      period_seconds    = {HEALTH_CHECK_INTERVAL}
      timeout_seconds   = {HEALTH_CHECK_TIMEOUT}
      failure_threshold = {HEALTH_CHECK_RETRIES}
    }}
  }}
}}

output "app_fqdn" {{
  value = azurerm_container_group.main.fqdn
}}
'''
    return provider_config, variables, resources


# ── GCP ─────────────────────────────────────────────────────────


def _gcp(cloud: CloudConfig, name: str) -> tuple[str, str, str]:
    cpu, memory = gcp_run_size(cloud.instance_type)
    provider_config = f'  project = var.gcp_project_id\n  region  = "{cloud.region}"'
    variables = _variable("gcp_project_id", "GCP project to deploy into")
    resources = f'''
resource "google_cloud_run_service" "main" {{
  name     = local.app_name
  location = "{cloud.region}"

  template {{
    metadata {{
      annotations = {{
        "autoscaling.knative.dev/minScale" = tostring(local.min_instances)
        "autoscaling.knative.dev/maxScale" = tostring(local.max_instances)
      }}
    }}

    spec {{
      containers {{
        image = var.docker_image

        ports {{
          container_port = local.port
        }}

        resources {{
          limits = {{
            cpu    = "{cpu}"
            memory = "{memory}"
          }}
        }}

        dynamic "env" {{
          for_each = var.app_env
          content {{
            name  = env.key
            value = env.value
          }}
        }}

        liveness_probe {{
          period_seconds    = {HEALTH_CHECK_INTERVAL}
          timeout_seconds   = {HEALTH_CHECK_TIMEOUT}
          failure_threshold = {HEALTH_CHECK_RETRIES}

          http_get {{
            path = local.health_check_path
          }}
        }}
      }}
    }}
  }}

  traffic {{
    percent         = 100
    latest_revision = true
  }}
}}

resource "google_cloud_run_service_iam_member" "public_access" {{
  service  = google_cloud_run_service.main.name
  location = google_cloud_run_service.main.location
  role     = "roles/run.invoker"
  member   = "allUsers"
}}

output "app_url" {{
  value = google_cloud_run_service.main.status[0].url
}}
'''
    return provider_config, variables, resources


# ── DigitalOcean ────────────────────────────────────────────────


def _digitalocean(cloud: CloudConfig, name: str) -> tuple[str, str, str]:
    dc = cloud.deployment_config
    provider_config = "  token = var.do_token"
    variables = _variable("do_token", "DigitalOcean API token", sensitive=True)
    if dc.auto_scaling:
        capacity = '''
      autoscaling {
        min_instance_count = local.min_instances
        max_instance_count = local.max_instances

        metrics {
          cpu {
            percent = 80
          }
        }
      }'''
    else:
        capacity = "\n      instance_count = local.min_instances"
    resources = f'''
resource "digitalocean_app" "main" {{
  spec {{
    name   = local.app_name
    region = "{cloud.region}"

    service {{
      name               = local.app_name
      http_port          = local.port
      instance_size_slug = "{do_instance_slug(cloud.instance_type)}"
{capacity}

      image {{
        registry_type = "DOCKER_HUB"
        repository    = split(":", var.docker_image)[0]
        tag           = try(split(":", var.docker_image)[1], "latest")
      }}

      health_check {{
        http_path         = local.health_check_path
        period_seconds    = {HEALTH_CHECK_INTERVAL}
        timeout_seconds   = {HEALTH_CHECK_TIMEOUT}
        failure_threshold = {HEALTH_CHECK_RETRIES}
      }}

      dynamic "env" {{
        for_each = var.app_env
        content {{
          key   = env.key
          value = env.value
          scope = "RUN_TIME"
          type  = "SECRET"
        }}
      }}
    }}
  }}
}}

output "app_url" {{
  value = digitalocean_app.main.live_url
}}
'''
    return provider_config, variables, resources


_RESOURCE_BUILDERS: dict[str, Callable[[CloudConfig, str], tuple[str, str, str]]] = {
    "aws": _aws,
    "azure": _azure,
    "gcp": _gcp,
    "digitalocean": _digitalocean,
}


def generate_terraform(cloud: CloudConfig, artifact_name: str) -> str:
    """Render main.tf for ``cloud.provider``.

    Raises:
        UnsupportedProviderError: No manifest template for the provider tag.
    """
    builder = _RESOURCE_BUILDERS.get(cloud.provider)
    if builder is None:
        raise UnsupportedProviderError(cloud.provider, "terraform manifest")
    dc = cloud.deployment_config
    block = _PROVIDER_BLOCKS[cloud.provider]
    provider_config, variables, resources = builder(cloud, artifact_name)
    logger.debug("Terraform manifest: %s/%s", cloud.provider, artifact_name)
    return _MAIN_TF_TEMPLATE.format(
        app_name=artifact_name,
        provider=cloud.provider,
        tf_provider=block["name"],
        source=block["source"],
        version=block["version"],
        provider_config=provider_config,
        env_summary=", ".join(dc.environment_variables) or "none",
        extra_variables="\n" + variables if variables else "",
        port=dc.port,
        health_check_path=dc.health_check_path,
        min_instances=dc.min_instances,
        max_instances=dc.max_instances,
        resources=resources,
    )
