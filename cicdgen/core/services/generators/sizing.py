"""
Instance sizing — one table shared by the deploy script and main.tf.

``instance_type`` is the provider's VM-style size name chosen in the
config; the container platforms each want their own unit, so it is
translated here.  Unknown sizes fall back to the smallest footprint.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

# Container health-check timings (seconds / attempts), same for every runtime
HEALTH_CHECK_INTERVAL = 30
HEALTH_CHECK_TIMEOUT = 5
HEALTH_CHECK_RETRIES = 3

# ── Tables ──────────────────────────────────────────────────────

# Fargate task size: (cpu units, memory MiB)
_AWS_FARGATE: dict[str, tuple[int, int]] = {
    "t2.micro": (256, 512),
    "t3.micro": (256, 512),
    "t2.small": (512, 1024),
    "t3.small": (512, 1024),
    "t2.medium": (1024, 2048),
    "t3.medium": (1024, 2048),
    "m5.large": (2048, 4096),
    "m5.xlarge": (4096, 8192),
}
_AWS_DEFAULT = (256, 512)

# Container instance: (vCPU, memory GB)
_AZURE_ACI: dict[str, tuple[int, float]] = {
    "Standard_B1s": (1, 1.0),
    "Standard_B2s": (2, 4.0),
    "Standard_D2s_v3": (2, 8.0),
    "Standard_D4s_v3": (4, 16.0),
}
_AZURE_DEFAULT = (1, 1.5)

# Cloud Run limits: (cpu, memory)
_GCP_CLOUD_RUN: dict[str, tuple[str, str]] = {
    "e2-micro": ("1", "512Mi"),
    "e2-small": ("1", "1Gi"),
    "e2-medium": ("2", "2Gi"),
    "n1-standard-1": ("1", "2Gi"),
    "n1-standard-2": ("2", "4Gi"),
}
_GCP_DEFAULT = ("1", "512Mi")

# App Platform instance size slug
_DO_APP_PLATFORM: dict[str, str] = {
    "s-1vcpu-1gb": "basic-xs",
    "s-2vcpu-2gb": "basic-s",
    "s-2vcpu-4gb": "basic-m",
    "s-4vcpu-8gb": "professional-l",
}
_DO_DEFAULT = "basic-xxs"


def _lookup(table: dict, instance_type: str, default, provider: str):
    size = table.get(instance_type)
    if size is None:
        logger.debug(
            "Unknown %s instance type %r, using %r", provider, instance_type, default,
        )
        return default
    return size


def aws_task_size(instance_type: str) -> tuple[int, int]:
    """Fargate ``(cpu, memory)`` for an EC2 instance type."""
    return _lookup(_AWS_FARGATE, instance_type, _AWS_DEFAULT, "aws")


def azure_container_size(instance_type: str) -> tuple[int, float]:
    """ACI ``(cpu, memory_gb)`` for an Azure VM size."""
    return _lookup(_AZURE_ACI, instance_type, _AZURE_DEFAULT, "azure")


def gcp_run_size(instance_type: str) -> tuple[str, str]:
    """Cloud Run ``(cpu, memory)`` limits for a GCE machine type."""
    return _lookup(_GCP_CLOUD_RUN, instance_type, _GCP_DEFAULT, "gcp")


def do_instance_slug(instance_type: str) -> str:
    """App Platform size slug for a droplet size."""
    return _lookup(_DO_APP_PLATFORM, instance_type, _DO_DEFAULT, "digitalocean")


def known_instance_types() -> dict[str, list[str]]:
    """Instance types with an explicit sizing entry, per provider."""
    return {
        "aws": list(_AWS_FARGATE),
        "azure": list(_AZURE_ACI),
        "gcp": list(_GCP_CLOUD_RUN),
        "digitalocean": list(_DO_APP_PLATFORM),
    }
