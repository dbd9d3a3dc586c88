"""
Compose manifest generator — docker-compose.yml for local runs.

The ``app`` service builds from the project's Dockerfile; every external
service that needs infrastructure gets a container from the image table
below, keyed on the service's product id.
"""

from __future__ import annotations

import logging

from cicdgen.core.models.config import CICDConfig, ExternalService
from cicdgen.core.services.generators.document import render_document
from cicdgen.core.services.generators.naming import service_name
from cicdgen.core.services.generators.sizing import (
    HEALTH_CHECK_INTERVAL,
    HEALTH_CHECK_RETRIES,
    HEALTH_CHECK_TIMEOUT,
)

logger = logging.getLogger(__name__)

COMPOSE_VERSION = "3.8"

# ── Image table ─────────────────────────────────────────────────

_SERVICE_IMAGES: dict[str, dict] = {
    "postgresql": {
        "image": "postgres:latest",
        "environment": {
            "POSTGRES_USER": "postgres",
            "POSTGRES_PASSWORD": "postgres",
            "POSTGRES_DB": "app",
        },
        "ports": ["5432:5432"],
    },
    "mongodb": {
        "image": "mongo:latest",
        "ports": ["27017:27017"],
    },
    "redis": {
        "image": "redis:latest",
        "ports": ["6379:6379"],
    },
    "mysql": {
        "image": "mysql:latest",
        "environment": {
            "MYSQL_ROOT_PASSWORD": "root",
            "MYSQL_DATABASE": "app",
        },
        "ports": ["3306:3306"],
    },
    "mariadb": {
        "image": "mariadb:latest",
        "environment": {
            "MYSQL_ROOT_PASSWORD": "root",
            "MYSQL_DATABASE": "app",
        },
        "ports": ["3306:3306"],
    },
    "rabbitmq": {
        "image": "rabbitmq:3-management",
        "ports": ["5672:5672", "15672:15672"],
    },
}

_FALLBACK_SERVICE = {
    "image": "alpine:latest",
    "command": "sleep infinity",
}


def infrastructure_service(svc: ExternalService) -> dict:
    """Compose definition for one external service.

    Unknown products get a placeholder container that stays up.
    """
    template = _SERVICE_IMAGES.get(svc.service.lower())
    if template is None:
        logger.debug("No compose image for %r, using placeholder", svc.service)
        template = _FALLBACK_SERVICE
    definition = dict(template)
    definition["container_name"] = service_name(svc.name)
    return definition


def _app_service(config: CICDConfig, depends_on: list[str]) -> dict:
    project = config.project
    dc = config.cloud.deployment_config
    app: dict = {
        "build": {
            "context": ".",
            "dockerfile": project.dockerfile_path,
        },
        "container_name": project.artifact_name,
        "ports": [f"{dc.port}:{dc.port}"],
    }
    if project.requires_env_file:
        app["env_file"] = [project.env_file_path]
    app["healthcheck"] = {
        "test": ["CMD-SHELL", f"curl -f http://localhost:{dc.port}{dc.health_check_path} || exit 1"],
        "interval": f"{HEALTH_CHECK_INTERVAL}s",
        "timeout": f"{HEALTH_CHECK_TIMEOUT}s",
        "retries": HEALTH_CHECK_RETRIES,
    }
    if depends_on:
        app["depends_on"] = depends_on
    return app


def compose_document(config: CICDConfig) -> dict:
    """Compose manifest as plain data, before serialisation."""
    services: dict[str, dict] = {}
    infra = [svc for svc in config.project.external_services if svc.requires_infrastructure]
    infra_names = [service_name(svc.name) for svc in infra]

    services["app"] = _app_service(config, list(dict.fromkeys(infra_names)))
    for name, svc in zip(infra_names, infra):
        if name in services:
            logger.warning("Duplicate compose service name %r, keeping the first", name)
            continue
        services[name] = infrastructure_service(svc)

    return {"version": COMPOSE_VERSION, "services": services}


def generate_compose(config: CICDConfig) -> str:
    """Render docker-compose.yml."""
    document = compose_document(config)
    logger.debug("Compose manifest with %d services", len(document["services"]))
    return f"# Generated by cicdgen\n{render_document(document)}"
