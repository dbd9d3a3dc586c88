"""
Domain models — Pydantic types for cicdgen.

All models are re-exported here for convenient access:

    from cicdgen.core.models import CICDConfig, CloudConfig, GeneratedFile
"""

from cicdgen.core.models.config import (
    AWSCredentials,
    AzureCredentials,
    CICDConfig,
    CloudConfig,
    DeploymentConfig,
    DOCredentials,
    EnvVariable,
    ExternalService,
    GCPCredentials,
    JenkinsConfig,
    ManagedService,
    NotificationConfig,
    NotificationPlatform,
    ProjectConfig,
    assemble_config,
    consolidate_environment_variables,
    service_name,
)
from cicdgen.core.models.pipeline import PipelineStage
from cicdgen.core.models.template import GeneratedFile

__all__ = [
    # config.py
    "AWSCredentials",
    "AzureCredentials",
    "CICDConfig",
    "CloudConfig",
    "DOCredentials",
    "DeploymentConfig",
    "EnvVariable",
    "ExternalService",
    "GCPCredentials",
    "JenkinsConfig",
    "ManagedService",
    "NotificationConfig",
    "NotificationPlatform",
    "ProjectConfig",
    "assemble_config",
    "consolidate_environment_variables",
    "service_name",
    # pipeline.py
    "PipelineStage",
    # template.py
    "GeneratedFile",
]
