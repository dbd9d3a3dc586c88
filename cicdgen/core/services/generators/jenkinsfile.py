"""
Pipeline assembly — declarative Jenkinsfile from independent fragments.

``build_fragments`` renders one text block per ``PipelineStage`` (a full
``stage('...') { }`` block, or the ``post { }`` block for NOTIFY).  An
empty fragment means the stage is skipped.  ``assemble_jenkinsfile``
stitches the fragments into the pipeline skeleton without looking
inside them.
"""

from __future__ import annotations

import logging

from cicdgen.core.models.config import CICDConfig
from cicdgen.core.models.pipeline import PipelineStage
from cicdgen.core.services.generators.deployment import (
    DEPLOYMENT_ENV_FILE,
    generate_credentials_environment,
)
from cicdgen.core.services.generators.naming import credential_id
from cicdgen.core.services.generators.notifications import generate_post_notifications

logger = logging.getLogger(__name__)

DEFAULT_BUILD_COMMAND = "npm run build --if-present"
DEFAULT_TEST_COMMAND = "npm test"
REGISTRY_CREDENTIALS_ID = "docker-registry-credentials"
ENV_FILE_CREDENTIALS_ID = "app-env-file"


def _indent(text: str, spaces: int) -> str:
    """Indent Groovy text, leaving the body of embedded ``sh '''`` blocks untouched."""
    pad = " " * spaces
    out: list[str] = []
    raw = False
    for line in text.rstrip("\n").split("\n"):
        if raw:
            out.append(line)
            raw = line != "'''"
            continue
        out.append(pad + line if line else line)
        raw = line.lstrip().startswith("sh '''") and line.count("'''") == 1
    return "\n".join(out)


def _stage(stage: PipelineStage, steps: str, *, environment: str = "") -> str:
    env_block = f"{_indent(environment, 4)}\n" if environment else ""
    return (
        f"stage('{stage.label}') {{\n"
        f"{env_block}"
        f"    steps {{\n"
        f"{_indent(steps, 8)}\n"
        f"    }}\n"
        f"}}\n"
    )


def groovy_shell_block(script: str) -> str:
    """Embed a shell script in ``sh '''...'''``.

    The script starts right after the opening quotes so a shebang stays
    on its first line.  Lines are kept at column 0 so heredoc terminators
    still match; backslashes are doubled so Groovy hands them to the
    shell intact.
    """
    if "'''" in script:
        raise ValueError("Shell script must not contain a triple single quote")
    escaped = script.replace("\\", "\\\\")
    return f"sh '''{escaped.rstrip()}\n'''"


# ── Stage fragments ─────────────────────────────────────────────


def _checkout(config: CICDConfig) -> str:
    project = config.project
    return _stage(
        PipelineStage.CHECKOUT,
        f"git branch: '{project.branch}', url: '{project.repository}'",
    )


def _install(config: CICDConfig) -> str:
    project = config.project
    steps = "sh 'npm ci'"
    if project.requires_env_file:
        steps = (
            f"withCredentials([file(credentialsId: '{ENV_FILE_CREDENTIALS_ID}', variable: 'APP_ENV_FILE')]) {{\n"
            f"    sh 'cp \"$APP_ENV_FILE\" {project.env_file_path}'\n"
            f"}}\n"
            f"{steps}"
        )
    return _stage(PipelineStage.INSTALL, steps)


def _test(config: CICDConfig) -> str:
    project = config.project
    if not project.run_tests:
        return ""
    return _stage(PipelineStage.TEST, f"sh '{project.test_command or DEFAULT_TEST_COMMAND}'")


def _build(config: CICDConfig) -> str:
    return _stage(
        PipelineStage.BUILD,
        f"sh '{config.project.build_command or DEFAULT_BUILD_COMMAND}'",
    )


def _image_build(config: CICDConfig) -> str:
    if not config.project.has_dockerfile:
        return ""
    dockerfile = config.project.dockerfile_path
    return _stage(
        PipelineStage.IMAGE_BUILD,
        f"sh 'docker build -f {dockerfile} -t \"$DOCKER_IMAGE\" .'",
    )


def _image_push(config: CICDConfig) -> str:
    if not config.project.has_dockerfile:
        return ""
    steps = f"""\
withCredentials([usernamePassword(credentialsId: '{REGISTRY_CREDENTIALS_ID}', usernameVariable: 'REGISTRY_USER', passwordVariable: 'REGISTRY_PASSWORD')]) {{
    sh 'echo "$REGISTRY_PASSWORD" | docker login "$DOCKER_REGISTRY" -u "$REGISTRY_USER" --password-stdin'
    sh 'docker push "$DOCKER_IMAGE"'
}}"""
    return _stage(PipelineStage.IMAGE_PUSH, steps)


def _deploy(config: CICDConfig, deployment_script: str) -> str:
    retries = config.jenkins_config.retry_count
    shell = groovy_shell_block(deployment_script)
    if retries > 0:
        steps = f"retry({retries}) {{\n{_indent(shell, 4)}\n}}"
    else:
        steps = shell
    return _stage(
        PipelineStage.DEPLOY,
        steps,
        environment=generate_credentials_environment(config.cloud),
    )


def _verify(config: CICDConfig) -> str:
    dc = config.cloud.deployment_config
    attempts = max(config.jenkins_config.retry_count, 1)
    steps = f"""\
script {{
    def deployedUrl = sh(
        script: "grep '^DEPLOYED_URL=' {DEPLOYMENT_ENV_FILE} | tail -n 1 | cut -d= -f2-",
        returnStdout: true
    ).trim().replaceAll('/+$', '')
    if (!deployedUrl) {{
        error('DEPLOYED_URL missing from {DEPLOYMENT_ENV_FILE}')
    }}
    retry({attempts}) {{
        sleep(time: 10, unit: 'SECONDS')
        sh "curl -fsS '${{deployedUrl}}{dc.health_check_path}'"
    }}
    echo "Health check passed: ${{deployedUrl}}{dc.health_check_path}"
}}"""
    return _stage(PipelineStage.VERIFY, steps)


def build_fragments(
    config: CICDConfig,
    *,
    deployment_script: str,
    notification_script: str = "",
) -> dict[PipelineStage, str]:
    """Render every stage fragment, keyed by ``PipelineStage``.

    Args:
        config: Full configuration.
        deployment_script: Output of the deployment generator, embedded
            in the Deploy stage.
        notification_script: Output of the notification generator; when
            empty, no ``post`` block is emitted.

    Returns:
        Fragments in pipeline order.  Skipped stages map to ``""``.
    """
    fragments = {
        PipelineStage.CHECKOUT: _checkout(config),
        PipelineStage.INSTALL: _install(config),
        PipelineStage.TEST: _test(config),
        PipelineStage.BUILD: _build(config),
        PipelineStage.IMAGE_BUILD: _image_build(config),
        PipelineStage.IMAGE_PUSH: _image_push(config),
        PipelineStage.DEPLOY: _deploy(config, deployment_script),
        PipelineStage.VERIFY: _verify(config),
        PipelineStage.NOTIFY: (
            generate_post_notifications() if notification_script else ""
        ),
    }
    logger.debug(
        "Fragments: %s", [stage.value for stage, text in fragments.items() if text],
    )
    return fragments


# ── Assembly ────────────────────────────────────────────────────


def literal_env_values(config: CICDConfig) -> dict[str, str]:
    """Pipeline env keys set to a literal; every other key is a Jenkins credential."""
    return {
        var.key: var.value
        for var in config.project.env_variables()
        if var.value and not var.is_secret
        and var.key in config.jenkins_config.environment_variables
    }


def credential_env_keys(config: CICDConfig) -> list[str]:
    """Pipeline env keys bound with ``credentials('<id>')``."""
    literals = literal_env_values(config)
    return [key for key in config.jenkins_config.environment_variables if key not in literals]


def _environment_block(config: CICDConfig) -> str:
    project = config.project
    literals = literal_env_values(config)
    lines = [
        f'DOCKER_REGISTRY = "${{params.DOCKER_REGISTRY}}"',
        f'DOCKER_IMAGE = "${{params.DOCKER_REGISTRY}}/{project.artifact_name}:${{env.BUILD_NUMBER}}"',
    ]
    for key in config.jenkins_config.environment_variables:
        if key in literals:
            value = literals[key].replace("\\", "\\\\").replace("'", "\\'")
            lines.append(f"{key} = '{value}'")
        else:
            lines.append(f"{key} = credentials('{credential_id(key)}')")
    body = "\n".join(f"    {line}" for line in lines)
    return f"environment {{\n{body}\n}}"


def assemble_jenkinsfile(
    config: CICDConfig,
    fragments: dict[PipelineStage, str],
    *,
    notification_script: str = "",
) -> str:
    """Stitch fragments into a declarative Jenkinsfile."""
    jenkins = config.jenkins_config
    stages = [
        _indent(fragments[stage], 8)
        for stage in PipelineStage
        if stage is not PipelineStage.NOTIFY and fragments.get(stage)
    ]
    post = fragments.get(PipelineStage.NOTIFY, "")

    out = [
        "// Jenkinsfile",
        f"// {config.project.project_name} → {config.cloud.provider} ({config.cloud.region})",
        "// Generated by cicdgen",
        "",
        "pipeline {",
        "    agent {",
        f"        label '{jenkins.agent_label}'",
        "    }",
        "",
        "    parameters {",
        "        string(name: 'DOCKER_REGISTRY', defaultValue: 'docker.io', description: 'Registry the image is pushed to')",
        "    }",
        "",
        "    options {",
        f"        timeout(time: {jenkins.timeout}, unit: 'MINUTES')",
        "        buildDiscarder(logRotator(numToKeepStr: '10'))",
        "        disableConcurrentBuilds()",
        "    }",
        "",
        _indent(_environment_block(config), 4),
        "",
        "    stages {",
        "\n\n".join(stages),
        "    }",
    ]
    if post:
        out += ["", _indent(post, 4)]
    out.append("}")
    if notification_script:
        out += ["", notification_script.rstrip("\n")]
    return "\n".join(out) + "\n"
