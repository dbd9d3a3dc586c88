"""
Generation service — run every generator, then write all artifacts.

Generators are injected through ``Generators`` so callers (and tests)
can swap any of them without a registry.  Rendering happens entirely
in memory; ``write_generated_files`` only starts touching disk once
every artifact rendered, and either writes all of them or none.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from cicdgen.core.errors import GenerationError
from cicdgen.core.models.config import CICDConfig, CloudConfig, NotificationConfig
from cicdgen.core.models.pipeline import PipelineStage
from cicdgen.core.models.template import GeneratedFile
from cicdgen.core.services.generators.compose import generate_compose
from cicdgen.core.services.generators.deployment import generate_deployment_script
from cicdgen.core.services.generators.docs import generate_credentials_guide, generate_readme
from cicdgen.core.services.generators.env_template import generate_env_template
from cicdgen.core.services.generators.jenkinsfile import assemble_jenkinsfile, build_fragments
from cicdgen.core.services.generators.notifications import generate_notification_script
from cicdgen.core.services.generators.terraform import generate_terraform

logger = logging.getLogger(__name__)

JENKINSFILE_PATH = "Jenkinsfile"
COMPOSE_PATH = "docker-compose.yml"
ENV_TEMPLATE_PATH = ".env.template"
TERRAFORM_PATH = ".cicd/terraform/main.tf"
CREDENTIALS_GUIDE_PATH = ".cicd/CREDENTIALS_SETUP.md"
README_PATH = ".cicd/README.md"
GITIGNORE_PATH = ".gitignore"

GITIGNORE_ENTRIES = (".env", ".env.local", ".env.*.local")


@dataclass(frozen=True)
class Generators:
    """The generator functions a generation pass calls."""

    deployment: Callable[[CloudConfig, str], str] = generate_deployment_script
    terraform: Callable[[CloudConfig, str], str] = generate_terraform
    compose: Callable[[CICDConfig], str] = generate_compose
    notifications: Callable[[NotificationConfig], str] = generate_notification_script


# ── Rendering (pure) ────────────────────────────────────────────


def render_fragments(
    config: CICDConfig, generators: Generators | None = None,
) -> tuple[dict[PipelineStage, str], str]:
    """Pipeline fragments plus the notification routines they call."""
    generators = generators or Generators()
    deployment_script = generators.deployment(config.cloud, config.artifact_name)
    notification_script = generators.notifications(config.notifications)
    fragments = build_fragments(
        config,
        deployment_script=deployment_script,
        notification_script=notification_script,
    )
    return fragments, notification_script


def render_jenkinsfile(config: CICDConfig, generators: Generators | None = None) -> str:
    fragments, notification_script = render_fragments(config, generators)
    return assemble_jenkinsfile(config, fragments, notification_script=notification_script)


def generate_artifacts(
    config: CICDConfig,
    generators: Generators | None = None,
    *,
    overwrite: bool = False,
) -> list[GeneratedFile]:
    """Render every artifact for ``config``.

    Raises:
        GenerationError: Any generator failed; nothing is returned.
    """
    generators = generators or Generators()
    project = config.project
    cloud = config.cloud

    files = [
        GeneratedFile(
            path=JENKINSFILE_PATH,
            content=render_jenkinsfile(config, generators),
            overwrite=overwrite,
            reason=f"Jenkins pipeline deploying to {cloud.provider} ({cloud.deployment_config.deployment_strategy})",
        ),
    ]
    if project.has_dockerfile:
        files.append(GeneratedFile(
            path=COMPOSE_PATH,
            content=generators.compose(config),
            overwrite=overwrite,
            reason="Local stack: app plus infrastructure services",
        ))
    if project.env_variables():
        files.append(GeneratedFile(
            path=ENV_TEMPLATE_PATH,
            content=generate_env_template(project),
            overwrite=overwrite,
            reason="Environment variables required by external services",
        ))
    files.append(GeneratedFile(
        path=TERRAFORM_PATH,
        content=generators.terraform(cloud, config.artifact_name),
        overwrite=overwrite,
        reason=f"Terraform for {cloud.provider} in {cloud.region}",
    ))
    files.append(GeneratedFile(
        path=CREDENTIALS_GUIDE_PATH,
        content=generate_credentials_guide(config),
        overwrite=overwrite,
        reason="Jenkins credential ids the pipeline expects",
    ))
    paths = [f.path for f in files] + [README_PATH]
    files.append(GeneratedFile(
        path=README_PATH,
        content=generate_readme(config, paths),
        overwrite=overwrite,
        reason="Overview of the generated CI/CD setup",
    ))
    logger.info("Rendered %d artifacts for %s", len(files), config.artifact_name)
    return files


def gitignore_update(project_root: Path) -> GeneratedFile | None:
    """``.gitignore`` with env-file entries appended, or None when complete."""
    target = project_root / GITIGNORE_PATH
    existing = target.read_text(encoding="utf-8") if target.is_file() else ""
    present = {line.strip() for line in existing.splitlines()}
    missing = [entry for entry in GITIGNORE_ENTRIES if entry not in present]
    if not missing:
        return None
    block = "# Environment files (cicdgen)\n" + "\n".join(missing) + "\n"
    kept = existing.rstrip("\n")
    return GeneratedFile(
        path=GITIGNORE_PATH,
        content=f"{kept}\n\n{block}" if kept else block,
        overwrite=True,
        reason="Keep env files out of version control",
    )


# ── Writing ─────────────────────────────────────────────────────


def write_generated_files(project_root: Path, files: list[GeneratedFile]) -> dict:
    """Write all files or none.

    Every file goes to a staging sibling first.  Targets are replaced
    only after all staging writes succeeded; each replaced target is
    moved to a backup sibling and restored if a later rename fails.
    Staging and backup files are removed on every path.

    Returns:
        {"ok": True, "written": [...]} or {"error": "...", "written": []}.
        When a rollback itself fails, "unrestored" lists the paths left
        in an unknown state.
    """
    conflicts = [
        f.path for f in files
        if f.target(project_root).exists() and not f.overwrite
    ]
    if conflicts:
        return {
            "error": f"Files already exist: {', '.join(conflicts)} (use --force to replace)",
            "conflicts": conflicts,
            "written": [],
        }

    blocked = [f.path for f in files if f.target(project_root).is_dir()]
    if blocked:
        return {
            "error": f"Cannot replace directories: {', '.join(blocked)}",
            "written": [],
        }

    staged: list[tuple[GeneratedFile, Path, Path]] = []
    committed: list[tuple[GeneratedFile, Path | None]] = []
    try:
        for f in files:
            target = f.target(project_root)
            target.parent.mkdir(parents=True, exist_ok=True)
            tmp = f.staging_path(project_root)
            tmp.write_text(f.content, encoding="utf-8")
            staged.append((f, tmp, target))
        for f, tmp, target in staged:
            backup = None
            if target.exists():
                backup = f.backup_path(project_root)
                target.replace(backup)
            committed.append((f, backup))
            tmp.replace(target)
            logger.debug("Committed %s", target)
    except OSError as e:
        logger.error("Write failed, rolling back %d file(s): %s", len(committed), e)
        unrestored = _roll_back(project_root, committed)
        result = {"error": f"Write failed: {e}", "written": []}
        if unrestored:
            result["unrestored"] = unrestored
        return result
    finally:
        for _, tmp, _ in staged:
            tmp.unlink(missing_ok=True)

    for f, backup in committed:
        if backup is not None:
            backup.unlink(missing_ok=True)
        logger.info("Wrote generated file: %s", f.path)
    return {"ok": True, "written": [f.path for f in files]}


def _roll_back(
    project_root: Path, committed: list[tuple[GeneratedFile, Path | None]],
) -> list[str]:
    """Undo committed renames, newest first; returns paths that could not be restored."""
    unrestored: list[str] = []
    for f, backup in reversed(committed):
        target = f.target(project_root)
        try:
            if backup is not None:
                if backup.exists():
                    backup.replace(target)
            else:
                target.unlink(missing_ok=True)
        except OSError as e:
            logger.error("Could not restore %s: %s", target, e)
            unrestored.append(f.path)
    return unrestored


def generate_all(
    project_root: Path,
    config: CICDConfig,
    *,
    force: bool = False,
    dry_run: bool = False,
    generators: Generators | None = None,
) -> dict:
    """Render and write every artifact.

    Returns:
        {"ok": True, "files": [...], "written": [...]} on success,
        {"ok": True, "dry_run": True, "files": [...]} for a dry run,
        {"error": "..."} when any generator failed (nothing written).
    """
    try:
        files = generate_artifacts(config, generators, overwrite=force)
    except GenerationError as e:
        logger.error("Generation failed: %s", e)
        return {"error": str(e)}

    gitignore = gitignore_update(project_root)
    if gitignore is not None:
        files.append(gitignore)

    if dry_run:
        return {"ok": True, "dry_run": True, "files": [f.model_dump() for f in files]}

    result = write_generated_files(project_root, files)
    if "error" in result:
        return result
    return {"ok": True, "files": [f.model_dump() for f in files], "written": result["written"]}
