"""
CLI commands for artifact generation.

Thin wrappers around ``cicdgen.core.services.generate_ops``: load the
config, render, then preview, write or dump JSON.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from cicdgen.core.models.pipeline import PipelineStage


def _load(ctx: click.Context):
    """Load the config or exit with an error. Returns (config, project_root)."""
    from cicdgen.core.config.loader import (
        ConfigError,
        load_config,
        project_root,
        resolve_config_path,
    )

    try:
        config_path = resolve_config_path(ctx.obj.get("config_path"))
        config = load_config(config_path)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)
    return config, project_root(config_path)


def _render_or_exit(render, *args):
    from cicdgen.core.errors import GenerationError

    try:
        return render(*args)
    except GenerationError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)


def _preview_or_write(project_root: Path, file_data, write: bool, force: bool) -> None:
    from cicdgen.core.services.generate_ops import write_generated_files

    if write:
        file_data.overwrite = force
        wr = write_generated_files(project_root, [file_data])
        if "error" in wr:
            click.secho(f"❌ {wr['error']}", fg="red")
            sys.exit(1)
        click.secho(f"✅ Written: {file_data.path}", fg="green", bold=True)
    else:
        click.secho(f"📄 Preview: {file_data.path}", fg="cyan", bold=True)
        if file_data.reason:
            click.echo(f"   Reason: {file_data.reason}")
        click.echo("─" * 60)
        click.echo(file_data.content, nl=False)
        click.echo("─" * 60)
        click.secho("   (use --write to save to disk)", fg="yellow")


# ── Group ───────────────────────────────────────────────────────


@click.group()
def generate() -> None:
    """Generate CI/CD artifacts from cicd-config.yml."""


@generate.command("all")
@click.option("--dry-run", is_flag=True, help="Render everything, write nothing.")
@click.option("--force", is_flag=True, help="Replace existing files.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def gen_all(ctx: click.Context, dry_run: bool, force: bool, as_json: bool) -> None:
    """Generate the Jenkinsfile, Terraform, compose file and docs."""
    from cicdgen.core.services.generate_ops import generate_all

    config, project_root = _load(ctx)
    result = generate_all(project_root, config, force=force, dry_run=dry_run)

    if as_json:
        click.echo(json.dumps(result, indent=2))
        sys.exit(1 if "error" in result else 0)

    if "error" in result:
        click.secho(f"❌ {result['error']}", fg="red")
        sys.exit(1)

    label = "Would write" if dry_run else "Written"
    click.secho(f"\n🚀 {config.project.project_name} → {config.cloud.provider}", fg="cyan", bold=True)
    for file_data in result["files"]:
        click.echo(f"   {label}: {file_data['path']}")
        if ctx.obj.get("verbose") and file_data.get("reason"):
            click.echo(f"      {file_data['reason']}")
    click.echo()


@generate.command("jenkinsfile")
@click.option("--write", is_flag=True, help="Write to disk (default: preview only).")
@click.option("--force", is_flag=True, help="Replace an existing file.")
@click.pass_context
def gen_jenkinsfile(ctx: click.Context, write: bool, force: bool) -> None:
    """Generate the Jenkinsfile."""
    from cicdgen.core.models.template import GeneratedFile
    from cicdgen.core.services.generate_ops import JENKINSFILE_PATH, render_jenkinsfile

    config, project_root = _load(ctx)
    content = _render_or_exit(render_jenkinsfile, config)
    _preview_or_write(
        project_root,
        GeneratedFile(path=JENKINSFILE_PATH, content=content, reason="Jenkins pipeline"),
        write,
        force,
    )


@generate.command("terraform")
@click.option("--write", is_flag=True, help="Write to disk (default: preview only).")
@click.option("--force", is_flag=True, help="Replace an existing file.")
@click.pass_context
def gen_terraform(ctx: click.Context, write: bool, force: bool) -> None:
    """Generate .cicd/terraform/main.tf."""
    from cicdgen.core.models.template import GeneratedFile
    from cicdgen.core.services.generate_ops import TERRAFORM_PATH
    from cicdgen.core.services.generators.terraform import generate_terraform

    config, project_root = _load(ctx)
    content = _render_or_exit(generate_terraform, config.cloud, config.artifact_name)
    _preview_or_write(
        project_root,
        GeneratedFile(path=TERRAFORM_PATH, content=content, reason=f"Terraform for {config.cloud.provider}"),
        write,
        force,
    )


@generate.command("compose")
@click.option("--write", is_flag=True, help="Write to disk (default: preview only).")
@click.option("--force", is_flag=True, help="Replace an existing file.")
@click.pass_context
def gen_compose(ctx: click.Context, write: bool, force: bool) -> None:
    """Generate docker-compose.yml."""
    from cicdgen.core.models.template import GeneratedFile
    from cicdgen.core.services.generate_ops import COMPOSE_PATH
    from cicdgen.core.services.generators.compose import generate_compose

    config, project_root = _load(ctx)
    if not config.project.has_dockerfile:
        click.secho("⚠️  Project has no Dockerfile; compose file not generated.", fg="yellow")
        return
    content = _render_or_exit(generate_compose, config)
    _preview_or_write(
        project_root,
        GeneratedFile(path=COMPOSE_PATH, content=content, reason="Local stack"),
        write,
        force,
    )


@generate.command("notifications")
@click.pass_context
def gen_notifications(ctx: click.Context) -> None:
    """Print the Groovy notification routines."""
    from cicdgen.core.services.generators.notifications import generate_notification_script

    config, _ = _load(ctx)
    click.echo(_render_or_exit(generate_notification_script, config.notifications), nl=False)


@click.command("fragments")
@click.argument("stage", type=click.Choice([s.value for s in PipelineStage]))
@click.pass_context
def fragments(ctx: click.Context, stage: str) -> None:
    """Print one pipeline fragment (e.g. deploy, verify, notify)."""
    from cicdgen.core.services.generate_ops import render_fragments

    config, _ = _load(ctx)
    rendered, _ = _render_or_exit(render_fragments, config)
    text = rendered[PipelineStage(stage)]
    if not text:
        click.secho(f"⊘ Stage '{stage}' is skipped for this config.", fg="yellow")
        return
    click.echo(text, nl=False)
