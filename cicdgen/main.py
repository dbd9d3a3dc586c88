"""
cicdgen — CLI entrypoint.

Usage:
    python -m cicdgen.main --help
    python -m cicdgen.main config check
    python -m cicdgen.main generate all --dry-run
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from cicdgen.core.observability.logging_config import resolve_level, setup_from_environment

from cicdgen import __version__


@click.group()
@click.version_option(version=__version__, prog_name="cicdgen")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to cicd-config.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """cicdgen — generate Jenkins, Terraform and compose files for a cloud deploy."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_from_environment(resolve_level(debug=debug, verbose=verbose, quiet=quiet))


@cli.group()
def config() -> None:
    """Deployment configuration commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate cicd-config.yml."""
    from cicdgen.core.use_cases.config_check import check_config

    result = check_config(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)

    if result.valid:
        assert result.config is not None  # guaranteed when valid
        cloud = result.config.cloud
        click.secho("✅ Configuration is valid", fg="green", bold=True)
        click.echo(f"   Project:  {result.config.project.project_name}")
        click.echo(f"   Provider: {cloud.provider} ({cloud.region})")
        click.echo(f"   Strategy: {cloud.deployment_config.deployment_strategy}")
        click.echo(f"   Services: {len(result.config.project.external_services)}")
    else:
        click.secho("❌ Configuration errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings and not ctx.obj.get("quiet"):
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    if not result.valid:
        click.echo()
        sys.exit(1)

    click.echo()


# ── Register sub-command groups from cicdgen/ui/cli/ ──────────────

from cicdgen.ui.cli.generate import fragments, generate

cli.add_command(generate)
cli.add_command(fragments)


if __name__ == "__main__":
    cli()
