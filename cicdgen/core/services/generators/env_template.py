"""
Env template generator — .env.template listing every app variable.
"""

from __future__ import annotations

from cicdgen.core.models.config import ProjectConfig


def generate_env_template(project: ProjectConfig) -> str:
    """Render ``.env.template`` grouped by external service.

    Secrets are flagged and always left blank; other variables carry
    their example value when one is declared.
    """
    lines = [
        f"# Environment variables for {project.project_name}",
        "# Generated by cicdgen. Copy to .env and fill in the values.",
    ]
    seen: set[str] = set()
    for svc in project.external_services:
        fresh = [var for var in svc.env_variables if var.key not in seen]
        if not fresh:
            continue
        lines += ["", f"# ── {svc.name} ({svc.service}) ──"]
        for var in fresh:
            seen.add(var.key)
            note = var.description or var.key
            if var.is_secret:
                lines.append(f"# {note} (secret)")
                lines.append(f"{var.key}=")
            else:
                lines.append(f"# {note}")
                lines.append(f"{var.key}={var.value or ''}")
    return "\n".join(lines) + "\n"
