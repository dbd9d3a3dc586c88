"""
Generated artifact model — one rendered file, not yet on disk.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel

STAGING_SUFFIX = ".cicdgen-tmp"
BACKUP_SUFFIX = ".cicdgen-bak"


class GeneratedFile(BaseModel):
    """An artifact produced by one generation pass.

    Attributes:
        path:      Location relative to the project root (``/``-separated).
        content:   Full file text.
        overwrite: An existing file at ``path`` may be replaced.
        reason:    One-line description shown in previews.
    """

    path: str
    content: str
    overwrite: bool = False
    reason: str = ""

    def target(self, project_root: Path) -> Path:
        return project_root / self.path

    def staging_path(self, project_root: Path) -> Path:
        """Sibling the content is written to before the final rename."""
        target = self.target(project_root)
        return target.with_name(target.name + STAGING_SUFFIX)

    def backup_path(self, project_root: Path) -> Path:
        """Sibling an existing target is parked at until the pass commits."""
        target = self.target(project_root)
        return target.with_name(target.name + BACKUP_SUFFIX)
