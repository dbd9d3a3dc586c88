"""
Pipeline stage keys — the slots a Jenkinsfile is assembled from.
"""

from __future__ import annotations

from enum import StrEnum


class PipelineStage(StrEnum):
    """Fragment keys, in pipeline order.

    ``NOTIFY`` is the ``post`` block rather than a stage.
    """

    CHECKOUT = "checkout"
    INSTALL = "install"
    TEST = "test"
    BUILD = "build"
    IMAGE_BUILD = "image-build"
    IMAGE_PUSH = "image-push"
    DEPLOY = "deploy"
    VERIFY = "verify"
    NOTIFY = "notify"

    @property
    def label(self) -> str:
        """Stage display name, e.g. ``Image Build``."""
        return " ".join(part.capitalize() for part in self.value.split("-"))
