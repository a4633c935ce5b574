"""permaweb-scaffold configuration.

Tool-level settings that are not part of a single project's choices.  All
settings use a Pydantic v2 model so they are validated at construction time
and can be overridden from environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field

from .scaffolder.models import PackageManager


_TRUTHY = {"1", "true", "yes", "on"}


class Config(BaseModel):
    """Global permaweb-scaffold configuration.

    Instances are created once by the CLI entry point and passed to the
    orchestrator.
    """

    templates_dir: Optional[Path] = Field(
        default=None,
        description="Alternative template root (defaults to the bundled trees)",
    )
    overwrite: bool = Field(
        default=False, description="Allow scaffolding into a non-empty directory"
    )
    package_manager: PackageManager = Field(default=PackageManager.NPM)
    deploy_tool: str = Field(
        default="arkb", description="Global tool required to deploy permaweb apps"
    )
    install_timeout: int = Field(
        default=600, ge=30, description="Dependency install timeout in seconds"
    )

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            PERMAWEB_TEMPLATES_DIR, PERMAWEB_OVERWRITE,
            PERMAWEB_PACKAGE_MANAGER, PERMAWEB_DEPLOY_TOOL,
            PERMAWEB_INSTALL_TIMEOUT.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("PERMAWEB_TEMPLATES_DIR"):
            kwargs["templates_dir"] = Path(os.environ["PERMAWEB_TEMPLATES_DIR"])
        if os.environ.get("PERMAWEB_OVERWRITE"):
            kwargs["overwrite"] = os.environ["PERMAWEB_OVERWRITE"].strip().lower() in _TRUTHY
        if os.environ.get("PERMAWEB_PACKAGE_MANAGER"):
            kwargs["package_manager"] = os.environ["PERMAWEB_PACKAGE_MANAGER"].strip().lower()
        if os.environ.get("PERMAWEB_DEPLOY_TOOL"):
            kwargs["deploy_tool"] = os.environ["PERMAWEB_DEPLOY_TOOL"]
        if os.environ.get("PERMAWEB_INSTALL_TIMEOUT"):
            kwargs["install_timeout"] = int(os.environ["PERMAWEB_INSTALL_TIMEOUT"])
        return cls(**kwargs)
