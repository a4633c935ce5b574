"""Pydantic v2 models for the permaweb scaffolder.

Defines the user choices that drive a scaffold run (``ProjectSpec``), the
error kinds a run can fail with, and the structured ``ScaffoldResult``
returned to callers.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class Framework(str, Enum):
    """Frontend framework of the generated app."""
    SVELTE = "svelte"
    NEXT = "next"
    VITE = "vite"


class Language(str, Enum):
    """Source language variant."""
    JAVASCRIPT = "javascript"
    TYPESCRIPT = "typescript"


class Styling(str, Enum):
    """CSS framework. ``NONE`` means vanilla CSS."""
    NONE = "none"
    TAILWIND = "tailwind"
    CHAKRA = "chakra"


class PackageManager(str, Enum):
    """Package manager used to install the generated project."""
    NPM = "npm"
    YARN = "yarn"
    PNPM = "pnpm"

    @property
    def install_command(self) -> str:
        """Shell command that installs dependencies with this manager."""
        if self is PackageManager.YARN:
            return "yarn"
        return f"{self.value} install"


class ErrorKind(str, Enum):
    """Classification of scaffold failures."""
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    DESTINATION_EXISTS = "destination_exists"
    IO = "io"
    CONFLICT = "conflict"


ExtraValue = Union[bool, str]


# ---------------------------------------------------------------------------
# ProjectSpec
# ---------------------------------------------------------------------------

class ProjectSpec(BaseModel):
    """Finalized set of user choices for one scaffold run.

    Constructed once, never mutated.  ``project_name`` is derived from the
    basename of ``target_path``.
    """

    model_config = ConfigDict(frozen=True)

    target_path: Path = Field(..., description="Absolute destination directory")
    framework: Framework = Field(default=Framework.SVELTE)
    language: Language = Field(default=Language.JAVASCRIPT)
    styling: Styling = Field(default=Styling.NONE)
    package_manager: PackageManager = Field(default=PackageManager.NPM)
    extras: dict[str, ExtraValue] = Field(
        default_factory=dict,
        description="Optional extras such as the bundlr deployment node",
    )

    @field_validator("target_path")
    @classmethod
    def _require_absolute(cls, value: Path) -> Path:
        if not value.is_absolute():
            raise ValueError(f"target_path must be absolute, got '{value}'")
        return value

    @classmethod
    def create(cls, path: str | Path, **choices: Any) -> "ProjectSpec":
        """Build a spec from a possibly relative *path*, resolving it first."""
        return cls(target_path=Path(path).expanduser().resolve(), **choices)

    @property
    def project_name(self) -> str:
        return self.target_path.name

    @property
    def typescript(self) -> bool:
        return self.language is Language.TYPESCRIPT

    def choice(self, key: str) -> Optional[str]:
        """Return choice *key* (core field or extra) as a string.

        Booleans become ``"true"``/``"false"``; unknown keys return ``None``.
        """
        if key in ("framework", "language", "styling", "package_manager"):
            return getattr(self, key).value
        value = self.extras.get(key)
        if value is None:
            return None
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)


# ---------------------------------------------------------------------------
# Name validation result
# ---------------------------------------------------------------------------

class NameValidation(BaseModel):
    """Outcome of validating a project/package name."""

    model_config = ConfigDict(frozen=True)

    valid: bool
    problems: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# ScaffoldResult
# ---------------------------------------------------------------------------

class ScaffoldFailure(BaseModel):
    """Failure detail carried by an unsuccessful ``ScaffoldResult``."""
    kind: ErrorKind
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class ScaffoldResult(BaseModel):
    """Outcome of a single scaffold run."""

    destination: Path
    success: bool = False
    applied_templates: list[str] = Field(default_factory=list)
    written_files: list[Path] = Field(default_factory=list)
    overrides: list[str] = Field(
        default_factory=list,
        description="Destination paths that a later template overrode",
    )
    manifest: Optional[dict[str, Any]] = Field(
        default=None, description="The final package.json content"
    )
    install_command: str = Field(default="")
    error: Optional[ScaffoldFailure] = None

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error else None
