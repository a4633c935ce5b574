"""Exceptions raised by the scaffolding engine.

Every error carries an ``ErrorKind`` and a ``details`` mapping so the
orchestrator can fold it into a ``ScaffoldResult`` without losing
information.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Sequence

from .models import ErrorKind


class ScaffoldError(Exception):
    """Base class for all scaffolding failures."""

    kind: ErrorKind = ErrorKind.CONFIGURATION

    def __init__(self, message: str, **details: Any) -> None:
        self.message = message
        self.details = details
        super().__init__(message)


class NameValidationError(ScaffoldError):
    """Raised when the project name violates package naming rules."""

    kind = ErrorKind.VALIDATION

    def __init__(self, name: str, problems: Sequence[str]) -> None:
        self.name = name
        self.problems = list(problems)
        super().__init__(
            f"Could not create a project called '{name}' because of npm "
            f"naming restrictions",
            name=name,
            problems=self.problems,
        )


class ConfigurationError(ScaffoldError):
    """Raised when no template is registered for the requested choices."""

    kind = ErrorKind.CONFIGURATION


class DestinationExistsError(ScaffoldError):
    """Raised when the destination directory exists and is not empty."""

    kind = ErrorKind.DESTINATION_EXISTS

    def __init__(self, path: Path, entries: Sequence[str] = ()) -> None:
        self.path = path
        super().__init__(
            f"The directory {path} contains files that could conflict",
            path=str(path),
            entries=list(entries),
        )


class MaterializeError(ScaffoldError):
    """Raised when a file system operation fails while writing the project."""

    kind = ErrorKind.IO

    def __init__(self, message: str, path: Path | None = None) -> None:
        self.path = path
        super().__init__(message, path=str(path) if path else None)


class ManifestConflictError(ScaffoldError):
    """Raised when manifest fragments declare hard-incompatible packages."""

    kind = ErrorKind.CONFLICT

    def __init__(self, rule: str, fragments: dict[str, list[str]]) -> None:
        self.rule = rule
        self.fragments = fragments
        names = ", ".join(
            f"{tree} ({', '.join(pkgs)})" for tree, pkgs in fragments.items()
        )
        super().__init__(
            f"Incompatible {rule} declared by: {names}",
            rule=rule,
            fragments=fragments,
        )
