"""Writes resolved template trees into the destination directory.

All file system mutations go through a journal.  If anything fails (an
``OSError``, a manifest conflict, or an interrupt) the journal undoes the
run: overwritten files and replaced symlinks are restored, created files
and directories are removed, and a destination directory created by this
run is deleted.  The destination is therefore either fully written or left
as it was found.  Undo steps that fail are printed and skipped.
"""

from __future__ import annotations

import os
import shutil
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Optional, Sequence

from rich.console import Console

from ..utils import console as default_console
from .errors import DestinationExistsError, MaterializeError
from .manifest import FinalManifest
from .models import ProjectSpec
from .templates import ContentMode, TemplateEntry, TemplateTree


MANIFEST_FILE = "package.json"

PLACEHOLDER_PROJECT_NAME = "__PROJECT_NAME__"
PLACEHOLDER_YEAR = "__YEAR__"

# Entries that may already sit in an otherwise "empty" destination.
_IGNORABLE_EXISTING: frozenset[str] = frozenset({".git", ".DS_Store", "Thumbs.db", ".idea"})


# ---------------------------------------------------------------------------
# Journal
# ---------------------------------------------------------------------------

@dataclass
class _Journal:
    """Record of every mutation made under one transaction."""

    root: Path
    created_root: bool = False
    created_dirs: list[Path] = field(default_factory=list)
    created_files: list[Path] = field(default_factory=list)
    backups: dict[Path, bytes] = field(default_factory=dict)
    links: dict[Path, str] = field(default_factory=dict)

    def knows(self, path: Path) -> bool:
        """Return ``True`` if *path* already has an undo record."""
        return path in self.backups or path in self.links or path in self.created_files

    def rollback(self) -> list[str]:
        """Undo the recorded mutations, newest first.

        Every step is attempted even when an earlier one fails.

        Returns:
            One ``"<path>: <reason>"`` line per step that could not be undone.
        """
        failures: list[str] = []
        if self.created_root:
            shutil.rmtree(self.root, ignore_errors=True)
            try:
                if self.root.exists():
                    failures.append(f"{self.root}: could not be removed")
            except OSError as exc:
                failures.append(f"{self.root}: {exc}")
        else:
            for path, original in self.backups.items():
                try:
                    _write_file(path, original)
                except OSError as exc:
                    failures.append(f"{path}: {exc}")
            for path, target in self.links.items():
                try:
                    path.unlink(missing_ok=True)
                    path.symlink_to(target)
                except OSError as exc:
                    failures.append(f"{path}: {exc}")
            for path in reversed(self.created_files):
                try:
                    path.unlink(missing_ok=True)
                except OSError as exc:
                    failures.append(f"{path}: {exc}")
        # Also covers missing parents created along with the root.
        for directory in reversed(self.created_dirs):
            try:
                if directory.is_dir() and not any(directory.iterdir()):
                    directory.rmdir()
            except OSError as exc:
                failures.append(f"{directory}: {exc}")
        return failures


@dataclass
class MaterializeReport:
    """What the last ``materialize`` call wrote."""

    written: list[Path] = field(default_factory=list)
    overrides: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# FileMaterializer
# ---------------------------------------------------------------------------

class FileMaterializer:
    """Copies template trees into a destination directory.

    Args:
        spec: The choices the entry predicates are evaluated against.
        overwrite: Allow writing into a non-empty destination.
        year: Value for the ``__YEAR__`` placeholder (defaults to now).
        console: Rich console used to report template overrides.
    """

    def __init__(
        self,
        spec: ProjectSpec,
        *,
        overwrite: bool = False,
        year: Optional[int] = None,
        console: Optional[Console] = None,
    ) -> None:
        self.spec = spec
        self.overwrite = overwrite
        self.year = year if year is not None else datetime.now().year
        self.console = console or default_console
        self.report = MaterializeReport()
        self._journal: Optional[_Journal] = None

    # -- Transactions ------------------------------------------------------

    @contextmanager
    def transaction(self, dest: str | Path) -> Iterator[None]:
        """Open a rollback scope for *dest*.

        Checks the destination before anything is written; any exception
        raised inside the block rolls back every mutation and propagates.
        Nested calls join the outer transaction.
        """
        if self._journal is not None:
            yield
            return

        root = Path(dest)
        self._check_destination(root)
        journal = _Journal(root=root)
        self._journal = journal
        try:
            journal.created_root = self._mkdir(root)
            yield
        except BaseException:
            for failure in journal.rollback():
                self.console.print(f"[bold red]rollback incomplete[/bold red] {failure}")
            raise
        finally:
            self._journal = None

    # -- Public API --------------------------------------------------------

    def materialize(self, dest: str | Path, trees: Sequence[TemplateTree]) -> list[Path]:
        """Write every applicable entry of *trees* into *dest*, in order.

        A later tree's entry replaces an earlier one at the same
        destination; every such override is reported.

        Returns:
            The written file paths, in first-write order.

        Raises:
            DestinationExistsError: if *dest* is non-empty and overwrite is off.
            MaterializeError: on any file system failure (after rollback).
            ConfigurationError: if one tree maps two entries to one path.
        """
        root = Path(dest)
        self.report = MaterializeReport()

        with self.transaction(root):
            plan: dict[str, tuple[str, TemplateEntry]] = {}
            for tree in trees:
                for entry in tree.entries_for(self.spec):
                    previous = plan.get(entry.destination)
                    if previous is not None:
                        self._note_override(entry.destination, previous[0], tree.name)
                    plan[entry.destination] = (tree.name, entry)

            for destination, (_, entry) in plan.items():
                target = root / PurePosixPath(destination)
                self._write(target, self._content(entry))
                self.report.written.append(target)

        return list(self.report.written)

    def write_manifest(self, dest: str | Path, manifest: FinalManifest) -> Path:
        """Write ``package.json`` into *dest* through the journal."""
        target = Path(dest) / MANIFEST_FILE
        with self.transaction(dest):
            self._write(target, manifest.dumps().encode("utf-8"))
        return target

    # -- Content -----------------------------------------------------------

    def _content(self, entry: TemplateEntry) -> bytes:
        try:
            data = entry.read()
        except OSError as exc:
            raise MaterializeError(
                f"Cannot read template file {entry.source}: {exc}", entry.source
            ) from exc
        if entry.mode is ContentMode.COPY:
            return data
        return substitute_placeholders(data, self.spec.project_name, self.year)

    def _note_override(self, destination: str, earlier: str, later: str) -> None:
        message = f"{destination}: '{later}' overrides '{earlier}'"
        self.report.overrides.append(message)
        self.console.print(f"[yellow]template override[/yellow] {message}")

    # -- File system (journaled) -------------------------------------------

    def _check_destination(self, root: Path) -> None:
        try:
            if root.exists() and not root.is_dir():
                raise MaterializeError(f"{root} exists and is not a directory", root)
            existing: list[str] = []
            if root.is_dir() and not self.overwrite:
                existing = sorted(
                    p.name for p in root.iterdir() if p.name not in _IGNORABLE_EXISTING
                )
        except OSError as exc:
            raise MaterializeError(f"Cannot inspect destination {root}: {exc}", root) from exc
        if existing:
            raise DestinationExistsError(root, existing)

    def _mkdir(self, directory: Path) -> bool:
        """Create *directory* and its missing parents; ``True`` if it was missing."""
        missing: list[Path] = []
        try:
            current = directory
            while not current.exists():
                missing.append(current)
                current = current.parent
            if not missing:
                return False
            # Journaled first so a partial mkdir is still rolled back.
            if self._journal is not None:
                self._journal.created_dirs.extend(reversed(missing))
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise MaterializeError(f"Cannot create directory {directory}: {exc}", directory) from exc
        return True

    def _write(self, target: Path, data: bytes) -> None:
        journal = self._journal
        if journal is None:
            raise RuntimeError("_write called outside a transaction")
        self._mkdir(target.parent)
        try:
            # A symlink is replaced, never written through.
            if target.is_symlink():
                if not journal.knows(target):
                    journal.links[target] = os.readlink(target)
                target.unlink()
            elif target.is_dir():
                raise MaterializeError(f"{target} is a directory", target)
            elif target.exists():
                if not journal.knows(target):
                    journal.backups[target] = target.read_bytes()
            elif not journal.knows(target):
                journal.created_files.append(target)
            _write_file(target, data)
        except OSError as exc:
            raise MaterializeError(f"Cannot write {target}: {exc}", target) from exc


def substitute_placeholders(data: bytes, project_name: str, year: int) -> bytes:
    """Replace the fixed ``__PROJECT_NAME__`` / ``__YEAR__`` placeholders."""
    return (
        data.replace(PLACEHOLDER_PROJECT_NAME.encode(), project_name.encode("utf-8"))
        .replace(PLACEHOLDER_YEAR.encode(), str(year).encode())
    )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _write_file(path: Path, data: bytes) -> None:
    path.write_bytes(data)
