"""Main scaffolding orchestrator.

Takes a finalized ``ProjectSpec`` and produces a project directory:
validate the name, resolve the template trees, write the files, compose and
write ``package.json``.  Every ``ScaffoldError`` is folded into the returned
``ScaffoldResult`` with its kind and details intact.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from rich.console import Console

from .errors import NameValidationError, ScaffoldError
from .manifest import ManifestComposer
from .materializer import FileMaterializer
from .models import ProjectSpec, ScaffoldFailure, ScaffoldResult
from .naming import validate_name
from .registry import TemplateRegistry


class ScaffoldOrchestrator:
    """Drives one scaffold run per ``scaffold`` call.

    Args:
        registry: Template registry; defaults to the bundled trees.
        composer: Manifest composer; defaults to the standard conflict rules.
        overwrite: Allow writing into a non-empty destination.
        year: Fixed value for the ``__YEAR__`` placeholder (tests).
        console: Rich console for override notices.
    """

    def __init__(
        self,
        registry: Optional[TemplateRegistry] = None,
        composer: Optional[ManifestComposer] = None,
        *,
        overwrite: bool = False,
        year: Optional[int] = None,
        console: Optional[Console] = None,
    ) -> None:
        self.registry = registry or TemplateRegistry()
        self.composer = composer or ManifestComposer()
        self.overwrite = overwrite
        self.year = year
        self.console = console

    def scaffold(self, spec: ProjectSpec) -> ScaffoldResult:
        """Generate the project described by *spec*.

        Returns:
            A ``ScaffoldResult``; ``success`` is ``False`` and ``error`` is
            set when any step failed.  Nothing is left on disk in that case.
        """
        result = ScaffoldResult(
            destination=spec.target_path,
            install_command=spec.package_manager.install_command,
        )
        try:
            self._run(spec, result)
        except ScaffoldError as exc:
            result.success = False
            result.written_files = []
            result.manifest = None
            result.error = ScaffoldFailure(
                kind=exc.kind, message=exc.message, details=dict(exc.details)
            )
        return result

    def _run(self, spec: ProjectSpec, result: ScaffoldResult) -> None:
        validation = validate_name(spec.project_name)
        if not validation.valid:
            raise NameValidationError(spec.project_name, validation.problems)

        trees = self.registry.resolve(spec)
        result.applied_templates = [tree.name for tree in trees]

        materializer = FileMaterializer(
            spec, overwrite=self.overwrite, year=self.year, console=self.console
        )
        dest: Path = spec.target_path
        with materializer.transaction(dest):
            written = materializer.materialize(dest, trees)
            manifest = self.composer.compose([tree.manifest for tree in trees], spec)
            written.append(materializer.write_manifest(dest, manifest))

        result.written_files = written
        result.overrides = list(materializer.report.overrides)
        result.manifest = manifest.to_package_json()
        result.success = True
