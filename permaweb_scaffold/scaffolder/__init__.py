"""permaweb-scaffold scaffolder -- generates permaweb app project trees.

This module takes a finalized ``ProjectSpec`` and materializes a Svelte,
Next.js or Vite project from the bundled template trees, composing a single
``package.json`` from the per-template manifest fragments.

Quick usage::

    from permaweb_scaffold.scaffolder import ProjectSpec, ScaffoldOrchestrator

    spec = ProjectSpec.create(
        "./my-app",
        framework="next",
        language="typescript",
        styling="tailwind",
        extras={"bundlr": "node2"},
    )
    result = ScaffoldOrchestrator().scaffold(spec)
    if not result.success:
        print(result.error.kind, result.error.message)
"""

from permaweb_scaffold.scaffolder.errors import (
    ConfigurationError,
    DestinationExistsError,
    ManifestConflictError,
    MaterializeError,
    NameValidationError,
    ScaffoldError,
)
from permaweb_scaffold.scaffolder.generator import ScaffoldOrchestrator
from permaweb_scaffold.scaffolder.manifest import FinalManifest, ManifestComposer, ManifestFragment
from permaweb_scaffold.scaffolder.materializer import FileMaterializer
from permaweb_scaffold.scaffolder.models import (
    ErrorKind,
    Framework,
    Language,
    PackageManager,
    ProjectSpec,
    ScaffoldResult,
    Styling,
)
from permaweb_scaffold.scaffolder.naming import validate_name
from permaweb_scaffold.scaffolder.registry import TemplateRegistry
from permaweb_scaffold.scaffolder.templates import TemplateTree, load_tree

__all__ = [
    "ConfigurationError",
    "DestinationExistsError",
    "ErrorKind",
    "FileMaterializer",
    "FinalManifest",
    "Framework",
    "Language",
    "ManifestComposer",
    "ManifestConflictError",
    "ManifestFragment",
    "MaterializeError",
    "NameValidationError",
    "PackageManager",
    "ProjectSpec",
    "ScaffoldError",
    "ScaffoldOrchestrator",
    "ScaffoldResult",
    "Styling",
    "TemplateRegistry",
    "TemplateTree",
    "load_tree",
    "validate_name",
]
