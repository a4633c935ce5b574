"""package.json composition from per-template manifest fragments.

Each template tree contributes a ``ManifestFragment``.  ``ManifestComposer``
merges them in template application order (the later fragment wins on any
key), adds the fields derived from the ``ProjectSpec``, and rejects a small
configured set of hard-incompatible declarations.
"""

from __future__ import annotations

import json
from typing import Any, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from .errors import ManifestConflictError
from .models import Framework, Language, ProjectSpec


DEFAULT_VERSION = "0.1.0"

# (framework, language) -> package.json "type" field.  ``None`` leaves the
# field out so the package stays CommonJS.
MODULE_TYPES: dict[tuple[Framework, Language], Optional[str]] = {
    (Framework.SVELTE, Language.JAVASCRIPT): "module",
    (Framework.SVELTE, Language.TYPESCRIPT): "module",
    (Framework.VITE, Language.JAVASCRIPT): "module",
    (Framework.VITE, Language.TYPESCRIPT): "module",
    (Framework.NEXT, Language.JAVASCRIPT): None,
    (Framework.NEXT, Language.TYPESCRIPT): None,
}


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class ManifestFragment(BaseModel):
    """Partial package.json contributed by one template tree."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    source: str = Field(default="", description="Name of the contributing tree")
    dependencies: dict[str, str] = Field(default_factory=dict)
    dev_dependencies: dict[str, str] = Field(
        default_factory=dict, alias="devDependencies"
    )
    scripts: dict[str, str] = Field(default_factory=dict)

    def packages(self) -> set[str]:
        return set(self.dependencies) | set(self.dev_dependencies)


class ConflictRule(BaseModel):
    """A group of packages that must never come from different fragments."""

    model_config = ConfigDict(frozen=True)

    name: str
    packages: frozenset[str]


DEFAULT_CONFLICT_RULES: tuple[ConflictRule, ...] = (
    ConflictRule(
        name="styling engines",
        packages=frozenset({"tailwindcss", "@chakra-ui/react"}),
    ),
    ConflictRule(
        name="app frameworks",
        packages=frozenset({"next", "@sveltejs/kit"}),
    ),
)


class FinalManifest(BaseModel):
    """The composed package descriptor written to the project root."""

    name: str
    version: str = DEFAULT_VERSION
    private: bool = True
    type: Optional[str] = None
    scripts: dict[str, str] = Field(default_factory=dict)
    dependencies: dict[str, str] = Field(default_factory=dict)
    dev_dependencies: dict[str, str] = Field(default_factory=dict)

    def to_package_json(self) -> dict[str, Any]:
        """Return the manifest as an ordered ``package.json`` mapping."""
        data: dict[str, Any] = {
            "name": self.name,
            "version": self.version,
            "private": self.private,
        }
        if self.type:
            data["type"] = self.type
        data["scripts"] = dict(self.scripts)
        data["dependencies"] = dict(sorted(self.dependencies.items()))
        data["devDependencies"] = dict(sorted(self.dev_dependencies.items()))
        return data

    def dumps(self) -> str:
        return json.dumps(self.to_package_json(), indent=2) + "\n"


# ---------------------------------------------------------------------------
# Composer
# ---------------------------------------------------------------------------

class ManifestComposer:
    """Merges manifest fragments into a single ``FinalManifest``."""

    def __init__(self, conflict_rules: Sequence[ConflictRule] = DEFAULT_CONFLICT_RULES) -> None:
        self.conflict_rules = tuple(conflict_rules)

    def compose(
        self, fragments: Sequence[ManifestFragment], spec: ProjectSpec
    ) -> FinalManifest:
        """Merge *fragments* in order and fill in the fields taken from *spec*.

        Raises:
            ManifestConflictError: if two fragments declare packages from
                the same mutually exclusive group.
        """
        self._check_conflicts(fragments)

        dependencies: dict[str, str] = {}
        dev_dependencies: dict[str, str] = {}
        scripts: dict[str, str] = {}

        for fragment in fragments:
            # A package lives in one section only; the later declaration moves it.
            for name, version in fragment.dependencies.items():
                dev_dependencies.pop(name, None)
                dependencies[name] = version
            for name, version in fragment.dev_dependencies.items():
                dependencies.pop(name, None)
                dev_dependencies[name] = version
            scripts.update(fragment.scripts)

        return FinalManifest(
            name=spec.project_name,
            type=MODULE_TYPES[(spec.framework, spec.language)],
            scripts=scripts,
            dependencies=dependencies,
            dev_dependencies=dev_dependencies,
        )

    def _check_conflicts(self, fragments: Sequence[ManifestFragment]) -> None:
        for rule in self.conflict_rules:
            offenders: dict[str, list[str]] = {}
            for index, fragment in enumerate(fragments):
                declared = sorted(fragment.packages() & rule.packages)
                if declared:
                    key = fragment.source or f"fragment-{index}"
                    offenders.setdefault(key, []).extend(declared)
            declared_packages = {pkg for pkgs in offenders.values() for pkg in pkgs}
            if len(offenders) > 1 and len(declared_packages) > 1:
                raise ManifestConflictError(rule.name, offenders)
