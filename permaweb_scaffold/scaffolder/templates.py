"""Template trees: loading bundled template directories into immutable models.

Each tree lives in its own directory under ``templates/``.  A
``template.yaml`` file next to the files describes the tree::

    name: next-chakra
    description: Chakra UI provider for Next.js
    renames:
      pages/_app.jsx: pages/_app.js
    when:
      "pages/_app.js": {language: javascript}
      "pages/_app.tsx": {language: typescript}
    binary:
      - "*.woff2"
    manifest:
      dependencies: {"@chakra-ui/react": "^2.8.2"}
      scripts: {}

Every other file in the directory becomes a ``TemplateEntry``.  Entries are
never rendered with a template language: they are either copied
byte-for-byte or have a fixed set of placeholders substituted.
"""

from __future__ import annotations

from enum import Enum
from fnmatch import fnmatch
from pathlib import Path, PurePosixPath
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from .errors import ConfigurationError
from .manifest import ManifestFragment
from .models import ProjectSpec


# ---------------------------------------------------------------------------
# Template directory discovery
# ---------------------------------------------------------------------------

DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"

METADATA_FILE = "template.yaml"

# Dotfiles are stored under a placeholder name so packaging tools keep them.
DEFAULT_RENAMES: dict[str, str] = {
    "gitignore": ".gitignore",
    "npmrc": ".npmrc",
    "eslintrc.json": ".eslintrc.json",
    "prettierrc": ".prettierrc",
}

EXCLUDED_NAMES: frozenset[str] = frozenset({
    METADATA_FILE,
    "package.json",
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    ".DS_Store",
})
EXCLUDED_DIRS: frozenset[str] = frozenset({"node_modules", "__pycache__"})

# Files with these suffixes get placeholder substitution; the rest are copied.
TEXT_SUFFIXES: frozenset[str] = frozenset({
    ".css", ".cjs", ".html", ".js", ".json", ".jsx", ".md", ".mjs",
    ".svelte", ".ts", ".tsx", ".txt", ".yaml", ".yml",
})
TEXT_NAMES: frozenset[str] = frozenset(DEFAULT_RENAMES)


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class ContentMode(str, Enum):
    """How an entry's bytes reach the destination."""
    COPY = "copy"
    SUBSTITUTE = "substitute"


class TemplateEntry(BaseModel):
    """One file of a template tree."""

    model_config = ConfigDict(frozen=True)

    source: Path = Field(..., description="Absolute path of the template file")
    relative_path: str = Field(..., description="POSIX path relative to the tree root")
    destination: str = Field(..., description="POSIX destination path after renames")
    mode: ContentMode = ContentMode.SUBSTITUTE
    when: dict[str, tuple[str, ...]] = Field(
        default_factory=dict,
        description="Choice key -> accepted values; all must hold",
    )

    def applies_to(self, spec: ProjectSpec) -> bool:
        return all(spec.choice(key) in accepted for key, accepted in self.when.items())

    def read(self) -> bytes:
        return self.source.read_bytes()


class TemplateTree(BaseModel):
    """A named, ordered bundle of template entries plus its manifest fragment."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    entries: tuple[TemplateEntry, ...] = ()
    manifest: ManifestFragment = Field(default_factory=ManifestFragment)

    def entries_for(self, spec: ProjectSpec) -> list[TemplateEntry]:
        """Return the entries whose predicates hold for *spec*.

        Raises:
            ConfigurationError: if two selected entries share a destination.
        """
        selected: dict[str, TemplateEntry] = {}
        for entry in self.entries:
            if not entry.applies_to(spec):
                continue
            previous = selected.get(entry.destination)
            if previous is not None:
                raise ConfigurationError(
                    f"Template '{self.name}' maps both '{previous.relative_path}' "
                    f"and '{entry.relative_path}' to '{entry.destination}'",
                    template=self.name,
                    destination=entry.destination,
                )
            selected[entry.destination] = entry
        return list(selected.values())


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def load_tree(tree_dir: str | Path) -> TemplateTree:
    """Load the template tree stored in *tree_dir*.

    Raises:
        ConfigurationError: if the directory or its metadata is malformed.
    """
    root = Path(tree_dir)
    if not root.is_dir():
        raise ConfigurationError(f"Template directory not found: {root}", path=str(root))

    metadata = _load_metadata(root)
    name = str(metadata.get("name") or root.name)
    renames = {**DEFAULT_RENAMES, **(metadata.get("renames") or {})}
    conditions = metadata.get("when") or {}
    binary_globs = list(metadata.get("binary") or [])

    entries: list[TemplateEntry] = []
    for path in sorted(root.rglob("*")):
        if not path.is_file():
            continue
        rel = PurePosixPath(path.relative_to(root).as_posix())
        if rel.name in EXCLUDED_NAMES or EXCLUDED_DIRS.intersection(rel.parts):
            continue
        destination = _apply_rename(rel, renames)
        entries.append(
            TemplateEntry(
                source=path,
                relative_path=str(rel),
                destination=destination,
                mode=_content_mode(rel, binary_globs),
                when=_conditions_for(rel, destination, conditions),
            )
        )

    try:
        fragment = ManifestFragment(source=name, **(metadata.get("manifest") or {}))
    except (PydanticValidationError, TypeError) as exc:
        raise ConfigurationError(
            f"Invalid manifest fragment in template '{name}': {exc}", template=name
        ) from exc

    return TemplateTree(
        name=name,
        description=str(metadata.get("description", "")),
        entries=tuple(entries),
        manifest=fragment,
    )


def list_tree_names(template_dir: str | Path = DEFAULT_TEMPLATE_DIR) -> list[str]:
    """Return the sorted names of all tree directories under *template_dir*."""
    base = Path(template_dir)
    if not base.is_dir():
        return []
    return sorted(p.name for p in base.iterdir() if (p / METADATA_FILE).is_file())


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _load_metadata(root: Path) -> dict[str, Any]:
    meta_path = root / METADATA_FILE
    if not meta_path.is_file():
        return {}
    try:
        data = yaml.safe_load(meta_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigurationError(
            f"Cannot parse {meta_path}: {exc}", path=str(meta_path)
        ) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"{meta_path} must contain a mapping", path=str(meta_path)
        )
    return data


def _apply_rename(rel: PurePosixPath, renames: dict[str, str]) -> str:
    """Map a template path to its destination path.

    A rename keyed by the full relative path wins over one keyed by the bare
    file name.
    """
    full = str(rel)
    if full in renames:
        return renames[full]
    if rel.name in renames:
        return str(rel.with_name(renames[rel.name]))
    return full


def _content_mode(rel: PurePosixPath, binary_globs: list[str]) -> ContentMode:
    if any(fnmatch(str(rel), pattern) or fnmatch(rel.name, pattern) for pattern in binary_globs):
        return ContentMode.COPY
    if rel.suffix in TEXT_SUFFIXES or rel.name in TEXT_NAMES:
        return ContentMode.SUBSTITUTE
    return ContentMode.COPY


def _conditions_for(
    rel: PurePosixPath, destination: str, conditions: dict[str, dict[str, Any]]
) -> dict[str, tuple[str, ...]]:
    """Collect the predicate constraints whose glob matches the entry.

    A pattern may name either the template path or the renamed destination.
    """
    merged: dict[str, tuple[str, ...]] = {}
    for pattern, constraint in conditions.items():
        if not (fnmatch(destination, pattern) or fnmatch(str(rel), pattern)):
            continue
        for key, accepted in (constraint or {}).items():
            values = accepted if isinstance(accepted, list) else [accepted]
            merged[key] = tuple(_choice_str(v) for v in values)
    return merged


def _choice_str(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
