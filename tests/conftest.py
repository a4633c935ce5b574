"""Shared pytest fixtures for the permaweb-scaffold test suite.

Provides reusable fixtures for:
- Quiet Rich consoles that record output
- ProjectSpec construction
- Small on-disk template roots for registry/materializer tests
"""

from __future__ import annotations

import io
import textwrap
from pathlib import Path
from typing import Any, Callable

import pytest
from rich.console import Console

from permaweb_scaffold.scaffolder.models import ProjectSpec


# ---------------------------------------------------------------------------
# Console
# ---------------------------------------------------------------------------

@pytest.fixture
def quiet_console() -> Console:
    """A Rich console writing to an in-memory buffer.

    Read the output with ``quiet_console.file.getvalue()``.
    """
    return Console(file=io.StringIO(), force_terminal=False, width=200)


# ---------------------------------------------------------------------------
# Specs
# ---------------------------------------------------------------------------

@pytest.fixture
def make_spec(tmp_path: Path) -> Callable[..., ProjectSpec]:
    """Factory for ProjectSpec values rooted in ``tmp_path``.

    Usage::

        spec = make_spec("my-app", framework="next", language="typescript")
    """

    def _make(name: str = "my-app", **choices: Any) -> ProjectSpec:
        return ProjectSpec(target_path=tmp_path / name, **choices)

    return _make


# ---------------------------------------------------------------------------
# Template roots
# ---------------------------------------------------------------------------

def write_tree(root: Path, name: str, files: dict[str, str | bytes], metadata: str = "") -> Path:
    """Create template tree *name* under *root* with *files* and a template.yaml."""
    tree_dir = root / name
    tree_dir.mkdir(parents=True, exist_ok=True)
    for rel, content in files.items():
        path = tree_dir / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
    meta = f"name: {name}\n" + textwrap.dedent(metadata)
    (tree_dir / "template.yaml").write_text(meta, encoding="utf-8")
    return tree_dir


@pytest.fixture
def template_root(tmp_path: Path) -> Path:
    """A small template root with a base tree and two overlays.

    ``base`` ships a shared README, a JS-only entry point and a dotfile
    placeholder; ``overlay`` replaces ``styles.css``; ``extra`` adds a file
    and overrides a script.
    """
    root = tmp_path / "templates"
    write_tree(
        root,
        "base",
        {
            "README.md": "# __PROJECT_NAME__ (c) __YEAR__\n",
            "gitignore": "node_modules\n",
            "index.js": "console.log('js');\n",
            "index.ts": "console.log('ts');\n",
            "styles.css": "body { color: black; }\n",
            "logo.png": b"\x89PNG__PROJECT_NAME__",
        },
        """
        when:
          "index.js": {language: javascript}
          "index.ts": {language: typescript}
        manifest:
          scripts:
            build: base-build
            deploy: arkb deploy dist
          dependencies:
            dep: "1.0.0"
        """,
    )
    write_tree(
        root,
        "overlay",
        {"styles.css": "body { color: hotpink; }\n"},
        """
        manifest:
          dependencies:
            dep: "2.0.0"
          devDependencies:
            overlay-tool: "^3.0.0"
        """,
    )
    write_tree(
        root,
        "extra",
        {"DEPLOY.md": "Deploy __PROJECT_NAME__\n"},
        """
        manifest:
          scripts:
            deploy: arkb deploy dist --use-bundler https://node1.bundlr.network
        """,
    )
    return root
