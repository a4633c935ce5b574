"""Tests for FileMaterializer.

Covers:
- Placeholder substitution and byte-for-byte binary copies
- Dotfile renames on disk
- Later-tree overrides, reported on the console
- Destination checks (non-empty, not a directory, overwrite)
- Rollback after a mid-run write failure
- Unreadable destinations and symlinks in the way
"""

from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path

import pytest

from permaweb_scaffold.scaffolder import materializer as materializer_module
from permaweb_scaffold.scaffolder.errors import (
    DestinationExistsError,
    MaterializeError,
)
from permaweb_scaffold.scaffolder.manifest import FinalManifest
from permaweb_scaffold.scaffolder.materializer import (
    FileMaterializer,
    substitute_placeholders,
)
from permaweb_scaffold.scaffolder.models import ProjectSpec
from permaweb_scaffold.scaffolder.templates import load_tree


pytestmark = pytest.mark.unit


def _trees(template_root: Path, *names: str):
    return [load_tree(template_root / name) for name in names]


def _relative_files(root: Path) -> set[str]:
    return {p.relative_to(root).as_posix() for p in root.rglob("*") if p.is_file()}


# ---------------------------------------------------------------------------
# Content
# ---------------------------------------------------------------------------

class TestSubstitutePlaceholders:
    def test_replaces_both_placeholders(self):
        out = substitute_placeholders(b"__PROJECT_NAME__ / __YEAR__", "demo", 2024)
        assert out == b"demo / 2024"

    def test_leaves_other_text_alone(self):
        data = b"{{ name }} ${PROJECT_NAME} __OTHER__"
        assert substitute_placeholders(data, "demo", 2024) == data


class TestMaterialize:
    def test_writes_selected_entries(self, template_root, make_spec, quiet_console):
        spec = make_spec("demo", language="javascript")
        mat = FileMaterializer(spec, year=2024, console=quiet_console)
        written = mat.materialize(spec.target_path, _trees(template_root, "base"))

        assert _relative_files(spec.target_path) == {
            "README.md", ".gitignore", "index.js", "styles.css", "logo.png",
        }
        assert len(written) == 5
        assert all(p.is_absolute() for p in written)

    def test_placeholders_substituted_in_text(self, template_root, make_spec, quiet_console):
        spec = make_spec("demo")
        FileMaterializer(spec, year=2024, console=quiet_console).materialize(
            spec.target_path, _trees(template_root, "base")
        )
        assert (spec.target_path / "README.md").read_text() == "# demo (c) 2024\n"

    def test_binary_copied_verbatim(self, template_root, make_spec, quiet_console):
        spec = make_spec("demo")
        FileMaterializer(spec, year=2024, console=quiet_console).materialize(
            spec.target_path, _trees(template_root, "base")
        )
        assert (spec.target_path / "logo.png").read_bytes() == b"\x89PNG__PROJECT_NAME__"

    def test_dotfile_renamed(self, template_root, make_spec, quiet_console):
        spec = make_spec("demo")
        FileMaterializer(spec, console=quiet_console).materialize(
            spec.target_path, _trees(template_root, "base")
        )
        assert (spec.target_path / ".gitignore").is_file()
        assert not (spec.target_path / "gitignore").exists()

    def test_later_tree_overrides(self, template_root, make_spec, quiet_console):
        spec = make_spec("demo")
        mat = FileMaterializer(spec, console=quiet_console)
        written = mat.materialize(spec.target_path, _trees(template_root, "base", "overlay"))

        assert (spec.target_path / "styles.css").read_text() == "body { color: hotpink; }\n"
        assert written.count(spec.target_path / "styles.css") == 1
        assert mat.report.overrides == ["styles.css: 'overlay' overrides 'base'"]
        output = quiet_console.file.getvalue()
        assert "template override" in output
        assert "styles.css" in output

    def test_no_overrides_reported_without_collisions(self, template_root, make_spec, quiet_console):
        spec = make_spec("demo")
        mat = FileMaterializer(spec, console=quiet_console)
        mat.materialize(spec.target_path, _trees(template_root, "base", "extra"))
        assert mat.report.overrides == []
        assert quiet_console.file.getvalue() == ""

    def test_year_defaults_to_current(self, make_spec):
        assert FileMaterializer(make_spec()).year == datetime.now().year

    def test_write_manifest(self, make_spec, quiet_console, tmp_path):
        spec = make_spec("demo")
        mat = FileMaterializer(spec, console=quiet_console)
        path = mat.write_manifest(spec.target_path, FinalManifest(name="demo"))
        assert path == spec.target_path / "package.json"
        assert path.read_text().startswith('{\n  "name": "demo"')

    def test_write_requires_transaction(self, make_spec, quiet_console):
        spec = make_spec("demo")
        mat = FileMaterializer(spec, console=quiet_console)
        with pytest.raises(RuntimeError, match="outside a transaction"):
            mat._write(spec.target_path / "README.md", b"x")
        assert not spec.target_path.exists()


# ---------------------------------------------------------------------------
# Destination checks
# ---------------------------------------------------------------------------

class TestDestination:
    def test_non_empty_rejected(self, template_root, make_spec, quiet_console):
        spec = make_spec("demo")
        spec.target_path.mkdir()
        (spec.target_path / "keep.txt").write_text("mine")

        with pytest.raises(DestinationExistsError) as exc_info:
            FileMaterializer(spec, console=quiet_console).materialize(
                spec.target_path, _trees(template_root, "base")
            )
        assert exc_info.value.details["entries"] == ["keep.txt"]
        assert _relative_files(spec.target_path) == {"keep.txt"}

    def test_ignorable_entries_allowed(self, template_root, make_spec, quiet_console):
        spec = make_spec("demo")
        (spec.target_path / ".git").mkdir(parents=True)
        FileMaterializer(spec, console=quiet_console).materialize(
            spec.target_path, _trees(template_root, "base")
        )
        assert (spec.target_path / "README.md").is_file()

    def test_existing_empty_directory_allowed(self, template_root, make_spec, quiet_console):
        spec = make_spec("demo")
        spec.target_path.mkdir()
        FileMaterializer(spec, console=quiet_console).materialize(
            spec.target_path, _trees(template_root, "base")
        )
        assert (spec.target_path / "README.md").is_file()

    def test_file_in_the_way(self, template_root, make_spec, quiet_console):
        spec = make_spec("demo")
        spec.target_path.write_text("not a dir")
        with pytest.raises(MaterializeError):
            FileMaterializer(spec, console=quiet_console).materialize(
                spec.target_path, _trees(template_root, "base")
            )

    def test_overwrite_replaces_and_keeps_unrelated(self, template_root, make_spec, quiet_console):
        spec = make_spec("demo")
        spec.target_path.mkdir()
        (spec.target_path / "README.md").write_text("old")
        (spec.target_path / "notes.txt").write_text("mine")

        FileMaterializer(spec, overwrite=True, year=2024, console=quiet_console).materialize(
            spec.target_path, _trees(template_root, "base")
        )
        assert (spec.target_path / "README.md").read_text() == "# demo (c) 2024\n"
        assert (spec.target_path / "notes.txt").read_text() == "mine"


# ---------------------------------------------------------------------------
# Rollback
# ---------------------------------------------------------------------------

def _fail_on_call(monkeypatch, n: int) -> list[Path]:
    """Make the n-th low-level write raise ``OSError``."""
    calls: list[Path] = []
    real_write = materializer_module._write_file

    def flaky(path: Path, data: bytes) -> None:
        calls.append(path)
        if len(calls) == n:
            raise OSError(28, "No space left on device")
        real_write(path, data)

    monkeypatch.setattr(materializer_module, "_write_file", flaky)
    return calls


class TestRollback:
    def test_new_destination_removed(self, template_root, make_spec, quiet_console, monkeypatch):
        spec = make_spec("demo")
        calls = _fail_on_call(monkeypatch, 3)

        with pytest.raises(MaterializeError) as exc_info:
            FileMaterializer(spec, console=quiet_console).materialize(
                spec.target_path, _trees(template_root, "base")
            )
        assert len(calls) == 3
        assert exc_info.value.path == calls[-1]
        assert not spec.target_path.exists()

    def test_missing_parents_removed(self, template_root, tmp_path, quiet_console, monkeypatch):
        spec = ProjectSpec(target_path=tmp_path / "nested" / "deeper" / "demo")
        _fail_on_call(monkeypatch, 2)

        with pytest.raises(MaterializeError):
            FileMaterializer(spec, console=quiet_console).materialize(
                spec.target_path, _trees(template_root, "base")
            )
        assert not (tmp_path / "nested").exists()

    def test_existing_destination_restored(self, template_root, make_spec, quiet_console, monkeypatch):
        spec = make_spec("demo")
        spec.target_path.mkdir()
        (spec.target_path / "README.md").write_text("original readme")
        (spec.target_path / "notes.txt").write_text("mine")
        before = _relative_files(spec.target_path)

        calls = _fail_on_call(monkeypatch, 4)
        with pytest.raises(MaterializeError):
            FileMaterializer(spec, overwrite=True, console=quiet_console).materialize(
                spec.target_path, _trees(template_root, "base")
            )

        assert len(calls) == 4
        assert spec.target_path.is_dir()
        assert _relative_files(spec.target_path) == before
        assert (spec.target_path / "README.md").read_text() == "original readme"
        assert (spec.target_path / "notes.txt").read_text() == "mine"

    def test_outer_transaction_rolls_back_manifest(self, template_root, make_spec, quiet_console):
        spec = make_spec("demo")
        mat = FileMaterializer(spec, console=quiet_console)

        with pytest.raises(RuntimeError):
            with mat.transaction(spec.target_path):
                mat.materialize(spec.target_path, _trees(template_root, "base"))
                mat.write_manifest(spec.target_path, FinalManifest(name="demo"))
                raise RuntimeError("boom")

        assert not spec.target_path.exists()

    def test_keyboard_interrupt_rolls_back(self, template_root, make_spec, quiet_console, monkeypatch):
        spec = make_spec("demo")
        calls: list[Path] = []
        real_write = materializer_module._write_file

        def interrupted(path: Path, data: bytes) -> None:
            calls.append(path)
            if len(calls) == 2:
                raise KeyboardInterrupt
            real_write(path, data)

        monkeypatch.setattr(materializer_module, "_write_file", interrupted)
        with pytest.raises(KeyboardInterrupt):
            FileMaterializer(spec, console=quiet_console).materialize(
                spec.target_path, _trees(template_root, "base")
            )
        assert not spec.target_path.exists()

    def test_failed_restore_does_not_hide_error(
        self, template_root, make_spec, quiet_console, monkeypatch
    ):
        spec = make_spec("demo")
        spec.target_path.mkdir()
        (spec.target_path / "README.md").write_text("original readme")
        calls: list[Path] = []
        real_write = materializer_module._write_file

        def flaky(path: Path, data: bytes) -> None:
            calls.append(path)
            # Third template write, then the README restore.
            if len(calls) in (3, 4):
                raise OSError(28, "No space left on device")
            real_write(path, data)

        monkeypatch.setattr(materializer_module, "_write_file", flaky)
        with pytest.raises(MaterializeError) as exc_info:
            FileMaterializer(spec, overwrite=True, console=quiet_console).materialize(
                spec.target_path, _trees(template_root, "base")
            )

        assert exc_info.value.path == spec.target_path / "index.js"
        assert calls[3] == spec.target_path / "README.md"
        assert _relative_files(spec.target_path) == {"README.md"}
        output = quiet_console.file.getvalue()
        assert "rollback incomplete" in output
        assert "README.md" in output


# ---------------------------------------------------------------------------
# Unreadable destinations
# ---------------------------------------------------------------------------

def _deny(monkeypatch, method: str, target: Path) -> None:
    """Make ``Path.<method>`` raise ``PermissionError`` for *target* only."""
    real = getattr(Path, method)

    def denied(self, *args, **kwargs):
        if self == target:
            raise PermissionError(13, "Permission denied", str(self))
        return real(self, *args, **kwargs)

    monkeypatch.setattr(Path, method, denied)


class TestUnreadableDestination:
    def test_unlistable_destination(self, template_root, make_spec, quiet_console, monkeypatch):
        spec = make_spec("demo")
        spec.target_path.mkdir()
        _deny(monkeypatch, "iterdir", spec.target_path)

        with pytest.raises(MaterializeError) as exc_info:
            FileMaterializer(spec, console=quiet_console).materialize(
                spec.target_path, _trees(template_root, "base")
            )

        assert isinstance(exc_info.value.__cause__, PermissionError)
        assert exc_info.value.path == spec.target_path
        monkeypatch.undo()
        assert os.listdir(spec.target_path) == []

    def test_unreadable_existing_file(self, template_root, make_spec, quiet_console, monkeypatch):
        spec = make_spec("demo")
        spec.target_path.mkdir()
        (spec.target_path / "styles.css").write_text("mine")
        _deny(monkeypatch, "read_bytes", spec.target_path / "styles.css")

        with pytest.raises(MaterializeError) as exc_info:
            FileMaterializer(spec, overwrite=True, console=quiet_console).materialize(
                spec.target_path, _trees(template_root, "base")
            )

        assert isinstance(exc_info.value.__cause__, PermissionError)
        assert exc_info.value.path == spec.target_path / "styles.css"
        monkeypatch.undo()
        assert _relative_files(spec.target_path) == {"styles.css"}
        assert (spec.target_path / "styles.css").read_text() == "mine"


# ---------------------------------------------------------------------------
# Symlinks
# ---------------------------------------------------------------------------

class TestSymlinks:
    def test_symlink_replaced_not_followed(self, template_root, make_spec, quiet_console, tmp_path):
        spec = make_spec("demo")
        spec.target_path.mkdir()
        outside = tmp_path / "outside.md"
        outside.write_text("not yours")
        (spec.target_path / "README.md").symlink_to(outside)

        FileMaterializer(spec, overwrite=True, year=2024, console=quiet_console).materialize(
            spec.target_path, _trees(template_root, "base")
        )

        readme = spec.target_path / "README.md"
        assert not readme.is_symlink()
        assert readme.read_text() == "# demo (c) 2024\n"
        assert outside.read_text() == "not yours"

    def test_dangling_symlink_restored_on_rollback(
        self, template_root, make_spec, quiet_console, tmp_path, monkeypatch
    ):
        spec = make_spec("demo")
        spec.target_path.mkdir()
        outside = tmp_path / "outside.md"
        readme = spec.target_path / "README.md"
        readme.symlink_to(outside)
        _fail_on_call(monkeypatch, 3)

        with pytest.raises(MaterializeError):
            FileMaterializer(spec, overwrite=True, console=quiet_console).materialize(
                spec.target_path, _trees(template_root, "base")
            )

        assert readme.is_symlink()
        assert os.readlink(readme) == str(outside)
        assert not outside.exists()
        assert os.listdir(spec.target_path) == ["README.md"]
