from __future__ import annotations

"""
Unit tests for the FileSystem Infrastructure Layer.

Covers filter validation, glob matching and the listing primitives,
including their translation of permission failures.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from dirun.domain.errors import AccessDeniedError, InvalidPatternError
from dirun.infra.fs import (
    compile_pattern,
    list_directories,
    list_files,
    normalize_path,
    validate_pattern,
)


@pytest.mark.parametrize("pattern", ["", "   ", "..", "a/b", "bad\0name"])
def test_validate_pattern_rejects(pattern: str) -> None:
    with pytest.raises(InvalidPatternError) as exc:
        validate_pattern(pattern)
    assert "invalid FILES argument" in str(exc.value)


@pytest.mark.parametrize("pattern", ["*.*", "*", "*.txt", "report?.csv", "[ab]*"])
def test_validate_pattern_accepts(pattern: str) -> None:
    validate_pattern(pattern)


def test_star_dot_star_matches_names_without_extension() -> None:
    rx = compile_pattern("*.*")
    assert rx.match("Makefile")
    assert rx.match("a.txt")


def test_glob_pattern_matches_whole_name() -> None:
    rx = compile_pattern("*.txt")
    assert rx.match("a.txt")
    assert not rx.match("a.txt.bak")


def test_list_files_sorted_and_filtered(tmp_path: Path) -> None:
    for name in ["b.txt", "a.txt", "c.log"]:
        (tmp_path / name).write_text("x", encoding="utf-8")
    (tmp_path / "dir.txt").mkdir()

    found = list_files(str(tmp_path), "*.txt")

    assert [os.path.basename(p) for p in found] == ["a.txt", "b.txt"]
    assert all(os.path.isabs(p) for p in found)


def test_list_directories_sorted(tmp_path: Path) -> None:
    (tmp_path / "zeta").mkdir()
    (tmp_path / "alpha").mkdir()
    (tmp_path / "file.txt").write_text("x", encoding="utf-8")

    found = list_directories(str(tmp_path))

    assert [os.path.basename(p) for p in found] == ["alpha", "zeta"]


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unavailable")
def test_list_directories_skips_symlinks(tmp_path: Path) -> None:
    (tmp_path / "real").mkdir()
    try:
        os.symlink(str(tmp_path / "real"), str(tmp_path / "link"), target_is_directory=True)
    except OSError:
        pytest.skip("symlink creation not permitted")

    found = list_directories(str(tmp_path))

    assert [os.path.basename(p) for p in found] == ["real"]


def test_permission_error_becomes_access_denied(tmp_path: Path) -> None:
    with patch("dirun.infra.fs.os.scandir", side_effect=PermissionError("denied")):
        with pytest.raises(AccessDeniedError) as exc:
            list_files(str(tmp_path), "*.*")
        assert exc.value.path == str(tmp_path)

        with pytest.raises(AccessDeniedError):
            list_directories(str(tmp_path))


def test_normalize_path_fallback(tmp_path: Path) -> None:
    assert normalize_path("", str(tmp_path)) == os.path.abspath(str(tmp_path))
    assert normalize_path(None, str(tmp_path)) == os.path.abspath(str(tmp_path))
    assert normalize_path(str(tmp_path / "x"), "/unused") == os.path.abspath(str(tmp_path / "x"))
