"""Tests for reposeal.enumerator."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from reposeal.enumerator import FileEnumerator


def _write(path: Path, content: str = "data") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_enumerate_lists_regular_files_in_lexicographic_order(tmp_path: Path) -> None:
    _write(tmp_path / "sub" / "b.txt")
    _write(tmp_path / "a.txt")
    _write(tmp_path / "a-b.txt")
    _write(tmp_path / "z" / "deep" / "c.txt")

    paths = list(FileEnumerator().enumerate(tmp_path))

    assert paths == ["a-b.txt", "a.txt", "sub/b.txt", "z/deep/c.txt"]


def test_enumerate_skips_git_metadata_and_root_artifacts(tmp_path: Path) -> None:
    _write(tmp_path / ".git" / "HEAD")
    _write(tmp_path / ".git" / "objects" / "ab" / "cdef")
    _write(tmp_path / "hashes.md5")
    _write(tmp_path / "hashes.md5.asc")
    _write(tmp_path / ".gitignore", "*.log\n")
    _write(tmp_path / "docs" / "hashes.md5")
    _write(tmp_path / "main.py")

    paths = list(FileEnumerator().enumerate(tmp_path))

    assert paths == [".gitignore", "docs/hashes.md5", "main.py"]


def test_enumerate_treats_git_file_as_metadata(tmp_path: Path) -> None:
    _write(tmp_path / ".git", "gitdir: ../elsewhere\n")
    _write(tmp_path / "main.py")

    assert list(FileEnumerator().enumerate(tmp_path)) == ["main.py"]


def test_enumerate_empty_repository_yields_nothing(tmp_path: Path) -> None:
    (tmp_path / ".git").mkdir()

    assert list(FileEnumerator().enumerate(tmp_path)) == []


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
def test_enumerate_does_not_follow_symlinks(tmp_path: Path) -> None:
    _write(tmp_path / "real" / "file.txt")
    (tmp_path / "link.txt").symlink_to(tmp_path / "real" / "file.txt")
    (tmp_path / "dangling").symlink_to(tmp_path / "missing")
    (tmp_path / "loop").symlink_to(tmp_path, target_is_directory=True)

    assert list(FileEnumerator().enumerate(tmp_path)) == ["real/file.txt"]


def test_enumerate_is_restartable(tmp_path: Path) -> None:
    _write(tmp_path / "one.txt")
    enumerator = FileEnumerator()

    first = list(enumerator.enumerate(tmp_path))
    _write(tmp_path / "two.txt")
    second = list(enumerator.enumerate(tmp_path))

    assert first == ["one.txt"]
    assert second == ["one.txt", "two.txt"]


def test_enumerate_rejects_missing_root(tmp_path: Path) -> None:
    missing = tmp_path / "missing"

    with pytest.raises(FileNotFoundError) as excinfo:
        list(FileEnumerator().enumerate(missing))

    assert str(missing) in str(excinfo.value)


def test_enumerate_rejects_file_root(tmp_path: Path) -> None:
    target = tmp_path / "file.txt"
    _write(target)

    with pytest.raises(NotADirectoryError):
        list(FileEnumerator().enumerate(target))


def test_enumerate_propagates_listing_errors(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _write(tmp_path / "locked" / "secret.txt")

    real_walk = os.walk

    def _walk(top, onerror=None, **kwargs):
        for dirpath, dirnames, filenames in real_walk(top, onerror=onerror, **kwargs):
            if Path(dirpath).name == "locked" and onerror is not None:
                onerror(PermissionError(13, "Permission denied", dirpath))
            yield dirpath, dirnames, filenames

    monkeypatch.setattr("reposeal.enumerator.os.walk", _walk)

    with pytest.raises(PermissionError):
        list(FileEnumerator().enumerate(tmp_path))
