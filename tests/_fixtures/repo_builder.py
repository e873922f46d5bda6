"""Helper utilities for constructing temporary repositories in tests."""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Mapping

from reposeal.manifest import HashManifestBuilder
from reposeal.models import HashManifest


class RepoBuilder:
    """Utility for laying out throwaway repositories under a shared scan root."""

    def __init__(self, tmp_path: Path) -> None:
        self.scan_root = tmp_path / "workspace"
        self.scan_root.mkdir()
        self._builder = HashManifestBuilder()

    def repo(self, name: str, files: Mapping[str, str] | None = None, *, git: bool = True) -> Path:
        """Create ``name`` under the scan root with an optional ``.git`` marker and files."""
        root = self.scan_root / name
        root.mkdir(parents=True, exist_ok=True)
        if git:
            (root / ".git").mkdir(exist_ok=True)
            (root / ".git" / "HEAD").write_text("ref: refs/heads/main\n", encoding="utf-8")
        if files:
            self.write(root, files)
        return root

    @staticmethod
    def write(root: Path, files: Mapping[str, str]) -> None:
        """Write `path -> contents` entries into a repository."""
        for relative, content in files.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            normalised = textwrap.dedent(content)
            path.write_text(normalised, encoding="utf-8")

    def build(self, root: Path) -> HashManifest:
        """Return a fresh manifest of the repository contents."""
        return self._builder.build(root)


__all__ = ["RepoBuilder"]
