"""Discovery of candidate repositories under a scan root."""

from __future__ import annotations

from pathlib import Path
from typing import List

from .models import VCS_METADATA_DIR


def is_repository(path: Path) -> bool:
    """Return True when ``path`` carries git metadata (a directory, or a worktree file)."""
    return path.is_dir() and (path / VCS_METADATA_DIR).exists()


def discover_repositories(root: Path | str) -> List[Path]:
    """Return immediate subdirectories of ``root`` that are repositories, sorted by name."""
    root_path = Path(root).expanduser().resolve()
    if not root_path.exists():
        raise FileNotFoundError(f"Scan root not found: {root}")
    if not root_path.is_dir():
        raise NotADirectoryError(f"Scan root is not a directory: {root}")
    return sorted(
        (child for child in root_path.iterdir() if is_repository(child)),
        key=lambda child: child.name,
    )


__all__ = ["discover_repositories", "is_repository"]
