"""File enumeration for repository manifests."""

from __future__ import annotations

import os
import stat
from pathlib import Path
from typing import Iterator, List

from .models import MANIFEST_FILENAME, SIGNATURE_FILENAME, VCS_METADATA_DIR

_ARTIFACT_FILES = {MANIFEST_FILENAME, SIGNATURE_FILENAME}


def _raise_walk_error(exc: OSError) -> None:
    raise exc


def resolve_root(root: Path | str) -> Path:
    """Return ``root`` as an absolute directory path or raise the matching OSError."""
    root_path = Path(root).expanduser().resolve()
    if not root_path.exists():
        raise FileNotFoundError(f"Repository path not found: {root}")
    if not root_path.is_dir():
        raise NotADirectoryError(f"Repository path is not a directory: {root}")
    if not os.access(root_path, os.R_OK | os.X_OK):
        raise PermissionError(f"Repository path is not readable: {root}")
    return root_path


def _walk(root: Path) -> List[str]:
    found: List[str] = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise_walk_error):
        current_dir = Path(dirpath)
        rel_dir = current_dir.relative_to(root).as_posix() if current_dir != root else ""

        if not rel_dir:
            dirnames[:] = [name for name in dirnames if name != VCS_METADATA_DIR]

        for filename in filenames:
            if not rel_dir and (filename in _ARTIFACT_FILES or filename == VCS_METADATA_DIR):
                continue
            full_path = current_dir / filename
            # lstat: symlinks are never followed, dangling or not.
            if not stat.S_ISREG(os.lstat(full_path).st_mode):
                continue
            found.append(f"{rel_dir}/{filename}" if rel_dir else filename)
    return found


class FileEnumerator:
    """Lists the regular files a manifest should cover."""

    def enumerate(self, root: Path | str) -> Iterator[str]:
        """Yield repository-relative POSIX paths in lexicographic order.

        Every call walks the filesystem again. The top-level ``.git`` entry and
        the manifest artifacts at the root are skipped; symlinks are skipped
        rather than followed. Raises ``FileNotFoundError``, ``NotADirectoryError``
        or ``PermissionError`` when the tree cannot be listed.
        """
        root_path = resolve_root(root)
        yield from sorted(_walk(root_path))


__all__ = ["FileEnumerator", "resolve_root"]
