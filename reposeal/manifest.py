"""Hash manifest construction, serialization and parsing."""

from __future__ import annotations

import hashlib
import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Protocol, Tuple

from .enumerator import FileEnumerator, resolve_root
from .errors import BuildError
from .logging import get_logger
from .models import MANIFEST_FILENAME, HashManifest, ManifestEntry

_CHUNK_SIZE = 1024 * 1024
_PATH_PREFIX = "./"
_LINE_PATTERN = re.compile(r"^(?P<digest>[0-9a-fA-F]{32}) [ *](?P<path>.+)$")

logger = get_logger("manifest")


class Hasher(Protocol):
    """Computes the content digest recorded for each file."""

    def hash_file(self, path: Path) -> str:
        ...


class Md5Hasher:
    """Streams file content through MD5, matching ``md5sum`` output."""

    def hash_file(self, path: Path) -> str:
        digest = hashlib.md5(usedforsecurity=False)
        with path.open("rb") as handle:
            for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
                digest.update(chunk)
        return digest.hexdigest()


@dataclass(frozen=True)
class MalformedLine:
    """A manifest line that could not be parsed."""

    number: int
    text: str


def render_manifest(manifest: HashManifest) -> str:
    """Serialize ``manifest`` in checksum-listing format (``<digest>  ./<path>``)."""
    return "".join(f"{entry.digest}  {_PATH_PREFIX}{entry.path}\n" for entry in manifest)


def parse_manifest(text: str) -> Tuple[HashManifest, List[MalformedLine]]:
    """Parse manifest text, returning entries and the lines that did not parse.

    Accepts the binary-mode marker (``<digest> *path``) and paths without the
    ``./`` prefix, as written by other checksum tools.
    """
    entries: List[ManifestEntry] = []
    malformed: List[MalformedLine] = []
    # Only "\n" separates lines; other line-break characters are legal in file names.
    for number, raw_line in enumerate(text.split("\n"), start=1):
        line = raw_line.rstrip("\r")
        if not line.strip():
            continue
        match = _LINE_PATTERN.match(line)
        if match is None:
            malformed.append(MalformedLine(number=number, text=line))
            continue
        path = match.group("path")
        if path.startswith(_PATH_PREFIX):
            path = path[len(_PATH_PREFIX):]
        entries.append(ManifestEntry(path=path, digest=match.group("digest").lower()))
    return HashManifest(entries=entries), malformed


def read_manifest(path: Path) -> Tuple[HashManifest, List[MalformedLine]]:
    return parse_manifest(path.read_text(encoding="utf-8"))


class HashManifestBuilder:
    """Builds the hash manifest for a repository and writes it to disk."""

    def __init__(
        self,
        enumerator: FileEnumerator | None = None,
        hasher: Hasher | None = None,
    ) -> None:
        self.enumerator = enumerator or FileEnumerator()
        self.hasher = hasher or Md5Hasher()

    def build(self, root: Path | str) -> HashManifest:
        """Hash every enumerated file; any failure aborts with ``BuildError``."""
        root_path = resolve_root(root)
        entries: List[ManifestEntry] = []
        for rel_path in self.enumerator.enumerate(root_path):
            if "\n" in rel_path or "\r" in rel_path:
                raise BuildError(rel_path, "line breaks cannot be stored in a manifest path")
            try:
                rel_path.encode("utf-8")
            except UnicodeEncodeError as exc:
                raise BuildError(rel_path, "path is not valid UTF-8") from exc
            try:
                digest = self.hasher.hash_file(root_path / rel_path)
            except OSError as exc:
                raise BuildError(rel_path, exc) from exc
            logger.debug("%s  %s", digest, rel_path)
            entries.append(ManifestEntry(path=rel_path, digest=digest))
        return HashManifest(entries=entries)

    def write(self, root: Path | str) -> Path:
        """Build the manifest and atomically replace ``hashes.md5`` in ``root``."""
        root_path = resolve_root(root)
        manifest = self.build(root_path)
        target = root_path / MANIFEST_FILENAME
        write_atomic(target, render_manifest(manifest).encode("utf-8"))
        logger.info("Wrote %s (%d entries)", target, len(manifest))
        return target


def write_atomic(target: Path, payload: bytes) -> None:
    """Replace ``target`` with ``payload`` so readers see the old or new file, never a mix."""
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(payload)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, target)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


__all__ = [
    "HashManifestBuilder",
    "Hasher",
    "MalformedLine",
    "Md5Hasher",
    "parse_manifest",
    "read_manifest",
    "render_manifest",
    "write_atomic",
]
