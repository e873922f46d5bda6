"""Content verification of a repository against its hash manifest."""

from __future__ import annotations

from pathlib import Path

from .enumerator import resolve_root
from .errors import VerifyManifestMissing, VerifyManifestUnreadable
from .logging import get_logger
from .manifest import Hasher, Md5Hasher, read_manifest
from .models import (
    MANIFEST_FILENAME,
    REASON_MALFORMED,
    REASON_MISMATCH,
    REASON_MISSING,
    REASON_OUTSIDE_ROOT,
    REASON_UNREADABLE,
    IntegrityFailure,
    IntegrityReport,
)

logger = get_logger("integrity")


class IntegrityVerifier:
    """Re-hashes every file listed in a manifest and compares digests."""

    def __init__(self, hasher: Hasher | None = None) -> None:
        self.hasher = hasher or Md5Hasher()

    def verify(self, root: Path | str) -> IntegrityReport:
        root_path = resolve_root(root)
        manifest_path = root_path / MANIFEST_FILENAME
        if not manifest_path.is_file():
            raise VerifyManifestMissing(f"Manifest not found: {manifest_path}")

        try:
            manifest, malformed = read_manifest(manifest_path)
        except UnicodeDecodeError as exc:
            raise VerifyManifestUnreadable(
                f"Manifest is not valid UTF-8: {manifest_path} (byte {exc.start})"
            ) from exc
        report = IntegrityReport(manifest_path=manifest_path)
        for line in malformed:
            report.failures.append(
                IntegrityFailure(
                    path=f"{MANIFEST_FILENAME}:{line.number}",
                    reason=REASON_MALFORMED,
                    detail=line.text,
                )
            )

        for entry in manifest:
            report.checked += 1
            try:
                target = (root_path / entry.path).resolve()
                is_file = target.is_file()
            except ValueError as exc:
                report.failures.append(
                    IntegrityFailure(path=entry.path, reason=REASON_MALFORMED, detail=str(exc))
                )
                continue
            if not target.is_relative_to(root_path):
                report.failures.append(IntegrityFailure(path=entry.path, reason=REASON_OUTSIDE_ROOT))
                continue
            if not is_file:
                report.failures.append(IntegrityFailure(path=entry.path, reason=REASON_MISSING))
                continue
            try:
                actual = self.hasher.hash_file(target)
            except OSError as exc:
                report.failures.append(
                    IntegrityFailure(path=entry.path, reason=REASON_UNREADABLE, detail=str(exc))
                )
                continue
            if actual != entry.digest:
                report.failures.append(
                    IntegrityFailure(
                        path=entry.path,
                        reason=REASON_MISMATCH,
                        detail=f"expected {entry.digest}, found {actual}",
                    )
                )

        if report.passed:
            logger.debug("Integrity OK for %s (%d files)", root_path, report.checked)
        else:
            logger.debug("Integrity failed for %s: %s", root_path, ", ".join(report.failed_paths()))
        return report


def verify_integrity(root: Path | str, hasher: Hasher | None = None) -> bool:
    """Return True when every manifest entry under ``root`` matches its file."""
    return IntegrityVerifier(hasher).verify(root).passed


__all__ = ["IntegrityVerifier", "verify_integrity"]
