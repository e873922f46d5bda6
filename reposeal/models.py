"""Core data models shared across reposeal components."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional

MANIFEST_FILENAME = "hashes.md5"
SIGNATURE_FILENAME = "hashes.md5.asc"
VCS_METADATA_DIR = ".git"

FLOW_PUBLISH = "publish"
FLOW_VERIFY = "verify"

STAGE_DISCOVERED = "discovered"
STAGE_BUILT = "built"
STAGE_SIGNED = "signed"
STAGE_SYNCED = "synced"
STAGE_SIGNATURE_CHECKED = "signature-checked"
STAGE_INTEGRITY_CHECKED = "integrity-checked"
STAGE_REPORTED = "reported"

STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"
STATUS_CANCELLED = "cancelled"

REASON_MISSING = "missing"
REASON_UNREADABLE = "unreadable"
REASON_MISMATCH = "mismatch"
REASON_MALFORMED = "malformed"
REASON_OUTSIDE_ROOT = "outside-root"


@dataclass(frozen=True)
class ManifestEntry:
    """Recorded digest for one file, keyed by its path relative to the repository root."""

    path: str
    digest: str


@dataclass
class HashManifest:
    """Ordered list of manifest entries for one repository."""

    entries: List[ManifestEntry] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[ManifestEntry]:
        return iter(self.entries)

    def paths(self) -> List[str]:
        return [entry.path for entry in self.entries]

    def as_dict(self) -> Dict[str, str]:
        return {entry.path: entry.digest for entry in self.entries}


@dataclass(frozen=True)
class SignatureCheck:
    """Structured outcome of a detached signature verification."""

    valid: bool
    key_id: Optional[str] = None
    output: str = ""


@dataclass(frozen=True)
class IntegrityFailure:
    """A manifest entry that did not check out."""

    path: str
    reason: str
    detail: str = ""


@dataclass
class IntegrityReport:
    """Per-file results of re-hashing a repository against its manifest."""

    manifest_path: Path
    checked: int = 0
    failures: List[IntegrityFailure] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.failures

    def failed_paths(self) -> List[str]:
        return [failure.path for failure in self.failures]


@dataclass
class VerificationResult:
    """Signature and content verdicts for one repository."""

    signature_valid: bool = False
    integrity_valid: bool = False
    per_file_failures: List[str] = field(default_factory=list)

    @property
    def verified(self) -> bool:
        return self.signature_valid and self.integrity_valid


@dataclass(frozen=True)
class PublishResult:
    """Outcome of staging, committing and pushing manifest artifacts."""

    changed: bool
    pushed: bool = False
    output: str = ""


@dataclass
class RepositoryOutcome:
    """How far one repository got through a pipeline and how it ended."""

    path: Path
    flow: str
    stage: str = STAGE_DISCOVERED
    status: str = STATUS_SUCCESS
    failure_kind: Optional[str] = None
    log: List[str] = field(default_factory=list)
    verification: Optional[VerificationResult] = None

    @property
    def succeeded(self) -> bool:
        return self.status == STATUS_SUCCESS

    def note(self, message: str) -> None:
        self.log.append(message)


@dataclass
class OrchestrationReport:
    """Aggregate result of one orchestration pass over a scan root."""

    flow: str
    root: Path
    outcomes: List[RepositoryOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> List[RepositoryOutcome]:
        return [outcome for outcome in self.outcomes if outcome.succeeded]

    @property
    def failed(self) -> List[RepositoryOutcome]:
        return [outcome for outcome in self.outcomes if outcome.status == STATUS_FAILED]

    @property
    def ok(self) -> bool:
        return all(outcome.succeeded for outcome in self.outcomes)
