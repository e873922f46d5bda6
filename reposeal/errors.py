"""Exception hierarchy for manifest, signing and publishing failures."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence


class ReposealError(RuntimeError):
    """Base class for errors raised by reposeal components."""


class ToolError(ReposealError):
    """Raised when an external tool exits unsuccessfully."""

    def __init__(
        self,
        message: str,
        *,
        command: Sequence[str] | None = None,
        returncode: int | None = None,
        output: str = "",
    ) -> None:
        super().__init__(message)
        self.command = list(command) if command is not None else []
        self.returncode = returncode
        self.output = output


class BuildError(ReposealError):
    """Raised when a manifest cannot be built for every file in the tree."""

    def __init__(self, path: Path | str, cause: BaseException | str) -> None:
        self.path = str(path)
        self.cause = cause
        super().__init__(f"Cannot hash {self.path}: {cause}")


class SignError(ReposealError):
    """Base class for signing failures."""


class SignManifestMissing(SignError):
    """The manifest to sign does not exist."""


class SignToolFailure(SignError, ToolError):
    """The signing tool failed to produce a signature."""


class VerifyError(ReposealError):
    """Base class for verification failures that prevent a verdict."""


class ArtifactsMissing(VerifyError):
    """The manifest or its signature is missing."""


class VerifyManifestMissing(VerifyError):
    """No manifest exists to check file contents against."""


class VerifyManifestUnreadable(VerifyError):
    """The manifest exists but its text cannot be decoded."""


class VerifyToolFailure(VerifyError, ToolError):
    """The verification tool could not be executed."""


class SyncError(ToolError):
    """Base class for version-control failures while publishing."""


class StageFailure(SyncError):
    """Staging the manifest artifacts failed."""


class CommitFailure(SyncError):
    """Creating the commit failed."""


class PushFailure(SyncError):
    """Pushing to the remote failed."""


__all__ = [
    "ArtifactsMissing",
    "BuildError",
    "CommitFailure",
    "PushFailure",
    "ReposealError",
    "SignError",
    "SignManifestMissing",
    "SignToolFailure",
    "StageFailure",
    "SyncError",
    "ToolError",
    "VerifyError",
    "VerifyManifestMissing",
    "VerifyManifestUnreadable",
    "VerifyToolFailure",
]
