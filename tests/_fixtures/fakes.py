"""Test doubles for the signing and version-control collaborators."""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from reposeal.errors import PushFailure
from reposeal.models import SignatureCheck


class DigestSigner:
    """Signer that 'signs' by recording a SHA-256 of the manifest bytes."""

    def __init__(self, key_id: str = "TESTKEY") -> None:
        self.key_id = key_id
        self.sign_calls: List[Tuple[Path, Path, Optional[str]]] = []

    def sign(self, manifest_path: Path, signature_path: Path, key_id: Optional[str] = None) -> None:
        self.sign_calls.append((manifest_path, signature_path, key_id))
        digest = hashlib.sha256(manifest_path.read_bytes()).hexdigest()
        signature_path.write_text(
            "-----BEGIN PGP SIGNATURE-----\n"
            f"{key_id or self.key_id}:{digest}\n"
            "-----END PGP SIGNATURE-----\n",
            encoding="utf-8",
        )

    def verify(
        self, manifest_path: Path, signature_path: Path, key_id: Optional[str] = None
    ) -> SignatureCheck:
        body = signature_path.read_text(encoding="utf-8").splitlines()[1]
        signer_key, _, digest = body.partition(":")
        valid = digest == hashlib.sha256(manifest_path.read_bytes()).hexdigest()
        if key_id and key_id != signer_key:
            valid = False
        output = "Good signature" if valid else "BAD signature"
        return SignatureCheck(valid=valid, key_id=signer_key, output=output)


class RecordingVcs:
    """VersionControlClient that records calls and reports configurable state."""

    def __init__(self, *, pending: bool = True, fail_push_for: Sequence[str] = ()) -> None:
        self.pending = pending
        self.fail_push_for = set(fail_push_for)
        self.calls: List[Tuple[str, str]] = []

    def stage(self, repo: Path, paths: Sequence[Path | str]) -> str:
        self.calls.append(("stage", repo.name))
        return ""

    def has_pending_changes(self, repo: Path, paths: Sequence[Path | str]) -> bool:
        self.calls.append(("status", repo.name))
        return self.pending

    def commit(self, repo: Path, message: str, paths: Sequence[Path | str]) -> str:
        self.calls.append(("commit", repo.name))
        return f"[main abc1234] {message}\n"

    def push(self, repo: Path) -> str:
        self.calls.append(("push", repo.name))
        if repo.name in self.fail_push_for:
            raise PushFailure(
                "Command failed (rc=1): git push",
                command=["git", "push"],
                returncode=1,
                output="fatal: could not read from remote repository\n",
            )
        return ""

    def names(self, operation: str) -> List[str]:
        return [name for op, name in self.calls if op == operation]


__all__ = ["DigestSigner", "RecordingVcs"]
