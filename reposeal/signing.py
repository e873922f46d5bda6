"""Detached signing and verification of manifest files.

Signing is delegated to a ``Signer`` capability. The bundled implementation,
``GpgSigner``, shells out to GnuPG and is the only place that interprets the
tool's output: a signature is trusted when the machine-readable status stream
(``--status-fd``) reports ``GOODSIG`` and none of the failure statuses below.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Protocol, Set

from .errors import (
    ArtifactsMissing,
    SignManifestMissing,
    SignToolFailure,
    VerifyToolFailure,
)
from .logging import get_logger
from .models import SignatureCheck
from .runner import CommandResult, run_command

_STATUS_PREFIX = "[GNUPG:] "
_FAILURE_STATUSES = {"BADSIG", "ERRSIG", "EXPSIG", "EXPKEYSIG", "REVKEYSIG", "NO_PUBKEY"}
_HEX_KEY = re.compile(r"^(0x)?[0-9A-Fa-f]{8,40}$")
_USER_ID_EMAIL = re.compile(r"<([^<>]*)>\s*$")

logger = get_logger("signing")


class Signer(Protocol):
    """Produces and checks detached signatures over a file's exact bytes."""

    def sign(self, manifest_path: Path, signature_path: Path, key_id: Optional[str] = None) -> None:
        ...

    def verify(
        self, manifest_path: Path, signature_path: Path, key_id: Optional[str] = None
    ) -> SignatureCheck:
        ...


def _status_lines(output: str) -> List[List[str]]:
    lines = []
    for raw in output.splitlines():
        if raw.startswith(_STATUS_PREFIX):
            lines.append(raw[len(_STATUS_PREFIX):].split(" "))
    return lines


def _key_matches(expected: str, statuses: Iterable[List[str]]) -> bool:
    """Return True when the signing key reported by gpg matches ``expected``."""
    expected = expected.strip()
    if _HEX_KEY.match(expected):
        wanted = expected[2:] if expected.lower().startswith("0x") else expected
        wanted = wanted.upper()
        for fields in statuses:
            keyword, values = fields[0], fields[1:]
            if keyword == "GOODSIG" and values and values[0].upper().endswith(wanted):
                return True
            if keyword == "VALIDSIG" and values:
                fingerprints = [values[0]]
                if len(values) >= 10:
                    fingerprints.append(values[9])
                if any(fpr.upper().endswith(wanted) for fpr in fingerprints):
                    return True
        return False

    wanted = expected.lower()
    if wanted.startswith("<") and wanted.endswith(">"):
        wanted = wanted[1:-1].strip()
    for fields in statuses:
        if fields[0] == "GOODSIG" and wanted in _user_id_forms(" ".join(fields[2:])):
            return True
    return False


def _user_id_forms(user_id: str) -> Set[str]:
    """Return the full user id, its name and its e-mail address, lower-cased."""
    forms = {user_id.strip().lower()}
    match = _USER_ID_EMAIL.search(user_id)
    if match:
        forms.add(match.group(1).strip().lower())
        name = user_id[: match.start()].strip()
        if name:
            forms.add(name.lower())
    return forms


def interpret_gpg_status(output: str, key_id: Optional[str] = None) -> SignatureCheck:
    """Classify ``gpg --status-fd`` output into a ``SignatureCheck``."""
    statuses = _status_lines(output)
    keywords = {fields[0] for fields in statuses if fields}
    signer_key = None
    for fields in statuses:
        if fields[0] == "GOODSIG" and len(fields) > 1:
            signer_key = fields[1]
            break

    valid = "GOODSIG" in keywords and not keywords & _FAILURE_STATUSES
    if valid and key_id:
        valid = _key_matches(key_id, statuses)
    return SignatureCheck(valid=valid, key_id=signer_key, output=output)


class GpgSigner:
    """``Signer`` backed by the ``gpg`` executable."""

    def __init__(
        self,
        binary: str = "gpg",
        *,
        homedir: Path | None = None,
        runner: Callable[..., CommandResult] | None = None,
    ) -> None:
        self.binary = binary
        self.homedir = homedir
        self._runner = runner or run_command

    def sign(self, manifest_path: Path, signature_path: Path, key_id: Optional[str] = None) -> None:
        args = self._base_args()
        if key_id:
            args.extend(["--local-user", key_id])
        args.extend(["--armor", "--detach-sign", "--yes", "--output", str(signature_path), str(manifest_path)])
        try:
            result = self._runner(args, cwd=manifest_path.parent)
        except OSError as exc:
            raise SignToolFailure(f"Cannot run {self.binary}: {exc}", command=args, output=str(exc)) from exc
        if not result.ok:
            raise SignToolFailure(
                f"{self.binary} sign failed (rc={result.returncode})",
                command=args,
                returncode=result.returncode,
                output=result.output,
            )

    def verify(
        self, manifest_path: Path, signature_path: Path, key_id: Optional[str] = None
    ) -> SignatureCheck:
        args = self._base_args()
        args.extend(
            [
                "--batch",
                "--status-fd",
                "1",
                "--keyid-format",
                "LONG",
                "--verify",
                str(signature_path),
                str(manifest_path),
            ]
        )
        try:
            result = self._runner(args, cwd=manifest_path.parent)
        except OSError as exc:
            raise VerifyToolFailure(f"Cannot run {self.binary}: {exc}", command=args, output=str(exc)) from exc

        check = interpret_gpg_status(result.output, key_id)
        if check.valid and not result.ok:
            # A GOODSIG with a failing exit status is still not trustworthy.
            check = SignatureCheck(valid=False, key_id=check.key_id, output=result.output)
        if not result.ok:
            logger.debug("%s verify returned rc=%d", self.binary, result.returncode)
        return check

    def _base_args(self) -> List[str]:
        args = [self.binary]
        if self.homedir is not None:
            args.extend(["--homedir", str(self.homedir)])
        return args


def signature_path_for(manifest_path: Path) -> Path:
    """Return the detached signature path paired with ``manifest_path``."""
    return manifest_path.with_name(f"{manifest_path.name}.asc")


class SignatureManager:
    """Signs manifests and checks their detached signatures."""

    def __init__(self, signer: Signer | None = None) -> None:
        self.signer = signer or GpgSigner()

    def sign(self, manifest_path: Path | str, key_id: Optional[str] = None) -> Path:
        """Write ``<manifest>.asc``, replacing any earlier signature only on success."""
        manifest = Path(manifest_path)
        if not manifest.is_file():
            raise SignManifestMissing(f"Manifest not found: {manifest}")

        target = signature_path_for(manifest)
        staging = target.with_name(f".{target.name}.tmp")
        try:
            self.signer.sign(manifest, staging, key_id or None)
            os.replace(staging, target)
        finally:
            staging.unlink(missing_ok=True)
        logger.info("Signed %s", target)
        return target

    def verify(
        self,
        manifest_path: Path | str,
        signature_path: Path | str | None = None,
        key_id: Optional[str] = None,
    ) -> SignatureCheck:
        """Check the detached signature; a bad signature is a result, not an error."""
        manifest = Path(manifest_path)
        signature = Path(signature_path) if signature_path is not None else signature_path_for(manifest)
        missing = [str(path) for path in (manifest, signature) if not path.is_file()]
        if missing:
            raise ArtifactsMissing(f"Missing signature artifacts: {', '.join(missing)}")

        check = self.signer.verify(manifest, signature, key_id or None)
        logger.debug("Signature check for %s: valid=%s", manifest, check.valid)
        return check


__all__ = [
    "GpgSigner",
    "SignatureManager",
    "Signer",
    "interpret_gpg_status",
    "signature_path_for",
]
