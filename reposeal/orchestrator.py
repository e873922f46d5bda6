"""Pipeline orchestration for publish/verify passes over many repositories."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable, Iterable, Optional

from .config import ReposealConfig
from .discovery import discover_repositories
from .errors import ReposealError, ToolError
from .git.sync import DEFAULT_COMMIT_MESSAGE, GitClient, RepositorySyncGateway
from .integrity import IntegrityVerifier
from .logging import get_logger, repository_context
from .manifest import HashManifestBuilder
from .models import (
    FLOW_PUBLISH,
    FLOW_VERIFY,
    MANIFEST_FILENAME,
    STAGE_BUILT,
    STAGE_INTEGRITY_CHECKED,
    STAGE_REPORTED,
    STAGE_SIGNATURE_CHECKED,
    STAGE_SIGNED,
    STAGE_SYNCED,
    STATUS_CANCELLED,
    STATUS_FAILED,
    OrchestrationReport,
    RepositoryOutcome,
    VerificationResult,
)
from .signing import GpgSigner, SignatureManager

Discover = Callable[[Path], Iterable[Path]]


class _Cancelled(Exception):
    """Internal signal raised between stages once cancellation is requested."""


class BatchOrchestrator:
    """Runs the manifest lifecycle across every repository under a scan root.

    Repositories are processed one at a time in discovery order. A failure in
    one repository ends that repository's pipeline only; it is recorded in the
    returned ``OrchestrationReport`` and the pass moves on.
    """

    def __init__(
        self,
        builder: HashManifestBuilder | None = None,
        signatures: SignatureManager | None = None,
        verifier: IntegrityVerifier | None = None,
        gateway: RepositorySyncGateway | None = None,
        discover: Discover | None = None,
        *,
        commit_message: str = DEFAULT_COMMIT_MESSAGE,
        push: bool = True,
    ) -> None:
        self.builder = builder or HashManifestBuilder()
        self.signatures = signatures or SignatureManager()
        self.verifier = verifier or IntegrityVerifier(self.builder.hasher)
        self.gateway = gateway or RepositorySyncGateway()
        self._discover = discover or discover_repositories
        self.commit_message = commit_message
        self.push = push
        self.logger = get_logger("orchestrator")

    @classmethod
    def from_config(
        cls,
        config: ReposealConfig,
        *,
        push: Optional[bool] = None,
        commit_message: Optional[str] = None,
    ) -> BatchOrchestrator:
        """Wire GnuPG and git collaborators from loaded settings."""
        signer = GpgSigner(config.signing.gpg_binary, homedir=config.signing.homedir)
        client = GitClient(
            config.git.binary,
            author_name=config.publish.author_name,
            author_email=config.publish.author_email,
        )
        return cls(
            signatures=SignatureManager(signer),
            gateway=RepositorySyncGateway(client),
            commit_message=commit_message or config.publish.commit_message,
            push=config.publish.push if push is None else push,
        )

    # ------------------------------------------------------------------
    # Batch entry points

    def run_publish(
        self,
        root: Path | str,
        key_id: Optional[str] = None,
        *,
        cancel: threading.Event | None = None,
    ) -> OrchestrationReport:
        """Build, sign and publish manifests for every repository under ``root``."""
        return self._run_batch(FLOW_PUBLISH, root, key_id, cancel)

    def run_verify(
        self,
        root: Path | str,
        key_id: Optional[str] = None,
        *,
        cancel: threading.Event | None = None,
    ) -> OrchestrationReport:
        """Check signatures and file contents for every repository under ``root``."""
        return self._run_batch(FLOW_VERIFY, root, key_id, cancel)

    # ------------------------------------------------------------------
    # Single-repository pipelines

    def publish_repository(
        self,
        repo: Path | str,
        key_id: Optional[str] = None,
        *,
        cancel: threading.Event | None = None,
    ) -> RepositoryOutcome:
        repo_path = Path(repo).expanduser().resolve()
        outcome = RepositoryOutcome(path=repo_path, flow=FLOW_PUBLISH)
        outcome.note(f"Processing: {repo_path}")
        try:
            manifest_path = self.builder.write(repo_path)
            outcome.stage = STAGE_BUILT
            outcome.note(f"Generated: {manifest_path}")
            self._checkpoint(cancel)

            signature_path = self.signatures.sign(manifest_path, key_id)
            outcome.stage = STAGE_SIGNED
            outcome.note(f"Signed: {signature_path}")
            self._checkpoint(cancel)

            result = self.gateway.publish(
                repo_path,
                [manifest_path, signature_path],
                message=self.commit_message,
                push=self.push,
            )
            outcome.stage = STAGE_SYNCED
            if result.output:
                outcome.note(result.output.rstrip("\n"))
            if not result.changed:
                outcome.note(f"No changes to commit in {repo_path}")
            elif result.pushed:
                outcome.note(f"Push OK for {repo_path}")
            else:
                outcome.note(f"Committed without push in {repo_path}")
        except _Cancelled:
            self._mark_cancelled(outcome)
        except (ReposealError, OSError) as exc:
            self._mark_failed(outcome, exc)
        return outcome

    def verify_repository(
        self,
        repo: Path | str,
        key_id: Optional[str] = None,
        *,
        cancel: threading.Event | None = None,
    ) -> RepositoryOutcome:
        repo_path = Path(repo).expanduser().resolve()
        verification = VerificationResult()
        outcome = RepositoryOutcome(path=repo_path, flow=FLOW_VERIFY, verification=verification)
        outcome.note(f"Verifying: {repo_path}")
        failure: Exception | None = None
        try:
            try:
                check = self.signatures.verify(repo_path / MANIFEST_FILENAME, key_id=key_id)
            except (ReposealError, OSError) as exc:
                failure = exc
                outcome.note(f"Signature check failed in {repo_path}: {exc}")
                self._note_output(outcome, exc)
            else:
                verification.signature_valid = check.valid
                if check.output:
                    outcome.note(check.output.rstrip("\n"))
                if check.valid:
                    outcome.note(f"Valid signature in {repo_path}")
                else:
                    outcome.note(f"Signature NOT valid or not verifiable in {repo_path}")
            outcome.stage = STAGE_SIGNATURE_CHECKED
            self._checkpoint(cancel)

            # The content check runs even when the signature check did not pass.
            try:
                report = self.verifier.verify(repo_path)
            except (ReposealError, OSError) as exc:
                failure = failure or exc
                outcome.note(f"Integrity check failed in {repo_path}: {exc}")
            else:
                verification.integrity_valid = report.passed
                verification.per_file_failures = report.failed_paths()
                for item in report.failures:
                    detail = f" ({item.detail})" if item.detail else ""
                    outcome.note(f"{item.path}: FAILED {item.reason}{detail}")
                if report.passed:
                    outcome.note(f"Integrity OK in {repo_path} ({report.checked} files)")
                else:
                    outcome.note(f"Integrity FAILED in {repo_path} ({len(report.failures)} problems)")
            outcome.stage = STAGE_INTEGRITY_CHECKED
            self._checkpoint(cancel)
        except _Cancelled:
            self._mark_cancelled(outcome)
            return outcome

        outcome.stage = STAGE_REPORTED
        outcome.note(
            "Result: signature={}, integrity={}".format(
                "OK" if verification.signature_valid else "FAIL",
                "OK" if verification.integrity_valid else "FAIL",
            )
        )
        if failure is not None:
            outcome.status = STATUS_FAILED
            outcome.failure_kind = type(failure).__name__
        elif not verification.signature_valid:
            outcome.status = STATUS_FAILED
            outcome.failure_kind = "InvalidSignature"
        elif not verification.integrity_valid:
            outcome.status = STATUS_FAILED
            outcome.failure_kind = "IntegrityMismatch"
        if outcome.succeeded:
            self.logger.info("Verified %s", repo_path)
        else:
            self.logger.warning("Verification failed for %s (%s)", repo_path, outcome.failure_kind)
        return outcome

    # ------------------------------------------------------------------
    # Helpers

    def _run_batch(
        self,
        flow: str,
        root: Path | str,
        key_id: Optional[str],
        cancel: threading.Event | None,
    ) -> OrchestrationReport:
        root_path = Path(root).expanduser().resolve()
        repositories = list(self._discover(root_path))
        self.logger.info("Starting %s pass over %d repositories in %s", flow, len(repositories), root_path)
        report = OrchestrationReport(flow=flow, root=root_path)
        pipeline = self.publish_repository if flow == FLOW_PUBLISH else self.verify_repository

        for repo in repositories:
            if cancel is not None and cancel.is_set():
                outcome = RepositoryOutcome(path=Path(repo), flow=flow)
                self._mark_cancelled(outcome)
                report.outcomes.append(outcome)
                continue
            with repository_context(repo):
                report.outcomes.append(pipeline(repo, key_id or None, cancel=cancel))

        self.logger.info(
            "Finished %s pass: %d succeeded, %d failed",
            flow,
            len(report.succeeded),
            len(report.failed),
        )
        return report

    @staticmethod
    def _checkpoint(cancel: threading.Event | None) -> None:
        if cancel is not None and cancel.is_set():
            raise _Cancelled()

    def _mark_failed(self, outcome: RepositoryOutcome, exc: BaseException) -> None:
        outcome.status = STATUS_FAILED
        outcome.failure_kind = type(exc).__name__
        outcome.note(f"ERROR after stage '{outcome.stage}' in {outcome.path}: {exc}")
        self._note_output(outcome, exc)
        self.logger.warning("%s failed for %s after %s: %s", outcome.flow, outcome.path, outcome.stage, exc)

    def _mark_cancelled(self, outcome: RepositoryOutcome) -> None:
        outcome.status = STATUS_CANCELLED
        outcome.note(f"Cancelled after stage '{outcome.stage}' in {outcome.path}")
        self.logger.info("Cancelled %s for %s", outcome.flow, outcome.path)

    @staticmethod
    def _note_output(outcome: RepositoryOutcome, exc: BaseException) -> None:
        if isinstance(exc, ToolError) and exc.output:
            outcome.note(exc.output.rstrip("\n"))


__all__ = ["BatchOrchestrator"]
