"""Git publishing of manifest artifacts."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Protocol, Sequence, Type

from ..errors import CommitFailure, PushFailure, StageFailure, SyncError
from ..logging import get_logger
from ..models import PublishResult
from ..runner import CommandResult, run_command

DEFAULT_COMMIT_MESSAGE = "Add signed hashes file"

logger = get_logger("git")


class VersionControlClient(Protocol):
    """Narrow view of the version-control operations publishing needs."""

    def stage(self, repo: Path, paths: Sequence[Path | str]) -> str:
        ...

    def has_pending_changes(self, repo: Path, paths: Sequence[Path | str]) -> bool:
        ...

    def commit(self, repo: Path, message: str, paths: Sequence[Path | str]) -> str:
        ...

    def push(self, repo: Path) -> str:
        ...


class GitClient:
    """``VersionControlClient`` driving the ``git`` executable."""

    def __init__(
        self,
        binary: str = "git",
        *,
        author_name: Optional[str] = None,
        author_email: Optional[str] = None,
        runner: Callable[..., CommandResult] | None = None,
    ) -> None:
        self.binary = binary
        self.author_name = author_name
        self.author_email = author_email
        self._runner = runner or run_command

    def stage(self, repo: Path, paths: Sequence[Path | str]) -> str:
        return self._run(["add", "--", *self._relative(repo, paths)], cwd=repo, error=StageFailure).output

    def has_pending_changes(self, repo: Path, paths: Sequence[Path | str]) -> bool:
        status = self._run(
            ["status", "--porcelain", "--", *self._relative(repo, paths)],
            cwd=repo,
            error=StageFailure,
        )
        return bool(status.output.strip())

    def commit(self, repo: Path, message: str, paths: Sequence[Path | str]) -> str:
        return self._run(
            ["commit", "-m", message, "--", *self._relative(repo, paths)],
            cwd=repo,
            error=CommitFailure,
            env=self._commit_env(),
        ).output

    def push(self, repo: Path) -> str:
        return self._run(["push"], cwd=repo, error=PushFailure).output

    # ------------------------------------------------------------------
    # Helpers

    @staticmethod
    def _relative(repo: Path, paths: Iterable[Path | str]) -> List[str]:
        relative = []
        for path in paths:
            candidate = Path(path)
            try:
                relative.append(candidate.relative_to(repo).as_posix())
            except ValueError:
                relative.append(candidate.as_posix())
        return relative

    def _commit_env(self) -> Optional[Dict[str, str]]:
        if not self.author_name and not self.author_email:
            return None
        env = os.environ.copy()
        if self.author_name:
            env["GIT_AUTHOR_NAME"] = self.author_name
            env["GIT_COMMITTER_NAME"] = self.author_name
        if self.author_email:
            env["GIT_AUTHOR_EMAIL"] = self.author_email
            env["GIT_COMMITTER_EMAIL"] = self.author_email
        return env

    def _run(
        self,
        args: Sequence[str],
        *,
        cwd: Path,
        error: Type[SyncError],
        env: Optional[Dict[str, str]] = None,
    ) -> CommandResult:
        command = [self.binary, *args]
        try:
            result = self._runner(command, cwd=cwd, env=env)
        except OSError as exc:
            raise error(f"Cannot run {self.binary}: {exc}", command=command, output=str(exc)) from exc
        if not result.ok:
            raise error(
                f"Command failed (rc={result.returncode}): {' '.join(command)}",
                command=command,
                returncode=result.returncode,
                output=result.output,
            )
        return result


class RepositorySyncGateway:
    """Stages, commits and pushes manifest artifacts for one repository at a time."""

    def __init__(self, client: VersionControlClient | None = None) -> None:
        self.client = client or GitClient()

    def publish(
        self,
        repo: Path | str,
        paths: Sequence[Path | str],
        *,
        message: str = DEFAULT_COMMIT_MESSAGE,
        push: bool = True,
    ) -> PublishResult:
        """Commit ``paths`` if they changed and push; an unchanged tree is a success."""
        repo_path = Path(repo)
        transcript = [self.client.stage(repo_path, paths)]
        if not self.client.has_pending_changes(repo_path, paths):
            logger.info("No changes to commit in %s", repo_path)
            return PublishResult(changed=False, output=_join(transcript))

        transcript.append(self.client.commit(repo_path, message, paths))
        if not push:
            logger.info("Committed %s (push skipped)", repo_path)
            return PublishResult(changed=True, pushed=False, output=_join(transcript))

        transcript.append(self.client.push(repo_path))
        logger.info("Push OK for %s", repo_path)
        return PublishResult(changed=True, pushed=True, output=_join(transcript))


def _join(outputs: Iterable[str]) -> str:
    return "".join(output for output in outputs if output)


__all__ = [
    "DEFAULT_COMMIT_MESSAGE",
    "GitClient",
    "RepositorySyncGateway",
    "VersionControlClient",
]
