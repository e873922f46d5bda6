"""Blocking execution of external tools with captured output."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Mapping


@dataclass(frozen=True)
class CommandResult:
    """Completion status and combined stdout/stderr of one tool invocation."""

    args: tuple[str, ...]
    returncode: int
    output: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


Runner = Callable[..., CommandResult]


def run_command(
    args: Iterable[str],
    *,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> CommandResult:
    """Run ``args`` to completion, folding stderr into the captured output.

    A non-zero exit status is reported through ``returncode`` rather than raised,
    so callers decide whether it is fatal. ``FileNotFoundError`` still propagates
    when the executable itself cannot be found.
    """
    argv = tuple(args)
    completed = subprocess.run(
        list(argv),
        cwd=str(cwd) if cwd is not None else None,
        env=dict(env) if env is not None else None,
        check=False,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        errors="replace",
    )
    return CommandResult(args=argv, returncode=completed.returncode, output=completed.stdout or "")


__all__ = ["CommandResult", "Runner", "run_command"]
