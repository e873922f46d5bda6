"""Logging utilities for reposeal commands.

Records emitted while a repository is being processed carry its path in the
``repository`` attribute (``-`` outside any repository), so a batch log file
can be filtered per repository.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import Iterator

_LOGGER_NAME = "reposeal"
_NO_REPOSITORY = "-"

_current_repository: ContextVar[str] = ContextVar("reposeal_repository", default=_NO_REPOSITORY)


class RepositoryContextFilter(logging.Filter):
    """Stamps each record with the repository currently being processed."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.repository = _current_repository.get()
        return True


@contextmanager
def repository_context(path: Path | str) -> Iterator[None]:
    """Attribute log records emitted inside the block to ``path``."""
    token = _current_repository.set(str(path))
    try:
        yield
    finally:
        _current_repository.reset(token)


def get_logger(name: str | None = None) -> logging.Logger:
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Install a console handler and, when ``log_file`` is given, a per-repository file sink."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    context = RepositoryContextFilter()

    console = logging.StreamHandler()
    console.setLevel(level)
    console.addFilter(context)
    console.setFormatter(logging.Formatter("[reposeal] %(levelname)s %(message)s"))
    logger.addHandler(console)

    if log_file is not None:
        sink = logging.FileHandler(log_file, encoding="utf-8")
        sink.setLevel(level)
        sink.addFilter(context)
        sink.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s [%(repository)s] %(message)s")
        )
        logger.addHandler(sink)

    return logger


__all__ = ["RepositoryContextFilter", "configure_logging", "get_logger", "repository_context"]
