"""Configuration loading for reposeal (.reposeal.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import ReposealError
from .git.sync import DEFAULT_COMMIT_MESSAGE

CONFIG_FILENAME = ".reposeal.yml"


class ConfigError(ReposealError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class SigningConfig:
    """Key selection and GnuPG invocation settings."""

    key_id: Optional[str] = None
    gpg_binary: str = "gpg"
    homedir: Optional[Path] = None


@dataclass
class PublishConfig:
    """Commit and push behaviour for manifest artifacts."""

    commit_message: str = DEFAULT_COMMIT_MESSAGE
    push: bool = True
    author_name: Optional[str] = None
    author_email: Optional[str] = None


@dataclass
class GitConfig:
    """Git executable settings."""

    binary: str = "git"


@dataclass
class ReposealConfig:
    """Represents the settings defined in .reposeal.yml."""

    root: Path
    signing: SigningConfig = field(default_factory=SigningConfig)
    publish: PublishConfig = field(default_factory=PublishConfig)
    git: GitConfig = field(default_factory=GitConfig)


def load_config(config_path: Path) -> ReposealConfig:
    """Load configuration from disk, returning defaults when the file is absent."""
    config_file = _resolve_config_path(Path(config_path))
    root = config_file.parent.resolve()

    if not config_file.exists():
        return ReposealConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    signing = SigningConfig()
    signing_data = _as_dict(data.get("signing"))
    if signing_data:
        signing.key_id = _as_str(signing_data.get("key_id")) or None
        signing.gpg_binary = _as_str(signing_data.get("gpg_binary")) or signing.gpg_binary
        homedir = _as_str(signing_data.get("homedir"))
        if homedir:
            signing.homedir = (root / Path(homedir).expanduser()).resolve()

    publish = PublishConfig()
    publish_data = _as_dict(data.get("publish"))
    if publish_data:
        publish.commit_message = _as_str(publish_data.get("commit_message")) or publish.commit_message
        push = _as_bool(publish_data.get("push"))
        if push is not None:
            publish.push = push
        publish.author_name = _as_str(publish_data.get("author_name"))
        publish.author_email = _as_str(publish_data.get("author_email"))

    git = GitConfig()
    git_data = _as_dict(data.get("git"))
    if git_data:
        git.binary = _as_str(git_data.get("binary")) or git.binary

    return ReposealConfig(root=root, signing=signing, publish=publish, git=git)


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read {path}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    return str(value) if isinstance(value, (str, int, float)) else None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "GitConfig",
    "PublishConfig",
    "ReposealConfig",
    "SigningConfig",
    "load_config",
]
