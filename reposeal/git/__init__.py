"""Version-control integration."""

from .sync import DEFAULT_COMMIT_MESSAGE, GitClient, RepositorySyncGateway, VersionControlClient

__all__ = ["DEFAULT_COMMIT_MESSAGE", "GitClient", "RepositorySyncGateway", "VersionControlClient"]
