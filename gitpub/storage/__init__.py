"""Versioned object stores and the commit pipeline."""

from .base import StorageClient, StorageError
from .github import GitHubStorage
from .local import LocalGitStorage
from .pipeline import CommitPipeline

__all__ = [
    "StorageClient",
    "StorageError",
    "GitHubStorage",
    "LocalGitStorage",
    "CommitPipeline",
]
