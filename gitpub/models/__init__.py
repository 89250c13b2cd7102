"""Data models for gitpub."""

from .canonical import (
    Record,
    ENTRY_TYPE,
    HEADER_RENAMES,
    HEADER_INVERSE_RENAMES,
    IGNORED_HEADER_PROPERTIES,
    COMPLEX_PROPERTIES,
    MediaFile,
    FormattedPost,
)
from .updates import UpdateInstruction
from .storage import (
    FILE_MODE,
    StoredFile,
    DirectoryEntry,
    TreeEntry,
    CommitFile,
    WriteStatus,
    CommitState,
    CommitResult,
)
from .results import PublishResult
from .settings import PublishSettings, GitHubSettings, EnrichmentSettings

__all__ = [
    "Record",
    "ENTRY_TYPE",
    "HEADER_RENAMES",
    "HEADER_INVERSE_RENAMES",
    "IGNORED_HEADER_PROPERTIES",
    "COMPLEX_PROPERTIES",
    "MediaFile",
    "FormattedPost",
    "UpdateInstruction",
    "FILE_MODE",
    "StoredFile",
    "DirectoryEntry",
    "TreeEntry",
    "CommitFile",
    "WriteStatus",
    "CommitState",
    "CommitResult",
    "PublishResult",
    "PublishSettings",
    "GitHubSettings",
    "EnrichmentSettings",
]
