"""
Storage data models for gitpub.

These models describe the objects exchanged with a versioned object store:
files read by path, directory listings, tree entries and commit outcomes.
"""

from enum import Enum
from typing import List, Optional, Union
from pydantic import BaseModel, Field


# Regular, non-executable file mode for tree entries.
FILE_MODE = "100644"


class StoredFile(BaseModel):
    """
    A file read from the store together with its content hash.
    """
    
    path: str = Field(
        ...,
        description="Repository path of the file"
    )
    
    content: bytes = Field(
        default=b"",
        description="The raw file content"
    )
    
    sha: str = Field(
        ...,
        description="The store's content hash, required to update or delete the file"
    )
    
    @property
    def text(self) -> str:
        """The content decoded as UTF-8."""
        return self.content.decode("utf-8", errors="replace")


class DirectoryEntry(BaseModel):
    """
    One entry of a directory listing.
    """
    
    path: str = Field(..., description="Repository path of the entry")
    name: str = Field(..., description="Final path component")
    sha: Optional[str] = Field(default=None, description="Object hash, when the store reports it")


class TreeEntry(BaseModel):
    """
    A path-to-blob binding used when building a new tree on top of a base tree.
    
    An entry with `sha=None` removes the path from the tree.
    """
    
    path: str = Field(..., description="Repository path")
    sha: Optional[str] = Field(default=None, description="Blob hash, or None to remove the path")
    mode: str = Field(default=FILE_MODE, description="Git file mode")


class CommitFile(BaseModel):
    """
    A file to be written as part of a multi-file commit.
    """
    
    path: str = Field(..., description="Repository path")
    content: Union[bytes, str] = Field(..., description="File content; text is encoded as UTF-8")
    
    def data(self) -> bytes:
        """Return the content as bytes."""
        if isinstance(self.content, str):
            return self.content.encode("utf-8")
        return self.content


class WriteStatus(str, Enum):
    """Outcome of a single-file write."""
    
    OK = "ok"
    CONFLICT = "conflict"
    FAILED = "failed"


class CommitState(str, Enum):
    """
    States of the multi-object commit protocol.
    
    Each state is reached only after the previous step succeeded; any failure
    moves the commit to ABORTED.
    """
    
    PENDING = "pending"
    REF_RESOLVED = "ref_resolved"
    COMMIT_FETCHED = "commit_fetched"
    BLOBS_CREATED = "blobs_created"
    TREE_CREATED = "tree_created"
    COMMIT_CREATED = "commit_created"
    REF_UPDATED = "ref_updated"
    ABORTED = "aborted"


class CommitResult(BaseModel):
    """
    The outcome of a commit pipeline operation.
    """
    
    paths: List[str] = Field(
        default_factory=list,
        description="Paths written (or deleted) by the operation"
    )
    
    state: CommitState = Field(
        default=CommitState.PENDING,
        description="The last state reached"
    )
    
    error: Optional[str] = Field(
        default=None,
        description="Why the operation was aborted"
    )
    
    commit_sha: Optional[str] = Field(
        default=None,
        description="The new commit, when the multi-file protocol completed"
    )
    
    @property
    def ok(self) -> bool:
        """True when the operation became visible in the store."""
        return self.state == CommitState.REF_UPDATED and self.error is None
