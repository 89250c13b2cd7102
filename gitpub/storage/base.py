"""
Storage client interface for gitpub.

A storage client is a versioned object store addressed two ways: whole
files by path (read, write, delete, list) and the lower-level Git objects
(refs, commits, trees, blobs) used to write several files in one commit.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Union

from ..models import StoredFile, DirectoryEntry, TreeEntry, WriteStatus


class StorageError(Exception):
    """Raised when the store cannot complete a request."""


class StorageClient(ABC):
    """
    Abstract base class for versioned object stores.

    File-level operations report validation outcomes as values (None,
    WriteStatus, False). Object-level operations raise StorageError on any
    failure so that a multi-step commit can stop at the failing step.
    """

    branch: str = "main"

    # File-level operations

    @abstractmethod
    def read_file(self, path: str) -> Optional[StoredFile]:
        """
        Read a file from the branch tip.

        Returns:
            The file with its content hash, or None when it does not exist
        """
        pass

    @abstractmethod
    def write_file(self, path: str, content: Union[bytes, str],
                   expected_hash: Optional[str] = None,
                   message: Optional[str] = None) -> WriteStatus:
        """
        Create or update a file in its own commit.

        Without `expected_hash` the file is created; with it, the file at
        `path` must currently have that hash.

        Returns:
            OK, CONFLICT when the precondition does not hold, or FAILED
        """
        pass

    @abstractmethod
    def delete_file(self, path: str, expected_hash: str,
                    message: Optional[str] = None) -> bool:
        """
        Delete a file in its own commit.

        Returns:
            True if the file was deleted
        """
        pass

    @abstractmethod
    def list_directory(self, path: str) -> Optional[List[DirectoryEntry]]:
        """
        List the entries of a directory.

        Returns:
            The entries, or None when the directory does not exist
        """
        pass

    # Object-level operations

    @abstractmethod
    def get_ref(self, branch: str) -> str:
        """Return the commit hash a branch points to."""
        pass

    @abstractmethod
    def get_commit(self, sha: str) -> str:
        """Return the root tree hash of a commit."""
        pass

    @abstractmethod
    def create_blob(self, data: bytes) -> str:
        """Store content and return its blob hash."""
        pass

    @abstractmethod
    def create_tree(self, base_tree: Optional[str], entries: List[TreeEntry]) -> str:
        """Create a tree from a base tree plus path entries and return its hash."""
        pass

    @abstractmethod
    def create_commit(self, tree: str, parent: Optional[str], message: str) -> str:
        """Create a commit and return its hash."""
        pass

    @abstractmethod
    def update_ref(self, branch: str, sha: str) -> None:
        """Move a branch to a commit."""
        pass
