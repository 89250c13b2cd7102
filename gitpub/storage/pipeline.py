"""
Commit pipeline for gitpub.

Wraps a storage client with the guarded single-file operations (create only
if absent, update and delete against a known hash) and the multi-file
commit protocol:

    PENDING -> REF_RESOLVED -> COMMIT_FETCHED -> BLOBS_CREATED
            -> TREE_CREATED -> COMMIT_CREATED -> REF_UPDATED

A failure at any step aborts the commit. Objects created before the failure
stay unreferenced; nothing becomes visible on the branch unless the final
ref update succeeds.

There is no locking between the existence check of `create_file` and the
write that follows it. Concurrent creates of the same path can both pass the
check; the store's own precondition handling decides which one wins.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, Optional, Union

from ..models import (
    StoredFile,
    TreeEntry,
    CommitFile,
    WriteStatus,
    CommitState,
    CommitResult,
)
from .base import StorageClient, StorageError


class CommitPipeline:
    """
    Guarded writes and atomic multi-file commits on top of a storage client.
    """

    def __init__(self, storage: StorageClient, max_workers: int = 4):
        """
        Initialize the pipeline.

        Args:
            storage: The storage client to commit to
            max_workers: Upper bound on blobs created in parallel
        """
        self.storage = storage
        self.max_workers = max(1, max_workers)

    @property
    def branch(self) -> str:
        return self.storage.branch

    def _aborted(self, paths: List[str], error: str,
                 state: CommitState = CommitState.ABORTED) -> CommitResult:
        return CommitResult(paths=paths, state=state, error=error)

    def create_file(self, path: str, content: Union[bytes, str],
                    message: Optional[str] = None) -> CommitResult:
        """
        Create a file, refusing to overwrite an existing one.

        Returns:
            A completed result, or an aborted one with `file exists` or
            `could not create file`
        """
        try:
            existing = self.storage.read_file(path)
        except StorageError as e:
            logging.error(f"Existence check for {path} failed: {e}")
            return self._aborted([path], "could not create file")

        if existing is not None:
            logging.warning(f"Not creating {path}: file exists")
            return self._aborted([path], "file exists")

        status = self.storage.write_file(path, content, message=message or f"add: {path}")
        if status == WriteStatus.CONFLICT:
            return self._aborted([path], "file exists")
        if status != WriteStatus.OK:
            return self._aborted([path], "could not create file")

        return CommitResult(paths=[path], state=CommitState.REF_UPDATED)

    def update_file(self, path: str, content: Union[bytes, str], original: StoredFile,
                    message: Optional[str] = None) -> CommitResult:
        """
        Replace a file's content, provided it still has the hash that was read.
        """
        status = self.storage.write_file(
            path, content, expected_hash=original.sha, message=message or f"update: {path}"
        )
        if status != WriteStatus.OK:
            logging.error(f"Update of {path} failed: {status.value}")
            return self._aborted([path], "file cannot be updated")

        return CommitResult(paths=[path], state=CommitState.REF_UPDATED)

    def delete_file(self, path: str, original: StoredFile,
                    message: Optional[str] = None) -> CommitResult:
        """
        Remove a file, provided it still has the hash that was read.
        """
        if not self.storage.delete_file(path, original.sha, message=message or f"delete: {path}"):
            logging.error(f"Delete of {path} failed")
            return self._aborted([path], "file cannot be deleted")

        return CommitResult(paths=[path], state=CommitState.REF_UPDATED)

    def _create_blobs(self, files: List[CommitFile]) -> Dict[str, str]:
        """Create one blob per file concurrently; return path -> blob hash."""
        blobs: Dict[str, str] = {}
        workers = min(self.max_workers, len(files))

        with ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_path = {
                executor.submit(self.storage.create_blob, commit_file.data()): commit_file.path
                for commit_file in files
            }
            for future in as_completed(future_to_path):
                path = future_to_path[future]
                # Raises StorageError for the first failed blob.
                blobs[path] = future.result()
                logging.info(f"Created blob for {path}")

        return blobs

    def commit_files(self, files: List[CommitFile], message: str) -> CommitResult:
        """
        Write several files in a single commit.

        Args:
            files: The files to write, in commit order
            message: The commit message

        Returns:
            The result, REF_UPDATED on success or ABORTED with the failing
            step recorded in `error`
        """
        paths = [commit_file.path for commit_file in files]
        if not files:
            return self._aborted(paths, "nothing to commit")

        state = CommitState.PENDING
        try:
            parent = self.storage.get_ref(self.branch)
            state = CommitState.REF_RESOLVED

            base_tree = self.storage.get_commit(parent)
            state = CommitState.COMMIT_FETCHED

            blobs = self._create_blobs(files)
            state = CommitState.BLOBS_CREATED

            entries = [TreeEntry(path=path, sha=blobs[path]) for path in paths]
            tree = self.storage.create_tree(base_tree, entries)
            state = CommitState.TREE_CREATED

            commit = self.storage.create_commit(tree, parent, message)
            state = CommitState.COMMIT_CREATED

            self.storage.update_ref(self.branch, commit)
            state = CommitState.REF_UPDATED

        except StorageError as e:
            logging.error(f"Commit of {len(files)} files aborted after {state.value}: {e}")
            return self._aborted(paths, f"commit aborted after {state.value}: {e}")

        logging.info(f"Committed {len(files)} files in {commit[:8]}: {message}")
        return CommitResult(paths=paths, state=state, commit_sha=commit)
