"""
Local Git storage backend for gitpub.

Stores posts in a bare Git repository on disk using GitPython. Every write
goes through git plumbing (hash-object, a temporary index, commit-tree,
update-ref), so no working tree is ever checked out.
"""

import logging
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Union

from git import Repo, InvalidGitRepositoryError, NoSuchPathError, GitCommandError

from ..models import StoredFile, DirectoryEntry, TreeEntry, WriteStatus
from .base import StorageClient, StorageError


ZERO_SHA = "0" * 40

GITIGNORE = """# gitpub site repository
*.tmp
*.temp
.DS_Store
Thumbs.db
"""


class LocalGitStorage(StorageClient):
    """
    Stores posts in a bare Git repository.

    The repository must be initialized (see `initialize_repository`) before
    files can be written.
    """

    def __init__(self, repo_path: str = "site.git", branch: str = "main",
                 author_name: str = "gitpub", author_email: str = "gitpub@localhost"):
        """
        Initialize the local storage.

        Args:
            repo_path: Path to the bare repository
            branch: Branch posts are committed to
            author_name: Name recorded as commit author and committer
            author_email: Email recorded as commit author and committer
        """
        self.repo_path = Path(repo_path)
        self.branch = branch
        self.author_name = author_name
        self.author_email = author_email
        self.repo: Optional[Repo] = None

        if self._is_git_repository():
            self.repo = Repo(self.repo_path)

        logging.info(f"Initialized local Git storage for: {self.repo_path}")

    def _is_git_repository(self) -> bool:
        """Check if the path is already a Git repository."""
        try:
            if not self.repo_path.exists():
                return False
            Repo(self.repo_path)
            return True
        except (InvalidGitRepositoryError, NoSuchPathError):
            return False

    def initialize_repository(self) -> bool:
        """
        Create the bare repository and its initial commit if they don't exist.

        Returns:
            True if the repository is ready, False on error
        """
        try:
            if self.repo is None:
                self.repo_path.mkdir(parents=True, exist_ok=True)
                self.repo = Repo.init(self.repo_path, bare=True)
                self.repo.git.symbolic_ref("HEAD", f"refs/heads/{self.branch}")
                logging.info("Git repository initialized successfully")

            if self._tip() is None:
                blob = self.create_blob(GITIGNORE.encode("utf-8"))
                self._commit([TreeEntry(path=".gitignore", sha=blob)], "Initial commit: Add .gitignore")
                logging.info(f"Created initial commit on {self.branch}")

            return True

        except (GitCommandError, StorageError, OSError) as e:
            logging.error(f"Failed to initialize Git repository: {e}")
            return False

    def _require_repo(self) -> Repo:
        if self.repo is None:
            raise StorageError("Repository not initialized")
        return self.repo

    def _tip(self) -> Optional[str]:
        """The commit the branch points to, or None for an unborn branch."""
        try:
            return self.get_ref(self.branch)
        except StorageError:
            return None

    def _author_env(self) -> Dict[str, str]:
        return {
            "GIT_AUTHOR_NAME": self.author_name,
            "GIT_AUTHOR_EMAIL": self.author_email,
            "GIT_COMMITTER_NAME": self.author_name,
            "GIT_COMMITTER_EMAIL": self.author_email,
        }

    def _commit(self, entries: List[TreeEntry], message: str) -> str:
        """Commit tree entries on top of the branch tip and move the branch."""
        parent = self._tip()
        base_tree = self.get_commit(parent) if parent else None
        tree = self.create_tree(base_tree, entries)
        commit = self.create_commit(tree, parent, message)
        self.update_ref(self.branch, commit)
        return commit

    # File-level operations

    def read_file(self, path: str) -> Optional[StoredFile]:
        repo = self._require_repo()
        tip = self._tip()
        if tip is None:
            return None

        try:
            item = repo.commit(tip).tree / path.strip("/")
        except KeyError:
            return None

        if item.type != "blob":
            return None

        return StoredFile(path=path, content=item.data_stream.read(), sha=item.hexsha)

    def write_file(self, path: str, content: Union[bytes, str],
                   expected_hash: Optional[str] = None,
                   message: Optional[str] = None) -> WriteStatus:
        try:
            current = self.read_file(path)
        except StorageError as e:
            logging.error(f"Failed to write {path}: {e}")
            return WriteStatus.FAILED

        if expected_hash is None and current is not None:
            logging.warning(f"Refusing to create {path}: file exists")
            return WriteStatus.CONFLICT
        if expected_hash is not None and (current is None or current.sha != expected_hash):
            logging.warning(f"Refusing to update {path}: expected {expected_hash}")
            return WriteStatus.CONFLICT

        data = content.encode("utf-8") if isinstance(content, str) else content
        default_message = f"update: {path}" if expected_hash else f"add: {path}"

        try:
            blob = self.create_blob(data)
            commit = self._commit([TreeEntry(path=path, sha=blob)], message or default_message)
        except StorageError as e:
            logging.error(f"Failed to write {path}: {e}")
            return WriteStatus.FAILED

        logging.info(f"Created commit: {commit[:8]} - {message or default_message}")
        return WriteStatus.OK

    def delete_file(self, path: str, expected_hash: str,
                    message: Optional[str] = None) -> bool:
        try:
            current = self.read_file(path)
            if current is None or current.sha != expected_hash:
                logging.warning(f"Refusing to delete {path}: expected {expected_hash}")
                return False
            commit = self._commit([TreeEntry(path=path, sha=None)], message or f"delete: {path}")
        except StorageError as e:
            logging.error(f"Failed to delete {path}: {e}")
            return False

        logging.info(f"Created commit: {commit[:8]} - delete: {path}")
        return True

    def list_directory(self, path: str) -> Optional[List[DirectoryEntry]]:
        repo = self._require_repo()
        tip = self._tip()
        if tip is None:
            return None

        directory = path.strip("/")
        try:
            tree = repo.commit(tip).tree
            if directory:
                tree = tree / directory
        except KeyError:
            return None

        if tree.type != "tree":
            return None

        prefix = f"{directory}/" if directory else ""
        return [
            DirectoryEntry(path=f"{prefix}{item.name}", name=item.name, sha=item.hexsha)
            for item in tree
        ]

    # Object-level operations

    def get_ref(self, branch: str) -> str:
        repo = self._require_repo()
        try:
            return repo.git.rev_parse("--verify", "--quiet", f"refs/heads/{branch}")
        except GitCommandError as e:
            raise StorageError(f"Branch {branch} not found") from e

    def get_commit(self, sha: str) -> str:
        repo = self._require_repo()
        try:
            return repo.git.rev_parse("--verify", f"{sha}^{{tree}}")
        except GitCommandError as e:
            raise StorageError(f"Commit {sha} not found") from e

    def create_blob(self, data: bytes) -> str:
        repo = self._require_repo()
        with tempfile.TemporaryDirectory() as tmp:
            blob_file = Path(tmp) / "blob"
            blob_file.write_bytes(data)
            try:
                return repo.git.hash_object("-w", "--no-filters", str(blob_file))
            except GitCommandError as e:
                raise StorageError(f"Failed to create blob: {e}") from e

    def create_tree(self, base_tree: Optional[str], entries: List[TreeEntry]) -> str:
        repo = self._require_repo()
        lines = []
        for entry in entries:
            if entry.sha:
                lines.append(f"{entry.mode} {entry.sha}\t{entry.path}\n")
            else:
                lines.append(f"0 {ZERO_SHA}\t{entry.path}\n")

        with tempfile.TemporaryDirectory() as tmp:
            env = {"GIT_INDEX_FILE": str(Path(tmp) / "index")}
            index_info = Path(tmp) / "index-info"
            index_info.write_text("".join(lines), encoding="utf-8")
            try:
                if base_tree:
                    repo.git.read_tree(base_tree, env=env)
                else:
                    repo.git.read_tree("--empty", env=env)
                with open(index_info, "rb") as stdin:
                    repo.git.update_index("--index-info", istream=stdin, env=env)
                return repo.git.write_tree(env=env)
            except GitCommandError as e:
                raise StorageError(f"Failed to create tree: {e}") from e

    def create_commit(self, tree: str, parent: Optional[str], message: str) -> str:
        repo = self._require_repo()
        args = [tree]
        if parent:
            args.extend(["-p", parent])
        args.extend(["-m", message])
        try:
            return repo.git.commit_tree(*args, env=self._author_env())
        except GitCommandError as e:
            raise StorageError(f"Failed to create commit: {e}") from e

    def update_ref(self, branch: str, sha: str) -> None:
        repo = self._require_repo()
        try:
            repo.git.update_ref(f"refs/heads/{branch}", sha)
        except GitCommandError as e:
            raise StorageError(f"Failed to update {branch}: {e}") from e
