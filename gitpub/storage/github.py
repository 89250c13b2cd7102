"""
GitHub storage backend for gitpub.

Files are read and written through the repository contents API; multi-file
commits use the git data API (refs, commits, trees, blobs).
"""

import base64
import logging
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote

import httpx

from ..models import GitHubSettings, StoredFile, DirectoryEntry, TreeEntry, WriteStatus
from .base import StorageClient, StorageError


# Status codes GitHub uses when a write's sha precondition does not hold.
CONFLICT_STATUSES = (409, 422)


def _encode(content: Union[bytes, str]) -> str:
    if isinstance(content, str):
        content = content.encode("utf-8")
    return base64.b64encode(content).decode("ascii")


class GitHubStorage(StorageClient):
    """
    Stores posts in a GitHub repository through the REST API.
    """

    def __init__(self, settings: GitHubSettings,
                 transport: Optional[httpx.BaseTransport] = None):
        """
        Initialize the GitHub storage client.

        Args:
            settings: Repository coordinates, token, branch and committer
            transport: Optional httpx transport (used by tests)
        """
        self.settings = settings
        self.branch = settings.branch

        headers = {"Accept": "application/vnd.github.v3+json"}
        if settings.token:
            headers["Authorization"] = f"Bearer {settings.token}"

        base_url = f"{settings.api_url.rstrip('/')}/repos/{settings.user}/{settings.repo}/"
        self.client = httpx.Client(
            base_url=base_url,
            headers=headers,
            timeout=settings.timeout,
            transport=transport,
        )
        logging.info(f"Initialized GitHub storage for {settings.user}/{settings.repo}@{self.branch}")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self.client.close()

    def _request(self, method: str, endpoint: str,
                 json: Optional[Dict[str, Any]] = None,
                 params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        logging.info(f"GitHub {method} {endpoint}")
        try:
            return self.client.request(method, endpoint, json=json, params=params)
        except httpx.RequestError as e:
            raise StorageError(f"GitHub request {method} {endpoint} failed: {e}") from e

    def _contents_endpoint(self, path: str) -> str:
        return f"contents/{quote(path, safe='/')}"

    def _file_payload(self, message: str, extra: Dict[str, Any]) -> Dict[str, Any]:
        payload = {"message": message, "branch": self.branch}
        payload.update(extra)
        if self.settings.committer:
            payload["committer"] = self.settings.committer
        return payload

    def _git(self, method: str, endpoint: str,
             json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        response = self._request(method, f"git/{endpoint}", json=json)
        if response.is_error:
            logging.error(f"GitHub git API error {response.status_code} for {method} {endpoint}: {response.text}")
            raise StorageError(f"GitHub git API {method} {endpoint} returned {response.status_code}")
        try:
            return response.json()
        except ValueError as e:
            raise StorageError(f"GitHub git API {method} {endpoint} returned invalid JSON") from e

    # File-level operations

    def read_file(self, path: str) -> Optional[StoredFile]:
        response = self._request("GET", self._contents_endpoint(path), params={"ref": self.branch})
        if response.status_code == 404:
            return None
        if response.is_error:
            logging.error(f"GitHub error {response.status_code} reading {path}: {response.text}")
            raise StorageError(f"Could not read {path}: {response.status_code}")

        body = response.json()
        if not isinstance(body, dict) or body.get("type", "file") != "file":
            return None

        return StoredFile(
            path=body.get("path", path),
            content=base64.b64decode(body.get("content") or ""),
            sha=body["sha"],
        )

    def write_file(self, path: str, content: Union[bytes, str],
                   expected_hash: Optional[str] = None,
                   message: Optional[str] = None) -> WriteStatus:
        extra: Dict[str, Any] = {"content": _encode(content)}
        if expected_hash:
            extra["sha"] = expected_hash
            message = message or f"update: {path}"
        else:
            message = message or f"add: {path}"

        try:
            response = self._request("PUT", self._contents_endpoint(path),
                                     json=self._file_payload(message, extra))
        except StorageError as e:
            logging.error(f"Failed to write {path}: {e}")
            return WriteStatus.FAILED

        if response.status_code in CONFLICT_STATUSES:
            logging.warning(f"Write to {path} rejected ({response.status_code}): {response.text}")
            return WriteStatus.CONFLICT
        if response.is_error:
            logging.error(f"GitHub error {response.status_code} writing {path}: {response.text}")
            return WriteStatus.FAILED

        logging.info(f"Committed {path}")
        return WriteStatus.OK

    def delete_file(self, path: str, expected_hash: str,
                    message: Optional[str] = None) -> bool:
        payload = self._file_payload(message or f"delete: {path}", {"sha": expected_hash})
        try:
            response = self._request("DELETE", self._contents_endpoint(path), json=payload)
        except StorageError as e:
            logging.error(f"Failed to delete {path}: {e}")
            return False

        if response.is_error:
            logging.error(f"GitHub error {response.status_code} deleting {path}: {response.text}")
            return False

        logging.info(f"Deleted {path}")
        return True

    def list_directory(self, path: str) -> Optional[List[DirectoryEntry]]:
        # The contents API returns at most 1000 entries per directory.
        response = self._request("GET", self._contents_endpoint(path.rstrip("/")),
                                 params={"ref": self.branch})
        if response.status_code == 404:
            return None
        if response.is_error:
            logging.error(f"GitHub error {response.status_code} listing {path}: {response.text}")
            raise StorageError(f"Could not list {path}: {response.status_code}")

        body = response.json()
        if not isinstance(body, list):
            return None

        return [
            DirectoryEntry(path=item["path"], name=item.get("name", item["path"].rsplit("/", 1)[-1]),
                           sha=item.get("sha"))
            for item in body
            if isinstance(item, dict) and "path" in item
        ]

    # Object-level operations

    def get_ref(self, branch: str) -> str:
        body = self._git("GET", f"ref/heads/{branch}")
        try:
            return body["object"]["sha"]
        except (KeyError, TypeError) as e:
            raise StorageError(f"Malformed ref response for {branch}") from e

    def get_commit(self, sha: str) -> str:
        body = self._git("GET", f"commits/{sha}")
        try:
            return body["tree"]["sha"]
        except (KeyError, TypeError) as e:
            raise StorageError(f"Malformed commit response for {sha}") from e

    def create_blob(self, data: bytes) -> str:
        body = self._git("POST", "blobs", {"content": _encode(data), "encoding": "base64"})
        if "sha" not in body:
            raise StorageError("Malformed blob response")
        return body["sha"]

    def create_tree(self, base_tree: Optional[str], entries: List[TreeEntry]) -> str:
        payload: Dict[str, Any] = {
            "tree": [
                {"path": entry.path, "mode": entry.mode, "type": "blob", "sha": entry.sha}
                for entry in entries
            ]
        }
        if base_tree:
            payload["base_tree"] = base_tree
        body = self._git("POST", "trees", payload)
        if "sha" not in body:
            raise StorageError("Malformed tree response")
        return body["sha"]

    def create_commit(self, tree: str, parent: Optional[str], message: str) -> str:
        payload: Dict[str, Any] = {
            "message": message,
            "tree": tree,
            "parents": [parent] if parent else [],
        }
        if self.settings.committer:
            payload["committer"] = self.settings.committer
        body = self._git("POST", "commits", payload)
        if "sha" not in body:
            raise StorageError("Malformed commit response")
        return body["sha"]

    def update_ref(self, branch: str, sha: str) -> None:
        self._git("PATCH", f"refs/heads/{branch}", {"sha": sha})
