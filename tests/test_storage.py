"""
Unit tests for the storage backends and the commit pipeline.

The GitHub backend is exercised against an httpx.MockTransport, the local
backend against a temporary bare repository, and the pipeline against an
in-memory store.
"""

import base64
import json
import shutil
import tempfile
import unittest
from pathlib import Path

import httpx

from gitpub.models import (
    GitHubSettings,
    StoredFile,
    TreeEntry,
    CommitFile,
    WriteStatus,
    CommitState,
)
from gitpub.storage import GitHubStorage, LocalGitStorage, CommitPipeline, StorageError

from memory_storage import MemoryStorage


API_PREFIX = "/repos/octo/site/"


class FakeGitHub:
    """Records requests and answers them from a route table."""

    def __init__(self):
        self.requests = []
        self.routes = {}

    def route(self, method, endpoint, status=200, body=None):
        self.routes[(method, API_PREFIX + endpoint)] = (status, body)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body = self.routes.get((request.method, request.url.path), (404, {"message": "Not Found"}))
        return httpx.Response(status, json=body)

    def payload(self, index=-1):
        return json.loads(self.requests[index].content)


class TestGitHubStorage(unittest.TestCase):
    """Test the GitHub REST backend."""

    def setUp(self):
        """Set up test fixtures."""
        self.github = FakeGitHub()
        settings = GitHubSettings(
            user="octo",
            repo="site",
            token="secret-token",
            branch="main",
            author_name="Jane",
            author_email="jane@example.com",
        )
        self.storage = GitHubStorage(settings, transport=httpx.MockTransport(self.github))

    def tearDown(self):
        """Clean up test fixtures."""
        self.storage.close()

    def test_read_file(self):
        """Test file content is decoded and the sha kept."""
        self.github.route("GET", "contents/src/a.md", body={
            "type": "file",
            "path": "src/a.md",
            "sha": "abc123",
            "content": base64.b64encode(b"---\ntitle: A\n---\nBody\n").decode(),
        })
        stored = self.storage.read_file("src/a.md")

        self.assertEqual(stored.sha, "abc123")
        self.assertEqual(stored.text, "---\ntitle: A\n---\nBody\n")
        request = self.github.requests[0]
        self.assertEqual(request.url.params["ref"], "main")
        self.assertEqual(request.headers["Authorization"], "Bearer secret-token")

    def test_read_missing_file(self):
        """Test a 404 means the file does not exist."""
        self.assertIsNone(self.storage.read_file("src/missing.md"))

    def test_read_error(self):
        """Test other errors raise."""
        self.github.route("GET", "contents/src/a.md", status=500, body={})
        with self.assertRaises(StorageError):
            self.storage.read_file("src/a.md")

    def test_create_file(self):
        """Test a create sends content, branch and committer without a sha."""
        self.github.route("PUT", "contents/src/a.md", status=201, body={"content": {"path": "src/a.md"}})
        status = self.storage.write_file("src/a.md", "hello")

        self.assertEqual(status, WriteStatus.OK)
        payload = self.github.payload()
        self.assertEqual(base64.b64decode(payload["content"]), b"hello")
        self.assertEqual(payload["branch"], "main")
        self.assertEqual(payload["message"], "add: src/a.md")
        self.assertEqual(payload["committer"], {"name": "Jane", "email": "jane@example.com"})
        self.assertNotIn("sha", payload)

    def test_update_file(self):
        """Test an update references the expected sha."""
        self.github.route("PUT", "contents/src/a.md", body={"content": {"path": "src/a.md"}})
        status = self.storage.write_file("src/a.md", b"new", expected_hash="abc123")

        self.assertEqual(status, WriteStatus.OK)
        self.assertEqual(self.github.payload()["sha"], "abc123")
        self.assertEqual(self.github.payload()["message"], "update: src/a.md")

    def test_write_conflict(self):
        """Test rejected preconditions are reported as conflicts."""
        for code in (409, 422):
            with self.subTest(code=code):
                self.github.route("PUT", "contents/src/a.md", status=code, body={"message": "sha mismatch"})
                self.assertEqual(self.storage.write_file("src/a.md", "x"), WriteStatus.CONFLICT)

    def test_write_failure(self):
        """Test other errors are failures."""
        self.github.route("PUT", "contents/src/a.md", status=500, body={})
        self.assertEqual(self.storage.write_file("src/a.md", "x"), WriteStatus.FAILED)

    def test_delete_file(self):
        """Test a delete sends the sha."""
        self.github.route("DELETE", "contents/src/a.md", body={"commit": {}})
        self.assertTrue(self.storage.delete_file("src/a.md", "abc123"))
        self.assertEqual(self.github.payload()["sha"], "abc123")
        self.assertEqual(self.github.payload()["message"], "delete: src/a.md")

        self.github.route("DELETE", "contents/src/a.md", status=409, body={})
        self.assertFalse(self.storage.delete_file("src/a.md", "stale"))

    def test_list_directory(self):
        """Test directory entries are listed."""
        self.github.route("GET", "contents/uploads", body=[
            {"path": "uploads/1_a.png", "name": "1_a.png", "sha": "s1"},
            {"path": "uploads/2_b.png", "name": "2_b.png", "sha": "s2"},
        ])
        entries = self.storage.list_directory("uploads/")

        self.assertEqual([entry.path for entry in entries], ["uploads/1_a.png", "uploads/2_b.png"])
        self.assertIsNone(self.storage.list_directory("missing"))

    def test_git_primitives(self):
        """Test the git data API calls used by multi-file commits."""
        self.github.route("GET", "git/ref/heads/main", body={"object": {"sha": "c1"}})
        self.github.route("GET", "git/commits/c1", body={"tree": {"sha": "t1"}})
        self.github.route("POST", "git/blobs", status=201, body={"sha": "b1"})
        self.github.route("POST", "git/trees", status=201, body={"sha": "t2"})
        self.github.route("POST", "git/commits", status=201, body={"sha": "c2"})
        self.github.route("PATCH", "git/refs/heads/main", body={"object": {"sha": "c2"}})

        self.assertEqual(self.storage.get_ref("main"), "c1")
        self.assertEqual(self.storage.get_commit("c1"), "t1")

        self.assertEqual(self.storage.create_blob(b"\x89PNG"), "b1")
        blob_payload = self.github.payload()
        self.assertEqual(blob_payload["encoding"], "base64")
        self.assertEqual(base64.b64decode(blob_payload["content"]), b"\x89PNG")

        self.assertEqual(self.storage.create_tree("t1", [TreeEntry(path="src/a.md", sha="b1")]), "t2")
        self.assertEqual(self.github.payload(), {
            "tree": [{"path": "src/a.md", "mode": "100644", "type": "blob", "sha": "b1"}],
            "base_tree": "t1",
        })

        self.assertEqual(self.storage.create_commit("t2", "c1", "add: src/a.md"), "c2")
        self.assertEqual(self.github.payload()["parents"], ["c1"])

        self.storage.update_ref("main", "c2")
        self.assertEqual(self.github.payload(), {"sha": "c2"})

    def test_git_primitive_errors(self):
        """Test primitive failures raise StorageError."""
        self.github.route("POST", "git/trees", status=422, body={"message": "bad tree"})
        with self.assertRaises(StorageError):
            self.storage.create_tree("t1", [])
        with self.assertRaises(StorageError):
            self.storage.get_ref("main")

    def test_transport_errors(self):
        """Test network failures are wrapped."""
        def broken(request):
            raise httpx.ConnectError("connection refused", request=request)

        storage = GitHubStorage(GitHubSettings(user="octo", repo="site"), transport=httpx.MockTransport(broken))
        with storage:
            with self.assertRaises(StorageError):
                storage.get_ref("main")
            self.assertEqual(storage.write_file("src/a.md", "x"), WriteStatus.FAILED)
            self.assertFalse(storage.delete_file("src/a.md", "abc"))


class TestCommitPipeline(unittest.TestCase):
    """Test guarded writes and the multi-file commit protocol."""

    def setUp(self):
        """Set up test fixtures."""
        self.storage = MemoryStorage({"src/articles/existing.md": "---\ntitle: Existing\n---\n\n"})
        self.pipeline = CommitPipeline(self.storage, max_workers=2)

    def test_create_file(self):
        """Test creating a new file."""
        result = self.pipeline.create_file("src/notes/a.md", "hello")

        self.assertTrue(result.ok)
        self.assertEqual(self.storage.text("src/notes/a.md"), "hello")

    def test_create_existing_file(self):
        """Test an existing path is never overwritten."""
        head = self.storage.head
        result = self.pipeline.create_file("src/articles/existing.md", "other")

        self.assertFalse(result.ok)
        self.assertEqual(result.error, "file exists")
        self.assertEqual(result.state, CommitState.ABORTED)
        self.assertEqual(self.storage.head, head)

    def test_update_file(self):
        """Test an update against the hash that was read."""
        original = self.storage.read_file("src/articles/existing.md")
        result = self.pipeline.update_file("src/articles/existing.md", "changed", original)

        self.assertTrue(result.ok)
        self.assertEqual(self.storage.text("src/articles/existing.md"), "changed")

    def test_update_with_stale_hash(self):
        """Test an update against an outdated hash fails."""
        stale = StoredFile(path="src/articles/existing.md", content=b"", sha="0" * 40)
        result = self.pipeline.update_file("src/articles/existing.md", "changed", stale)

        self.assertEqual(result.error, "file cannot be updated")

    def test_delete_file(self):
        """Test deleting against the hash that was read."""
        original = self.storage.read_file("src/articles/existing.md")
        self.assertTrue(self.pipeline.delete_file("src/articles/existing.md", original).ok)
        self.assertNotIn("src/articles/existing.md", self.storage.snapshot())

        result = self.pipeline.delete_file("src/articles/existing.md", original)
        self.assertEqual(result.error, "file cannot be deleted")

    def test_commit_files(self):
        """Test several files land in exactly one commit."""
        head = self.storage.head
        files = [
            CommitFile(path="src/checkins/a.md", content="doc"),
            CommitFile(path="src/checkins/a.map.dark.png", content=b"dark"),
            CommitFile(path="src/checkins/a.map.light.png", content=b"light"),
        ]
        result = self.pipeline.commit_files(files, "add checkin")

        self.assertTrue(result.ok)
        self.assertEqual(result.state, CommitState.REF_UPDATED)
        self.assertEqual(result.commit_sha, self.storage.head)
        self.assertEqual(self.storage.commits[self.storage.head]["parent"], head)
        snapshot = self.storage.snapshot()
        self.assertEqual(snapshot["src/checkins/a.map.dark.png"], b"dark")
        self.assertEqual(snapshot["src/checkins/a.map.light.png"], b"light")
        self.assertIn("src/articles/existing.md", snapshot)

    def test_commit_protocol_order(self):
        """Test the steps run in protocol order."""
        self.pipeline.commit_files([CommitFile(path="a.md", content="a")], "add a")
        self.assertEqual(
            self.storage.calls,
            ["get_ref", "get_commit", "create_blob", "create_tree", "create_commit", "update_ref"],
        )

    def test_failure_leaves_branch_untouched(self):
        """Test a failure at any step publishes nothing."""
        files = [CommitFile(path="src/a.md", content="a"), CommitFile(path="src/b.png", content=b"b")]
        steps = {
            "get_ref": CommitState.PENDING,
            "get_commit": CommitState.REF_RESOLVED,
            "create_blob": CommitState.COMMIT_FETCHED,
            "create_tree": CommitState.BLOBS_CREATED,
            "create_commit": CommitState.TREE_CREATED,
            "update_ref": CommitState.COMMIT_CREATED,
        }
        for step, last_state in steps.items():
            with self.subTest(step=step):
                self.storage.fail_on = {step}
                head = self.storage.head
                result = self.pipeline.commit_files(files, "add files")

                self.assertFalse(result.ok)
                self.assertEqual(result.state, CommitState.ABORTED)
                self.assertIn(f"after {last_state.value}", result.error)
                self.assertEqual(self.storage.head, head)
                self.assertNotIn("src/a.md", self.storage.snapshot())

    def test_commit_nothing(self):
        """Test an empty batch is rejected."""
        self.assertFalse(self.pipeline.commit_files([], "empty").ok)


@unittest.skipIf(shutil.which("git") is None, "git executable not available")
class TestLocalGitStorage(unittest.TestCase):
    """Test the local bare repository backend."""

    def setUp(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.repo_path = Path(self.temp_dir) / "site.git"
        self.storage = LocalGitStorage(str(self.repo_path), branch="main",
                                       author_name="Test", author_email="test@example.com")
        self.assertTrue(self.storage.initialize_repository())

    def tearDown(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def commit_count(self) -> int:
        return int(self.storage.repo.git.rev_list("--count", "main"))

    def test_initialize_repository(self):
        """Test a bare repository with an initial commit is created."""
        self.assertTrue(self.storage.repo.bare)
        self.assertIsNotNone(self.storage.read_file(".gitignore"))
        self.assertEqual(self.commit_count(), 1)

        # Initializing twice is harmless.
        self.assertTrue(LocalGitStorage(str(self.repo_path)).initialize_repository())
        self.assertEqual(self.commit_count(), 1)

    def test_write_and_read(self):
        """Test creating and reading back a file."""
        self.assertEqual(self.storage.write_file("src/notes/a.md", "hello"), WriteStatus.OK)

        stored = self.storage.read_file("src/notes/a.md")
        self.assertEqual(stored.content, b"hello")
        self.assertIsNone(self.storage.read_file("src/notes/missing.md"))
        self.assertIsNone(self.storage.read_file("src/notes"))

    def test_expected_hash_enforced(self):
        """Test create and update preconditions."""
        self.storage.write_file("src/a.md", "one")
        self.assertEqual(self.storage.write_file("src/a.md", "two"), WriteStatus.CONFLICT)
        self.assertEqual(self.storage.write_file("src/a.md", "two", expected_hash="0" * 40), WriteStatus.CONFLICT)

        original = self.storage.read_file("src/a.md")
        self.assertEqual(self.storage.write_file("src/a.md", "two", expected_hash=original.sha), WriteStatus.OK)
        self.assertEqual(self.storage.read_file("src/a.md").content, b"two")

    def test_delete_file(self):
        """Test deleting a file."""
        self.storage.write_file("src/a.md", "one")
        original = self.storage.read_file("src/a.md")

        self.assertFalse(self.storage.delete_file("src/a.md", "0" * 40))
        self.assertTrue(self.storage.delete_file("src/a.md", original.sha))
        self.assertIsNone(self.storage.read_file("src/a.md"))

    def test_list_directory(self):
        """Test listing a directory."""
        self.storage.write_file("uploads/1_a.png", b"a")
        self.storage.write_file("uploads/2_b.png", b"b")

        entries = self.storage.list_directory("uploads")
        self.assertEqual(sorted(entry.path for entry in entries), ["uploads/1_a.png", "uploads/2_b.png"])
        self.assertIsNone(self.storage.list_directory("missing"))

    def test_commit_files(self):
        """Test the pipeline writes several files in one local commit."""
        pipeline = CommitPipeline(self.storage)
        result = pipeline.commit_files(
            [CommitFile(path="src/a.md", content="doc"), CommitFile(path="src/a.png", content=b"\x89PNG")],
            "add a with image",
        )

        self.assertTrue(result.ok)
        self.assertEqual(self.commit_count(), 2)
        self.assertEqual(self.storage.read_file("src/a.png").content, b"\x89PNG")
        self.assertIsNotNone(self.storage.read_file(".gitignore"))

    def test_uninitialized_repository(self):
        """Test an uninitialized repository cannot be used."""
        storage = LocalGitStorage(str(Path(self.temp_dir) / "other.git"))
        with self.assertRaises(StorageError):
            storage.read_file("src/a.md")


if __name__ == '__main__':
    unittest.main(verbosity=2)
