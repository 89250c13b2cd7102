#!/usr/bin/env python3
"""
gitpub - Micropub publishing backed by Git

Command line entry point. Each subcommand feeds the publishing core the same
inputs an HTTP endpoint would (a JSON or form body, a post URL, an uploaded
file) and prints the result as JSON.
"""

import json
import logging
import mimetypes
import sys
import argparse
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from gitpub.config import ConfigManager, get_config
from gitpub.enrichment import Enricher
from gitpub.models import MediaFile, PublishResult
from gitpub.publisher import Publisher
from gitpub.storage import StorageClient, GitHubStorage, LocalGitStorage


def setup_logging(config: ConfigManager):
    """Configure logging for the application."""
    level = getattr(logging, str(config.log_level).upper(), logging.INFO)
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config.log_filename:
        handlers.append(logging.FileHandler(config.log_filename))

    logging.basicConfig(
        level=level,
        format=config.log_format,
        handlers=handlers
    )


def load_body(path: str) -> Dict[str, Any]:
    """
    Load a request body from a JSON or YAML file ('-' reads stdin).

    Args:
        path: Path to the body file

    Returns:
        The decoded body
    """
    text = sys.stdin.read() if path == "-" else Path(path).read_text(encoding="utf-8")
    if path.endswith(".json"):
        body = json.loads(text)
    else:
        body = yaml.safe_load(text)
    if not isinstance(body, dict):
        raise ValueError(f"Request body in {path} must be a mapping")
    return body


def load_media(path: str) -> MediaFile:
    """Read a file from disk as an upload."""
    file_path = Path(path)
    mime_type, _ = mimetypes.guess_type(file_path.name)
    return MediaFile(
        filename=file_path.name,
        content=file_path.read_bytes(),
        mime_type=mime_type or "application/octet-stream",
    )


def create_storage(config: ConfigManager, backend: Optional[str] = None) -> StorageClient:
    """
    Create the configured storage backend.

    Args:
        config: The configuration
        backend: 'github' or 'local', overriding the configured backend
    """
    backend = backend or config.storage_backend
    if backend == "local":
        return LocalGitStorage(
            repo_path=config.local_repository_path,
            branch=config.branch,
            author_name=config.get("author.name") or "gitpub",
            author_email=config.get("author.email") or "gitpub@localhost",
        )
    if backend == "github":
        return GitHubStorage(config.github_settings())
    raise ValueError(f"Unknown storage backend: {backend}")


def print_result(result: PublishResult) -> int:
    """Print a result as JSON and return the exit code."""
    if result.body is not None:
        output = result.body
    else:
        output = result.model_dump(exclude_none=True, exclude={"body"})
    print(json.dumps(output, indent=2, ensure_ascii=False))
    return 0 if result.ok else 1


def run_command(args, config: ConfigManager) -> int:
    """Dispatch a parsed subcommand to the publisher."""
    storage = create_storage(config, args.backend)
    try:
        return _run_with_storage(args, config, storage)
    finally:
        if isinstance(storage, GitHubStorage):
            storage.close()


def _run_with_storage(args, config: ConfigManager, storage: StorageClient) -> int:
    if args.command == "init-local":
        if not isinstance(storage, LocalGitStorage):
            logging.error("init-local requires the local backend")
            return 1
        return 0 if storage.initialize_repository() else 1

    with Enricher(config.enrichment_settings()) as enricher:
        publisher = Publisher(storage, config.publish_settings(), enricher)

        if args.command == "create":
            if args.json:
                body = load_body(args.json)
                return print_result(publisher.add_content(body, is_json=True, client_id=args.client_id))
            body = load_body(args.form) if args.form else {}
            if args.photo:
                body["photo[]"] = [load_media(path) for path in args.photo]
            return print_result(publisher.add_content(body, is_json=False, client_id=args.client_id))

        if args.command == "update":
            return print_result(publisher.update_content(args.url, load_body(args.body)))

        if args.command == "delete":
            permanent = True if args.permanent else None
            return print_result(publisher.delete_content(args.url, permanent))

        if args.command == "undelete":
            return print_result(publisher.undelete_content(args.url))

        if args.command == "source":
            return print_result(publisher.source(args.url, args.property))

        if args.command == "upload":
            return print_result(publisher.upload_media(load_media(args.file)))

        if args.command == "media":
            return print_result(publisher.list_media(args.limit, args.offset))

        if args.command == "query":
            if args.q == "config":
                answer = publisher.config_query()
            else:
                answer = publisher.syndicate_to_query()
            print(json.dumps(answer, indent=2, ensure_ascii=False))
            return 0

    raise ValueError(f"Unknown command: {args.command}")


def parse_arguments(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="gitpub - Micropub publishing backed by Git",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py create --json post.json             # Create a post from microformats2 JSON
  python main.py create --form note.yaml --photo a.jpg  # Create a post from form fields
  python main.py update https://example.com/notes/2021/09/09/1631190214/ --body update.json
  python main.py delete https://example.com/articles/hello/ --permanent
  python main.py --backend local init-local          # Create the local bare repository
        """
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to the configuration file (default: config.yaml)"
    )

    parser.add_argument(
        "--backend",
        choices=["github", "local"],
        help="Storage backend (default: from configuration)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="gitpub 0.1.0"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    create = subparsers.add_parser("create", help="Create a post")
    source = create.add_mutually_exclusive_group()
    source.add_argument("--json", help="microformats2 JSON body file")
    source.add_argument("--form", help="Form fields as a YAML or JSON mapping")
    create.add_argument("--photo", action="append", help="File to upload with a form post")
    create.add_argument("--client-id", help="Client recorded in the post header")

    update = subparsers.add_parser("update", help="Update a post")
    update.add_argument("url", help="Public URL of the post")
    update.add_argument("--body", required=True, help="Update body (replace/add/delete) file")

    delete = subparsers.add_parser("delete", help="Delete a post")
    delete.add_argument("url", help="Public URL of the post")
    delete.add_argument("--permanent", action="store_true", help="Remove the file instead of marking it deleted")

    undelete = subparsers.add_parser("undelete", help="Restore a deleted post")
    undelete.add_argument("url", help="Public URL of the post")

    source_query = subparsers.add_parser("source", help="Show a post as microformats2 JSON")
    source_query.add_argument("url", help="Public URL of the post")
    source_query.add_argument("--property", action="append", help="Only include this property")

    upload = subparsers.add_parser("upload", help="Upload a media file")
    upload.add_argument("file", help="File to upload")

    media = subparsers.add_parser("media", help="List uploaded media, newest first")
    media.add_argument("--limit", type=int, default=10)
    media.add_argument("--offset", type=int, default=0)

    query = subparsers.add_parser("query", help="Answer a Micropub configuration query")
    query.add_argument("q", choices=["config", "syndicate-to"])

    subparsers.add_parser("init-local", help="Initialize the local bare repository")

    return parser.parse_args(argv)


def main():
    """Main entry point."""
    args = parse_arguments()
    config = ConfigManager(args.config) if args.config else get_config()
    setup_logging(config)

    logging.info(f"gitpub {args.command}")

    try:
        exit_code = run_command(args, config)
    except KeyboardInterrupt:
        logging.info("Interrupted by user")
        exit_code = 1
    except (OSError, ValueError) as e:
        logging.error(f"{args.command} failed: {e}")
        print(f"\n{args.command} failed: {e}", file=sys.stderr)
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
