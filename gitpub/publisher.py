"""
Request-level publishing flows for gitpub.

The publisher ties the parsers, the formatter, the update merger and the
commit pipeline together into the operations a Micropub endpoint performs:
create, update, delete, undelete, media upload and the read-only queries.
Every operation returns a PublishResult; validation failures are reported
through `PublishResult.error` rather than raised.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Union

from .content import classify, format_post, serialize, media_filename
from .enrichment import Enricher, EnrichmentError
from .models import (
    Record,
    MediaFile,
    FormattedPost,
    CommitFile,
    PublishResult,
    PublishSettings,
)
from .parsers import from_structured, from_form, from_document, to_structured, get_property_value
from .storage import StorageClient, StorageError, CommitPipeline
from .updates import UpdateMerger
from .utils import object_has_keys, url_to_filename, public_url


class Publisher:
    """
    Publishes, updates and deletes posts in a storage backend.
    """

    def __init__(self, storage: StorageClient,
                 settings: Optional[PublishSettings] = None,
                 enricher: Optional[Enricher] = None):
        """
        Initialize the publisher.

        Args:
            storage: The storage backend posts are committed to
            settings: Site settings
            enricher: Optional enricher for like titles and checkin maps
        """
        self.storage = storage
        self.settings = settings or PublishSettings()
        self.enricher = enricher
        self.pipeline = CommitPipeline(storage, max_workers=self.settings.max_concurrent_blobs)
        self.merger = UpdateMerger()

    def _reference_id(self, path: str) -> str:
        prefix = f"{self.settings.root}/"
        reference_id = path[len(prefix):] if path.startswith(prefix) else path
        return reference_id[:-3] if reference_id.endswith(".md") else reference_id

    def _strip_origin(self, value: Any) -> Any:
        if isinstance(value, str) and value.startswith(self.settings.me):
            return value[len(self.settings.me):]
        return value

    # Create

    def _upload(self, media: MediaFile, now: Optional[datetime] = None) -> Optional[str]:
        path = media_filename(media.filename, self.settings, now)
        if path is None:
            return None
        result = self.pipeline.create_file(path, media.content, message=f"upload: {path}")
        if not result.ok:
            logging.error(f"Upload of {media.filename} failed: {result.error}")
            return None
        return path

    def resolve_photos(self, photos: Iterable[Any], now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """
        Turn photo entries into `{value}` or `{value, alt}` objects.

        Uploaded files are committed to the media directory and referenced by
        their repository path; URLs on this site lose the site origin. Files
        that fail to upload are dropped.
        """
        resolved = []
        for photo in photos:
            if isinstance(photo, MediaFile):
                path = self._upload(photo, now)
                if path:
                    resolved.append({"value": path})
            elif isinstance(photo, dict) and (photo.get("alt") or photo.get("value")):
                value = self._strip_origin(photo.get("value"))
                if photo.get("alt"):
                    resolved.append({"value": value, "alt": photo["alt"]})
                else:
                    resolved.append({"value": value})
            elif photo:
                resolved.append({"value": self._strip_origin(photo)})
        return resolved

    def _add_like_title(self, record: Record) -> None:
        if record.get("name") or self.enricher is None:
            return
        if not self.enricher.settings.fetch_like_titles:
            return
        title = self.enricher.fetch_page_title(get_property_value(record["like-of"]))
        if title:
            record["name"] = title

    def _checkin_coordinates(self, record: Record) -> Optional[tuple]:
        checkin = get_property_value(record.get("checkin"))
        if not isinstance(checkin, dict) or not isinstance(checkin.get("properties"), dict):
            return None
        properties = checkin["properties"]
        lat = get_property_value(properties.get("latitude"))
        lon = get_property_value(properties.get("longitude"))
        if lat in (None, "") or lon in (None, ""):
            return None
        return lat, lon

    def _create_checkin_with_maps(self, post: FormattedPost,
                                  client_id: Optional[str]) -> Optional[PublishResult]:
        """
        Commit a checkin together with its map images.

        Returns None when the maps cannot be produced, so the caller can fall
        back to committing the document alone.
        """
        coordinates = self._checkin_coordinates(post.record)
        if coordinates is None:
            return None

        try:
            images = self.enricher.fetch_map_images(*coordinates)
        except EnrichmentError as e:
            logging.error(f"Failed to fetch map images: {e}")
            return None

        dark_path = post.path[:-len(".md")] + ".map.dark.png"
        light_path = post.path[:-len(".md")] + ".map.light.png"
        post.record["location_picture"] = {"dark": dark_path, "light": light_path}
        document = serialize(post.record, client_id)
        if document is None:
            return PublishResult(error="could not parse data")

        try:
            exists = self.storage.read_file(post.path)
        except StorageError as e:
            logging.error(f"Existence check for {post.path} failed: {e}")
            return PublishResult(error="could not create checkin files")
        if exists is not None:
            return PublishResult(error="file exists")

        result = self.pipeline.commit_files(
            [
                CommitFile(path=post.path, content=document),
                CommitFile(path=dark_path, content=images["dark"]),
                CommitFile(path=light_path, content=images["light"]),
            ],
            f"add checkin: {post.path} with maps",
        )
        if not result.ok:
            return PublishResult(error="could not create checkin files")

        return PublishResult(
            reference_id=post.reference_id,
            location=public_url(post.reference_id, self.settings),
        )

    def add_content(self, data: Any, is_json: bool = False,
                    client_id: Optional[str] = None,
                    now: Optional[datetime] = None) -> PublishResult:
        """
        Create a new post.

        Args:
            data: The request body (microformats2 JSON or form fields)
            is_json: Whether `data` is microformats2 JSON
            client_id: The publishing client, recorded in the document
            now: The current time, for deterministic callers

        Returns:
            The result, with the reference id and public URL of the new post
        """
        record = from_structured(data) if is_json else from_form(data)
        logging.info(f"Parsed {len(record)} properties for new post")

        if record.get("like-of"):
            self._add_like_title(record)
        if record.get("photo"):
            record["photo"] = self.resolve_photos(record["photo"], now)
            if not record["photo"]:
                del record["photo"]

        if not object_has_keys(record):
            return PublishResult(error="nothing to add")

        post = format_post(record, client_id, self.settings, now)
        if post is None:
            return PublishResult(error="could not parse data")

        if (self.enricher is not None and self.enricher.maps_enabled
                and classify(post.record) == "checkins"):
            result = self._create_checkin_with_maps(post, client_id)
            if result is not None:
                return result
            post.record.pop("location_picture", None)

        result = self.pipeline.create_file(post.path, post.document, message=f"add: {post.path}")
        if not result.ok:
            return PublishResult(error=result.error)

        logging.info(f"Created {post.reference_id}")
        return PublishResult(
            reference_id=post.reference_id,
            location=public_url(post.reference_id, self.settings),
        )

    # Update, delete, undelete

    def update_content(self, url: Optional[str], body: Optional[Dict[str, Any]],
                       now: Optional[datetime] = None) -> PublishResult:
        """
        Apply a Micropub update to an existing post.

        The post is rewritten in place; a change of name does not move it.

        Args:
            url: Public URL of the post
            body: The update request (`replace`, `add` or `delete`)
            now: The current time, for deterministic callers
        """
        path = url_to_filename(url, self.settings)
        if not path:
            return PublishResult(error="invalid url")

        try:
            stored = self.storage.read_file(path)
        except StorageError as e:
            logging.error(f"Could not read {path}: {e}")
            return PublishResult(error="could not read file")
        if stored is None:
            return PublishResult(error="file does not exist")

        record = from_document(stored.text)
        if not object_has_keys(record):
            return PublishResult(error="could not parse file")

        updated = self.merger.apply(record, body)
        if not updated:
            return PublishResult(error="nothing to update")

        post = format_post(updated, settings=self.settings, now=now)
        if post is None:
            return PublishResult(error="could not parse data")

        result = self.pipeline.update_file(path, post.document, stored, message=f"update: {path}")
        if not result.ok:
            return PublishResult(error=result.error)

        logging.info(f"Updated {path}")
        return PublishResult(reference_id=self._reference_id(path), location=url)

    def delete_content(self, url: Optional[str], permanent: Optional[bool] = None,
                       now: Optional[datetime] = None) -> PublishResult:
        """
        Delete a post.

        Without `permanent` (default: the site setting) the post is only
        marked `deleted` and can be restored with `undelete_content`.
        """
        if permanent is None:
            permanent = self.settings.permanent_delete

        if not permanent:
            return self.update_content(url, {"replace": {"deleted": [True]}}, now)

        path = url_to_filename(url, self.settings)
        if not path:
            return PublishResult(error="invalid url")

        try:
            stored = self.storage.read_file(path)
        except StorageError as e:
            logging.error(f"Could not read {path}: {e}")
            return PublishResult(error="could not read file")
        if stored is None:
            return PublishResult(error="file does not exist")

        result = self.pipeline.delete_file(path, stored, message=f"delete: {path}")
        if not result.ok:
            return PublishResult(error=result.error)

        logging.info(f"Deleted {path}")
        return PublishResult(reference_id=self._reference_id(path), location=url)

    def undelete_content(self, url: Optional[str], now: Optional[datetime] = None) -> PublishResult:
        """Restore a soft-deleted post (works even with permanent delete enabled)."""
        return self.update_content(url, {"delete": ["deleted"]}, now)

    # Media

    def upload_media(self, media: Optional[MediaFile], now: Optional[datetime] = None) -> PublishResult:
        """
        Store an uploaded file in the media directory.

        Returns:
            The result, with the repository path and public URL of the file
        """
        if media is None or not media.filename:
            return PublishResult(error="no file provided")

        path = media_filename(media.filename, self.settings, now)
        result = self.pipeline.create_file(path, media.content, message=f"upload: {path}")
        if not result.ok:
            return PublishResult(error=result.error)

        logging.info(f"Uploaded {media.filename} ({len(media.content)} bytes) to {path}")
        return PublishResult(reference_id=path, location=public_url(path, self.settings))

    def list_media(self, limit: int = 10, offset: int = 0) -> PublishResult:
        """
        List uploaded files, newest first.

        Upload paths start with their Unix timestamp, so sorting by URL in
        descending order puts the newest upload first.
        """
        try:
            entries = self.storage.list_directory(self.settings.media_root)
        except StorageError as e:
            logging.error(f"Could not list {self.settings.media_root}: {e}")
            entries = None
        if entries is None:
            return PublishResult(error="directory does not exist")

        items = sorted(
            ({"url": public_url(entry.path, self.settings)} for entry in entries),
            key=lambda item: item["url"],
            reverse=True,
        )
        offset = max(0, offset)
        page = items[offset:offset + max(0, limit)]

        return PublishResult(
            reference_id=self.settings.media_root,
            body={"items": page, "count": len(page), "total": len(entries)},
        )

    # Queries

    def source(self, url: Optional[str],
               properties: Optional[Union[str, Iterable[str]]] = None) -> PublishResult:
        """
        Return a stored post as microformats2 JSON (Micropub `q=source`).

        Args:
            url: Public URL of the post
            properties: Optional property names to restrict the answer to
        """
        path = url_to_filename(url, self.settings)
        if not path:
            return PublishResult(error="invalid url")

        try:
            stored = self.storage.read_file(path)
        except StorageError as e:
            logging.error(f"Could not read {path}: {e}")
            return PublishResult(error="could not read file")
        if stored is None:
            return PublishResult(error="file does not exist")

        record = from_document(stored.text)
        if not object_has_keys(record):
            return PublishResult(error="could not parse file")

        return PublishResult(
            reference_id=self._reference_id(path),
            location=url,
            body=to_structured(record, properties),
        )

    def config_query(self) -> Dict[str, Any]:
        """Answer Micropub `q=config`."""
        config: Dict[str, Any] = {}
        if self.settings.media_endpoint:
            config["media-endpoint"] = self.settings.media_endpoint
        config["syndicate-to"] = list(self.settings.syndicate_to)
        return config

    def syndicate_to_query(self) -> Dict[str, Any]:
        """Answer Micropub `q=syndicate-to`."""
        return {"syndicate-to": list(self.settings.syndicate_to)}
