"""
Document formatter for gitpub.

Derives the date, type, slug and repository path of a record and serializes
it as a Markdown document with a YAML header:

    ---
    date: '2021-09-09T12:23:34.120Z'
    title: Title
    tags:
      - one
      - two
    ---
    Body text
"""

import logging
from datetime import datetime
from typing import Any, Optional, Tuple

import yaml

from ..models import (
    Record,
    FormattedPost,
    PublishSettings,
    HEADER_RENAMES,
    IGNORED_HEADER_PROPERTIES,
)
from ..parsers.base import get_property_value
from ..parsers.document import HEADER_HANDLER
from ..utils import slugify, object_has_keys, parse_timestamp, iso_timestamp, utc_now
from .classifier import classify, DATE_SHARDED_TYPES, DEFAULT_TYPE


# Checked in this order when a post has neither slug nor name.
CITATION_PROPERTIES = ("watch-of", "read-of", "listen-of", "play-of")


class _HeaderDumper(yaml.SafeDumper):
    """Safe dumper that indents block sequences under their key."""

    def increase_indent(self, flow=False, indentless=False):
        return super().increase_indent(flow, False)


def resolve_date(record: Record, now: Optional[datetime] = None) -> datetime:
    """
    Determine the timestamp a record is filed under and stamp the record.

    The timestamp is `published`, else `date`, else now; an unparseable
    value falls through to the next. A record with neither gets `date` set;
    any other record gets `updated` refreshed.

    Args:
        record: The canonical record (modified in place)
        now: The current time, for deterministic callers

    Returns:
        The resolved timestamp as an aware UTC datetime
    """
    now = now or utc_now()
    moment = None

    for key in ("published", "date"):
        if record.get(key):
            moment = parse_timestamp(record[key])
            if moment is not None:
                break
            logging.warning(f"Unparseable {key} {record[key]!r}")

    if moment is None:
        moment = now

    if not record.get("date") and not record.get("published"):
        record["date"] = iso_timestamp(moment)
    else:
        record["updated"] = iso_timestamp(now)

    return moment


def _citation_slug(citation: Any) -> Optional[str]:
    if not isinstance(citation, dict) or not isinstance(citation.get("properties"), dict):
        return None
    properties = citation["properties"]
    parts = [
        slugify(get_property_value(properties.get("name"))),
        slugify(get_property_value(properties.get("published"))),
    ]
    return "-".join(part for part in parts if part)


def derive_slug(record: Record, moment: datetime,
                settings: Optional[PublishSettings] = None) -> str:
    """
    Derive the filename slug of a record.

    Fallback chain: explicit `slug`, then `name`, then the first structured
    citation (`watch-of`, `read-of`, `listen-of`, `play-of`) as name plus
    published date, then the Unix timestamp of `moment`.

    Args:
        record: The canonical record
        moment: The resolved timestamp of the record
        settings: Site settings (full-date filename prefix)

    Returns:
        The slug
    """
    settings = settings or PublishSettings()
    slug = None

    for key in ("slug", "name"):
        slug = slugify(get_property_value(record.get(key)))
        if slug:
            break

    if not slug:
        for key in CITATION_PROPERTIES:
            citation = get_property_value(record.get(key))
            if isinstance(citation, dict) and "properties" in citation:
                slug = _citation_slug(citation)
                break

    if not slug:
        slug = str(round(moment.timestamp()))

    if settings.filename_full_date:
        slug = f"{moment.strftime('%Y-%m-%d')}-{slug}"

    return slug


def derive_path(post_type: str, moment: datetime, slug: str,
                settings: Optional[PublishSettings] = None) -> Tuple[str, str]:
    """
    Build the repository path and reference id of a post.

    Notes and checkins are sharded by UTC date: `{root}/{type}/YYYY/MM/DD/{slug}.md`;
    every other type lives at `{root}/{type}/{slug}.md`.

    Returns:
        Tuple of (path, reference_id)
    """
    settings = settings or PublishSettings()
    reference_id = f"{post_type}/"
    if post_type in DATE_SHARDED_TYPES:
        reference_id += moment.strftime("%Y/%m/%d/")
    reference_id += slug
    return f"{settings.root}/{reference_id}.md", reference_id


def _plain(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _plain(item) for key, item in value.items()}
    return value


def serialize(record: Optional[Record], client_id: Optional[str] = None) -> Optional[str]:
    """
    Serialize a record as a Markdown document with a YAML header.

    Every key except `content` and `type` goes into the header, renamed
    through the header rename table; `content` becomes the body.

    Args:
        record: The canonical record
        client_id: The publishing client, recorded as `client_id`

    Returns:
        The document text, or None for a missing or unserializable record
    """
    if not record:
        return None

    header = {}
    for key, value in record.items():
        if key in IGNORED_HEADER_PROPERTIES:
            continue
        if key == "date" and "published" in record:
            continue
        header[HEADER_RENAMES.get(key, key)] = _plain(value)
    if client_id:
        header["client_id"] = client_id

    content = record.get("content")
    if content is None:
        content = ""
    if isinstance(content, (list, tuple, dict)):
        logging.error(f"Document body must be text, got {type(content).__name__}")
        return None

    try:
        if header:
            header_text = HEADER_HANDLER.export(
                header,
                Dumper=_HeaderDumper,
                sort_keys=False,
                width=float("inf"),
            ) + "\n"
        else:
            header_text = ""
    except yaml.YAMLError as e:
        logging.error(f"Failed to serialize document header: {e}")
        return None

    start = HEADER_HANDLER.START_DELIMITER
    end = HEADER_HANDLER.END_DELIMITER
    return f"{start}\n{header_text}{end}\n{content}\n"


def format_post(record: Optional[Record], client_id: Optional[str] = None,
                settings: Optional[PublishSettings] = None,
                now: Optional[datetime] = None) -> Optional[FormattedPost]:
    """
    Resolve the date, type, slug and path of a record and serialize it.

    Args:
        record: The canonical record (date-stamped in place)
        client_id: The publishing client, recorded in the header
        settings: Site settings
        now: The current time, for deterministic callers

    Returns:
        The formatted post, or None for a missing record
    """
    if not object_has_keys(record):
        return None

    settings = settings or PublishSettings()
    moment = resolve_date(record, now)
    post_type = classify(record) or DEFAULT_TYPE
    slug = derive_slug(record, moment, settings)
    path, reference_id = derive_path(post_type, moment, slug, settings)

    document = serialize(record, client_id)
    if document is None:
        return None

    logging.info(f"Formatted {post_type} post: {path}")
    return FormattedPost(
        path=path,
        reference_id=reference_id,
        document=document,
        record=record,
    )


def media_filename(filename: Optional[str], settings: Optional[PublishSettings] = None,
                   now: Optional[datetime] = None) -> Optional[str]:
    """
    Build the repository path of an uploaded file.

    Files are stored as `{media_dir}/{unix_seconds}_{filename}`; two uploads
    of the same name within one second collide.
    """
    if not filename:
        return None
    settings = settings or PublishSettings()
    now = now or utc_now()
    return f"{settings.media_root}/{round(now.timestamp())}_{filename}"
