"""
Small helpers shared by the parsers, the formatter and the publisher.
"""

import logging
import re
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from .models import PublishSettings


_NON_SLUG_CHARS = re.compile(r"[^\w\- ]+")
_SLUG_SEPARATORS = re.compile(r"[\- ]+")


def slugify(text: Any) -> str:
    """
    Turn arbitrary text into a lowercase, hyphen-separated path fragment.

    Args:
        text: The text to slugify (non-strings are converted with str())

    Returns:
        The slug, possibly empty when nothing usable remains
    """
    if text is None:
        return ""
    slug = _NON_SLUG_CHARS.sub("", str(text).lower())
    slug = _SLUG_SEPARATORS.sub(" ", slug).strip()
    return slug.replace(" ", "-")


def object_has_keys(data: Any) -> bool:
    """True for a mapping with at least one key."""
    return isinstance(data, dict) and len(data) > 0


def remove_empty(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Remove keys whose values are None, empty lists or empty mappings.

    The dict is modified in place and returned.
    """
    for key in list(data.keys()):
        value = data[key]
        if value is None or (isinstance(value, (list, dict)) and not value):
            del data[key]
    return data


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp into an aware UTC datetime.

    Naive values are taken to be UTC. Returns None for anything unparseable.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z") or text.endswith("z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def iso_timestamp(moment: datetime) -> str:
    """Format a datetime as `YYYY-MM-DDTHH:MM:SS.sssZ` in UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    utc = moment.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def utc_now() -> datetime:
    """The current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def url_to_filename(url: Optional[str], settings: PublishSettings) -> Optional[str]:
    """
    Map a public post URL back to the repository path of its document.

    The URL's origin must match the configured site origin.

    Args:
        url: A post URL such as 'https://example.com/articles/title/'
        settings: Site settings providing the origin and content root

    Returns:
        The document path ('src/articles/title.md') or None when the URL does
        not belong to this site
    """
    if not url or not isinstance(url, str):
        return None

    try:
        parsed = urlparse(url)
        site = urlparse(settings.me)
    except ValueError as e:
        logging.error(f"Invalid URL {url!r}: {e}")
        return None

    if not parsed.scheme or not parsed.netloc:
        logging.warning(f"Not an absolute URL: {url}")
        return None

    if (parsed.scheme, parsed.netloc) != (site.scheme, site.netloc):
        logging.warning(f"URL {url} does not belong to {settings.origin}")
        return None

    reference_id = parsed.path.strip("/")
    if not reference_id:
        return None

    return f"{settings.root}/{reference_id}.md"


def public_url(path: str, settings: PublishSettings) -> str:
    """Join a site-relative path onto the configured origin."""
    return f"{settings.origin}/{path.lstrip('/')}"
