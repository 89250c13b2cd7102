"""
Post type classification for gitpub.

The post type decides the directory a post is stored in. It is derived from
which properties a record carries and is never stored.
"""

from typing import Any, Callable, List, Optional, Tuple

from ..models import Record
from ..utils import object_has_keys


def _has(name: str) -> Callable[[Record], bool]:
    return lambda record: bool(record.get(name))


def _has_checkin(record: Record) -> bool:
    checkin = record.get("checkin")
    if isinstance(checkin, (list, tuple, dict)):
        return len(checkin) > 0
    return bool(checkin)


def _is_rsvp(record: Record) -> bool:
    # An rsvp without a reply target is just a note.
    return bool(record.get("rsvp")) and bool(record.get("in-reply-to"))


# Evaluated in order; the first matching predicate decides the type.
CLASSIFICATION_RULES: List[Tuple[Callable[[Record], bool], str]] = [
    (_has("like-of"), "likes"),
    (_has("bookmark-of"), "bookmarks"),
    (_has_checkin, "checkins"),
    (_is_rsvp, "rsvp"),
    (_has("photo"), "photos"),
    (_has("name"), "articles"),
    (_has("watch-of"), "watched"),
    (_has("read-of"), "read"),
    (_has("listen-of"), "listen"),
    (_has("play-of"), "play"),
]

DEFAULT_TYPE = "notes"

# Types stored under a YYYY/MM/DD directory.
DATE_SHARDED_TYPES = frozenset(["notes", "checkins"])


def classify(record: Any) -> Optional[str]:
    """
    Derive the post type of a record.
    
    Args:
        record: The canonical record
        
    Returns:
        One of the type tags, or None for a missing or empty record
    """
    if not object_has_keys(record):
        return None
    for predicate, tag in CLASSIFICATION_RULES:
        if predicate(record):
            return tag
    return DEFAULT_TYPE
