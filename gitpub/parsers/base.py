"""
Base parser interface for gitpub.

This module defines the abstract interface that all input parsers implement,
plus the value helpers they share.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional

from ..models import Record


# Properties that always hold a single value in the canonical record.
SCALAR_PROPERTIES = frozenset([
    "name",
    "content",
    "summary",
    "published",
    "updated",
    "rsvp",
    "like-of",
    "bookmark-of",
    "repost-of",
    "watch-of",
    "read-of",
    "listen-of",
    "play-of",
])

# Server commands that are not stored as properties (except mp-slug).
SERVER_COMMAND_PREFIX = "mp-"


class BaseParser(ABC):
    """
    Abstract base class for all input parsers.
    
    Each parser converts data in one wire encoding (Micropub JSON, form
    fields, stored Markdown documents) into the canonical record.
    """
    
    @abstractmethod
    def parse(self, data: Any) -> Record:
        """
        Convert encoded data into a canonical record.
        
        Parsers never raise on malformed or missing optional fields; missing
        input yields an empty record.
        
        Returns:
            The canonical record
        """
        pass


def get_property_value(value: Any) -> Any:
    """
    Return the first element of a property value list.
    
    Scalars are returned unchanged; empty lists and None yield None.
    """
    if isinstance(value, (list, tuple)):
        return value[0] if len(value) > 0 else None
    return value


def items_to_array(value: Any) -> List[Any]:
    """Wrap a scalar in a list; None yields an empty list."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def unwrap_values(value: Any) -> Any:
    """
    Collapse a one-element list to its element.
    
    Lists with several values are kept whole; empty lists yield None.
    """
    if isinstance(value, (list, tuple)):
        if len(value) == 0:
            return None
        if len(value) == 1:
            return value[0]
        return list(value)
    return value


def post_status_is_draft(value: Any) -> Optional[bool]:
    """Map a `post-status` value to the `draft` flag (None when not a draft)."""
    status = get_property_value(value)
    if isinstance(status, str) and status.lower() == "draft":
        return True
    return None
