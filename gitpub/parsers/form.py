"""
Form field parser for gitpub.

Handles `application/x-www-form-urlencoded` and `multipart/form-data`
posts, where multi-valued fields use the `field[]` naming convention.
"""

from typing import Any, List, Mapping

from ..models import Record, ENTRY_TYPE
from .base import (
    BaseParser,
    SCALAR_PROPERTIES,
    SERVER_COMMAND_PREFIX,
    get_property_value,
    items_to_array,
    unwrap_values,
    post_status_is_draft,
)


# Request fields that are not post properties.
CONTROL_FIELDS = frozenset(["access_token", "action", "url", "h"])

# Fields merged, in this order, into the `photo` list.
PHOTO_FIELDS = ("photo", "photo[]", "file", "file[]")


class FormParser(BaseParser):
    """
    Parser for flat form-encoded posts.
    """
    
    def parse(self, data: Any) -> Record:
        return from_form(data)


def _append(record: Record, name: str, values: List[Any]) -> None:
    if not values:
        return
    existing = items_to_array(record.get(name))
    record[name] = existing + values


def from_form(fields: Any) -> Record:
    """
    Convert form fields into a canonical record.
    
    `photo`, `photo[]`, `file` and `file[]` are merged into one ordered
    `photo` list; `category` always becomes a list; other `field[]` keys
    become list-valued `field` properties.
    
    Args:
        fields: The decoded form body
        
    Returns:
        The canonical record; empty when `fields` is not a mapping
    """
    if not isinstance(fields, Mapping):
        return {}
    
    h = get_property_value(fields.get("h"))
    record: Record = {"type": f"h-{h}" if h else ENTRY_TYPE}
    
    for key, value in fields.items():
        if key in CONTROL_FIELDS or key in PHOTO_FIELDS:
            continue
        
        multiple = key.endswith("[]")
        name = key[:-2] if multiple else key
        
        if name == "mp-slug":
            slug = get_property_value(value)
            if slug:
                record["slug"] = slug
        elif name == "post-status":
            if post_status_is_draft(value):
                record["draft"] = True
            elif get_property_value(value) is not None:
                record["post-status"] = get_property_value(value)
        elif name.startswith(SERVER_COMMAND_PREFIX):
            continue
        elif name == "category" or multiple:
            _append(record, name, items_to_array(value))
        elif name in SCALAR_PROPERTIES:
            scalar = get_property_value(value)
            if scalar is not None:
                record[name] = scalar
        else:
            unwrapped = unwrap_values(value)
            if unwrapped is not None:
                record[name] = unwrapped
    
    photos: List[Any] = []
    for field in PHOTO_FIELDS:
        photos.extend(items_to_array(fields.get(field)))
    if photos:
        record["photo"] = photos
    
    return record
