"""
Micropub JSON (microformats2) parser for gitpub.

Converts `{"type": ["h-entry"], "properties": {...}}` documents into the
canonical record and back.
"""

import logging
from typing import Any, Dict, Iterable, Optional, Union

from ..models import Record, ENTRY_TYPE, COMPLEX_PROPERTIES
from .base import (
    BaseParser,
    SCALAR_PROPERTIES,
    SERVER_COMMAND_PREFIX,
    get_property_value,
    items_to_array,
    unwrap_values,
    post_status_is_draft,
)


class StructuredParser(BaseParser):
    """
    Parser for structured-properties (microformats2 JSON) posts.
    """
    
    def parse(self, data: Any) -> Record:
        return from_structured(data)


def _photo_entry(item: Any) -> Any:
    """Keep bare URLs; reduce objects to their value and alt text."""
    if isinstance(item, str):
        return item
    if isinstance(item, dict):
        entry = {key: item[key] for key in ("value", "alt") if item.get(key) is not None}
        return entry or None
    return None


def _content_value(values: Any) -> Any:
    """Content may arrive as plain text or as {"html": ..., "value": ...}."""
    content = get_property_value(values)
    if isinstance(content, dict):
        return content.get("html") or content.get("value")
    return content


def from_structured(doc: Any) -> Record:
    """
    Convert a microformats2 JSON document into a canonical record.
    
    Args:
        doc: The decoded JSON body
        
    Returns:
        The canonical record; empty when `doc` is not a mapping
    """
    if not isinstance(doc, dict):
        return {}
    
    properties = doc.get("properties")
    if not isinstance(properties, dict):
        if properties is not None:
            logging.warning(f"Ignoring non-mapping properties: {type(properties).__name__}")
        properties = {}
    
    record: Record = {"type": get_property_value(doc.get("type")) or ENTRY_TYPE}
    
    for name, values in properties.items():
        if name == "mp-slug":
            value = get_property_value(values)
        elif name == "post-status":
            if post_status_is_draft(values):
                record["draft"] = True
                continue
            value = get_property_value(values)
        elif name.startswith(SERVER_COMMAND_PREFIX):
            continue
        elif name == "category":
            value = items_to_array(values) or None
        elif name in COMPLEX_PROPERTIES:
            value = items_to_array(values) or None
        elif name == "photo":
            photos = [_photo_entry(item) for item in items_to_array(values)]
            value = [photo for photo in photos if photo is not None] or None
        elif name == "content":
            value = _content_value(values)
        elif name in SCALAR_PROPERTIES:
            value = get_property_value(values)
        else:
            value = unwrap_values(values)
        
        if value is not None:
            record["slug" if name == "mp-slug" else name] = value
    
    return record


def to_structured(record: Optional[Record],
                  properties: Optional[Union[str, Iterable[str]]] = None) -> Dict[str, Any]:
    """
    Convert a canonical record into a microformats2 JSON document.
    
    Args:
        record: The canonical record
        properties: Optional property names to include (Micropub
            `q=source&properties[]=...`); all properties when omitted
            
    Returns:
        `{"type": ["h-entry"], "properties": {...}}` with every value a list
    """
    output: Dict[str, Any] = {}
    record = record if isinstance(record, dict) else {}
    
    for key, value in record.items():
        if key == "type" or value is None:
            continue
        if key == "slug":
            name = "mp-slug"
        elif key == "draft" and value is True:
            output["post-status"] = ["draft"]
            continue
        else:
            name = key
        output[name] = list(value) if isinstance(value, (list, tuple)) else [value]
    
    if properties:
        wanted = [properties] if isinstance(properties, str) else list(properties)
        output = {name: values for name, values in output.items() if name in wanted}
    
    return {"type": [ENTRY_TYPE], "properties": output}
