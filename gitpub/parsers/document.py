"""
Markdown document parser for gitpub.

Reads documents written by the formatter: a YAML header between two `---`
lines followed by the post body. Delimiter detection, splitting and header
loading go through python-frontmatter's YAML handler; the body is taken
verbatim rather than stripped, so indentation and inner blank lines survive.
"""

import logging
from datetime import date, datetime
from typing import Any, Tuple

import yaml
from frontmatter.default_handlers import YAMLHandler

from ..models import Record, ENTRY_TYPE, HEADER_INVERSE_RENAMES
from ..utils import iso_timestamp
from .base import BaseParser, items_to_array


HEADER_HANDLER = YAMLHandler()


class DocumentParser(BaseParser):
    """
    Parser for stored Markdown documents with a YAML header.
    """
    
    def parse(self, data: Any) -> Record:
        return from_document(data)


def _drop_line_break(text: str) -> str:
    if text.startswith("\r\n"):
        return text[2:]
    if text.startswith("\n"):
        return text[1:]
    return text


def split_document(text: str) -> Tuple[str, str]:
    """
    Split a document into its raw header and body.
    
    A document without a leading delimiter line, or without a closing one,
    is all body.
    """
    if not HEADER_HANDLER.detect(text):
        return "", text
    try:
        header, body = HEADER_HANDLER.split(text)
    except ValueError:
        return "", text
    # The delimiter pattern leaves the line break after each `---` in place.
    return _drop_line_break(header), _drop_line_break(body)


def _normalize(value: Any) -> Any:
    """Turn YAML-native timestamps back into ISO-8601 strings."""
    if isinstance(value, datetime):
        return iso_timestamp(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, list):
        return [_normalize(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _normalize(item) for key, item in value.items()}
    return value


def _strip_body(body: str) -> str:
    """Drop one leading blank line and the trailing newline the formatter adds."""
    body = _drop_line_break(body)
    if body.endswith("\r\n"):
        body = body[:-2]
    elif body.endswith("\n"):
        body = body[:-1]
    return body


def from_document(text: Any) -> Record:
    """
    Convert a stored document back into a canonical record.
    
    Header keys are mapped back through the rename table (`title` → `name`,
    `tags` → `category`, `date` → `published`).
    
    Args:
        text: The document text (bytes are decoded as UTF-8)
        
    Returns:
        The canonical record; empty when the input is missing or the header
        cannot be parsed
    """
    if text is None:
        return {}
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    if not isinstance(text, str):
        return {}
    
    header_text, body = split_document(text)
    
    try:
        header = HEADER_HANDLER.load(header_text) if header_text.strip() else {}
    except yaml.YAMLError as e:
        logging.warning(f"Failed to parse document header: {e}")
        return {}
    
    if header is None:
        header = {}
    if not isinstance(header, dict):
        logging.warning(f"Document header is not a mapping: {type(header).__name__}")
        return {}
    
    record: Record = {"type": ENTRY_TYPE}
    for key, value in header.items():
        key = str(key)
        if key == "date" and "published" not in header:
            name = "published"
        else:
            name = HEADER_INVERSE_RENAMES.get(key, key)
        record[name] = _normalize(value)
    
    if "category" in record:
        record["category"] = items_to_array(record["category"])
    
    record["content"] = _strip_body(body)
    return record
