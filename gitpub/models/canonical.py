"""
Canonical data models for gitpub.

This module defines the standardized internal representation that every
input encoding (Micropub JSON, form fields, stored Markdown documents) is
converted into before it is classified, formatted and committed.
"""

from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


# A canonical record is a plain, insertion-ordered dict. Values are strings,
# lists of strings, lists of opaque sub-objects (checkin, location, citations,
# photos with alt text), nested mappings or booleans.
Record = Dict[str, Any]

# The only microformat type gitpub publishes.
ENTRY_TYPE = "h-entry"


class MediaFile(BaseModel):
    """
    An uploaded file as delivered by a multipart body parser.
    """
    
    filename: str = Field(
        ...,
        description="The original filename supplied by the client"
    )
    
    content: bytes = Field(
        default=b"",
        description="The raw file content"
    )
    
    mime_type: Optional[str] = Field(
        default=None,
        description="The content type reported by the client, if any"
    )


class FormattedPost(BaseModel):
    """
    The output of the formatter: where a record goes and what gets written there.
    """
    
    path: str = Field(
        ...,
        description="Repository path of the document, e.g. 'src/articles/title.md'"
    )
    
    reference_id: str = Field(
        ...,
        description="The path without the content root prefix and '.md' suffix"
    )
    
    document: str = Field(
        ...,
        description="The serialized Markdown document with its YAML header"
    )
    
    record: Record = Field(
        default_factory=dict,
        description="The record after date stamping"
    )


# Record keys renamed when written to a document header.
HEADER_RENAMES: Dict[str, str] = {
    "name": "title",
    "category": "tags",
    "published": "date",
}

# Header keys mapped back to record keys when a document is read. A header
# `date` becomes `published` unless the header also carries `published`.
HEADER_INVERSE_RENAMES: Dict[str, str] = {
    "title": "name",
    "tags": "category",
}

# Record keys that never appear in a document header.
IGNORED_HEADER_PROPERTIES = ("content", "type")

# Properties carried as opaque nested structures in every representation.
COMPLEX_PROPERTIES = ("checkin", "location")
