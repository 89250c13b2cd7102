"""Parsers converting each wire encoding into the canonical record."""

from .base import BaseParser, get_property_value, items_to_array
from .structured import StructuredParser, from_structured, to_structured
from .form import FormParser, from_form
from .document import DocumentParser, from_document, split_document

__all__ = [
    "BaseParser",
    "get_property_value",
    "items_to_array",
    "StructuredParser",
    "from_structured",
    "to_structured",
    "FormParser",
    "from_form",
    "DocumentParser",
    "from_document",
    "split_document",
]
