"""Classification, path derivation and document serialization."""

from .classifier import classify, CLASSIFICATION_RULES, DATE_SHARDED_TYPES
from .formatter import (
    resolve_date,
    derive_slug,
    derive_path,
    serialize,
    format_post,
    media_filename,
)

__all__ = [
    "classify",
    "CLASSIFICATION_RULES",
    "DATE_SHARDED_TYPES",
    "resolve_date",
    "derive_slug",
    "derive_path",
    "serialize",
    "format_post",
    "media_filename",
]
