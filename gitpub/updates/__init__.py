"""Partial update merging."""

from .merger import UpdateMerger, apply_update, ADD_EXCLUDED_PROPERTIES, SINGLE_VALUED_PROPERTIES

__all__ = ["UpdateMerger", "apply_update", "ADD_EXCLUDED_PROPERTIES", "SINGLE_VALUED_PROPERTIES"]
