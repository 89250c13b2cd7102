"""
Partial update merging for gitpub.

Applies Micropub update instructions (`replace`, `add`, `delete`) to an
existing canonical record.
"""

import logging
from typing import Any, Dict, Optional, Union

from ..models import Record, UpdateInstruction, ENTRY_TYPE
from ..parsers import from_structured, items_to_array
from ..utils import remove_empty


# Never appended to by `add`: the type is fixed and photo sets are replaced whole.
ADD_EXCLUDED_PROPERTIES = frozenset(["type", "photo"])

# Hold a single value; `add` only sets them when absent and never appends.
SINGLE_VALUED_PROPERTIES = frozenset(["name", "content", "summary", "published", "updated", "date", "slug"])


def _fragment_values(key: str, parsed: Any, properties: Optional[Dict[str, Any]]) -> list:
    """
    The full value list the client sent for a key.

    Parsing collapses scalar properties to their first value; add and delete
    work on every value, so the raw list is used when the key was not renamed.
    """
    if properties and key in properties and key != "content":
        return items_to_array(properties[key])
    return items_to_array(parsed)


class UpdateMerger:
    """
    Merges update instructions into canonical records.

    `apply` returns the updated record, or None when the instruction would
    not change anything. None means "nothing to update", which callers
    report separately from "post not found".
    """

    def apply(self, record: Record,
              instruction: Union[UpdateInstruction, Dict[str, Any], None]) -> Optional[Record]:
        """
        Apply one update instruction to a record.

        Args:
            record: The existing record (modified in place by add and delete)
            instruction: The update, as a model or a raw request body

        Returns:
            The updated record, or None when nothing changed
        """
        if record is None or instruction is None:
            return None
        if not isinstance(instruction, UpdateInstruction):
            instruction = UpdateInstruction.from_request(instruction)

        if instruction.deletes_properties:
            return self.delete_properties(record, instruction.delete)

        properties = instruction.fragment()
        fragment = self._parse_fragment(record, properties)
        if fragment is None:
            logging.info("Update carries no properties")
            return None

        if instruction.replace is not None:
            return self.replace(record, fragment)
        if instruction.add is not None:
            return self.add(record, fragment, properties)
        return self.delete_values(record, fragment, properties)

    def _parse_fragment(self, record: Record, properties: Optional[Dict[str, Any]]) -> Optional[Record]:
        if not properties:
            return None
        fragment = remove_empty(from_structured({
            "type": record.get("type") or ENTRY_TYPE,
            "properties": properties,
        }))
        # The parsed fragment always carries `type`.
        if len(fragment) <= 1:
            return None
        return fragment

    def delete_properties(self, record: Record, names: Any) -> Optional[Record]:
        """Remove whole properties; None when none of them were present."""
        updated = False
        for name in items_to_array(names):
            if isinstance(name, str) and name in record:
                del record[name]
                updated = True
        return record if updated else None

    def replace(self, record: Record, fragment: Record) -> Record:
        """Overwrite properties key by key with the fragment's values."""
        return {**record, **fragment}

    def add(self, record: Record, fragment: Record,
            properties: Optional[Dict[str, Any]] = None) -> Optional[Record]:
        """
        Append fragment values to existing values, creating missing keys.

        Single-valued properties such as `name` and `content` are only set
        when missing; an existing value is left untouched.
        """
        updated = False
        for key, value in fragment.items():
            if key in ADD_EXCLUDED_PROPERTIES:
                continue
            if key in SINGLE_VALUED_PROPERTIES:
                if record.get(key) in (None, ""):
                    record[key] = value
                    updated = True
                continue
            updated = True
            values = _fragment_values(key, value, properties)
            if key in record and record[key] is not None:
                record[key] = items_to_array(record[key]) + values
            else:
                record[key] = values
        return record if updated else None

    def delete_values(self, record: Record, fragment: Record,
                      properties: Optional[Dict[str, Any]] = None) -> Optional[Record]:
        """
        Remove individual values from list-valued properties.

        Each named value removes at most one occurrence. Properties whose
        current value is not a list are left alone.
        """
        updated = False
        for key, value in fragment.items():
            if key == "type":
                continue
            existing = record.get(key)
            if not isinstance(existing, list):
                continue
            for item in _fragment_values(key, value, properties):
                if item in existing:
                    existing.remove(item)
                    updated = True
        return record if updated else None


def apply_update(record: Record,
                 instruction: Union[UpdateInstruction, Dict[str, Any], None]) -> Optional[Record]:
    """Apply an update instruction with a default merger."""
    return UpdateMerger().apply(record, instruction)
