"""
Value extraction helpers shared by the renderers.

Records are schema-free decoded JSON; fields are addressed by dotted paths.
None of these functions raise on malformed records.
"""
import json
from typing import Any, Mapping


def get_nested_value(record: Any, path: str) -> Any:
    """
    Resolve a dotted path against a record.

    List elements can be addressed by index ("items.0.title").

    Args:
        record: Decoded API item (dict, list or scalar)
        path: Dotted path such as "collection.$id"

    Returns:
        The value found, or None when a segment is missing or the walk hits None.
        A missing key and a key holding null both come back as None.
    """
    current = record
    for key in path.split("."):
        if current is None:
            return None
        if isinstance(current, Mapping):
            if key not in current:
                return None
            current = current[key]
        elif isinstance(current, (list, tuple)) and key.isdigit() and int(key) < len(current):
            current = current[int(key)]
        else:
            return None
    return current


def _compact_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (Mapping, list, tuple)):
        return _compact_json(value)
    return str(value)


def format_value(value: Any, delimiter: str = ", ") -> str:
    """
    Normalise a value into display text.

    None becomes an empty string, lists are joined with the delimiter,
    objects become compact JSON, everything else goes through str().
    """
    if isinstance(value, (list, tuple)):
        return delimiter.join(_text(item) for item in value)
    return _text(value)


def format_tsv_value(value: Any) -> str:
    """Like format_value but comma-joined, with tabs and newlines escaped."""
    return format_value(value, delimiter=",").replace("\t", "\\t").replace("\n", "\\n")
