"""
Record helpers — schema-free access to JSON records.

A record is a plain dict; any field may be absent. These helpers keep the
"absent" vs "present but null" distinction explicit and render values as text
the same way everywhere (condition matching, CSV cells).
"""

import json
import math
from typing import Any, Dict, List, Optional

_MISSING = object()


def has_field(record, field_name: str) -> bool:
    return isinstance(record, dict) and field_name in record


def get_field(record, field_name: str, default=None):
    """Return record[field_name], or default when absent or not a record."""
    if not isinstance(record, dict):
        return default
    return record.get(field_name, default)


def get_path(record, path: str, default=None):
    """Resolve a dotted path ("priceInfo.total") through nested dicts."""
    current = record
    for part in path.split("."):
        if not isinstance(current, dict):
            return default
        current = current.get(part, _MISSING)
        if current is _MISSING:
            return default
    return current


def value_to_text(value: Any) -> str:
    """Render a JSON value as text.

    None -> "", booleans -> "true"/"false", integral floats without ".0",
    objects and arrays -> compact JSON.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return str(value)


def reported_total(data) -> Optional[int]:
    """Return the page's "total" as an int, or None when the page does not report one."""
    value = get_field(data, "total")
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def extract_items(data) -> List[Dict[str, Any]]:
    """Return the record list from a response/RecordSet payload."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        items = data.get("items", [])
        return items if isinstance(items, list) else []
    return []


def describe_total(total: Optional[int]) -> str:
    return "unknown" if total is None else str(total)
