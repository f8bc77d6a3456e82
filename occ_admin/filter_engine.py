"""
Filter Engine — Applies a condition to every record of a collection.
"""

from typing import Any, Dict, List

from . import conditions
from .field_analyzer import FieldTypeProfile
from .records import get_field


def filter_records(
    records,
    field_name: str,
    condition: str,
    profile: FieldTypeProfile,
) -> List[Dict[str, Any]]:
    """Return the records whose field_name value satisfies condition.

    Single pass, original order preserved. A record without the field is
    evaluated as a null value, so it only matches "null"/"undefined".
    """
    return [
        record
        for record in records
        if conditions.test(profile.type, get_field(record, field_name), condition)
    ]
