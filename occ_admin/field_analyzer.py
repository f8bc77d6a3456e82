"""
Field Type Analyzer — Infers the dominant semantic type of a record field.

Up to MAX_SAMPLES non-null values of the field are collected in record order and
each sample is classified into exactly one category, first match wins:

  boolean  native bool, or text equal to "true"/"false" (any case)
  number   parses as a finite float
  date     matches a known date shape and is a real calendar date
  string   anything else

The field type is the first category, in that same priority order, whose share
of the samples reaches TYPE_THRESHOLD. When no category reaches it the field is
treated as a string. A field with no non-null samples has type "null".
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List

from .dates import parse_date
from .records import get_field, value_to_text

TYPE_THRESHOLD = 0.7
MAX_SAMPLES = 100
MAX_EXAMPLES = 3

TYPE_PRIORITY = ["boolean", "number", "date", "string"]


@dataclass
class FieldTypeProfile:
    type: str
    details: str = ""
    examples: List[Any] = field(default_factory=list)

    def to_dict(self, field_name: str = "") -> Dict[str, Any]:
        summary = {"type": self.type, "details": self.details, "examples": list(self.examples)}
        if field_name:
            summary = {"field": field_name, **summary}
        return summary


def is_boolean_like(value) -> bool:
    if isinstance(value, bool):
        return True
    return isinstance(value, str) and value.strip().lower() in ("true", "false")


def parse_number(value):
    """Return value as a finite float, or None. Booleans never count as numbers."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def classify_value(value) -> str:
    if is_boolean_like(value):
        return "boolean"
    if parse_number(value) is not None:
        return "number"
    if isinstance(value, str) and parse_date(value) is not None:
        return "date"
    return "string"


def collect_samples(records, field_name: str, limit: int = MAX_SAMPLES) -> List[Any]:
    samples = []
    for record in records:
        value = get_field(record, field_name)
        if value is None:
            continue
        samples.append(value)
        if len(samples) >= limit:
            break
    return samples


def analyze(records, field_name: str) -> FieldTypeProfile:
    """Infer the FieldTypeProfile of field_name across records."""
    samples = collect_samples(records, field_name)
    if not samples:
        return FieldTypeProfile(type="null", details="0/0 non-null values")

    counts = {category: 0 for category in TYPE_PRIORITY}
    for value in samples:
        counts[classify_value(value)] += 1

    total = len(samples)
    primary = "string"
    for category in TYPE_PRIORITY:
        if counts[category] / total >= TYPE_THRESHOLD:
            primary = category
            break

    return FieldTypeProfile(
        type=primary,
        details=f"{counts[primary]}/{total} {primary} values",
        examples=samples[:MAX_EXAMPLES],
    )


def describe(profile: FieldTypeProfile) -> str:
    examples = ", ".join(value_to_text(v) for v in profile.examples)
    return f"{profile.type} ({profile.details}){' e.g. ' + examples if examples else ''}"
