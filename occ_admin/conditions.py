"""
Condition Evaluator — Tests a single value against a user condition string.

The condition grammar depends on the inferred field type:

  boolean   "true" | "false"
  number    [>|<|>=|<=|=] <number>          e.g. ">20", "<= -1.5", "42"
  date      <date>                           same calendar day
            <start> <end>                    inclusive range
  string    any text                         case-insensitive substring

Evaluation runs in two explicit stages: a typed attempt that returns None when
the condition or the value does not parse for that type, then the default
substring match. test() never raises.
"""

import re
from datetime import datetime, time
from typing import Optional

from .dates import is_date_only, parse_date
from .field_analyzer import parse_number
from .records import value_to_text

NULL_CONDITIONS = ("null", "undefined")
BOOLEAN_CONDITIONS = ("true", "false")

NUMBER_CONDITION_PATTERN = re.compile(r"^(>=|<=|>|<|=)?\s*(-?\d+(?:\.\d+)?|-?\.\d+)$", re.ASCII)

_OPERATORS = {
    ">": lambda a, b: a > b,
    "<": lambda a, b: a < b,
    ">=": lambda a, b: a >= b,
    "<=": lambda a, b: a <= b,
    "=": lambda a, b: a == b,
}


def parse_number_condition(condition: str):
    """Return (operator, operand) or None when the condition is not numeric."""
    match = NUMBER_CONDITION_PATTERN.match(condition.strip())
    if not match:
        return None
    return match.group(1) or "=", float(match.group(2))


def parse_date_condition(condition: str):
    """Return ("range", start, end), ("day", date) or None.

    A range end given without a time of day covers that whole day.
    """
    text = condition.strip()
    if text.count(" ") == 1:
        start_text, end_text = text.split(" ")
        start = parse_date(start_text)
        end = parse_date(end_text)
        if start is None or end is None:
            return None
        if is_date_only(end_text):
            end = datetime.combine(end.date(), time.max)
        return "range", start, end

    day = parse_date(text)
    if day is None:
        return None
    return "day", day.date()


def _test_boolean(raw_value, condition: str) -> Optional[bool]:
    wanted = condition.strip().lower()
    if wanted not in BOOLEAN_CONDITIONS:
        return None
    return value_to_text(raw_value).strip().lower() == wanted


def _test_number(raw_value, condition: str) -> Optional[bool]:
    parsed = parse_number_condition(condition)
    value = parse_number(raw_value)
    if parsed is None or value is None:
        return None
    operator, operand = parsed
    return _OPERATORS[operator](value, operand)


def _test_date(raw_value, condition: str) -> Optional[bool]:
    parsed = parse_date_condition(condition)
    value = parse_date(raw_value)
    if parsed is None or value is None:
        return None
    if parsed[0] == "range":
        _, start, end = parsed
        return start <= value <= end
    return value.date() == parsed[1]


_TYPED_TESTS = {
    "boolean": _test_boolean,
    "number": _test_number,
    "date": _test_date,
}


def matches_text(raw_value, condition: str) -> bool:
    """Case-insensitive substring match of condition within the value's text."""
    return condition.lower() in value_to_text(raw_value).lower()


def test(field_type: str, raw_value, condition) -> bool:
    """Return True when raw_value satisfies condition under field_type semantics."""
    condition = "" if condition is None else str(condition)

    if raw_value is None:
        return condition.strip().lower() in NULL_CONDITIONS

    typed_test = _TYPED_TESTS.get(field_type)
    if typed_test is not None:
        outcome = typed_test(raw_value, condition)
        if outcome is not None:
            return outcome

    return matches_text(raw_value, condition)


def validate_condition(field_type: str, condition: str) -> Optional[str]:
    """Return a warning when condition does not fit field_type's grammar, else None."""
    condition = "" if condition is None else str(condition)
    if condition.strip().lower() in NULL_CONDITIONS:
        return None

    if field_type == "boolean" and condition.strip().lower() not in BOOLEAN_CONDITIONS:
        return f"'{condition}' is not a boolean condition (expected true/false); using text match"
    if field_type == "number" and parse_number_condition(condition) is None:
        return (
            f"'{condition}' is not a numeric condition (expected e.g. >20, <=5, 42); "
            "using text match"
        )
    if field_type == "date" and parse_date_condition(condition) is None:
        return (
            f"'{condition}' is not a date condition (expected YYYY-MM-DD or "
            "'YYYY-MM-DD YYYY-MM-DD'); using text match"
        )
    return None
