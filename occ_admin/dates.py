"""
Date helpers shared by the field analyzer and the condition evaluator.

Only a fixed set of date-like shapes is recognized:
  - ISO-8601 with time   2021-06-15T23:59:00Z, 2021-06-15T10:00:00.000+02:00
  - ISO date             2021-06-15
  - US date              06/15/2021  (MM/DD/YYYY)
  - European date        15-06-2021  (DD-MM-YYYY)

A value must match one of the shapes AND be a real calendar date.
"""

import re
from datetime import datetime
from typing import Optional

from dateutil.parser import isoparse

ISO_DATETIME_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}(:\d{2}(\.\d+)?)?(Z|[+-]\d{2}:?\d{2})?$", re.ASCII)
ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$", re.ASCII)
US_DATE_PATTERN = re.compile(r"^\d{2}/\d{2}/\d{4}$", re.ASCII)
EU_DATE_PATTERN = re.compile(r"^\d{2}-\d{2}-\d{4}$", re.ASCII)


def parse_date(value) -> Optional[datetime]:
    """Parse a date-like value into a naive datetime, or return None.

    Timezone offsets are dropped without conversion so the calendar day is the
    one written in the value.
    """
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()

    try:
        if ISO_DATETIME_PATTERN.match(text) or ISO_DATE_PATTERN.match(text):
            parsed = isoparse(text)
        elif US_DATE_PATTERN.match(text):
            parsed = datetime.strptime(text, "%m/%d/%Y")
        elif EU_DATE_PATTERN.match(text):
            parsed = datetime.strptime(text, "%d-%m-%Y")
        else:
            return None
    except (ValueError, OverflowError):
        return None

    return parsed.replace(tzinfo=None)


def is_date_only(value) -> bool:
    """True when the value carries a calendar day but no time of day."""
    text = str(value).strip()
    return bool(
        ISO_DATE_PATTERN.match(text) or US_DATE_PATTERN.match(text) or EU_DATE_PATTERN.match(text)
    )
