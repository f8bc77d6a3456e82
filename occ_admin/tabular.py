"""
Tabular Exporter — Converts record collections into comma-separated text.

The header row is the sorted union of keys across all records (not the first
record's keys). Missing fields are empty cells, objects/arrays are written as
JSON text, and quoting is minimal: a cell is wrapped in double quotes only when
it contains a comma, a double quote or a line break.
"""

import csv
import io
import os
from typing import Any, Dict, Iterable, List

from .records import get_path, value_to_text


def collect_columns(records: Iterable[Dict[str, Any]]) -> List[str]:
    columns = set()
    for record in records:
        if isinstance(record, dict):
            columns.update(record.keys())
    return sorted(columns)


def record_to_row(record: Dict[str, Any], columns: List[str]) -> List[str]:
    if not isinstance(record, dict):
        record = {}
    return [value_to_text(record.get(column)) for column in columns]


def to_delimited_text(records) -> str:
    """Render records as CSV text (header + one line per record)."""
    records = list(records)
    columns = collect_columns(records)
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(columns)
    for record in records:
        writer.writerow(record_to_row(record, columns))
    return buffer.getvalue()


def write_csv(records, path: str) -> str:
    """Write records to path as CSV and return the path."""
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(to_delimited_text(records))
    return path


def project(record: Dict[str, Any], fields: List[str]) -> Dict[str, Any]:
    """Keep only the requested (possibly dotted) fields of a record."""
    return {field_name: get_path(record, field_name) for field_name in fields}


def append_rows(records, fields: List[str], path: str) -> int:
    """Append projected records to a CSV file with a fixed column order.

    The header is written only when the file does not exist yet or is empty.
    Returns the number of rows appended.
    """
    write_header = not os.path.exists(path) or os.path.getsize(path) == 0
    count = 0
    with open(path, "a", encoding="utf-8", newline="") as f:
        writer = csv.writer(f, lineterminator="\n")
        if write_header:
            writer.writerow(fields)
        for record in records:
            writer.writerow(record_to_row(record, fields))
            count += 1
    return count
