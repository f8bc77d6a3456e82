"""
Data Miner — Typed ad-hoc filtering over a consolidated result file.

Pipeline:
  1. Load the RecordSet JSON (a path, or a bare name found in the result dir)
  2. Validate that at least one record carries the field
  3. Analyze the field's type from sample values
  4. Validate the condition against that type (warning only)
  5. Filter the records
  6. Save the MiningResult JSON and the matching CSV

A run with zero matches is reported and writes nothing.

Example:
    miner = DataMiner(output_manager)
    result = miner.mine("profile_03-10-2025_consolidated.json", "lastPurchaseAmount", ">20")
"""

import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from . import conditions
from .errors import FieldNotPresent, InputNotFound, ValidationError
from .field_analyzer import analyze, describe
from .filter_engine import filter_records
from .output_manager import OutputManager
from .records import extract_items, has_field
from .tabular import write_csv


@dataclass
class MiningResult:
    source: str
    filter: str
    field_analysis: Dict[str, Any]
    original_count: int
    filtered_count: int
    items: List[Dict[str, Any]] = field(default_factory=list)
    warning: Optional[str] = None
    json_path: Optional[str] = None
    csv_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "filter": self.filter,
            "fieldAnalysis": self.field_analysis,
            "originalCount": self.original_count,
            "filteredCount": self.filtered_count,
            "items": self.items,
        }


class DataMiner:
    """Runs one mining invocation at a time against files managed by OutputManager."""

    def __init__(self, output_manager: OutputManager, debug: bool = False):
        self.output_manager = output_manager
        self.debug = debug

    def load(self, source: str):
        path = self.output_manager.resolve_input(
            source, [self.output_manager.result_dir, self.output_manager.responses_dir]
        )
        if path is None:
            raise InputNotFound(f"Input file not found: {source}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValidationError(f"{source} is not valid JSON: {e}") from e

        return path, extract_items(data)

    def mine(self, source: str, field_name: str, condition: str) -> MiningResult:
        """Filter the records of source where field_name satisfies condition.

        Raises:
            ValidationError: If field or condition is missing.
            InputNotFound: If source does not exist.
            FieldNotPresent: If no record has field_name.
        """
        if not field_name:
            raise ValidationError("A field name is required (e.g. --f=active)")
        if condition is None or condition == "":
            raise ValidationError("A condition is required (e.g. true, \">20\", \"2021-01-01 2021-12-31\")")

        path, records = self.load(source)
        print(f"  Loaded {len(records)} records from {path}")

        if not any(has_field(record, field_name) for record in records):
            raise FieldNotPresent(f"Field '{field_name}' not found in any record of {source}")

        profile = analyze(records, field_name)
        print(f"  Field '{field_name}' analyzed as {describe(profile)}")

        warning = conditions.validate_condition(profile.type, condition)
        if warning:
            print(f"  Warning: {warning}")

        matches = filter_records(records, field_name, condition, profile)
        result = MiningResult(
            source=os.path.basename(path),
            filter=f"{field_name} {condition}",
            field_analysis=profile.to_dict(field_name),
            original_count=len(records),
            filtered_count=len(matches),
            items=matches,
            warning=warning,
        )
        print(f"  Matched {result.filtered_count}/{result.original_count} records")

        if not matches:
            print("  No records matched; no output files written")
            return result

        self.save(result, field_name)
        return result

    def save(self, result: MiningResult, field_name: str) -> MiningResult:
        safe_field = "".join(c if c.isalnum() or c in "-_" else "_" for c in field_name)
        base = f"mined_{safe_field}_{self.output_manager.timestamp}"

        json_path = self.output_manager.result_path(base, ".json")
        with open(json_path, "w", encoding="utf-8") as f:
            json.dump(result.to_dict(), f, indent=2, ensure_ascii=False)
        result.json_path = json_path
        print(f"  Saved mining result: {json_path}")

        csv_path = self.output_manager.result_path(base, ".csv")
        write_csv(result.items, csv_path)
        result.csv_path = csv_path
        print(f"  Saved CSV export: {csv_path}")

        return result
