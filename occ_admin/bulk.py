"""
Bulk Mutator — Applies one remote operation per ID with bounded concurrency.

IDs are processed in sequential batches of `concurrency` (1-10). Calls within a
batch run concurrently on a thread pool and the batch is awaited in full before
the next one starts. Outcomes are recorded in the order the IDs were submitted.

Outcome policy:
  - ID without the required prefix: skipped, never sent
  - success:                         counted as succeeded
  - 404 Not Found:                   counted as failed, reported as a warning
  - any other error:                 counted as failed with status code and message

The same engine backs bulk product deletion (prefix "PA") and bulk order fetch
(no prefix, successful results kept).
"""

import csv
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import requests

from .errors import RemoteRequestError, ValidationError
from .settings import MAX_CONCURRENCY


def read_id_list(path: str) -> List[str]:
    """Read IDs from a text/CSV file: first cell per line, blanks dropped.

    A first row whose first cell is "id" (any case) is treated as a header.
    """
    ids = []
    with open(path, "r", encoding="utf-8-sig", newline="") as f:
        for row in csv.reader(f):
            if not row:
                continue
            value = row[0].strip()
            if not value:
                continue
            if not ids and value.lower() == "id":
                continue
            ids.append(value)
    return ids


def validate_concurrency(concurrency) -> int:
    try:
        value = int(concurrency)
    except (TypeError, ValueError):
        raise ValidationError(f"Concurrency must be a number between 1 and {MAX_CONCURRENCY}")
    if value < 1 or value > MAX_CONCURRENCY:
        raise ValidationError(f"Concurrency must be between 1 and {MAX_CONCURRENCY}, got {value}")
    return value


@dataclass
class BulkReport:
    """Per-run outcome counts, accumulated monotonically and written once."""

    success_label: str = "succeeded"
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    not_found: int = 0
    skipped: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)
    skipped_ids: List[str] = field(default_factory=list)
    results: List[Any] = field(default_factory=list)
    start_time: str = ""
    end_time: str = ""
    environment: str = ""
    concurrency: int = 1
    input_file: Optional[str] = None
    archived_to: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            self.success_label: self.succeeded,
            "failed": self.failed,
            "notFound": self.not_found,
            "skipped": self.skipped,
            "errors": self.errors,
            "skippedIds": self.skipped_ids,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "environment": self.environment,
            "concurrency": self.concurrency,
            "inputFile": self.input_file,
            "archivedTo": self.archived_to,
        }


class BulkMutator:
    """Runs operation(id) over an ID list in fixed-width concurrent batches."""

    def __init__(
        self,
        concurrency: int = 5,
        required_prefix: Optional[str] = None,
        environment: str = "",
        success_label: str = "succeeded",
        keep_results: bool = False,
        debug: bool = False,
    ):
        self.concurrency = validate_concurrency(concurrency)
        self.required_prefix = required_prefix
        self.environment = environment
        self.success_label = success_label
        self.keep_results = keep_results
        self.debug = debug

    def _call(self, operation: Callable[[str], Any], record_id: str):
        try:
            return record_id, operation(record_id), None
        except RemoteRequestError as e:
            return record_id, None, e
        except (requests.RequestException, ValueError) as e:
            # AuthenticationError stays fatal for the whole run
            response = getattr(e, "response", None)
            status = response.status_code if response is not None else None
            return record_id, None, RemoteRequestError(f"{type(e).__name__}: {e}", status)

    def _record(self, report: BulkReport, position: int, record_id: str, value, error):
        prefix = f"  [{position}/{report.total}] {record_id}"
        if error is None:
            report.succeeded += 1
            if self.keep_results and value is not None:
                report.results.append(value)
            print(f"{prefix}: {self.success_label}")
            return

        report.failed += 1
        report.errors.append({
            "id": record_id,
            "error": str(error),
            "statusCode": error.status_code,
        })
        if error.is_not_found:
            report.not_found += 1
            print(f"{prefix}: Warning: not found (404)")
        else:
            print(f"{prefix}: ERROR ({error.status_code}): {error}")

    def run(self, ids: List[str], operation: Callable[[str], Any]) -> BulkReport:
        """Apply operation to every eligible ID and return the report."""
        report = BulkReport(
            success_label=self.success_label,
            total=len(ids),
            environment=self.environment,
            concurrency=self.concurrency,
            start_time=datetime.now(timezone.utc).isoformat(),
        )

        eligible = []
        for position, record_id in enumerate(ids, start=1):
            if self.required_prefix and not record_id.startswith(self.required_prefix):
                report.skipped += 1
                report.skipped_ids.append(record_id)
                print(f"  [{position}/{report.total}] {record_id}: skipped "
                      f"(does not start with '{self.required_prefix}')")
                continue
            eligible.append((position, record_id))

        with ThreadPoolExecutor(max_workers=self.concurrency) as executor:
            for start in range(0, len(eligible), self.concurrency):
                batch = eligible[start:start + self.concurrency]
                if self.debug:
                    print(f"  Batch {start // self.concurrency + 1}: {len(batch)} request(s)")
                futures = [
                    (position, executor.submit(self._call, operation, record_id))
                    for position, record_id in batch
                ]
                for position, future in futures:
                    record_id, value, error = future.result()
                    self._record(report, position, record_id, value, error)

        report.end_time = datetime.now(timezone.utc).isoformat()
        return report


def print_report(report: BulkReport, title: str):
    print(f"\n{'='*60}")
    print(title)
    print("="*60)
    print(f"Total IDs: {report.total}")
    print(f"{report.success_label.capitalize()}: {report.succeeded}")
    print(f"Failed: {report.failed}")
    if report.not_found:
        print(f"  Warning: {report.not_found} ID(s) not found (404)")
    print(f"Skipped: {report.skipped}")
    hard_errors = [e for e in report.errors if e.get("statusCode") != 404]
    for error in hard_errors:
        print(f"  - {error['id']}: {error['error']}")
