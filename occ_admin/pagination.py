"""
Paginated Fetcher and Consolidator — Offset pagination with per-page persistence.

PaginatedFetcher drives a search callable page by page:

    search(offset, limit) -> {"total": N, "items": [...], ...}

Every page is written to responses/<base>_<page>.json before the next request,
so a crash loses at most the in-flight page. Fetching stops when the fetched
count reaches the reported total or a page comes back shorter than the page
size (upstream totals are not always consistent). A page without a "total" only
stops on the short-page check.

Consolidator merges the page files of one run, in ascending page order, into a
single RecordSet {"total", "env", "items"} in the result directory, optionally
keeping only records that pass a predicate, writes a CSV copy, and then deletes
the page files. Consolidation is destructive.
"""

import json
import os
import re
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .output_manager import OutputManager
from .records import describe_total, extract_items, get_field, reported_total
from .tabular import write_csv


@dataclass
class FetchSummary:
    base_name: str
    total: Optional[int] = None
    fetched: int = 0
    pages: int = 0
    files: List[str] = field(default_factory=list)


class PaginatedFetcher:
    """Fetches every page of a search and persists each one as it arrives."""

    def __init__(
        self,
        output_manager: OutputManager,
        page_size: int = 250,
        delay: float = 0.1,
        debug: bool = False,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.output_manager = output_manager
        self.page_size = page_size
        self.delay = delay
        self.debug = debug
        self._sleep = sleep

    def fetch_all(self, search: Callable[[int, int], Dict[str, Any]], base_name: str) -> FetchSummary:
        """Run the pagination loop.

        Args:
            search: Callable taking (offset, limit) and returning one response page.
            base_name: Run-specific base name for the page files.

        Returns:
            FetchSummary with the reported total, fetched count and written files.
        """
        os.makedirs(self.output_manager.responses_dir, exist_ok=True)
        summary = FetchSummary(base_name=base_name)
        offset = 0

        while True:
            page_number = summary.pages + 1
            print(f"  Request {page_number} (offset: {offset})...")
            data = search(offset, self.page_size)
            items = extract_items(data)

            if page_number == 1:
                summary.total = reported_total(data)
                print(f"  Total records found: {describe_total(summary.total)}")

            path = self.output_manager.page_path(base_name, page_number)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)

            summary.pages = page_number
            summary.files.append(path)
            summary.fetched += len(items)
            print(f"  Saved {os.path.basename(path)} ({len(items)} records)")

            reached_total = summary.total is not None and summary.fetched >= summary.total
            if reached_total or len(items) < self.page_size:
                break

            offset += self.page_size
            if self.delay:
                self._sleep(self.delay)

        print(f"  Fetched {summary.fetched}/{describe_total(summary.total)} records in {summary.pages} file(s)")
        return summary


def id_prefix_filter(prefix: str) -> Callable[[Dict[str, Any]], bool]:
    """Predicate keeping records whose "id" starts with prefix."""
    def keep(record):
        return str(get_field(record, "id", "") or "").startswith(prefix)
    return keep


@dataclass
class ConsolidationResult:
    json_path: str
    csv_path: str
    item_count: int
    deleted_files: List[str] = field(default_factory=list)


class Consolidator:
    """Merges the page files of one run into a single RecordSet."""

    def __init__(self, output_manager: OutputManager, environment: str, debug: bool = False):
        self.output_manager = output_manager
        self.environment = environment
        self.debug = debug

    def find_page_files(self, base_name: str) -> List[str]:
        """Page files of base_name, sorted by page number."""
        directory = self.output_manager.responses_dir
        if not os.path.isdir(directory):
            return []
        pattern = re.compile(rf"^{re.escape(base_name)}_(\d+)\.json$")
        pages = []
        for filename in os.listdir(directory):
            match = pattern.match(filename)
            if match:
                pages.append((int(match.group(1)), os.path.join(directory, filename)))
        return [path for _, path in sorted(pages)]

    def consolidate(
        self,
        base_name: str,
        total: Optional[int],
        keep: Optional[Callable[[Dict[str, Any]], bool]] = None,
        filter_description: str = "",
    ) -> Optional[ConsolidationResult]:
        """Merge, save and delete the page files of base_name.

        Returns None when there is nothing to consolidate.
        """
        page_files = self.find_page_files(base_name)
        if not page_files:
            print("  Warning: No files found to consolidate")
            return None

        items = []
        for path in page_files:
            with open(path, "r", encoding="utf-8") as f:
                items.extend(extract_items(json.load(f)))

        merged_count = len(items)
        if total is None:
            total = merged_count
        elif merged_count != total:
            print(f"  Warning: reported total {total} differs from merged count {merged_count}")

        if keep is not None:
            items = [item for item in items if keep(item)]
            print(f"  Kept {len(items)}/{merged_count} records after filter {filter_description}".rstrip())

        record_set = {"total": total, "env": self.environment, "items": items}
        if filter_description:
            record_set["filter"] = filter_description

        json_path = self.output_manager.result_path(f"{base_name}_consolidated", ".json")
        with open(json_path, "w", encoding="utf-8") as f:
            json.dump(record_set, f, indent=2, ensure_ascii=False)

        csv_base = os.path.splitext(os.path.basename(json_path))[0]
        csv_path = self.output_manager.result_path(csv_base, ".csv")
        write_csv(items, csv_path)

        for path in page_files:
            os.remove(path)

        print(f"  Consolidated file: {json_path}")
        print(f"  CSV export: {csv_path}")
        print(f"  Total items: {len(items)}")
        print(f"  Deleted {len(page_files)} original file(s)")

        return ConsolidationResult(json_path, csv_path, len(items), page_files)
