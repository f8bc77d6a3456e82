"""
Resumable List Fetcher — Long paginated listing to CSV with checkpoints.

Loop per page:
  1. Fetch the page (retried with backoff on transient failures)
  2. Project each record to the output fields and append the rows to the CSV
  3. Write the checkpoint {offset, total, fetched, page, outputPath}

The checkpoint is written strictly after the append, so a crash between the two
can repeat one page's rows on resume; it never skips rows. The checkpoint file is
deleted only once the last page is done. If it exists at start, the run resumes
at the stored page and keeps appending to the same output file.

When a page still fails after LIST_MAX_ATTEMPTS attempts, the checkpoint is saved
and RemoteRequestError is raised; the next invocation continues from that page.
"""

import json
import os
import time
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, List, Optional

from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from .errors import RemoteRequestError
from .records import describe_total, extract_items, reported_total
from .settings import LIST_BACKOFF_SECONDS, LIST_MAX_ATTEMPTS
from .tabular import append_rows, project


def is_retryable(exc: BaseException) -> bool:
    """Connection errors, timeouts, 429 and 5xx are worth retrying."""
    if not isinstance(exc, RemoteRequestError):
        return False
    status = exc.status_code
    return status is None or status == 429 or 500 <= status < 600


@dataclass
class PaginationCheckpoint:
    offset: int = 0
    total: Optional[int] = None
    fetched: int = 0
    page: int = 1
    outputPath: str = ""

    @classmethod
    def load(cls, path: str) -> Optional["PaginationCheckpoint"]:
        if not os.path.exists(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return cls(
            offset=int(data.get("offset", 0)),
            total=reported_total(data),
            fetched=int(data.get("fetched", 0)),
            page=int(data.get("page", 1)),
            outputPath=data.get("outputPath", ""),
        )

    def save(self, path: str):
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(asdict(self), f, indent=2)


class ResumableListFetcher:
    """Fetches every page of a listing into one CSV, resuming from a checkpoint.

    Attributes:
        fetch_page: Callable taking (offset, limit) and returning one page.
        fields: Output columns; dotted paths reach into nested objects.
        checkpoint_path: Location of the checkpoint JSON.
        output_path: CSV used when no checkpoint exists.
    """

    def __init__(
        self,
        fetch_page: Callable[[int, int], Dict[str, Any]],
        fields: List[str],
        checkpoint_path: str,
        output_path: str,
        page_size: int = 250,
        delay: float = 0.1,
        max_attempts: int = LIST_MAX_ATTEMPTS,
        backoff: float = LIST_BACKOFF_SECONDS,
        debug: bool = False,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.fetch_page = fetch_page
        self.fields = fields
        self.checkpoint_path = checkpoint_path
        self.output_path = output_path
        self.page_size = page_size
        self.delay = delay
        self.max_attempts = max_attempts
        self.backoff = backoff
        self.debug = debug
        self._sleep = sleep

    def _report_retry(self, retry_state):
        wait = retry_state.next_action.sleep if retry_state.next_action else 0
        error = retry_state.outcome.exception()
        print(f"  Warning: attempt {retry_state.attempt_number}/{self.max_attempts} failed "
              f"({error}); retrying in {wait:g}s")

    def _fetch_with_retry(self, offset: int) -> Dict[str, Any]:
        retryer = Retrying(
            retry=retry_if_exception(is_retryable),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff, min=self.backoff),
            before_sleep=self._report_retry,
            sleep=self._sleep,
            reraise=True,
        )
        return retryer(self.fetch_page, offset, self.page_size)

    def start(self) -> PaginationCheckpoint:
        checkpoint = PaginationCheckpoint.load(self.checkpoint_path)
        if checkpoint is not None:
            if not checkpoint.outputPath:
                checkpoint.outputPath = self.output_path
            print(f"  Resuming from checkpoint: page {checkpoint.page}, "
                  f"offset {checkpoint.offset}, {checkpoint.fetched}/{describe_total(checkpoint.total)} fetched")
            return checkpoint
        return PaginationCheckpoint(outputPath=self.output_path)

    def run(self) -> PaginationCheckpoint:
        """Fetch until done and return the final progress.

        Raises:
            RemoteRequestError: When a page keeps failing; the checkpoint is kept.
        """
        checkpoint = self.start()
        output_dir = os.path.dirname(checkpoint.outputPath)
        if output_dir:
            os.makedirs(output_dir, exist_ok=True)

        while True:
            try:
                data = self._fetch_with_retry(checkpoint.offset)
            except RemoteRequestError:
                checkpoint.save(self.checkpoint_path)
                print(f"  Checkpoint saved at page {checkpoint.page}; run again to resume")
                raise

            items = extract_items(data)
            if checkpoint.page == 1 or checkpoint.total is None:
                checkpoint.total = reported_total(data)

            rows = [project(item, self.fields) for item in items]
            append_rows(rows, self.fields, checkpoint.outputPath)

            checkpoint.fetched += len(items)
            print(f"  Page {checkpoint.page}: {len(items)} records "
                  f"({checkpoint.fetched}/{describe_total(checkpoint.total)})")

            reached_total = checkpoint.total is not None and checkpoint.fetched >= checkpoint.total
            done = reached_total or len(items) < self.page_size
            checkpoint.offset += self.page_size
            checkpoint.page += 1
            checkpoint.save(self.checkpoint_path)

            if done:
                break
            if self.delay:
                self._sleep(self.delay)

        os.remove(self.checkpoint_path)
        print(f"  Listing complete: {checkpoint.fetched} records written to {checkpoint.outputPath}")
        return checkpoint
