"""
Output Manager — Run-specific file naming and archive moves.

Layout (all directories created on demand):
  responses/   raw per-page responses:      profile_03-10-2025_1.json, ...
  result/      consolidated sets, mining results, reports, order listings
  archive/     processed ID input files:    ids_20251003_142501.txt

Naming rules:
  - A paginated run gets a base name "<prefix>_<DD-MM-YYYY>". If page files for
    that date already exist, the next free "(n)" execution number is appended:
    "profile_03-10-2025(1)", "profile_03-10-2025(2)", ...
  - Any other output file that already exists gets "(n)" appended before the
    extension, where n is the highest existing suffix + 1.

Both checks are best-effort (check-then-write); two processes started in the
same instant can still collide.
"""

import os
import re
import shutil
from datetime import datetime
from typing import Optional


class OutputManager:
    """Resolves output paths for one CLI invocation.

    Attributes:
        responses_dir: Directory for raw page files.
        result_dir: Directory for consolidated/mined/report files.
        archive_dir: Directory that receives processed input lists.
    """

    def __init__(self, responses_dir: str, result_dir: str, archive_dir: str):
        self.responses_dir = responses_dir
        self.result_dir = result_dir
        self.archive_dir = archive_dir
        self._run_timestamp = datetime.now()

    def ensure_dirs(self):
        for directory in (self.responses_dir, self.result_dir):
            os.makedirs(directory, exist_ok=True)

    @property
    def timestamp(self) -> str:
        return self._run_timestamp.strftime("%Y%m%d_%H%M%S")

    def generate_base_name(self, prefix: str) -> str:
        """Return a base name for a paginated run not used by existing page files."""
        os.makedirs(self.responses_dir, exist_ok=True)
        date_str = self._run_timestamp.strftime("%d-%m-%Y")
        base = f"{prefix}_{date_str}"
        pattern = re.compile(rf"^{re.escape(base)}(\((\d+)\))?_\d+\.json$")

        max_exec = None
        for filename in os.listdir(self.responses_dir):
            match = pattern.match(filename)
            if not match:
                continue
            exec_number = int(match.group(2)) if match.group(2) else 0
            max_exec = exec_number if max_exec is None else max(max_exec, exec_number)

        if max_exec is None:
            return base
        return f"{base}({max_exec + 1})"

    def page_path(self, base_name: str, page: int) -> str:
        return os.path.join(self.responses_dir, f"{base_name}_{page}.json")

    def unique_path(self, directory: str, base: str, extension: str) -> str:
        """Return directory/base.extension, or base(n).extension when taken."""
        os.makedirs(directory, exist_ok=True)
        if not extension.startswith("."):
            extension = f".{extension}"
        candidate = os.path.join(directory, f"{base}{extension}")
        if not os.path.exists(candidate):
            return candidate

        pattern = re.compile(rf"^{re.escape(base)}\((\d+)\){re.escape(extension)}$")
        max_suffix = 0
        for filename in os.listdir(directory):
            match = pattern.match(filename)
            if match:
                max_suffix = max(max_suffix, int(match.group(1)))
        return os.path.join(directory, f"{base}({max_suffix + 1}){extension}")

    def result_path(self, base: str, extension: str = ".json") -> str:
        return self.unique_path(self.result_dir, base, extension)

    def archive_input(self, path: str) -> str:
        """Move a processed input file into the archive directory.

        The archived name is "<stem>_<YYYYMMDD_HHMMSS><ext>".

        Raises:
            OSError: If the file cannot be moved.
        """
        os.makedirs(self.archive_dir, exist_ok=True)
        stem, extension = os.path.splitext(os.path.basename(path))
        target = self.unique_path(self.archive_dir, f"{stem}_{self.timestamp}", extension or ".txt")
        shutil.move(path, target)
        return target

    def resolve_input(self, name: str, search_dirs=None) -> Optional[str]:
        """Find an input file as given, or by bare name in the search directories."""
        if os.path.isfile(name):
            return name
        for directory in search_dirs or []:
            candidate = os.path.join(directory, os.path.basename(name))
            if os.path.isfile(candidate):
                return candidate
        return None
