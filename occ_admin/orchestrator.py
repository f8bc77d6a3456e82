"""
Admin Orchestrator — Command coordination for the OCC admin CLI.

Each CLI command maps to one method; execute() wraps it in the common command
boundary: timestamps, success flag, error capture and the final summary.

Commands:
  auth             Test the client-credential login for an environment
  searchProfiles   Paginated profile search  -> responses/ pages (+ consolidation)
  searchProducts   Paginated product search  -> responses/ pages (+ consolidation,
                   optional ID-prefix post-filter)
  searchOrders     Paginated order search    -> responses/ pages (+ consolidation)
  countOrders      Report the upstream order count for a query
  oldestOrder      Report the oldest order by submitted date
  listOrders       Resumable full order listing -> result/ CSV with checkpoint
  deleteProducts   Bulk delete product IDs from an input file
  fetchOrders      Bulk fetch order IDs from an input file
  mineResult       Typed filtering over a consolidated result file

Configuration:
    All settings are loaded from environment variables (typically via .env file).
    Required per environment: {ENV}_BASE_URL and {ENV}_BEARER_TOKEN.
    See occ_admin/settings.py for defaults.

Typical usage:
    orchestrator = AdminOrchestrator(env_file="./.env", environment="dev")
    if orchestrator.validate_config():
        results = orchestrator.execute("searchProfiles", query_field="email", query_value="@acme.com")
        orchestrator.print_summary(results)
"""

import os
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests
from dotenv import load_dotenv

from .bulk import BulkMutator, print_report, read_id_list
from .data_miner import DataMiner
from .errors import ConfigurationError, InputNotFound, OCCAdminError, ValidationError
from .occ_client import OCCAdminClient, build_query_param
from .output_manager import OutputManager
from .pagination import Consolidator, PaginatedFetcher, id_prefix_filter
from .resumable import ResumableListFetcher
from .settings import (
    DEFAULT_PRODUCT_PREFIX,
    DEFAULT_SETTINGS,
    ENVIRONMENTS,
    LIST_CHECKPOINT_FILENAME,
    LIST_DEFAULT_FIELDS,
    ORDER_SORT_FIELD,
)
from .tabular import write_csv

COMMANDS_WITHOUT_REMOTE = {"mineResult"}


def _split_fields(fields) -> List[str]:
    if not fields:
        return []
    if isinstance(fields, str):
        fields = fields.split(",")
    return [f.strip() for f in fields if f and f.strip()]


class AdminOrchestrator:
    """Orchestrates every CLI command against one target environment.

    Attributes:
        environment: Target environment name (dev, tst, prod).
        environments: Per-environment {"base_url", "bearer_token"} entries.
        page_size: Records requested per page.
        delay: Pause between sequential page requests, in seconds.
        list_timeout: Network timeout for the resumable order listing.
        debug: Whether to enable verbose output.
        output_manager: Resolves run-specific output paths.
    """

    def __init__(self, env_file: str = "./.env", environment: str = "dev"):
        env_path = Path(env_file)
        if env_path.exists():
            load_dotenv(env_path)
            print(f"Loaded configuration from: {env_file}")
        else:
            print(f"Warning: {env_file} not found, using defaults/environment")

        self.environment = environment
        self.environments = {
            name: {
                "base_url": os.getenv(f"{name.upper()}_BASE_URL", ""),
                "bearer_token": os.getenv(f"{name.upper()}_BEARER_TOKEN", ""),
            }
            for name in ENVIRONMENTS
        }

        self.page_size = int(os.getenv("PROFILES_LIMIT", str(DEFAULT_SETTINGS["PROFILES_LIMIT"])))
        self.delay = float(os.getenv("REQUEST_DELAY", str(DEFAULT_SETTINGS["REQUEST_DELAY"])))
        self.list_timeout = float(os.getenv("LIST_TIMEOUT", str(DEFAULT_SETTINGS["LIST_TIMEOUT"])))
        self.input_dir = os.getenv("INPUT_DIR", DEFAULT_SETTINGS["INPUT_DIR"])
        self.debug = os.getenv("DEBUG", str(DEFAULT_SETTINGS["DEBUG"])).lower() == "true"

        self.output_manager = OutputManager(
            os.getenv("RESPONSES_DIR", DEFAULT_SETTINGS["RESPONSES_DIR"]),
            os.getenv("RESULT_DIR", DEFAULT_SETTINGS["RESULT_DIR"]),
            os.getenv("ARCHIVE_DIR", DEFAULT_SETTINGS["ARCHIVE_DIR"]),
        )
        self._client = None

    @property
    def base_url(self) -> str:
        return self.environments.get(self.environment, {}).get("base_url", "")

    def validate_config(self, command: Optional[str] = None) -> bool:
        """Validate that the configuration needed for command is present.

        Returns:
            True if all required values are present, False otherwise.
            Prints specific error messages for each missing value.
        """
        errors = []
        if self.environment not in self.environments:
            errors.append(
                f"Environment '{self.environment}' not found "
                f"(available: {', '.join(ENVIRONMENTS)})"
            )
        elif command not in COMMANDS_WITHOUT_REMOTE:
            prefix = self.environment.upper()
            env_config = self.environments[self.environment]
            if not env_config["base_url"]:
                errors.append(f"{prefix}_BASE_URL is required")
            if not env_config["bearer_token"]:
                errors.append(f"{prefix}_BEARER_TOKEN is required")

        if self.page_size <= 0:
            errors.append("PROFILES_LIMIT must be a positive number")

        if errors:
            print("\nConfiguration Errors:")
            for err in errors:
                print(f"  - {err}")
            return False
        return True

    @property
    def client(self) -> OCCAdminClient:
        if self._client is None:
            if self.environment not in self.environments:
                raise ConfigurationError(f"Environment '{self.environment}' not found")
            self._client = OCCAdminClient.for_environment(
                self.environment, self.environments[self.environment], self.debug
            )
        return self._client

    def _section(self, title: str):
        print(f"\n{'='*60}")
        print(title)
        print("="*60)

    def execute(self, command: str, **kwargs) -> Dict[str, Any]:
        """Run one command inside the common error boundary.

        Returns:
            A dict containing started_at/completed_at, command, environment,
            success, the command's own summary fields, and error on failure.
        """
        handlers: Dict[str, Callable[..., Dict[str, Any]]] = {
            "auth": self.auth,
            "searchProfiles": self.search_profiles,
            "searchProducts": self.search_products,
            "searchOrders": self.search_orders,
            "countOrders": self.count_orders,
            "oldestOrder": self.oldest_order,
            "listOrders": self.list_orders,
            "deleteProducts": self.delete_products,
            "fetchOrders": self.fetch_orders,
            "mineResult": self.mine_result,
        }
        results = {
            "started_at": datetime.now(timezone.utc).isoformat(),
            "command": command,
            "environment": self.environment,
            "success": False,
        }

        try:
            handler = handlers.get(command)
            if handler is None:
                raise ValidationError(f"Unknown command: {command}")
            results.update(handler(**kwargs) or {})
            results["success"] = True
        except (OCCAdminError, requests.RequestException, OSError) as e:
            results["error"] = str(e)
            print(f"\n  ERROR: {e}")
            if self.debug:
                import traceback
                traceback.print_exc()

        results["completed_at"] = datetime.now(timezone.utc).isoformat()
        return results

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def auth(self) -> Dict[str, Any]:
        self._section(f"AUTHENTICATION ({self.environment})")
        self.client.authenticate()
        expires_in = self.client.auth.expires_in
        print("  Authentication successful")
        print(f"  Token expires in {expires_in} seconds")
        return {"expires_in": expires_in}

    def _paginated_search(
        self,
        label: str,
        prefix: str,
        search: Callable[..., Dict[str, Any]],
        query_field: str,
        query_value: str,
        fields="",
        consolidate: bool = False,
        keep=None,
        filter_description: str = "",
    ) -> Dict[str, Any]:
        if not query_field:
            raise ValidationError("Query parameter --q is required (e.g. --q firstName)")
        if not query_value:
            raise ValidationError(f"Search value is required (e.g. {label} --q=firstName \"carlos\")")

        self._section(f"SEARCH {prefix.upper()}S ({self.environment})")
        print(f"  Searching {prefix}s where {query_field} contains \"{query_value}\"")
        if fields:
            print(f"  Selected fields: {fields}")

        query = build_query_param(query_field, query_value)
        base_name = self.output_manager.generate_base_name(prefix)
        fetcher = PaginatedFetcher(self.output_manager, self.page_size, self.delay, self.debug)
        summary = fetcher.fetch_all(
            lambda offset, limit: search(query, offset, limit, fields), base_name
        )

        results = {
            "base_name": base_name,
            "total": summary.total,
            "fetched": summary.fetched,
            "files": len(summary.files),
        }

        if consolidate:
            self._section("CONSOLIDATION")
            consolidator = Consolidator(self.output_manager, self.environment, self.debug)
            consolidated = consolidator.consolidate(base_name, summary.total, keep, filter_description)
            if consolidated:
                results["consolidated_path"] = consolidated.json_path
                results["csv_path"] = consolidated.csv_path
                results["consolidated_items"] = consolidated.item_count

        return results

    def search_profiles(self, query_field: str = "", query_value: str = "", fields="",
                        consolidate: bool = False) -> Dict[str, Any]:
        return self._paginated_search(
            "searchProfiles", "profile", self.client.search_profiles,
            query_field, query_value, fields, consolidate,
        )

    def search_products(self, query_field: str = "", query_value: str = "", fields="",
                        consolidate: bool = False, id_prefix: Optional[str] = None) -> Dict[str, Any]:
        keep = None
        description = ""
        if id_prefix:
            if not consolidate:
                print("  Warning: --idprefix only applies with --c (consolidate)")
            keep = id_prefix_filter(id_prefix)
            description = f"id starts with {id_prefix}"
        return self._paginated_search(
            "searchProducts", "product", self.client.search_products,
            query_field, query_value, fields, consolidate, keep, description,
        )

    def search_orders(self, query_field: str = "", query_value: str = "", fields="",
                      consolidate: bool = False) -> Dict[str, Any]:
        def search(query, offset, limit, search_fields):
            return self.client.search_orders(query, offset, limit, fields=search_fields)
        return self._paginated_search(
            "searchOrders", "order", search, query_field, query_value, fields, consolidate,
        )

    def count_orders(self, query: str = "") -> Dict[str, Any]:
        self._section(f"COUNT ORDERS ({self.environment})")
        data = self.client.search_orders(query, offset=0, limit=1)
        total = int(data.get("total", 0) or 0)
        print(f"  Query: {query or '(all orders)'}")
        print(f"  Total orders: {total}")
        return {"total": total}

    def oldest_order(self, query: str = "") -> Dict[str, Any]:
        self._section(f"OLDEST ORDER ({self.environment})")
        data = self.client.search_orders(
            query, offset=0, limit=1, sort_by=ORDER_SORT_FIELD, sort_order="asc"
        )
        items = data.get("items") or []
        if not items:
            print("  No orders found")
            return {"order": None}
        order = items[0]
        print(f"  Order ID: {order.get('id')}")
        print(f"  {ORDER_SORT_FIELD}: {order.get(ORDER_SORT_FIELD)}")
        return {"order": {"id": order.get("id"), ORDER_SORT_FIELD: order.get(ORDER_SORT_FIELD)}}

    def list_orders(self, query: str = "", fields=None) -> Dict[str, Any]:
        self._section(f"LIST ORDERS ({self.environment})")
        columns = _split_fields(fields) or list(LIST_DEFAULT_FIELDS)
        os.makedirs(self.output_manager.result_dir, exist_ok=True)
        checkpoint_path = os.path.join(
            self.output_manager.result_dir, f"{self.environment}_{LIST_CHECKPOINT_FILENAME}"
        )
        output_path = self.output_manager.result_path(
            f"orders_{self.environment}_{self.output_manager.timestamp}", ".csv"
        )

        def fetch_page(offset, limit):
            return self.client.search_orders(
                query, offset, limit,
                sort_by=ORDER_SORT_FIELD, sort_order="asc", timeout=self.list_timeout,
            )

        fetcher = ResumableListFetcher(
            fetch_page, columns, checkpoint_path, output_path,
            page_size=self.page_size, delay=self.delay, debug=self.debug,
        )
        progress = fetcher.run()
        return {
            "total": progress.total,
            "fetched": progress.fetched,
            "csv_path": progress.outputPath,
        }

    def _load_ids(self, input_file: str) -> Tuple[str, List[str]]:
        if not input_file:
            raise ValidationError("An input file with one ID per line is required")
        path = self.output_manager.resolve_input(input_file, [self.input_dir])
        if path is None:
            raise InputNotFound(f"Input file not found: {input_file}")
        ids = read_id_list(path)
        print(f"  Loaded {len(ids)} ID(s) from {path}")
        return path, ids

    def _archive(self, path: str, report) -> None:
        try:
            report.archived_to = self.output_manager.archive_input(path)
            print(f"  Input file archived to: {report.archived_to}")
        except OSError as e:
            print(f"  Warning: could not archive input file {path}: {e}")

    def _save_report(self, name: str, report) -> str:
        report_path = self.output_manager.result_path(f"{name}_{self.output_manager.timestamp}", ".json")
        with open(report_path, "w", encoding="utf-8") as f:
            json.dump(report.to_dict(), f, indent=2, default=str)
        print(f"  Report saved to: {report_path}")
        return report_path

    def delete_products(self, input_file: str = "", concurrency: int = 5,
                        prefix: str = DEFAULT_PRODUCT_PREFIX) -> Dict[str, Any]:
        self._section(f"DELETE PRODUCTS ({self.environment})")
        mutator = BulkMutator(
            concurrency=concurrency,
            required_prefix=prefix,
            environment=self.environment,
            success_label="deleted",
            debug=self.debug,
        )
        path, ids = self._load_ids(input_file)
        self.client.auth.get_token()

        report = mutator.run(ids, self.client.delete_product)
        report.input_file = path
        self._archive(path, report)
        print_report(report, "DELETION SUMMARY")
        report_path = self._save_report("deletion_report", report)

        return {
            "report_path": report_path,
            "total": report.total,
            "deleted": report.succeeded,
            "failed": report.failed,
            "skipped": report.skipped,
        }

    def fetch_orders(self, input_file: str = "", concurrency: int = 5, fields=None) -> Dict[str, Any]:
        self._section(f"FETCH ORDERS ({self.environment})")
        mutator = BulkMutator(
            concurrency=concurrency,
            environment=self.environment,
            success_label="fetched",
            keep_results=True,
            debug=self.debug,
        )
        path, ids = self._load_ids(input_file)
        columns = _split_fields(fields)
        self.client.auth.get_token()

        report = mutator.run(ids, lambda order_id: self.client.get_order(order_id, columns))
        report.input_file = path
        self._archive(path, report)
        print_report(report, "FETCH SUMMARY")

        results = {
            "total": report.total,
            "fetched": report.succeeded,
            "failed": report.failed,
        }
        if report.results:
            base = f"orders_fetched_{self.output_manager.timestamp}"
            json_path = self.output_manager.result_path(base, ".json")
            with open(json_path, "w", encoding="utf-8") as f:
                json.dump(
                    {"total": report.total, "env": self.environment,
                     "source": os.path.basename(path), "items": report.results},
                    f, indent=2, ensure_ascii=False,
                )
            csv_path = self.output_manager.result_path(os.path.splitext(os.path.basename(json_path))[0], ".csv")
            write_csv(report.results, csv_path)
            print(f"  Orders saved to: {json_path}")
            print(f"  CSV export: {csv_path}")
            results.update({"json_path": json_path, "csv_path": csv_path})

        results["report_path"] = self._save_report("fetch_report", report)
        return results

    def mine_result(self, input_file: str = "", field_name: str = "", condition: str = "") -> Dict[str, Any]:
        self._section("DATA MINING")
        if not input_file:
            raise ValidationError("An input file is required (e.g. profile_03-10-2025_consolidated.json)")
        miner = DataMiner(self.output_manager, self.debug)
        result = miner.mine(input_file, field_name, condition)
        return {
            "field_type": result.field_analysis.get("type"),
            "original_count": result.original_count,
            "filtered_count": result.filtered_count,
            "json_path": result.json_path,
            "csv_path": result.csv_path,
        }

    def print_summary(self, results: Dict):
        """Print a human-readable execution summary.

        Args:
            results: The dict returned by execute().
        """
        self._section("OPERATION COMPLETE")
        print(f"Command: {results.get('command')}")
        print(f"Environment: {results.get('environment')}")
        print(f"Status: {'SUCCESS' if results.get('success') else 'FAILED'}")

        for key in ("total", "fetched", "deleted", "failed", "skipped",
                    "original_count", "filtered_count"):
            if key in results:
                print(f"{key.replace('_', ' ').capitalize()}: {results[key]}")
        for key in ("consolidated_path", "csv_path", "json_path", "report_path"):
            if results.get(key):
                print(f"{key.replace('_', ' ').capitalize()}: {results[key]}")

        if results.get("error"):
            print(f"Error: {results['error']}")
