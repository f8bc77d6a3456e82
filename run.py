#!/usr/bin/env python3
"""
OCC Admin CLI — Entry Point.

Fetches profiles, products and orders from the Commerce Cloud admin API, bulk
deletes products, and mines consolidated results with typed filters. Reads
configuration from a .env file (see .env.example).

Usage:
    python run.py auth --env dev
    python run.py searchProfiles --env dev --q firstName "carlos" --f id,email --c
    python run.py searchProducts --env tst --q displayName "shirt" --c --idprefix PA
    python run.py deleteProducts --env tst ids.txt --concurrency 5
    python run.py searchOrders --env prod --q profileId "120001" --c
    python run.py countOrders --env prod
    python run.py oldestOrder --env prod
    python run.py listOrders --env prod --f id,state,submittedDate
    python run.py fetchOrders --env prod order_ids.csv --f id,state
    python run.py mineResult profile_03-10-2025_consolidated.json --f active true
    python run.py mineResult profile_03-10-2025_consolidated.json --f lastPurchaseAmount ">20"
    python run.py mineResult profile_03-10-2025_consolidated.json --f registrationDate "2020-01-01 2023-12-31"
"""

import sys
import argparse
import logging
from pathlib import Path

from occ_admin import AdminOrchestrator
from occ_admin.settings import DEFAULT_CONCURRENCY, DEFAULT_PRODUCT_PREFIX, ENVIRONMENTS

# Read version from the repo-root VERSION file (e.g., "1.0.0").
VERSION_FILE = Path(__file__).resolve().parent / "VERSION"
VERSION = VERSION_FILE.read_text().strip() if VERSION_FILE.exists() else "unknown"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="occ-admin",
        description="OCC Admin CLI - Fetch, delete and mine Commerce Cloud admin data",
    )
    parser.add_argument("--version", "-v", action="version", version=f"occ-admin {VERSION}")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--env", default="dev", choices=ENVIRONMENTS, help="Environment (dev, tst, prod)")
    common.add_argument("--env-file", "-e", default="./.env", help="Path to .env file")
    common.add_argument("--debug", action="store_true", help="Enable debug output")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("auth", parents=[common], help="Test authentication in an environment")

    for name, label in (
        ("searchProfiles", "profiles"),
        ("searchProducts", "products"),
        ("searchOrders", "orders"),
    ):
        search = subparsers.add_parser(name, parents=[common], help=f"Search {label} with a contains query")
        search.add_argument("--q", dest="query_field", help="Query field (email, firstName, etc.)")
        search.add_argument("--f", dest="fields", default="", help="Fields to return (e.g. firstName,id,email)")
        search.add_argument("--c", dest="consolidate", action="store_true",
                            help="Consolidate results into a single file and delete originals")
        search.add_argument("value", nargs="?", help="Value to search for")
        if name == "searchProducts":
            search.add_argument("--idprefix", dest="id_prefix",
                                help="With --c, keep only products whose id starts with this prefix")

    for name, text in (("countOrders", "Count orders"), ("oldestOrder", "Show the oldest order")):
        orders = subparsers.add_parser(name, parents=[common], help=text)
        orders.add_argument("--query", default="", help="Optional SCIM query (e.g. 'state eq \"SUBMITTED\"')")

    listing = subparsers.add_parser("listOrders", parents=[common],
                                    help="List all orders to CSV (resumable)")
    listing.add_argument("--query", default="", help="Optional SCIM query")
    listing.add_argument("--f", dest="fields", default="", help="CSV columns (dotted paths allowed)")

    delete = subparsers.add_parser("deleteProducts", parents=[common], help="Delete products listed in a file")
    delete.add_argument("input_file", help="File with one product ID per line")
    delete.add_argument("--concurrency", type=int, default=DEFAULT_CONCURRENCY, help="Parallel requests (1-10)")
    delete.add_argument("--prefix", default=DEFAULT_PRODUCT_PREFIX,
                        help=f"Required product ID prefix (default: {DEFAULT_PRODUCT_PREFIX})")

    fetch = subparsers.add_parser("fetchOrders", parents=[common], help="Fetch orders listed in a file")
    fetch.add_argument("input_file", help="File with one order ID per line")
    fetch.add_argument("--concurrency", type=int, default=DEFAULT_CONCURRENCY, help="Parallel requests (1-10)")
    fetch.add_argument("--f", dest="fields", default="", help="Order fields to return")

    mine = subparsers.add_parser("mineResult", parents=[common], help="Filter a consolidated result file")
    mine.add_argument("input_file", help="Consolidated JSON file (path or name in the result dir)")
    mine.add_argument("--f", dest="field_name", required=True, help="Field to filter on")
    mine.add_argument("condition", help="Condition: true/false, >20, 2021-01-01, '2021-01-01 2021-12-31', text")

    return parser


def command_kwargs(args) -> dict:
    """Map parsed arguments onto AdminOrchestrator command parameters."""
    command = args.command
    if command in ("searchProfiles", "searchOrders"):
        return {"query_field": args.query_field, "query_value": args.value,
                "fields": args.fields, "consolidate": args.consolidate}
    if command == "searchProducts":
        return {"query_field": args.query_field, "query_value": args.value,
                "fields": args.fields, "consolidate": args.consolidate, "id_prefix": args.id_prefix}
    if command in ("countOrders", "oldestOrder"):
        return {"query": args.query}
    if command == "listOrders":
        return {"query": args.query, "fields": args.fields}
    if command == "deleteProducts":
        return {"input_file": args.input_file, "concurrency": args.concurrency, "prefix": args.prefix}
    if command == "fetchOrders":
        return {"input_file": args.input_file, "concurrency": args.concurrency, "fields": args.fields}
    if command == "mineResult":
        return {"input_file": args.input_file, "field_name": args.field_name, "condition": args.condition}
    return {}


def main(argv=None):
    """Parse CLI arguments and run one command."""
    args = build_parser().parse_args(argv)

    # Wire-level request logging from requests/urllib3
    if args.debug:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s - %(levelname)s - %(message)s")

    orchestrator = AdminOrchestrator(env_file=args.env_file, environment=args.env)
    if args.debug:
        orchestrator.debug = True

    print(f"\n{'='*60}")
    print(f"OCC ADMIN CLI v{VERSION}")
    print("="*60)
    print(f"Command: {args.command}")
    print(f"Environment: {orchestrator.environment}")

    if not orchestrator.validate_config(args.command):
        sys.exit(1)

    results = orchestrator.execute(args.command, **command_kwargs(args))
    orchestrator.print_summary(results)

    if not results.get("success"):
        sys.exit(1)


if __name__ == "__main__":
    main()
