"""
Settings — Default configuration values for the OCC admin CLI.

This module provides the DEFAULT_SETTINGS dict that the orchestrator uses as
fallback values when environment variables are not set. The actual configuration
is loaded from .env at runtime; these defaults keep the CLI usable out of the box.

Configuration precedence (highest to lowest):
  1. CLI flags (--debug, --concurrency, ...)
  2. Environment variables (from .env file)
  3. DEFAULT_SETTINGS (this file)

Settings reference:
  PROFILES_LIMIT   Page size for every paginated search (default: 250)
  RESPONSES_DIR    Where raw per-page responses are written
  RESULT_DIR       Where consolidated files, mining results and reports land
  ARCHIVE_DIR      Where processed ID input files are moved after a bulk run
  INPUT_DIR        Where bare input filenames are looked up
  REQUEST_DELAY    Pause in seconds between sequential page requests
  LIST_TIMEOUT     Network timeout in seconds for the resumable order listing
  DEBUG            Whether to print verbose output (default: False)

Per-environment credentials are read from {ENV}_BASE_URL and {ENV}_BEARER_TOKEN,
e.g. DEV_BASE_URL / DEV_BEARER_TOKEN.
"""

ENVIRONMENTS = ["dev", "tst", "prod"]

ENDPOINTS = {
    "login": "/ccadmin/v1/login",
    "profiles": "/ccadmin/v1/profiles",
    "products": "/ccadmin/v1/products",
    "orders": "/ccadmin/v1/orders",
}

DEFAULT_SETTINGS = {
    "PROFILES_LIMIT": 250,
    "RESPONSES_DIR": "./responses",
    "RESULT_DIR": "./result",
    "ARCHIVE_DIR": "./archive",
    "INPUT_DIR": "./input",
    "REQUEST_DELAY": 0.1,
    "LIST_TIMEOUT": 60,
    "DEBUG": False,
}

# Refresh the bearer token when it is this close to expiring
TOKEN_EXPIRY_BUFFER_SECONDS = 30

# Used when the login response carries no usable expires_in
DEFAULT_TOKEN_LIFETIME_SECONDS = 300

# Bulk delete/fetch
DEFAULT_CONCURRENCY = 5
MAX_CONCURRENCY = 10
DEFAULT_PRODUCT_PREFIX = "PA"

# Resumable order listing: 5 attempts, waits of 3s, 6s, 12s, 24s between them
LIST_MAX_ATTEMPTS = 5
LIST_BACKOFF_SECONDS = 3
LIST_CHECKPOINT_FILENAME = "orders_checkpoint.json"
LIST_DEFAULT_FIELDS = ["id", "state", "submittedDate", "profileId", "priceInfo.total"]

# Order search defaults
ORDER_QUERY_FORMAT = "SCIM"
ORDER_SORT_FIELD = "submittedDate"
