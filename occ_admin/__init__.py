"""
occ_admin — Command-line tooling for the Commerce Cloud admin REST API.

Each module handles one concern:

  orchestrator.py     Command coordination and the common error boundary
  occ_client.py       Token exchange and REST calls (profiles, products, orders)
  output_manager.py   Run-specific file naming, unique suffixes, archive moves
  pagination.py       Paginated fetch with per-page files, consolidation
  resumable.py        Checkpointed order listing with retry/backoff
  bulk.py             Batched concurrent delete/fetch over ID lists
  field_analyzer.py   Field type inference from sample values
  conditions.py       Typed condition parsing and evaluation
  filter_engine.py    Condition filtering over a record collection
  data_miner.py       Load -> analyze -> filter -> save pipeline
  tabular.py          CSV export of schema-free records
"""

from .orchestrator import AdminOrchestrator
from .occ_client import OCCAdminClient, OCCAuthClient, build_fields_param, build_query_param
from .output_manager import OutputManager
from .pagination import Consolidator, PaginatedFetcher, id_prefix_filter
from .resumable import PaginationCheckpoint, ResumableListFetcher
from .bulk import BulkMutator, BulkReport, read_id_list
from .field_analyzer import FieldTypeProfile, analyze
from .filter_engine import filter_records
from .data_miner import DataMiner, MiningResult
from .tabular import to_delimited_text, write_csv
from .errors import (
    OCCAdminError,
    ConfigurationError,
    AuthenticationError,
    RemoteRequestError,
    ValidationError,
    InputNotFound,
    FieldNotPresent,
)
