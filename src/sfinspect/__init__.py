"""sfinspect: Salesforce REST/Bulk access layer for the object inspector."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("sfinspect")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"

from .api import SalesforceAPI, SFConfig
from .bulk import BulkJob, BulkQueryRunner, JobState
from .connection import get_salesforce_connection, get_session_user, require_connection
from .csv_decoder import decode_csv
from .metadata_cache import MetadataCache
from .models import ConnectionDescriptor, FieldDescriptor, ObjectMetadata, QueryResult

__all__ = [
    "__version__",
    "BulkJob",
    "BulkQueryRunner",
    "ConnectionDescriptor",
    "FieldDescriptor",
    "JobState",
    "MetadataCache",
    "ObjectMetadata",
    "QueryResult",
    "SFConfig",
    "SalesforceAPI",
    "decode_csv",
    "get_salesforce_connection",
    "get_session_user",
    "require_connection",
]
