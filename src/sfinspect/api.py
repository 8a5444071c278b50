from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import requests

from .env_loader import load_env_files
from .exceptions import (
    MetadataFetchError,
    QueryError,
    RecordNotFound,
    TransportError,
    UpstreamStatusError,
)
from .models import ConnectionDescriptor, ObjectMetadata, QueryResult, RecordMap

__author__ = "Kevin Steptoe"
__copyright__ = "Kevin Steptoe"
__license__ = "MIT"

_logger = logging.getLogger(__name__)

# Ensure .env is loaded for library use as well (e.g., the web layer importing SalesforceAPI)
load_env_files(quiet=True)

DEFAULT_API_VERSION = "v58.0"

# Always selected when fetching a single record, ahead of the describe fields.
ESSENTIAL_RECORD_FIELDS = (
    "Id",
    "CreatedDate",
    "LastModifiedDate",
    "CreatedBy.Name",
    "LastModifiedBy.Name",
)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        _logger.warning("Ignoring invalid %s=%r; using %s", name, raw, default)
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        _logger.warning("Ignoring invalid %s=%r; using %s", name, raw, default)
        return default


# ----------------------------------------------------------------------
# Configuration dataclass
# ----------------------------------------------------------------------
@dataclass
class SFConfig:
    """Settings for talking to Salesforce on behalf of the inspector."""

    api_version: str = DEFAULT_API_VERSION
    request_timeout: float = 30.0

    # Bulk API 2.0 polling: 60 x 5s is roughly a five minute ceiling
    bulk_poll_interval: float = 5.0
    bulk_max_polls: int = 60

    # Describe cache lifetime in seconds
    metadata_ttl: float = 600.0

    # Optional: a connection for CLI / script use. The web layer reads cookies instead.
    access_token: Optional[str] = None
    instance_url: Optional[str] = None
    refresh_token: Optional[str] = None

    @classmethod
    def from_env(cls) -> SFConfig:
        """Load configuration from environment variables."""
        return cls(
            api_version=os.getenv("SF_API_VERSION") or DEFAULT_API_VERSION,
            request_timeout=_env_float("SF_REQUEST_TIMEOUT", 30.0),
            bulk_poll_interval=_env_float("SF_BULK_POLL_INTERVAL", 5.0),
            bulk_max_polls=_env_int("SF_BULK_MAX_POLLS", 60),
            metadata_ttl=_env_float("SF_METADATA_TTL", 600.0),
            access_token=os.getenv("SF_ACCESS_TOKEN"),
            instance_url=os.getenv("SF_INSTANCE_URL"),
            refresh_token=os.getenv("SF_REFRESH_TOKEN"),
        )

    def connection(self) -> Optional[ConnectionDescriptor]:
        """Connection built from SF_ACCESS_TOKEN / SF_INSTANCE_URL, if both are set."""
        if not self.access_token or not self.instance_url:
            return None
        return ConnectionDescriptor(
            access_token=self.access_token,
            instance_url=self.instance_url,
            refresh_token=self.refresh_token,
        )


def error_payload(response: requests.Response) -> Any:
    """Best-effort decode of an error body: JSON if possible, else text."""
    try:
        return response.json()
    except ValueError:
        return response.text


# ----------------------------------------------------------------------
# Main API client
# ----------------------------------------------------------------------
class SalesforceAPI:
    """Authenticated access to the Salesforce REST API for a given connection.

    One instance (and one requests.Session) is shared by the whole process;
    credentials travel with every call in the ConnectionDescriptor, so the same
    client serves many users and instances.
    """

    def __init__(
        self,
        cfg: Optional[SFConfig] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.cfg = cfg or SFConfig.from_env()
        self.session = session or requests.Session()

    @property
    def api_version(self) -> str:
        return self.cfg.api_version

    def data_path(self, suffix: str) -> str:
        """Return ``/services/data/<version>/<suffix>``."""
        return f"/services/data/{self.api_version}/{suffix.lstrip('/')}"

    # --------------------------- Transport ----------------------------

    def api_call(
        self,
        conn: ConnectionDescriptor,
        path: str,
        *,
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
        **kwargs: Any,
    ) -> requests.Response:
        """Issue exactly one authenticated request; the status code is not checked.

        ``path`` is relative to the connection's instance URL. Caller headers
        override the defaults. Extra keyword arguments go to requests
        (``params``, ``json``, ``data``...).
        """
        url = f"{conn.instance_url}{path}"
        merged = {
            "Authorization": f"Bearer {conn.access_token}",
            "Content-Type": "application/json",
        }
        if headers:
            merged.update(headers)
        kwargs.setdefault("timeout", self.cfg.request_timeout)

        _logger.debug("%s %s", method, url)
        try:
            r = self.session.request(method, url, headers=merged, **kwargs)
        except requests.RequestException as e:
            _logger.warning("Request error for %s %s: %s", method, url, e)
            raise TransportError(f"{method} {url} failed: {e}") from e
        _logger.debug("%s %s -> %s", method, url, r.status_code)
        return r

    def get_json(self, conn: ConnectionDescriptor, path: str, what: str) -> Any:
        """GET ``path`` and decode JSON, raising UpstreamStatusError on failure."""
        r = self.api_call(conn, path)
        if not r.ok:
            raise UpstreamStatusError(
                f"Failed to {what}",
                status_code=r.status_code,
                reason=r.reason,
                payload=error_payload(r),
            )
        return r.json()

    # --------------------------- Queries ------------------------------

    def execute_query(self, conn: ConnectionDescriptor, soql: str) -> QueryResult:
        """Run a SOQL query and return the first page only."""
        path = self.data_path(f"query/?q={quote(soql, safe='')}")
        r = self.api_call(conn, path)
        if not r.ok:
            detail = error_payload(r)
            _logger.error("Query failed (%s): %s", r.status_code, detail)
            raise QueryError(
                "Query failed",
                status_code=r.status_code,
                reason=r.reason,
                payload=detail,
            )
        result = QueryResult.from_payload(r.json())
        _logger.debug(
            "Query returned %d/%d records (done=%s)",
            len(result.records),
            result.total_size,
            result.done,
        )
        return result

    def query_more(self, conn: ConnectionDescriptor, next_records_url: str) -> QueryResult:
        """Fetch one continuation page named by a previous result's nextRecordsUrl."""
        r = self.api_call(conn, next_records_url)
        if not r.ok:
            raise QueryError(
                "Query continuation failed",
                status_code=r.status_code,
                reason=r.reason,
                payload=error_payload(r),
            )
        return QueryResult.from_payload(r.json())

    # --------------------------- Discovery ----------------------------

    def get_object_metadata(self, conn: ConnectionDescriptor, object_name: str) -> ObjectMetadata:
        """Return /sobjects/{name}/describe, uncached."""
        r = self.api_call(conn, self.data_path(f"sobjects/{object_name}/describe/"))
        if not r.ok:
            raise MetadataFetchError(
                f"Failed to get metadata for {object_name}",
                status_code=r.status_code,
                reason=r.reason,
                payload=error_payload(r),
            )
        return ObjectMetadata.from_describe(r.json())

    def list_objects(self, conn: ConnectionDescriptor) -> Dict[str, Any]:
        """Return /sobjects (global describe)."""
        return self.get_json(conn, self.data_path("sobjects/"), "list objects")

    def get_org_limits(self, conn: ConnectionDescriptor) -> Dict[str, Any]:
        """Return API usage limits."""
        return self.get_json(conn, self.data_path("limits/"), "get org limits")

    def fetch_record(
        self,
        conn: ConnectionDescriptor,
        object_name: str,
        record_id: str,
        cache: Any = None,
    ) -> Tuple[RecordMap, ObjectMetadata]:
        """Load one record with every non-calculated field, plus its describe.

        ``cache`` is an optional MetadataCache used for the describe lookup.
        """
        if cache is not None:
            metadata = cache.get_or_fetch(self, conn, object_name)
        else:
            metadata = self.get_object_metadata(conn, object_name)

        soql = build_record_query(metadata, record_id)
        result = self.execute_query(conn, soql)
        if result.total_size == 0 or not result.records:
            raise RecordNotFound(object_name, record_id)
        return result.records[0], metadata


def build_record_query(metadata: ObjectMetadata, record_id: str) -> str:
    """SELECT every stored field of ``metadata`` for a single record id."""
    fields: List[str] = list(ESSENTIAL_RECORD_FIELDS)
    seen = set(fields)
    for f in metadata.fields:
        if f.calculated or f.name in seen:
            continue
        seen.add(f.name)
        fields.append(f.name)
    safe_id = record_id.replace("\\", "\\\\").replace("'", "\\'")
    return f"SELECT {', '.join(fields)} FROM {metadata.name} WHERE Id = '{safe_id}' LIMIT 1"
