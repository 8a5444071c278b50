"""Exceptions raised by the Salesforce access layer.

Nothing in this package retries; every error surfaces directly to the caller.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional


class SalesforceError(RuntimeError):
    """Base class for everything raised by sfinspect."""


class AuthenticationMissing(SalesforceError):
    """Raised when no usable Salesforce connection is stored for the caller."""

    def __init__(self, missing: Iterable[str]):
        self.missing = list(missing)
        super().__init__("Not authenticated; missing: " + ", ".join(self.missing))


class TransportError(SalesforceError):
    """The HTTP request itself failed (DNS, refused connection, timeout...)."""


class UpstreamStatusError(SalesforceError):
    """A response came back but its status code indicates failure."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        reason: str = "",
        payload: Any = None,
    ):
        self.status_code = status_code
        self.reason = reason
        self.payload = payload
        detail = f"{message}: {reason or status_code}"
        if payload:
            detail = f"{detail} ({payload})"
        super().__init__(detail)


class QueryError(UpstreamStatusError):
    """Synchronous SOQL query failed."""


class MetadataFetchError(UpstreamStatusError):
    """Describe call failed."""


class JobSubmissionError(UpstreamStatusError):
    """Bulk query job could not be created."""


class JobFailedError(SalesforceError):
    """Bulk query job reached Failed or Aborted."""

    def __init__(self, job_id: str, message: Optional[str] = None):
        self.job_id = job_id
        self.state_message = message
        super().__init__(message or f"Bulk query job {job_id} failed")


class JobTimeoutError(SalesforceError):
    """Bulk query job did not complete within the polling budget."""

    def __init__(self, job_id: str, attempts: int, interval: float):
        self.job_id = job_id
        self.attempts = attempts
        super().__init__(
            f"Bulk query job {job_id} did not complete after {attempts} polls "
            f"({attempts * interval:.0f}s)"
        )


class DecodeError(SalesforceError):
    """CSV payload could not be decoded (strict mode only)."""


class RecordNotFound(SalesforceError):
    """Record lookup returned no rows."""

    def __init__(self, object_name: str, record_id: str):
        self.object_name = object_name
        self.record_id = record_id
        super().__init__(f"Record not found: {object_name} {record_id}")
