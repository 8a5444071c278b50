"""Bulk API 2.0 query jobs: submit, poll until terminal, download CSV results.

A run is a small state machine over one BulkJob:

    submit -> poll (InProgress ...) -> JobComplete -> fetch results -> decode
                                    -> Failed / Aborted -> JobFailedError
                                    -> budget exhausted -> JobTimeoutError

The caller is blocked for the whole run; waiting is done by the injected
``sleep`` so tests can drive it without real delays.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from .api import SalesforceAPI, error_payload
from .csv_decoder import decode_csv
from .exceptions import JobFailedError, JobSubmissionError, JobTimeoutError, UpstreamStatusError
from .models import ConnectionDescriptor, QueryResult, RecordMap

_logger = logging.getLogger(__name__)


class JobState(str, Enum):
    OPEN = "Open"
    UPLOAD_COMPLETE = "UploadComplete"
    IN_PROGRESS = "InProgress"
    JOB_COMPLETE = "JobComplete"
    FAILED = "Failed"
    ABORTED = "Aborted"

    @classmethod
    def parse(cls, raw: Optional[str]) -> JobState:
        try:
            return cls(raw)
        except ValueError:
            _logger.debug("Unknown bulk job state %r; treating as in progress", raw)
            return cls.IN_PROGRESS

    @property
    def terminal(self) -> bool:
        return self in (JobState.JOB_COMPLETE, JobState.FAILED, JobState.ABORTED)


@dataclass
class BulkJob:
    id: str
    state: JobState = JobState.UPLOAD_COMPLETE
    state_message: Optional[str] = None
    polls: int = 0


class BulkQueryRunner:
    """Runs SOQL through Bulk API 2.0 and returns records like a REST query."""

    def __init__(
        self,
        api: SalesforceAPI,
        *,
        poll_interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.api = api
        self.poll_interval = api.cfg.bulk_poll_interval if poll_interval is None else poll_interval
        self.max_attempts = api.cfg.bulk_max_polls if max_attempts is None else max_attempts
        self._sleep = sleep

    def _jobs_path(self, *parts: str) -> str:
        return self.api.data_path("/".join(("jobs/query",) + parts))

    def submit(self, conn: ConnectionDescriptor, soql: str) -> BulkJob:
        body = {
            "operation": "query",
            "query": soql,
            "contentType": "CSV",
            "lineEnding": "LF",
        }
        r = self.api.api_call(conn, self._jobs_path(), method="POST", json=body)
        if not r.ok:
            raise JobSubmissionError(
                "Failed to create bulk query job",
                status_code=r.status_code,
                reason=r.reason,
                payload=error_payload(r),
            )
        payload = r.json()
        job = BulkJob(id=payload["id"], state=JobState.parse(payload.get("state")))
        _logger.info("Created bulk query job %s", job.id)
        return job

    def poll(self, conn: ConnectionDescriptor, job: BulkJob) -> BulkJob:
        """Wait for ``job`` to finish; returns it in JobComplete or raises."""
        for attempt in range(1, self.max_attempts + 1):
            self._sleep(self.poll_interval)
            r = self.api.api_call(conn, self._jobs_path(job.id))
            if not r.ok:
                raise UpstreamStatusError(
                    f"Failed to get status of bulk job {job.id}",
                    status_code=r.status_code,
                    reason=r.reason,
                    payload=error_payload(r),
                )
            status = r.json()
            job.state = JobState.parse(status.get("state"))
            job.state_message = status.get("errorMessage") or None
            job.polls = attempt
            _logger.debug(
                "Bulk job %s poll %d/%d: %s", job.id, attempt, self.max_attempts, job.state.value
            )

            if job.state is JobState.JOB_COMPLETE:
                return job
            if job.state is JobState.FAILED:
                raise JobFailedError(job.id, job.state_message)
            if job.state is JobState.ABORTED:
                message = job.state_message or f"Bulk query job {job.id} was aborted"
                raise JobFailedError(job.id, message)

        _logger.warning(
            "Bulk job %s still %s after %d polls", job.id, job.state.value, self.max_attempts
        )
        raise JobTimeoutError(job.id, self.max_attempts, self.poll_interval)

    def fetch_results(self, conn: ConnectionDescriptor, job: BulkJob) -> List[RecordMap]:
        r = self.api.api_call(
            conn, self._jobs_path(job.id, "results"), headers={"Accept": "text/csv"}
        )
        if not r.ok:
            raise UpstreamStatusError(
                f"Failed to fetch results of bulk job {job.id}",
                status_code=r.status_code,
                reason=r.reason,
                payload=error_payload(r),
            )
        return decode_csv(r.text)

    def run(self, conn: ConnectionDescriptor, soql: str) -> QueryResult:
        job = self.submit(conn, soql)
        self.poll(conn, job)
        records = self.fetch_results(conn, job)
        _logger.info(
            "Bulk job %s returned %d records after %d polls", job.id, len(records), job.polls
        )
        return QueryResult(total_size=len(records), done=True, records=records)
