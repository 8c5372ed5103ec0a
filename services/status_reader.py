"""Read-only status projection polled by the customer page."""

from __future__ import annotations

from core.exceptions import InvalidRequestError, JobNotFoundError
from models.job import JobStatusView
from services.order_store import OrderStore


class StatusReader:
    """Looks up the externally visible status of a print job."""

    def __init__(self, store: OrderStore):
        self._store = store

    def get_status(self, job_id: str) -> JobStatusView:
        """
        Raises:
            InvalidRequestError: Empty print id
            JobNotFoundError: No job with this print id
            StoreReadFailedError: Store unavailable
        """
        if not job_id or not job_id.strip():
            raise InvalidRequestError("Missing printId", field="printId")

        job = self._store.find_by_job_id(job_id.strip())
        if job is None:
            raise JobNotFoundError(job_id)
        return job.status_view()
