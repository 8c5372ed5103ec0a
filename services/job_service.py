"""
Print job submission service.

Turns a customer submission (form fields + files) into a stored job:

    1. Validate and normalize the form (name/phone required, numbers defaulted)
    2. Allocate a Print-NNNN id
    3. Upload every file under the job's folder, keeping submission order
    4. Insert the job record as (Unpaid, Pending)

Files and record are not written atomically: if the insert fails after the
uploads, the uploaded objects stay behind. That is accepted; nothing
references them and the client retries with a fresh id.

Usage:
    job_service = JobService(store, file_storage, allocator)
    submission = parse_submission(request.form)
    result = job_service.create_job(submission, uploads)
    # {"printId": "Print-4821", "amount": 150.5, "recordId": 17}
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

import bleach

from core.exceptions import InvalidRequestError
from models.job import JobSubmission, PrintJob
from services.file_storage import FileStorage
from services.id_allocator import IdentifierAllocator
from services.order_store import OrderStore
from logging_config import get_logger, get_job_logger


# Module logger
logger = get_logger(__name__)

MAX_TEXT_LENGTH = 200


@dataclass(frozen=True)
class UploadedFile:
    """One file from the submission, already read into memory."""

    filename: str
    data: bytes
    content_type: Optional[str] = None


def _sanitize_text(text: Any, max_length: int = MAX_TEXT_LENGTH) -> str:
    """
    Strip whitespace and HTML from user input.

    Args:
        text: Raw form value (may be None)
        max_length: Maximum length kept

    Returns:
        Sanitized text, empty string for missing input
    """
    if text is None:
        return ""

    text = str(text).strip()
    text = bleach.clean(text, tags=[], strip=True)

    if len(text) > max_length:
        text = text[:max_length]

    return text


def _positive_int(value: Any, default: int = 1) -> int:
    """Parse a count; anything missing, non-numeric or below 1 becomes ``default``."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number) or number < 1:
        return default
    return int(number)


def _amount(value: Any) -> float:
    """
    Parse the amount due.

    Missing or non-numeric input becomes 0. A negative amount is rejected.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    if number < 0:
        raise InvalidRequestError("Amount must not be negative", field="amount")
    return number


def parse_submission(form: Mapping[str, Any]) -> JobSubmission:
    """
    Validate the submission form.

    Raises:
        InvalidRequestError: Missing name or phone, or negative amount
    """
    name = _sanitize_text(form.get("name"))
    phone = _sanitize_text(form.get("phone"))

    if not name or not phone:
        raise InvalidRequestError("Missing name or phone", field="name" if not name else "phone")

    return JobSubmission(
        customer_name=name,
        customer_phone=phone,
        page_count=_positive_int(form.get("pages")),
        copy_count=_positive_int(form.get("copies")),
        color_mode=_sanitize_text(form.get("color")) or None,
        fulfillment_mode=_sanitize_text(form.get("fulfill")) or None,
        location=_sanitize_text(form.get("location"), max_length=500) or None,
        amount_due=_amount(form.get("amount")),
    )


class JobService:
    """Creates print jobs."""

    def __init__(
        self,
        store: OrderStore,
        file_storage: FileStorage,
        allocator: IdentifierAllocator
    ):
        self._store = store
        self._file_storage = file_storage
        self._allocator = allocator

    def create_job(
        self,
        submission: JobSubmission,
        files: Sequence[UploadedFile]
    ) -> Dict[str, Any]:
        """
        Store a new print job.

        Args:
            submission: Validated form data
            files: At least one uploaded file, in submission order

        Returns:
            ``{"printId", "amount", "recordId"}``

        Raises:
            InvalidRequestError: No files
            FileUploadError: Storage rejected a file
            StoreReadFailedError / StoreWriteFailedError: Record store failure
        """
        if not files:
            raise InvalidRequestError("No files uploaded", field="files")

        job_id = self._allocator.allocate()
        job_logger = get_job_logger(job_id)
        job_logger.info(f"Creating job for '{submission.customer_name}' with {len(files)} file(s)")

        file_refs: List[str] = []
        for uploaded in files:
            path = self._file_storage.build_path(job_id, uploaded.filename)
            url = self._file_storage.upload(path, uploaded.data, uploaded.content_type)
            file_refs.append(url)
            job_logger.debug(f"Uploaded {uploaded.filename} -> {path}")

        job = PrintJob(
            job_id=job_id,
            customer_name=submission.customer_name,
            customer_phone=submission.customer_phone,
            file_refs=file_refs,
            page_count=submission.page_count,
            copy_count=submission.copy_count,
            color_mode=submission.color_mode,
            fulfillment_mode=submission.fulfillment_mode,
            location=submission.location,
            amount_due=submission.amount_due,
        )
        stored = self._store.create(job)

        job_logger.info(f"Job created: record={stored.record_id}, amount={stored.amount_due}")

        return {
            "printId": stored.job_id,
            "amount": stored.amount_due,
            "recordId": stored.record_id,
        }
