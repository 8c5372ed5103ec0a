"""
Custom exceptions for PrintQ.

Exception Hierarchy:
    PrintQError (base)
    ├── InvalidRequestError        - Missing/invalid client input (400, not retried)
    ├── JobNotFoundError           - Print id does not resolve (404)
    ├── StoreError                 - Record store failure (500, caller retries)
    │   ├── StoreReadFailedError
    │   └── StoreWriteFailedError
    ├── FileUploadError            - Object storage rejected an upload (500)
    └── CheckoutError              - Checkout session could not be created (500)
        ├── GatewayError               - PayMongo rejected or errored
        └── MissingCheckoutUrlError    - PayMongo answered without a checkout url

Usage:
    Routes map each class to an HTTP status. Unrecognized webhook events are
    NOT errors: the reconciler reports them as ignored.
"""

from typing import Optional, Dict, Any


class PrintQError(Exception):
    """
    Base exception for all PrintQ errors.

    Carries a human-readable message plus a details dict used for
    operator-facing log lines.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional context for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# CLIENT ERRORS
# =============================================================================

class InvalidRequestError(PrintQError):
    """
    A required field is missing or malformed.

    This is the client's fault; the request is rejected with 400 and must
    not be retried unchanged.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, details)
        self.field = field


class JobNotFoundError(PrintQError):
    """No print job exists with the given id."""

    def __init__(self, job_id: str):
        super().__init__(f"Print job not found: {job_id}", {"job_id": job_id})
        self.job_id = job_id


# =============================================================================
# DEPENDENCY ERRORS - surfaced as 500, retried by the caller or gateway
# =============================================================================

class StoreError(PrintQError):
    """
    Base class for record store failures.

    The store is a remote, non-transactional service. A failed operation
    is logged and surfaced; nothing is retried in-process.
    """

    def __init__(
        self,
        message: str,
        operation: str,
        job_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        error_details = details or {}
        error_details["operation"] = operation
        if job_id:
            error_details["job_id"] = job_id
        super().__init__(message, error_details)
        self.operation = operation
        self.job_id = job_id


class StoreReadFailedError(StoreError):
    """Reading a print record failed."""


class StoreWriteFailedError(StoreError):
    """Creating or updating a print record failed."""


class FileUploadError(PrintQError):
    """An uploaded file could not be written to object storage."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"File upload failed for {path}: {reason}", {"path": path})
        self.path = path
        self.reason = reason


class CheckoutError(PrintQError):
    """
    Base class for checkout session failures.

    No amount is charged when any of these is raised.
    """

    def __init__(
        self,
        message: str,
        job_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        error_details = details or {}
        if job_id:
            error_details["job_id"] = job_id
        super().__init__(message, error_details)
        self.job_id = job_id


class GatewayError(CheckoutError):
    """
    PayMongo rejected the checkout request or could not be reached.

    ``status_code`` is None for transport failures (timeouts, DNS, refused
    connections) and for a missing API key.
    """

    def __init__(
        self,
        message: str,
        job_id: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Any = None
    ):
        details = {}
        if status_code is not None:
            details["status_code"] = status_code
        if response_body is not None:
            details["response"] = response_body
        super().__init__(message, job_id, details)
        self.status_code = status_code
        self.response_body = response_body


class MissingCheckoutUrlError(CheckoutError):
    """
    PayMongo answered successfully but without a checkout url.

    Treated as an integration contract violation, fatal for the request.
    """

    def __init__(self, job_id: Optional[str] = None):
        super().__init__("No checkout url returned by PayMongo", job_id)
