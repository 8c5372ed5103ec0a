"""
Core module for PrintQ.

Contains fundamental infrastructure components:
- exceptions: Custom exception hierarchy
- paymongo_client: HTTP client for the PayMongo API
"""

from .exceptions import (
    PrintQError,
    InvalidRequestError,
    JobNotFoundError,
    StoreError,
    StoreReadFailedError,
    StoreWriteFailedError,
    FileUploadError,
    CheckoutError,
    GatewayError,
    MissingCheckoutUrlError,
)
from .paymongo_client import PayMongoClient

__all__ = [
    "PrintQError",
    "InvalidRequestError",
    "JobNotFoundError",
    "StoreError",
    "StoreReadFailedError",
    "StoreWriteFailedError",
    "FileUploadError",
    "CheckoutError",
    "GatewayError",
    "MissingCheckoutUrlError",
    "PayMongoClient",
]
