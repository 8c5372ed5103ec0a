"""
Services layer for PrintQ.

This module contains the business logic services:
- IdentifierAllocator: Print-NNNN ids with bounded uniqueness checks
- OrderStore: Single-record access to the prints table (memory / SQL)
- FileStorage: Uploaded file storage (local folder / S3)
- JobService: Job submission (validate, upload, insert)
- CheckoutService: PayMongo checkout sessions
- WebhookReconciler: Payment event state machine
- StatusReader: Status projection for clients

Request Model:
    Flask serves requests on worker threads. Services hold no per-request
    state; everything durable lives in the OrderStore. The reconciler's
    per-job lock registry is the only shared mutable state.
"""

from .id_allocator import IdentifierAllocator, generate_print_id
from .order_store import InMemoryOrderStore, OrderStore, SqlOrderStore, build_order_store
from .file_storage import FileStorage, LocalFileStorage, S3FileStorage, build_file_storage
from .job_service import JobService, UploadedFile, parse_submission
from .checkout_service import CheckoutService, to_minor_units
from .reconciler import JobLockRegistry, ReconcileResult, WebhookReconciler
from .status_reader import StatusReader

__all__ = [
    "IdentifierAllocator",
    "generate_print_id",
    "InMemoryOrderStore",
    "OrderStore",
    "SqlOrderStore",
    "build_order_store",
    "FileStorage",
    "LocalFileStorage",
    "S3FileStorage",
    "build_file_storage",
    "JobService",
    "UploadedFile",
    "parse_submission",
    "CheckoutService",
    "to_minor_units",
    "JobLockRegistry",
    "ReconcileResult",
    "WebhookReconciler",
    "StatusReader",
]
