"""
Data models for PrintQ.

This module contains:
- PrintJob: The central print job record and its status enums
- JobStatusView: Read-only projection polled by clients
- JobSubmission: Validated customer input for a new job
- PaymentEvent / UnrecognizedEvent: Parsed gateway webhook bodies
"""

from .job import (
    PICKUP,
    JobStatusView,
    JobSubmission,
    PaymentStatus,
    PrintJob,
    PrintStatus,
)
from .webhook_event import (
    DESCRIPTION_PREFIX,
    EventOutcome,
    PaymentEvent,
    UnrecognizedEvent,
    WebhookEvent,
    job_id_from_description,
    parse_webhook_event,
)

__all__ = [
    # Job models
    "PICKUP",
    "JobStatusView",
    "JobSubmission",
    "PaymentStatus",
    "PrintJob",
    "PrintStatus",
    # Webhook models
    "DESCRIPTION_PREFIX",
    "EventOutcome",
    "PaymentEvent",
    "UnrecognizedEvent",
    "WebhookEvent",
    "job_id_from_description",
    "parse_webhook_event",
]
