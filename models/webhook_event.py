"""
Inbound payment-gateway webhook events.

PayMongo posts differently shaped bodies depending on which resource and
which webhook version produced them. ``parse_webhook_event()`` turns any
body into exactly one of:

    PaymentEvent       - a recognized shape with a correlation key
    UnrecognizedEvent  - anything else; the reconciler acknowledges and ignores it

Recognized shapes:

    resource   {"data": {"attributes": {"status", "metadata", "description"}}}
               A payment/checkout resource posted directly.

    envelope   {"data": {"attributes": {"type": "checkout_session.payment.paid",
                                        "data": {"attributes": {...resource...}}}}}
               PayMongo's event object wrapping the resource.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union


DESCRIPTION_PREFIX = "PrintQ - "

PAID_STATUSES = frozenset({"succeeded", "paid"})
FAILED_STATUSES = frozenset({"failed"})


class EventOutcome(Enum):
    """What a payment event means for the job."""

    PAID = "Paid"
    REJECTED = "Rejected"


@dataclass(frozen=True)
class PaymentEvent:
    """A webhook body that names a print job."""

    job_id: str
    """Correlation key, from metadata or parsed from the description."""

    status: Optional[str]
    """Gateway status string as sent (``paid``, ``failed``, ``processing``...); matched exactly."""

    shape: str
    """``resource`` or ``envelope``."""

    event_type: Optional[str] = None
    """Envelope event type (``payment.paid``...), None for bare resources."""

    customer_name: Optional[str] = None
    """Name carried in metadata, if the sender put one there."""

    @property
    def outcome(self) -> Optional[EventOutcome]:
        """Paid, Rejected, or None when the status triggers no transition."""
        if self.status in PAID_STATUSES:
            return EventOutcome.PAID
        if self.status in FAILED_STATUSES:
            return EventOutcome.REJECTED
        return None


@dataclass(frozen=True)
class UnrecognizedEvent:
    """A webhook body this service does not act on."""

    reason: str


WebhookEvent = Union[PaymentEvent, UnrecognizedEvent]


def job_id_from_description(description: Any) -> Optional[str]:
    """
    Recover the print id from a ``"PrintQ - {job_id}"`` description.

    Returns None when the description does not follow that template.
    """
    if not isinstance(description, str):
        return None
    description = description.strip()
    if not description.startswith(DESCRIPTION_PREFIX):
        return None
    job_id = description[len(DESCRIPTION_PREFIX):].strip()
    return job_id or None


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _status_from_event_type(event_type: str) -> Optional[str]:
    # checkout_session.payment.paid, payment.paid, payment.failed, ...
    if event_type.endswith(".paid"):
        return "paid"
    if event_type.endswith(".failed"):
        return "failed"
    return None


def _correlation_key(resource: Dict[str, Any]) -> Optional[str]:
    metadata = _as_dict(resource.get("metadata"))
    for key in ("print_id", "job_id"):
        value = metadata.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return job_id_from_description(resource.get("description"))


def _normalize_status(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def parse_webhook_event(body: Any) -> WebhookEvent:
    """
    Classify a raw webhook body.

    Never raises: every body that is not a recognized shape with a
    correlation key comes back as ``UnrecognizedEvent``.

    Args:
        body: Decoded JSON body (any type)

    Returns:
        PaymentEvent or UnrecognizedEvent
    """
    if not isinstance(body, dict):
        return UnrecognizedEvent("body is not a JSON object")

    attributes = _as_dict(_as_dict(body.get("data")).get("attributes"))
    if not attributes:
        return UnrecognizedEvent("missing data.attributes")

    inner = _as_dict(_as_dict(attributes.get("data")).get("attributes"))
    event_type = attributes.get("type")

    if inner and isinstance(event_type, str):
        shape = "envelope"
        resource = inner
        status = _status_from_event_type(event_type) or _normalize_status(inner.get("status"))
    else:
        shape = "resource"
        resource = attributes
        event_type = None
        status = _normalize_status(attributes.get("status"))

    job_id = _correlation_key(resource)
    if not job_id:
        return UnrecognizedEvent(f"no correlation key in {shape} event")

    name = _as_dict(resource.get("metadata")).get("name")

    return PaymentEvent(
        job_id=job_id,
        status=status,
        shape=shape,
        event_type=event_type,
        customer_name=name if isinstance(name, str) and name.strip() else None,
    )
