"""
Print job data models.

A PrintJob is created once on submission and afterwards only its status
fields (by reconciliation) and its checkout url (by checkout) change.

Record format:
    The store keeps the column names used by the prints table
    (``print_id``, ``name``, ``fulfill``...). ``to_record()`` and
    ``from_record()`` convert between that shape and the dataclass.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, List, Optional


PICKUP = "pickup"


class PaymentStatus(Enum):
    """Payment state of a print job."""

    UNPAID = "Unpaid"
    PAID = "Paid"


class PrintStatus(Enum):
    """
    Fulfillment state of a print job.

    Lifecycle:
        PENDING -> (APPROVED | REJECTED)
    """

    PENDING = "Pending"
    """No payment event has been reconciled yet."""

    APPROVED = "Approved"
    """Payment succeeded, job goes to the printer."""

    REJECTED = "Rejected"
    """Payment failed."""


@dataclass
class PrintJob:
    """
    One print submission tracked through payment and fulfillment.

    ``payment_status``/``print_status``/``print_code``/``notification``
    are always written together by the reconciler.
    """

    job_id: str
    """Human-readable id, ``Print-NNNN``. Never changes."""

    customer_name: str
    customer_phone: str

    file_refs: List[str]
    """Public URLs of the uploaded files, in submission order."""

    page_count: int = 1
    copy_count: int = 1

    color_mode: Optional[str] = None
    """Opaque ("color", "bw", ...), passed through uninterpreted."""

    fulfillment_mode: Optional[str] = None
    """``"pickup"``; any other value means delivery."""

    location: Optional[str] = None
    """Delivery location. Not checked against fulfillment_mode."""

    amount_due: float = 0.0

    payment_status: PaymentStatus = PaymentStatus.UNPAID
    print_status: PrintStatus = PrintStatus.PENDING
    print_code: Optional[str] = None
    notification: Optional[str] = None

    checkout_url: Optional[str] = None
    """Last checkout page created for this job. Informational only."""

    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    record_id: Optional[int] = None
    """Primary key assigned by the store."""

    @property
    def is_pickup(self) -> bool:
        return self.fulfillment_mode == PICKUP

    @property
    def is_reconciled(self) -> bool:
        """True once any payment event has moved the job out of (Unpaid, Pending)."""
        return not (
            self.payment_status == PaymentStatus.UNPAID
            and self.print_status == PrintStatus.PENDING
        )

    def status_view(self) -> "JobStatusView":
        return JobStatusView(
            print_code=self.print_code,
            payment_status=self.payment_status,
            print_status=self.print_status,
            notification=self.notification,
        )

    def to_record(self) -> Dict[str, Any]:
        """Convert to the store's column layout."""
        return {
            "print_id": self.job_id,
            "name": self.customer_name,
            "phone": self.customer_phone,
            "pages": self.page_count,
            "copies": self.copy_count,
            "color": self.color_mode,
            "fulfill": self.fulfillment_mode,
            "location": self.location,
            "files": list(self.file_refs),
            "amount": self.amount_due,
            "payment_status": self.payment_status.value,
            "print_status": self.print_status.value,
            "print_code": self.print_code,
            "notification": self.notification,
            "checkout_url": self.checkout_url,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_record(cls, data: Dict[str, Any], record_id: Optional[int] = None) -> "PrintJob":
        """Create from a store record."""
        created_at = data.get("created_at")
        if isinstance(created_at, str):
            try:
                created_at = datetime.fromisoformat(created_at)
            except ValueError:
                created_at = None
        if created_at is None:
            created_at = datetime.now(timezone.utc)

        return cls(
            job_id=data.get("print_id", ""),
            customer_name=data.get("name", ""),
            customer_phone=data.get("phone", ""),
            file_refs=list(data.get("files") or []),
            page_count=data.get("pages", 1),
            copy_count=data.get("copies", 1),
            color_mode=data.get("color"),
            fulfillment_mode=data.get("fulfill"),
            location=data.get("location"),
            amount_due=data.get("amount", 0.0),
            payment_status=PaymentStatus(data.get("payment_status", "Unpaid")),
            print_status=PrintStatus(data.get("print_status", "Pending")),
            print_code=data.get("print_code"),
            notification=data.get("notification"),
            checkout_url=data.get("checkout_url"),
            created_at=created_at,
            record_id=record_id if record_id is not None else data.get("id"),
        )


@dataclass(frozen=True)
class JobStatusView:
    """Externally visible status of a job, as polled by the client."""

    print_code: Optional[str]
    payment_status: PaymentStatus
    print_status: PrintStatus
    notification: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "print_code": self.print_code,
            "payment_status": self.payment_status.value,
            "print_status": self.print_status.value,
            "notification": self.notification,
        }


@dataclass(frozen=True)
class JobSubmission:
    """
    Validated customer input for a new print job.

    Built by ``services.job_service.parse_submission()`` from the raw
    multipart form; numeric fields are already normalized.
    """

    customer_name: str
    customer_phone: str
    page_count: int = 1
    copy_count: int = 1
    color_mode: Optional[str] = None
    fulfillment_mode: Optional[str] = None
    location: Optional[str] = None
    amount_due: float = 0.0
