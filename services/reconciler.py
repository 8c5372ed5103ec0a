"""
Webhook reconciliation: the payment/print state machine.

States:
    (Unpaid, Pending)   initial, the only non-terminal state
    (Paid, Approved)    terminal, payment succeeded
    (Unpaid, Rejected)  terminal, payment failed

Transitions (from the initial state only):
    status "succeeded" | "paid"  -> (Paid, Approved), print code, notification by fulfillment
    status "failed"              -> (Unpaid, Rejected), print code, no notification

Everything else is acknowledged without a write:
    - unrecognized body / no correlation key          -> ignored
    - status with no transition ("processing", ...)    -> ignored
    - print id not in the store                        -> ignored
    - job already terminal (replay or late event)      -> duplicate

The gateway retries anything that is not acknowledged, so only store
failures propagate (the route answers 500 and the gateway redelivers).

Concurrency:
    Deliveries for the same print id are serialized by an in-process lock
    around the read-then-write. Separate worker processes are not
    coordinated; there the terminal-state check narrows, but does not
    close, the race between two different outcomes.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, Optional

from models.job import PaymentStatus, PrintJob, PrintStatus
from models.webhook_event import (
    EventOutcome,
    PaymentEvent,
    UnrecognizedEvent,
    parse_webhook_event,
)
from services.order_store import OrderStore
from logging_config import get_logger, get_job_logger


# Module logger
logger = get_logger(__name__)

READY_FOR_PICKUP = "Ready for pickup"
ON_THE_WAY = "On the way"
DEFAULT_CODE_NAME = "User"

APPLIED = "applied"
IGNORED = "ignored"
DUPLICATE = "duplicate"


def make_print_code(name: Optional[str], now: datetime) -> str:
    """Display code shown to the customer: ``{name}-{ISO timestamp}``."""
    return f"{name or DEFAULT_CODE_NAME}-{now.isoformat()}"


def notification_for(job: PrintJob) -> str:
    return READY_FOR_PICKUP if job.is_pickup else ON_THE_WAY


@dataclass(frozen=True)
class ReconcileResult:
    """What the reconciler did with one webhook delivery."""

    action: str
    """``applied``, ``ignored`` or ``duplicate``."""

    job_id: Optional[str] = None
    reason: str = ""
    payment_status: Optional[PaymentStatus] = None
    print_status: Optional[PrintStatus] = None

    @property
    def applied(self) -> bool:
        return self.action == APPLIED


class JobLockRegistry:
    """
    One lock per print id, created on demand.

    Locks are reference-counted and dropped when the last holder releases
    them, so the registry does not grow with the number of jobs seen.
    """

    def __init__(self):
        self._locks: Dict[str, threading.Lock] = {}
        self._holders: Dict[str, int] = {}
        self._guard = threading.Lock()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, job_id: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(job_id, threading.Lock())
            self._holders[job_id] = self._holders.get(job_id, 0) + 1

        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._holders[job_id] -= 1
                if self._holders[job_id] == 0:
                    del self._holders[job_id]
                    del self._locks[job_id]


class WebhookReconciler:
    """
    Applies payment-gateway events to print jobs.

    Usage:
        reconciler = WebhookReconciler(store)
        result = reconciler.reconcile(request_json)
        # result.action in {"applied", "ignored", "duplicate"}
    """

    def __init__(
        self,
        store: OrderStore,
        clock: Optional[Callable[[], datetime]] = None,
        locks: Optional[JobLockRegistry] = None
    ):
        """
        Args:
            store: Record store
            clock: Returns "now" for print codes (tests pin it)
            locks: Lock registry, shared if several reconcilers run in one process
        """
        self._store = store
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._locks = locks if locks is not None else JobLockRegistry()

    def reconcile(self, body: Any) -> ReconcileResult:
        """
        Reconcile one webhook body.

        Raises:
            StoreReadFailedError / StoreWriteFailedError: The gateway should retry
        """
        event = parse_webhook_event(body)

        if isinstance(event, UnrecognizedEvent):
            logger.info(f"Webhook ignored: {event.reason}")
            return ReconcileResult(IGNORED, reason=event.reason)

        outcome = event.outcome
        if outcome is None:
            logger.info(f"Webhook ignored for {event.job_id}: status {event.status!r} has no transition")
            return ReconcileResult(
                IGNORED,
                job_id=event.job_id,
                reason=f"status {event.status!r} has no transition",
            )

        with self._locks.hold(event.job_id):
            return self._apply(event, outcome)

    def _apply(self, event: PaymentEvent, outcome: EventOutcome) -> ReconcileResult:
        job_logger = get_job_logger(event.job_id)

        job = self._store.find_by_job_id(event.job_id)
        if job is None:
            job_logger.warning(f"Webhook for unknown print id ({event.shape} event, {event.status})")
            return ReconcileResult(IGNORED, job_id=event.job_id, reason="unknown print id")

        if job.is_reconciled:
            current = (job.payment_status.value, job.print_status.value)
            if _outcome_matches(job, outcome):
                job_logger.info(f"Replayed {outcome.value} event, job already {current}")
            else:
                job_logger.warning(
                    f"{outcome.value} event for a job already {current}, no transition back"
                )
            return ReconcileResult(
                DUPLICATE,
                job_id=job.job_id,
                reason=f"job already {current[0]}/{current[1]}",
                payment_status=job.payment_status,
                print_status=job.print_status,
            )

        fields = self._transition_fields(job, event, outcome)
        # Only the record checked above; an older job sharing the id keeps its state
        matched = self._store.update(job.job_id, fields, record_id=job.record_id)
        if not matched:
            # Read succeeded a moment ago; a lagging replica is the likely cause
            job_logger.warning("Status update matched no record")

        job_logger.info(
            f"Reconciled {event.shape} event: payment={fields['payment_status']}, "
            f"print={fields['print_status']}, notification={fields['notification']!r}"
        )
        return ReconcileResult(
            APPLIED,
            job_id=job.job_id,
            payment_status=PaymentStatus(fields["payment_status"]),
            print_status=PrintStatus(fields["print_status"]),
        )

    def _transition_fields(
        self,
        job: PrintJob,
        event: PaymentEvent,
        outcome: EventOutcome
    ) -> Dict[str, Any]:
        print_code = make_print_code(job.customer_name or event.customer_name, self._clock())

        if outcome == EventOutcome.PAID:
            return {
                "payment_status": PaymentStatus.PAID.value,
                "print_status": PrintStatus.APPROVED.value,
                "print_code": print_code,
                "notification": notification_for(job),
            }

        return {
            "payment_status": PaymentStatus.UNPAID.value,
            "print_status": PrintStatus.REJECTED.value,
            "print_code": print_code,
            "notification": None,
        }


def _outcome_matches(job: PrintJob, outcome: EventOutcome) -> bool:
    if outcome == EventOutcome.PAID:
        return job.payment_status == PaymentStatus.PAID
    return job.print_status == PrintStatus.REJECTED
