"""
Checkout session creation.

Translates (print id, amount, email) into a PayMongo checkout session and
returns the hosted payment page URL. The print id is embedded twice:

    metadata.print_id          - structured correlation key
    description "PrintQ - id"  - fallback for events that drop metadata

The webhook reconciler reads them back in that order.
"""

from __future__ import annotations

import math
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from core.exceptions import (
    GatewayError,
    InvalidRequestError,
    MissingCheckoutUrlError,
    StoreError,
)
from core.paymongo_client import PayMongoClient
from models.webhook_event import DESCRIPTION_PREFIX
from services.order_store import OrderStore
from logging_config import get_logger, get_job_logger


# Module logger
logger = get_logger(__name__)


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def to_minor_units(amount: Any) -> int:
    """
    Convert a major-unit amount (pesos) to centavos.

    Rounds half-up to the nearest centavo, so 10.005 becomes 1001 rather
    than being truncated to 1000.

    Raises:
        InvalidRequestError: Not a finite, non-negative number
    """
    if isinstance(amount, bool):
        raise InvalidRequestError("Amount must be a number", field="amount")

    try:
        value = Decimal(str(amount).strip())
    except (InvalidOperation, ValueError):
        raise InvalidRequestError("Amount must be a number", field="amount")

    if not value.is_finite() or not math.isfinite(float(value)):
        raise InvalidRequestError("Amount must be a finite number", field="amount")
    if value < 0:
        raise InvalidRequestError("Amount must not be negative", field="amount")

    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def checkout_description(job_id: str) -> str:
    return f"{DESCRIPTION_PREFIX}{job_id}"


class CheckoutService:
    """Creates checkout sessions for print jobs."""

    def __init__(
        self,
        gateway: PayMongoClient,
        store: OrderStore,
        success_url: str,
        cancel_url: str,
        currency: str = "PHP",
        payment_method_types: Optional[List[str]] = None
    ):
        self._gateway = gateway
        self._store = store
        self._success_url = success_url
        self._cancel_url = cancel_url
        self._currency = currency
        self._payment_method_types = list(payment_method_types or ["gcash", "paymaya", "card"])

    def build_payload(self, job_id: str, amount_minor: int, email: str) -> Dict[str, Any]:
        """Build the checkout-session request body."""
        return {
            "data": {
                "attributes": {
                    "amount": amount_minor,
                    "currency": self._currency,
                    "description": checkout_description(job_id),
                    "line_items": [
                        {
                            "name": checkout_description(job_id),
                            "amount": amount_minor,
                            "currency": self._currency,
                            "quantity": 1,
                        }
                    ],
                    "payment_method_types": self._payment_method_types,
                    "success_url": self._success_url,
                    "cancel_url": self._cancel_url,
                    "metadata": {
                        "print_id": job_id,
                        "email": email,
                    },
                }
            }
        }

    def create_checkout(self, job_id: Any, amount: Any, email: Any) -> str:
        """
        Create a checkout session and return its URL.

        The URL is also written to the job as ``checkout_url``; that write
        is informational and its failure does not fail the checkout.

        Raises:
            InvalidRequestError: Missing or invalid job id, amount or email
            GatewayError: PayMongo rejected the request or was unreachable
            MissingCheckoutUrlError: PayMongo answered without a checkout url
        """
        if _is_missing(job_id) or _is_missing(amount) or _is_missing(email):
            raise InvalidRequestError("Missing parameters")

        job_id = str(job_id).strip()
        email = str(email).strip()
        amount_minor = to_minor_units(amount)

        job_logger = get_job_logger(job_id)
        job_logger.info(f"Creating checkout session for {amount_minor} {self._currency} minor units")

        payload = self.build_payload(job_id, amount_minor, email)
        try:
            response = self._gateway.create_checkout_session(payload)
        except GatewayError as e:
            job_logger.error(f"Checkout session failed: {e}")
            e.job_id = e.job_id or job_id
            e.details.setdefault("job_id", job_id)
            raise

        data = response.get("data")
        attributes = data.get("attributes") if isinstance(data, dict) else None
        checkout_url = attributes.get("checkout_url") if isinstance(attributes, dict) else None
        if not checkout_url:
            job_logger.error("PayMongo response has no checkout_url")
            raise MissingCheckoutUrlError(job_id)

        try:
            matched = self._store.update(job_id, {"checkout_url": checkout_url})
            if not matched:
                job_logger.warning("Checkout created for a print id that is not in the store")
        except StoreError as e:
            job_logger.warning(f"Could not record checkout url: {e}")

        job_logger.info("Checkout session created")
        return checkout_url
