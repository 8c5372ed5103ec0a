"""
PayMongo REST client.

Only the checkout-session endpoint is used. The client is created once
at startup with explicit credentials; it holds an ``httpx.Client`` whose
connection pool is shared by all request threads (httpx clients are
thread-safe).

Usage:
    client = PayMongoClient(secret_key, api_base="https://api.paymongo.com")
    response = client.create_checkout_session(payload)
    url = response["data"]["attributes"]["checkout_url"]
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from .exceptions import GatewayError
from logging_config import get_logger


logger = get_logger(__name__)

DEFAULT_API_BASE = "https://api.paymongo.com"
CHECKOUT_SESSIONS_PATH = "/v1/checkout_sessions"


class PayMongoClient:
    """
    Thin wrapper over PayMongo's v1 API.

    Authentication is HTTP basic with the secret key as username and an
    empty password.
    """

    def __init__(
        self,
        secret_key: str,
        api_base: str = DEFAULT_API_BASE,
        timeout_seconds: float = 15.0,
        transport: Optional[httpx.BaseTransport] = None
    ):
        """
        Args:
            secret_key: PayMongo secret key (``sk_live_...`` / ``sk_test_...``)
            api_base: API root, overridable for sandboxes and tests
            timeout_seconds: Per-request timeout
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        self._secret_key = secret_key
        self._http = httpx.Client(
            base_url=api_base.rstrip("/"),
            auth=(secret_key or "", ""),
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            timeout=timeout_seconds,
            transport=transport,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self._secret_key)

    def close(self) -> None:
        self._http.close()

    def create_checkout_session(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST a checkout session.

        Args:
            payload: ``{"data": {"attributes": {...}}}`` request body

        Returns:
            Decoded JSON response

        Raises:
            GatewayError: Missing key, transport failure, non-2xx status or non-JSON body
        """
        if not self.is_configured:
            raise GatewayError("PAYMONGO_SECRET is not configured")

        try:
            response = self._http.post(CHECKOUT_SESSIONS_PATH, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"PayMongo request failed: {e}")
            raise GatewayError(f"PayMongo request failed: {e}") from e

        if response.is_error:
            body = _safe_json(response)
            logger.error(f"PayMongo returned {response.status_code}: {body}")
            raise GatewayError(
                f"PayMongo returned HTTP {response.status_code}",
                status_code=response.status_code,
                response_body=body,
            )

        data = _safe_json(response)
        if not isinstance(data, dict):
            raise GatewayError(
                "PayMongo returned a non-JSON response",
                status_code=response.status_code,
                response_body=response.text[:500],
            )
        return data


def _safe_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text[:500]
