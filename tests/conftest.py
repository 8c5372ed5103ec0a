"""
Shared fixtures for the PrintQ test suite.
"""

import json

import httpx
import pytest

from app import create_app
from models.job import PrintJob
from services.file_storage import LocalFileStorage
from services.order_store import InMemoryOrderStore


@pytest.fixture
def store():
    """Empty in-memory order store."""
    return InMemoryOrderStore()


@pytest.fixture
def file_storage(tmp_path):
    """Local file storage rooted in a temp directory."""
    return LocalFileStorage(str(tmp_path / "uploads"), "http://testserver")


@pytest.fixture
def make_job(store):
    """Factory that inserts a job into the store and returns it."""

    def _make_job(job_id="Print-1234", fulfillment_mode="pickup", **kwargs):
        job = PrintJob(
            job_id=job_id,
            customer_name=kwargs.pop("customer_name", "Juan"),
            customer_phone=kwargs.pop("customer_phone", "09171234567"),
            file_refs=kwargs.pop("file_refs", ["http://testserver/uploads/a.pdf"]),
            fulfillment_mode=fulfillment_mode,
            amount_due=kwargs.pop("amount_due", 150.5),
            **kwargs,
        )
        return store.create(job)

    return _make_job


@pytest.fixture
def gateway_requests():
    """Requests captured by the fake PayMongo transport."""
    return []


@pytest.fixture
def gateway_response():
    """
    Mutable response returned by the fake PayMongo transport.

    Tests change ``status_code`` / ``json`` before calling checkout.
    """
    return {
        "status_code": 200,
        "json": {
            "data": {
                "id": "cs_test_123",
                "type": "checkout_session",
                "attributes": {"checkout_url": "https://checkout.paymongo.test/cs_test_123"},
            }
        },
    }


@pytest.fixture
def paymongo_transport(gateway_requests, gateway_response):
    """httpx.MockTransport standing in for api.paymongo.com."""

    def handler(request: httpx.Request) -> httpx.Response:
        gateway_requests.append({
            "method": request.method,
            "path": request.url.path,
            "headers": dict(request.headers),
            "json": json.loads(request.content or b"null"),
        })
        return httpx.Response(gateway_response["status_code"], json=gateway_response["json"])

    return httpx.MockTransport(handler)


@pytest.fixture
def app(store, tmp_path, paymongo_transport):
    """Flask app in testing mode wired to the in-memory store and fake gateway."""
    app = create_app("testing", overrides={
        "ORDER_STORE": store,
        "UPLOAD_FOLDER": str(tmp_path / "uploads"),
        "PAYMONGO_TRANSPORT": paymongo_transport,
    })
    return app


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()
