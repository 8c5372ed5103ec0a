"""
Route tests through the Flask test client.

The app runs in testing mode with the in-memory store, a temp upload
folder and httpx.MockTransport in place of PayMongo.
"""

import io
from unittest.mock import MagicMock
from urllib.parse import unquote, urlparse

import pytest

from app import create_app
from core.exceptions import StoreReadFailedError, StoreWriteFailedError


# Helpers

def submit(client, **fields):
    form = {
        "name": "Juan",
        "phone": "09171234567",
        "pages": "3",
        "copies": "1",
        "color": "bw",
        "fulfill": "pickup",
        "amount": "150.50",
    }
    form.update(fields)
    if "files" not in form:
        form["files"] = [
            (io.BytesIO(b"%PDF-1.4 first"), "first.pdf"),
            (io.BytesIO(b"%PDF-1.4 second"), "second.pdf"),
        ]
    return client.post("/api/create-print", data=form, content_type="multipart/form-data")


def paid_event(job_id):
    return {
        "data": {
            "attributes": {
                "type": "checkout_session.payment.paid",
                "data": {
                    "attributes": {
                        "status": "active",
                        "description": f"PrintQ - {job_id}",
                        "metadata": {"print_id": job_id, "email": "juan@example.com"},
                    }
                },
            }
        }
    }


def failed_event(job_id):
    return {"data": {"attributes": {"status": "failed", "metadata": {"print_id": job_id}}}}


def broken_store_app(tmp_path, paymongo_transport, **store_behavior):
    store = MagicMock()
    for name, value in store_behavior.items():
        setattr(store, name, value)
    return create_app("testing", overrides={
        "ORDER_STORE": store,
        "UPLOAD_FOLDER": str(tmp_path / "uploads"),
        "PAYMONGO_TRANSPORT": paymongo_transport,
    })


class TestEndToEnd:
    """Submission through payment to status, as the browser and PayMongo drive it."""

    def test_paid_pickup_flow(self, client, gateway_requests):
        response = submit(client)
        assert response.status_code == 200
        created = response.get_json()
        job_id = created["printId"]
        assert created["amount"] == 150.5

        response = client.post("/api/create-checkout", json={
            "printId": job_id,
            "amount": created["amount"],
            "email": "juan@example.com",
        })
        assert response.status_code == 200
        assert response.get_json() == {"checkout_url": "https://checkout.paymongo.test/cs_test_123"}
        assert gateway_requests[0]["json"]["data"]["attributes"]["amount"] == 15050

        response = client.post("/api/paymongo-webhook", json=paid_event(job_id))
        assert response.status_code == 200
        assert response.get_data(as_text=True) == "ok"

        response = client.get(f"/api/get-status?printId={job_id}")
        status = response.get_json()
        assert status["payment_status"] == "Paid"
        assert status["print_status"] == "Approved"
        assert status["notification"] == "Ready for pickup"
        assert status["print_code"].startswith("Juan-")

        # Replay is acknowledged and changes nothing
        response = client.post("/api/paymongo-webhook", json=paid_event(job_id))
        assert response.status_code == 200
        assert response.get_data(as_text=True) == "duplicate"
        assert client.get(f"/api/get-status?printId={job_id}").get_json() == status

    def test_failed_delivery_flow(self, client):
        job_id = submit(client, fulfill="delivery", location="Makati").get_json()["printId"]

        response = client.post("/api/paymongo-webhook", json=failed_event(job_id))
        assert response.get_data(as_text=True) == "ok"

        status = client.get(f"/api/get-status?printId={job_id}").get_json()
        assert status["payment_status"] == "Unpaid"
        assert status["print_status"] == "Rejected"
        assert status["notification"] is None


class TestCreatePrint:

    def test_no_files(self, client, store):
        response = submit(client, files=[])

        assert response.status_code == 400
        assert response.get_data(as_text=True) == "No files uploaded"
        assert len(store) == 0

    def test_missing_name(self, client, store):
        response = submit(client, name="")

        assert response.status_code == 400
        assert response.get_data(as_text=True) == "Missing name or phone"
        assert len(store) == 0

    def test_uploaded_file_is_served(self, client, store):
        job_id = submit(client).get_json()["printId"]
        file_url = store.find_by_job_id(job_id).file_refs[0]

        response = client.get(unquote(urlparse(file_url).path))

        assert response.status_code == 200
        assert response.data == b"%PDF-1.4 first"

    def test_database_failure(self, tmp_path, paymongo_transport):
        app = broken_store_app(
            tmp_path,
            paymongo_transport,
            exists=MagicMock(return_value=False),
            create=MagicMock(side_effect=StoreWriteFailedError("x", operation="create")),
        )

        response = submit(app.test_client())

        assert response.status_code == 500
        assert response.get_data(as_text=True) == "Database insert failed"


class TestGetStatus:

    def test_missing_print_id(self, client):
        response = client.get("/api/get-status")

        assert response.status_code == 400
        assert response.get_data(as_text=True) == "Missing printId"

    def test_unknown_print_id(self, client):
        response = client.get("/api/get-status?printId=Print-0000")

        assert response.status_code == 404
        assert response.get_data(as_text=True) == "Not found"


class TestCreateCheckout:

    def test_missing_parameters(self, client, gateway_requests):
        response = client.post("/api/create-checkout", json={"printId": "Print-1234"})

        assert response.status_code == 400
        assert response.get_data(as_text=True) == "Missing parameters"
        assert gateway_requests == []

    def test_gateway_failure(self, client, gateway_response):
        gateway_response["status_code"] = 401
        gateway_response["json"] = {"errors": [{"code": "unauthorized"}]}

        response = client.post("/api/create-checkout", json={
            "printId": "Print-1234", "amount": 10, "email": "a@b.c",
        })

        assert response.status_code == 500
        assert response.get_data(as_text=True) == "Failed to create checkout session"

    def test_no_checkout_url(self, client, gateway_response):
        gateway_response["json"] = {"data": {"attributes": {}}}

        response = client.post("/api/create-checkout", json={
            "printId": "Print-1234", "amount": 10, "email": "a@b.c",
        })

        assert response.status_code == 500
        assert response.get_data(as_text=True) == "No checkout url returned by PayMongo"


class TestWebhook:

    @pytest.mark.parametrize("body", [
        {"unexpected": True},
        {"data": {"attributes": {"status": "paid"}}},
        {"data": {"attributes": {"status": "processing", "metadata": {"print_id": "Print-1"}}}},
    ])
    def test_irrelevant_events_acknowledged(self, client, body):
        response = client.post("/api/paymongo-webhook", json=body)

        assert response.status_code == 200
        assert response.get_data(as_text=True) == "ignored"

    def test_non_json_body_acknowledged(self, client):
        response = client.post("/api/paymongo-webhook", data="not json", content_type="text/plain")

        assert response.status_code == 200

    def test_unknown_job_acknowledged(self, client):
        response = client.post("/api/paymongo-webhook", json=failed_event("Print-9999"))

        assert response.status_code == 200
        assert response.get_data(as_text=True) == "ignored"

    def test_store_failure_returns_500(self, tmp_path, paymongo_transport):
        app = broken_store_app(
            tmp_path,
            paymongo_transport,
            find_by_job_id=MagicMock(side_effect=StoreReadFailedError("x", operation="find_by_job_id")),
        )

        response = app.test_client().post("/api/paymongo-webhook", json=failed_event("Print-1234"))

        assert response.status_code == 500
        assert response.get_data(as_text=True) == "server error"


class TestMain:

    def test_health(self, client):
        assert client.get("/health").get_json() == {"status": "ok"}

    def test_cors_header(self, client):
        response = client.get("/health", headers={"Origin": "https://shop.example"})
        assert response.headers["Access-Control-Allow-Origin"] in ("*", "https://shop.example")

    def test_cors_restricted_origins(self, store, tmp_path, paymongo_transport):
        app = create_app("testing", overrides={
            "ORDER_STORE": store,
            "UPLOAD_FOLDER": str(tmp_path / "uploads"),
            "PAYMONGO_TRANSPORT": paymongo_transport,
            "CORS_ORIGINS": ["https://shop.example"],
        })
        client = app.test_client()

        allowed = client.get("/health", headers={"Origin": "https://shop.example"})
        denied = client.get("/health", headers={"Origin": "https://evil.example"})

        assert allowed.headers["Access-Control-Allow-Origin"] == "https://shop.example"
        assert "Access-Control-Allow-Origin" not in denied.headers

    def test_cors_preflight(self, client):
        response = client.options("/api/create-checkout", headers={
            "Origin": "https://shop.example",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type",
        })

        assert response.status_code == 200
        assert "POST" in response.headers["Access-Control-Allow-Methods"]

    def test_upload_path_escape(self, client):
        assert client.get("/uploads/../config.py").status_code == 404
