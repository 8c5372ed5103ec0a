"""
Unit tests for checkout session creation and the PayMongo client.
"""

from decimal import Decimal
from unittest.mock import MagicMock

import httpx
import pytest

from core.exceptions import (
    GatewayError,
    InvalidRequestError,
    MissingCheckoutUrlError,
    StoreWriteFailedError,
)
from core.paymongo_client import PayMongoClient
from services.checkout_service import CheckoutService, to_minor_units


CHECKOUT_URL = "https://checkout.paymongo.test/cs_test_123"


# Fixtures

@pytest.fixture
def gateway(paymongo_transport):
    client = PayMongoClient("sk_test_dummy", "https://api.paymongo.test", transport=paymongo_transport)
    yield client
    client.close()


@pytest.fixture
def checkout_service(gateway, store):
    return CheckoutService(
        gateway,
        store,
        success_url="https://shop.example/success",
        cancel_url="https://shop.example/cancel",
    )


class TestToMinorUnits:
    """Test major to minor unit conversion."""

    @pytest.mark.parametrize("amount,expected", [
        (150.5, 15050),
        ("150.50", 15050),
        (10, 1000),
        (10.005, 1001),
        ("10.005", 1001),
        (0.1 + 0.2, 30),
        (Decimal("99.994"), 9999),
        (0, 0),
    ])
    def test_rounds_half_up(self, amount, expected):
        assert to_minor_units(amount) == expected

    @pytest.mark.parametrize("amount", ["abc", "nan", "inf", True, -1, "-0.01"])
    def test_invalid_amounts_rejected(self, amount):
        with pytest.raises(InvalidRequestError):
            to_minor_units(amount)

    def test_never_truncates(self):
        """Every value with a half-centavo or more rounds up."""
        for centavos in range(0, 1000):
            amount = f"{centavos // 100}.{centavos % 100:02d}5"
            assert to_minor_units(amount) == centavos + 1


class TestCreateCheckout:

    def test_returns_checkout_url(self, checkout_service, make_job):
        make_job("Print-4821")

        url = checkout_service.create_checkout("Print-4821", 150.5, "juan@example.com")

        assert url == CHECKOUT_URL

    def test_request_payload(self, checkout_service, make_job, gateway_requests):
        make_job("Print-4821")

        checkout_service.create_checkout("Print-4821", "150.50", "juan@example.com")

        assert len(gateway_requests) == 1
        sent = gateway_requests[0]
        assert sent["method"] == "POST"
        assert sent["path"] == "/v1/checkout_sessions"
        assert sent["headers"]["authorization"].startswith("Basic ")

        attributes = sent["json"]["data"]["attributes"]
        assert attributes["amount"] == 15050
        assert attributes["currency"] == "PHP"
        assert attributes["description"] == "PrintQ - Print-4821"
        assert attributes["metadata"] == {"print_id": "Print-4821", "email": "juan@example.com"}
        assert attributes["line_items"][0]["amount"] == 15050
        assert attributes["line_items"][0]["quantity"] == 1
        assert attributes["payment_method_types"] == ["gcash", "paymaya", "card"]
        assert attributes["success_url"] == "https://shop.example/success"
        assert attributes["cancel_url"] == "https://shop.example/cancel"

    def test_checkout_url_recorded_on_job(self, checkout_service, make_job, store):
        make_job("Print-4821")

        checkout_service.create_checkout("Print-4821", 150.5, "juan@example.com")

        assert store.find_by_job_id("Print-4821").checkout_url == CHECKOUT_URL

    def test_status_untouched(self, checkout_service, make_job, store):
        """Creating a checkout never changes payment or print status."""
        before = make_job("Print-4821").status_view()

        checkout_service.create_checkout("Print-4821", 150.5, "juan@example.com")

        assert store.find_by_job_id("Print-4821").status_view() == before

    @pytest.mark.parametrize("job_id,amount,email", [
        (None, 150.5, "a@b.c"),
        ("Print-4821", None, "a@b.c"),
        ("Print-4821", 150.5, ""),
        ("  ", 150.5, "a@b.c"),
    ])
    def test_missing_parameters(self, checkout_service, gateway_requests, job_id, amount, email):
        with pytest.raises(InvalidRequestError) as exc_info:
            checkout_service.create_checkout(job_id, amount, email)

        assert exc_info.value.message == "Missing parameters"
        assert gateway_requests == []

    def test_gateway_rejection(self, checkout_service, gateway_response):
        gateway_response["status_code"] = 400
        gateway_response["json"] = {"errors": [{"code": "parameter_invalid"}]}

        with pytest.raises(GatewayError) as exc_info:
            checkout_service.create_checkout("Print-4821", 150.5, "juan@example.com")

        assert exc_info.value.status_code == 400
        assert exc_info.value.job_id == "Print-4821"

    def test_missing_checkout_url(self, checkout_service, gateway_response, make_job, store):
        make_job("Print-4821")
        gateway_response["json"] = {"data": {"attributes": {}}}

        with pytest.raises(MissingCheckoutUrlError):
            checkout_service.create_checkout("Print-4821", 150.5, "juan@example.com")

        assert store.find_by_job_id("Print-4821").checkout_url is None

    def test_record_update_failure_is_tolerated(self, gateway):
        store = MagicMock()
        store.update.side_effect = StoreWriteFailedError("down", operation="update")
        service = CheckoutService(gateway, store, "https://s", "https://c")

        assert service.create_checkout("Print-4821", 1, "a@b.c") == CHECKOUT_URL

    def test_unknown_job_still_gets_checkout(self, checkout_service):
        """The print id is not checked against the store before charging."""
        assert checkout_service.create_checkout("Print-0000", 1, "a@b.c") == CHECKOUT_URL


class TestPayMongoClient:

    def test_missing_secret(self, paymongo_transport, gateway_requests):
        client = PayMongoClient("", transport=paymongo_transport)

        with pytest.raises(GatewayError):
            client.create_checkout_session({})

        assert gateway_requests == []

    def test_transport_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = PayMongoClient("sk_test", transport=httpx.MockTransport(handler))

        with pytest.raises(GatewayError) as exc_info:
            client.create_checkout_session({})

        assert exc_info.value.status_code is None
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    def test_non_json_body(self):
        client = PayMongoClient(
            "sk_test",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>")),
        )

        with pytest.raises(GatewayError):
            client.create_checkout_session({})
