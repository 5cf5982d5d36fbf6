"""
gearguard/test_payments.py

Tests for the outbound HTTP clients (Stripe Checkout, imgbb) with the
requests layer patched out.

Tests:
1. Checkout sends form-encoded bracket keys with an Idempotency-Key header
2. Session ids are URL-quoted into a single path segment
3. Session fields fall back to customer_details.email and expanded payment_intent
4. 4xx, timeouts and non-JSON bodies become PaymentProviderError / UploadError

Run:
    pytest gearguard/test_payments.py -v
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from gearguard.errors import PaymentProviderError, UploadError
from gearguard.images import ImgbbHost, encode_image
from gearguard.payments import StripeProvider

API_BASE = "https://stripe.test/v1"


def _response(status_code=200, body=None, invalid_json=False):
    resp = MagicMock()
    resp.status_code = status_code
    if invalid_json:
        resp.json.side_effect = ValueError("not json")
    else:
        resp.json.return_value = body if body is not None else {}
    return resp


@pytest.fixture
def stripe():
    return StripeProvider(secret_key="sk_test_123", api_base=API_BASE, timeout=7)


class TestStripeCheckout:
    def test_form_keys_and_idempotency_header(self, stripe):
        body = {"id": "cs_1", "url": "https://checkout.test/cs_1"}
        with patch("gearguard.payments.requests.request", return_value=_response(body=body)) as req:
            session = stripe.create_checkout_session(
                customer_email="hr@acme.com",
                product_name="Standard",
                unit_amount=800,
                metadata={"packageName": "Standard", "employeeLimit": "10"},
                success_url="https://app.test/ok",
                cancel_url="https://app.test/cancel",
                idempotency_key="checkout-hr@acme.com-Standard",
            )

        assert session.id == "cs_1"
        assert session.url == "https://checkout.test/cs_1"

        method, url = req.call_args.args
        kwargs = req.call_args.kwargs
        assert method == "POST"
        assert url == f"{API_BASE}/checkout/sessions"
        assert kwargs["headers"] == {"Idempotency-Key": "checkout-hr@acme.com-Standard"}
        assert kwargs["auth"] == ("sk_test_123", "")
        assert kwargs["timeout"] == 7
        data = kwargs["data"]
        assert data["line_items[0][price_data][unit_amount]"] == "800"
        assert data["line_items[0][price_data][product_data][name]"] == "Standard"
        assert data["metadata[packageName]"] == "Standard"
        assert data["metadata[employeeLimit]"] == "10"
        assert data["customer_email"] == "hr@acme.com"
        assert data["success_url"] == "https://app.test/ok"

    def test_missing_secret_never_calls_out(self):
        with patch("gearguard.payments.requests.request") as req:
            with pytest.raises(PaymentProviderError):
                StripeProvider(secret_key="", api_base=API_BASE).retrieve_session("cs_1")
        req.assert_not_called()


class TestStripeRetrieve:
    def test_session_id_is_a_single_path_segment(self, stripe):
        with patch("gearguard.payments.requests.request", return_value=_response(body={})) as req:
            stripe.retrieve_session("../../customers?limit=100")

        method, url = req.call_args.args
        assert method == "GET"
        assert url == f"{API_BASE}/checkout/sessions/..%2F..%2Fcustomers%3Flimit%3D100"

    def test_fallbacks_for_email_and_expanded_intent(self, stripe):
        body = {
            "id": "cs_1",
            "payment_status": "paid",
            "customer_email": None,
            "customer_details": {"email": "hr@acme.com"},
            "amount_total": 1500,
            "metadata": {"packageName": "Premium", "employeeLimit": "20"},
            "payment_intent": {"id": "pi_42", "status": "succeeded"},
        }
        with patch("gearguard.payments.requests.request", return_value=_response(body=body)):
            session = stripe.retrieve_session("cs_1")

        assert session.customer_email == "hr@acme.com"
        assert session.payment_intent_id == "pi_42"
        assert session.amount_total == 1500
        assert session.metadata["packageName"] == "Premium"

    def test_sparse_body_defaults(self, stripe):
        with patch("gearguard.payments.requests.request", return_value=_response(body={"payment_intent": "pi_7"})):
            session = stripe.retrieve_session("cs_9")

        assert session.id == "cs_9"
        assert session.payment_status == "unpaid"
        assert session.amount_total == 0
        assert session.metadata == {}
        assert session.payment_intent_id == "pi_7"


class TestStripeFailures:
    def test_rejected_request(self, stripe):
        error = {"error": {"type": "invalid_request_error", "code": "resource_missing"}}
        with patch("gearguard.payments.requests.request", return_value=_response(404, error)):
            with pytest.raises(PaymentProviderError) as exc:
                stripe.retrieve_session("cs_missing")
        assert exc.value.message == "Payment provider rejected the request"
        assert exc.value.status_code == 502

    def test_timeout(self, stripe):
        with patch("gearguard.payments.requests.request", side_effect=requests.exceptions.Timeout()):
            with pytest.raises(PaymentProviderError) as exc:
                stripe.retrieve_session("cs_1")
        assert exc.value.message == "Payment provider timed out"

    def test_connection_error(self, stripe):
        with patch("gearguard.payments.requests.request", side_effect=requests.exceptions.ConnectionError()):
            with pytest.raises(PaymentProviderError) as exc:
                stripe.retrieve_session("cs_1")
        assert exc.value.message == "Payment provider unreachable"

    def test_non_json_body(self, stripe):
        with patch("gearguard.payments.requests.request", return_value=_response(invalid_json=True)):
            with pytest.raises(PaymentProviderError) as exc:
                stripe.retrieve_session("cs_1")
        assert exc.value.message == "Payment provider returned an invalid response"


class TestImgbb:
    def test_upload_returns_hosted_url(self):
        host = ImgbbHost(api_key="imgbb-key", upload_url="https://imgbb.test/upload", timeout=5)
        image = encode_image(b"\x89PNG")
        body = {"data": {"url": "https://i.imgbb.test/abc.png"}}
        with patch("gearguard.images.requests.post", return_value=_response(body=body)) as post:
            assert host.upload(image) == "https://i.imgbb.test/abc.png"

        assert post.call_args.args == ("https://imgbb.test/upload",)
        assert post.call_args.kwargs == {
            "params": {"key": "imgbb-key"},
            "data": {"image": image},
            "timeout": 5,
        }

    @pytest.mark.parametrize("response", [
        _response(body={"data": {}}),
        _response(body={"success": False}),
        _response(invalid_json=True),
        _response(400, {"error": {"message": "Invalid API key"}}),
    ])
    def test_unusable_response_is_upload_error(self, response):
        host = ImgbbHost(api_key="imgbb-key", upload_url="https://imgbb.test/upload")
        with patch("gearguard.images.requests.post", return_value=response):
            with pytest.raises(UploadError):
                host.upload("aGVsbG8=")

    def test_network_error_and_missing_key(self):
        with patch("gearguard.images.requests.post", side_effect=requests.exceptions.ConnectionError()):
            with pytest.raises(UploadError):
                ImgbbHost(api_key="imgbb-key").upload("aGVsbG8=")

        with patch("gearguard.images.requests.post") as post:
            with pytest.raises(UploadError):
                ImgbbHost(api_key="").upload("aGVsbG8=")
        post.assert_not_called()
