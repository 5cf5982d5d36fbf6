"""
gearguard/payments.py

Payment provider client (Stripe Checkout over its REST API).

Stripe takes form-encoded bodies with bracketed keys for nested fields
(line_items[0][price_data][currency]=usd) and authenticates with the secret key
as the basic-auth username.

Security:
- Never logs the secret key or full provider responses
- Provider failures are wrapped in PaymentProviderError with a safe message
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests

from gearguard.config import (
    HTTP_TIMEOUT_SECONDS,
    IS_DEV,
    STRIPE_API_BASE,
    STRIPE_SECRET,
)
from gearguard.errors import PaymentProviderError


@dataclass
class CheckoutSession:
    id: str
    url: Optional[str]


@dataclass
class PaymentSession:
    id: str
    payment_status: str
    customer_email: Optional[str]
    amount_total: int  # smallest currency unit (cents)
    metadata: Dict[str, str] = field(default_factory=dict)
    payment_intent_id: Optional[str] = None


class PaymentProvider:
    """Interface for hosted checkout providers."""

    def create_checkout_session(
        self,
        *,
        customer_email: str,
        product_name: str,
        unit_amount: int,
        metadata: Dict[str, str],
        success_url: str,
        cancel_url: str,
        idempotency_key: str,
        currency: str = "usd",
    ) -> CheckoutSession:
        raise NotImplementedError

    def retrieve_session(self, session_id: str) -> PaymentSession:
        raise NotImplementedError


class StripeProvider(PaymentProvider):
    def __init__(
        self,
        secret_key: str = STRIPE_SECRET,
        api_base: str = STRIPE_API_BASE,
        timeout: int = HTTP_TIMEOUT_SECONDS,
    ):
        self.secret_key = secret_key
        self.api_base = api_base
        self.timeout = timeout

    def _request(
        self,
        method: str,
        path: str,
        data: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        if not self.secret_key:
            raise PaymentProviderError("Payment provider is not configured")

        url = f"{self.api_base}{path}"
        try:
            resp = requests.request(
                method,
                url,
                data=data,
                headers=headers,
                auth=(self.secret_key, ""),
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout:
            print(f"[STRIPE] Timeout on {method} {path}")
            raise PaymentProviderError("Payment provider timed out")
        except requests.exceptions.RequestException as e:
            print(f"[STRIPE] Connection error on {method} {path}: {type(e).__name__}")
            raise PaymentProviderError("Payment provider unreachable")

        if resp.status_code >= 400:
            try:
                error = resp.json().get("error", {})
            except ValueError:
                error = {}
            print(f"[STRIPE] {method} {path} failed: status={resp.status_code}, "
                  f"type={error.get('type')}, code={error.get('code')}")
            raise PaymentProviderError("Payment provider rejected the request")

        try:
            return resp.json()
        except ValueError:
            print(f"[STRIPE] Non-JSON response on {method} {path}")
            raise PaymentProviderError("Payment provider returned an invalid response")

    def create_checkout_session(
        self,
        *,
        customer_email: str,
        product_name: str,
        unit_amount: int,
        metadata: Dict[str, str],
        success_url: str,
        cancel_url: str,
        idempotency_key: str,
        currency: str = "usd",
    ) -> CheckoutSession:
        data = {
            "payment_method_types[0]": "card",
            "mode": "payment",
            "line_items[0][price_data][currency]": currency,
            "line_items[0][price_data][product_data][name]": product_name,
            "line_items[0][price_data][unit_amount]": str(unit_amount),
            "line_items[0][quantity]": "1",
            "customer_email": customer_email,
            "success_url": success_url,
            "cancel_url": cancel_url,
        }
        for key, value in metadata.items():
            data[f"metadata[{key}]"] = value

        body = self._request(
            "POST",
            "/checkout/sessions",
            data=data,
            headers={"Idempotency-Key": idempotency_key},
        )

        if IS_DEV:
            print(f"[STRIPE] Checkout session created: id={body.get('id')}")
        return CheckoutSession(id=body.get("id", ""), url=body.get("url"))

    def retrieve_session(self, session_id: str) -> PaymentSession:
        body = self._request("GET", f"/checkout/sessions/{quote(session_id, safe='')}")

        customer_email = body.get("customer_email") or (body.get("customer_details") or {}).get("email")
        payment_intent = body.get("payment_intent")
        if isinstance(payment_intent, dict):
            payment_intent = payment_intent.get("id")

        return PaymentSession(
            id=body.get("id", session_id),
            payment_status=body.get("payment_status") or "unpaid",
            customer_email=customer_email,
            amount_total=int(body.get("amount_total") or 0),
            metadata=dict(body.get("metadata") or {}),
            payment_intent_id=payment_intent,
        )
