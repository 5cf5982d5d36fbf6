"""
gearguard/billing.py

Subscription packages and payment reconciliation.

Flow:
1. start_checkout: the HR picks a package; a hosted checkout session is opened
   with the package's price and seat count taken from the catalog.
2. The provider redirects back with ?session_id=...
3. verify_session: the session is fetched from the provider; a paid session
   is recorded once as a Payment and its seats are added to the HR's
   package_limit.
"""

from __future__ import annotations

import hashlib
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from gearguard.config import IS_DEV, SITE_DOMAIN
from gearguard.db import DuplicateKeyError, Store
from gearguard.errors import Forbidden, NotFound, PaymentProviderError, ValidationFailed
from gearguard.models import PaymentStatus, now_iso
from gearguard.payments import PaymentProvider

DEFAULT_PACKAGES: List[Dict[str, Any]] = [
    {
        "name": "Basic",
        "employee_limit": 5,
        "price": 5,
        "features": ["Asset Tracking", "Employee Management", "Basic Support"],
    },
    {
        "name": "Standard",
        "employee_limit": 10,
        "price": 12,
        "features": ["All Basic features", "Team Collaboration", "Company Branding"],
    },
    {
        "name": "Premium",
        "employee_limit": 20,
        "price": 20,
        "features": ["All Standard features", "Advanced Reporting", "Priority Support"],
    },
]


@dataclass
class VerifyResult:
    success: bool
    package_name: Optional[str] = None
    employee_limit: Optional[int] = None
    package_limit: Optional[int] = None
    already_recorded: bool = False


# ---------------------------------------------------------
# Catalog
# ---------------------------------------------------------
def seed_packages(store: Store) -> int:
    """Insert the default catalog when the table is empty. Returns rows inserted."""
    if store.packages.count() > 0:
        return 0
    inserted = store.packages.insert_many(DEFAULT_PACKAGES)
    print(f"[BILLING] Seeded {len(inserted)} packages")
    return len(inserted)


def list_packages(store: Store) -> List[Dict[str, Any]]:
    return store.packages.find(sort=[("price", 1)])


def get_package(store: Store, name: str) -> Dict[str, Any]:
    package = store.packages.find_one({"name": name})
    if not package:
        raise NotFound("Package not found")
    return package


# ---------------------------------------------------------
# Checkout
# ---------------------------------------------------------
def idempotency_key(email: str, package_name: str, request_id: str) -> str:
    """
    Stable key for one checkout attempt.

    Retries carrying the same client request_id map to the same provider
    session instead of opening a new one.
    """
    raw = f"{email}:{package_name}:{request_id}"
    return hashlib.sha256(raw.encode()).hexdigest()


def start_checkout(
    store: Store,
    provider: PaymentProvider,
    hr_email: str,
    package_name: str,
    request_id: Optional[str] = None,
) -> str:
    """
    Open a hosted checkout session for a package and return its redirect URL.

    Raises:
        NotFound: unknown package
        PaymentProviderError: provider failed or returned no URL
    """
    package = get_package(store, package_name)
    amount = int(round(float(package["price"]) * 100))
    key = idempotency_key(hr_email, package["name"], request_id or str(uuid.uuid4()))

    session = provider.create_checkout_session(
        customer_email=hr_email,
        product_name=package["name"],
        unit_amount=amount,
        metadata={
            "packageName": package["name"],
            "employeeLimit": str(package["employee_limit"]),
        },
        success_url=f"{SITE_DOMAIN}/payment/payment-success?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{SITE_DOMAIN}/payment/payment-cancel",
        idempotency_key=key,
    )

    if not session.url:
        print(f"[BILLING] Provider returned no URL: session_id={session.id}")
        raise PaymentProviderError("Payment provider did not return a URL")

    if IS_DEV:
        print(f"[BILLING] Checkout started: package={package['name']}, amount={amount}")
    return session.url


# ---------------------------------------------------------
# Verification
# ---------------------------------------------------------
def verify_session(
    store: Store,
    provider: PaymentProvider,
    hr_email: str,
    session_id: str,
) -> VerifyResult:
    """
    Reconcile a provider session with local subscription state.

    An unpaid session is a legitimate state, reported as success=False. A paid
    session is recorded at most once per transaction id; repeated verification
    reports success without adding seats again.

    Raises:
        ValidationFailed: missing session id
        Forbidden: the session was bought by another email
        PaymentProviderError: provider failure or malformed metadata
    """
    if not session_id:
        raise ValidationFailed("session_id is required")

    session = provider.retrieve_session(session_id)

    if (session.customer_email or "").strip().lower() != hr_email:
        print(f"[SECURITY] Session verification denied: session_id={session_id}")
        raise Forbidden("Forbidden access")

    if session.payment_status != "paid":
        if IS_DEV:
            print(f"[BILLING] Session not paid: status={session.payment_status}")
        return VerifyResult(success=False)

    package_name = session.metadata.get("packageName")
    try:
        employee_limit = int(session.metadata.get("employeeLimit", ""))
    except ValueError:
        print(f"[BILLING] Session metadata malformed: session_id={session_id}")
        raise PaymentProviderError("Payment session metadata is incomplete")
    if not package_name:
        raise PaymentProviderError("Payment session metadata is incomplete")

    def _result(already_recorded: bool) -> VerifyResult:
        user = store.users.find_one({"email": hr_email}) or {}
        return VerifyResult(
            success=True,
            package_name=package_name,
            employee_limit=employee_limit,
            package_limit=user.get("package_limit"),
            already_recorded=already_recorded,
        )

    transaction_id = session.payment_intent_id or session.id
    if store.payments.find_one({"transaction_id": transaction_id}):
        return _result(already_recorded=True)

    try:
        store.payments.insert_one({
            "hr_email": hr_email,
            "package_name": package_name,
            "employee_limit": employee_limit,
            "amount": session.amount_total / 100,
            "transaction_id": transaction_id,
            "payment_date": now_iso(),
            "status": PaymentStatus.completed.value,
        })
    except DuplicateKeyError:
        # A concurrent verification recorded it first
        return _result(already_recorded=True)

    # Seats accumulate across purchases
    store.users.update_one({"email": hr_email, "package_limit": None}, set={"package_limit": 0})
    store.users.update_one(
        {"email": hr_email},
        set={"subscription": package_name},
        inc={"package_limit": employee_limit},
    )

    print(f"[BILLING] Payment recorded: package={package_name}, seats_added={employee_limit}")
    return _result(already_recorded=False)


def list_payments(store: Store, hr_email: str) -> List[Dict[str, Any]]:
    return store.payments.find({"hr_email": hr_email}, sort=[("payment_date", -1)])
