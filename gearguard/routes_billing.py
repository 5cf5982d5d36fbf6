"""
gearguard/routes_billing.py

Package catalog, hosted checkout and payment verification endpoints.

Security guarantees:
- Checkout, verification and payment history require the Hr role
- The purchaser is always the token email; a session bought by another
  email cannot be verified by the caller
- /add-packages is gated by IS_DEV
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Query

from gearguard.auth_context import AuthContext, get_store
from gearguard.authz import Requirement
from gearguard.config import IS_DEV
from gearguard.db import Store
from gearguard.dependencies import get_payment_provider, require_role
from gearguard.errors import Forbidden
from gearguard.models import Package, Payment
from gearguard.payments import PaymentProvider
from gearguard.schemas import CheckoutRequest, CheckoutResponse, VerifyResponse
from gearguard import billing

router = APIRouter(tags=["billing"])


@router.get("/packages", response_model=List[Package])
def list_packages_route(store: Store = Depends(get_store)) -> List[Dict[str, Any]]:
    return billing.list_packages(store)


@router.post("/add-packages")
def add_packages_route(store: Store = Depends(get_store)) -> Dict[str, Any]:
    """Seed the default catalog (dev only; a no-op when packages exist)."""
    if not IS_DEV:
        raise Forbidden("Package seeding only available in dev")
    inserted = billing.seed_packages(store)
    return {"success": True, "inserted_count": inserted}


@router.post("/create-checkout-session", response_model=CheckoutResponse)
def create_checkout_route(
    body: CheckoutRequest,
    ctx: AuthContext = Depends(require_role(Requirement.HR)),
    store: Store = Depends(get_store),
    provider: PaymentProvider = Depends(get_payment_provider),
) -> CheckoutResponse:
    """
    Open a hosted checkout session for a catalog package.

    Raises:
        NotFound(404): unknown package
        PaymentProviderError(502): provider failed
    """
    url = billing.start_checkout(store, provider, ctx.email, body.package_name, body.request_id)
    return CheckoutResponse(url=url)


@router.get("/verify-session", response_model=VerifyResponse)
def verify_session_route(
    session_id: str = Query(..., min_length=1, max_length=255),
    ctx: AuthContext = Depends(require_role(Requirement.HR)),
    store: Store = Depends(get_store),
    provider: PaymentProvider = Depends(get_payment_provider),
) -> Dict[str, Any]:
    """
    Reconcile a returning checkout session.

    An unpaid session answers success=False with status 200. A paid session
    adds its seats once; verifying it again reports already_recorded=True.

    Raises:
        Forbidden(403): session was bought by another email
        PaymentProviderError(502): provider failed
    """
    return asdict(billing.verify_session(store, provider, ctx.email, session_id))


@router.get("/payments", response_model=List[Payment])
def list_payments_route(
    ctx: AuthContext = Depends(require_role(Requirement.HR)),
    store: Store = Depends(get_store),
) -> List[Dict[str, Any]]:
    return billing.list_payments(store, ctx.email)
