"""
gearguard/dependencies.py

Reusable FastAPI dependencies for authorization and external collaborators.
"""

from __future__ import annotations

from typing import Callable

from fastapi import Depends, Request

from gearguard.auth_context import AuthContext, require_auth_context
from gearguard.authz import Requirement, evaluate
from gearguard.config import IS_DEV
from gearguard.errors import Forbidden
from gearguard.images import ImageHost
from gearguard.payments import PaymentProvider


def require_role(requirement: Requirement) -> Callable:
    """
    FastAPI dependency factory enforcing a route requirement.

    Usage in routes:
        @router.get("/employees")
        def list_employees(ctx: AuthContext = Depends(require_role(Requirement.HR))):
            ...

    Raises:
        Unauthorized: no valid token (from require_auth_context)
        Forbidden: the policy denied the caller
    """
    def _check_role(ctx: AuthContext = Depends(require_auth_context)) -> AuthContext:
        decision = evaluate(ctx, requirement)
        if not decision.allowed:
            print(f"[AUTHZ] Denied: requirement={requirement.value}, reason={decision.reason}")
            raise Forbidden("Forbidden access")

        if IS_DEV:
            print(f"[AUTHZ] Granted: requirement={requirement.value}, role={ctx.role}")
        return ctx

    return _check_role


def get_payment_provider(request: Request) -> PaymentProvider:
    return request.app.state.payment_provider


def get_image_host(request: Request) -> ImageHost:
    return request.app.state.image_host
