"""
gearguard/routes_requests.py

Request workflow endpoints.

Employees file requests; the HR that owns the asset decides them. The HR
recipient of a request is taken from the asset record, so an employee can
never route a request to an arbitrary HR.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Path, Query

from gearguard.auth_context import AuthContext, get_store
from gearguard.authz import Requirement
from gearguard.db import Store
from gearguard.dependencies import require_role
from gearguard.models import AssetRequest
from gearguard.schemas import (
    ApproveRequestBody,
    DecisionResponse,
    RequestCreateRequest,
    RequestCreateResponse,
    RequestPage,
)
from gearguard import workflow

router = APIRouter(prefix="/request", tags=["requests"])


@router.post("", response_model=RequestCreateResponse)
def submit_request_route(
    body: RequestCreateRequest,
    ctx: AuthContext = Depends(require_role(Requirement.EMPLOYEE)),
    store: Store = Depends(get_store),
) -> RequestCreateResponse:
    """
    File a request for an asset.

    A repeat request for the same asset is answered with success=False
    (status 200), not an error.

    Raises:
        NotFound(404): no such asset
    """
    result = workflow.submit_request(store, ctx.user, body.asset_id, body.note)
    return RequestCreateResponse(
        success=result.success,
        message=result.message,
        inserted_id=result.inserted_id,
    )


@router.get("", response_model=RequestPage)
def list_requests_route(
    search: Optional[str] = Query(None, max_length=200, description="Requester name/email or asset name"),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    ctx: AuthContext = Depends(require_role(Requirement.HR)),
    store: Store = Depends(get_store),
) -> Dict[str, Any]:
    return workflow.list_requests(store, ctx.email, search, page, page_size)


@router.get("/mine", response_model=List[AssetRequest])
def my_requests_route(
    ctx: AuthContext = Depends(require_role(Requirement.EMPLOYEE)),
    store: Store = Depends(get_store),
) -> List[Dict[str, Any]]:
    return workflow.list_my_requests(store, ctx.email)


@router.patch("/approve/{request_id}", response_model=DecisionResponse)
def approve_request_route(
    request_id: int = Path(..., ge=1),
    body: Optional[ApproveRequestBody] = Body(None),
    ctx: AuthContext = Depends(require_role(Requirement.HR)),
    store: Store = Depends(get_store),
) -> DecisionResponse:
    """
    Approve a pending request: assign one unit and affiliate the employee.

    The company logo recorded on a new affiliation defaults to the caller's
    profile logo.

    Raises:
        NotFound(404): no such request
        Forbidden(403): request targets another HR
        Conflict(409): request not pending, or asset out of stock
    """
    company_logo = (body.company_logo if body else None) or (ctx.user or {}).get("company_logo")
    modified = workflow.approve_request(store, ctx.email, request_id, company_logo)
    return DecisionResponse(modified_count=modified, message="Request approved")


@router.patch("/reject/{request_id}", response_model=DecisionResponse)
def reject_request_route(
    request_id: int = Path(..., ge=1),
    ctx: AuthContext = Depends(require_role(Requirement.HR)),
    store: Store = Depends(get_store),
) -> DecisionResponse:
    modified = workflow.reject_request(store, ctx.email, request_id)
    return DecisionResponse(modified_count=modified, message="Request rejected")
