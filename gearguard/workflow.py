"""
gearguard/workflow.py

Request workflow: the lifecycle of an employee's asset request.

    pending -> approved   (terminal)
    pending -> rejected   (terminal)

Approval fans out to four record sets (requests, assets, assigned_assets,
affiliations). Every step runs on the caller's Store, so an approval either
lands completely or not at all: any exception raised here rolls back the
whole request session.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from gearguard.config import IS_DEV
from gearguard.db import DuplicateKeyError, Store, paginate
from gearguard.errors import Conflict, Forbidden, NotFound
from gearguard.inventory import adjust_availability, get_asset
from gearguard.models import AffiliationStatus, AssignmentStatus, RequestStatus, now_iso
from gearguard.users import adjust_current_employees

ALREADY_REQUESTED = "You already requested this asset."


@dataclass
class SubmitResult:
    success: bool
    message: str
    inserted_id: Optional[int] = None


def submit_request(
    store: Store,
    employee: Dict[str, Any],
    asset_id: int,
    note: Optional[str] = None,
) -> SubmitResult:
    """
    File a pending request for an asset.

    Any earlier request for the same (employee, asset) pair blocks a new one,
    whatever its status, so a rejected request cannot be re-filed. That is a
    soft failure (success=False), not an error.

    Raises:
        NotFound: no such asset
    """
    asset = get_asset(store, asset_id)
    employee_email = employee["email"]

    if store.requests.find_one({"requester_email": employee_email, "asset_id": asset_id}):
        if IS_DEV:
            print(f"[REQUESTS] Duplicate request blocked: asset_id={asset_id}")
        return SubmitResult(success=False, message=ALREADY_REQUESTED)

    try:
        request_id = store.requests.insert_one({
            "asset_id": asset["id"],
            "asset_name": asset["product_name"],
            "asset_type": asset["product_type"],
            "asset_image": asset.get("product_image"),
            "requester_email": employee_email,
            "requester_name": employee.get("name"),
            "hr_email": asset["hr_email"],
            "company_name": asset.get("company_name"),
            "note": note,
            "request_status": RequestStatus.pending.value,
            "request_date": now_iso(),
        })
    except DuplicateKeyError:
        # Lost a race with a concurrent submit for the same pair
        return SubmitResult(success=False, message=ALREADY_REQUESTED)

    if IS_DEV:
        print(f"[REQUESTS] Submitted request_id={request_id}, asset_id={asset_id}")
    return SubmitResult(success=True, message="Request submitted successfully", inserted_id=request_id)


def list_requests(
    store: Store,
    hr_email: str,
    search: Optional[str] = None,
    page: int = 1,
    page_size: int = 10,
) -> Dict[str, Any]:
    """The HR's request inbox, newest first."""
    where: Dict[str, Any] = {"hr_email": hr_email}
    if search:
        term = search.strip()
        where["$or"] = [
            {"requester_name__ilike": term},
            {"requester_email__ilike": term},
            {"asset_name__ilike": term},
        ]
    return paginate(store.requests, where, [("request_date", -1)], page, page_size)


def list_my_requests(store: Store, employee_email: str) -> List[Dict[str, Any]]:
    return store.requests.find({"requester_email": employee_email}, sort=[("request_date", -1)])


def _load_for_decision(store: Store, hr_email: str, request_id: int) -> Dict[str, Any]:
    request = store.requests.find_one({"id": request_id})
    if not request:
        raise NotFound("Request not found")
    if request["hr_email"] != hr_email:
        print(f"[SECURITY] Request decision denied: request_id={request_id}")
        raise Forbidden("Forbidden access")
    if request["request_status"] != RequestStatus.pending.value:
        raise Conflict(f"Request already {request['request_status']}")
    return request


def _close_request(store: Store, request: Dict[str, Any], status: RequestStatus) -> int:
    # Conditional on pending so two concurrent decisions cannot both win
    modified = store.requests.update_one(
        {"id": request["id"], "request_status": RequestStatus.pending.value},
        set={
            "request_status": status.value,
            "approval_date": now_iso(),
            "processed_by": request["hr_email"],
        },
    )
    if modified == 0:
        raise Conflict("Request already processed")
    return modified


def approve_request(
    store: Store,
    hr_email: str,
    request_id: int,
    company_logo: Optional[str] = None,
) -> int:
    """
    Approve a pending request and hand the asset over.

    Steps, all in the caller's transaction:
    1. mark the request approved (approval_date, processed_by)
    2. take one unit of stock; refuse when none is left
    3. record the assignment
    4. affiliate the employee with the HR if not already active

    Returns:
        Number of modified request rows (1)

    Raises:
        NotFound: no such request, or its asset was deleted
        Forbidden: request targets another HR
        Conflict: request not pending, or asset out of stock
    """
    request = _load_for_decision(store, hr_email, request_id)
    modified = _close_request(store, request, RequestStatus.approved)

    # A deleted asset is NotFound, not out of stock
    get_asset(store, request["asset_id"])
    if not adjust_availability(store, request["asset_id"], -1, floor=0):
        # Raising here rolls back step 1 with the rest of the session
        raise Conflict("Asset is out of stock")

    now = now_iso()
    store.assigned_assets.insert_one({
        "asset_id": request["asset_id"],
        "asset_name": request.get("asset_name"),
        "asset_image": request.get("asset_image"),
        "asset_type": request.get("asset_type"),
        "employee_email": request["requester_email"],
        "employee_name": request.get("requester_name"),
        "hr_email": request["hr_email"],
        "company_name": request.get("company_name"),
        "assignment_date": now,
        "request_date": request.get("request_date"),
        "return_date": None,
        "status": AssignmentStatus.assigned.value,
    })

    already_affiliated = store.affiliations.find_one({
        "employee_email": request["requester_email"],
        "hr_email": request["hr_email"],
        "status": AffiliationStatus.active.value,
    })
    if not already_affiliated:
        store.affiliations.insert_one({
            "employee_email": request["requester_email"],
            "employee_name": request.get("requester_name"),
            "hr_email": request["hr_email"],
            "company_name": request.get("company_name"),
            "company_logo": company_logo,
            "affiliation_date": now,
            "status": AffiliationStatus.active.value,
        })
        adjust_current_employees(store, request["hr_email"], 1)
        if IS_DEV:
            print(f"[REQUESTS] New affiliation for request_id={request_id}")

    if IS_DEV:
        print(f"[REQUESTS] Approved request_id={request_id}, asset_id={request['asset_id']}")
    return modified


def reject_request(store: Store, hr_email: str, request_id: int) -> int:
    """
    Reject a pending request. No inventory or affiliation side effects.

    Raises:
        NotFound, Forbidden, Conflict: as for approve_request
    """
    request = _load_for_decision(store, hr_email, request_id)
    modified = _close_request(store, request, RequestStatus.rejected)

    if IS_DEV:
        print(f"[REQUESTS] Rejected request_id={request_id}")
    return modified
