"""
gearguard/returns.py

Return workflow: assigned -> returned, with the unit going back to stock.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from gearguard.config import IS_DEV
from gearguard.db import Store
from gearguard.errors import Conflict, Forbidden, NotFound
from gearguard.inventory import adjust_availability, asset_type
from gearguard.models import AssignmentStatus, now_iso


def list_my_assets(
    store: Store,
    employee_email: str,
    search: Optional[str] = None,
    product_type: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Everything ever assigned to the employee, most recent first."""
    where: Dict[str, Any] = {"employee_email": employee_email}
    if search:
        where["asset_name__ilike"] = search.strip()
    if product_type:
        where["asset_type"] = asset_type(product_type)
    return store.assigned_assets.find(where, sort=[("assignment_date", -1)])


def return_asset(store: Store, employee_email: str, assigned_id: int) -> None:
    """
    Hand an assigned asset back.

    Checks run in order: existence, ownership, state. The asset's availability
    goes up by one with no upper clamp.

    Raises:
        NotFound: no such assignment
        Forbidden: assignment belongs to another employee
        Conflict: already returned
    """
    assignment = store.assigned_assets.find_one({"id": assigned_id})
    if not assignment:
        raise NotFound("Asset not found")
    if assignment["employee_email"] != employee_email:
        print(f"[SECURITY] Return denied: assigned_id={assigned_id}")
        raise Forbidden("Forbidden access")
    if assignment["status"] != AssignmentStatus.assigned.value:
        raise Conflict("Asset already returned")

    modified = store.assigned_assets.update_one(
        {"id": assigned_id, "status": AssignmentStatus.assigned.value},
        set={"status": AssignmentStatus.returned.value, "return_date": now_iso()},
    )
    if modified == 0:
        raise Conflict("Asset already returned")

    adjust_availability(store, assignment["asset_id"], 1)

    if IS_DEV:
        print(f"[RETURNS] Returned assigned_id={assigned_id}, asset_id={assignment['asset_id']}")
