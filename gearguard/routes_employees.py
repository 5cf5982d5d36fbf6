"""
gearguard/routes_employees.py

HR roster and employee team directory endpoints.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Path, Query

from gearguard.auth_context import AuthContext, get_store
from gearguard.authz import Requirement
from gearguard.db import Store
from gearguard.dependencies import require_role
from gearguard import directory

router = APIRouter(tags=["employees"])


@router.get("/employees")
def list_employees_route(
    ctx: AuthContext = Depends(require_role(Requirement.HR)),
    store: Store = Depends(get_store),
) -> List[Dict[str, Any]]:
    return directory.list_employees(store, ctx.email)


@router.get("/employees/stats")
def employee_stats_route(
    ctx: AuthContext = Depends(require_role(Requirement.HR)),
    store: Store = Depends(get_store),
) -> Dict[str, int]:
    return directory.employee_stats(store, ctx.email)


@router.patch("/employees/remove/{affiliation_id}")
def remove_employee_route(
    affiliation_id: int = Path(..., ge=1),
    ctx: AuthContext = Depends(require_role(Requirement.HR)),
    store: Store = Depends(get_store),
) -> Dict[str, Any]:
    """
    Remove an employee from the caller's team.

    Assets the employee still holds from the caller are returned to stock.

    Raises:
        NotFound(404): no such affiliation
        Forbidden(403): affiliation belongs to another HR
        Conflict(409): already removed
    """
    returned = directory.remove_employee(store, ctx.email, affiliation_id)
    return {"success": True, "returned_count": returned}


@router.get("/myTeam/companies")
def team_companies_route(
    ctx: AuthContext = Depends(require_role(Requirement.EMPLOYEE)),
    store: Store = Depends(get_store),
) -> List[str]:
    return directory.list_team_companies(store, ctx.email)


@router.get("/myTeam/list")
def team_list_route(
    company_name: Optional[str] = Query(None, max_length=200),
    ctx: AuthContext = Depends(require_role(Requirement.EMPLOYEE)),
    store: Store = Depends(get_store),
) -> List[Dict[str, Any]]:
    """Active teammates across the caller's companies, optionally one company only."""
    return directory.list_team(store, ctx.email, company_name)
