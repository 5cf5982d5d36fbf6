"""
gearguard/routes_analytics.py

HR dashboard chart data.
"""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Query

from gearguard.analytics import asset_type_breakdown, top_requested
from gearguard.auth_context import AuthContext, get_store
from gearguard.authz import Requirement
from gearguard.db import Store
from gearguard.dependencies import require_role

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/asset-types")
def asset_types_route(
    ctx: AuthContext = Depends(require_role(Requirement.HR)),
    store: Store = Depends(get_store),
) -> List[Dict[str, Any]]:
    return asset_type_breakdown(store, ctx.email)


@router.get("/top-requested")
def top_requested_route(
    limit: int = Query(5, ge=1, le=50),
    ctx: AuthContext = Depends(require_role(Requirement.HR)),
    store: Store = Depends(get_store),
) -> List[Dict[str, Any]]:
    return top_requested(store, ctx.email, limit)
