"""
gearguard/analytics.py

HR dashboard aggregates.
"""

from __future__ import annotations

from typing import Any, Dict, List

from gearguard.db import Store
from gearguard.models import AssetType


def asset_type_breakdown(store: Store, hr_email: str) -> List[Dict[str, Any]]:
    """Asset count per product type for the HR; every type is listed, zero or not."""
    counts = dict(store.assets.group_count("product_type", {"hr_email": hr_email}))
    return [{"type": t.value, "count": counts.get(t.value, 0)} for t in AssetType]


def top_requested(store: Store, hr_email: str, limit: int = 5) -> List[Dict[str, Any]]:
    """The HR's most requested assets, most requests first."""
    ranked = store.requests.group_count("asset_id", {"hr_email": hr_email}, limit=limit)
    names = {
        req["asset_id"]: req.get("asset_name")
        for req in store.requests.find({"hr_email": hr_email, "asset_id__in": [a for a, _ in ranked]})
    }
    return [
        {"asset_id": asset_id, "asset_name": names.get(asset_id), "request_count": n}
        for asset_id, n in ranked
    ]
