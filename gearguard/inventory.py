"""
gearguard/inventory.py

Asset inventory: HR-owned Asset records and their quantity counters.

All functions take the request's Store so their writes join the caller's
transaction.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from gearguard.config import IS_DEV
from gearguard.db import Store, paginate
from gearguard.errors import Forbidden, NotFound, ValidationFailed
from gearguard.models import AssetType, now_iso

NEWEST_FIRST = [("date_added", -1)]


def coerce_quantity(value: Any) -> int:
    """Normalize a quantity field (form values arrive as strings) to a non-negative int."""
    try:
        quantity = int(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationFailed("product_quantity must be a whole number")
    if quantity < 0:
        raise ValidationFailed("product_quantity must not be negative")
    return quantity


def asset_type(value: Any) -> str:
    try:
        return AssetType(value).value
    except ValueError:
        allowed = ", ".join(t.value for t in AssetType)
        raise ValidationFailed(f"product_type must be one of: {allowed}")


def _asset_filter(search: Optional[str], product_type: Optional[str]) -> Dict[str, Any]:
    where: Dict[str, Any] = {}
    if search:
        where["product_name__ilike"] = search.strip()
    if product_type:
        where["product_type"] = asset_type(product_type)
    return where


def create_asset(
    store: Store,
    hr_user: Dict[str, Any],
    *,
    product_name: str,
    product_type: str,
    product_quantity: Any,
    product_image: Optional[str] = None,
    company_name: Optional[str] = None,
) -> int:
    """
    Register a new asset for the HR.

    available_quantity starts equal to product_quantity. company_name falls
    back to the HR's profile, then "Unknown".
    """
    name = (product_name or "").strip()
    if not name:
        raise ValidationFailed("product_name must not be empty")
    quantity = coerce_quantity(product_quantity)

    asset_id = store.assets.insert_one({
        "hr_email": hr_user["email"],
        "product_name": name,
        "product_image": product_image,
        "product_type": asset_type(product_type),
        "product_quantity": quantity,
        "available_quantity": quantity,
        "company_name": company_name or hr_user.get("company_name") or "Unknown",
        "date_added": now_iso(),
    })

    if IS_DEV:
        print(f"[ASSETS] Created asset_id={asset_id}, quantity={quantity}")
    return asset_id


def list_assets(
    store: Store,
    hr_email: str,
    page: int = 1,
    page_size: int = 10,
    search: Optional[str] = None,
    product_type: Optional[str] = None,
) -> Dict[str, Any]:
    """One page of the HR's assets, newest first."""
    where = {"hr_email": hr_email, **_asset_filter(search, product_type)}
    result = paginate(store.assets, where, NEWEST_FIRST, page, page_size)

    if IS_DEV:
        print(f"[ASSETS] List: page={result['page']}, results={len(result['items'])}, total={result['total']}")
    return result


def list_available_assets(
    store: Store,
    page: int = 1,
    page_size: int = 10,
    search: Optional[str] = None,
    product_type: Optional[str] = None,
) -> Dict[str, Any]:
    """Assets with stock left, across every HR, for employees to request."""
    where = {"available_quantity__gt": 0, **_asset_filter(search, product_type)}
    return paginate(store.assets, where, NEWEST_FIRST, page, page_size)


def get_asset(store: Store, asset_id: int) -> Dict[str, Any]:
    asset = store.assets.find_one({"id": asset_id})
    if not asset:
        raise NotFound("Asset not found")
    return asset


def delete_asset(store: Store, hr_email: str, asset_id: int) -> None:
    """
    Delete an asset owned by the HR.

    Outstanding requests and assignments that reference it are left as they
    are.

    Raises:
        NotFound: no such asset
        Forbidden: asset belongs to another HR
    """
    asset = get_asset(store, asset_id)
    if asset["hr_email"] != hr_email:
        print(f"[SECURITY] Asset delete denied: asset_id={asset_id}")
        raise Forbidden("Forbidden access")

    store.assets.delete_one({"id": asset_id})
    if IS_DEV:
        print(f"[ASSETS] Deleted asset_id={asset_id}")


def adjust_availability(store: Store, asset_id: int, delta: int, floor: Optional[int] = None) -> bool:
    """
    Atomically add delta to an asset's available_quantity.

    Without floor the change always applies (no clamping). With floor it only
    applies while the result stays >= floor. Returns whether a row changed.
    """
    where: Dict[str, Any] = {"id": asset_id}
    if floor is not None:
        where["available_quantity__gte"] = floor - delta
    return store.assets.update_one(where, inc={"available_quantity": delta}) == 1
