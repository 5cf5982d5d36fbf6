"""
gearguard/routes_assets.py

Asset inventory and return endpoints.

Security guarantees:
- All endpoints require a bearer token
- Inventory writes and the HR listing require the Hr role
- Browsing available stock, holdings and returns require the Employee role
- The owning HR is always the token email, never a client-supplied field
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, Form, Path, Query, UploadFile

from gearguard.auth_context import AuthContext, get_store
from gearguard.authz import Requirement
from gearguard.config import IS_DEV
from gearguard.db import Store
from gearguard.dependencies import get_image_host, require_role
from gearguard.images import ImageHost, encode_image
from gearguard.inventory import create_asset, delete_asset, list_assets, list_available_assets
from gearguard.returns import list_my_assets, return_asset
from gearguard.schemas import AssetCreateResponse, AssetPage, MyAssetList

router = APIRouter(tags=["assets"])


@router.post("/asset", response_model=AssetCreateResponse)
def create_asset_route(
    product_name: str = Form(..., min_length=1, max_length=200),
    product_type: str = Form(...),
    product_quantity: str = Form(...),
    company_name: Optional[str] = Form(None, max_length=200),
    product_image: Optional[UploadFile] = File(None),
    ctx: AuthContext = Depends(require_role(Requirement.HR)),
    store: Store = Depends(get_store),
    image_host: ImageHost = Depends(get_image_host),
) -> AssetCreateResponse:
    """
    Register an asset from a multipart form.

    An attached product_image is uploaded to the image host first; its
    public URL is stored on the asset.

    Raises:
        ValidationFailed(400): bad quantity or product type
        Forbidden(403): caller is not Hr
        UploadError(502): image host failed
    """
    image_url = None
    if product_image is not None:
        content = product_image.file.read()
        if content:
            image_url = image_host.upload(encode_image(content))

    asset_id = create_asset(
        store,
        ctx.user,
        product_name=product_name,
        product_type=product_type,
        product_quantity=product_quantity,
        product_image=image_url,
        company_name=company_name,
    )
    return AssetCreateResponse(inserted_id=asset_id)


@router.get("/asset", response_model=AssetPage)
def list_assets_route(
    page: int = Query(1, ge=1, description="1-based page number"),
    page_size: int = Query(10, ge=1, le=100, description="Results per page (max 100)"),
    search: Optional[str] = Query(None, max_length=200, description="Product name search"),
    product_type: Optional[str] = Query(None, description="Returnable or Non-returnable"),
    ctx: AuthContext = Depends(require_role(Requirement.HR)),
    store: Store = Depends(get_store),
) -> Dict[str, Any]:
    """One page of the caller's assets, newest first."""
    return list_assets(store, ctx.email, page, page_size, search, product_type)


@router.get("/asset/available", response_model=AssetPage)
def list_available_route(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None, max_length=200),
    product_type: Optional[str] = Query(None),
    ctx: AuthContext = Depends(require_role(Requirement.EMPLOYEE)),
    store: Store = Depends(get_store),
) -> Dict[str, Any]:
    return list_available_assets(store, page, page_size, search, product_type)


@router.delete("/asset/{asset_id}")
def delete_asset_route(
    asset_id: int = Path(..., ge=1),
    ctx: AuthContext = Depends(require_role(Requirement.HR)),
    store: Store = Depends(get_store),
) -> Dict[str, Any]:
    """
    Delete one of the caller's assets.

    Raises:
        NotFound(404): no such asset
        Forbidden(403): asset belongs to another HR
    """
    delete_asset(store, ctx.email, asset_id)
    return {"success": True, "deleted_count": 1}


@router.get("/my-asset", response_model=MyAssetList)
def my_assets_route(
    search: Optional[str] = Query(None, max_length=200),
    product_type: Optional[str] = Query(None),
    ctx: AuthContext = Depends(require_role(Requirement.EMPLOYEE)),
    store: Store = Depends(get_store),
) -> Dict[str, Any]:
    """Assets assigned to the caller, current and returned."""
    items = list_my_assets(store, ctx.email, search, product_type)
    if IS_DEV:
        print(f"[RETURNS] My assets: results={len(items)}")
    return {"items": items}


@router.patch("/asset/return/{assigned_id}")
def return_asset_route(
    assigned_id: int = Path(..., ge=1),
    ctx: AuthContext = Depends(require_role(Requirement.EMPLOYEE)),
    store: Store = Depends(get_store),
) -> Dict[str, Any]:
    """
    Return an assigned asset; its stock goes back up by one.

    Raises:
        NotFound(404): no such assignment
        Forbidden(403): assignment belongs to someone else
        Conflict(409): already returned
    """
    return_asset(store, ctx.email, assigned_id)
    return {"success": True, "message": "Asset returned"}
