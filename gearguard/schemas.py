"""
gearguard/schemas.py

Pydantic request/response schemas for the HTTP surface.
Record shapes live in gearguard.models; this module only adds request bodies
and envelopes.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from gearguard.models import AssignedAsset, Asset, AssetRequest, UserRole


def _strip(v):
    if isinstance(v, str):
        return v.strip()
    return v


# ========================================================================
# AUTH / USERS
# ========================================================================

class TokenRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=254)


class TokenResponse(BaseModel):
    token: str


class UserCreateRequest(BaseModel):
    """Signup payload. Role-specific defaults are applied server-side."""
    email: str = Field(..., min_length=3, max_length=254)
    role: UserRole
    name: Optional[str] = Field(None, max_length=200)
    image: Optional[str] = Field(None, max_length=2000)
    company_name: Optional[str] = Field(None, max_length=200)
    company_logo: Optional[str] = Field(None, max_length=2000)
    dob: Optional[str] = Field(None, max_length=20)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        v = _strip(v)
        return v.lower() if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def validate_email_shape(cls, v):
        if "@" not in v:
            raise ValueError("email must contain @")
        return v


class UserCreateResponse(BaseModel):
    inserted: bool
    id: Optional[int] = None
    message: str


class UserUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, max_length=200)
    image: Optional[str] = Field(None, max_length=2000)
    dob: Optional[str] = Field(None, max_length=20)
    company_name: Optional[str] = Field(None, max_length=200)
    company_logo: Optional[str] = Field(None, max_length=2000)

    @field_validator("name", "company_name", mode="before")
    @classmethod
    def strip_text(cls, v):
        return _strip(v)


# ========================================================================
# ASSETS
# ========================================================================

class AssetCreateResponse(BaseModel):
    success: bool = True
    inserted_id: int


class AssetPage(BaseModel):
    items: List[Asset] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 10
    total_pages: int = 0


# ========================================================================
# REQUESTS
# ========================================================================

class RequestCreateRequest(BaseModel):
    asset_id: int = Field(..., ge=1)
    note: Optional[str] = Field(None, max_length=500)

    @field_validator("note", mode="before")
    @classmethod
    def strip_note(cls, v):
        return _strip(v)


class RequestCreateResponse(BaseModel):
    success: bool
    message: str
    inserted_id: Optional[int] = None


class RequestPage(BaseModel):
    items: List[AssetRequest] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 10
    total_pages: int = 0


class ApproveRequestBody(BaseModel):
    company_logo: Optional[str] = Field(None, max_length=2000)


class DecisionResponse(BaseModel):
    modified_count: int
    message: str


class MyAssetList(BaseModel):
    items: List[AssignedAsset] = Field(default_factory=list)


# ========================================================================
# BILLING
# ========================================================================

class CheckoutRequest(BaseModel):
    """
    Price and seat count come from the package catalog, never from the client.
    request_id identifies one checkout attempt; resending it reuses the session.
    """
    package_name: str = Field(..., min_length=1, max_length=100)
    request_id: Optional[str] = Field(None, min_length=1, max_length=100)


class CheckoutResponse(BaseModel):
    url: str


class VerifyResponse(BaseModel):
    success: bool
    package_name: Optional[str] = None
    employee_limit: Optional[int] = None
    package_limit: Optional[int] = None
    already_recorded: bool = False
