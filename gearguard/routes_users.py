"""
gearguard/routes_users.py

Token issuance and user profile endpoints.

Security guarantees:
- /auth/token only signs tokens for registered emails
- /users (signup) is public
- Role lookup and profile reads/writes are owner-only: the path email must
  equal the token email
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, Path

from gearguard.auth_context import AuthContext, get_store, issue_token
from gearguard.authz import Requirement, authorize_owner
from gearguard.config import IS_DEV
from gearguard.db import Store
from gearguard.dependencies import require_role
from gearguard.models import User
from gearguard.schemas import (
    TokenRequest,
    TokenResponse,
    UserCreateRequest,
    UserCreateResponse,
    UserUpdateRequest,
)
from gearguard import users

router = APIRouter(tags=["users"])


@router.post("/auth/token", response_model=TokenResponse)
def create_token(body: TokenRequest, store: Store = Depends(get_store)) -> TokenResponse:
    """
    Exchange a registered email for a bearer token.

    Security:
    - No credential is checked here. The caller is assumed to have proven
      ownership of the email to an upstream identity provider (the client
      signs in there first, then calls this endpoint)
    - Deploy behind that provider; never expose this route on its own

    Raises:
        Unauthorized(401): email not registered
    """
    return TokenResponse(token=issue_token(store, body.email))


@router.post("/users", response_model=UserCreateResponse)
def create_user(body: UserCreateRequest, store: Store = Depends(get_store)) -> Dict[str, Any]:
    """
    Sign up a user. Re-registering an existing email returns inserted=False.
    """
    return users.create_user(store, body.model_dump())


@router.get("/users/role/{email}")
def get_user_role(
    email: str = Path(..., min_length=3),
    ctx: AuthContext = Depends(require_role(Requirement.AUTHENTICATED)),
    store: Store = Depends(get_store),
) -> Dict[str, str]:
    """Role of the caller, or "guest" when the email has no record."""
    authorize_owner(ctx.email, email)
    return {"role": users.get_role(store, ctx.email)}


@router.get("/user/{email}")
def get_user(
    email: str = Path(..., min_length=3),
    ctx: AuthContext = Depends(require_role(Requirement.AUTHENTICATED)),
    store: Store = Depends(get_store),
) -> Dict[str, Any]:
    """
    Fetch the caller's own profile; {} when there is no record yet.

    Raises:
        Forbidden(403): path email is not the caller
    """
    authorize_owner(ctx.email, email)
    user = users.get_user(store, ctx.email)
    return User.model_validate(user).model_dump() if user else {}


@router.patch("/user/update/{email}")
def update_user(
    body: UserUpdateRequest,
    email: str = Path(..., min_length=3),
    ctx: AuthContext = Depends(require_role(Requirement.AUTHENTICATED)),
    store: Store = Depends(get_store),
) -> Dict[str, Any]:
    """
    Update the caller's own profile fields (name, image, dob, company_name, company_logo).

    Raises:
        Forbidden(403): path email is not the caller
    """
    authorize_owner(ctx.email, email)
    modified = users.update_profile(store, ctx.email, body.model_dump(exclude_unset=True))

    if IS_DEV:
        print(f"[USERS] Profile update: modified={modified}")
    return {"success": True, "modified_count": modified}
