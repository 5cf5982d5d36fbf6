"""
gearguard/auth_context.py

Shared authentication context primitives for FastAPI dependency injection.

Contains:
- get_store: per-request database session dependency
- create_access_token / issue_token: signed, time-limited JWTs binding an email
- verify_token: JWT token verification
- AuthContext + require_auth_context: the caller identity for protected routes

This module MUST NOT import gearguard.main to avoid circular dependencies.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterator, Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel

from gearguard.config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_MINUTES, IS_DEV
from gearguard.db import Store
from gearguard.errors import Unauthorized

# auto_error=False: a missing header must be a 401, not FastAPI's default response
security = HTTPBearer(auto_error=False)


# ---------------------------------------------------------
# DB Helper
# ---------------------------------------------------------
def get_store(request: Request) -> Iterator[Store]:
    """
    Yield a Store bound to one transaction for the lifetime of the request.

    Commits when the handler returns, rolls back when it raises.
    """
    database = request.app.state.database
    with database.session() as store:
        yield store


# ---------------------------------------------------------
# JWT Tokens
# ---------------------------------------------------------
def create_access_token(email: str, minutes: Optional[int] = None, now: Optional[datetime] = None) -> str:
    """Sign a token for email, expiring after `minutes` (default ACCESS_TOKEN_MINUTES)."""
    issued = now or datetime.now(timezone.utc)
    lifetime = timedelta(minutes=ACCESS_TOKEN_MINUTES if minutes is None else minutes)
    payload = {
        "sub": email,
        "email": email,
        "iat": issued,
        "exp": issued + lifetime,
    }
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


def issue_token(store: Store, email: str) -> str:
    """
    Exchange a registered email for an access token.

    Identity is proven upstream (external sign-in); this only binds an
    already-authenticated email to a short-lived token.

    Raises:
        Unauthorized: no user with that email
    """
    email_norm = (email or "").strip().lower()
    user = store.users.find_one({"email": email_norm})
    if not user:
        print("[AUTH] Token requested for unknown email")
        raise Unauthorized("Unauthorized access")

    if IS_DEV:
        print(f"[AUTH] Token issued: user_id={user['id']}, role={user['role']}")
    return create_access_token(email_norm)


def verify_token(token: Optional[str]) -> Dict[str, Any]:
    """
    Verify JWT access token and return decoded payload.

    Raises:
        Unauthorized: token missing, malformed, or expired
    """
    if not token:
        raise Unauthorized("Unauthorized access")
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Token expired")
    except jwt.InvalidTokenError:
        raise Unauthorized("Invalid token")

    if not payload.get("email"):
        raise Unauthorized("Invalid token payload")
    return payload


# ---------------------------------------------------------
# AuthContext
# ---------------------------------------------------------
class AuthContext(BaseModel):
    """
    Caller identity derived from a verified token.

    email is the only identity protected routes may trust; never take the
    acting user's email from request bodies or query params.
    user is the stored User record, or None when the email has no record.
    """
    email: str
    user: Optional[Dict[str, Any]] = None

    @property
    def role(self) -> Optional[str]:
        return (self.user or {}).get("role")


def require_auth_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    store: Store = Depends(get_store),
) -> AuthContext:
    """
    Auth dependency for every protected route.

    Raises:
        Unauthorized: missing, invalid or expired bearer token
    """
    if credentials is None:
        raise Unauthorized("Unauthorized access")

    payload = verify_token(credentials.credentials)
    email = payload["email"].strip().lower()
    user = store.users.find_one({"email": email})

    if IS_DEV:
        print(f"[AUTH] Authenticated: email_known={user is not None}, role={(user or {}).get('role')}")

    return AuthContext(email=email, user=user)
