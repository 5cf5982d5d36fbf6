"""
gearguard/users.py

User records: signup with role defaults, lookup, and profile updates.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from gearguard.config import IS_DEV
from gearguard.db import DuplicateKeyError, Store
from gearguard.models import UserRole, now_iso

# Fields the owner may change through a profile update
PROFILE_FIELDS = ("name", "image", "dob", "company_name", "company_logo")


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def role_defaults(role: str) -> Dict[str, Any]:
    """Initial subscription/roster fields for a new user of the given role."""
    if role == UserRole.hr.value:
        return {"package_limit": 5, "current_employees": 0, "subscription": "basic"}
    return {"status": "pending", "position": "not assigned"}


def create_user(store: Store, fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Register a user; signing up twice with one email is a no-op.

    Returns:
        {"inserted": bool, "id": int | None, "message": str}
    """
    email = normalize_email(fields["email"])
    if store.users.find_one({"email": email}):
        return {"inserted": False, "id": None, "message": "User already exists"}

    role = UserRole(fields["role"]).value
    doc = {
        "email": email,
        "name": fields.get("name"),
        "image": fields.get("image"),
        "role": role,
        "company_name": fields.get("company_name"),
        "company_logo": fields.get("company_logo"),
        "dob": fields.get("dob"),
        "created_at": now_iso(),
        **role_defaults(role),
    }

    try:
        user_id = store.users.insert_one(doc)
    except DuplicateKeyError:
        return {"inserted": False, "id": None, "message": "User already exists"}

    if IS_DEV:
        print(f"[USERS] Created user_id={user_id}, role={role}")
    return {"inserted": True, "id": user_id, "message": "User created"}


def get_user(store: Store, email: str) -> Optional[Dict[str, Any]]:
    return store.users.find_one({"email": normalize_email(email)})


def get_role(store: Store, email: str) -> str:
    user = get_user(store, email)
    return (user or {}).get("role") or "guest"


def update_profile(store: Store, email: str, changes: Dict[str, Any]) -> int:
    """Apply profile changes; unknown or None fields are ignored. Returns modified count."""
    updates = {k: v for k, v in changes.items() if k in PROFILE_FIELDS and v is not None}
    if not updates:
        return 0
    return store.users.update_one({"email": normalize_email(email)}, set=updates)


def adjust_current_employees(store: Store, hr_email: str, delta: int) -> None:
    """Keep the HR's roster counter in step with active affiliations."""
    store.users.update_one({"email": hr_email, "current_employees": None}, set={"current_employees": 0})
    store.users.update_one({"email": hr_email}, inc={"current_employees": delta})
