"""
gearguard/authz.py

Authorization policy.

Single source of truth for who may call what. Pure Python logic - no FastAPI
imports, no database access. Routes declare a Requirement; evaluate() turns
(caller, requirement) into a Decision before any handler code runs.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, TYPE_CHECKING

from gearguard.errors import Forbidden
from gearguard.models import UserRole

if TYPE_CHECKING:
    from gearguard.auth_context import AuthContext


class Requirement(str, Enum):
    """Route requirements, checked after the token is verified."""
    AUTHENTICATED = "authenticated"
    HR = "hr"
    EMPLOYEE = "employee"


REQUIRED_ROLE = {
    Requirement.HR: UserRole.hr.value,
    Requirement.EMPLOYEE: UserRole.employee.value,
}


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(True)

    @classmethod
    def deny(cls, reason: str) -> "Decision":
        return cls(False, reason)


def role_matches(user: Optional[Dict[str, Any]], required_role: str) -> bool:
    """Case-insensitive role comparison; a missing user never matches."""
    if not user:
        return False
    return str(user.get("role") or "").lower() == required_role.lower()


def evaluate(ctx: "AuthContext", requirement: Requirement) -> Decision:
    """
    Decide whether an authenticated caller satisfies a route requirement.

    Example:
        evaluate(ctx, Requirement.HR) -> Decision(allowed=False, reason="Hr role required")
    """
    if requirement == Requirement.AUTHENTICATED:
        return Decision.allow()

    required_role = REQUIRED_ROLE[requirement]
    if ctx.user is None:
        return Decision.deny("User not registered")
    if not role_matches(ctx.user, required_role):
        return Decision.deny(f"{required_role} role required")
    return Decision.allow()


def authorize_owner(token_email: str, target_email: str) -> None:
    """
    Raises:
        Forbidden: the caller is acting on another user's record
    """
    if (token_email or "").strip().lower() != (target_email or "").strip().lower():
        raise Forbidden("Forbidden access")


def authorize_role(user: Optional[Dict[str, Any]], required_role: str) -> None:
    """
    Raises:
        Forbidden: the user is missing or holds a different role
    """
    if not role_matches(user, required_role):
        raise Forbidden("Forbidden access")
