"""
gearguard/directory.py

Affiliation / team directory.

Rosters are built from active affiliations joined with user profiles. Team
visibility is by shared company name: an employee sees every active member of
any company they are affiliated with, regardless of which HR account created
the affiliation.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, Dict, List, Optional

from gearguard.config import DEFAULT_USER_PHOTO, IS_DEV
from gearguard.db import Store
from gearguard.errors import Conflict, Forbidden, NotFound
from gearguard.models import AffiliationStatus, AssignmentStatus, now_iso
from gearguard.users import adjust_current_employees

ACTIVE = AffiliationStatus.active.value


def _users_by_email(store: Store, emails: List[str]) -> Dict[str, Dict[str, Any]]:
    if not emails:
        return {}
    return {user["email"]: user for user in store.users.find({"email__in": sorted(set(emails))})}


def list_employees(store: Store, hr_email: str) -> List[Dict[str, Any]]:
    """
    Active roster for an HR, newest affiliation first.

    assets_count counts the employee's assets currently assigned by this HR.
    """
    affiliations = store.affiliations.find(
        {"hr_email": hr_email, "status": ACTIVE},
        sort=[("affiliation_date", -1)],
    )
    emails = [a["employee_email"] for a in affiliations]
    users = _users_by_email(store, emails)

    held = store.assigned_assets.find({
        "hr_email": hr_email,
        "employee_email__in": emails,
        "status": AssignmentStatus.assigned.value,
    })
    counts = Counter(row["employee_email"] for row in held)

    roster = []
    for aff in affiliations:
        user = users.get(aff["employee_email"], {})
        roster.append({
            "id": aff["id"],
            "name": aff.get("employee_name") or user.get("name"),
            "email": aff["employee_email"],
            "photo": user.get("image") or DEFAULT_USER_PHOTO,
            "join_date": aff["affiliation_date"],
            "assets_count": counts.get(aff["employee_email"], 0),
            "company_name": aff.get("company_name"),
        })
    return roster


def employee_stats(store: Store, hr_email: str) -> Dict[str, int]:
    """Seats used (active affiliations) against the HR's package limit."""
    hr = store.users.find_one({"email": hr_email}) or {}
    used = store.affiliations.count({"hr_email": hr_email, "status": ACTIVE})
    return {"used": used, "limit": hr.get("package_limit") or 0}


def remove_employee(store: Store, hr_email: str, affiliation_id: int) -> int:
    """
    End an employee's affiliation with the HR.

    Every asset the employee still holds from this HR is marked returned, and
    each of those assets gets one unit of stock back. Assets the employee
    never held are untouched.

    Returns:
        Number of assignments returned

    Raises:
        NotFound: no such affiliation
        Forbidden: affiliation belongs to another HR
        Conflict: already removed
    """
    affiliation = store.affiliations.find_one({"id": affiliation_id})
    if not affiliation:
        raise NotFound("Employee not found")
    if affiliation["hr_email"] != hr_email:
        print(f"[SECURITY] Employee removal denied: affiliation_id={affiliation_id}")
        raise Forbidden("Forbidden access")
    if affiliation["status"] != ACTIVE:
        raise Conflict("Employee already removed")

    now = now_iso()
    store.affiliations.update_one(
        {"id": affiliation_id},
        set={"status": AffiliationStatus.removed.value, "removed_date": now},
    )
    adjust_current_employees(store, hr_email, -1)

    held_filter = {
        "employee_email": affiliation["employee_email"],
        "hr_email": hr_email,
        "status": AssignmentStatus.assigned.value,
    }
    held = store.assigned_assets.find(held_filter)
    store.assigned_assets.update_many(
        {"id__in": [row["id"] for row in held]},
        set={"status": AssignmentStatus.returned.value, "return_date": now},
    )

    # One unit back per returned assignment; an employee may hold several units of one asset
    for asset_id, units in Counter(row["asset_id"] for row in held).items():
        store.assets.update_one({"id": asset_id}, inc={"available_quantity": units})

    if IS_DEV:
        print(f"[DIRECTORY] Removed affiliation_id={affiliation_id}, returned={len(held)}")
    return len(held)


def list_team_companies(store: Store, employee_email: str) -> List[str]:
    """Distinct company names the employee is actively affiliated with."""
    return [
        name for name in store.affiliations.distinct(
            "company_name", {"employee_email": employee_email, "status": ACTIVE}
        )
        if name
    ]


def list_team(
    store: Store,
    employee_email: str,
    company_name: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    Active members of every company the employee belongs to.

    company_name narrows the list to one of those companies; naming a company
    the employee is not part of yields an empty list.
    """
    if not store.users.find_one({"email": employee_email}):
        return []

    companies = list_team_companies(store, employee_email)
    if company_name:
        companies = [c for c in companies if c == company_name]
    if not companies:
        return []

    members = store.affiliations.find(
        {"company_name__in": companies, "status": ACTIVE},
        sort=[("affiliation_date", 1)],
    )
    users = _users_by_email(store, [m["employee_email"] for m in members])

    team = []
    for member in members:
        user = users.get(member["employee_email"], {})
        team.append({
            "id": member["id"],
            "name": user.get("name") or member.get("employee_name"),
            "email": member["employee_email"],
            "photo": user.get("image") or DEFAULT_USER_PHOTO,
            "position": user.get("position") or "Employee",
            "dob": user.get("dob"),
            "join_date": member["affiliation_date"],
            "company_name": member.get("company_name"),
        })
    return team
