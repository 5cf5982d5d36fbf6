"""
gearguard/test_directory.py

Tests for rosters, team lists and employee removal.

Scenario: HR h1 (company "Acme") has employee e1 holding two assigned rows.
Removing e1 returns both rows, restores stock for those assets only, and
drops e1 from the Acme team list.

Run:
    pytest gearguard/test_directory.py -v
"""

import pytest

from gearguard import directory, workflow
from gearguard.errors import Conflict, Forbidden, NotFound


@pytest.fixture
def acme(database, seed_user, seed_asset):
    seed_user("h1@acme.com", role="Hr", company_name="Acme", package_limit=5)
    e1 = seed_user("e1@acme.com", role="Employee", name="Eve", position="Engineer")
    e2 = seed_user("e2@acme.com", role="Employee", name="Sam")
    laptop = seed_asset("h1@acme.com", name="Laptop", quantity=2)
    phone = seed_asset("h1@acme.com", name="Phone", quantity=2)
    untouched = seed_asset("h1@acme.com", name="Desk", quantity=4, available_quantity=1)

    with database.session() as s:
        for employee, asset_id in ((e1, laptop), (e1, phone), (e2, laptop)):
            request_id = workflow.submit_request(s, employee, asset_id).inserted_id
            workflow.approve_request(s, "h1@acme.com", request_id)
        e1_affiliation = s.affiliations.find_one({"employee_email": "e1@acme.com"})["id"]

    return {"laptop": laptop, "phone": phone, "desk": untouched, "e1_affiliation": e1_affiliation}


def _quantities(database, *asset_ids):
    with database.session() as s:
        return [s.assets.find_one({"id": i})["available_quantity"] for i in asset_ids]


class TestRoster:
    def test_list_employees_counts_held_assets(self, database, acme):
        with database.session() as s:
            roster = {row["email"]: row for row in directory.list_employees(s, "h1@acme.com")}
        assert roster["e1@acme.com"]["assets_count"] == 2
        assert roster["e2@acme.com"]["assets_count"] == 1
        assert roster["e1@acme.com"]["company_name"] == "Acme"
        assert roster["e1@acme.com"]["photo"]

    def test_stats(self, database, acme):
        with database.session() as s:
            assert directory.employee_stats(s, "h1@acme.com") == {"used": 2, "limit": 5}

    def test_current_employees_follows_active_affiliations(self, database, acme):
        with database.session() as s:
            assert s.users.find_one({"email": "h1@acme.com"})["current_employees"] == 2
            directory.remove_employee(s, "h1@acme.com", acme["e1_affiliation"])
        with database.session() as s:
            assert s.users.find_one({"email": "h1@acme.com"})["current_employees"] == 1


class TestRemoveEmployee:
    def test_removal_returns_held_assets_only(self, database, acme):
        assert _quantities(database, acme["laptop"], acme["phone"], acme["desk"]) == [0, 1, 1]

        with database.session() as s:
            assert directory.remove_employee(s, "h1@acme.com", acme["e1_affiliation"]) == 2

        with database.session() as s:
            rows = s.assigned_assets.find({"employee_email": "e1@acme.com"})
            assert [r["status"] for r in rows] == ["returned", "returned"]
            assert s.affiliations.find_one({"id": acme["e1_affiliation"]})["status"] == "removed"
            assert s.assigned_assets.find_one({"employee_email": "e2@acme.com"})["status"] == "assigned"
            team = directory.list_team(s, "e2@acme.com", "Acme")

        assert "e1@acme.com" not in {m["email"] for m in team}
        assert _quantities(database, acme["laptop"], acme["phone"], acme["desk"]) == [1, 2, 1]

    def test_removed_twice_is_conflict(self, database, acme):
        with database.session() as s:
            directory.remove_employee(s, "h1@acme.com", acme["e1_affiliation"])
        with pytest.raises(Conflict):
            with database.session() as s:
                directory.remove_employee(s, "h1@acme.com", acme["e1_affiliation"])

    def test_other_hr_and_missing(self, database, acme, seed_user):
        seed_user("h2@globex.com", role="Hr")
        with pytest.raises(Forbidden):
            with database.session() as s:
                directory.remove_employee(s, "h2@globex.com", acme["e1_affiliation"])
        with pytest.raises(NotFound):
            with database.session() as s:
                directory.remove_employee(s, "h1@acme.com", 9999)


class TestTeam:
    def test_team_spans_hrs_sharing_a_company_name(self, database, acme, seed_user, seed_asset):
        seed_user("h2@acme.com", role="Hr", company_name="Acme")
        e3 = seed_user("e3@acme.com", role="Employee")
        asset_id = seed_asset("h2@acme.com", name="Badge", quantity=1, company_name="Acme")
        with database.session() as s:
            request_id = workflow.submit_request(s, e3, asset_id).inserted_id
            workflow.approve_request(s, "h2@acme.com", request_id)

        with database.session() as s:
            team = directory.list_team(s, "e1@acme.com")
            companies = directory.list_team_companies(s, "e1@acme.com")

        assert companies == ["Acme"]
        assert {m["email"] for m in team} == {"e1@acme.com", "e2@acme.com", "e3@acme.com"}
        eve = next(m for m in team if m["email"] == "e1@acme.com")
        assert eve["position"] == "Engineer"

    def test_unknown_company_or_caller_is_empty(self, database, acme):
        with database.session() as s:
            assert directory.list_team(s, "e1@acme.com", "Globex") == []
            assert directory.list_team(s, "ghost@acme.com") == []


class TestDirectoryRoutes:
    def test_remove_via_http(self, client, acme, auth):
        response = client.patch(f"/employees/remove/{acme['e1_affiliation']}", headers=auth("h1@acme.com"))
        assert response.status_code == 200
        assert response.json()["returned_count"] == 2

        roster = client.get("/employees", headers=auth("h1@acme.com")).json()
        assert [row["email"] for row in roster] == ["e2@acme.com"]
        stats = client.get("/employees/stats", headers=auth("h1@acme.com")).json()
        assert stats == {"used": 1, "limit": 5}

    def test_team_routes(self, client, acme, auth):
        assert client.get("/myTeam/companies", headers=auth("e1@acme.com")).json() == ["Acme"]
        team = client.get("/myTeam/list", params={"company_name": "Acme"}, headers=auth("e1@acme.com")).json()
        assert len(team) == 2
