"""
gearguard/test_returns.py

Tests for the return workflow and the employee's holdings list.

Run:
    pytest gearguard/test_returns.py -v
"""

import pytest

from gearguard import workflow
from gearguard.errors import Conflict, Forbidden, NotFound
from gearguard.returns import list_my_assets, return_asset


@pytest.fixture
def holding(database, seed_user, seed_asset):
    """emp@acme.com holds one Laptop from hr@acme.com (stock 3 -> 2)."""
    seed_user("hr@acme.com", role="Hr", company_name="Acme")
    employee = seed_user("emp@acme.com", role="Employee")
    seed_user("other@acme.com", role="Employee")
    asset_id = seed_asset("hr@acme.com", name="Laptop", quantity=3)

    with database.session() as s:
        request_id = workflow.submit_request(s, employee, asset_id).inserted_id
        workflow.approve_request(s, "hr@acme.com", request_id)
        assigned_id = s.assigned_assets.find_one({"employee_email": "emp@acme.com"})["id"]
    return {"asset_id": asset_id, "assigned_id": assigned_id}


def _available(database, asset_id):
    with database.session() as s:
        return s.assets.find_one({"id": asset_id})["available_quantity"]


class TestReturnAsset:
    def test_return_restores_one_unit(self, database, holding):
        assert _available(database, holding["asset_id"]) == 2

        with database.session() as s:
            return_asset(s, "emp@acme.com", holding["assigned_id"])

        assert _available(database, holding["asset_id"]) == 3
        with database.session() as s:
            row = s.assigned_assets.find_one({"id": holding["assigned_id"]})
        assert row["status"] == "returned"
        assert row["return_date"]

    def test_second_return_is_conflict_and_stock_unchanged(self, database, holding):
        with database.session() as s:
            return_asset(s, "emp@acme.com", holding["assigned_id"])
        with pytest.raises(Conflict):
            with database.session() as s:
                return_asset(s, "emp@acme.com", holding["assigned_id"])
        assert _available(database, holding["asset_id"]) == 3

    def test_existence_checked_before_ownership(self, database, holding):
        with pytest.raises(NotFound):
            with database.session() as s:
                return_asset(s, "other@acme.com", 9999)
        with pytest.raises(Forbidden):
            with database.session() as s:
                return_asset(s, "other@acme.com", holding["assigned_id"])

    def test_my_assets_filters(self, database, holding):
        with database.session() as s:
            assert len(list_my_assets(s, "emp@acme.com")) == 1
            assert list_my_assets(s, "emp@acme.com", search="desk") == []
            assert len(list_my_assets(s, "emp@acme.com", product_type="Returnable")) == 1


class TestReturnRoutes:
    def test_return_then_conflict(self, client, holding, auth):
        url = f"/asset/return/{holding['assigned_id']}"
        first = client.patch(url, headers=auth("emp@acme.com"))
        assert first.status_code == 200

        again = client.patch(url, headers=auth("emp@acme.com"))
        assert again.status_code == 409
        assert again.json()["message"] == "Asset already returned"

        mine = client.get("/my-asset", headers=auth("emp@acme.com")).json()
        assert [row["status"] for row in mine["items"]] == ["returned"]

    def test_foreign_return_is_403(self, client, holding, auth):
        response = client.patch(f"/asset/return/{holding['assigned_id']}", headers=auth("other@acme.com"))
        assert response.status_code == 403
