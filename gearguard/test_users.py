"""
gearguard/test_users.py

Tests for signup, role lookup and owner-only profile endpoints.

Run:
    pytest gearguard/test_users.py -v
"""

from gearguard.users import create_user, role_defaults


class TestSignup:
    def test_hr_defaults(self, store):
        result = create_user(store, {"email": "HR@Acme.com", "role": "Hr", "company_name": "Acme"})
        assert result["inserted"]
        user = store.users.find_one({"email": "hr@acme.com"})
        assert user["package_limit"] == 5
        assert user["current_employees"] == 0
        assert user["subscription"] == "basic"

    def test_employee_defaults(self):
        assert role_defaults("Employee") == {"status": "pending", "position": "not assigned"}

    def test_signup_twice_is_not_an_error(self, client):
        body = {"email": "emp@acme.com", "role": "Employee", "name": "Erin"}
        first = client.post("/users", json=body)
        again = client.post("/users", json=body)
        assert first.json()["inserted"] is True
        assert again.status_code == 200
        assert again.json() == {"inserted": False, "id": None, "message": "User already exists"}

    def test_invalid_role_is_rejected(self, client):
        response = client.post("/users", json={"email": "x@acme.com", "role": "Admin"})
        assert response.status_code == 422


class TestProfile:
    def test_role_lookup_is_owner_only(self, client, seed_user, auth):
        seed_user("hr@acme.com", role="Hr")
        seed_user("emp@acme.com", role="Employee")

        assert client.get("/users/role/hr@acme.com", headers=auth("hr@acme.com")).json() == {"role": "Hr"}
        assert client.get("/users/role/hr@acme.com", headers=auth("emp@acme.com")).status_code == 403
        assert client.get("/users/role/new@acme.com", headers=auth("new@acme.com")).json() == {"role": "guest"}

    def test_get_profile(self, client, seed_user, auth):
        seed_user("emp@acme.com", role="Employee", name="Erin")
        profile = client.get("/user/emp@acme.com", headers=auth("emp@acme.com")).json()
        assert profile["name"] == "Erin"
        assert client.get("/user/new@acme.com", headers=auth("new@acme.com")).json() == {}

    def test_update_profile(self, client, seed_user, auth):
        seed_user("emp@acme.com", role="Employee", name="Erin")
        response = client.patch(
            "/user/update/emp@acme.com",
            json={"name": "  Erin B  ", "dob": "1990-04-01"},
            headers=auth("emp@acme.com"),
        )
        assert response.json() == {"success": True, "modified_count": 1}

        profile = client.get("/user/emp@acme.com", headers=auth("emp@acme.com")).json()
        assert profile["name"] == "Erin B"
        assert profile["dob"] == "1990-04-01"

    def test_update_other_profile_is_403(self, client, seed_user, auth):
        seed_user("emp@acme.com", role="Employee")
        seed_user("other@acme.com", role="Employee")
        response = client.patch(
            "/user/update/emp@acme.com",
            json={"name": "Mallory"},
            headers=auth("other@acme.com"),
        )
        assert response.status_code == 403
