"""
Test: Admin routes — accounts, archiving, password resets, suggestions, audit logs.
"""
from sage.seed import DEMO_PASSWORD


class TestAdminUsers:
    def test_list_users_admin_only(self, client, admin_headers, teacher_headers):
        data = client.get("/api/admin/users", headers=admin_headers).get_json()
        assert {u["username"] for u in data} >= {"teacher", "student", "admin"}
        assert all("passwordHash" not in u for u in data)
        assert client.get("/api/admin/users", headers=teacher_headers).status_code == 403

    def test_filter_by_role(self, client, admin_headers):
        data = client.get("/api/admin/users?role=teacher", headers=admin_headers).get_json()
        assert [u["username"] for u in data] == ["teacher"]

    def test_create_admin(self, client, admin_headers, emailer):
        resp = client.post("/api/admin/users", headers=admin_headers, json={
            "firstName": "Ida", "lastName": "Hall", "email": "ida.hall@district.org",
            "password": "secret123", "role": "admin",
        })
        assert resp.status_code == 201
        assert resp.get_json()["user"]["role"] == "admin"
        assert resp.get_json()["emailSent"] is True
        assert emailer.sent[-1]["to"] == "ida.hall@district.org"

    def test_archive_and_reactivate(self, client, admin_headers, demo, login_as):
        url = f"/api/admin/users/{demo['maria']['id']}"
        assert client.post(f"{url}/archive", headers=admin_headers).status_code == 200
        archived = client.get("/api/admin/archived-users", headers=admin_headers).get_json()
        assert [u["username"] for u in archived] == ["maria.gonzalez"]
        assert archived[0]["archivedAt"]
        resp = client.post("/api/auth/login", json={"username": "maria.gonzalez", "password": DEMO_PASSWORD})
        assert resp.status_code == 403

        assert client.post(f"{url}/reactivate", headers=admin_headers).status_code == 200
        login_as("maria.gonzalez")

    def test_cannot_act_on_self(self, client, admin_headers, demo):
        resp = client.post(f"/api/admin/users/{demo['admin']['id']}/archive", headers=admin_headers)
        assert resp.status_code == 400

    def test_delete(self, client, admin_headers, storage, demo):
        resp = client.delete(f"/api/admin/users/{demo['alex']['id']}", headers=admin_headers)
        assert resp.status_code == 200
        assert storage.get_user(demo["alex"]["id"]) is None
        assert client.delete("/api/admin/users/999", headers=admin_headers).status_code == 404

    def test_reset_password(self, client, admin_headers, demo, login_as):
        resp = client.post(f"/api/admin/users/{demo['student']['id']}/reset-password", headers=admin_headers)
        temporary = resp.get_json()["temporaryPassword"]
        assert len(temporary) >= 6
        login_as("student", temporary)

    def test_reset_password_explicit(self, client, admin_headers, demo, login_as):
        client.post(f"/api/admin/users/{demo['student']['id']}/reset-password", headers=admin_headers,
                    json={"newPassword": "chosen-pass"})
        login_as("student", "chosen-pass")

    def test_username_suggestions(self, client, admin_headers):
        resp = client.post("/api/admin/username-suggestions", headers=admin_headers, json={
            "email": "sarah.johnson@school.edu", "firstName": "Sarah", "lastName": "Johnson", "role": "teacher",
        })
        suggestions = resp.get_json()["suggestions"]
        assert suggestions[0] == "sarah.johnson"
        assert len(suggestions) <= 5

    def test_username_suggestions_require_names(self, client, admin_headers):
        resp = client.post("/api/admin/username-suggestions", headers=admin_headers, json={"email": "a@b.c"})
        assert resp.status_code == 400

    def test_all_writing_sessions(self, client, admin_headers):
        data = client.get("/api/admin/writing-sessions", headers=admin_headers).get_json()
        assert [s["student"]["username"] for s in data] == ["student", "maria.gonzalez", "alex.chen"]

    def test_audit_logs(self, client, admin_headers):
        data = client.get("/api/admin/audit-logs?limit=5", headers=admin_headers).get_json()
        assert data["logs"][0]["action"] == "LOGIN"
        assert len(data["logs"]) <= 5
