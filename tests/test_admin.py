"""
Tests for moderation, diagnostics, profile restore and the dashboard
"""

import uuid

import pytest

from magaza.config import settings

AUTOMATION_ID = str(uuid.UUID("0b6d9f4c-2c4e-4a8e-9d0a-1f2e3d4c5b6a"))


@pytest.fixture(autouse=True)
def admin_emails(monkeypatch):
    monkeypatch.setattr(settings, "admin_emails", "admin@example.com")


class TestAccess:
    """Admin by profile role or configured e-mail"""

    def test_regular_user_forbidden(self, client, login_as):
        login_as(role="user")
        response = client.get("/api/v1/admin/automations/pending")
        assert response.status_code == 403
        assert response.json()["detail"] == "Bu işlem için admin yetkisi gerekiyor."

    def test_admin_email_without_profile(self, client, login_as):
        login_as(email="ADMIN@example.com")
        assert client.get("/api/v1/admin/automations/pending").status_code == 200

    def test_check_status(self, client, login_as):
        login_as(email="user@example.com", role="user", is_admin=False)
        body = client.get("/api/v1/admin/check-status").json()
        assert body["authenticated"] is True
        assert body["admin_check"] == {
            "is_admin_email": False,
            "profile_role": "user",
            "profile_is_admin": False,
            "final_is_admin": False,
        }


class TestModeration:
    """Approving, rejecting and deleting automations"""

    def test_pending_list(self, client, db, admin_user):
        db.seed("automations", {"title": "Bekleyen", "admin_approved": False}, {"title": "Yayında", "admin_approved": True})
        titles = [a["title"] for a in client.get("/api/v1/admin/automations/pending").json()]
        assert titles == ["Bekleyen"]

    def test_approve_calls_rpc(self, client, db, admin_user):
        response = client.post(f"/api/v1/admin/automations/{AUTOMATION_ID}", json={"approved": True})
        assert response.json() == {"success": True}
        assert db.rpc_calls == [("approve_automation", {"automation_id": AUTOMATION_ID, "admin_id": admin_user["id"]})]

    def test_reject_calls_rpc(self, client, db, admin_user):
        client.post(f"/api/v1/admin/automations/{AUTOMATION_ID}", json={"approved": False})
        assert db.rpc_calls[0][0] == "reject_automation"

    @pytest.mark.parametrize("automation_id", ["undefined", "not-a-uuid"])
    def test_invalid_automation_id(self, client, db, admin_user, automation_id):
        response = client.post(f"/api/v1/admin/automations/{automation_id}", json={"approved": True})
        assert response.status_code == 400
        assert db.rpc_calls == []

    @pytest.mark.parametrize("body", [{"approved": "yes"}, {"approved": 1}, {"approved": None}, {}])
    def test_approved_must_be_bool(self, client, db, admin_user, body):
        response = client.post(f"/api/v1/admin/automations/{AUTOMATION_ID}", json=body)
        assert response.status_code == 422
        assert db.rpc_calls == []

    def test_developer_approval_must_be_bool(self, client, db, admin_user):
        db.seed("user_profiles", {"id": "dev-1", "is_developer": True, "developer_approved": False})
        response = client.post("/api/v1/admin/developers/dev-1/approve", json={"approved": "true"})
        assert response.status_code == 422
        assert [p for p in db.rows("user_profiles") if p["id"] == "dev-1"][0]["developer_approved"] is False

    def test_rpc_failure(self, client, db, admin_user, monkeypatch):
        monkeypatch.setattr(settings, "environment", "production")
        db.failures[("rpc", "approve_automation")] = Exception("permission denied for function")
        response = client.post(f"/api/v1/admin/automations/{AUTOMATION_ID}", json={"approved": True})
        assert response.status_code == 400
        assert response.json()["detail"].startswith("Automation update: ")

    def test_delete(self, client, db, admin_user):
        db.seed("automations", {"id": AUTOMATION_ID, "title": "Silinecek"})
        assert client.delete(f"/api/v1/admin/automations/{AUTOMATION_ID}").json() == {"success": True}
        assert db.rows("automations") == []

    def test_developer_approval(self, client, db, admin_user):
        db.seed("user_profiles", {"id": "dev-1", "is_developer": True, "developer_approved": False})
        response = client.post("/api/v1/admin/developers/dev-1/approve", json={"approved": True})
        assert response.json() == {"success": True, "developer_approved": True}
        assert [p for p in db.rows("user_profiles") if p["id"] == "dev-1"][0]["developer_approved"] is True

    def test_developer_approval_unknown_user(self, client, admin_user):
        response = client.post("/api/v1/admin/developers/nobody/approve", json={"approved": True})
        assert response.status_code == 404


class TestRestoreUser:
    """Recreating a lost profile for an existing auth user"""

    def test_creates_missing_profile(self, client, db, admin_user):
        user = db.auth.add_user("kayip@example.com")
        db.seed("automations", {"developer_id": user.id, "title": "Eski Ürün", "created_at": "2024-01-01"})
        body = client.post("/api/v1/admin/restore-user", json={"email": "Kayip@Example.com"}).json()
        assert body["success"] is True
        assert body["profile"]["username"] == "kayip"
        assert body["profile"]["role"] == "admin"
        assert body["automations"]["total"] == 1

    def test_updates_existing_profile(self, client, db, admin_user):
        user = db.auth.add_user("eski@example.com")
        db.seed("user_profiles", {"id": user.id, "username": "eski", "role": "user"})
        body = client.post("/api/v1/admin/restore-user", json={"email": "eski@example.com"}).json()
        assert body["profile"]["username"] == "eski"
        assert body["profile"]["is_developer"] is True

    def test_unknown_auth_user(self, client, admin_user):
        response = client.post("/api/v1/admin/restore-user", json={"email": "yok@example.com"})
        assert response.status_code == 404


class TestDashboard:
    """Platform totals"""

    def test_dashboard_totals(self, client, db, admin_user):
        db.seed(
            "user_profiles",
            {"is_developer": True, "developer_approved": True},
            {"is_developer": True, "developer_approved": False},
        )
        db.seed("automations", {"admin_approved": True}, {"admin_approved": False})
        db.seed(
            "purchases",
            {"price": 100, "platform_commission": 15, "status": "completed", "completed_at": "2024-05-01"},
            {"price": 19.99, "platform_commission": 3, "status": "completed", "completed_at": "2024-05-02"},
            {"price": 50, "status": "pending"},
        )
        db.seed("platform_earnings", {"amount": 15}, {"amount": 3})

        body = client.get("/api/v1/admin/dashboard").json()
        assert body["users"] == 3
        assert body["developers"] == 2
        assert body["pending_developers"] == 1
        assert body["automations"] == 2
        assert body["pending_automations"] == 1
        assert body["completed_purchases"] == 2
        assert body["revenue"] == 119.99
        assert body["platform_earnings"] == 18.0
        assert body["recent_purchases"][0]["completed_at"] == "2024-05-02"

    def test_revenue_counts_every_page(self, client, db, admin_user):
        db.max_rows = 2
        db.seed("purchases", *[
            {"price": 10, "status": "completed", "completed_at": f"2024-05-0{day}"} for day in range(1, 6)
        ])
        db.seed("platform_earnings", *[{"amount": 1.5} for _ in range(3)])

        body = client.get("/api/v1/admin/dashboard").json()
        assert body["completed_purchases"] == 5
        assert body["revenue"] == 50.0
        assert body["platform_earnings"] == 4.5
        assert body["recent_purchases"][0]["completed_at"] == "2024-05-05"
