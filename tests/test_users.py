"""
Tests for profile management, purchases and favorites
"""

import pytest

from magaza.config import settings


@pytest.fixture
def profile_user(login_as):
    return login_as(user_id="user-1", email="ali@example.com", username="alikaya", full_name="Ali Kaya")


class TestProfile:
    """Own profile and public cards"""

    def test_get_my_profile(self, client, profile_user):
        body = client.get("/api/v1/users/me/profile").json()
        assert body["username"] == "alikaya"
        assert body["is_developer"] is False

    def test_update_normalizes_phone(self, client, db, profile_user):
        response = client.put("/api/v1/users/me/profile", json={"phone": "0532 123 45 67", "bio": "Merhaba"})
        assert response.status_code == 200
        assert response.json()["phone"] == "5321234567"
        assert response.json()["bio"] == "Merhaba"

    def test_update_rejects_taken_username(self, client, db, profile_user):
        db.seed("user_profiles", {"id": "user-2", "username": "Veli"})
        response = client.put("/api/v1/users/me/profile", json={"username": "veli"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Bu kullanıcı adı zaten kullanılıyor."

    def test_underscore_username_next_to_similar_name(self, client, db, profile_user):
        db.seed("user_profiles", {"id": "user-2", "username": "velix1"})
        response = client.put("/api/v1/users/me/profile", json={"username": "veli_1"})
        assert response.status_code == 200
        assert response.json()["username"] == "veli_1"

    def test_keeping_own_username_is_allowed(self, client, profile_user):
        assert client.put("/api/v1/users/me/profile", json={"username": "AliKaya"}).status_code == 200

    def test_public_profile_masking(self, client, profile_user):
        assert client.get("/api/v1/users/user-1/public").json()["username"] == "alikaya"
        assert client.get("/api/v1/users/user-1/public", params={"masked": True}).json()["username"] == "ali***aya"

    def test_unknown_profile(self, client):
        assert client.get("/api/v1/users/nobody/public").status_code == 404


class TestAccountDeletion:
    """Profile row first, then the auth user"""

    def test_with_service_role(self, client, db, profile_user, monkeypatch):
        monkeypatch.setattr(settings, "supabase_service_role_key", "service-key")
        db.auth.users["user-1"] = object()
        body = client.delete("/api/v1/users/me").json()
        assert body == {"message": "Hesabınız başarıyla silindi.", "success": True, "requires_sign_out": False}
        assert db.rows("user_profiles") == []
        assert "user-1" not in db.auth.users

    def test_without_service_role(self, client, db, profile_user, monkeypatch):
        monkeypatch.setattr(settings, "supabase_service_role_key", None)
        body = client.delete("/api/v1/users/me").json()
        assert body["requires_sign_out"] is True
        assert body["success"] is False
        assert db.rows("user_profiles") == []


class TestPurchasesAndFavorites:
    """Library and wishlist"""

    def test_only_completed_purchases(self, client, db, profile_user):
        db.seed(
            "purchases",
            {"user_id": "user-1", "automation_id": "a1", "status": "completed", "price": 100,
             "purchased_at": "2024-05-01T10:00:00+00:00", "automation": {"id": "a1", "title": "Stok"}},
            {"user_id": "user-1", "automation_id": "a2", "status": "pending", "price": 50},
            {"user_id": "user-2", "automation_id": "a1", "status": "completed", "price": 100},
        )
        body = client.get("/api/v1/users/me/purchases").json()
        assert [p["automation_id"] for p in body] == ["a1"]
        assert body[0]["automation"]["title"] == "Stok"

    def test_favorite_lifecycle(self, client, db, profile_user):
        db.seed("automations", {"id": "a1", "title": "Stok"})
        url = "/api/v1/users/me/favorites/a1"

        assert client.get(url).json()["favorited"] is False
        assert client.post(url).status_code == 201
        assert client.post(url).json()["favorited"] is True
        assert len(db.rows("favorites")) == 1
        assert client.get(url).json()["favorited"] is True

        assert client.delete(url).status_code == 204
        assert client.get(url).json()["favorited"] is False

    def test_favorite_unknown_automation(self, client, profile_user):
        assert client.post("/api/v1/users/me/favorites/nope").status_code == 404
