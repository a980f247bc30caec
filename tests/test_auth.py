"""
Tests for registration, login, the auth callback and profile helpers
"""

from types import SimpleNamespace
from urllib.parse import parse_qs, urlparse

import pytest

from magaza.config import settings
from magaza.modules.auth.service import AuthService, INVALID_RECOVERY_PATH, RESET_PASSWORD_PATH
from magaza.modules.auth.usernames import build_username_candidates, pick_available_username
from tests.conftest import make_user

VALID_CODE = "auth-code-1234567890"


@pytest.fixture
def configured(monkeypatch):
    monkeypatch.setattr(settings, "supabase_url", "https://project.supabase.co")
    monkeypatch.setattr(settings, "supabase_key", "anon-key")
    monkeypatch.setattr(settings, "admin_emails", "admin@example.com")


@pytest.fixture
def auth_service(db):
    return AuthService(db, db, db)


def signin_message(path: str) -> str:
    parsed = urlparse(path)
    assert parsed.path == "/auth/signin"
    query = parse_qs(parsed.query)
    assert query["error"] == ["oauth_failed"]
    return query["message"][0]


class TestRegisterAndLogin:
    """Password registration and sign in"""

    def test_register_creates_profile(self, client, db):
        response = client.post("/api/v1/auth/register", json={
            "email": " Yeni@Example.com ",
            "password": "Guclu.Sifre1",
            "username": "yeni_kullanici",
            "phone": "0532 123 45 67",
        })
        assert response.status_code == 201
        body = response.json()
        assert body["email"] == "yeni@example.com"
        profile = db.rows("user_profiles")[0]
        assert profile["id"] == body["user_id"]
        assert profile["username"] == "yeni_kullanici"
        assert profile["phone"] == "5321234567"

    def test_register_rejects_taken_username(self, client, db):
        db.seed("user_profiles", {"username": "Alinin"})
        response = client.post("/api/v1/auth/register", json={
            "email": "ali@example.com", "password": "Guclu.Sifre1", "username": "alinin",
        })
        assert response.status_code == 400
        assert "zaten kullanılıyor" in response.json()["detail"]

    def test_register_rejects_weak_password(self, client, db):
        response = client.post("/api/v1/auth/register", json={
            "email": "ali@example.com", "password": "zayif", "username": "alinin",
        })
        assert response.status_code == 400
        assert db.rows("user_profiles") == []

    def test_login_returns_tokens(self, client, db):
        user = db.auth.add_user("ali@example.com")
        response = client.post("/api/v1/auth/login", json={"email": "ALI@example.com", "password": "Dogru.Sifre1"})
        assert response.status_code == 200
        assert response.json()["access_token"] == f"token-{user.id}"

    def test_login_with_wrong_password(self, client, db):
        db.auth.add_user("ali@example.com")
        response = client.post("/api/v1/auth/login", json={"email": "ali@example.com", "password": "yanlis"})
        assert response.status_code == 400
        assert response.json()["detail"] == "E-posta veya şifre hatalı. Lütfen bilgilerinizi kontrol edin."

    def test_me_with_bearer_token(self, client, db):
        user = db.auth.add_user("ali@example.com", token="valid-token")
        db.seed("user_profiles", {"id": user.id, "username": "ali"})
        response = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer valid-token"})
        assert response.status_code == 200
        body = response.json()
        assert body["user"]["id"] == user.id
        assert body["profile"]["username"] == "ali"
        assert body["is_admin"] is False

    def test_me_with_invalid_token(self, client):
        response = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_logout_drops_cached_user(self, client, db):
        db.auth.add_user("ali@example.com", token="valid-token")
        headers = {"Authorization": "Bearer valid-token"}
        assert client.get("/api/v1/auth/me", headers=headers).status_code == 200

        db.auth.tokens.pop("valid-token")
        assert client.post("/api/v1/auth/logout", headers=headers).status_code == 200
        assert db.auth.signed_out == ["valid-token"]
        assert client.get("/api/v1/auth/me", headers=headers).status_code == 401


class TestAvailability:
    """E-mail and username availability checks"""

    def test_username_taken_case_insensitive(self, client, db):
        db.seed("user_profiles", {"username": "Ali_Veli"})
        response = client.get("/api/v1/auth/check-username", params={"username": "ali_veli"})
        assert response.json()["available"] is False

    def test_underscore_is_not_a_wildcard(self, client, db):
        db.seed("user_profiles", {"username": "alix1"})
        response = client.get("/api/v1/auth/check-username", params={"username": "ali_1"})
        assert response.json()["available"] is True

    def test_register_with_underscore_next_to_similar_name(self, client, db):
        db.seed("user_profiles", {"username": "alix1"})
        response = client.post("/api/v1/auth/register", json={
            "email": "ali@example.com", "password": "Guclu.Sifre1", "username": "ali_1",
        })
        assert response.status_code == 201

    def test_username_bad_format(self, client):
        response = client.get("/api/v1/auth/check-username", params={"username": "ali veli"})
        assert response.status_code == 400

    def test_email_registered(self, client, db):
        db.auth.add_user("kayitli@example.com")
        response = client.post("/api/v1/auth/check-email", json={"email": "Kayitli@Example.com"})
        assert response.json() == {
            "available": False,
            "email": "kayitli@example.com",
            "message": "Bu e-posta adresi zaten kayıtlı.",
        }

    def test_oauth_url(self, client):
        response = client.get("/api/v1/auth/oauth/google")
        assert response.status_code == 200
        assert "provider=google" in response.json()["url"]

    def test_oauth_unknown_provider(self, client):
        assert client.get("/api/v1/auth/oauth/facebook").status_code == 400


class TestCallback:
    """Redirect decisions after OAuth, e-mail confirmation and recovery links"""

    def test_provider_error(self, auth_service, configured):
        path = auth_service.handle_callback(None, None, "access_denied", "Kullanıcı iptal etti")
        assert signin_message(path) == "Kullanıcı iptal etti"

    def test_missing_configuration(self, auth_service, monkeypatch):
        monkeypatch.setattr(settings, "supabase_url", "")
        path = auth_service.handle_callback(VALID_CODE, None, None, None)
        assert "yapılandırma" in signin_message(path)

    def test_short_code(self, auth_service, configured):
        path = auth_service.handle_callback("abc", None, None, None)
        assert signin_message(path) == "Geçersiz giriş kodu. Lütfen tekrar deneyin."

    def test_recovery_success(self, auth_service, db, configured):
        db.auth.add_session(VALID_CODE, SimpleNamespace(user=make_user(email="ali@example.com")))
        assert auth_service.handle_callback(
            VALID_CODE, "recovery", None, None, code_verifier="verifier-1"
        ) == RESET_PASSWORD_PATH

    def test_recovery_with_expired_code(self, auth_service, configured):
        assert auth_service.handle_callback(VALID_CODE, "recovery", None, None) == INVALID_RECOVERY_PATH

    def test_expired_signup_link(self, auth_service, configured):
        path = auth_service.handle_callback(VALID_CODE, "signup", None, None)
        assert "doğrulama bağlantısı geçersiz" in signin_message(path)

    def test_first_login_creates_profile(self, auth_service, db, configured):
        user = make_user(email="yeni@example.com", user_metadata={"full_name": "Ayşe Yılmaz"})
        db.auth.add_session(VALID_CODE, SimpleNamespace(user=user))
        assert auth_service.handle_callback(VALID_CODE, None, None, None, code_verifier="verifier-1") == "/dashboard"
        profile = db.rows("user_profiles")[0]
        assert profile["id"] == user.id
        assert profile["full_name"] == "Ayşe Yılmaz"
        assert profile["is_developer"] is False

    def test_admin_email_goes_to_admin_dashboard(self, auth_service, db, configured):
        user = make_user(email="admin@example.com")
        db.auth.add_session(VALID_CODE, SimpleNamespace(user=user))
        path = auth_service.handle_callback(VALID_CODE, None, None, None, code_verifier="verifier-1")
        assert path == "/admin/dashboard"
        profile = db.rows("user_profiles")[0]
        assert profile["role"] == "admin"
        assert profile["is_admin"] is True

    def test_oauth_redirect_is_honoured(self, auth_service, db, configured):
        user = make_user(email="ali@example.com", app_metadata={"provider": "github"})
        db.auth.add_session(VALID_CODE, SimpleNamespace(user=user))
        path = auth_service.handle_callback(
            VALID_CODE, None, None, None, redirect="/automations/ornek", code_verifier="verifier-1",
        )
        assert path == "/automations/ornek"

    def test_callback_route_redirects_to_site(self, client, configured):
        response = client.get("/api/v1/auth/callback", params={"code": "abc"}, follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["location"].startswith("http://localhost:3000/auth/signin?")

    def test_oauth_start_sets_verifier_cookie(self, client):
        response = client.get("/api/v1/auth/oauth/github")
        set_cookie = response.headers["set-cookie"]
        assert set_cookie.startswith("sb-code-verifier=verifier-")
        assert "HttpOnly" in set_cookie
        assert "samesite=lax" in set_cookie.lower()

    def test_oauth_round_trip_uses_cookie(self, client, db, configured):
        start = client.get("/api/v1/auth/oauth/google")
        verifier = start.cookies["sb-code-verifier"]
        user = make_user(email="ali@example.com", app_metadata={"provider": "google"})
        db.auth.add_session(VALID_CODE, SimpleNamespace(user=user), verifier)
        # the callback request gets a fresh client with empty storage
        db.options.storage.items.clear()

        response = client.get("/api/v1/auth/callback", params={"code": VALID_CODE}, follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["location"] == "http://localhost:3000/dashboard"
        set_cookie = response.headers["set-cookie"]
        assert set_cookie.startswith("sb-code-verifier=")
        assert "Max-Age=0" in set_cookie
        assert db.rows("user_profiles")[0]["id"] == user.id

    def test_callback_without_verifier_cookie(self, client, db, configured):
        db.auth.add_session(VALID_CODE, SimpleNamespace(user=make_user(email="ali@example.com")))
        response = client.get("/api/v1/auth/callback", params={"code": VALID_CODE}, follow_redirects=False)
        assert response.status_code == 302
        assert "geçersiz veya süresi dolmuş" in signin_message(response.headers["location"])
        assert db.rows("user_profiles") == []

    def test_register_and_password_reset_set_verifier_cookie(self, client):
        response = client.post("/api/v1/auth/register", json={
            "email": "ali@example.com", "password": "Guclu.Sifre1", "username": "ali_veli",
        })
        assert response.status_code == 201
        assert response.cookies["sb-code-verifier"].startswith("verifier-")

        response = client.post("/api/v1/auth/password/reset", json={"email": "ali@example.com"})
        assert response.status_code == 200
        assert response.cookies["sb-code-verifier"].startswith("verifier-")


class TestUsernames:
    """Generated usernames for profiles created from auth metadata"""

    def test_candidates_from_metadata_and_email(self):
        candidates = build_username_candidates("ali.veli@example.com", {"full_name": "Ali Veli"})
        assert candidates[:2] == ["aliv", "ali"]
        assert "ali-veli" in candidates
        assert candidates[-1].startswith("kullanici")

    def test_skips_taken_username(self, db):
        db.seed("user_profiles", {"username": "ali"})
        assert pick_available_username(db, ["ali", "ali2"]) == "ali2"
