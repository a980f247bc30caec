"""
Tests for notification preferences
"""

from magaza.modules.notifications.service import DEFAULT_NOTIFICATION_PREFS, sanitize_prefs

URL = "/api/v1/notification-preferences"


class CodedError(Exception):
    def __init__(self, message, code):
        super().__init__(message)
        self.code = code


class TestSanitize:
    """Only known boolean keys survive"""

    def test_defaults_for_non_dict(self):
        assert sanitize_prefs(None).model_dump() == DEFAULT_NOTIFICATION_PREFS
        assert sanitize_prefs(["email"]).model_dump() == DEFAULT_NOTIFICATION_PREFS

    def test_non_boolean_values_fall_back(self):
        prefs = sanitize_prefs({"email": False, "sms": "yes", "purchases": 0, "spam": True})
        assert prefs.model_dump() == {"email": False, "purchases": True, "updates": True, "sms": False}


class TestPreferencesApi:
    """GET and PUT for the signed in user"""

    def test_requires_login(self, client):
        response = client.get(URL)
        assert response.status_code == 401
        assert response.json()["detail"] == "Yetkisiz erişim"

    def test_defaults_when_never_saved(self, client, login_as):
        login_as()
        assert client.get(URL).json() == {"data": DEFAULT_NOTIFICATION_PREFS}

    def test_save_and_read_back(self, client, db, login_as):
        user = login_as()
        response = client.put(URL, json={"email": False, "sms": True, "updates": "no"})
        assert response.json() == {
            "success": True,
            "data": {"email": False, "purchases": True, "updates": True, "sms": True},
        }
        assert db.rows("notification_prefs")[0]["user_id"] == user["id"]

        client.put(URL, json={"email": True})
        assert len(db.rows("notification_prefs")) == 1
        assert client.get(URL).json()["data"]["sms"] is False

    def test_invalid_json(self, client, login_as):
        login_as()
        response = client.put(URL, content=b"{not json", headers={"Content-Type": "application/json"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Geçersiz istek gövdesi"

    def test_no_rows_error_means_defaults(self, client, db, login_as):
        login_as()
        db.failures[("notification_prefs", "select")] = CodedError("JSON object requested, multiple (or no) rows returned", "PGRST116")
        assert client.get(URL).json() == {"data": DEFAULT_NOTIFICATION_PREFS}

    def test_read_failure(self, client, db, login_as):
        login_as()
        db.failures[("notification_prefs", "select")] = CodedError("relation does not exist", "42P01")
        response = client.get(URL)
        assert response.status_code == 500
        assert response.json()["detail"] == "Tercihler alınamadı"

    def test_save_failure(self, client, db, login_as):
        login_as()
        db.failures[("notification_prefs", "upsert")] = Exception("permission denied")
        assert client.put(URL, json={}).status_code == 500
