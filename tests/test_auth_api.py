"""HTTP-level tests for the authentication routes."""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from karibu.core.app_factory import create_application
from karibu.domain.models import Role

REGISTER_PAYLOAD = {
    "firstName": "Kipchoge",
    "lastName": "Ruto",
    "email": "runner@example.com",
    "password": "secret1",
    "nationality": "Kenyan",
}


def _register(client, **overrides):
    return client.post("/api/v1/auth/register", json={**REGISTER_PAYLOAD, **overrides})


def _login(client, password="secret1"):
    return client.post("/api/v1/auth/login", json={"email": "runner@example.com", "password": password})


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["success"] is True


def test_register_and_duplicate(client):
    response = _register(client)

    assert response.status_code == 201
    user = response.json()["data"]["user"]
    assert user["email"] == "runner@example.com"
    assert user["role"] == "user"
    assert user["isEmailVerified"] is False
    assert "password" not in str(user).lower()

    duplicate = _register(client, password="other1")
    assert duplicate.status_code == 400
    assert duplicate.json() == {
        "success": False,
        "error": "duplicate_email",
        "message": "User already exists with this email",
    }


def test_register_accepts_apostrophe_address(client):
    response = _register(client, email="o'brien@example.com")

    assert response.status_code == 201
    assert response.json()["data"]["user"]["email"] == "o'brien@example.com"


def test_register_validation_error(client):
    response = _register(client, password="abc")

    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


def test_register_delivery_failure(client, notifier):
    notifier.fail = True

    response = _register(client)

    assert response.status_code == 500
    assert response.json()["error"] == "email_delivery_failed"


def test_login_flow_and_profile(client):
    _register(client)

    response = _login(client)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["user"]["preferences"]["currency"] == "KES"
    token = data["token"]

    me = client.get("/api/v1/auth/me", headers=_auth(token))
    assert me.status_code == 200
    profile = me.json()["data"]["user"]
    assert profile["nationality"] == "Kenyan"
    assert "passwordHash" not in profile
    assert profile["lastLogin"] is not None


def test_invalid_credentials_then_lockout(client, clock):
    _register(client)

    for _ in range(5):
        response = _login(client, password="wrong-pass")
        assert response.status_code == 401
        assert response.json()["error"] == "invalid_credentials"

    locked = _login(client)
    assert locked.status_code == 423
    assert locked.json()["error"] == "account_locked"

    clock.advance(timedelta(hours=2, minutes=1))
    assert _login(client).status_code == 200


def test_protected_routes_require_token(client):
    assert client.get("/api/v1/auth/me").status_code == 401
    assert client.get("/api/v1/auth/me").json()["error"] == "missing_token"

    bad = client.get("/api/v1/auth/me", headers=_auth("garbage"))
    assert bad.status_code == 401
    assert bad.json()["error"] == "invalid_token"


def test_refresh_token_cannot_authorize_requests(client):
    _register(client)
    refresh = _login(client).json()["data"]["refreshToken"]

    response = client.get("/api/v1/auth/me", headers=_auth(refresh))
    assert response.status_code == 401


def test_logout(client):
    _register(client)
    token = _login(client).json()["data"]["token"]

    response = client.post("/api/v1/auth/logout", headers=_auth(token))

    assert response.status_code == 200
    assert response.json()["message"] == "Logged out successfully"


def test_update_details(client):
    _register(client)
    token = _login(client).json()["data"]["token"]

    response = client.put(
        "/api/v1/auth/updatedetails",
        headers=_auth(token),
        json={
            "lastName": "Keino",
            "language": "sw",
            "interests": ["wildlife", "adventure"],
            "emergencyContact": {"name": "Mama", "phone": "+254700111222", "relationship": "mother"},
        },
    )

    assert response.status_code == 200
    user = response.json()["data"]["user"]
    assert user["lastName"] == "Keino"
    assert user["firstName"] == "Kipchoge"
    assert user["preferences"]["language"] == "sw"
    assert user["emergencyContact"]["relationship"] == "mother"

    invalid = client.put("/api/v1/auth/updatedetails", headers=_auth(token), json={"language": "de"})
    assert invalid.status_code == 400


def test_update_password(client):
    _register(client)
    token = _login(client).json()["data"]["token"]

    wrong = client.put(
        "/api/v1/auth/updatepassword",
        headers=_auth(token),
        json={"currentPassword": "nope-nope", "newPassword": "newpass"},
    )
    assert wrong.status_code == 401
    assert wrong.json()["error"] == "incorrect_password"

    response = client.put(
        "/api/v1/auth/updatepassword",
        headers=_auth(token),
        json={"currentPassword": "secret1", "newPassword": "newpass"},
    )
    assert response.status_code == 200
    assert response.json()["token"]
    assert _login(client, password="newpass").status_code == 200


def test_forgot_and_reset_password(client, notifier):
    _register(client)

    missing = client.post("/api/v1/auth/forgotpassword", json={"email": "ghost@example.com"})
    assert missing.status_code == 404

    response = client.post("/api/v1/auth/forgotpassword", json={"email": "runner@example.com"})
    assert response.status_code == 200
    assert "token" not in response.json()
    reset_token = notifier.last_token("reset-password")

    reset = client.put(f"/api/v1/auth/resetpassword/{reset_token}", json={"password": "newpass"})
    assert reset.status_code == 200
    assert reset.json()["token"]

    reused = client.put(f"/api/v1/auth/resetpassword/{reset_token}", json={"password": "another"})
    assert reused.status_code == 400
    assert reused.json()["error"] == "invalid_or_expired_token"

    assert _login(client, password="newpass").status_code == 200
    assert _login(client, password="secret1").status_code == 401


def test_forgot_password_delivery_failure(client, notifier):
    _register(client)
    notifier.fail = True

    response = client.post("/api/v1/auth/forgotpassword", json={"email": "runner@example.com"})

    assert response.status_code == 500
    assert response.json()["message"] == "Email could not be sent"


def test_verify_email(client, notifier):
    _register(client)
    token = notifier.last_token("verify-email")

    tampered = client.get("/api/v1/auth/verify-email/not-the-token")
    assert tampered.status_code == 400

    response = client.get(f"/api/v1/auth/verify-email/{token}")
    assert response.status_code == 200

    access = _login(client).json()["data"]
    assert access["user"]["isEmailVerified"] is True


def test_resend_verification_does_not_reveal_accounts(client):
    response = client.post("/api/v1/auth/resend-verification", json={"email": "ghost@example.com"})
    assert response.status_code == 200


def test_refresh(client):
    _register(client)
    refresh = _login(client).json()["data"]["refreshToken"]

    response = client.post("/api/v1/auth/refresh", json={"refreshToken": refresh})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["token"] and data["refreshToken"]

    missing = client.post("/api/v1/auth/refresh", json={})
    assert missing.status_code == 401
    assert missing.json()["error"] == "missing_token"

    invalid = client.post("/api/v1/auth/refresh", json={"refreshToken": "garbage"})
    assert invalid.status_code == 401
    assert invalid.json()["error"] == "invalid_token"


def test_admin_routes_require_staff_role(client, store):
    account_id = _register(client).json()["data"]["user"]["id"]
    token = _login(client).json()["data"]["token"]

    assert client.get("/api/v1/admin/").json()["error"] == "missing_token"

    forbidden = client.get("/api/v1/admin/", headers=_auth(token))
    assert forbidden.status_code == 403
    assert forbidden.json()["error"] == "forbidden"

    store.update_account(account_id, role=Role.MODERATOR)

    overview = client.get("/api/v1/admin/", headers=_auth(token))
    assert overview.status_code == 200
    assert overview.json()["data"]["user"]["role"] == "moderator"

    user = client.get(f"/api/v1/admin/users/{account_id}", headers=_auth(token))
    assert user.status_code == 200
    assert user.json()["data"]["user"]["email"] == "runner@example.com"

    missing = client.get("/api/v1/admin/users/9999", headers=_auth(token))
    assert missing.status_code == 404


class ExplodingStore:
    """Persistence stand-in whose reads fail like a lost database connection."""

    def get_account_by_email(self, email, include_secret=False):
        raise RuntimeError("database is unavailable at 10.0.0.5")

    def close(self):
        pass


@pytest.fixture
def broken_client(settings, clock, notifier):
    app = create_application(settings, clock=clock, notifier=notifier, persistence=ExplodingStore())
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


def test_store_failure_is_reported_generically(broken_client):
    response = broken_client.post("/api/v1/auth/login", json={"email": "a@x.com", "password": "secret1"})

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "unexpected", "message": "Something went wrong"}
