import jwt
from sqlalchemy.exc import OperationalError

from models.base_model import utcnow
from models.credential_store import CredentialStore
from models.refresh_token import RefreshToken
from models.user import User
from utils.security import hash_for_storage

from tests.conftest import USER_EMAIL, USER_PASSWORD, is_cleared, set_cookie_headers

REGISTER = "/api/v1/auth/register"
LOGIN = "/api/v1/auth/login"
LOGOUT = "/api/v1/auth/logout"
REFRESH = "/api/v1/auth/refresh"


def _login(client, email=USER_EMAIL, password=USER_PASSWORD):
    return client.post(LOGIN, json={"email": email, "password": password})


def _count(app, model):
    with app.app_context():
        return app.extensions["storage"].count(model)


# register

def test_register_returns_public_fields_only(client, registered_user):
    assert set(registered_user) == {"id", "email", "name", "createdAt"}
    assert registered_user["email"] == USER_EMAIL
    assert registered_user["name"] is None


def test_register_with_name_and_normalized_email(client):
    resp = client.post(REGISTER, json={"email": "  Writer@X.com ", "password": "longenough1", "name": "Writer"})
    assert resp.status_code == 201
    assert resp.get_json()["email"] == "writer@x.com"
    assert resp.get_json()["name"] == "Writer"


def test_register_validation_errors(client):
    resp = client.post(REGISTER, json={"email": "not-an-email", "password": "short"})
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["error"] == "VALIDATION_ERROR"
    assert set(body["details"]) == {"email", "password"}


def test_register_without_body(client):
    resp = client.post(REGISTER, data="garbage", content_type="text/plain")
    assert resp.status_code == 400
    assert set(resp.get_json()["details"]) == {"email", "password"}


def test_register_duplicate_email_conflicts(app, client, registered_user):
    resp = client.post(REGISTER, json={"email": USER_EMAIL, "password": "anotherpass1"})
    assert resp.status_code == 409
    assert resp.get_json()["error"] == "CONFLICT"
    assert _count(app, User) == 1


# login

def test_login_issues_tokens(app, client, registered_user):
    resp = _login(client)
    assert resp.status_code == 200
    body = resp.get_json()
    assert set(body) == {"accessToken", "user"}
    assert body["user"] == {"id": registered_user["id"], "email": USER_EMAIL, "name": None}

    claims = jwt.decode(body["accessToken"], app.config["JWT_ACCESS_SECRET"], algorithms=["HS256"])
    assert claims["sub"] == registered_user["id"]

    [cookie] = set_cookie_headers(resp, "refreshToken")
    assert "HttpOnly" in cookie
    assert "SameSite=Lax" in cookie
    assert "Path=/" in cookie
    assert f"Max-Age={7 * 24 * 3600}" in cookie

    raw = client.get_cookie("refreshToken").value
    assert raw not in resp.get_data(as_text=True)
    with app.app_context():
        rows = app.extensions["storage"].get_session().query(RefreshToken).all()
        assert [r.hashed_token for r in rows] == [hash_for_storage(raw)]


def test_bad_credentials_are_indistinguishable(client, registered_user):
    wrong_password = _login(client, password="not-the-password")
    unknown_email = _login(client, email="nobody@x.com")
    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.get_data() == unknown_email.get_data()
    assert wrong_password.get_json()["message"] == "Invalid credentials"


def test_login_validation_error(client):
    resp = client.post(LOGIN, json={"email": "a@x.com", "password": ""})
    assert resp.status_code == 400
    assert "password" in resp.get_json()["details"]


# logout

def test_logout_revokes_refresh_token(app, client, registered_user):
    _login(client)
    raw = client.get_cookie("refreshToken").value
    resp = client.post(LOGOUT)
    assert resp.status_code == 200
    assert is_cleared(set_cookie_headers(resp, "refreshToken")[0])
    assert is_cleared(set_cookie_headers(resp, "accessToken")[0])
    with app.app_context():
        store = app.extensions["credential_store"]
        assert store.delete_refresh_token_by_hash(hash_for_storage(raw)) == 0
    assert _count(app, RefreshToken) == 0


def test_logout_without_cookie_still_succeeds(client):
    resp = client.post(LOGOUT)
    assert resp.status_code == 200
    assert is_cleared(set_cookie_headers(resp, "refreshToken")[0])
    assert is_cleared(set_cookie_headers(resp, "accessToken")[0])


def test_logout_with_unknown_token_succeeds(client):
    client.set_cookie("refreshToken", "never-issued")
    resp = client.post(LOGOUT)
    assert resp.status_code == 200
    assert is_cleared(set_cookie_headers(resp, "refreshToken")[0])


def test_logout_swallows_storage_errors(client, monkeypatch):
    def broken(self, hashed):
        raise OperationalError("DELETE", {}, Exception("database is locked"))

    monkeypatch.setattr(CredentialStore, "delete_refresh_token_by_hash", broken)
    client.set_cookie("refreshToken", "some-token")
    resp = client.post(LOGOUT)
    assert resp.status_code == 200
    assert is_cleared(set_cookie_headers(resp, "refreshToken")[0])


def test_logout_clears_cookies_on_unexpected_fault(client, monkeypatch):
    def broken(self, hashed):
        raise RuntimeError("boom")

    monkeypatch.setattr(CredentialStore, "delete_refresh_token_by_hash", broken)
    client.set_cookie("refreshToken", "some-token")
    resp = client.post(LOGOUT)
    assert resp.status_code == 500
    assert resp.get_json()["error"] == "INTERNAL_ERROR"
    assert is_cleared(set_cookie_headers(resp, "refreshToken")[0])
    assert is_cleared(set_cookie_headers(resp, "accessToken")[0])


# refresh

def test_refresh_rotates_token(app, client, registered_user):
    _login(client)
    old = client.get_cookie("refreshToken").value
    resp = client.post(REFRESH)
    assert resp.status_code == 200
    assert resp.get_json()["user"]["id"] == registered_user["id"]
    new = client.get_cookie("refreshToken").value
    assert new != old
    assert _count(app, RefreshToken) == 1

    # The rotated-out token is dead
    client.set_cookie("refreshToken", old)
    resp = client.post(REFRESH)
    assert resp.status_code == 401
    assert is_cleared(set_cookie_headers(resp, "refreshToken")[0])


def test_refresh_requires_cookie(client):
    assert client.post(REFRESH).status_code == 401


def test_refresh_rejects_access_token(client, access_token):
    client.set_cookie("refreshToken", access_token)
    assert client.post(REFRESH).status_code == 401


def test_full_session_scenario(app, client):
    resp = client.post(REGISTER, json={"email": "a@x.com", "password": "longenough1"})
    assert resp.status_code == 201
    created = resp.get_json()
    assert "password" not in created
    assert {"id", "email", "name", "createdAt"} <= set(created)

    resp = _login(client, "a@x.com", "longenough1")
    assert resp.status_code == 200
    assert resp.get_json()["user"] == {"id": created["id"], "email": "a@x.com", "name": None}
    raw = client.get_cookie("refreshToken").value

    resp = client.post(LOGOUT)
    assert resp.status_code == 200
    assert client.get_cookie("refreshToken") is None

    with app.app_context():
        store = app.extensions["credential_store"]
        assert store.find_active_refresh_token(hash_for_storage(raw), utcnow()) is None


def test_unknown_email_still_checks_a_password_hash(client, monkeypatch):
    import api.auth

    checked = []
    real_verify = api.auth.verify_password

    def recording_verify(password, password_hash):
        checked.append(password_hash)
        return real_verify(password, password_hash)

    monkeypatch.setattr(api.auth, "verify_password", recording_verify)
    resp = _login(client, email="nobody@x.com")
    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Invalid credentials"
    assert len(checked) == 1
    assert checked[0].startswith("$argon2")


def test_refresh_that_loses_rotation_is_rejected(app, client, registered_user, monkeypatch):
    _login(client)
    real_delete = CredentialStore.delete_refresh_token_by_hash

    def rotated_elsewhere_first(self, hashed_token):
        # A concurrent refresh with the same cookie removes the record first
        real_delete(self, hashed_token)
        return real_delete(self, hashed_token)

    monkeypatch.setattr(CredentialStore, "delete_refresh_token_by_hash", rotated_elsewhere_first)
    resp = client.post(REFRESH)
    assert resp.status_code == 401
    assert is_cleared(set_cookie_headers(resp, "refreshToken")[0])
    assert _count(app, RefreshToken) == 0
