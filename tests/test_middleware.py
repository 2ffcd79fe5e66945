from datetime import datetime, timedelta, timezone

import jwt

ME = "/api/v1/users/me"


def _token(secret, **overrides):
    payload = {
        "sub": "user-1",
        "type": "access",
        "jti": "jti-1",
        "exp": int((datetime.now(timezone.utc) + timedelta(minutes=5)).timestamp()),
    }
    payload.update(overrides)
    return jwt.encode(payload, secret, algorithm="HS256")


def test_missing_header_is_unauthorized(client):
    resp = client.get(ME)
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "UNAUTHORIZED"


def test_wrong_scheme_is_unauthorized(client, access_token):
    assert client.get(ME, headers={"Authorization": f"Token {access_token}"}).status_code == 401
    assert client.get(ME, headers={"Authorization": "Bearer "}).status_code == 401


def test_valid_token_reaches_view(client, registered_user, auth_headers):
    resp = client.get(ME, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.get_json()["id"] == registered_user["id"]


def test_expired_and_malformed_tokens_look_the_same(app, client, caplog):
    past = int((datetime.now(timezone.utc) - timedelta(minutes=1)).timestamp())
    expired = _token(app.config["JWT_ACCESS_SECRET"], exp=past)

    with caplog.at_level("INFO", logger="utils.decorators"):
        r1 = client.get(ME, headers={"Authorization": f"Bearer {expired}"})
        r2 = client.get(ME, headers={"Authorization": "Bearer garbage"})

    assert r1.status_code == r2.status_code == 401
    assert r1.get_data() == r2.get_data()
    # Only the logs tell them apart
    assert "expired" in caplog.text
    assert "malformed" in caplog.text


def test_refresh_token_is_not_an_access_token(app, client):
    token = _token(app.config["JWT_REFRESH_SECRET"], type="refresh")
    assert client.get(ME, headers={"Authorization": f"Bearer {token}"}).status_code == 401


def test_unconfigured_secret_is_a_server_error(app, client, access_token):
    app.config["JWT_ACCESS_SECRET"] = None
    resp = client.get(ME, headers={"Authorization": f"Bearer {access_token}"})
    assert resp.status_code == 500
    assert resp.get_json()["error"] == "CONFIGURATION_ERROR"


def test_token_for_deleted_user_on_me(app, client):
    token = _token(app.config["JWT_ACCESS_SECRET"], sub="ghost")
    assert client.get(ME, headers={"Authorization": f"Bearer {token}"}).status_code == 404


def test_scheme_is_case_insensitive(client, registered_user, access_token):
    for scheme in ("bearer", "BEARER"):
        resp = client.get(ME, headers={"Authorization": f"{scheme} {access_token}"})
        assert resp.status_code == 200
        assert resp.get_json()["id"] == registered_user["id"]
