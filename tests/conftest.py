"""
Blog API test configuration.

Every test gets a fresh app bound to its own in-memory SQLite database.
"""
import pytest

from api import create_app


USER_EMAIL = "a@x.com"
USER_PASSWORD = "longenough1"


@pytest.fixture
def app():
    app = create_app("testing")
    yield app
    app.extensions["storage"].dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store(app):
    """Credential store, used inside an app context."""
    with app.app_context():
        yield app.extensions["credential_store"]


@pytest.fixture
def registered_user(client):
    resp = client.post("/api/v1/auth/register", json={"email": USER_EMAIL, "password": USER_PASSWORD})
    assert resp.status_code == 201
    return resp.get_json()


@pytest.fixture
def access_token(client, registered_user):
    resp = client.post("/api/v1/auth/login", json={"email": USER_EMAIL, "password": USER_PASSWORD})
    assert resp.status_code == 200
    return resp.get_json()["accessToken"]


@pytest.fixture
def auth_headers(access_token):
    return {"Authorization": f"Bearer {access_token}"}


def set_cookie_headers(resp, name):
    """Set-Cookie headers for one cookie name."""
    return [h for h in resp.headers.getlist("Set-Cookie") if h.startswith(f"{name}=")]


def is_cleared(header):
    return header.split(";", 1)[0].endswith("=") and "Max-Age=0" in header
