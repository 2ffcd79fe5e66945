from datetime import timedelta

from models.base_model import utcnow
from models.refresh_token import RefreshToken


def test_create_user_command(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["create-user", "Admin@X.com", "--password", "longenough1", "--name", "Admin"])
    assert result.exit_code == 0, result.output
    assert "<admin@x.com>" in result.output

    again = runner.invoke(args=["create-user", "admin@x.com", "--password", "longenough1"])
    assert again.exit_code != 0
    assert "already registered" in again.output


def test_create_user_command_validates(app):
    result = app.test_cli_runner().invoke(args=["create-user", "admin@x.com", "--password", "short"])
    assert result.exit_code != 0


def test_purge_tokens_command(app):
    with app.app_context():
        store = app.extensions["credential_store"]
        user = store.create_user_with_password("c@x.com", None, "hash")
        store.store_refresh_token_hash(user.id, "expired", utcnow() - timedelta(hours=1))
        store.store_refresh_token_hash(user.id, "valid", utcnow() + timedelta(hours=1))

    result = app.test_cli_runner().invoke(args=["purge-tokens"])
    assert result.exit_code == 0
    assert "Purged 1" in result.output

    with app.app_context():
        assert app.extensions["storage"].count(RefreshToken) == 1
