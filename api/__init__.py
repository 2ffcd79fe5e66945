import atexit
import logging

import click
from flask import Flask
from flasgger import Swagger
from flask_cors import CORS

from .config import get_config, validate_config
from .errors import register_error_handlers
from models.db_storage import DBStorage
from models.credential_store import CredentialStore

API_VERSION = "1.0.0"

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "Blog API",
        "version": API_VERSION,
        "description": "REST API for blog posts and admin authentication.",
    },
    "basePath": "/",  # blueprints are mounted under /api/v1
    "schemes": ["http", "https"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Enter the token with the `Bearer ` prefix, e.g. \"Bearer abcde12345\"."
        }
    }
}

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec_1",
            "route": "/swagger.json",
            "rule_filter": lambda rule: True,   # include all endpoints
            "model_filter": lambda tag: True,   # include all models
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/apidocs/",
}


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )


def create_app(config_name: str | None = None, overrides: dict | None = None) -> Flask:
    """
    Application factory: creates and configures the Flask app.
    Secrets are checked here so a misconfigured process never starts serving.
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))
    if overrides:
        app.config.update(overrides)
    validate_config(app.config)

    configure_logging(app.config["LOG_LEVEL"])

    # Storage is owned by this app instance
    storage = DBStorage(
        app.config["DATABASE_URL"],
        echo=app.config["SQL_ECHO"],
        timeout=app.config["STORAGE_TIMEOUT_SECONDS"],
    )
    storage.reload()
    app.extensions["storage"] = storage
    app.extensions["credential_store"] = CredentialStore(storage)
    if not app.testing:
        atexit.register(storage.dispose)

    # Cookies cross origins to the frontend, so credentials must be allowed
    CORS(
        app,
        resources={r"/*": {"origins": app.config["CORS_ORIGINS"]}},
        supports_credentials=True,
    )

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    # Register global error handlers that return the uniform error envelope
    register_error_handlers(app)

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .users import bp as users_bp
    from .posts import bp as posts_bp, admin_bp as admin_posts_bp

    app.register_blueprint(health_bp, url_prefix="/api/v1")
    app.register_blueprint(auth_bp, url_prefix="/api/v1/auth")
    app.register_blueprint(users_bp, url_prefix="/api/v1")
    app.register_blueprint(posts_bp, url_prefix="/api/v1")
    app.register_blueprint(admin_posts_bp, url_prefix="/api/v1/admin")

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        storage.close()

    register_commands(app)

    @app.route("/")
    def root():
        return {
            "message": "Welcome to Blog API",
            "docs": "/apidocs/",
            "health": "/api/v1/health",
        }, 200

    return app


def register_commands(app: Flask) -> None:
    """Maintenance commands: `flask init-db`, `flask create-user`, `flask purge-tokens`."""

    @app.cli.command("init-db")
    def init_db():
        """Create all tables."""
        app.extensions["storage"].reload()
        click.echo("Database initialised.")

    @app.cli.command("create-user")
    @click.argument("email")
    @click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
    @click.option("--name", default=None)
    def create_user(email, password, name):
        """Create a user with a password (e.g. the first admin)."""
        from marshmallow import ValidationError
        from models.exceptions import ConflictError
        from models.schemas.user import UserCreateSchema
        from utils.security import hash_password

        try:
            data = UserCreateSchema().load({"email": email, "password": password, "name": name})
        except ValidationError as err:
            raise click.ClickException(str(err.messages))
        try:
            user = app.extensions["credential_store"].create_user_with_password(
                data["email"], data["name"], hash_password(data["password"])
            )
        except ConflictError as err:
            raise click.ClickException(err.message)
        click.echo(f"Created user {user.id} <{user.email}>")

    @app.cli.command("purge-tokens")
    def purge_tokens():
        """Delete refresh-token records past their expiry."""
        from models.base_model import utcnow

        deleted = app.extensions["credential_store"].purge_expired_refresh_tokens(utcnow())
        click.echo(f"Purged {deleted} expired refresh token(s).")
