"""
Authentication blueprint:
- POST /auth/register
- POST /auth/login
- POST /auth/refresh
- POST /auth/logout

The implementation:
- Uses argon2 for password hashing (via utils.security)
- Issues short-lived access tokens and 7-day refresh tokens (JWTs, one secret each)
- Stores only the SHA-256 digest of each refresh token so sessions can be revoked
- Carries the refresh token in an HttpOnly cookie, never in a JSON body
"""
from __future__ import annotations

import logging

from flask import Blueprint, request, jsonify, abort, current_app, after_this_request
from sqlalchemy.exc import SQLAlchemyError

from models.base_model import utcnow
from models.schemas.user import UserCreateSchema, UserLoginSchema, UserOutSchema, UserSummarySchema
from utils.security import (
    REFRESH,
    dummy_password_hash,
    hash_for_storage,
    hash_password,
    issue_access_token,
    issue_refresh_token,
    verify_password,
    verify_token,
)

from .deps import get_credential_store

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"

bp = Blueprint("auth", __name__)

user_create_schema = UserCreateSchema()
user_login_schema = UserLoginSchema()
user_out_schema = UserOutSchema()
user_summary_schema = UserSummarySchema()


def _cookie_options() -> dict:
    cfg = current_app.config
    return {
        "httponly": True,
        "secure": cfg["COOKIE_SECURE"],
        "samesite": cfg["COOKIE_SAMESITE"],
        "path": cfg["COOKIE_PATH"],
    }


def set_refresh_cookie(response, token: str):
    max_age = int(current_app.config["REFRESH_TOKEN_EXPIRES"].total_seconds())
    response.set_cookie(current_app.config["REFRESH_TOKEN_COOKIE"], token, max_age=max_age, **_cookie_options())
    return response


def clear_auth_cookies(response):
    opts = _cookie_options()
    response.delete_cookie(current_app.config["REFRESH_TOKEN_COOKIE"], **opts)
    response.delete_cookie(current_app.config["ACCESS_TOKEN_COOKIE"], **opts)
    return response


def _start_session(user):
    """Issue both tokens, persist the refresh digest, build the 200 response."""
    access_token = issue_access_token(user.id)
    refresh_token = issue_refresh_token(user.id)
    expires_at = utcnow() + current_app.config["REFRESH_TOKEN_EXPIRES"]
    get_credential_store().store_refresh_token_hash(user.id, hash_for_storage(refresh_token), expires_at)

    response = jsonify({"accessToken": access_token, "user": user_summary_schema.dump(user)})
    response.status_code = 200
    return set_refresh_cookie(response, refresh_token)


@bp.post("/register")
def register():
    """
    Register a new user.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [email, password]
          properties:
            email: { type: string, format: email }
            password: { type: string, minLength: 8 }
            name: { type: string }
    responses:
      201:
        description: Created (id, email, name, createdAt)
      400:
        description: Validation error
      409:
        description: Email already registered
    """
    payload = request.get_json(silent=True) or {}
    data = user_create_schema.load(payload)

    # ConflictError (pre-check or unique index) is mapped to 409 by the error handlers
    user = get_credential_store().create_user_with_password(
        data["email"], data.get("name"), hash_password(data["password"])
    )
    logger.info("Registered user %s", user.id)
    return jsonify(user_out_schema.dump(user)), 201


@bp.post("/login")
def login():
    """
    Login: returns an access token and sets the refresh token cookie
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [email, password]
           properties:
             email: { type: string, format: email }
             password: { type: string }
    responses:
      200:
        description: OK (accessToken and user; refreshToken cookie set)
      400:
        description: Validation error
      401:
        description: Invalid credentials
    """
    payload = request.get_json(silent=True) or {}
    data = user_login_schema.load(payload)

    user = get_credential_store().find_user_by_email(data["email"])
    # Same answer (and the same argon2 work) for unknown email, missing password row and wrong password
    stored_hash = user.password.hash if user and user.password else dummy_password_hash()
    if not verify_password(data["password"], stored_hash) or not user or not user.password:
        abort(401, description=INVALID_CREDENTIALS)

    logger.info("User %s logged in", user.id)
    return _start_session(user)


@bp.post("/refresh")
def refresh():
    """
    Exchange the refresh token cookie for a new access token (rotation)
    ---
    tags:
      - Auth
    responses:
      200:
        description: OK (new accessToken; refreshToken cookie replaced)
      401:
        description: Missing, invalid, expired or revoked refresh token
    """
    token = request.cookies.get(current_app.config["REFRESH_TOKEN_COOKIE"])
    if not token:
        abort(401, description="Refresh token is required")

    @after_this_request
    def _drop_rejected_cookie(response):
        if response.status_code == 401:
            clear_auth_cookies(response)
        return response

    result = verify_token(token, kind=REFRESH)
    if not result.ok:
        logger.info("Refresh token rejected: %s", result.error.value)
        abort(401, description="Invalid or expired refresh token")

    store = get_credential_store()
    hashed = hash_for_storage(token)
    record = store.find_active_refresh_token(hashed, utcnow())
    if record is None or record.user_id != result.user_id:
        abort(401, description="Invalid or expired refresh token")

    user = store.find_user_by_id(result.user_id)
    if user is None:
        abort(401, description="Invalid or expired refresh token")

    # Only the request that actually removes the record may rotate it
    if store.delete_refresh_token_by_hash(hashed) != 1:
        logger.warning("Refresh token for user %s was already rotated", user.id)
        abort(401, description="Invalid or expired refresh token")
    return _start_session(user)


@bp.post("/logout")
def logout():
    """
    Logout: revokes the refresh token and clears auth cookies
    ---
    tags:
      - Auth
    responses:
      200:
        description: Logged out (always, cookies cleared)
    """
    # Registered first so cookies are cleared on every exit path, errors included
    @after_this_request
    def _clear_cookies(response):
        return clear_auth_cookies(response)

    token = request.cookies.get(current_app.config["REFRESH_TOKEN_COOKIE"])
    if token:
        try:
            deleted = get_credential_store().delete_refresh_token_by_hash(hash_for_storage(token))
            logger.info("Logout revoked %d refresh token record(s)", deleted)
        except SQLAlchemyError:
            logger.exception("Could not revoke refresh token during logout")
    else:
        logger.info("Logout without refresh token cookie")

    return jsonify({"message": "Logged out"}), 200
