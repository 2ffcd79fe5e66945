from __future__ import annotations
import logging
from functools import wraps
from flask import request, g, abort
from utils.security import ACCESS, verify_token

logger = logging.getLogger(__name__)

UNAUTHORIZED_MESSAGE = "Invalid or expired token"


def _bearer_token() -> str:
    auth = request.headers.get("Authorization")
    if not auth:
        abort(401, description="Access token is required")
    scheme, _, token = auth.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        abort(401, description="Missing or invalid Authorization header")
    return token


def jwt_required():
    """
    Reject the request unless it carries a valid access token.
    On success the token subject is available as g.current_user_id.
    No database lookup happens here; views load the user if they need it.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            token = _bearer_token()
            # ConfigurationError (missing secret) propagates to the 500 handler
            result = verify_token(token, kind=ACCESS)
            if not result.ok:
                logger.info("Access token rejected on %s %s: %s", request.method, request.path, result.error.value)
                abort(401, description=UNAUTHORIZED_MESSAGE)

            g.current_user_id = result.user_id
            g.token_claims = result.claims
            return fn(*args, **kwargs)

        return wrapper

    return decorator
