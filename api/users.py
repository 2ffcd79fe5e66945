from __future__ import annotations

from flask import Blueprint, jsonify, g, abort

from models.schemas.user import UserOutSchema
from utils.decorators import jwt_required

from .deps import get_credential_store

bp = Blueprint("users", __name__)

user_out_schema = UserOutSchema()


@bp.get("/users/me")
@jwt_required()
def me():
    """
    Get the user behind the access token
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
      404:
        description: User no longer exists
    """
    user = get_credential_store().find_user_by_id(g.current_user_id)
    if not user:
        abort(404)
    return jsonify(user_out_schema.dump(user)), 200


@bp.get("/users/<user_id>")
def get_user(user_id: str):
    """
    Get a user by id
    ---
    tags:
      - Users
    parameters:
      - in: path
        name: user_id
        type: string
        required: true
    responses:
      200:
        description: User found (id, email, name, createdAt)
      404:
        description: Not found
    """
    user = get_credential_store().find_user_by_id(user_id)
    if not user:
        abort(404)
    return jsonify(user_out_schema.dump(user)), 200
