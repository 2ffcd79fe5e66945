from __future__ import annotations

from typing import Tuple

from flask import Blueprint, request, jsonify, abort, g
from sqlalchemy.orm import joinedload

from models.post import Post
from models.user import User
from models.schemas.post import PostCreateSchema, PostUpdateSchema, PostOutSchema
from utils.decorators import jwt_required

from .deps import get_storage

# Public read-only routes and the token-protected admin routes
bp = Blueprint("posts", __name__)
admin_bp = Blueprint("admin_posts", __name__)

post_create_schema = PostCreateSchema()
post_update_schema = PostUpdateSchema()
post_out_schema = PostOutSchema()
posts_out_schema = PostOutSchema(many=True)

MAX_LIMIT = 100


def parse_pagination() -> Tuple[int, int]:
    try:
        page = int(request.args.get("page", "1"))
        limit = int(request.args.get("limit", "20"))
        page = max(page, 1)
        limit = max(1, min(limit, MAX_LIMIT))
        return page, limit
    except ValueError:
        abort(400, description="page and limit must be integers")


def _list(query):
    page, limit = parse_pagination()
    total = query.count()
    rows = (
        query.options(joinedload(Post.author))
        .order_by(Post.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return jsonify(
        {
            "data": posts_out_schema.dump(rows),
            "meta": {"page": page, "limit": limit, "total": total},
        }
    )


def _get_or_404(post_id: str, published_only: bool = False) -> Post:
    post = get_storage().get(Post, post_id)
    if not post or (published_only and not post.published):
        abort(404)
    return post


@bp.get("/posts")
def list_posts():
    """
    List published posts, newest first
    ---
    tags:
      - Posts
    parameters:
      - in: query
        name: page
        type: integer
        default: 1
      - in: query
        name: limit
        type: integer
        default: 20
    responses:
      200:
        description: List of published posts with their author
    """
    session = get_storage().get_session()
    return _list(session.query(Post).filter(Post.published.is_(True)))


@bp.get("/posts/<post_id>")
def get_post(post_id: str):
    """
    Get a single published post
    ---
    tags:
      - Posts
    parameters:
      - in: path
        name: post_id
        type: string
        required: true
    responses:
      200:
        description: Post found
      404:
        description: Not found (or not published)
    """
    return jsonify(post_out_schema.dump(_get_or_404(post_id, published_only=True)))


@admin_bp.get("/posts")
@jwt_required()
def admin_list_posts():
    """
    List all posts, drafts included
    ---
    tags:
      - Admin posts
    security:
      - Bearer: []
    responses:
      200:
        description: List of posts
      401:
        description: Unauthorized
    """
    session = get_storage().get_session()
    return _list(session.query(Post))


@admin_bp.get("/posts/<post_id>")
@jwt_required()
def admin_get_post(post_id: str):
    """
    Get any post by id
    ---
    tags:
      - Admin posts
    security:
      - Bearer: []
    parameters:
      - in: path
        name: post_id
        type: string
        required: true
    responses:
      200:
        description: Post found
      404:
        description: Not found
    """
    return jsonify(post_out_schema.dump(_get_or_404(post_id)))


@admin_bp.post("/posts")
@jwt_required()
def create_post():
    """
    Create a post authored by the current user
    ---
    tags:
      - Admin posts
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [title]
          properties:
            title: { type: string, maxLength: 255 }
            content: { type: string }
            published: { type: boolean, default: false }
    responses:
      201:
        description: Created
      400:
        description: Validation error
      401:
        description: Unauthorized
    """
    storage = get_storage()
    payload = request.get_json(silent=True) or {}
    data = post_create_schema.load(payload)

    # Token may outlive its user
    if not storage.get(User, g.current_user_id):
        abort(401, description="Invalid or expired token")

    post = Post(
        title=data["title"],
        content=data.get("content"),
        published=data.get("published", False),
        author_id=g.current_user_id,
    )
    storage.new(post)
    storage.save()
    return jsonify(post_out_schema.dump(post)), 201


@admin_bp.put("/posts/<post_id>")
@admin_bp.patch("/posts/<post_id>")
@jwt_required()
def update_post(post_id: str):
    """
    Update a post (partial)
    ---
    tags:
      - Admin posts
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - in: path
        name: post_id
        type: string
        required: true
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            title: { type: string, maxLength: 255 }
            content: { type: string }
            published: { type: boolean }
    responses:
      200:
        description: Updated
      400:
        description: Validation error
      404:
        description: Not found
    """
    storage = get_storage()
    post = _get_or_404(post_id)

    payload = request.get_json(silent=True) or {}
    data = post_update_schema.load(payload)
    for field in ["title", "content", "published"]:
        if field in data:
            setattr(post, field, data[field])

    storage.new(post)
    storage.save()
    return jsonify(post_out_schema.dump(post))


@admin_bp.delete("/posts/<post_id>")
@jwt_required()
def delete_post(post_id: str):
    """
    Delete a post
    ---
    tags:
      - Admin posts
    security:
      - Bearer: []
    parameters:
      - in: path
        name: post_id
        type: string
        required: true
    responses:
      200:
        description: Deleted (returns the deleted post)
      404:
        description: Not found
    """
    storage = get_storage()
    post = _get_or_404(post_id)
    body = post_out_schema.dump(post)

    storage.delete(post)
    storage.save()
    return jsonify(body)
