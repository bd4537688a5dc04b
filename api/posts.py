"""
Feed posts. Only what the guards need: anyone can read, verified users can
write, and only the author (or a superuser) can change or delete a post.
"""
from __future__ import annotations

import logging

from flask import Blueprint, g, jsonify, request

from api.errors import NotFound
from api.extensions import get_storage
from api.utils.pagination import paginate, parse_pagination
from models.post import Post
from models.schemas.post import PostCreateSchema, PostOutSchema, PostUpdateSchema
from utils.decorators import jwt_optional, owner_required, verified_required

logger = logging.getLogger(__name__)

bp = Blueprint("posts", __name__, url_prefix="/posts")

post_create_schema = PostCreateSchema()
post_update_schema = PostUpdateSchema()
post_out_schema = PostOutSchema()
post_list_out_schema = PostOutSchema(many=True)


@bp.post("")
@verified_required()
def create_post():
    """
    Publish a post (verified users only)
    ---
    tags:
      - Posts
    security:
      - Bearer: []
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [content]
           properties:
             title: { type: string }
             content: { type: string }
    responses:
      201: { description: Created }
      403: { description: Email not verified }
    """
    data = post_create_schema.load(request.get_json(silent=True) or {})
    post = Post(user_id=g.current_user.id, **data)
    storage = get_storage()
    with storage.transaction():
        storage.new(post)
    return jsonify({"success": True, "data": {"post": post_out_schema.dump(post)}}), 201


@bp.get("")
@jwt_optional()
def list_posts():
    """
    Feed, newest first. ?mine=true limits it to the caller's posts.
    ---
    tags:
      - Posts
    parameters:
      - in: query
        name: mine
        type: boolean
      - in: query
        name: page
        type: integer
      - in: query
        name: limit
        type: integer
    responses:
      200: { description: OK }
    """
    page, limit = parse_pagination()
    query = get_storage().get_session().query(Post)
    if request.args.get("mine", "").lower() in ("1", "true", "yes") and g.current_user is not None:
        query = query.filter(Post.user_id == g.current_user.id)

    rows, meta = paginate(query.order_by(Post.created_at.desc()), page, limit)
    return jsonify({"success": True, "data": {"posts": post_list_out_schema.dump(rows), "pagination": meta}}), 200


@bp.get("/<post_id>")
def get_post(post_id: str):
    """
    One post
    ---
    tags:
      - Posts
    parameters:
      - in: path
        name: post_id
        type: string
        required: true
    responses:
      200: { description: OK }
      404: { description: Not found }
    """
    post = get_storage().get(Post, post_id)
    if post is None:
        raise NotFound("Post not found")
    return jsonify({"success": True, "data": {"post": post_out_schema.dump(post)}}), 200


@bp.patch("/<post_id>")
@owner_required(Post, id_arg="post_id")
def update_post(post_id: str):
    """
    Edit a post (author or superuser)
    ---
    tags:
      - Posts
    security:
      - Bearer: []
    parameters:
      - in: path
        name: post_id
        type: string
        required: true
      - in: body
        name: body
        schema:
          type: object
          properties:
            title: { type: string }
            content: { type: string }
    responses:
      200: { description: OK }
      403: { description: Not your post }
      404: { description: Not found }
    """
    data = post_update_schema.load(request.get_json(silent=True) or {}, partial=True)
    post = g.resource
    storage = get_storage()
    with storage.transaction():
        for key, value in data.items():
            setattr(post, key, value)
    return jsonify({"success": True, "data": {"post": post_out_schema.dump(post)}}), 200


@bp.delete("/<post_id>")
@owner_required(Post, id_arg="post_id")
def delete_post(post_id: str):
    """
    Delete a post (author or superuser)
    ---
    tags:
      - Posts
    security:
      - Bearer: []
    parameters:
      - in: path
        name: post_id
        type: string
        required: true
    responses:
      200: { description: Deleted }
      403: { description: Not your post }
      404: { description: Not found }
    """
    storage = get_storage()
    with storage.transaction():
        storage.delete(g.resource)
    logger.info("Post %s deleted by %s", post_id, g.current_user.id)
    return jsonify({"success": True, "message": "Post deleted"}), 200
