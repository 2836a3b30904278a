from __future__ import annotations

from flask import Blueprint, request, jsonify, g

from spotlight.models.schemas.user import (
    UpdateProfileSchema,
    PreferencesSchema,
    PreferencesOutSchema,
    AccountOutSchema,
    SearchUsersSchema,
    FollowUserOutSchema,
    PublicUserOutSchema,
)
from spotlight.services import get_user_service
from spotlight.utils.decorators import jwt_required

bp = Blueprint("users", __name__, url_prefix="/users")

update_profile_schema = UpdateProfileSchema()
preferences_schema = PreferencesSchema()
preferences_out_schema = PreferencesOutSchema()
account_out_schema = AccountOutSchema()
search_users_schema = SearchUsersSchema()
follow_user_out_schema = FollowUserOutSchema(many=True)
public_user_out_schema = PublicUserOutSchema()


@bp.get("/me")
@jwt_required()
def me():
    """
    Get the current account with its preferences
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
    """
    account = get_user_service().get_me(g.principal)
    return jsonify({"data": account_out_schema.dump(account)}), 200


@bp.put("/me")
@jwt_required()
def update_me():
    """
    Update profile fields
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            name: { type: string }
            areaActivity: { type: string }
            avatar: { type: string }
            coverImage: { type: string }
    responses:
      200:
        description: Updated
      422:
        description: Validation error
    """
    changes = update_profile_schema.load(request.get_json(silent=True) or {})
    account = get_user_service().update_profile(g.principal, changes)
    return jsonify({"data": account_out_schema.dump(account)}), 200


@bp.get("/me/preferences")
@jwt_required()
def get_preferences():
    """
    Get preferences (created with defaults on first access)
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200:
        description: OK
    """
    preferences = get_user_service().get_preferences(g.principal)
    return jsonify({"data": preferences_out_schema.dump(preferences)}), 200


@bp.put("/me/preferences")
@jwt_required()
def update_preferences():
    """
    Update preferences
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            emailNotifications: { type: boolean }
            pushNotifications: { type: boolean }
            profileVisibility: { type: string, enum: [PUBLIC, PRIVATE] }
            language: { type: string }
    responses:
      200:
        description: Updated
      422:
        description: Validation error
    """
    changes = preferences_schema.load(request.get_json(silent=True) or {})
    preferences = get_user_service().update_preferences(g.principal, changes)
    return jsonify({"data": preferences_out_schema.dump(preferences)}), 200


@bp.delete("/<string:user_id>/disable")
@jwt_required()
def disable_user(user_id: str):
    """
    Disable an account (admins, or the account itself)
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: path
        name: user_id
        type: string
        required: true
    responses:
      200:
        description: Disabled; all sessions revoked
      403:
        description: FORBIDDEN
      404:
        description: USER_NOT_FOUND
    """
    account = get_user_service().disable_account(g.principal, user_id)
    return jsonify({"data": account_out_schema.dump(account)}), 200


@bp.get("")
@jwt_required()
def search_users():
    """
    Search enabled accounts by name, email or area of activity
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: query
        name: search
        type: string
      - in: query
        name: page
        type: integer
      - in: query
        name: size
        type: integer
    responses:
      200:
        description: One page of public profiles
    """
    params = search_users_schema.load(request.args.to_dict())
    profiles, total = get_user_service().search_users(
        g.principal, params["search"], page=params["page"], size=params["size"]
    )
    return jsonify({
        "data": public_user_out_schema.dump(profiles, many=True),
        "meta": {"page": params["page"], "size": params["size"], "total": total},
    }), 200


@bp.get("/<string:user_id>/public")
@jwt_required()
def public_profile(user_id: str):
    """
    Public profile with follower metrics
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: path
        name: user_id
        type: string
        required: true
    responses:
      200:
        description: OK
      404:
        description: USER_NOT_FOUND
    """
    profile = get_user_service().get_public(g.principal, user_id)
    return jsonify({"data": public_user_out_schema.dump(profile)}), 200


@bp.put("/me/<string:availability>")
@jwt_required()
def change_availability(availability: str):
    """
    Set chat availability
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: path
        name: availability
        type: string
        enum: [AVAILABLE, BUSY, AWAY, OFFLINE]
        required: true
    responses:
      200:
        description: Updated account
      400:
        description: INVALID_AVAILABILITY
    """
    account = get_user_service().change_availability(g.principal, availability)
    return jsonify({"data": account_out_schema.dump(account)}), 200


@bp.post("/follow/<string:user_id>")
@jwt_required()
def follow(user_id: str):
    """
    Follow an account
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: path
        name: user_id
        type: string
        required: true
    responses:
      201:
        description: The followed account's public profile
      400:
        description: CANNOT_FOLLOW_SELF / ALREADY_FOLLOWING
      404:
        description: USER_NOT_FOUND
    """
    profile = get_user_service().follow(g.principal, user_id)
    return jsonify({"data": public_user_out_schema.dump(profile)}), 201


@bp.delete("/unfollow/<string:user_id>")
@jwt_required()
def unfollow(user_id: str):
    """
    Stop following an account
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: path
        name: user_id
        type: string
        required: true
    responses:
      204:
        description: Unfollowed
      404:
        description: FOLLOW_NOT_FOUND
    """
    get_user_service().unfollow(g.principal, user_id)
    return "", 204


@bp.get("/followed")
@jwt_required()
def followed():
    """
    Accounts followed by `userId` (default: the caller)
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: query
        name: userId
        type: string
    responses:
      200:
        description: OK
    """
    user_id = request.args.get("userId") or g.principal.account_id
    accounts = get_user_service().followed(user_id)
    return jsonify({"data": follow_user_out_schema.dump(accounts)}), 200


@bp.get("/followers")
@jwt_required()
def followers():
    """
    Accounts following `userId` (default: the caller)
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: query
        name: userId
        type: string
    responses:
      200:
        description: OK
    """
    user_id = request.args.get("userId") or g.principal.account_id
    accounts = get_user_service().followers(user_id)
    return jsonify({"data": follow_user_out_schema.dump(accounts)}), 200
