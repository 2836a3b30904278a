"""
Authentication blueprint:
- POST /auth/register
- POST /auth/login
- POST /auth/refresh-token
- POST /auth/forgot-password
- POST /auth/reset-password
- PUT  /auth/update-password   (bearer)
- POST /auth/logout            (bearer)

Access tokens are short-lived JWTs (HS256); refresh tokens are opaque,
single-use and stored server-side as keyed digests. Request bodies are
validated by marshmallow before the service is called (422 on failure).
"""
from __future__ import annotations

from flask import Blueprint, request, jsonify, g

from spotlight.api.extensions import rate_limited
from spotlight.models.schemas.auth import (
    RegisterSchema,
    LoginSchema,
    RefreshTokenSchema,
    ForgotPasswordSchema,
    ResetPasswordSchema,
    UpdatePasswordSchema,
    AuthenticationResponseSchema,
)
from spotlight.services import get_auth_service
from spotlight.utils.decorators import jwt_required
from spotlight.utils.request_context import client_ip, user_agent

bp = Blueprint("auth", __name__, url_prefix="/auth")

register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_token_schema = RefreshTokenSchema()
forgot_password_schema = ForgotPasswordSchema()
reset_password_schema = ResetPasswordSchema()
update_password_schema = UpdatePasswordSchema()
auth_response_schema = AuthenticationResponseSchema()


def _body() -> dict:
    return request.get_json(silent=True) or {}


@bp.post("/register")
@rate_limited("registration")
def register():
    """
    Register a new account and sign it in.
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
          required: [name, email, password]
          properties:
            name: { type: string }
            email: { type: string }
            password: { type: string }
            areaActivity: { type: string }
    responses:
      201:
        description: Created (tokens, user, account, session)
      400:
        description: EMAIL_ALREADY_REGISTERED
      422:
        description: Validation error
    """
    data = register_schema.load(_body())
    result = get_auth_service().register(
        name=data["name"],
        email=data["email"],
        password=data["password"],
        area_activity=data.get("area_activity"),
        ip_address=client_ip(),
        user_agent=user_agent(),
    )
    return jsonify(auth_response_schema.dump(result)), 201


@bp.post("/login")
@rate_limited("login")
def login():
    """
    Login: returns tokens plus the user, account and session views
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
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK
      401:
        description: INVALID_CREDENTIALS or ACCOUNT_DISABLED
      422:
        description: Validation error
    """
    data = login_schema.load(_body())
    result = get_auth_service().login(
        email=data["email"],
        password=data["password"],
        ip_address=client_ip(),
        user_agent=user_agent(),
    )
    return jsonify(auth_response_schema.dump(result)), 200


@bp.post("/refresh-token")
@rate_limited("login")
def refresh_token():
    """
    Exchange a refresh token for a new token pair (rotation)
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
           required: [refreshToken]
           properties:
             refreshToken: { type: string }
    responses:
      200:
        description: OK
      401:
        description: INVALID_REFRESH_TOKEN, REFRESH_TOKEN_EXPIRED or ACCOUNT_DISABLED
    """
    data = refresh_token_schema.load(_body())
    result = get_auth_service().refresh_token(data["refresh_token"], ip_address=client_ip())
    return jsonify(auth_response_schema.dump(result)), 200


@bp.post("/forgot-password")
@rate_limited("login")
def forgot_password():
    """
    Request a password reset link (same answer whether or not the email exists)
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
           required: [email, urlCallback]
           properties:
             email: { type: string }
             urlCallback: { type: string }
    responses:
      200:
        description: Generic message
      422:
        description: Validation error
    """
    data = forgot_password_schema.load(_body())
    return jsonify(get_auth_service().forgot_password(data["email"], data["url_callback"])), 200


@bp.post("/reset-password")
@rate_limited("login")
def reset_password():
    """
    Set a new password using an emailed reset token
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
           required: [token, newPassword]
           properties:
             token: { type: string }
             newPassword: { type: string }
    responses:
      200:
        description: Password changed; every session is signed out
      400:
        description: INVALID_RESET_TOKEN
    """
    data = reset_password_schema.load(_body())
    return jsonify(get_auth_service().reset_password(data["token"], data["new_password"])), 200


@bp.put("/update-password")
@jwt_required()
def update_password():
    """
    Change password (signs out every session)
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [currentPassword, newPassword, confirmNewPassword]
           properties:
             currentPassword: { type: string }
             newPassword: { type: string }
             confirmNewPassword: { type: string }
    responses:
      200:
        description: OK
      400:
        description: PASSWORDS_DO_NOT_MATCH
      401:
        description: INVALID_CURRENT_PASSWORD
      404:
        description: USER_NOT_FOUND
    """
    data = update_password_schema.load(_body())
    result = get_auth_service().update_password(
        g.principal,
        current_password=data["current_password"],
        new_password=data["new_password"],
        confirm_new_password=data["confirm_new_password"],
    )
    return jsonify(result), 200


@bp.post("/logout")
@jwt_required()
def logout():
    """
    Logout: revokes every refresh token of the caller
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    return jsonify(get_auth_service().logout(g.principal)), 200
