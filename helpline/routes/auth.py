# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Authentication endpoints for login, Google sign-in and logout.
"""

from flask import request, jsonify, current_app, g
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
import logging
from typing import Dict, Any, Optional

from ..middleware.auth import require_auth
from ..middleware.error_handler import ServiceUnavailableException
from ..models.entities import User
from ..models.requests import GoogleAuthRequest, LoginRequest
from ..utils.request import RequestParser

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

auth_tag = Tag(name="Authentication", description="User authentication and token management")
auth_bp = APIBlueprint(
    'auth',
    __name__,
    url_prefix='/api/auth',
    abp_tags=[auth_tag]
)


def build_auth_response(user: User, message: str, tokens: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Build the user + token envelope returned by login, signup and Google sign-in.

    The token is exposed under `token` and `accessToken` and the user under
    both `user` and `data`, so older and newer mobile clients read the same body.
    """
    tokens = tokens or current_app.auth_service.generate_tokens(user)
    user_view = user.public_view()
    return {
        "success": True,
        "message": message,
        "user": user_view,
        "data": user_view,
        "token": tokens["access_token"],
        "accessToken": tokens["access_token"],
        "refreshToken": tokens["refresh_token"],
        "tokenType": tokens["token_type"],
        "expiresIn": tokens["expires_in"]
    }


@auth_bp.post('/login')
def login():
    """
    Authenticate with email and password and return JWT tokens.
    """
    with tracer.start_as_current_span(
        "auth.login",
        attributes={"operation": "login", "ip_address": request.remote_addr}
    ) as span:
        login_request = RequestParser.parse_body(LoginRequest)
        user = current_app.user_service.authenticate(login_request)

        span.set_attribute("user.id", user.id)
        span.set_status(Status(StatusCode.OK))
        logger.info(
            "User logged in successfully",
            extra={"user_id": user.id, "ip_address": request.remote_addr}
        )
        return jsonify(build_auth_response(user, "Login successful"))


@auth_bp.post('/google')
def google_login():
    """
    Sign in with a Google identity, creating the account on first use.
    """
    if not current_app.config.get('GOOGLE_AUTH_ENABLED', True):
        raise ServiceUnavailableException("Google sign-in is not available")

    with tracer.start_as_current_span(
        "auth.google",
        attributes={"operation": "google_login", "ip_address": request.remote_addr}
    ) as span:
        google_request = RequestParser.parse_body(GoogleAuthRequest)
        user, created = current_app.user_service.google_login(google_request)

        span.set_attributes({"user.id": user.id, "auth.user_created": created})
        logger.info(
            "Google sign-in successful",
            extra={"user_id": user.id, "created": created, "ip_address": request.remote_addr}
        )
        message = "Account created successfully" if created else "Login successful"
        return jsonify(build_auth_response(user, message)), 201 if created else 200


@auth_bp.post('/logout')
@require_auth
def logout():
    """
    Revoke the caller's access token.
    """
    user_context = g.user_context
    with tracer.start_as_current_span(
        "auth.logout",
        attributes={"operation": "logout", "user.id": user_context.user_id}
    ) as span:
        payload = user_context.token_payload or {}
        token_id = payload.get("jti")
        token_exp = payload.get("exp")

        if token_id and token_exp:
            if not current_app.redis_service.block_token(token_id, int(token_exp)):
                span.set_attribute("auth.token_blocked", False)
                logger.warning(
                    "Failed to block token in Redis",
                    extra={"user_id": user_context.user_id}
                )

        logger.info(
            "User logged out successfully",
            extra={"user_id": user_context.user_id, "ip_address": request.remote_addr}
        )
        return jsonify({"success": True, "message": "Logged out successfully"})


@auth_bp.get('/me')
@require_auth
def current_user():
    """Profile of the user the bearer token belongs to."""
    user = current_app.user_service.get_user(g.user_context.user_id)
    view = user.public_view()
    return jsonify({"success": True, "user": view, "data": view})
