# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
User account endpoints.
"""

from flask import jsonify, current_app, g
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
from pydantic import BaseModel, Field
import logging

from ..middleware.auth import require_auth
from ..middleware.error_handler import AuthorizationException
from ..models.requests import PasswordUpdateRequest, SignupRequest, UpdateUserRequest
from ..utils.request import RequestParser
from .auth import build_auth_response

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

users_tag = Tag(name="Users", description="User accounts")
users_bp = APIBlueprint(
    'users',
    __name__,
    url_prefix='/api/users',
    abp_tags=[users_tag]
)


class UserPath(BaseModel):
    user_id: str = Field(..., description="User identifier")


def _require_owner(user_id: str) -> None:
    if g.user_context.user_id != user_id:
        raise AuthorizationException("You can only manage your own account")


@users_bp.post('')
def create_user():
    """
    Sign up with email and password.

    The new account is signed in right away, so the response carries tokens.
    """
    with tracer.start_as_current_span("users.create") as span:
        signup_request = RequestParser.parse_body(SignupRequest)
        user = current_app.user_service.signup(signup_request)
        span.set_attribute("user.id", user.id)
        return jsonify(build_auth_response(user, "User created successfully")), 201


@users_bp.get('/<user_id>')
def get_user(path: UserPath):
    """Get a user's public profile."""
    user = current_app.user_service.get_user(path.user_id)
    return jsonify({"success": True, "data": user.public_view()})


@users_bp.put('/<user_id>')
@require_auth
def update_user(path: UserPath):
    """Update the caller's own profile."""
    _require_owner(path.user_id)
    update_request = RequestParser.parse_body(UpdateUserRequest)
    user = current_app.user_service.update_user(path.user_id, update_request)
    return jsonify({"success": True, "message": "User updated successfully", "data": user.public_view()})


@users_bp.put('/<user_id>/password')
@require_auth
def update_password(path: UserPath):
    """
    Change the caller's password.

    The current password must be supplied and match.
    """
    _require_owner(path.user_id)
    password_request = RequestParser.parse_body(PasswordUpdateRequest)
    current_app.user_service.update_password(path.user_id, password_request)
    return jsonify({"success": True, "message": "Password updated successfully"})


@users_bp.delete('/<user_id>')
@require_auth
def delete_user(path: UserPath):
    """Delete the caller's account and release the cases it sponsored."""
    _require_owner(path.user_id)
    with tracer.start_as_current_span("users.delete") as span:
        user = current_app.user_service.delete_user(path.user_id)
        released = current_app.adoption_service.release_user_sponsorships(user.id)
        span.set_attribute("adoption.released", released)
        logger.info("Account deleted", extra={"user_id": user.id, "released": released})
        return jsonify({"success": True, "message": "User deleted successfully"})
