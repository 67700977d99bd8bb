# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Authentication middleware for JWT token validation and user context extraction.

Routes are decorated with `require_auth` or `optional_auth`; both resolve the
application's `AuthMiddleware` at request time and store the resulting
`UserContext` in `g.user_context`.
"""

from functools import wraps
from flask import request, current_app, g
from typing import Optional, Dict, Any, Callable
from opentelemetry import trace
import logging

from ..models.entities import UserContext
from ..services.auth import TokenValidationError
from .error_handler import AuthenticationException

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class AuthMiddleware:
    """
    Token extraction, blocklist checking and user context building.
    """

    def __init__(self, auth_service, redis_service):
        """
        Initialize the authentication middleware.

        Args:
            auth_service: JWT authentication service
            redis_service: Redis service for the token blocklist
        """
        self.auth_service = auth_service
        self.redis_service = redis_service

    def extract_token_from_request(self) -> Optional[str]:
        """
        Extract the bearer token from the Authorization header.

        Returns:
            JWT token string or None if not found
        """
        auth_header = request.headers.get('Authorization', '').strip()
        if not auth_header:
            return None

        if auth_header.lower().startswith('bearer '):
            return auth_header[7:].strip() or None

        return auth_header

    def is_token_blocked(self, token: str) -> bool:
        """
        Check if the token was revoked.

        Tokens whose identifier cannot be read count as blocked.
        """
        try:
            token_id = self.auth_service.extract_token_id(token)
        except TokenValidationError as e:
            logger.warning(f"Error checking token blocklist: {str(e)}")
            return True
        return bool(self.redis_service.is_token_blocked(token_id))

    def build_user_context(self, token_payload: Dict[str, Any], request_info: Dict[str, Any]) -> UserContext:
        """
        Build user context from a validated token payload.

        Args:
            token_payload: Decoded JWT payload
            request_info: Request metadata (IP, user agent)

        Returns:
            UserContext for request processing
        """
        return UserContext(
            user_id=token_payload["sub"],
            email=token_payload.get("email"),
            name=token_payload.get("name"),
            token_payload=token_payload,
            ip_address=request_info.get("ip_address"),
            user_agent=request_info.get("user_agent")
        )

    def get_request_info(self) -> Dict[str, Any]:
        return {
            "ip_address": request.remote_addr,
            "user_agent": request.headers.get('User-Agent', '')
        }

    def authenticate(self, token: str) -> UserContext:
        """
        Validate a token and build the caller's context.

        Raises:
            AuthenticationException: Revoked, expired or invalid token
        """
        with tracer.start_as_current_span("auth.middleware.validate_request") as span:
            span.set_attribute("auth.operation", "validate_request")

            if self.is_token_blocked(token):
                span.set_attribute("auth.result", "token_blocked")
                logger.warning("Authentication failed: token is blocked")
                raise AuthenticationException("Token has been revoked")

            try:
                token_payload = self.auth_service.validate_token(token, "access")
            except TokenValidationError as e:
                span.set_attribute("auth.result", "invalid_token")
                logger.warning(f"Authentication failed: {str(e)}")
                raise AuthenticationException(str(e))

            user_context = self.build_user_context(token_payload, self.get_request_info())
            span.set_attributes({"auth.result": "success", "user.id": user_context.user_id})
            logger.debug(
                "Authentication successful",
                extra={"user_id": user_context.user_id, "ip_address": user_context.ip_address}
            )
            return user_context


def require_auth(f: Callable) -> Callable:
    """Reject the request with 401 unless it carries a valid bearer token."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_middleware = current_app.auth_middleware
        token = auth_middleware.extract_token_from_request()
        if not token:
            logger.warning("Authentication failed: missing token")
            raise AuthenticationException("Missing authorization token")

        g.user_context = auth_middleware.authenticate(token)
        return f(*args, **kwargs)

    return decorated_function


def optional_auth(f: Callable) -> Callable:
    """
    Build the user context when a bearer token is sent.

    Anonymous requests pass with `g.user_context` set to None; a token that
    is present but revoked or invalid is still rejected with 401.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_middleware = current_app.auth_middleware
        token = auth_middleware.extract_token_from_request()
        g.user_context = auth_middleware.authenticate(token) if token else None
        return f(*args, **kwargs)

    return decorated_function
