# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Error handling middleware rendering every failure as a response envelope.

Clients read `{"success": false, "message": ..., "errors": [...]}` from any
non-2xx response and show `message` verbatim.
"""

from flask import Flask, request, jsonify
from werkzeug.exceptions import HTTPException
from typing import Dict, Any, List, Optional, Tuple
from opentelemetry import trace
import logging

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


def error_envelope(message: str, errors: Optional[List[Any]] = None) -> Dict[str, Any]:
    """Build the failure envelope."""
    body = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return body


class ErrorHandlerMiddleware:
    """Centralized error handling for the Flask application."""

    def __init__(self, app: Flask):
        self.app = app
        self.register_error_handlers()

    def register_error_handlers(self):
        """Register error handlers with the Flask application."""

        @self.app.errorhandler(CustomException)
        def handle_custom_exception(error):
            return self.handle_custom_exception(error)

        @self.app.errorhandler(HTTPException)
        def handle_http_exception(error):
            if error.code is not None and error.code >= 500:
                return self.handle_server_error(error)
            return self.handle_client_error(error)

        @self.app.errorhandler(Exception)
        def handle_generic_exception(error):
            return self.handle_unexpected_error(error)

    def handle_custom_exception(self, error: "CustomException") -> Tuple[Any, int]:
        with tracer.start_as_current_span("error_handler.custom_exception") as span:
            span.set_attributes({
                "error.type": error.error_type,
                "error.status": error.status_code,
                "http.method": request.method,
                "http.path": request.path
            })

            logger.warning(
                f"Request failed: {error.message}",
                extra={
                    "error_type": error.error_type,
                    "status_code": error.status_code,
                    "path": request.path,
                    "method": request.method
                }
            )

            errors = error.validation_errors if isinstance(error, ValidationException) else None
            return jsonify(error_envelope(error.message, errors)), error.status_code

    def handle_client_error(self, error: HTTPException) -> Tuple[Any, int]:
        """Handle werkzeug 4xx errors (unknown route, wrong method, malformed JSON)."""
        detail = str(error.description) if error.description else error.name
        logger.warning(
            f"Client error: {error.name}",
            extra={
                "status_code": error.code,
                "detail": detail,
                "path": request.path,
                "method": request.method,
                "ip_address": request.remote_addr
            }
        )
        return jsonify(error_envelope(detail)), error.code

    def handle_server_error(self, error: HTTPException) -> Tuple[Any, int]:
        logger.error(
            f"Server error: {error.name}",
            extra={"status_code": error.code, "path": request.path, "method": request.method},
            exc_info=True
        )
        detail = str(error.description) if error.description else error.name
        if self.app.config.get('ENVIRONMENT') == 'production':
            detail = "An internal server error occurred"
        return jsonify(error_envelope(detail)), error.code

    def handle_unexpected_error(self, error: Exception) -> Tuple[Any, int]:
        """Handle exceptions not caught by specific handlers."""
        with tracer.start_as_current_span("error_handler.unexpected_error") as span:
            span.set_attributes({
                "error.type": "unexpected-error",
                "error.class": error.__class__.__name__,
                "http.method": request.method,
                "http.path": request.path
            })
            span.record_exception(error)

            logger.error(
                f"Unexpected error: {error.__class__.__name__}",
                extra={
                    "error_class": error.__class__.__name__,
                    "error_message": str(error),
                    "path": request.path,
                    "method": request.method
                },
                exc_info=True
            )

            detail = "An unexpected error occurred"
            if self.app.config.get('ENVIRONMENT') != 'production':
                detail = f"{error.__class__.__name__}: {str(error)}"

            return jsonify(error_envelope(detail)), 500


class CustomException(Exception):
    """Base class for custom application exceptions."""

    def __init__(self, message: str, status_code: int = 500, error_type: str = "application-error"):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_type = error_type


class ValidationException(CustomException):
    """Exception for validation errors."""

    def __init__(self, message: str, validation_errors: list = None):
        super().__init__(message, 400, "validation-error")
        self.validation_errors = validation_errors or []

    @classmethod
    def from_pydantic(cls, error) -> "ValidationException":
        """Wrap a pydantic ValidationError, using its first message as the summary."""
        errors = [
            {"field": ".".join(str(part) for part in item.get("loc", ())), "msg": item.get("msg")}
            for item in error.errors()
        ]
        message = errors[0]["msg"] if errors else "Invalid request"
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        return cls(message, errors)


class AuthenticationException(CustomException):
    """Exception for authentication errors."""

    def __init__(self, message: str):
        super().__init__(message, 401, "authentication-required")


class AuthorizationException(CustomException):
    """Exception for authorization errors."""

    def __init__(self, message: str):
        super().__init__(message, 403, "insufficient-permissions")


class NotFoundException(CustomException):
    """Exception for resource not found errors."""

    def __init__(self, message: str):
        super().__init__(message, 404, "resource-not-found")


class ConflictException(CustomException):
    """Exception for resource conflict errors."""

    def __init__(self, message: str):
        super().__init__(message, 409, "resource-conflict")


class ServiceUnavailableException(CustomException):
    """Exception for service unavailable errors."""

    def __init__(self, message: str):
        super().__init__(message, 503, "service-unavailable")
