# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Auth client for email/password and Google sign-in.
"""

import logging
from typing import Optional

from ..domain.envelopes import parse_auth_response
from ..models.base import normalize_email
from ..models.entities import AuthResult
from .errors import AdoptionClientError, BackendRejectionError, SponsorValidationError
from .session import UserSession
from .transport import AdoptionApiClient

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 50


def _valid_email(email: Optional[str]) -> str:
    try:
        value = normalize_email(email)
    except ValueError as e:
        raise SponsorValidationError("Please enter a valid email address", field="email") from e
    if value is None:
        raise SponsorValidationError("Email is required", field="email")
    return value


class AuthClient:
    """Signs the session in and out against the auth endpoints."""

    def __init__(self, transport: AdoptionApiClient, session: UserSession):
        self.transport = transport
        self.session = session

    def _complete(self, body, email: str, status_hint: int = 200) -> AuthResult:
        result = parse_auth_response(body, fallback_email=email)
        if result is None:
            raise BackendRejectionError(status_hint, "Unexpected response from the server")
        self.session.sign_in(result)
        return result

    def login(self, email: str, password: str) -> AuthResult:
        """
        Log in with email and password.

        Raises:
            SponsorValidationError: Missing email or password
            NetworkError: Connectivity failure
            BackendRejectionError: Credentials rejected
        """
        email = _valid_email(email)
        if not password:
            raise SponsorValidationError("Password is required", field="password")

        body = self.transport.post_auth("/api/auth/login", {"email": email, "password": password})
        return self._complete(body, email)

    def signup(self, email: str, password: str, name: str) -> AuthResult:
        """Create an email account and sign it in."""
        email = _valid_email(email)
        name = (name or "").strip()
        if not MIN_NAME_LENGTH <= len(name) <= MAX_NAME_LENGTH:
            raise SponsorValidationError(
                f"Name must be between {MIN_NAME_LENGTH} and {MAX_NAME_LENGTH} characters", field="name"
            )
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise SponsorValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters", field="password"
            )

        body = self.transport.post_auth("/api/users", {"name": name, "email": email, "password": password})
        return self._complete(body, email, status_hint=201)

    def google_sign_in(
        self,
        email: str,
        name: Optional[str],
        profile_image: Optional[str],
        google_id: Optional[str] = None
    ) -> AuthResult:
        """
        Exchange identity fields obtained from Google for a backend session.

        The Google token exchange itself happens in the platform SDK; only its
        resulting identity is posted here.
        """
        email = _valid_email(email)
        payload = {"email": email, "name": name, "profile_image": profile_image}
        if google_id:
            payload["googleId"] = google_id

        body = self.transport.post_auth("/api/auth/google", payload)
        return self._complete(body, email)

    def logout(self) -> None:
        """Revoke the token server-side when possible, then clear the session."""
        if self.session.access_token():
            try:
                self.transport.post_auth("/api/auth/logout", {}, authenticated=True)
            except AdoptionClientError as e:
                logger.warning(f"Server-side logout failed, clearing local session anyway: {str(e)}")
        self.session.sign_out()
