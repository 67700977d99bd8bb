# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Token and password service for sponsor accounts.

Access and refresh tokens are RS256 JWTs. Each carries a `jti`, which is the
key written to the Redis blocklist when a sponsor logs out.
"""

import os
import uuid
import jwt
import bcrypt
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, Tuple
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from opentelemetry import trace
import logging

from ..models.entities import User

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

ACCESS = "access"
REFRESH = "refresh"


class TokenIssueError(Exception):
    """Raised when a token cannot be signed."""
    pass


class TokenValidationError(Exception):
    """Raised when token validation fails."""
    pass


def generate_dev_key_pair() -> Tuple[str, str]:
    """Create a throwaway RSA key pair, returned as (private PEM, public PEM)."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption()
    )
    public_pem = key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo
    )
    return private_pem.decode("utf-8"), public_pem.decode("utf-8")


class AuthService:
    """Issues and checks sponsor tokens, hashes sponsor passwords."""

    algorithm = "RS256"

    def __init__(
        self,
        private_key: Optional[str] = None,
        public_key: Optional[str] = None,
        access_token_expire_minutes: int = 60 * 24,
        refresh_token_expire_days: int = 30,
        bcrypt_rounds: int = 12
    ):
        """
        Args:
            private_key: PEM signing key, JWT_PRIVATE_KEY when omitted
            public_key: PEM verification key, JWT_PUBLIC_KEY when omitted
            access_token_expire_minutes: Access token lifetime
            refresh_token_expire_days: Refresh token lifetime
            bcrypt_rounds: bcrypt cost factor

        A missing half of the key pair replaces both halves with a
        generated development pair.
        """
        private_key = private_key or os.getenv("JWT_PRIVATE_KEY")
        public_key = public_key or os.getenv("JWT_PUBLIC_KEY")
        if not (private_key and public_key):
            logger.warning("JWT keys not configured, using a generated development key pair")
            private_key, public_key = generate_dev_key_pair()

        self.private_key = private_key
        self.public_key = public_key
        self.lifetimes = {
            ACCESS: timedelta(minutes=access_token_expire_minutes),
            REFRESH: timedelta(days=refresh_token_expire_days)
        }
        self.bcrypt_rounds = bcrypt_rounds

    # Passwords

    def hash_password(self, password: str) -> str:
        with tracer.start_as_current_span("auth.hash_password"):
            digest = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=self.bcrypt_rounds))
            return digest.decode("utf-8")

    def verify_password(self, password: str, hashed_password: Optional[str]) -> bool:
        """False for a wrong password, a missing hash or a hash bcrypt cannot read."""
        if not hashed_password:
            return False

        with tracer.start_as_current_span("auth.verify_password") as span:
            try:
                matches = bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
            except ValueError as e:
                logger.error(f"Stored password hash is unreadable: {str(e)}")
                matches = False
            span.set_attribute("auth.password_match", matches)
            return matches

    # Tokens

    def _sign(self, user: User, kind: str, issued_at: datetime) -> str:
        claims = {
            "sub": user.id,
            "jti": uuid.uuid4().hex,
            "iat": issued_at,
            "exp": issued_at + self.lifetimes[kind],
            "type": kind
        }
        if kind == ACCESS:
            claims.update(email=user.email, name=user.name)
        try:
            return jwt.encode(claims, self.private_key, algorithm=self.algorithm)
        except (jwt.PyJWTError, ValueError, TypeError) as e:
            logger.error(f"Could not sign {kind} token: {str(e)}", extra={"user_id": user.id})
            raise TokenIssueError(f"Failed to generate tokens: {str(e)}")

    def generate_tokens(self, user: User) -> Dict[str, Any]:
        """
        Sign an access/refresh token pair for a sponsor.

        Returns:
            Dict with access_token, refresh_token, token_type and expires_in (seconds)
        """
        with tracer.start_as_current_span("auth.generate_tokens", attributes={"user.id": user.id}):
            issued_at = datetime.now(timezone.utc)
            tokens = {
                "access_token": self._sign(user, ACCESS, issued_at),
                "refresh_token": self._sign(user, REFRESH, issued_at),
                "token_type": "Bearer",
                "expires_in": int(self.lifetimes[ACCESS].total_seconds())
            }

        logger.info("Issued tokens", extra={"user_id": user.id})
        return tokens

    def validate_token(self, token: str, token_type: str = ACCESS) -> Dict[str, Any]:
        """
        Verify signature, expiry and kind of a token.

        Raises:
            TokenValidationError: Expired, malformed, badly signed or of the wrong kind
        """
        with tracer.start_as_current_span("auth.validate_token") as span:
            span.set_attribute("auth.token_type", token_type)
            try:
                payload = jwt.decode(token, self.public_key, algorithms=[self.algorithm])
            except jwt.ExpiredSignatureError:
                span.set_attribute("auth.validation_result", "expired")
                raise TokenValidationError("Token has expired")
            except jwt.InvalidTokenError as e:
                span.set_attribute("auth.validation_result", "invalid")
                raise TokenValidationError(f"Invalid token: {str(e)}")

            if payload.get("type") != token_type:
                span.set_attribute("auth.validation_result", "wrong_type")
                raise TokenValidationError(f"Invalid token type. Expected {token_type}")

            span.set_attribute("auth.validation_result", "valid")
            return payload

    def extract_token_id(self, token: str) -> str:
        """
        Blocklist key of a token, read without verifying the signature.

        Raises:
            TokenValidationError: If the token cannot be decoded at all
        """
        try:
            payload = jwt.decode(token, options={"verify_signature": False})
        except jwt.InvalidTokenError as e:
            raise TokenValidationError(f"Invalid token format: {str(e)}")
        return payload.get("jti") or f"{payload.get('sub')}:{payload.get('iat')}:{payload.get('type')}"
