# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
User account service: signup, password login, Google login and lookups.
"""

import logging
from typing import Optional, Tuple

from bson import ObjectId
from opentelemetry import trace
from pydantic.alias_generators import to_camel
from pymongo.errors import DuplicateKeyError

from ..middleware.error_handler import (
    AuthenticationException,
    AuthorizationException,
    ConflictException,
    NotFoundException
)
from ..models.base import normalize_email, utc_now
from ..models.entities import User
from ..models.enums import AuthProvider
from ..models.requests import (
    GoogleAuthRequest,
    LoginRequest,
    PasswordUpdateRequest,
    SignupRequest,
    UpdateUserRequest
)
from .auth import AuthService
from .mongodb import MongoDBService

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

DEACTIVATED_MESSAGE = "Your account has been deactivated. Please contact support."
INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"


def _id_filter(user_id: str) -> dict:
    return {"_id": ObjectId(user_id) if ObjectId.is_valid(user_id) else user_id}


class UserService:
    """User accounts stored in the `users` collection."""

    def __init__(self, mongodb_service: MongoDBService, auth_service: AuthService):
        self.mongodb = mongodb_service
        self.auth = auth_service

    # Lookups

    def find_by_id(self, user_id: str) -> Optional[User]:
        if not user_id:
            return None
        document = self.mongodb.users.find_one(_id_filter(user_id))
        return User.from_document(document) if document else None

    def find_by_email(self, email: Optional[str]) -> Optional[User]:
        try:
            email = normalize_email(email)
        except ValueError:
            return None
        if not email:
            return None
        document = self.mongodb.users.find_one({"email": email})
        return User.from_document(document) if document else None

    def find_by_phone(self, phone: Optional[str]) -> Optional[User]:
        if not phone:
            return None
        document = self.mongodb.users.find_one({"phone": phone.strip()})
        return User.from_document(document) if document else None

    def resolve(self, user_id: Optional[str] = None, email: Optional[str] = None,
                phone: Optional[str] = None) -> Optional[User]:
        """Resolve a user by id, then email, then phone."""
        return self.find_by_id(user_id) or self.find_by_email(email) or self.find_by_phone(phone)

    def get_user(self, user_id: str) -> User:
        """
        Raises:
            NotFoundException: If no user has this id
        """
        user = self.find_by_id(user_id)
        if user is None:
            raise NotFoundException("User not found")
        return user

    # Writes

    def _insert(self, user: User) -> User:
        document = user.to_document()
        if ObjectId.is_valid(user.id):
            document["_id"] = ObjectId(user.id)
        try:
            self.mongodb.users.insert_one(document)
        except DuplicateKeyError:
            raise ConflictException("User with this email already exists")
        return user

    def signup(self, request: SignupRequest) -> User:
        """
        Create an email/password account.

        Raises:
            ConflictException: If the email is already registered
        """
        with tracer.start_as_current_span("users.signup") as span:
            if self.find_by_email(request.email) is not None:
                span.set_attribute("users.result", "duplicate")
                raise ConflictException("User with this email already exists")

            user = User(
                email=request.email,
                name=request.name,
                phone=request.phone,
                password_hash=self.auth.hash_password(request.password),
                auth_provider=AuthProvider.EMAIL
            )
            self._insert(user)
            span.set_attribute("users.result", "created")

        logger.info("User created", extra={"user_id": user.id, "auth_provider": user.auth_provider.value})
        return user

    def authenticate(self, request: LoginRequest) -> User:
        """
        Check email/password credentials.

        Raises:
            AuthenticationException: Unknown email, wrong password or Google-only account
            AuthorizationException: Deactivated account
        """
        with tracer.start_as_current_span("users.authenticate") as span:
            user = self.find_by_email(request.email)
            if user is None:
                span.set_attribute("auth.result", "user_not_found")
                logger.warning("Login attempt with non-existent email")
                raise AuthenticationException(INVALID_CREDENTIALS_MESSAGE)

            if user.auth_provider != AuthProvider.EMAIL or not user.password_hash:
                span.set_attribute("auth.result", "wrong_provider")
                raise AuthenticationException(
                    "This account uses Google authentication. Please login with Google."
                )

            if not self.auth.verify_password(request.password, user.password_hash):
                span.set_attribute("auth.result", "invalid_password")
                logger.warning("Login attempt with invalid password", extra={"user_id": user.id})
                raise AuthenticationException(INVALID_CREDENTIALS_MESSAGE)

            if not user.is_active:
                span.set_attribute("auth.result", "inactive")
                raise AuthorizationException(DEACTIVATED_MESSAGE)

            span.set_attribute("auth.result", "success")
            return user

    def google_login(self, request: GoogleAuthRequest) -> Tuple[User, bool]:
        """
        Sign in with identity fields obtained from Google.

        The account is found by Google id first, then by email (linking it to
        Google), and created otherwise.

        Returns:
            Tuple of (user, created)
        """
        with tracer.start_as_current_span("users.google_login") as span:
            user = None
            if request.google_id:
                document = self.mongodb.users.find_one({"googleId": request.google_id})
                user = User.from_document(document) if document else None
            if user is None:
                user = self.find_by_email(request.email)

            if user is None:
                user = User(
                    email=request.email,
                    name=request.name or "Google User",
                    auth_provider=AuthProvider.GOOGLE,
                    google_id=request.google_id,
                    avatar=request.profile_image
                )
                self._insert(user)
                span.set_attribute("users.result", "created")
                logger.info("Google user created", extra={"user_id": user.id})
                return user, True

            if not user.is_active:
                raise AuthorizationException(DEACTIVATED_MESSAGE)

            updates = {
                "authProvider": AuthProvider.GOOGLE.value,
                "email": request.email,
                "updatedAt": utc_now()
            }
            if request.google_id:
                updates["googleId"] = request.google_id
            if request.name:
                updates["name"] = request.name
            if request.profile_image:
                updates["avatar"] = request.profile_image

            self.mongodb.users.update_one(
                _id_filter(user.id),
                {"$set": updates, "$unset": {"passwordHash": ""}}
            )
            user = user.model_copy(update={
                "auth_provider": AuthProvider.GOOGLE,
                "email": request.email,
                "google_id": request.google_id or user.google_id,
                "name": request.name or user.name,
                "avatar": request.profile_image or user.avatar,
                "password_hash": None
            })
            span.set_attribute("users.result", "linked")
            return user, False


    # Account management

    def update_user(self, user_id: str, request: UpdateUserRequest) -> User:
        """
        Apply a partial profile update.

        Raises:
            NotFoundException: Unknown user
            ConflictException: The new email belongs to another account
        """
        with tracer.start_as_current_span("users.update") as span:
            span.set_attribute("user.id", user_id)
            user = self.get_user(user_id)

            if request.email and request.email != user.email:
                if self.find_by_email(request.email) is not None:
                    raise ConflictException("User with this email already exists")

            changes = {
                "name": request.name,
                "email": request.email,
                "phone": request.phone,
                "avatar": request.profile_image,
                "is_active": request.is_active
            }
            changes = {field: value for field, value in changes.items() if value is not None}
            user = user.model_copy(update=changes)
            user.update_timestamp()

            document = {to_camel(field): value for field, value in changes.items()}
            document["updatedAt"] = user.updated_at
            try:
                self.mongodb.users.update_one(_id_filter(user.id), {"$set": document})
            except DuplicateKeyError:
                raise ConflictException("User with this email already exists")

        logger.info("User updated", extra={"user_id": user.id, "fields": sorted(changes)})
        return user

    def update_password(self, user_id: str, request: PasswordUpdateRequest) -> None:
        """
        Replace the password after checking the current one.

        Raises:
            NotFoundException: Unknown user
            AuthenticationException: Current password is wrong, or the account has none
        """
        with tracer.start_as_current_span("users.update_password") as span:
            span.set_attribute("user.id", user_id)
            user = self.get_user(user_id)
            if not self.auth.verify_password(request.current_password, user.password_hash):
                span.set_attribute("users.result", "wrong_password")
                raise AuthenticationException("Current password is incorrect")

            self.mongodb.users.update_one(
                _id_filter(user.id),
                {"$set": {"passwordHash": self.auth.hash_password(request.new_password), "updatedAt": utc_now()}}
            )

        logger.info("Password updated", extra={"user_id": user_id})

    def delete_user(self, user_id: str) -> User:
        """
        Remove an account.

        Raises:
            NotFoundException: Unknown user
        """
        user = self.get_user(user_id)
        self.mongodb.users.delete_one(_id_filter(user.id))
        logger.info("User deleted", extra={"user_id": user.id})
        return user
