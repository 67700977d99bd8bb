# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request models for API endpoints.
"""

from typing import Optional
from pydantic import BaseModel, Field, AliasChoices, ConfigDict, field_validator
from .base import normalize_email


class LoginRequest(BaseModel):
    """Request model for email/password login."""

    email: str = Field(..., description="User email")
    password: str = Field(..., min_length=1, description="User password")

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        """Validate email format."""
        email = normalize_email(v)
        if email is None:
            raise ValueError('Email is required')
        return email


class SignupRequest(BaseModel):
    """Request model for creating an email account."""

    name: str = Field(..., min_length=2, max_length=50, description="User full name")
    email: str = Field(..., description="User email address")
    password: str = Field(..., min_length=6, description="User password")
    phone: Optional[str] = Field(None, max_length=30, description="Contact phone")

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        """Validate email format."""
        email = normalize_email(v)
        if email is None:
            raise ValueError('Email is required')
        return email

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError('Name cannot be empty')
        return v.strip()


class GoogleAuthRequest(BaseModel):
    """
    Request model for Google sign-in.

    The mobile client has posted the picture under several names over time,
    all of them are accepted.
    """

    model_config = ConfigDict(populate_by_name=True)

    email: str = Field(..., description="Google account email")
    name: Optional[str] = Field(None, description="Google display name")
    profile_image: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("profile_image", "profileImage", "picture"),
        description="Profile image URL"
    )
    google_id: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("googleId", "google_id"),
        description="Google account identifier"
    )

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        """Validate email format."""
        email = normalize_email(v)
        if email is None:
            raise ValueError('Email is required')
        return email


class UpdateUserRequest(BaseModel):
    """Request model for profile updates, every field optional."""

    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = Field(None, min_length=2, max_length=50, description="User full name")
    email: Optional[str] = Field(None, description="User email address")
    phone: Optional[str] = Field(None, max_length=30, description="Contact phone")
    profile_image: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("profile_image", "profileImage", "picture", "avatar"),
        description="Profile image URL"
    )
    is_active: Optional[bool] = Field(
        None, validation_alias=AliasChoices("isActive", "is_active"), description="Account enabled"
    )

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        return normalize_email(v)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if v is not None and not v.strip():
            raise ValueError('Name cannot be empty')
        return v.strip() if v else v


class PasswordUpdateRequest(BaseModel):
    """Request model for changing the password of an email account."""

    model_config = ConfigDict(populate_by_name=True)

    current_password: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("currentPassword", "current_password"),
        description="Current password"
    )
    new_password: str = Field(
        ...,
        min_length=6,
        validation_alias=AliasChoices("newPassword", "new_password"),
        description="New password"
    )


class AdoptRequest(BaseModel):
    """Request body of `POST /api/adopt-{domain}/{id}/adopt`."""

    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = Field(None, description="Sponsor email (join key)")
    adopter_name: Optional[str] = Field(
        None, validation_alias=AliasChoices("adopterName", "adopter_name"), description="Sponsor display name"
    )
    adopter_email: Optional[str] = Field(
        None, validation_alias=AliasChoices("adopterEmail", "adopter_email"), description="Sponsor contact email"
    )
    adopter_phone: Optional[str] = Field(
        None, validation_alias=AliasChoices("adopterPhone", "adopter_phone"), description="Sponsor contact phone"
    )
    user_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("userId", "user_id"), description="Sponsor user ID"
    )

    @field_validator('email', 'adopter_email')
    @classmethod
    def validate_email(cls, v):
        return normalize_email(v)

    @property
    def join_email(self) -> Optional[str]:
        """Email used to resolve the sponsor: `email` first, then `adopterEmail`."""
        return self.email or self.adopter_email


class AdopterQuery(BaseModel):
    """Identity query parameters of the unadopt and my-adoptions endpoints."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("userId", "user_id"), description="Sponsor user ID"
    )
    email: Optional[str] = Field(None, description="Sponsor email")
    phone: Optional[str] = Field(None, description="Sponsor phone")

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        return normalize_email(v)

    @field_validator('user_id', 'phone')
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def has_identity(self) -> bool:
        return bool(self.user_id or self.email or self.phone)
