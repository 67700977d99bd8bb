# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Core entity models for the Helpline adoption platform.
"""

from datetime import datetime
from typing import Optional, Dict, Any, Tuple
from pydantic import BaseModel, Field, field_validator, ConfigDict
from pydantic.alias_generators import to_camel
from .base import BaseDocument, CamelModel, normalize_email, utc_now
from .enums import Domain, AuthProvider


class SponsorshipOpportunity(BaseModel):
    """
    Canonical, domain-agnostic view of one adoptable case.

    Derived from a raw backend record by the normalizer and never persisted
    directly. All display strings are guaranteed non-empty.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Stable identifier as a string")
    display_name: str = Field(..., min_length=1, description="Resolved display name")
    age: Optional[int] = Field(None, description="Age when known and positive")
    location: str = Field(..., min_length=1, description="Resolved location")
    description: str = Field(..., min_length=1, description="Resolved description")
    need: str = Field(default="Support", description="Short statement of the need")
    total_amount: float = Field(default=0.0, ge=0, description="Total cost")
    amount_raised: float = Field(default=0.0, ge=0, description="Amount already raised")
    amount_needed: float = Field(default=0.0, ge=0, description="Outstanding amount")
    domain: Domain = Field(..., description="Partition this opportunity belongs to")
    is_sponsored: bool = Field(default=False, description="Already adopted")

    @property
    def is_selectable(self) -> bool:
        """Whether the opportunity may enter a pledge selection."""
        return bool(self.id) and not self.is_sponsored

    def to_record(
        self,
        sponsor_email: Optional[str],
        sponsor_id: Optional[str] = None,
        sponsored_at: Optional[datetime] = None
    ) -> "SponsorshipRecord":
        """Take a snapshot of this opportunity as a sponsorship record."""
        return SponsorshipRecord(
            opportunity_id=self.id,
            domain=self.domain,
            sponsor_email=sponsor_email,
            sponsor_id=sponsor_id,
            name=self.display_name,
            age=self.age,
            location=self.location,
            need=self.need,
            description=self.description,
            total_amount=self.total_amount,
            amount_raised=self.amount_raised,
            amount_needed=self.amount_needed,
            sponsored_at=sponsored_at or utc_now()
        )


class SponsorshipRecord(CamelModel):
    """
    Persisted link between a sponsor and an opportunity.

    A snapshot of the opportunity at sponsorship time, never a live reference.
    Records are immutable: un-sponsoring removes the record, nothing updates it.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        alias_generator=to_camel,
        frozen=True
    )

    opportunity_id: str = Field(..., min_length=1, description="Sponsored opportunity ID")
    domain: Domain = Field(..., description="Domain of the sponsored opportunity")
    sponsor_email: Optional[str] = Field(None, description="Sponsor email (join key)")
    sponsor_id: Optional[str] = Field(None, description="Sponsor user ID")
    name: str = Field(default="Unknown", description="Opportunity name at sponsorship time")
    age: Optional[int] = Field(None, description="Age at sponsorship time")
    location: str = Field(default="Location not specified")
    need: str = Field(default="Support")
    description: str = Field(default="No description available")
    total_amount: float = Field(default=0.0, ge=0)
    amount_raised: float = Field(default=0.0, ge=0)
    amount_needed: float = Field(default=0.0, ge=0)
    sponsored_at: datetime = Field(default_factory=utc_now, description="Sponsorship timestamp")

    @property
    def key(self) -> Tuple[str, Domain]:
        """Uniqueness key of the record for one user."""
        return (self.opportunity_id, self.domain)


class User(BaseDocument):
    """Backend user account."""

    email: str = Field(..., description="User email address")
    name: str = Field(..., min_length=1, max_length=200, description="User full name")
    password_hash: Optional[str] = Field(None, description="bcrypt hash, absent for Google accounts")
    auth_provider: AuthProvider = Field(default=AuthProvider.EMAIL, description="Authentication provider")
    google_id: Optional[str] = Field(None, description="Google account identifier")
    avatar: Optional[str] = Field(None, description="Profile image URL")
    phone: Optional[str] = Field(None, description="Contact phone")
    is_active: bool = Field(default=True, description="Whether the account may log in")

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
        """Validate user name."""
        if not v.strip():
            raise ValueError('User name cannot be empty')
        return v.strip()

    def public_view(self) -> Dict[str, Any]:
        """User fields safe to return to clients."""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "picture": self.avatar,
            "phone": self.phone,
            "authProvider": self.auth_provider.value
        }

    def to_document(self) -> Dict[str, Any]:
        """Render as a MongoDB document (camelCase, `_id` key)."""
        document = self.model_dump(by_alias=True, exclude={"id"})
        document["authProvider"] = self.auth_provider.value
        document["_id"] = self.id
        return document

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "User":
        """Build a user from a MongoDB document."""
        data = dict(document)
        if "_id" in data:
            data["id"] = str(data.pop("_id"))
        return cls.model_validate(data)


class SessionUser(CamelModel):
    """The acting user as known to a client session."""

    id: Optional[str] = Field(None, description="Backend user ID")
    email: Optional[str] = Field(None, description="Email, the sponsorship join key")
    name: Optional[str] = Field(None, description="Display name")
    phone: Optional[str] = Field(None, description="Contact phone")
    picture: Optional[str] = Field(None, description="Profile image URL")

    @field_validator('email', mode='before')
    @classmethod
    def strip_email(cls, v):
        """Blank emails count as missing."""
        if isinstance(v, str):
            v = v.strip().lower()
            return v or None
        return v

    @property
    def join_key(self) -> Optional[str]:
        return self.email


class UserContext(BaseModel):
    """Authenticated request context built from a bearer token."""

    user_id: str = Field(..., description="Authenticated user ID")
    email: Optional[str] = Field(None, description="User email")
    name: Optional[str] = Field(None, description="User display name")
    token_payload: Optional[Dict[str, Any]] = Field(None, description="Original JWT payload")
    ip_address: Optional[str] = Field(None, description="Client IP address")
    user_agent: Optional[str] = Field(None, description="Client user agent")


class AuthResult(BaseModel):
    """Canonical outcome of a login, signup or Google sign-in call."""

    user: SessionUser = Field(..., description="Signed-in user")
    access_token: Optional[str] = Field(None, description="Bearer token")
    refresh_token: Optional[str] = Field(None, description="Refresh token")
    message: Optional[str] = Field(None, description="Backend message")
