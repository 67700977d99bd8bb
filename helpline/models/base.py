# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Base models with common configuration and document fields.
"""

import re
from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel
from bson import ObjectId


EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')


def generate_object_id() -> str:
    """Generate a new MongoDB ObjectId as string."""
    return str(ObjectId())


def utc_now() -> datetime:
    """Current timestamp, timezone-aware UTC."""
    return datetime.now(timezone.utc)


def normalize_email(value: Optional[str]) -> Optional[str]:
    """Trim and lower-case an email, raising ValueError on malformed input."""
    if value is None:
        return None
    value = value.strip().lower()
    if not value:
        return None
    if not EMAIL_PATTERN.match(value):
        raise ValueError('Invalid email format')
    return value


class CamelModel(BaseModel):
    """Model serialized with camelCase keys, the shape used on the wire and in MongoDB."""

    model_config = ConfigDict(
        # Allow population by field name or alias
        populate_by_name=True,
        alias_generator=to_camel,
        # Validate assignment
        validate_assignment=True
    )

    def to_wire(self) -> dict:
        """Serialize to a JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class BaseDocument(CamelModel):
    """Base for documents persisted by the backend."""

    id: str = Field(default_factory=generate_object_id, description="Unique identifier")
    created_at: datetime = Field(default_factory=utc_now, description="Creation timestamp")
    updated_at: datetime = Field(default_factory=utc_now, description="Last update timestamp")
    schema_version: int = Field(default=1, description="Schema version for migrations")

    def update_timestamp(self) -> None:
        """Refresh the updated_at field."""
        self.updated_at = utc_now()
