# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Enumeration types for the Helpline adoption platform.
"""

from enum import Enum
from typing import Union


class Domain(str, Enum):
    """Fixed partitions of adoption opportunities."""
    HEALTH = "health"
    HIGHER_EDUCATION = "higher-education"
    SCHOOL_STUDENT = "school-student"
    WELFARE = "welfare"

    @property
    def path_segment(self) -> str:
        """Segment used in the `/api/adopt-{segment}` endpoint family."""
        return _PATH_SEGMENTS[self]

    @property
    def collection_name(self) -> str:
        """MongoDB collection holding this domain's cases."""
        return "adopt_" + self.path_segment.replace("-", "_")

    @property
    def display_title(self) -> str:
        return _TITLES[self]

    @classmethod
    def parse(cls, value: Union[str, "Domain"]) -> "Domain":
        """Accept either the enum value or the endpoint path segment."""
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        for domain in cls:
            if normalized in (domain.value, domain.path_segment):
                return domain
        raise ValueError(f"Unknown adoption domain: {value}")


_PATH_SEGMENTS = {
    Domain.HEALTH: "health",
    Domain.HIGHER_EDUCATION: "higher-education",
    Domain.SCHOOL_STUDENT: "school",
    Domain.WELFARE: "welfare",
}

_TITLES = {
    Domain.HEALTH: "Health",
    Domain.HIGHER_EDUCATION: "Higher Education",
    Domain.SCHOOL_STUDENT: "School Student",
    Domain.WELFARE: "Welfare Work",
}


class PartitionState(str, Enum):
    """Fetch state of one domain partition in the sponsorship store."""
    IDLE = "idle"
    FETCHING = "fetching"
    READY = "ready"
    FAILED = "failed"


class AuthProvider(str, Enum):
    """How a user account authenticates."""
    EMAIL = "email"
    GOOGLE = "google"


class CaseStatus(str, Enum):
    """Adoption status stored on a case document."""
    AVAILABLE = "available"
    ADOPTED = "adopted"
