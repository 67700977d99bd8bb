# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Per-domain field profiles and tolerant field readers for raw case records.

Raw records come from four independently evolving backend collections. Each
domain has a profile naming the fields that carry its name, age, location and
total cost. Lookups walk the generic fields first, then the domain's own
fields, then every other domain's fields, so a record that drifted into
another domain's vocabulary still resolves.
"""

import math
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Tuple

from ..models.enums import Domain


@dataclass(frozen=True)
class DomainFieldProfile:
    """Field vocabulary of one domain."""

    domain: Optional[Domain]
    name_fields: Tuple[str, ...] = ()
    age_fields: Tuple[str, ...] = ()
    location_fields: Tuple[str, ...] = ()
    total_fields: Tuple[str, ...] = ()


GENERIC_PROFILE = DomainFieldProfile(
    domain=None,
    name_fields=("name", "title"),
    age_fields=("age",),
    location_fields=("location", "address", "city"),
    total_fields=("amount", "totalAmount"),
)

PROFILES = {
    Domain.HEALTH: DomainFieldProfile(
        domain=Domain.HEALTH,
        name_fields=("patientName",),
        age_fields=("patientAge",),
        location_fields=("hospitalAddress",),
        total_fields=("estimatedCost",),
    ),
    Domain.HIGHER_EDUCATION: DomainFieldProfile(
        domain=Domain.HIGHER_EDUCATION,
        name_fields=("studentName",),
        age_fields=("studentAge",),
        location_fields=("institutionAddress",),
        total_fields=("totalTuitionFee", "annualTuitionFee"),
    ),
    Domain.SCHOOL_STUDENT: DomainFieldProfile(
        domain=Domain.SCHOOL_STUDENT,
        name_fields=("studentName",),
        age_fields=("studentAge",),
        location_fields=("schoolAddress",),
        total_fields=("annualTuitionFee", "totalTuitionFee"),
    ),
    Domain.WELFARE: DomainFieldProfile(
        domain=Domain.WELFARE,
        name_fields=("projectName",),
        total_fields=("totalBudget",),
    ),
}


def profile_chain(domain: Optional[Domain]) -> Tuple[DomainFieldProfile, ...]:
    """Profiles in lookup order: generic, the domain's own, then the rest."""
    own = (PROFILES[domain],) if domain is not None else ()
    others = tuple(profile for key, profile in PROFILES.items() if key != domain)
    return (GENERIC_PROFILE,) + own + others


def field_order(domain: Optional[Domain], attribute: str) -> Tuple[str, ...]:
    """Ordered, de-duplicated field names for one canonical attribute."""
    seen = []
    for profile in profile_chain(domain):
        for field in getattr(profile, attribute):
            if field not in seen:
                seen.append(field)
    return tuple(seen)


def as_number(value: Any) -> Optional[float]:
    """Coerce a finite int, float or numeric string; anything else is None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip().replace(",", ""))
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def as_text(value: Any) -> Optional[str]:
    """Trimmed non-blank string, or None."""
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return None


def first_text(raw: Mapping[str, Any], fields: Iterable[str]) -> Optional[str]:
    for field in fields:
        text = as_text(raw.get(field))
        if text is not None:
            return text
    return None


def first_positive(raw: Mapping[str, Any], fields: Iterable[str]) -> Optional[float]:
    """First field holding a number greater than zero."""
    for field in fields:
        number = as_number(raw.get(field))
        if number is not None and number > 0:
            return number
    return None


def canonical_id(value: Any) -> str:
    """
    Render a backend identifier as one canonical string.

    Integral numbers lose their decimal part so `5` and `5.0` agree.
    """
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return ""
        if value.is_integer():
            return str(int(value))
        return str(value)
    return str(value).strip()
