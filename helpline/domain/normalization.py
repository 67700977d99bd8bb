# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Domain record normalizer.

Maps a raw case record of any domain onto the canonical
SponsorshipOpportunity view. Normalization never fails: missing or malformed
fields degrade to placeholders so every record can be displayed.
"""

import logging
from typing import Any, Iterable, List, Mapping, Union

from ..models.entities import SponsorshipOpportunity
from ..models.enums import Domain, CaseStatus
from .amounts import resolve_amount
from .profiles import as_text, canonical_id, field_order, first_positive, first_text

logger = logging.getLogger(__name__)


UNKNOWN_NAME = "Unknown"
UNKNOWN_LOCATION = "Location not specified"
UNKNOWN_DESCRIPTION = "No description available"
DEFAULT_NEED = "Support"


def resolve_id(raw: Mapping[str, Any]) -> str:
    """Canonical string id from `id`, falling back to `_id`; "" when neither is usable."""
    for field in ("id", "_id"):
        identifier = canonical_id(raw.get(field))
        if identifier:
            return identifier
    return ""


TRUE_STRINGS = frozenset(("true", "1", "yes"))


def _truthy_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in TRUE_STRINGS
    return bool(value)


def is_sponsored(raw: Mapping[str, Any]) -> bool:
    """
    A record is sponsored when flagged `adopted` or carrying status "adopted".

    Older records store the flag as 1 or "true"; any truthy flag counts, and
    strings only count when they spell a true value.
    """
    if _truthy_flag(raw.get("adopted")):
        return True
    status = raw.get("status")
    return isinstance(status, str) and status.strip().lower() == CaseStatus.ADOPTED.value


def normalize(raw: Mapping[str, Any], domain: Union[Domain, str]) -> SponsorshipOpportunity:
    """
    Build the canonical view of one raw record.

    Args:
        raw: Raw backend record
        domain: Domain (or its endpoint path segment) the record was fetched from

    Returns:
        SponsorshipOpportunity with every display string non-empty
    """
    domain = Domain.parse(domain)
    if not isinstance(raw, Mapping):
        raw = {}

    age = first_positive(raw, field_order(domain, "age_fields"))
    amounts = resolve_amount(raw, domain)

    return SponsorshipOpportunity(
        id=resolve_id(raw),
        display_name=first_text(raw, field_order(domain, "name_fields")) or UNKNOWN_NAME,
        age=int(age) if age is not None else None,
        location=first_text(raw, field_order(domain, "location_fields")) or UNKNOWN_LOCATION,
        description=as_text(raw.get("description")) or UNKNOWN_DESCRIPTION,
        need=first_text(raw, ("need", "title")) or DEFAULT_NEED,
        total_amount=amounts.total,
        amount_raised=amounts.raised,
        amount_needed=amounts.needed,
        domain=domain,
        is_sponsored=is_sponsored(raw),
    )


def normalize_many(raws: Iterable[Any], domain: Union[Domain, str]) -> List[SponsorshipOpportunity]:
    """Normalize a list of raw records, skipping entries that are not objects."""
    domain = Domain.parse(domain)
    opportunities = []
    skipped = 0
    for raw in raws or ():
        if not isinstance(raw, Mapping):
            skipped += 1
            continue
        opportunities.append(normalize(raw, domain))

    if skipped:
        logger.debug(
            f"Skipped {skipped} non-object records",
            extra={"domain": domain.value, "skipped": skipped}
        )
    return opportunities
