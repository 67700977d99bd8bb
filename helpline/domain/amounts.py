# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Canonical amount resolution for raw case records.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from ..models.enums import Domain
from .profiles import as_number, field_order, first_positive


EXPLICIT_NEEDED_FIELD = "amountNeeded"
RAISED_FIELD = "amountRaised"


@dataclass(frozen=True)
class AmountBreakdown:
    """Total cost, amount raised and outstanding amount of one case."""

    total: float = 0.0
    raised: float = 0.0
    needed: float = 0.0


def resolve_amount(raw: Mapping[str, Any], domain: Optional[Domain] = None) -> AmountBreakdown:
    """
    Derive the amount figures of a raw record.

    The explicit `amountNeeded` field wins whenever it holds a finite number,
    zero included. Otherwise the outstanding amount is `total - raised` when
    both are positive, else the total. All figures are clamped at zero.

    Args:
        raw: Raw backend record
        domain: Domain the record came from, or None to search every domain's fields

    Returns:
        AmountBreakdown with total, raised and needed
    """
    total = first_positive(raw, field_order(domain, "total_fields")) or 0.0

    raised = as_number(raw.get(RAISED_FIELD))
    raised = max(raised, 0.0) if raised is not None else 0.0

    explicit = as_number(raw.get(EXPLICIT_NEEDED_FIELD))
    if explicit is not None:
        needed = explicit
    elif total > 0 and raised > 0:
        needed = total - raised
    else:
        needed = total

    return AmountBreakdown(total=total, raised=raised, needed=max(needed, 0.0))
