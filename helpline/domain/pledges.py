# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Pledge totals over a selection of opportunities.
"""

from dataclasses import dataclass
from typing import AbstractSet, Iterable, List

from ..models.entities import SponsorshipOpportunity


@dataclass(frozen=True)
class PledgeTotals:
    """Aggregate figures of a pledge selection."""

    amount: float = 0.0
    amount_needed: float = 0.0
    count: int = 0


def selected_opportunities(
    opportunities: Iterable[SponsorshipOpportunity],
    selected_ids: AbstractSet[str]
) -> List[SponsorshipOpportunity]:
    """Selected opportunities that are still open for sponsorship, in list order."""
    return [
        opportunity for opportunity in opportunities
        if opportunity.id in selected_ids and opportunity.is_selectable
    ]


def summarize(
    opportunities: Iterable[SponsorshipOpportunity],
    selected_ids: AbstractSet[str]
) -> PledgeTotals:
    """Sum total and outstanding amounts across the open selected opportunities."""
    chosen = selected_opportunities(opportunities, selected_ids)
    return PledgeTotals(
        amount=sum(opportunity.total_amount for opportunity in chosen),
        amount_needed=sum(opportunity.amount_needed for opportunity in chosen),
        count=len(chosen),
    )
