# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Multi-select pledge aggregator.

Accumulates the user's selection over one domain's opportunity list,
computes running totals and commits the selection as one adopt request per
item. Items succeed or fail independently; there is no rollback.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Union

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from ..domain.normalization import normalize_many
from ..domain.pledges import PledgeTotals, selected_opportunities, summarize
from ..models.entities import SponsorshipOpportunity
from ..models.enums import Domain
from .errors import AdoptionClientError, SponsorValidationError
from .reconciliation import SponsorshipStore
from .session import UserSession
from .transport import AdoptionApiClient

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


@dataclass
class CommitResult:
    """Outcome of a commit: how many items were sponsored and why the others failed."""

    count: int = 0
    succeeded: List[str] = field(default_factory=list)
    failures: Dict[str, AdoptionClientError] = field(default_factory=dict)

    @property
    def is_partial(self) -> bool:
        return bool(self.succeeded) and bool(self.failures)

    @property
    def all_failed(self) -> bool:
        return not self.succeeded and bool(self.failures)


class PledgeAggregator:
    """
    Selection and commit over one domain's opportunities.

    Sponsored opportunities, and opportunities without an id, can never be
    selected. After dispose() every operation is a no-op and late adopt
    results no longer touch the selection.
    """

    def __init__(
        self,
        domain: Union[Domain, str],
        store: SponsorshipStore,
        session: UserSession,
        transport: Optional[AdoptionApiClient] = None,
        max_workers: int = 4
    ):
        self.domain = Domain.parse(domain)
        self.store = store
        self.session = session
        self.transport = transport or store.transport
        self.max_workers = max_workers

        self._lock = threading.Lock()
        self._opportunities: List[SponsorshipOpportunity] = []
        self._selected = set()
        self._disposed = False

    # Opportunity list

    def load(self) -> List[SponsorshipOpportunity]:
        """Fetch and normalize the domain's opportunity list."""
        envelope = self.transport.list_cases(self.domain)
        opportunities = normalize_many(envelope.data, self.domain)
        self.set_opportunities(opportunities)
        return opportunities

    def set_opportunities(self, opportunities: List[SponsorshipOpportunity]) -> None:
        """Replace the list; selected ids that are no longer selectable are dropped."""
        with self._lock:
            if self._disposed:
                return
            self._opportunities = [
                opportunity for opportunity in opportunities if opportunity.domain == self.domain
            ]
            open_ids = {
                opportunity.id for opportunity in self._opportunities if self._is_selectable(opportunity)
            }
            self._selected &= open_ids

    @property
    def opportunities(self) -> List[SponsorshipOpportunity]:
        with self._lock:
            return list(self._opportunities)

    def _is_selectable(self, opportunity: SponsorshipOpportunity) -> bool:
        return opportunity.is_selectable and not self.store.is_sponsored(opportunity.id, self.domain)

    def _find(self, opportunity_id: str) -> Optional[SponsorshipOpportunity]:
        for opportunity in self._opportunities:
            if opportunity.id == opportunity_id:
                return opportunity
        return None

    # Selection

    def toggle(self, opportunity_id: str) -> bool:
        """
        Flip the selection state of one opportunity.

        Unknown ids and already-sponsored opportunities are ignored.

        Returns:
            True if the opportunity is selected afterwards
        """
        with self._lock:
            if self._disposed:
                return False
            opportunity = self._find(opportunity_id)
            if opportunity is None or not self._is_selectable(opportunity):
                return False
            if opportunity_id in self._selected:
                self._selected.discard(opportunity_id)
                return False
            self._selected.add(opportunity_id)
            return True

    @property
    def selected(self) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._selected)

    def selected_opportunities(self) -> List[SponsorshipOpportunity]:
        with self._lock:
            return [
                opportunity for opportunity in selected_opportunities(self._opportunities, self._selected)
                if not self.store.is_sponsored(opportunity.id, self.domain)
            ]

    def selected_total(self) -> PledgeTotals:
        """Totals over the currently selected, still-open opportunities."""
        chosen = self.selected_opportunities()
        return summarize(chosen, {opportunity.id for opportunity in chosen})

    def cancel(self) -> None:
        with self._lock:
            self._selected.clear()

    def dispose(self) -> None:
        with self._lock:
            self._disposed = True
            self._selected.clear()
            self._opportunities = []

    # Commit

    def _validate(self) -> List[SponsorshipOpportunity]:
        user = self.session.user
        if not self.session.email:
            raise SponsorValidationError("Please sign in with an email address to adopt", field="email")
        if not user or not (user.name or "").strip():
            raise SponsorValidationError("Your profile needs a name before you can adopt", field="name")
        chosen = self.selected_opportunities()
        if not chosen:
            raise SponsorValidationError("Select at least one item to adopt", field="selection")
        return chosen

    def commit(self) -> CommitResult:
        """
        Sponsor every selected opportunity.

        Validation happens before any request. Each adopt request is issued
        concurrently and settles independently; the store is refreshed exactly
        once afterwards and only the succeeded ids leave the selection.

        Raises:
            SponsorValidationError: Missing email, missing name or empty selection
        """
        chosen = self._validate()
        result = CommitResult()

        with tracer.start_as_current_span("pledges.commit") as span:
            span.set_attributes({"pledge.domain": self.domain.value, "pledge.items": len(chosen)})

            workers = max(1, min(self.max_workers, len(chosen)))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="helpline-adopt") as executor:
                futures = {
                    executor.submit(self.store.sponsor, opportunity.id, self.domain, opportunity, False): opportunity.id
                    for opportunity in chosen
                }
                for future in as_completed(futures):
                    opportunity_id = futures[future]
                    try:
                        future.result()
                    except AdoptionClientError as e:
                        logger.warning(
                            f"Adopt request for {opportunity_id} failed: {e.message}",
                            extra={"domain": self.domain.value, "opportunity_id": opportunity_id}
                        )
                        result.failures[opportunity_id] = e
                    else:
                        result.succeeded.append(opportunity_id)

            result.count = len(result.succeeded)
            span.set_attributes({"pledge.succeeded": result.count, "pledge.failed": len(result.failures)})
            if result.all_failed:
                span.set_status(Status(StatusCode.ERROR, "All adopt requests failed"))

        self.store.refresh()

        with self._lock:
            if not self._disposed:
                self._selected.difference_update(result.succeeded)

        logger.info(
            f"Committed pledge: {result.count} of {len(chosen)} items adopted",
            extra={"domain": self.domain.value, "succeeded": result.count, "failed": len(result.failures)}
        )
        return result
