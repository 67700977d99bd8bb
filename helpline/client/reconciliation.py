# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Sponsorship reconciliation store.

Holds the acting user's confirmed sponsorships merged across the four
domains. The backend is the only source of truth: the merged list is
rebuilt from per-domain fetches, never edited optimistically, and mirrored
wholesale to the local store as the last-known-good view for offline launch.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from opentelemetry import trace
from pydantic import ValidationError

from ..domain.normalization import normalize
from ..domain.profiles import canonical_id
from ..models.entities import SponsorshipOpportunity, SponsorshipRecord
from ..models.enums import Domain, PartitionState
from .errors import AdoptionClientError, SponsorValidationError
from .session import UserSession
from .storage import ADOPTED_ITEMS_KEY, LocalStore
from .transport import AdoptionApiClient

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


def record_from_raw(raw: Mapping[str, Any], domain: Domain, sponsor_email: Optional[str]) -> Optional[SponsorshipRecord]:
    """
    Build a sponsorship record from one my-adoptions entry.

    Entries are either sponsorship documents (carrying `opportunityId`) or,
    from older backends, the adopted case documents themselves. Entries
    without a usable opportunity id are dropped.
    """
    if raw.get("opportunityId"):
        try:
            data = dict(raw)
            data["domain"] = domain
            data.setdefault("sponsorEmail", sponsor_email)
            return SponsorshipRecord.model_validate(data)
        except ValidationError as e:
            logger.debug(f"Sponsorship entry failed validation, normalizing instead: {str(e)}",
                         extra={"domain": domain.value})

    opportunity = normalize(raw, domain)
    if raw.get("opportunityId") is not None:
        opportunity = opportunity.model_copy(update={"id": canonical_id(raw["opportunityId"])})
    if not opportunity.id:
        return None
    return opportunity.to_record(sponsor_email=sponsor_email)


class SponsorshipStore:
    """
    Confirmed sponsorships of the session user, merged across domains.

    Each domain is an independent partition moving through
    idle -> fetching -> ready | failed. A refresh fetches all partitions
    concurrently; a failed partition keeps its last successful result and
    never blocks the others. Responses older than one already applied for
    the same domain are discarded, as is anything arriving after close().
    """

    def __init__(
        self,
        transport: AdoptionApiClient,
        session: UserSession,
        store: LocalStore,
        max_workers: int = 4
    ):
        self.transport = transport
        self.session = session
        self.store = store

        self._lock = threading.Lock()
        self._mirror_lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="helpline-refresh")
        self._closed = False

        self._owner: Optional[str] = None
        self._partitions: Dict[Domain, List[SponsorshipRecord]] = {}
        self._states: Dict[Domain, PartitionState] = {domain: PartitionState.IDLE for domain in Domain}
        self._issued: Dict[Domain, int] = {domain: 0 for domain in Domain}
        self._applied: Dict[Domain, int] = {domain: 0 for domain in Domain}
        self._errors: Dict[Domain, Exception] = {}
        self._merged: Tuple[SponsorshipRecord, ...] = ()

    # State

    @property
    def sponsorships(self) -> List[SponsorshipRecord]:
        """Merged sponsorships; empty whenever the session has no email."""
        if not self.session.email:
            return []
        with self._lock:
            if self._owner != self.session.email:
                return []
            return list(self._merged)

    @property
    def is_loading(self) -> bool:
        with self._lock:
            return any(state == PartitionState.FETCHING for state in self._states.values())

    def partition_state(self, domain: Union[Domain, str]) -> PartitionState:
        with self._lock:
            return self._states[Domain.parse(domain)]

    def partition_error(self, domain: Union[Domain, str]) -> Optional[Exception]:
        """Error of the last failed fetch of a partition, if it failed."""
        with self._lock:
            return self._errors.get(Domain.parse(domain))

    def is_sponsored(self, opportunity_id: str, domain: Union[Domain, str]) -> bool:
        key = (opportunity_id, Domain.parse(domain))
        return any(record.key == key for record in self.sponsorships)

    # Internal state transitions, all called with self._lock held

    def _reset_locked(self, owner: Optional[str]) -> None:
        self._owner = owner
        self._partitions = {}
        self._errors = {}
        self._merged = ()
        for domain in Domain:
            self._states[domain] = PartitionState.IDLE
            self._applied[domain] = self._issued[domain]

    def _merge_locked(self) -> None:
        merged = {}
        for domain in Domain:
            for record in self._partitions.get(domain, ()):
                merged.setdefault(record.key, record)
        self._merged = tuple(merged.values())

    # Operations

    def restore_cached(self) -> List[SponsorshipRecord]:
        """
        Load the last-known-good list from the local store.

        Only used before the first refresh: the cached copy is a mirror and is
        replaced by the next successful fetch.
        """
        email = self.session.email
        if not email:
            return []

        cached = self.store.get(ADOPTED_ITEMS_KEY)
        records = []
        for item in cached if isinstance(cached, list) else ():
            try:
                record = SponsorshipRecord.model_validate(item)
            except ValidationError:
                continue
            if record.sponsor_email in (None, email):
                records.append(record)

        with self._lock:
            if self._closed:
                return []
            if self._owner != email:
                self._reset_locked(email)
            for domain in Domain:
                if domain not in self._partitions:
                    self._partitions[domain] = [record for record in records if record.domain == domain]
            self._merge_locked()
            restored = list(self._merged)

        logger.info(f"Restored {len(restored)} cached sponsorships", extra={"count": len(restored)})
        return restored

    def refresh(self) -> Dict[Domain, PartitionState]:
        """
        Refetch every domain partition concurrently and merge the results.

        Returns:
            Partition states after this refresh settled
        """
        user = self.session.user
        email = self.session.email

        with self._lock:
            if self._closed:
                return dict(self._states)
            if not email:
                self._reset_locked(None)
                return dict(self._states)
            if self._owner != email:
                self._reset_locked(email)

            tickets = {}
            for domain in Domain:
                self._issued[domain] += 1
                tickets[domain] = self._issued[domain]
                self._states[domain] = PartitionState.FETCHING

        with tracer.start_as_current_span("sponsorships.refresh") as span:
            span.set_attribute("refresh.domains", len(tickets))

            futures = {}
            try:
                for domain in Domain:
                    future = self._executor.submit(self._fetch_partition, domain, user.id, email, user.phone)
                    futures[future] = domain
            except RuntimeError:
                # Executor shut down by a concurrent close()
                with self._lock:
                    if not self._closed:
                        raise
                    logger.debug("Store closed during refresh, skipping fetch")
                    return dict(self._states)

            succeeded = 0
            for future in as_completed(futures):
                domain = futures[future]
                try:
                    records = future.result()
                except AdoptionClientError as e:
                    logger.warning(
                        f"Refresh of {domain.value} sponsorships failed: {e.message}",
                        extra={"domain": domain.value}
                    )
                    self._apply(domain, tickets[domain], email, None, e)
                else:
                    if self._apply(domain, tickets[domain], email, records, None):
                        succeeded += 1

            span.set_attribute("refresh.succeeded", succeeded)

        if succeeded:
            self._mirror()

        with self._lock:
            return dict(self._states)

    def _fetch_partition(
        self,
        domain: Domain,
        user_id: Optional[str],
        email: str,
        phone: Optional[str]
    ) -> List[SponsorshipRecord]:
        envelope = self.transport.my_adoptions(domain, user_id=user_id, email=email, phone=phone)
        records = []
        for raw in envelope.data:
            record = record_from_raw(raw, domain, email)
            if record is not None:
                records.append(record)
        return records

    def _apply(
        self,
        domain: Domain,
        ticket: int,
        owner: str,
        records: Optional[List[SponsorshipRecord]],
        error: Optional[Exception]
    ) -> bool:
        """Apply one partition result unless it is stale. Returns True if records were applied."""
        with self._lock:
            if self._closed or self._owner != owner or ticket <= self._applied[domain]:
                logger.debug(f"Discarding stale {domain.value} response", extra={"domain": domain.value})
                return False

            self._applied[domain] = ticket
            if error is not None:
                self._errors[domain] = error
                self._states[domain] = PartitionState.FAILED
                return False

            self._errors.pop(domain, None)
            self._partitions[domain] = records
            self._states[domain] = PartitionState.READY
            self._merge_locked()
            return True

    def _mirror(self) -> None:
        """Overwrite the cached list with the current merged list."""
        with self._mirror_lock:
            with self._lock:
                if self._closed:
                    return
                snapshot = [record.to_wire() for record in self._merged]
            if not self.store.set(ADOPTED_ITEMS_KEY, snapshot):
                logger.warning("Could not mirror sponsorships to the local store")

    def _require_email(self, action: str) -> str:
        email = self.session.email
        if not email:
            raise SponsorValidationError(f"An email address is required to {action}", field="email")
        return email

    def sponsor(
        self,
        opportunity_id: str,
        domain: Union[Domain, str],
        snapshot: Optional[SponsorshipOpportunity] = None,
        refresh: bool = True
    ) -> None:
        """
        Register a sponsorship with the backend.

        Nothing is inserted locally: on success the partitions are refetched.

        Args:
            opportunity_id: Opportunity to sponsor
            domain: Its domain
            snapshot: Canonical view the user confirmed, checked against the target
            refresh: Refetch after success; batch callers refresh once themselves

        Raises:
            SponsorValidationError: No email on file, or inconsistent arguments
            NetworkError: Connectivity failure
            BackendRejectionError: Backend refused the sponsorship
        """
        email = self._require_email("sponsor")
        domain = Domain.parse(domain)
        if not opportunity_id:
            raise SponsorValidationError("Opportunity id is required", field="opportunity_id")
        if snapshot is not None:
            if snapshot.id != opportunity_id or snapshot.domain != domain:
                raise SponsorValidationError("Snapshot does not describe the opportunity being sponsored")
            if snapshot.is_sponsored:
                raise SponsorValidationError("This opportunity has already been adopted")

        user = self.session.user
        with tracer.start_as_current_span("sponsorships.sponsor") as span:
            span.set_attributes({"opportunity.id": opportunity_id, "opportunity.domain": domain.value})
            self.transport.adopt(
                domain,
                opportunity_id,
                email=email,
                adopter_name=user.name,
                adopter_email=email,
                adopter_phone=user.phone
            )

        logger.info(
            f"Sponsored {domain.value} opportunity {opportunity_id}",
            extra={"domain": domain.value, "opportunity_id": opportunity_id}
        )
        if refresh:
            self.refresh()

    def unsponsor(self, opportunity_id: str, domain: Union[Domain, str]) -> None:
        """
        Remove a sponsorship. Local state is only changed by the refetch that follows success.

        Raises:
            SponsorValidationError: No email on file
            NetworkError: Connectivity failure
            BackendRejectionError: Backend refused the removal
        """
        email = self._require_email("remove a sponsorship")
        domain = Domain.parse(domain)
        if not opportunity_id:
            raise SponsorValidationError("Opportunity id is required", field="opportunity_id")

        user = self.session.user
        with tracer.start_as_current_span("sponsorships.unsponsor") as span:
            span.set_attributes({"opportunity.id": opportunity_id, "opportunity.domain": domain.value})
            self.transport.unadopt(domain, opportunity_id, user_id=user.id, email=email, phone=user.phone)

        logger.info(
            f"Removed sponsorship of {domain.value} opportunity {opportunity_id}",
            extra={"domain": domain.value, "opportunity_id": opportunity_id}
        )
        self.refresh()

    def close(self) -> None:
        """Stop accepting results; in-flight responses are discarded."""
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=False)
