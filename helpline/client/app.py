# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Wiring of the sponsor-side client components around one session.
"""

import logging
from typing import Optional, Union

from ..models.enums import Domain
from .auth import AuthClient
from .config import ClientConfig
from .pledges import PledgeAggregator
from .reconciliation import SponsorshipStore
from .session import UserSession
from .storage import JsonFileStore, LocalStore, MemoryStore
from .transport import AdoptionApiClient

logger = logging.getLogger(__name__)


class HelplineClient:
    """
    One signed-in (or signed-out) client.

    The session is the single source of who is acting and is handed
    explicitly to every component.
    """

    def __init__(self, config: Optional[ClientConfig] = None, store: Optional[LocalStore] = None):
        self.config = config or ClientConfig.from_env()
        if store is None:
            store = JsonFileStore(self.config.store_path) if self.config.store_path else MemoryStore()
        self.store = store
        self.session = UserSession(store)
        self.transport = AdoptionApiClient(self.config, token_provider=self.session.access_token)
        self.auth = AuthClient(self.transport, self.session)
        self.sponsorships = SponsorshipStore(
            self.transport, self.session, self.store, max_workers=self.config.max_workers
        )

    def start(self) -> None:
        """Show the cached list immediately, then reconcile with the backend."""
        if not self.session.is_authenticated:
            return
        self.sponsorships.restore_cached()
        self.sponsorships.refresh()

    def aggregator(self, domain: Union[Domain, str]) -> PledgeAggregator:
        """New selection over one domain's list; dispose it when leaving the list."""
        return PledgeAggregator(
            domain, self.sponsorships, self.session, self.transport, max_workers=self.config.max_workers
        )

    def sign_out(self) -> None:
        self.auth.logout()
        self.sponsorships.refresh()

    def close(self) -> None:
        self.sponsorships.close()
        self.transport.close()
        logger.debug("Helpline client closed")
