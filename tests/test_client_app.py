# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for the client wiring.
"""

import pytest
from unittest.mock import patch

from helpline.client.app import HelplineClient
from helpline.client.config import ClientConfig
from helpline.client.storage import ACCESS_TOKEN_KEY, ADOPTED_ITEMS_KEY, JsonFileStore, MemoryStore
from helpline.domain.envelopes import ListEnvelope
from helpline.models.enums import Domain


@pytest.fixture
def make_client(transport):
    """Build a HelplineClient whose transport is the mocked one."""
    clients = []

    def factory(config=None, store=None):
        with patch("helpline.client.app.AdoptionApiClient", return_value=transport):
            client = HelplineClient(config or ClientConfig(), store)
        clients.append(client)
        return client

    yield factory
    for client in clients:
        client.close()


class TestHelplineClient:

    def test_json_store_from_config(self, make_client, tmp_path):
        client = make_client(ClientConfig(store_path=str(tmp_path / "state.json")))
        assert isinstance(client.store, JsonFileStore)

    def test_memory_store_by_default(self, make_client):
        assert isinstance(make_client().store, MemoryStore)

    def test_start_signed_out(self, make_client, transport):
        make_client(store=MemoryStore()).start()
        transport.my_adoptions.assert_not_called()

    def test_start_restores_then_refreshes(self, make_client, transport, store):
        store.set(ADOPTED_ITEMS_KEY, [{
            "opportunityId": "h1", "domain": "health", "sponsorEmail": "sponsor@example.com", "name": "Ahmed"
        }])
        transport.my_adoptions.side_effect = lambda domain, **kwargs: ListEnvelope(
            data=[{"opportunityId": "h1", "name": "Ahmed"}] if domain == Domain.HEALTH else []
        )
        client = make_client(store=store)

        client.start()

        assert transport.my_adoptions.call_count == 4
        assert client.sponsorships.is_sponsored("h1", Domain.HEALTH) is True

    def test_aggregator_shares_session_and_store(self, make_client, store):
        client = make_client(store=store)

        aggregator = client.aggregator("school")

        assert aggregator.domain == Domain.SCHOOL_STUDENT
        assert aggregator.store is client.sponsorships
        assert aggregator.session is client.session

    def test_sign_out_clears_everything(self, make_client, transport, store):
        client = make_client(store=store)

        client.sign_out()

        transport.post_auth.assert_called_once_with("/api/auth/logout", {}, authenticated=True)
        assert client.session.user is None
        assert store.get(ACCESS_TOKEN_KEY) is None
        assert client.sponsorships.sponsorships == []
        transport.my_adoptions.assert_not_called()

    def test_close(self, transport):
        with patch("helpline.client.app.AdoptionApiClient", return_value=transport):
            client = HelplineClient(ClientConfig(), MemoryStore())
        client.close()
        transport.close.assert_called_once()
