# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Sponsor-side client: transport, session, reconciliation store and pledge aggregator.
"""

from .app import HelplineClient
from .auth import AuthClient
from .config import ClientConfig
from .errors import AdoptionClientError, SponsorValidationError, NetworkError, BackendRejectionError
from .pledges import PledgeAggregator, CommitResult
from .reconciliation import SponsorshipStore
from .session import UserSession
from .storage import LocalStore, MemoryStore, JsonFileStore, RedisStore
from .transport import AdoptionApiClient

__all__ = [
    'HelplineClient',
    'AuthClient',
    'ClientConfig',
    'AdoptionClientError',
    'SponsorValidationError',
    'NetworkError',
    'BackendRejectionError',
    'PledgeAggregator',
    'CommitResult',
    'SponsorshipStore',
    'UserSession',
    'LocalStore',
    'MemoryStore',
    'JsonFileStore',
    'RedisStore',
    'AdoptionApiClient',
]
