# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Client configuration loaded from the environment.
"""

import os
from dataclasses import dataclass
from typing import Optional


DEFAULT_API_BASE_URL = "http://localhost:5001"
DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_MAX_WORKERS = 4


@dataclass(frozen=True)
class ClientConfig:
    """
    Settings shared by the transport, auth client and stores.

    Attributes:
        api_base_url: Base URL of the adoption endpoints
        auth_base_url: Base URL of the auth endpoints, defaults to api_base_url
        timeout_seconds: Fixed network timeout for every call
        store_path: JSON file used by the local store, None for in-memory Redis-less setups
        max_workers: Thread pool size for concurrent fetches and adopt requests
    """

    api_base_url: str = DEFAULT_API_BASE_URL
    auth_base_url: Optional[str] = None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    store_path: Optional[str] = None
    max_workers: int = DEFAULT_MAX_WORKERS

    @property
    def resolved_auth_base_url(self) -> str:
        return (self.auth_base_url or self.api_base_url).rstrip("/")

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """Build configuration from `HELPLINE_*` environment variables."""
        return cls(
            api_base_url=os.getenv("HELPLINE_API_BASE_URL", DEFAULT_API_BASE_URL).rstrip("/"),
            auth_base_url=os.getenv("HELPLINE_AUTH_BASE_URL") or None,
            timeout_seconds=float(os.getenv("HELPLINE_HTTP_TIMEOUT", str(DEFAULT_TIMEOUT_SECONDS))),
            store_path=os.getenv("HELPLINE_STORE_PATH") or None,
            max_workers=int(os.getenv("HELPLINE_MAX_WORKERS", str(DEFAULT_MAX_WORKERS))),
        )
