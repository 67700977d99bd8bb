# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
HTTP transport for the adoption and auth endpoints.

Every response body is passed through the envelope boundary before it
leaves this module, and every failure is mapped onto the client error
taxonomy.
"""

import logging
import time
from typing import Any, Callable, Dict, Optional, Union

import requests

from ..domain.envelopes import ListEnvelope, envelope_message, is_rejection, unwrap_item, unwrap_list
from ..models.enums import Domain
from .config import ClientConfig
from .errors import BackendRejectionError, NetworkError

logger = logging.getLogger(__name__)

_SLOW_REQUEST_SECONDS = 5.0

TokenProvider = Callable[[], Optional[str]]


class AdoptionApiClient:
    """Blocking client for the `/api/adopt-{domain}` and `/api/auth` surfaces."""

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        token_provider: Optional[TokenProvider] = None,
        session: Optional[requests.Session] = None
    ):
        self.config = config or ClientConfig()
        self.token_provider = token_provider
        self._session = session or requests.Session()
        self._session.headers.update({"Content-Type": "application/json", "Accept": "application/json"})

    def close(self) -> None:
        self._session.close()

    @property
    def timeout_tuple(self):
        connect_timeout = max(1.0, min(self.config.timeout_seconds, 5.0))
        read_timeout = max(connect_timeout, self.config.timeout_seconds)
        return connect_timeout, read_timeout

    def _adopt_url(self, domain: Union[Domain, str], suffix: str = "") -> str:
        domain = Domain.parse(domain)
        return f"{self.config.api_base_url.rstrip('/')}/api/adopt-{domain.path_segment}{suffix}"

    def _headers(self) -> Dict[str, str]:
        headers = {}
        token = self.token_provider() if self.token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        else:
            logger.debug("No auth token available for request")
        return headers

    def request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        authenticated: bool = True
    ) -> Any:
        """
        Send one request and return the decoded body.

        Args:
            method: HTTP method
            url: Absolute URL
            params: Query parameters, None values are dropped
            json: JSON body
            authenticated: Attach the bearer token when one is available

        Returns:
            Decoded JSON body, or None when the body is empty or not JSON

        Raises:
            NetworkError: On timeout or connection failure
            BackendRejectionError: On non-2xx status or a `{success: false}` body
        """
        if params:
            params = {key: value for key, value in params.items() if value not in (None, "")}

        started_at = time.monotonic()
        try:
            response = self._session.request(
                method=method,
                url=url,
                params=params or None,
                json=json,
                headers=self._headers() if authenticated else {},
                timeout=self.timeout_tuple,
            )
        except requests.Timeout as e:
            logger.warning(f"Request timed out: {method} {url}")
            raise NetworkError("Request timed out. Please check your connection.", {"url": url}) from e
        except requests.ConnectionError as e:
            logger.warning(f"Connection failed: {method} {url}")
            raise NetworkError("Unable to reach the server. Please check your connection.", {"url": url}) from e
        except requests.RequestException as e:
            logger.error(f"Request failed: {method} {url}: {str(e)}")
            raise NetworkError(f"Request failed: {str(e)}", {"url": url}) from e

        elapsed = time.monotonic() - started_at
        if elapsed > _SLOW_REQUEST_SECONDS:
            logger.warning(f"Slow HTTP {method} {elapsed:.3f}s {url}")

        try:
            body = response.json() if response.content else None
        except ValueError:
            body = None

        if response.status_code >= 400 or is_rejection(body):
            message = envelope_message(body, default=f"Request failed with status {response.status_code}")
            logger.info(
                f"Backend rejected {method} {url}: {message}",
                extra={"status_code": response.status_code, "url": url}
            )
            raise BackendRejectionError(response.status_code, message)

        return body

    def list_cases(self, domain: Union[Domain, str]) -> ListEnvelope:
        """GET /api/adopt-{D}."""
        return unwrap_list(self.request("GET", self._adopt_url(domain)))

    def get_case(self, domain: Union[Domain, str], opportunity_id: str) -> Optional[Dict[str, Any]]:
        """GET /api/adopt-{D}/{id}."""
        return unwrap_item(self.request("GET", self._adopt_url(domain, f"/{opportunity_id}")))

    def adopt(
        self,
        domain: Union[Domain, str],
        opportunity_id: str,
        email: str,
        adopter_name: Optional[str] = None,
        adopter_email: Optional[str] = None,
        adopter_phone: Optional[str] = None
    ) -> Any:
        """POST /api/adopt-{D}/{id}/adopt."""
        payload = {
            "email": email,
            "adopterName": adopter_name,
            "adopterEmail": adopter_email or email,
            "adopterPhone": adopter_phone or "",
        }
        return self.request("POST", self._adopt_url(domain, f"/{opportunity_id}/adopt"), json=payload)

    def unadopt(
        self,
        domain: Union[Domain, str],
        opportunity_id: str,
        user_id: Optional[str] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None
    ) -> Any:
        """DELETE /api/adopt-{D}/{id}/unadopt."""
        params = {"userId": user_id, "email": email, "phone": phone}
        return self.request("DELETE", self._adopt_url(domain, f"/{opportunity_id}/unadopt"), params=params)

    def my_adoptions(
        self,
        domain: Union[Domain, str],
        user_id: Optional[str] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None
    ) -> ListEnvelope:
        """GET /api/adopt-{D}/my-adoptions."""
        params = {"userId": user_id, "email": email, "phone": phone}
        return unwrap_list(self.request("GET", self._adopt_url(domain, "/my-adoptions"), params=params))

    def post_auth(self, path: str, payload: Dict[str, Any], authenticated: bool = False) -> Any:
        """POST to an auth endpoint under the auth base URL."""
        url = f"{self.config.resolved_auth_base_url}{path}"
        return self.request("POST", url, json=payload, authenticated=authenticated)
