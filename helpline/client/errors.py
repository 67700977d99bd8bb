# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Error taxonomy of the sponsor-side client.

Shape mismatches are not errors: they surface as empty results.
"""

from typing import Optional, Dict, Any


class AdoptionClientError(Exception):
    """Base class for client errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class SponsorValidationError(AdoptionClientError):
    """Input rejected locally, before any request was sent."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        self.field = field
        super().__init__(message, details)


class NetworkError(AdoptionClientError):
    """Timeout or connection failure."""


class BackendRejectionError(AdoptionClientError):
    """
    The backend refused the request.

    Raised for non-2xx responses and for 2xx `{success: false}` envelopes.
    `message` holds the backend's own message verbatim when it sent one.
    """

    def __init__(self, status_code: int, message: str, details: Optional[Dict[str, Any]] = None):
        self.status_code = status_code
        super().__init__(message, details)
