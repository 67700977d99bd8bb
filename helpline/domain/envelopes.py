# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Response envelope boundary.

The backend answers list endpoints with either `{success, data, count}` or a
bare array, single-record endpoints with `{success, data}` or a bare object,
and auth endpoints with three different user/token layouts. Every transport
response passes through one of these functions immediately, so downstream
code only ever sees the canonical shapes below.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from ..models.entities import AuthResult, SessionUser
from .profiles import as_text, canonical_id

logger = logging.getLogger(__name__)


ACCESS_TOKEN_KEYS = ("token", "accessToken", "access_token")
REFRESH_TOKEN_KEYS = ("refreshToken", "refresh_token")
PICTURE_KEYS = ("picture", "avatar", "profileImage", "profile_image")


@dataclass
class ListEnvelope:
    """Canonical list response."""

    success: bool = True
    data: List[Dict[str, Any]] = field(default_factory=list)
    count: int = 0


def unwrap_list(body: Any) -> ListEnvelope:
    """
    Canonicalize a list response.

    Accepts a `{success, data}` envelope or a bare array. Any other shape is
    treated as an empty result, not an error. Non-object entries are dropped.
    """
    if isinstance(body, list):
        items = body
        success = True
    elif isinstance(body, Mapping) and isinstance(body.get("data"), list):
        items = body["data"]
        success = body.get("success", True) is not False
    else:
        logger.debug("List response had an unexpected shape, treating as empty",
                     extra={"body_type": type(body).__name__})
        return ListEnvelope(success=True, data=[], count=0)

    data = [dict(item) for item in items if isinstance(item, Mapping)]
    return ListEnvelope(success=success, data=data, count=len(data))


def unwrap_item(body: Any) -> Optional[Dict[str, Any]]:
    """Canonicalize a single-record response; None when no record is present."""
    if not isinstance(body, Mapping):
        return None
    if "data" in body or "success" in body:
        data = body.get("data")
        return dict(data) if isinstance(data, Mapping) else None
    return dict(body)


def is_rejection(body: Any) -> bool:
    """A 2xx body can still carry `{success: false}`."""
    return isinstance(body, Mapping) and body.get("success") is False


def envelope_message(body: Any, default: Optional[str] = None) -> Optional[str]:
    """Backend message of an envelope, kept verbatim."""
    if isinstance(body, Mapping):
        message = as_text(body.get("message")) or as_text(body.get("error"))
        if message:
            return message
        errors = body.get("errors")
        if isinstance(errors, list) and errors:
            first = errors[0]
            if isinstance(first, Mapping):
                return as_text(first.get("msg")) or as_text(first.get("message")) or default
            return as_text(first) or default
    return default


def _first_key(containers: List[Mapping[str, Any]], keys) -> Optional[str]:
    for container in containers:
        for key in keys:
            value = as_text(container.get(key))
            if value:
                return value
    return None


def _looks_like_user(candidate: Any) -> bool:
    return isinstance(candidate, Mapping) and any(
        candidate.get(key) for key in ("id", "_id", "email")
    )


def _session_user(data: Mapping[str, Any], fallback_email: Optional[str] = None) -> SessionUser:
    identifier = canonical_id(data.get("id")) or canonical_id(data.get("_id"))
    return SessionUser(
        id=identifier or None,
        email=as_text(data.get("email")) or fallback_email,
        name=as_text(data.get("name")),
        phone=as_text(data.get("phone")),
        picture=_first_key([data], PICTURE_KEYS),
    )


def parse_auth_response(body: Any, fallback_email: Optional[str] = None) -> Optional[AuthResult]:
    """
    Canonicalize an auth response.

    A user object without an email takes `fallback_email`, the address the
    user signed in with.

    Recognized layouts:
        wrapped user:  {"user": {...}, "token": "..."}
        bare user:     {"id": "...", "email": "...", "token": "..."}
        data wrapped:  {"data": {... or {"user": {...}, "token": ...}}, "token"?: "..."}

    Returns:
        AuthResult, or None when no user can be found in the body
    """
    if not isinstance(body, Mapping):
        return None

    containers = [body]
    data = body.get("data")
    if isinstance(data, Mapping):
        containers.append(data)

    user_data = None
    if isinstance(body.get("user"), Mapping):
        user_data = body["user"]
    elif isinstance(data, Mapping) and isinstance(data.get("user"), Mapping):
        user_data = data["user"]
    elif _looks_like_user(data):
        user_data = data
    elif _looks_like_user(body):
        user_data = body

    if user_data is None:
        return None

    containers.append(user_data)
    return AuthResult(
        user=_session_user(user_data, fallback_email),
        access_token=_first_key(containers, ACCESS_TOKEN_KEYS),
        refresh_token=_first_key(containers, REFRESH_TOKEN_KEYS),
        message=as_text(body.get("message")),
    )
