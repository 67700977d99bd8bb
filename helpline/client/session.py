# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
The acting user of the sponsor-side client.

One UserSession is created per client and passed explicitly to the
transport, reconciliation store, pledge aggregator and auth client.
"""

import logging
import threading
from typing import Optional

from pydantic import ValidationError

from ..models.entities import AuthResult, SessionUser
from .storage import (
    ACCESS_TOKEN_KEY,
    ADOPTED_ITEMS_KEY,
    LEGACY_TOKEN_KEY,
    REFRESH_TOKEN_KEY,
    USER_KEY,
    LocalStore,
)

logger = logging.getLogger(__name__)


class UserSession:
    """Current user and tokens, persisted in a local store."""

    def __init__(self, store: LocalStore):
        self.store = store
        self._lock = threading.Lock()
        self._user = self._restore_user()

    def _restore_user(self) -> Optional[SessionUser]:
        data = self.store.get(USER_KEY)
        if not isinstance(data, dict):
            return None
        try:
            return SessionUser.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable stored user: {str(e)}")
            return None

    @property
    def user(self) -> Optional[SessionUser]:
        with self._lock:
            return self._user

    @property
    def email(self) -> Optional[str]:
        """Join key of the acting user, None when signed out or unknown."""
        user = self.user
        return user.email if user else None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def access_token(self) -> Optional[str]:
        """Bearer token: the current key first, the legacy key as fallback."""
        return self.store.get(ACCESS_TOKEN_KEY) or self.store.get(LEGACY_TOKEN_KEY)

    def set_user(self, user: Optional[SessionUser]) -> None:
        with self._lock:
            self._user = user
        if user is None:
            self.store.delete(USER_KEY)
        else:
            self.store.set(USER_KEY, user.to_wire())

    def sign_in(self, result: AuthResult) -> None:
        """Adopt the user and tokens of a successful auth call."""
        self.set_user(result.user)
        for key, value in ((ACCESS_TOKEN_KEY, result.access_token), (REFRESH_TOKEN_KEY, result.refresh_token)):
            if value:
                self.store.set(key, value)
            else:
                self.store.delete(key)
        self.store.delete(LEGACY_TOKEN_KEY)
        logger.info("User signed in", extra={"user_id": result.user.id})

    def sign_out(self) -> None:
        """Forget the user, every token and the cached sponsorship list."""
        user = self.user
        with self._lock:
            self._user = None
        self.store.delete_many((USER_KEY, ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, LEGACY_TOKEN_KEY, ADOPTED_ITEMS_KEY))
        logger.info("User signed out", extra={"user_id": user.id if user else None})
