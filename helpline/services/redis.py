# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Redis service for token revocation and JSON caching.

Operations degrade gracefully: when Redis is unreachable, writes return
False and reads return None instead of raising.
"""

import os
import json
import time
from typing import Optional, List, Dict, Any, Union
import redis
from opentelemetry import trace
import logging

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class RedisConnectionError(Exception):
    """Raised when Redis connection fails."""
    pass


class RedisService:
    """
    Redis service built on redis-py.

    Holds the JWT revocation list of the backend and doubles as a key/value
    store for the sponsor-side client.
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        client: Optional[redis.Redis] = None,
        namespace: str = "helpline"
    ):
        """
        Initialize the Redis service.

        Args:
            redis_url: Redis connection URL (redis://host:port/db)
            client: Pre-built client, used as-is without a connection test
            namespace: Prefix applied to every key
        """
        self.redis_url = redis_url or os.getenv("REDIS_URL", "redis://localhost:6379/0")
        self.namespace = namespace

        if client is not None:
            self.client = client
            return

        try:
            self.client = redis.from_url(self.redis_url, decode_responses=True)
            self._test_connection()
            logger.info(f"Redis service initialized at {self.redis_url}")
        except (redis.RedisError, RedisConnectionError, ValueError) as e:
            logger.error(f"Failed to initialize Redis service: {str(e)}")
            self.client = None

    def _test_connection(self) -> None:
        """Ping the server."""
        if not self.client:
            return
        try:
            if not self.client.ping():
                raise RedisConnectionError("Redis ping failed")
        except redis.RedisError as e:
            logger.error(f"Redis connection test failed: {str(e)}")
            raise RedisConnectionError(f"Redis connection failed: {str(e)}")

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}" if self.namespace else key

    def is_available(self) -> bool:
        """Check if Redis service is available."""
        return self.client is not None

    def set(self, key: str, value: Union[str, Dict, List], ttl: Optional[int] = None) -> bool:
        """
        Set a key-value pair.

        Args:
            key: Key, without namespace
            value: Value to store, JSON serialized if not a string
            ttl: Time to live in seconds

        Returns:
            True if successful, False otherwise
        """
        if not self.client:
            logger.warning("Redis client not available, skipping set operation")
            return False

        with tracer.start_as_current_span("redis.set") as span:
            span.set_attributes({
                "redis.key": key,
                "redis.ttl": ttl or 0
            })

            try:
                if not isinstance(value, str):
                    value = json.dumps(value)

                if ttl:
                    result = self.client.setex(self._key(key), ttl, value)
                else:
                    result = self.client.set(self._key(key), value)

                span.set_attribute("redis.result", "success")
                return bool(result)

            except (redis.RedisError, TypeError) as e:
                span.set_attribute("redis.result", "error")
                logger.error(f"Redis set failed for key {key}: {str(e)}")
                return False

    def get(self, key: str) -> Optional[Any]:
        """
        Get a value, JSON-decoded when possible.

        Returns:
            Value if found, None otherwise
        """
        if not self.client:
            logger.warning("Redis client not available, skipping get operation")
            return None

        with tracer.start_as_current_span("redis.get") as span:
            span.set_attribute("redis.key", key)

            try:
                value = self.client.get(self._key(key))
            except redis.RedisError as e:
                span.set_attribute("redis.result", "error")
                logger.error(f"Redis get failed for key {key}: {str(e)}")
                return None

            if value is None:
                span.set_attribute("redis.result", "not_found")
                return None

            try:
                return json.loads(value)
            except (json.JSONDecodeError, TypeError):
                return value

    def delete(self, key: str) -> bool:
        """Delete a key. Returns True if a key was removed."""
        if not self.client:
            logger.warning("Redis client not available, skipping delete operation")
            return False

        with tracer.start_as_current_span("redis.delete") as span:
            span.set_attribute("redis.key", key)
            try:
                result = self.client.delete(self._key(key))
                span.set_attribute("redis.result", "success")
                return bool(result)
            except redis.RedisError as e:
                span.set_attribute("redis.result", "error")
                logger.error(f"Redis delete failed for key {key}: {str(e)}")
                return False

    def exists(self, key: str) -> bool:
        if not self.client:
            return False
        try:
            return bool(self.client.exists(self._key(key)))
        except redis.RedisError as e:
            logger.error(f"Redis exists check failed for key {key}: {str(e)}")
            return False

    # JWT revocation

    def block_token(self, jti: str, exp: int) -> bool:
        """
        Revoke a JWT until it would have expired anyway.

        Args:
            jti: JWT ID
            exp: Token expiration timestamp

        Returns:
            True if the token is revoked or already expired
        """
        ttl = max(0, exp - int(time.time()))
        if ttl <= 0:
            return True
        return self.set(f"blocklist:jwt:{jti}", "blocked", ttl)

    def is_token_blocked(self, jti: str) -> bool:
        return self.exists(f"blocklist:jwt:{jti}")
