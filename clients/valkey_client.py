"""
Valkey (Redis-compatible) storage for login sessions and public-link throttling.

Connection URL comes from Vault. Every call goes straight to the server;
connection errors propagate to the caller instead of being papered over.
"""

import json
import logging

import redis

logger = logging.getLogger(__name__)


class ValkeyClient:
    """
    The two things this service keeps in Valkey:

    - session records, stored as JSON with a TTL (set_json / get_json)
    - per-caller attempt counters for public invoice lookups (count_attempt)
    """

    def __init__(self, url: str):
        """
        Raises:
            redis.ConnectionError: Server unreachable at startup
        """
        self._client = redis.from_url(url, decode_responses=True)
        self._client.ping()
        logger.info("ValkeyClient connected")

    def get(self, key: str) -> str | None:
        return self._client.get(key)

    def set(self, key: str, value: str, expire_seconds: int | None = None) -> None:
        if expire_seconds is None:
            self._client.set(key, value)
        else:
            self._client.setex(key, expire_seconds, value)

    def delete(self, key: str) -> bool:
        """True if the key existed."""
        return self._client.delete(key) > 0

    def ttl(self, key: str) -> int:
        """Seconds left; -1 without expiry, -2 if the key is missing."""
        return self._client.ttl(key)

    def set_json(self, key: str, value: dict, expire_seconds: int | None = None) -> None:
        self.set(key, json.dumps(value), expire_seconds)

    def get_json(self, key: str) -> dict | None:
        """
        Decoded JSON value, or None if the key is missing.

        Raises:
            ValueError: Stored value is not JSON
        """
        raw = self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in key '{key}': {e}") from e

    def count_attempt(self, key: str, window_seconds: int) -> tuple[int, int]:
        """
        Add one attempt to a counter and restart its window.

        INCR, EXPIRE and TTL run in one MULTI/EXEC, so a counter can never
        be left behind without an expiry.

        Returns:
            (attempts in the current window, seconds until it resets)
        """
        with self._client.pipeline(transaction=True) as pipe:
            pipe.incr(key)
            pipe.expire(key, window_seconds)
            pipe.ttl(key)
            count, _, remaining = pipe.execute()
        return count, remaining

    def close(self) -> None:
        self._client.close()
        logger.info("ValkeyClient closed")
