"""Fixed-budget request throttling backed by Valkey.

Used to slow down enumeration of public invoice tokens: each caller IP
gets a budget of lookups per window. The TTL resets on every attempt, so
a client that keeps hammering stays locked out.
"""

from clients.valkey_client import ValkeyClient
from auth.exceptions import RateLimitedError


class RateLimiter:
    """Counts attempts per identifier in Valkey."""

    def __init__(
        self,
        valkey: ValkeyClient,
        max_attempts: int,
        window_seconds: int,
        namespace: str = "public_invoice",
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be at least 1")

        self._valkey = valkey
        self._max_attempts = max_attempts
        self._window_seconds = window_seconds
        self._prefix = f"ratelimit:{namespace}:"

    def _key(self, identifier: str) -> str:
        return f"{self._prefix}{identifier.lower()}"

    def check_rate_limit(self, identifier: str) -> None:
        """Count an attempt and raise once the budget is spent.

        Raises:
            RateLimitedError: If the identifier is over its budget.
        """
        key = self._key(identifier)

        count, remaining = self._valkey.count_attempt(key, self._window_seconds)

        if count > self._max_attempts:
            raise RateLimitedError(retry_after_seconds=max(remaining, 1))

