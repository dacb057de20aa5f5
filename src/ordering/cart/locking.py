"""Per-cart write serialization.

Two requests for the same session (a double-clicked "add to cart") must not
both read the cart, mutate their copy and write it back. Every cart command
runs while holding the session's lock. The same registry serializes credit
note issuance per order, under ``order:<id>`` keys. It is an object built at
application startup and handed to whoever processes those commands.
"""

import threading
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager

import redis
import structlog
from protean.utils.globals import current_domain

from ordering.errors import ConflictError

logger = structlog.get_logger(__name__)


class CartLocks(ABC):
    """Registry of mutual-exclusion locks keyed by cart session or order."""

    @abstractmethod
    def hold(self, key: str):
        """Context manager holding the lock for ``key``.

        Raises ConflictError if the lock cannot be acquired in time.
        """
        ...


class InProcessCartLocks(CartLocks):
    """Thread locks for a single-process deployment (and tests)."""

    def __init__(self, timeout: float = 5.0) -> None:
        self.timeout = timeout
        self._guard = threading.Lock()
        self._locks: dict[str, list] = {}  # key -> [lock, holders]

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1

        try:
            if not entry[0].acquire(timeout=self.timeout):
                logger.warning("Timed out waiting for cart lock", key=key, timeout=self.timeout)
                raise ConflictError(f"{key} is busy, retry the request")
            try:
                yield
            finally:
                entry[0].release()
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def __len__(self):
        return len(self._locks)


class RedisCartLocks(CartLocks):
    """Distributed locks shared by every worker that talks to the same Redis."""

    def __init__(
        self,
        client: redis.Redis,
        timeout: float = 10.0,
        blocking_timeout: float = 5.0,
        prefix: str = "boutique:cart-lock:",
    ) -> None:
        self.client = client
        self.timeout = timeout
        self.blocking_timeout = blocking_timeout
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisCartLocks":
        return cls(redis.Redis.from_url(url), **kwargs)

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        lock = self.client.lock(
            f"{self.prefix}{key}",
            timeout=self.timeout,
            blocking_timeout=self.blocking_timeout,
        )
        if not lock.acquire():
            logger.warning("Timed out waiting for cart lock", key=key, backend="redis")
            raise ConflictError(f"{key} is busy, retry the request")
        try:
            yield
        finally:
            try:
                lock.release()
            except redis.exceptions.LockError:
                # Expired while held; another writer may already own it
                logger.warning("Cart lock expired before release", key=key)


def process_cart_command(locks: CartLocks, session_id: str, command):
    """Process ``command`` synchronously while holding the session's cart lock."""
    with locks.hold(session_id):
        return current_domain.process(command, asynchronous=False)
