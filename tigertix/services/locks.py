"""Per-event mutual exclusion for the check-then-decrement sequence."""

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import ContextManager, Iterator

import redis
from loguru import logger

from tigertix.core.config import LOCK_BACKEND, LOCK_EXPIRY, get_redis_url
from tigertix.services.errors import StorageError, StorageTimeoutError


class EventLocker(ABC):
    """Serializes writers of the same event. Different events never contend."""

    @abstractmethod
    def hold(self, event_id: int, timeout: float) -> ContextManager[None]:
        """Hold the lock for `event_id`, waiting at most `timeout` seconds.

        Raises:
            StorageTimeoutError: If the lock could not be acquired in time.
        """
        ...


class LocalEventLocker(EventLocker):
    """
    One threading.Lock per event, for a single process.

    An entry lives only while some thread holds or waits for it, so the
    table stays as small as the number of events being bought right now.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[int, threading.Lock] = {}
        self._users: dict[int, int] = {}

    def _checkout(self, event_id: int) -> threading.Lock:
        with self._guard:
            self._users[event_id] = self._users.get(event_id, 0) + 1
            return self._locks.setdefault(event_id, threading.Lock())

    def _checkin(self, event_id: int) -> None:
        with self._guard:
            self._users[event_id] -= 1
            if self._users[event_id] == 0:
                del self._users[event_id]
                del self._locks[event_id]

    @contextmanager
    def hold(self, event_id: int, timeout: float) -> Iterator[None]:
        lock = self._checkout(event_id)
        try:
            if not lock.acquire(timeout=timeout):
                logger.warning("Timed out after {}s waiting for event {}", timeout, event_id)
                raise StorageTimeoutError("Event is busy, please try again.")
            try:
                yield
            finally:
                lock.release()
        finally:
            self._checkin(event_id)


class RedisEventLocker(EventLocker):
    """
    Redis lock on `event_lock:{event_id}`, shared by every process using the
    same redis. The lock expires after `expiry` seconds so a crashed holder
    cannot keep the event locked.
    """

    def __init__(self, client: redis.Redis, *, expiry: float = LOCK_EXPIRY) -> None:
        self._client = client
        self._expiry = expiry

    @contextmanager
    def hold(self, event_id: int, timeout: float) -> Iterator[None]:
        lock = self._client.lock(f"event_lock:{event_id}", timeout=self._expiry, blocking_timeout=timeout)
        try:
            acquired = lock.acquire(blocking=True, blocking_timeout=timeout)
        except redis.exceptions.LockError as exc:
            raise StorageTimeoutError("Event is busy, please try again.") from exc
        except redis.exceptions.RedisError as exc:
            logger.exception("Could not reach redis for event {}", event_id)
            raise StorageError() from exc
        if not acquired:
            logger.warning("Timed out after {}s waiting for event {}", timeout, event_id)
            raise StorageTimeoutError("Event is busy, please try again.")

        try:
            yield
        finally:
            try:
                lock.release()
            except redis.exceptions.LockNotOwnedError:
                # the database guards still held; only the exclusivity window lapsed
                logger.warning("Lock for event {} expired before release", event_id)


def get_redis_client() -> redis.Redis:
    """Get Redis client for locking."""
    return redis.from_url(get_redis_url(), decode_responses=True)


def make_locker(backend: str = LOCK_BACKEND) -> EventLocker:
    if backend == "local":
        return LocalEventLocker()
    if backend == "redis":
        return RedisEventLocker(get_redis_client())
    raise ValueError(f"Unknown lock backend: {backend!r}")
