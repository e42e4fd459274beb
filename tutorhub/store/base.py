"""
Record Store Adapter

Keyed, subscribable record store used as the single source of truth for class
sessions and the student roster. Paths are either a collection ("classes") or a
record inside a collection ("classes/<id>").

Every write is delivered to subscribers as a full-record snapshot. Concurrent
writers are resolved last-write-wins at the record level; each record carries a
monotonic ``revision`` stamped by the store on every write.
"""
import asyncio
import copy
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Set, Tuple

from tutorhub.exceptions import StoreTimeoutError

logger = logging.getLogger(__name__)

REVISION_FIELD = "revision"

# Store calls still running after their caller stopped waiting
_in_flight: Set[asyncio.Future] = set()


@dataclass(frozen=True)
class ChangeEvent:
    """A single record snapshot pushed to subscribers.

    ``value`` is None when the record was removed.
    """
    collection: str
    key: str
    value: Optional[Dict[str, Any]]

    @property
    def path(self) -> str:
        return f"{self.collection}/{self.key}"


Callback = Callable[[ChangeEvent], Awaitable[None]]


def split_path(path: str) -> Tuple[str, Optional[str]]:
    """
    Split a store path into (collection, key).

    Raises:
        ValueError: If the path is empty or nested deeper than collection/key
    """
    parts = [part for part in path.strip("/").split("/") if part]
    if not parts or len(parts) > 2:
        raise ValueError(f"Invalid store path: '{path}'. Expected 'collection' or 'collection/key'")
    if len(parts) == 1:
        return parts[0], None
    return parts[0], parts[1]


def record_path(collection: str, key: str) -> str:
    return f"{collection}/{key}"


class Subscription(ABC):
    """Handle returned by ``RecordStore.subscribe``."""

    @abstractmethod
    async def cancel(self) -> None:
        """Stop delivering events to the callback."""


class RecordStore(ABC):
    """Async key-value store with get/set/update/push/remove and subscriptions."""

    @abstractmethod
    async def get(self, path: str) -> Optional[Dict[str, Any]]:
        """Return a record snapshot, or None if it does not exist."""

    @abstractmethod
    async def list(self, collection: str) -> Dict[str, Dict[str, Any]]:
        """Return every record in a collection keyed by record key."""

    @abstractmethod
    async def set(self, path: str, value: Dict[str, Any]) -> Dict[str, Any]:
        """Replace a record. Returns the stored snapshot."""

    @abstractmethod
    async def update(
        self,
        path: str,
        patch: Dict[str, Any],
        expected_revision: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Merge top-level fields into a record and return the stored snapshot.

        When ``expected_revision`` is given, the update is applied only if the
        stored revision matches, otherwise RevisionConflictError is raised.
        """

    @abstractmethod
    async def push(self, collection: str, value: Dict[str, Any]) -> str:
        """Insert a record under a freshly generated key and return the key."""

    @abstractmethod
    async def remove(self, path: str) -> None:
        """Delete a record. Removing a missing record is a no-op."""

    @abstractmethod
    async def subscribe(self, path: str, callback: Callback) -> Subscription:
        """
        Subscribe to a record or a whole collection.

        The callback is invoked immediately with the current value (one event
        per existing record for a collection path), then once per subsequent
        write to the path.
        Later snapshots are delivered after the write returns, in write order.
        """

    async def flush(self) -> None:
        """Wait until every write so far has been delivered to local subscribers."""

    async def close(self) -> None:
        """Release any underlying connections."""


def _log_late_outcome(operation: str, path: str, future: asyncio.Future) -> None:
    if future.cancelled():
        logger.error(f"Store {operation} on {path} was cancelled after its caller timed out")
        return
    error = future.exception()
    if error is not None:
        logger.error(f"Store {operation} on {path} failed after its caller timed out: {error}")
    else:
        logger.warning(f"Store {operation} on {path} completed after its caller timed out")


async def call_with_timeout(awaitable: Awaitable[Any], timeout: float, operation: str, path: str) -> Any:
    """
    Await a store call, surfacing a stall as StoreTimeoutError.

    Once submitted, the call always runs to completion: a timeout only stops
    the caller waiting for it. The call is not retried. A timeout does not tell
    the caller whether the write was applied; the next snapshot from the store
    does.
    """
    future = asyncio.ensure_future(awaitable)
    _in_flight.add(future)
    future.add_done_callback(_in_flight.discard)

    try:
        return await asyncio.wait_for(asyncio.shield(future), timeout=timeout)
    except asyncio.TimeoutError:
        logger.error(f"Store {operation} on {path} timed out after {timeout:.1f}s")
        future.add_done_callback(lambda done: _log_late_outcome(operation, path, done))
        raise StoreTimeoutError(operation, path, timeout)


async def dispatch(callbacks, event: ChangeEvent) -> None:
    """Deliver one event to every callback; a failing callback never fails the write."""
    if not callbacks:
        return
    # Each subscriber gets its own copy of the snapshot
    results = await asyncio.gather(
        *(
            callback(ChangeEvent(event.collection, event.key, copy.deepcopy(event.value)))
            for callback in callbacks
        ),
        return_exceptions=True,
    )
    for result in results:
        if isinstance(result, Exception):
            logger.error(
                f"Subscriber callback failed for {event.path}: {result}",
                exc_info=result,
            )
