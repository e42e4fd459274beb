"""In-process record store used for local development and tests."""
import asyncio
import copy
import logging
import uuid
from typing import Any, Dict, List, Optional, Set, Tuple

from tutorhub.exceptions import RevisionConflictError
from tutorhub.store.base import (
    REVISION_FIELD,
    Callback,
    ChangeEvent,
    RecordStore,
    Subscription,
    dispatch,
    split_path,
)

logger = logging.getLogger(__name__)


class _MemorySubscription(Subscription):

    def __init__(self, store: "InMemoryRecordStore", path_key: Tuple[str, Optional[str]], callback: Callback):
        self._store = store
        self._path_key = path_key
        self._callback = callback

    async def cancel(self) -> None:
        listeners = self._store._listeners.get(self._path_key, [])
        if self._callback in listeners:
            listeners.remove(self._callback)


class InMemoryRecordStore(RecordStore):
    """
    Dict-backed RecordStore.

    Snapshots handed to callers and subscribers are deep copies, so holding a
    stale copy never aliases the stored record.
    """

    def __init__(self):
        self._data: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._listeners: Dict[Tuple[str, Optional[str]], List[Callback]] = {}
        self._deliveries: Set[asyncio.Future] = set()
        self._last_delivery: Optional[asyncio.Future] = None

    def _record_path(self, path: str) -> Tuple[str, str]:
        collection, key = split_path(path)
        if key is None:
            raise ValueError(f"Expected a record path 'collection/key', got '{path}'")
        return collection, key

    async def get(self, path: str) -> Optional[Dict[str, Any]]:
        collection, key = split_path(path)
        if key is None:
            raise ValueError(f"Use list() to read collection '{collection}'")
        record = self._data.get(collection, {}).get(key)
        return copy.deepcopy(record) if record is not None else None

    async def list(self, collection: str) -> Dict[str, Dict[str, Any]]:
        return copy.deepcopy(self._data.get(collection, {}))

    async def set(self, path: str, value: Dict[str, Any]) -> Dict[str, Any]:
        collection, key = self._record_path(path)
        current = self._data.get(collection, {}).get(key)
        record = copy.deepcopy(value)
        record[REVISION_FIELD] = (current or {}).get(REVISION_FIELD, 0) + 1
        return await self._write(collection, key, record)

    async def update(
        self,
        path: str,
        patch: Dict[str, Any],
        expected_revision: Optional[int] = None,
    ) -> Dict[str, Any]:
        collection, key = self._record_path(path)
        current = self._data.get(collection, {}).get(key) or {}
        current_revision = current.get(REVISION_FIELD, 0)

        if expected_revision is not None and expected_revision != current_revision:
            raise RevisionConflictError(path, expected_revision, current_revision)

        record = copy.deepcopy(current)
        record.update(copy.deepcopy(patch))
        record[REVISION_FIELD] = current_revision + 1
        return await self._write(collection, key, record)

    async def push(self, collection: str, value: Dict[str, Any]) -> str:
        key = uuid.uuid4().hex
        await self.set(f"{collection}/{key}", value)
        return key

    async def remove(self, path: str) -> None:
        collection, key = self._record_path(path)
        if self._data.get(collection, {}).pop(key, None) is None:
            return
        self._publish(ChangeEvent(collection=collection, key=key, value=None))

    async def subscribe(self, path: str, callback: Callback) -> Subscription:
        collection, key = split_path(path)
        self._listeners.setdefault((collection, key), []).append(callback)

        # Replay current state before any later write reaches the callback
        if key is None:
            for record_key, record in list(self._data.get(collection, {}).items()):
                await callback(ChangeEvent(collection, record_key, copy.deepcopy(record)))
        else:
            record = self._data.get(collection, {}).get(key)
            await callback(ChangeEvent(collection, key, copy.deepcopy(record)))

        return _MemorySubscription(self, (collection, key), callback)

    async def _write(self, collection: str, key: str, record: Dict[str, Any]) -> Dict[str, Any]:
        self._data.setdefault(collection, {})[key] = record
        self._publish(ChangeEvent(collection=collection, key=key, value=copy.deepcopy(record)))
        return copy.deepcopy(record)

    def _publish(self, event: ChangeEvent) -> None:
        """Queue delivery of a snapshot; the write never waits for subscribers."""
        callbacks = list(self._listeners.get((event.collection, event.key), []))
        callbacks += self._listeners.get((event.collection, None), [])
        if not callbacks:
            return
        logger.debug(f"Publishing {event.path} to {len(callbacks)} subscribers")

        previous = self._last_delivery
        delivery = asyncio.ensure_future(self._deliver(previous, callbacks, event))
        self._deliveries.add(delivery)
        delivery.add_done_callback(self._deliveries.discard)
        self._last_delivery = delivery

    async def _deliver(self, previous: Optional[asyncio.Future], callbacks: List[Callback], event: ChangeEvent) -> None:
        # Subscribers see snapshots in write order
        if previous is not None and not previous.done():
            await asyncio.wait([previous])
        await dispatch(callbacks, event)

    async def flush(self) -> None:
        while self._deliveries:
            await asyncio.wait(list(self._deliveries))

    async def close(self) -> None:
        await self.flush()
