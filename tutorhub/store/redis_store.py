"""
Redis-backed Record Store

Each collection is a Redis hash (``<namespace>:<collection>``) mapping record
keys to JSON documents. Every write publishes the full snapshot on two channels:
one scoped to the record and one scoped to the collection, so subscribers only
hear about the data they asked for.
"""
import asyncio
import json
import logging
import uuid
from typing import Any, Dict, Optional

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from tutorhub.exceptions import RevisionConflictError, StoreWriteError
from tutorhub.store.base import (
    REVISION_FIELD,
    Callback,
    ChangeEvent,
    RecordStore,
    Subscription,
    split_path,
)

logger = logging.getLogger(__name__)


class _RedisSubscription(Subscription):

    def __init__(self, pubsub, task: asyncio.Task):
        self._pubsub = pubsub
        self._task = task

    async def cancel(self) -> None:
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        await self._pubsub.unsubscribe()
        await self._pubsub.aclose()


class RedisRecordStore(RecordStore):
    """RecordStore backed by Redis hashes with pub/sub fan-out."""

    def __init__(self, client: aioredis.Redis, namespace: str = "tutorhub"):
        self._redis = client
        self._namespace = namespace

    @classmethod
    async def from_url(cls, url: str, namespace: str = "tutorhub") -> "RedisRecordStore":
        client = await aioredis.from_url(
            url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=50,
        )
        return cls(client, namespace)

    def _hash_key(self, collection: str) -> str:
        return f"{self._namespace}:{collection}"

    def _channel(self, collection: str, key: Optional[str] = None) -> str:
        if key is None:
            return f"{self._namespace}:events:{collection}"
        return f"{self._namespace}:events:{collection}/{key}"

    def _record_path(self, path: str):
        collection, key = split_path(path)
        if key is None:
            raise ValueError(f"Expected a record path 'collection/key', got '{path}'")
        return collection, key

    async def get(self, path: str) -> Optional[Dict[str, Any]]:
        collection, key = self._record_path(path)
        try:
            raw = await self._redis.hget(self._hash_key(collection), key)
        except RedisError as e:
            raise StoreWriteError("get", path, e)
        return json.loads(raw) if raw is not None else None

    async def list(self, collection: str) -> Dict[str, Dict[str, Any]]:
        try:
            raw = await self._redis.hgetall(self._hash_key(collection))
        except RedisError as e:
            raise StoreWriteError("list", collection, e)
        return {key: json.loads(value) for key, value in raw.items()}

    async def set(self, path: str, value: Dict[str, Any]) -> Dict[str, Any]:
        collection, key = self._record_path(path)

        def build(current: Optional[Dict[str, Any]]) -> Dict[str, Any]:
            record = dict(value)
            record[REVISION_FIELD] = (current or {}).get(REVISION_FIELD, 0) + 1
            return record

        return await self._read_modify_write("set", collection, key, build)

    async def update(
        self,
        path: str,
        patch: Dict[str, Any],
        expected_revision: Optional[int] = None,
    ) -> Dict[str, Any]:
        collection, key = self._record_path(path)

        def build(current: Optional[Dict[str, Any]]) -> Dict[str, Any]:
            current = current or {}
            current_revision = current.get(REVISION_FIELD, 0)
            if expected_revision is not None and expected_revision != current_revision:
                raise RevisionConflictError(path, expected_revision, current_revision)
            record = dict(current)
            record.update(patch)
            record[REVISION_FIELD] = current_revision + 1
            return record

        return await self._read_modify_write("update", collection, key, build)

    async def push(self, collection: str, value: Dict[str, Any]) -> str:
        key = uuid.uuid4().hex
        await self.set(f"{collection}/{key}", value)
        return key

    async def remove(self, path: str) -> None:
        collection, key = self._record_path(path)
        try:
            removed = await self._redis.hdel(self._hash_key(collection), key)
        except RedisError as e:
            raise StoreWriteError("remove", path, e)
        if removed:
            await self._publish(collection, key, None)

    async def subscribe(self, path: str, callback: Callback) -> Subscription:
        collection, key = split_path(path)
        pubsub = self._redis.pubsub()
        try:
            # Subscribe before replaying so no write between the two is lost
            await pubsub.subscribe(self._channel(collection, key))
            if key is None:
                for record_key, record in (await self.list(collection)).items():
                    await callback(ChangeEvent(collection, record_key, record))
            else:
                await callback(ChangeEvent(collection, key, await self.get(path)))
        except RedisError as e:
            await pubsub.aclose()
            raise StoreWriteError("subscribe", path, e)

        task = asyncio.create_task(self._listen(pubsub, callback))
        return _RedisSubscription(pubsub, task)

    async def close(self) -> None:
        await self._redis.aclose()

    async def _read_modify_write(self, operation: str, collection: str, key: str, build) -> Dict[str, Any]:
        hash_key = self._hash_key(collection)
        path = f"{collection}/{key}"

        async def apply(pipe) -> Dict[str, Any]:
            raw = await pipe.hget(hash_key, key)
            record = build(json.loads(raw) if raw is not None else None)
            pipe.multi()
            pipe.hset(hash_key, key, json.dumps(record))
            return record

        try:
            record = await self._redis.transaction(apply, hash_key, value_from_callable=True)
        except RedisError as e:
            raise StoreWriteError(operation, path, e)

        await self._publish(collection, key, record)
        return record

    async def _publish(self, collection: str, key: str, record: Optional[Dict[str, Any]]) -> None:
        """Announce a committed write; a failure here leaves the write in place."""
        message = json.dumps({"collection": collection, "key": key, "value": record})
        try:
            await self._redis.publish(self._channel(collection, key), message)
            await self._redis.publish(self._channel(collection), message)
        except RedisError as e:
            logger.error(f"Publish for {collection}/{key} failed after commit: {e}")

    async def _listen(self, pubsub, callback: Callback) -> None:
        async for message in pubsub.listen():
            if message.get("type") != "message":
                continue
            try:
                payload = json.loads(message["data"])
                event = ChangeEvent(payload["collection"], payload["key"], payload["value"])
            except (ValueError, KeyError) as e:
                logger.warning(f"Ignoring malformed store event: {e}")
                continue
            try:
                await callback(event)
            except Exception as e:
                logger.error(f"Subscriber callback failed for {event.path}: {e}", exc_info=True)
