"""Record store adapters"""
import logging

from tutorhub import config
from tutorhub.store.base import ChangeEvent, RecordStore, Subscription, call_with_timeout, record_path
from tutorhub.store.memory import InMemoryRecordStore

logger = logging.getLogger(__name__)


async def create_record_store(backend: str = None) -> RecordStore:
    """
    Build the configured RecordStore.

    Args:
        backend: "memory" or "redis" (defaults to STORE_BACKEND)

    Raises:
        ValueError: If backend is unknown
    """
    backend = (backend or config.STORE_BACKEND).lower()

    if backend == "memory":
        logger.info("Using in-memory record store")
        return InMemoryRecordStore()
    if backend == "redis":
        from tutorhub.store.redis_store import RedisRecordStore

        logger.info(f"Using Redis record store at {config.REDIS_URL}")
        return await RedisRecordStore.from_url(config.REDIS_URL, namespace=config.STORE_NAMESPACE)

    raise ValueError(f"Invalid store backend: {backend}. Must be one of: memory, redis")


__all__ = [
    "ChangeEvent",
    "RecordStore",
    "Subscription",
    "InMemoryRecordStore",
    "call_with_timeout",
    "create_record_store",
    "record_path",
]
