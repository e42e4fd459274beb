"""
Class Session Lifecycle Controller

Owns the status transitions of a single class record:

    scheduled -> in-progress -> completed

- start:    scheduled -> in-progress (sets onlineTime, the only writer of it)
- complete: scheduled | in-progress -> completed (sets completedAt, rating,
            notes summary and structured evaluation)

Every operation re-reads the freshest snapshot from the record store before
checking its guard, then writes a single patch. Concurrent writers are resolved
last-write-wins by the store. A failed write leaves nothing applied locally and
is never retried here.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Union

from tutorhub import config
from tutorhub.exceptions import (
    InvalidTransitionError,
    SessionNotFoundError,
    StoreError,
    StoreWriteError,
)
from tutorhub.schemas import (
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    STATUS_SCHEDULED,
    Evaluation,
)
from tutorhub.services.evaluation_codec import encode_summary, to_structured
from tutorhub.store import RecordStore, call_with_timeout, record_path

logger = logging.getLogger(__name__)

CLASSES_COLLECTION = "classes"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_history_time(moment: datetime) -> str:
    """Human-readable timestamp used in history lines"""
    return moment.strftime("%Y-%m-%d %H:%M:%S UTC")


class SessionLifecycleController:
    """Applies start/complete transitions to class records in the store"""

    def __init__(
        self,
        store: RecordStore,
        clock: Optional[Callable[[], datetime]] = None,
        timeout: Optional[float] = None,
    ):
        self.store = store
        self.clock = clock or utc_now
        self.timeout = timeout if timeout is not None else config.STORE_TIMEOUT_SECONDS

    async def start_class(self, class_id: str, actor: str = "Teacher") -> Dict[str, Any]:
        """
        Mark a scheduled class as in-progress.

        Args:
            class_id: Class record key
            actor: Name shown in the history line

        Returns:
            Stored class snapshot (with ``id``)

        Raises:
            SessionNotFoundError: If the class does not exist
            InvalidTransitionError: If the class is not scheduled (already
                started or completed); the record is left untouched
            StoreWriteError: If the store rejects or stalls on the write
        """
        current = await self._load(class_id)
        status = current.get("status")

        if status != STATUS_SCHEDULED:
            logger.warning(f"Rejected start of class {class_id}: status is '{status}'")
            raise InvalidTransitionError(class_id, status, "start")

        now = self.clock()
        timestamp = now.isoformat()
        history = list(current.get("history") or [])
        history.append(f"{actor} went online at {format_history_time(now)}")

        patch = {
            "status": STATUS_IN_PROGRESS,
            "onlineTime": timestamp,
            "updatedAt": timestamp,
            "history": history,
        }

        stored = await self._write(class_id, patch)
        logger.info(f"Class {class_id} started by {actor}")
        return stored

    async def complete_class(
        self,
        class_id: str,
        evaluation: Union[Evaluation, Dict[str, Any], None],
        actor: str = "Teacher",
    ) -> Dict[str, Any]:
        """
        Mark a class as completed and record the teacher's evaluation.

        Completion is allowed straight from ``scheduled``; in that case
        ``onlineTime`` stays unset.

        Args:
            class_id: Class record key
            evaluation: Evaluation model or a dict that validates as one
            actor: Name shown in the history line

        Returns:
            Stored class snapshot (with ``id``)

        Raises:
            ValueError: If no evaluation is supplied or it fails validation
            SessionNotFoundError: If the class does not exist
            InvalidTransitionError: If the class is already completed
            StoreWriteError: If the store rejects or stalls on the write
        """
        if evaluation is None:
            raise ValueError("An evaluation is required to complete a class")
        if not isinstance(evaluation, Evaluation):
            evaluation = Evaluation.model_validate(evaluation)

        current = await self._load(class_id)
        status = current.get("status")

        if status not in (STATUS_SCHEDULED, STATUS_IN_PROGRESS):
            logger.warning(f"Rejected completion of class {class_id}: status is '{status}'")
            raise InvalidTransitionError(class_id, status, "complete")

        now = self.clock()
        timestamp = now.isoformat()
        summary = encode_summary(evaluation)
        history = list(current.get("history") or [])
        history.append(f"Class completed by {actor} at {format_history_time(now)}")
        history.append(summary)

        patch = {
            "status": STATUS_COMPLETED,
            "completedAt": timestamp,
            "updatedAt": timestamp,
            "rating": evaluation.performance,
            "notes": summary,
            "evaluation": to_structured(evaluation),
            "history": history,
        }

        stored = await self._write(class_id, patch)
        logger.info(
            f"Class {class_id} completed by {actor}: performance={evaluation.performance}/5, "
            f"attendance={evaluation.attendance}"
        )
        return stored

    async def _load(self, class_id: str) -> Dict[str, Any]:
        path = record_path(CLASSES_COLLECTION, class_id)
        try:
            record = await call_with_timeout(self.store.get(path), self.timeout, "get", path)
        except StoreError:
            raise
        except Exception as e:
            raise StoreWriteError("get", path, e) from e

        if record is None:
            raise SessionNotFoundError(class_id)
        return record

    async def _write(self, class_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        path = record_path(CLASSES_COLLECTION, class_id)
        try:
            stored = await call_with_timeout(self.store.update(path, patch), self.timeout, "update", path)
        except StoreError as e:
            logger.error(f"Failed to write class {class_id}: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to write class {class_id}: {e}", exc_info=True)
            raise StoreWriteError("update", path, e) from e

        stored["id"] = class_id
        return stored
