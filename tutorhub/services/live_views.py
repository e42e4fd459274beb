"""
Live derived views over the record store.

Each view subscribes to the ``classes`` collection, keeps the latest snapshot of
the records it cares about and recomputes its value only when one of those
records changes. Snapshots from other teachers are ignored, so a write to one
teacher's class never triggers work for another teacher's view.
"""
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional

from tutorhub.services.class_service import CHILDREN_COLLECTION, upcoming_classes
from tutorhub.services.report_calculator import ReportCalculator, get_report_calculator
from tutorhub.services.session_lifecycle import CLASSES_COLLECTION
from tutorhub.store import ChangeEvent, RecordStore, Subscription

logger = logging.getLogger(__name__)

ChangeHandler = Callable[[Any], Awaitable[None]]


class LiveTeacherView(ABC):
    """Base class: tracks one teacher's classes and recomputes on relevant changes"""

    def __init__(self, store: RecordStore, teacher_id: str, on_change: Optional[ChangeHandler] = None):
        self.store = store
        self.teacher_id = teacher_id
        self.on_change = on_change
        self.classes: Dict[str, Dict[str, Any]] = {}
        self.value: Any = None
        self.recompute_count = 0
        self._subscriptions: List[Subscription] = []
        self._ready = False

    async def start(self) -> Any:
        """Subscribe and compute the initial value from the replayed snapshots."""
        self._subscriptions.append(await self.store.subscribe(CLASSES_COLLECTION, self._on_class_event))
        self._ready = True
        await self._recompute()
        return self.value

    async def stop(self) -> None:
        for subscription in self._subscriptions:
            await subscription.cancel()
        self._subscriptions = []
        self._ready = False

    def _belongs_to_teacher(self, record: Optional[Dict[str, Any]]) -> bool:
        return record is not None and record.get("teacherId") == self.teacher_id

    async def _on_class_event(self, event: ChangeEvent) -> None:
        if self._belongs_to_teacher(event.value):
            self.classes[event.key] = {**event.value, "id": event.key}
        elif event.key in self.classes:
            # Removed, or no longer this teacher's class
            del self.classes[event.key]
        else:
            return

        if self._ready:
            await self._recompute()

    async def _recompute(self) -> None:
        self.value = await self.compute()
        self.recompute_count += 1
        if self.on_change is not None:
            await self.on_change(self.value)

    @abstractmethod
    async def compute(self) -> Any:
        """Value derived from the tracked classes."""


class LiveTeacherReport(LiveTeacherView):
    """Teacher report that stays current as classes and roster change"""

    def __init__(
        self,
        store: RecordStore,
        teacher_id: str,
        period: str = "month",
        calculator: Optional[ReportCalculator] = None,
        on_change: Optional[ChangeHandler] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        super().__init__(store, teacher_id, on_change)
        self.period = period
        self.calculator = calculator or get_report_calculator()
        self.clock = clock or datetime.now
        self.roster: Dict[str, Dict[str, Any]] = {}

    async def start(self) -> Any:
        self._subscriptions.append(await self.store.subscribe(CHILDREN_COLLECTION, self._on_child_event))
        return await super().start()

    async def _on_child_event(self, event: ChangeEvent) -> None:
        if self._belongs_to_teacher(event.value):
            self.roster[event.key] = {**event.value, "id": event.key}
        elif event.key in self.roster:
            del self.roster[event.key]
        else:
            return

        if self._ready:
            await self._recompute()

    async def compute(self) -> Dict[str, Any]:
        return self.calculator.calculate(
            self.classes.values(),
            self.roster.values(),
            period=self.period,
            now=self.clock(),
            teacher_id=self.teacher_id,
        )


class LiveUpcomingClasses(LiveTeacherView):
    """Teacher's upcoming scheduled classes, earliest first"""

    def __init__(
        self,
        store: RecordStore,
        teacher_id: str,
        on_change: Optional[ChangeHandler] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        super().__init__(store, teacher_id, on_change)
        self.clock = clock or datetime.now

    async def compute(self) -> List[Dict[str, Any]]:
        return upcoming_classes(list(self.classes.values()), now=self.clock())
