"""
Class scheduling and read-side queries over the record store.

Classes live under ``classes/<id>``, the roster under ``children/<id>`` and
teacher profiles under ``teachers/<id>``.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from tutorhub import config
from tutorhub.exceptions import SessionNotFoundError
from tutorhub.schemas import STATUS_SCHEDULED, ScheduleClassRequest
from tutorhub.services.session_lifecycle import (
    CLASSES_COLLECTION,
    format_history_time,
    utc_now,
)
from tutorhub.store import RecordStore, call_with_timeout, record_path

logger = logging.getLogger(__name__)

CHILDREN_COLLECTION = "children"
TEACHERS_COLLECTION = "teachers"
UNKNOWN_NAME = "Unknown"


def with_ids(records: Dict[str, Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Attach each record's store key as ``id``."""
    return [{**record, "id": key} for key, record in records.items()]


def parse_class_datetime(record: Dict[str, Any]) -> Optional[datetime]:
    """Combine a record's ``date`` and ``time`` into a naive local datetime."""
    try:
        return datetime.strptime(f"{record.get('date')} {record.get('time')}", "%Y-%m-%d %H:%M")
    except (TypeError, ValueError):
        return None


class ClassService:
    """Create class records and answer roster/class queries for a user"""

    def __init__(self, store: RecordStore, timeout: Optional[float] = None):
        self.store = store
        self.timeout = timeout if timeout is not None else config.STORE_TIMEOUT_SECONDS

    async def schedule_class(self, request: ScheduleClassRequest) -> Dict[str, Any]:
        """
        Create a new class in ``scheduled`` status.

        Returns:
            Stored class snapshot (with ``id``)
        """
        now = utc_now()
        record = {
            "studentId": request.student_id,
            "teacherId": request.teacher_id,
            "date": request.date,
            "time": request.time,
            "duration": request.duration,
            "subject": request.subject,
            "status": STATUS_SCHEDULED,
            "zoomLink": request.zoom_link,
            "notes": request.notes,
            "history": [f"Class scheduled at {format_history_time(now)}"],
            "createdAt": now.isoformat(),
            "updatedAt": now.isoformat(),
        }

        class_id = await call_with_timeout(
            self.store.push(CLASSES_COLLECTION, record), self.timeout, "push", CLASSES_COLLECTION
        )
        logger.info(
            f"Scheduled class {class_id}: teacher={request.teacher_id}, "
            f"student={request.student_id}, {request.date} {request.time}"
        )
        return await self.get_class(class_id)

    async def get_class(self, class_id: str) -> Dict[str, Any]:
        path = record_path(CLASSES_COLLECTION, class_id)
        record = await call_with_timeout(self.store.get(path), self.timeout, "get", path)
        if record is None:
            raise SessionNotFoundError(class_id)
        return {**record, "id": class_id}

    async def list_classes(self) -> List[Dict[str, Any]]:
        records = await call_with_timeout(
            self.store.list(CLASSES_COLLECTION), self.timeout, "list", CLASSES_COLLECTION
        )
        return with_ids(records)

    async def get_classes_by_teacher(self, teacher_id: str) -> List[Dict[str, Any]]:
        return [cls for cls in await self.list_classes() if cls.get("teacherId") == teacher_id]

    async def get_classes_by_student(self, student_id: str) -> List[Dict[str, Any]]:
        return [cls for cls in await self.list_classes() if cls.get("studentId") == student_id]

    async def get_students_by_teacher(self, teacher_id: str) -> List[Dict[str, Any]]:
        records = await call_with_timeout(
            self.store.list(CHILDREN_COLLECTION), self.timeout, "list", CHILDREN_COLLECTION
        )
        return [child for child in with_ids(records) if child.get("teacherId") == teacher_id]

    async def get_children_by_parent(self, parent_id: str) -> List[Dict[str, Any]]:
        records = await call_with_timeout(
            self.store.list(CHILDREN_COLLECTION), self.timeout, "list", CHILDREN_COLLECTION
        )
        return [child for child in with_ids(records) if child.get("parentId") == parent_id]

    async def get_upcoming_classes_for_parent(
        self, parent_id: str, now: Optional[datetime] = None
    ) -> List[Dict[str, Any]]:
        """
        Upcoming classes for every child of a parent, with ``studentName`` and
        ``teacherName`` attached.
        """
        children = {child["id"]: child for child in await self.get_children_by_parent(parent_id)}
        if not children:
            return []

        teachers = await call_with_timeout(
            self.store.list(TEACHERS_COLLECTION), self.timeout, "list", TEACHERS_COLLECTION
        )
        classes = [cls for cls in await self.list_classes() if cls.get("studentId") in children]

        return [
            {
                **cls,
                "studentName": children[cls["studentId"]].get("name") or UNKNOWN_NAME,
                "teacherName": teachers.get(cls.get("teacherId"), {}).get("name") or UNKNOWN_NAME,
            }
            for cls in upcoming_classes(classes, now)
        ]

    async def get_upcoming_classes(
        self,
        user_id: str,
        user_type: str = "teacher",
        now: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        """
        Scheduled classes at or after ``now`` for a teacher, student or parent,
        earliest first. A parent sees the classes of all their children.

        Raises:
            ValueError: If user_type is not "teacher", "student" or "parent"
        """
        if user_type == "teacher":
            classes = await self.get_classes_by_teacher(user_id)
        elif user_type == "student":
            classes = await self.get_classes_by_student(user_id)
        elif user_type == "parent":
            return await self.get_upcoming_classes_for_parent(user_id, now)
        else:
            raise ValueError(f"Invalid user type: {user_type}. Must be one of: teacher, student, parent")

        return upcoming_classes(classes, now)

    async def get_today_classes(self, today: Optional[str] = None) -> List[Dict[str, Any]]:
        today = today or datetime.now().strftime("%Y-%m-%d")
        return [cls for cls in await self.list_classes() if cls.get("date") == today]


def upcoming_classes(classes: List[Dict[str, Any]], now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Filter to scheduled classes starting at or after ``now`` and sort ascending."""
    now = now or datetime.now()
    upcoming = []
    for cls in classes:
        starts_at = parse_class_datetime(cls)
        if starts_at is None or cls.get("status") != STATUS_SCHEDULED:
            continue
        if starts_at >= now:
            upcoming.append((starts_at, cls))

    upcoming.sort(key=lambda item: item[0])
    return [cls for _, cls in upcoming]
