"""
Class Lifecycle API Endpoints

POST /api/v1/classes                    - Schedule a class
GET  /api/v1/classes/{class_id}         - Current snapshot of a class
POST /api/v1/classes/{class_id}/start   - Mark a class as in-progress
POST /api/v1/classes/{class_id}/complete - Complete a class with an evaluation
GET  /api/v1/teachers/{teacher_id}/classes          - All classes of a teacher
GET  /api/v1/teachers/{teacher_id}/classes/upcoming - Upcoming scheduled classes
GET  /api/v1/students/{student_id}/classes/upcoming - Upcoming scheduled classes
GET  /api/v1/parents/{parent_id}/classes/upcoming   - Upcoming classes of a parent's children
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, status

from tutorhub.api.dependencies import get_class_service, get_lifecycle_controller
from tutorhub.schemas import (
    ActorRequest,
    ClassRecord,
    CompleteClassRequest,
    ScheduleClassRequest,
)
from tutorhub.services.class_service import ClassService
from tutorhub.services.session_lifecycle import SessionLifecycleController

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["classes"])


@router.post("/classes", response_model=ClassRecord, status_code=status.HTTP_201_CREATED)
async def schedule_class(
    payload: ScheduleClassRequest,
    service: ClassService = Depends(get_class_service),
):
    """Create a class in ``scheduled`` status."""
    return await service.schedule_class(payload)


@router.get("/classes/{class_id}", response_model=ClassRecord)
async def get_class(
    class_id: str = Path(..., description="Class record key"),
    service: ClassService = Depends(get_class_service),
):
    """
    Get the latest stored snapshot of a class.

    Raises:
        404: If the class does not exist
    """
    return await service.get_class(class_id)


@router.post("/classes/{class_id}/start", response_model=ClassRecord)
async def start_class(
    class_id: str = Path(..., description="Class record key"),
    payload: Optional[ActorRequest] = None,
    controller: SessionLifecycleController = Depends(get_lifecycle_controller),
):
    """
    Mark a scheduled class as in-progress and stamp ``onlineTime``.

    Raises:
        404: If the class does not exist
        409: If the class was already started or completed
        503/504: If the record store write fails or stalls
    """
    actor = payload.actor if payload else "Teacher"
    return await controller.start_class(class_id, actor=actor)


@router.post("/classes/{class_id}/complete", response_model=ClassRecord)
async def complete_class(
    payload: CompleteClassRequest,
    class_id: str = Path(..., description="Class record key"),
    controller: SessionLifecycleController = Depends(get_lifecycle_controller),
):
    """
    Complete a class, writing the evaluation summary, rating and history.

    Allowed from ``scheduled`` or ``in-progress``.

    Raises:
        404: If the class does not exist
        409: If the class is already completed
        422: If the evaluation is missing or invalid
        503/504: If the record store write fails or stalls
    """
    return await controller.complete_class(class_id, payload.evaluation, actor=payload.actor)


@router.get("/teachers/{teacher_id}/classes", response_model=List[ClassRecord])
async def get_teacher_classes(
    teacher_id: str = Path(..., description="Teacher id"),
    service: ClassService = Depends(get_class_service),
):
    """All classes of a teacher, in any status."""
    return await service.get_classes_by_teacher(teacher_id)


@router.get("/teachers/{teacher_id}/classes/upcoming", response_model=List[ClassRecord])
async def get_teacher_upcoming_classes(
    teacher_id: str = Path(..., description="Teacher id"),
    service: ClassService = Depends(get_class_service),
):
    """Scheduled classes from now on, earliest first."""
    return await service.get_upcoming_classes(teacher_id, user_type="teacher")


@router.get("/students/{student_id}/classes/upcoming", response_model=List[ClassRecord])
async def get_student_upcoming_classes(
    student_id: str = Path(..., description="Student id"),
    service: ClassService = Depends(get_class_service),
):
    """Scheduled classes from now on, earliest first."""
    return await service.get_upcoming_classes(student_id, user_type="student")


@router.get("/parents/{parent_id}/classes/upcoming", response_model=List[ClassRecord])
async def get_parent_upcoming_classes(
    parent_id: str = Path(..., description="Parent id"),
    service: ClassService = Depends(get_class_service),
):
    """Scheduled classes of all the parent's children, with student and teacher names."""
    return await service.get_upcoming_classes(parent_id, user_type="parent")
