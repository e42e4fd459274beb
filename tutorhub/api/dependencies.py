"""FastAPI dependencies wiring routes to the record store and services"""
from fastapi import Depends, Request

from tutorhub.services.class_service import ClassService
from tutorhub.services.session_lifecycle import SessionLifecycleController
from tutorhub.store import RecordStore


def get_record_store(request: Request) -> RecordStore:
    """Record store created during application startup"""
    return request.app.state.store


def get_class_service(store: RecordStore = Depends(get_record_store)) -> ClassService:
    return ClassService(store)


def get_lifecycle_controller(store: RecordStore = Depends(get_record_store)) -> SessionLifecycleController:
    return SessionLifecycleController(store)
