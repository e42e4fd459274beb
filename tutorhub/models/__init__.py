"""SQLAlchemy ORM Models for TutorHub Database Schema"""
from tutorhub.models.report_snapshot import ReportSnapshot

__all__ = [
    "ReportSnapshot",
]
