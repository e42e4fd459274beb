"""ReportSnapshot model - Periodic teacher report history"""
from sqlalchemy import Column, String, Integer, DateTime, Text, CheckConstraint, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
import uuid

from tutorhub.database import Base


class ReportSnapshot(Base):
    """Class-wide report figures for one teacher and period at a point in time"""

    __tablename__ = "report_snapshots"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    teacher_id = Column(String(100), nullable=False)
    period = Column(String(20), nullable=False)
    total_students = Column(Integer, nullable=False)
    average_attendance = Column(
        Integer,
        CheckConstraint("average_attendance >= 0 AND average_attendance <= 100"),
        nullable=False,
    )
    average_grade = Column(
        Integer,
        CheckConstraint("average_grade >= 0 AND average_grade <= 100"),
        nullable=False,
    )
    assignment_completion_rate = Column(Integer, nullable=False)
    parse_failures = Column(Integer, nullable=False, default=0)
    top_performers = Column(Text, nullable=True)  # JSON list of student ids
    needs_attention = Column(Text, nullable=True)  # JSON list of student ids
    snapshot_time = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Indexes for performance
    __table_args__ = (
        Index("idx_report_snapshots_teacher_time", "teacher_id", "snapshot_time"),
    )

    def __repr__(self):
        return f"<ReportSnapshot(id={self.id}, teacher={self.teacher_id}, period={self.period})>"
