"""Pydantic models for class sessions, evaluations and teacher reports"""
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ClassStatus = Literal["scheduled", "in-progress", "completed"]
AttendanceStatus = Literal["present", "absent", "late"]
HomeworkStatus = Literal["completed", "partial", "not-done"]
ReportPeriod = Literal["week", "month", "semester"]

STATUS_SCHEDULED = "scheduled"
STATUS_IN_PROGRESS = "in-progress"
STATUS_COMPLETED = "completed"


class Evaluation(BaseModel):
    """Teacher assessment submitted when a class is completed"""
    model_config = ConfigDict(populate_by_name=True)

    attendance: AttendanceStatus
    homework: HomeworkStatus
    performance: int = Field(..., ge=1, le=5)
    memorization: int = Field(..., ge=1, le=5)
    tajweed: int = Field(..., ge=1, le=5)
    participation: int = Field(..., ge=1, le=5)
    notes: str = ""
    next_lesson: str = Field(default="", alias="nextLesson")


class ScheduleClassRequest(BaseModel):
    """Request body for POST /classes"""
    model_config = ConfigDict(populate_by_name=True)

    student_id: str = Field(..., alias="studentId", min_length=1)
    teacher_id: str = Field(..., alias="teacherId", min_length=1)
    date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$", description="Calendar date YYYY-MM-DD")
    time: str = Field(..., pattern=r"^\d{2}:\d{2}$", description="Local wall-clock time HH:MM")
    duration: int = Field(..., gt=0, description="Duration in minutes")
    subject: str = Field(..., min_length=1)
    zoom_link: str = Field(default="", alias="zoomLink")
    notes: str = ""


class ActorRequest(BaseModel):
    """Who is performing a lifecycle action"""
    actor: str = Field(default="Teacher", min_length=1)


class CompleteClassRequest(BaseModel):
    """Request body for POST /classes/{id}/complete"""
    actor: str = Field(default="Teacher", min_length=1)
    evaluation: Evaluation


class ClassRecord(BaseModel):
    """Persisted class session as returned by the API"""
    model_config = ConfigDict(extra="allow")

    id: str
    studentId: str
    teacherId: str
    date: str
    time: str
    duration: int
    subject: str
    status: ClassStatus
    zoomLink: str = ""
    notes: str = ""
    history: List[str] = Field(default_factory=list)
    onlineTime: Optional[str] = None
    completedAt: Optional[str] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None
    rating: Optional[int] = None
    revision: Optional[int] = None
    studentName: Optional[str] = None
    teacherName: Optional[str] = None


class StudentPerformance(BaseModel):
    """Per-student metrics for a reporting window"""
    studentId: str
    name: str
    attendancePercentage: int
    averagePerformance: int
    totalCompletedClasses: int
    totalScheduledClasses: int


class ClassStats(BaseModel):
    """Class-wide pooled statistics"""
    totalStudents: int
    averageAttendance: int
    averageGrade: int
    assignmentCompletionRate: int


class TeacherReport(BaseModel):
    """Response for GET /teachers/{teacher_id}/reports"""
    teacherId: str
    period: ReportPeriod
    periodStart: str
    classStats: ClassStats
    topPerformers: List[StudentPerformance]
    needsAttention: List[StudentPerformance]
    students: List[StudentPerformance]
    parseFailures: int
    generatedAt: str
