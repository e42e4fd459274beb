"""
Teacher Report Calculator

Rebuilds attendance and performance analytics for one teacher purely from
completed class records over a rolling window:

- Per student: attendance percentage, average performance (1-5 mapped to 0-100),
  completed (evaluated) and scheduled class counts
- Class-wide pooled attendance, grade and homework completion
- Top performers (>= 90 performance and >= 85% attendance) and students needing
  attention (< 70 performance or < 75% attendance), 3 each

Never mutates records. Classes whose evaluation cannot be decoded still count
as scheduled but contribute nothing to attendance or performance.
"""
import calendar
import logging
import math
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from tutorhub.schemas import STATUS_COMPLETED
from tutorhub.services.class_service import ClassService
from tutorhub.services.evaluation_codec import decode_session_evaluation

logger = logging.getLogger(__name__)

PERIODS = ["week", "month", "semester"]
UNKNOWN_STUDENT_NAME = "Unknown Student"


def subtract_months(moment: datetime, months: int) -> datetime:
    """Step back whole calendar months, clamping to the last valid day."""
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def get_period_start(period: str, now: Optional[datetime] = None) -> datetime:
    """
    Resolve a reporting period to its lower bound. There is no upper bound.

    Args:
        period: One of "week", "month", "semester"
        now: Reference time (defaults to current local time)

    Returns:
        now - 7 days, now - 1 month or now - 6 months

    Raises:
        ValueError: If period is invalid
    """
    now = now or datetime.now()

    if period == "week":
        return now - timedelta(days=7)
    elif period == "month":
        return subtract_months(now, 1)
    elif period == "semester":
        return subtract_months(now, 6)
    else:
        raise ValueError(f"Invalid period: {period}. Must be one of: week, month, semester")


def parse_class_date(value: Any) -> Optional[date]:
    if not isinstance(value, str):
        return None
    try:
        return datetime.strptime(value[:10], "%Y-%m-%d").date()
    except ValueError:
        return None


def _percentage(numerator: int, denominator: int, scale: float = 100) -> int:
    """round(numerator / denominator * scale), or 0 when the denominator is 0"""
    if denominator <= 0:
        return 0
    # Half-up, so 12.5 reports as 13
    value = int(math.floor(numerator / denominator * scale + 0.5))
    return max(0, min(value, 100))


class ReportCalculator:
    """Aggregates completed classes into per-student and class-wide metrics"""

    TOP_PERFORMANCE_MIN = 90
    TOP_ATTENDANCE_MIN = 85
    ATTENTION_PERFORMANCE_BELOW = 70
    ATTENTION_ATTENDANCE_BELOW = 75
    COHORT_LIMIT = 3
    MIN_CLASSES_FOR_REPORT = 1

    def filter_relevant_classes(
        self,
        classes: Iterable[Dict[str, Any]],
        period_start: datetime,
    ) -> List[Dict[str, Any]]:
        """Completed classes whose date is on or after the period start"""
        start_date = period_start.date()
        relevant = []
        for cls in classes:
            if cls.get("status") != STATUS_COMPLETED:
                continue
            class_date = parse_class_date(cls.get("date"))
            if class_date is not None and class_date >= start_date:
                relevant.append(cls)
        return relevant

    def calculate(
        self,
        classes: Iterable[Dict[str, Any]],
        roster: Iterable[Dict[str, Any]],
        period: str = "month",
        now: Optional[datetime] = None,
        teacher_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Build a teacher report.

        Args:
            classes: The teacher's class records (each with ``id``)
            roster: The teacher's students (each with ``id`` and ``name``)
            period: "week", "month" or "semester"
            now: Reference time for the period bound
            teacher_id: Echoed into the report

        Returns:
            Dict matching the TeacherReport schema

        Raises:
            ValueError: If period is invalid
        """
        now = now or datetime.now()
        period_start = get_period_start(period, now)
        roster = list(roster)
        names = {student.get("id"): student.get("name") or UNKNOWN_STUDENT_NAME for student in roster}

        relevant = self.filter_relevant_classes(classes, period_start)
        logger.debug(f"Report for teacher {teacher_id} ({period}): {len(relevant)} completed classes in window")

        stats: Dict[str, Dict[str, int]] = {}
        totals = {
            "scheduled": 0,
            "attended": 0,
            "performance_sum": 0,
            "evaluations": 0,
            "homework_reported": 0,
            "homework_completed": 0,
            "parse_failures": 0,
        }

        for cls in relevant:
            student_id = cls.get("studentId")
            if student_id not in names:
                logger.info(f"Class {cls.get('id')} references student {student_id} missing from roster")
                names[student_id] = UNKNOWN_STUDENT_NAME

            student = stats.setdefault(student_id, {
                "attended": 0,
                "missed": 0,
                "scheduled": 0,
                "performance_sum": 0,
                "evaluations": 0,
            })
            student["scheduled"] += 1
            totals["scheduled"] += 1

            scores = decode_session_evaluation(cls)
            if scores is None:
                totals["parse_failures"] += 1
                logger.warning(
                    f"Failed to parse evaluation for class {cls.get('id')} "
                    f"(student {names[student_id]}): notes={cls.get('notes')!r}"
                )
                continue

            if scores.attended:
                student["attended"] += 1
                totals["attended"] += 1
            elif scores.missed:
                student["missed"] += 1

            student["performance_sum"] += scores.performance
            student["evaluations"] += 1
            totals["performance_sum"] += scores.performance
            totals["evaluations"] += 1

            if scores.homework is not None:
                totals["homework_reported"] += 1
                if scores.homework == "completed":
                    totals["homework_completed"] += 1

        students = [
            {
                "studentId": student_id,
                "name": names[student_id],
                "attendancePercentage": _percentage(s["attended"], s["scheduled"]),
                "averagePerformance": _percentage(s["performance_sum"], s["evaluations"], scale=20),
                "totalCompletedClasses": s["evaluations"],
                "totalScheduledClasses": s["scheduled"],
            }
            for student_id, s in stats.items()
        ]

        class_stats = {
            "totalStudents": len(roster),
            "averageAttendance": _percentage(totals["attended"], totals["scheduled"]),
            "averageGrade": _percentage(totals["performance_sum"], totals["evaluations"], scale=20),
            "assignmentCompletionRate": _percentage(totals["homework_completed"], totals["homework_reported"]),
        }

        top_performers, needs_attention = self.determine_cohorts(students)

        logger.info(
            f"Report for teacher {teacher_id} ({period}): {len(relevant)} classes, "
            f"{totals['evaluations']} evaluated, {totals['parse_failures']} unparseable, "
            f"{len(top_performers)} top performers, {len(needs_attention)} need attention"
        )

        return {
            "teacherId": teacher_id,
            "period": period,
            "periodStart": period_start.isoformat(),
            "classStats": class_stats,
            "topPerformers": top_performers,
            "needsAttention": needs_attention,
            "students": students,
            "parseFailures": totals["parse_failures"],
            "generatedAt": now.isoformat(),
        }

    def determine_cohorts(self, students: List[Dict[str, Any]]):
        """
        Rank students and pick the top-performer and needs-attention cohorts.

        Only students with at least one evaluated class are ranked. Both cohorts
        are drawn independently from the same order, so a student can be in
        neither list.

        Returns:
            Tuple of (top_performers, needs_attention)
        """
        tracked = [s for s in students if s["totalCompletedClasses"] >= self.MIN_CLASSES_FOR_REPORT]
        ranked = sorted(
            tracked,
            key=lambda s: (s["averagePerformance"], s["attendancePercentage"]),
            reverse=True,
        )

        top_performers = [
            s for s in ranked
            if s["averagePerformance"] >= self.TOP_PERFORMANCE_MIN
            and s["attendancePercentage"] >= self.TOP_ATTENDANCE_MIN
        ][:self.COHORT_LIMIT]

        needs_attention = [
            s for s in ranked
            if s["averagePerformance"] < self.ATTENTION_PERFORMANCE_BELOW
            or s["attendancePercentage"] < self.ATTENTION_ATTENDANCE_BELOW
        ][:self.COHORT_LIMIT]

        return top_performers, needs_attention

    async def generate_report(
        self,
        class_service: ClassService,
        teacher_id: str,
        period: str = "month",
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Read the teacher's classes and roster from the store and build a report."""
        if period not in PERIODS:
            raise ValueError(f"Invalid period: {period}. Must be one of: week, month, semester")

        classes = await class_service.get_classes_by_teacher(teacher_id)
        roster = await class_service.get_students_by_teacher(teacher_id)
        return self.calculate(classes, roster, period=period, now=now, teacher_id=teacher_id)


# Global calculator instance
_calculator: Optional[ReportCalculator] = None


def get_report_calculator() -> ReportCalculator:
    """Get or create global ReportCalculator instance."""
    global _calculator
    if _calculator is None:
        _calculator = ReportCalculator()
    return _calculator
