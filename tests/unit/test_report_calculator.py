"""
Unit tests for ReportCalculator

Tests period bounds, per-student metrics, pooled class stats, cohort ranking
and parse failure handling.
"""

import pytest
from datetime import datetime

from tutorhub.schemas import Evaluation, TeacherReport
from tutorhub.services.evaluation_codec import encode_summary, to_structured
from tutorhub.services.report_calculator import (
    UNKNOWN_STUDENT_NAME,
    ReportCalculator,
    _percentage,
    get_period_start,
    subtract_months,
)

NOW = datetime(2026, 3, 31, 12, 0, 0)

_class_counter = 0


def completed_class(
    student_id,
    performance=5,
    attendance="present",
    homework="completed",
    date="2026-03-20",
    structured=True,
    teacher_id="t1",
):
    """Completed class record with an encoded evaluation"""
    global _class_counter
    _class_counter += 1
    evaluation = Evaluation(
        attendance=attendance,
        homework=homework,
        performance=performance,
        memorization=performance,
        tajweed=3,
        participation=4,
    )
    record = {
        "id": f"c{_class_counter}",
        "studentId": student_id,
        "teacherId": teacher_id,
        "date": date,
        "time": "17:00",
        "status": "completed",
        "notes": encode_summary(evaluation),
        "rating": performance,
    }
    if structured:
        record["evaluation"] = to_structured(evaluation)
    return record


def unparseable_class(student_id, date="2026-03-20", notes="Great class today"):
    global _class_counter
    _class_counter += 1
    return {
        "id": f"c{_class_counter}",
        "studentId": student_id,
        "teacherId": "t1",
        "date": date,
        "time": "17:00",
        "status": "completed",
        "notes": notes,
    }


def roster(*names):
    return [{"id": f"s{i + 1}", "name": name, "teacherId": "t1"} for i, name in enumerate(names)]


@pytest.fixture
def calculator():
    return ReportCalculator()


class TestPeriodBounds:
    """Test reporting window lower bounds"""

    def test_week(self):
        assert get_period_start("week", NOW) == datetime(2026, 3, 24, 12, 0, 0)

    def test_month_clamps_to_end_of_shorter_month(self):
        """Test 31 March minus one month is 28 February"""
        assert get_period_start("month", NOW) == datetime(2026, 2, 28, 12, 0, 0)

    def test_semester(self):
        assert get_period_start("semester", NOW) == datetime(2025, 9, 30, 12, 0, 0)

    def test_subtract_months_across_year(self):
        assert subtract_months(datetime(2026, 1, 15), 1) == datetime(2025, 12, 15)

    def test_invalid_period(self):
        with pytest.raises(ValueError):
            get_period_start("year", NOW)

    def test_window_is_inclusive_and_has_no_upper_bound(self, calculator):
        """Test classes on the start date and in the future are counted"""
        classes = [
            completed_class("s1", date="2026-02-28"),
            completed_class("s1", date="2026-02-27"),
            completed_class("s1", date="2026-04-10"),
        ]
        report = calculator.calculate(classes, roster("Amina"), period="month", now=NOW)

        assert report["students"][0]["totalScheduledClasses"] == 2

    def test_only_completed_classes_count(self, calculator):
        """Test scheduled and in-progress classes are ignored"""
        classes = [
            completed_class("s1"),
            {**completed_class("s1"), "status": "scheduled"},
            {**completed_class("s1"), "status": "in-progress"},
        ]
        report = calculator.calculate(classes, roster("Amina"), now=NOW)

        assert report["students"][0]["totalScheduledClasses"] == 1


class TestStudentMetrics:
    """Test per-student attendance and performance"""

    def test_parse_failure_counts_in_denominator_only(self, calculator):
        """Test 3 decodable present/5 classes and 1 unreadable class"""
        classes = [completed_class("s1") for _ in range(3)] + [unparseable_class("s1")]
        report = calculator.calculate(classes, roster("Amina"), now=NOW)

        student = report["students"][0]
        assert student["totalScheduledClasses"] == 4
        assert student["totalCompletedClasses"] == 3
        assert student["attendancePercentage"] == 75
        assert student["averagePerformance"] == 100
        assert report["parseFailures"] == 1
        assert report["classStats"]["assignmentCompletionRate"] == 100

    def test_summary_missing_attendance_is_parse_failure(self, calculator):
        """Test marker present but Attendance missing is excluded without raising"""
        notes = "Evaluation Summary: Performance=5/5, Tajweed=5/5. Notes: ok"
        classes = [completed_class("s1", performance=3), unparseable_class("s1", notes=notes)]
        report = calculator.calculate(classes, roster("Amina"), now=NOW)

        student = report["students"][0]
        assert student["totalScheduledClasses"] == 2
        assert student["totalCompletedClasses"] == 1
        assert student["averagePerformance"] == 60
        assert report["parseFailures"] == 1

    def test_late_counts_as_attended(self, calculator):
        classes = [
            completed_class("s1", attendance="late"),
            completed_class("s1", attendance="absent"),
        ]
        report = calculator.calculate(classes, roster("Amina"), now=NOW)

        assert report["students"][0]["attendancePercentage"] == 50

    def test_legacy_summary_only_records(self, calculator):
        """Test records without a structured evaluation decode from notes"""
        classes = [completed_class("s1", performance=4, structured=False)]
        report = calculator.calculate(classes, roster("Amina"), now=NOW)

        assert report["students"][0]["averagePerformance"] == 80
        assert report["parseFailures"] == 0

    def test_student_missing_from_roster_gets_placeholder(self, calculator):
        """Test unknown student ids fall back to a placeholder name"""
        classes = [completed_class("ghost"), completed_class("s1")]
        report = calculator.calculate(classes, roster("Amina"), now=NOW)

        names = {s["studentId"]: s["name"] for s in report["students"]}
        assert names["ghost"] == UNKNOWN_STUDENT_NAME
        assert names["s1"] == "Amina"
        assert report["classStats"]["totalStudents"] == 1

    def test_roster_student_without_classes_not_listed(self, calculator):
        classes = [completed_class("s1")]
        report = calculator.calculate(classes, roster("Amina", "Bilal"), now=NOW)

        assert [s["studentId"] for s in report["students"]] == ["s1"]
        assert report["classStats"]["totalStudents"] == 2


class TestClassStats:
    """Test pooled class-wide statistics"""

    def test_no_classes_yields_zeros(self, calculator):
        """Test zero denominators produce 0, never an error"""
        report = calculator.calculate([], roster("Amina", "Bilal"), now=NOW)

        assert report["classStats"] == {
            "totalStudents": 2,
            "averageAttendance": 0,
            "averageGrade": 0,
            "assignmentCompletionRate": 0,
        }
        assert report["topPerformers"] == []
        assert report["needsAttention"] == []
        assert report["students"] == []

    def test_pooled_not_averaged_per_student(self, calculator):
        """Test class stats weight every class equally across students"""
        classes = [completed_class("s1", performance=5) for _ in range(3)]
        classes.append(completed_class("s2", performance=1, attendance="absent"))
        report = calculator.calculate(classes, roster("Amina", "Bilal"), now=NOW)

        stats = report["classStats"]
        assert stats["averageAttendance"] == 75
        assert stats["averageGrade"] == 80

    def test_homework_completion_rate(self, calculator):
        classes = [
            completed_class("s1", homework="completed"),
            completed_class("s1", homework="partial"),
            completed_class("s1", homework="not-done"),
            completed_class("s1", homework="completed"),
        ]
        report = calculator.calculate(classes, roster("Amina"), now=NOW)

        assert report["classStats"]["assignmentCompletionRate"] == 50

    def test_report_matches_response_schema(self, calculator):
        classes = [completed_class("s1"), unparseable_class("s2")]
        report = calculator.calculate(classes, roster("Amina", "Bilal"), period="month", now=NOW, teacher_id="t1")

        model = TeacherReport.model_validate(report)
        assert model.teacherId == "t1"
        assert model.period == "month"
        assert model.parseFailures == 1


class TestRounding:
    """Test percentage rounding"""

    def test_half_rounds_up(self):
        assert _percentage(1, 8) == 13

    def test_performance_scale(self):
        assert _percentage(10, 3, scale=20) == 67

    def test_zero_denominator(self):
        assert _percentage(0, 0) == 0

    def test_clamped_to_100(self):
        assert _percentage(7, 5) == 100


class TestCohorts:
    """Test top performer and needs attention selection"""

    def _student_classes(self, student_id, performance, present, absent):
        return (
            [completed_class(student_id, performance=performance) for _ in range(present)]
            + [completed_class(student_id, performance=performance, attendance="absent") for _ in range(absent)]
        )

    def test_cohort_sizes_and_exclusions(self, calculator):
        """Test 2 top performers, 4 qualifying for attention capped at 3, 1 in neither list"""
        classes = []
        classes += self._student_classes("s1", 5, 4, 0)   # 100 / 100: top
        classes += self._student_classes("s2", 5, 9, 1)   # 100 / 90: top
        classes += self._student_classes("s3", 4, 4, 0)   # 80 / 100: neither
        classes += self._student_classes("s4", 3, 4, 0)   # 60 / 100: attention
        classes += self._student_classes("s5", 2, 4, 0)   # 40 / 100: attention
        classes += self._student_classes("s6", 5, 1, 1)   # 100 / 50: attention
        classes += self._student_classes("s7", 1, 1, 1)   # 20 / 50: attention
        students = roster("A", "B", "C", "D", "E", "F", "G")

        report = calculator.calculate(classes, students, now=NOW)

        top_ids = [s["studentId"] for s in report["topPerformers"]]
        attention_ids = [s["studentId"] for s in report["needsAttention"]]

        assert top_ids == ["s1", "s2"]
        assert len(attention_ids) == 3
        assert attention_ids == ["s6", "s4", "s5"]
        assert "s3" not in top_ids and "s3" not in attention_ids
        assert len(report["students"]) == 7

    def test_top_requires_attendance(self, calculator):
        """Test perfect performance with 80% attendance is not a top performer"""
        classes = self._student_classes("s1", 5, 4, 1)
        report = calculator.calculate(classes, roster("A"), now=NOW)

        assert report["topPerformers"] == []
        assert report["needsAttention"] == []

    def test_ties_keep_input_order(self, calculator):
        """Test equal ranking keys preserve original order"""
        classes = []
        for student_id in ("s1", "s2", "s3", "s4"):
            classes += self._student_classes(student_id, 5, 2, 0)
        report = calculator.calculate(classes, roster("A", "B", "C", "D"), now=NOW)

        assert [s["studentId"] for s in report["topPerformers"]] == ["s1", "s2", "s3"]

    def test_students_without_evaluations_not_ranked(self, calculator):
        """Test a student with only unreadable classes is in neither cohort"""
        classes = [unparseable_class("s1"), unparseable_class("s1")]
        report = calculator.calculate(classes, roster("A"), now=NOW)

        assert report["students"][0]["attendancePercentage"] == 0
        assert report["needsAttention"] == []
