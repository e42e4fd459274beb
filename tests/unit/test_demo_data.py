"""
Unit tests for DemoDataGenerator

Tests roster and class generation produce records the report calculator can read.
"""

import pytest
from datetime import datetime

from tutorhub.services.demo_data import DemoDataGenerator, PROFILES, SUBJECTS
from tutorhub.services.report_calculator import ReportCalculator

NOW = datetime(2026, 3, 10, 12, 0)


@pytest.fixture
def generator():
    return DemoDataGenerator(
        teacher_ids=["t1", "t2"],
        students_per_teacher=3,
        weeks_of_history=4,
        seed=42,
        now=NOW,
    )


class TestGenerateChildren:
    """Test roster generation"""

    def test_roster_size(self, generator):
        children = generator.generate_children()

        assert len(children) == 6
        assert sum(1 for c in children.values() if c["teacherId"] == "t1") == 3

    def test_profiles_assigned(self, generator):
        children = generator.generate_children()

        assert {c["profile"] for c in children.values()} == set(PROFILES.keys())
        assert all(c["name"] for c in children.values())


class TestGenerateClasses:
    """Test class history generation"""

    def test_past_classes_completed_future_scheduled(self, generator):
        children = generator.generate_children()
        classes = generator.generate_classes(children)

        for record in classes.values():
            starts_at = datetime.strptime(f"{record['date']} {record['time']}", "%Y-%m-%d %H:%M")
            if record["status"] == "completed":
                assert starts_at < NOW
                assert record["rating"] is not None
                assert record["onlineTime"]
            else:
                assert record["status"] == "scheduled"
                assert "completedAt" not in record

    def test_valid_subjects(self, generator):
        classes = generator.generate_classes(generator.generate_children())
        assert {record["subject"] for record in classes.values()} <= set(SUBJECTS)

    def test_completed_history_ends_with_notes(self, generator):
        classes = generator.generate_classes(generator.generate_children())
        completed = [r for r in classes.values() if r["status"] == "completed"]

        assert completed
        for record in completed:
            assert record["history"][-1] == record["notes"]

    def test_unparseable_ratio_reported_as_parse_failures(self):
        """Test free-text notes show up as parse failures in reports"""
        generator = DemoDataGenerator(
            teacher_ids=["t1"],
            students_per_teacher=2,
            weeks_of_history=4,
            unparseable_ratio=1.0,
            seed=7,
            now=NOW,
        )
        children = generator.generate_children()
        classes = generator.generate_classes(children)
        roster = [{**child, "id": key} for key, child in children.items()]
        records = [{**record, "id": key} for key, record in classes.items()]

        report = ReportCalculator().calculate(records, roster, period="semester", now=NOW, teacher_id="t1")

        completed = sum(1 for r in records if r["status"] == "completed")
        assert report["parseFailures"] == completed
        assert all(s["totalCompletedClasses"] == 0 for s in report["students"])

    def test_report_from_demo_data(self, generator):
        children = generator.generate_children()
        classes = generator.generate_classes(children)
        roster = [{**child, "id": key} for key, child in children.items() if child["teacherId"] == "t1"]
        records = [
            {**record, "id": key}
            for key, record in classes.items()
            if record["teacherId"] == "t1"
        ]

        report = ReportCalculator().calculate(records, roster, period="month", now=NOW, teacher_id="t1")

        assert report["classStats"]["totalStudents"] == 3
        assert 0 <= report["classStats"]["averageAttendance"] <= 100
        assert len(report["students"]) == 3
