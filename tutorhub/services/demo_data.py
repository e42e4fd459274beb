"""
Demo Data Generator

Generates a realistic roster and class history for local demos: past classes
completed with evaluations, a few legacy summary-only records, a few records
with free-text notes that cannot be decoded, and upcoming scheduled classes.
"""
import logging
import random
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from faker import Faker

from tutorhub.schemas import (
    STATUS_COMPLETED,
    STATUS_SCHEDULED,
    Evaluation,
)
from tutorhub.services.evaluation_codec import encode_summary, to_structured
from tutorhub.services.session_lifecycle import format_history_time

logger = logging.getLogger(__name__)

SUBJECTS = [
    "Quran Reading",
    "Tajweed",
    "Memorization",
    "Arabic",
    "Islamic Studies",
]

# Score ranges (inclusive) and attendance weights per student profile
PROFILES = {
    "strong": {"scores": (4, 5), "attendance": {"present": 0.92, "late": 0.06, "absent": 0.02}},
    "average": {"scores": (3, 4), "attendance": {"present": 0.80, "late": 0.10, "absent": 0.10}},
    "struggling": {"scores": (1, 3), "attendance": {"present": 0.60, "late": 0.10, "absent": 0.30}},
}

HOMEWORK_WEIGHTS = {"completed": 0.6, "partial": 0.25, "not-done": 0.15}


class DemoDataGenerator:
    """Builds children and class records ready to be written to the record store"""

    def __init__(
        self,
        teacher_ids: List[str],
        students_per_teacher: int = 6,
        weeks_of_history: int = 12,
        classes_per_week: int = 2,
        upcoming_weeks: int = 2,
        legacy_ratio: float = 0.2,
        unparseable_ratio: float = 0.05,
        seed: Optional[int] = None,
        now: Optional[datetime] = None,
    ):
        self.teacher_ids = teacher_ids
        self.students_per_teacher = students_per_teacher
        self.weeks_of_history = weeks_of_history
        self.classes_per_week = classes_per_week
        self.upcoming_weeks = upcoming_weeks
        self.legacy_ratio = legacy_ratio
        self.unparseable_ratio = unparseable_ratio
        self.now = now or datetime.now()
        self.random = random.Random(seed)
        self.fake = Faker()
        if seed is not None:
            self.fake.seed_instance(seed)

    def _weighted_choice(self, weights: Dict[str, float]) -> str:
        items = list(weights.keys())
        return self.random.choices(items, weights=[weights[i] for i in items], k=1)[0]

    def generate_children(self) -> Dict[str, Dict[str, Any]]:
        """Roster records keyed by child id, with a demo profile per child"""
        children = {}
        profiles = list(PROFILES.keys())
        for teacher_id in self.teacher_ids:
            for i in range(self.students_per_teacher):
                child_id = uuid.uuid4().hex
                children[child_id] = {
                    "name": self.fake.name(),
                    "teacherId": teacher_id,
                    "parentId": uuid.uuid4().hex,
                    "isActive": True,
                    "profile": profiles[i % len(profiles)],
                    "createdAt": (self.now - timedelta(weeks=self.weeks_of_history + 1)).isoformat(),
                }
        return children

    def generate_evaluation(self, profile: str) -> Evaluation:
        low, high = PROFILES[profile]["scores"]
        return Evaluation(
            attendance=self._weighted_choice(PROFILES[profile]["attendance"]),
            homework=self._weighted_choice(HOMEWORK_WEIGHTS),
            performance=self.random.randint(low, high),
            memorization=self.random.randint(low, high),
            tajweed=self.random.randint(low, high),
            participation=self.random.randint(low, high),
            notes=self.fake.sentence(nb_words=8),
            next_lesson=f"Continue with {self.fake.word()} section",
        )

    def _base_class(self, child_id: str, child: Dict[str, Any], starts_at: datetime) -> Dict[str, Any]:
        return {
            "studentId": child_id,
            "teacherId": child["teacherId"],
            "date": starts_at.strftime("%Y-%m-%d"),
            "time": starts_at.strftime("%H:%M"),
            "duration": self.random.choice([30, 45, 60]),
            "subject": self.random.choice(SUBJECTS),
            "status": STATUS_SCHEDULED,
            "zoomLink": f"https://zoom.us/j/{self.random.randint(10**9, 10**10 - 1)}",
            "notes": "",
            "history": [f"Class scheduled at {format_history_time(starts_at - timedelta(days=7))}"],
            "createdAt": (starts_at - timedelta(days=7)).isoformat(),
            "updatedAt": (starts_at - timedelta(days=7)).isoformat(),
        }

    def _complete(self, record: Dict[str, Any], profile: str, starts_at: datetime) -> Dict[str, Any]:
        evaluation = self.generate_evaluation(profile)
        online_at = starts_at + timedelta(minutes=self.random.randint(0, 5))
        completed_at = starts_at + timedelta(minutes=record["duration"])

        if self.random.random() < self.unparseable_ratio:
            # Free-text note written before evaluations were structured
            summary = f"Good class. {self.fake.sentence(nb_words=6)}"
        else:
            summary = encode_summary(evaluation)

        record.update({
            "status": STATUS_COMPLETED,
            "onlineTime": online_at.isoformat(),
            "completedAt": completed_at.isoformat(),
            "updatedAt": completed_at.isoformat(),
            "rating": evaluation.performance,
            "notes": summary,
        })
        if summary.startswith("Evaluation Summary:") and self.random.random() >= self.legacy_ratio:
            record["evaluation"] = to_structured(evaluation)

        record["history"] = record["history"] + [
            f"Teacher went online at {format_history_time(online_at)}",
            f"Class completed by Teacher at {format_history_time(completed_at)}",
            summary,
        ]
        return record

    def generate_classes(self, children: Dict[str, Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
        """Past completed classes and upcoming scheduled classes keyed by class id"""
        classes = {}
        start = self.now - timedelta(weeks=self.weeks_of_history)
        total_weeks = self.weeks_of_history + self.upcoming_weeks

        for child_id, child in children.items():
            profile = child.get("profile", "average")
            for week in range(total_weeks):
                for slot in range(self.classes_per_week):
                    day_offset = week * 7 + slot * 3 + self.random.randint(0, 1)
                    starts_at = (start + timedelta(days=day_offset)).replace(
                        hour=self.random.choice([16, 17, 18, 19]), minute=0, second=0, microsecond=0
                    )
                    record = self._base_class(child_id, child, starts_at)
                    if starts_at + timedelta(minutes=record["duration"]) < self.now:
                        record = self._complete(record, profile, starts_at)
                    classes[uuid.uuid4().hex] = record

        logger.info(
            f"Generated {len(classes)} classes for {len(children)} children "
            f"across {len(self.teacher_ids)} teachers"
        )
        return classes
