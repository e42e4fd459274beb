"""
Evaluation Codec

Converts a structured Evaluation into the one-line summary stored in a class's
``notes`` field, and recovers scores from that summary for reporting.

Summary wire format (version 1, byte-exact):

    Evaluation Summary: Performance=<p>/5, Memorization=<m>/5, Tajweed=<t>/5,
    Participation=<pa>/5, Attendance=<status>, Homework=<hw>. Notes: <text>

(written on a single line). Stored records written by older clients carry only
this string, so the decoder below must keep accepting it unchanged. Newer
records also carry a structured ``evaluation`` value, which is preferred.
"""
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from tutorhub.schemas import Evaluation

logger = logging.getLogger(__name__)

SUMMARY_MARKER = "Evaluation Summary:"
EVALUATION_SCHEMA_VERSION = 1

ATTENDED_STATUSES = ("present", "late")
ABSENT_STATUS = "absent"

_PERFORMANCE_RE = re.compile(r"Performance=(\d+)/5")
_TAJWEED_RE = re.compile(r"Tajweed=(\d+)/5")
# The encoder terminates attendance with "," and older summaries with "."
_ATTENDANCE_RE = re.compile(r"Attendance=([a-z-]+)[.,]", re.IGNORECASE)
_HOMEWORK_RE = re.compile(r"Homework=([a-z-]+)[.,]", re.IGNORECASE)


@dataclass(frozen=True)
class EvaluationScores:
    """Scores recovered from a completed class"""
    performance: int
    tajweed: int
    attendance_status: str
    homework: Optional[str] = None

    @property
    def attended(self) -> bool:
        return self.attendance_status in ATTENDED_STATUSES

    @property
    def missed(self) -> bool:
        return self.attendance_status == ABSENT_STATUS


def encode_summary(evaluation: Evaluation) -> str:
    """Render an Evaluation as the version 1 summary string."""
    return (
        f"{SUMMARY_MARKER} "
        f"Performance={evaluation.performance}/5, "
        f"Memorization={evaluation.memorization}/5, "
        f"Tajweed={evaluation.tajweed}/5, "
        f"Participation={evaluation.participation}/5, "
        f"Attendance={evaluation.attendance}, "
        f"Homework={evaluation.homework}. "
        f"Notes: {evaluation.notes}"
    )


def to_structured(evaluation: Evaluation) -> Dict[str, Any]:
    """Versioned structured value persisted next to the summary string."""
    return {
        "schemaVersion": EVALUATION_SCHEMA_VERSION,
        "attendance": evaluation.attendance,
        "homework": evaluation.homework,
        "performance": evaluation.performance,
        "memorization": evaluation.memorization,
        "tajweed": evaluation.tajweed,
        "participation": evaluation.participation,
        "notes": evaluation.notes,
        "nextLesson": evaluation.next_lesson,
    }


def decode_summary(notes: Optional[str]) -> Optional[EvaluationScores]:
    """
    Parse scores out of a summary string.

    Returns None when the marker is missing or any of performance, tajweed or
    attendance cannot be matched. Homework is optional and never fails a decode.
    """
    if not notes or SUMMARY_MARKER not in notes:
        return None

    summary = notes.split(SUMMARY_MARKER)[1]
    performance_match = _PERFORMANCE_RE.search(summary)
    tajweed_match = _TAJWEED_RE.search(summary)
    attendance_match = _ATTENDANCE_RE.search(summary)

    if not (performance_match and tajweed_match and attendance_match):
        return None

    homework_match = _HOMEWORK_RE.search(summary)

    return EvaluationScores(
        performance=int(performance_match.group(1)),
        tajweed=int(tajweed_match.group(1)),
        attendance_status=attendance_match.group(1).lower(),
        homework=homework_match.group(1).lower() if homework_match else None,
    )


def _decode_structured(value: Any) -> Optional[EvaluationScores]:
    if not isinstance(value, dict) or value.get("schemaVersion") != EVALUATION_SCHEMA_VERSION:
        return None
    try:
        evaluation = Evaluation.model_validate(value)
    except ValueError:
        return None
    return EvaluationScores(
        performance=evaluation.performance,
        tajweed=evaluation.tajweed,
        attendance_status=evaluation.attendance,
        homework=evaluation.homework,
    )


def decode_session_evaluation(record: Dict[str, Any]) -> Optional[EvaluationScores]:
    """
    Recover evaluation scores from a class record.

    Uses the structured ``evaluation`` value when present and valid, otherwise
    falls back to parsing the ``notes`` summary string.
    """
    scores = _decode_structured(record.get("evaluation"))
    if scores is not None:
        return scores

    if record.get("evaluation") is not None:
        logger.debug(f"Ignoring unreadable structured evaluation on class {record.get('id')}")

    return decode_summary(record.get("notes"))
