"""
Unit tests for the evaluation codec

Tests summary encoding, legacy summary parsing and structured evaluation preference.
"""

import pytest
from tutorhub.schemas import Evaluation
from tutorhub.services.evaluation_codec import (
    EVALUATION_SCHEMA_VERSION,
    decode_session_evaluation,
    decode_summary,
    encode_summary,
    to_structured,
)


def make_evaluation(**overrides):
    values = {
        "attendance": "present",
        "homework": "completed",
        "performance": 4,
        "memorization": 4,
        "tajweed": 3,
        "participation": 5,
        "notes": "Good work on Surah Al-Mulk",
        "nextLesson": "Continue from ayah 10",
    }
    values.update(overrides)
    return Evaluation(**values)


class TestEncodeSummary:
    """Test the one-line summary format"""

    def test_exact_format(self):
        """Test summary text is byte-exact"""
        summary = encode_summary(make_evaluation())

        assert summary == (
            "Evaluation Summary: Performance=4/5, Memorization=4/5, Tajweed=3/5, "
            "Participation=5/5, Attendance=present, Homework=completed. "
            "Notes: Good work on Surah Al-Mulk"
        )

    def test_empty_notes(self):
        """Test summary still ends with the Notes label when notes are empty"""
        summary = encode_summary(make_evaluation(notes=""))
        assert summary.endswith("Homework=completed. Notes: ")

    def test_structured_value_is_versioned(self):
        """Test structured evaluation carries the schema version"""
        structured = to_structured(make_evaluation())

        assert structured["schemaVersion"] == EVALUATION_SCHEMA_VERSION
        assert structured["performance"] == 4
        assert structured["nextLesson"] == "Continue from ayah 10"


class TestDecodeSummary:
    """Test parsing scores back out of summary strings"""

    def test_encoded_summary_decodes(self):
        """Test encoder output is readable by the decoder"""
        scores = decode_summary(encode_summary(make_evaluation(attendance="late", tajweed=3)))

        assert scores is not None
        assert scores.performance == 4
        assert scores.tajweed == 3
        assert scores.attendance_status == "late"
        assert scores.attended is True
        assert scores.homework == "completed"

    @pytest.mark.parametrize("attendance", ["present", "absent", "late"])
    @pytest.mark.parametrize("performance,tajweed", [(1, 5), (5, 1), (1, 1), (5, 5)])
    def test_score_bounds_and_attendance_survive_encoding(self, attendance, performance, tajweed):
        evaluation = make_evaluation(attendance=attendance, performance=performance, tajweed=tajweed)
        scores = decode_summary(encode_summary(evaluation))

        assert scores is not None
        assert scores.performance == performance
        assert scores.tajweed == tajweed
        assert scores.attendance_status == attendance
        assert scores.attended is (attendance != "absent")
        assert scores.missed is (attendance == "absent")

    def test_legacy_summary_with_period_after_attendance(self):
        """Test older summaries ending attendance with '.' still decode"""
        notes = "Evaluation Summary: Performance=2/5, Tajweed=4/5, Attendance=absent. Notes: sick"
        scores = decode_summary(notes)

        assert scores is not None
        assert scores.performance == 2
        assert scores.tajweed == 4
        assert scores.attendance_status == "absent"
        assert scores.missed is True
        assert scores.attended is False
        assert scores.homework is None

    def test_text_before_marker_is_ignored(self):
        """Test only the text after the marker is parsed"""
        notes = "Performance=1/5 earlier remark. Evaluation Summary: Performance=5/5, Tajweed=5/5, Attendance=present,"
        scores = decode_summary(notes)

        assert scores.performance == 5

    def test_missing_marker_fails(self):
        """Test free-text notes are not decodable"""
        assert decode_summary("Good class, keep practicing") is None
        assert decode_summary("") is None
        assert decode_summary(None) is None

    def test_missing_attendance_fails(self):
        """Test a summary without Attendance is a parse failure"""
        notes = "Evaluation Summary: Performance=4/5, Tajweed=3/5. Notes: x"
        assert decode_summary(notes) is None

    def test_missing_tajweed_fails(self):
        """Test a summary without Tajweed is a parse failure"""
        notes = "Evaluation Summary: Performance=4/5, Attendance=present, Homework=completed."
        assert decode_summary(notes) is None


class TestDecodeSessionEvaluation:
    """Test choosing between structured and summary evaluations"""

    def test_structured_preferred_over_notes(self):
        """Test structured evaluation wins when notes disagree"""
        record = {
            "id": "c1",
            "notes": encode_summary(make_evaluation(performance=1)),
            "evaluation": to_structured(make_evaluation(performance=5)),
        }

        assert decode_session_evaluation(record).performance == 5

    def test_falls_back_to_notes(self):
        """Test records with only a summary string decode from notes"""
        record = {"id": "c1", "notes": encode_summary(make_evaluation(performance=2))}

        assert decode_session_evaluation(record).performance == 2

    def test_unknown_schema_version_falls_back_to_notes(self):
        """Test structured values from an unknown version are ignored"""
        structured = to_structured(make_evaluation(performance=5))
        structured["schemaVersion"] = 99
        record = {
            "id": "c1",
            "notes": encode_summary(make_evaluation(performance=3)),
            "evaluation": structured,
        }

        assert decode_session_evaluation(record).performance == 3

    def test_invalid_structured_value_falls_back_to_notes(self):
        """Test an out-of-range structured score is ignored"""
        structured = to_structured(make_evaluation())
        structured["performance"] = 9
        record = {"id": "c1", "notes": "no summary here", "evaluation": structured}

        assert decode_session_evaluation(record) is None


class TestEvaluationValidation:
    """Test Evaluation model bounds"""

    @pytest.mark.parametrize("field", ["performance", "memorization", "tajweed", "participation"])
    def test_scores_outside_one_to_five_rejected(self, field):
        with pytest.raises(ValueError):
            make_evaluation(**{field: 0})
        with pytest.raises(ValueError):
            make_evaluation(**{field: 6})

    def test_unknown_attendance_rejected(self):
        with pytest.raises(ValueError):
            make_evaluation(attendance="excused")
