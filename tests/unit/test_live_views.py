"""
Unit tests for live derived views

Tests that views converge to the store's latest snapshots and only recompute
for changes to their own teacher's records.
"""

import pytest
from datetime import datetime, timezone

from tutorhub.schemas import Evaluation
from tutorhub.services.live_views import LiveTeacherReport, LiveTeacherView, LiveUpcomingClasses
from tutorhub.services.session_lifecycle import SessionLifecycleController
from tutorhub.store import InMemoryRecordStore

NOW = datetime(2026, 3, 10, 12, 0)


def scheduled(teacher_id, student_id, date="2026-03-09", time="17:00"):
    return {
        "teacherId": teacher_id,
        "studentId": student_id,
        "date": date,
        "time": time,
        "duration": 30,
        "subject": "Arabic",
        "status": "scheduled",
        "history": [],
    }


EVALUATION = Evaluation(
    attendance="present",
    homework="completed",
    performance=5,
    memorization=5,
    tajweed=5,
    participation=5,
)


@pytest.fixture
async def store():
    store = InMemoryRecordStore()
    await store.set("children/s1", {"name": "Amina", "teacherId": "t1"})
    await store.set("children/s2", {"name": "Bilal", "teacherId": "t2"})
    await store.set("classes/c1", scheduled("t1", "s1"))
    await store.set("classes/c2", scheduled("t2", "s2"))
    return store


@pytest.fixture
def controller(store):
    return SessionLifecycleController(
        store, clock=lambda: datetime(2026, 3, 9, 17, 30, tzinfo=timezone.utc), timeout=1.0
    )


class TestLiveTeacherView:
    """Test the shared view base"""

    async def test_base_view_cannot_be_instantiated(self, store):
        with pytest.raises(TypeError):
            LiveTeacherView(store, "t1")


class TestLiveTeacherReport:
    """Test report convergence on writes"""

    async def test_initial_report_from_replay(self, store):
        view = LiveTeacherReport(store, "t1", clock=lambda: NOW)
        report = await view.start()

        assert view.recompute_count == 1
        assert report["classStats"]["totalStudents"] == 1
        assert report["students"] == []
        await view.stop()

    async def test_completion_updates_report(self, store, controller):
        """Test completing a class pushes a new report to the handler"""
        reports = []

        async def on_change(report):
            reports.append(report)

        view = LiveTeacherReport(store, "t1", on_change=on_change, clock=lambda: NOW)
        await view.start()

        await controller.complete_class("c1", EVALUATION)
        await store.flush()

        latest = reports[-1]
        assert latest["students"][0]["name"] == "Amina"
        assert latest["students"][0]["averagePerformance"] == 100
        assert [s["studentId"] for s in latest["topPerformers"]] == ["s1"]
        await view.stop()

    async def test_other_teacher_writes_do_not_recompute(self, store, controller):
        view = LiveTeacherReport(store, "t1", clock=lambda: NOW)
        await view.start()
        count = view.recompute_count

        await controller.start_class("c2")
        await controller.complete_class("c2", EVALUATION)
        await store.set("children/s3", {"name": "Chen", "teacherId": "t2"})
        await store.flush()

        assert view.recompute_count == count
        await view.stop()

    async def test_roster_change_recomputes(self, store):
        view = LiveTeacherReport(store, "t1", clock=lambda: NOW)
        await view.start()

        await store.set("children/s3", {"name": "Dana", "teacherId": "t1"})
        await store.flush()

        assert view.value["classStats"]["totalStudents"] == 2
        await view.stop()

    async def test_stop_cancels_subscriptions(self, store, controller):
        view = LiveTeacherReport(store, "t1", clock=lambda: NOW)
        await view.start()
        await view.stop()
        count = view.recompute_count

        await controller.complete_class("c1", EVALUATION)
        await store.flush()

        assert view.recompute_count == count


class TestLiveUpcomingClasses:
    """Test upcoming classes view"""

    async def test_tracks_new_and_started_classes(self, store, controller):
        view = LiveUpcomingClasses(store, "t1", clock=lambda: NOW)
        assert await view.start() == []

        await store.set("classes/c3", scheduled("t1", "s1", date="2026-03-12"))
        await store.set("classes/c4", scheduled("t1", "s1", date="2026-03-11"))
        await store.flush()
        assert [cls["id"] for cls in view.value] == ["c4", "c3"]

        await controller.start_class("c4")
        await store.flush()
        assert [cls["id"] for cls in view.value] == ["c3"]
        await view.stop()

    async def test_reassigned_class_leaves_view(self, store):
        view = LiveUpcomingClasses(store, "t1", clock=lambda: NOW)
        await view.start()
        await store.set("classes/c3", scheduled("t1", "s1", date="2026-03-12"))

        await store.update("classes/c3", {"teacherId": "t2"})
        await store.flush()

        assert view.value == []
        assert "c3" not in view.classes
        await view.stop()
