"""
Report Snapshot Service

Persists periodic teacher report figures so trends can be shown over time.
Live reports are always recomputed from class records; snapshots are history only.
"""
import json
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select

from tutorhub.database import AsyncSessionLocal
from tutorhub.models.report_snapshot import ReportSnapshot
from tutorhub.services.class_service import ClassService
from tutorhub.services.report_calculator import get_report_calculator
from tutorhub.store import RecordStore

logger = logging.getLogger(__name__)


class ReportSnapshotService:
    """Saves, lists and prunes ReportSnapshot rows"""

    async def save_report_snapshot(self, report: Dict[str, Any]) -> None:
        """
        Save the class-wide figures of a report.

        Args:
            report: Dict returned by ReportCalculator.calculate()
        """
        stats = report["classStats"]
        async with AsyncSessionLocal() as session:
            snapshot = ReportSnapshot(
                teacher_id=report["teacherId"],
                period=report["period"],
                total_students=stats["totalStudents"],
                average_attendance=stats["averageAttendance"],
                average_grade=stats["averageGrade"],
                assignment_completion_rate=stats["assignmentCompletionRate"],
                parse_failures=report["parseFailures"],
                top_performers=json.dumps([s["studentId"] for s in report["topPerformers"]]),
                needs_attention=json.dumps([s["studentId"] for s in report["needsAttention"]]),
                snapshot_time=datetime.now(timezone.utc),
            )
            session.add(snapshot)
            await session.commit()

            logger.debug(
                f"Saved report snapshot: {report['teacherId']}/{report['period']}, "
                f"attendance={stats['averageAttendance']}%, grade={stats['averageGrade']}"
            )

    async def list_snapshots(self, teacher_id: str, period: Optional[str] = None, limit: int = 30) -> List[Dict[str, Any]]:
        """Most recent snapshots for a teacher, newest first"""
        async with AsyncSessionLocal() as session:
            query = select(ReportSnapshot).where(ReportSnapshot.teacher_id == teacher_id)
            if period:
                query = query.where(ReportSnapshot.period == period)
            query = query.order_by(ReportSnapshot.snapshot_time.desc()).limit(limit)

            result = await session.execute(query)
            return [
                {
                    "teacherId": row.teacher_id,
                    "period": row.period,
                    "totalStudents": row.total_students,
                    "averageAttendance": row.average_attendance,
                    "averageGrade": row.average_grade,
                    "assignmentCompletionRate": row.assignment_completion_rate,
                    "parseFailures": row.parse_failures,
                    "topPerformers": json.loads(row.top_performers or "[]"),
                    "needsAttention": json.loads(row.needs_attention or "[]"),
                    "snapshotTime": row.snapshot_time.isoformat(),
                }
                for row in result.scalars().all()
            ]

    async def snapshot_all_teachers(self, store: RecordStore, period: str = "month") -> Dict[str, Any]:
        """
        Compute and save a report snapshot for every teacher that has classes.

        Returns:
            Summary dict with teachers_processed, snapshots_created, duration_ms
        """
        start_time = time.time()
        class_service = ClassService(store)
        calculator = get_report_calculator()

        classes = await class_service.list_classes()
        teacher_ids = sorted({cls["teacherId"] for cls in classes if cls.get("teacherId")})

        snapshots_created = 0
        for teacher_id in teacher_ids:
            try:
                report = await calculator.generate_report(class_service, teacher_id, period)
                await self.save_report_snapshot(report)
                snapshots_created += 1
            except Exception as e:
                logger.error(f"Error saving report snapshot for teacher {teacher_id}: {e}", exc_info=True)

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            f"Report snapshots complete: {len(teacher_ids)} teachers, "
            f"{snapshots_created} snapshots, {duration_ms:.2f}ms"
        )

        return {
            "teachers_processed": len(teacher_ids),
            "snapshots_created": snapshots_created,
            "duration_ms": round(duration_ms, 2),
        }

    async def cleanup_old_snapshots(self, days: int = 90) -> int:
        """
        Delete snapshots older than specified days.

        Returns:
            Number of snapshots deleted
        """
        cutoff_date = datetime.now(timezone.utc) - timedelta(days=days)

        async with AsyncSessionLocal() as session:
            result = await session.execute(
                delete(ReportSnapshot).where(ReportSnapshot.snapshot_time < cutoff_date)
            )
            await session.commit()

            deleted_count = result.rowcount
            logger.info(f"Deleted {deleted_count} report snapshots older than {days} days")

            return deleted_count


# Global service instance
_snapshot_service: Optional[ReportSnapshotService] = None


def get_report_snapshot_service() -> ReportSnapshotService:
    """Get or create global ReportSnapshotService instance."""
    global _snapshot_service
    if _snapshot_service is None:
        _snapshot_service = ReportSnapshotService()
    return _snapshot_service
