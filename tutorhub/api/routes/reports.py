"""
Teacher Reports API Endpoints

GET /api/v1/teachers/{teacher_id}/reports         - Live report for a period
GET /api/v1/teachers/{teacher_id}/reports/export  - Per-student metrics as CSV
GET /api/v1/teachers/{teacher_id}/reports/history - Stored report snapshots
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from fastapi.responses import Response

from tutorhub.api.dependencies import get_class_service
from tutorhub.schemas import ReportPeriod, TeacherReport
from tutorhub.services.class_service import ClassService
from tutorhub.services.report_calculator import get_report_calculator
from tutorhub.services.report_export import report_to_csv
from tutorhub.services.report_snapshots import ReportSnapshotService, get_report_snapshot_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/teachers", tags=["reports"])


@router.get("/{teacher_id}/reports", response_model=TeacherReport)
async def get_teacher_report(
    teacher_id: str = Path(..., description="Teacher id"),
    period: ReportPeriod = Query("month", description="Reporting window: week, month or semester"),
    service: ClassService = Depends(get_class_service),
):
    """
    Attendance and performance report rebuilt from completed classes.

    Returns class-wide stats, per-student metrics, and the top performer and
    needs attention cohorts (3 students each at most).
    """
    calculator = get_report_calculator()
    return await calculator.generate_report(service, teacher_id, period)


@router.get("/{teacher_id}/reports/export")
async def export_teacher_report(
    teacher_id: str = Path(..., description="Teacher id"),
    period: ReportPeriod = Query("month", description="Reporting window: week, month or semester"),
    service: ClassService = Depends(get_class_service),
):
    """Per-student report metrics as a CSV download."""
    calculator = get_report_calculator()
    report = await calculator.generate_report(service, teacher_id, period)
    filename = f"report_{teacher_id}_{period}.csv"

    return Response(
        content=report_to_csv(report),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{teacher_id}/reports/history", response_model=List[Dict[str, Any]])
async def get_report_history(
    teacher_id: str = Path(..., description="Teacher id"),
    period: Optional[ReportPeriod] = Query(None, description="Filter by reporting window"),
    limit: int = Query(30, ge=1, le=500),
    snapshots: ReportSnapshotService = Depends(get_report_snapshot_service),
):
    """
    Stored hourly report snapshots, newest first.

    Raises:
        500: If snapshot storage is unavailable
    """
    try:
        return await snapshots.list_snapshots(teacher_id, period=period, limit=limit)
    except Exception as e:
        logger.error(f"Error loading report history for {teacher_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Error loading report history for {teacher_id}: {str(e)}"
        )
