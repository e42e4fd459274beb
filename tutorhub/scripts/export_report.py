"""
Teacher Report Export Script

Builds a teacher report from the record store and writes per-student metrics
to CSV.
Usage: python -m tutorhub.scripts.export_report --teacher teacher_1 --period month --output report.csv
"""
import asyncio
import argparse
from pathlib import Path

from tutorhub.services.class_service import ClassService
from tutorhub.services.report_calculator import PERIODS, get_report_calculator
from tutorhub.services.report_export import report_to_dataframe
from tutorhub.store import create_record_store


async def export_report(teacher_id: str, period: str, output_file: str, backend: str = None):
    """
    Export one teacher's report to CSV.

    Args:
        teacher_id: Teacher to report on
        period: "week", "month" or "semester"
        output_file: Path to output CSV file
        backend: Record store backend (defaults to STORE_BACKEND)
    """
    print(f"Building {period} report for teacher {teacher_id}...")

    store = await create_record_store(backend)
    try:
        report = await get_report_calculator().generate_report(ClassService(store), teacher_id, period)
    finally:
        await store.close()

    df = report_to_dataframe(report)
    output_path = Path(output_file)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(output_path, index=False)

    stats = report["classStats"]
    print(f"\n✅ Exported {len(df)} students to {output_path}")
    print(f"  Total students: {stats['totalStudents']}")
    print(f"  Average attendance: {stats['averageAttendance']}%")
    print(f"  Average grade: {stats['averageGrade']}")
    print(f"  Assignment completion: {stats['assignmentCompletionRate']}%")
    print(f"  Top performers: {len(report['topPerformers'])}")
    print(f"  Needs attention: {len(report['needsAttention'])}")
    if report["parseFailures"]:
        print(f"  ⚠ {report['parseFailures']} classes had unreadable evaluations")


def main():
    """CLI entry point"""
    parser = argparse.ArgumentParser(description="Export a teacher report to CSV")
    parser.add_argument(
        "--teacher",
        "-t",
        required=True,
        help="Teacher id"
    )
    parser.add_argument(
        "--period",
        "-p",
        choices=PERIODS,
        default="month",
        help="Reporting window (default: month)"
    )
    parser.add_argument(
        "--output",
        "-o",
        default="report.csv",
        help="Output CSV path (default: report.csv)"
    )
    parser.add_argument(
        "--backend",
        "-b",
        choices=["memory", "redis"],
        help="Record store backend (default: STORE_BACKEND)"
    )

    args = parser.parse_args()
    asyncio.run(export_report(args.teacher, args.period, args.output, args.backend))


if __name__ == "__main__":
    main()
