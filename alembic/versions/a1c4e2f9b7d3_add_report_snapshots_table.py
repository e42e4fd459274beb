"""add report snapshots table

Revision ID: a1c4e2f9b7d3
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'a1c4e2f9b7d3'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create report_snapshots table
    op.create_table('report_snapshots',
    sa.Column('id', sa.UUID(), nullable=False),
    sa.Column('teacher_id', sa.String(length=100), nullable=False),
    sa.Column('period', sa.String(length=20), nullable=False),
    sa.Column('total_students', sa.Integer(), nullable=False),
    sa.Column('average_attendance', sa.Integer(), nullable=False),
    sa.Column('average_grade', sa.Integer(), nullable=False),
    sa.Column('assignment_completion_rate', sa.Integer(), nullable=False),
    sa.Column('parse_failures', sa.Integer(), nullable=False, server_default='0'),
    sa.Column('top_performers', sa.Text(), nullable=True),
    sa.Column('needs_attention', sa.Text(), nullable=True),
    sa.Column('snapshot_time', sa.DateTime(timezone=True), nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.CheckConstraint('average_attendance >= 0 AND average_attendance <= 100'),
    sa.CheckConstraint('average_grade >= 0 AND average_grade <= 100'),
    sa.PrimaryKeyConstraint('id')
    )

    # Create indexes for performance
    op.create_index('idx_report_snapshots_teacher_time', 'report_snapshots', ['teacher_id', 'snapshot_time'], unique=False)


def downgrade() -> None:
    # Drop indexes
    op.drop_index('idx_report_snapshots_teacher_time', table_name='report_snapshots')

    # Drop table
    op.drop_table('report_snapshots')
