"""create subject assignments and timetable periods

Revision ID: 20261019_0002
Revises: 20261019_0001
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261019_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None

TIMETABLE_UNIQUE_INDEXES = {
    "teacher_timetable_unique": "teacher_id",
    "classroom_timetable_unique": "classroom_id",
    "stream_timetable_unique": "stream_id",
}


def upgrade() -> None:
    assignment_type = sa.Enum("main_teacher", "assistant_teacher", "substitute", name="assignment_type")

    op.create_table(
        "subject_assignments",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("school_id", sa.String(length=36), sa.ForeignKey("schools.id", ondelete="CASCADE"), nullable=False),
        sa.Column("teacher_id", sa.String(length=36), sa.ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("subject_id", sa.String(length=36), sa.ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "academic_year_id",
            sa.String(length=36),
            sa.ForeignKey("academic_years.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("term_id", sa.String(length=36), sa.ForeignKey("terms.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "classroom_id", sa.String(length=36), sa.ForeignKey("classrooms.id", ondelete="CASCADE"), nullable=True
        ),
        sa.Column("stream_id", sa.String(length=36), sa.ForeignKey("streams.id", ondelete="CASCADE"), nullable=True),
        sa.Column("weekly_periods", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("assignment_type", assignment_type, nullable=False, server_default="main_teacher"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("batch_id", sa.String(length=36), nullable=True),
        sa.Column("is_bulk_assignment", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_by_id", sa.String(length=36), nullable=True),
        sa.Column("deactivated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deactivated_by_id", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint(
            "teacher_id",
            "subject_id",
            "academic_year_id",
            "term_id",
            "classroom_id",
            name="uq_assignment_classroom",
        ),
        sa.UniqueConstraint(
            "teacher_id",
            "subject_id",
            "academic_year_id",
            "term_id",
            "stream_id",
            name="uq_assignment_stream",
        ),
    )
    for column in ("school_id", "teacher_id", "subject_id", "academic_year_id", "term_id", "classroom_id", "stream_id"):
        op.create_index(f"ix_subject_assignments_{column}", "subject_assignments", [column])
    op.create_index("ix_subject_assignments_is_active", "subject_assignments", ["is_active"])
    op.create_index("ix_subject_assignments_batch_id", "subject_assignments", ["batch_id"])

    op.create_table(
        "timetable_periods",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("teacher_id", sa.String(length=36), sa.ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "subject_assignment_id",
            sa.String(length=36),
            sa.ForeignKey("subject_assignments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "classroom_id", sa.String(length=36), sa.ForeignKey("classrooms.id", ondelete="CASCADE"), nullable=True
        ),
        sa.Column("stream_id", sa.String(length=36), sa.ForeignKey("streams.id", ondelete="CASCADE"), nullable=True),
        sa.Column(
            "academic_year_id",
            sa.String(length=36),
            sa.ForeignKey("academic_years.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("term_id", sa.String(length=36), sa.ForeignKey("terms.id", ondelete="CASCADE"), nullable=False),
        sa.Column("day_of_week", sa.String(length=10), nullable=False),
        sa.Column("period_number", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=True),
        sa.Column("end_time", sa.String(length=5), nullable=True),
        sa.Column("has_conflict", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("conflicting_periods", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_by_id", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_timetable_periods_teacher_id", "timetable_periods", ["teacher_id"])
    op.create_index("ix_timetable_periods_subject_assignment_id", "timetable_periods", ["subject_assignment_id"])
    op.create_index("ix_timetable_periods_term_id", "timetable_periods", ["term_id"])
    for index_name, axis_column in TIMETABLE_UNIQUE_INDEXES.items():
        op.create_index(
            index_name,
            "timetable_periods",
            [axis_column, "academic_year_id", "term_id", "day_of_week", "period_number"],
            unique=True,
            postgresql_where=sa.text("is_active"),
            sqlite_where=sa.text("is_active = 1"),
        )


def downgrade() -> None:
    for index_name in TIMETABLE_UNIQUE_INDEXES:
        op.drop_index(index_name, table_name="timetable_periods")
    op.drop_index("ix_timetable_periods_term_id", table_name="timetable_periods")
    op.drop_index("ix_timetable_periods_subject_assignment_id", table_name="timetable_periods")
    op.drop_index("ix_timetable_periods_teacher_id", table_name="timetable_periods")
    op.drop_table("timetable_periods")
    op.drop_index("ix_subject_assignments_batch_id", table_name="subject_assignments")
    op.drop_index("ix_subject_assignments_is_active", table_name="subject_assignments")
    for column in ("school_id", "teacher_id", "subject_id", "academic_year_id", "term_id", "classroom_id", "stream_id"):
        op.drop_index(f"ix_subject_assignments_{column}", table_name="subject_assignments")
    op.drop_table("subject_assignments")
    sa.Enum(name="assignment_type").drop(op.get_bind(), checkfirst=True)
