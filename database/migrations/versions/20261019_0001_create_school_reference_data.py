"""create school reference data

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    institution_type = sa.Enum(
        "university",
        "teacher_training_college",
        "technical_university",
        name="institution_type",
    )

    op.create_table(
        "schools",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("uses_streams", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("primary_curriculum", sa.String(length=20), nullable=False, server_default="CBC"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "classrooms",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("school_id", sa.String(length=36), sa.ForeignKey("schools.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("level", sa.String(length=60), nullable=False),
        sa.Column("grade_level", sa.String(length=30), nullable=True),
        sa.Column("pathway", sa.String(length=60), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_classrooms_school_id", "classrooms", ["school_id"])

    op.create_table(
        "streams",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("school_id", sa.String(length=36), sa.ForeignKey("schools.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "classroom_id", sa.String(length=36), sa.ForeignKey("classrooms.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("pathway", sa.String(length=60), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_streams_school_id", "streams", ["school_id"])
    op.create_index("ix_streams_classroom_id", "streams", ["classroom_id"])

    op.create_table(
        "academic_years",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("school_id", sa.String(length=36), sa.ForeignKey("schools.id", ondelete="CASCADE"), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("curriculum_type", sa.String(length=20), nullable=False, server_default="CBC"),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint(
            "school_id", "year", "curriculum_type", name="uq_academic_years_school_year_curriculum"
        ),
    )
    op.create_index("ix_academic_years_school_id", "academic_years", ["school_id"])

    op.create_table(
        "terms",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column(
            "academic_year_id",
            sa.String(length=36),
            sa.ForeignKey("academic_years.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=30), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("is_finalized", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("finalized_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("finalized_by_id", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("academic_year_id", "name", name="uq_terms_academic_year_name"),
    )
    op.create_index("ix_terms_academic_year_id", "terms", ["academic_year_id"])

    op.create_table(
        "teacher_combinations",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("code", sa.String(length=60), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("degree_title", sa.String(length=255), nullable=False),
        sa.Column("degree_abbreviation", sa.String(length=60), nullable=False),
        sa.Column("institution_type", institution_type, nullable=False, server_default="university"),
        sa.Column("subject_group", sa.String(length=60), nullable=False),
        sa.Column("primary_subjects", sa.JSON(), nullable=False),
        sa.Column("derived_subjects", sa.JSON(), nullable=False),
        sa.Column("eligible_levels", sa.JSON(), nullable=False),
        sa.Column("eligible_pathways", sa.JSON(), nullable=False),
        sa.Column("curriculum_types", sa.JSON(), nullable=False),
        sa.Column("tsc_recognized", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_teacher_combinations_code", "teacher_combinations", ["code"], unique=True)
    op.create_index("ix_teacher_combinations_subject_group", "teacher_combinations", ["subject_group"])
    op.create_index("ix_teacher_combinations_is_active", "teacher_combinations", ["is_active"])

    op.create_table(
        "teachers",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("school_id", sa.String(length=36), sa.ForeignKey("schools.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("tsc_number", sa.String(length=30), nullable=True),
        sa.Column(
            "combination_id",
            sa.String(length=36),
            sa.ForeignKey("teacher_combinations.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("combination_code", sa.String(length=60), nullable=True),
        sa.Column("combination_label", sa.String(length=120), nullable=True),
        sa.Column("graduation_year", sa.Integer(), nullable=True),
        sa.Column("institution_type", sa.String(length=40), nullable=True),
        sa.Column("awarding_institution", sa.String(length=150), nullable=True),
        sa.Column("min_weekly_lessons", sa.Integer(), nullable=False, server_default="20"),
        sa.Column("max_weekly_lessons", sa.Integer(), nullable=False, server_default="27"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_teachers_school_id", "teachers", ["school_id"])
    op.create_index("ix_teachers_combination_id", "teachers", ["combination_id"])
    op.create_index("ix_teachers_combination_code", "teachers", ["combination_code"])

    op.create_table(
        "subjects",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("school_id", sa.String(length=36), sa.ForeignKey("schools.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("code", sa.String(length=30), nullable=True),
        sa.Column("curriculum_type", sa.String(length=20), nullable=False, server_default="CBC"),
        sa.Column("level", sa.String(length=60), nullable=False),
        sa.Column("grade_level", sa.String(length=30), nullable=True),
        sa.Column("pathway", sa.String(length=60), nullable=True),
        sa.Column("category", sa.String(length=60), nullable=True),
        sa.Column("is_core", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("min_weekly_periods", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("max_weekly_periods", sa.Integer(), nullable=False, server_default="10"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_subjects_school_id", "subjects", ["school_id"])
    op.create_index("ix_subjects_name", "subjects", ["name"])

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("school_id", sa.String(length=36), nullable=True),
        sa.Column("actor_id", sa.String(length=36), nullable=True),
        sa.Column("actor_role", sa.String(length=20), nullable=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=True),
        sa.Column("entity_id", sa.String(length=100), nullable=True),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_activity_logs_school_id", "activity_logs", ["school_id"])
    op.create_index("ix_activity_logs_action", "activity_logs", ["action"])


def downgrade() -> None:
    op.drop_index("ix_activity_logs_action", table_name="activity_logs")
    op.drop_index("ix_activity_logs_school_id", table_name="activity_logs")
    op.drop_table("activity_logs")
    op.drop_index("ix_subjects_name", table_name="subjects")
    op.drop_index("ix_subjects_school_id", table_name="subjects")
    op.drop_table("subjects")
    op.drop_index("ix_teachers_combination_code", table_name="teachers")
    op.drop_index("ix_teachers_combination_id", table_name="teachers")
    op.drop_index("ix_teachers_school_id", table_name="teachers")
    op.drop_table("teachers")
    op.drop_index("ix_teacher_combinations_is_active", table_name="teacher_combinations")
    op.drop_index("ix_teacher_combinations_subject_group", table_name="teacher_combinations")
    op.drop_index("ix_teacher_combinations_code", table_name="teacher_combinations")
    op.drop_table("teacher_combinations")
    op.drop_index("ix_terms_academic_year_id", table_name="terms")
    op.drop_table("terms")
    op.drop_index("ix_academic_years_school_id", table_name="academic_years")
    op.drop_table("academic_years")
    op.drop_index("ix_streams_classroom_id", table_name="streams")
    op.drop_index("ix_streams_school_id", table_name="streams")
    op.drop_table("streams")
    op.drop_index("ix_classrooms_school_id", table_name="classrooms")
    op.drop_table("classrooms")
    op.drop_table("schools")
    sa.Enum(name="institution_type").drop(op.get_bind(), checkfirst=True)
