"""create subject selection rules and derived subject approvals

Revision ID: 20261019_0003
Revises: 20261019_0002
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261019_0003"
down_revision = "20261019_0002"
branch_labels = None
depends_on = None


def upgrade() -> None:
    rule_type = sa.Enum(
        "required_subject",
        "min_count",
        "max_count",
        "incompatible_pair",
        name="selection_rule_type",
    )
    approval_status = sa.Enum("pending", "approved", name="derived_approval_status")

    op.create_table(
        "subject_selection_rules",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("curriculum_type", sa.String(length=20), nullable=False),
        sa.Column("level", sa.String(length=60), nullable=False),
        sa.Column("pathway", sa.String(length=60), nullable=True),
        sa.Column("rule_type", rule_type, nullable=False),
        sa.Column("subject_ids", sa.JSON(), nullable=False),
        sa.Column("min_count", sa.Integer(), nullable=True),
        sa.Column("max_count", sa.Integer(), nullable=True),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_subject_selection_rules_curriculum_type", "subject_selection_rules", ["curriculum_type"])
    op.create_index("ix_subject_selection_rules_level", "subject_selection_rules", ["level"])
    op.create_index("ix_subject_selection_rules_is_active", "subject_selection_rules", ["is_active"])

    op.create_table(
        "incompatible_subject_pairs",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column(
            "rule_id",
            sa.String(length=36),
            sa.ForeignKey("subject_selection_rules.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "first_subject_id", sa.String(length=36), sa.ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column(
            "second_subject_id", sa.String(length=36), sa.ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False
        ),
    )
    op.create_index("ix_incompatible_subject_pairs_rule_id", "incompatible_subject_pairs", ["rule_id"])

    op.create_table(
        "derived_subject_approvals",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("teacher_id", sa.String(length=36), sa.ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("subject_id", sa.String(length=36), sa.ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", approval_status, nullable=False, server_default="pending"),
        sa.Column("requested_by_id", sa.String(length=36), nullable=True),
        sa.Column("requested_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("approved_by_id", sa.String(length=36), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        sa.UniqueConstraint("teacher_id", "subject_id", name="uq_derived_subject_approvals_teacher_subject"),
    )
    op.create_index("ix_derived_subject_approvals_teacher_id", "derived_subject_approvals", ["teacher_id"])
    op.create_index("ix_derived_subject_approvals_subject_id", "derived_subject_approvals", ["subject_id"])
    op.create_index("ix_derived_subject_approvals_status", "derived_subject_approvals", ["status"])


def downgrade() -> None:
    op.drop_index("ix_derived_subject_approvals_status", table_name="derived_subject_approvals")
    op.drop_index("ix_derived_subject_approvals_subject_id", table_name="derived_subject_approvals")
    op.drop_index("ix_derived_subject_approvals_teacher_id", table_name="derived_subject_approvals")
    op.drop_table("derived_subject_approvals")
    op.drop_index("ix_incompatible_subject_pairs_rule_id", table_name="incompatible_subject_pairs")
    op.drop_table("incompatible_subject_pairs")
    op.drop_index("ix_subject_selection_rules_is_active", table_name="subject_selection_rules")
    op.drop_index("ix_subject_selection_rules_level", table_name="subject_selection_rules")
    op.drop_index("ix_subject_selection_rules_curriculum_type", table_name="subject_selection_rules")
    op.drop_table("subject_selection_rules")
    sa.Enum(name="derived_approval_status").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="selection_rule_type").drop(op.get_bind(), checkfirst=True)
