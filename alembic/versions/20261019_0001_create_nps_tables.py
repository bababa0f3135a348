"""create nps_history, uploads and evaluations tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "nps_history",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("date", sa.Date(), nullable=False, comment="Evaluation calendar date (unique key)"),
        sa.Column("nps_free", sa.Integer(), nullable=False),
        sa.Column("nps_lite", sa.Integer(), nullable=False),
        sa.Column("nps_pro", sa.Integer(), nullable=False),
        sa.Column(
            "total_records",
            sa.Integer(),
            nullable=False,
            comment="Cumulative evaluation count for this date across uploads",
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("date", name="uq_nps_history_date"),
    )
    op.create_index("ix_nps_history_date", "nps_history", ["date"], unique=False)

    op.create_table(
        "uploads",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("filename", sa.Text(), nullable=False),
        sa.Column("total_records", sa.Integer(), nullable=False),
        sa.Column("unique_dates", sa.Integer(), nullable=False),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_uploads_uploaded_at", "uploads", ["uploaded_at"], unique=False)

    op.create_table(
        "evaluations",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column(
            "raw_date",
            sa.Text(),
            nullable=True,
            comment="Date text exactly as it appeared in the CSV",
        ),
        sa.Column("client_id", sa.Text(), nullable=True),
        sa.Column("user_name", sa.Text(), nullable=True),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("plan", sa.String(length=8), nullable=False, comment="FREE, LITE, PRO"),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=16), nullable=False, comment="Promotor, Neutro, Detrator"),
        sa.Column("upload_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("score >= 0 AND score <= 10", name="ck_evaluations_score_range"),
        sa.CheckConstraint("plan IN ('FREE', 'LITE', 'PRO')", name="ck_evaluations_plan"),
        sa.ForeignKeyConstraint(["upload_id"], ["uploads.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_evaluations_date", "evaluations", ["date"], unique=False)
    op.create_index("ix_evaluations_plan", "evaluations", ["plan"], unique=False)
    op.create_index("ix_evaluations_score", "evaluations", ["score"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_evaluations_score", table_name="evaluations")
    op.drop_index("ix_evaluations_plan", table_name="evaluations")
    op.drop_index("ix_evaluations_date", table_name="evaluations")
    op.drop_table("evaluations")
    op.drop_index("ix_uploads_uploaded_at", table_name="uploads")
    op.drop_table("uploads")
    op.drop_index("ix_nps_history_date", table_name="nps_history")
    op.drop_table("nps_history")
