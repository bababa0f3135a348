"""
db/models/evaluation.py

Individual evaluation rows kept per upload.
The history table is recomputed from these rows whenever a date is touched.
"""

from __future__ import annotations

import datetime as dt
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, CreatedAtMixin

if TYPE_CHECKING:
    from db.models.upload import UploadRecord


class EvaluationRecord(Base, CreatedAtMixin):
    __tablename__ = "evaluations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    raw_date: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Date text exactly as it appeared in the CSV",
    )
    client_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    plan: Mapped[str] = mapped_column(String(8), nullable=False, comment="FREE, LITE, PRO")
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="Promotor, Neutro, Detrator",
    )
    upload_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("uploads.id", ondelete="SET NULL"),
        nullable=True,
    )

    upload: Mapped["UploadRecord | None"] = relationship(
        "UploadRecord",
        back_populates="evaluations",
    )

    __table_args__ = (
        CheckConstraint("score >= 0 AND score <= 10", name="ck_evaluations_score_range"),
        CheckConstraint("plan IN ('FREE', 'LITE', 'PRO')", name="ck_evaluations_plan"),
        Index("ix_evaluations_date", "date"),
        Index("ix_evaluations_plan", "plan"),
        Index("ix_evaluations_score", "score"),
    )
