"""
db/models/upload.py

Append-only audit log of processed CSV uploads.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, CreatedAtMixin

if TYPE_CHECKING:
    from db.models.evaluation import EvaluationRecord


class UploadRecord(Base, CreatedAtMixin):
    __tablename__ = "uploads"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    filename: Mapped[str] = mapped_column(Text, nullable=False)
    total_records: Mapped[int] = mapped_column(Integer, nullable=False)
    unique_dates: Mapped[int] = mapped_column(Integer, nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    evaluations: Mapped[list["EvaluationRecord"]] = relationship(
        "EvaluationRecord",
        back_populates="upload",
        passive_deletes=True,
    )

    __table_args__ = (Index("ix_uploads_uploaded_at", "uploaded_at"),)

    def __repr__(self) -> str:
        return f"<UploadRecord id={self.id} filename={self.filename!r} total={self.total_records}>"
