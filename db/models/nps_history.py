"""
db/models/nps_history.py

Per-calendar-date NPS snapshot.
One row per date; re-uploads touching the same date update the row in place.
"""

from __future__ import annotations

import datetime as dt

from sqlalchemy import Date, Index, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin

_UNIQUE_DATE_CONSTRAINT = "uq_nps_history_date"


class NPSHistoryEntry(Base, TimestampMixin):
    """
    Durable NPS aggregate for one evaluation date.

    ``nps_free`` / ``nps_lite`` / ``nps_pro`` hold the integer NPS of each
    plan over every evaluation stored for ``date``; a plan without data is
    stored as 0. ``total_records`` counts all evaluations folded into the
    date across uploads.
    """

    __tablename__ = "nps_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    date: Mapped[dt.date] = mapped_column(
        Date,
        nullable=False,
        comment="Evaluation calendar date (unique key)",
    )
    nps_free: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    nps_lite: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    nps_pro: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_records: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Cumulative evaluation count for this date across uploads",
    )

    __table_args__ = (
        UniqueConstraint("date", name=_UNIQUE_DATE_CONSTRAINT),
        Index("ix_nps_history_date", "date"),
    )

    def __repr__(self) -> str:
        return (
            f"<NPSHistoryEntry date={self.date} FREE={self.nps_free} "
            f"LITE={self.nps_lite} PRO={self.nps_pro} total={self.total_records}>"
        )
