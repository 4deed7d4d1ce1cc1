from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column

from ..core.rules import half_for_week, utcnow
from ..db.base import Base


class Gameweek(Base):
    season_id: Mapped[str] = mapped_column(
        ForeignKey("season.name", ondelete="CASCADE"), primary_key=True
    )
    week_number: Mapped[int] = mapped_column(Integer, primary_key=True)
    deadline: Mapped[datetime] = mapped_column(DateTime)
    is_locked: Mapped[bool] = mapped_column(Boolean, default=False)
    elimination_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("week_number BETWEEN 1 AND 38", name="ck_gameweek_week_number"),
        CheckConstraint("elimination_count >= 0", name="ck_gameweek_elimination_count"),
    )

    @property
    def half(self) -> int:
        return half_for_week(self.week_number)
