from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ..core.rules import utcnow
from ..db.base import Base


class SeasonParticipation(Base):
    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("app_user.id", ondelete="CASCADE"))
    season_id: Mapped[str] = mapped_column(ForeignKey("season.name", ondelete="CASCADE"))
    is_approved: Mapped[bool] = mapped_column(Boolean, default=False)
    requested_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    approved_by: Mapped[Optional[int]] = mapped_column(ForeignKey("app_user.id"))

    __table_args__ = (
        UniqueConstraint("user_id", "season_id", name="uq_season_participation"),
    )
