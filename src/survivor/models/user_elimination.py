from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ..core.rules import utcnow
from ..db.base import Base


class UserElimination(Base):
    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("app_user.id", ondelete="CASCADE"))
    season_id: Mapped[str] = mapped_column(String(50), ForeignKey("season.name", ondelete="CASCADE"))
    gameweek_number: Mapped[int] = mapped_column(Integer)
    # Place au classement des survivants au moment de l'élimination
    position: Mapped[int] = mapped_column(Integer)
    total_points: Mapped[int] = mapped_column(Integer)
    eliminated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    eliminated_by: Mapped[Optional[int]] = mapped_column(ForeignKey("app_user.id"))

    __table_args__ = (
        # Une élimination est définitive: au plus une par joueur et par saison
        UniqueConstraint("user_id", "season_id", name="uq_user_elimination"),
        Index("ix_user_elimination_season_week", "season_id", "gameweek_number"),
    )
