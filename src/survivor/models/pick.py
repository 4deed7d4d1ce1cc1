from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    ForeignKeyConstraint,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from ..core.rules import utcnow
from ..db.base import Base


class Pick(Base):
    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("app_user.id", ondelete="CASCADE"))
    season_id: Mapped[str] = mapped_column(String(50))
    gameweek_number: Mapped[int] = mapped_column(Integer)
    team_id: Mapped[int] = mapped_column(ForeignKey("team.id"))
    points: Mapped[int] = mapped_column(Integer, default=0)
    goals_for: Mapped[int] = mapped_column(Integer, default=0)
    goals_against: Mapped[int] = mapped_column(Integer, default=0)
    is_auto_assigned: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        ForeignKeyConstraint(
            ["season_id", "gameweek_number"],
            ["gameweek.season_id", "gameweek.week_number"],
            ondelete="CASCADE",
        ),
        # Un seul choix par joueur et par journée
        UniqueConstraint("user_id", "season_id", "gameweek_number", name="uq_pick"),
        Index("ix_pick_season_week", "season_id", "gameweek_number"),
    )
