from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    DateTime,
    ForeignKey,
    ForeignKeyConstraint,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from ..core.rules import utcnow
from ..db.base import Base


class FixtureStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    IN_PLAY = "IN_PLAY"
    PAUSED = "PAUSED"
    FINISHED = "FINISHED"
    POSTPONED = "POSTPONED"
    CANCELLED = "CANCELLED"


# Statuts pour lesquels un score existe (définitif ou en cours)
COUNTABLE_STATUSES = frozenset(
    s.value for s in (FixtureStatus.FINISHED, FixtureStatus.IN_PLAY, FixtureStatus.PAUSED)
)


class Fixture(Base):
    id: Mapped[int] = mapped_column(primary_key=True)
    season_id: Mapped[str] = mapped_column(String(50))
    gameweek_number: Mapped[int] = mapped_column(Integer)
    home_team_id: Mapped[int] = mapped_column(ForeignKey("team.id"))
    away_team_id: Mapped[int] = mapped_column(ForeignKey("team.id"))
    kickoff_time: Mapped[Optional[datetime]] = mapped_column(DateTime)
    home_score: Mapped[Optional[int]] = mapped_column(Integer)
    away_score: Mapped[Optional[int]] = mapped_column(Integer)
    status: Mapped[str] = mapped_column(String(20), default=FixtureStatus.SCHEDULED.value)
    external_id: Mapped[Optional[int]] = mapped_column(Integer)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        ForeignKeyConstraint(
            ["season_id", "gameweek_number"],
            ["gameweek.season_id", "gameweek.week_number"],
            ondelete="CASCADE",
        ),
        UniqueConstraint(
            "season_id", "gameweek_number", "home_team_id", "away_team_id", name="uq_fixture"
        ),
    )

    @property
    def has_result(self) -> bool:
        return self.status in COUNTABLE_STATUSES

    def opponent_of(self, team_id: int) -> Optional[int]:
        if team_id == self.home_team_id:
            return self.away_team_id
        if team_id == self.away_team_id:
            return self.home_team_id
        return None
