from sqlalchemy import CheckConstraint, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ..core.rules import DEFAULT_MAX_OPPOSITION_TARGETS, DEFAULT_MAX_TEAM_PICKS
from ..db.base import Base


class PickRule(Base):
    id: Mapped[int] = mapped_column(primary_key=True)
    season_id: Mapped[str] = mapped_column(ForeignKey("season.name", ondelete="CASCADE"))
    half: Mapped[int] = mapped_column(Integer)
    max_times_team_can_be_picked: Mapped[int] = mapped_column(
        Integer, default=DEFAULT_MAX_TEAM_PICKS
    )
    max_times_opposition_can_be_targeted: Mapped[int] = mapped_column(
        Integer, default=DEFAULT_MAX_OPPOSITION_TARGETS
    )

    __table_args__ = (
        UniqueConstraint("season_id", "half", name="uq_pick_rule"),
        CheckConstraint("half IN (1, 2)", name="ck_pick_rule_half"),
    )
