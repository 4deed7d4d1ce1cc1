from .fixture import COUNTABLE_STATUSES, Fixture, FixtureStatus
from .gameweek import Gameweek
from .pick import Pick
from .pick_rule import PickRule
from .season import Season
from .season_participation import SeasonParticipation
from .team import Team
from .user import User
from .user_elimination import UserElimination

__all__ = [
    "COUNTABLE_STATUSES",
    "Fixture",
    "FixtureStatus",
    "Gameweek",
    "Pick",
    "PickRule",
    "Season",
    "SeasonParticipation",
    "Team",
    "User",
    "UserElimination",
]
