"""
Règles du jeu: points par résultat, découpage de la saison en deux moitiés
et bornes de configuration.
"""
from datetime import UTC, datetime

POINTS_FOR_WIN = 3
POINTS_FOR_DRAW = 1
POINTS_FOR_LOSS = 0

TOTAL_GAMEWEEKS = 38
FIRST_HALF_END = 19

FIRST_HALF = 1
SECOND_HALF = 2

DEFAULT_MAX_TEAM_PICKS = 1
DEFAULT_MAX_OPPOSITION_TARGETS = 1
MAX_PICK_RULE_LIMIT = 19  # une moitié de saison

MAX_ELIMINATION_COUNT = 100


def half_for_week(week_number: int) -> int:
    return FIRST_HALF if week_number <= FIRST_HALF_END else SECOND_HALF


def weeks_in_half(half: int) -> range:
    if half == FIRST_HALF:
        return range(1, FIRST_HALF_END + 1)
    if half == SECOND_HALF:
        return range(FIRST_HALF_END + 1, TOTAL_GAMEWEEKS + 1)
    raise ValueError("La moitié doit valoir 1 ou 2.")


def result_points(goals_for: int, goals_against: int) -> int:
    if goals_for > goals_against:
        return POINTS_FOR_WIN
    if goals_for == goals_against:
        return POINTS_FOR_DRAW
    return POINTS_FOR_LOSS


def utcnow() -> datetime:
    """UTC naïf: les dates sont stockées sans fuseau."""
    return datetime.now(UTC).replace(tzinfo=None)
