"""Construction de jeux de données pour les tests de services."""
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from survivor.models import (
    Fixture,
    Gameweek,
    Pick,
    Season,
    SeasonParticipation,
    Team,
    User,
    UserElimination,
)

SEASON = "2024/25"

# Date limite de la J1; les suivantes tombent une semaine plus tard chacune
FIRST_DEADLINE = datetime(2024, 8, 16, 13, 30)
BEFORE_ANY_DEADLINE = FIRST_DEADLINE - timedelta(days=1)


def deadline_for(week: int) -> datetime:
    return FIRST_DEADLINE + timedelta(weeks=week - 1)


def after_deadline(week: int) -> datetime:
    return deadline_for(week) + timedelta(hours=1)


async def make_season(
    session,
    name: str = SEASON,
    weeks: Iterable[int] = range(1, 6),
    elimination_counts: Optional[dict[int, int]] = None,
    is_archived: bool = False,
) -> Season:
    counts = elimination_counts or {}
    season = Season(
        name=name,
        start_date=date(2024, 8, 16),
        end_date=date(2025, 5, 25),
        is_active=not is_archived,
        is_archived=is_archived,
    )
    session.add(season)
    await session.flush()
    for week in weeks:
        session.add(
            Gameweek(
                season_id=name,
                week_number=week,
                deadline=deadline_for(week),
                elimination_count=counts.get(week, 0),
            )
        )
    await session.commit()
    return season


async def make_teams(session, *names: str, inactive: Iterable[str] = ()) -> list[int]:
    teams = [Team(name=n, short_name=n, is_active=n not in set(inactive)) for n in names]
    session.add_all(teams)
    await session.commit()
    return [t.id for t in teams]


async def make_fixture(
    session,
    week: int,
    home: int,
    away: int,
    *,
    season_id: str = SEASON,
    status: str = "SCHEDULED",
    home_score: Optional[int] = None,
    away_score: Optional[int] = None,
) -> Fixture:
    fixture = Fixture(
        season_id=season_id,
        gameweek_number=week,
        home_team_id=home,
        away_team_id=away,
        status=status,
        home_score=home_score,
        away_score=away_score,
    )
    session.add(fixture)
    await session.commit()
    return fixture


async def make_user(
    session,
    name: str,
    *,
    season_id: Optional[str] = SEASON,
    approved: bool = True,
    is_active: bool = True,
) -> int:
    user = User(display_name=name, email=f"{name.lower()}@example.com", is_active=is_active)
    session.add(user)
    await session.flush()
    if season_id is not None:
        session.add(
            SeasonParticipation(user_id=user.id, season_id=season_id, is_approved=approved)
        )
    await session.commit()
    return user.id


async def make_pick(
    session,
    user_id: int,
    week: int,
    team_id: int,
    *,
    season_id: str = SEASON,
    points: int = 0,
    goals_for: int = 0,
    goals_against: int = 0,
) -> Pick:
    """Insertion directe, sans passer par les règles de choix."""
    pick = Pick(
        user_id=user_id,
        season_id=season_id,
        gameweek_number=week,
        team_id=team_id,
        points=points,
        goals_for=goals_for,
        goals_against=goals_against,
    )
    session.add(pick)
    await session.commit()
    return pick


async def eliminate(session, user_id: int, week: int, *, season_id: str = SEASON) -> None:
    session.add(
        UserElimination(
            user_id=user_id,
            season_id=season_id,
            gameweek_number=week,
            position=1,
            total_points=0,
        )
    )
    await session.commit()


async def commit_elsewhere(engine, row):
    """Écrit `row` depuis une seconde session, comme le ferait une requête concurrente."""
    other_session = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    async with other_session() as other:
        other.add(row)
        await other.commit()
    return row
