import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.rules import MAX_ELIMINATION_COUNT, TOTAL_GAMEWEEKS, utcnow
from ..models.gameweek import Gameweek
from ..models.season import Season
from ..models.season_participation import SeasonParticipation
from ..models.team import Team
from ..models.user import User
from .errors import GameweekNotFound, SeasonNotFound

logger = logging.getLogger(__name__)


async def create_season(
    session: AsyncSession, *, name: str, start_date: date, end_date: date
) -> Season:
    """Crée une saison et la rend active (l'ancienne saison active est désactivée)."""
    name = name.strip()
    if not name:
        raise ValueError("Le nom de la saison est obligatoire.")
    if end_date <= start_date:
        raise ValueError("La date de fin doit suivre la date de début.")
    if await session.get(Season, name) is not None:
        raise ValueError(f"La saison {name} existe déjà.")

    await session.execute(
        update(Season).where(Season.is_active.is_(True)).values(is_active=False)
    )
    season = Season(name=name, start_date=start_date, end_date=end_date, is_active=True)
    session.add(season)
    await session.commit()
    logger.info(f"Saison {name} créée")
    return season


async def archive_season(session: AsyncSession, *, season_id: str) -> Season:
    season = await session.get(Season, season_id)
    if season is None:
        raise SeasonNotFound(season_id)
    season.is_active = False
    season.is_archived = True
    await session.commit()
    logger.info(f"Saison {season_id} archivée")
    return season


async def add_gameweek(
    session: AsyncSession,
    *,
    season_id: str,
    week_number: int,
    deadline: datetime,
    elimination_count: int = 0,
) -> Gameweek:
    if not 1 <= week_number <= TOTAL_GAMEWEEKS:
        raise ValueError(f"Le numéro de journée doit être compris entre 1 et {TOTAL_GAMEWEEKS}.")
    if not 0 <= elimination_count <= MAX_ELIMINATION_COUNT:
        raise ValueError(f"Le nombre d'éliminations doit être compris entre 0 et {MAX_ELIMINATION_COUNT}.")
    if await session.get(Season, season_id) is None:
        raise SeasonNotFound(season_id)

    gw = Gameweek(
        season_id=season_id,
        week_number=week_number,
        deadline=deadline,
        elimination_count=elimination_count,
    )
    session.add(gw)
    await session.commit()
    return gw


async def lock_gameweek(session: AsyncSession, *, season_id: str, week_number: int) -> Gameweek:
    gw = await session.get(Gameweek, (season_id, week_number))
    if gw is None:
        raise GameweekNotFound(season_id, week_number)
    gw.is_locked = True
    await session.commit()
    return gw


async def add_team(
    session: AsyncSession,
    *,
    name: str,
    short_name: Optional[str] = None,
    code: Optional[str] = None,
    is_active: bool = True,
) -> Team:
    team = Team(name=name, short_name=short_name, code=code, is_active=is_active)
    session.add(team)
    await session.commit()
    return team


async def request_participation(
    session: AsyncSession, *, user_id: int, season_id: str
) -> SeasonParticipation:
    if await session.get(Season, season_id) is None:
        raise SeasonNotFound(season_id)

    existing = (
        await session.execute(
            select(SeasonParticipation).where(
                SeasonParticipation.user_id == user_id,
                SeasonParticipation.season_id == season_id,
            )
        )
    ).scalar_one_or_none()
    if existing is not None:
        return existing

    participation = SeasonParticipation(user_id=user_id, season_id=season_id)
    session.add(participation)
    await session.commit()
    return participation


async def approve_participation(
    session: AsyncSession,
    *,
    user_id: int,
    season_id: str,
    approved_by: Optional[int] = None,
) -> SeasonParticipation:
    """Valide l'inscription d'un joueur (la demande est créée si besoin)."""
    participation = await request_participation(session, user_id=user_id, season_id=season_id)
    if not participation.is_approved:
        participation.is_approved = True
        participation.approved_at = utcnow()
        participation.approved_by = approved_by
        await session.commit()
        logger.info(f"Joueur {user_id} validé pour la saison {season_id}")
    return participation


async def get_approved_user_ids(session: AsyncSession, *, season_id: str) -> list[int]:
    """Joueurs validés et actifs pour la saison, par id croissant."""
    rows = await session.execute(
        select(User.id)
        .join(SeasonParticipation, SeasonParticipation.user_id == User.id)
        .where(
            SeasonParticipation.season_id == season_id,
            SeasonParticipation.is_approved.is_(True),
            User.is_active.is_(True),
        )
        .order_by(User.id)
    )
    return list(rows.scalars().all())
