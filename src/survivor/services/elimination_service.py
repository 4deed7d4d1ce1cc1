"""
Éliminations de fin de journée.

Une journée passe de "non traitée" à "traitée" une seule fois: les lignes
`user_elimination` de la journée font foi. Relancer le traitement ne fait
rien, et la contrainte d'unicité (joueur, saison) empêche toute double
élimination si deux traitements tournent en même temps.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Mapping, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.rules import MAX_ELIMINATION_COUNT
from ..models.gameweek import Gameweek
from ..models.season import Season
from ..models.user_elimination import UserElimination
from .errors import GameweekNotFound, GameweekStateError, SeasonNotFound
from .seasons_service import get_approved_user_ids
from .standings_service import compute_standings

logger = logging.getLogger(__name__)


@dataclass
class EliminatedPlayer:
    user_id: int
    display_name: str
    gameweek_number: int
    # Place au classement des joueurs encore en course à cette journée
    # (le dernier éliminé a la plus grande), pas un rang parmi les éliminés
    position: int
    total_points: int


@dataclass
class EliminationResult:
    season_id: str
    gameweek_number: int
    players_eliminated: int = 0
    eliminated: list[EliminatedPlayer] = field(default_factory=list)
    already_processed: bool = False
    message: str = ""


@dataclass
class EliminationConfig:
    week_number: int
    elimination_count: int
    has_been_processed: bool
    deadline: datetime


async def has_been_processed(
    session: AsyncSession, *, season_id: str, gameweek_number: int
) -> bool:
    row = (
        await session.execute(
            select(UserElimination.id).where(
                UserElimination.season_id == season_id,
                UserElimination.gameweek_number == gameweek_number,
            ).limit(1)
        )
    ).first()
    return row is not None


async def process_gameweek_eliminations(
    session: AsyncSession,
    season_id: str,
    gameweek_number: int,
    triggered_by: Optional[int] = None,
) -> EliminationResult:
    gw = await session.get(Gameweek, (season_id, gameweek_number))
    if gw is None:
        raise GameweekNotFound(season_id, gameweek_number)
    count = gw.elimination_count
    result = EliminationResult(season_id=season_id, gameweek_number=gameweek_number)

    if await has_been_processed(session, season_id=season_id, gameweek_number=gameweek_number):
        result.already_processed = True
        result.message = f"Éliminations déjà traitées pour la J{gameweek_number}."
        logger.info(f"{season_id} J{gameweek_number}: déjà traitée, rien à faire")
        return result

    if count == 0:
        result.message = f"Aucune élimination prévue pour la J{gameweek_number}."
        return result

    user_ids = await get_approved_user_ids(session, season_id=season_id)
    standings = await compute_standings(
        session,
        season_id,
        user_ids,
        up_to_gameweek=gameweek_number,
        exclude_eliminated=True,
    )
    if not standings:
        result.message = f"Aucun joueur éligible pour la J{gameweek_number}."
        logger.warning(f"{season_id} J{gameweek_number}: aucun joueur éligible")
        return result

    to_eliminate = standings[-count:]
    logger.info(
        f"{season_id} J{gameweek_number}: élimination de {len(to_eliminate)} joueur(s) sur {len(standings)}"
    )

    # Une transaction par joueur: un échec partiel reste visible et relançable
    for entry in to_eliminate:
        session.add(
            UserElimination(
                user_id=entry.user_id,
                season_id=season_id,
                gameweek_number=gameweek_number,
                position=entry.position,
                total_points=entry.total_points,
                eliminated_by=triggered_by,
            )
        )
        try:
            await session.commit()
        except IntegrityError:
            await session.rollback()
            logger.warning(
                f"{season_id} J{gameweek_number}: joueur {entry.user_id} déjà éliminé, ignoré"
            )
            continue

        result.eliminated.append(
            EliminatedPlayer(
                user_id=entry.user_id,
                display_name=entry.display_name,
                gameweek_number=gameweek_number,
                position=entry.position,
                total_points=entry.total_points,
            )
        )

    result.players_eliminated = len(result.eliminated)
    result.message = (
        f"{result.players_eliminated} joueur(s) éliminé(s) à la J{gameweek_number}."
    )
    logger.info(f"{season_id} J{gameweek_number}: {result.message}")
    return result


# --- Configuration ---


def _check_count(count: int) -> None:
    if not 0 <= count <= MAX_ELIMINATION_COUNT:
        raise ValueError(
            f"Le nombre d'éliminations doit être compris entre 0 et {MAX_ELIMINATION_COUNT}."
        )


async def _processed_weeks(session: AsyncSession, season_id: str) -> set[int]:
    rows = await session.execute(
        select(UserElimination.gameweek_number)
        .where(UserElimination.season_id == season_id)
        .distinct()
    )
    return set(rows.scalars().all())


async def get_elimination_configs(
    session: AsyncSession, *, season_id: str
) -> list[EliminationConfig]:
    if await session.get(Season, season_id) is None:
        raise SeasonNotFound(season_id)

    processed = await _processed_weeks(session, season_id)
    gameweeks = (
        await session.execute(
            select(Gameweek).where(Gameweek.season_id == season_id).order_by(Gameweek.week_number)
        )
    ).scalars().all()
    return [
        EliminationConfig(
            week_number=gw.week_number,
            elimination_count=gw.elimination_count,
            has_been_processed=gw.week_number in processed,
            deadline=gw.deadline,
        )
        for gw in gameweeks
    ]


async def set_elimination_count(
    session: AsyncSession, *, season_id: str, week_number: int, count: int
) -> Gameweek:
    _check_count(count)
    gw = await session.get(Gameweek, (season_id, week_number))
    if gw is None:
        raise GameweekNotFound(season_id, week_number)
    if await has_been_processed(session, season_id=season_id, gameweek_number=week_number):
        raise GameweekStateError(
            f"Les éliminations de la J{week_number} ont déjà été traitées."
        )

    gw.elimination_count = count
    await session.commit()
    logger.info(f"{season_id} J{week_number}: {count} élimination(s) prévue(s)")
    return gw


async def bulk_set_elimination_counts(
    session: AsyncSession, counts: Mapping[tuple[str, int], int]
) -> int:
    """
    Met à jour plusieurs journées d'un coup. Toutes les valeurs sont vérifiées
    avant la moindre écriture; les journées inconnues ou déjà traitées sont
    ignorées. Retourne le nombre de journées modifiées.
    """
    for value in counts.values():
        _check_count(value)

    processed_by_season: dict[str, set[int]] = {}
    updated = 0
    for (season_id, week_number), value in counts.items():
        gw = await session.get(Gameweek, (season_id, week_number))
        if gw is None:
            logger.warning(f"Journée {season_id}-{week_number} introuvable, ignorée")
            continue

        if season_id not in processed_by_season:
            processed_by_season[season_id] = await _processed_weeks(session, season_id)
        if week_number in processed_by_season[season_id]:
            logger.warning(f"J{week_number} {season_id} déjà traitée, ignorée")
            continue

        gw.elimination_count = value
        updated += 1

    await session.commit()
    logger.info(f"{updated} journée(s) mise(s) à jour sur {len(counts)}")
    return updated


# --- Lecture ---


async def get_season_eliminations(
    session: AsyncSession, *, season_id: str
) -> list[UserElimination]:
    rows = await session.execute(
        select(UserElimination)
        .where(UserElimination.season_id == season_id)
        .order_by(UserElimination.gameweek_number, UserElimination.position)
    )
    return list(rows.scalars().all())


async def get_gameweek_eliminations(
    session: AsyncSession, *, season_id: str, gameweek_number: int
) -> list[UserElimination]:
    rows = await session.execute(
        select(UserElimination)
        .where(
            UserElimination.season_id == season_id,
            UserElimination.gameweek_number == gameweek_number,
        )
        .order_by(UserElimination.position)
    )
    return list(rows.scalars().all())


async def is_user_eliminated(session: AsyncSession, *, user_id: int, season_id: str) -> bool:
    row = (
        await session.execute(
            select(UserElimination.id).where(
                UserElimination.user_id == user_id, UserElimination.season_id == season_id
            )
        )
    ).first()
    return row is not None
