import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.rules import utcnow
from ..models.gameweek import Gameweek
from ..models.pick import Pick
from ..models.season_participation import SeasonParticipation
from ..models.team import Team
from .elimination_service import is_user_eliminated
from .errors import (
    DuplicatePickError,
    GameweekStateError,
    NotApprovedError,
    PickNotFound,
    PickRuleViolation,
    TeamNotFound,
    UserEliminatedError,
    Violation,
)
from .pick_rules_service import PickContext, load_pick_context, validate_pick
from .scoring_service import score_pick

logger = logging.getLogger(__name__)


async def _find_pick(
    session: AsyncSession, user_id: int, season_id: str, gameweek_number: int
) -> Optional[Pick]:
    return (
        await session.execute(
            select(Pick).where(
                Pick.user_id == user_id,
                Pick.season_id == season_id,
                Pick.gameweek_number == gameweek_number,
            )
        )
    ).scalar_one_or_none()


async def _require_team(session: AsyncSession, team_id: int) -> Team:
    team = await session.get(Team, team_id)
    if team is None:
        raise TeamNotFound(team_id)
    return team


async def _deadline_at_write(session: AsyncSession, season_id: str, gameweek_number: int) -> datetime:
    # Relu juste avant l'écriture: la date limite a pu être modifiée entre-temps
    return (
        await session.execute(
            select(Gameweek.deadline).where(
                Gameweek.season_id == season_id, Gameweek.week_number == gameweek_number
            )
        )
    ).scalar_one()


def _check_rules(ctx: PickContext, team: Team, now: datetime, bypass_deadline: bool) -> None:
    violation = validate_pick(
        team.id,
        ctx.opponent_for(team.id),
        ctx.prior_picks,
        ctx.limits,
        deadline=ctx.deadline,
        now=now,
        team_active=team.is_active,
        bypass_deadline=bypass_deadline,
    )
    if violation is not None:
        raise PickRuleViolation(violation)


async def _check_can_play(session: AsyncSession, user_id: int, season_id: str) -> None:
    """Inscription validée et joueur encore en course."""
    approved = (
        await session.execute(
            select(SeasonParticipation.id).where(
                SeasonParticipation.user_id == user_id,
                SeasonParticipation.season_id == season_id,
                SeasonParticipation.is_approved.is_(True),
            )
        )
    ).first()
    if approved is None:
        logger.warning(f"Joueur {user_id}: choix refusé, inscription {season_id} non validée")
        raise NotApprovedError(f"Inscription à la saison {season_id} non validée.")

    if await is_user_eliminated(session, user_id=user_id, season_id=season_id):
        raise UserEliminatedError(f"Joueur {user_id} éliminé de la saison {season_id}.")


def _resolve_duplicate(existing: Pick, team_id: int) -> Pick:
    # Même contenu: la requête est rejouée, on renvoie le choix existant
    if existing.team_id == team_id:
        return existing
    raise DuplicatePickError(
        f"Un choix existe déjà pour la J{existing.gameweek_number} ({existing.season_id})."
    )


async def create_pick(
    session: AsyncSession,
    *,
    user_id: int,
    season_id: str,
    gameweek_number: int,
    team_id: int,
    now: Optional[datetime] = None,
    admin_override: bool = False,
) -> Pick:
    """
    Valide puis enregistre le choix d'un joueur pour une journée.

    `admin_override` lève uniquement la contrainte de date limite; les limites
    de réutilisation (équipe, adversaire) restent appliquées.
    """
    ctx = await load_pick_context(
        session, user_id=user_id, season_id=season_id, gameweek_number=gameweek_number
    )

    await _check_can_play(session, user_id, season_id)

    existing = await _find_pick(session, user_id, season_id, gameweek_number)
    if existing is not None:
        return _resolve_duplicate(existing, team_id)

    team = await _require_team(session, team_id)
    _check_rules(ctx, team, now or utcnow(), admin_override)

    if not admin_override:
        deadline = await _deadline_at_write(session, season_id, gameweek_number)
        if (now or utcnow()) > deadline:
            raise PickRuleViolation(Violation.DEADLINE_PASSED)

    score = score_pick(team_id, ctx.fixtures.get((gameweek_number, team_id)))
    pick = Pick(
        user_id=user_id,
        season_id=season_id,
        gameweek_number=gameweek_number,
        team_id=team_id,
        points=score.points,
        goals_for=score.goals_for,
        goals_against=score.goals_against,
    )
    session.add(pick)
    try:
        await session.commit()
    except IntegrityError:
        # Course avec une autre écriture (soumission parallèle ou auto-attribution)
        await session.rollback()
        existing = await _find_pick(session, user_id, season_id, gameweek_number)
        if existing is None:
            raise
        return _resolve_duplicate(existing, team_id)

    logger.info(f"Choix créé: joueur {user_id}, {season_id} J{gameweek_number}, équipe {team_id}")
    return pick


async def update_pick(
    session: AsyncSession,
    *,
    pick_id: int,
    user_id: int,
    team_id: int,
    now: Optional[datetime] = None,
) -> Pick:
    pick = await session.get(Pick, pick_id)
    if pick is None:
        raise PickNotFound(pick_id)
    if pick.user_id != user_id:
        raise PermissionError("Ce choix appartient à un autre joueur.")
    await _check_can_play(session, user_id, pick.season_id)

    ctx = await load_pick_context(
        session,
        user_id=user_id,
        season_id=pick.season_id,
        gameweek_number=pick.gameweek_number,
        exclude_pick_id=pick.id,
    )
    team = await _require_team(session, team_id)
    _check_rules(ctx, team, now or utcnow(), False)

    score = score_pick(team_id, ctx.fixtures.get((pick.gameweek_number, team_id)))
    pick.team_id = team_id
    pick.points = score.points
    pick.goals_for = score.goals_for
    pick.goals_against = score.goals_against
    pick.is_auto_assigned = False
    await session.commit()
    logger.info(f"Choix {pick_id} modifié par le joueur {user_id}: équipe {team_id}")
    return pick


async def delete_pick(
    session: AsyncSession, *, pick_id: int, user_id: int, now: Optional[datetime] = None
) -> None:
    """Supprime un choix tant qu'il est modifiable (avant la date limite, sans résultat)."""
    pick = await session.get(Pick, pick_id)
    if pick is None:
        raise PickNotFound(pick_id)
    if pick.user_id != user_id:
        raise PermissionError("Ce choix appartient à un autre joueur.")

    ctx = await load_pick_context(
        session,
        user_id=user_id,
        season_id=pick.season_id,
        gameweek_number=pick.gameweek_number,
        exclude_pick_id=pick.id,
    )
    if (now or utcnow()) > ctx.deadline:
        raise PickRuleViolation(Violation.DEADLINE_PASSED)
    if score_pick(pick.team_id, ctx.fixtures.get((pick.gameweek_number, pick.team_id))).has_result:
        raise GameweekStateError("Un choix avec un résultat ne peut pas être supprimé.")

    await session.delete(pick)
    await session.commit()
    logger.info(f"Choix {pick_id} supprimé par le joueur {user_id}")


async def get_user_picks(session: AsyncSession, *, user_id: int, season_id: str) -> list[Pick]:
    rows = await session.execute(
        select(Pick)
        .where(Pick.user_id == user_id, Pick.season_id == season_id)
        .order_by(Pick.gameweek_number)
    )
    return list(rows.scalars().all())


async def get_gameweek_picks(
    session: AsyncSession, *, season_id: str, gameweek_number: int
) -> list[Pick]:
    rows = await session.execute(
        select(Pick)
        .where(Pick.season_id == season_id, Pick.gameweek_number == gameweek_number)
        .order_by(Pick.user_id)
    )
    return list(rows.scalars().all())
