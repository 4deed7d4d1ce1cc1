"""
Règles de choix d'équipe.

Sur une moitié de saison (J1-J19, J20-J38), un joueur ne peut choisir une
même équipe que `max_times_team_can_be_picked` fois, et ne peut jouer contre
un même adversaire que `max_times_opposition_can_be_targeted` fois.
Sans règle configurée, les deux limites valent 1.

`validate_pick` est une fonction pure: elle renvoie la première violation
rencontrée (ou None) et ne lève jamais, pour que l'appelant décide quoi en
faire (erreur pour l'utilisateur, équipe suivante pour l'auto-attribution).
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.rules import (
    DEFAULT_MAX_OPPOSITION_TARGETS,
    DEFAULT_MAX_TEAM_PICKS,
    FIRST_HALF,
    MAX_PICK_RULE_LIMIT,
    SECOND_HALF,
    weeks_in_half,
)
from ..models.gameweek import Gameweek
from ..models.pick import Pick
from ..models.pick_rule import PickRule
from ..models.season import Season
from .errors import GameweekNotFound, SeasonNotFound, Violation
from .scoring_service import FixtureIndex, load_fixture_index

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PickLimits:
    max_team_picks: int = DEFAULT_MAX_TEAM_PICKS
    max_opposition_targets: int = DEFAULT_MAX_OPPOSITION_TARGETS


@dataclass(frozen=True)
class PriorPick:
    gameweek_number: int
    team_id: int
    opponent_id: Optional[int]


def validate_pick(
    candidate_team_id: int,
    opponent_id: Optional[int],
    prior_picks: Iterable[PriorPick],
    limits: PickLimits,
    *,
    deadline: datetime,
    now: datetime,
    team_active: bool,
    bypass_deadline: bool = False,
) -> Optional[Violation]:
    prior = list(prior_picks)

    team_count = sum(1 for p in prior if p.team_id == candidate_team_id)
    if team_count >= limits.max_team_picks:
        return Violation.TEAM_REUSE_EXCEEDED

    # Équipe sans match cette journée: pas d'adversaire à compter
    if opponent_id is not None:
        faced = sum(1 for p in prior if p.opponent_id == opponent_id)
        if faced >= limits.max_opposition_targets:
            return Violation.OPPOSITION_REUSE_EXCEEDED

    if not bypass_deadline and now > deadline:
        return Violation.DEADLINE_PASSED

    if not team_active:
        return Violation.TEAM_INACTIVE

    return None


def prior_picks_from(picks: Iterable[Pick], index: FixtureIndex) -> list[PriorPick]:
    prior = []
    for p in picks:
        fixture = index.get((p.gameweek_number, p.team_id))
        opponent = fixture.opponent_of(p.team_id) if fixture is not None else None
        prior.append(PriorPick(p.gameweek_number, p.team_id, opponent))
    return prior


@dataclass
class PickContext:
    season_id: str
    week_number: int
    deadline: datetime
    is_locked: bool
    limits: PickLimits
    prior_picks: list[PriorPick]
    fixtures: FixtureIndex

    def opponent_for(self, team_id: int) -> Optional[int]:
        fixture = self.fixtures.get((self.week_number, team_id))
        return fixture.opponent_of(team_id) if fixture is not None else None


async def load_pick_context(
    session: AsyncSession,
    *,
    user_id: int,
    season_id: str,
    gameweek_number: int,
    exclude_pick_id: Optional[int] = None,
) -> PickContext:
    gameweek = await session.get(Gameweek, (season_id, gameweek_number))
    if gameweek is None:
        raise GameweekNotFound(season_id, gameweek_number)

    weeks = weeks_in_half(gameweek.half)
    limits = await get_limits_for_half(session, season_id=season_id, half=gameweek.half)
    index = await load_fixture_index(session, season_id=season_id, weeks=weeks)

    q = select(Pick).where(
        Pick.user_id == user_id,
        Pick.season_id == season_id,
        Pick.gameweek_number.between(weeks.start, weeks.stop - 1),
        Pick.gameweek_number != gameweek_number,
    )
    if exclude_pick_id is not None:
        q = q.where(Pick.id != exclude_pick_id)
    picks = (await session.execute(q)).scalars().all()

    return PickContext(
        season_id=season_id,
        week_number=gameweek_number,
        deadline=gameweek.deadline,
        is_locked=gameweek.is_locked,
        limits=limits,
        prior_picks=prior_picks_from(picks, index),
        fixtures=index,
    )


# --- Administration des règles ---


def _check_half(half: int) -> None:
    if half not in (FIRST_HALF, SECOND_HALF):
        raise ValueError("La moitié doit valoir 1 ou 2.")


def _check_limit(value: int, label: str) -> None:
    if not 1 <= value <= MAX_PICK_RULE_LIMIT:
        raise ValueError(f"{label} doit être compris entre 1 et {MAX_PICK_RULE_LIMIT}.")


async def _require_season(session: AsyncSession, season_id: str) -> Season:
    season = await session.get(Season, season_id)
    if season is None:
        raise SeasonNotFound(season_id)
    return season


async def get_limits_for_half(session: AsyncSession, *, season_id: str, half: int) -> PickLimits:
    rule = (
        await session.execute(
            select(PickRule).where(PickRule.season_id == season_id, PickRule.half == half)
        )
    ).scalar_one_or_none()
    if rule is None:
        return PickLimits()
    return PickLimits(rule.max_times_team_can_be_picked, rule.max_times_opposition_can_be_targeted)


async def get_pick_rules(session: AsyncSession, *, season_id: str) -> dict[int, PickLimits]:
    """Limites des deux moitiés, valeurs par défaut comprises."""
    await _require_season(session, season_id)
    return {
        half: await get_limits_for_half(session, season_id=season_id, half=half)
        for half in (FIRST_HALF, SECOND_HALF)
    }


async def set_pick_rule(
    session: AsyncSession,
    *,
    season_id: str,
    half: int,
    max_team_picks: int,
    max_opposition_targets: int,
) -> PickRule:
    _check_half(half)
    _check_limit(max_team_picks, "Le nombre de choix d'une même équipe")
    _check_limit(max_opposition_targets, "Le nombre de matchs contre un même adversaire")
    await _require_season(session, season_id)

    rule = (
        await session.execute(
            select(PickRule).where(PickRule.season_id == season_id, PickRule.half == half)
        )
    ).scalar_one_or_none()
    if rule is None:
        rule = PickRule(season_id=season_id, half=half)
        session.add(rule)
    rule.max_times_team_can_be_picked = max_team_picks
    rule.max_times_opposition_can_be_targeted = max_opposition_targets

    await session.commit()
    logger.info(
        f"Règle {season_id} moitié {half}: équipe x{max_team_picks}, adversaire x{max_opposition_targets}"
    )
    return rule


async def initialize_default_pick_rules(session: AsyncSession, *, season_id: str) -> list[PickRule]:
    await _require_season(session, season_id)
    existing = (
        await session.execute(select(PickRule.id).where(PickRule.season_id == season_id))
    ).first()
    if existing is not None:
        raise ValueError(f"Des règles existent déjà pour la saison {season_id}.")

    rules = [
        PickRule(
            season_id=season_id,
            half=half,
            max_times_team_can_be_picked=DEFAULT_MAX_TEAM_PICKS,
            max_times_opposition_can_be_targeted=DEFAULT_MAX_OPPOSITION_TARGETS,
        )
        for half in (FIRST_HALF, SECOND_HALF)
    ]
    session.add_all(rules)
    await session.commit()
    logger.info(f"Règles par défaut créées pour {season_id}")
    return rules


async def delete_pick_rule(session: AsyncSession, *, season_id: str, half: int) -> bool:
    _check_half(half)
    result = await session.execute(
        delete(PickRule).where(PickRule.season_id == season_id, PickRule.half == half)
    )
    await session.commit()
    return result.rowcount > 0
