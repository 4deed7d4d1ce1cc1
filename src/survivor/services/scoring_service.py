import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.rules import result_points
from ..models.fixture import COUNTABLE_STATUSES, Fixture, FixtureStatus
from ..models.gameweek import Gameweek
from ..models.pick import Pick
from .errors import FixtureNotFound, GameweekNotFound

logger = logging.getLogger(__name__)

FixtureIndex = dict[tuple[int, int], Fixture]


@dataclass(frozen=True)
class PickScore:
    """
    Résultat d'un choix. Le statut accompagne toujours le triplet
    (points, buts pour, buts contre): un 0-0-0 peut être un match non joué.
    """

    points: int
    goals_for: int
    goals_against: int
    status: Optional[str]
    has_result: bool


def score_pick(team_id: int, fixture: Optional[Fixture]) -> PickScore:
    if fixture is None:
        return PickScore(0, 0, 0, None, False)
    if fixture.status not in COUNTABLE_STATUSES:
        return PickScore(0, 0, 0, fixture.status, False)
    if fixture.status == FixtureStatus.FINISHED.value and (
        fixture.home_score is None or fixture.away_score is None
    ):
        # Match terminé sans score saisi: rien à compter
        return PickScore(0, 0, 0, fixture.status, False)

    # En cours: un score manquant vaut 0
    home = fixture.home_score or 0
    away = fixture.away_score or 0
    if team_id == fixture.home_team_id:
        gf, ga = home, away
    elif team_id == fixture.away_team_id:
        gf, ga = away, home
    else:
        raise ValueError(f"L'équipe {team_id} ne joue pas le match {fixture.id}.")

    return PickScore(result_points(gf, ga), gf, ga, fixture.status, True)


def build_fixture_index(fixtures: Iterable[Fixture]) -> FixtureIndex:
    """(journée, équipe) -> match. En cas de double match, le premier (par id) fait foi."""
    index: FixtureIndex = {}
    for f in sorted(fixtures, key=lambda f: f.id):
        index.setdefault((f.gameweek_number, f.home_team_id), f)
        index.setdefault((f.gameweek_number, f.away_team_id), f)
    return index


async def load_fixture_index(
    session: AsyncSession,
    *,
    season_id: str,
    weeks: Optional[Iterable[int]] = None,
) -> FixtureIndex:
    q = select(Fixture).where(Fixture.season_id == season_id)
    if weeks is not None:
        q = q.where(Fixture.gameweek_number.in_(list(weeks)))
    fixtures = (await session.execute(q)).scalars().all()
    return build_fixture_index(fixtures)


def _apply_scores(picks: Iterable[Pick], index: FixtureIndex) -> int:
    changed = 0
    for p in picks:
        s = score_pick(p.team_id, index.get((p.gameweek_number, p.team_id)))
        if (p.points, p.goals_for, p.goals_against) != (s.points, s.goals_for, s.goals_against):
            p.points = s.points
            p.goals_for = s.goals_for
            p.goals_against = s.goals_against
            changed += 1
    return changed


async def recompute_scores_for_fixture(session: AsyncSession, fixture_id: int) -> int:
    """Recalcule les choix portant sur l'une des deux équipes du match. Retourne le nombre de choix modifiés."""
    fixture = await session.get(Fixture, fixture_id)
    if fixture is None:
        raise FixtureNotFound(fixture_id)

    index = await load_fixture_index(
        session, season_id=fixture.season_id, weeks=[fixture.gameweek_number]
    )
    picks = (
        await session.execute(
            select(Pick).where(
                Pick.season_id == fixture.season_id,
                Pick.gameweek_number == fixture.gameweek_number,
                Pick.team_id.in_([fixture.home_team_id, fixture.away_team_id]),
            )
        )
    ).scalars().all()

    changed = _apply_scores(picks, index)
    await session.commit()
    logger.info(
        f"Match {fixture_id} ({fixture.status}): {changed}/{len(picks)} choix recalculés"
    )
    return changed


async def recompute_scores_for_gameweek(
    session: AsyncSession, *, season_id: str, gameweek_number: int
) -> int:
    if await session.get(Gameweek, (season_id, gameweek_number)) is None:
        raise GameweekNotFound(season_id, gameweek_number)

    index = await load_fixture_index(session, season_id=season_id, weeks=[gameweek_number])
    picks = (
        await session.execute(
            select(Pick).where(
                Pick.season_id == season_id, Pick.gameweek_number == gameweek_number
            )
        )
    ).scalars().all()

    changed = _apply_scores(picks, index)
    await session.commit()
    logger.info(f"GW{gameweek_number} {season_id}: {changed} choix recalculés")
    return changed


async def recompute_all_scores(session: AsyncSession, *, season_id: str) -> int:
    index = await load_fixture_index(session, season_id=season_id)
    picks = (
        await session.execute(select(Pick).where(Pick.season_id == season_id))
    ).scalars().all()

    changed = _apply_scores(picks, index)
    await session.commit()
    logger.info(f"Saison {season_id}: {changed} choix recalculés")
    return changed


async def record_fixture_result(
    session: AsyncSession,
    fixture_id: int,
    *,
    status: str,
    home_score: Optional[int] = None,
    away_score: Optional[int] = None,
) -> int:
    """Applique une mise à jour venue de la source de données puis recalcule les choix concernés."""
    new_status = FixtureStatus(status.upper())
    if (home_score is not None and home_score < 0) or (away_score is not None and away_score < 0):
        raise ValueError("Un score ne peut pas être négatif.")

    fixture = await session.get(Fixture, fixture_id)
    if fixture is None:
        raise FixtureNotFound(fixture_id)

    fixture.status = new_status.value
    if home_score is not None:
        fixture.home_score = home_score
    if away_score is not None:
        fixture.away_score = away_score
    await session.flush()

    return await recompute_scores_for_fixture(session, fixture_id)
