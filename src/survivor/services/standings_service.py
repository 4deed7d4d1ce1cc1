from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.pick import Pick
from ..models.season import Season
from ..models.user import User
from ..models.user_elimination import UserElimination
from .errors import SeasonNotFound
from .scoring_service import FixtureIndex, load_fixture_index, score_pick
from .seasons_service import get_approved_user_ids


@dataclass
class StandingEntry:
    user_id: int
    display_name: str
    position: int = 0
    total_points: int = 0
    picks_made: int = 0
    wins: int = 0
    draws: int = 0
    losses: int = 0
    goals_for: int = 0
    goals_against: int = 0
    is_eliminated: bool = False
    eliminated_in_gameweek: Optional[int] = None
    elimination_position: Optional[int] = None

    @property
    def goal_difference(self) -> int:
        return self.goals_for - self.goals_against


def standings_sort_key(e: StandingEntry):
    # Points, différence, buts marqués, nom, puis id pour un ordre total
    return (-e.total_points, -e.goal_difference, -e.goals_for, e.display_name.lower(), e.user_id)


def rank_standings(entries: Iterable[StandingEntry]) -> list[StandingEntry]:
    ordered = sorted(entries, key=standings_sort_key)
    for i, e in enumerate(ordered, start=1):
        e.position = i
    return ordered


def tally_picks(
    table: dict[int, StandingEntry], picks: Iterable[Pick], index: FixtureIndex
) -> None:
    for p in picks:
        entry = table.get(p.user_id)
        if entry is None:
            continue
        entry.total_points += p.points

        # Seuls les matchs joués (ou en cours) comptent en V/N/D:
        # un match à venir n'est pas une défaite
        if not score_pick(p.team_id, index.get((p.gameweek_number, p.team_id))).has_result:
            continue
        entry.picks_made += 1
        entry.goals_for += p.goals_for
        entry.goals_against += p.goals_against
        if p.goals_for > p.goals_against:
            entry.wins += 1
        elif p.goals_for == p.goals_against:
            entry.draws += 1
        else:
            entry.losses += 1


async def compute_standings(
    session: AsyncSession,
    season_id: str,
    user_ids: Iterable[int],
    *,
    up_to_gameweek: Optional[int] = None,
    exclude_eliminated: bool = False,
) -> list[StandingEntry]:
    """
    Classement instantané des joueurs donnés: rien n'est persisté, tout est
    recalculé à partir des choix et des matchs courants.

    `up_to_gameweek` limite le cumul aux journées <= N; `exclude_eliminated`
    retire les joueurs déjà éliminés (classement des survivants).
    """
    ids = list(user_ids)
    if not ids:
        return []

    users = (
        await session.execute(select(User.id, User.display_name).where(User.id.in_(ids)))
    ).all()
    table = {uid: StandingEntry(user_id=uid, display_name=name) for uid, name in users}

    eliminations = (
        await session.execute(
            select(UserElimination).where(
                UserElimination.season_id == season_id, UserElimination.user_id.in_(ids)
            )
        )
    ).scalars().all()
    for elim in eliminations:
        if exclude_eliminated:
            table.pop(elim.user_id, None)
            continue
        entry = table.get(elim.user_id)
        if entry is not None:
            entry.is_eliminated = True
            entry.eliminated_in_gameweek = elim.gameweek_number
            entry.elimination_position = elim.position

    q = select(Pick).where(Pick.season_id == season_id, Pick.user_id.in_(list(table)))
    weeks = None
    if up_to_gameweek is not None:
        q = q.where(Pick.gameweek_number <= up_to_gameweek)
        weeks = range(1, up_to_gameweek + 1)
    picks = (await session.execute(q)).scalars().all()
    index = await load_fixture_index(session, season_id=season_id, weeks=weeks)

    tally_picks(table, picks, index)
    return rank_standings(table.values())


async def get_standings(session: AsyncSession, season_id: str) -> list[StandingEntry]:
    """Classement complet de la saison (joueurs validés et actifs, éliminés compris)."""
    if await session.get(Season, season_id) is None:
        raise SeasonNotFound(season_id)
    user_ids = await get_approved_user_ids(session, season_id=season_id)
    return await compute_standings(session, season_id, user_ids)
