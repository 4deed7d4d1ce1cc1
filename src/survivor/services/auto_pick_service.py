"""
Attribution automatique des choix manquants.

Après la date limite d'une journée non verrouillée, chaque joueur validé
sans choix (et toujours en course) reçoit la première équipe légale (règles de
réutilisation équipe/adversaire) parmi les équipes actives qui jouent cette
journée. L'ordre d'essai est stable: id d'équipe croissant par défaut, ou
club le plus mal classé d'abord (`settings.auto_pick_order = "lowest_ranked"`).

Chaque joueur est traité dans sa propre transaction: une annulation entre
deux joueurs ne laisse aucune écriture partielle, et un joueur sans équipe
possible n'empêche pas les autres d'être servis.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.rules import utcnow, weeks_in_half
from ..models.gameweek import Gameweek
from ..models.pick import Pick
from ..models.season import Season
from ..models.team import Team
from ..models.user_elimination import UserElimination
from .errors import GameweekNotFound, GameweekStateError
from .league_table_service import get_league_table
from .pick_rules_service import get_limits_for_half, prior_picks_from, validate_pick
from .scoring_service import load_fixture_index, score_pick
from .seasons_service import get_approved_user_ids

logger = logging.getLogger(__name__)


@dataclass
class AutoPickAssignment:
    user_id: int
    season_id: str
    gameweek_number: int
    team_id: int
    team_name: str


@dataclass
class AutoPickFailure:
    user_id: int
    season_id: str
    gameweek_number: int
    reason: str


@dataclass
class AutoPickResult:
    assigned: int = 0
    failed: int = 0
    skipped: int = 0
    gameweeks_processed: int = 0
    assignments: list[AutoPickAssignment] = field(default_factory=list)
    failures: list[AutoPickFailure] = field(default_factory=list)

    def merge(self, other: "AutoPickResult") -> None:
        self.assigned += other.assigned
        self.failed += other.failed
        self.skipped += other.skipped
        self.gameweeks_processed += other.gameweeks_processed
        self.assignments.extend(other.assignments)
        self.failures.extend(other.failures)


Notifier = Callable[[AutoPickAssignment], Awaitable[None]]


async def _candidate_order(
    session: AsyncSession,
    *,
    season_id: str,
    gameweek_number: int,
    team_names: dict[int, str],
    order: str,
) -> list[int]:
    if order == "team_id":
        return sorted(team_names)
    if order == "lowest_ranked":
        table = await get_league_table(
            session, season_id=season_id, before_week=gameweek_number, team_ids=team_names
        )
        return [t["id"] for t in reversed(table)]
    raise ValueError(f"Ordre d'attribution inconnu: {order}")


async def assign_missed_picks_for_gameweek(
    session: AsyncSession,
    season_id: str,
    gameweek_number: int,
    *,
    now: Optional[datetime] = None,
    notify: Optional[Notifier] = None,
    order: Optional[str] = None,
) -> AutoPickResult:
    now = now or utcnow()
    gw = await session.get(Gameweek, (season_id, gameweek_number))
    if gw is None:
        raise GameweekNotFound(season_id, gameweek_number)
    if gw.deadline >= now:
        raise GameweekStateError(
            f"La date limite de la J{gameweek_number} ({gw.deadline:%Y-%m-%d %H:%M}) n'est pas passée."
        )
    if gw.is_locked:
        raise GameweekStateError(f"La J{gameweek_number} est verrouillée.")
    deadline, half = gw.deadline, gw.half

    result = AutoPickResult(gameweeks_processed=1)

    approved = await get_approved_user_ids(session, season_id=season_id)
    eliminated = set(
        (
            await session.execute(
                select(UserElimination.user_id).where(UserElimination.season_id == season_id)
            )
        ).scalars().all()
    )
    with_pick = set(
        (
            await session.execute(
                select(Pick.user_id).where(
                    Pick.season_id == season_id, Pick.gameweek_number == gameweek_number
                )
            )
        ).scalars().all()
    )
    needing = [u for u in approved if u not in eliminated and u not in with_pick]
    if not needing:
        logger.info(f"{season_id} J{gameweek_number}: aucun choix à attribuer")
        return result

    logger.info(f"{season_id} J{gameweek_number}: {len(needing)} joueur(s) sans choix")

    weeks = weeks_in_half(half)
    limits = await get_limits_for_half(session, season_id=season_id, half=half)
    index = await load_fixture_index(session, season_id=season_id, weeks=weeks)

    playing = {team_id for (week, team_id) in index if week == gameweek_number}
    team_names = dict(
        (
            await session.execute(
                select(Team.id, Team.name).where(
                    Team.id.in_(sorted(playing)), Team.is_active.is_(True)
                )
            )
        ).all()
    )
    candidates = await _candidate_order(
        session,
        season_id=season_id,
        gameweek_number=gameweek_number,
        team_names=team_names,
        order=order or settings.auto_pick_order,
    )

    half_picks = (
        await session.execute(
            select(Pick).where(
                Pick.season_id == season_id,
                Pick.user_id.in_(needing),
                Pick.gameweek_number.between(weeks.start, weeks.stop - 1),
            )
        )
    ).scalars().all()
    picks_by_user = defaultdict(list)
    for p in half_picks:
        picks_by_user[p.user_id].append(p)

    # Données figées avant la boucle: un rollback expire les objets ORM chargés
    priors = {u: prior_picks_from(picks_by_user[u], index) for u in needing}
    opponents = {}
    scores = {}
    for team_id in candidates:
        fixture = index.get((gameweek_number, team_id))
        opponents[team_id] = fixture.opponent_of(team_id)
        scores[team_id] = score_pick(team_id, fixture)

    for user_id in needing:
        chosen = next(
            (
                team_id
                for team_id in candidates
                if validate_pick(
                    team_id,
                    opponents[team_id],
                    priors[user_id],
                    limits,
                    deadline=deadline,
                    now=now,
                    team_active=True,
                    bypass_deadline=True,
                )
                is None
            ),
            None,
        )
        if chosen is None:
            result.failed += 1
            result.failures.append(
                AutoPickFailure(user_id, season_id, gameweek_number, "Aucune équipe disponible")
            )
            logger.error(
                f"{season_id} J{gameweek_number}: aucune équipe disponible pour le joueur {user_id}"
            )
            continue

        s = scores[chosen]
        session.add(
            Pick(
                user_id=user_id,
                season_id=season_id,
                gameweek_number=gameweek_number,
                team_id=chosen,
                points=s.points,
                goals_for=s.goals_for,
                goals_against=s.goals_against,
                is_auto_assigned=True,
            )
        )
        try:
            await session.commit()
        except IntegrityError:
            # Le joueur a soumis son choix entre-temps
            await session.rollback()
            result.skipped += 1
            logger.info(f"{season_id} J{gameweek_number}: joueur {user_id} a déjà un choix")
            continue

        assignment = AutoPickAssignment(
            user_id, season_id, gameweek_number, chosen, team_names[chosen]
        )
        result.assigned += 1
        result.assignments.append(assignment)
        logger.info(
            f"{season_id} J{gameweek_number}: {team_names[chosen]} attribuée au joueur {user_id}"
        )

        if notify is not None:
            try:
                await notify(assignment)
            except Exception as e:
                logger.warning(f"Échec de la notification pour le joueur {user_id}: {e}")

    logger.info(
        f"{season_id} J{gameweek_number}: {result.assigned} attribué(s), "
        f"{result.failed} échec(s), {result.skipped} déjà servi(s)"
    )
    return result


async def assign_all_missed_picks(
    session: AsyncSession,
    *,
    now: Optional[datetime] = None,
    notify: Optional[Notifier] = None,
    order: Optional[str] = None,
) -> AutoPickResult:
    """Traite toutes les journées non verrouillées dont la date limite est passée (saisons non archivées)."""
    now = now or utcnow()
    rows = await session.execute(
        select(Gameweek.season_id, Gameweek.week_number)
        .join(Season, Season.name == Gameweek.season_id)
        .where(
            Gameweek.deadline < now,
            Gameweek.is_locked.is_(False),
            Season.is_archived.is_(False),
        )
        .order_by(Gameweek.deadline, Gameweek.season_id, Gameweek.week_number)
    )
    targets = rows.all()

    total = AutoPickResult()
    if not targets:
        logger.info("Aucune journée en cours avec date limite passée")
        return total

    for season_id, week_number in targets:
        total.merge(
            await assign_missed_picks_for_gameweek(
                session, season_id, week_number, now=now, notify=notify, order=order
            )
        )
    return total
