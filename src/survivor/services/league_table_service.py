from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.fixture import Fixture, FixtureStatus
from ..models.team import Team


def league_table(
    club_names: dict[int, str], results: Iterable[tuple[int, int, int, int]]
) -> list[dict]:
    """
    Classement des clubs à partir de résultats (domicile, extérieur, buts dom., buts ext.).
    Tri: Points, Diff, Buts marqués, Nom.
    """
    table = {
        cid: {
            "id": cid,
            "name": name,
            "P": 0,
            "W": 0,
            "D": 0,
            "L": 0,
            "GF": 0,
            "GA": 0,
            "GD": 0,
            "PTS": 0,
        }
        for cid, name in club_names.items()
    }

    for home_id, away_id, hg, ag in results:
        th = table.get(home_id)
        ta = table.get(away_id)
        # home
        if th is not None:
            th["P"] += 1
            th["GF"] += hg
            th["GA"] += ag
        # away
        if ta is not None:
            ta["P"] += 1
            ta["GF"] += ag
            ta["GA"] += hg
        # résultats
        if hg > ag:
            if th is not None:
                th["W"] += 1
                th["PTS"] += 3
            if ta is not None:
                ta["L"] += 1
        elif hg < ag:
            if ta is not None:
                ta["W"] += 1
                ta["PTS"] += 3
            if th is not None:
                th["L"] += 1
        else:
            for t in (th, ta):
                if t is not None:
                    t["D"] += 1
                    t["PTS"] += 1

    for t in table.values():
        t["GD"] = t["GF"] - t["GA"]

    ordered = sorted(
        table.values(),
        key=lambda t: (-t["PTS"], -t["GD"], -t["GF"], t["name"].lower()),
    )
    for i, t in enumerate(ordered, start=1):
        t["position"] = i
    return ordered


async def get_league_table(
    session: AsyncSession,
    *,
    season_id: str,
    before_week: Optional[int] = None,
    team_ids: Optional[Iterable[int]] = None,
) -> list[dict]:
    """Classement réel des clubs actifs, sur les matchs terminés (avant la journée `before_week` si donnée)."""
    q = select(Team.id, Team.name).where(Team.is_active.is_(True))
    if team_ids is not None:
        q = q.where(Team.id.in_(list(team_ids)))
    club_names = dict((await session.execute(q)).all())

    rq = select(
        Fixture.home_team_id,
        Fixture.away_team_id,
        Fixture.home_score,
        Fixture.away_score,
    ).where(
        Fixture.season_id == season_id,
        Fixture.status == FixtureStatus.FINISHED.value,
        Fixture.home_score.is_not(None),
        Fixture.away_score.is_not(None),
    )
    if before_week is not None:
        rq = rq.where(Fixture.gameweek_number < before_week)
    results = (await session.execute(rq)).all()

    return league_table(club_names, results)
