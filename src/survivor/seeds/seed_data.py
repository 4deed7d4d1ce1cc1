from datetime import date, datetime, time, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.rules import TOTAL_GAMEWEEKS
from ..models import Fixture, Gameweek, PickRule, Season, SeasonParticipation, Team, User

DEMO_SEASON = "2024/25"

DEMO_TEAMS = [
    ("Arsenal", "ARS"),
    ("Aston Villa", "AVL"),
    ("Bournemouth", "BOU"),
    ("Brentford", "BRE"),
    ("Brighton", "BHA"),
    ("Chelsea", "CHE"),
    ("Crystal Palace", "CRY"),
    ("Everton", "EVE"),
    ("Fulham", "FUL"),
    ("Ipswich Town", "IPS"),
    ("Leicester City", "LEI"),
    ("Liverpool", "LIV"),
    ("Manchester City", "MCI"),
    ("Manchester United", "MUN"),
    ("Newcastle United", "NEW"),
    ("Nottingham Forest", "NFO"),
    ("Southampton", "SOU"),
    ("Tottenham Hotspur", "TOT"),
    ("West Ham United", "WHU"),
    ("Wolverhampton", "WOL"),
]

DEMO_USERS = ["Alice", "Bruno", "Chloé", "David", "Emma"]


def round_robin(team_ids: list[int], rounds: int = 2) -> list[list[tuple[int, int]]]:
    """
    Calendrier par méthode du cercle: une liste de journées, chacune étant une
    liste de (domicile, extérieur). La phase retour inverse les réceptions.
    """
    ids = list(team_ids)
    if len(ids) % 2:
        ids.append(None)
    n = len(ids)
    first_leg = []
    for r in range(n - 1):
        day = []
        for i in range(n // 2):
            a, b = ids[i], ids[n - 1 - i]
            if a is None or b is None:
                continue
            day.append((a, b) if r % 2 == 0 else (b, a))
        first_leg.append(day)
        ids = [ids[0]] + [ids[-1]] + ids[1:-1]

    days = list(first_leg)
    if rounds == 2:
        days += [[(away, home) for home, away in day] for day in first_leg]
    return days


async def seed_minimal(session: AsyncSession, *, start: date = date(2024, 8, 16)) -> None:
    """Saison de démonstration: 20 clubs, 38 journées, règles par défaut, 5 joueurs validés."""
    if await session.get(Season, DEMO_SEASON) is not None:
        return

    season = Season(
        name=DEMO_SEASON,
        start_date=start,
        end_date=start + timedelta(weeks=TOTAL_GAMEWEEKS),
        is_active=True,
    )
    session.add(season)

    existing = dict((await session.execute(select(Team.name, Team.id))).all())
    for name, code in DEMO_TEAMS:
        if name not in existing:
            session.add(Team(name=name, short_name=name.split()[0], code=code))
    await session.flush()
    team_ids = list((await session.execute(select(Team.id).order_by(Team.id))).scalars())

    for week, day in enumerate(round_robin(team_ids)[:TOTAL_GAMEWEEKS], start=1):
        kickoff = datetime.combine(start + timedelta(weeks=week - 1), time(15, 0))
        session.add(
            Gameweek(
                season_id=DEMO_SEASON,
                week_number=week,
                deadline=kickoff - timedelta(hours=1, minutes=30),
            )
        )
        for home, away in day:
            session.add(
                Fixture(
                    season_id=DEMO_SEASON,
                    gameweek_number=week,
                    home_team_id=home,
                    away_team_id=away,
                    kickoff_time=kickoff,
                )
            )

    session.add_all(PickRule(season_id=DEMO_SEASON, half=half) for half in (1, 2))

    for name in DEMO_USERS:
        user = User(display_name=name, email=f"{name.lower()}@example.com")
        session.add(user)
        await session.flush()
        session.add(
            SeasonParticipation(user_id=user.id, season_id=DEMO_SEASON, is_approved=True)
        )

    await session.commit()
