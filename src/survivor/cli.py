import asyncio
from datetime import date
from typing import Optional

import typer

from .core.config import settings
from .core.logging_config import setup_logging
from .db.session import AsyncSessionLocal, init_models
from .seeds.seed_data import seed_minimal
from .services import (
    auto_pick_service,
    elimination_service,
    league_table_service,
    picks_service,
    pick_rules_service,
    scoring_service,
    seasons_service,
    standings_service,
)
from .services.errors import SurvivorError

app = typer.Typer(help="Survivor CLI")


@app.callback()
def main(
    log_level: str = typer.Option(settings.log_level, "--log-level", help="DEBUG, INFO, WARNING..."),
):
    setup_logging(log_level, sql_echo=settings.sql_echo)


def _run(coro_fn):
    """Ouvre une session, exécute le service et transforme les erreurs métier en message + code 1."""

    async def _go():
        async with AsyncSessionLocal() as session:
            return await coro_fn(session)

    try:
        return asyncio.run(_go())
    except (SurvivorError, ValueError) as e:
        typer.echo(f"Erreur: {e}", err=True)
        raise typer.Exit(code=1)


def parse_counts(season_id: str, pairs: list[str]) -> dict[tuple[str, int], int]:
    """["5=2", "10=1"] -> {(saison, 5): 2, (saison, 10): 1}"""
    counts = {}
    for pair in pairs:
        week, sep, count = pair.partition("=")
        if not sep:
            raise typer.BadParameter(f"Format attendu JOURNEE=NOMBRE, reçu: {pair}")
        try:
            counts[(season_id, int(week))] = int(count)
        except ValueError:
            raise typer.BadParameter(f"Valeurs entières attendues: {pair}")
    return counts


@app.command()
def initdb():
    asyncio.run(init_models())
    typer.echo("Database initialized.")


@app.command()
def seed():
    _run(seed_minimal)
    typer.echo("Seed data inserted.")


@app.command("create-season")
def create_season(
    name: str = typer.Argument(..., help="Libellé de la saison, ex: 2024/25"),
    start: str = typer.Option(..., "--start", help="YYYY-MM-DD"),
    end: str = typer.Option(..., "--end", help="YYYY-MM-DD"),
):
    """Crée une saison et la rend active."""
    s = _run(
        lambda session: seasons_service.create_season(
            session,
            name=name,
            start_date=date.fromisoformat(start),
            end_date=date.fromisoformat(end),
        )
    )
    typer.echo(f"Saison créée: {s.name} ({s.start_date} -> {s.end_date})")


@app.command()
def approve(season_id: str, user_id: int):
    """Valide l'inscription d'un joueur à une saison."""
    _run(
        lambda session: seasons_service.approve_participation(
            session, user_id=user_id, season_id=season_id
        )
    )
    typer.echo(f"Joueur {user_id} validé pour {season_id}.")


@app.command()
def pick(
    season_id: str,
    week: int,
    user_id: int,
    team_id: int,
    admin: bool = typer.Option(False, "--admin", help="Ignore la date limite"),
):
    """Enregistre le choix d'un joueur pour une journée."""
    p = _run(
        lambda session: picks_service.create_pick(
            session,
            user_id=user_id,
            season_id=season_id,
            gameweek_number=week,
            team_id=team_id,
            admin_override=admin,
        )
    )
    typer.echo(f"Choix #{p.id}: joueur {p.user_id}, J{p.gameweek_number}, équipe {p.team_id}")


@app.command()
def result(
    fixture_id: int,
    status: str = typer.Argument(..., help="SCHEDULED, IN_PLAY, PAUSED, FINISHED, POSTPONED, CANCELLED"),
    home: Optional[int] = typer.Option(None, "--home"),
    away: Optional[int] = typer.Option(None, "--away"),
):
    """Met à jour le score/statut d'un match et recalcule les choix concernés."""
    changed = _run(
        lambda session: scoring_service.record_fixture_result(
            session, fixture_id, status=status, home_score=home, away_score=away
        )
    )
    typer.echo(f"{changed} choix recalculé(s).")


@app.command()
def rescore(season_id: str, week: Optional[int] = None):
    """Recalcule les points d'une journée (ou de toute la saison)."""
    if week is None:
        changed = _run(lambda session: scoring_service.recompute_all_scores(session, season_id=season_id))
    else:
        changed = _run(
            lambda session: scoring_service.recompute_scores_for_gameweek(
                session, season_id=season_id, gameweek_number=week
            )
        )
    typer.echo(f"{changed} choix recalculé(s).")


@app.command()
def table(season_id: str):
    """Affiche le classement des joueurs d'une saison."""
    rows = _run(lambda session: standings_service.get_standings(session, season_id))
    if not rows:
        print("Aucun joueur validé pour cette saison.")
        return

    header = f"{'#':>2}  {'Joueur':<22} {'J':>2} {'V':>2} {'N':>2} {'D':>2}  {'BP':>3} {'BC':>3} {'Diff':>4}  {'PTS':>3}"
    line = "-" * len(header)
    print(header)
    print(line)
    for e in rows:
        out = f" (éliminé J{e.eliminated_in_gameweek})" if e.is_eliminated else ""
        print(
            f"{e.position:>2}  {e.display_name:<22} {e.picks_made:>2} {e.wins:>2} {e.draws:>2} {e.losses:>2}  "
            f"{e.goals_for:>3} {e.goals_against:>3} {e.goal_difference:>4}  {e.total_points:>3}{out}"
        )


@app.command("club-table")
def club_table(season_id: str, before: Optional[int] = typer.Option(None, "--before", help="Journées < N")):
    """Affiche le classement réel des clubs (matchs terminés)."""
    rows = _run(
        lambda session: league_table_service.get_league_table(
            session, season_id=season_id, before_week=before
        )
    )
    header = f"{'#':>2}  {'Club':<22} {'P':>2} {'W':>2} {'D':>2} {'L':>2}  {'GF':>3} {'GA':>3} {'GD':>3}  {'PTS':>3}"
    print(header)
    print("-" * len(header))
    for t in rows:
        print(
            f"{t['position']:>2}  {t['name']:<22} {t['P']:>2} {t['W']:>2} {t['D']:>2} {t['L']:>2}  {t['GF']:>3} {t['GA']:>3} {t['GD']:>3}  {t['PTS']:>3}"
        )


@app.command("set-eliminations")
def set_eliminations(
    season_id: str,
    pairs: list[str] = typer.Argument(..., help="JOURNEE=NOMBRE, ex: 5=2 10=1"),
):
    """Configure le nombre d'éliminations de plusieurs journées."""
    counts = parse_counts(season_id, pairs)
    updated = _run(lambda session: elimination_service.bulk_set_elimination_counts(session, counts))
    typer.echo(f"{updated} journée(s) mise(s) à jour.")


@app.command()
def eliminate(
    season_id: str,
    week: int,
    admin_id: Optional[int] = typer.Option(None, "--admin-id", help="Administrateur à l'origine du traitement"),
):
    """Traite les éliminations d'une journée."""
    res = _run(
        lambda session: elimination_service.process_gameweek_eliminations(
            session, season_id, week, admin_id
        )
    )
    typer.echo(res.message)
    for p in res.eliminated:
        typer.echo(f"  - {p.display_name} ({p.position}e, {p.total_points} pts)")


@app.command()
def eliminations(season_id: str):
    """Liste les journées configurées et leur état de traitement."""
    configs = _run(lambda session: elimination_service.get_elimination_configs(session, season_id=season_id))
    for c in configs:
        if c.elimination_count or c.has_been_processed:
            state = "traitée" if c.has_been_processed else "à traiter"
            typer.echo(f"J{c.week_number:>2}: {c.elimination_count} élimination(s): {state}")


@app.command()
def autopick(season_id: str, week: int):
    """Attribue une équipe aux joueurs sans choix après la date limite."""
    res = _run(
        lambda session: auto_pick_service.assign_missed_picks_for_gameweek(session, season_id, week)
    )
    typer.echo(f"{res.assigned} attribué(s), {res.failed} échec(s), {res.skipped} déjà servi(s).")


@app.command("autopick-all")
def autopick_all():
    """Attribue les choix manquants sur toutes les journées en cours."""
    res = _run(lambda session: auto_pick_service.assign_all_missed_picks(session))
    typer.echo(
        f"{res.gameweeks_processed} journée(s): {res.assigned} attribué(s), {res.failed} échec(s)."
    )


@app.command()
def rules(season_id: str):
    """Affiche les règles de choix de chaque moitié de saison."""
    limits = _run(lambda session: pick_rules_service.get_pick_rules(session, season_id=season_id))
    for half, lim in limits.items():
        typer.echo(
            f"Moitié {half}: équipe x{lim.max_team_picks}, adversaire x{lim.max_opposition_targets}"
        )


@app.command("set-rule")
def set_rule(
    season_id: str,
    half: int = typer.Argument(..., min=1, max=2),
    team: int = typer.Option(1, "--team", help="Nombre max de choix d'une même équipe"),
    opposition: int = typer.Option(1, "--opposition", help="Nombre max de matchs contre un même adversaire"),
):
    """Crée ou modifie la règle d'une moitié de saison."""
    _run(
        lambda session: pick_rules_service.set_pick_rule(
            session,
            season_id=season_id,
            half=half,
            max_team_picks=team,
            max_opposition_targets=opposition,
        )
    )
    typer.echo(f"Règle enregistrée pour {season_id}, moitié {half}.")


if __name__ == "__main__":
    app()
