import logging

import pytest

from survivor.models import UserElimination
from survivor.services import elimination_service, standings_service
from survivor.services.errors import GameweekNotFound, GameweekStateError, SeasonNotFound
from tests.helpers import SEASON, commit_elsewhere, make_pick, make_season, make_teams, make_user


async def _players(session, points_by_name: dict[str, int], week: int = 1) -> dict[str, int]:
    """Un joueur validé par nom, avec un choix de `points` à la journée `week`."""
    (team,) = await make_teams(session, "Arsenal")
    ids = {}
    for name, points in points_by_name.items():
        ids[name] = await make_user(session, name)
        await make_pick(session, ids[name], week, team, points=points)
    return ids


async def test_bottom_player_is_eliminated(session):
    await make_season(session, weeks=[1, 2], elimination_counts={1: 1})
    ids = await _players(session, {"Alice": 10, "Bruno": 7, "Chloé": 7, "David": 3})

    res = await elimination_service.process_gameweek_eliminations(session, SEASON, 1)

    assert res.players_eliminated == 1
    assert not res.already_processed
    (out,) = res.eliminated
    assert (out.user_id, out.position, out.total_points) == (ids["David"], 4, 3)
    assert await elimination_service.is_user_eliminated(
        session, user_id=ids["David"], season_id=SEASON
    )


async def test_tie_at_the_cut_is_broken_by_name(session):
    await make_season(session, weeks=[1], elimination_counts={1: 2})
    ids = await _players(session, {"Alice": 10, "Bruno": 7, "Chloé": 7, "David": 3})

    res = await elimination_service.process_gameweek_eliminations(session, SEASON, 1)

    assert [p.user_id for p in res.eliminated] == [ids["Chloé"], ids["David"]]
    assert not await elimination_service.is_user_eliminated(
        session, user_id=ids["Bruno"], season_id=SEASON
    )


async def test_process_once_then_exclude_from_later_rounds(session):
    await make_season(session, weeks=range(1, 7), elimination_counts={5: 2, 6: 1})
    ids = await _players(
        session, {"Alice": 30, "Bruno": 25, "Chloé": 25, "David": 10, "Emma": 5}
    )
    (late,) = await make_teams(session, "Brentford")
    # Choix après la J5: ne compte pas pour les éliminations de la J5
    await make_pick(session, ids["Emma"], 6, late, points=100)

    res = await elimination_service.process_gameweek_eliminations(session, SEASON, 5, triggered_by=ids["Alice"])
    assert res.players_eliminated == 2
    assert {p.user_id for p in res.eliminated} == {ids["David"], ids["Emma"]}
    assert sorted(p.position for p in res.eliminated) == [4, 5]

    again = await elimination_service.process_gameweek_eliminations(session, SEASON, 5)
    assert again.already_processed
    assert again.players_eliminated == 0

    rows = await elimination_service.get_gameweek_eliminations(
        session, season_id=SEASON, gameweek_number=5
    )
    assert [r.user_id for r in rows] == [ids["David"], ids["Emma"]]
    assert all(r.eliminated_by == ids["Alice"] for r in rows)

    # J6: seuls les trois survivants sont classés
    res6 = await elimination_service.process_gameweek_eliminations(session, SEASON, 6)
    (out,) = res6.eliminated
    assert (out.user_id, out.position) == (ids["Chloé"], 3)

    table = await standings_service.get_standings(session, SEASON)
    assert len(table) == 5
    emma = next(r for r in table if r.user_id == ids["Emma"])
    assert emma.is_eliminated and emma.eliminated_in_gameweek == 5

    season_rows = await elimination_service.get_season_eliminations(session, season_id=SEASON)
    assert [r.gameweek_number for r in season_rows] == [5, 5, 6]


async def test_zero_count_is_a_no_op(session):
    await make_season(session, weeks=[1])
    await _players(session, {"Alice": 3, "Bruno": 0})

    res = await elimination_service.process_gameweek_eliminations(session, SEASON, 1)
    assert res.players_eliminated == 0
    assert not res.already_processed
    assert not await elimination_service.has_been_processed(
        session, season_id=SEASON, gameweek_number=1
    )


async def test_count_larger_than_field_eliminates_everyone(session):
    await make_season(session, weeks=[1], elimination_counts={1: 10})
    await _players(session, {"Alice": 3, "Bruno": 0})

    res = await elimination_service.process_gameweek_eliminations(session, SEASON, 1)
    assert res.players_eliminated == 2


async def test_unknown_gameweek(session):
    await make_season(session, weeks=[1])
    with pytest.raises(GameweekNotFound):
        await elimination_service.process_gameweek_eliminations(session, SEASON, 12)


async def test_set_elimination_count(session):
    await make_season(session, weeks=[1, 2])
    await _players(session, {"Alice": 3, "Bruno": 0})

    gw = await elimination_service.set_elimination_count(
        session, season_id=SEASON, week_number=1, count=1
    )
    assert gw.elimination_count == 1
    with pytest.raises(ValueError):
        await elimination_service.set_elimination_count(
            session, season_id=SEASON, week_number=2, count=101
        )

    await elimination_service.process_gameweek_eliminations(session, SEASON, 1)
    with pytest.raises(GameweekStateError):
        await elimination_service.set_elimination_count(
            session, season_id=SEASON, week_number=1, count=2
        )


async def test_bulk_set_elimination_counts(session, caplog):
    await make_season(session, weeks=[1, 2, 3], elimination_counts={1: 1})
    await _players(session, {"Alice": 3, "Bruno": 0})
    await elimination_service.process_gameweek_eliminations(session, SEASON, 1)

    with pytest.raises(ValueError):
        await elimination_service.bulk_set_elimination_counts(
            session, {(SEASON, 2): 1, (SEASON, 3): -1}
        )
    configs = await elimination_service.get_elimination_configs(session, season_id=SEASON)
    assert [c.elimination_count for c in configs] == [1, 0, 0]

    caplog.set_level(logging.WARNING, logger="survivor.services.elimination_service")
    updated = await elimination_service.bulk_set_elimination_counts(
        session, {(SEASON, 1): 3, (SEASON, 2): 1, (SEASON, 3): 2, (SEASON, 30): 1}
    )
    assert updated == 2
    assert "déjà traitée" in caplog.text
    assert "introuvable" in caplog.text

    configs = await elimination_service.get_elimination_configs(session, season_id=SEASON)
    assert [(c.week_number, c.elimination_count, c.has_been_processed) for c in configs] == [
        (1, 1, True),
        (2, 1, False),
        (3, 2, False),
    ]

    with pytest.raises(SeasonNotFound):
        await elimination_service.get_elimination_configs(session, season_id="1999/00")


async def test_concurrent_run_does_not_eliminate_twice(session, engine, monkeypatch, caplog):
    await make_season(session, weeks=[1], elimination_counts={1: 1})
    ids = await _players(session, {"Alice": 10, "David": 3})
    real_standings = elimination_service.compute_standings

    async def standings_then_other_run(*args, **kwargs):
        standings = await real_standings(*args, **kwargs)
        # Un autre traitement de la même journée termine avant celui-ci
        await commit_elsewhere(
            engine,
            UserElimination(
                user_id=ids["David"], season_id=SEASON, gameweek_number=1, position=2, total_points=3
            ),
        )
        return standings

    monkeypatch.setattr(elimination_service, "compute_standings", standings_then_other_run)
    caplog.set_level(logging.WARNING, logger="survivor.services.elimination_service")

    res = await elimination_service.process_gameweek_eliminations(session, SEASON, 1)

    assert res.players_eliminated == 0
    assert res.eliminated == []
    rows = await elimination_service.get_gameweek_eliminations(
        session, season_id=SEASON, gameweek_number=1
    )
    assert [r.user_id for r in rows] == [ids["David"]]
    assert "déjà éliminé" in caplog.text


async def test_position_is_the_place_among_survivors(session):
    await make_season(session, weeks=[1], elimination_counts={1: 2})
    ids = await _players(session, {"Alice": 9, "Bruno": 6, "Chloé": 4, "David": 1})

    res = await elimination_service.process_gameweek_eliminations(session, SEASON, 1)

    # 3e et 4e du classement, et non 1er et 2e des éliminés
    assert [(p.user_id, p.position) for p in res.eliminated] == [(ids["Chloé"], 3), (ids["David"], 4)]
    rows = await elimination_service.get_gameweek_eliminations(
        session, season_id=SEASON, gameweek_number=1
    )
    assert sorted(r.position for r in rows) == [3, 4]
