from datetime import datetime, timedelta

import pytest

from survivor.core.rules import half_for_week, result_points, weeks_in_half
from survivor.models import Fixture
from survivor.seeds.seed_data import round_robin
from survivor.services.errors import Violation
from survivor.services.league_table_service import league_table
from survivor.services.pick_rules_service import PickLimits, PriorPick, validate_pick
from survivor.services.scoring_service import build_fixture_index, score_pick
from survivor.services.standings_service import StandingEntry, rank_standings

DEADLINE = datetime(2024, 8, 16, 13, 30)
BEFORE = DEADLINE - timedelta(hours=2)
AFTER = DEADLINE + timedelta(minutes=1)


def _fixture(fid=1, home=1, away=2, status="FINISHED", hs=None, as_=None, week=1):
    return Fixture(
        id=fid,
        season_id="2024/25",
        gameweek_number=week,
        home_team_id=home,
        away_team_id=away,
        status=status,
        home_score=hs,
        away_score=as_,
    )


def test_halves():
    assert half_for_week(1) == 1
    assert half_for_week(19) == 1
    assert half_for_week(20) == 2
    assert list(weeks_in_half(2)) == list(range(20, 39))
    with pytest.raises(ValueError):
        weeks_in_half(3)


def test_result_points():
    assert result_points(2, 1) == 3
    assert result_points(0, 0) == 1
    assert result_points(0, 3) == 0


# --- validate_pick ---


def test_validate_pick_ok_without_history():
    v = validate_pick(1, 2, [], PickLimits(), deadline=DEADLINE, now=BEFORE, team_active=True)
    assert v is None


def test_validate_pick_team_reuse():
    prior = [PriorPick(1, team_id=5, opponent_id=6)]
    v = validate_pick(5, 7, prior, PickLimits(), deadline=DEADLINE, now=BEFORE, team_active=True)
    assert v == Violation.TEAM_REUSE_EXCEEDED


def test_validate_pick_team_reuse_respects_limit():
    prior = [PriorPick(1, 5, 6)]
    limits = PickLimits(max_team_picks=2, max_opposition_targets=2)
    assert validate_pick(5, 7, prior, limits, deadline=DEADLINE, now=BEFORE, team_active=True) is None

    prior.append(PriorPick(2, 5, 8))
    v = validate_pick(5, 9, prior, limits, deadline=DEADLINE, now=BEFORE, team_active=True)
    assert v == Violation.TEAM_REUSE_EXCEEDED


def test_validate_pick_opposition_reuse():
    # J1: équipe 1 contre 2; J2: équipe 3 contre 2 -> adversaire 2 déjà ciblé
    prior = [PriorPick(1, 1, 2)]
    v = validate_pick(3, 2, prior, PickLimits(), deadline=DEADLINE, now=BEFORE, team_active=True)
    assert v == Violation.OPPOSITION_REUSE_EXCEEDED


def test_validate_pick_without_fixture_skips_opposition():
    prior = [PriorPick(1, 1, None)]
    v = validate_pick(3, None, prior, PickLimits(), deadline=DEADLINE, now=BEFORE, team_active=True)
    assert v is None


def test_validate_pick_deadline():
    v = validate_pick(1, 2, [], PickLimits(), deadline=DEADLINE, now=AFTER, team_active=True)
    assert v == Violation.DEADLINE_PASSED

    # Pile à la date limite: encore accepté
    assert validate_pick(1, 2, [], PickLimits(), deadline=DEADLINE, now=DEADLINE, team_active=True) is None
    assert (
        validate_pick(
            1, 2, [], PickLimits(), deadline=DEADLINE, now=AFTER, team_active=True, bypass_deadline=True
        )
        is None
    )


def test_validate_pick_inactive_team():
    v = validate_pick(1, 2, [], PickLimits(), deadline=DEADLINE, now=BEFORE, team_active=False)
    assert v == Violation.TEAM_INACTIVE


def test_validate_pick_reports_reuse_before_deadline():
    prior = [PriorPick(1, 1, 2)]
    v = validate_pick(1, 3, prior, PickLimits(), deadline=DEADLINE, now=AFTER, team_active=False)
    assert v == Violation.TEAM_REUSE_EXCEEDED


# --- score_pick ---


def test_score_home_and_away():
    f = _fixture(hs=2, as_=1)
    home = score_pick(1, f)
    away = score_pick(2, f)
    assert (home.points, home.goals_for, home.goals_against) == (3, 2, 1)
    assert (away.points, away.goals_for, away.goals_against) == (0, 1, 2)
    assert home.has_result and home.status == "FINISHED"


def test_score_draw_in_play():
    s = score_pick(2, _fixture(status="IN_PLAY", hs=1, as_=1))
    assert (s.points, s.goals_for, s.goals_against) == (1, 1, 1)
    assert s.has_result


def test_score_not_started_or_postponed():
    s = score_pick(1, _fixture(status="SCHEDULED"))
    assert (s.points, s.goals_for, s.goals_against) == (0, 0, 0)
    assert not s.has_result
    assert s.status == "SCHEDULED"

    s = score_pick(1, _fixture(status="POSTPONED", hs=2, as_=0))
    assert s.points == 0 and not s.has_result


def test_score_missing_fixture_and_missing_scores():
    s = score_pick(1, None)
    assert s.status is None and not s.has_result

    s = score_pick(1, _fixture(status="IN_PLAY"))
    assert (s.points, s.goals_for, s.goals_against) == (1, 0, 0)

    s = score_pick(1, _fixture(status="FINISHED"))
    assert (s.points, s.goals_for, s.goals_against) == (0, 0, 0)
    assert not s.has_result and s.status == "FINISHED"

    s = score_pick(1, _fixture(status="FINISHED", hs=2))
    assert not s.has_result


def test_score_team_not_in_fixture():
    with pytest.raises(ValueError):
        score_pick(9, _fixture(hs=1, as_=0))


def test_fixture_index_keeps_first_fixture_of_double_gameweek():
    first = _fixture(fid=3, home=1, away=2)
    second = _fixture(fid=7, home=3, away=1)
    index = build_fixture_index([second, first])
    assert index[(1, 1)] is first
    assert index[(1, 2)] is first
    assert index[(1, 3)] is second


# --- Classements ---


def test_rank_standings_tie_break():
    entries = [
        StandingEntry(user_id=1, display_name="zoé", total_points=6, goals_for=4, goals_against=2),
        StandingEntry(user_id=2, display_name="Bruno", total_points=6, goals_for=5, goals_against=3),
        StandingEntry(user_id=3, display_name="alice", total_points=6, goals_for=3, goals_against=1),
        StandingEntry(user_id=4, display_name="Chloé", total_points=9),
        StandingEntry(user_id=5, display_name="Alice", total_points=6, goals_for=3, goals_against=1),
    ]
    ranked = rank_standings(entries)
    # Points, puis diff (+2 pour tous), buts marqués, nom sans casse, id
    assert [e.user_id for e in ranked] == [4, 2, 1, 3, 5]
    assert [e.position for e in ranked] == [1, 2, 3, 4, 5]


def test_league_table_sorting_and_counts():
    clubs = {1: "Arsenal", 2: "Brentford", 3: "Chelsea"}
    results = [(1, 2, 2, 0), (3, 1, 1, 1), (2, 3, 0, 1)]
    table = league_table(clubs, results)

    # Égalité à 4 points: Arsenal passe devant à la différence de buts
    assert [t["name"] for t in table] == ["Arsenal", "Chelsea", "Brentford"]
    arsenal, chelsea, brentford = table
    assert (chelsea["P"], chelsea["W"], chelsea["D"], chelsea["PTS"]) == (2, 1, 1, 4)
    assert (arsenal["GF"], arsenal["GA"], arsenal["GD"], arsenal["PTS"]) == (3, 1, 2, 4)
    assert brentford["L"] == 2 and brentford["position"] == 3


def test_league_table_ignores_unknown_clubs():
    table = league_table({1: "Arsenal"}, [(1, 99, 1, 0)])
    assert table[0]["PTS"] == 3
    assert len(table) == 1


def test_round_robin_double_leg():
    days = round_robin(list(range(1, 7)))
    assert len(days) == 10
    for day in days:
        playing = [t for match in day for t in match]
        assert sorted(playing) == list(range(1, 7))

    matches = [m for day in days for m in day]
    assert len(set(matches)) == len(matches) == 30
    for home, away in matches:
        assert (away, home) in matches


def test_round_robin_odd_number_of_teams():
    days = round_robin([1, 2, 3], rounds=1)
    assert len(days) == 3
    assert all(len(day) == 1 for day in days)
