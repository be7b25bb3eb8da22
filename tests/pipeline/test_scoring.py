"""Tests for the scoring functions."""

from datetime import datetime, timezone

import pytest

from touchline.data.models import GenerationId, Snapshot
from touchline.data.schemas import FixtureSchema, PlayerSchema, TeamSchema
from touchline.pipeline.scoring import SCORERS, form_fixture, get_scorer, points_per_game

T0 = datetime(2025, 10, 1, 6, 0, tzinfo=timezone.utc)


def make_player(**overrides):
    data = {
        "id": 1, "web_name": "Salah", "team": 1, "element_type": 3,
        "now_cost": 130, "form": 6.0, "points_per_game": 5.0,
    }
    data.update(overrides)
    return PlayerSchema(**data)


def make_snapshot(fixtures):
    teams = {t: TeamSchema(id=t, name=f"Team {t}", short_name=f"T{t:02d}") for t in (1, 2, 3)}
    return Snapshot(
        generation=GenerationId(10, T0),
        teams=teams,
        fixtures={f.id: f for f in fixtures},
    )


HOME_EASY = FixtureSchema(
    id=1, event=10, team_h=1, team_a=2, team_h_difficulty=2, team_a_difficulty=4,
    kickoff_time="2025-10-04T14:00:00Z",
)
AWAY_HARD = FixtureSchema(
    id=2, event=10, team_h=3, team_a=1, team_h_difficulty=3, team_a_difficulty=4,
    kickoff_time="2025-10-07T19:30:00Z",
)
NEXT_GW = FixtureSchema(id=3, event=11, team_h=1, team_a=3, team_h_difficulty=2)


class TestFormFixture:
    def test_single_home_fixture(self):
        score, reasoning = form_fixture(make_player(), make_snapshot([HOME_EASY, NEXT_GW]))

        # (0.6 * 6.0 + 0.4 * 5.0) * 1.1 (FDR 2) * 1.05 (home)
        assert score == pytest.approx(6.468)
        assert reasoning == "Salah (T01, MID): form 6.0, 5.0 pts/game; GW10 vs T02 (H, FDR 2)."

    def test_double_gameweek_sums_fixtures(self):
        score, reasoning = form_fixture(make_player(), make_snapshot([HOME_EASY, AWAY_HARD]))

        assert score == pytest.approx(6.468 + 5.6 * 0.9)
        assert "T02 (H, FDR 2) + T03 (A, FDR 4)" in reasoning

    def test_blank_gameweek_scores_zero(self):
        score, reasoning = form_fixture(make_player(), make_snapshot([NEXT_GW]))

        assert score == 0.0
        assert reasoning == "Salah (T01) has no fixture in GW10."

    def test_chance_of_playing_discounts(self):
        player = make_player(status="d", chance_of_playing_next_round=75)

        score, reasoning = form_fixture(player, make_snapshot([HOME_EASY]))

        assert score == pytest.approx(6.468 * 0.75)
        assert reasoning.endswith("; 75% chance of playing.")

    def test_missing_difficulty_is_neutral(self):
        fixture = FixtureSchema(id=9, event=10, team_h=1, team_a=2)

        score, reasoning = form_fixture(make_player(), make_snapshot([fixture]))

        assert score == pytest.approx(5.6 * 1.05)
        assert "FDR 3" in reasoning

    def test_unknown_team_is_question_mark(self):
        score, reasoning = form_fixture(make_player(team=99), make_snapshot([HOME_EASY]))

        assert score == 0.0
        assert reasoning.startswith("Salah (?)")


def test_points_per_game_baseline():
    score, reasoning = points_per_game(make_player(points_per_game=7.25), make_snapshot([]))

    assert score == pytest.approx(7.25)
    assert "Salah" in reasoning


def test_get_scorer():
    assert get_scorer("form_fixture") is form_fixture
    assert set(SCORERS) == {"form_fixture", "points_per_game"}

    with pytest.raises(ValueError, match="Unknown scorer"):
        get_scorer("xg_magic")
