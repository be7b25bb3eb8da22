"""Pytest fixtures/config for Touchline tests."""

import copy
import os
import sys
from datetime import datetime, timezone

import pytest


def pytest_sessionstart(session) -> None:  # type: ignore[unused-argument]
    repo_root = os.path.dirname(os.path.dirname(__file__))
    src_path = os.path.join(repo_root, "src")
    if src_path not in sys.path:
        sys.path.insert(0, src_path)


N_TEAMS = 20
T0 = datetime(2025, 10, 1, 6, 0, tzinfo=timezone.utc)


def build_bootstrap(n_players=40, unavailable=0, gw=10):
    """FPL bootstrap-static payload shaped like the real API.

    The last ``unavailable`` players are injured. Target gameweek is ``gw``
    (flagged is_next), ``gw - 1`` is current.
    """
    teams = [
        {"id": t, "name": f"Team {t}", "short_name": f"T{t:02d}", "strength": 3}
        for t in range(1, N_TEAMS + 1)
    ]
    players = []
    for i in range(1, n_players + 1):
        players.append({
            "id": i,
            "first_name": f"First{i}",
            "second_name": f"Second{i}",
            "web_name": f"Player{i:03d}",
            "team": (i - 1) % N_TEAMS + 1,
            "element_type": i % 4 + 1,
            "now_cost": 45 + (i % 10) * 5,
            "status": "i" if i > n_players - unavailable else "a",
            "chance_of_playing_next_round": 0 if i > n_players - unavailable else None,
            "total_points": (i * 13) % 120,
            "minutes": 900,
            "form": f"{(i * 7) % 90 / 10:.1f}",
            "points_per_game": f"{(i * 3) % 70 / 10:.1f}",
            "selected_by_percent": "5.0",
        })
    events = [
        {
            "id": e,
            "name": f"Gameweek {e}",
            "deadline_time": f"2025-09-{e:02d}T10:00:00Z" if e < 29 else None,
            "finished": e < gw - 1,
            "is_previous": e == gw - 2,
            "is_current": e == gw - 1,
            "is_next": e == gw,
        }
        for e in range(1, 39)
    ]
    return {"elements": players, "teams": teams, "events": events}


def build_fixtures(gws=(10, 11)):
    """Round of fixtures per gameweek: 1 v 2, 3 v 4, ... with varied difficulty."""
    fixtures = []
    fid = 1
    for gw in gws:
        for home in range(1, N_TEAMS + 1, 2):
            fixtures.append({
                "id": fid,
                "event": gw,
                "team_h": home,
                "team_a": home + 1,
                "team_h_difficulty": 2 + home % 4,
                "team_a_difficulty": 5 - home % 4,
                "kickoff_time": f"2025-10-{gw:02d}T15:00:00Z",
                "finished": False,
                "team_h_score": None,
                "team_a_score": None,
            })
            fid += 1
    return fixtures


@pytest.fixture
def bootstrap_factory():
    return build_bootstrap


@pytest.fixture
def fixtures_factory():
    return build_fixtures


@pytest.fixture
def stub_client_factory():
    """Factory for an FPLApiClient whose HTTP layer serves canned payloads."""
    from touchline.data.api_client import ENDPOINTS, FPLApiClient
    from touchline.errors import UpstreamUnavailable

    class StubClient(FPLApiClient):
        def __init__(self, bootstrap=None, fixtures=None, fail=False, on_fetch=None):
            super().__init__(base_url="http://fpl.test/api", retries=1, backoff_base=0)
            self.payloads = {
                ENDPOINTS["bootstrap"]: bootstrap if bootstrap is not None else build_bootstrap(),
                ENDPOINTS["fixtures"]: fixtures if fixtures is not None else build_fixtures(),
            }
            self.fail = fail
            self.on_fetch = on_fetch
            self.calls = []

        def _get(self, endpoint):
            self.calls.append(endpoint)
            if self.on_fetch is not None:
                self.on_fetch(endpoint)
            if self.fail:
                raise UpstreamUnavailable(f"{endpoint} unreachable after 3 attempts")
            return copy.deepcopy(self.payloads[endpoint])

    return StubClient


@pytest.fixture
def snapshot_factory():
    """Build an in-memory Snapshot from bootstrap/fixture payloads."""
    from touchline.data.models import GenerationId, Snapshot
    from touchline.data.schemas import EventSchema, FixtureSchema, PlayerSchema, TeamSchema

    def make(bootstrap=None, fixtures=None, gw=10, synced_at=T0):
        bootstrap = bootstrap if bootstrap is not None else build_bootstrap(gw=gw)
        fixtures = fixtures if fixtures is not None else build_fixtures()
        return Snapshot(
            generation=GenerationId(gw, synced_at),
            players={p["id"]: PlayerSchema.model_validate(p) for p in bootstrap["elements"]},
            teams={t["id"]: TeamSchema.model_validate(t) for t in bootstrap["teams"]},
            fixtures={f["id"]: FixtureSchema.model_validate(f) for f in fixtures},
            events={e["id"]: EventSchema.model_validate(e) for e in bootstrap["events"]},
        )

    return make


@pytest.fixture
def store(tmp_path):
    from touchline.data.store import SnapshotStore

    return SnapshotStore(str(tmp_path / "touchline.sqlite"))
