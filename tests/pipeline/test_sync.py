"""Tests for the sync stage."""

from datetime import datetime, timedelta, timezone

import pytest

from touchline.data.models import GenerationId
from touchline.errors import StaleSnapshot, UpstreamUnavailable
from touchline.data.schemas import PlayerSchema
from touchline.pipeline.sync import SyncStage, validate_rows

T0 = datetime(2025, 10, 1, 6, 0, tzinfo=timezone.utc)


def test_sync_commits_snapshot(store, stub_client_factory):
    stage = SyncStage(stub_client_factory(), store, clock=lambda: T0)

    snapshot = stage.run()

    assert snapshot.generation == GenerationId(10, T0)
    assert len(snapshot.players) == 40
    assert len(snapshot.teams) == 20
    assert len(snapshot.fixtures) == 20
    assert len(snapshot.events) == 38
    assert store.load_snapshot(snapshot.generation).players == snapshot.players


def test_upstream_failure_writes_nothing(store, stub_client_factory):
    stage = SyncStage(stub_client_factory(fail=True), store, clock=lambda: T0)

    with pytest.raises(UpstreamUnavailable):
        stage.run()

    assert store.latest_snapshot_generation() is None


def test_fixtures_failure_after_bootstrap_writes_nothing(store, stub_client_factory):
    client = stub_client_factory()

    def fail_on_fixtures(endpoint):
        if "fixtures" in endpoint:
            client.fail = True

    client.on_fetch = fail_on_fixtures

    with pytest.raises(UpstreamUnavailable):
        SyncStage(client, store, clock=lambda: T0).run()

    assert store.list_snapshots() == []


def test_resync_same_generation_is_idempotent(store, stub_client_factory):
    stage = SyncStage(stub_client_factory(), store, clock=lambda: T0)

    first = stage.run()
    second = stage.run(first.generation)

    assert second == first
    assert len(store.list_snapshots()) == 1
    assert store.query("SELECT COUNT(*) AS n FROM players")[0]["n"] == 40


def test_older_generation_is_stale(store, stub_client_factory):
    stage = SyncStage(stub_client_factory(), store, clock=lambda: T0)
    stage.run()

    with pytest.raises(StaleSnapshot):
        stage.run(GenerationId(10, T0 - timedelta(hours=1)))

    assert len(store.list_snapshots()) == 1


def test_invalid_rows_are_skipped(store, stub_client_factory, bootstrap_factory):
    bootstrap = bootstrap_factory(n_players=5)
    bootstrap["elements"][1]["now_cost"] = "not a price"
    del bootstrap["elements"][2]["web_name"]

    snapshot = SyncStage(stub_client_factory(bootstrap=bootstrap), store, clock=lambda: T0).run()

    assert sorted(snapshot.players) == [1, 4, 5]


def test_validate_rows_last_duplicate_wins():
    rows = [
        {"id": 7, "web_name": "Old", "team": 1, "element_type": 3, "now_cost": 50},
        {"id": 7, "web_name": "New", "team": 1, "element_type": 3, "now_cost": 55},
    ]

    records = validate_rows("players", PlayerSchema, rows)

    assert list(records) == [7]
    assert records[7].web_name == "New"
    assert records[7].now_cost == 55
