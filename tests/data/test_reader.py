"""Tests for PublishedReader (consumer view of the store)."""

import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from touchline.data.reader import PublishedReader
from touchline.pipeline.generate import RecommendationGenerator

T0 = datetime(2025, 10, 1, 6, 0, tzinfo=timezone.utc)


def _publish(store, snapshot, expected=None):
    store.write_snapshot(snapshot)
    artifact = RecommendationGenerator(min_eligible=1).generate(snapshot)
    store.promote(artifact, expected=expected)
    return artifact


def test_missing_database(tmp_path):
    with pytest.raises(FileNotFoundError):
        PublishedReader(str(tmp_path / "nope.sqlite"))


def test_empty_before_first_publish(store, snapshot_factory):
    # A snapshot alone is not visible to consumers
    store.write_snapshot(snapshot_factory())
    reader = PublishedReader(str(store.db_path))

    assert reader.get_current_generation() is None
    assert reader.get_current_recommendations().empty
    assert reader.get_players().empty
    assert reader.get_fixtures() == []


def test_published_recommendations(store, snapshot_factory):
    snapshot = snapshot_factory()
    artifact = _publish(store, snapshot)
    reader = PublishedReader(str(store.db_path))

    df = reader.get_current_recommendations(top_n=5)

    assert reader.get_current_generation() == snapshot.generation
    assert list(df["rank"]) == [1, 2, 3, 4, 5]
    assert list(df["player_id"]) == artifact.player_ids[:5]
    top = df.iloc[0]
    player = snapshot.players[int(top["player_id"])]
    assert top["position"] == player.position
    assert top["cost"] == pytest.approx(player.cost_millions)
    assert top["team_name"] == snapshot.team_short(player.team)
    assert player.web_name in top["reasoning"]


def test_reads_follow_the_pointer(store, snapshot_factory, bootstrap_factory):
    first = snapshot_factory(synced_at=T0)
    _publish(store, first)
    # Next generation has fewer players; consumers switch only on promotion
    second = snapshot_factory(
        bootstrap=bootstrap_factory(n_players=30), synced_at=T0 + timedelta(minutes=5)
    )
    store.write_snapshot(second)
    reader = PublishedReader(str(store.db_path))
    assert len(reader.get_players()) == 40

    store.promote(
        RecommendationGenerator(min_eligible=1).generate(second), expected=first.generation
    )

    assert reader.get_current_generation() == second.generation
    assert len(reader.get_players()) == 30


def test_fixtures_and_events(store, snapshot_factory):
    _publish(store, snapshot_factory())
    reader = PublishedReader(str(store.db_path))

    assert len(reader.get_fixtures()) == 10
    assert all(f["event"] == 10 for f in reader.get_fixtures())
    assert len(reader.get_fixtures(gw=11)) == 10
    events = reader.get_events()
    assert len(events) == 38
    assert [e["id"] for e in events if e["is_next"]] == [10]


def test_reader_cannot_write(store, snapshot_factory):
    _publish(store, snapshot_factory())
    reader = PublishedReader(str(store.db_path))

    with pytest.raises(sqlite3.OperationalError):
        reader.query("DELETE FROM published")
