"""Centralized SQL queries for the Touchline store.

All SQL statements used by SnapshotStore and PublishedReader live here.
Named constants for clarity and single source of truth.

Generation ordering relies on ``synced_at`` being a fixed-width UTC stamp,
so lexicographic order is chronological order.
"""

# -----------------------------------------------------------------------------
# Snapshot queries
# -----------------------------------------------------------------------------

SNAPSHOT_TABLES = ("players", "teams", "fixtures", "events")

SNAPSHOT_BY_KEY = "SELECT * FROM snapshots WHERE generation_key = ?"

SNAPSHOT_LATEST = """
SELECT generation_key FROM snapshots
ORDER BY gameweek DESC, synced_at DESC
LIMIT 1
"""

SNAPSHOTS_ALL = """
SELECT * FROM snapshots
ORDER BY gameweek DESC, synced_at DESC
"""

SNAPSHOT_ROWS = "SELECT * FROM {table} WHERE generation_key = ? ORDER BY id"

SNAPSHOT_DELETE_ROWS = "DELETE FROM {table} WHERE generation_key = ?"

SNAPSHOT_UPSERT = """
INSERT OR REPLACE INTO snapshots
    (generation_key, gameweek, synced_at, n_players, n_teams, n_fixtures, n_events, written_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?)
"""

SNAPSHOT_DELETE = "DELETE FROM snapshots WHERE generation_key = ?"

# -----------------------------------------------------------------------------
# Artifact / promotion queries
# -----------------------------------------------------------------------------

PUBLISHED_CURRENT = "SELECT * FROM published WHERE id = 1"

PUBLISHED_SET = """
INSERT OR REPLACE INTO published (id, generation_key, gameweek, synced_at, promoted_at)
VALUES (1, ?, ?, ?, ?)
"""

ARTIFACT_INSERT = """
INSERT INTO artifacts
    (generation_key, gameweek, synced_at, scorer, n_picks, created_at, promoted_at)
VALUES (?, ?, ?, ?, ?, ?, ?)
"""

ARTIFACT_BY_KEY = "SELECT * FROM artifacts WHERE generation_key = ?"

ARTIFACT_DELETE = "DELETE FROM artifacts WHERE generation_key = ?"

RECOMMENDATION_INSERT = """
INSERT INTO recommendations
    (generation_key, rank, player_id, score, now_cost, web_name, reasoning)
VALUES (?, ?, ?, ?, ?, ?, ?)
"""

RECOMMENDATIONS_BY_KEY = """
SELECT * FROM recommendations
WHERE generation_key = ?
ORDER BY rank
"""

RECOMMENDATIONS_DELETE = "DELETE FROM recommendations WHERE generation_key = ?"

# Published picks joined with the paired snapshot for display
RECOMMENDATIONS_CURRENT = """
SELECT r.rank, r.player_id, r.web_name AS player_name, r.score, r.now_cost,
       r.reasoning, p.element_type, p.status, p.form, p.points_per_game,
       t.short_name AS team_name
FROM published pub
JOIN recommendations r ON r.generation_key = pub.generation_key
JOIN players p ON p.generation_key = r.generation_key AND p.id = r.player_id
LEFT JOIN teams t ON t.generation_key = p.generation_key AND t.id = p.team
WHERE pub.id = 1
ORDER BY r.rank
LIMIT ?
"""

# -----------------------------------------------------------------------------
# Run lock queries
# -----------------------------------------------------------------------------

RUN_LOCK_CURRENT = "SELECT * FROM run_lock WHERE id = 1"

RUN_LOCK_SET = "INSERT OR REPLACE INTO run_lock (id, run_id, started_at) VALUES (1, ?, ?)"

RUN_LOCK_RELEASE = "DELETE FROM run_lock WHERE id = 1 AND run_id = ?"

# -----------------------------------------------------------------------------
# Consumer queries (published generation only)
# -----------------------------------------------------------------------------

PUBLISHED_PLAYERS = """
SELECT p.* FROM published pub
JOIN players p ON p.generation_key = pub.generation_key
WHERE pub.id = 1
ORDER BY p.id
"""

PUBLISHED_FIXTURES_BY_GW = """
SELECT f.* FROM published pub
JOIN fixtures f ON f.generation_key = pub.generation_key
WHERE pub.id = 1 AND f.event = ?
ORDER BY f.kickoff_time, f.id
"""

PUBLISHED_EVENTS = """
SELECT e.* FROM published pub
JOIN events e ON e.generation_key = pub.generation_key
WHERE pub.id = 1
ORDER BY e.id
"""
