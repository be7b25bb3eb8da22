"""Persistent store for snapshots and published recommendations.

Handles all SQLite operations of the pipeline including:
- Schema initialization
- All-or-nothing snapshot writes, idempotent per generation
- Compare-and-swap promotion of a validated artifact
- The "run in progress" lock guarding against overlapping runs

Every write is one ``BEGIN IMMEDIATE`` transaction. A failed write rolls
back completely and raises StoreWriteFailure, so readers never see half a
generation.

Key Classes:
    SnapshotStore - Read/write access for the pipeline

Usage:
    from touchline.data.store import SnapshotStore

    store = SnapshotStore()
    store.write_snapshot(snapshot)
    store.promote(artifact, expected=store.get_published_generation())
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Type

from pydantic import BaseModel

from touchline.config import DEFAULT_DB_PATH, RUN_LOCK_TTL_SECONDS, STORE_TIMEOUT
from touchline.data import queries as Q
from touchline.data.models import (
    GenerationId,
    RankedPick,
    RecommendationArtifact,
    Snapshot,
    utcnow,
)
from touchline.data.schemas import (
    EventSchema,
    FixtureSchema,
    PlayerSchema,
    TeamSchema,
    schema_columns,
    schema_to_create_table,
)
from touchline.errors import (
    PromotionConflict,
    RunInProgress,
    StaleSnapshot,
    StoreReadFailure,
    StoreWriteFailure,
)

logger = logging.getLogger(__name__)

# Snapshot table -> record schema
SNAPSHOT_SCHEMAS: Dict[str, Type[BaseModel]] = {
    "players": PlayerSchema,
    "teams": TeamSchema,
    "fixtures": FixtureSchema,
    "events": EventSchema,
}


def _dict_factory(cursor, row):
    mapping = {}
    for idx, col in enumerate(cursor.description):
        mapping[col[0]] = row[idx]
    return mapping


class SnapshotStore:
    """Manages the SQLite store shared by the pipeline and its consumers."""

    def __init__(self, db_path: Optional[str] = None, timeout: float = STORE_TIMEOUT):
        self.db_path = Path(db_path or DEFAULT_DB_PATH)
        self.timeout = timeout
        self._init_database()

    # -------------------------------------------------------------------------
    # Connections
    # -------------------------------------------------------------------------

    def _connect(self) -> sqlite3.Connection:
        # Autocommit mode: transactions are opened explicitly
        conn = sqlite3.connect(self.db_path, timeout=self.timeout, isolation_level=None)
        conn.row_factory = _dict_factory
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Write transaction holding the database write lock until commit."""
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
                conn.execute("COMMIT")
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise
        finally:
            conn.close()

    def query(self, sql: str, params: tuple = ()) -> List[Dict[str, Any]]:
        """Execute a read and return list of dicts.

        Raises:
            StoreReadFailure: On any SQLite error.
        """
        try:
            conn = self._connect()
            try:
                return conn.execute(sql, params).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StoreReadFailure(f"Query failed on {self.db_path}: {e}") from e

    # -------------------------------------------------------------------------
    # Schema
    # -------------------------------------------------------------------------

    def _init_database(self) -> None:
        """Create database schema if it doesn't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            with self._transaction() as conn:
                self._create_snapshot_tables(conn)
                self._create_artifact_tables(conn)
                self._create_control_tables(conn)
                self._create_indexes(conn)
        except sqlite3.Error as e:
            raise StoreWriteFailure(f"Cannot initialize store {self.db_path}: {e}") from e
        logger.debug(f"Store initialized: {self.db_path}")

    def _create_snapshot_tables(self, conn: sqlite3.Connection) -> None:
        """Create per-generation record tables from the pydantic schemas."""
        conn.execute("""
            CREATE TABLE IF NOT EXISTS snapshots (
                generation_key TEXT PRIMARY KEY,
                gameweek INTEGER NOT NULL,
                synced_at TEXT NOT NULL,
                n_players INTEGER,
                n_teams INTEGER,
                n_fixtures INTEGER,
                n_events INTEGER,
                written_at TEXT
            )
        """)
        for table, schema in SNAPSHOT_SCHEMAS.items():
            conn.execute(schema_to_create_table(
                table,
                schema,
                extra_columns=["generation_key TEXT NOT NULL"],
                primary_key=("generation_key", "id"),
            ))

    def _create_artifact_tables(self, conn: sqlite3.Connection) -> None:
        """Create tables for promoted artifacts and their ranked picks."""
        conn.execute("""
            CREATE TABLE IF NOT EXISTS artifacts (
                generation_key TEXT PRIMARY KEY,
                gameweek INTEGER NOT NULL,
                synced_at TEXT NOT NULL,
                scorer TEXT,
                n_picks INTEGER,
                created_at TEXT,
                promoted_at TEXT
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS recommendations (
                generation_key TEXT NOT NULL,
                rank INTEGER NOT NULL,
                player_id INTEGER NOT NULL,
                score REAL,
                now_cost INTEGER,
                web_name TEXT,
                reasoning TEXT,
                PRIMARY KEY (generation_key, rank),
                UNIQUE (generation_key, player_id)
            )
        """)

    def _create_control_tables(self, conn: sqlite3.Connection) -> None:
        """Create the single-row published pointer and run lock."""
        conn.execute("""
            CREATE TABLE IF NOT EXISTS published (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                generation_key TEXT NOT NULL,
                gameweek INTEGER NOT NULL,
                synced_at TEXT NOT NULL,
                promoted_at TEXT
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS run_lock (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                run_id TEXT NOT NULL,
                started_at TEXT NOT NULL
            )
        """)

    def _create_indexes(self, conn: sqlite3.Connection) -> None:
        """Create database indexes for common query patterns."""
        conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_snapshots_order
            ON snapshots(gameweek, synced_at)
        """)
        conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_players_team
            ON players(generation_key, team)
        """)
        conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_fixtures_event
            ON fixtures(generation_key, event)
        """)

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    def _bulk_insert(
        self,
        conn: sqlite3.Connection,
        table: str,
        columns: List[str],
        rows: List[tuple],
    ) -> None:
        """Bulk insert rows efficiently."""
        if not rows:
            return
        placeholders = ", ".join("?" * len(columns))
        cols = ", ".join(columns)
        conn.executemany(
            f"INSERT INTO {table} ({cols}) VALUES ({placeholders})",
            rows,
        )

    def write_snapshot(self, snapshot: Snapshot) -> None:
        """Write a whole snapshot in one transaction.

        Rows already stored under the same generation are replaced, so a
        re-run for the same generation id never duplicates records.
        The published generation is never rewritten.

        Raises:
            StoreWriteFailure: If any statement fails; nothing is written.
            StaleSnapshot: If the generation is the published one.
        """
        key = snapshot.generation.key
        records = {
            "players": snapshot.players,
            "teams": snapshot.teams,
            "fixtures": snapshot.fixtures,
            "events": snapshot.events,
        }

        try:
            with self._transaction() as conn:
                published = conn.execute(Q.PUBLISHED_CURRENT).fetchone()
                if published is not None and published["generation_key"] == key:
                    raise StaleSnapshot(f"Snapshot {key} is published and cannot be rewritten")

                for table in Q.SNAPSHOT_TABLES:
                    conn.execute(Q.SNAPSHOT_DELETE_ROWS.format(table=table), (key,))

                conn.execute(Q.SNAPSHOT_UPSERT, (
                    key, snapshot.gameweek, snapshot.generation.stamp,
                    len(snapshot.players), len(snapshot.teams),
                    len(snapshot.fixtures), len(snapshot.events),
                    utcnow().isoformat(),
                ))

                for table, schema in SNAPSHOT_SCHEMAS.items():
                    columns = schema_columns(schema)
                    rows = []
                    for record in records[table].values():
                        values = record.model_dump()
                        rows.append((key, *(values[c] for c in columns)))
                    self._bulk_insert(conn, table, ["generation_key"] + columns, rows)
        except sqlite3.Error as e:
            raise StoreWriteFailure(f"Snapshot {key} write failed: {e}") from e

        logger.info(
            f"Snapshot {key} committed: {len(snapshot.players)} players, "
            f"{len(snapshot.teams)} teams, {len(snapshot.fixtures)} fixtures"
        )

    def load_snapshot(self, generation: GenerationId) -> Optional[Snapshot]:
        """Load a stored snapshot, or None if that generation was never written."""
        key = generation.key
        if not self.query(Q.SNAPSHOT_BY_KEY, (key,)):
            return None

        loaded = {}
        for table, schema in SNAPSHOT_SCHEMAS.items():
            rows = self.query(Q.SNAPSHOT_ROWS.format(table=table), (key,))
            records = {}
            for row in rows:
                row.pop("generation_key")
                record = schema.model_validate(row)
                records[record.id] = record
            loaded[table] = records

        return Snapshot(generation=generation, **loaded)

    def latest_snapshot_generation(self) -> Optional[GenerationId]:
        rows = self.query(Q.SNAPSHOT_LATEST)
        return GenerationId.parse(rows[0]["generation_key"]) if rows else None

    def load_latest_snapshot(self) -> Optional[Snapshot]:
        generation = self.latest_snapshot_generation()
        return self.load_snapshot(generation) if generation else None

    def list_snapshots(self) -> List[Dict[str, Any]]:
        """Stored snapshot headers, newest first."""
        return self.query(Q.SNAPSHOTS_ALL)

    def prune_snapshots(self, keep: int) -> int:
        """Delete superseded snapshots beyond the newest ``keep``.

        The snapshot paired with the published artifact is always kept,
        along with its artifact.

        Returns:
            Number of generations deleted.

        Raises:
            ValueError: If keep < 1.
            StoreWriteFailure: If the delete fails; nothing is deleted.
        """
        if keep < 1:
            raise ValueError(f"keep must be >= 1, got {keep}")

        try:
            with self._transaction() as conn:
                published = conn.execute(Q.PUBLISHED_CURRENT).fetchone()
                published_key = published["generation_key"] if published else None
                keys = [r["generation_key"] for r in conn.execute(Q.SNAPSHOTS_ALL).fetchall()]
                doomed = [k for k in keys[keep:] if k != published_key]

                for key in doomed:
                    for table in Q.SNAPSHOT_TABLES:
                        conn.execute(Q.SNAPSHOT_DELETE_ROWS.format(table=table), (key,))
                    conn.execute(Q.RECOMMENDATIONS_DELETE, (key,))
                    conn.execute(Q.ARTIFACT_DELETE, (key,))
                    conn.execute(Q.SNAPSHOT_DELETE, (key,))
        except sqlite3.Error as e:
            raise StoreWriteFailure(f"Snapshot pruning failed: {e}") from e

        if doomed:
            logger.info(f"Pruned {len(doomed)} superseded snapshot(s)")
        return len(doomed)

    # -------------------------------------------------------------------------
    # Promotion
    # -------------------------------------------------------------------------

    def get_published_generation(self) -> Optional[GenerationId]:
        """Generation of the artifact consumers currently see."""
        rows = self.query(Q.PUBLISHED_CURRENT)
        return GenerationId.parse(rows[0]["generation_key"]) if rows else None

    def load_published_artifact(self) -> Optional[RecommendationArtifact]:
        generation = self.get_published_generation()
        if generation is None:
            return None
        header = self.query(Q.ARTIFACT_BY_KEY, (generation.key,))[0]
        rows = self.query(Q.RECOMMENDATIONS_BY_KEY, (generation.key,))
        picks = [
            RankedPick(
                rank=r["rank"], player_id=r["player_id"], score=r["score"],
                now_cost=r["now_cost"], web_name=r["web_name"], reasoning=r["reasoning"],
            )
            for r in rows
        ]
        return RecommendationArtifact(
            generation=generation,
            picks=picks,
            scorer=header["scorer"],
            created_at=datetime.fromisoformat(header["created_at"]),
        )

    def promote(
        self,
        artifact: RecommendationArtifact,
        expected: Optional[GenerationId],
    ) -> None:
        """Atomically make ``artifact`` the current published artifact.

        Compare-and-swap on the published generation: succeeds only if the
        current pointer still equals ``expected`` and the artifact is
        strictly newer. Artifact rows and the pointer move in the same
        transaction.

        Raises:
            PromotionConflict: Pointer moved, artifact not newer, or its
                snapshot is missing. Nothing is written.
            StoreWriteFailure: If the transaction fails. Nothing is written.
        """
        generation = artifact.generation
        key = generation.key
        now = utcnow().isoformat()

        try:
            with self._transaction() as conn:
                row = conn.execute(Q.PUBLISHED_CURRENT).fetchone()
                current = GenerationId.parse(row["generation_key"]) if row else None

                if current != expected:
                    raise PromotionConflict(
                        f"Published generation is {current}, expected {expected}"
                    )
                if current is not None and not generation > current:
                    raise PromotionConflict(
                        f"Generation {key} is not newer than published {current}"
                    )
                if conn.execute(Q.SNAPSHOT_BY_KEY, (key,)).fetchone() is None:
                    raise PromotionConflict(f"Snapshot {key} is not in the store")

                conn.execute(Q.ARTIFACT_INSERT, (
                    key, generation.gameweek, generation.stamp, artifact.scorer,
                    len(artifact.picks), artifact.created_at.isoformat(), now,
                ))
                conn.executemany(Q.RECOMMENDATION_INSERT, [
                    (key, p.rank, p.player_id, p.score, p.now_cost, p.web_name, p.reasoning)
                    for p in artifact.picks
                ])
                conn.execute(Q.PUBLISHED_SET, (key, generation.gameweek, generation.stamp, now))
        except sqlite3.Error as e:
            raise StoreWriteFailure(f"Promotion of {key} failed: {e}") from e

        logger.info(f"Promoted {key} ({len(artifact.picks)} picks) to current")

    # -------------------------------------------------------------------------
    # Run lock
    # -------------------------------------------------------------------------

    def acquire_run_lock(
        self,
        run_id: str,
        now: Optional[datetime] = None,
        ttl_seconds: int = RUN_LOCK_TTL_SECONDS,
    ) -> None:
        """Mark a run as in progress.

        A lock older than ``ttl_seconds`` belongs to a run that died
        without releasing it and is taken over.

        Raises:
            RunInProgress: If another live run holds the lock.
            StoreWriteFailure: If the lock cannot be written.
        """
        now = now or utcnow()
        try:
            with self._transaction() as conn:
                row = conn.execute(Q.RUN_LOCK_CURRENT).fetchone()
                if row is not None:
                    started_at = datetime.fromisoformat(row["started_at"])
                    age = (now - started_at).total_seconds()
                    if age < ttl_seconds:
                        raise RunInProgress(row["run_id"], started_at)
                    logger.warning(
                        f"Taking over abandoned run lock {row['run_id']} "
                        f"(held for {age:.0f}s)"
                    )
                conn.execute(Q.RUN_LOCK_SET, (run_id, now.isoformat()))
        except sqlite3.Error as e:
            raise StoreWriteFailure(f"Cannot acquire run lock: {e}") from e

    def release_run_lock(self, run_id: str) -> bool:
        """Release the lock if ``run_id`` still holds it.

        Returns:
            True if the lock was released.
        """
        try:
            with self._transaction() as conn:
                released = conn.execute(Q.RUN_LOCK_RELEASE, (run_id,)).rowcount > 0
        except sqlite3.Error as e:
            raise StoreWriteFailure(f"Cannot release run lock: {e}") from e
        if not released:
            logger.warning(f"Run lock no longer held by {run_id}")
        return released

    def current_run_lock(self) -> Optional[Dict[str, Any]]:
        rows = self.query(Q.RUN_LOCK_CURRENT)
        return rows[0] if rows else None
