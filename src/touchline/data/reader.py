"""Read-only access to the published generation.

Downstream consumers (the web front-end, reporting scripts) read through
PublishedReader. It opens the store in SQLite read-only mode and only
ever joins through the ``published`` pointer, so it cannot observe a
generation that is still being written or failed validation.

Key Methods:
    get_current_generation() - Generation consumers currently see
    get_current_recommendations() - Ranked picks with player/team info
    get_players() - Players of the published snapshot
    get_fixtures() - Fixtures of the published snapshot for a gameweek

Usage:
    from touchline.data import PublishedReader

    reader = PublishedReader()
    picks = reader.get_current_recommendations(top_n=5)
"""

from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from touchline.config import DEFAULT_DB_PATH, ELEMENT_TYPE_TO_POS
from touchline.data import queries as Q
from touchline.data.models import GenerationId
from touchline.data.store import _dict_factory


class PublishedReader:
    """Lightweight read-only SQLite client for published data."""

    def __init__(self, db_path: Optional[str] = None) -> None:
        self.db_path = db_path or DEFAULT_DB_PATH
        if not os.path.exists(self.db_path):
            raise FileNotFoundError(f"Database not found: {self.db_path}")

    @contextmanager
    def _conn(self):
        uri = Path(self.db_path).resolve().as_uri() + "?mode=ro"
        conn = sqlite3.connect(uri, uri=True)
        conn.row_factory = _dict_factory
        try:
            yield conn
        finally:
            conn.close()

    def query(self, sql: str, params: tuple = ()) -> List[Dict[str, Any]]:
        """Execute raw SQL and return list of dicts."""
        with self._conn() as conn:
            cur = conn.execute(sql, params)
            return cur.fetchall()

    def get_current_generation(self) -> Optional[GenerationId]:
        """Get the published generation, or None before the first publish."""
        rows = self.query(Q.PUBLISHED_CURRENT)
        return GenerationId.parse(rows[0]["generation_key"]) if rows else None

    def get_current_recommendations(self, top_n: int = 10) -> pd.DataFrame:
        """Get the top published captain picks.

        Returns DataFrame with rank, player_id, player_name, team_name,
        position, score, cost and reasoning. Empty before the first publish.
        """
        df = pd.DataFrame(self.query(Q.RECOMMENDATIONS_CURRENT, (top_n,)))
        if df.empty:
            return df
        df["position"] = df["element_type"].map(ELEMENT_TYPE_TO_POS)
        df["cost"] = df["now_cost"] / 10.0
        return df

    def get_players(self) -> pd.DataFrame:
        """Get all players of the published snapshot."""
        return pd.DataFrame(self.query(Q.PUBLISHED_PLAYERS))

    def get_fixtures(self, gw: Optional[int] = None) -> List[Dict]:
        """Get published fixtures for a gameweek (default: the published one)."""
        if gw is None:
            generation = self.get_current_generation()
            if generation is None:
                return []
            gw = generation.gameweek
        return self.query(Q.PUBLISHED_FIXTURES_BY_GW, (gw,))

    def get_events(self) -> List[Dict]:
        """Get the gameweek calendar of the published snapshot."""
        return self.query(Q.PUBLISHED_EVENTS)
