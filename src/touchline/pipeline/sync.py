"""Sync stage - pulls upstream FPL state into a new snapshot.

Fetches bootstrap-static and fixtures from the official FPL API,
validates every row against the pydantic schemas, and commits the result
as one Snapshot under a fresh generation id.

Both upstream calls complete before anything is written, and the write
is a single transaction, so a failed sync leaves the store untouched.

Key Classes:
    SyncStage - Fetch, reconcile and commit one snapshot

Usage:
    from touchline.pipeline.sync import SyncStage

    snapshot = SyncStage(FPLApiClient(), SnapshotStore()).run()
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Dict, Iterable, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from touchline.data.api_client import FPLApiClient
from touchline.data.models import GenerationId, Snapshot, utcnow
from touchline.data.schemas import EventSchema, FixtureSchema, PlayerSchema, TeamSchema
from touchline.data.store import SnapshotStore
from touchline.errors import StaleSnapshot

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=BaseModel)


def validate_rows(label: str, schema: Type[R], raw_rows: Iterable[Dict]) -> Dict[int, R]:
    """Validate upstream rows, keyed by id.

    Invalid rows are skipped with a warning. When an id repeats, the last
    occurrence wins.
    """
    records: Dict[int, R] = {}
    errors = []
    duplicates = []

    for raw in raw_rows:
        try:
            record = schema.model_validate(raw)
        except ValidationError as e:
            errors.append((raw.get("id", "unknown") if isinstance(raw, dict) else "unknown", str(e)))
            continue
        if record.id in records:
            duplicates.append(record.id)
        records[record.id] = record

    if errors:
        logger.warning(f"Skipped {len(errors)} {label} with invalid schema: {errors[:3]}...")
    if duplicates:
        logger.warning(f"Upstream repeated {len(duplicates)} {label} id(s): {duplicates[:5]}")

    return records


class SyncStage:
    """Fetches upstream data and commits it as one snapshot."""

    def __init__(
        self,
        client: FPLApiClient,
        store: SnapshotStore,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.client = client
        self.store = store
        self.clock = clock

    def run(self, generation: Optional[GenerationId] = None) -> Snapshot:
        """Sync the current upstream state.

        Args:
            generation: Generation to write. Defaults to the upstream target
                gameweek stamped with the current time. Passing the id of
                an existing snapshot re-syncs it in place.

        Returns:
            The committed Snapshot.

        Raises:
            UpstreamUnavailable: If the FPL API cannot be reached.
            StaleSnapshot: If ``generation`` is older than the latest
                stored snapshot, or is the published generation.
            StoreWriteFailure: If the snapshot cannot be committed.
        """
        bootstrap = self.client.get_bootstrap(force=True)
        fixtures = self.client.get_fixtures()

        if generation is None:
            generation = GenerationId.new(self.client.get_target_gw(), self.clock())

        latest = self.store.latest_snapshot_generation()
        if latest is not None and generation < latest:
            raise StaleSnapshot(
                f"Generation {generation} is older than stored snapshot {latest}"
            )

        snapshot = Snapshot(
            generation=generation,
            players=validate_rows("players", PlayerSchema, bootstrap.get("elements", [])),
            teams=validate_rows("teams", TeamSchema, bootstrap.get("teams", [])),
            fixtures=validate_rows("fixtures", FixtureSchema, fixtures),
            events=validate_rows("events", EventSchema, bootstrap.get("events", [])),
        )
        logger.info(
            f"Reconciled GW{generation.gameweek}: {len(snapshot.players)} players, "
            f"{len(snapshot.teams)} teams, {len(snapshot.fixtures)} fixtures"
        )

        self.store.write_snapshot(snapshot)
        return snapshot
