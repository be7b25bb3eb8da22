"""Data module - upstream API, store, schemas and data model.

Public API:
    FPLApiClient - HTTP client for FPL API
    SnapshotStore - SQLite store used by the pipeline
    PublishedReader - Read-only access for consumers
    GenerationId, Snapshot, RecommendationArtifact, ... - Data model
    PlayerSchema, FixtureSchema, etc. - Pydantic records
"""

from touchline.data.api_client import FPLApiClient
from touchline.data.store import SnapshotStore
from touchline.data.reader import PublishedReader
from touchline.data.models import (
    GenerationId,
    RankedPick,
    RecommendationArtifact,
    Snapshot,
    ValidationReport,
)
from touchline.data.schemas import (
    EventSchema,
    FixtureSchema,
    PlayerSchema,
    TeamSchema,
    # Record aliases
    EventRecord,
    FixtureRecord,
    PlayerRecord,
    TeamRecord,
)

__all__ = [
    "FPLApiClient",
    "SnapshotStore",
    "PublishedReader",
    "GenerationId",
    "RankedPick",
    "RecommendationArtifact",
    "Snapshot",
    "ValidationReport",
    "EventSchema",
    "FixtureSchema",
    "PlayerSchema",
    "TeamSchema",
    "EventRecord",
    "FixtureRecord",
    "PlayerRecord",
    "TeamRecord",
]
