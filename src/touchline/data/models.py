"""Pipeline data model: generations, snapshots and recommendation artifacts.

A Snapshot is one reconciled copy of upstream data tagged with a
GenerationId. A RecommendationArtifact is the ranked output derived from
exactly one Snapshot. Both are immutable once built.

Key Classes:
    GenerationId - (gameweek, synced_at), totally ordered
    Snapshot - players/teams/fixtures/events of one generation
    RankedPick - one ranked captain candidate with its justification
    RecommendationArtifact - ordered picks of one generation
    ValidationReport - outcome of checking an artifact
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from touchline.data.schemas import EventRecord, FixtureRecord, PlayerRecord, TeamRecord

_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"
_KEY_PATTERN = re.compile(r"^gw(\d+)@(.+)$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, order=True)
class GenerationId:
    """Monotonic data version: target gameweek, then sync time (UTC)."""

    gameweek: int
    synced_at: datetime

    def __post_init__(self):
        ts = self.synced_at
        ts = ts.replace(tzinfo=timezone.utc) if ts.tzinfo is None else ts.astimezone(timezone.utc)
        object.__setattr__(self, "synced_at", ts)

    @classmethod
    def new(cls, gameweek: int, now: Optional[datetime] = None) -> "GenerationId":
        return cls(gameweek, now or utcnow())

    @classmethod
    def parse(cls, key: str) -> "GenerationId":
        """Inverse of ``key``.

        Raises:
            ValueError: If the key is malformed.
        """
        match = _KEY_PATTERN.match(key)
        if not match:
            raise ValueError(f"Malformed generation key: {key!r}")
        synced_at = datetime.strptime(match.group(2), _TIMESTAMP_FORMAT)
        return cls(int(match.group(1)), synced_at)

    @property
    def stamp(self) -> str:
        return self.synced_at.strftime(_TIMESTAMP_FORMAT)

    @property
    def key(self) -> str:
        """Stable string form, e.g. ``gw07@2025-09-30T06:00:00.000000Z``."""
        return f"gw{self.gameweek:02d}@{self.stamp}"

    def __str__(self) -> str:
        return self.key


def ranking_key(score: float, now_cost: int, web_name: str, player_id: int) -> Tuple:
    """Sort key for ranked picks: score desc, then cheapest, then name, then id."""
    return (-score, now_cost, web_name, player_id)


@dataclass(frozen=True)
class Snapshot:
    """Reconciled upstream state for one generation."""

    generation: GenerationId
    players: Dict[int, PlayerRecord] = field(default_factory=dict)
    teams: Dict[int, TeamRecord] = field(default_factory=dict)
    fixtures: Dict[int, FixtureRecord] = field(default_factory=dict)
    events: Dict[int, EventRecord] = field(default_factory=dict)

    @property
    def gameweek(self) -> int:
        return self.generation.gameweek

    def team_short(self, team_id: int) -> str:
        team = self.teams.get(team_id)
        return (team.short_name or team.name or "?") if team else "?"

    def fixtures_for(self, team_id: int, gw: Optional[int] = None) -> List[FixtureRecord]:
        """Fixtures of a team in a gameweek (default: the snapshot's gameweek).

        Empty for a blank gameweek, two entries for a double.
        """
        gw = self.gameweek if gw is None else gw
        matches = [
            f for f in self.fixtures.values()
            if f.event == gw and team_id in (f.team_h, f.team_a)
        ]
        return sorted(matches, key=lambda f: (f.kickoff_time or "", f.id))


@dataclass(frozen=True)
class RankedPick:
    """One captain candidate in ranked position."""

    rank: int
    player_id: int
    score: float
    now_cost: int
    web_name: str
    reasoning: str

    @property
    def sort_key(self) -> Tuple:
        return ranking_key(self.score, self.now_cost, self.web_name, self.player_id)


@dataclass(frozen=True)
class RecommendationArtifact:
    """Ranked recommendations derived from one Snapshot."""

    generation: GenerationId
    picks: List[RankedPick]
    scorer: str
    created_at: datetime = field(default_factory=utcnow)

    @property
    def player_ids(self) -> List[int]:
        return [p.player_id for p in self.picks]

    def top(self, n: int = 5) -> List[RankedPick]:
        return self.picks[:n]

    def __len__(self) -> int:
        return len(self.picks)


@dataclass
class ValidationReport:
    """Outcome of validating a candidate artifact. Never persisted."""

    generation: GenerationId
    violations: List[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.violations

    def add(self, violation: str) -> None:
        self.violations.append(violation)
