"""Recommendation generation stage.

Ranks every eligible player of a snapshot with a pluggable scorer.

Ranking Rule (deterministic):
    score desc -> now_cost asc -> web_name asc -> player_id asc

Eligibility:
    Players whose status is injured (i), not available (n), suspended (s)
    or unavailable (u) are excluded. Doubtful players (d) stay in and are
    discounted by the scorer through chance of playing.

The stage has no side effects: the artifact stays in memory until the
validation stage promotes it.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List, Optional, Union

import pandas as pd

from touchline.config import DEFAULT_SCORER, MIN_ELIGIBLE_PLAYERS, UNAVAILABLE_STATUSES
from touchline.data.models import (
    GenerationId,
    RankedPick,
    RecommendationArtifact,
    Snapshot,
    utcnow,
)
from touchline.data.schemas import PlayerRecord
from touchline.errors import InsufficientData, StaleSnapshot
from touchline.pipeline.scoring import Scorer, get_scorer

logger = logging.getLogger(__name__)

RANK_COLUMNS = ["score", "now_cost", "web_name", "player_id"]
RANK_ASCENDING = [False, True, True, True]


def eligible_players(snapshot: Snapshot) -> List[PlayerRecord]:
    """Players that can be recommended, in id order."""
    return [
        p for _, p in sorted(snapshot.players.items())
        if p.status not in UNAVAILABLE_STATUSES
    ]


class RecommendationGenerator:
    """Builds a ranked RecommendationArtifact from a snapshot."""

    def __init__(
        self,
        scorer: Union[str, Scorer] = DEFAULT_SCORER,
        min_eligible: int = MIN_ELIGIBLE_PLAYERS,
        clock: Callable[[], datetime] = utcnow,
    ):
        if isinstance(scorer, str):
            self.scorer_name = scorer
            self.scorer = get_scorer(scorer)
        else:
            self.scorer_name = getattr(scorer, "__name__", type(scorer).__name__)
            self.scorer = scorer
        self.min_eligible = min_eligible
        self.clock = clock

    def rank(self, snapshot: Snapshot, players: List[PlayerRecord]) -> pd.DataFrame:
        """Score and rank players.

        Returns:
            DataFrame sorted by the ranking rule with columns player_id,
            web_name, now_cost, score, reasoning.
        """
        rows = []
        for player in players:
            score, reasoning = self.scorer(player, snapshot)
            rows.append({
                "player_id": player.id,
                "web_name": player.web_name,
                "now_cost": player.now_cost,
                "score": float(score),
                "reasoning": reasoning,
            })

        df = pd.DataFrame(rows, columns=["player_id", "web_name", "now_cost", "score", "reasoning"])
        return df.sort_values(RANK_COLUMNS, ascending=RANK_ASCENDING).reset_index(drop=True)

    def generate(
        self,
        snapshot: Snapshot,
        published: Optional[GenerationId] = None,
    ) -> RecommendationArtifact:
        """Generate ranked recommendations for a snapshot.

        Args:
            snapshot: Source snapshot.
            published: Generation of the currently published artifact.

        Returns:
            Candidate artifact, not yet persisted.

        Raises:
            StaleSnapshot: If the snapshot is older than ``published``.
            InsufficientData: If fewer than ``min_eligible`` players can
                be recommended.
        """
        if published is not None and snapshot.generation < published:
            raise StaleSnapshot(
                f"Snapshot {snapshot.generation} is older than published {published}"
            )

        players = eligible_players(snapshot)
        excluded = len(snapshot.players) - len(players)
        logger.info(
            f"GW{snapshot.gameweek}: {len(players)} eligible players "
            f"({excluded} unavailable excluded)"
        )

        if len(players) < self.min_eligible:
            raise InsufficientData(
                f"Need at least {self.min_eligible} eligible players, got {len(players)}"
            )

        ranked = self.rank(snapshot, players)
        picks = [
            RankedPick(
                rank=i,
                player_id=int(row.player_id),
                score=float(row.score),
                now_cost=int(row.now_cost),
                web_name=row.web_name,
                reasoning=row.reasoning,
            )
            for i, row in enumerate(ranked.itertuples(index=False), start=1)
        ]

        top = picks[0]
        logger.info(
            f"Ranked {len(picks)} players with {self.scorer_name}; "
            f"top pick {top.web_name} ({top.score:.2f})"
        )

        return RecommendationArtifact(
            generation=snapshot.generation,
            picks=picks,
            scorer=self.scorer_name,
            created_at=self.clock(),
        )
