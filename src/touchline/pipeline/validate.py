"""Validation stage - checks a candidate artifact and promotes it.

Invariants checked against the source snapshot:
    - the artifact has picks and was derived from this snapshot
    - every pick resolves to a player in the snapshot
    - no player id appears twice
    - ranks are 1..n and strictly ordered by the ranking rule,
      using the snapshot's price and name for each player
    - every score is finite
    - every reasoning names its player
    - the generation is newer than the published one

Promotion happens if and only if every check passes. A failed artifact
is discarded; the store is not touched.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Optional

import numpy as np

from touchline.data.models import (
    GenerationId,
    RecommendationArtifact,
    Snapshot,
    ValidationReport,
    ranking_key,
)
from touchline.data.store import SnapshotStore
from touchline.errors import PromotionConflict, ValidationFailed

logger = logging.getLogger(__name__)


class Validator:
    """Pure invariant checks; no store access."""

    def check(
        self,
        artifact: RecommendationArtifact,
        snapshot: Snapshot,
        published: Optional[GenerationId] = None,
    ) -> ValidationReport:
        report = ValidationReport(generation=artifact.generation)
        picks = artifact.picks

        if not picks:
            report.add("artifact has no picks")

        if artifact.generation != snapshot.generation:
            report.add(
                f"artifact generation {artifact.generation} does not match "
                f"snapshot {snapshot.generation}"
            )

        if published is not None and not artifact.generation > published:
            report.add(
                f"generation {artifact.generation} is not newer than published {published}"
            )

        ranks_by_id = defaultdict(list)
        for pick in picks:
            ranks_by_id[pick.player_id].append(pick.rank)
        for player_id, ranks in sorted(ranks_by_id.items()):
            if len(ranks) > 1:
                report.add(f"duplicate player id {player_id} at ranks {ranks}")

        if [p.rank for p in picks] != list(range(1, len(picks) + 1)):
            report.add(f"ranks are not contiguous 1..{len(picks)}")

        finite = np.isfinite(np.array([p.score for p in picks], dtype=float))
        for pick, ok in zip(picks, finite):
            if not ok:
                report.add(f"rank {pick.rank}: non-finite score {pick.score}")

        keys = []
        for pick in picks:
            player = snapshot.players.get(pick.player_id)
            if player is None:
                report.add(f"rank {pick.rank}: player id {pick.player_id} not in snapshot")
                keys.append(None)
                continue
            if (pick.now_cost, pick.web_name) != (player.now_cost, player.web_name):
                report.add(
                    f"rank {pick.rank}: price/name of player {pick.player_id} "
                    f"differ from snapshot"
                )
            if player.web_name not in pick.reasoning:
                report.add(
                    f"rank {pick.rank}: reasoning does not mention {player.web_name}"
                )
            keys.append(ranking_key(pick.score, player.now_cost, player.web_name, pick.player_id))

        for i in range(1, len(picks)):
            prev, cur = keys[i - 1], keys[i]
            if prev is None or cur is None or not (finite[i - 1] and finite[i]):
                continue
            if not prev < cur:
                report.add(
                    f"rank {picks[i].rank} (player {picks[i].player_id}) is not "
                    f"strictly after rank {picks[i - 1].rank} (player {picks[i - 1].player_id})"
                )

        return report


class ValidationStage:
    """Validates a candidate artifact and promotes it if it passes."""

    def __init__(self, store: SnapshotStore, validator: Optional[Validator] = None):
        self.store = store
        self.validator = validator or Validator()

    def run(self, artifact: RecommendationArtifact, snapshot: Snapshot) -> ValidationReport:
        """Check the artifact and, only if it passes, make it current.

        Returns:
            The passed ValidationReport.

        Raises:
            ValidationFailed: If any invariant is broken, or another run
                published in between. Nothing is promoted.
            StoreWriteFailure: If the promotion transaction fails.
        """
        published = self.store.get_published_generation()
        report = self.validator.check(artifact, snapshot, published)

        if not report.passed:
            logger.error(
                f"Validation failed for {artifact.generation}: "
                f"{len(report.violations)} violation(s)"
            )
            for violation in report.violations[:10]:
                logger.error(f"  - {violation}")
            raise ValidationFailed(report.violations, report)

        try:
            self.store.promote(artifact, expected=published)
        except PromotionConflict as e:
            report.add(f"superseded during promotion: {e}")
            raise ValidationFailed(report.violations, report) from e

        logger.info(f"Validation passed for {artifact.generation}")
        return report
