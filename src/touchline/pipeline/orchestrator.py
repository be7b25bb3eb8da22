"""Pipeline orchestrator - one refresh run, start to finish.

State machine:
    IDLE -> SYNCING -> GENERATING -> VALIDATING -> PUBLISHED
                 \\            \\             \\
                  +------------+-------------+--> FAILED

Stages run in-process and strictly in sequence. Each stage's outcome is
wrapped in a StageResult (value or PipelineError); the first error moves
the run to FAILED and later stages never start. There is no pipeline
level retry - upstream retries live inside the API client.

A run lock in the store makes overlapping runs fail fast with
RunInProgress instead of interleaving writes.

Usage:
    from touchline.pipeline import PipelineOrchestrator

    result = PipelineOrchestrator(SnapshotStore(), FPLApiClient()).run()
    print(result.summary())
    sys.exit(result.exit_code)
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, List, Optional, Union

from touchline.config import (
    DEFAULT_SCORER,
    EXIT_FAILED,
    EXIT_PUBLISHED,
    EXIT_RUN_IN_PROGRESS,
    MIN_ELIGIBLE_PLAYERS,
    RUN_LOCK_TTL_SECONDS,
    SNAPSHOT_RETENTION,
)
from touchline.data.api_client import FPLApiClient
from touchline.data.models import GenerationId, RecommendationArtifact, Snapshot, utcnow
from touchline.data.store import SnapshotStore
from touchline.errors import PipelineError, RunInProgress, StoreError, StoreReadFailure
from touchline.pipeline.generate import RecommendationGenerator
from touchline.pipeline.scoring import Scorer
from touchline.pipeline.sync import SyncStage
from touchline.pipeline.validate import ValidationStage

logger = logging.getLogger(__name__)


class PipelineState(Enum):
    IDLE = "idle"
    SYNCING = "syncing"
    GENERATING = "generating"
    VALIDATING = "validating"
    PUBLISHED = "published"
    FAILED = "failed"


@dataclass
class StageResult:
    """Tagged outcome of one stage: either a value or an error."""

    stage: PipelineState
    value: Any = None
    error: Optional[PipelineError] = None
    elapsed: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class PipelineResult:
    """Terminal outcome of a run, reported to the caller."""

    run_id: str
    state: PipelineState
    started_at: datetime
    finished_at: datetime
    generation: Optional[GenerationId] = None
    artifact: Optional[RecommendationArtifact] = None
    failed_stage: Optional[PipelineState] = None
    error: Optional[PipelineError] = None
    stages: List[StageResult] = field(default_factory=list)
    transitions: List[PipelineState] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.state is PipelineState.PUBLISHED

    @property
    def exit_code(self) -> int:
        if self.ok:
            return EXIT_PUBLISHED
        if isinstance(self.error, RunInProgress):
            return EXIT_RUN_IN_PROGRESS
        return EXIT_FAILED

    def summary(self) -> str:
        """Consolidated human-readable report of the run."""
        lines = [f"Run {self.run_id}: {self.state.value.upper()}"]
        if self.generation is not None:
            lines.append(f"  Generation: {self.generation}")
        for stage in self.stages:
            status = "ok" if stage.ok else "FAILED"
            lines.append(f"  {stage.stage.value:<11} {status:<6} {stage.elapsed:6.2f}s")
        if self.artifact is not None and self.ok:
            lines.append(f"  Published {len(self.artifact)} ranked picks ({self.artifact.scorer})")
            for pick in self.artifact.top(3):
                lines.append(f"    {pick.rank}. {pick.web_name:<20} {pick.score:6.2f}")
        if self.error is not None:
            where = self.failed_stage.value if self.failed_stage else "startup"
            lines.append(f"  Failed during {where}: {type(self.error).__name__}: {self.error}")
            if self.error.transient:
                lines.append("  Transient failure, retry later")
        lines.append(f"  Finished at {self.finished_at.isoformat()}")
        return "\n".join(lines)


class PipelineOrchestrator:
    """Runs Sync -> Generate -> Validate once, under the run lock."""

    def __init__(
        self,
        store: SnapshotStore,
        client: FPLApiClient,
        scorer: Union[str, Scorer] = DEFAULT_SCORER,
        min_eligible: int = MIN_ELIGIBLE_PLAYERS,
        snapshot_retention: int = SNAPSHOT_RETENTION,
        lock_ttl_seconds: int = RUN_LOCK_TTL_SECONDS,
        clock: Callable[[], datetime] = utcnow,
        generator: Optional[RecommendationGenerator] = None,
    ):
        self.store = store
        self.client = client
        self.snapshot_retention = snapshot_retention
        self.lock_ttl_seconds = lock_ttl_seconds
        self.clock = clock

        self.sync = SyncStage(client, store, clock=clock)
        self.generator = generator or RecommendationGenerator(
            scorer=scorer, min_eligible=min_eligible, clock=clock
        )
        self.validation = ValidationStage(store)

        self.state = PipelineState.IDLE
        self.transitions: List[PipelineState] = []

    def _transition(self, state: PipelineState) -> None:
        logger.info(f"[{self.state.value} -> {state.value}]")
        self.state = state
        self.transitions.append(state)

    def _run_stage(self, state: PipelineState, fn: Callable, *args) -> StageResult:
        self._transition(state)
        started = time.monotonic()
        try:
            value = fn(*args)
        except PipelineError as e:
            logger.error(f"❌ {state.value} failed: {type(e).__name__}: {e}")
            return StageResult(state, error=e, elapsed=time.monotonic() - started)
        return StageResult(state, value=value, elapsed=time.monotonic() - started)

    def _generate(self, snapshot: Snapshot) -> tuple:
        # Rank what consumers will see: the committed snapshot, not the in-memory copy
        stored = self.store.load_snapshot(snapshot.generation)
        if stored is None:
            raise StoreReadFailure(f"Snapshot {snapshot.generation} missing after sync")
        published = self.store.get_published_generation()
        return self.generator.generate(stored, published), stored

    def run(self, generation: Optional[GenerationId] = None) -> PipelineResult:
        """Execute one pipeline run.

        Args:
            generation: Explicit generation id for the sync (re-runs);
                default is a fresh one.

        Returns:
            PipelineResult in state PUBLISHED or FAILED.
        """
        run_id = uuid.uuid4().hex[:12]
        started_at = self.clock()
        self.state = PipelineState.IDLE
        self.transitions = [PipelineState.IDLE]
        stages: List[StageResult] = []

        def finish(**kwargs) -> PipelineResult:
            return PipelineResult(
                run_id=run_id,
                state=self.state,
                started_at=started_at,
                finished_at=self.clock(),
                stages=stages,
                transitions=list(self.transitions),
                **kwargs,
            )

        logger.info(f"🚀 Starting pipeline run {run_id}")
        try:
            self.store.acquire_run_lock(run_id, now=started_at, ttl_seconds=self.lock_ttl_seconds)
        except PipelineError as e:
            logger.error(f"❌ Cannot start run {run_id}: {e}")
            self._transition(PipelineState.FAILED)
            return finish(error=e)

        try:
            synced = self._run_stage(PipelineState.SYNCING, self.sync.run, generation)
            stages.append(synced)
            if not synced.ok:
                return self._fail(finish, synced)
            snapshot = synced.value

            generated = self._run_stage(PipelineState.GENERATING, self._generate, snapshot)
            stages.append(generated)
            if not generated.ok:
                return self._fail(finish, generated, generation=snapshot.generation)
            artifact, stored = generated.value

            validated = self._run_stage(PipelineState.VALIDATING, self.validation.run, artifact, stored)
            stages.append(validated)
            if not validated.ok:
                return self._fail(finish, validated, generation=snapshot.generation)

            self._transition(PipelineState.PUBLISHED)
            logger.info(f"✅ Published {artifact.generation} ({len(artifact)} picks)")
            self._prune()
            return finish(generation=artifact.generation, artifact=artifact)
        finally:
            self._release(run_id)

    def _fail(self, finish: Callable, stage: StageResult, **kwargs) -> PipelineResult:
        self._transition(PipelineState.FAILED)
        return finish(failed_stage=stage.stage, error=stage.error, **kwargs)

    def _prune(self) -> None:
        # Published already; a pruning failure only delays cleanup to the next run
        try:
            self.store.prune_snapshots(self.snapshot_retention)
        except StoreError as e:
            logger.warning(f"Snapshot pruning failed, will retry next run: {e}")

    def _release(self, run_id: str) -> None:
        try:
            self.store.release_run_lock(run_id)
        except StoreError as e:
            logger.error(f"Could not release run lock {run_id}, it expires on its own: {e}")
