"""
Refresh Pipeline Module

Sync -> Generate -> Validate, run once per invocation.

Components:
    PipelineOrchestrator     - Runs the stages under the run lock
    SyncStage                - Upstream fetch into a new snapshot
    RecommendationGenerator  - Scores and ranks eligible players
    ValidationStage          - Invariant checks + atomic promotion
"""

from touchline.pipeline.orchestrator import (
    PipelineOrchestrator,
    PipelineResult,
    PipelineState,
    StageResult,
)
from touchline.pipeline.sync import SyncStage
from touchline.pipeline.generate import RecommendationGenerator
from touchline.pipeline.validate import ValidationStage, Validator
from touchline.pipeline.scoring import get_scorer

__all__ = [
    "PipelineOrchestrator",
    "PipelineResult",
    "PipelineState",
    "StageResult",
    "SyncStage",
    "RecommendationGenerator",
    "ValidationStage",
    "Validator",
    "get_scorer",
]
