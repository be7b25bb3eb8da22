"""Error taxonomy for the refresh pipeline.

Every stage raises a subclass of PipelineError. The orchestrator catches
these, halts the run and reports which stage failed and why. Anything else
is a bug and propagates.

Transient errors (``transient = True``) may succeed if the caller tries
again later; permanent ones will fail the same way on the same data.

Usage:
    raise UpstreamUnavailable("bootstrap-static unreachable after 3 attempts")
    raise InsufficientData("Need at least 11 eligible players, got 4")
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional


class PipelineError(Exception):
    """Base class for all pipeline failures."""

    transient = False


class UpstreamUnavailable(PipelineError):
    """Raised when the FPL API cannot be reached after all retry attempts.

    Covers connection errors, timeouts, non-2xx responses, rate limiting
    that outlasts the retry budget, and payloads that are not the JSON
    shape we asked for.
    """

    transient = True


class StoreError(PipelineError):
    """Base class for persistent store failures."""

    transient = True


class StoreWriteFailure(StoreError):
    """Raised when a write transaction fails. Nothing from it is visible."""


class StoreReadFailure(StoreError):
    """Raised when a store query fails."""


class PromotionConflict(StoreError):
    """Raised when the published pointer moved between read and promote.

    The compare-and-swap found a different current generation than
    expected, or the candidate is not newer than the current one.
    """

    transient = False


class StaleSnapshot(PipelineError):
    """Raised when a generation is older than one already stored or published."""


class InsufficientData(PipelineError):
    """Raised when too few eligible players exist to produce recommendations."""


class ValidationFailed(PipelineError):
    """Raised when a candidate artifact breaks one or more invariants.

    Attributes:
        violations: Human-readable description of each broken invariant.
        report: The ValidationReport that failed, if one was produced.
    """

    def __init__(self, violations: List[str], report=None):
        self.violations = list(violations)
        self.report = report
        shown = "; ".join(self.violations[:5])
        more = f" (+{len(self.violations) - 5} more)" if len(self.violations) > 5 else ""
        super().__init__(f"{len(self.violations)} invariant(s) violated: {shown}{more}")


class RunInProgress(PipelineError):
    """Raised when another pipeline run holds the run lock.

    Not a failure of the data: the caller should retry later.
    """

    transient = True

    def __init__(self, holder: str, started_at: Optional[datetime] = None):
        self.holder = holder
        self.started_at = started_at
        since = f" since {started_at.isoformat()}" if started_at else ""
        super().__init__(f"Pipeline run {holder} already in progress{since}")
