#!/usr/bin/env python3
"""FPL data update: sync, generate captain recommendations, validate.

Runs the refresh pipeline once and exits. Designed to be triggered by
cron or any external scheduler; overlapping triggers are rejected.

Usage:
    python scripts/ops/update_fpl_data.py
    python scripts/ops/update_fpl_data.py --scorer points_per_game
    python scripts/ops/update_fpl_data.py --db /tmp/touchline.sqlite

Exit codes:
    0   new artifact published
    1   a stage failed (nothing published)
    75  another run is in progress (retry later)

Environment:
    TOUCHLINE_DB_PATH: Path to SQLite database (default: storage/touchline.sqlite)
    See touchline.config for the remaining overrides.
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

# Add src to path if running as script
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from touchline.config import DEFAULT_DB_PATH, MIN_ELIGIBLE_PLAYERS, DEFAULT_SCORER
from touchline.data import FPLApiClient, SnapshotStore
from touchline.errors import PipelineError
from touchline.pipeline import PipelineOrchestrator
from touchline.pipeline.scoring import SCORERS

# Setup logging (progress lines on stdout)
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Run the FPL refresh pipeline once."""
    parser = argparse.ArgumentParser(description="Sync FPL data and publish captain recommendations")
    parser.add_argument("--db", default=None, help="Database path (default: from config)")
    parser.add_argument(
        "--scorer", default=DEFAULT_SCORER, choices=sorted(SCORERS),
        help=f"Scoring function (default: {DEFAULT_SCORER})",
    )
    parser.add_argument(
        "--min-eligible", type=int, default=MIN_ELIGIBLE_PLAYERS,
        help=f"Minimum eligible players to publish (default: {MIN_ELIGIBLE_PLAYERS})",
    )
    args = parser.parse_args()

    print("🚀 Starting FPL data update process...")

    try:
        store = SnapshotStore(args.db or DEFAULT_DB_PATH)
    except PipelineError as e:
        print(f"\n❌ Cannot open store: {e}")
        return 1

    orchestrator = PipelineOrchestrator(
        store,
        FPLApiClient(),
        scorer=args.scorer,
        min_eligible=args.min_eligible,
    )
    result = orchestrator.run()

    print("\n" + "=" * 70)
    print(result.summary())
    print("=" * 70)

    if result.ok:
        print("\n🎉 FPL data update completed successfully!")
    else:
        print("\n❌ FPL data update failed.")
    print(f"⏰ Completed at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")

    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
