#!/usr/bin/env python3
"""Show the currently published captain recommendations.

Reads the store in read-only mode, exactly as the front-end does.

Usage:
    python scripts/ops/check_recommendations.py
    python scripts/ops/check_recommendations.py --top 10 --db /tmp/touchline.sqlite
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from touchline.config import DEFAULT_DB_PATH
from touchline.data import PublishedReader


def main() -> int:
    parser = argparse.ArgumentParser(description="Show published captain recommendations")
    parser.add_argument("--top", type=int, default=5, help="Number of picks to show (default: 5)")
    parser.add_argument("--db", default=None, help="Database path (default: from config)")
    args = parser.parse_args()

    try:
        reader = PublishedReader(args.db or DEFAULT_DB_PATH)
    except FileNotFoundError as e:
        print(f"ERROR: {e}")
        return 1

    generation = reader.get_current_generation()
    if generation is None:
        print("No recommendations published yet.")
        return 1

    events = reader.get_events()
    current = next((e["id"] for e in events if e["is_current"]), None)
    upcoming = next((e["id"] for e in events if e["is_next"]), None)

    print("\n" + "=" * 70)
    print(f"GW{generation.gameweek} CAPTAIN RECOMMENDATIONS")
    print(f"Generation: {generation} | Current GW: {current or '-'} | Next GW: {upcoming or '-'}")
    print("=" * 70)

    picks = reader.get_current_recommendations(top_n=args.top)
    for _, row in picks.iterrows():
        marker = "👑" if row["rank"] == 1 else "  "
        print(
            f"{marker} {row['rank']:>2}. {row['player_name']:20} ({row['team_name'] or '?':4} "
            f"{row['position']}) £{row['cost']:.1f}m  {row['score']:.2f}"
        )
        print(f"       {row['reasoning']}")

    print("=" * 70 + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
