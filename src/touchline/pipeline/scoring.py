"""Scoring functions for captain recommendations.

A scorer maps one eligible player of a snapshot to ``(score, reasoning)``.
Higher scores rank first. The reasoning is stored with the pick as its
justification and must name the player.

Scorers are pluggable: the generator takes any callable with this
signature, and get_scorer(name) resolves the registered ones.

Registered scorers:
    form_fixture - form and points-per-game, weighted by fixture difficulty,
                   home advantage and chance of playing (default)
    points_per_game - season points per game only (baseline)

Usage:
    from touchline.pipeline.scoring import get_scorer

    scorer = get_scorer("form_fixture")
    score, reasoning = scorer(player, snapshot)
"""

from __future__ import annotations

from typing import Callable, Dict, Tuple

from touchline.data.models import Snapshot
from touchline.data.schemas import PlayerRecord

Scorer = Callable[[PlayerRecord, Snapshot], Tuple[float, str]]

# Weights of the form_fixture heuristic
FORM_WEIGHT = 0.6
PPG_WEIGHT = 0.4
FDR_STEP = 0.1  # +/-10% per difficulty step away from 3 (neutral)
HOME_BONUS = 1.05
NEUTRAL_FDR = 3

SCORE_DECIMALS = 3


def form_fixture(player: PlayerRecord, snapshot: Snapshot) -> Tuple[float, str]:
    """Form-and-fixture heuristic.

    base = 0.6 * form + 0.4 * points_per_game, summed over every fixture
    the player's team has in the target gameweek (0 for a blank, twice for
    a double), each scaled by ``1 + 0.1 * (3 - FDR)`` and 5% at home, then
    by chance of playing.
    """
    gw = snapshot.gameweek
    team = snapshot.team_short(player.team)
    base = FORM_WEIGHT * player.form + PPG_WEIGHT * player.points_per_game
    fixtures = snapshot.fixtures_for(player.team, gw)

    if not fixtures:
        return 0.0, f"{player.web_name} ({team}) has no fixture in GW{gw}."

    total = 0.0
    described = []
    for f in fixtures:
        is_home = f.team_h == player.team
        fdr = (f.team_h_difficulty if is_home else f.team_a_difficulty) or NEUTRAL_FDR
        weight = 1 + FDR_STEP * (NEUTRAL_FDR - fdr)
        if is_home:
            weight *= HOME_BONUS
        total += base * weight

        opponent = snapshot.team_short(f.team_a if is_home else f.team_h)
        described.append(f"{opponent} ({'H' if is_home else 'A'}, FDR {fdr})")

    chance = player.chance_of_playing_next_round
    if chance is not None:
        total *= chance / 100.0

    reasoning = (
        f"{player.web_name} ({team}, {player.position}): form {player.form:.1f}, "
        f"{player.points_per_game:.1f} pts/game; GW{gw} vs {' + '.join(described)}"
    )
    if chance is not None and chance < 100:
        reasoning += f"; {chance}% chance of playing"

    return round(total, SCORE_DECIMALS), reasoning + "."


def points_per_game(player: PlayerRecord, snapshot: Snapshot) -> Tuple[float, str]:
    """Baseline: season points per game, fixtures ignored."""
    return (
        round(player.points_per_game, SCORE_DECIMALS),
        f"{player.web_name}: {player.points_per_game:.1f} points per game this season.",
    )


SCORERS: Dict[str, Scorer] = {
    "form_fixture": form_fixture,
    "points_per_game": points_per_game,
}


def get_scorer(name: str) -> Scorer:
    """Get a registered scorer by name.

    Raises:
        ValueError: If the name is not registered.
    """
    if name not in SCORERS:
        raise ValueError(
            f"Unknown scorer: {name}. "
            f"Must be one of: {list(SCORERS.keys())}"
        )
    return SCORERS[name]
