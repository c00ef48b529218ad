"""League classification derived from a token balance."""

from __future__ import annotations

from typing import Tuple

# Ascending (minimum balance, league) pairs; the first row opens at zero.
LEAGUE_THRESHOLDS: Tuple[Tuple[int, str], ...] = (
    (0, "Bronze"),
    (10, "Silver"),
    (20, "Gold"),
    (30, "Sapphire"),
    (50, "Diamond"),
)
DEFAULT_LEAGUE = LEAGUE_THRESHOLDS[0][1]
LEAGUES: Tuple[str, ...] = tuple(label for _, label in LEAGUE_THRESHOLDS)


def classify(balance: int) -> str:
    """Return the league for ``balance``.

    A balance equal to a threshold belongs to the league that threshold opens.
    Anything below the first threshold falls back to the lowest league.
    """

    for minimum, label in reversed(LEAGUE_THRESHOLDS):
        if balance >= minimum:
            return label
    return DEFAULT_LEAGUE


def league_rank(label: str) -> int:
    try:
        return LEAGUES.index(label)
    except ValueError:
        raise ValueError(f"Unknown league: {label}") from None


__all__ = ["DEFAULT_LEAGUE", "LEAGUES", "LEAGUE_THRESHOLDS", "classify", "league_rank"]
