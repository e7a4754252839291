"""
candle_stats.py -- Summary counts over the newest candles.

win_rate = up / (up + down); dojis and tags don't count either way.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from candles import DOWN, NEUTRAL, UP, Candle


DEFAULT_WINDOW = 120


@dataclass(frozen=True)
class CandleStats:
    total: int = 0
    up: int = 0
    down: int = 0
    neutral: int = 0
    win_rate: str = "0%"

    def to_status_dict(self) -> dict:
        return {
            "total": int(self.total),
            "up_count": int(self.up),
            "down_count": int(self.down),
            "neutral_count": int(self.neutral),
            "win_rate": self.win_rate,
        }


def format_win_rate(up: int, down: int) -> str:
    decided = up + down
    if decided <= 0:
        return "0%"
    return f"{up / decided * 100.0:.1f}%"


def compute_stats(candles: Sequence[Candle], window: int = DEFAULT_WINDOW) -> CandleStats:
    """Counts over the last `window` candles of an oldest-first sequence."""
    if window <= 0 or not candles:
        return CandleStats()

    recent = list(candles)[-window:]
    directions = np.asarray([c.direction for c in recent], dtype=object)
    up = int(np.count_nonzero(directions == UP))
    down = int(np.count_nonzero(directions == DOWN))
    neutral = int(np.count_nonzero(directions == NEUTRAL))
    return CandleStats(
        total=int(directions.size),
        up=up,
        down=down,
        neutral=neutral,
        win_rate=format_win_rate(up, down),
    )
