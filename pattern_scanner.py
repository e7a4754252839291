"""
pattern_scanner.py -- 4-candle continuity pattern scan + streak tracking.

WINDOW (oldest -> newest):

    base, mid1, mid2, signal

  A window qualifies when
    1. none of the four candles is neutral
    2. mid1 and mid2 point the same way (a 2-candle run)
    3. base points the other way (the setup)
  The hit is a CONTINUATION when signal follows the run, otherwise a
  REVERSAL.  Predicates are evaluated in exactly that order.

SCAN:
  Newest window first, blind sliding window (overlaps allowed), stops at
  `cap` hits so the cap always keeps the newest ones.  Output is reversed
  back to oldest-first before returning.

STREAK:
  The run of consecutive newest hits sharing one kind.  Once it reaches
  `exhaustion_at` the dashboard flags it -- an annotation, not a forecast.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Sequence

from candles import NEUTRAL, Candle


PatternKind = Literal["continuation", "reversal"]

CONTINUATION: PatternKind = "continuation"
REVERSAL: PatternKind = "reversal"

WINDOW_SIZE = 4
DEFAULT_CAP = 10
DEFAULT_EXHAUSTION_AT = 7


@dataclass(frozen=True)
class PatternHit:
    timestamp: str
    kind: PatternKind
    window: tuple[str, ...] = ()
    # Indices of the window in the scanned sequence; timestamps may repeat.
    positions: tuple[int, ...] = ()

    def to_dict(self) -> dict:
        return {
            "time": self.timestamp,
            "kind": self.kind,
            "window": list(self.window),
            "positions": list(self.positions),
        }


@dataclass(frozen=True)
class Streak:
    kind: PatternKind | None = None
    hits: tuple[PatternHit, ...] = ()
    exhausted: bool = False

    @property
    def length(self) -> int:
        return len(self.hits)


def classify_window(base: Candle, mid1: Candle, mid2: Candle, signal: Candle) -> PatternKind | None:
    """Return the hit kind for one window, or None when it doesn't qualify."""
    if NEUTRAL in (base.direction, mid1.direction, mid2.direction, signal.direction):
        return None
    if mid1.direction != mid2.direction:
        return None
    if base.direction == mid1.direction:
        return None
    return CONTINUATION if signal.direction == mid1.direction else REVERSAL


def scan_patterns(candles: Sequence[Candle], cap: int = DEFAULT_CAP) -> list[PatternHit]:
    """
    Scan an oldest-first candle sequence for continuity patterns.

    Returns at most `cap` hits, oldest first.
    """
    if cap <= 0 or len(candles) < WINDOW_SIZE:
        return []

    hits: list[PatternHit] = []
    for i in range(len(candles) - 1, WINDOW_SIZE - 2, -1):
        base, mid1, mid2, signal = candles[i - 3], candles[i - 2], candles[i - 1], candles[i]
        kind = classify_window(base, mid1, mid2, signal)
        if kind is None:
            continue
        hits.append(PatternHit(
            timestamp=signal.timestamp,
            kind=kind,
            window=(base.timestamp, mid1.timestamp, mid2.timestamp, signal.timestamp),
            positions=tuple(range(i - 3, i + 1)),
        ))
        if len(hits) >= cap:
            break

    hits.reverse()
    return hits


def current_streak(hits: Sequence[PatternHit], exhaustion_at: int = DEFAULT_EXHAUSTION_AT) -> Streak:
    """Newest run of same-kind hits.  `hits` must be oldest-first."""
    if not hits:
        return Streak()

    kind = hits[-1].kind
    run: list[PatternHit] = []
    for hit in reversed(hits):
        if hit.kind != kind:
            break
        run.append(hit)
    run.reverse()
    return Streak(kind=kind, hits=tuple(run), exhausted=len(run) >= exhaustion_at)
