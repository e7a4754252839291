"""
candles.py

Candle type and the label boundary.

Raw rows arrive as (timestamp, free-text label).  The label is reduced to a
3-way direction here and nowhere else; everything downstream only sees
"up" / "down" / "neutral".
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


Direction = Literal["up", "down", "neutral"]
Tone = Literal["up", "down", "neutral", "blue", "pink"]

UP: Direction = "up"
DOWN: Direction = "down"
NEUTRAL: Direction = "neutral"

# Checked in order: up keywords win over down keywords.
DIRECTION_KEYWORDS: tuple[tuple[Direction, tuple[str, ...]], ...] = (
    (UP, ("VERD", "GREEN", "CALL", "WIN", "BUY")),
    (DOWN, ("VERMELH", "RED", "PUT", "LOSS", "SELL")),
)

# Synthetic pattern-tag labels.  Classified neutral, rendered with their own color.
TAG_TONES: tuple[tuple[str, Tone], ...] = (
    ("AZUL", "blue"),
    ("ROSA", "pink"),
)

NO_TIME = "--:--"


@dataclass(frozen=True)
class Candle:
    timestamp: str
    direction: Direction
    tone: Tone = "neutral"


def _normalize(label) -> str:
    if not isinstance(label, str):
        return ""
    return label.strip().upper()


def classify_label(label) -> Direction:
    """Map a free-text label to up/down/neutral.  Never raises."""
    text = _normalize(label)
    if not text:
        return NEUTRAL
    for direction, keywords in DIRECTION_KEYWORDS:
        if any(k in text for k in keywords):
            return direction
    return NEUTRAL


def label_tone(label) -> Tone:
    text = _normalize(label)
    for tag, tone in TAG_TONES:
        if tag in text:
            return tone
    return classify_label(text)


def make_candle(timestamp, label) -> Candle:
    """Build a Candle from a raw row.  The label text is not kept."""
    ts = "" if timestamp is None else str(timestamp)
    return Candle(timestamp=ts, direction=classify_label(label), tone=label_tone(label))


def format_time_hhmm(timestamp) -> str:
    """
    "2024-05-01 13:05:00" / "2024-05-01T13:05:00Z" -> "13:05".

    Anything that doesn't look like a time gives "--:--".
    """
    if not isinstance(timestamp, str) or not timestamp.strip():
        return NO_TIME
    text = timestamp.strip()
    if " " in text:
        text = text.split(" ", 1)[1]
    elif "T" in text:
        text = text.split("T", 1)[1]
    parts = text.split(":")
    if len(parts) < 2:
        return NO_TIME
    hh = parts[0][-2:]
    mm = parts[1][:2]
    if not (hh.isdigit() and mm.isdigit()):
        return NO_TIME
    return f"{hh.zfill(2)}:{mm.zfill(2)}"
