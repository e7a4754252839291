"""
candle_feed.py -- Polling driver and view state for the candle dashboard.

Two timers, torn down together:
  - poll timer:  every POLL_INTERVAL_SECONDS asks for the newest batch
  - clock timer: every second refreshes the wall-clock readout

SINGLE-FLIGHT:
  At most one fetch is in flight.  A tick that arrives while a fetch is
  outstanding is dropped, not queued.  The poll cadence never changes,
  whatever happened to the previous attempt (no backoff).

STATE:
  DashboardState is only mutated from two places: the fetch completion
  path (_apply_result) and the clock callback (tick_clock).  Readers take a
  copy through snapshot().  A result that lands after stop() is discarded,
  even if the feed was started again in the meantime.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Callable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import config
import supabase_store
from candle_stats import CandleStats, compute_stats
from candles import Candle
from pattern_scanner import PatternHit, Streak, current_streak, scan_patterns


logger = logging.getLogger(__name__)

CONNECTING = "connecting"
ONLINE = "online"
ERROR = "error"

NO_CLOCK = "--:--:--"


@dataclass
class DashboardState:
    candles: list[Candle] = field(default_factory=list)
    stats: CandleStats = field(default_factory=CandleStats)
    patterns: list[PatternHit] = field(default_factory=list)
    streak: Streak = field(default_factory=Streak)
    connection: str = CONNECTING
    loading: bool = False
    last_update: float = 0.0
    last_error: str = ""
    clock: str = NO_CLOCK
    fetch_count: int = 0
    error_count: int = 0
    consecutive_errors: int = 0
    dropped_ticks: int = 0


def _resolve_timezone(name: str):
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        logger.warning("Unknown DISPLAY_TIMEZONE %r (%s) -- clock falls back to UTC", name, e)
        return timezone.utc


class CandleFeed:
    def __init__(
        self,
        fetch: Callable[[int], list[Candle] | None] | None = None,
        poll_interval: float | None = None,
        clock_interval: float | None = None,
        timezone_name: str | None = None,
    ) -> None:
        self.lock = threading.RLock()
        self.state = DashboardState()

        self._fetch = fetch
        self.poll_interval = float(poll_interval if poll_interval is not None else config.POLL_INTERVAL_SECONDS)
        self.clock_interval = float(clock_interval if clock_interval is not None else config.CLOCK_INTERVAL_SECONDS)
        self.timezone_name = timezone_name or config.DISPLAY_TIMEZONE
        self._tz = _resolve_timezone(self.timezone_name)

        self.fetch_limit = int(config.FETCH_LIMIT)
        self.stats_window = int(config.STATS_WINDOW)
        self.pattern_cap = int(config.PATTERN_CAP)
        self.exhaustion_at = int(config.STREAK_EXHAUSTION_AT)

        # "Mounted": results are applied only while active.
        self.active = True
        self.running = False
        self._in_flight = False
        # Bumped by stop(); results claimed under an older generation are dropped.
        self._generation = 0
        self._stop = threading.Event()
        self._timers: list[threading.Thread] = []

    # ------------------ Single-flight fetch ------------------

    @property
    def in_flight(self) -> bool:
        with self.lock:
            return self._in_flight

    def _claim_fetch(self) -> int | None:
        """Take the single-flight slot.  Returns the session generation, or None."""
        with self.lock:
            if not self.active:
                return None
            if self._in_flight:
                self.state.dropped_ticks += 1
                logger.debug("Fetch still in flight -- tick dropped")
                return None
            self._in_flight = True
            self.state.loading = True
            return self._generation

    def refresh_once(self) -> bool:
        """Fetch and apply inline.  False when the request was dropped."""
        generation = self._claim_fetch()
        if generation is None:
            return False
        self._fetch_and_apply(generation)
        return True

    def request_refresh(self) -> bool:
        """Fetch on a worker thread.  False when the request was dropped."""
        generation = self._claim_fetch()
        if generation is None:
            return False
        worker = threading.Thread(
            target=self._fetch_and_apply, args=(generation,), daemon=True, name="candle-fetch",
        )
        worker.start()
        return True

    def _derive(self, candles: list[Candle]) -> tuple[CandleStats, list[PatternHit], Streak]:
        stats = compute_stats(candles, self.stats_window)
        patterns = scan_patterns(candles, self.pattern_cap)
        return stats, patterns, current_streak(patterns, self.exhaustion_at)

    def _fetch_and_apply(self, generation: int) -> None:
        fetch = self._fetch or supabase_store.load_candles
        candles = None
        derived = None
        error = ""
        try:
            candles = fetch(self.fetch_limit)
            if candles is None:
                error = "candle fetch failed"
            else:
                candles = list(candles)
                derived = self._derive(candles)
        except Exception as e:
            logger.exception("Candle fetch raised: %s", e)
            candles = None
            derived = None
            error = str(e) or type(e).__name__
        self._apply_result(generation, candles, derived, error)

    def _apply_result(
        self,
        generation: int,
        candles: list[Candle] | None,
        derived: tuple[CandleStats, list[PatternHit], Streak] | None,
        error: str = "",
    ) -> None:
        with self.lock:
            if generation != self._generation:
                # stop() already released the slot for the next session
                logger.debug("Feed restarted or stopped -- discarding late fetch result")
                return
            self._in_flight = False
            self.state.loading = False
            if not self.active:
                logger.debug("Feed stopped -- discarding late fetch result")
                return

            st = self.state
            if candles is None or derived is None:
                st.connection = ERROR
                st.last_error = error or "candle fetch failed"
                st.error_count += 1
                st.consecutive_errors += 1
                logger.warning(
                    "Candle fetch failed (%d in a row): %s",
                    st.consecutive_errors, st.last_error,
                )
                return

            stats, patterns, streak = derived
            if st.consecutive_errors:
                logger.info("Candle feed recovered after %d failed fetches", st.consecutive_errors)
            st.candles = candles
            st.stats = stats
            st.patterns = patterns
            st.streak = streak
            st.connection = ONLINE
            st.last_error = ""
            st.last_update = time.time()
            st.fetch_count += 1
            st.consecutive_errors = 0
            logger.debug(
                "Feed updated: %d candles, %d patterns, streak %s x%d",
                len(candles), len(patterns), streak.kind or "-", streak.length,
            )

    # ------------------ Clock ------------------

    def tick_clock(self, now: float | None = None) -> str:
        ts = time.time() if now is None else now
        text = datetime.fromtimestamp(ts, tz=self._tz).strftime("%H:%M:%S")
        with self.lock:
            if self.active:
                self.state.clock = text
        return text

    # ------------------ Timers ------------------

    def _poll_loop(self) -> None:
        logger.info("Candle poll timer started (every %ss)", self.poll_interval)
        while not self._stop.is_set():
            self.request_refresh()
            self._stop.wait(self.poll_interval)
        logger.info("Candle poll timer stopped")

    def _clock_loop(self) -> None:
        while not self._stop.is_set():
            self.tick_clock()
            self._stop.wait(self.clock_interval)

    def start(self) -> None:
        with self.lock:
            if self.running:
                return
            self.active = True
            self.running = True
            self._stop.clear()
            self._timers = [
                threading.Thread(target=self._poll_loop, daemon=True, name="candle-poll"),
                threading.Thread(target=self._clock_loop, daemon=True, name="candle-clock"),
            ]
            timers = list(self._timers)
        for t in timers:
            t.start()

    def stop(self, reason: str = "") -> None:
        """Tear down both timers.  An in-flight fetch is left to finish and ignored."""
        with self.lock:
            self.active = False
            self.running = False
            self._generation += 1
            self._in_flight = False
            self.state.loading = False
            self._stop.set()
            timers = list(self._timers)
            self._timers = []
        for t in timers:
            if t is not threading.current_thread():
                t.join(timeout=2.0)
        logger.info("Candle feed stopped%s", f" ({reason})" if reason else "")

    # ------------------ Readers ------------------

    def snapshot(self) -> DashboardState:
        with self.lock:
            return replace(
                self.state,
                candles=list(self.state.candles),
                patterns=list(self.state.patterns),
            )
