"""
config.py -- All tunable parameters for the candle catalog dashboard.

Every value here is loaded from environment variables so you can configure
the dashboard from your host's settings panel (or a local shell export)
without touching code.

HOW TO READ THIS FILE:
  Each config value has a comment explaining:
    1. What it controls
    2. What happens if you raise/lower it
    3. The default and why it was chosen
"""

import os
import logging

# ---------------------------------------------------------------------------
# Helper: read an env var with a typed default
# ---------------------------------------------------------------------------

def _env(name, default, cast=str):
    """
    Read an environment variable and cast it to the right type.
    If the var is missing or empty, return *default* (already the right type).
    """
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        # Special handling for booleans -- "true"/"1"/"yes" are all truthy
        if cast is bool:
            return raw.strip().lower() in ("true", "1", "yes")
        return cast(raw)
    except (ValueError, TypeError):
        return default


# ---------------------------------------------------------------------------
# Supabase (PostgREST) -- the only data source
# ---------------------------------------------------------------------------

# Project URL, e.g. https://abcd1234.supabase.co
# If not set, every fetch fails and the dashboard shows the "error" badge.
SUPABASE_URL: str = _env("SUPABASE_URL", "")

# anon (public) key is enough -- the dashboard only ever reads.
SUPABASE_KEY: str = _env("SUPABASE_KEY", "")

# Table holding one row per closed candle.
CANDLE_TABLE: str = _env("CANDLE_TABLE", "eurusd_otc_completo")

# Sortable timestamp column ("2024-05-01 13:05:00" or ISO "T" form).
TIMESTAMP_COLUMN: str = _env("TIMESTAMP_COLUMN", "datetime_mao")

# Free-text label column ("VERDE", "VERMELHO", "DOJI", "CALL", ...).
LABEL_COLUMN: str = _env("LABEL_COLUMN", "cor")

# Rows requested per poll, newest first.
# Raising it: longer history on screen, bigger payload every tick.
# 300 covers five hours of M1 candles.
FETCH_LIMIT: int = _env("FETCH_LIMIT", 300, int)

# Per-request HTTP timeout.  Must stay below the poll interval or ticks
# will be dropped by the single-flight guard while a slow request hangs.
REQUEST_TIMEOUT_SECONDS: float = _env("REQUEST_TIMEOUT_SECONDS", 10.0, float)

# ---------------------------------------------------------------------------
# Polling
# ---------------------------------------------------------------------------

# How often the feed asks Supabase for the latest batch.
# A tick that arrives while the previous fetch is still running is dropped.
# Lowering it: fresher grid, more requests against the free tier.
POLL_INTERVAL_SECONDS: float = _env("POLL_INTERVAL_SECONDS", 5.0, float)

# Wall-clock readout refresh (cosmetic).
CLOCK_INTERVAL_SECONDS: float = _env("CLOCK_INTERVAL_SECONDS", 1.0, float)

# Named zone for the clock readout.  Never used in any decision logic.
DISPLAY_TIMEZONE: str = _env("DISPLAY_TIMEZONE", "America/Sao_Paulo")

# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------

# Number of newest candles the summary cards are computed over.
STATS_WINDOW: int = _env("STATS_WINDOW", 120, int)

# Maximum pattern hits kept (newest ones win).
PATTERN_CAP: int = _env("PATTERN_CAP", 10, int)

# Streak length at which the dashboard shows the exhaustion warning.
# Display annotation only -- nothing acts on it.
STREAK_EXHAUSTION_AT: int = _env("STREAK_EXHAUSTION_AT", 7, int)

# ---------------------------------------------------------------------------
# Server & logging
# ---------------------------------------------------------------------------

# Port for the dashboard HTTP server.  Most hosts inject PORT.
# Set to 0 to run the feed headless (logs only).
HEALTH_PORT: int = _env("PORT", _env("HEALTH_PORT", 8080, int), int)

# DEBUG shows every PostgREST request; INFO is enough day to day.
LOG_LEVEL: str = _env("LOG_LEVEL", "INFO")

# Display name in the page header and banner.
FEED_DISPLAY: str = _env("FEED_DISPLAY", "EUR/USD OTC")


# ---------------------------------------------------------------------------
# Startup banner -- printed when the dashboard launches
# ---------------------------------------------------------------------------

def print_banner():
    """Print a clear summary of all active settings so you know what's running."""
    lines = [
        "",
        "=" * 60,
        "  CANDLE CATALOG DASHBOARD",
        "=" * 60,
        f"  Feed:            {FEED_DISPLAY}",
        f"  Table:           {CANDLE_TABLE} ({TIMESTAMP_COLUMN}, {LABEL_COLUMN})",
        f"  Fetch limit:     {FETCH_LIMIT} rows",
        f"  Poll interval:   {POLL_INTERVAL_SECONDS:g}s",
        f"  Stats window:    {STATS_WINDOW} candles",
        f"  Pattern cap:     {PATTERN_CAP} hits",
        f"  Exhaustion at:   {STREAK_EXHAUSTION_AT} in a row",
        f"  Clock zone:      {DISPLAY_TIMEZONE}",
        f"  Health port:     {HEALTH_PORT}",
        f"  Log level:       {LOG_LEVEL}",
        f"  Supabase:        {'configured' if SUPABASE_URL and SUPABASE_KEY else 'NOT SET'}",
        "=" * 60,
        "",
    ]
    if not (SUPABASE_URL and SUPABASE_KEY):
        logging.getLogger(__name__).warning(
            "SUPABASE_URL / SUPABASE_KEY not set -- every fetch will fail"
        )
    print("\n".join(lines))
