"""
supabase_store.py -- Supabase (PostgREST) read layer for the candle dashboard.

Reads the newest rows of the candle table.  Nothing is ever written.

PATTERN:
  - Never raises -- logs warnings on failure
  - None means "fetch failed", [] means "table is empty"
  - Uses urllib.request only (zero external dependencies)

READ PATH:
  One GET per poll tick:
    /rest/v1/<table>?select=<ts>,<label>&order=<ts>.desc&limit=<n>
  The descending batch is reversed so callers always get oldest-first.

SETUP:
  1. Point SUPABASE_URL / SUPABASE_KEY at the project
  2. Set CANDLE_TABLE, TIMESTAMP_COLUMN, LABEL_COLUMN if they differ
     from the defaults
  3. Make sure the anon role has SELECT on the table (RLS policy)
"""

import json
import logging
import re
import urllib.request
import urllib.error
import urllib.parse

import config
from candles import Candle, make_candle

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Schema hints
# ---------------------------------------------------------------------------

# Error fragments already explained in the log (one hint per fragment).
_schema_hints_logged: set[str] = set()


def _note_schema_error(err_body: str):
    """Log a one-time hint when PostgREST reports a missing table or column."""
    hint = ""
    col_match = re.search(
        r'column\s+"?([a-zA-Z0-9_.]+)"?\s+does not exist',
        err_body,
        re.IGNORECASE,
    )
    if col_match:
        col = col_match.group(1)
        hint = (
            f"column {col} not found -- check TIMESTAMP_COLUMN / LABEL_COLUMN "
            f"(currently {config.TIMESTAMP_COLUMN}, {config.LABEL_COLUMN})"
        )
    elif "does not exist" in err_body or "Could not find the table" in err_body:
        hint = f"table {config.CANDLE_TABLE} not found -- check CANDLE_TABLE"

    if hint and hint not in _schema_hints_logged:
        _schema_hints_logged.add(hint)
        logger.warning("Supabase schema: %s", hint)


# ---------------------------------------------------------------------------
# Guard
# ---------------------------------------------------------------------------

def _enabled() -> bool:
    """Return True if Supabase is configured."""
    return bool(config.SUPABASE_URL and config.SUPABASE_KEY)


# ---------------------------------------------------------------------------
# Core HTTP helper
# ---------------------------------------------------------------------------

def _request(method: str, path: str, params: dict = None,
             timeout: float = None):
    """
    Make a PostgREST request to Supabase.  Never raises.

    Args:
        method:  HTTP method (the dashboard only uses GET)
        path:    Table path, e.g. "/rest/v1/eurusd_otc_completo"
        params:  Query params dict
        timeout: Request timeout in seconds (REQUEST_TIMEOUT_SECONDS default)

    Returns:
        Parsed JSON response (list or dict), or None on failure.
    """
    if not _enabled():
        return None

    url = config.SUPABASE_URL.rstrip("/") + path
    if params:
        url += "?" + urllib.parse.urlencode(params, doseq=True)

    headers = {
        "apikey": config.SUPABASE_KEY,
        "Authorization": f"Bearer {config.SUPABASE_KEY}",
        "Accept": "application/json",
        "User-Agent": "CandleCatalog/1.0",
    }

    if timeout is None:
        timeout = config.REQUEST_TIMEOUT_SECONDS

    req = urllib.request.Request(url, headers=headers, method=method)

    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            resp_body = resp.read().decode("utf-8")
            if resp_body:
                return json.loads(resp_body)
            return {}
    except urllib.error.HTTPError as e:
        err_body = e.read().decode("utf-8", errors="replace")[:200]
        _note_schema_error(err_body)
        logger.warning("Supabase %s %s HTTP %d: %s", method, path, e.code, err_body)
        return None
    except Exception as e:
        logger.warning("Supabase %s %s failed: %s", method, path, e)
        return None


# ---------------------------------------------------------------------------
# Read operations
# ---------------------------------------------------------------------------

def _row_to_candle(row) -> Candle | None:
    if not isinstance(row, dict):
        return None
    ts = row.get(config.TIMESTAMP_COLUMN)
    if ts is None or str(ts).strip() == "":
        return None
    return make_candle(str(ts), row.get(config.LABEL_COLUMN))


def load_candles(limit: int = None) -> list[Candle] | None:
    """
    Load the newest `limit` candles from the candle table.

    Returns a list of Candle sorted oldest -> newest, [] when the table is
    empty, or None on failure / when Supabase is not configured.
    """
    if not _enabled():
        logger.debug("Supabase not configured, skipping candle fetch")
        return None

    if limit is None:
        limit = config.FETCH_LIMIT
    ts_col = config.TIMESTAMP_COLUMN
    params = {
        "select": f"{ts_col},{config.LABEL_COLUMN}",
        "order": f"{ts_col}.desc",
        "limit": str(max(1, int(limit))),
    }

    table = urllib.parse.quote(config.CANDLE_TABLE, safe="")
    result = _request("GET", f"/rest/v1/{table}", params=params)
    if result is None:
        return None
    if not isinstance(result, list):
        logger.warning("Supabase: unexpected candle payload (%s)", type(result).__name__)
        return None

    # Reverse so oldest is first (scanner and stats expect chronological order)
    candles = []
    skipped = 0
    for row in reversed(result):
        candle = _row_to_candle(row)
        if candle is None:
            skipped += 1
            continue
        candles.append(candle)
    if skipped:
        logger.debug("Supabase: skipped %d malformed candle rows", skipped)
    logger.debug("Supabase: loaded %d candles", len(candles))
    return candles
