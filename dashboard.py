"""
dashboard.py -- Web dashboard for the candle catalog.

Serves a single-page dark-theme dashboard via the app's HTTP server.
No external dependencies -- the HTML/CSS/JS is a Python string constant.

Two public symbols:
  DASHBOARD_HTML   -- the full HTML page (served on GET /)
  serialize_state  -- converts a DashboardState into a JSON-ready dict
"""

import config
from candle_feed import DashboardState
from candles import format_time_hhmm


# ---------------------------------------------------------------------------
# State serializer
# ---------------------------------------------------------------------------

def serialize_state(state: DashboardState, timezone_name: str = None) -> dict:
    """
    Build a complete snapshot of the feed for the dashboard.
    Called on every GET /api/status request.
    """
    # -- Candle grid (newest first, like the feed is read) --
    # "index" is the oldest-first position that pattern windows refer to.
    candles = [
        {
            "index": idx,
            "time": c.timestamp,
            "hhmm": format_time_hhmm(c.timestamp),
            "direction": c.direction,
            "tone": c.tone,
        }
        for idx, c in reversed(list(enumerate(state.candles)))
    ]

    # -- Pattern hits (oldest first, as scanned) --
    patterns = []
    for hit in state.patterns:
        row = hit.to_dict()
        row["hhmm"] = format_time_hhmm(hit.timestamp)
        patterns.append(row)

    streak = state.streak
    return {
        "feed": config.FEED_DISPLAY,
        "table": config.CANDLE_TABLE,
        "connection": state.connection,
        "loading": state.loading,
        "last_update": state.last_update,
        "last_error": state.last_error,
        "clock": state.clock,
        "timezone": timezone_name or config.DISPLAY_TIMEZONE,
        "stats": state.stats.to_status_dict(),
        "candles": candles,
        "patterns": patterns,
        "streak": {
            "kind": streak.kind,
            "length": streak.length,
            "exhausted": streak.exhausted,
            "hits": [h.timestamp for h in streak.hits],
        },
        "telemetry": {
            "fetch_count": state.fetch_count,
            "error_count": state.error_count,
            "consecutive_errors": state.consecutive_errors,
            "dropped_ticks": state.dropped_ticks,
        },
        "config": {
            "poll_interval": config.POLL_INTERVAL_SECONDS,
            "fetch_limit": config.FETCH_LIMIT,
            "stats_window": config.STATS_WINDOW,
            "pattern_cap": config.PATTERN_CAP,
            "exhaustion_at": config.STREAK_EXHAUSTION_AT,
        },
    }


# ---------------------------------------------------------------------------
# Dashboard HTML
# ---------------------------------------------------------------------------

DASHBOARD_HTML = r"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width,initial-scale=1">
<title>Candle Catalog</title>
<style>
*{margin:0;padding:0;box-sizing:border-box}
body{background:#0d1117;color:#c9d1d9;font-family:'Cascadia Mono','Fira Code',monospace;font-size:14px;padding:16px}
.header{display:flex;align-items:center;gap:16px;margin-bottom:20px;flex-wrap:wrap}
.header h1{font-size:20px;color:#f0f6fc}
.header h1 span{color:#8b949e}
.badge{padding:4px 10px;border-radius:4px;font-size:12px;font-weight:700;text-transform:uppercase}
.badge-connecting{background:#8b949e;color:#0d1117}
.badge-online{background:#238636;color:#fff}
.badge-error{background:#f85149;color:#fff}
.clock{color:#8b949e;font-size:12px;margin-left:auto;text-align:right}
.clock b{color:#f0f6fc;font-size:16px}
.btn{background:#21262d;border:1px solid #30363d;color:#c9d1d9;border-radius:4px;padding:4px 12px;font-family:inherit;font-size:12px;cursor:pointer}
.btn:hover{background:#30363d;border-color:#8b949e}
.btn:disabled{opacity:0.5;cursor:default}

.cards{display:grid;grid-template-columns:repeat(auto-fill,minmax(170px,1fr));gap:12px;margin-bottom:20px}
.card{background:#161b22;border:1px solid #30363d;border-radius:8px;padding:14px}
.card .label{font-size:11px;color:#8b949e;text-transform:uppercase;margin-bottom:4px}
.card .value{font-size:20px;font-weight:700;color:#f0f6fc}
.card .sub{font-size:11px;color:#8b949e;margin-top:2px}

.section{background:#161b22;border:1px solid #30363d;border-radius:8px;padding:16px;margin-bottom:20px}
.section h2{font-size:14px;color:#f0f6fc;margin-bottom:12px;border-bottom:1px solid #30363d;padding-bottom:8px;display:flex;justify-content:space-between}
.section h2 small{font-size:11px;color:#8b949e;font-weight:400}

.grid{display:grid;grid-template-columns:repeat(auto-fill,minmax(64px,1fr));gap:6px}
.cell{border:1px solid #30363d;border-radius:4px;padding:5px 0;text-align:center;font-size:11px;font-weight:700;transition:opacity .2s,transform .2s}
.t-up{background:rgba(63,185,80,.12);color:#3fb950;border-color:rgba(63,185,80,.35)}
.t-down{background:rgba(248,81,73,.12);color:#f85149;border-color:rgba(248,81,73,.35)}
.t-neutral{background:rgba(139,148,158,.10);color:#8b949e}
.t-blue{background:rgba(88,166,255,.12);color:#58a6ff;border-color:rgba(88,166,255,.35)}
.t-pink{background:rgba(219,97,162,.12);color:#db61a2;border-color:rgba(219,97,162,.35)}
.k-continuation{background:rgba(63,185,80,.12);color:#3fb950;border-color:rgba(63,185,80,.35);cursor:pointer}
.k-reversal{background:rgba(227,179,65,.12);color:#e3b341;border-color:rgba(227,179,65,.35);cursor:pointer}
.cell.hl{transform:scale(1.12);border-color:rgba(255,255,255,.6)}
.cell.dim{opacity:.2}
.cell.sel{outline:1px solid rgba(255,255,255,.4)}
.empty{color:#484f58;font-size:12px;text-align:center;padding:30px 0}

.streak{background:#161b22;border:2px solid #30363d;border-radius:8px;padding:14px 20px;margin-bottom:20px;text-align:center}
.streak .s-label{font-size:11px;color:#8b949e;text-transform:uppercase;letter-spacing:1px}
.streak .s-value{font-size:22px;font-weight:700;color:#f0f6fc;margin:4px 0}
.streak .s-desc{font-size:12px;color:#8b949e}
.streak.s-continuation{border-color:#238636}
.streak.s-reversal{border-color:#9e6a03}
.streak.s-exhausted{border-color:#da3633}
.streak.s-exhausted .s-desc{color:#f85149;font-weight:700}
.legend{display:flex;gap:14px;font-size:11px;color:#8b949e;text-transform:uppercase}
.legend i{display:inline-block;width:8px;height:8px;border-radius:50%;margin-right:4px}
.err{color:#f85149;font-size:12px;margin-bottom:12px;min-height:14px}
</style>
</head>
<body>
<div class="header">
  <h1 id="feed-name">Candle Catalog</h1>
  <span id="conn" class="badge badge-connecting">connecting</span>
  <button id="refresh-btn" class="btn" onclick="manualRefresh()">Refresh</button>
  <div class="clock"><b id="clock">--:--:--</b><br><span id="tz"></span> &middot; updated <span id="updated">never</span></div>
</div>
<div class="err" id="err"></div>

<div class="cards">
  <div class="card"><div class="label">Sample</div><div class="value" id="c-total">0</div><div class="sub" id="c-window"></div></div>
  <div class="card"><div class="label">Win rate</div><div class="value" id="c-winrate">0%</div><div class="sub">up / (up + down)</div></div>
  <div class="card"><div class="label">Up</div><div class="value" id="c-up" style="color:#3fb950">0</div></div>
  <div class="card"><div class="label">Down</div><div class="value" id="c-down" style="color:#f85149">0</div></div>
  <div class="card"><div class="label">Neutral</div><div class="value" id="c-neutral" style="color:#8b949e">0</div></div>
</div>

<div id="streak" class="streak">
  <div class="s-label">Current pattern streak</div>
  <div class="s-value" id="s-value">&mdash;</div>
  <div class="s-desc" id="s-desc">waiting for patterns</div>
</div>

<div class="section">
  <h2>Pattern hits <small>4-candle continuity &middot; click to highlight window</small></h2>
  <div id="patterns" class="grid"></div>
</div>

<div class="section">
  <h2>Candle flow
    <span class="legend">
      <span><i style="background:#3fb950"></i>Call</span>
      <span><i style="background:#f85149"></i>Put</span>
      <span><i style="background:#8b949e"></i>Doji</span>
    </span>
  </h2>
  <div id="candles" class="grid"></div>
</div>

<script>
const API = '/api/status';
const REFRESH = '/api/refresh';
let selected = null;
let last = null;

// positions, not timestamps: two candles can share a timestamp
function hitKey(p) { return p.positions.join(',') + '@' + p.time; }

function esc(s) { return String(s == null ? '' : s).replace(/[&<>"']/g, c => ({'&':'&amp;','<':'&lt;','>':'&gt;','"':'&quot;',"'":'&#39;'}[c])); }

function render(data) {
  last = data;
  document.getElementById('feed-name').innerHTML = esc(data.feed) + ' <span>' + esc(data.table) + '</span>';
  const conn = document.getElementById('conn');
  conn.textContent = data.connection;
  conn.className = 'badge badge-' + data.connection;
  document.getElementById('clock').textContent = data.clock;
  document.getElementById('tz').textContent = data.timezone;
  document.getElementById('updated').textContent = data.last_update ? new Date(data.last_update * 1000).toLocaleTimeString() : 'never';
  document.getElementById('err').textContent = data.last_error || '';
  document.getElementById('refresh-btn').disabled = !!data.loading;

  const s = data.stats;
  document.getElementById('c-total').textContent = s.total;
  document.getElementById('c-window').textContent = 'last ' + data.config.stats_window + ' candles';
  document.getElementById('c-winrate').textContent = s.win_rate;
  document.getElementById('c-up').textContent = s.up_count;
  document.getElementById('c-down').textContent = s.down_count;
  document.getElementById('c-neutral').textContent = s.neutral_count;

  const st = data.streak;
  const box = document.getElementById('streak');
  box.className = 'streak' + (st.kind ? ' s-' + st.kind : '') + (st.exhausted ? ' s-exhausted' : '');
  document.getElementById('s-value').textContent = st.kind ? st.length + ' x ' + st.kind : '—';
  document.getElementById('s-desc').textContent = !st.kind ? 'waiting for patterns'
    : st.exhausted ? 'exhaustion warning: ' + st.length + ' in a row (threshold ' + data.config.exhaustion_at + ')'
    : 'since ' + (st.hits.length ? st.hits[0] : '');

  const cur = selected ? data.patterns.find(p => hitKey(p) === selected) : null;
  const win = cur ? new Set(cur.positions) : null;
  const pat = document.getElementById('patterns');
  if (!data.patterns.length) {
    pat.innerHTML = '<div class="empty" style="grid-column:1/-1">No pattern in the current window.</div>';
  } else {
    pat.innerHTML = data.patterns.map((p, i) =>
      '<div class="cell k-' + p.kind + (cur && hitKey(cur) === hitKey(p) ? ' sel' : '') + '" title="' + esc(p.kind) + '" onclick="pick(' + i + ')">' + esc(p.hhmm) + '</div>'
    ).join('');
  }

  const grid = document.getElementById('candles');
  if (!data.candles.length) {
    grid.innerHTML = '<div class="empty" style="grid-column:1/-1">' + (data.loading ? 'Syncing with the database...' : 'No rows found in ' + esc(data.table) + '.') + '</div>';
  } else {
    grid.innerHTML = data.candles.map(c => {
      let cls = 'cell t-' + c.tone;
      if (win) cls += win.has(c.index) ? ' hl' : ' dim';
      return '<div class="' + cls + '" title="' + esc(c.time) + '">' + esc(c.hhmm) + '</div>';
    }).join('');
  }
}

function pick(i) {
  if (!last) return;
  const k = hitKey(last.patterns[i]);
  selected = selected === k ? null : k;
  render(last);
}

async function poll() {
  try { const r = await fetch(API); if (r.ok) render(await r.json()); } catch(e) {}
}

async function manualRefresh() {
  try { await fetch(REFRESH, { method: 'POST' }); } catch(e) {}
  setTimeout(poll, 500);
}

poll();
setInterval(poll, 1000);
</script>
</body>
</html>
"""
