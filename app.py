"""
Candle catalog runtime.

- Supabase candle table as the only data source (read-only)
- CandleFeed polls on a fixed interval with a single-flight guard
- dashboard page + JSON status on the built-in HTTP server
"""

from __future__ import annotations

import json
import logging
import signal
import threading
import time
from http.server import BaseHTTPRequestHandler, HTTPServer
from socketserver import ThreadingMixIn
from typing import Any

import config
import dashboard
from candle_feed import CandleFeed


logger = logging.getLogger(__name__)


def setup_logging() -> None:
    level = getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )


_FEED: CandleFeed | None = None


class ThreadingHTTPServer(ThreadingMixIn, HTTPServer):
    daemon_threads = True


class DashboardHandler(BaseHTTPRequestHandler):
    def log_message(self, fmt: str, *args: Any) -> None:  # noqa: D401
        logger.debug("HTTP %s - %s", self.address_string(), fmt % args)

    def _send_json(self, data: dict, code: int = 200) -> None:
        payload = json.dumps(data).encode("utf-8")
        self.send_response(code)
        self.send_header("Content-Type", "application/json")
        self.send_header("Cache-Control", "no-store, no-cache, must-revalidate, max-age=0")
        self.send_header("Pragma", "no-cache")
        self.send_header("Expires", "0")
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    def _send_html(self, html: str) -> None:
        body = html.encode("utf-8")
        self.send_response(200)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def do_GET(self) -> None:  # noqa: N802
        try:
            if self.path == "/" or self.path.startswith("/?"):
                self._send_html(dashboard.DASHBOARD_HTML)
                return

            if self.path.startswith("/health"):
                self._send_json({"ok": True, "feed_running": bool(_FEED and _FEED.running)})
                return

            if self.path.startswith("/api/status"):
                feed = _FEED
                if feed is None:
                    self._send_json({"error": "feed not ready"}, 503)
                    return
                self._send_json(dashboard.serialize_state(feed.snapshot(), feed.timezone_name))
                return

            self._send_json({"error": "not found"}, 404)
        except Exception:
            logger.exception("Unhandled exception in GET %s", self.path)
            self._send_json({"error": "internal server error"}, 500)

    def do_POST(self) -> None:  # noqa: N802
        try:
            if not self.path.startswith("/api/refresh"):
                self._send_json({"ok": False, "message": "not found"}, 404)
                return
            feed = _FEED
            if feed is None or not feed.running:
                self._send_json({"ok": False, "message": "feed not running"}, 503)
                return
            if not feed.request_refresh():
                self._send_json({"ok": False, "message": "fetch already in flight"}, 409)
                return
            self._send_json({"ok": True, "message": "refresh started"})
        except Exception:
            logger.exception("Unhandled exception in /api/refresh")
            self._send_json({"ok": False, "message": "internal server error"}, 500)


def start_http_server() -> ThreadingHTTPServer | None:
    if config.HEALTH_PORT <= 0:
        return None
    server = ThreadingHTTPServer(("0.0.0.0", int(config.HEALTH_PORT)), DashboardHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True, name="dashboard-server")
    thread.start()
    logger.info("Dashboard server started on :%s", config.HEALTH_PORT)
    return server


def run() -> None:
    global _FEED
    setup_logging()
    config.print_banner()

    feed = CandleFeed()
    _FEED = feed
    stopping = threading.Event()

    def _handle_signal(signum, _frame):
        logger.info("Signal %s received", signum)
        stopping.set()

    signal.signal(signal.SIGTERM, _handle_signal)
    signal.signal(signal.SIGINT, _handle_signal)
    if hasattr(signal, "SIGBREAK"):
        signal.signal(signal.SIGBREAK, _handle_signal)

    server = None
    try:
        server = start_http_server()
        feed.start()
        while not stopping.is_set():
            time.sleep(0.5)
    finally:
        feed.stop("process exit")
        if server is not None:
            try:
                server.shutdown()
            except Exception as e:
                logger.warning("Dashboard server shutdown failed: %s", e)


if __name__ == "__main__":
    run()
