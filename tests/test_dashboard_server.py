import json
import threading
import unittest
import urllib.error
import urllib.request
from unittest import mock

import app
import candle_feed
import dashboard
from candles import make_candle


def _feed_with_data() -> candle_feed.CandleFeed:
    rows = [
        make_candle("2024-05-01 10:00:00", "VERDE"),
        make_candle("2024-05-01 10:01:00", "VERMELHO"),
        make_candle("2024-05-01 10:02:00", "VERMELHO"),
        make_candle("2024-05-01 10:03:00", "VERDE"),
        make_candle("2024-05-01 10:04:00", "AZUL"),
    ]
    feed = candle_feed.CandleFeed(fetch=mock.Mock(return_value=rows), timezone_name="UTC")
    feed.refresh_once()
    return feed


class SerializeStateTests(unittest.TestCase):
    def test_payload_shape(self):
        feed = _feed_with_data()
        data = dashboard.serialize_state(feed.snapshot(), "UTC")

        self.assertEqual(data["connection"], "online")
        self.assertEqual(data["timezone"], "UTC")
        self.assertEqual(data["stats"]["total"], 5)
        self.assertEqual(data["stats"]["neutral_count"], 1)
        self.assertEqual(data["stats"]["win_rate"], "50.0%")

        # newest first for the grid
        self.assertEqual(data["candles"][0], {
            "index": 4, "time": "2024-05-01 10:04:00", "hhmm": "10:04",
            "direction": "neutral", "tone": "blue",
        })
        self.assertEqual(data["candles"][-1]["hhmm"], "10:00")

        self.assertEqual(len(data["patterns"]), 1)
        self.assertEqual(data["patterns"][0]["kind"], "reversal")
        self.assertEqual(data["patterns"][0]["hhmm"], "10:03")
        self.assertEqual(data["patterns"][0]["positions"], [0, 1, 2, 3])
        self.assertEqual(data["streak"], {
            "kind": "reversal", "length": 1, "exhausted": False,
            "hits": ["2024-05-01 10:03:00"],
        })
        self.assertEqual(data["telemetry"], {
            "fetch_count": 1, "error_count": 0,
            "consecutive_errors": 0, "dropped_ticks": 0,
        })
        json.dumps(data)

    def test_candle_rows_carry_positions_for_repeated_timestamps(self):
        rows = [make_candle("2024-05-01 10:00:00", label)
                for label in ("VERDE", "VERMELHO", "VERMELHO", "VERDE", "VERDE")]
        feed = candle_feed.CandleFeed(fetch=mock.Mock(return_value=rows), timezone_name="UTC")
        feed.refresh_once()
        data = dashboard.serialize_state(feed.snapshot(), "UTC")

        self.assertEqual([c["index"] for c in data["candles"]], [4, 3, 2, 1, 0])
        self.assertEqual(len({c["time"] for c in data["candles"]}), 1)
        # only the reversal ending at position 3 qualifies
        self.assertEqual([p["positions"] for p in data["patterns"]], [[0, 1, 2, 3]])
        highlighted = [c for c in data["candles"] if c["index"] in data["patterns"][0]["positions"]]
        self.assertEqual(len(highlighted), 4)

    def test_empty_state_serializes(self):
        data = dashboard.serialize_state(candle_feed.DashboardState())
        self.assertEqual(data["connection"], "connecting")
        self.assertEqual(data["candles"], [])
        self.assertIsNone(data["streak"]["kind"])


class DashboardHandlerTests(unittest.TestCase):
    def setUp(self):
        self.server = app.ThreadingHTTPServer(("127.0.0.1", 0), app.DashboardHandler)
        self.thread = threading.Thread(target=self.server.serve_forever, daemon=True)
        self.thread.start()
        self.base = f"http://127.0.0.1:{self.server.server_address[1]}"
        self.addCleanup(self.server.server_close)
        self.addCleanup(self.server.shutdown)

    def _get(self, path):
        try:
            with urllib.request.urlopen(self.base + path, timeout=5) as resp:
                return resp.status, resp.read().decode("utf-8")
        except urllib.error.HTTPError as e:
            return e.code, e.read().decode("utf-8")

    def _post(self, path):
        req = urllib.request.Request(self.base + path, data=b"", method="POST")
        try:
            with urllib.request.urlopen(req, timeout=5) as resp:
                return resp.status, json.loads(resp.read().decode("utf-8"))
        except urllib.error.HTTPError as e:
            return e.code, json.loads(e.read().decode("utf-8"))

    def test_root_serves_page(self):
        code, body = self._get("/")
        self.assertEqual(code, 200)
        self.assertIn("/api/status", body)

    def test_status_before_feed_is_503(self):
        with mock.patch.object(app, "_FEED", None):
            code, _ = self._get("/api/status")
        self.assertEqual(code, 503)

    def test_status_returns_feed_snapshot(self):
        with mock.patch.object(app, "_FEED", _feed_with_data()):
            code, body = self._get("/api/status")
        self.assertEqual(code, 200)
        self.assertEqual(json.loads(body)["stats"]["total"], 5)

    def test_unknown_path_404(self):
        code, body = self._get("/nope")
        self.assertEqual(code, 404)
        self.assertEqual(json.loads(body), {"error": "not found"})

    def test_refresh_requires_running_feed(self):
        feed = _feed_with_data()
        with mock.patch.object(app, "_FEED", feed):
            code, body = self._post("/api/refresh")
        self.assertEqual(code, 503)
        self.assertFalse(body["ok"])

    def test_refresh_in_flight_is_409(self):
        feed = _feed_with_data()
        feed.running = True
        with mock.patch.object(app, "_FEED", feed), \
                mock.patch.object(feed, "request_refresh", return_value=False):
            code, body = self._post("/api/refresh")
        self.assertEqual(code, 409)
        self.assertFalse(body["ok"])

    def test_refresh_started(self):
        feed = _feed_with_data()
        feed.running = True
        with mock.patch.object(app, "_FEED", feed), \
                mock.patch.object(feed, "request_refresh", return_value=True) as req:
            code, body = self._post("/api/refresh")
        self.assertEqual(code, 200)
        self.assertTrue(body["ok"])
        req.assert_called_once_with()


if __name__ == "__main__":
    unittest.main()
