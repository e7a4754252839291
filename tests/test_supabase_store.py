import io
import json
import unittest
import urllib.error
import urllib.parse
from unittest import mock

import config
import supabase_store


def _response(payload) -> mock.MagicMock:
    resp = mock.MagicMock()
    resp.read.return_value = json.dumps(payload).encode("utf-8")
    cm = mock.MagicMock()
    cm.__enter__.return_value = resp
    return cm


class _ConfiguredStore(unittest.TestCase):
    def setUp(self):
        supabase_store._schema_hints_logged.clear()
        patches = [
            mock.patch.object(config, "SUPABASE_URL", "https://example.supabase.co/"),
            mock.patch.object(config, "SUPABASE_KEY", "anon-key"),
            mock.patch.object(config, "CANDLE_TABLE", "eurusd_otc_completo"),
            mock.patch.object(config, "TIMESTAMP_COLUMN", "datetime_mao"),
            mock.patch.object(config, "LABEL_COLUMN", "cor"),
        ]
        for p in patches:
            p.start()
            self.addCleanup(p.stop)


class LoadCandlesTests(_ConfiguredStore):
    def test_query_shape_and_headers(self):
        with mock.patch("urllib.request.urlopen", return_value=_response([])) as urlopen:
            self.assertEqual(supabase_store.load_candles(limit=200), [])

        req = urlopen.call_args[0][0]
        parsed = urllib.parse.urlparse(req.full_url)
        self.assertEqual(parsed.path, "/rest/v1/eurusd_otc_completo")
        query = urllib.parse.parse_qs(parsed.query)
        self.assertEqual(query["select"], ["datetime_mao,cor"])
        self.assertEqual(query["order"], ["datetime_mao.desc"])
        self.assertEqual(query["limit"], ["200"])
        self.assertEqual(req.get_method(), "GET")
        self.assertEqual(req.get_header("Apikey"), "anon-key")
        self.assertEqual(req.get_header("Authorization"), "Bearer anon-key")

    def test_descending_rows_come_back_oldest_first(self):
        rows = [
            {"datetime_mao": "2024-05-01 10:02:00", "cor": "VERMELHO"},
            {"datetime_mao": "2024-05-01 10:01:00", "cor": "DOJI"},
            {"datetime_mao": "2024-05-01 10:00:00", "cor": "verde"},
        ]
        with mock.patch("urllib.request.urlopen", return_value=_response(rows)):
            candles = supabase_store.load_candles()

        self.assertEqual([c.timestamp for c in candles], [
            "2024-05-01 10:00:00", "2024-05-01 10:01:00", "2024-05-01 10:02:00",
        ])
        self.assertEqual([c.direction for c in candles], ["up", "neutral", "down"])

    def test_malformed_rows_skipped(self):
        rows = [
            {"datetime_mao": "2024-05-01 10:01:00", "cor": None},
            {"datetime_mao": None, "cor": "VERDE"},
            "junk",
            {"datetime_mao": "2024-05-01 10:00:00", "cor": "VERDE"},
        ]
        with mock.patch("urllib.request.urlopen", return_value=_response(rows)):
            candles = supabase_store.load_candles()
        self.assertEqual(len(candles), 2)
        self.assertEqual(candles[1].direction, "neutral")

    def test_duplicate_timestamps_kept(self):
        rows = [
            {"datetime_mao": "2024-05-01 10:00:00", "cor": "VERDE"},
            {"datetime_mao": "2024-05-01 10:00:00", "cor": "VERMELHO"},
        ]
        with mock.patch("urllib.request.urlopen", return_value=_response(rows)):
            candles = supabase_store.load_candles()
        self.assertEqual([c.direction for c in candles], ["down", "up"])

    def test_http_error_returns_none(self):
        err = urllib.error.HTTPError(
            "https://example.supabase.co/rest/v1/eurusd_otc_completo",
            400, "Bad Request", {},
            io.BytesIO(b'{"message":"column eurusd_otc_completo.cor does not exist"}'),
        )
        with mock.patch("urllib.request.urlopen", side_effect=err):
            with self.assertLogs("supabase_store", level="WARNING") as logs:
                self.assertIsNone(supabase_store.load_candles())
        self.assertTrue(any("LABEL_COLUMN" in line for line in logs.output))

    def test_network_error_returns_none(self):
        with mock.patch("urllib.request.urlopen", side_effect=OSError("connection refused")):
            self.assertIsNone(supabase_store.load_candles())

    def test_non_list_payload_is_failure(self):
        with mock.patch("urllib.request.urlopen", return_value=_response({"message": "odd"})):
            self.assertIsNone(supabase_store.load_candles())


class DisabledStoreTests(unittest.TestCase):
    def test_unconfigured_store_never_calls_network(self):
        with mock.patch.object(config, "SUPABASE_URL", ""), \
                mock.patch.object(config, "SUPABASE_KEY", ""), \
                mock.patch("urllib.request.urlopen") as urlopen:
            self.assertIsNone(supabase_store.load_candles())
        urlopen.assert_not_called()


if __name__ == "__main__":
    unittest.main()
