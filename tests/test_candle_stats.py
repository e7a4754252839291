import unittest

import candle_stats
from candles import Candle


def _candles(up: int, down: int, neutral: int) -> list[Candle]:
    rows = [Candle(f"u{i}", "up", "up") for i in range(up)]
    rows += [Candle(f"d{i}", "down", "down") for i in range(down)]
    rows += [Candle(f"n{i}", "neutral", "neutral") for i in range(neutral)]
    return rows


class ComputeStatsTests(unittest.TestCase):
    def test_counts_and_win_rate(self):
        stats = candle_stats.compute_stats(_candles(3, 1, 2))
        self.assertEqual(stats.total, 6)
        self.assertEqual((stats.up, stats.down, stats.neutral), (3, 1, 2))
        # neutrals excluded from the denominator
        self.assertEqual(stats.win_rate, "75.0%")

    def test_no_decided_candles_guarded(self):
        self.assertEqual(candle_stats.compute_stats(_candles(0, 0, 5)).win_rate, "0%")
        self.assertEqual(candle_stats.compute_stats([]), candle_stats.CandleStats())

    def test_window_takes_newest_candles(self):
        # oldest-first: 10 downs followed by 4 ups
        seq = _candles(0, 10, 0) + _candles(4, 0, 0)
        stats = candle_stats.compute_stats(seq, window=6)
        self.assertEqual(stats.total, 6)
        self.assertEqual((stats.up, stats.down), (4, 2))
        self.assertEqual(stats.win_rate, "66.7%")

    def test_status_dict_keys(self):
        d = candle_stats.compute_stats(_candles(1, 1, 0)).to_status_dict()
        self.assertEqual(d, {
            "total": 2,
            "up_count": 1,
            "down_count": 1,
            "neutral_count": 0,
            "win_rate": "50.0%",
        })


if __name__ == "__main__":
    unittest.main()
