import os
import sys
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from algorithms import DerivedMetrics
from models import Exercise


class DerivedMetricsTest(unittest.TestCase):
    def test_initial_progress_is_reproducible(self) -> None:
        self.assertEqual(DerivedMetrics.initial_progress("1"), 69)
        self.assertEqual(DerivedMetrics.initial_progress("abc"), 74)
        for ex_id in ("1", "abc", "f3a9c0d1e2b4", "zzzzzzzzzzzz"):
            value = DerivedMetrics.initial_progress(ex_id)
            self.assertGreaterEqual(value, 60)
            self.assertLess(value, 100)
            self.assertEqual(value, DerivedMetrics.initial_progress(ex_id))

    def test_display_volume(self) -> None:
        self.assertEqual(DerivedMetrics.display_volume(2.4, "WEEK"), 2.4)
        self.assertEqual(DerivedMetrics.display_volume(2.4, "MONTH"), 10.3)
        self.assertEqual(DerivedMetrics.display_volume(3.6, "MONTH"), 15.5)
        self.assertEqual(DerivedMetrics.display_volume(0, "MONTH"), 0)
        with self.assertRaises(ValueError):
            DerivedMetrics.display_volume(1.0, "YEAR")

    def test_scale_for_timeframe_leaves_source_untouched(self) -> None:
        ex = Exercise(id="1", name="Supino", category="Peito", avg_volume=3.0)
        scaled = DerivedMetrics.scale_for_timeframe([ex], "MONTH")
        self.assertEqual(scaled[0].avg_volume, 12.9)
        self.assertEqual(ex.avg_volume, 3.0)

    def test_trend_sequence(self) -> None:
        ex = Exercise(
            id="abc", name="Supino", category="Peito", last_weight=80, pb_weight=100
        )
        points = DerivedMetrics.trend_sequence(ex)
        self.assertEqual(len(points), 8)
        self.assertEqual(points, DerivedMetrics.trend_sequence(ex))
        self.assertEqual([p["label"] for p in points][:2], ["1 Out", "2 Out"])
        self.assertEqual([p["pb"] for p in points], [95.0] * 5 + [100.0] * 3)
        for i, point in enumerate(points):
            base = 80 * (0.85 + 0.15 * i / 7)
            self.assertLessEqual(abs(point["weight"] - base), 3.05)

    def test_trend_bounds(self) -> None:
        points = [{"weight": 10, "pb": 20}, {"weight": 5, "pb": 30}]
        self.assertEqual(DerivedMetrics.trend_bounds(points), (4.5, 33.0))
        self.assertEqual(DerivedMetrics.trend_bounds([]), (0.0, 0.0))


if __name__ == "__main__":
    unittest.main()
