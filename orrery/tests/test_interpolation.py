import unittest
from datetime import datetime, timedelta, timezone

import numpy as np

from orrery.models.orbital_elements import OrbitalElements
from orrery.physics.interpolation import day_progress, interpolate_position
from orrery.physics.kepler import solve_position

DAY1 = OrbitalElements(a=1.0, e=0.0, i=0.0, om=0.0, w=0.0, M0=0.0, T=365.25)
DAY2 = OrbitalElements(a=1.0, e=0.0, i=0.0, om=0.0, w=0.0, M0=90.0, T=365.25)


def _utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


class TestInterpolatePosition(unittest.TestCase):

    def setUp(self):
        self.table = {
            "2025-01-01": [DAY1, None],
            "2025-01-02": [DAY2, None],
        }

    def test_missing_day_is_absent(self):
        self.assertIsNone(interpolate_position(0, self.table, _utc(2024, 12, 31, 12)))

    def test_missing_body_slot_is_absent(self):
        self.assertIsNone(interpolate_position(1, self.table, _utc(2025, 1, 1, 12)))

    def test_out_of_range_index_is_absent(self):
        self.assertIsNone(interpolate_position(5, self.table, _utc(2025, 1, 1, 12)))

    def test_day_start_equals_kepler_position(self):
        pos = interpolate_position(0, self.table, _utc(2025, 1, 1))
        np.testing.assert_array_equal(pos, solve_position(DAY1))

    def test_midday_is_linear_blend(self):
        pos = interpolate_position(0, self.table, _utc(2025, 1, 1, 12))
        expected = 0.5 * (solve_position(DAY1) + solve_position(DAY2))
        np.testing.assert_allclose(pos, expected, atol=1e-12)

    def test_day_end_approaches_next_day(self):
        pos = interpolate_position(0, self.table, _utc(2025, 1, 1, 23, 59, 59, 999000))
        np.testing.assert_allclose(pos, solve_position(DAY2), atol=1e-6)

    def test_last_day_without_successor_is_unblended(self):
        pos = interpolate_position(0, self.table, _utc(2025, 1, 2, 18))
        np.testing.assert_array_equal(pos, solve_position(DAY2))

    def test_identical_consecutive_days(self):
        table = {"2025-01-01": [DAY1], "2025-01-02": [DAY1]}
        start = interpolate_position(0, table, _utc(2025, 1, 1))
        late = interpolate_position(0, table, _utc(2025, 1, 1, 23))
        np.testing.assert_array_equal(start, solve_position(DAY1))
        np.testing.assert_array_equal(late, solve_position(DAY1))

    def test_naive_instant_treated_as_utc(self):
        naive = interpolate_position(0, self.table, datetime(2025, 1, 1, 6))
        aware = interpolate_position(0, self.table, _utc(2025, 1, 1, 6))
        np.testing.assert_array_equal(naive, aware)

    def test_other_timezone_uses_utc_day(self):
        tz = timezone(timedelta(hours=5))
        local = datetime(2025, 1, 2, 3, 0, tzinfo=tz)  # 2025-01-01 22:00 UTC
        pos = interpolate_position(0, self.table, local)
        np.testing.assert_allclose(pos, interpolate_position(0, self.table, _utc(2025, 1, 1, 22)))

    def test_day_progress(self):
        self.assertAlmostEqual(day_progress(_utc(2025, 1, 1, 6)), 0.25)
        self.assertEqual(day_progress(_utc(2025, 1, 1)), 0.0)


if __name__ == '__main__':
    unittest.main()
