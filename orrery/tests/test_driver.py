import unittest
from datetime import datetime, timedelta, timezone

import numpy as np

from orrery.engine.driver import AnimationDriver, PlaybackState
from orrery.models.body import resolve_bodies
from orrery.models.orbital_elements import OrbitalElements

START = datetime(2025, 1, 1, tzinfo=timezone.utc)
END = datetime(2025, 1, 2, tzinfo=timezone.utc)


def _day(shift):
    out = []
    for idx, body in enumerate(resolve_bodies()):
        if body.is_star:
            out.append(OrbitalElements.zero())
            continue
        out.append(OrbitalElements(
            a=5.0e7 * (idx + 1), e=0.02, i=1.5, om=40.0 + idx, w=70.0,
            M0=(10.0 * idx + shift) % 360.0, T=365.25,
        ))
    return out


def _table():
    return {
        "2025-01-01": _day(0.0),
        "2025-01-02": _day(1.0),
        "2025-01-03": _day(2.0),
    }


def _run_to_completion(driver, dt=0.1, limit=10000):
    for _ in range(limit):
        driver.tick(dt)
        if driver.state is PlaybackState.COMPLETE:
            return
    raise AssertionError("playback never completed")


class TestAnimationDriver(unittest.TestCase):

    def test_half_duration_maps_to_midday(self):
        driver = AnimationDriver(_table(), START, END, 10.0)
        driver.start()
        for _ in range(50):
            driver.tick(0.1)
        expected = datetime(2025, 1, 1, 12, tzinfo=timezone.utc)
        self.assertLess(abs((driver.current_time - expected).total_seconds()), 1.0)
        self.assertIs(driver.state, PlaybackState.RUNNING)

    def test_frame_delta_is_clamped(self):
        driver = AnimationDriver(_table(), START, END, 10.0)
        driver.start()
        driver.tick(5.0)
        self.assertAlmostEqual(driver.accumulated, 0.1)
        driver.tick(-1.0)
        self.assertAlmostEqual(driver.accumulated, 0.1)

    def test_completion_snaps_to_end_positions(self):
        dates = []
        driver = AnimationDriver(_table(), START, END, 1.0, on_date_change=dates.append)
        driver.start()
        _run_to_completion(driver)

        self.assertEqual(driver.current_time, END)
        self.assertEqual(dates[-1], END)
        expected = driver.positions_at(END)
        for name, pos in expected.items():
            np.testing.assert_allclose(driver.positions[name], pos)
            self.assertTrue(np.all(driver.springs[name].velocity == 0.0))

        frames = driver.frames_rendered
        driver.tick(0.1)
        self.assertEqual(driver.frames_rendered, frames)
        self.assertEqual(driver.current_time, END)

    def test_date_callback_throttled(self):
        dates = []
        driver = AnimationDriver(_table(), START, END, 100.0, on_date_change=dates.append)
        driver.start()
        for _ in range(60):
            driver.tick(1.0 / 60.0)
        self.assertGreaterEqual(len(dates), 8)
        self.assertLessEqual(len(dates), 11)
        self.assertEqual(driver.frames_rendered, 60)

    def test_reference_body_stays_at_origin(self):
        seen = []
        driver = AnimationDriver(_table(), START, END, 2.0, on_positions=seen.append)
        driver.start()
        _run_to_completion(driver, dt=1.0 / 30.0)
        self.assertTrue(seen)
        for frame in seen:
            np.testing.assert_array_equal(frame["Earth"], [0.0, 0.0, 0.0])

    def test_star_horizontal_plane(self):
        driver = AnimationDriver(_table(), START, END, 2.0)
        driver.start()
        out = driver.tick(0.1)
        self.assertEqual(out["Sun"][1], 0.0)

    def test_first_frame_has_no_lag(self):
        driver = AnimationDriver(_table(), START, END, 10.0)
        driver.start()
        out = driver.tick(0.1)
        targets = driver.positions_at(driver.current_time)
        for name, pos in targets.items():
            np.testing.assert_allclose(out[name], pos)

    def test_missing_data_does_not_raise(self):
        table = _table()
        table["2025-01-01"] = [None] * 9
        table.pop("2025-01-02")
        driver = AnimationDriver(table, START, END, 1.0)
        driver.start()
        out = driver.tick(0.1)
        self.assertEqual(len(out), 9)
        np.testing.assert_array_equal(out["Mars"], [0.0, 0.0, 0.0])
        _run_to_completion(driver)

    def test_failing_table_is_contained(self):
        class Exploding(dict):
            def get(self, key, default=None):
                raise RuntimeError("storage unavailable")

        driver = AnimationDriver(Exploding(), START, END, 1.0)
        driver.start()
        driver.tick(0.1)
        _run_to_completion(driver)
        self.assertIs(driver.state, PlaybackState.COMPLETE)

    def test_failing_callbacks_are_contained(self):
        def boom(_):
            raise RuntimeError("ui went away")

        driver = AnimationDriver(_table(), START, END, 1.0, on_positions=boom, on_date_change=boom)
        driver.start()
        _run_to_completion(driver)
        self.assertIs(driver.state, PlaybackState.COMPLETE)

    def test_stop_start_reset(self):
        driver = AnimationDriver(_table(), START, END, 10.0)
        self.assertIs(driver.state, PlaybackState.IDLE)
        driver.tick(0.1)
        self.assertEqual(driver.accumulated, 0.0)

        driver.start()
        driver.tick(0.1)
        driver.stop()
        self.assertIs(driver.state, PlaybackState.IDLE)
        driver.tick(0.1)
        self.assertAlmostEqual(driver.accumulated, 0.1)

        driver.start()
        self.assertEqual(driver.accumulated, 0.0)
        self.assertEqual(driver.positions, {})
        driver.tick(0.1)
        driver.reset()
        self.assertIs(driver.state, PlaybackState.IDLE)
        self.assertEqual(driver.current_time, START)

    def test_zero_length_range_completes_immediately(self):
        driver = AnimationDriver(_table(), START, START, 5.0)
        driver.start()
        driver.tick(0.01)
        self.assertIs(driver.state, PlaybackState.COMPLETE)
        self.assertEqual(driver.current_time, START)

    def test_invalid_arguments(self):
        with self.assertRaises(ValueError):
            AnimationDriver(_table(), START, END, 0.0)
        with self.assertRaises(ValueError):
            AnimationDriver(_table(), END, START, 5.0)
        with self.assertRaises(ValueError):
            AnimationDriver(_table(), START, END, 5.0, bodies=resolve_bodies()[:3])

    def test_state_summary(self):
        driver = AnimationDriver(_table(), START, END, 10.0)
        driver.start()
        for _ in range(10):
            driver.tick(0.1)
        summary = driver.state_summary()
        self.assertEqual(summary["state"], "running")
        self.assertEqual(summary["frames_rendered"], 10)
        self.assertAlmostEqual(summary["progress"], 0.1)
        self.assertTrue(summary["current_time"].startswith("2025-01-01T02:"))

    def test_naive_bounds_treated_as_utc(self):
        driver = AnimationDriver(_table(), START.replace(tzinfo=None), END.replace(tzinfo=None), 10.0)
        self.assertEqual(driver.span, timedelta(days=1))
        self.assertEqual(driver.start_time, START)


if __name__ == '__main__':
    unittest.main()
