from __future__ import annotations

import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional, Sequence

import numpy as np

from orrery.config import settings
from orrery.data.dates import as_utc
from orrery.models.body import CelestialBody, resolve_bodies
from orrery.physics.frames import to_visualization_frame
from orrery.physics.interpolation import DailyTable, interpolate_position
from orrery.physics.smoothing import SpringState

logger = logging.getLogger(__name__)

Positions = Dict[str, np.ndarray]


class PlaybackState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETE = "complete"


class AnimationDriver:
    """
    Frame-driven orbital playback.

    Each tick maps accumulated (clamped) wall time onto [start, end], asks the
    interpolator for every body (reference body first), moves the result into
    the display frame and feeds it to that body's spring. Position maps go to
    on_positions every tick; the displayed date goes to on_date_change at
    roughly 10 Hz.
    """

    def __init__(
        self,
        table: DailyTable,
        start: datetime,
        end: datetime,
        duration: float,
        bodies: Optional[Sequence[CelestialBody]] = None,
        on_positions: Optional[Callable[[Positions], None]] = None,
        on_date_change: Optional[Callable[[datetime], None]] = None,
    ):
        self.table = table
        self.start_time = as_utc(start)
        self.end_time = as_utc(end)
        self.duration = float(duration)
        self.bodies: List[CelestialBody] = list(bodies) if bodies is not None else resolve_bodies()
        self.on_positions = on_positions
        self.on_date_change = on_date_change

        if self.duration <= 0:
            raise ValueError("duration must be > 0")
        if self.end_time < self.start_time:
            raise ValueError("end must not be before start")

        refs = [i for i, b in enumerate(self.bodies) if b.is_reference]
        if len(refs) != 1:
            raise ValueError("exactly one reference body is required")
        self.reference_index = refs[0]

        self.state = PlaybackState.IDLE
        self._reset_session()

    # -------------------------
    # Session state
    # -------------------------
    def _reset_session(self) -> None:
        self.accumulated = 0.0
        self.frames_rendered = 0
        self.current_time = self.start_time
        self._last_date_emit: Optional[float] = None
        self._last_helio: Dict[str, np.ndarray] = {}
        self.springs: Dict[str, SpringState] = {b.name: SpringState.for_body(b) for b in self.bodies}
        self.positions: Positions = {}

    @property
    def span(self) -> timedelta:
        return self.end_time - self.start_time

    @property
    def progress(self) -> float:
        return min(1.0, self.accumulated / self.duration)

    def start(self) -> None:
        """idle/complete -> running; accumulators and springs start fresh."""
        self._reset_session()
        self.state = PlaybackState.RUNNING
        logger.info("Playback started: %s -> %s over %.2fs", self.start_time, self.end_time, self.duration)

    def stop(self) -> None:
        if self.state is PlaybackState.RUNNING:
            self.state = PlaybackState.IDLE
            logger.info("Playback stopped at %s", self.current_time)

    def reset(self) -> None:
        self.state = PlaybackState.IDLE
        self._reset_session()

    # -------------------------
    # Position pipeline
    # -------------------------
    def _helio(self, index: int, instant: datetime) -> np.ndarray:
        body = self.bodies[index]
        pos = interpolate_position(index, self.table, instant)
        if pos is None:
            # missing data: hold last good value, else origin
            return self._last_helio.get(body.name, np.zeros(3, dtype=float))
        self._last_helio[body.name] = pos
        return pos

    def targets_at(self, instant: datetime) -> Positions:
        """
        Display-frame targets for every body at instant. A body whose
        computation fails is left out (the caller holds its last position).
        """
        ref_body = self.bodies[self.reference_index]
        try:
            ref_helio = self._helio(self.reference_index, instant)
        except Exception as e:
            logger.error("Reference body %s failed at %s: %s", ref_body.name, instant, e)
            ref_helio = self._last_helio.get(ref_body.name, np.zeros(3, dtype=float))

        out: Positions = {}
        for idx, body in enumerate(self.bodies):
            try:
                helio = ref_helio if idx == self.reference_index else self._helio(idx, instant)
                out[body.name] = to_visualization_frame(body, helio, ref_helio)
            except Exception as e:
                logger.error("Position update failed for %s at %s: %s", body.name, instant, e)
        return out

    def _emit_positions(self) -> None:
        if self.on_positions is None:
            return
        try:
            self.on_positions({k: v.copy() for k, v in self.positions.items()})
        except Exception as e:
            logger.error("on_positions callback failed: %s", e)

    def _emit_date(self, instant: datetime, force: bool = False) -> None:
        if self.on_date_change is None:
            return
        interval = float(getattr(settings, "DATE_UPDATE_INTERVAL", 0.1))
        if not force and self._last_date_emit is not None and self.accumulated - self._last_date_emit < interval:
            return
        self._last_date_emit = self.accumulated
        try:
            self.on_date_change(instant)
        except Exception as e:
            logger.error("on_date_change callback failed: %s", e)

    # -------------------------
    # Frame step
    # -------------------------
    def tick(self, delta: float) -> Positions:
        """
        Advance one rendered frame by delta seconds of wall time and return
        the smoothed display positions.
        """
        if self.state is not PlaybackState.RUNNING:
            if self.state is PlaybackState.COMPLETE:
                self._emit_positions()
            return dict(self.positions)

        dt = settings.clamp_frame_delta(delta)
        self.accumulated += dt

        span_s = self.span.total_seconds()
        elapsed_s = min(self.accumulated / self.duration * span_s, span_s)

        if elapsed_s >= span_s:
            self._complete()
            return dict(self.positions)

        instant = self.start_time + timedelta(seconds=elapsed_s)
        self.current_time = instant
        self._emit_date(instant)

        targets = self.targets_at(instant)
        for body in self.bodies:
            target = targets.get(body.name)
            if target is None:
                continue
            try:
                self.positions[body.name] = self.springs[body.name].update(target, dt)
            except Exception as e:
                logger.error("Smoothing failed for %s: %s", body.name, e)

        self.frames_rendered += 1
        self._emit_positions()
        return dict(self.positions)

    def _complete(self) -> None:
        """Snap every body to its exact end position and stop advancing."""
        self.current_time = self.end_time
        targets = self.targets_at(self.end_time)
        for name, target in targets.items():
            self.positions[name] = self.springs[name].snap(target)

        self.state = PlaybackState.COMPLETE
        self._emit_date(self.end_time, force=True)
        self._emit_positions()
        logger.info("Playback complete at %s after %d frames", self.end_time, self.frames_rendered)

    # -------------------------
    # Convenience
    # -------------------------
    def positions_at(self, instant: datetime) -> Positions:
        """Unsmoothed display positions at an arbitrary instant (no state change)."""
        saved = dict(self._last_helio)
        try:
            return self.targets_at(as_utc(instant))
        finally:
            self._last_helio = saved

    @classmethod
    def from_cache(cls, cache, start: datetime, end: datetime, duration: float, **kwargs) -> "AnimationDriver":
        return cls(cache.snapshot(), start, end, duration, bodies=cache.bodies, **kwargs)

    def state_summary(self) -> Mapping[str, object]:
        return {
            "state": self.state.value,
            "current_time": self.current_time.isoformat(),
            "progress": self.progress,
            "frames_rendered": self.frames_rendered,
        }
