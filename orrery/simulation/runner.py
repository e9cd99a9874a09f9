import logging
import math
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from orrery.config import settings
from orrery.data.dates import as_utc, start_of_day
from orrery.engine.driver import AnimationDriver, PlaybackState
from orrery.models.body import CelestialBody

logger = logging.getLogger(__name__)


def _as_instant(value) -> datetime:
    if isinstance(value, datetime):
        return as_utc(value)
    return start_of_day(value)


def run_playback(
    table,
    start,
    end,
    duration: Optional[float] = None,
    fps: Optional[int] = None,
    bodies: Optional[Sequence[CelestialBody]] = None,
    keep_every: int = 1,
) -> Dict[str, Any]:
    """
    Drive an AnimationDriver headlessly at a fixed frame rate until it completes.

    Returns a dict with:
      - frames: [{"frame", "time", "positions": {name: [x, y, z]}}] (every keep_every-th frame)
      - dates: timestamps passed to the throttled date callback
      - final: final display positions
      - summary: driver state summary
    """
    duration = float(getattr(settings, "DEFAULT_PLAYBACK_DURATION", 10.0) if duration is None else duration)
    fps = int(getattr(settings, "DEFAULT_FPS", 60) if fps is None else fps)
    if fps <= 0:
        raise ValueError("fps must be > 0")
    keep_every = max(1, int(keep_every))

    dates: List[str] = []
    driver = AnimationDriver(
        table,
        _as_instant(start),
        _as_instant(end),
        duration,
        bodies=bodies,
        on_date_change=lambda d: dates.append(d.isoformat()),
    )

    frames: List[Dict[str, Any]] = []
    # the driver clamps each tick, so budget frames from the clamped step
    dt = settings.clamp_frame_delta(1.0 / fps)
    # a few spare frames for float accumulation at the boundary
    max_frames = int(math.ceil(duration / dt)) + 10

    driver.start()
    for frame in range(max_frames):
        positions = driver.tick(dt)
        if frame % keep_every == 0 or driver.state is PlaybackState.COMPLETE:
            frames.append({
                "frame": frame,
                "time": driver.current_time.isoformat(),
                "positions": {k: [float(x) for x in v] for k, v in positions.items()},
            })
        if driver.state is PlaybackState.COMPLETE:
            break

    if driver.state is not PlaybackState.COMPLETE:
        logger.warning("Playback did not complete within %d frames (progress %.3f)", max_frames, driver.progress)

    return {
        "frames": frames,
        "dates": dates,
        "final": {k: [float(x) for x in v] for k, v in driver.positions.items()},
        "summary": dict(driver.state_summary()),
    }
