# orrery/physics/interpolation.py
from __future__ import annotations

from datetime import datetime
from typing import Mapping, Optional, Sequence

import numpy as np

from orrery.data.dates import DAY, as_utc, start_of_day
from orrery.models.orbital_elements import OrbitalElements
from orrery.physics.kepler import solve_position

DailyTable = Mapping[str, Sequence[Optional[OrbitalElements]]]


def _slot(table: DailyTable, date_str: str, index: int) -> Optional[OrbitalElements]:
    day = table.get(date_str)
    if not day or index < 0 or index >= len(day):
        return None
    return day[index]


def day_progress(exact_instant: datetime) -> float:
    """
    Fraction (0..1) of the UTC day elapsed at exact_instant.
    """
    t = as_utc(exact_instant)
    day_start = start_of_day(t)
    return (t - day_start) / DAY


def interpolate_position(body_index: int, table: DailyTable, exact_instant: datetime) -> Optional[np.ndarray]:
    """
    Heliocentric position of a body at a sub-day instant.

    Uses the elements of the instant's UTC day and, when present and
    different, the following day, blending the two Kepler positions
    linearly by the elapsed fraction of the day. Returns None when the
    day's record is missing; the caller supplies the fallback.
    """
    t = as_utc(exact_instant)
    day_start = start_of_day(t)
    current_key = day_start.date().isoformat()
    next_key = (day_start + DAY).date().isoformat()

    current = _slot(table, current_key, body_index)
    if current is None:
        return None

    current_pos = solve_position(current)

    following = _slot(table, next_key, body_index)
    if following is None or following == current:
        return current_pos

    next_pos = solve_position(following)
    progress = day_progress(t)
    return current_pos + (next_pos - current_pos) * progress
