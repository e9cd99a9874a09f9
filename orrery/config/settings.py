"""
Project settings (constants + small helpers).
Units: distances in km (as delivered by the ephemeris provider), angles in degrees,
orbital periods in days, playback time in seconds.
"""
from __future__ import annotations

import os
from typing import Dict, Optional, Tuple

# Paths
BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(__file__)))
OUTPUT_DIR = os.path.join(BASE_DIR, "outputs")
CACHE_FILE = os.path.join(BASE_DIR, "planet_cache.json")

# Run
VALIDATE_ON_IMPORT = False

# Persistent store keys (one for the day table, one for coverage metadata)
PLANET_DATA_KEY = "planet_data_v2"
PLANET_DATA_META_KEY = "planet_data_meta_v2"

# Bodies: (name, Horizons command id, relative size, colour)
BODIES: Tuple[Tuple[str, str, float, str], ...] = (
    ("Sun", "10", 2.0, "yellow"),
    ("Mercury", "199", 0.4, "gray"),
    ("Venus", "299", 0.7, "orange"),
    ("Earth", "399", 1.0, "blue"),
    ("Mars", "499", 0.65, "red"),
    ("Jupiter", "599", 1.5, "brown"),
    ("Saturn", "699", 1.25, "gold"),
    ("Uranus", "799", 1.0, "cyan"),
    ("Neptune", "899", 1.0, "darkblue"),
)
REFERENCE_BODY = "Earth"
STAR_BODY = "Sun"

# Standard orbital periods (days), used when the provider omits PR
ORBITAL_PERIOD_DAYS: Dict[str, float] = {
    "10": 365.25,
    "199": 87.97,
    "299": 224.7,
    "399": 365.25,
    "499": 686.98,
    "599": 4332.59,
    "699": 10759.22,
    "799": 30688.5,
    "899": 60190.0,
}
DEFAULT_ORBITAL_PERIOD_DAYS = 365.25

# Kepler solver
KEPLER_TOLERANCE = 1e-6
KEPLER_MAX_ITER = 10

# Visualization frame
VISUALIZATION_SCALE = 0.00000009
# Outer planets are compressed toward the centre so the system fits on screen
ORBIT_CORRECTION: Dict[str, float] = {
    "sun": 1.0,
    "mercury": 1.0,
    "venus": 1.0,
    "earth": 1.0,
    "mars": 1.0,
    "jupiter": 1.7,
    "saturn": 3.2,
    "uranus": 4.0,
    "neptune": 5.0,
}

# Playback
MAX_FRAME_DELTA = 0.1         # s, per-tick clamp so a stall cannot jump the clock
DATE_UPDATE_INTERVAL = 0.1    # s, ~10 Hz date display updates
DEFAULT_PLAYBACK_DURATION = 10.0
DEFAULT_FPS = 60
PREVIEW_FPS = 30

# Spring smoothing (size-dependent)
SPRING_BASE_STIFFNESS = 2.8
SPRING_STAR_EXTRA_STIFFNESS = 1.0
SPRING_BASE_SPEED = 0.2
SPRING_SPEED_PER_SIZE = 0.15
SPRING_MAX_SPEED = 0.8
SPRING_BASE_DAMPING = 0.8
SPRING_DAMPING_PER_SIZE = 0.02

# Data cache
PREFETCH_MONTHS = 2
PRUNE_DAYS_BACK = 1

# Ephemeris provider (JPL Horizons)
HORIZONS_API_URL = "https://ssd.jpl.nasa.gov/api/horizons.api"
HORIZONS_PROXY_URL: Optional[str] = os.environ.get("ORRERY_HORIZONS_PROXY") or None
HORIZONS_TIMEOUT = 20.0
HORIZONS_RETRIES = 3
HORIZONS_BACKOFF = 0.6


def clamp_frame_delta(delta: Optional[float]) -> float:
    out = 0.0 if delta is None else float(delta)
    return max(0.0, min(float(MAX_FRAME_DELTA), out))


def get_orbit_correction(name: str) -> float:
    return float(ORBIT_CORRECTION.get(str(name).lower(), 1.0))


def get_orbital_period(horizons_id: str) -> float:
    return float(ORBITAL_PERIOD_DAYS.get(str(horizons_id), DEFAULT_ORBITAL_PERIOD_DAYS))


def spring_constants(size: float, is_star: bool = False) -> Tuple[float, float, float]:
    """
    (stiffness, damping, speed_factor) for a body of the given relative size.
    Smaller bodies move more fluidly; the star gets extra stiffness.
    """
    size = float(size)
    speed = min(SPRING_MAX_SPEED, SPRING_BASE_SPEED + size * SPRING_SPEED_PER_SIZE)
    stiffness = SPRING_BASE_STIFFNESS + (SPRING_STAR_EXTRA_STIFFNESS if is_star else 0.0)
    damping = SPRING_BASE_DAMPING - size * SPRING_DAMPING_PER_SIZE
    return float(stiffness), float(damping), float(speed)


def validate_settings() -> None:
    if KEPLER_TOLERANCE <= 0:
        raise ValueError("KEPLER_TOLERANCE must be > 0")
    if KEPLER_MAX_ITER <= 0:
        raise ValueError("KEPLER_MAX_ITER must be > 0")
    if VISUALIZATION_SCALE <= 0:
        raise ValueError("VISUALIZATION_SCALE must be > 0")
    if any(v <= 0 for v in ORBIT_CORRECTION.values()):
        raise ValueError("ORBIT_CORRECTION factors must be > 0")
    if MAX_FRAME_DELTA <= 0:
        raise ValueError("MAX_FRAME_DELTA must be > 0")
    if DATE_UPDATE_INTERVAL < 0:
        raise ValueError("DATE_UPDATE_INTERVAL must be >= 0")
    if DEFAULT_PLAYBACK_DURATION <= 0:
        raise ValueError("DEFAULT_PLAYBACK_DURATION must be > 0")
    if PREFETCH_MONTHS < 0:
        raise ValueError("PREFETCH_MONTHS must be >= 0")

    names = [b[0] for b in BODIES]
    if len(set(names)) != len(names):
        raise ValueError("BODIES names must be unique")
    if REFERENCE_BODY not in names:
        raise ValueError("REFERENCE_BODY must be one of BODIES")
    if STAR_BODY not in names:
        raise ValueError("STAR_BODY must be one of BODIES")

    for name, _, size, _ in BODIES:
        _, damping, _ = spring_constants(size, name == STAR_BODY)
        if not 0.0 <= damping < 1.0:
            raise ValueError(f"spring damping for {name} must be in [0, 1)")


if VALIDATE_ON_IMPORT:
    validate_settings()
