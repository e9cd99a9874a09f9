# orrery/physics/frames.py
from __future__ import annotations

from typing import Union

import numpy as np

from orrery.config import settings
from orrery.models.body import BodyRole, CelestialBody, make_body

BodyLike = Union[CelestialBody, str]


def _as_body(body: BodyLike) -> CelestialBody:
    if isinstance(body, CelestialBody):
        return body
    return make_body(str(body), horizons_id="")


def to_visualization_frame(body: BodyLike, helio_pos, reference_helio_pos) -> np.ndarray:
    """
    Map a heliocentric position into the geocentric display frame.

    - reference body: always the origin
    - star: opposite the reference body, on the horizontal plane
    - others: relative to the reference body, scaled, divided by the body's
      orbit correction, with y/z swapped so orbits lie horizontally
    """
    body = _as_body(body)
    scale = float(getattr(settings, "VISUALIZATION_SCALE", 0.00000009))

    if body.role is BodyRole.REFERENCE:
        return np.zeros(3, dtype=float)

    ref = np.asarray(reference_helio_pos, dtype=float)

    if body.role is BodyRole.STAR:
        geo = -ref * scale
        return np.array([geo[0], 0.0, geo[1]], dtype=float)

    correction = float(body.correction) if body.correction else 1.0
    geo = (np.asarray(helio_pos, dtype=float) - ref) * scale / correction
    return np.array([geo[0], geo[2], geo[1]], dtype=float)
