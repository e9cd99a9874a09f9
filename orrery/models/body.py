# orrery/models/body.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Sequence

from orrery.config import settings


class BodyRole(Enum):
    """How a body is placed in the visualization frame."""
    REFERENCE = "reference"   # fixed visual centre
    STAR = "star"             # mirrored opposite the reference body
    ORBITING = "orbiting"     # geocentric, scaled, optionally compressed


@dataclass(frozen=True)
class CelestialBody:
    name: str
    horizons_id: str
    size: float = 1.0
    color: str = "white"
    role: BodyRole = BodyRole.ORBITING
    correction: float = 1.0

    @property
    def is_reference(self) -> bool:
        return self.role is BodyRole.REFERENCE

    @property
    def is_star(self) -> bool:
        return self.role is BodyRole.STAR


def make_body(
    name: str,
    horizons_id: str,
    size: float = 1.0,
    color: str = "white",
    reference: Optional[str] = None,
    star: Optional[str] = None,
) -> CelestialBody:
    """
    Build a body with its frame role resolved once from its name.
    """
    reference = settings.REFERENCE_BODY if reference is None else reference
    star = settings.STAR_BODY if star is None else star

    if name == reference:
        role = BodyRole.REFERENCE
    elif name == star:
        role = BodyRole.STAR
    else:
        role = BodyRole.ORBITING

    return CelestialBody(
        name=name,
        horizons_id=str(horizons_id),
        size=float(size),
        color=color,
        role=role,
        correction=settings.get_orbit_correction(name),
    )


def resolve_bodies(rows: Optional[Iterable[Sequence]] = None) -> List[CelestialBody]:
    """
    Resolve (name, horizons_id, size, color) rows into bodies.
    Defaults to settings.BODIES. Exactly one reference body is required.
    """
    rows = settings.BODIES if rows is None else rows
    bodies = [make_body(*row) for row in rows]

    refs = [b for b in bodies if b.is_reference]
    if len(refs) != 1:
        raise ValueError(f"expected exactly one reference body ({settings.REFERENCE_BODY}), found {len(refs)}")
    return bodies
