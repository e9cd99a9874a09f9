# orrery/models/orbital_elements.py
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping


@dataclass(frozen=True)
class OrbitalElements:
    """
    Keplerian elements of one body for one calendar day.

    a: semi-major axis (km)
    e: eccentricity
    i: inclination (deg)
    om: longitude of the ascending node (deg)
    w: argument of periapsis (deg)
    M0: mean anomaly at epoch (deg)
    T: orbital period (days); zero for the synthesized star record
    """
    a: float
    e: float
    i: float
    om: float
    w: float
    M0: float
    T: float

    @classmethod
    def zero(cls) -> "OrbitalElements":
        return cls(a=0.0, e=0.0, i=0.0, om=0.0, w=0.0, M0=0.0, T=0.0)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "OrbitalElements":
        try:
            return cls(**{k: float(data[k]) for k in ("a", "e", "i", "om", "w", "M0", "T")})
        except KeyError as e:
            raise ValueError(f"orbital elements missing field {e.args[0]!r}") from e

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)
