# orrery/physics/blend.py
from orrery.models.orbital_elements import OrbitalElements


def interpolate_angle(a1: float, a2: float, t: float) -> float:
    """
    Interpolate two angles (deg) along the shortest arc. Result in [0, 360),
    except that angles equal modulo 360 return a1 unchanged.
    """
    diff = (a2 - a1) % 360.0
    if diff == 0.0:
        return a1
    if diff > 180.0:
        diff -= 360.0
    if diff < -180.0:
        diff += 360.0
    return (a1 + diff * t) % 360.0


def _lerp(x0: float, x1: float, t: float) -> float:
    return x0 + t * (x1 - x0)


def blend_elements(start: OrbitalElements, end: OrbitalElements, t: float) -> OrbitalElements:
    """
    Blend two element sets, t in [0, 1]. a, e and T are linear; the angular
    elements use interpolate_angle so crossing 0/360 never spins a full turn.
    """
    t = float(t)
    return OrbitalElements(
        a=_lerp(start.a, end.a, t),
        e=_lerp(start.e, end.e, t),
        i=interpolate_angle(start.i, end.i, t),
        om=interpolate_angle(start.om, end.om, t),
        w=interpolate_angle(start.w, end.w, t),
        M0=interpolate_angle(start.M0, end.M0, t),
        T=_lerp(start.T, end.T, t),
    )
