# orrery/physics/smoothing.py
import numpy as np

from orrery.config import settings


class SpringState:
    """
    Spring-damper smoothing state for one body (display position, velocity, target).
    The first target snaps; later targets are approached gradually.
    """
    def __init__(self, stiffness, damping, speed_factor):
        self.stiffness = float(stiffness)
        self.damping = float(damping)
        self.speed_factor = float(speed_factor)
        self.current = None
        self.velocity = np.zeros(3, dtype=float)
        self.target = None

    @classmethod
    def for_body(cls, body):
        stiffness, damping, speed = settings.spring_constants(body.size, body.is_star)
        return cls(stiffness, damping, speed)

    @property
    def initialized(self):
        return self.current is not None

    def update(self, target, dt):
        """
        Advance one tick toward target and return the smoothed position.
        """
        target = np.array(target, dtype=float)
        self.target = target

        if self.current is None:
            self.current = target.copy()
            self.velocity = np.zeros(3, dtype=float)
            return self.current.copy()

        force = (target - self.current) * self.stiffness
        self.velocity = self.velocity * self.damping + force * float(dt) * self.speed_factor
        self.current = self.current + self.velocity
        return self.current.copy()

    def snap(self, position):
        """Jump straight to position and drop any residual velocity."""
        position = np.array(position, dtype=float)
        self.target = position
        self.current = position.copy()
        self.velocity = np.zeros(3, dtype=float)
        return self.current.copy()

    def copy(self):
        out = SpringState(self.stiffness, self.damping, self.speed_factor)
        out.current = None if self.current is None else self.current.copy()
        out.velocity = self.velocity.copy()
        out.target = None if self.target is None else self.target.copy()
        return out
