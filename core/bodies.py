"""
Bodies - The mutable side of the physical world that actions act upon.

Actions never own the simulation. Each tick the simulation hands the active
action a TickContext describing the live bodies; the action applies its
physical effect through the RigidBody interface and reports completion.
"""

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from .state import PhysicalState


def _as_vec(values: Sequence[float]) -> np.ndarray:
    return np.array(values, dtype=np.float64).reshape(3)


@dataclass
class RigidBody:
    """Point mass with a position and a velocity."""
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    velocity: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self):
        self.position = _as_vec(self.position)
        self.velocity = _as_vec(self.velocity)

    def add_velocity_change(self, delta: np.ndarray):
        """Instant velocity change (mass-independent force)."""
        self.velocity = self.velocity + _as_vec(delta)

    def set_velocity(self, velocity: Sequence[float]):
        self.velocity = _as_vec(velocity)

    def clamp_speed(self, max_speed: float):
        speed = float(np.linalg.norm(self.velocity))
        if max_speed > 0 and speed > max_speed:
            self.velocity = self.velocity / speed * max_speed

    def integrate(self, delta_time: float):
        self.position = self.position + self.velocity * delta_time


@dataclass
class TickContext:
    """Everything an action may touch during one simulation tick."""
    paddle: RigidBody
    hand: RigidBody
    target: RigidBody
    delta_time: float

    def snapshot(self) -> PhysicalState:
        return PhysicalState(
            self.hand.position, self.hand.velocity,
            self.paddle.position, self.paddle.velocity,
            self.target.position, self.target.velocity,
            self.delta_time,
        )
