"""
Game State - Physical snapshots and the features derived from them.

Two levels of description:
- PhysicalState: the raw positions/velocities of hand, paddle and target
- GameState: 4 scalar features generalizing the physical state

GameState features (fixed order, all indexing is positional):
    0. hand_dist_to_paddle  - squared distance hand <-> paddle
    1. target_dist_to_hand  - squared distance target <-> hand
    2. paddle_ttc_to_hand   - time-to-contact of paddle toward hand
    3. hand_ttc_to_target   - time-to-contact of hand toward target

Voxelization rounds the features into a coarse key so similar situations
land in the same bucket of the spatial index.
"""

import math
from dataclasses import dataclass
from typing import List, Sequence

import numpy as np


# Below this speed a body is treated as stationary
VELOCITY_LIMIT = 0.05

# Voxel defaults
VOXEL_PRECISION = 1
VOXEL_RADIUS = 0.25
VOXEL_ROUND_FACTOR = (4, 4, 4, 4)
MATCH_RADIUS = VOXEL_RADIUS * 0.1

NUM_FEATURES = 4
FEATURE_NAMES = (
    'hand_dist_to_paddle',
    'target_dist_to_hand',
    'paddle_ttc_to_hand',
    'hand_ttc_to_target',
)

# Below this the angle between two vectors is taken as 0
_ANGLE_EPSILON = 1e-15


def vec3(values: Sequence[float] = (0.0, 0.0, 0.0)) -> np.ndarray:
    """Read-only float64 copy of a 3-vector."""
    arr = np.array(values, dtype=np.float64).reshape(3)
    arr.setflags(write=False)
    return arr


def angle_degrees(a: np.ndarray, b: np.ndarray) -> float:
    """Unsigned angle between two vectors in degrees, 0 for degenerate input."""
    denominator = math.sqrt(float(np.dot(a, a)) * float(np.dot(b, b)))
    if denominator < _ANGLE_EPSILON:
        return 0.0
    dot = min(1.0, max(-1.0, float(np.dot(a, b)) / denominator))
    return math.degrees(math.acos(dot))


def time_to_contact(separation: np.ndarray, velocity: np.ndarray,
                    reverse_separation: np.ndarray,
                    reverse_velocity: np.ndarray) -> float:
    """
    Heuristic time until two points converge.

    separation/velocity describe the approach of the first body, the
    reverse pair describes the second body approaching the first.
    The first body is preferred whenever it is moving. If only the second
    body moves the estimate is floored at 0 so slowly backing off never
    produces a negative time.
    """
    speed = float(np.linalg.norm(velocity))
    reverse_speed = float(np.linalg.norm(reverse_velocity))

    if speed < VELOCITY_LIMIT and reverse_speed < VELOCITY_LIMIT:
        return 0.0

    if speed >= VELOCITY_LIMIT:
        angle = angle_degrees(separation, velocity)
        return (float(np.linalg.norm(separation)) / speed) * math.cos((angle * math.pi) / 180)

    angle = angle_degrees(reverse_separation, reverse_velocity)
    ttc = (float(np.linalg.norm(reverse_separation)) / reverse_speed) * math.cos((angle * math.pi) / 180)
    return max(0.0, ttc)


def factor_round(num: float, precision: int, factor: int) -> float:
    """Round to increments of 1/factor (0.5, 0.33, 0.25, ...). factor 0 is a no-op."""
    if factor == 0:
        return num
    return float(np.round(num * factor, precision)) / factor


def voxelize(state_vals: Sequence[float], precision: int = VOXEL_PRECISION,
             round_factor: Sequence[int] = VOXEL_ROUND_FACTOR) -> np.ndarray:
    """Discretize a feature vector into its voxel key. Returns a new array."""
    vals = np.asarray(state_vals, dtype=np.float64)
    if vals.shape != (NUM_FEATURES,):
        raise ValueError(f"Expected {NUM_FEATURES} features, got shape {vals.shape}")
    if len(round_factor) != NUM_FEATURES:
        raise ValueError(f"Expected {NUM_FEATURES} round factors, got {len(round_factor)}")

    return np.array([
        factor_round(float(np.round(v, precision)), 0, int(f))
        for v, f in zip(vals, round_factor)
    ], dtype=np.float64)


@dataclass
class PhysicalState:
    """
    Snapshot of the three tracked bodies for one simulation tick.

    Vectors are stored read-only; use copy() whenever a snapshot crosses a
    thread boundary.
    """
    hand_pos: np.ndarray
    hand_vel: np.ndarray
    paddle_pos: np.ndarray
    paddle_vel: np.ndarray
    target_pos: np.ndarray
    target_vel: np.ndarray
    delta_time: float

    def __post_init__(self):
        self.hand_pos = vec3(self.hand_pos)
        self.hand_vel = vec3(self.hand_vel)
        self.paddle_pos = vec3(self.paddle_pos)
        self.paddle_vel = vec3(self.paddle_vel)
        self.target_pos = vec3(self.target_pos)
        self.target_vel = vec3(self.target_vel)
        self.delta_time = float(self.delta_time)

    @classmethod
    def zeros(cls) -> 'PhysicalState':
        z = (0.0, 0.0, 0.0)
        return cls(z, z, z, z, z, z, 0.0)

    def copy(self) -> 'PhysicalState':
        return PhysicalState(
            self.hand_pos.copy(), self.hand_vel.copy(),
            self.paddle_pos.copy(), self.paddle_vel.copy(),
            self.target_pos.copy(), self.target_vel.copy(),
            self.delta_time,
        )

    def get_state_vals(self) -> np.ndarray:
        """Convert the physical snapshot into the 4 generalized features."""
        hand_pos_to_paddle = self.hand_pos - self.paddle_pos
        target_pos_to_hand = self.target_pos - self.hand_pos

        hand_dist_to_paddle = float(np.dot(hand_pos_to_paddle, hand_pos_to_paddle))
        target_dist_to_hand = float(np.dot(target_pos_to_hand, target_pos_to_hand))

        paddle_ttc_to_hand = time_to_contact(
            hand_pos_to_paddle, self.paddle_vel,
            self.paddle_pos - self.hand_pos, self.hand_vel,
        )
        hand_ttc_to_target = time_to_contact(
            target_pos_to_hand, self.hand_vel,
            self.hand_pos - self.target_pos, self.target_vel,
        )

        return np.array([
            hand_dist_to_paddle, target_dist_to_hand,
            paddle_ttc_to_hand, hand_ttc_to_target,
        ], dtype=np.float64)

    def get_voxel_state_vals(self, precision: int = VOXEL_PRECISION,
                             round_factor: Sequence[int] = VOXEL_ROUND_FACTOR) -> np.ndarray:
        return voxelize(self.get_state_vals(), precision, round_factor)

    def __eq__(self, other):
        if not isinstance(other, PhysicalState):
            return NotImplemented
        return (self.delta_time == other.delta_time
                and all(np.array_equal(getattr(self, name), getattr(other, name))
                        for name in ('hand_pos', 'hand_vel', 'paddle_pos',
                                     'paddle_vel', 'target_pos', 'target_vel')))


@dataclass
class GameState:
    """The generalized (feature) view of a PhysicalState."""
    hand_dist_to_paddle: float
    target_dist_to_hand: float
    paddle_ttc_to_hand: float
    hand_ttc_to_target: float

    @classmethod
    def from_vals(cls, vals: Sequence[float]) -> 'GameState':
        if len(vals) != NUM_FEATURES:
            raise ValueError(f"Expected {NUM_FEATURES} features, got {len(vals)}")
        return cls(*(float(v) for v in vals))

    @classmethod
    def from_physical(cls, state: PhysicalState) -> 'GameState':
        return cls.from_vals(state.get_state_vals())

    def as_array(self) -> np.ndarray:
        return np.array([
            self.hand_dist_to_paddle, self.target_dist_to_hand,
            self.paddle_ttc_to_hand, self.hand_ttc_to_target,
        ], dtype=np.float64)

    def get_voxel(self, precision: int = VOXEL_PRECISION,
                  round_factor: Sequence[int] = VOXEL_ROUND_FACTOR) -> np.ndarray:
        return voxelize(self.as_array(), precision, round_factor)

    def voxelize(self, precision: int = VOXEL_PRECISION,
                 round_factor: Sequence[int] = VOXEL_ROUND_FACTOR):
        """Snap this state onto its voxel in place."""
        (self.hand_dist_to_paddle, self.target_dist_to_hand,
         self.paddle_ttc_to_hand, self.hand_ttc_to_target) = (
            float(v) for v in self.get_voxel(precision, round_factor))

    def progress_factor(self) -> float:
        """How close the AI is to winning - the hand/paddle distance itself."""
        return self.hand_dist_to_paddle

    def to_dict(self) -> dict:
        return dict(zip(FEATURE_NAMES, self.as_array().tolist()))

    def __str__(self):
        lines: List[str] = [
            f"{name}:\t{round(value, 3)}"
            for name, value in zip(FEATURE_NAMES, self.as_array().tolist())
        ]
        return "\n".join(lines)


def extract_features(state: PhysicalState) -> GameState:
    return GameState.from_physical(state)
