"""
Controller Configuration - Tunables for the decision engine.

Grouped the same way the engine is:
- VoxelConfig: discretization of the feature space
- SearchConfig: minimax depth and wall-clock budget
- SchedulerConfig: worker cadences and the decision history size
- LearningConfig: outcome feedback weights and player-model caps
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple
import json
import os

from core.state import VOXEL_PRECISION, VOXEL_RADIUS, VOXEL_ROUND_FACTOR, NUM_FEATURES


@dataclass
class VoxelConfig:
    """Feature-space discretization"""
    precision: int = VOXEL_PRECISION
    radius: float = VOXEL_RADIUS  # generalization radius for lookups
    round_factor: Tuple[int, ...] = VOXEL_ROUND_FACTOR

    @property
    def match_radius(self) -> float:
        """Tight radius used when recording observations"""
        return self.radius * 0.1


@dataclass
class SearchConfig:
    """Minimax search settings"""
    depth: int = 3
    timeout: float = 1.0  # seconds before the watchdog aborts a search


@dataclass
class SchedulerConfig:
    """Background worker settings"""
    startup_delay: float = 1.0  # lets the simulation publish a first state
    decision_interval: float = 0.1
    observation_interval: float = 0.1
    watchdog_interval: float = 0.1
    snapshot_wait: float = 1.0  # bounded wait on the snapshot lock
    max_history: int = 1000
    join_timeout: float = 2.0


@dataclass
class LearningConfig:
    """Outcome feedback"""
    success_feedback: float = 1.0
    failure_feedback: float = -1.0
    max_player_observations: Optional[int] = None  # None = learn forever


@dataclass
class ControllerConfig:
    """Master configuration for a PaddleController"""
    voxel: VoxelConfig = field(default_factory=VoxelConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    learning: LearningConfig = field(default_factory=LearningConfig)

    # Keeps the paddle from accelerating forever
    max_paddle_velocity: float = 2.0

    def validate(self) -> 'ControllerConfig':
        if self.search.depth < 0:
            raise ValueError(f"Search depth must be >= 0, got {self.search.depth}")
        if self.search.timeout <= 0:
            raise ValueError(f"Search timeout must be > 0, got {self.search.timeout}")
        if self.scheduler.max_history < 1:
            raise ValueError(f"max_history must be >= 1, got {self.scheduler.max_history}")
        for name in ('decision_interval', 'observation_interval', 'watchdog_interval', 'snapshot_wait'):
            if getattr(self.scheduler, name) <= 0:
                raise ValueError(f"{name} must be > 0")
        if self.scheduler.startup_delay < 0:
            raise ValueError("startup_delay must be >= 0")
        if len(self.voxel.round_factor) != NUM_FEATURES:
            raise ValueError(f"round_factor needs {NUM_FEATURES} entries, got {len(self.voxel.round_factor)}")
        if self.voxel.radius <= 0:
            raise ValueError(f"Voxel radius must be > 0, got {self.voxel.radius}")
        return self

    @classmethod
    def from_env(cls) -> 'ControllerConfig':
        """Defaults overridden by PADDLE_* environment variables"""
        config = cls()
        config.search.depth = int(os.getenv('PADDLE_SEARCH_DEPTH', config.search.depth))
        config.search.timeout = float(os.getenv('PADDLE_SEARCH_TIMEOUT', config.search.timeout))
        config.scheduler.max_history = int(os.getenv('PADDLE_MAX_HISTORY', config.scheduler.max_history))
        config.scheduler.startup_delay = float(os.getenv('PADDLE_STARTUP_DELAY', config.scheduler.startup_delay))
        config.scheduler.decision_interval = float(
            os.getenv('PADDLE_DECISION_INTERVAL', config.scheduler.decision_interval))
        config.scheduler.observation_interval = float(
            os.getenv('PADDLE_OBSERVATION_INTERVAL', config.scheduler.observation_interval))
        return config.validate()

    @classmethod
    def for_testing(cls) -> 'ControllerConfig':
        """Fast cadences and a small history so a test run wraps quickly"""
        return cls(
            search=SearchConfig(depth=2, timeout=0.5),
            scheduler=SchedulerConfig(
                startup_delay=0.0,
                decision_interval=0.005,
                observation_interval=0.005,
                watchdog_interval=0.01,
                snapshot_wait=0.1,
                max_history=20,
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'voxel': {
                'precision': self.voxel.precision,
                'radius': self.voxel.radius,
                'round_factor': list(self.voxel.round_factor),
            },
            'search': {
                'depth': self.search.depth,
                'timeout': self.search.timeout,
            },
            'scheduler': {
                'startup_delay': self.scheduler.startup_delay,
                'decision_interval': self.scheduler.decision_interval,
                'observation_interval': self.scheduler.observation_interval,
                'watchdog_interval': self.scheduler.watchdog_interval,
                'snapshot_wait': self.scheduler.snapshot_wait,
                'max_history': self.scheduler.max_history,
                'join_timeout': self.scheduler.join_timeout,
            },
            'learning': {
                'success_feedback': self.learning.success_feedback,
                'failure_feedback': self.learning.failure_feedback,
                'max_player_observations': self.learning.max_player_observations,
            },
            'max_paddle_velocity': self.max_paddle_velocity,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ControllerConfig':
        voxel = dict(data.get('voxel', {}))
        if 'round_factor' in voxel:
            voxel['round_factor'] = tuple(voxel['round_factor'])
        return cls(
            voxel=VoxelConfig(**voxel),
            search=SearchConfig(**data.get('search', {})),
            scheduler=SchedulerConfig(**data.get('scheduler', {})),
            learning=LearningConfig(**data.get('learning', {})),
            max_paddle_velocity=data.get('max_paddle_velocity', 2.0),
        ).validate()

    def save(self, filepath: str):
        """Save configuration to file"""
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, filepath: str) -> 'ControllerConfig':
        """Load configuration from file"""
        with open(filepath, 'r') as f:
            return cls.from_dict(json.load(f))
