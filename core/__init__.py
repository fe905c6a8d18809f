"""
Paddle Opponent AI - Core Components

Shared building blocks for both sides of the game:
- Physical snapshots and the 4-feature generalization of them
- Voxelization of features into lookup keys
- A radius-queryable spatial index over feature space
- Actions, ActionStates and the ActionStateMap base
"""

from .state import (
    PhysicalState, GameState, extract_features, voxelize, time_to_contact,
    VELOCITY_LIMIT, VOXEL_RADIUS, MATCH_RADIUS, VOXEL_ROUND_FACTOR,
)
from .bodies import RigidBody, TickContext
from .spatial_index import SpatialIndex
from .action_state import GameAction, ActionState, ActionStateMap, WeightedAction

__all__ = [
    'PhysicalState',
    'GameState',
    'extract_features',
    'voxelize',
    'time_to_contact',
    'VELOCITY_LIMIT',
    'VOXEL_RADIUS',
    'MATCH_RADIUS',
    'VOXEL_ROUND_FACTOR',
    'RigidBody',
    'TickContext',
    'SpatialIndex',
    'GameAction',
    'ActionState',
    'ActionStateMap',
    'WeightedAction',
]
