"""
Player Model - What the player tends to do from a given situation.

The observation worker feeds consecutive snapshots into record_action().
Each observed movement becomes (or reinforces) a PlayerMoveAction stored
under the ActionState of the situation it started from. A move's
probability is a running frequency: how often the player went that way
divided by how often that situation was observed.

Moves are descriptive only. They are never executed, the search uses them
to predict where the player will take the game next.
"""

import logging
from typing import List, Optional, Sequence

import numpy as np

from core.action_state import ActionState, ActionStateMap, GameAction, WeightedAction
from core.bodies import TickContext
from core.spatial_index import SpatialIndex
from core.state import GameState, PhysicalState, VOXEL_PRECISION, VOXEL_RADIUS, VOXEL_ROUND_FACTOR

logger = logging.getLogger(__name__)

INITIAL_MOVE_PROBABILITY = 0.05
MOVE_FEEDBACK_STEP = 0.05


class PlayerMoveAction(GameAction):
    """One observed way the player moved from a situation."""

    def __init__(self, state_change: PhysicalState, tag: str = "Move",
                 probability: float = INITIAL_MOVE_PROBABILITY):
        super().__init__(tag, probability)
        # Hand/paddle position and velocity deltas seen when this move happened
        self.state_change = state_change
        self.times_observed = 0

    def apply(self, context: TickContext) -> bool:
        return True

    def selection_weight(self, state: GameState) -> float:
        return self.base_probability

    def predict_next_state(self, state: PhysicalState) -> PhysicalState:
        change = self.state_change
        return PhysicalState(
            state.hand_pos + change.hand_pos,
            state.hand_vel + change.hand_vel,
            state.paddle_pos + change.paddle_pos,
            state.paddle_vel + change.paddle_vel,
            state.target_pos, state.target_vel, state.delta_time,
        )

    def adapt_probability(self, feedback_weight: float):
        # Not used by the observation pipeline; frequencies drive this action.
        if feedback_weight > 0.0:
            self.base_probability = self.base_probability + MOVE_FEEDBACK_STEP
        else:
            self.base_probability = max(0.0, self.base_probability - MOVE_FEEDBACK_STEP)

    def update_frequency(self, observations: int):
        self.base_probability = self.times_observed / observations


class PlayerActionState(ActionState):
    """A situation and every move the player was seen making from it."""

    def __init__(self, state: GameState, match_radius: float,
                 max_observations: Optional[int] = None):
        super().__init__(state)
        self.moves: SpatialIndex[PlayerMoveAction] = SpatialIndex(match_radius=match_radius)
        self.observations = 0
        # Caps how much a single situation can be learned, None = unbounded
        self.max_observations = max_observations

    def _can_learn(self) -> bool:
        return self.max_observations is None or self.observations < self.max_observations

    def _observe(self, move: PlayerMoveAction):
        if not self._can_learn():
            return
        self.observations += 1
        move.times_observed += 1
        for action in self.get_actions():
            if isinstance(action, PlayerMoveAction) and action.times_observed:
                action.update_frequency(self.observations)

    def record_move(self, destination: Sequence[float], state_change: PhysicalState) -> PlayerMoveAction:
        """Add a new move toward destination, or reinforce the matching one."""
        def create() -> PlayerMoveAction:
            move = PlayerMoveAction(state_change)
            self.add_action(move)
            return move

        move, _ = self.moves.upsert(destination, create)
        self._observe(move)
        return move


class PlayerActionStateMap(ActionStateMap):
    """Map of the player's observed movements."""

    def __init__(self, radius: float = VOXEL_RADIUS,
                 precision: int = VOXEL_PRECISION,
                 round_factor: Sequence[int] = VOXEL_ROUND_FACTOR,
                 max_observations: Optional[int] = None):
        super().__init__(radius, precision, round_factor)
        self.max_observations = max_observations

    def get_action_state(self, state_vals: Sequence[float]) -> PlayerActionState:
        """Tight-radius lookup of a situation, created on a miss."""
        def create() -> PlayerActionState:
            return PlayerActionState(GameState.from_vals(state_vals), self.match_radius,
                                     self.max_observations)

        action_state, created = self.action_state_map.upsert(np.asarray(state_vals), create)
        if created:
            logger.debug(f"New player action state at {list(state_vals)} "
                         f"(map size {self.get_map_size()})")
        return action_state

    def record_action(self, prev_state: Optional[PhysicalState],
                      curr_state: Optional[PhysicalState]) -> Optional[PlayerMoveAction]:
        """Record how the player moved from prev_state to curr_state."""
        if prev_state is None or curr_state is None:
            return None

        prev_voxels = self.voxel_of(prev_state)
        curr_voxels = self.voxel_of(curr_state)

        origin = self.get_action_state(prev_voxels)

        state_change = PhysicalState(
            curr_state.hand_pos - prev_state.hand_pos,
            curr_state.hand_vel - prev_state.hand_vel,
            curr_state.paddle_pos - prev_state.paddle_pos,
            curr_state.paddle_vel - prev_state.paddle_vel,
            curr_state.target_pos, curr_state.target_vel, curr_state.delta_time,
        )
        return origin.record_move(curr_voxels, state_change)

    def get_best_actions(self, state: PhysicalState) -> List[WeightedAction]:
        """Predicted player moves, least favourable for the paddle first. May be empty."""
        best_actions: List[WeightedAction] = []
        for action_state in self.nearby_action_states(state):
            best_actions.extend(action_state.weighted_actions())

        best_actions.sort(key=lambda wa: wa.weight)
        return best_actions
