"""
Paddle Actions - The fixed repertoire of the controlled agent.

- AttackAction: chase the point the hand is about to reach
- DefendAction: hold position between the hand and the target
- StopAction: kill all paddle velocity immediately

Each action carries hand-tuned selection heuristics and a one-tick forward
model that mirrors its physical effect, used by the minimax search.

PaddleActionStateMap stores one PaddleActionState per visited voxel, each
with a fresh copy of the repertoire, and never answers "no options".
"""

import logging
from typing import List

import numpy as np

from core.action_state import ActionState, ActionStateMap, GameAction, WeightedAction
from core.bodies import TickContext
from core.state import GameState, PhysicalState

logger = logging.getLogger(__name__)

DEFAULT_PROBABILITY = 0.5

# Shorter vectors normalize to zero
_NORMALIZE_EPSILON = 1e-5


def normalized(v: np.ndarray) -> np.ndarray:
    magnitude = float(np.linalg.norm(v))
    if magnitude > _NORMALIZE_EPSILON:
        return v / magnitude
    return np.zeros(3)


def _advance_hand(state: PhysicalState) -> np.ndarray:
    """Where the hand will be after one tick at constant velocity."""
    return state.hand_pos + state.hand_vel * state.delta_time


class PaddleAction(GameAction):
    """Base class for the paddle's own behaviors."""


class AttackAction(PaddleAction):
    """Target and chase the player's hand."""

    MAX_ENGAGEMENT_DISTANCE = 0.4  # discouraged beyond this range
    FORCE_POWER = 10.0

    def __init__(self, tag: str = "Attack", probability: float = DEFAULT_PROBABILITY):
        super().__init__(tag, probability)

    def apply(self, context: TickContext) -> bool:
        paddle, hand = context.paddle, context.hand
        goal_position = hand.position + hand.velocity * context.delta_time
        if np.array_equal(paddle.position, goal_position):
            return True

        force = normalized(goal_position - paddle.position) * self.FORCE_POWER * context.delta_time
        paddle.add_velocity_change(force)
        return False

    def selection_weight(self, state: GameState) -> float:
        probability = self.base_probability
        if state.hand_dist_to_paddle > self.MAX_ENGAGEMENT_DISTANCE and state.paddle_ttc_to_hand < 0.1:
            probability *= 0.1
        else:
            probability *= 0.8
        return probability

    def predict_next_state(self, state: PhysicalState) -> PhysicalState:
        hand_pos = _advance_hand(state)
        force = normalized(hand_pos - state.paddle_pos) * self.FORCE_POWER

        paddle_vel = state.paddle_vel + force * state.delta_time
        paddle_pos = state.paddle_pos + paddle_vel * state.delta_time

        return PhysicalState(hand_pos, state.hand_vel, paddle_pos, paddle_vel,
                             state.target_pos, state.target_vel, state.delta_time)


class DefendAction(PaddleAction):
    """Move to a point between the target and the player's hand."""

    MIN_DEFEND_DIST = 0.4  # prioritize defending when the hand is farther than this
    FORCE_POWER = 5.0
    MAX_DEFEND_DISTANCE = 0.5  # never stray farther than this from the target

    def __init__(self, tag: str = "Defend", probability: float = DEFAULT_PROBABILITY):
        super().__init__(tag, probability)

    def _goal_position(self, hand_position: np.ndarray, target_position: np.ndarray) -> np.ndarray:
        defense_distance = min(float(np.linalg.norm(target_position + hand_position)) / 2,
                               self.MAX_DEFEND_DISTANCE)
        return target_position + normalized(hand_position - target_position) * defense_distance

    def _velocity_change(self, paddle_pos: np.ndarray, paddle_vel: np.ndarray,
                         goal_position: np.ndarray, delta_time: float) -> np.ndarray:
        brake = -normalized(paddle_vel) * self.FORCE_POWER * delta_time
        force = normalized(goal_position - paddle_pos) * self.FORCE_POWER * delta_time
        return brake + force * 2

    def apply(self, context: TickContext) -> bool:
        paddle, hand, target = context.paddle, context.hand, context.target
        hand_position = hand.position + hand.velocity * context.delta_time
        goal_position = self._goal_position(hand_position, target.position)

        if np.array_equal(paddle.position, goal_position):
            return True

        paddle.add_velocity_change(self._velocity_change(
            paddle.position, paddle.velocity, goal_position, context.delta_time))
        return False

    def selection_weight(self, state: GameState) -> float:
        probability = self.base_probability
        if state.hand_dist_to_paddle > self.MIN_DEFEND_DIST:
            probability *= 0.9
        else:
            probability *= 0.1
        return min(1.0, probability)

    def predict_next_state(self, state: PhysicalState) -> PhysicalState:
        hand_pos = _advance_hand(state)
        goal_position = self._goal_position(hand_pos, state.target_pos)

        paddle_vel = state.paddle_vel + self._velocity_change(
            state.paddle_pos, state.paddle_vel, goal_position, state.delta_time)
        paddle_pos = state.paddle_pos + paddle_vel * state.delta_time

        return PhysicalState(hand_pos, state.hand_vel, paddle_pos, paddle_vel,
                             state.target_pos, state.target_vel, state.delta_time)


class StopAction(PaddleAction):
    """Stop the paddle dead."""

    MIN_STOP_TTC = -0.1  # prioritize stopping when the hand moves away from the paddle

    def __init__(self, tag: str = "Stop", probability: float = DEFAULT_PROBABILITY):
        super().__init__(tag, probability)

    def apply(self, context: TickContext) -> bool:
        context.paddle.set_velocity((0.0, 0.0, 0.0))
        return True

    def selection_weight(self, state: GameState) -> float:
        probability = self.base_probability
        if state.paddle_ttc_to_hand < self.MIN_STOP_TTC:
            probability *= 1.0
        else:
            probability *= 0.1
        return probability

    def predict_next_state(self, state: PhysicalState) -> PhysicalState:
        return PhysicalState(_advance_hand(state), state.hand_vel,
                             state.paddle_pos, np.zeros(3),
                             state.target_pos, state.target_vel, state.delta_time)


def default_paddle_actions() -> List[PaddleAction]:
    """The canonical repertoire given to every new PaddleActionState."""
    return [
        AttackAction("Attack", DEFAULT_PROBABILITY),
        DefendAction("Defend", DEFAULT_PROBABILITY),
        StopAction("Stop", DEFAULT_PROBABILITY),
    ]


class PaddleActionState(ActionState):
    pass


class PaddleActionStateMap(ActionStateMap):
    """Records and answers which paddle actions look best where."""

    def add_action_state(self, state: PhysicalState) -> PaddleActionState:
        """ActionState at the voxel of state, reusing one already stored there."""
        game_state = GameState.from_physical(state)
        game_state.voxelize(self.precision, self.round_factor)

        def create() -> PaddleActionState:
            action_state = PaddleActionState(game_state)
            for action in default_paddle_actions():
                action_state.add_action(action)
            return action_state

        # Raw features can miss the wide query yet voxelize onto a stored key
        action_state, created = self.action_state_map.upsert(game_state.as_array(), create)
        if created:
            logger.debug(f"New paddle action state at {game_state.as_array().tolist()} "
                         f"(map size {self.get_map_size()})")
        return action_state

    def get_best_actions(self, state: PhysicalState) -> List[WeightedAction]:
        """Candidates for this state, best first. Creates the state on a miss."""
        action_states = self.nearby_action_states(state)

        best_actions: List[WeightedAction] = []
        if not action_states:
            best_actions.extend(self.add_action_state(state).weighted_actions())
        else:
            for action_state in action_states:
                best_actions.extend(action_state.weighted_actions())

        best_actions.sort(key=lambda wa: wa.weight, reverse=True)
        return best_actions
