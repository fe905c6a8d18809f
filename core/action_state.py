"""
Action States - Common ground for the paddle's and the player's behavior models.

An ActionState binds one voxel of the feature space to the Actions known
there. Weighted actions are always regenerated on demand as

    progress_factor(state) * action.selection_weight(state)

so adapting a probability is immediately visible to the next query.

ActionStateMap is the shared base of both maps: it owns the SpatialIndex of
ActionStates and answers get_best_actions() for the search engine.
"""

from typing import List, NamedTuple, Optional, Sequence

from .bodies import TickContext
from .spatial_index import SpatialIndex
from .state import (
    GameState, PhysicalState, VOXEL_PRECISION, VOXEL_RADIUS, VOXEL_ROUND_FACTOR,
)


# Scaling applied to feedback when spreading it across a state
ADAPTATION_SHARE = 0.5
# Step size of a controlled-agent probability update
PROBABILITY_STEP = 0.2


class GameAction:
    """
    Base class for a behavior of the paddle or the player.

    Capabilities:
    - apply(context): one tick of physical effect, True when the goal is reached
    - selection_weight(state): context-dependent multiplier on base probability
    - predict_next_state(state): one-tick forward model used only for planning
    - adapt_probability(weight): learn from outcome feedback
    """

    def __init__(self, tag: str, probability: float):
        self.tag = tag
        self.base_probability = probability

    def apply(self, context: TickContext) -> bool:
        raise NotImplementedError

    def selection_weight(self, state: GameState) -> float:
        raise NotImplementedError

    def predict_next_state(self, state: PhysicalState) -> PhysicalState:
        raise NotImplementedError

    def adapt_probability(self, feedback_weight: float):
        """Move the base probability toward 1 (positive) or 0 (negative)."""
        if feedback_weight > 0.0:
            self.base_probability = min(1.0, self.base_probability + PROBABILITY_STEP * feedback_weight)
        else:
            self.base_probability = max(0.0, self.base_probability + PROBABILITY_STEP * feedback_weight)

    def __repr__(self):
        return f"{type(self).__name__}({self.tag!r}, p={self.base_probability:.3f})"


class WeightedAction(NamedTuple):
    """A candidate for the search: weight, the action and where it lives."""
    weight: float
    action: GameAction
    action_state: 'ActionState'


class ActionState:
    """A state bucket and the actions available in it."""

    def __init__(self, state: GameState):
        self.state = state
        self.actions: List[GameAction] = []

    def get_actions(self) -> List[GameAction]:
        return list(self.actions)

    def add_action(self, action: GameAction):
        self.actions.append(action)

    def adapt_action_probabilities(self, chosen_action: GameAction, feedback_weight: float):
        """
        Credit the chosen action and debit the alternatives.

        The chosen action (matched by tag) receives feedback * 0.5, every
        other action receives feedback * (-1 / alternatives) * 0.5.
        """
        actions = self.get_actions()
        alternatives = max(1, len(actions) - 1)
        for action in actions:
            if action.tag == chosen_action.tag:
                action.adapt_probability(feedback_weight * ADAPTATION_SHARE)
            else:
                action.adapt_probability(feedback_weight * (-1.0 / alternatives) * ADAPTATION_SHARE)

    def weighted_actions(self) -> List[WeightedAction]:
        progress = self.state.progress_factor()
        return [
            WeightedAction(progress * action.selection_weight(self.state), action, self)
            for action in self.get_actions()
        ]

    def __repr__(self):
        return f"{type(self).__name__}({self.state.as_array().tolist()}, actions={len(self.actions)})"


class ActionStateMap:
    """Base map of ActionStates keyed by voxel."""

    def __init__(self, radius: float = VOXEL_RADIUS,
                 precision: int = VOXEL_PRECISION,
                 round_factor: Sequence[int] = VOXEL_ROUND_FACTOR):
        self.radius = radius
        self.match_radius = radius * 0.1
        self.precision = precision
        self.round_factor = tuple(round_factor)
        self.action_state_map: SpatialIndex[ActionState] = SpatialIndex(match_radius=self.match_radius)

    def get_map_size(self) -> int:
        return len(self.action_state_map)

    def voxel_of(self, state: PhysicalState):
        return state.get_voxel_state_vals(self.precision, self.round_factor)

    def nearby_action_states(self, state: PhysicalState) -> List[ActionState]:
        """ActionStates within the generalization radius of the raw features."""
        return [entry[2] for entry in self.action_state_map.query(state.get_state_vals(), self.radius)]

    def get_best_actions(self, state: PhysicalState) -> List[WeightedAction]:
        return []

    def find_action_state(self, state: PhysicalState) -> Optional[ActionState]:
        match = self.action_state_map.nearest(self.voxel_of(state), self.match_radius)
        return match[2] if match else None
