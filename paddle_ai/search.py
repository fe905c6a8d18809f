"""
Minimax Search - Depth-limited adversarial lookahead over predicted states.

The paddle maximizes, the player minimizes. Candidates at each ply come from
that side's ActionStateMap, already sorted (paddle: best first, player:
worst-for-the-paddle first), so the first candidate doubles as the fallback
answer whenever the search has to stop early.

There is no preemption. Every ply checks the session flags and bottoms out
immediately once the active action completed or the watchdog timed the
search out.
"""

from typing import Optional

from core.action_state import WeightedAction
from core.state import PhysicalState

from .actions import PaddleActionStateMap
from .player_model import PlayerActionStateMap
from .session import SessionContext

DEFAULT_DEPTH = 3

# Returned by a player ply with nothing to predict
NO_PREDICTION = -1.0


class MinimaxSearch:
    """Timeout-bounded minimax over both ActionStateMaps."""

    def __init__(self, paddle_map: PaddleActionStateMap,
                 player_map: PlayerActionStateMap,
                 session: Optional[SessionContext] = None):
        self.paddle_map = paddle_map
        self.player_map = player_map
        self.session = session or SessionContext()

    def _aborted(self) -> bool:
        return self.session.should_abort_search()

    def search(self, state: PhysicalState, depth: int = DEFAULT_DEPTH) -> WeightedAction:
        """Best (score, action, action_state) for the paddle from state."""
        best_actions = self.paddle_map.get_best_actions(state)
        if depth == 0 or self._aborted():
            return best_actions[0]

        best = WeightedAction(float('-inf'), best_actions[0].action, best_actions[0].action_state)
        for candidate in best_actions:
            result = self._minimax(candidate.action.predict_next_state(state), depth - 1, False)
            if result < 0.0:
                result = candidate.weight

            if result > best.weight:
                best = WeightedAction(result, candidate.action, candidate.action_state)

        self.session.search_end.set()
        return best

    def _minimax(self, state: PhysicalState, depth: int, maximizing_paddle: bool) -> float:
        if maximizing_paddle:
            best_actions = self.paddle_map.get_best_actions(state)
            if depth == 0 or self._aborted():
                return best_actions[0].weight

            best_score = -1.0
            for candidate in best_actions:
                result = self._minimax(candidate.action.predict_next_state(state), depth - 1, False)
                if result < 0.0:
                    result = candidate.weight
                if result > best_score:
                    best_score = result
            return best_score

        min_actions = self.player_map.get_best_actions(state)
        if not min_actions:
            return NO_PREDICTION

        if depth == 0 or self._aborted():
            return min_actions[0].weight

        min_score = float('inf')
        for candidate in min_actions:
            result = self._minimax(candidate.action.predict_next_state(state), depth - 1, True)
            if result < min_score:
                min_score = result
        return min_score
