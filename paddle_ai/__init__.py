"""
Paddle AI - Online-learning opponent for a real-time paddle game.

Every tick the paddle runs one of a few behaviors (attack, defend, stop)
chosen by a timeout-bounded minimax search, while a player model learns how
the opponent moves:

- Paddle actions with hand-tuned selection heuristics and forward models
- Player model built from observed movement deltas
- Minimax over both models, aborted by a watchdog after 1 second
- Decision / observation / watchdog workers around a shared session
"""

from paddle_ai.actions import (
    AttackAction, DefendAction, StopAction, PaddleActionState, PaddleActionStateMap,
)
from paddle_ai.player_model import PlayerMoveAction, PlayerActionState, PlayerActionStateMap
from paddle_ai.search import MinimaxSearch
from paddle_ai.session import SessionContext, DecisionHistory
from paddle_ai.config import ControllerConfig
from paddle_ai.controller import PaddleController

__all__ = [
    "AttackAction",
    "DefendAction",
    "StopAction",
    "PaddleActionState",
    "PaddleActionStateMap",
    "PlayerMoveAction",
    "PlayerActionState",
    "PlayerActionStateMap",
    "MinimaxSearch",
    "SessionContext",
    "DecisionHistory",
    "ControllerConfig",
    "PaddleController",
]
