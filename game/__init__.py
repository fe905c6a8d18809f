"""
Headless Paddle Arena

A small pure-Python stand-in for the physical game the paddle AI plays in:

- Scripted player hand that lunges at the target
- Point-mass paddle driven by the controller's active action
- Contact-based scoring with success / failure signals
- Real-time or as-fast-as-possible stepping
"""

from game.arena import Arena, ArenaConfig, ArenaScore

__all__ = [
    "Arena", "ArenaConfig", "ArenaScore",
]
