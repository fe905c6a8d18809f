"""
Headless Arena - A minimal stand-in for the physical game around the AI.

Plays the part of the external simulation:
- a scripted player hand that lunges at the target and retreats
- point-mass physics for the paddle (velocity integration only)
- contact detection and scoring:
    hand touches paddle  -> AI scores (2 on the first contact of a round, else 1)
    hand touches target  -> player scores 2 if it is the first contact of the round
  the board resets one second after a contact
- success / failure signals to the controller on each new scoring contact

Each tick follows the contract the controller expects: publish the state,
execute the active action once, then integrate.
"""

import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import numpy as np

from core.bodies import RigidBody, TickContext
from paddle_ai.controller import PaddleController

logger = logging.getLogger(__name__)


@dataclass
class ArenaConfig:
    tick_rate: float = 90.0          # simulation ticks per second
    game_length: float = 120.0       # seconds per match
    reset_delay: float = 1.0         # seconds before the board resets after a contact
    contact_radius: float = 0.08
    hand_speed: float = 0.8          # units per second while lunging
    lunge_period: float = 2.0        # seconds between lunges
    lunge_spread: float = 0.15       # random offset around the target
    seed: Optional[int] = None

    # Layout
    target_position: tuple = (0.0, 1.0, 0.0)
    hand_home: tuple = (0.0, 1.2, 0.7)
    paddle_home: tuple = (0.0, 1.0, 0.25)


@dataclass
class ArenaScore:
    player: int = 0
    paddle: int = 0


class Arena:
    """Drives a PaddleController with a scripted opponent."""

    def __init__(self, controller: PaddleController, config: Optional[ArenaConfig] = None):
        self.controller = controller
        self.config = config or ArenaConfig()
        self.rng = random.Random(self.config.seed)

        self.hand = RigidBody(self.config.hand_home)
        self.paddle = RigidBody(self.config.paddle_home)
        self.target = RigidBody(self.config.target_position)
        self.score = ArenaScore()

        self.time = 0.0
        self.time_left = 0.0
        self.game_over = True
        self.ticks = 0

        self._last_hand_pos = self.hand.position.copy()
        self._hand_goal = np.array(self.config.hand_home, dtype=np.float64)
        self._next_lunge_at = self.config.lunge_period
        self._retreating = False

        # Round markers: who touched first, and which bodies are already scored
        self._first_contact: Optional[str] = None
        self._target_scored = False
        self._paddle_scored = False
        self._reset_at: Optional[float] = None

    @property
    def delta_time(self) -> float:
        return 1.0 / self.config.tick_rate

    def new_game(self):
        """Start a match: zero the score and reset the board."""
        self.score = ArenaScore()
        self.time_left = self.config.game_length
        self.game_over = False
        self.reset_board()
        logger.info(f"New game ({self.config.game_length:.0f}s)")

    def reset_board(self):
        self._first_contact = None
        self._target_scored = False
        self._paddle_scored = False
        self._reset_at = None

    # ── Scripted player ───────────────────────────────────────────────────

    def _choose_lunge(self):
        spread = self.config.lunge_spread
        offset = np.array([self.rng.uniform(-spread, spread) for _ in range(3)])
        self._hand_goal = np.array(self.config.target_position) + offset
        self._retreating = False

    def _retreat(self):
        self._hand_goal = np.array(self.config.hand_home, dtype=np.float64)
        self._retreating = True

    def _move_hand(self, dt: float):
        if self.time >= self._next_lunge_at:
            self._choose_lunge()
            self._next_lunge_at = self.time + self.config.lunge_period

        to_goal = self._hand_goal - self.hand.position
        distance = float(np.linalg.norm(to_goal))
        step = self.config.hand_speed * dt
        if distance <= step:
            self.hand.position = self._hand_goal.copy()
            if not self._retreating:
                self._retreat()
        else:
            self.hand.position = self.hand.position + to_goal / distance * step

        # The tracked controller reports no velocity, derive it from position
        self.hand.velocity = (self.hand.position - self._last_hand_pos) / dt
        self._last_hand_pos = self.hand.position.copy()

    # ── Scoring ───────────────────────────────────────────────────────────

    def _touching(self, a: RigidBody, b: RigidBody) -> bool:
        return float(np.linalg.norm(a.position - b.position)) < self.config.contact_radius

    def _hand_hit_target(self):
        points = 0
        if self._first_contact is None:
            points = 2
            self._first_contact = 'target'

        if not self._target_scored:
            if not self.game_over:
                self.score.player += points
            self._target_scored = True
            self.controller.signal_failure()
            logger.debug(f"Player hit the target (+{points})")

        self._schedule_reset()
        self._retreat()

    def _hand_hit_paddle(self):
        points = 1
        if self._first_contact is None:
            points = 2
            self._first_contact = 'paddle'

        if not self._paddle_scored:
            if not self.game_over:
                self.score.paddle += points
            self._paddle_scored = True
            self.controller.signal_success()
            logger.debug(f"Paddle blocked the hand (+{points})")

        self._schedule_reset()
        self._retreat()

    def _schedule_reset(self):
        if self._reset_at is None:
            self._reset_at = self.time + self.config.reset_delay

    # ── Tick ──────────────────────────────────────────────────────────────

    def step(self) -> Dict[str, Any]:
        """Advance the arena by one tick."""
        dt = self.delta_time
        self._move_hand(dt)

        context = TickContext(self.paddle, self.hand, self.target, dt)
        completed = self.controller.on_tick(context)
        self.paddle.integrate(dt)

        if self._touching(self.hand, self.target):
            self._hand_hit_target()
        if self._touching(self.hand, self.paddle):
            self._hand_hit_paddle()

        self.time += dt
        self.ticks += 1
        if self._reset_at is not None and self.time >= self._reset_at:
            self.reset_board()

        if not self.game_over:
            self.time_left -= dt
            if self.time_left <= 0.0:
                self.game_over = True
                logger.info(f"Game over: player {self.score.player} - paddle {self.score.paddle}")

        return {
            'tick': self.ticks,
            'action_completed': completed,
            'score': (self.score.player, self.score.paddle),
        }

    def run(self, seconds: float, realtime: bool = True) -> Dict[str, Any]:
        """Play for `seconds` of simulated time, optionally paced to the wall clock."""
        if self.game_over:
            self.new_game()

        ticks = int(seconds * self.config.tick_rate)
        started = time.monotonic()
        for i in range(ticks):
            self.step()
            if realtime:
                lag = started + (i + 1) * self.delta_time - time.monotonic()
                if lag > 0:
                    time.sleep(lag)

        return {
            'ticks': self.ticks,
            'simulated_seconds': round(self.time, 3),
            'score': {'player': self.score.player, 'paddle': self.score.paddle},
            'game_over': self.game_over,
        }
