"""
Paddle Controller - The primary controller for the paddle AI.

Runs three background workers against one SessionContext:
- decision worker: minimax on the latest snapshot, swaps the active action,
  keeps the decision history and learns from win/loss outcomes in batches
- observation worker: records how the player moves into the player model
- watchdog: aborts any search that overruns its wall-clock budget

The simulation drives the tick side: publish_state() once per frame,
execute_active_action() exactly once per frame, and signal_success() /
signal_failure() when it detects a scoring event.
"""

import logging
import threading
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

from core.action_state import WeightedAction
from core.bodies import TickContext
from core.state import PhysicalState

from .actions import PaddleActionStateMap
from .config import ControllerConfig
from .player_model import PlayerActionStateMap
from .search import MinimaxSearch
from .session import DecisionHistory, SessionContext

logger = logging.getLogger(__name__)


@dataclass
class ControllerStats:
    decisions: int = 0
    swaps: int = 0
    timeouts: int = 0
    batch_updates: int = 0
    observations: int = 0
    worker_errors: int = 0


class PaddleController:
    """Owns the models, the search and the workers for one game session."""

    def __init__(self, config: Optional[ControllerConfig] = None,
                 session: Optional[SessionContext] = None):
        self.config = (config or ControllerConfig()).validate()
        self.session = session or SessionContext()

        voxel = self.config.voxel
        self.paddle_map = PaddleActionStateMap(voxel.radius, voxel.precision, voxel.round_factor)
        self.player_map = PlayerActionStateMap(
            voxel.radius, voxel.precision, voxel.round_factor,
            max_observations=self.config.learning.max_player_observations,
        )
        self.search = MinimaxSearch(self.paddle_map, self.player_map, self.session)
        self.history = DecisionHistory(self.config.scheduler.max_history)
        self.stats = ControllerStats()

        self._prev_observed: Optional[PhysicalState] = None
        self._threads: List[threading.Thread] = []
        self._stats_lock = threading.Lock()

    # ── Lifecycle ─────────────────────────────────────────────────────────

    @property
    def is_running(self) -> bool:
        return any(t.is_alive() for t in self._threads)

    def start(self):
        """Start the decision, observation and watchdog workers."""
        if self.is_running:
            return

        self._threads = [
            threading.Thread(target=self._decision_loop, name="paddle-decision", daemon=True),
            threading.Thread(target=self._observation_loop, name="paddle-observation", daemon=True),
            threading.Thread(target=self._watchdog_loop, name="paddle-watchdog", daemon=True),
        ]
        for thread in self._threads:
            thread.start()

        logger.info(f"Paddle controller started (depth={self.config.search.depth}, "
                    f"history={self.config.scheduler.max_history})")

    def stop(self, timeout: Optional[float] = None):
        """Signal shutdown, join the workers and reset the session."""
        self.session.shutdown.set()
        timeout = self.config.scheduler.join_timeout if timeout is None else timeout
        for thread in self._threads:
            thread.join(timeout)

        stuck = [t.name for t in self._threads if t.is_alive()]
        if stuck:
            logger.warning(f"Workers did not stop in time: {', '.join(stuck)}")
            return

        self._threads = []
        self._prev_observed = None
        self.history.clear()
        self.session.reset()
        logger.info("Paddle controller stopped")

    # ── Tick side (called by the simulation) ──────────────────────────────

    def publish_state(self, state: PhysicalState) -> bool:
        return self.session.write_snapshot(state)

    def execute_active_action(self, context: TickContext) -> bool:
        context.paddle.clamp_speed(self.config.max_paddle_velocity)
        return self.session.execute_active_action(context)

    def on_tick(self, context: TickContext) -> bool:
        """Publish this frame's state and run the active action once."""
        self.publish_state(context.snapshot())
        return self.execute_active_action(context)

    def signal_success(self):
        self.session.success.set()

    def signal_failure(self):
        self.session.failure.set()

    # ── Worker steps ──────────────────────────────────────────────────────

    def decide_once(self) -> Optional[WeightedAction]:
        """One decision cycle. None when no snapshot could be read."""
        state = self.session.read_snapshot(self.config.scheduler.snapshot_wait)
        if state is None:
            return None

        self.session.begin_search()
        try:
            result = self.search.search(state, self.config.search.depth)
        finally:
            self.session.end_search()
        self.stats.decisions += 1

        if result.action.tag != self.session.active_action.tag:
            self.session.swap_active_action(result.action)
            self.stats.swaps += 1
            logger.debug(f"Active action -> {result.action.tag} (score {result.weight:.4f})")

        if self.history.record(result.action, result.action_state):
            self._learn_from_history()

        return result

    def _learn_from_history(self):
        """Consume the outcome flags once and adapt every buffered decision."""
        success, failure = self.session.consume_outcomes()
        entries = self.history.drain()
        if not (success or failure):
            return

        learning = self.config.learning
        for action, action_state in entries:
            if success:
                action_state.adapt_action_probabilities(action, learning.success_feedback)
            if failure:
                action_state.adapt_action_probabilities(action, learning.failure_feedback)

        self.stats.batch_updates += 1
        logger.debug(f"Batch update over {len(entries)} decisions "
                     f"(success={success}, failure={failure})")

    def observe_once(self) -> bool:
        """Record the player's movement since the previous observation."""
        state = self.session.read_snapshot(self.config.scheduler.snapshot_wait)
        if state is None:
            return False

        self.player_map.record_action(self._prev_observed, state)
        self._prev_observed = state
        self.stats.observations += 1
        return True

    def check_search_timeout(self) -> bool:
        """Raise the timeout flag if the running search is over budget."""
        if not self.session.timeout_if_overdue(self.config.search.timeout):
            return False

        self.stats.timeouts += 1
        logger.warning(f"Search exceeded {self.config.search.timeout}s, forcing timeout")
        return True

    def _record_worker_error(self):
        with self._stats_lock:
            self.stats.worker_errors += 1

    # ── Worker loops ──────────────────────────────────────────────────────

    def _decision_loop(self):
        shutdown = self.session.shutdown
        if shutdown.wait(self.config.scheduler.startup_delay):
            return
        logger.info("Decision worker running")

        while not shutdown.is_set():
            try:
                self.decide_once()
            except Exception as e:
                self._record_worker_error()
                logger.error(f"Decision worker error: {e}")
            shutdown.wait(self.config.scheduler.decision_interval)

    def _observation_loop(self):
        shutdown = self.session.shutdown
        if shutdown.wait(self.config.scheduler.startup_delay):
            return
        logger.info("Observation worker running")

        while not shutdown.is_set():
            try:
                self.observe_once()
            except Exception as e:
                self._record_worker_error()
                logger.error(f"Observation worker error: {e}")
            shutdown.wait(self.config.scheduler.observation_interval)

    def _watchdog_loop(self):
        shutdown = self.session.shutdown
        while not shutdown.is_set():
            try:
                self.check_search_timeout()
            except Exception as e:
                self._record_worker_error()
                logger.error(f"Watchdog error: {e}")
            shutdown.wait(self.config.scheduler.watchdog_interval)

    # ── Introspection ─────────────────────────────────────────────────────

    def get_stats(self) -> Dict[str, Any]:
        stats = asdict(self.stats)
        stats.update({
            'paddle_map_size': self.paddle_map.get_map_size(),
            'player_map_size': self.player_map.get_map_size(),
            'history_size': len(self.history),
            'active_action': self.session.active_action.tag,
            'running': self.is_running,
        })
        return stats
