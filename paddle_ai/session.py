"""
Session Context - Shared state between the simulation tick and the workers.

One SessionContext is built per game session and handed to every worker;
nothing here is global. It holds:

- the latest PhysicalState, behind the snapshot lock
- the active paddle action and its completion flag, behind the action lock
- level-triggered flags (threading.Event): a flag reads as set until it is
  explicitly cleared

Lock discipline: the tick side never blocks on the snapshot lock (a
contended write is skipped), readers wait a bounded time, and the action
lock makes executing and swapping the active action mutually exclusive.
"""

import threading
import time
from typing import List, Optional, Tuple

from core.action_state import ActionState, GameAction
from core.bodies import TickContext
from core.state import PhysicalState

from .actions import DefendAction, DEFAULT_PROBABILITY


def default_active_action() -> GameAction:
    return DefendAction("Defend", DEFAULT_PROBABILITY)


class SessionContext:
    """Locks, flags and live state for one game session."""

    def __init__(self):
        self._snapshot_lock = threading.Lock()
        self._action_lock = threading.Lock()
        self._search_lock = threading.Lock()

        self._snapshot: Optional[PhysicalState] = None
        self._active_action: GameAction = default_active_action()
        self._search_started_at: Optional[float] = None

        # Level-triggered flags
        self.action_complete = threading.Event()
        self.success = threading.Event()
        self.failure = threading.Event()
        self.search_end = threading.Event()
        self.search_timeout = threading.Event()
        self.shutdown = threading.Event()

    # ── Snapshot ──────────────────────────────────────────────────────────

    def write_snapshot(self, state: PhysicalState) -> bool:
        """Publish the tick's state. Skipped (False) if a reader holds the lock."""
        if not self._snapshot_lock.acquire(blocking=False):
            return False
        try:
            self._snapshot = state.copy()
        finally:
            self._snapshot_lock.release()
        return True

    def read_snapshot(self, timeout: float = 1.0) -> Optional[PhysicalState]:
        """Copy of the latest state, None if the wait expired or nothing was published."""
        if not self._snapshot_lock.acquire(timeout=timeout):
            return None
        try:
            return self._snapshot.copy() if self._snapshot is not None else None
        finally:
            self._snapshot_lock.release()

    # ── Active action ─────────────────────────────────────────────────────

    @property
    def active_action(self) -> GameAction:
        with self._action_lock:
            return self._active_action

    def execute_active_action(self, context: TickContext) -> bool:
        """Run one tick of the active action. Sets action_complete when it finishes."""
        with self._action_lock:
            completed = self._active_action.apply(context)
            if completed:
                self.action_complete.set()
            return completed

    def swap_active_action(self, action: GameAction):
        with self._action_lock:
            self.action_complete.clear()
            self._active_action = action

    # ── Search bookkeeping ────────────────────────────────────────────────

    def begin_search(self):
        with self._search_lock:
            self.search_end.clear()
            self.search_timeout.clear()
            self._search_started_at = time.monotonic()

    def end_search(self):
        with self._search_lock:
            self.search_end.set()
            self._search_started_at = None

    def _overdue(self, budget: float) -> bool:
        started = self._search_started_at
        if started is None or self.search_end.is_set():
            return False
        return time.monotonic() - started > budget

    def search_overdue(self, budget: float) -> bool:
        """True when a search has run past budget without signalling its end."""
        with self._search_lock:
            return self._overdue(budget)

    def timeout_if_overdue(self, budget: float) -> bool:
        """
        Raise search_timeout for the running search if it is past budget.

        Checked and set under the search lock, so the flag can never land on
        a search that began after the check.
        """
        with self._search_lock:
            if self.search_timeout.is_set() or not self._overdue(budget):
                return False
            self.search_timeout.set()
            return True

    def should_abort_search(self) -> bool:
        return self.action_complete.is_set() or self.search_timeout.is_set()

    # ── Outcomes ──────────────────────────────────────────────────────────

    def consume_outcomes(self) -> Tuple[bool, bool]:
        """Read then clear (success, failure)."""
        success = self.success.is_set()
        failure = self.failure.is_set()
        self.success.clear()
        self.failure.clear()
        return success, failure

    def reset(self):
        """Back to defaults at session teardown."""
        with self._snapshot_lock:
            self._snapshot = None
        with self._action_lock:
            self._active_action = default_active_action()
        with self._search_lock:
            self._search_started_at = None
        for flag in (self.action_complete, self.success, self.failure,
                     self.search_end, self.search_timeout, self.shutdown):
            flag.clear()


class DecisionHistory:
    """
    Fixed-capacity buffer of (chosen action, ActionState) pairs.

    Filled to capacity, then drained as one learning batch.
    """

    def __init__(self, capacity: int = 1000):
        if capacity < 1:
            raise ValueError("History capacity must be >= 1")
        self.capacity = capacity
        self._entries: List[Tuple[GameAction, ActionState]] = []

    def __len__(self) -> int:
        return len(self._entries)

    def record(self, action: GameAction, action_state: ActionState) -> bool:
        """Append a decision. True when the buffer just became full."""
        self._entries.append((action, action_state))
        return len(self._entries) >= self.capacity

    def drain(self) -> List[Tuple[GameAction, ActionState]]:
        entries = self._entries
        self._entries = []
        return entries

    def clear(self):
        self._entries = []
