"""
Tests for the shared session context and the decision history.
"""

import sys
import os
import threading
import time

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from core.action_state import ActionState
from core.bodies import RigidBody, TickContext
from core.state import GameState, PhysicalState
from paddle_ai.actions import AttackAction, StopAction
from paddle_ai.session import SessionContext, DecisionHistory


def sample_state():
    return PhysicalState((1, 0, 0), (0, 0, 0), (0, 0, 0), (0.5, 0, 0),
                         (0, 0, 0), (0, 0, 0), 0.1)


class TestSnapshot:
    def setup_method(self):
        self.session = SessionContext()

    def test_nothing_published(self):
        assert self.session.read_snapshot(timeout=0.01) is None

    def test_read_returns_copy(self):
        state = sample_state()
        assert self.session.write_snapshot(state)

        first = self.session.read_snapshot()
        second = self.session.read_snapshot()
        assert first == state
        assert first is not state
        assert first is not second

    def test_write_skipped_while_locked(self):
        self.session.write_snapshot(sample_state())
        self.session._snapshot_lock.acquire()
        try:
            assert self.session.write_snapshot(PhysicalState.zeros()) is False
            assert self.session.read_snapshot(timeout=0.05) is None
        finally:
            self.session._snapshot_lock.release()

        assert self.session.read_snapshot() == sample_state()


class TestActiveAction:
    def setup_method(self):
        self.session = SessionContext()

    def test_default_is_defend(self):
        assert self.session.active_action.tag == "Defend"

    def test_completion_sets_flag(self):
        self.session.swap_active_action(StopAction())
        context = TickContext(RigidBody((0, 0, 0), (1, 0, 0)), RigidBody(), RigidBody(), 0.1)

        assert self.session.execute_active_action(context) is True
        assert self.session.action_complete.is_set()

    def test_swap_clears_completion(self):
        self.session.action_complete.set()
        self.session.swap_active_action(AttackAction())
        assert not self.session.action_complete.is_set()
        assert self.session.active_action.tag == "Attack"

    def test_incomplete_action_leaves_flag(self):
        self.session.swap_active_action(AttackAction())
        context = TickContext(RigidBody(), RigidBody((1, 0, 0)), RigidBody(), 0.1)
        assert self.session.execute_active_action(context) is False
        assert not self.session.action_complete.is_set()


class TestFlags:
    def setup_method(self):
        self.session = SessionContext()

    def test_outcomes_read_then_cleared(self):
        self.session.success.set()
        assert self.session.consume_outcomes() == (True, False)
        assert self.session.consume_outcomes() == (False, False)

    def test_flags_stay_set_until_cleared(self):
        self.session.failure.set()
        assert self.session.failure.is_set()
        assert self.session.failure.is_set()

    def test_begin_search_clears_previous_flags(self):
        self.session.search_timeout.set()
        self.session.search_end.set()
        self.session.begin_search()
        assert not self.session.search_timeout.is_set()
        assert not self.session.search_end.is_set()

    def test_search_overdue(self):
        assert not self.session.search_overdue(0.01)
        self.session.begin_search()
        time.sleep(0.03)
        assert self.session.search_overdue(0.01)
        self.session.end_search()
        assert not self.session.search_overdue(0.01)

    def test_timeout_raised_once_for_overdue_search(self):
        self.session.begin_search()
        time.sleep(0.03)
        assert self.session.timeout_if_overdue(0.01) is True
        assert self.session.search_timeout.is_set()
        assert self.session.timeout_if_overdue(0.01) is False

    def test_stale_overdue_search_does_not_time_out_the_next(self):
        self.session.begin_search()
        time.sleep(0.03)
        self.session.end_search()
        self.session.begin_search()

        assert self.session.timeout_if_overdue(0.01) is False
        assert not self.session.search_timeout.is_set()

    def test_search_bookkeeping_waits_for_timeout_check(self):
        started = threading.Thread(target=self.session.begin_search)
        self.session._search_lock.acquire()
        try:
            started.start()
            started.join(0.05)
            assert started.is_alive()
        finally:
            self.session._search_lock.release()
        started.join(1.0)
        assert not started.is_alive()
        assert self.session.search_overdue(10.0) is False

    def test_abort_conditions(self):
        assert not self.session.should_abort_search()
        self.session.action_complete.set()
        assert self.session.should_abort_search()
        self.session.action_complete.clear()
        self.session.search_timeout.set()
        assert self.session.should_abort_search()

    def test_reset_restores_defaults(self):
        self.session.write_snapshot(sample_state())
        self.session.swap_active_action(StopAction())
        for flag in (self.session.success, self.session.failure, self.session.shutdown,
                     self.session.action_complete, self.session.search_timeout):
            flag.set()

        self.session.reset()

        assert self.session.read_snapshot() is None
        assert self.session.active_action.tag == "Defend"
        assert not any(flag.is_set() for flag in (
            self.session.success, self.session.failure, self.session.shutdown,
            self.session.action_complete, self.session.search_timeout, self.session.search_end))


class TestDecisionHistory:
    def test_reports_full(self):
        history = DecisionHistory(capacity=3)
        action_state = ActionState(GameState(0, 0, 0, 0))
        results = [history.record(StopAction(), action_state) for _ in range(3)]
        assert results == [False, False, True]

    def test_drain_empties(self):
        history = DecisionHistory(capacity=2)
        action_state = ActionState(GameState(0, 0, 0, 0))
        history.record(StopAction(), action_state)
        history.record(StopAction(), action_state)

        entries = history.drain()
        assert len(entries) == 2
        assert len(history) == 0

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            DecisionHistory(capacity=0)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
