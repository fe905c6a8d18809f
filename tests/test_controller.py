"""
Tests for the paddle controller: decision cycles, batch learning,
observation, the watchdog and the worker lifecycle.
"""

import sys
import os
import threading
import time

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from core.bodies import RigidBody, TickContext
from core.state import PhysicalState
from game.arena import Arena, ArenaConfig
from paddle_ai.actions import AttackAction, StopAction
from paddle_ai.config import ControllerConfig
from paddle_ai.controller import PaddleController


# Hand hovering near the target with the paddle far away: Defend wins
DEFEND_SCENARIO = PhysicalState(
    hand_pos=(0, 1, 0.1), hand_vel=(0, 0, 0),
    paddle_pos=(1, 1, 1), paddle_vel=(0, 0, 0),
    target_pos=(0, 1, 0), target_vel=(0, 0, 0),
    delta_time=1 / 90,
)

# Paddle backing away from a nearby hand: Stop wins
STOP_SCENARIO = PhysicalState(
    hand_pos=(0.5, 0, 0), hand_vel=(0, 0, 0),
    paddle_pos=(0, 0, 0), paddle_vel=(-1, 0, 0),
    target_pos=(0, 0, 0), target_vel=(0, 0, 0),
    delta_time=1 / 90,
)


def make_controller(**scheduler):
    config = ControllerConfig.for_testing()
    for name, value in scheduler.items():
        setattr(config.scheduler, name, value)
    return PaddleController(config)


class TestDecisionCycle:
    def test_no_snapshot_no_decision(self):
        controller = make_controller(snapshot_wait=0.01)
        assert controller.decide_once() is None
        assert controller.stats.decisions == 0

    def test_keeps_matching_active_action(self):
        controller = make_controller()
        controller.publish_state(DEFEND_SCENARIO)

        result = controller.decide_once()

        assert result.action.tag == "Defend"
        assert controller.stats.decisions == 1
        assert controller.stats.swaps == 0
        assert len(controller.history) == 1

    def test_swaps_to_better_action(self):
        controller = make_controller()
        controller.publish_state(STOP_SCENARIO)

        result = controller.decide_once()

        assert result.action.tag == "Stop"
        assert controller.session.active_action is result.action
        assert controller.stats.swaps == 1

    def test_search_end_signalled(self):
        controller = make_controller()
        controller.publish_state(DEFEND_SCENARIO)
        controller.decide_once()
        assert controller.session.search_end.is_set()


class TestBatchLearning:
    def _run_batch(self, success=False, failure=False):
        controller = make_controller(max_history=2)
        controller.publish_state(DEFEND_SCENARIO)
        if success:
            controller.signal_success()
        if failure:
            controller.signal_failure()

        first = controller.decide_once()
        controller.decide_once()
        return controller, first.action_state

    def test_success_reinforces_chosen_action(self):
        controller, action_state = self._run_batch(success=True)
        attack, defend, stop = action_state.get_actions()

        assert defend.base_probability == pytest.approx(0.7)
        assert attack.base_probability == pytest.approx(0.4)
        assert stop.base_probability == pytest.approx(0.4)
        assert controller.stats.batch_updates == 1
        assert len(controller.history) == 0
        assert not controller.session.success.is_set()

    def test_failure_penalizes_chosen_action(self):
        _, action_state = self._run_batch(failure=True)
        attack, defend, _ = action_state.get_actions()
        assert defend.base_probability == pytest.approx(0.3)
        assert attack.base_probability == pytest.approx(0.6)

    def test_both_outcomes_cancel(self):
        _, action_state = self._run_batch(success=True, failure=True)
        for action in action_state.get_actions():
            assert action.base_probability == pytest.approx(0.5)

    def test_no_outcome_drains_without_learning(self):
        controller, action_state = self._run_batch()
        assert all(a.base_probability == 0.5 for a in action_state.get_actions())
        assert controller.stats.batch_updates == 0
        assert len(controller.history) == 0

    def test_outcome_consumed_once_per_batch(self):
        controller, action_state = self._run_batch(success=True)
        controller.decide_once()
        controller.decide_once()
        defend = action_state.get_actions()[1]
        assert defend.base_probability == pytest.approx(0.7)


class TestObservation:
    def test_observes_player_moves(self):
        controller = make_controller()
        assert controller.observe_once() is False

        controller.publish_state(DEFEND_SCENARIO)
        assert controller.observe_once()
        assert controller.player_map.get_map_size() == 0

        moved = PhysicalState((0, 1, 0.6), (0, 0, -1), (1, 1, 1), (0, 0, 0),
                              (0, 1, 0), (0, 0, 0), 1 / 90)
        controller.publish_state(moved)
        assert controller.observe_once()
        assert controller.player_map.get_map_size() == 1
        assert controller.stats.observations == 2


class TestWatchdog:
    def test_flags_overdue_search(self):
        config = ControllerConfig.for_testing()
        config.search.timeout = 0.01
        controller = PaddleController(config)

        assert controller.check_search_timeout() is False
        controller.session.begin_search()
        time.sleep(0.03)

        assert controller.check_search_timeout() is True
        assert controller.session.search_timeout.is_set()
        assert controller.check_search_timeout() is False
        assert controller.stats.timeouts == 1

    def test_finished_search_not_flagged(self):
        config = ControllerConfig.for_testing()
        config.search.timeout = 0.01
        controller = PaddleController(config)

        controller.session.begin_search()
        controller.session.end_search()
        time.sleep(0.03)
        assert controller.check_search_timeout() is False


class TestTick:
    def test_on_tick_publishes_then_acts(self):
        controller = make_controller()
        controller.session.swap_active_action(StopAction())
        context = TickContext(RigidBody((0, 0, 0), (1, 0, 0)), RigidBody((1, 0, 0)),
                              RigidBody(), 0.1)

        assert controller.on_tick(context) is True
        assert context.paddle.velocity.tolist() == [0.0, 0.0, 0.0]
        assert controller.session.read_snapshot().paddle_vel.tolist() == [1.0, 0.0, 0.0]

    def test_paddle_speed_clamped(self):
        controller = make_controller()
        controller.session.swap_active_action(AttackAction())
        # Hand sits on the paddle so Attack completes without pushing
        context = TickContext(RigidBody((0, 0, 0), (30, 40, 0)), RigidBody((0, 0, 0)),
                              RigidBody(), 0.1)

        assert controller.execute_active_action(context) is True
        assert context.paddle.velocity == pytest.approx([1.2, 1.6, 0.0])


class TestWorkerErrors:
    def test_concurrent_errors_all_counted(self):
        controller = make_controller()

        def fail_many():
            for _ in range(500):
                controller._record_worker_error()

        threads = [threading.Thread(target=fail_many) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert controller.stats.worker_errors == 4000

    def test_failing_workers_keep_running(self):
        controller = make_controller()

        def broken():
            raise RuntimeError("broken step")

        controller.decide_once = broken
        controller.observe_once = broken
        controller.start()
        time.sleep(0.1)
        errors = controller.stats.worker_errors
        running = controller.is_running
        controller.stop()

        assert running
        assert errors >= 2


class TestLifecycle:
    def test_start_and_stop(self):
        controller = make_controller()
        controller.start()
        assert controller.is_running

        controller.stop()
        assert not controller.is_running
        assert not controller.session.shutdown.is_set()

    def test_concurrent_session(self):
        controller = make_controller()
        arena = Arena(controller, ArenaConfig(seed=7))
        arena.new_game()
        capacity = controller.history.capacity
        largest_history = 0
        done = threading.Event()

        def feeder():
            while not done.is_set():
                arena.step()
                time.sleep(0.001)

        feed = threading.Thread(target=feeder)
        controller.start()
        feed.start()
        deadline = time.monotonic() + 1.5
        while time.monotonic() < deadline:
            largest_history = max(largest_history, len(controller.history))
            time.sleep(0.002)
        done.set()
        feed.join()

        stats = controller.get_stats()
        controller.stop()

        assert stats['worker_errors'] == 0
        assert stats['decisions'] > 0
        assert stats['observations'] > 0
        assert largest_history <= capacity
        assert stats['paddle_map_size'] > 0


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
