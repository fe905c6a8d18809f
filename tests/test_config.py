"""
Tests for controller configuration.
"""

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from paddle_ai.config import ControllerConfig


class TestControllerConfig:
    def test_defaults(self):
        config = ControllerConfig()
        assert config.search.depth == 3
        assert config.search.timeout == 1.0
        assert config.scheduler.max_history == 1000
        assert config.voxel.radius == 0.25
        assert config.voxel.match_radius == pytest.approx(0.025)
        assert config.voxel.round_factor == (4, 4, 4, 4)
        assert config.validate() is config

    def test_save_load_roundtrip(self, tmp_path):
        config = ControllerConfig.for_testing()
        config.learning.max_player_observations = 50
        path = tmp_path / "paddle.json"

        config.save(str(path))
        loaded = ControllerConfig.load(str(path))

        assert loaded.to_dict() == config.to_dict()
        assert loaded.voxel.round_factor == (4, 4, 4, 4)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv('PADDLE_SEARCH_DEPTH', '5')
        monkeypatch.setenv('PADDLE_SEARCH_TIMEOUT', '0.25')
        monkeypatch.setenv('PADDLE_MAX_HISTORY', '64')

        config = ControllerConfig.from_env()

        assert config.search.depth == 5
        assert config.search.timeout == 0.25
        assert config.scheduler.max_history == 64

    def test_from_env_validates(self, monkeypatch):
        monkeypatch.setenv('PADDLE_SEARCH_DEPTH', '-1')
        with pytest.raises(ValueError):
            ControllerConfig.from_env()

    @pytest.mark.parametrize("section,name,value", [
        ("search", "timeout", 0.0),
        ("scheduler", "max_history", 0),
        ("scheduler", "decision_interval", 0.0),
        ("scheduler", "startup_delay", -1.0),
        ("voxel", "round_factor", (4, 4)),
        ("voxel", "radius", 0.0),
    ])
    def test_validate_rejects(self, section, name, value):
        config = ControllerConfig()
        setattr(getattr(config, section), name, value)
        with pytest.raises(ValueError):
            config.validate()

    def test_testing_profile_is_fast(self):
        config = ControllerConfig.for_testing().validate()
        assert config.scheduler.startup_delay == 0.0
        assert config.scheduler.decision_interval < 0.1


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
