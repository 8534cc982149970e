import pytest
import numpy as np
import sys
import os

# Add the src directory to Python path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from ukf_tracking.simulation import CTRVTrajectory, TrajectoryParameters, straight_line


class TestTrajectoryParameters:
    """Test trajectory parameter validation"""

    def test_default_parameters(self):
        """Test default S-shaped profile"""
        params = TrajectoryParameters()

        assert params.speed == 5.0
        assert params.turn_profile[0] == (0.0, 0.0)

    def test_invalid_parameters(self):
        """Test physically invalid parameters are rejected"""
        with pytest.raises(ValueError):
            TrajectoryParameters(speed=-1.0)
        with pytest.raises(ValueError):
            TrajectoryParameters(duration=0.0)
        with pytest.raises(ValueError):
            TrajectoryParameters(sample_period=-0.1)
        with pytest.raises(ValueError):
            TrajectoryParameters(turn_profile=[(0.0, 0.1), (5.0, 0.0), (2.0, 0.3)])
        with pytest.raises(ValueError):
            TrajectoryParameters(turn_profile=[(1.0, 0.1)])
        with pytest.raises(ValueError):
            TrajectoryParameters(initial_position=(1.0, 2.0, 3.0))


class TestCTRVTrajectory:
    """Test ground-truth trajectory generation"""

    def test_sample_count_and_timing(self):
        """Test samples are spaced by the sample period"""
        trajectory = CTRVTrajectory()

        assert len(trajectory) == 501
        np.testing.assert_allclose(np.diff(trajectory.timestamps_us()), 50000)
        np.testing.assert_allclose(trajectory.positions()[0], [0.6, 0.6])

    def test_straight_line(self):
        """Test a non-turning target moves along its heading"""
        trajectory = straight_line(speed=2.0, yaw=0.0, duration=1.0)

        np.testing.assert_allclose(trajectory.positions()[-1], [2.0, 0.0], atol=1e-12)
        assert trajectory.path_length() == pytest.approx(2.0)

    def test_full_circle(self):
        """Test a constant turn rate closes a circle after one period"""
        params = TrajectoryParameters(initial_position=(0.0, 0.0), speed=1.0, duration=10.0,
                                      sample_period=0.1, turn_profile=[(0.0, 2 * np.pi / 10.0)])
        trajectory = CTRVTrajectory(params)

        np.testing.assert_allclose(trajectory.positions()[-1], [0.0, 0.0], atol=1e-9)
        # Radius v/ψ̇ = 10/(2π)
        assert np.max(trajectory.positions()[:, 1]) == pytest.approx(10.0 / np.pi, rel=1e-3)

    def test_turn_profile(self):
        """Test the commanded turn rate switches at segment boundaries"""
        trajectory = CTRVTrajectory()

        assert trajectory.yaw_rate_at(2.0) == 0.0
        assert trajectory.yaw_rate_at(5.0) == 0.55
        assert trajectory.yaw_rate_at(17.0) == -0.55
        states = trajectory.states()
        assert states[120, 4] == pytest.approx(0.55)

    def test_constant_speed(self):
        """Test the speed stays constant along the path"""
        states = CTRVTrajectory().states()

        np.testing.assert_allclose(states[:, 2], 5.0)

    def test_ground_truth_sample(self):
        """Test samples expose Cartesian ground truth"""
        sample = straight_line(speed=2.0, yaw=np.pi / 2, duration=1.0).samples[10]
        gt = sample.ground_truth()

        assert sample.timestamp_us == 500000
        assert gt.vx == pytest.approx(0.0, abs=1e-12)
        assert gt.vy == pytest.approx(2.0)
        assert gt.py == pytest.approx(1.0)

    def test_start_timestamp_offset(self):
        """Test absolute timestamps include the start offset"""
        trajectory = CTRVTrajectory(start_timestamp_us=1477010443000000)

        assert trajectory.timestamps_us()[0] == 1477010443000000
