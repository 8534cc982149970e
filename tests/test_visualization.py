import pytest
import numpy as np
import matplotlib
matplotlib.use('Agg')  # Non-interactive backend for testing
import matplotlib.pyplot as plt
import sys
import os

# Add the src directory to Python path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from ukf_tracking.sensors import MeasurementPackage, SensorType
from ukf_tracking.visualization import NISMonitor, TrajectoryPlotter, plot_nis, plot_tracking_results
from ukf_tracking.visualization.plotter import covariance_ellipse, measurement_positions


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close('all')


class TestCovarianceEllipse:
    """Test uncertainty ellipse construction"""

    def test_axis_aligned_ellipse(self):
        """Test ellipse axes scale with the standard deviations"""
        ellipse = covariance_ellipse([1.0, 2.0], np.diag([4.0, 1.0]), n_std=1.0)

        assert ellipse.width == pytest.approx(4.0)
        assert ellipse.height == pytest.approx(2.0)
        assert ellipse.center == pytest.approx((1.0, 2.0))

    def test_rejects_wrong_shape(self):
        """Test covariance must be 2x2"""
        with pytest.raises(ValueError):
            covariance_ellipse([0.0, 0.0], np.eye(3))


class TestTrajectoryPlotter:
    """Test trajectory comparison plots"""

    def test_add_trajectory_validation(self):
        """Test invalid trajectories are rejected"""
        plotter = TrajectoryPlotter()

        with pytest.raises(ValueError):
            plotter.add_trajectory(np.zeros((5, 3)))
        with pytest.raises(ValueError):
            plotter.add_trajectory([[0.0, 0.0]])
        with pytest.raises(ValueError):
            plotter.add_trajectory([[0.0, 0.0], [np.nan, 1.0]])

    def test_measurement_positions(self):
        """Test radar measurements are converted to Cartesian positions"""
        measurements = [MeasurementPackage(SensorType.LIDAR, 0, [1.0, 2.0]),
                        MeasurementPackage(SensorType.RADAR, 1, [2.0, np.pi / 2, 0.0])]

        positions = measurement_positions(measurements)

        np.testing.assert_allclose(positions[SensorType.LIDAR], [[1.0, 2.0]])
        np.testing.assert_allclose(positions[SensorType.RADAR], [[0.0, 2.0]], atol=1e-12)

    def test_plot_tracking_results(self):
        """Test the comparison figure contains both trajectories and the ellipse"""
        t = np.linspace(0, 1, 20)
        truth = np.column_stack([t, t ** 2])
        estimates = truth + 0.01
        measurements = [MeasurementPackage(SensorType.LIDAR, 0, [0.0, 0.0])]

        fig = plot_tracking_results(truth, estimates, measurements, final_covariance=np.eye(5))

        ax = fig.axes[0]
        labels = [line.get_label() for line in ax.get_lines()]
        assert 'Ground Truth' in labels
        assert 'UKF Estimate' in labels
        assert len(ax.patches) == 1


class TestNISPlot:
    """Test NIS plots"""

    def test_plot_nis(self):
        """Test one subplot per sensor with recorded values"""
        monitor = NISMonitor()
        for nis in [1.0, 2.5, 7.0]:
            monitor.record(SensorType.LIDAR, nis)
            monitor.record(SensorType.RADAR, nis)

        fig = plot_nis(monitor)

        assert len(fig.axes) == 2

    def test_plot_nis_without_data(self):
        """Test plotting an empty monitor raises"""
        with pytest.raises(ValueError):
            plot_nis(NISMonitor())
