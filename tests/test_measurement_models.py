import pytest
import numpy as np
import sys
import os

# Add the src directory to Python path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from ukf_tracking.exceptions import DegenerateRangeError, MeasurementShapeError
from ukf_tracking.fusion import LidarModel, RadarModel, UKFParameters
from ukf_tracking.fusion.measurement_models import create_measurement_models
from ukf_tracking.sensors import SensorType


class TestLidarModel:
    """Test the linear lidar measurement model"""

    def test_selects_position_rows(self):
        """Test lidar maps sigma points onto their positions"""
        Xsig = np.arange(15.0).reshape(5, 3)

        Zsig = LidarModel().transform(Xsig)

        np.testing.assert_allclose(Zsig, Xsig[0:2])

    def test_noise_covariance(self):
        """Test R uses the lidar standard deviations"""
        R = LidarModel().noise_covariance(UKFParameters(std_laspx=0.1, std_laspy=0.2))

        np.testing.assert_allclose(R, np.diag([0.01, 0.04]))

    def test_validate(self):
        """Test lidar measurements must be two finite values"""
        model = LidarModel()

        np.testing.assert_allclose(model.validate([1, 2]), [1.0, 2.0])
        with pytest.raises(MeasurementShapeError):
            model.validate([1.0])
        with pytest.raises(MeasurementShapeError):
            model.validate([1.0, np.inf])


class TestRadarModel:
    """Test the nonlinear polar radar measurement model"""

    def test_polar_transform(self):
        """Test range, bearing and range rate of a known state"""
        Xsig = np.array([[3.0], [4.0], [5.0], [0.0], [0.0]])

        Zsig = RadarModel().transform(Xsig)

        np.testing.assert_allclose(Zsig[:, 0], [5.0, np.arctan2(4.0, 3.0), 3.0])

    def test_range_rate_of_tangential_motion(self):
        """Test motion perpendicular to the line of sight has zero range rate"""
        Xsig = np.array([[10.0], [0.0], [4.0], [np.pi / 2], [0.0]])

        Zsig = RadarModel().transform(Xsig)

        np.testing.assert_allclose(Zsig[2, 0], 0.0, atol=1e-12)

    def test_degenerate_range(self):
        """Test a sigma point at the radar origin raises"""
        Xsig = np.array([[0.0, 1.0], [0.0, 1.0], [1.0, 1.0], [0.0, 0.0], [0.0, 0.0]])

        with pytest.raises(DegenerateRangeError):
            RadarModel().transform(Xsig)

    def test_configurable_minimum_range(self):
        """Test the minimum range guard is configurable"""
        Xsig = np.array([[0.05], [0.0], [1.0], [0.0], [0.0]])

        RadarModel(min_range=1e-4).transform(Xsig)
        with pytest.raises(DegenerateRangeError):
            RadarModel(min_range=0.1).transform(Xsig)
        with pytest.raises(ValueError):
            RadarModel(min_range=0.0)

    def test_bearing_is_angular(self):
        """Test the bearing row is marked for residual wrapping"""
        model = RadarModel()

        assert model.n_z == 3
        assert model.angle_indices == (1,)

    def test_noise_covariance(self):
        """Test R uses the radar standard deviations"""
        R = RadarModel().noise_covariance(UKFParameters())

        np.testing.assert_allclose(R, np.diag([0.09, 0.0009, 0.09]))


class TestModelRegistry:
    """Test construction of the per-sensor models"""

    def test_models_keyed_by_sensor(self):
        """Test every sensor type has a model of matching dimension"""
        models = create_measurement_models(UKFParameters(min_radar_range=0.5))

        assert set(models) == {SensorType.LIDAR, SensorType.RADAR}
        assert models[SensorType.LIDAR].n_z == 2
        assert models[SensorType.RADAR].min_range == 0.5
