"""
Sensor measurement models for the CTRV unscented Kalman filter.

Each model maps predicted sigma points from state space into the sensor's
measurement space and supplies the matching noise covariance R. The
generalized update in ukf.py only sees the model interface, so it stays
parametric over the measurement dimension n_z.

Lidar Measurement Model (linear):
    z = [px, py]ᵀ

Radar Measurement Model (nonlinear, polar):
    ρ = √(px² + py²)
    φ = atan2(py, px)
    ρ̇ = (px·cos ψ·v + py·sin ψ·v) / ρ

The radar range-rate is undefined at the sensor origin, so sigma points
closer than a configurable minimum range are rejected.
"""

import numpy as np
from abc import ABC, abstractmethod
from typing import Tuple

from ..sensors.measurement import SensorType
from ..exceptions import DegenerateRangeError, MeasurementShapeError
from .parameters import UKFParameters
from .sigma_points import PX, PY, V, YAW


class MeasurementModel(ABC):
    """
    Interface of a sensor model usable by the generalized UKF update.

    Attributes:
        sensor_type: Sensor this model describes
        n_z: Measurement dimension
        angle_indices: Measurement rows holding angles (wrapped in residuals)
    """

    sensor_type: SensorType
    n_z: int
    angle_indices: Tuple[int, ...] = ()

    @abstractmethod
    def transform(self, Xsig_pred: np.ndarray) -> np.ndarray:
        """
        Map predicted sigma points into measurement space.

        Args:
            Xsig_pred: (5, m) predicted sigma points

        Returns:
            (n_z, m) sigma points in measurement space
        """

    @abstractmethod
    def noise_covariance(self, parameters: UKFParameters) -> np.ndarray:
        """Measurement noise covariance R (n_z, n_z)."""

    def validate(self, z) -> np.ndarray:
        """
        Convert raw measurement values to a float vector of the model's size.

        Raises:
            MeasurementShapeError: If the size is wrong or values are not finite
        """
        z = np.asarray(z, dtype=float).reshape(-1)
        if z.shape != (self.n_z,):
            raise MeasurementShapeError(
                f"{self.sensor_type.value} measurement must have {self.n_z} elements, got {z.size}")
        if not np.all(np.isfinite(z)):
            raise MeasurementShapeError(
                f"{self.sensor_type.value} measurement contains NaN or infinite values")
        return z


class LidarModel(MeasurementModel):
    """Lidar: direct Cartesian position measurement."""

    sensor_type = SensorType.LIDAR
    n_z = 2
    angle_indices = ()

    def transform(self, Xsig_pred: np.ndarray) -> np.ndarray:
        return Xsig_pred[[PX, PY], :].copy()

    def noise_covariance(self, parameters: UKFParameters) -> np.ndarray:
        return parameters.lidar_noise_covariance()


class RadarModel(MeasurementModel):
    """
    Radar: range, bearing and range-rate of the target.

    Args:
        min_range: Smallest admissible sigma point range in meters
    """

    sensor_type = SensorType.RADAR
    n_z = 3
    angle_indices = (1,)

    def __init__(self, min_range: float = 1e-4):
        if min_range <= 0:
            raise ValueError(f"Minimum radar range must be positive, got {min_range}")
        self.min_range = min_range

    def transform(self, Xsig_pred: np.ndarray) -> np.ndarray:
        px = Xsig_pred[PX, :]
        py = Xsig_pred[PY, :]
        v = Xsig_pred[V, :]
        yaw = Xsig_pred[YAW, :]

        rho = np.hypot(px, py)
        if np.any(rho < self.min_range):
            raise DegenerateRangeError(
                f"Sigma point within {self.min_range:.1e} m of the radar "
                f"(min range {np.min(rho):.3e} m), range-rate undefined")

        phi = np.arctan2(py, px)
        rho_dot = v * (px * np.cos(yaw) + py * np.sin(yaw)) / rho
        return np.vstack([rho, phi, rho_dot])

    def noise_covariance(self, parameters: UKFParameters) -> np.ndarray:
        return parameters.radar_noise_covariance()


def create_measurement_models(parameters: UKFParameters) -> dict:
    """Measurement models keyed by sensor type."""
    return {
        SensorType.LIDAR: LidarModel(),
        SensorType.RADAR: RadarModel(min_range=parameters.min_radar_range),
    }
