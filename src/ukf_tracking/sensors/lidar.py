"""
Lidar sensor simulation.

Lidar Measurement Model:
    z_lidar = [px, py]ᵀ + n_lidar

    where n_lidar ~ N(0, diag(σ_px², σ_py²)) is white Gaussian noise.

The point cloud clustering that turns raw returns into a single target
position is assumed upstream; this model emits the clustered centroid.
"""

import numpy as np
from typing import Optional

from .measurement import GroundTruth, MeasurementPackage, SensorType


class LidarSensor:
    """
    Lidar centroid sensor with Gaussian noise and random dropouts.

    Attributes:
        noise_std_x: Standard deviation of x noise (meters)
        noise_std_y: Standard deviation of y noise (meters)
        dropout_prob: Probability of a missing measurement [0.0, 1.0]
    """

    sensor_type = SensorType.LIDAR

    def __init__(self, noise_std_x: float = 0.15, noise_std_y: float = 0.15,
                 dropout_prob: float = 0.0, rng: Optional[np.random.Generator] = None):
        """
        Initialize lidar sensor with specified characteristics.

        Args:
            noise_std_x: Standard deviation of x noise (meters)
            noise_std_y: Standard deviation of y noise (meters)
            dropout_prob: Probability of measurement dropout per scan
            rng: Random generator, for reproducible runs
        """
        if noise_std_x < 0 or noise_std_y < 0:
            raise ValueError("Lidar noise standard deviations must be non-negative")
        if not 0 <= dropout_prob <= 1:
            raise ValueError("Dropout probability must be between 0 and 1")

        self.noise_std_x = noise_std_x
        self.noise_std_y = noise_std_y
        self.dropout_prob = dropout_prob
        self.rng = rng if rng is not None else np.random.default_rng()

    def get_measurement(self, true_state: np.ndarray, timestamp_us: int,
                        ground_truth: Optional[GroundTruth] = None) -> Optional[MeasurementPackage]:
        """
        Generate a lidar measurement of the target.

        Args:
            true_state: True CTRV state [px, py, v, ψ, ψ̇]
            timestamp_us: Acquisition time in microseconds
            ground_truth: Optional ground truth to attach

        Returns:
            MeasurementPackage, or None if a dropout occurs
        """
        true_state = np.asarray(true_state, dtype=float)
        if true_state.size < 2:
            raise ValueError("Lidar requires at least a 2D position [px, py]")

        if self.dropout_prob > 0 and self.rng.random() < self.dropout_prob:
            return None

        noise = self.rng.normal(0.0, 1.0, 2) * np.array([self.noise_std_x, self.noise_std_y])
        return MeasurementPackage(
            sensor_type=SensorType.LIDAR,
            timestamp=timestamp_us,
            raw_measurements=true_state[0:2] + noise,
            ground_truth=ground_truth,
        )

    def get_measurement_covariance(self) -> np.ndarray:
        """
        Get measurement noise covariance matrix.

        Returns:
            2x2 covariance matrix for lidar measurements
        """
        return np.diag([self.noise_std_x ** 2, self.noise_std_y ** 2])

    def get_sensor_info(self) -> dict:
        """Sensor configuration for reporting."""
        return {
            'sensor_type': self.sensor_type.value,
            'noise_std': [self.noise_std_x, self.noise_std_y],
            'dropout_prob': self.dropout_prob,
            'covariance': self.get_measurement_covariance().tolist()
        }
