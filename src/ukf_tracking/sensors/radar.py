"""
Radar sensor simulation.

Radar Measurement Model:
    ρ  = √(px² + py²)                       + n_ρ
    φ  = atan2(py, px)                       + n_φ
    ρ̇  = (px·vx + py·vy) / ρ                 + n_ρ̇

    where vx = v cos ψ, vy = v sin ψ and the noise terms are independent
    zero-mean Gaussians. The measured bearing is wrapped into (−π, π].

Failure Modes:
    - Dropout: the detection is missed with a configurable probability
    - Blind zone: a target within min_range of the antenna yields no detection
"""

import logging
import numpy as np
from typing import Optional

from ..fusion.angles import normalize_angle
from .measurement import GroundTruth, MeasurementPackage, SensorType

logger = logging.getLogger(__name__)


class RadarSensor:
    """
    Automotive radar returning range, bearing and range-rate.

    Attributes:
        noise_std_range: Range noise (meters)
        noise_std_bearing: Bearing noise (radians)
        noise_std_range_rate: Range-rate noise (m/s)
        dropout_prob: Probability of a missed detection [0.0, 1.0]
        min_range: Blind zone radius (meters)
    """

    sensor_type = SensorType.RADAR

    def __init__(self, noise_std_range: float = 0.3, noise_std_bearing: float = 0.03,
                 noise_std_range_rate: float = 0.3, dropout_prob: float = 0.0,
                 min_range: float = 1e-3, rng: Optional[np.random.Generator] = None):
        if min(noise_std_range, noise_std_bearing, noise_std_range_rate) < 0:
            raise ValueError("Radar noise standard deviations must be non-negative")
        if not 0 <= dropout_prob <= 1:
            raise ValueError("Dropout probability must be between 0 and 1")
        if min_range <= 0:
            raise ValueError("Minimum range must be positive")

        self.noise_std_range = noise_std_range
        self.noise_std_bearing = noise_std_bearing
        self.noise_std_range_rate = noise_std_range_rate
        self.dropout_prob = dropout_prob
        self.min_range = min_range
        self.rng = rng if rng is not None else np.random.default_rng()

    @staticmethod
    def ideal_measurement(true_state: np.ndarray) -> np.ndarray:
        """
        Noise-free radar measurement [ρ, φ, ρ̇] of a CTRV state.

        Raises:
            ValueError: If the target sits at the antenna (range zero)
        """
        px, py, v, yaw = np.asarray(true_state, dtype=float)[0:4]
        rho = np.hypot(px, py)
        if rho == 0:
            raise ValueError("Range-rate is undefined for a target at the radar origin")
        phi = np.arctan2(py, px)
        rho_dot = (px * v * np.cos(yaw) + py * v * np.sin(yaw)) / rho
        return np.array([rho, phi, rho_dot])

    def get_measurement(self, true_state: np.ndarray, timestamp_us: int,
                        ground_truth: Optional[GroundTruth] = None) -> Optional[MeasurementPackage]:
        """
        Generate a radar measurement of the target.

        Args:
            true_state: True CTRV state [px, py, v, ψ, ψ̇]
            timestamp_us: Acquisition time in microseconds
            ground_truth: Optional ground truth to attach

        Returns:
            MeasurementPackage, or None on dropout or inside the blind zone
        """
        true_state = np.asarray(true_state, dtype=float)
        if true_state.size < 4:
            raise ValueError("Radar requires a CTRV state with at least [px, py, v, yaw]")

        if self.dropout_prob > 0 and self.rng.random() < self.dropout_prob:
            return None

        if np.hypot(true_state[0], true_state[1]) < self.min_range:
            logger.debug(f"Target inside radar blind zone at t={timestamp_us}us")
            return None

        z = self.ideal_measurement(true_state)
        z += self.rng.normal(0.0, 1.0, 3) * np.array(
            [self.noise_std_range, self.noise_std_bearing, self.noise_std_range_rate])
        z[1] = normalize_angle(z[1])

        return MeasurementPackage(
            sensor_type=SensorType.RADAR,
            timestamp=timestamp_us,
            raw_measurements=z,
            ground_truth=ground_truth,
        )

    def get_measurement_covariance(self) -> np.ndarray:
        """
        Get measurement noise covariance matrix.

        Returns:
            3x3 covariance matrix for radar measurements
        """
        return np.diag([self.noise_std_range ** 2,
                        self.noise_std_bearing ** 2,
                        self.noise_std_range_rate ** 2])

    def get_sensor_info(self) -> dict:
        """Sensor configuration for reporting."""
        return {
            'sensor_type': self.sensor_type.value,
            'noise_std': [self.noise_std_range, self.noise_std_bearing, self.noise_std_range_rate],
            'dropout_prob': self.dropout_prob,
            'min_range': self.min_range,
            'covariance': self.get_measurement_covariance().tolist()
        }
