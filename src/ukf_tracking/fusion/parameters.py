"""
Tuning parameters for the CTRV unscented Kalman filter.

Process noise is modelled as two white accelerations acting on the CTRV
state (longitudinal acceleration ν_a and yaw acceleration ν_ψ̈); measurement
noise is diagonal and sensor specific:

    Q = diag(σ_a², σ_ψ̈²)
    R_lidar = diag(σ_px², σ_py²)
    R_radar = diag(σ_ρ², σ_φ², σ_ρ̇²)

The defaults are tuned for a bicycle-sized target observed by an automotive
lidar and radar.
"""

import numpy as np
from dataclasses import dataclass


@dataclass
class UKFParameters:
    """Constant configuration of an UnscentedKalmanFilter instance."""

    std_a: float = 0.30           # Longitudinal acceleration noise [m/s²]
    std_yawdd: float = 0.30       # Yaw acceleration noise [rad/s²]
    std_laspx: float = 0.15       # Lidar x noise [m]
    std_laspy: float = 0.15       # Lidar y noise [m]
    std_radr: float = 0.3         # Radar range noise [m]
    std_radphi: float = 0.03      # Radar bearing noise [rad]
    std_radrd: float = 0.3        # Radar range-rate noise [m/s]

    use_laser: bool = True        # Lidar updates are skipped (except at init) when False
    use_radar: bool = True        # Radar updates are skipped (except at init) when False

    yaw_rate_threshold: float = 1e-3     # Below this |ψ̇| the straight-line model is used
    min_radar_range: float = 1e-4        # Sigma points closer than this to the radar are degenerate [m]
    max_condition_number: float = 1e12   # Largest acceptable κ(S) in the update

    def __post_init__(self):
        """Validate noise levels and numerical guards."""
        for name in ("std_a", "std_yawdd", "std_laspx", "std_laspy",
                     "std_radr", "std_radphi", "std_radrd"):
            value = getattr(self, name)
            if not np.isfinite(value) or value < 0:
                raise ValueError(f"{name} must be a finite non-negative number, got {value}")
        if self.yaw_rate_threshold <= 0:
            raise ValueError(f"yaw_rate_threshold must be positive, got {self.yaw_rate_threshold}")
        if self.min_radar_range <= 0:
            raise ValueError(f"min_radar_range must be positive, got {self.min_radar_range}")
        if self.max_condition_number <= 1:
            raise ValueError(f"max_condition_number must exceed 1, got {self.max_condition_number}")

    def process_noise_covariance(self) -> np.ndarray:
        """2x2 covariance of the augmented noise states [ν_a, ν_ψ̈]."""
        return np.diag([self.std_a ** 2, self.std_yawdd ** 2])

    def lidar_noise_covariance(self) -> np.ndarray:
        """2x2 lidar measurement noise covariance R."""
        return np.diag([self.std_laspx ** 2, self.std_laspy ** 2])

    def radar_noise_covariance(self) -> np.ndarray:
        """3x3 radar measurement noise covariance R."""
        return np.diag([self.std_radr ** 2, self.std_radphi ** 2, self.std_radrd ** 2])
