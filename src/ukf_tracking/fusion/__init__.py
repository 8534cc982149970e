"""
Sensor fusion algorithms for ukf tracking.

This module implements the CTRV Unscented Kalman Filter and its building
blocks (sigma points, measurement models, angle wrapping) for combining
lidar and radar measurements into a single target estimate.
"""

from .angles import normalize_angle
from .measurement_models import LidarModel, MeasurementModel, RadarModel
from .parameters import UKFParameters
from .state import CTRVState
from .ukf import UnscentedKalmanFilter

__all__ = [
    "UnscentedKalmanFilter",
    "UKFParameters",
    "CTRVState",
    "MeasurementModel",
    "LidarModel",
    "RadarModel",
    "normalize_angle"
]
