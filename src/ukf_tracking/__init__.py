"""
UKF Tracking: Lidar and Radar Fusion with an Unscented Kalman Filter

A scientific Python package for tracking a single moving target from
asynchronous lidar and radar measurements under the Constant Turn Rate and
Velocity (CTRV) motion model.

This package implements:
- Unscented Kalman Filter with augmented sigma points
- Lidar and radar measurement models and sensor simulations
- CTRV ground-truth trajectory generation
- RMSE and NIS consistency evaluation with plotting

Estimation errors are reported through a typed exception hierarchy
(ukf_tracking.exceptions) and never leave the filter partially updated.
"""

from .fusion.ukf import UnscentedKalmanFilter
from .fusion.parameters import UKFParameters
from .fusion.state import CTRVState
from .sensors.measurement import GroundTruth, MeasurementPackage, SensorType
from .sensors.lidar import LidarSensor
from .sensors.radar import RadarSensor
from .simulation.trajectory import CTRVTrajectory, TrajectoryParameters
from .visualization.monitoring import NISMonitor, TrackingMetrics, compute_rmse
from .exceptions import FilterError

__version__ = "1.0.0"
__author__ = "UKF Tracking Team"

__all__ = [
    "UnscentedKalmanFilter",
    "UKFParameters",
    "CTRVState",
    "SensorType",
    "MeasurementPackage",
    "GroundTruth",
    "LidarSensor",
    "RadarSensor",
    "CTRVTrajectory",
    "TrajectoryParameters",
    "NISMonitor",
    "TrackingMetrics",
    "compute_rmse",
    "FilterError"
]
