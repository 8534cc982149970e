"""
Sensor modules for ukf tracking.

This module contains the measurement record shared by every component,
lidar and radar sensor simulations with realistic noise models, and
readers/writers for measurement logs.
"""

from .measurement import GroundTruth, MeasurementPackage, SensorType
from .lidar import LidarSensor
from .radar import RadarSensor
from .stream import read_measurement_file, simulate_measurements, write_estimates

__all__ = [
    "SensorType",
    "MeasurementPackage",
    "GroundTruth",
    "LidarSensor",
    "RadarSensor",
    "read_measurement_file",
    "simulate_measurements",
    "write_estimates"
]
