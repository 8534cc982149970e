"""
Measurement records exchanged between sensors, readers and the filter.

A MeasurementPackage carries one timestamped reading from one sensor:

    Lidar:  raw_measurements = [px, py]              (meters)
    Radar:  raw_measurements = [ρ, φ, ρ̇]             (m, rad, m/s)

Timestamps are integer microseconds, matching the logging format of the
sensor rigs; the filter converts differences to float seconds.
"""

import numpy as np
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..exceptions import MeasurementShapeError, UnsupportedSensorError


class SensorType(Enum):
    """Enumeration of supported sensor types."""
    LIDAR = "lidar"
    RADAR = "radar"

    @classmethod
    def from_tag(cls, tag) -> 'SensorType':
        """
        Resolve a sensor type from an enum member, its value, or a file tag.

        Accepts 'L'/'R' (measurement file tags) and 'lidar'/'laser'/'radar',
        case-insensitively.

        Raises:
            UnsupportedSensorError: For anything else
        """
        if isinstance(tag, cls):
            return tag
        aliases = {
            "l": cls.LIDAR,
            "lidar": cls.LIDAR,
            "laser": cls.LIDAR,
            "r": cls.RADAR,
            "radar": cls.RADAR,
        }
        if isinstance(tag, str) and tag.strip().lower() in aliases:
            return aliases[tag.strip().lower()]
        raise UnsupportedSensorError(f"Unsupported sensor type: {tag!r}")


# Expected number of raw values per sensor
MEASUREMENT_SIZE = {
    SensorType.LIDAR: 2,
    SensorType.RADAR: 3,
}


@dataclass
class GroundTruth:
    """True target state attached to simulated or logged measurements."""
    px: float
    py: float
    vx: float
    vy: float
    yaw: float = 0.0
    yaw_rate: float = 0.0

    def to_array(self) -> np.ndarray:
        """[px, py, vx, vy] used for RMSE evaluation."""
        return np.array([self.px, self.py, self.vx, self.vy])


@dataclass
class MeasurementPackage:
    """
    One sensor reading.

    Attributes:
        sensor_type: Sensor that produced the reading
        timestamp: Acquisition time in integer microseconds
        raw_measurements: Sensor values (2 for lidar, 3 for radar)
        ground_truth: Optional true state for evaluation, never used by the filter
    """
    sensor_type: SensorType
    timestamp: int
    raw_measurements: np.ndarray
    ground_truth: Optional[GroundTruth] = None

    def __post_init__(self):
        """Normalize field types and validate the measurement size."""
        self.sensor_type = SensorType.from_tag(self.sensor_type)

        if isinstance(self.timestamp, (float, np.floating)) and not float(self.timestamp).is_integer():
            raise ValueError(f"Timestamp must be integer microseconds, got {self.timestamp}")
        self.timestamp = int(self.timestamp)

        self.raw_measurements = np.asarray(self.raw_measurements, dtype=float).reshape(-1)
        expected = MEASUREMENT_SIZE[self.sensor_type]
        if self.raw_measurements.size != expected:
            raise MeasurementShapeError(f"{self.sensor_type.value} measurement must have "
                                        f"{expected} elements, got {self.raw_measurements.size}")

    @property
    def timestamp_seconds(self) -> float:
        """Timestamp converted to seconds."""
        return self.timestamp / 1e6
