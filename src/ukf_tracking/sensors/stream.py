"""
Measurement streams: text log reading, estimate writing and simulated streams.

Measurement Log Format (one measurement per line, whitespace separated):
    L  px  py       timestamp  [gt_px gt_py gt_vx gt_vy [gt_yaw gt_yawrate]]
    R  ρ   φ   ρ̇   timestamp  [gt_px gt_py gt_vx gt_vy [gt_yaw gt_yawrate]]

Timestamps are integer microseconds. Blank lines and lines starting with '#'
are ignored.
"""

import csv
import itertools
import logging
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence, Union

from ..exceptions import UnsupportedSensorError
from .measurement import MEASUREMENT_SIZE, GroundTruth, MeasurementPackage, SensorType

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

ESTIMATE_COLUMNS = [
    'timestamp', 'sensor', 'px_est', 'py_est', 'v_est', 'yaw_est', 'yaw_rate_est',
    'nis', 'px_gt', 'py_gt', 'vx_gt', 'vy_gt',
]


def parse_measurement_line(line: str) -> Optional[MeasurementPackage]:
    """
    Parse one line of a measurement log.

    Args:
        line: Text line in the log format

    Returns:
        MeasurementPackage, or None for blank and comment lines

    Raises:
        UnsupportedSensorError: If the sensor tag is not L or R
        ValueError: If the line is truncated or holds non-numeric values
    """
    fields = line.split()
    if not fields or fields[0].startswith('#'):
        return None

    sensor_type = SensorType.from_tag(fields[0])
    n_values = MEASUREMENT_SIZE[sensor_type]

    if len(fields) < n_values + 2:
        raise ValueError(f"Truncated {sensor_type.value} line: {line.strip()!r}")

    try:
        raw = [float(value) for value in fields[1:n_values + 1]]
        timestamp = int(fields[n_values + 1])
        extra = [float(value) for value in fields[n_values + 2:]]
    except ValueError as exc:
        raise ValueError(f"Malformed measurement line: {line.strip()!r}") from exc

    ground_truth = None
    if len(extra) >= 4:
        ground_truth = GroundTruth(*extra[:6])

    return MeasurementPackage(
        sensor_type=sensor_type,
        timestamp=timestamp,
        raw_measurements=raw,
        ground_truth=ground_truth,
    )


def iter_measurement_file(path: PathLike) -> Iterator[MeasurementPackage]:
    """
    Lazily yield measurements from a log file.

    Raises:
        ValueError: With the offending line number when a line cannot be parsed
    """
    with open(path, 'r', encoding='utf-8') as f:
        for line_number, line in enumerate(f, start=1):
            try:
                measurement = parse_measurement_line(line)
            except UnsupportedSensorError as exc:
                raise UnsupportedSensorError(f"{path}:{line_number}: {exc}") from exc
            except ValueError as exc:
                raise ValueError(f"{path}:{line_number}: {exc}") from exc
            if measurement is not None:
                yield measurement


def read_measurement_file(path: PathLike) -> List[MeasurementPackage]:
    """Read a whole measurement log into memory."""
    measurements = list(iter_measurement_file(path))
    logger.info(f"Loaded {len(measurements)} measurements from {path}")
    return measurements


def write_estimates(path: PathLike, rows: Iterable[dict]) -> int:
    """
    Write per-measurement estimates as a tab-separated file.

    Args:
        path: Output file
        rows: Dictionaries keyed by ESTIMATE_COLUMNS (missing keys are left empty)

    Returns:
        Number of rows written
    """
    count = 0
    with open(path, 'w', newline='', encoding='utf-8') as f:
        writer = csv.DictWriter(f, fieldnames=ESTIMATE_COLUMNS, delimiter='\t',
                                extrasaction='ignore')
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
            count += 1
    logger.info(f"Wrote {count} estimates to {path}")
    return count


def simulate_measurements(samples: Iterable, sensors: Sequence,
                          start_timestamp_us: int = 0) -> List[MeasurementPackage]:
    """
    Sample a ground-truth trajectory with sensors taking turns.

    Sensors are polled round-robin, one per ground-truth sample, which yields
    the interleaved lidar/radar stream of a typical logging rig. Dropped
    measurements are simply absent from the result.

    Args:
        samples: Ground-truth samples exposing time, state and ground_truth()
        sensors: Sensor simulators exposing get_measurement(state, timestamp, ground_truth)
        start_timestamp_us: Timestamp of the first sample

    Returns:
        Time-ordered list of measurements
    """
    if not sensors:
        raise ValueError("At least one sensor is required")

    measurements = []
    for sample, sensor in zip(samples, itertools.cycle(sensors)):
        timestamp = int(start_timestamp_us) + int(round(sample.time * 1e6))
        measurement = sensor.get_measurement(sample.state, timestamp, sample.ground_truth())
        if measurement is not None:
            measurements.append(measurement)
    return measurements
