"""
Tracking accuracy and filter consistency metrics.

Classes:
    TrackingMetrics: Accumulates estimate / ground-truth pairs and reports RMSE
    NISMonitor: Per-sensor Normalized Innovation Squared consistency checks

Accuracy:
    RMSE over the Cartesian track [px, py, vx, vy]:
        RMSEⱼ = √( (1/N) Σₖ (x̂ₖⱼ − xₖⱼ)² )

Consistency:
    For a consistent filter the NIS of an n_z-dimensional sensor follows
    χ²(n_z). Two checks are reported:
    - the fraction of NIS values above the χ²(n_z) quantile at the chosen
      confidence level (≈ 1 − confidence for a consistent filter)
    - the time-averaged NIS test: N·mean(NIS) ~ χ²(N·n_z), with the two-sided
      acceptance interval at the chosen confidence level

Author: Scientific Computing Team
License: MIT
"""

import logging
import numpy as np
from collections import defaultdict
from scipy import stats
from typing import Any, Dict, List, Optional

from ..sensors.measurement import MEASUREMENT_SIZE, SensorType

logger = logging.getLogger(__name__)


def compute_rmse(estimations, ground_truth) -> np.ndarray:
    """
    Root mean squared error between estimates and ground truth.

    Args:
        estimations: (N, d) array-like of estimates
        ground_truth: (N, d) array-like of true values

    Returns:
        RMSE per component (d,)

    Raises:
        ValueError: If the inputs are empty or their shapes differ
    """
    estimations = np.asarray(estimations, dtype=float)
    ground_truth = np.asarray(ground_truth, dtype=float)

    if estimations.size == 0:
        raise ValueError("Cannot compute RMSE of an empty estimate list")
    if estimations.shape != ground_truth.shape:
        raise ValueError(f"Estimate shape {estimations.shape} does not match "
                         f"ground truth shape {ground_truth.shape}")

    residuals = estimations - ground_truth
    return np.sqrt(np.mean(residuals ** 2, axis=0))


class TrackingMetrics:
    """
    Accumulator of Cartesian tracking errors.

    Each record pairs an estimate [px, py, vx, vy] with its ground truth.
    """

    def __init__(self):
        self.timestamps: List[int] = []
        self.estimates: List[np.ndarray] = []
        self.ground_truth: List[np.ndarray] = []

    def update(self, estimate: np.ndarray, truth: np.ndarray, timestamp: int) -> None:
        """Record one estimate / ground-truth pair."""
        estimate = np.asarray(estimate, dtype=float)
        truth = np.asarray(truth, dtype=float)
        if estimate.shape != (4,) or truth.shape != (4,):
            raise ValueError("Estimate and ground truth must be [px, py, vx, vy]")
        self.timestamps.append(int(timestamp))
        self.estimates.append(estimate)
        self.ground_truth.append(truth)

    def __len__(self) -> int:
        return len(self.estimates)

    def rmse(self) -> np.ndarray:
        """RMSE of [px, py, vx, vy] over all records."""
        return compute_rmse(self.estimates, self.ground_truth)

    def position_errors(self) -> np.ndarray:
        """Euclidean position error per record."""
        if not self.estimates:
            return np.zeros(0)
        diff = np.array(self.estimates)[:, 0:2] - np.array(self.ground_truth)[:, 0:2]
        return np.linalg.norm(diff, axis=1)

    def get_error_statistics(self) -> Dict[str, Any]:
        """
        Summary statistics of the position error.

        Returns:
            Dictionary with RMSE components and position error distribution,
            empty when nothing was recorded
        """
        if not self.estimates:
            return {}

        errors = self.position_errors()
        rmse = self.rmse()
        return {
            'count': len(errors),
            'rmse': {'px': rmse[0], 'py': rmse[1], 'vx': rmse[2], 'vy': rmse[3]},
            'mean_position_error': float(np.mean(errors)),
            'median_position_error': float(np.median(errors)),
            'max_position_error': float(np.max(errors)),
            'percentile_95': float(np.percentile(errors, 95)),
        }


class NISMonitor:
    """
    Normalized Innovation Squared consistency monitor.

    Parameters:
        confidence_level (float): Confidence level of the χ² checks. Default: 0.95

    Attributes:
        history (Dict[SensorType, List[float]]): Recorded NIS values per sensor
    """

    def __init__(self, confidence_level: float = 0.95):
        if not (0 < confidence_level < 1):
            raise ValueError("Confidence level must be between 0 and 1")
        self.confidence_level = confidence_level
        self.history: Dict[SensorType, List[float]] = defaultdict(list)

    def record(self, sensor_type: SensorType, nis: Optional[float]) -> None:
        """Record one NIS value; None (no update yet) is ignored."""
        if nis is None:
            return
        if not np.isfinite(nis) or nis < 0:
            raise ValueError(f"NIS must be a finite non-negative number, got {nis}")
        self.history[SensorType.from_tag(sensor_type)].append(float(nis))

    @staticmethod
    def degrees_of_freedom(sensor_type: SensorType) -> int:
        return MEASUREMENT_SIZE[SensorType.from_tag(sensor_type)]

    def threshold(self, sensor_type: SensorType) -> float:
        """χ² quantile at the confidence level (5.991 for lidar, 7.815 for radar at 95 %)."""
        return float(stats.chi2.ppf(self.confidence_level, self.degrees_of_freedom(sensor_type)))

    def fraction_above(self, sensor_type: SensorType) -> float:
        """Fraction of recorded NIS values above the χ² threshold."""
        values = self.history.get(SensorType.from_tag(sensor_type), [])
        if not values:
            return 0.0
        return float(np.mean(np.array(values) > self.threshold(sensor_type)))

    def average_nis_bounds(self, sensor_type: SensorType, count: int) -> Dict[str, float]:
        """Two-sided acceptance interval of the time-averaged NIS over `count` samples."""
        dof = self.degrees_of_freedom(sensor_type) * count
        alpha = 1.0 - self.confidence_level
        return {
            'lower': float(stats.chi2.ppf(alpha / 2, dof) / count),
            'upper': float(stats.chi2.ppf(1 - alpha / 2, dof) / count),
        }

    def assess(self, sensor_type: SensorType) -> str:
        """
        Classify filter consistency for one sensor.

        Returns:
            'consistent', 'overconfident' (innovations larger than predicted),
            'underconfident' (smaller than predicted) or 'insufficient_data'
        """
        values = self.history.get(SensorType.from_tag(sensor_type), [])
        if not values:
            return 'insufficient_data'

        bounds = self.average_nis_bounds(sensor_type, len(values))
        mean_nis = float(np.mean(values))
        logger.debug(f"Average NIS {mean_nis:.3f} over {len(values)} samples, "
                     f"acceptance [{bounds['lower']:.3f}, {bounds['upper']:.3f}]")
        if mean_nis > bounds['upper']:
            return 'overconfident'
        if mean_nis < bounds['lower']:
            return 'underconfident'
        return 'consistent'

    def get_statistics(self) -> Dict[str, Dict[str, Any]]:
        """
        Consistency summary per sensor.

        Returns:
            Dictionary keyed by sensor name
        """
        summary = {}
        for sensor_type, values in self.history.items():
            if not values:
                continue
            summary[sensor_type.value] = {
                'count': len(values),
                'mean': float(np.mean(values)),
                'expected_mean': self.degrees_of_freedom(sensor_type),
                'threshold': self.threshold(sensor_type),
                'fraction_above': self.fraction_above(sensor_type),
                'expected_fraction_above': 1.0 - self.confidence_level,
                'assessment': self.assess(sensor_type),
            }
        return summary
