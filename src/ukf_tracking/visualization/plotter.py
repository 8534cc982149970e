"""
Plotting of tracking results and filter consistency.

Classes:
    TrajectoryPlotter: 2D comparison of ground truth, measurements and estimates

Functions:
    plot_nis: NIS sequence per sensor against its χ² threshold
    covariance_ellipse: Position uncertainty ellipse from a 2x2 covariance

Author: Scientific Computing Team
License: MIT
"""

import logging
import numpy as np
import matplotlib.pyplot as plt
from matplotlib.patches import Ellipse
from typing import Dict, List, Optional, Sequence, Tuple, Union

from ..sensors.measurement import MeasurementPackage, SensorType
from .monitoring import NISMonitor

logger = logging.getLogger(__name__)


def covariance_ellipse(mean: Sequence[float], covariance: np.ndarray,
                       n_std: float = 2.0, **kwargs) -> Ellipse:
    """
    Uncertainty ellipse of a 2D Gaussian.

    The ellipse axes are the eigenvectors of the covariance scaled by
    n_std·√λ.

    Args:
        mean: Ellipse center [x, y]
        covariance: 2x2 position covariance
        n_std: Number of standard deviations
        **kwargs: Forwarded to matplotlib.patches.Ellipse

    Returns:
        Ellipse patch, not yet attached to any axes
    """
    covariance = np.asarray(covariance, dtype=float)
    if covariance.shape != (2, 2):
        raise ValueError(f"Covariance must be 2x2, got shape {covariance.shape}")

    eigenvals, eigenvecs = np.linalg.eigh(covariance)
    eigenvals = np.clip(eigenvals, 0.0, None)
    angle = np.degrees(np.arctan2(eigenvecs[1, 1], eigenvecs[0, 1]))
    width, height = 2 * n_std * np.sqrt(eigenvals[::-1])

    kwargs.setdefault('fill', False)
    return Ellipse(xy=tuple(mean), width=width, height=height, angle=angle, **kwargs)


def measurement_positions(measurements: Sequence[MeasurementPackage]) -> Dict[SensorType, np.ndarray]:
    """Cartesian positions of lidar and radar measurements, keyed by sensor."""
    positions = {SensorType.LIDAR: [], SensorType.RADAR: []}
    for m in measurements:
        if m.sensor_type == SensorType.LIDAR:
            positions[SensorType.LIDAR].append(m.raw_measurements[0:2])
        else:
            rho, phi = m.raw_measurements[0:2]
            positions[SensorType.RADAR].append([rho * np.cos(phi), rho * np.sin(phi)])
    return {sensor: np.array(points).reshape(-1, 2) for sensor, points in positions.items()}


class TrajectoryPlotter:
    """
    2D tracking result plots.

    Attributes:
        trajectories (List[Dict]): Registered trajectories with plotting metadata
        figure (matplotlib.figure.Figure): Current figure handle
        axes (matplotlib.axes.Axes): Current axes handle
    """

    def __init__(self, figure_size: Tuple[int, int] = (10, 8)):
        self.trajectories: List[Dict] = []
        self.ellipses: List[Ellipse] = []
        self.measurements: Dict[SensorType, np.ndarray] = {}
        self.figure = None
        self.axes = None
        self.figure_size = figure_size

    def add_trajectory(self, positions: Union[np.ndarray, List[List[float]]],
                       label: str = "Trajectory", color: str = 'blue',
                       linestyle: str = '-') -> None:
        """
        Register an (N, 2) position sequence.

        Raises:
            ValueError: If the data is not a finite Nx2 array with at least 2 points
        """
        positions = np.asarray(positions, dtype=np.float64)
        if positions.ndim != 2 or positions.shape[1] != 2:
            raise ValueError(f"Positions must be Nx2 array, got shape {positions.shape}")
        if not np.all(np.isfinite(positions)):
            raise ValueError("Trajectory contains invalid values (inf/nan)")
        if len(positions) < 2:
            raise ValueError("Trajectory must contain at least 2 points")

        self.trajectories.append({
            'positions': positions.copy(),
            'label': str(label),
            'color': color,
            'linestyle': linestyle,
        })
        logger.debug(f"Added trajectory '{label}' with {len(positions)} points")

    def add_measurements(self, measurements: Sequence[MeasurementPackage]) -> None:
        """Register raw measurements, drawn as markers (radar converted to Cartesian)."""
        self.measurements = measurement_positions(measurements)

    def add_uncertainty(self, mean: Sequence[float], covariance: np.ndarray,
                        n_std: float = 2.0) -> None:
        """Register a position uncertainty ellipse."""
        self.ellipses.append(covariance_ellipse(mean, covariance, n_std,
                                                edgecolor='purple', alpha=0.6))

    def plot(self, title: str = 'Target Tracking') -> plt.Figure:
        """
        Draw every registered element on a fresh figure.

        Returns:
            The matplotlib figure
        """
        self.figure, self.axes = plt.subplots(figsize=self.figure_size)

        styles = {SensorType.LIDAR: ('x', 'tab:green', 'Lidar'),
                  SensorType.RADAR: ('.', 'tab:orange', 'Radar')}
        for sensor, points in self.measurements.items():
            if len(points):
                marker, color, label = styles[sensor]
                self.axes.scatter(points[:, 0], points[:, 1], marker=marker, color=color,
                                  s=12, alpha=0.5, label=f'{label} measurements')

        for trajectory in self.trajectories:
            positions = trajectory['positions']
            self.axes.plot(positions[:, 0], positions[:, 1], color=trajectory['color'],
                           linestyle=trajectory['linestyle'], linewidth=2,
                           label=trajectory['label'])

        for ellipse in self.ellipses:
            self.axes.add_patch(ellipse)

        self.axes.set_xlabel('X Position (m)')
        self.axes.set_ylabel('Y Position (m)')
        self.axes.set_title(title, fontweight='bold')
        self.axes.set_aspect('equal', adjustable='datalim')
        self.axes.grid(True, alpha=0.3)
        self.axes.legend()
        return self.figure


def plot_nis(monitor: NISMonitor, figure_size: Tuple[int, int] = (12, 4)) -> plt.Figure:
    """
    Plot the NIS sequence of every sensor against its χ² threshold.

    Args:
        monitor: NIS monitor with recorded values

    Returns:
        Figure with one subplot per sensor that has data
    """
    sensors = [sensor for sensor in SensorType if monitor.history.get(sensor)]
    if not sensors:
        raise ValueError("No NIS values recorded")

    figure, axes = plt.subplots(1, len(sensors), figsize=figure_size, squeeze=False)
    for ax, sensor in zip(axes[0], sensors):
        values = monitor.history[sensor]
        threshold = monitor.threshold(sensor)
        ax.plot(values, linewidth=1, label='NIS')
        ax.axhline(threshold, color='red', linestyle='--',
                   label=f'χ² {monitor.confidence_level:.0%} ({threshold:.2f})')
        ax.set_title(f'{sensor.value.capitalize()} NIS '
                     f'({monitor.fraction_above(sensor):.1%} above)', fontweight='bold')
        ax.set_xlabel('Update')
        ax.set_ylabel('NIS')
        ax.grid(True, alpha=0.3)
        ax.legend()

    figure.tight_layout()
    return figure


def plot_tracking_results(ground_truth: np.ndarray, estimates: np.ndarray,
                          measurements: Optional[Sequence[MeasurementPackage]] = None,
                          final_covariance: Optional[np.ndarray] = None) -> plt.Figure:
    """
    Convenience wrapper drawing ground truth, estimates and measurements.

    Args:
        ground_truth: (N, 2) true positions
        estimates: (M, 2) estimated positions
        measurements: Optional raw measurements to scatter
        final_covariance: Optional 5x5 (or 2x2) covariance of the last estimate

    Returns:
        The matplotlib figure
    """
    plotter = TrajectoryPlotter()
    if measurements:
        plotter.add_measurements(measurements)
    plotter.add_trajectory(ground_truth, label='Ground Truth', color='black', linestyle='--')
    plotter.add_trajectory(estimates, label='UKF Estimate', color='tab:blue')
    if final_covariance is not None:
        plotter.add_uncertainty(np.asarray(estimates)[-1], np.asarray(final_covariance)[0:2, 0:2])
    return plotter.plot()
