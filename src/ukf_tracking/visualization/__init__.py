"""
Visualization and evaluation components for ukf tracking.

This module provides tracking accuracy metrics, NIS consistency monitoring
and matplotlib plots of trajectories and innovation statistics.
"""

from .monitoring import NISMonitor, TrackingMetrics, compute_rmse
from .plotter import TrajectoryPlotter, plot_nis, plot_tracking_results

__all__ = [
    "NISMonitor",
    "TrackingMetrics",
    "compute_rmse",
    "TrajectoryPlotter",
    "plot_nis",
    "plot_tracking_results"
]
