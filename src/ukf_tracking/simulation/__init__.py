"""
Simulation components for ukf tracking.

Ground-truth target trajectories following the CTRV motion model, used to
drive the sensor simulations and to evaluate the filter.
"""

from .trajectory import CTRVTrajectory, TrajectoryParameters, TrajectorySample, straight_line

__all__ = [
    "CTRVTrajectory",
    "TrajectoryParameters",
    "TrajectorySample",
    "straight_line"
]
