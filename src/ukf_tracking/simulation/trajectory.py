"""
Ground-truth CTRV trajectory generation.

This module produces noiseless target trajectories for exercising the
filter: the target moves with constant speed and a piecewise-constant turn
rate, integrated exactly with the same closed-form CTRV solution the
filter's process model uses.

Motion Model:
    ψ̇(t) = ψ̇ₖ             for tₖ ≤ t < tₖ₊₁
    ψ(t + Δt) = ψ(t) + ψ̇Δt
    px(t + Δt) = px + v/ψ̇ (sin(ψ + ψ̇Δt) − sin ψ)
    py(t + Δt) = py + v/ψ̇ (cos ψ − cos(ψ + ψ̇Δt))

Turn-rate changes are aligned to sample instants, so every step is exact.

Author: Scientific Computing Team
License: MIT
"""

import numpy as np
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from ..fusion.sigma_points import N_AUG, ctrv_process_model
from ..sensors.measurement import GroundTruth


@dataclass
class TrajectoryParameters:
    """Physical parameters for trajectory generation with validation."""

    initial_position: Tuple[float, float] = (0.6, 0.6)   # Start position [m]
    speed: float = 5.0                                    # Constant speed [m/s]
    initial_yaw: float = 0.0                              # Start heading [rad]
    duration: float = 25.0                                # Trajectory length [s]
    sample_period: float = 0.05                           # Ground truth spacing [s]
    # (start_time [s], yaw_rate [rad/s]) pairs, sorted by start time
    turn_profile: List[Tuple[float, float]] = field(
        default_factory=lambda: [(0.0, 0.0), (5.0, 0.55), (10.0, 0.0), (15.0, -0.55), (20.0, 0.0)])

    def __post_init__(self):
        """Validate trajectory parameters against physical constraints."""
        if len(self.initial_position) != 2:
            raise ValueError(f"Initial position must have 2 elements, got {len(self.initial_position)}")
        if self.speed < 0:
            raise ValueError(f"Speed must be non-negative, got {self.speed}")
        if self.duration <= 0:
            raise ValueError(f"Duration must be positive, got {self.duration}")
        if self.sample_period <= 0:
            raise ValueError(f"Sample period must be positive, got {self.sample_period}")
        if not self.turn_profile:
            raise ValueError("Turn profile must contain at least one segment")
        start_times = [start for start, _ in self.turn_profile]
        if start_times != sorted(start_times):
            raise ValueError("Turn profile segments must be sorted by start time")
        if start_times[0] > 0:
            raise ValueError("Turn profile must start at t=0")


@dataclass
class TrajectorySample:
    """One ground-truth sample."""
    time: float               # Seconds since trajectory start
    state: np.ndarray         # CTRV state [px, py, v, ψ, ψ̇]

    @property
    def timestamp_us(self) -> int:
        return int(round(self.time * 1e6))

    def ground_truth(self) -> GroundTruth:
        px, py, v, yaw, yaw_rate = self.state
        return GroundTruth(px=float(px), py=float(py),
                           vx=float(v * np.cos(yaw)), vy=float(v * np.sin(yaw)),
                           yaw=float(yaw), yaw_rate=float(yaw_rate))


class CTRVTrajectory:
    """
    Constant-speed target with a piecewise-constant turn rate.

    Attributes:
        params (TrajectoryParameters): Trajectory definition
        samples (List[TrajectorySample]): Generated ground truth
    """

    def __init__(self, params: Optional[TrajectoryParameters] = None,
                 start_timestamp_us: int = 0):
        self.params = params if params is not None else TrajectoryParameters()
        self.start_timestamp_us = int(start_timestamp_us)
        self.samples: List[TrajectorySample] = self._generate()

    def yaw_rate_at(self, t: float) -> float:
        """Commanded turn rate at time t."""
        yaw_rate = self.params.turn_profile[0][1]
        for start, rate in self.params.turn_profile:
            if t + 1e-9 >= start:
                yaw_rate = rate
            else:
                break
        return yaw_rate

    def _generate(self) -> List[TrajectorySample]:
        p = self.params
        n_steps = int(np.floor(p.duration / p.sample_period + 1e-9))

        state = np.array([p.initial_position[0], p.initial_position[1],
                          p.speed, p.initial_yaw, self.yaw_rate_at(0.0)])
        samples = [TrajectorySample(time=0.0, state=state.copy())]

        augmented = np.zeros(N_AUG)
        for step in range(1, n_steps + 1):
            augmented[:5] = state
            state = ctrv_process_model(augmented, p.sample_period)
            t = step * p.sample_period
            state[4] = self.yaw_rate_at(t)
            samples.append(TrajectorySample(time=t, state=state.copy()))

        return samples

    def timestamps_us(self) -> np.ndarray:
        """Absolute sample timestamps in microseconds."""
        return np.array([self.start_timestamp_us + s.timestamp_us for s in self.samples],
                        dtype=np.int64)

    def states(self) -> np.ndarray:
        """(N, 5) array of ground-truth CTRV states."""
        return np.array([s.state for s in self.samples])

    def positions(self) -> np.ndarray:
        """(N, 2) array of ground-truth positions."""
        return self.states()[:, 0:2]

    def path_length(self) -> float:
        """Total arc length of the sampled path in meters."""
        return float(np.sum(np.linalg.norm(np.diff(self.positions(), axis=0), axis=1)))

    def __len__(self) -> int:
        return len(self.samples)

    def __iter__(self):
        return iter(self.samples)


def straight_line(speed: float, yaw: float, duration: float,
                  sample_period: float = 0.05,
                  initial_position: Sequence[float] = (0.0, 0.0)) -> CTRVTrajectory:
    """Convenience constructor for a non-turning target."""
    return CTRVTrajectory(TrajectoryParameters(
        initial_position=tuple(initial_position),
        speed=speed,
        initial_yaw=yaw,
        duration=duration,
        sample_period=sample_period,
        turn_profile=[(0.0, 0.0)],
    ))
