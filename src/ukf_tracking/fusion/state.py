"""
CTRV state vector representation.

Mathematical Representation:
    x = [px, py, v, ψ, ψ̇]ᵀ ∈ ℝ⁵

State Components:
    Position: px, py in the sensor frame (m)
    Speed: v, magnitude of the velocity along the heading (m/s)
    Heading: ψ, yaw angle measured from the x axis (rad)
    Turn rate: ψ̇, yaw rate (rad/s)

The Cartesian velocity used for evaluation follows from speed and heading:
    vx = v cos ψ,  vy = v sin ψ
"""

import numpy as np
from typing import Optional, Tuple

from .angles import normalize_angle
from .sigma_points import N_X


class CTRVState:
    """
    Five-dimensional CTRV state with named accessors.

    This is a value object; the filter hands out fresh instances and never
    shares its internal arrays.
    """

    def __init__(self, initial_state: Optional[np.ndarray] = None):
        """
        Initialize state with optional values.

        Args:
            initial_state: Optional 5-element array [px, py, v, ψ, ψ̇]

        Raises:
            ValueError: If initial_state has incorrect dimensions or non-finite values
        """
        if initial_state is None:
            self._values = np.zeros(N_X)
            return

        values = np.asarray(initial_state, dtype=float).reshape(-1)
        if values.size != N_X:
            raise ValueError(f"State vector must have {N_X} elements, got {values.size}")
        if not np.all(np.isfinite(values)):
            raise ValueError("State vector contains NaN or infinite values")
        self._values = values.copy()

    @property
    def px(self) -> float:
        return float(self._values[0])

    @property
    def py(self) -> float:
        return float(self._values[1])

    @property
    def speed(self) -> float:
        return float(self._values[2])

    @property
    def yaw(self) -> float:
        """Heading wrapped into (−π, π]."""
        return normalize_angle(self._values[3])

    @property
    def yaw_rate(self) -> float:
        return float(self._values[4])

    @property
    def position(self) -> np.ndarray:
        """Position vector [px, py] in meters."""
        return self._values[0:2].copy()

    @property
    def velocity(self) -> np.ndarray:
        """Cartesian velocity [vx, vy] in m/s."""
        return self.speed * np.array([np.cos(self._values[3]), np.sin(self._values[3])])

    @classmethod
    def from_array(cls, state_array: np.ndarray) -> 'CTRVState':
        """Create CTRVState from a 5-element array."""
        return cls(state_array)

    def to_array(self) -> np.ndarray:
        """Copy of the raw state vector."""
        return self._values.copy()

    def to_cartesian(self) -> np.ndarray:
        """[px, py, vx, vy] for comparison against ground truth."""
        return np.concatenate([self.position, self.velocity])

    def get_pose_2d(self) -> Tuple[float, float, float]:
        """Pose (x, y, yaw) in meters and radians."""
        return (self.px, self.py, self.yaw)

    def __str__(self) -> str:
        return (f"CTRVState(pos=[{self.px:.3f}, {self.py:.3f}], v={self.speed:.3f}, "
                f"yaw={np.degrees(self.yaw):.1f}°, yaw_rate={np.degrees(self.yaw_rate):.1f}°/s)")
