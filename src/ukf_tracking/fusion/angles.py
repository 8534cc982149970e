"""
Angle wrapping for heading and bearing residuals.

Every residual that contains an angle (the CTRV heading, the radar bearing)
must be wrapped before it enters an outer product or a state correction,
otherwise a difference such as 179° − (−179°) is treated as 358° instead of
−2° and the covariance blows up.

The wrapped interval is the half-open (−π, π]:

    wrap(a) = π − ((π − a) mod 2π)

which maps −π onto +π and is the identity on values already in range.
"""

import numpy as np
from typing import Union

ArrayLike = Union[float, np.ndarray]


def normalize_angle(angle: ArrayLike) -> ArrayLike:
    """
    Wrap an angle (or an array of angles) into (−π, π].

    Args:
        angle: Scalar or array of angles in radians

    Returns:
        Wrapped angle(s) with the same shape as the input
    """
    wrapped = np.pi - np.mod(np.pi - np.asarray(angle, dtype=float), 2.0 * np.pi)
    if np.ndim(wrapped) == 0:
        return float(wrapped)
    return wrapped


def normalize_residuals(residuals: np.ndarray, angle_indices) -> np.ndarray:
    """
    Wrap the angular rows of a residual vector or residual matrix in place.

    Args:
        residuals: Residual vector (n,) or matrix (n, m) with one residual per column
        angle_indices: Row indices holding angles

    Returns:
        The same array, for chaining
    """
    rows = list(angle_indices)
    if not rows:
        return residuals
    residuals[rows, ...] = normalize_angle(residuals[rows, ...])
    return residuals
