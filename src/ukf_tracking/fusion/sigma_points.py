"""
Unscented transform building blocks for the CTRV model.

Mathematical Foundation:
    The augmented state stacks the CTRV state with its two noise inputs,

        x_aug = [px, py, v, ψ, ψ̇, ν_a, ν_ψ̈]ᵀ ∈ ℝ⁷
        P_aug = blockdiag(P, diag(σ_a², σ_ψ̈²))

    and is represented by 2·n_aug + 1 = 15 sigma points

        X₀     = x_aug
        Xᵢ     = x_aug + √(λ + n_aug) · Lᵢ        i = 1..n_aug
        Xᵢ₊ₙ   = x_aug − √(λ + n_aug) · Lᵢ

    with L Lᵀ = P_aug and λ = 3 − n_aug. The weights

        w₀ = λ / (λ + n_aug),   wᵢ = 1 / (2(λ + n_aug))

    reconstruct the mean and covariance of any transformed point set.

CTRV Process Model (per sigma point, Δt in seconds):
    |ψ̇| > ε:  px' = px + v/ψ̇ (sin(ψ + ψ̇Δt) − sin ψ)
              py' = py + v/ψ̇ (cos ψ − cos(ψ + ψ̇Δt))
    else:     px' = px + vΔt cos ψ
              py' = py + vΔt sin ψ
    v' = v,  ψ' = ψ + ψ̇Δt,  ψ̇' = ψ̇
    plus the noise terms ½Δt²ν_a(cos ψ, sin ψ), Δtν_a, ½Δt²ν_ψ̈, Δtν_ψ̈.
"""

import logging
import numpy as np
import scipy.linalg
from typing import Sequence, Tuple

from .angles import normalize_residuals
from ..exceptions import CovarianceNotPSDError

logger = logging.getLogger(__name__)

# State layout
N_X = 5
N_AUG = 7
N_SIGMA = 2 * N_AUG + 1
PX, PY, V, YAW, YAW_RATE = range(N_X)
STATE_ANGLE_INDICES = (YAW,)

# Spreading parameter, fixed for the filter's lifetime
LAMBDA = 3 - N_AUG

# Relative tolerance for accepting a singular covariance as positive semi-definite
_PSD_TOLERANCE = 1e-9


def compute_weights(lambda_: float = LAMBDA, n_aug: int = N_AUG) -> np.ndarray:
    """
    Compute the unscented transform weights.

    Args:
        lambda_: Spreading parameter λ
        n_aug: Dimension of the augmented state

    Returns:
        Array of 2·n_aug + 1 weights summing to one

    Raises:
        ValueError: If λ + n_aug is not positive
    """
    if lambda_ + n_aug <= 0:
        raise ValueError(f"lambda + n_aug must be positive, got {lambda_ + n_aug}")

    weights = np.full(2 * n_aug + 1, 0.5 / (lambda_ + n_aug))
    weights[0] = lambda_ / (lambda_ + n_aug)
    return weights


def augmented_covariance(P: np.ndarray, process_noise: np.ndarray) -> np.ndarray:
    """Block-diagonal augmented covariance blockdiag(P, Q)."""
    return scipy.linalg.block_diag(P, process_noise)


def _psd_square_root(matrix: np.ndarray) -> np.ndarray:
    """
    Square root A of a positive semi-definite matrix with A Aᵀ = matrix.

    Uses the lower Cholesky factor when the matrix is positive definite.
    Singular but PSD matrices fall back to an eigendecomposition so that a
    collapsed direction yields coincident sigma points rather than an error.

    Raises:
        CovarianceNotPSDError: If the matrix is non-finite or indefinite
    """
    if not np.all(np.isfinite(matrix)):
        raise CovarianceNotPSDError("Covariance contains NaN or infinite values")

    try:
        return scipy.linalg.cholesky(matrix, lower=True)
    except np.linalg.LinAlgError:
        try:
            eigenvals, eigenvecs = np.linalg.eigh(matrix)
        except np.linalg.LinAlgError as exc:
            raise CovarianceNotPSDError("Eigendecomposition of covariance failed") from exc

    tolerance = _PSD_TOLERANCE * max(1.0, float(np.max(np.abs(eigenvals))))
    min_eval = float(np.min(eigenvals))
    if min_eval < -tolerance:
        raise CovarianceNotPSDError(
            f"Covariance is not positive semi-definite (min eigenvalue {min_eval:.3e})")

    logger.debug(f"Cholesky failed on singular covariance, min eigenvalue {min_eval:.2e}")
    return eigenvecs @ np.diag(np.sqrt(np.clip(eigenvals, 0.0, None)))


def augmented_square_root(P: np.ndarray, process_noise: np.ndarray) -> np.ndarray:
    """
    Square root L of the augmented covariance, L Lᵀ = blockdiag(P, Q).

    The noise block is diagonal, so the Cholesky factor of the augmented
    matrix is blockdiag(chol(P), √Q) and only the state block needs a
    decomposition.

    Args:
        P: 5x5 state covariance
        process_noise: 2x2 diagonal process noise covariance

    Returns:
        7x7 square root matrix

    Raises:
        CovarianceNotPSDError: If P or Q is not positive semi-definite
    """
    noise_variances = np.diag(process_noise)
    if np.any(noise_variances < 0) or not np.all(np.isfinite(noise_variances)):
        raise CovarianceNotPSDError(f"Invalid process noise variances {noise_variances}")

    return scipy.linalg.block_diag(_psd_square_root(P), np.diag(np.sqrt(noise_variances)))


def generate_augmented_sigma_points(x: np.ndarray, P: np.ndarray,
                                    process_noise: np.ndarray,
                                    lambda_: float = LAMBDA) -> np.ndarray:
    """
    Generate the augmented sigma point matrix.

    Args:
        x: State mean (5,)
        P: State covariance (5, 5)
        process_noise: Noise covariance diag(σ_a², σ_ψ̈²)
        lambda_: Spreading parameter

    Returns:
        Sigma points as a (7, 15) matrix, one point per column
    """
    n_aug = len(x) + process_noise.shape[0]

    x_aug = np.zeros(n_aug)
    x_aug[:len(x)] = x

    spread = np.sqrt(lambda_ + n_aug) * augmented_square_root(P, process_noise)

    Xsig_aug = np.empty((n_aug, 2 * n_aug + 1))
    Xsig_aug[:, 0] = x_aug
    Xsig_aug[:, 1:n_aug + 1] = x_aug[:, np.newaxis] + spread
    Xsig_aug[:, n_aug + 1:] = x_aug[:, np.newaxis] - spread
    return Xsig_aug


def ctrv_process_model(Xsig_aug: np.ndarray, delta_t: float,
                       yaw_rate_threshold: float = 1e-3) -> np.ndarray:
    """
    Propagate augmented sigma points through the CTRV motion model.

    Args:
        Xsig_aug: Augmented point (7,) or points (7, m)
        delta_t: Elapsed time in seconds
        yaw_rate_threshold: |ψ̇| at or below which the straight-line model is used

    Returns:
        Predicted state point (5,) or points (5, m)
    """
    points = np.asarray(Xsig_aug, dtype=float)
    single = points.ndim == 1
    points = points.reshape(N_AUG, -1)

    px, py, v, yaw, yawd, nu_a, nu_yawdd = points

    cos_yaw = np.cos(yaw)
    sin_yaw = np.sin(yaw)
    yaw_end = yaw + yawd * delta_t

    # Division by ψ̇ only where the point is actually turning
    turning = np.abs(yawd) > yaw_rate_threshold
    safe_yawd = np.where(turning, yawd, 1.0)

    px_p = np.where(turning,
                    px + v / safe_yawd * (np.sin(yaw_end) - sin_yaw),
                    px + v * delta_t * cos_yaw)
    py_p = np.where(turning,
                    py + v / safe_yawd * (cos_yaw - np.cos(yaw_end)),
                    py + v * delta_t * sin_yaw)

    half_dt2 = 0.5 * delta_t * delta_t
    predicted = np.vstack([
        px_p + half_dt2 * nu_a * cos_yaw,
        py_p + half_dt2 * nu_a * sin_yaw,
        v + delta_t * nu_a,
        yaw_end + half_dt2 * nu_yawdd,
        yawd + delta_t * nu_yawdd,
    ])

    return predicted[:, 0] if single else predicted


def weighted_mean_and_covariance(points: np.ndarray, weights: np.ndarray,
                                 angle_indices: Sequence[int] = ()) -> Tuple[np.ndarray, np.ndarray]:
    """
    Reconstruct mean and covariance of a sigma point set.

    Angular rows of the residuals are wrapped into (−π, π] before the outer
    products; the mean itself is the plain weighted sum.

    Args:
        points: (n, 15) transformed sigma points
        weights: (15,) unscented weights
        angle_indices: Rows holding angles

    Returns:
        Tuple of (mean (n,), covariance (n, n))
    """
    mean = points @ weights
    residuals = normalize_residuals(points - mean[:, np.newaxis], angle_indices)
    covariance = (residuals * weights) @ residuals.T
    return mean, covariance


def predict_sigma_points(x: np.ndarray, P: np.ndarray, process_noise: np.ndarray,
                         delta_t: float, weights: np.ndarray,
                         lambda_: float = LAMBDA,
                         yaw_rate_threshold: float = 1e-3) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Full unscented prediction: sigma points, CTRV propagation, reconstruction.

    Pure function; the caller decides whether to commit the result.

    Returns:
        Tuple of (predicted mean, predicted covariance, predicted sigma points (5, 15))
    """
    Xsig_aug = generate_augmented_sigma_points(x, P, process_noise, lambda_)
    Xsig_pred = ctrv_process_model(Xsig_aug, delta_t, yaw_rate_threshold)
    x_pred, P_pred = weighted_mean_and_covariance(Xsig_pred, weights, STATE_ANGLE_INDICES)
    return x_pred, P_pred, Xsig_pred
