"""
Unscented Kalman Filter for CTRV target tracking with lidar and radar.

This module fuses asynchronous lidar (Cartesian) and radar (polar)
measurements of a single target into a Gaussian belief over the Constant
Turn Rate and Velocity state.

Mathematical Foundation:
    Prediction (unscented transform of the CTRV model f):
        Xᵢ = sigma points of (x_aug, P_aug)
        X̂ᵢ = f(Xᵢ, Δt)
        x⁻ = Σ wᵢ X̂ᵢ
        P⁻ = Σ wᵢ (X̂ᵢ − x⁻)(X̂ᵢ − x⁻)ᵀ

    Update (shared by all sensors, measurement model h):
        Zᵢ = h(X̂ᵢ)
        ẑ  = Σ wᵢ Zᵢ
        S  = Σ wᵢ (Zᵢ − ẑ)(Zᵢ − ẑ)ᵀ + R
        T  = Σ wᵢ (X̂ᵢ − x⁻)(Zᵢ − ẑ)ᵀ
        K  = T S⁻¹
        x⁺ = x⁻ + K (z − ẑ)
        P⁺ = P⁻ − K S Kᵀ

    Consistency (Normalized Innovation Squared):
        ε = (z − ẑ)ᵀ S⁻¹ (z − ẑ)  ~  χ²(n_z)

    Every heading or bearing residual is wrapped into (−π, π].

Failure Semantics:
    Each public operation computes on local copies and commits only when
    every step succeeded, so a raised FilterError leaves the belief, the
    predicted sigma points, the timestamp and the NIS values untouched.

The filter is single threaded and not reentrant.
"""

import logging
import numpy as np
from typing import Any, Dict, Optional, Tuple

from ..exceptions import (
    AlreadyInitializedError,
    FilterError,
    NegativeTimeStepError,
    NotInitializedError,
    NumericalInstabilityError,
    SingularInnovationError,
    TimestampOrderError,
    UnsupportedSensorError,
)
from ..sensors.measurement import MeasurementPackage, SensorType
from .angles import normalize_residuals
from .measurement_models import MeasurementModel, create_measurement_models
from .parameters import UKFParameters
from .sigma_points import (
    LAMBDA,
    N_AUG,
    N_SIGMA,
    N_X,
    STATE_ANGLE_INDICES,
    compute_weights,
    predict_sigma_points,
    weighted_mean_and_covariance,
)
from .state import CTRVState

logger = logging.getLogger(__name__)

MICROSECONDS_PER_SECOND = 1e6


def initial_state_from_measurement(measurement: MeasurementPackage) -> np.ndarray:
    """
    Bootstrap a CTRV mean from a single measurement.

    Lidar gives the position directly. Radar is converted from polar to
    Cartesian; the initial speed is the magnitude of the radial velocity
    |ρ̇| (projected on both axes and recombined), which ignores the tangential
    component and is only an approximation of the true speed. Heading and
    turn rate start at zero.

    Args:
        measurement: First measurement of the track

    Returns:
        5-element initial state
    """
    x = np.zeros(N_X)
    z = measurement.raw_measurements

    if measurement.sensor_type == SensorType.LIDAR:
        x[0] = z[0]
        x[1] = z[1]
    elif measurement.sensor_type == SensorType.RADAR:
        rho, phi, rho_dot = z
        x[0] = rho * np.cos(phi)
        x[1] = rho * np.sin(phi)
        x[2] = np.hypot(rho_dot * np.cos(phi), rho_dot * np.sin(phi))
    else:
        raise UnsupportedSensorError(f"Unsupported sensor type: {measurement.sensor_type!r}")

    return x


def unscented_update(x: np.ndarray, P: np.ndarray, Xsig_pred: np.ndarray,
                     weights: np.ndarray, model: MeasurementModel,
                     R: np.ndarray, z: np.ndarray,
                     max_condition_number: float = 1e12) -> Tuple[np.ndarray, np.ndarray, float]:
    """
    Generalized UKF correction, parametric over the measurement model.

    Pure function: inputs are not modified.

    Args:
        x: Predicted state mean (5,)
        P: Predicted state covariance (5, 5)
        Xsig_pred: Predicted sigma points (5, 15)
        weights: Unscented weights (15,)
        model: Sensor measurement model
        R: Measurement noise covariance (n_z, n_z)
        z: Measurement (n_z,)
        max_condition_number: Largest acceptable condition number of S

    Returns:
        Tuple of (updated mean, updated covariance, NIS)

    Raises:
        DegenerateRangeError: If the radar model hits the sensor origin
        SingularInnovationError: If S cannot be inverted reliably
        NumericalInstabilityError: If the corrected state is not finite
    """
    Zsig = model.transform(Xsig_pred)
    z_pred, S = weighted_mean_and_covariance(Zsig, weights, model.angle_indices)
    S = S + R

    if not np.all(np.isfinite(S)):
        raise SingularInnovationError("Innovation covariance contains NaN or infinite values")
    condition_number = np.linalg.cond(S)
    if not np.isfinite(condition_number) or condition_number > max_condition_number:
        raise SingularInnovationError(
            f"Innovation covariance is ill-conditioned (κ={condition_number:.2e})")
    try:
        S_inv = np.linalg.inv(S)
    except np.linalg.LinAlgError as exc:
        raise SingularInnovationError("Innovation covariance is singular") from exc

    # Cross-correlation between state and measurement residuals
    x_diff = normalize_residuals(Xsig_pred - x[:, np.newaxis], STATE_ANGLE_INDICES)
    z_diff = normalize_residuals(Zsig - z_pred[:, np.newaxis], model.angle_indices)
    Tc = (x_diff * weights) @ z_diff.T

    K = Tc @ S_inv

    innovation = normalize_residuals(z - z_pred, model.angle_indices)

    x_new = x + K @ innovation
    P_new = P - K @ S @ K.T
    nis = float(innovation @ S_inv @ innovation)

    if not (np.all(np.isfinite(x_new)) and np.all(np.isfinite(P_new))):
        raise NumericalInstabilityError("Update produced a non-finite state or covariance")

    return x_new, P_new, nis


class UnscentedKalmanFilter:
    """
    CTRV Unscented Kalman Filter fusing lidar and radar.

    Lifecycle:
        The filter starts uninitialized. The first measurement bootstraps the
        mean (identity covariance) and sets the time reference. Every later
        measurement runs one predict + update cycle. reset() returns to the
        uninitialized state.

    Key Features:
        - 7-dimensional augmented sigma points (state + acceleration noises)
        - Closed-form CTRV propagation with a straight-line fallback
        - One generalized update for every sensor, with per-sensor NIS
        - Loud failures for invalid inputs and numerical singularities,
          with no partial mutation of the belief

    Args:
        parameters: Tuning parameters; defaults when None
    """

    def __init__(self, parameters: Optional[UKFParameters] = None):
        self.parameters = parameters if parameters is not None else UKFParameters()

        self.n_x = N_X
        self.n_aug = N_AUG
        self.lambda_ = LAMBDA

        self._weights = compute_weights(self.lambda_, self.n_aug)
        self._process_noise = self.parameters.process_noise_covariance()
        self._models = create_measurement_models(self.parameters)
        self._enabled = {
            SensorType.LIDAR: self.parameters.use_laser,
            SensorType.RADAR: self.parameters.use_radar,
        }

        self._reset_belief()

        logger.info("Unscented Kalman Filter created")

    def _reset_belief(self) -> None:
        self._x = np.zeros(self.n_x)
        self._P = np.eye(self.n_x)
        self._Xsig_pred = np.zeros((self.n_x, N_SIGMA))
        self._sigma_points_current = False
        self._is_initialized = False
        self._time_us: Optional[int] = None
        self._nis: Dict[SensorType, Optional[float]] = {sensor: None for sensor in SensorType}
        self._prediction_count = 0
        self._update_count = 0

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def x(self) -> np.ndarray:
        """Copy of the state mean [px, py, v, ψ, ψ̇]."""
        return self._x.copy()

    @property
    def P(self) -> np.ndarray:
        """Copy of the 5x5 state covariance."""
        return self._P.copy()

    @property
    def sigma_points_pred(self) -> np.ndarray:
        """Copy of the last predicted sigma points (5, 15)."""
        return self._Xsig_pred.copy()

    @property
    def weights(self) -> np.ndarray:
        """Copy of the unscented weights (15,)."""
        return self._weights.copy()

    @property
    def is_initialized(self) -> bool:
        return self._is_initialized

    @property
    def time_us(self) -> Optional[int]:
        """Timestamp of the last processed measurement in microseconds."""
        return self._time_us

    @property
    def nis_lidar(self) -> Optional[float]:
        """NIS of the latest lidar update, None before the first one."""
        return self._nis[SensorType.LIDAR]

    @property
    def nis_radar(self) -> Optional[float]:
        """NIS of the latest radar update, None before the first one."""
        return self._nis[SensorType.RADAR]

    @property
    def state(self) -> CTRVState:
        return CTRVState(self._x)

    # ------------------------------------------------------------------
    # Filter operations
    # ------------------------------------------------------------------

    def initialize(self, measurement: MeasurementPackage) -> None:
        """
        Bootstrap the belief from the first measurement.

        Sets the mean from the measurement, the covariance to identity and
        the time reference to the measurement's timestamp. No prediction or
        correction takes place.

        Args:
            measurement: First lidar or radar measurement

        Raises:
            AlreadyInitializedError: If the filter already holds a belief
            UnsupportedSensorError: If the sensor type is unknown
            MeasurementShapeError: If the measurement holds NaN or infinite values
        """
        if self._is_initialized:
            logger.warning("Initialization rejected: filter already initialized")
            raise AlreadyInitializedError("Filter is already initialized; call reset() first")

        try:
            model = self._models.get(measurement.sensor_type)
            if model is None:
                raise UnsupportedSensorError(f"Unsupported sensor type: {measurement.sensor_type!r}")
            model.validate(measurement.raw_measurements)
            x = initial_state_from_measurement(measurement)
            if not np.all(np.isfinite(x)):
                raise NumericalInstabilityError(f"Initial state is not finite: {x}")
        except FilterError as exc:
            logger.warning(f"Initialization rejected: {exc}")
            raise

        self._x = x
        self._P = np.eye(self.n_x)
        self._Xsig_pred = np.zeros((self.n_x, N_SIGMA))
        self._sigma_points_current = False
        self._weights = compute_weights(self.lambda_, self.n_aug)
        self._time_us = measurement.timestamp
        self._is_initialized = True

        logger.info(f"Filter initialized from {measurement.sensor_type.value} at "
                    f"t={measurement.timestamp}us: {self.state}")

    def predict(self, delta_t: float) -> None:
        """
        Propagate the belief forward by delta_t seconds.

        Regenerates augmented sigma points, pushes them through the CTRV
        model, stores them for the next update and reconstructs the
        predicted mean and covariance.

        The time reference (time_us) is not advanced: process_measurement
        predicts from the last measurement timestamp, so mixing explicit
        predict calls with process_measurement integrates the same interval
        twice.

        Args:
            delta_t: Elapsed time in seconds (≥ 0)

        Raises:
            NotInitializedError: Before the first measurement
            NegativeTimeStepError: If delta_t is negative or not finite
            CovarianceNotPSDError: If the augmented covariance has no square root
        """
        self._require_initialized("predict")
        try:
            x, P, Xsig_pred = self._predicted(delta_t)
        except FilterError as exc:
            logger.warning(f"Prediction rejected: {exc}")
            raise

        self._x, self._P, self._Xsig_pred = x, P, Xsig_pred
        self._sigma_points_current = True
        self._prediction_count += 1

        logger.debug(f"Prediction step completed, dt={delta_t:.4f}s")

    def update_lidar(self, z) -> float:
        """
        Correct the belief with a lidar position [px, py].

        Returns:
            Lidar NIS of this update
        """
        return self._apply_update(SensorType.LIDAR, z)

    def update_radar(self, z) -> float:
        """
        Correct the belief with a radar measurement [ρ, φ, ρ̇].

        Returns:
            Radar NIS of this update
        """
        return self._apply_update(SensorType.RADAR, z)

    def process_measurement(self, measurement: MeasurementPackage) -> bool:
        """
        Consume one measurement: initialize, or predict to its time and update.

        This is the entry point for measurement streams. Predict and update
        are applied atomically: if either fails, nothing is committed.

        Args:
            measurement: Next measurement in non-decreasing timestamp order

        Returns:
            True if the measurement was used, False if its sensor is disabled

        Raises:
            UnsupportedSensorError: For unknown sensor types
            TimestampOrderError: If the timestamp precedes the previous one
            NumericalInstabilityError: On singular covariances or degenerate geometry
        """
        if not isinstance(measurement, MeasurementPackage):
            raise TypeError(f"Expected MeasurementPackage, got {type(measurement).__name__}")
        sensor_type = measurement.sensor_type
        if sensor_type not in self._models:
            logger.warning(f"Measurement rejected: unsupported sensor {sensor_type!r}")
            raise UnsupportedSensorError(f"Unsupported sensor type: {sensor_type!r}")

        if not self._is_initialized:
            self.initialize(measurement)
            return True

        if not self._enabled[sensor_type]:
            logger.debug(f"Skipping {sensor_type.value} measurement at t={measurement.timestamp}us")
            return False

        try:
            delta_us = measurement.timestamp - self._time_us
            if delta_us < 0:
                raise TimestampOrderError(
                    f"Timestamp {measurement.timestamp}us precedes previous {self._time_us}us")
            delta_t = delta_us / MICROSECONDS_PER_SECOND

            x, P, Xsig_pred = self._predicted(delta_t)
            x, P, nis = self._corrected(sensor_type, measurement.raw_measurements, x, P, Xsig_pred)
        except FilterError as exc:
            logger.warning(f"{sensor_type.value} measurement at t={measurement.timestamp}us "
                           f"rejected: {exc}")
            raise

        self._x, self._P, self._Xsig_pred = x, P, Xsig_pred
        self._sigma_points_current = False
        self._time_us = measurement.timestamp
        self._nis[sensor_type] = nis
        self._prediction_count += 1
        self._update_count += 1

        logger.debug(f"{sensor_type.value} cycle completed, dt={delta_t:.4f}s, NIS={nis:.3f}")
        return True

    def reset(self) -> None:
        """Drop the belief and return to the uninitialized state."""
        self._reset_belief()
        self._weights = compute_weights(self.lambda_, self.n_aug)
        logger.info("Unscented Kalman Filter reset")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_initialized(self, operation: str) -> None:
        if not self._is_initialized:
            logger.warning(f"{operation} rejected: filter not initialized")
            raise NotInitializedError(f"Cannot {operation} before the first measurement")

    def _predicted(self, delta_t: float) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Prediction on copies of the current belief."""
        if not np.isfinite(delta_t) or delta_t < 0:
            raise NegativeTimeStepError(f"Time step must be finite and non-negative, got {delta_t}")

        return predict_sigma_points(
            self._x, self._P, self._process_noise, delta_t, self._weights,
            lambda_=self.lambda_,
            yaw_rate_threshold=self.parameters.yaw_rate_threshold,
        )

    def _corrected(self, sensor_type: SensorType, z, x: np.ndarray, P: np.ndarray,
                   Xsig_pred: np.ndarray) -> Tuple[np.ndarray, np.ndarray, float]:
        """Correction of a (predicted) belief; nothing is committed."""
        model = self._models[sensor_type]
        z = model.validate(z)
        return unscented_update(
            x, P, Xsig_pred, self._weights, model,
            model.noise_covariance(self.parameters), z,
            max_condition_number=self.parameters.max_condition_number,
        )

    def _apply_update(self, sensor_type: SensorType, z) -> float:
        self._require_initialized(f"update from {sensor_type.value}")
        try:
            if self._sigma_points_current:
                x, P, Xsig_pred = self._x, self._P, self._Xsig_pred
            else:
                # Sigma points of the current belief (no time elapsed)
                x, P, Xsig_pred = self._predicted(0.0)
            x, P, nis = self._corrected(sensor_type, z, x, P, Xsig_pred)
        except FilterError as exc:
            logger.warning(f"{sensor_type.value} update rejected: {exc}")
            raise

        self._x, self._P, self._Xsig_pred = x, P, Xsig_pred
        self._sigma_points_current = False
        self._nis[sensor_type] = nis
        self._update_count += 1

        logger.debug(f"{sensor_type.value} update applied, NIS={nis:.3f}")
        return nis

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def get_state_uncertainty(self) -> np.ndarray:
        """Standard deviations of [px, py, v, ψ, ψ̇]."""
        return np.sqrt(np.clip(np.diag(self._P), 0.0, None))

    def get_state_dict(self) -> Dict[str, Any]:
        """
        Get comprehensive state information as dictionary.

        Returns:
            Dictionary containing state, uncertainty and diagnostic counters
        """
        state = self.state
        return {
            'initialized': self._is_initialized,
            'timestamp_us': self._time_us,
            'position': state.position.tolist(),
            'speed': state.speed,
            'yaw': state.yaw,
            'yaw_rate': state.yaw_rate,
            'velocity': state.velocity.tolist(),
            'uncertainty': self.get_state_uncertainty().tolist(),
            'covariance_trace': float(np.trace(self._P)),
            'nis_lidar': self.nis_lidar,
            'nis_radar': self.nis_radar,
            'prediction_count': self._prediction_count,
            'update_count': self._update_count,
        }
