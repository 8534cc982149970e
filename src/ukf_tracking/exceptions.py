"""
Error taxonomy for the unscented Kalman filter.

All filter errors derive from FilterError so a tracking loop can skip a bad
measurement with a single except clause. Precondition violations are also
ValueErrors; numerical failures are also ArithmeticErrors.

A raised FilterError never leaves the filter half-updated: the state, the
covariance, the predicted sigma points and the timestamp are exactly what
they were before the failing call.
"""


class FilterError(Exception):
    """Base class for every error raised by the filter."""


class FilterPreconditionError(FilterError, ValueError):
    """The caller violated a precondition of the requested operation."""


class NotInitializedError(FilterPreconditionError):
    """predict or update was called before the first measurement."""


class AlreadyInitializedError(FilterPreconditionError):
    """initialize was called on a filter that already holds a belief."""


class NegativeTimeStepError(FilterPreconditionError):
    """predict was asked to move backwards in time."""


class TimestampOrderError(FilterPreconditionError):
    """A measurement arrived with a timestamp older than the previous one."""


class MeasurementShapeError(FilterPreconditionError):
    """Raw measurement values do not match the sensor's dimension."""


class UnsupportedSensorError(FilterError, ValueError):
    """The measurement comes from a sensor the filter has no model for."""


class NumericalInstabilityError(FilterError, ArithmeticError):
    """A linear-algebra step is undefined for the current filter state."""


class CovarianceNotPSDError(NumericalInstabilityError):
    """The augmented covariance has no real square root."""


class SingularInnovationError(NumericalInstabilityError):
    """The innovation covariance S cannot be inverted reliably."""


class DegenerateRangeError(NumericalInstabilityError):
    """A sigma point sits at the radar origin, so range-rate is undefined."""
