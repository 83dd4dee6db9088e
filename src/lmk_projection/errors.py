"""
Error and warning types raised by the landmark projection core.
"""

from typing import Optional


class UnknownTypeError(ValueError):
    """No projection model is registered for a sensor/landmark type pair."""

    def __init__(self, message: str, sensor_type: str, landmark_type: Optional[str] = None):
        super().__init__(message)
        self.sensor_type = sensor_type
        self.landmark_type = landmark_type


class UnknownSensorTypeError(UnknownTypeError):
    def __init__(self, sensor_type: str):
        super().__init__(f"Unknown sensor type '{sensor_type}'.", sensor_type)


class UnknownLandmarkTypeError(UnknownTypeError):
    def __init__(self, sensor_type: str, landmark_type: str):
        super().__init__(
            f"Unknown landmark type '{landmark_type}' for sensor '{sensor_type}'.",
            sensor_type,
            landmark_type,
        )


class DegenerateLineError(ArithmeticError):
    """A homogeneous image line cannot be normalized (its direction part vanishes)."""

    def __init__(self, norm: float, threshold: float):
        super().__init__(
            f"Homogeneous line direction norm {norm:.3e} is below threshold {threshold:.3e}"
        )
        self.norm = norm
        self.threshold = threshold


class BatchJacobianWarning(UserWarning):
    """Jacobians were requested for a batch input; only values are returned."""
