"""
Landmark observation prediction for EKF-SLAM.

Frame transforms with exact Jacobians, pinhole projection models for point and
line landmarks, and the projection engine that assembles predicted
observations with their covariances from the stochastic map.
"""

from .entities import (
    Landmark,
    LandmarkState,
    LandmarkType,
    LineEndpoint,
    LineParams,
    Robot,
    Sensor,
    SensorParams,
    SensorType,
)
from .errors import (
    BatchJacobianWarning,
    DegenerateLineError,
    UnknownLandmarkTypeError,
    UnknownSensorTypeError,
    UnknownTypeError,
)
from .frames import Frame, from_frame, to_frame, to_frame_segment
from .map_view import MapView, StateSelection
from .models import (
    ModelRegistry,
    ProjectionModel,
    ProjectionResult,
    default_registry,
    project_segments_into_pin_hole_on_rob,
    register_model,
)
from .observation import Observation, SegmentPayload
from .options import ProjectionOptions
from .projector import LandmarkProjector, normalize_homogeneous_line, project_landmark, sort_by_uncertainty

__version__ = "0.1.0"

__all__ = [
    # Frames
    "Frame",
    "to_frame",
    "from_frame",
    "to_frame_segment",
    "project_segments_into_pin_hole_on_rob",
    # Entities
    "Robot",
    "Sensor",
    "SensorParams",
    "SensorType",
    "Landmark",
    "LandmarkState",
    "LandmarkType",
    "LineEndpoint",
    "LineParams",
    # Map
    "MapView",
    "StateSelection",
    # Models
    "ModelRegistry",
    "ProjectionModel",
    "ProjectionResult",
    "default_registry",
    "register_model",
    # Projection
    "LandmarkProjector",
    "ProjectionOptions",
    "Observation",
    "SegmentPayload",
    "project_landmark",
    "normalize_homogeneous_line",
    "sort_by_uncertainty",
    # Errors
    "UnknownTypeError",
    "UnknownSensorTypeError",
    "UnknownLandmarkTypeError",
    "DegenerateLineError",
    "BatchJacobianWarning",
]
