"""
Landmark projection engine for EKF-SLAM.

Predicts the observation of a landmark by a sensor mounted on a robot: the
expected measurement, its Jacobians w.r.t. robot frame, sensor frame and
landmark state, and the expectation covariance propagated from the map.

The projection model is chosen from the (sensor type, landmark type) pair.
Line landmarks additionally get their supporting segment projected into the
image, with one covariance per endpoint.

Projections only read the map, so any number of them can run between two
correction steps, in any order.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from .entities import Landmark, Robot, Sensor, is_line_type, type_tag
from .errors import DegenerateLineError, UnknownTypeError
from .map_view import MapView, StateSelection, robot_sensor_landmark_selection
from .models import (
    LineProjectionModel,
    ModelRegistry,
    ProjectionModel,
    ProjectionResult,
    default_registry,
)
from .observation import EndpointExpectation, Observation, PointPayload, SegmentPayload
from .options import ProjectionOptions, TimeLogger, numeric_jacobian
from .pinhole import is_visible, visible_segment


def normalize_homogeneous_line(result: ProjectionResult, threshold: float = 1e-12) -> ProjectionResult:
    """
    Scale a homogeneous image line so that its direction part e[0:2] has unit norm.

    Every Jacobian block is multiplied by the same factor. Raises
    DegenerateLineError when |e[0:2]| is below threshold.
    """
    nrm = float(np.linalg.norm(result.e[0:2]))
    if not nrm >= threshold:
        raise DegenerateLineError(nrm, threshold)
    return result.scaled(1.0 / nrm)


def sort_by_uncertainty(observations: Sequence[Observation]) -> List[Observation]:
    """Observations sorted by decreasing uncertainty measure."""
    return sorted(observations, key=lambda obs: obs.exp.um, reverse=True)


class LandmarkProjector:
    """
    Projects landmark estimates into the measurement space of a sensor.

    The updated fields of the observation are:
        sid, lid, ltype   sensor id, landmark id, landmark type
        vis               true if the landmark is visible
        meas.R            measurement noise (kept when supplied)
        exp.e, exp.E      expectation mean and covariance
        exp.um            uncertainty measure, det(exp.E)
        jac.E_r/E_s/E_l   Jacobians wrt robot frame, sensor frame, landmark
        par               segment endpoints with covariances, for lines
    """

    def __init__(self, registry: Optional[ModelRegistry] = None,
                 options: Optional[ProjectionOptions] = None):
        self.registry = registry if registry is not None else default_registry
        self.options = options if options is not None else ProjectionOptions()

        self.time_logger = TimeLogger()
        self.time_logger.enable(self.options.enable_profiler)
        self.logger = logging.getLogger(__name__)
        self.logger.setLevel(self.options.verbosity_level)

    def project(self, robot: Robot, sensor: Sensor, landmark: Landmark,
                map_view: MapView, obs: Optional[Observation] = None) -> Observation:
        """
        Project landmark into sensor and fill the observation.

        Parameters:
        -----------
        robot : Robot
            Robot carrying the sensor; its frame must be estimated in the map
        sensor : Sensor
            Sensor mounted on robot
        landmark : Landmark
            Landmark to project
        map_view : MapView
            Read-only map mean and covariance
        obs : Observation, optional
            Observation to overwrite in place; a new one is created if None

        Returns:
        --------
        Observation
            The filled observation

        Raises:
        -------
        UnknownTypeError
            If no model exists for the sensor/landmark pair
        DegenerateLineError
            If a line landmark projects to a line that cannot be normalized
        """
        self.time_logger.tic("project_landmark")
        try:
            return self._project(robot, sensor, landmark, map_view, obs)
        finally:
            self.time_logger.toc("project_landmark")

    def _project(self, robot: Robot, sensor: Sensor, landmark: Landmark,
                 map_view: MapView, obs: Optional[Observation]) -> Observation:
        if obs is None:
            obs = Observation()

        # landmark range and mean
        lr = landmark.state.r
        l = map_view.mean(lr)

        model = self.registry.get(sensor.type, landmark.type)
        self.logger.debug(f"Projecting landmark {landmark.id} ({type_tag(landmark.type)}) "
                          f"into sensor {sensor.id} ({type_tag(sensor.type)})")

        proj = model.project(robot.frame, sensor.frame, sensor.par, l)

        if self.options.debug_verify_analytic_jacobians:
            self._verify_landmark_jacobian(model, robot, sensor, l, proj)

        if isinstance(model, LineProjectionModel):
            proj = normalize_homogeneous_line(proj, self.options.line_norm_threshold)
        else:
            vis = is_visible(proj.e, proj.depth, sensor.par.im_size,
                             self.options.min_depth, self.options.max_depth)

        # Rob-Sen-Lmk range and Jacobian
        selection = robot_sensor_landmark_selection(
            self._robot_range(robot), proj.E_rf,
            self._sensor_range(sensor), proj.E_sf,
            lr, proj.E_l)

        # Expectation covariances matrix
        E = selection.propagate(map_view)

        R = self._measurement_noise(obs, sensor, landmark)
        if isinstance(model, LineProjectionModel):
            payload = self._segment_payload(model, robot, sensor, landmark, l, selection, map_view, R)
            vis = True if self.options.force_segment_visible else payload.computed_vis
        else:
            payload = PointPayload()

        obs.sid = sensor.id
        obs.lid = landmark.id
        obs.ltype = type_tag(landmark.type)
        obs.vis = bool(vis)
        obs.meas.R = R
        obs.exp.e = proj.e
        obs.exp.E = E
        obs.exp.um = float(np.linalg.det(E))  # proportional to ellipsoid area
        obs.jac.E_r = proj.E_rf
        obs.jac.E_s = proj.E_sf
        obs.jac.E_l = proj.E_l
        obs.par = payload
        return obs

    def _segment_payload(self, model: LineProjectionModel, robot: Robot, sensor: Sensor,
                         landmark: Landmark, l: np.ndarray, selection: StateSelection,
                         map_view: MapView, R: np.ndarray) -> SegmentPayload:
        """Project the landmark's 3D segment and build the endpoint expectations."""
        if landmark.par is None:
            raise ValueError(f"Line landmark {landmark.id} has no endpoint parameters")

        # 3d segment
        si, SI_l = model.segment(l, landmark.par.abscissas)

        # projected segment
        seg = model.project_segment(robot.frame, sensor.frame, sensor.par, si)
        s, computed_vis = visible_segment(seg.s, seg.depths, sensor.par.im_size)

        # Rob-Sen-Lmk Jacobian of projected segment
        blocks = {"robot": seg.S_rf, "sensor": seg.S_sf, "landmark": seg.S_si @ SI_l}
        seg_selection = selection.with_jacobians([blocks[name] for name in selection.names])
        S = seg_selection.propagate(map_view)

        return SegmentPayload(
            endp=[
                EndpointExpectation(e=s[0:2], E=S[0:2, 0:2] + R[0:2, 0:2]),
                EndpointExpectation(e=s[2:4], E=S[2:4, 2:4] + R[2:4, 2:4]),
            ],
            computed_vis=computed_vis,
        )

    def _robot_range(self, robot: Robot) -> np.ndarray:
        if robot.frame.r is None:
            raise ValueError(f"Robot {robot.id} frame has no range in the map")
        return robot.frame.r

    def _sensor_range(self, sensor: Sensor) -> Optional[np.ndarray]:
        if not sensor.frame_in_map:
            return None
        if sensor.frame.r is None:
            raise ValueError(f"Sensor {sensor.id} frame is in the map but has no range")
        return sensor.frame.r

    def _measurement_noise(self, obs: Observation, sensor: Sensor, landmark: Landmark) -> np.ndarray:
        """Supplied measurement noise if it fits the landmark kind, else the sensor's."""
        size = 4 if is_line_type(landmark.type) else 2
        if obs.meas.R is not None and obs.meas.R.shape == (size, size):
            return obs.meas.R
        return sensor.measurement_noise(landmark.type)

    def _verify_landmark_jacobian(self, model: ProjectionModel, robot: Robot, sensor: Sensor,
                                  l: np.ndarray, proj: ProjectionResult) -> None:
        """Compare the analytic landmark Jacobian against a numeric estimate."""
        numeric = numeric_jacobian(
            lambda x: model.expectation(robot.frame, sensor.frame, sensor.par, x), l)
        err = float(np.max(np.abs(numeric - proj.E_l))) if numeric.size else 0.0
        if err > self.options.debug_verify_analytic_jacobians_threshold:
            self.logger.warning(f"Analytic landmark Jacobian of model {model.key} differs from "
                                f"numeric estimate by {err:.3e}")

    def project_many(self, robot: Robot, sensor: Sensor, landmarks: Sequence[Landmark],
                     map_view: MapView, skip_unknown: bool = False) -> List[Observation]:
        """
        Project several landmarks into one sensor.

        With skip_unknown, landmarks with no projection model for this sensor
        are logged and skipped; otherwise the configuration error propagates.
        """
        observations = []
        for landmark in landmarks:
            try:
                observations.append(self.project(robot, sensor, landmark, map_view))
            except UnknownTypeError as e:
                if not skip_unknown:
                    raise
                self.logger.warning(f"Skipping landmark {landmark.id}: {e}")
        return observations

    def load_options_from_config(self, config: Dict[str, Any]):
        """Load configuration options from a dictionary."""
        self.options.load_from_config(config)
        self.time_logger.enable(self.options.enable_profiler)
        self.logger.setLevel(self.options.verbosity_level)


def project_landmark(robot: Robot, sensor: Sensor, landmark: Landmark, map_view: MapView,
                     obs: Optional[Observation] = None,
                     options: Optional[ProjectionOptions] = None) -> Observation:
    """Project one landmark with the default model registry."""
    return LandmarkProjector(options=options).project(robot, sensor, landmark, map_view, obs)
