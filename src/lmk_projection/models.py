"""
Projection models, one per (sensor type, landmark type) pair.

A projection model maps a landmark state, seen by a sensor mounted on a robot,
to a predicted measurement with its Jacobians w.r.t. the robot frame, the
sensor frame, the sensor intrinsics and distortion, and the landmark state.

Models are looked up in a ModelRegistry keyed by the pair of type tags. New
kinds are supported by registering a new model.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
from scipy.linalg import block_diag

from .entities import LandmarkType, SensorParams, SensorType, type_tag
from .errors import UnknownLandmarkTypeError, UnknownSensorTypeError
from .frames import FrameLike, to_frame, to_frame_hmg, to_frame_plucker, to_frame_segment
from .landmarks import idp_to_hmg, plucker_segment
from .pinhole import pin_hole, pin_hole_line

logger = logging.getLogger(__name__)


@dataclass
class ProjectionResult:
    """Output of a projection model."""

    e: np.ndarray  # expectation
    depth: float  # depth or equivalent range measure
    E_rf: np.ndarray  # wrt robot frame
    E_sf: np.ndarray  # wrt sensor frame
    E_k: np.ndarray  # wrt intrinsics
    E_d: Optional[np.ndarray]  # wrt distortion, None when the model has none
    E_l: np.ndarray  # wrt landmark state

    def scaled(self, factor: float) -> 'ProjectionResult':
        """Expectation and all Jacobian blocks multiplied by factor."""
        return ProjectionResult(
            e=self.e * factor,
            depth=self.depth,
            E_rf=self.E_rf * factor,
            E_sf=self.E_sf * factor,
            E_k=self.E_k * factor,
            E_d=None if self.E_d is None else self.E_d * factor,
            E_l=self.E_l * factor,
        )


@dataclass
class SegmentProjection:
    """Projected segment: endpoints s (4,), depths (2,) and Jacobians."""

    s: np.ndarray
    depths: np.ndarray
    S_rf: np.ndarray  # (4, 7)
    S_sf: np.ndarray  # (4, 7)
    S_k: np.ndarray  # (4, 4)
    S_si: np.ndarray  # (4, 6) wrt the 3D segment


class ProjectionModel(ABC):
    """
    Projection of one landmark kind into one sensor kind.

    Subclasses set `sensor_type` and `landmark_type` and implement project().
    """

    sensor_type: str = ""
    landmark_type: str = ""

    @abstractmethod
    def project(self, robot_frame: FrameLike, sensor_frame: FrameLike,
                par: SensorParams, l: np.ndarray) -> ProjectionResult:
        """
        Project landmark l into the sensor.

        Parameters:
        -----------
        robot_frame : Frame
            Robot frame in the world
        sensor_frame : Frame
            Sensor frame in the robot
        par : SensorParams
            Sensor parameters
        l : np.ndarray
            Landmark state mean

        Returns:
        --------
        ProjectionResult
        """
        pass

    def expectation(self, robot_frame: FrameLike, sensor_frame: FrameLike,
                    par: SensorParams, l: np.ndarray) -> np.ndarray:
        """Expectation only, used for numeric Jacobian checks."""
        return self.project(robot_frame, sensor_frame, par, l).e

    @property
    def key(self) -> Tuple[str, str]:
        return (self.sensor_type, self.landmark_type)


class LineProjectionModel(ProjectionModel):
    """
    Projection model for line landmarks.

    On top of the line expectation, line models recover a finite 3D segment
    from the landmark and project it into the sensor.
    """

    @abstractmethod
    def segment(self, l: np.ndarray, abscissas: Sequence[float]) -> Tuple[np.ndarray, np.ndarray]:
        """3D segment (6,) supported by line l and its Jacobian SI_l."""
        pass

    @abstractmethod
    def project_segment(self, robot_frame: FrameLike, sensor_frame: FrameLike,
                        par: SensorParams, si: np.ndarray) -> SegmentProjection:
        pass


class ModelRegistry:
    """Lookup table of projection models keyed by (sensor type, landmark type)."""

    def __init__(self):
        self._models: Dict[Tuple[str, str], ProjectionModel] = {}

    def register(self, model: ProjectionModel) -> ProjectionModel:
        key = model.key
        if key in self._models:
            logger.warning(f"Replacing projection model for sensor '{key[0]}' and landmark '{key[1]}'")
        self._models[key] = model
        return model

    def get(self, sensor_type: Union[str, SensorType],
            landmark_type: Union[str, LandmarkType]) -> ProjectionModel:
        """
        Model for a sensor/landmark pair.

        Raises UnknownSensorTypeError when no model exists for the sensor type,
        and UnknownLandmarkTypeError when the sensor is known but the landmark
        type is not.
        """
        stype, ltype = type_tag(sensor_type), type_tag(landmark_type)
        model = self._models.get((stype, ltype))
        if model is not None:
            return model
        if stype not in self.sensor_types:
            raise UnknownSensorTypeError(stype)
        raise UnknownLandmarkTypeError(stype, ltype)

    @property
    def sensor_types(self) -> List[str]:
        return sorted({s for s, _ in self._models})

    def landmark_types(self, sensor_type: Union[str, SensorType]) -> List[str]:
        stype = type_tag(sensor_type)
        return sorted(l for s, l in self._models if s == stype)

    def __contains__(self, key: Tuple[Union[str, SensorType], Union[str, LandmarkType]]) -> bool:
        return (type_tag(key[0]), type_tag(key[1])) in self._models

    def __len__(self) -> int:
        return len(self._models)


default_registry = ModelRegistry()


def register_model(cls):
    """Class decorator registering one instance of a model in the default registry."""
    default_registry.register(cls())
    return cls


# Pinhole camera models


def _project_hmg_into_pin_hole_on_rob(robot_frame: FrameLike, sensor_frame: FrameLike,
                                      par: SensorParams, h: np.ndarray) -> ProjectionResult:
    """Homogeneous point into a pinhole on a robot. E_l is w.r.t. h."""
    hr, HR_rf, HR_h = to_frame_hmg(robot_frame, h, jacobians=True)
    hs, HS_sf, HS_hr = to_frame_hmg(sensor_frame, hr, jacobians=True)

    # the image point only depends on the direction part of hs
    u, _, U_m, U_k, U_d = pin_hole(hs[0:3], par.k, par.d, jacobians=True)
    U_hs = np.hstack((U_m, np.zeros((2, 1))))

    if hs[3] != 0:
        depth = hs[2] / hs[3]
    else:
        depth = np.copysign(np.inf, hs[2])

    U_hr = U_hs @ HS_hr
    return ProjectionResult(
        e=u,
        depth=depth,
        E_rf=U_hr @ HR_rf,
        E_sf=U_hs @ HS_sf,
        E_k=U_k,
        E_d=U_d,
        E_l=U_hr @ HR_h,
    )


@register_model
class EucPntIntoPinHole(ProjectionModel):
    sensor_type = SensorType.PIN_HOLE.value
    landmark_type = LandmarkType.EUC_PNT.value

    def project(self, robot_frame, sensor_frame, par, l):
        pr, PR_rf, PR_l = to_frame(robot_frame, l, jacobians=True)
        ps, PS_sf, PS_pr = to_frame(sensor_frame, pr, jacobians=True)
        u, s, U_ps, U_k, U_d = pin_hole(ps, par.k, par.d, jacobians=True)

        U_pr = U_ps @ PS_pr
        return ProjectionResult(
            e=u,
            depth=s,
            E_rf=U_pr @ PR_rf,
            E_sf=U_ps @ PS_sf,
            E_k=U_k,
            E_d=U_d,
            E_l=U_pr @ PR_l,
        )


@register_model
class HmgPntIntoPinHole(ProjectionModel):
    sensor_type = SensorType.PIN_HOLE.value
    landmark_type = LandmarkType.HMG_PNT.value

    def project(self, robot_frame, sensor_frame, par, l):
        return _project_hmg_into_pin_hole_on_rob(robot_frame, sensor_frame, par, l)


@register_model
class IdpPntIntoPinHole(ProjectionModel):
    sensor_type = SensorType.PIN_HOLE.value
    landmark_type = LandmarkType.IDP_PNT.value

    def project(self, robot_frame, sensor_frame, par, l):
        h, H_l = idp_to_hmg(l, jacobians=True)
        result = _project_hmg_into_pin_hole_on_rob(robot_frame, sensor_frame, par, h)
        result.E_l = result.E_l @ H_l
        return result


def project_segment_into_pin_hole_on_rob(robot_frame: FrameLike, sensor_frame: FrameLike,
                                         k: Sequence[float], si: np.ndarray) -> SegmentProjection:
    """
    Project a 3D segment into a pinhole camera mounted on a robot.

    Parameters:
    -----------
    robot_frame, sensor_frame : Frame
        Robot frame in the world and sensor frame in the robot
    k : sequence
        Intrinsics [u0, v0, au, av]
    si : np.ndarray
        (6,) segment [e1; e2] in the world

    Returns:
    --------
    SegmentProjection
        Projected endpoints [u1; v1; u2; v2], depths, and Jacobians
    """
    sr, SR_rf, SR_si = to_frame_segment(robot_frame, si, jacobians=True)
    ss, SS_sf, SS_sr = to_frame_segment(sensor_frame, sr, jacobians=True)

    u1, d1, U1_p1, U1_k, _ = pin_hole(ss[0:3], k, jacobians=True)
    u2, d2, U2_p2, U2_k, _ = pin_hole(ss[3:6], k, jacobians=True)

    U_ss = block_diag(U1_p1, U2_p2)
    U_sr = U_ss @ SS_sr
    return SegmentProjection(
        s=np.concatenate((u1, u2)),
        depths=np.array([d1, d2]),
        S_rf=U_sr @ SR_rf,
        S_sf=U_ss @ SS_sf,
        S_k=np.vstack((U1_k, U2_k)),
        S_si=U_sr @ SR_si,
    )


def project_segments_into_pin_hole_on_rob(robot_frame: FrameLike, sensor_frame: FrameLike,
                                          k: Sequence[float], S: np.ndarray) -> np.ndarray:
    """
    Project a batch of 3D segments (6 x N) into a pinhole on a robot.

    Values only. This is the drawing helper for map displays and plots of the
    segment map; the projection engine uses the single-segment version above,
    which carries Jacobians. Returns the (4, N) projected endpoints.
    """
    S = np.asarray(S, dtype=float).reshape(6, -1)
    Sr = to_frame_segment(robot_frame, S)
    Ss = to_frame_segment(sensor_frame, Sr)
    u0, v0, au, av = k
    out = np.empty((4, S.shape[1]))
    for i in (0, 3):
        p = Ss[i:i + 3, :]
        row = 2 * (i // 3)
        out[row, :] = u0 + au * p[0, :] / p[2, :]
        out[row + 1, :] = v0 + av * p[1, :] / p[2, :]
    return out


@register_model
class PlkLinIntoPinHole(LineProjectionModel):
    sensor_type = SensorType.PIN_HOLE.value
    landmark_type = LandmarkType.PLK_LIN.value

    def project(self, robot_frame, sensor_frame, par, l):
        Lr, LR_rf, LR_l = to_frame_plucker(robot_frame, l, jacobians=True)
        Ls, LS_sf, LS_lr = to_frame_plucker(sensor_frame, Lr, jacobians=True)
        hm, HM_n, HM_k = pin_hole_line(Ls[0:3], par.k, jacobians=True)

        # homogeneous line only depends on the moment part
        HM_ls = np.hstack((HM_n, np.zeros((3, 3))))
        HM_lr = HM_ls @ LS_lr

        # distance from the optical centre to the line
        depth = np.linalg.norm(Ls[0:3]) / np.linalg.norm(Ls[3:6])

        return ProjectionResult(
            e=hm,
            depth=depth,
            E_rf=HM_lr @ LR_rf,
            E_sf=HM_ls @ LS_sf,
            E_k=HM_k,
            E_d=None,
            E_l=HM_lr @ LR_l,
        )

    def segment(self, l, abscissas):
        return plucker_segment(l, abscissas, jacobians=True)

    def project_segment(self, robot_frame, sensor_frame, par, si):
        return project_segment_into_pin_hole_on_rob(robot_frame, sensor_frame, par.k, si)
