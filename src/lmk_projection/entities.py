"""
Robots, sensors and landmarks as seen by the projection core.

These entities only describe what is needed to predict an observation: frames,
sensor parameters, and the index ranges that locate each estimated quantity in
the stochastic map.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Union

import numpy as np

from .frames import Frame


class SensorType(Enum):
    """Sensor kinds with shipped projection models."""
    PIN_HOLE = "pinHole"


class LandmarkType(Enum):
    """Landmark kinds with shipped projection models."""
    IDP_PNT = "idpPnt"
    EUC_PNT = "eucPnt"
    HMG_PNT = "hmgPnt"
    PLK_LIN = "plkLin"


def type_tag(value: Union[str, Enum]) -> str:
    """Registry key of a sensor or landmark type."""
    if isinstance(value, Enum):
        return value.value
    return str(value)


def is_line_type(value: Union[str, Enum]) -> bool:
    """Line landmark tags end in 'Lin' (e.g. 'plkLin')."""
    return type_tag(value)[3:6] == "Lin"


@dataclass
class Robot:
    id: int
    frame: Frame = field(default_factory=Frame)


@dataclass
class SensorParams:
    """Pinhole sensor parameters."""

    k: np.ndarray  # intrinsics [u0, v0, au, av]
    d: np.ndarray = field(default_factory=lambda: np.zeros(0))  # radial distortion
    im_size: np.ndarray = field(default_factory=lambda: np.array([640.0, 480.0]))
    pix_cov: np.ndarray = field(default_factory=lambda: np.eye(2))  # pixel noise

    def __post_init__(self):
        self.k = np.asarray(self.k, dtype=float).reshape(4)
        self.d = np.asarray(self.d, dtype=float).reshape(-1)
        self.im_size = np.asarray(self.im_size, dtype=float).reshape(2)
        self.pix_cov = np.asarray(self.pix_cov, dtype=float).reshape(2, 2)


@dataclass
class Sensor:
    id: int
    type: Union[str, SensorType]
    par: SensorParams
    frame: Frame = field(default_factory=Frame)
    frame_in_map: bool = False
    robot: int = 0

    def measurement_noise(self, ltype: Union[str, LandmarkType]) -> np.ndarray:
        """
        Measurement noise covariance for an observation of a landmark of type ltype.

        Points measure one pixel; lines are measured through the two endpoints
        of their image segment.
        """
        if is_line_type(ltype):
            R = np.zeros((4, 4))
            R[0:2, 0:2] = self.par.pix_cov
            R[2:4, 2:4] = self.par.pix_cov
            return R
        return self.par.pix_cov.copy()


@dataclass
class LandmarkState:
    r: np.ndarray  # indices of the landmark state in the map

    def __post_init__(self):
        self.r = np.asarray(self.r, dtype=int).reshape(-1)


@dataclass
class LineEndpoint:
    t: float  # abscissa along the line


@dataclass
class LineParams:
    endp: List[LineEndpoint] = field(
        default_factory=lambda: [LineEndpoint(0.0), LineEndpoint(1.0)])

    @property
    def abscissas(self) -> np.ndarray:
        return np.array([e.t for e in self.endp])


@dataclass
class Landmark:
    id: int
    type: Union[str, LandmarkType]
    state: LandmarkState
    par: Optional[LineParams] = None

    @classmethod
    def line(cls, id: int, r: Sequence[int], abscissas: Sequence[float],
             type: Union[str, LandmarkType] = LandmarkType.PLK_LIN) -> 'Landmark':
        endp = [LineEndpoint(float(t)) for t in abscissas]
        return cls(id=id, type=type, state=LandmarkState(r), par=LineParams(endp))
