"""
Observation records produced by the landmark projection engine.

Every observation shares the same header (ids, visibility, expectation,
Jacobians). Data that only exists for some landmark kinds lives in the
kind-specific payload `par`.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Union

import numpy as np


@dataclass
class Measurement:
    """Measurement noise covariance (supplied by the sensor, not computed here)."""

    R: np.ndarray = field(default_factory=lambda: np.zeros((0, 0)))


@dataclass
class Expectation:
    e: np.ndarray = field(default_factory=lambda: np.zeros(0))  # mean
    E: np.ndarray = field(default_factory=lambda: np.zeros((0, 0)))  # covariance
    um: float = 0.0  # uncertainty measure, det(E)


@dataclass
class ObservationJacobians:
    E_r: np.ndarray = field(default_factory=lambda: np.zeros((0, 7)))  # wrt robot frame
    E_s: np.ndarray = field(default_factory=lambda: np.zeros((0, 7)))  # wrt sensor frame
    E_l: np.ndarray = field(default_factory=lambda: np.zeros((0, 0)))  # wrt landmark state


@dataclass
class PointPayload:
    """Point landmarks carry no extra data."""


@dataclass
class EndpointExpectation:
    e: np.ndarray  # projected endpoint (2,)
    E: np.ndarray  # endpoint covariance including measurement noise (2, 2)


@dataclass
class SegmentPayload:
    """Projected segment of a line landmark."""

    endp: List[EndpointExpectation] = field(default_factory=list)
    computed_vis: bool = False  # segment visibility before any policy override


Payload = Union[PointPayload, SegmentPayload]


@dataclass
class Observation:
    """Predicted observation of one landmark by one sensor."""

    sid: int = -1
    lid: int = -1
    ltype: str = ""
    vis: bool = False
    meas: Measurement = field(default_factory=Measurement)
    exp: Expectation = field(default_factory=Expectation)
    jac: ObservationJacobians = field(default_factory=ObservationJacobians)
    par: Payload = field(default_factory=PointPayload)

    @property
    def is_line(self) -> bool:
        return isinstance(self.par, SegmentPayload)

    def endpoint(self, i: int) -> Optional[EndpointExpectation]:
        """i-th projected segment endpoint, or None for point landmarks."""
        if not self.is_line:
            return None
        return self.par.endp[i]
