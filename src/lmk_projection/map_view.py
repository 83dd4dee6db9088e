"""
Read-only access to the stochastic map during projection.

The map mean x and covariance P are shared by every projection of a filter
cycle; projections only read them. MapView wraps non-writable views of both
arrays so that an accidental write raises instead of corrupting the map.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

logger = logging.getLogger(__name__)


class MapView:
    """
    Read-only view over a map mean vector and covariance matrix.

    Parameters:
    -----------
    x : np.ndarray
        Map mean vector of size N
    P : np.ndarray
        Map covariance matrix of shape (N, N)
    """

    def __init__(self, x: np.ndarray, P: np.ndarray):
        x = np.asarray(x, dtype=float)
        P = np.asarray(P, dtype=float)
        if x.ndim != 1:
            raise ValueError(f"Map mean must be a vector, got shape {x.shape}")
        if P.shape != (x.size, x.size):
            raise ValueError(f"Map covariance shape {P.shape} does not match mean size {x.size}")

        self._x = x.view()
        self._x.flags.writeable = False
        self._P = P.view()
        self._P.flags.writeable = False

    @property
    def x(self) -> np.ndarray:
        return self._x

    @property
    def P(self) -> np.ndarray:
        return self._P

    @property
    def size(self) -> int:
        return self._x.size

    def mean(self, r: Sequence[int]) -> np.ndarray:
        """Mean of the states at indices r (a copy)."""
        return self._x[np.asarray(r, dtype=int)].copy()

    def covariance(self, r: Sequence[int]) -> np.ndarray:
        """Covariance sub-matrix P[r, r], selecting rows and columns together."""
        r = np.asarray(r, dtype=int)
        return self._P[np.ix_(r, r)]


@dataclass
class StateBlock:
    """A map index range together with the Jacobian block acting on it."""

    name: str
    r: np.ndarray
    jacobian: np.ndarray


class StateSelection:
    """
    Ordered selection of map blocks paired with their Jacobians.

    Blocks are appended as (range, Jacobian) pairs, so the concatenated index
    vector and the horizontally concatenated Jacobian always share the same
    order.
    """

    def __init__(self):
        self.blocks: List[StateBlock] = []

    def add(self, name: str, r: Sequence[int], jacobian: np.ndarray) -> 'StateSelection':
        r = np.asarray(r, dtype=int).reshape(-1)
        jacobian = np.atleast_2d(np.asarray(jacobian, dtype=float))
        if jacobian.shape[1] != r.size:
            raise ValueError(
                f"Jacobian block '{name}' has {jacobian.shape[1]} columns for a range of {r.size} states")
        if self.blocks and self.blocks[0].jacobian.shape[0] != jacobian.shape[0]:
            raise ValueError(
                f"Jacobian block '{name}' has {jacobian.shape[0]} rows, expected {self.blocks[0].jacobian.shape[0]}")
        self.blocks.append(StateBlock(name, r, jacobian))
        return self

    @property
    def names(self) -> List[str]:
        return [b.name for b in self.blocks]

    @property
    def ranges(self) -> np.ndarray:
        if not self.blocks:
            return np.zeros(0, dtype=int)
        return np.concatenate([b.r for b in self.blocks])

    @property
    def jacobian(self) -> np.ndarray:
        return np.hstack([b.jacobian for b in self.blocks])

    def with_jacobians(self, jacobians: Sequence[np.ndarray]) -> 'StateSelection':
        """Same ranges, in the same order, with other Jacobian blocks."""
        if len(jacobians) != len(self.blocks):
            raise ValueError(f"Expected {len(self.blocks)} Jacobian blocks, got {len(jacobians)}")
        other = StateSelection()
        for block, jac in zip(self.blocks, jacobians):
            other.add(block.name, block.r, jac)
        return other

    def propagate(self, map_view: MapView) -> np.ndarray:
        """Sandwich product J P[r, r] J^T over the selected blocks."""
        J = self.jacobian
        return J @ map_view.covariance(self.ranges) @ J.T


def robot_sensor_landmark_selection(rob_r: np.ndarray, E_rf: np.ndarray,
                                    sen_r: Optional[np.ndarray], E_sf: Optional[np.ndarray],
                                    lmk_r: np.ndarray, E_l: np.ndarray) -> StateSelection:
    """
    Selection of robot frame, sensor frame (when estimated) and landmark.

    The sensor block is included only when sen_r is given.
    """
    selection = StateSelection()
    selection.add("robot", rob_r, E_rf)
    if sen_r is not None:
        selection.add("sensor", sen_r, E_sf)
    selection.add("landmark", lmk_r, E_l)
    logger.debug(f"State selection {selection.names} over {selection.ranges.size} states")
    return selection
