"""
Rigid frames and frame transforms with exact Jacobians.

A frame is a pose given by a translation t and a unit quaternion q. Points are
expressed in the frame with p_F = R(q)^T (p_W - t). The Jacobian w.r.t. the
quaternion is assembled through the Pi matrix of the conjugate quaternion (Pc),
so Rt and Pc are cached on the frame and recomputed whenever q changes.
"""

import logging
import warnings
from typing import Optional, Sequence, Tuple, Union

import numpy as np
from scipy.linalg import block_diag

from .errors import BatchJacobianWarning
from .quaternion import q2Pi, q2qc, q2R, rotated_by_q_jacobian, skew

logger = logging.getLogger(__name__)


def _frozen(value, shape) -> np.ndarray:
    """Read-only float copy of value with the given shape."""
    arr = np.array(value, dtype=float).reshape(shape)
    arr.flags.writeable = False
    return arr


class Frame:
    """
    Rigid-body pose with cached derived quantities.

    Attributes
    ----------
    t : np.ndarray
        (3,) frame position
    q : np.ndarray
        (4,) frame orientation quaternion [a, b, c, d]
    R, Rt : np.ndarray
        (3, 3) rotation matrix and its transpose, derived from q
    Pi, Pc : np.ndarray
        (4, 3) Pi matrices of q and of its conjugate, derived from q
    r : np.ndarray or None
        Indices of [t; q] in the map, when the frame is estimated there
    """

    def __init__(self, t: Optional[Sequence[float]] = None,
                 q: Optional[Sequence[float]] = None,
                 r: Optional[Sequence[int]] = None):
        self._t = _frozen(np.zeros(3) if t is None else t, 3)
        self._q = _frozen([1.0, 0.0, 0.0, 0.0] if q is None else q, 4)
        self.r = None if r is None else np.asarray(r, dtype=int).reshape(-1)
        self._update()

    @classmethod
    def from_vector(cls, x: Sequence[float], r: Optional[Sequence[int]] = None) -> 'Frame':
        """Build a frame from a flat 7-vector [t; q]."""
        x = np.asarray(x, dtype=float).reshape(-1)
        if x.size != 7:
            raise ValueError(f"Frame vector must have 7 elements, got {x.size}")
        return cls(x[0:3], x[3:7], r)

    def _update(self):
        # derived quantities only change through the q setter
        self._R = _frozen(q2R(self._q), (3, 3))
        self._Rt = _frozen(self._R.T, (3, 3))
        self._Pi = _frozen(q2Pi(self._q), (4, 3))
        self._Pc = _frozen(q2Pi(q2qc(self._q)), (4, 3))

    @property
    def t(self) -> np.ndarray:
        return self._t

    @t.setter
    def t(self, value: Sequence[float]):
        self._t = _frozen(value, 3)

    @property
    def q(self) -> np.ndarray:
        return self._q

    @q.setter
    def q(self, value: Sequence[float]):
        self._q = _frozen(value, 4)
        self._update()

    @property
    def R(self) -> np.ndarray:
        return self._R

    @property
    def Rt(self) -> np.ndarray:
        return self._Rt

    @property
    def Pi(self) -> np.ndarray:
        return self._Pi

    @property
    def Pc(self) -> np.ndarray:
        return self._Pc

    @property
    def vector(self) -> np.ndarray:
        """Flat 7-vector [t; q]."""
        return np.concatenate((self._t, self._q))

    def set_pose(self, t: Sequence[float], q: Sequence[float]) -> None:
        self.t = t
        self.q = q

    def copy(self) -> 'Frame':
        return Frame(self._t.copy(), self._q.copy(), None if self.r is None else self.r.copy())

    def __repr__(self) -> str:
        return f"Frame(t={self._t.tolist()}, q={self._q.tolist()})"


FrameLike = Union[Frame, Sequence[float], np.ndarray]


def as_frame(F: FrameLike) -> Frame:
    """Return F as a Frame, converting a 7-vector [t; q] on demand."""
    if isinstance(F, Frame):
        return F
    return Frame.from_vector(F)


def inverse_rotation_jacobian(F: Frame, v: np.ndarray) -> np.ndarray:
    """
    Jacobian of Rt(q) @ v with respect to q, evaluated through Pc.

    Parameters:
    -----------
    F : Frame
        Frame providing q (via its cached Pc matrix)
    v : np.ndarray
        (3,) vector being rotated

    Returns:
    --------
    np.ndarray
        (3, 4) Jacobian
    """
    sc = 2 * F.Pc @ v
    return np.array([
        [sc[1], sc[0], -sc[3], sc[2]],
        [sc[2], sc[3], sc[0], -sc[1]],
        [sc[3], -sc[2], sc[1], sc[0]]
    ])


def to_frame(F: FrameLike, p_W: np.ndarray, jacobians: bool = False):
    """
    Express in frame F a point (or a 3xN set of points) given in the global frame.

    Parameters:
    -----------
    F : Frame or 7-vector [t; q]
        Local frame
    p_W : np.ndarray
        (3,) point or (3, N) points in the global frame
    jacobians : bool
        Also return the Jacobians (single point only)

    Returns:
    --------
    p_F, or (p_F, PF_f, PF_p) when jacobians is True
        PF_f is the (3, 7) Jacobian w.r.t. [t; q] and PF_p the (3, 3)
        Jacobian w.r.t. the point, equal to Rt. For several points the
        Jacobians are None and a BatchJacobianWarning is issued.
    """
    F = as_frame(F)
    p_W = np.asarray(p_W, dtype=float)

    if p_W.ndim == 1 or p_W.shape[1] == 1:
        v = p_W.reshape(3) - F.t
        p_F = (F.Rt @ v).reshape(p_W.shape)
        if not jacobians:
            return p_F

        PF_t = -F.Rt
        PF_q = inverse_rotation_jacobian(F, v)
        return p_F, np.hstack((PF_t, PF_q)), F.Rt.copy()

    p_F = F.Rt @ (p_W - F.t[:, np.newaxis])
    if jacobians:
        warnings.warn("Can't give Jacobians for multiple points", BatchJacobianWarning, stacklevel=2)
        return p_F, None, None
    return p_F


def from_frame(F: FrameLike, p_F: np.ndarray, jacobians: bool = False):
    """
    Express in the global frame a point (or 3xN points) given in frame F.

    Inverse of to_frame. With jacobians, returns (p_W, PW_f, PW_p) for a single
    point, PW_f being (3, 7) w.r.t. [t; q] and PW_p = R.
    """
    F = as_frame(F)
    p_F = np.asarray(p_F, dtype=float)

    if p_F.ndim == 1 or p_F.shape[1] == 1:
        v = p_F.reshape(3)
        p_W = (F.R @ v + F.t).reshape(p_F.shape)
        if not jacobians:
            return p_W
        PW_q = rotated_by_q_jacobian(F.q, v)
        return p_W, np.hstack((np.eye(3), PW_q)), F.R.copy()

    p_W = F.R @ p_F + F.t[:, np.newaxis]
    if jacobians:
        warnings.warn("Can't give Jacobians for multiple points", BatchJacobianWarning, stacklevel=2)
        return p_W, None, None
    return p_W


def to_frame_hmg(F: FrameLike, h_W: np.ndarray, jacobians: bool = False):
    """
    Express in frame F a homogeneous point h = [m; n] (Euclidean point m / n).

    The result is [Rt (m - n t); n], which is linear in h and stays defined for
    points at infinity (n = 0).

    Returns h_F, or (h_F, HF_f, HF_h) with HF_f (4, 7) and HF_h (4, 4).
    """
    F = as_frame(F)
    h_W = np.asarray(h_W, dtype=float).reshape(4)
    m, n = h_W[0:3], h_W[3]

    v = m - n * F.t
    h_F = np.concatenate((F.Rt @ v, [n]))
    if not jacobians:
        return h_F

    HF_f = np.zeros((4, 7))
    HF_f[0:3, 0:3] = -n * F.Rt
    HF_f[0:3, 3:7] = inverse_rotation_jacobian(F, v)

    HF_h = np.zeros((4, 4))
    HF_h[0:3, 0:3] = F.Rt
    HF_h[0:3, 3] = -F.Rt @ F.t
    HF_h[3, 3] = 1.0

    return h_F, HF_f, HF_h


def to_frame_segment(F: FrameLike, S_W: np.ndarray, jacobians: bool = False):
    """
    Express in frame F a set of segments given in the global frame.

    S_W is a segments matrix [S_1 S_2 ... S_N], each column S_i = [P_i1; P_i2]
    stacking the two 3D endpoints. A single segment may also be given as a
    flat 6-vector.

    Parameters:
    -----------
    F : Frame or 7-vector [t; q]
        Local frame
    S_W : np.ndarray
        (6,) or (6, N) segments
    jacobians : bool
        Also return the Jacobians. Only available for a single segment.

    Returns:
    --------
    S_F, or (S_F, SF_f, SF_sw) when jacobians is True
        SF_f is (6, 7), the stack of each endpoint's frame Jacobian; SF_sw is
        the (6, 6) block-diagonal Jacobian w.r.t. the segment. For several
        segments both Jacobians are None and a BatchJacobianWarning is issued.
    """
    F = as_frame(F)
    S_W = np.asarray(S_W, dtype=float)

    if S_W.ndim == 1 or S_W.shape[1] == 1:  # one segment
        s = S_W.reshape(6)
        if not jacobians:
            S_F = np.concatenate((to_frame(F, s[0:3]), to_frame(F, s[3:6])))
            return S_F.reshape(S_W.shape)

        P1_F, P1F_f, P1F_p1w = to_frame(F, s[0:3], jacobians=True)
        P2_F, P2F_f, P2F_p2w = to_frame(F, s[3:6], jacobians=True)
        S_F = np.concatenate((P1_F, P2_F)).reshape(S_W.shape)
        SF_f = np.vstack((P1F_f, P2F_f))
        SF_sw = block_diag(P1F_p1w, P2F_p2w)
        return S_F, SF_f, SF_sw

    # multiple segments
    S_F = np.vstack((to_frame(F, S_W[0:3, :]), to_frame(F, S_W[3:6, :])))
    if jacobians:
        logger.debug(f"Jacobians requested for {S_W.shape[1]} segments")
        warnings.warn("Can't give Jacobians for multiple segments", BatchJacobianWarning, stacklevel=2)
        return S_F, None, None
    return S_F


def to_frame_plucker(F: FrameLike, L_W: np.ndarray, jacobians: bool = False):
    """
    Express in frame F a Plücker line L = [n; v] (moment n = p x v, direction v).

    n_F = Rt (n - t x v), v_F = Rt v. Returns L_F, or (L_F, LF_f, LF_l) with
    LF_f (6, 7) and LF_l (6, 6).
    """
    F = as_frame(F)
    L_W = np.asarray(L_W, dtype=float).reshape(6)
    n, v = L_W[0:3], L_W[3:6]

    w = n - np.cross(F.t, v)
    L_F = np.concatenate((F.Rt @ w, F.Rt @ v))
    if not jacobians:
        return L_F

    LF_f = np.zeros((6, 7))
    # d(t x v)/dt = -skew(v), so d(n - t x v)/dt = skew(v)
    LF_f[0:3, 0:3] = F.Rt @ skew(v)
    LF_f[0:3, 3:7] = inverse_rotation_jacobian(F, w)
    LF_f[3:6, 3:7] = inverse_rotation_jacobian(F, v)

    LF_l = np.zeros((6, 6))
    LF_l[0:3, 0:3] = F.Rt
    LF_l[0:3, 3:6] = -F.Rt @ skew(F.t)
    LF_l[3:6, 3:6] = F.Rt

    return L_F, LF_f, LF_l
