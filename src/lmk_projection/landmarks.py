"""
Landmark parameterizations and conversions between them.

Point landmarks:
    eucPnt  [x, y, z]
    hmgPnt  [m (3); n]                  Euclidean point m / n
    idpPnt  [x0 (3); yaw; pitch; rho]   x0 + bearing(yaw, pitch) / rho

Line landmarks:
    plkLin  [n (3); v (3)]              Plücker moment n = p x v and direction v

A finite segment is recovered from a Plücker line with two abscissas measured
along the unit direction from the point of the line closest to the origin.
"""

from typing import Sequence

import numpy as np

from .quaternion import skew


def bearing_to_vector(yaw: float, pitch: float, jacobians: bool = False):
    """Unit bearing vector from yaw and pitch. With jacobians also returns V_py (3x2)."""
    cy, sy = np.cos(yaw), np.sin(yaw)
    cp, sp = np.cos(pitch), np.sin(pitch)
    v = np.array([cp * cy, cp * sy, sp])
    if not jacobians:
        return v

    V_py = np.array([
        [-cp * sy, -sp * cy],
        [cp * cy, -sp * sy],
        [0.0, cp]
    ])
    return v, V_py


def vector_to_bearing(v: np.ndarray) -> np.ndarray:
    """Yaw and pitch of a (not necessarily unit) direction vector."""
    v = np.asarray(v, dtype=float).reshape(3)
    yaw = np.arctan2(v[1], v[0])
    pitch = np.arctan2(v[2], np.hypot(v[0], v[1]))
    return np.array([yaw, pitch])


def idp_to_hmg(idp: np.ndarray, jacobians: bool = False):
    """
    Inverse-depth point to homogeneous point.

    h = [rho * x0 + bearing(yaw, pitch); rho]. With jacobians also returns
    H_idp (4x6).
    """
    idp = np.asarray(idp, dtype=float).reshape(6)
    x0, yaw, pitch, rho = idp[0:3], idp[3], idp[4], idp[5]

    if not jacobians:
        v = bearing_to_vector(yaw, pitch)
        return np.concatenate((rho * x0 + v, [rho]))

    v, V_py = bearing_to_vector(yaw, pitch, jacobians=True)
    h = np.concatenate((rho * x0 + v, [rho]))

    H_idp = np.zeros((4, 6))
    H_idp[0:3, 0:3] = rho * np.eye(3)
    H_idp[0:3, 3:5] = V_py
    H_idp[0:3, 5] = x0
    H_idp[3, 5] = 1.0
    return h, H_idp


def hmg_to_euc(h: np.ndarray, jacobians: bool = False):
    """Homogeneous point to Euclidean point m / n. With jacobians also returns P_h (3x4)."""
    h = np.asarray(h, dtype=float).reshape(4)
    m, n = h[0:3], h[3]
    p = m / n
    if not jacobians:
        return p

    P_h = np.hstack((np.eye(3) / n, (-m / n**2)[:, np.newaxis]))
    return p, P_h


def idp_to_euc(idp: np.ndarray) -> np.ndarray:
    return hmg_to_euc(idp_to_hmg(idp))


def euc_to_idp(p: np.ndarray, x0: Sequence[float]) -> np.ndarray:
    """Inverse-depth parameters of point p seen from anchor x0."""
    p = np.asarray(p, dtype=float).reshape(3)
    x0 = np.asarray(x0, dtype=float).reshape(3)
    r = p - x0
    yaw, pitch = vector_to_bearing(r)
    return np.concatenate((x0, [yaw, pitch, 1.0 / np.linalg.norm(r)]))


def plucker_from_points(p1: Sequence[float], p2: Sequence[float]) -> np.ndarray:
    """Plücker line [n; v] through two points, with v = p2 - p1."""
    p1 = np.asarray(p1, dtype=float).reshape(3)
    p2 = np.asarray(p2, dtype=float).reshape(3)
    v = p2 - p1
    return np.concatenate((np.cross(p1, v), v))


def plucker_origin(L: np.ndarray, jacobians: bool = False):
    """
    Point of a Plücker line closest to the origin.

    p0 = (v x n) / (v . v). With jacobians also returns P0_l (3x6).
    """
    L = np.asarray(L, dtype=float).reshape(6)
    n, v = L[0:3], L[3:6]
    vv = v @ v
    vxn = np.cross(v, n)
    p0 = vxn / vv
    if not jacobians:
        return p0

    P0_n = skew(v) / vv
    P0_v = -skew(n) / vv - np.outer(vxn, 2 * v) / vv**2
    return p0, np.hstack((P0_n, P0_v))


def plucker_direction(L: np.ndarray, jacobians: bool = False):
    """Unit direction of a Plücker line. With jacobians also returns U_l (3x6)."""
    L = np.asarray(L, dtype=float).reshape(6)
    v = L[3:6]
    nv = np.linalg.norm(v)
    u = v / nv
    if not jacobians:
        return u

    U_l = np.zeros((3, 6))
    U_l[:, 3:6] = (np.eye(3) - np.outer(u, u)) / nv
    return u, U_l


def plucker_abscissa(L: np.ndarray, p: Sequence[float]) -> float:
    """Abscissa along the line of the orthogonal projection of point p."""
    p0 = plucker_origin(L)
    u = plucker_direction(L)
    return float(u @ (np.asarray(p, dtype=float).reshape(3) - p0))


def plucker_segment(L: np.ndarray, t: Sequence[float], jacobians: bool = False):
    """
    Finite 3D segment supported by a Plücker line.

    Parameters:
    -----------
    L : np.ndarray
        (6,) Plücker line [n; v]
    t : sequence of 2 floats
        Endpoint abscissas along the unit direction, from the point of the
        line closest to the origin
    jacobians : bool
        Also return S_l (6x6), the Jacobian w.r.t. the line

    Returns:
    --------
    s or (s, S_l)
        s = [e1; e2] is the 6-vector of the two 3D endpoints
    """
    t1, t2 = float(t[0]), float(t[1])
    if not jacobians:
        p0 = plucker_origin(L)
        u = plucker_direction(L)
        return np.concatenate((p0 + t1 * u, p0 + t2 * u))

    p0, P0_l = plucker_origin(L, jacobians=True)
    u, U_l = plucker_direction(L, jacobians=True)
    s = np.concatenate((p0 + t1 * u, p0 + t2 * u))
    S_l = np.vstack((P0_l + t1 * U_l, P0_l + t2 * U_l))
    return s, S_l
