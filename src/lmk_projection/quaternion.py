"""Quaternion and rotation helpers.

Quaternions are stored scalar first, q = [a, b, c, d].
"""
import numpy as np


def skew(v: np.ndarray) -> np.ndarray:
    """Skew-symmetric matrix from 3-vector.

    Args:
        v: (3,) vector

    Returns:
        (3, 3) skew-symmetric matrix such that skew(v) @ w == cross(v, w)
    """
    return np.array([
        [0.0, -v[2], v[1]],
        [v[2], 0.0, -v[0]],
        [-v[1], v[0], 0.0]
    ])


def q2qc(q: np.ndarray) -> np.ndarray:
    """Conjugate quaternion."""
    return np.array([q[0], -q[1], -q[2], -q[3]], dtype=float)


def q2R(q: np.ndarray) -> np.ndarray:
    """Rotation matrix from unit quaternion.

    Args:
        q: (4,) quaternion [a, b, c, d]

    Returns:
        (3, 3) rotation matrix R such that R @ p rotates p by q
    """
    a, b, c, d = q
    aa, bb, cc, dd = a * a, b * b, c * c, d * d
    ab, ac, ad = 2 * a * b, 2 * a * c, 2 * a * d
    bc, bd, cd = 2 * b * c, 2 * b * d, 2 * c * d
    return np.array([
        [aa + bb - cc - dd, bc - ad, bd + ac],
        [bc + ad, aa - bb + cc - dd, cd - ab],
        [bd - ac, cd + ab, aa - bb - cc + dd]
    ])


def q2Pi(q: np.ndarray) -> np.ndarray:
    """Pi matrix of a quaternion.

    Pi(q) @ w is the quaternion product q * [0; w] for a 3-vector w.

    Args:
        q: (4,) quaternion [a, b, c, d]

    Returns:
        (4, 3) matrix
    """
    a, b, c, d = q
    return np.array([
        [-b, -c, -d],
        [a, -d, c],
        [d, a, -b],
        [-c, b, a]
    ])


def rotation_vector_to_q(v: np.ndarray) -> np.ndarray:
    """Unit quaternion from a rotation vector (axis * angle in radians)."""
    v = np.asarray(v, dtype=float)
    angle = np.linalg.norm(v)
    if angle < 1e-12:
        return np.array([1.0, 0.0, 0.0, 0.0])
    axis = v / angle
    return np.concatenate(([np.cos(angle / 2)], np.sin(angle / 2) * axis))


def rotated_by_q_jacobian(q: np.ndarray, v: np.ndarray) -> np.ndarray:
    """Jacobian of R(q) @ v with respect to q.

    Args:
        q: (4,) quaternion
        v: (3,) vector

    Returns:
        (3, 4) Jacobian
    """
    a = q[0]
    u = np.asarray(q[1:4], dtype=float)
    J = np.zeros((3, 4))
    J[:, 0] = 2 * (a * v + np.cross(u, v))
    J[:, 1:4] = 2 * (np.dot(u, v) * np.eye(3) + np.outer(u, v) - np.outer(v, u) - a * skew(v))
    return J
