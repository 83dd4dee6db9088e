"""
Pinhole camera model with radial distortion.

Intrinsics are k = [u0, v0, au, av] (principal point and focal lengths in
pixels). Distortion is the radial polynomial
    ud = up * (1 + d[0] r^2 + d[1] r^4 + ...),   r^2 = |up|^2
applied to the normalized projection up = [x/z, y/z].
"""

from typing import Optional, Sequence, Tuple

import numpy as np


def project_to_plane(p: np.ndarray) -> Tuple[np.ndarray, float, np.ndarray]:
    """Normalized projection up = [x/z, y/z], depth z and Jacobian UP_p (2x3)."""
    x, y, z = p
    up = np.array([x / z, y / z])
    UP_p = np.array([
        [1.0 / z, 0.0, -x / z**2],
        [0.0, 1.0 / z, -y / z**2]
    ])
    return up, z, UP_p


def distort(up: np.ndarray, d: Optional[Sequence[float]]) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Apply radial distortion.

    Returns:
        ud: (2,) distorted point
        UD_up: (2, 2) Jacobian w.r.t. the undistorted point
        UD_d: (2, len(d)) Jacobian w.r.t. the distortion coefficients
    """
    d = np.zeros(0) if d is None else np.asarray(d, dtype=float).reshape(-1)
    if d.size == 0:
        return up.copy(), np.eye(2), np.zeros((2, 0))

    r2 = up @ up
    powers = r2 ** np.arange(1, d.size + 1)  # r^2, r^4, ...
    ratio = 1.0 + d @ powers

    # d(ratio)/d(r2)
    dratio = d @ (np.arange(1, d.size + 1) * r2 ** np.arange(0, d.size))

    ud = ratio * up
    UD_up = ratio * np.eye(2) + 2 * dratio * np.outer(up, up)
    UD_d = np.outer(up, powers)
    return ud, UD_up, UD_d


def pixellise(ud: np.ndarray, k: Sequence[float]) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Metric image point to pixels. Returns u, U_ud (2x2) and U_k (2x4)."""
    u0, v0, au, av = k
    u = np.array([u0 + au * ud[0], v0 + av * ud[1]])
    U_ud = np.diag([au, av])
    U_k = np.array([
        [1.0, 0.0, ud[0], 0.0],
        [0.0, 1.0, 0.0, ud[1]]
    ])
    return u, U_ud, U_k


def pin_hole(p: np.ndarray, k: Sequence[float], d: Optional[Sequence[float]] = None,
             jacobians: bool = False):
    """
    Project a 3D point given in the camera frame into a pinhole camera.

    Parameters:
    -----------
    p : np.ndarray
        (3,) point in the camera frame (z along the optical axis)
    k : sequence
        Intrinsics [u0, v0, au, av]
    d : sequence, optional
        Radial distortion coefficients
    jacobians : bool
        Also return the Jacobians

    Returns:
    --------
    (u, s) or (u, s, U_p, U_k, U_d)
        Pixel u, depth s, and Jacobians w.r.t. the point (2x3), the
        intrinsics (2x4) and the distortion (2 x len(d)).
    """
    p = np.asarray(p, dtype=float).reshape(3)
    up, s, UP_p = project_to_plane(p)
    ud, UD_up, UD_d = distort(up, d)
    u, U_ud, U_k = pixellise(ud, k)

    if not jacobians:
        return u, s

    U_p = U_ud @ UD_up @ UP_p
    U_d = U_ud @ UD_d
    return u, s, U_p, U_k, U_d


def k_line_matrix(k: Sequence[float]) -> np.ndarray:
    """Intrinsic matrix for lines: hm = Kl @ n for a line of plane normal n."""
    u0, v0, au, av = k
    return np.array([
        [av, 0.0, 0.0],
        [0.0, au, 0.0],
        [-av * u0, -au * v0, au * av]
    ])


def pin_hole_line(n: np.ndarray, k: Sequence[float], jacobians: bool = False):
    """
    Project into the image the 3D line whose Plücker moment in the camera frame is n.

    The result is the homogeneous image line hm (3,), such that hm . [u; v; 1] = 0
    for every pixel [u, v] on the projected line. With jacobians also returns
    HM_n (3x3) and HM_k (3x4).
    """
    n = np.asarray(n, dtype=float).reshape(3)
    Kl = k_line_matrix(k)
    hm = Kl @ n
    if not jacobians:
        return hm

    u0, v0, au, av = k
    HM_k = np.array([
        [0.0, 0.0, 0.0, n[0]],
        [0.0, 0.0, n[1], 0.0],
        [-av * n[0], -au * n[1], -v0 * n[1] + av * n[2], -u0 * n[0] + au * n[2]]
    ])
    return hm, Kl, HM_k


def in_image(u: np.ndarray, im_size: Sequence[float]) -> bool:
    """Whether pixel u lies within [0, width] x [0, height]."""
    return bool(0 <= u[0] <= im_size[0] and 0 <= u[1] <= im_size[1])


def is_visible(u: np.ndarray, depth: float, im_size: Sequence[float],
               min_depth: float = 0.0, max_depth: float = np.inf) -> bool:
    """
    Visibility of a projected point.

    The point must fall inside the image and its depth must be in
    (min_depth, max_depth].
    """
    return bool(min_depth < depth <= max_depth) and in_image(u, im_size)


def clip_segment(s: np.ndarray, im_size: Sequence[float]) -> Optional[np.ndarray]:
    """
    Clip a 2D segment [u1; v1; u2; v2] to the image rectangle (Liang-Barsky).

    Returns the clipped segment, or None when it lies fully outside.
    """
    x0, y0, x1, y1 = s
    dx, dy = x1 - x0, y1 - y0
    p = (-dx, dx, -dy, dy)
    q = (x0, im_size[0] - x0, y0, im_size[1] - y0)

    t0, t1 = 0.0, 1.0
    for pi, qi in zip(p, q):
        if pi == 0:
            if qi < 0:
                return None
            continue
        r = qi / pi
        if pi < 0:
            t0 = max(t0, r)
        else:
            t1 = min(t1, r)
        if t0 > t1:
            return None

    return np.array([x0 + t0 * dx, y0 + t0 * dy, x0 + t1 * dx, y0 + t1 * dy])


def visible_segment(s: np.ndarray, depths: Sequence[float], im_size: Sequence[float]) -> Tuple[np.ndarray, bool]:
    """
    Visibility of a projected segment, trimming it to the image.

    Both endpoints must be in front of the camera and some part of the segment
    must fall inside the image. Returns the (possibly trimmed) segment and the
    visibility flag; an invisible segment is returned untouched.
    """
    s = np.asarray(s, dtype=float).reshape(4)
    if np.any(np.asarray(depths) <= 0):
        return s, False

    clipped = clip_segment(s, im_size)
    if clipped is None:
        return s, False
    return clipped, True
