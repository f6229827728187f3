"""
geometry.py - 2D segment predicates used for plate collision checks.

Every function accepts either single points of shape (2,) or stacks of
points of shape (m, 2); the stacked form evaluates the same predicate for
m sampled configurations at once.
"""
from __future__ import annotations

import numpy as np


def orientation(p: np.ndarray, q: np.ndarray, r: np.ndarray) -> np.ndarray:
    """Sign of the cross product (q - p) x (r - p): 1 = ccw, -1 = cw, 0 = collinear."""
    p, q, r = np.asarray(p, dtype=float), np.asarray(q, dtype=float), np.asarray(r, dtype=float)
    cross = (q[..., 0] - p[..., 0]) * (r[..., 1] - p[..., 1]) \
        - (q[..., 1] - p[..., 1]) * (r[..., 0] - p[..., 0])
    return np.sign(cross)


def _on_segment(p: np.ndarray, q: np.ndarray, r: np.ndarray) -> np.ndarray:
    """For collinear p, q, r: whether q lies within the bounding box of p-r."""
    return (
        (np.minimum(p[..., 0], r[..., 0]) <= q[..., 0])
        & (q[..., 0] <= np.maximum(p[..., 0], r[..., 0]))
        & (np.minimum(p[..., 1], r[..., 1]) <= q[..., 1])
        & (q[..., 1] <= np.maximum(p[..., 1], r[..., 1]))
    )


def segments_intersect(a0, a1, b0, b1) -> np.ndarray | bool:
    """
    Whether segment a0-a1 meets segment b0-b1, touching and collinear
    overlap included.

    Returns:
        bool for single segments, (m,) bool array for stacks
    """
    a0, a1 = np.asarray(a0, dtype=float), np.asarray(a1, dtype=float)
    b0, b1 = np.asarray(b0, dtype=float), np.asarray(b1, dtype=float)

    o1 = orientation(a0, a1, b0)
    o2 = orientation(a0, a1, b1)
    o3 = orientation(b0, b1, a0)
    o4 = orientation(b0, b1, a1)

    hit = (o1 != o2) & (o3 != o4)
    hit |= (o1 == 0) & _on_segment(a0, b0, a1)
    hit |= (o2 == 0) & _on_segment(a0, b1, a1)
    hit |= (o3 == 0) & _on_segment(b0, a0, b1)
    hit |= (o4 == 0) & _on_segment(b0, a1, b1)

    if np.ndim(hit) == 0:
        return bool(hit)
    return hit


def point_segment_distance(p, s0, s1) -> np.ndarray | float:
    """
    Distance from p to the closest point of segment s0-s1.

    A zero-length segment is treated as the point s0.
    """
    p = np.asarray(p, dtype=float)
    s0, s1 = np.asarray(s0, dtype=float), np.asarray(s1, dtype=float)

    d = s1 - s0
    length_sq = d[..., 0] ** 2 + d[..., 1] ** 2
    w = p - s0
    with np.errstate(divide='ignore', invalid='ignore'):
        t = (w[..., 0] * d[..., 0] + w[..., 1] * d[..., 1]) / length_sq
    t = np.where(length_sq == 0, 0.0, np.clip(t, 0.0, 1.0))

    cx = s0[..., 0] + t * d[..., 0]
    cy = s0[..., 1] + t * d[..., 1]
    dist = np.hypot(p[..., 0] - cx, p[..., 1] - cy)

    if np.ndim(dist) == 0:
        return float(dist)
    return dist
