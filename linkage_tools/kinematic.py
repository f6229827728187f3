"""
kinematic.py - Forward kinematics and full-cycle traces for plate linkages.

This module provides:
  - evaluate: positions of every point at a drive angle
  - sample_cycle / compute_traces: one full revolution, split into runs
    wherever the linkage locks up
  - hinge parameter helpers used when authoring or editing hinges
  - slider projection

Design notes:
  - Functions are pure: the same (linkage, theta) always gives the same
    floating point result
  - Lock-up raises InfeasibleConfiguration; callers catch it per attempt
"""
from __future__ import annotations

import logging

import numpy as np

from configs.appconfig import TRACE_STEPS
from configs.link_models import Linkage
from configs.link_models import Point
from linkage_tools.exceptions import InfeasibleConfiguration
from linkage_tools.mechanism import compile_linkage
from linkage_tools.mechanism import hinge_side_lengths
from linkage_tools.schemas import TraceResult

logger = logging.getLogger(__name__)

PointLike = tuple[float, float]


def _xy(p) -> PointLike:
    if isinstance(p, Point):
        return (p.x, p.y)
    return (float(p[0]), float(p[1]))


def distance(a, b) -> float:
    """Euclidean distance between two points."""
    (ax, ay), (bx, by) = _xy(a), _xy(b)
    return float(np.hypot(ax - bx, ay - by))


# =============================================================================
# Forward kinematics
# =============================================================================

def evaluate(linkage: Linkage, theta: float) -> dict[str, PointLike]:
    """
    Compute every point of the linkage at drive angle theta.

    Args:
        linkage: Linkage document
        theta: Drive angle in radians, added to every rotary joint's offset

    Returns:
        {point_name: (x, y)} for ground and computed points

    Raises:
        InfeasibleConfiguration: if a hinge triangle cannot close or a slider
            would retract past its guide
    """
    mechanism = compile_linkage(linkage)
    return mechanism.to_named(mechanism.solve(theta))


def sample_cycle(linkage: Linkage, n: int = TRACE_STEPS) -> TraceResult:
    """
    Sample one full revolution of the drive angle.

    Angles are 2*pi*i/n for i in [0, n), followed by a repeat of i = 0.
    A failed sample advances the shared run counter, so all points are
    split into runs at the same angles.

    Args:
        linkage: Linkage document
        n: Number of samples per revolution

    Returns:
        TraceResult with n + 1 samples
    """
    if n < 1:
        raise ValueError(f'n must be >= 1, got {n}')

    mechanism = compile_linkage(linkage)
    indices = list(range(n)) + [0]
    thetas = np.array([i / n * 2 * np.pi for i in indices])
    positions = np.full((len(indices), mechanism.n_points, 2), np.nan)
    feasible = np.zeros(len(indices), dtype=bool)
    run_ids = np.zeros(len(indices), dtype=int)

    k = 0
    for s, theta in enumerate(thetas):
        try:
            positions[s] = mechanism.solve(float(theta))
        except InfeasibleConfiguration:
            k += 1
            run_ids[s] = k
            continue
        feasible[s] = True
        run_ids[s] = k

    n_failed = int((~feasible).sum())
    if n_failed:
        logger.debug(f'{n_failed}/{len(indices)} sampled angles are infeasible')

    return TraceResult(
        point_names=list(mechanism.point_names),
        n_ground=mechanism.n_ground,
        thetas=thetas,
        feasible=feasible,
        run_ids=run_ids,
        positions=positions,
    )


def compute_traces(linkage: Linkage, n: int = TRACE_STEPS) -> dict[str, list[list[PointLike]]]:
    """
    Motion traces of every non-ground point over a full revolution.

    Returns:
        {point_name: [run, run, ...]} where each run is a list of (x, y)
        positions over consecutive feasible angles
    """
    return sample_cycle(linkage, n).traces()


# =============================================================================
# Hinge parameters
# =============================================================================

def calc_hinge_params(p0, p1, p2) -> tuple[Point, float]:
    """
    Express p2 in the frame whose x-axis runs from p0 towards p1.

    Returns:
        (pt, l2t): local offset of p2 and the current p0-p1 distance

    Raises:
        InfeasibleConfiguration: if p0 and p1 coincide (no frame)
    """
    x0, y0 = _xy(p0)
    x1, y1 = _xy(p1)
    x2, y2 = _xy(p2)
    dx = x1 - x0
    dy = y1 - y0
    l2 = float(np.sqrt(dx ** 2 + dy ** 2))
    if l2 == 0:
        raise InfeasibleConfiguration('hinge parents coincide')
    cos_t = dx / l2
    sin_t = -dy / l2
    xt = x2 - x0
    yt = y2 - y0
    pt = Point(
        x=xt * cos_t - yt * sin_t,
        y=xt * sin_t + yt * cos_t,
    )
    return pt, l2


def update_hinge_params_with_lengths(
    p0,
    p1,
    pt,
    l2t: float,
    l0: float | None = None,
    l1: float | None = None,
) -> tuple[Point, float]:
    """
    Rebuild hinge params after changing one of its two fixed side lengths.

    Exactly one of l0 (p0-p2) or l1 (p1-p2) must be given; the other side
    keeps its current length. The branch sign of pt.y is preserved.

    Raises:
        ValueError: if neither or both lengths are given
        InfeasibleConfiguration: if the new sides don't make a triangle with
            the current p0-p1 distance
    """
    if (l0 is None) == (l1 is None):
        raise ValueError('either l0 or l1 must be provided')

    old_l0, old_l1 = hinge_side_lengths(_xy(pt), l2t)
    if l0 is None:
        l0 = old_l0
    else:
        l1 = old_l1

    x0, y0 = _xy(p0)
    x1, y1 = _xy(p1)
    l2 = float(np.sqrt((x1 - x0) ** 2 + (y1 - y0) ** 2))
    if l2 == 0 or l2 > l0 + l1 or l0 > l2 + l1 or l1 > l2 + l0:
        raise InfeasibleConfiguration("lengths don't make a triangle")

    sign = 1.0 if _xy(pt)[1] > 0 else -1.0
    xt = (l2 ** 2 + l0 ** 2 - l1 ** 2) / (2 * l2)
    yt = sign * float(np.sqrt(max(l0 ** 2 - xt ** 2, 0.0)))
    return Point(x=xt, y=yt), l2


# =============================================================================
# Sliders
# =============================================================================

def project_slider(p0, p1, p) -> PointLike:
    """Project p onto the line through p0 and p1."""
    x0, y0 = _xy(p0)
    x1, y1 = _xy(p1)
    px, py = _xy(p)
    dx = x1 - x0
    dy = y1 - y0
    t = ((px - x0) * dx + (py - y0) * dy) / (dx ** 2 + dy ** 2)
    return (x0 + t * dx, y0 + t * dy)
