"""
mechanism.py - Compiled, handle-based form of a Linkage.

A Linkage document refers to points by string name. For evaluation the
document is compiled once into a Mechanism:
  - every point gets an integer handle (ground points first)
  - every joint becomes a step with resolved numeric parameters
  - ground positions are stored in a numpy array

Plates, plate graphs and sampled configurations all index points by these
handles; names are only looked up at the compile boundary.

Usage:

    mechanism = compile_linkage(linkage)
    positions = mechanism.solve(theta)      # (n_points, 2) array
    named = mechanism.to_named(positions)   # {name: (x, y)}
"""
from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from typing import Union

import numpy as np

from configs.link_models import HingeJoint
from configs.link_models import Linkage
from configs.link_models import RotaryJoint
from configs.link_models import SliderJoint
from linkage_tools.exceptions import InfeasibleConfiguration


# =============================================================================
# Compiled steps
# =============================================================================

@dataclass(frozen=True)
class RotaryStep:
    p0: int
    p1: int
    length: float
    offset: float


@dataclass(frozen=True)
class HingeStep:
    """Triangle closure with fixed sides l0 = |p0 p2| and l1 = |p1 p2|."""
    p0: int
    p1: int
    p2: int
    l0: float
    l1: float
    sign: float  # +1 / -1, branch chosen at authoring time


@dataclass(frozen=True)
class SliderStep:
    p0: int
    p1: int
    p2: int
    length: float


Step = Union[RotaryStep, HingeStep, SliderStep]


def hinge_side_lengths(pt: tuple[float, float], l2t: float) -> tuple[float, float]:
    """Recover (l0, l1) from a hinge's local-frame offset and reference length."""
    xt, yt = pt
    l0 = float(np.sqrt(xt ** 2 + yt ** 2))
    l1 = float(np.sqrt((l2t - xt) ** 2 + yt ** 2))
    return l0, l1


def solve_triangle(
    p0: tuple[float, float],
    p1: tuple[float, float],
    l0: float,
    l1: float,
    sign: float,
) -> tuple[float, float]:
    """
    Place p2 at distance l0 from p0 and l1 from p1.

    Works in the frame whose x-axis runs from p0 to p1, then maps back to
    world coordinates. `sign` picks the side of the p0->p1 line.

    Raises:
        InfeasibleConfiguration: if (l0, l1, |p0 p1|) is not a triangle
    """
    x0, y0 = p0
    x1, y1 = p1
    dx = x1 - x0
    dy = y1 - y0
    l2 = float(np.sqrt(dx ** 2 + dy ** 2))
    if l2 == 0 or l2 > l0 + l1 or l0 > l2 + l1 or l1 > l2 + l0:
        raise InfeasibleConfiguration("lengths don't make a triangle")

    xt = (l2 ** 2 + l0 ** 2 - l1 ** 2) / (2 * l2)
    # clamp: degenerate triangles can round slightly negative
    yt = sign * float(np.sqrt(max(l0 ** 2 - xt ** 2, 0.0)))
    cos_t = dx / l2
    sin_t = dy / l2
    return (x0 + xt * cos_t - yt * sin_t, y0 + xt * sin_t + yt * cos_t)


# =============================================================================
# Mechanism
# =============================================================================

@dataclass
class Mechanism:
    """Arena-style linkage: handles index `point_names` and the rows of position arrays."""
    point_names: list[str]
    index: dict[str, int]
    n_ground: int
    ground: np.ndarray           # (n_ground, 2)
    steps: list[Step] = field(default_factory=list)

    @property
    def n_points(self) -> int:
        return len(self.point_names)

    def is_ground(self, handle: int) -> bool:
        return handle < self.n_ground

    def handle(self, name: str) -> int:
        return self.index[name]

    def solve(self, theta: float) -> np.ndarray:
        """
        Positions of every point at drive angle theta.

        Raises:
            InfeasibleConfiguration: if any joint cannot be assembled
        """
        pos = np.empty((self.n_points, 2))
        pos[:self.n_ground] = self.ground

        for i, step in enumerate(self.steps):
            if isinstance(step, RotaryStep):
                angle = theta + step.offset
                pos[step.p1, 0] = np.cos(angle) * step.length + pos[step.p0, 0]
                pos[step.p1, 1] = np.sin(angle) * step.length + pos[step.p0, 1]

            elif isinstance(step, HingeStep):
                try:
                    pos[step.p2] = solve_triangle(
                        pos[step.p0], pos[step.p1], step.l0, step.l1, step.sign,
                    )
                except InfeasibleConfiguration as e:
                    raise InfeasibleConfiguration(
                        f"hinge '{self.point_names[step.p2]}': {e}", joint_index=i,
                    ) from None

            elif isinstance(step, SliderStep):
                dx = pos[step.p1, 0] - pos[step.p0, 0]
                dy = pos[step.p1, 1] - pos[step.p0, 1]
                d = float(np.sqrt(dx ** 2 + dy ** 2))
                if d == 0 or step.length < d:
                    raise InfeasibleConfiguration(
                        f"slider '{self.point_names[step.p2]}' retracts past its guide",
                        joint_index=i,
                    )
                pos[step.p2, 0] = pos[step.p0, 0] + dx / d * step.length
                pos[step.p2, 1] = pos[step.p0, 1] + dy / d * step.length

            else:
                raise TypeError(f"Unknown step type: {type(step).__name__}")

        return pos

    def to_named(self, positions: np.ndarray) -> dict[str, tuple[float, float]]:
        return {
            name: (float(positions[h, 0]), float(positions[h, 1]))
            for h, name in enumerate(self.point_names)
        }

    def from_named(self, points: dict) -> np.ndarray:
        """Inverse of to_named; accepts (x, y) tuples or objects with .x/.y."""
        pos = np.empty((self.n_points, 2))
        for name, h in self.index.items():
            p = points[name]
            pos[h] = p.as_tuple() if hasattr(p, 'as_tuple') else p
        return pos


def compile_linkage(linkage: Linkage) -> Mechanism:
    """
    Compile a Linkage document into a Mechanism.

    Ground points take the first handles in params order; joint outputs
    follow in declaration order. The linkage must already satisfy its
    solve-order invariant (checked when the model is built).
    """
    point_names = linkage.ground_point_refs()
    n_ground = len(point_names)
    index = {name: h for h, name in enumerate(point_names)}
    params = linkage.params

    ground = np.array(
        [params[name].as_tuple() for name in point_names], dtype=float,
    ).reshape(n_ground, 2)

    steps: list[Step] = []
    for link in linkage.links:
        out = link.output_point()
        index[out] = len(point_names)
        point_names.append(out)

        if isinstance(link, RotaryJoint):
            steps.append(RotaryStep(
                p0=index[link.p0],
                p1=index[link.p1],
                length=float(params[link.len]),
                offset=float(params[link.theta]),
            ))
        elif isinstance(link, HingeJoint):
            pt = params[link.pt]
            l0, l1 = hinge_side_lengths(pt.as_tuple(), float(params[link.l2t]))
            steps.append(HingeStep(
                p0=index[link.p0],
                p1=index[link.p1],
                p2=index[link.p2],
                l0=l0,
                l1=l1,
                sign=1.0 if pt.y > 0 else -1.0,
            ))
        elif isinstance(link, SliderJoint):
            steps.append(SliderStep(
                p0=index[link.p0],
                p1=index[link.p1],
                p2=index[link.p2],
                length=float(params[link.len]),
            ))
        else:
            raise TypeError(f"Unknown joint type: {type(link).__name__}")

    return Mechanism(
        point_names=point_names,
        index=index,
        n_ground=n_ground,
        ground=ground,
        steps=steps,
    )
